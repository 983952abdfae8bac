"""Use-case level logic.

These modules build the admin operations list (decode, link-check, project,
filter, paginate) from records returned by integrations.

They should be:
- deterministic
- unit-testable
- free of web/framework code
"""
