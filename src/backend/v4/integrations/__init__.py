"""Integration adapters for external systems (record store, HTTP API).

Keep these modules small and testable:
- No FastAPI request/response objects
- Pure IO + parsing helpers
"""
