from __future__ import annotations

import pytest

from src.backend.v4.config.settings import (
    OperationsPolicy,
    default_policy_path,
    load_operations_policy,
    policy_from_dict,
)


def test_repo_policy_file_loads() -> None:
    assert default_policy_path().exists()

    policy = load_operations_policy()

    assert policy.max_fetch_each == 300
    assert policy.default_page_size == 50
    assert policy.max_page_size == 200
    assert policy.rate_limit.endpoint_key == "admin.operations.list"


def test_partial_or_invalid_values_fall_back_to_defaults() -> None:
    policy = policy_from_dict(
        {
            "operations": {
                "fetch": {"max_fetch_each": "-1"},
                "paging": {"default_page_size": 500, "max_page_size": 100},
                "rate_limit": {"max_requests": "many"},
            }
        }
    )

    assert policy.max_fetch_each == OperationsPolicy().max_fetch_each
    assert policy.max_page_size == 100
    # Default page size never exceeds the max.
    assert policy.default_page_size == 100
    assert policy.rate_limit.max_requests == 30


def test_explicit_missing_path_is_an_error(tmp_path) -> None:
    with pytest.raises(ValueError):
        load_operations_policy(tmp_path / "missing.yaml")


def test_explicit_path_is_read(tmp_path) -> None:
    p = tmp_path / "policy.yaml"
    p.write_text("operations:\n  fetch:\n    max_fetch_each: 10\n", encoding="utf-8")

    assert load_operations_policy(p).max_fetch_each == 10
