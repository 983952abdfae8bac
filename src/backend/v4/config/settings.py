"""Operations list policy (fetch window, paging limits, rate limit budget).

The policy lives in `data/operations/operations_policy.yaml`. Missing keys fall
back to the built-in defaults below so a partial file is still usable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_MAX_FETCH_EACH = 300
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200
MAX_PAGE = 10_000


@dataclass(frozen=True, slots=True)
class RateLimitPolicy:
    endpoint_key: str = "admin.operations.list"
    max_requests: int = 30
    window_seconds: int = 60


@dataclass(frozen=True, slots=True)
class OperationsPolicy:
    max_fetch_each: int = DEFAULT_MAX_FETCH_EACH
    default_page_size: int = DEFAULT_PAGE_SIZE
    max_page_size: int = MAX_PAGE_SIZE
    max_page: int = MAX_PAGE
    rate_limit: RateLimitPolicy = RateLimitPolicy()


def repo_root() -> Path:
    """settings.py is at: src/backend/v4/config/settings.py"""
    return Path(__file__).resolve().parents[4]


def default_policy_path() -> Path:
    return repo_root() / "data" / "operations" / "operations_policy.yaml"


def _positive_int(value: Any, default: int) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    return n if n > 0 else default


def policy_from_dict(doc: dict[str, Any]) -> OperationsPolicy:
    ops = (doc.get("operations") or {}) if isinstance(doc, dict) else {}
    fetch = ops.get("fetch") or {}
    paging = ops.get("paging") or {}
    rl = ops.get("rate_limit") or {}

    defaults = RateLimitPolicy()
    rate_limit = RateLimitPolicy(
        endpoint_key=str(rl.get("endpoint_key") or defaults.endpoint_key),
        max_requests=_positive_int(rl.get("max_requests"), defaults.max_requests),
        window_seconds=_positive_int(rl.get("window_seconds"), defaults.window_seconds),
    )

    max_page_size = _positive_int(paging.get("max_page_size"), MAX_PAGE_SIZE)
    default_page_size = min(
        _positive_int(paging.get("default_page_size"), DEFAULT_PAGE_SIZE), max_page_size
    )

    return OperationsPolicy(
        max_fetch_each=_positive_int(fetch.get("max_fetch_each"), DEFAULT_MAX_FETCH_EACH),
        default_page_size=default_page_size,
        max_page_size=max_page_size,
        max_page=_positive_int(paging.get("max_page"), MAX_PAGE),
        rate_limit=rate_limit,
    )


def load_operations_policy(path: str | Path | None = None) -> OperationsPolicy:
    """Load the YAML policy. An explicit path that does not exist is an error."""

    if path:
        policy_path = Path(path)
        if not policy_path.is_absolute():
            policy_path = (repo_root() / policy_path).resolve()
        if not policy_path.exists():
            raise ValueError(f"Operations policy file not found: {policy_path}")
    else:
        policy_path = default_policy_path()
        if not policy_path.exists():
            logger.warning(f"No operations policy at {policy_path}; using defaults")
            return OperationsPolicy()

    with open(policy_path, "r", encoding="utf-8") as f:
        doc = yaml.safe_load(f) or {}
    return policy_from_dict(doc)
