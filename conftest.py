"""Pytest configuration.

Ensures the `src.*` packages import consistently during test collection and
provides the admin/config environment shared by API tests.
"""

import sys
from pathlib import Path

import pytest


def _prepend_sys_path(path: Path) -> None:
    resolved = str(path.resolve())
    if resolved not in sys.path:
        sys.path.insert(0, resolved)


REPO_ROOT = Path(__file__).resolve().parent

# Allow importing `src.*` package explicitly.
_prepend_sys_path(REPO_ROOT)


@pytest.fixture
def ops_env_vars():
    """Common environment variables for record store / API testing."""
    return {
        "OPS_STORE_BACKEND": "data_api",
        "OPS_DATA_API_BASE_URL": "https://data.example.test/app/ops/endpoint/data/v1",
        "OPS_DATA_API_KEY": "test_api_key",
        "OPS_DATA_SOURCE": "TestCluster",
        "OPS_DATABASE": "shop_test",
        "OPS_HTTP_TIMEOUT_SECONDS": "5",
        "OPS_ADMIN_TOKEN": "test_admin_token",
    }
