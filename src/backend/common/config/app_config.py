"""Application configuration for the operations backend.

Values come from the process environment. A local `.env` is loaded first;
`.env.example` only fills keys that are still unset (blank placeholders never
override real values).
"""

from __future__ import annotations

import os

from dotenv import dotenv_values, load_dotenv

load_dotenv(override=False)

if not os.environ.get("OPS_DATA_API_BASE_URL"):
    example_path = os.path.abspath(".env.example")
    if os.path.exists(example_path):
        for k, v in (dotenv_values(example_path) or {}).items():
            if not k or v is None or v == "":
                continue
            if not os.environ.get(k):
                os.environ[k] = v


class AppConfig:
    """Snapshot of the environment-driven settings."""

    def __init__(self) -> None:
        self.OPS_STORE_BACKEND = os.environ.get("OPS_STORE_BACKEND", "data_api")
        self.OPS_DATA_API_BASE_URL = os.environ.get("OPS_DATA_API_BASE_URL", "")
        self.OPS_DATA_API_KEY = os.environ.get("OPS_DATA_API_KEY", "")
        self.OPS_DATA_SOURCE = os.environ.get("OPS_DATA_SOURCE", "Cluster0")
        self.OPS_DATABASE = os.environ.get("OPS_DATABASE", "shop")
        self.OPS_HTTP_TIMEOUT_SECONDS = int(os.environ.get("OPS_HTTP_TIMEOUT_SECONDS", "30"))
        self.OPS_ADMIN_TOKEN = os.environ.get("OPS_ADMIN_TOKEN", "")
        self.OPS_POLICY_PATH = os.environ.get("OPS_POLICY_PATH", "")

        self.BASIC_LOGGING_LEVEL = os.environ.get("BASIC_LOGGING_LEVEL", "INFO")
        self.PACKAGE_LOGGING_LEVEL = os.environ.get("PACKAGE_LOGGING_LEVEL", "WARNING")
        self.LOGGING_PACKAGES = os.environ.get("LOGGING_PACKAGES", "urllib3,httpx")

        self.FRONTEND_SITE_NAME = os.environ.get("FRONTEND_SITE_NAME", "*")


config = AppConfig()
