"""Shared client for the admin operations list endpoint.

Used by local scripts and smoke tests that want to call the same backend
endpoint an admin UI would call. It does NOT import FastAPI.
"""

from __future__ import annotations

import os
from typing import Any

import httpx


async def fetch_operations_page(
    *,
    page: int | None = None,
    page_size: int | None = None,
    kind: str | None = None,
    q: str | None = None,
    warn: bool | None = None,
    flow: int | None = None,
    integrated: bool | None = None,
    admin_token: str | None = None,
    backend_base_url: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    base = (
        backend_base_url
        or os.environ.get("OPS_API_BASE_URL")
        or "http://127.0.0.1:8000/api/v4"
    ).rstrip("/")

    url = f"{base}/admin/operations"
    params: dict[str, Any] = {
        "page": page,
        "pageSize": page_size,
        "kind": kind,
        "q": q,
        "warn": "1" if warn else None,
        "flow": flow,
        "integrated": None if integrated is None else ("1" if integrated else "0"),
    }
    params = {k: v for k, v in params.items() if v is not None}

    token = admin_token if admin_token is not None else os.environ.get("OPS_ADMIN_TOKEN", "")
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    timeout = float(os.environ.get("OPS_HTTP_TIMEOUT_SECONDS", "30"))

    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        resp = await client.get(url, params=params, headers=headers)

    if resp.status_code >= 400:
        return {
            "ok": False,
            "status_code": resp.status_code,
            "error": resp.text,
            "request": {"url": url, "params": params},
        }

    return {
        "ok": True,
        "status_code": resp.status_code,
        "request": {"url": url, "params": params},
        "response": resp.json(),
    }
