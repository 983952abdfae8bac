from __future__ import annotations

import asyncio

import httpx

from src.backend.v4.integrations.operations_api_client import fetch_operations_page


def test_fetch_operations_page_sends_query_and_bearer_token() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"items": [], "total": 0})

    result = asyncio.run(
        fetch_operations_page(
            page=2,
            page_size=25,
            warn=True,
            integrated=False,
            admin_token="secret",
            backend_base_url="http://ops.test/api/v4/",
            transport=httpx.MockTransport(handler),
        )
    )

    assert result["ok"] is True
    assert result["response"] == {"items": [], "total": 0}
    assert seen["url"].path == "/api/v4/admin/operations"
    assert dict(seen["url"].params) == {"page": "2", "pageSize": "25", "warn": "1", "integrated": "0"}
    assert seen["auth"] == "Bearer secret"


def test_fetch_operations_page_reports_http_errors() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(403, json={"detail": "Admin access required"}))

    result = asyncio.run(
        fetch_operations_page(admin_token="wrong", backend_base_url="http://ops.test/api/v4", transport=transport)
    )

    assert result["ok"] is False
    assert result["status_code"] == 403
    assert "Admin access required" in result["error"]
    assert result["request"]["params"] == {}
