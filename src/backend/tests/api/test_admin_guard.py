from __future__ import annotations

import pytest
from fastapi import HTTPException, Request

from src.backend.v4.api.admin_guard import FixedWindowRateLimiter, client_ip, token_identity
from src.backend.v4.config.settings import RateLimitPolicy


class _Clock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_limiter_counts_per_admin_and_ip_and_resets_on_next_window() -> None:
    clock = _Clock(120.0)
    limiter = FixedWindowRateLimiter(RateLimitPolicy(max_requests=1, window_seconds=60), clock=clock)

    limiter.hit("admin", "10.0.0.1")
    limiter.hit("admin", "10.0.0.2")
    limiter.hit("other", "10.0.0.1")

    with pytest.raises(HTTPException) as exc:
        limiter.hit("admin", "10.0.0.1")
    assert exc.value.status_code == 429
    assert exc.value.headers["Retry-After"] == "60"

    clock.now = 180.0
    limiter.hit("admin", "10.0.0.1")


def test_identity_and_ip_come_from_credential_and_socket() -> None:
    request = Request(
        {
            "type": "http",
            "headers": [(b"x-forwarded-for", b"203.0.113.9"), (b"x-real-ip", b"203.0.113.10")],
            "client": ("10.1.2.3", 5555),
        }
    )

    assert client_ip(request) == "10.1.2.3"
    assert token_identity("secret") == token_identity("secret")
    assert token_identity("secret") != token_identity("other")
    assert "secret" not in token_identity("secret")
