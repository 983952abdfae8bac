"""Admin guard and rate limiter dependencies.

Both run before the operations handler:
- the guard either yields the caller identity or rejects (401/403)
- the limiter either lets the call proceed or rejects with 429
"""

import hashlib
import logging
import math
import secrets
import threading
import time
from dataclasses import dataclass

from fastapi import HTTPException, Request

from src.backend.common.config.app_config import config
from src.backend.v4.config.settings import RateLimitPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AdminIdentity:
    admin_id: str


def _bearer_token(request: Request) -> str | None:
    auth = request.headers.get("authorization") or ""
    scheme, _, token = auth.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def require_admin(request: Request) -> AdminIdentity:
    """Approve the request when the bearer token matches OPS_ADMIN_TOKEN."""

    token = _bearer_token(request)
    if token is None:
        raise HTTPException(status_code=401, detail="Missing admin credentials")

    expected = config.OPS_ADMIN_TOKEN
    if not expected or not secrets.compare_digest(token, expected):
        raise HTTPException(status_code=403, detail="Admin access required")

    # Derived from the credential, never from request headers.
    return AdminIdentity(admin_id=token_identity(token))


def token_identity(token: str) -> str:
    return "admin-" + hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]


def client_ip(request: Request) -> str:
    """Socket peer address. Forwarding headers are ignored (caller-controlled)."""
    if request.client and request.client.host:
        return request.client.host
    return "unknown-ip"


class FixedWindowRateLimiter:
    """Per-process fixed-window counter keyed by endpoint, admin, IP and window."""

    def __init__(self, policy: RateLimitPolicy, clock=time.time) -> None:
        self._policy = policy
        self._clock = clock
        self._counts: dict[str, int] = {}
        self._lock = threading.Lock()

    @property
    def policy(self) -> RateLimitPolicy:
        return self._policy

    def hit(self, admin_id: str, ip: str) -> None:
        """Count one call; raise 429 when the window budget is exhausted."""

        now = self._clock()
        window = self._policy.window_seconds
        window_start = int(now // window) * window
        key = f"{self._policy.endpoint_key}:{admin_id}:{ip}:{window_start}"

        with self._lock:
            # Drop counters from earlier windows.
            suffix = f":{window_start}"
            for stale in [k for k in self._counts if not k.endswith(suffix)]:
                del self._counts[stale]
            count = self._counts.get(key, 0) + 1
            self._counts[key] = count

        if count > self._policy.max_requests:
            retry_after = max(1, math.ceil(window_start + window - now))
            logger.info(
                f"Rate limit exceeded: endpoint={self._policy.endpoint_key} admin={admin_id} ip={ip} count={count}"
            )
            raise HTTPException(
                status_code=429,
                detail="Too many requests. Please try again shortly.",
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(self._policy.max_requests),
                },
            )
