"""HTTP record store (Mongo-style Data API).

Purpose
- Provide a small, testable wrapper for *read-only* `action/find` calls.
- Keep credentials and id encoding in one place.

This module is intentionally independent of FastAPI.
"""

from __future__ import annotations

import os
import re
from typing import Any

import requests
from dotenv import load_dotenv

from src.backend.v4.integrations.record_store import RecordStoreError

load_dotenv(override=False)

# Fields that reference documents by ObjectId in the shop database.
ID_FIELDS = frozenset({"_id", "orderId", "rentalId", "userId"})

_OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


def _encode_id(value: Any) -> Any:
    if isinstance(value, str) and _OBJECT_ID_RE.match(value):
        return {"$oid": value}
    return value


def encode_object_ids(flt: Any, *, field: str | None = None) -> Any:
    """Rewrite 24-hex string ids under ID_FIELDS into Extended JSON ObjectIds."""

    if isinstance(flt, list):
        return [encode_object_ids(v, field=field) for v in flt]
    if isinstance(flt, dict):
        out: dict[str, Any] = {}
        for k, v in flt.items():
            if k.startswith("$"):
                # Operator: keep the enclosing field name (None for $or/$and).
                out[k] = encode_object_ids(v, field=field if k not in {"$or", "$and"} else None)
            else:
                out[k] = encode_object_ids(v, field=k)
        return out
    if field in ID_FIELDS:
        return _encode_id(flt)
    return flt


class DataApiRecordStore:
    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        data_source: str,
        database: str,
        timeout_seconds: int = 30,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._data_source = data_source
        self._database = database
        self._timeout_seconds = timeout_seconds

    @classmethod
    def from_env(cls) -> "DataApiRecordStore":
        load_dotenv(override=False)
        base_url = os.environ.get("OPS_DATA_API_BASE_URL")
        api_key = os.environ.get("OPS_DATA_API_KEY")
        if not base_url or not api_key:
            raise ValueError("Missing OPS_DATA_API_BASE_URL or OPS_DATA_API_KEY")

        return cls(
            base_url=base_url,
            api_key=api_key,
            data_source=os.environ.get("OPS_DATA_SOURCE", "Cluster0"),
            database=os.environ.get("OPS_DATABASE", "shop"),
            timeout_seconds=int(os.environ.get("OPS_HTTP_TIMEOUT_SECONDS", "30")),
        )

    def _request_json(self, action: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}/action/{action}"
        try:
            resp = requests.request(
                "POST",
                url,
                headers={
                    "api-key": self._api_key,
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                json=payload,
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as e:
            raise RecordStoreError(f"Record store request failed: {e}") from e

        if resp.status_code >= 400:
            raise RecordStoreError(f"HTTP {resp.status_code}: {resp.text}")
        try:
            return resp.json()
        except ValueError as e:
            raise RecordStoreError(f"Non-JSON response from {url}: {e}") from e

    def find(
        self,
        collection: str,
        *,
        filter: dict[str, Any],
        projection: dict[str, int] | None = None,
        sort: dict[str, int] | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        payload: dict[str, Any] = {
            "dataSource": self._data_source,
            "database": self._database,
            "collection": collection,
            "filter": encode_object_ids(filter or {}),
        }
        if projection:
            payload["projection"] = projection
        if sort:
            payload["sort"] = sort
        if limit:
            payload["limit"] = int(limit)

        body = self._request_json("find", payload)
        docs = body.get("documents") if isinstance(body, dict) else None
        if not isinstance(docs, list):
            raise RecordStoreError(f"Malformed find response for {collection}")
        return [d for d in docs if isinstance(d, dict)]
