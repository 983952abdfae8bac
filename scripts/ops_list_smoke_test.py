"""Smoke test: admin operations list against the live record store.

This prints:
- How many orders, rentals and applications were read
- Every item that carries link-integrity warnings
- The first page as the admin UI would receive it

It is a script (not a test) so you can cross-reference results against the
store directly. Nothing is written.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys

# Allow running as: `python scripts/ops_list_smoke_test.py`
# by ensuring the repository root (parent of `scripts/`) is on sys.path.
_REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

from dotenv import load_dotenv

load_dotenv(override=False)

from src.backend.v4.config.settings import load_operations_policy
from src.backend.v4.integrations.data_api_store import DataApiRecordStore
from src.backend.v4.integrations.record_store import RecordStoreError
from src.backend.v4.use_cases.ops_engine import build_operations_list
from src.backend.v4.use_cases.ops_fetchers import collect_operation_records
from src.backend.v4.use_cases.ops_pipeline import parse_operations_list_query


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Print the admin operations list")
    p.add_argument("--page", default=None)
    p.add_argument("--page-size", default=None)
    p.add_argument("--kind", default=None)
    p.add_argument("--q", default=None)
    p.add_argument("--warn", action="store_true")
    p.add_argument("--flow", default=None)
    p.add_argument("--integrated", default=None)
    p.add_argument("--policy", default=None, help="Path to operations_policy.yaml")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    policy = load_operations_policy(args.policy)

    try:
        store = DataApiRecordStore.from_env()
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    params = {
        "page": args.page,
        "pageSize": args.page_size,
        "kind": args.kind,
        "q": args.q,
        "warn": "1" if args.warn else None,
        "flow": args.flow,
        "integrated": args.integrated,
    }
    query = parse_operations_list_query(params, policy)

    try:
        records = asyncio.run(collect_operation_records(store, max_fetch_each=policy.max_fetch_each))
    except RecordStoreError as e:
        print(f"ERROR: record store read failed: {e}", file=sys.stderr)
        return 1

    print(
        f"Read orders={len(records.orders)} rentals={len(records.rentals)} "
        f"applications={len(records.applications)} (backfilled {records.backfilled_count}, "
        f"drafts {len(records.drafts_by_id)})"
    )

    result = build_operations_list(records, query)
    for item in result.items:
        if item.warn:
            print(f"WARN {item.kind.value}:{item.id}")
            for reason in item.warn_reasons:
                print(f"  - {reason}")

    print(f"total={result.total} page={query.page} pageSize={query.page_size}")
    print(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
