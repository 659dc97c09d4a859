# ruff: noqa: E402
"""Backfill the Spices Board auction archive into the database.

Usage:
    python scripts/backfill_auctions.py --start-page 1 --end-page 50
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, cast

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from spiceboard.config import get_settings
from spiceboard.taskiq_app.tasks import backfill_auction_history


@dataclass(frozen=True)
class CliArgs:
    start_page: int
    end_page: int
    verbose: bool = False


def _parse_args(argv: list[str] | None = None) -> CliArgs:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Fetch archive pages in order and upsert them, stopping at the first empty page."
    )
    parser.add_argument(
        "--start-page",
        type=int,
        default=settings.backfill_start_page,
        help=f"First page to fetch (default: {settings.backfill_start_page}).",
    )
    parser.add_argument(
        "--end-page",
        type=int,
        default=settings.backfill_end_page,
        help=f"Last page to fetch (default: {settings.backfill_end_page}).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log per-page progress to stderr.",
    )

    parsed = parser.parse_args(argv)
    if parsed.start_page < 1 or parsed.end_page < parsed.start_page:
        parser.error("--end-page must be >= --start-page >= 1")
    return CliArgs(
        start_page=int(parsed.start_page),
        end_page=int(parsed.end_page),
        verbose=bool(parsed.verbose),
    )


def _normalize_result(status: str, errors: list[str]) -> str:
    if status == "ok" and not errors:
        return "success"
    if status == "ok":
        return "partial"
    return "failure"


async def _run(args: CliArgs) -> dict[str, object]:
    base_report: dict[str, object] = {
        "start_page": args.start_page,
        "end_page": args.end_page,
        "executed_at": datetime.now(UTC).isoformat(),
    }

    try:
        task_fn = cast(Any, backfill_auction_history)
        raw_result = await task_fn.original_func(
            start_page=args.start_page, end_page=args.end_page
        )
    except Exception as exc:  # noqa: BLE001
        return {
            **base_report,
            "status": "unexpected_exception",
            "result": "failure",
            "reason": str(exc),
            "error_type": type(exc).__name__,
        }

    status = str(raw_result.get("status", "unknown"))
    errors = cast(list[str], raw_result.get("errors", []))
    return {
        **base_report,
        "status": status,
        "result": _normalize_result(status, errors),
        "task_result": raw_result,
    }


async def _async_main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    report = await _run(args)
    print(json.dumps(report, ensure_ascii=False, indent=2))
    return 0 if report.get("result") != "failure" else 1


def main() -> None:
    raise SystemExit(asyncio.run(_async_main()))


if __name__ == "__main__":
    main()
