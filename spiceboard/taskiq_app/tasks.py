"""Taskiq tasks for the auction archive backfill."""

import logging
from typing import Any, cast

from spiceboard.config import get_settings
from spiceboard.db.session import session_context
from spiceboard.services.auction_service import AuctionService
from spiceboard.taskiq_app.broker import broker
from spiceboard.taskiq_app.dedup import (
    acquire_dedup_lock,
    build_dedup_key,
    execution_lock,
)

logger = logging.getLogger(__name__)

BACKFILL_TASK_NAME = "backfill_auction_history"


async def _run_backfill(start_page: int, end_page: int) -> dict[str, object]:
    async with session_context() as session:
        return await AuctionService(session).backfill(start_page, end_page)


@broker.task(task_name=BACKFILL_TASK_NAME)
async def backfill_auction_history(
    start_page: int | None = None,
    end_page: int | None = None,
) -> dict[str, object]:
    settings = get_settings()
    start = start_page or settings.backfill_start_page
    end = end_page or settings.backfill_end_page

    dedup_key = build_dedup_key(
        scope="execution", task_name=BACKFILL_TASK_NAME, fingerprint="default"
    )
    async with execution_lock(
        dedup_key, settings.backfill_dedup_ttl_seconds
    ) as acquired:
        if not acquired:
            logger.info(f"{BACKFILL_TASK_NAME} skipped due to dedup lock")
            return {
                "start_page": start,
                "end_page": end,
                "status": "skipped_duplicate_execution",
            }
        summary = await _run_backfill(start, end)

    return {**summary, "start_page": start, "end_page": end, "status": "ok"}


async def enqueue_backfill_auction_history(
    *,
    start_page: int | None = None,
    end_page: int | None = None,
    fingerprint: str = "manual",
) -> dict[str, object]:
    """Enqueue the backfill once per dedup window."""

    dedup_key = build_dedup_key(
        scope="enqueue", task_name=BACKFILL_TASK_NAME, fingerprint=fingerprint
    )
    lock_acquired = await acquire_dedup_lock(
        dedup_key, get_settings().backfill_dedup_ttl_seconds
    )
    if not lock_acquired:
        return {"enqueued": False, "reason": "duplicate_enqueue"}

    task_kicker = cast(Any, backfill_auction_history)
    task = await task_kicker.kiq(start_page=start_page, end_page=end_page)
    return {"enqueued": True, "task_id": task.task_id}
