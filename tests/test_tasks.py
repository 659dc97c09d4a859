from __future__ import annotations

from typing import Any, cast

import pytest

from spiceboard.taskiq_app.dedup import (
    acquire_dedup_lock,
    build_dedup_key,
    execution_lock,
    release_dedup_lock,
)
from spiceboard.taskiq_app.tasks import (
    BACKFILL_TASK_NAME,
    backfill_auction_history,
    enqueue_backfill_auction_history,
)


def _summary(**overrides: object) -> dict[str, object]:
    summary: dict[str, object] = {
        "pages_fetched": 2,
        "rows_scraped": 30,
        "rows_stored": 30,
        "stopped_early": True,
        "last_page": 3,
        "errors": [],
    }
    summary.update(overrides)
    return summary


@pytest.mark.anyio
async def test_build_dedup_key_is_namespaced() -> None:
    key = build_dedup_key(scope="enqueue", task_name="backfill", fingerprint="1-5")

    assert key == "spiceboard:dedup:enqueue:backfill:1-5"


@pytest.mark.anyio
async def test_memory_lock_acquire_and_release() -> None:
    assert await acquire_dedup_lock("k", 60) is True
    assert await acquire_dedup_lock("k", 60) is False

    await release_dedup_lock("k")
    assert await acquire_dedup_lock("k", 60) is True


@pytest.mark.anyio
async def test_execution_lock_releases_only_when_held() -> None:
    async with execution_lock("held", 60) as acquired:
        assert acquired is True
        async with execution_lock("held", 60) as nested:
            assert nested is False
        assert await acquire_dedup_lock("held", 60) is False

    assert await acquire_dedup_lock("held", 60) is True


@pytest.mark.anyio
async def test_backfill_task_runs_with_defaults(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls: list[tuple[int, int]] = []

    async def fake_run_backfill(start_page: int, end_page: int) -> dict[str, object]:
        calls.append((start_page, end_page))
        return _summary()

    monkeypatch.setattr("spiceboard.taskiq_app.tasks._run_backfill", fake_run_backfill)

    task_fn = cast(Any, backfill_auction_history)
    task = await task_fn.kiq()
    result = await task.wait_result(timeout=30)

    assert not result.is_err
    assert calls == [(1, 50)]
    assert result.return_value["status"] == "ok"
    assert result.return_value["start_page"] == 1
    assert result.return_value["end_page"] == 50
    assert result.return_value["rows_stored"] == 30


@pytest.mark.anyio
async def test_backfill_task_skips_when_already_running(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def fake_run_backfill(start_page: int, end_page: int) -> dict[str, object]:  # noqa: ARG001
        raise AssertionError("backfill must not run while locked")

    monkeypatch.setattr("spiceboard.taskiq_app.tasks._run_backfill", fake_run_backfill)

    running_key = build_dedup_key(
        scope="execution", task_name=BACKFILL_TASK_NAME, fingerprint="default"
    )
    assert await acquire_dedup_lock(running_key, 60) is True

    task_fn = cast(Any, backfill_auction_history)
    result = await task_fn.original_func(start_page=2, end_page=4)

    assert result == {
        "start_page": 2,
        "end_page": 4,
        "status": "skipped_duplicate_execution",
    }


@pytest.mark.anyio
async def test_backfill_task_releases_lock_on_failure(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def failing_run_backfill(start_page: int, end_page: int) -> dict[str, object]:  # noqa: ARG001
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(
        "spiceboard.taskiq_app.tasks._run_backfill", failing_run_backfill
    )

    task_fn = cast(Any, backfill_auction_history)
    with pytest.raises(RuntimeError):
        await task_fn.original_func(start_page=1, end_page=2)

    running_key = build_dedup_key(
        scope="execution", task_name=BACKFILL_TASK_NAME, fingerprint="default"
    )
    assert await acquire_dedup_lock(running_key, 60) is True


@pytest.mark.anyio
async def test_enqueue_backfill_dedup(monkeypatch: pytest.MonkeyPatch) -> None:
    kicked: list[dict[str, object]] = []

    class DummyTask:
        task_id: str = "backfill-task-123"

    async def fake_kiq(*args: object, **kwargs: object):  # noqa: ARG001
        kicked.append(kwargs)
        return DummyTask()

    task_fn = cast(Any, backfill_auction_history)
    monkeypatch.setattr(task_fn, "kiq", fake_kiq)

    first = await enqueue_backfill_auction_history(
        start_page=1, end_page=5, fingerprint="1-5"
    )
    second = await enqueue_backfill_auction_history(
        start_page=1, end_page=5, fingerprint="1-5"
    )
    other = await enqueue_backfill_auction_history(fingerprint="manual")

    assert first == {"enqueued": True, "task_id": "backfill-task-123"}
    assert second == {"enqueued": False, "reason": "duplicate_enqueue"}
    assert other == {"enqueued": True, "task_id": "backfill-task-123"}
    assert kicked == [
        {"start_page": 1, "end_page": 5},
        {"start_page": None, "end_page": None},
    ]
