"""Taskiq broker running the archive backfill outside the request cycle.

Start a worker with ``taskiq worker spiceboard.taskiq_app.broker:broker``.
"""

import importlib

import taskiq_fastapi
from taskiq import AsyncBroker, InMemoryBroker
from taskiq_redis import RedisAsyncResultBackend, RedisStreamBroker

from spiceboard.config import Settings, get_settings


def _build_broker(settings: Settings) -> AsyncBroker:
    if settings.taskiq_testing:
        return InMemoryBroker()

    result_backend = RedisAsyncResultBackend(
        redis_url=settings.redis_url,
        result_ex_time=settings.task_result_ttl_seconds,
    )
    return RedisStreamBroker(url=settings.redis_url).with_result_backend(
        result_backend
    )


broker = _build_broker(get_settings())

# Lets tasks resolve FastAPI dependencies inside the worker.
taskiq_fastapi.init(broker, "spiceboard.main:app")

# Task modules register themselves on import; the worker only loads this module.
importlib.import_module("spiceboard.taskiq_app.tasks")

__all__ = ["broker"]
