# app/jobs/scheduler.py
from __future__ import annotations

import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ..adapters.repos.settings_store import SqlAlchemySettingsStore
from ..config import settings
from ..db import async_session_maker
from ..service_layer.provider_registry import ProviderContext, ProviderRegistry
from .provider_health import run_provider_health_check

log = logging.getLogger(__name__)


async def run_provider_health_now() -> dict[str, str]:
    # uncached store: each run sees the latest enabled/credential changes
    store = SqlAlchemySettingsStore(async_session_maker)
    registry = ProviderRegistry(store, context=ProviderContext(session_maker=async_session_maker))
    return await run_provider_health_check(registry)


def build_scheduler() -> AsyncIOScheduler:
    sched = AsyncIOScheduler()

    sched.add_job(
        lambda: asyncio.create_task(run_provider_health_now()),
        "interval",
        minutes=settings.SCHED_PROVIDER_HEALTH_INTERVAL_MINUTES,
    )

    return sched
