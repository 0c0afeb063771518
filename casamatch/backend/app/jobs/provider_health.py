# app/jobs/provider_health.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from ..domain.types import ProviderKey
from ..models import SyncStatus
from ..service_layer.provider_registry import ProviderRegistry

log = logging.getLogger(__name__)


async def run_provider_health_check(registry: ProviderRegistry, store: Any | None = None) -> dict[str, str]:
    """
    Self-test every active provider and stamp the outcome on its settings
    row. One failing provider does not stop the others.
    Returns {provider_key: "ok" | "failed"}.
    """
    store = store or registry.store
    active = await registry.get_active_clients()
    if not active.clients:
        return {}  # quiet when nothing is configured

    out: dict[str, str] = {}
    for client in active.clients:
        key: ProviderKey = client.provider
        try:
            result = await client.adapter.test_connection()
            status = SyncStatus.ok if result.success else SyncStatus.failed
            message = result.message
        except Exception as e:
            log.exception("health check for %s raised", key.value)
            status, message = SyncStatus.failed, str(e) or type(e).__name__

        await store.record_sync(key.value, status=status.value, message=message, at=datetime.utcnow())
        out[key.value] = status.value
        if status == SyncStatus.failed:
            log.warning("provider %s unhealthy: %s", key.value, message)

    log.info("provider health: %s", out)
    return out
