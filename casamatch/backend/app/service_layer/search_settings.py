# app/service_layer/search_settings.py
from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Any

from ..domain.types import SearchSettings

log = logging.getLogger(__name__)

DEFAULT_SEARCH_SETTINGS = SearchSettings()

# field -> (min, max); per-provider may also be None (auto-distribute)
LIMITS: dict[str, tuple[int, int]] = {
    "max_properties_total": (10, 200),
    "max_properties_per_provider": (5, 100),
    "max_properties_for_ai": (10, 200),
    "min_properties_per_provider": (1, 50),
}


async def resolve_search_settings(store: Any) -> SearchSettings:
    """
    Persisted policy or the defaults. Never raises.
    """
    try:
        row = await store.get_search_settings()
    except Exception:  # a broken store must not fail a search
        log.exception("search settings lookup failed; using defaults")
        return DEFAULT_SEARCH_SETTINGS
    return row if row is not None else DEFAULT_SEARCH_SETTINGS


def compute_limit_per_provider(settings: SearchSettings, provider_count: int) -> int:
    if settings.max_properties_per_provider is not None:
        return settings.max_properties_per_provider
    if provider_count <= 0:
        return settings.min_properties_per_provider
    return max(settings.min_properties_per_provider, math.ceil(settings.max_properties_total / provider_count))


def validate_search_settings_update(current: SearchSettings, **changes: Any) -> SearchSettings:
    """
    Apply a partial update and range-check it. Raises ValueError naming the
    first bad field.
    """
    unknown = set(changes) - set(LIMITS)
    if unknown:
        raise ValueError(f"unknown search settings field(s): {', '.join(sorted(unknown))}")

    for name, value in changes.items():
        lo, hi = LIMITS[name]
        if value is None and name == "max_properties_per_provider":
            continue
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{name} must be an integer")
        if value < lo or value > hi:
            raise ValueError(f"{name} must be between {lo} and {hi}")

    return replace(current, **changes)


async def save_search_settings(store: Any, *, updated_by: str | None = None, **changes: Any) -> SearchSettings:
    current = await resolve_search_settings(store)
    updated = validate_search_settings_update(current, **changes)
    return await store.write_search_settings(updated, updated_by=updated_by)
