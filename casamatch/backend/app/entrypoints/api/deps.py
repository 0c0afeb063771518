# app/entrypoints/api/deps.py
from __future__ import annotations

from fastapi import Header, HTTPException

from ...adapters.repos.settings_store import SqlAlchemySettingsStore
from ...config import settings
from ...db import async_session_maker
from ...service_layer.aggregator import PropertyAggregator
from ...service_layer.cache import CachedSettingsStore, TtlCache
from ...service_layer.provider_registry import ProviderContext, ProviderRegistry

# One settings cache per process; admin writes through the store invalidate it
_settings_cache: TtlCache = TtlCache(settings.SETTINGS_CACHE_TTL_S)


def require_api_key(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> None:
    if settings.API_KEY:
        if not x_api_key or x_api_key != settings.API_KEY:
            raise HTTPException(status_code=401, detail="Invalid API key")


def get_settings_store() -> CachedSettingsStore:
    return CachedSettingsStore(SqlAlchemySettingsStore(async_session_maker), _settings_cache)


def get_registry() -> ProviderRegistry:
    return ProviderRegistry(get_settings_store(), context=ProviderContext(session_maker=async_session_maker))


def get_aggregator() -> PropertyAggregator:
    return PropertyAggregator(get_registry())
