# app/service_layer/cache.py
from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Generic, TypeVar

from ..adapters.repos.settings_store import ProviderSettingsRecord, SettingsStore
from ..domain.types import SearchSettings

T = TypeVar("T")


class TtlCache(Generic[T]):
    """
    Small in-process cache with explicit invalidation. ttl_s <= 0 disables it.
    """

    def __init__(self, ttl_s: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_s = float(ttl_s)
        self._clock = clock
        self._entries: dict[str, tuple[float, T]] = {}

    def get(self, key: str) -> T | None:
        hit = self._entries.get(key)
        if hit is None:
            return None
        expires_at, value = hit
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: T) -> None:
        if self.ttl_s <= 0:
            return
        self._entries[key] = (self._clock() + self.ttl_s, value)

    def invalidate(self, key: str | None = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        hit = self.get(key)
        if hit is not None:
            return hit
        value = await loader()
        # empty reads are also what an unreachable database looks like, so they
        # are never pinned for a whole TTL
        if value:
            self.set(key, value)
        return value


_ENABLED_PROVIDERS = "enabled_provider_settings"
_SEARCH_SETTINGS = "search_settings"


class CachedSettingsStore:
    """
    SettingsStore read-through wrapper. Admin writes go through it so they
    invalidate what they touch.
    """

    def __init__(self, store: Any, cache: TtlCache[Any]) -> None:
        self.store = store
        self.cache = cache

    async def get_enabled_provider_settings(self) -> list[ProviderSettingsRecord]:
        return await self.cache.get_or_load(_ENABLED_PROVIDERS, self.store.get_enabled_provider_settings)

    async def get_all_provider_settings(self) -> list[ProviderSettingsRecord]:
        return await self.store.get_all_provider_settings()

    async def get_search_settings(self) -> SearchSettings | None:
        # None (no row yet) is not cached, same as an empty provider list
        return await self.cache.get_or_load(_SEARCH_SETTINGS, self.store.get_search_settings)

    async def upsert_provider_setting(self, provider_key: str, **fields: Any) -> ProviderSettingsRecord:
        rec = await self.store.upsert_provider_setting(provider_key, **fields)
        self.cache.invalidate(_ENABLED_PROVIDERS)
        return rec

    async def set_provider_enabled(self, provider_key: str, enabled: bool) -> bool:
        changed = await self.store.set_provider_enabled(provider_key, enabled)
        self.cache.invalidate(_ENABLED_PROVIDERS)
        return changed

    async def record_sync(self, provider_key: str, **fields: Any) -> None:
        await self.store.record_sync(provider_key, **fields)
        self.cache.invalidate(_ENABLED_PROVIDERS)

    async def write_search_settings(self, values: SearchSettings, *, updated_by: str | None = None) -> SearchSettings:
        out = await self.store.write_search_settings(values, updated_by=updated_by)
        self.cache.invalidate(_SEARCH_SETTINGS)
        return out


def cached(store: SettingsStore, ttl_s: float) -> CachedSettingsStore:
    return CachedSettingsStore(store, TtlCache(ttl_s))
