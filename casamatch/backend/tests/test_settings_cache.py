# tests/test_settings_cache.py
import pytest

from app.adapters.repos.settings_store import ProviderSettingsRecord
from app.domain.types import SearchSettings
from app.service_layer.cache import CachedSettingsStore, TtlCache


class _Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_ttl_expiry():
    clock = _Clock()
    cache = TtlCache(10, clock=clock)
    cache.set("k", 1)

    clock.now = 9.9
    assert cache.get("k") == 1
    clock.now = 10.0
    assert cache.get("k") is None


def test_invalidate_one_and_all():
    cache = TtlCache(60)
    cache.set("a", 1)
    cache.set("b", 2)

    cache.invalidate("a")
    assert cache.get("a") is None
    assert cache.get("b") == 2

    cache.invalidate()
    assert cache.get("b") is None


def test_zero_ttl_disables_caching():
    cache = TtlCache(0)
    cache.set("a", 1)
    assert cache.get("a") is None


@pytest.mark.asyncio
async def test_reads_are_cached_until_a_write(fake_store):
    inner = fake_store([ProviderSettingsRecord(provider_key="xposure", enabled=True)])
    store = CachedSettingsStore(inner, TtlCache(300))

    await store.get_enabled_provider_settings()
    await store.get_enabled_provider_settings()
    assert inner.enabled_reads == 1

    await store.record_sync("xposure", status="ok", message="fine", at=None)
    await store.get_enabled_provider_settings()
    assert inner.enabled_reads == 2


@pytest.mark.asyncio
async def test_search_settings_write_invalidates(fake_store):
    inner = fake_store(search_settings=SearchSettings(max_properties_total=80))
    store = CachedSettingsStore(inner, TtlCache(300))

    assert (await store.get_search_settings()).max_properties_total == 80
    await store.write_search_settings(SearchSettings(max_properties_total=120))

    assert (await store.get_search_settings()).max_properties_total == 120
    assert inner.settings_reads == 2


@pytest.mark.asyncio
async def test_enable_through_cache_is_visible_immediately(settings_store):
    store = CachedSettingsStore(settings_store, TtlCache(300))
    await store.upsert_provider_setting("showcase_idx", name="Showcase IDX", enabled=False, api_key="k" * 16)

    assert await store.get_enabled_provider_settings() == []

    assert await store.set_provider_enabled("showcase_idx", True) is True
    enabled = await store.get_enabled_provider_settings()
    assert [r.provider_key for r in enabled] == ["showcase_idx"]


@pytest.mark.asyncio
async def test_empty_provider_read_is_not_cached(fake_store):
    # the SQL store reads an unreachable database as []
    inner = fake_store()
    store = CachedSettingsStore(inner, TtlCache(300))

    assert await store.get_enabled_provider_settings() == []

    inner.records = [ProviderSettingsRecord(provider_key="xposure", enabled=True)]
    recovered = await store.get_enabled_provider_settings()

    assert [r.provider_key for r in recovered] == ["xposure"]
    assert inner.enabled_reads == 2

    await store.get_enabled_provider_settings()
    assert inner.enabled_reads == 2
