# tests/test_api.py
import httpx
import pytest

from app.config import settings
from app.domain.types import ProviderKey, SearchSettings
from app.entrypoints.api.deps import get_aggregator, get_registry, get_settings_store
from app.entrypoints.fastapi_app import create_app
from app.service_layer.aggregator import PropertyAggregator

A = ProviderKey.showcase_idx
B = ProviderKey.zillow_bridge


@pytest.fixture
def app_with(make_registry):
    def _build(registry):
        app = create_app()
        app.dependency_overrides[get_aggregator] = lambda: PropertyAggregator(registry)
        app.dependency_overrides[get_registry] = lambda: registry
        app.dependency_overrides[get_settings_store] = lambda: registry.store
        return app

    return _build


def _client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_health(app_with, make_registry):
    async with _client(app_with(make_registry({}))) as client:
        r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_search_endpoint_returns_aggregated_result(app_with, make_registry, fake_adapter, make_listing):
    a = fake_adapter(A, properties=[make_listing(A, "1", 300000), make_listing(A, "2", 100000)])
    b = fake_adapter(B, error="Bridge API timeout")
    app = app_with(make_registry({A: a, B: b}))

    async with _client(app) as client:
        r = await client.get("/properties/search", params={"city": "Miami", "sort_by": "price", "sort_order": "asc"})

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert [p["price"] for p in body["properties"]] == [100000, 300000]
    assert body["properties"][0]["source_provider"] == "showcase_idx"
    assert body["properties"][0]["status"] == "active"
    assert body["errors"] == {"zillow_bridge": "Bridge API timeout"}
    assert body["providers_queried"] == ["showcase_idx", "zillow_bridge"]
    assert body["search_settings"]["max_properties_total"] == 60
    assert a.calls[0].city == "Miami"
    assert a.calls[0].limit == 30


@pytest.mark.asyncio
async def test_search_endpoint_reports_no_providers(app_with, make_registry, fake_adapter):
    app = app_with(make_registry({A: fake_adapter(A)}, disabled={A}))

    async with _client(app) as client:
        r = await client.get("/properties/search")

    body = r.json()
    assert r.status_code == 200
    assert body["success"] is False
    assert body["error_code"] == "NO_PROVIDERS"
    assert body["errors"]["general"] == "no providers configured"


@pytest.mark.asyncio
async def test_search_rejects_inverted_price_range(app_with, make_registry, fake_adapter):
    app = app_with(make_registry({A: fake_adapter(A)}))

    async with _client(app) as client:
        r = await client.get("/properties/search", params={"min_price": 500, "max_price": 100})

    assert r.status_code == 400


@pytest.mark.asyncio
async def test_search_settings_endpoint(app_with, make_registry):
    registry = make_registry({}, search_settings=SearchSettings(max_properties_total=90, max_properties_per_provider=12))

    async with _client(app_with(registry)) as client:
        r = await client.get("/search-settings")

    assert r.json() == {
        "max_properties_total": 90,
        "max_properties_per_provider": 12,
        "max_properties_for_ai": 60,
        "min_properties_per_provider": 5,
    }


@pytest.mark.asyncio
async def test_provider_status_endpoint(app_with, make_registry, fake_adapter):
    registry = make_registry({A: fake_adapter(A)})

    async with _client(app_with(registry)) as client:
        r = await client.get("/providers/status")

    body = r.json()
    assert body["total_providers"] == 1
    assert body["active_providers"] == 1
    assert body["providers"][0]["key"] == "showcase_idx"


@pytest.mark.asyncio
async def test_demo_listings_endpoint(app_with, make_registry):
    async with _client(app_with(make_registry({}))) as client:
        r = await client.get("/properties/demo")

    assert r.status_code == 200
    assert len(r.json()) == 5


@pytest.mark.asyncio
async def test_api_key_guard(app_with, make_registry, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "secret")
    app = app_with(make_registry({}))

    async with _client(app) as client:
        denied = await client.get("/search-settings")
        allowed = await client.get("/search-settings", headers={"X-API-Key": "secret"})
        health = await client.get("/health")

    assert denied.status_code == 401
    assert allowed.status_code == 200
    assert health.status_code == 200


@pytest.mark.asyncio
async def test_debug_config_hides_api_key(app_with, make_registry, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "top-secret-key")
    app = app_with(make_registry({}))

    async with _client(app) as client:
        r = await client.get("/debug/config", headers={"X-API-Key": "top-secret-key"})

    assert r.status_code == 200
    assert r.json()["API_KEY_SET"] is True
    assert "top-secret-key" not in r.text
