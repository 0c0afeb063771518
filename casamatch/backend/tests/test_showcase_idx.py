# tests/test_showcase_idx.py
import httpx
import pytest

from app.adapters.providers.base import ProviderCredentials
from app.adapters.providers.showcase_idx import (
    ShowcaseIdxConfig,
    ShowcaseIdxProvider,
    get_demo_listings,
    showcase_to_listing,
)
from app.domain.types import CanonicalSearchParams, ListingStatus, ProviderKey

RAW = {
    "listingId": "L-100",
    "mlsNumber": "MLS-9",
    "price": 425000,
    "status": "Pending",
    "description": "Ocean view",
    "listDate": "2024-03-01T12:00:00Z",
    "address": {"streetAddress": "12 Calle Sol", "city": "Dorado", "state": "PR", "zipCode": "00646"},
    "details": {"propertyType": "Condo", "bedrooms": "3", "bathrooms": 2.5, "squareFeet": 1800},
    "coordinates": {"latitude": 18.47, "longitude": -66.27},
    "photos": [{"url": "https://img/1.jpg"}, {"caption": "no url"}],
    "agent": {"name": "Ana", "email": "ana@example.com"},
}


def _provider(handler) -> ShowcaseIdxProvider:
    return ShowcaseIdxProvider(ShowcaseIdxConfig(api_key="key-123"), transport=httpx.MockTransport(handler))


def test_config_requires_api_key():
    assert ShowcaseIdxConfig.from_credentials(ProviderCredentials()) is None
    assert ShowcaseIdxConfig.from_credentials(ProviderCredentials(api_key="k")).api_key == "k"


def test_build_query_skips_empty_filters():
    q = ShowcaseIdxProvider.build_query(
        CanonicalSearchParams(city="Dorado", min_price=0, bedrooms=2, sort_by="price", sort_order="asc", limit=20)
    )
    assert q == {"city": "Dorado", "bedrooms": 2, "limit": 20, "sortBy": "price", "sortOrder": "asc"}


@pytest.mark.asyncio
async def test_search_normalized_success():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers["authorization"]
        seen["city"] = request.url.params.get("city")
        return httpx.Response(200, json={"listings": [RAW], "total": 31, "limit": 20, "offset": 0})

    resp = await _provider(handler).search_normalized(CanonicalSearchParams(city="Dorado", limit=20))

    assert seen == {"path": "/v2/listings", "auth": "Bearer key-123", "city": "Dorado"}
    assert resp.success is True
    assert resp.total == 31
    assert resp.provider == ProviderKey.showcase_idx
    assert [p.id for p in resp.properties] == ["showcase_idx-L-100"]


@pytest.mark.asyncio
async def test_http_error_becomes_failure_response():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="bad key")

    resp = await _provider(handler).search_normalized(CanonicalSearchParams(limit=7, offset=14))

    assert resp.success is False
    assert resp.properties == []
    assert resp.total == 0
    assert (resp.limit, resp.offset) == (7, 14)
    assert resp.error == "Showcase IDX API error: 401 - bad key"


@pytest.mark.asyncio
async def test_malformed_payload_becomes_failure_response():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"listings": "nope"})

    resp = await _provider(handler).search_normalized(CanonicalSearchParams())

    assert resp.success is False
    assert "unexpected payload" in resp.error


@pytest.mark.asyncio
async def test_connection_failure_message():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    result = await _provider(handler).test_connection()

    assert result.success is False
    assert result.message.startswith("Showcase IDX error:")


@pytest.mark.asyncio
async def test_get_listing_returns_none_on_404():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "not found"})

    assert await _provider(handler).get_listing("missing") is None


def test_transform_maps_fields():
    p = showcase_to_listing(RAW)

    assert p.external_id == "L-100"
    assert p.mls_number == "MLS-9"
    assert p.title == "Condo en Dorado"
    assert p.price == 425000.0
    assert p.status == ListingStatus.pending
    assert p.details.bedrooms == 3
    assert p.details.bathrooms == 2.5
    assert p.details.property_type == "condo"
    assert p.images == ["https://img/1.jpg"]
    assert p.agent.name == "Ana"
    assert p.modified_date == p.list_date == "2024-03-01T12:00:00Z"


def test_transform_is_total_on_empty_record():
    p = showcase_to_listing({})

    assert p.price == 0.0
    assert p.details.bedrooms == 0
    assert p.details.bathrooms == 0.0
    assert p.details.square_feet == 0
    assert p.status == ListingStatus.active
    assert p.coordinates is None
    assert p.agent is None
    assert p.title == "Propiedad en"
    assert p.list_date


def test_demo_listings_are_normalized():
    listings = get_demo_listings()

    assert len(listings) == 5
    assert all(p.source_provider == ProviderKey.showcase_idx for p in listings)
    assert all(p.price > 0 for p in listings)
    assert len({p.id for p in listings}) == 5


@pytest.mark.asyncio
async def test_featured_listings_ask_for_newest_active():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.url.params)
        return httpx.Response(200, json={"listings": [RAW], "total": 1})

    resp = await _provider(handler).get_featured_listings(limit=3)

    assert resp.success is True
    assert seen == {"status": "active", "limit": "3", "sortBy": "listDate", "sortOrder": "desc"}


@pytest.mark.asyncio
async def test_non_finite_numbers_fall_back_to_defaults():
    raw = dict(RAW, price=1e400, details={"bedrooms": 1e400, "bathrooms": "Infinity", "squareFeet": "-inf"})

    def handler(request: httpx.Request) -> httpx.Response:
        # 1e400 exactly as it arrives on the wire
        body = '{"listings": [{"listingId": "L-1", "price": 1e400, "details": {"bedrooms": 1e400}}], "total": 1e400}'
        return httpx.Response(200, content=body.encode(), headers={"content-type": "application/json"})

    resp = await _provider(handler).search_normalized(CanonicalSearchParams())

    assert resp.success is True
    assert resp.total == 1
    p = resp.properties[0]
    assert p.price == 0.0
    assert p.details.bedrooms == 0

    direct = showcase_to_listing(raw)
    assert direct.price == 0.0
    assert direct.details.bedrooms == 0
    assert direct.details.bathrooms == 0.0
    assert direct.details.square_feet == 0
