# tests/test_xposure.py
import pytest

from app.adapters.providers.xposure import XposureConfig, XposureProvider, transform_xposure_payload
from app.adapters.repos.local_listings import LocalListingRepository
from app.domain.types import CanonicalSearchParams, ListingStatus, ProviderKey

SALE = {
    "id": 5501,
    "title": "Casa en Venta",
    "price_current": "USD $325,000.00",
    "district": "Mayag&uuml;ez",
    "map_area": "El Se&ntilde;orial",
    "subdivision": "Urbanizacion Sultana",
    "property_icon": "icon-house-blue",
    "address": "Calle 3 #12",
    "bedrooms": "3",
    "bathrooms": "2",
    "sqft_total": "1,450",
    "parking_spaces": 2,
    "thumbnailPhotoURL": "https://x/photo.jpg?id=1&thumbnail",
    "lat": "18.2",
    "lng": "-67.1",
    "status": "Activo",
}

RENT = {
    "id": 7702,
    "title": "Apartamento en Alquiler",
    "price_current_rent": "USD $2,300.00",
    "district": "San Juan",
    "property_icon": "icon-apartment",
    "bedrooms": 2,
    "bathrooms": 1,
    "status": "Alquilado",
}


def test_transform_sale_payload():
    row = transform_xposure_payload(SALE, 0)

    assert row["mls_id"] == "5501"
    assert row["idx_source"] == "xposure"
    assert row["price"] == 325000.0
    assert row["listing_type"] == "sale"
    assert row["city"] == "Mayagüez"
    assert row["neighborhood"] == "El Señorial"
    assert row["property_type"] == "house"
    assert row["title"] == "Casa en Venta - Mayagüez"
    assert row["square_feet"] == 1450
    assert row["images"] == ["https://x/photo.jpg?id=1", "https://x/photo.jpg?id=1&thumbnail"]
    assert row["amenities"] == ["Urbanización"]
    assert "2 estacionamiento(s)" in row["features"]
    assert row["status"] == "active"
    assert row["featured"] is True


def test_transform_rent_payload():
    row = transform_xposure_payload(RENT, 42)

    assert row["listing_type"] == "rent"
    assert row["price"] == 2300.0
    assert row["title"] == "Apartamento en Alquiler - San Juan"
    assert row["status"] == "sold"
    assert row["featured"] is False
    assert row["address"] == "Dirección no disponible"


async def _import(session_maker, *items):
    async with session_maker() as session:
        repo = LocalListingRepository(session)
        for i, item in enumerate(items):
            await repo.upsert_from_payload(transform_xposure_payload(item, i))
        await session.commit()


@pytest.mark.asyncio
async def test_upsert_is_idempotent(async_session_maker):
    await _import(async_session_maker, SALE)
    changed = dict(SALE, price_current="USD $300,000.00")

    async with async_session_maker() as session:
        row, created = await LocalListingRepository(session).upsert_from_payload(transform_xposure_payload(changed, 0))
        await session.commit()
        assert created is False
        assert row.price == 300000.0
        assert await LocalListingRepository(session).count("xposure") == 1


@pytest.mark.asyncio
async def test_search_matches_city_without_accents(async_session_maker):
    await _import(async_session_maker, SALE, RENT)
    provider = XposureProvider(XposureConfig(), session_maker=async_session_maker)

    resp = await provider.search_normalized(CanonicalSearchParams(city="Mayaguez"))

    assert resp.success is True
    assert resp.total == 1
    p = resp.properties[0]
    assert p.id == "xposure-5501"
    assert p.source_provider == ProviderKey.xposure
    assert p.address.country == "PR"
    assert p.status == ListingStatus.active
    assert p.details.bathrooms == 2.0


@pytest.mark.asyncio
async def test_search_filters_listing_type(async_session_maker):
    await _import(async_session_maker, SALE, RENT)
    provider = XposureProvider(XposureConfig(), session_maker=async_session_maker)

    resp = await provider.search_normalized(CanonicalSearchParams(state="PR", listing_type="rent"))

    assert [p.external_id for p in resp.properties] == ["7702"]


@pytest.mark.asyncio
async def test_non_puerto_rico_search_is_empty_success(async_session_maker):
    await _import(async_session_maker, SALE)
    provider = XposureProvider(XposureConfig(), session_maker=async_session_maker)

    resp = await provider.search_normalized(CanonicalSearchParams(city="Miami", state="FL", limit=10))

    assert resp.success is True
    assert resp.properties == []
    assert resp.total == 0
    assert resp.limit == 10


@pytest.mark.asyncio
async def test_connection_counts_rows(async_session_maker):
    await _import(async_session_maker, SALE, RENT)
    provider = XposureProvider(XposureConfig(), session_maker=async_session_maker)

    result = await provider.test_connection()

    assert result.success is True
    assert "2" in result.message


@pytest.mark.asyncio
async def test_search_by_spelled_out_puerto_rico_state(async_session_maker):
    await _import(async_session_maker, SALE)
    provider = XposureProvider(XposureConfig(), session_maker=async_session_maker)

    by_code = await provider.search_normalized(CanonicalSearchParams(state="PR"))
    by_name = await provider.search_normalized(CanonicalSearchParams(state="Puerto Rico"))

    assert by_code.total == 1
    assert [p.id for p in by_name.properties] == [p.id for p in by_code.properties] == ["xposure-5501"]
