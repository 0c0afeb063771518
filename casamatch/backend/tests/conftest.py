# tests/conftest.py
import asyncio

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.adapters.repos.settings_store import ProviderSettingsRecord, SqlAlchemySettingsStore
from app.domain.types import (
    Address,
    CanonicalListing,
    ConnectionTestResult,
    ListingDetails,
    ListingStatus,
    ProviderKey,
    ProviderSearchResponse,
    SearchSettings,
    listing_id,
)
from app.models import Base
from app.service_layer.provider_registry import ProviderContext, ProviderRegistry, ProviderSpec


@pytest.fixture
async def engine():
    """
    Fresh in-memory DB per test. StaticPool makes all connections share the same
    in-memory database for the lifetime of this engine fixture.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def async_session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=True)


@pytest.fixture
def settings_store(async_session_maker):
    return SqlAlchemySettingsStore(async_session_maker)


def _listing(
    provider: ProviderKey,
    external_id: str,
    price: float,
    list_date: str = "2024-01-01T00:00:00+00:00",
    *,
    id: str | None = None,
) -> CanonicalListing:
    return CanonicalListing(
        id=id or listing_id(provider, external_id),
        source_provider=provider,
        external_id=external_id,
        title=f"Listing {external_id}",
        description="",
        price=float(price),
        status=ListingStatus.active,
        address=Address(street="1 Main St", city="Miami", state="FL", zip_code="33101"),
        details=ListingDetails(),
        list_date=list_date,
        modified_date=list_date,
    )


@pytest.fixture
def make_listing():
    return _listing


class FakeAdapter:
    """Scripted adapter: returns listings, a failure, raises, or stalls."""

    def __init__(self, key, *, properties=(), total=None, error=None, raises=None, delay=0.0):
        self.key = key
        self.properties = list(properties)
        self.total = total
        self.error = error
        self.raises = raises
        self.delay = delay
        self.calls = []

    async def search_normalized(self, params):
        self.calls.append(params)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises is not None:
            raise self.raises
        if self.error is not None:
            return ProviderSearchResponse.failure(self.key, params, self.error)
        return ProviderSearchResponse(
            success=True,
            properties=list(self.properties),
            total=len(self.properties) if self.total is None else self.total,
            limit=params.page_limit,
            offset=params.page_offset,
            provider=self.key,
        )

    async def test_connection(self):
        if self.raises is not None:
            raise self.raises
        if self.error is not None:
            return ConnectionTestResult(success=False, message=self.error)
        return ConnectionTestResult(success=True, message="Connected.")


@pytest.fixture
def fake_adapter():
    return FakeAdapter


class FakeSettingsStore:
    def __init__(self, records=(), search_settings=None, raise_on_read=None):
        self.records = list(records)
        self.search_settings = search_settings
        self.raise_on_read = raise_on_read
        self.enabled_reads = 0
        self.settings_reads = 0
        self.synced = {}

    async def get_enabled_provider_settings(self):
        self.enabled_reads += 1
        if self.raise_on_read is not None:
            raise self.raise_on_read
        return [r for r in self.records if r.enabled]

    async def get_all_provider_settings(self):
        return list(self.records)

    async def get_search_settings(self):
        self.settings_reads += 1
        if self.raise_on_read is not None:
            raise self.raise_on_read
        return self.search_settings

    async def write_search_settings(self, values, *, updated_by=None):
        self.search_settings = values
        return values

    async def record_sync(self, provider_key, *, status, message, at):
        self.synced[provider_key] = (status, message)


@pytest.fixture
def fake_store():
    return FakeSettingsStore


@pytest.fixture
def make_registry():
    """
    Registry over scripted adapters. Every adapter gets an enabled settings
    row in the given order; `disabled` keys get a disabled row instead.
    """

    def _make(adapters, *, disabled=(), search_settings: SearchSettings | None = None, store=None):
        specs = {
            key: ProviderSpec(
                key=key,
                name=key.value,
                base_url="fake",
                supported_regions=("US",),
                requires_credentials=False,
                parse_config=lambda creds: object(),
                build=lambda cfg, ctx, a=adapter: a,
            )
            for key, adapter in adapters.items()
        }
        if store is None:
            store = FakeSettingsStore(
                [
                    ProviderSettingsRecord(provider_key=key.value, enabled=key not in disabled, priority=i)
                    for i, key in enumerate(adapters)
                ],
                search_settings=search_settings,
            )
        return ProviderRegistry(store, context=ProviderContext(), specs=specs)

    return _make
