# app/domain/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal


class ProviderKey(str, Enum):
    showcase_idx = "showcase_idx"
    zillow_bridge = "zillow_bridge"
    realtor_rapidapi = "realtor_rapidapi"
    xposure = "xposure"


class ListingStatus(str, Enum):
    active = "active"
    pending = "pending"
    sold = "sold"
    off_market = "off_market"


SortBy = Literal["price", "list_date", "square_feet"]
SortOrder = Literal["asc", "desc"]
ListingType = Literal["sale", "rent"]

DEFAULT_PAGE_SIZE = 20


def listing_id(provider: ProviderKey, external_id: str) -> str:
    """Canonical id; unique across providers within one search."""
    return f"{provider.value}-{external_id}"


@dataclass(frozen=True)
class CanonicalSearchParams:
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    property_type: str | None = None
    bedrooms: int | None = None
    bathrooms: float | None = None
    min_square_feet: int | None = None
    max_square_feet: int | None = None
    status: Literal["active", "pending", "sold"] | None = None
    listing_type: ListingType | None = None
    limit: int | None = None
    offset: int | None = None
    sort_by: SortBy | None = None
    sort_order: SortOrder | None = None

    @property
    def page_limit(self) -> int:
        return self.limit or DEFAULT_PAGE_SIZE

    @property
    def page_offset(self) -> int:
        return self.offset or 0


@dataclass(frozen=True)
class Address:
    street: str
    city: str
    state: str
    zip_code: str
    country: str = "US"


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class ListingDetails:
    property_type: str = "unknown"
    bedrooms: int = 0
    bathrooms: float = 0.0
    square_feet: int = 0
    lot_size: float | None = None
    year_built: int | None = None


@dataclass(frozen=True)
class Agent:
    name: str
    email: str | None = None
    phone: str | None = None
    company: str | None = None


@dataclass(frozen=True)
class CanonicalListing:
    id: str
    source_provider: ProviderKey
    external_id: str
    title: str
    description: str
    price: float
    status: ListingStatus
    address: Address
    details: ListingDetails
    list_date: str
    modified_date: str
    mls_number: str | None = None
    coordinates: Coordinates | None = None
    features: list[str] = field(default_factory=list)
    amenities: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    virtual_tour_url: str | None = None
    video_url: str | None = None
    agent: Agent | None = None


@dataclass(frozen=True)
class ProviderSearchResponse:
    success: bool
    properties: list[CanonicalListing]
    total: int
    limit: int
    offset: int
    provider: ProviderKey
    error: str | None = None

    @classmethod
    def failure(cls, provider: ProviderKey, params: CanonicalSearchParams, error: str) -> "ProviderSearchResponse":
        return cls(
            success=False,
            properties=[],
            total=0,
            limit=params.page_limit,
            offset=params.page_offset,
            provider=provider,
            error=error,
        )


@dataclass(frozen=True)
class ConnectionTestResult:
    success: bool
    message: str


@dataclass(frozen=True)
class SearchSettings:
    max_properties_total: int = 60
    max_properties_per_provider: int | None = None  # None => auto-distribute
    max_properties_for_ai: int = 60
    min_properties_per_provider: int = 5


@dataclass(frozen=True)
class AggregatedResult:
    success: bool
    properties: list[CanonicalListing]
    total_by_provider: dict[str, int]
    errors: dict[str, str]
    providers_queried: list[ProviderKey]
    search_settings: SearchSettings
    # "NO_PROVIDERS" when nothing is configured; None otherwise
    error_code: str | None = None
