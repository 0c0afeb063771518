from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime

from .domain.types import ListingStatus, ProviderKey


class _FromAttrs(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class AddressOut(_FromAttrs):
    street: str
    city: str
    state: str
    zip_code: str
    country: str


class CoordinatesOut(_FromAttrs):
    latitude: float
    longitude: float


class DetailsOut(_FromAttrs):
    property_type: str
    bedrooms: int
    bathrooms: float
    square_feet: int
    lot_size: float | None = None
    year_built: int | None = None


class AgentOut(_FromAttrs):
    name: str
    email: str | None = None
    phone: str | None = None
    company: str | None = None


class ListingOut(_FromAttrs):
    id: str
    source_provider: ProviderKey
    external_id: str
    mls_number: str | None = None
    title: str
    description: str
    price: float
    status: ListingStatus
    address: AddressOut
    coordinates: CoordinatesOut | None = None
    details: DetailsOut
    features: list[str] = []
    amenities: list[str] = []
    images: list[str] = []
    virtual_tour_url: str | None = None
    video_url: str | None = None
    agent: AgentOut | None = None
    list_date: str
    modified_date: str


class SearchSettingsOut(_FromAttrs):
    max_properties_total: int = Field(..., ge=1)
    max_properties_per_provider: int | None = None
    max_properties_for_ai: int = Field(..., ge=1)
    min_properties_per_provider: int = Field(..., ge=1)


class AggregatedResultOut(_FromAttrs):
    success: bool
    properties: list[ListingOut]
    total_by_provider: dict[str, int]
    errors: dict[str, str]
    providers_queried: list[ProviderKey]
    search_settings: SearchSettingsOut
    error_code: str | None = None


class ProviderStatusItem(BaseModel):
    key: str
    name: str
    enabled: bool
    configured: bool
    requires_credentials: bool
    api_key_masked: str | None = None
    priority: int | None = None
    supported_regions: list[str]
    last_sync_at: datetime | None = None
    last_sync_status: str | None = None


class ProviderStatusOut(BaseModel):
    total_providers: int = Field(..., ge=0)
    active_providers: int = Field(..., ge=0)
    providers: list[ProviderStatusItem]
