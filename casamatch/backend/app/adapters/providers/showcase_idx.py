# app/adapters/providers/showcase_idx.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx

from ...config import settings
from ...domain.parsing import get_first, str_list, to_float, to_int
from ...domain.types import (
    Address,
    Agent,
    CanonicalListing,
    CanonicalSearchParams,
    ConnectionTestResult,
    Coordinates,
    ListingDetails,
    ListingStatus,
    ProviderKey,
    ProviderSearchResponse,
    listing_id,
)
from ..clients.http_resilience import describe_http_error, resilient_request
from .base import ADAPTER_ERRORS, ProviderCredentials, map_status, now_iso

log = logging.getLogger(__name__)

_STATUS_MAP: dict[str, ListingStatus] = {
    "active": ListingStatus.active,
    "pending": ListingStatus.pending,
    "sold": ListingStatus.sold,
    "off_market": ListingStatus.off_market,
}

# Showcase has no square-footage sort
_SORT_FIELDS = {"price": "price", "list_date": "listDate", "square_feet": "listDate"}


@dataclass(frozen=True)
class ShowcaseIdxConfig:
    api_key: str
    base_url: str | None = None

    @classmethod
    def from_credentials(cls, creds: ProviderCredentials) -> "ShowcaseIdxConfig | None":
        if not creds.api_key:
            return None
        return cls(api_key=creds.api_key)


class ShowcaseIdxProvider:
    """
    Showcase IDX REST listings API. Bearer auth, plain query-string filters.
    """

    key = ProviderKey.showcase_idx
    label = "Showcase IDX"

    def __init__(self, config: ShowcaseIdxConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.api_key = config.api_key
        self.base_url = (config.base_url or settings.SHOWCASE_IDX_BASE_URL).rstrip("/")
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {"accept": "application/json", "authorization": f"Bearer {self.api_key}"}

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        resp = await resilient_request(
            "GET", f"{self.base_url}{path}", headers=self._headers(), params=params, transport=self._transport
        )
        return resp.json()

    @staticmethod
    def build_query(params: CanonicalSearchParams) -> dict[str, Any]:
        q: dict[str, Any] = {}
        # upstream treats zero the same as "not set"
        for name, value in (
            ("city", params.city),
            ("state", params.state),
            ("minPrice", params.min_price),
            ("maxPrice", params.max_price),
            ("propertyType", params.property_type),
            ("bedrooms", params.bedrooms),
            ("bathrooms", params.bathrooms),
            ("status", params.status),
            ("limit", params.limit),
            ("offset", params.offset),
        ):
            if value:
                q[name] = value
        if params.sort_by:
            q["sortBy"] = _SORT_FIELDS[params.sort_by]
        if params.sort_order:
            q["sortOrder"] = params.sort_order
        return q

    async def search_listings(self, params: CanonicalSearchParams) -> dict[str, Any]:
        data = await self._get("/listings", params=self.build_query(params))
        if not isinstance(data, dict) or not isinstance(data.get("listings"), list):
            raise ValueError("Showcase IDX returned an unexpected payload")
        return data

    async def search_normalized(self, params: CanonicalSearchParams) -> ProviderSearchResponse:
        try:
            data = await self.search_listings(params)
            rows = [r for r in data["listings"] if isinstance(r, dict)]
            properties = [self.transform_to_normalized(r) for r in rows]
        except ADAPTER_ERRORS as e:
            msg = describe_http_error(self.label, e)
            log.warning("showcase_idx search failed: %s", msg)
            return ProviderSearchResponse.failure(self.key, params, msg)

        return ProviderSearchResponse(
            success=True,
            properties=properties,
            total=to_int(data.get("total")) or len(properties),
            limit=to_int(data.get("limit")) or params.page_limit,
            offset=to_int(data.get("offset")) or params.page_offset,
            provider=self.key,
        )

    async def get_listing(self, external_id: str) -> CanonicalListing | None:
        try:
            data = await self._get(f"/listings/{external_id}")
            if not isinstance(data, dict):
                return None
            return self.transform_to_normalized(data)
        except ADAPTER_ERRORS as e:
            log.warning("showcase_idx get_listing %s failed: %s", external_id, describe_http_error(self.label, e))
            return None

    async def get_featured_listings(self, limit: int = 10) -> ProviderSearchResponse:
        return await self.search_normalized(
            CanonicalSearchParams(status="active", sort_by="list_date", sort_order="desc", limit=limit)
        )

    async def test_connection(self) -> ConnectionTestResult:
        try:
            data = await self.search_listings(CanonicalSearchParams(limit=1, status="active"))
        except ADAPTER_ERRORS as e:
            return ConnectionTestResult(success=False, message=describe_http_error(self.label, e))
        return ConnectionTestResult(
            success=True,
            message=f"Connected. {to_int(data.get('total')) or 0} listings available.",
        )

    def transform_to_normalized(self, raw: dict[str, Any]) -> CanonicalListing:
        return showcase_to_listing(raw)


def showcase_to_listing(raw: dict[str, Any]) -> CanonicalListing:
    addr = raw.get("address") or {}
    details = raw.get("details") or {}
    agent = raw.get("agent") or {}
    coords = raw.get("coordinates") or {}

    external_id = str(get_first(raw, "listingId", "mlsNumber") or "")
    city = str(addr.get("city") or "")
    raw_type = str(details.get("propertyType") or "")

    lat = to_float(coords.get("latitude"))
    lon = to_float(coords.get("longitude"))

    photos = raw.get("photos") or []
    images = [str(p["url"]) for p in photos if isinstance(p, dict) and p.get("url")]

    list_date = str(raw.get("listDate") or now_iso())

    return CanonicalListing(
        id=listing_id(ProviderKey.showcase_idx, external_id),
        source_provider=ProviderKey.showcase_idx,
        external_id=external_id,
        mls_number=raw.get("mlsNumber") or None,
        title=f"{raw_type or 'Propiedad'} en {city}".strip(),
        description=str(raw.get("description") or ""),
        price=to_float(raw.get("price")) or 0.0,
        status=map_status(raw.get("status"), _STATUS_MAP),
        address=Address(
            street=str(addr.get("streetAddress") or ""),
            city=city,
            state=str(addr.get("state") or ""),
            zip_code=str(addr.get("zipCode") or ""),
            country=str(addr.get("country") or "US"),
        ),
        coordinates=Coordinates(latitude=lat, longitude=lon) if lat is not None and lon is not None else None,
        details=ListingDetails(
            property_type=raw_type.lower() or "unknown",
            bedrooms=to_int(details.get("bedrooms")) or 0,
            bathrooms=to_float(details.get("bathrooms")) or 0.0,
            square_feet=to_int(details.get("squareFeet")) or 0,
            lot_size=to_float(details.get("lotSize")),
            year_built=to_int(details.get("yearBuilt")),
        ),
        features=str_list(raw.get("features")),
        amenities=str_list(raw.get("amenities")),
        images=images,
        virtual_tour_url=raw.get("virtualTour") or None,
        video_url=raw.get("video") or None,
        agent=Agent(
            name=str(agent["name"]),
            email=agent.get("email") or None,
            phone=agent.get("phone") or None,
            company=agent.get("company") or None,
        )
        if agent.get("name")
        else None,
        list_date=list_date,
        modified_date=str(raw.get("modifiedDate") or list_date),
    )


def get_demo_listings(path: str | None = None) -> list[CanonicalListing]:
    """
    Showcase-format fixture normalized like live results. Used when no
    provider is configured (local dev, demos).
    """
    p = Path(path or settings.DEMO_LISTINGS_PATH)
    if not p.is_absolute() and not p.exists():
        # relative to casamatch/backend when run from elsewhere
        p = Path(__file__).resolve().parents[3] / p
    rows = json.loads(p.read_text(encoding="utf-8"))
    return [showcase_to_listing(r) for r in rows if isinstance(r, dict)]
