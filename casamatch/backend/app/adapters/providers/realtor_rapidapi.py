# app/adapters/providers/realtor_rapidapi.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ...config import settings
from ...domain.locations import parse_location
from ...domain.parsing import get_nested, to_float, to_int
from ...domain.property_types import english_label
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
from .base import ADAPTER_ERRORS, ProviderCredentials, now_iso

log = logging.getLogger(__name__)

_STATUS_MAP: dict[str, ListingStatus] = {
    "for_sale": ListingStatus.active,
    "ready_to_build": ListingStatus.active,
    "pending": ListingStatus.pending,
    "sold": ListingStatus.sold,
    "off_market": ListingStatus.off_market,
}

_TYPE_MAP = {
    "house": "single_family",
    "single_family": "single_family",
    "condo": "condo",
    "condos": "condo",
    "townhouse": "townhomes",
    "townhomes": "townhomes",
    "apartment": "apartment",
    "multi_family": "multi_family",
    "land": "land",
    "commercial": "commercial",
    "mobile": "mobile",
    "coop": "coop",
}

_SORT_FIELDS = {"price": "list_price", "square_feet": "sqft", "list_date": "list_date"}

_FLAG_FEATURES = (
    ("is_new_listing", "New Listing"),
    ("is_new_construction", "New Construction"),
    ("is_foreclosure", "Foreclosure"),
    ("is_price_reduced", "Price Reduced"),
)


@dataclass(frozen=True)
class RealtorRapidApiConfig:
    rapidapi_key: str
    host: str | None = None

    @classmethod
    def from_credentials(cls, creds: ProviderCredentials) -> "RealtorRapidApiConfig | None":
        key = creds.api_key or creds.extra("rapidapi_key")
        if not key:
            return None
        return cls(rapidapi_key=key)


def _range(lo: float | None, hi: float | None) -> dict[str, float] | None:
    out: dict[str, float] = {}
    if lo:
        out["min"] = lo
    if hi:
        out["max"] = hi
    return out or None


class RealtorRapidApiProvider:
    """
    Realtor.com data via RapidAPI: POST /property_list/ with a JSON query body.
    """

    key = ProviderKey.realtor_rapidapi
    label = "Realtor"

    def __init__(self, config: RealtorRapidApiConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.api_key = config.rapidapi_key
        self.host = config.host or settings.REALTOR_RAPIDAPI_HOST
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "accept": "application/json",
            "x-rapidapi-host": self.host,
            "x-rapidapi-key": self.api_key,
        }

    async def _post(self, path: str, body: dict[str, Any]) -> Any:
        resp = await resilient_request(
            "POST", f"https://{self.host}{path}", headers=self._headers(), json=body, transport=self._transport
        )
        return resp.json()

    def build_body(self, params: CanonicalSearchParams, *, for_rent: bool = False) -> dict[str, Any]:
        loc = parse_location(city=params.city, state=params.state)

        query: dict[str, Any] = {"status": ["for_rent" if for_rent else "for_sale"]}
        if loc.state_code:
            query["state_code"] = loc.state_code
        if loc.city:
            query["city"] = loc.city
        if loc.postal_code:
            query["postal_code"] = loc.postal_code
        if params.zip_code:
            query["postal_code"] = params.zip_code

        price = _range(params.min_price, params.max_price)
        if price:
            query["list_price"] = price
        if params.bedrooms:
            query["beds"] = {"min": params.bedrooms}
        if params.bathrooms:
            query["baths"] = {"min": params.bathrooms}

        if for_rent:
            sort = {"direction": "desc", "field": "list_date"}
        else:
            sqft = _range(params.min_square_feet, params.max_square_feet)
            if sqft:
                query["sqft"] = sqft
            if params.property_type:
                pt = params.property_type.lower()
                query["type"] = [_TYPE_MAP.get(pt, pt)]
            sort = {
                "direction": "asc" if params.sort_order == "asc" else "desc",
                "field": _SORT_FIELDS[params.sort_by or "list_date"],
            }

        return {"query": query, "limit": params.page_limit, "offset": params.page_offset, "sort": sort}

    async def _search(self, params: CanonicalSearchParams, *, for_rent: bool) -> ProviderSearchResponse:
        body = self.build_body(params, for_rent=for_rent)
        try:
            data = await self._post("/property_list/", body)
            if not isinstance(data, dict):
                raise ValueError("Realtor returned an unexpected payload")
            rows = get_nested(data, "data.home_search.properties") or []
            properties = [self.transform_to_normalized(r) for r in rows if isinstance(r, dict)]
        except ADAPTER_ERRORS as e:
            msg = describe_http_error(self.label, e)
            log.warning("realtor_rapidapi search failed: %s", msg)
            return ProviderSearchResponse.failure(self.key, params, msg)

        return ProviderSearchResponse(
            success=True,
            properties=properties,
            total=to_int(get_nested(data, "data.home_search.total")) or len(properties),
            limit=body["limit"],
            offset=body["offset"],
            provider=self.key,
        )

    async def search_for_sale(self, params: CanonicalSearchParams) -> ProviderSearchResponse:
        return await self._search(params, for_rent=False)

    async def search_for_rent(self, params: CanonicalSearchParams) -> ProviderSearchResponse:
        return await self._search(params, for_rent=True)

    async def search_normalized(self, params: CanonicalSearchParams) -> ProviderSearchResponse:
        if params.listing_type == "rent":
            return await self.search_for_rent(params)
        return await self.search_for_sale(params)

    async def test_connection(self) -> ConnectionTestResult:
        body = {"query": {"status": ["for_sale"], "postal_code": "10022"}, "limit": 1, "offset": 0}
        try:
            data = await self._post("/property_list/", body)
        except ADAPTER_ERRORS as e:
            return ConnectionTestResult(success=False, message=describe_http_error(self.label, e))

        if isinstance(data, dict) and get_nested(data, "data.home_search.properties") is not None:
            total = to_int(get_nested(data, "data.home_search.total")) or 0
            return ConnectionTestResult(success=True, message=f"Connected to Realtor.com API. {total} listings found.")
        return ConnectionTestResult(success=True, message="Connected (no sample results)")

    def transform_to_normalized(self, raw: dict[str, Any]) -> CanonicalListing:
        addr = get_nested(raw, "location.address") or {}
        desc = raw.get("description") or {}
        flags = raw.get("flags") or {}
        branding = [b for b in (raw.get("branding") or []) if isinstance(b, dict)]

        images: list[str] = []
        primary = get_nested(raw, "primary_photo.href")
        if primary:
            images.append(str(primary))
        for photo in raw.get("photos") or []:
            href = photo.get("href") if isinstance(photo, dict) else None
            if href and href not in images:
                images.append(str(href))

        features = [label for flag, label in _FLAG_FEATURES if flags.get(flag)]
        if raw.get("matterport"):
            features.append("Matterport Tour")

        tours = [t for t in (raw.get("virtual_tours") or []) if isinstance(t, dict)]
        virtual_tour_url = tours[0].get("href") if tours else None

        agent: Agent | None = None
        advertisers = [a for a in (raw.get("advertisers") or []) if isinstance(a, dict)]
        if advertisers:
            adv = next((a for a in advertisers if a.get("type") == "seller"), advertisers[0])
            if adv.get("name"):
                agent = Agent(name=str(adv["name"]), company=(branding[0].get("name") if branding else None) or None)
        elif branding and branding[0].get("name"):
            agent = Agent(name=str(branding[0]["name"]), company=str(branding[0]["name"]))

        if desc.get("baths_consolidated"):
            bathrooms = to_float(desc.get("baths_consolidated")) or 0.0
        else:
            bathrooms = (to_float(desc.get("baths_full")) or 0.0) + (to_float(desc.get("baths_half")) or 0.0) * 0.5

        status = _STATUS_MAP.get(str(raw.get("status") or ""))
        if status is None:
            status = ListingStatus.pending if flags.get("is_pending") else ListingStatus.active

        raw_type = str(desc.get("type") or desc.get("sub_type") or "unknown")
        city = str(addr.get("city") or "Unknown City")
        state_code = str(addr.get("state_code") or "")
        type_label = english_label(raw_type)

        lat = to_float(get_nested(addr, "coordinate.lat"))
        lon = to_float(get_nested(addr, "coordinate.lon"))

        external_id = str(raw.get("property_id") or "")
        list_date = str(raw.get("list_date") or now_iso())

        return CanonicalListing(
            id=listing_id(self.key, external_id),
            source_provider=self.key,
            external_id=external_id,
            mls_number=raw.get("listing_id") or get_nested(raw, "source.listing_id") or None,
            title=f"{type_label} in {city}",
            description=str(
                get_nested(raw, "community.description.name")
                or f"{type_label} property available in {city}, {state_code}".rstrip(", ")
            ),
            price=to_float(raw.get("list_price")) or 0.0,
            status=status,
            address=Address(
                street=str(addr.get("line") or "Address not available"),
                city=city,
                state=state_code or str(addr.get("state") or ""),
                zip_code=str(addr.get("postal_code") or ""),
                country="US",
            ),
            coordinates=Coordinates(latitude=lat, longitude=lon) if lat and lon else None,
            details=ListingDetails(
                property_type=raw_type.lower().replace("_", " "),
                bedrooms=to_int(desc.get("beds")) or to_int(desc.get("beds_min")) or 0,
                bathrooms=bathrooms,
                square_feet=to_int(desc.get("sqft")) or to_int(desc.get("sqft_min")) or 0,
                lot_size=to_float(desc.get("lot_sqft")),
                year_built=to_int(desc.get("year_built")),
            ),
            features=features,
            amenities=[],
            images=images,
            virtual_tour_url=virtual_tour_url or None,
            agent=agent,
            list_date=list_date,
            modified_date=list_date,
        )
