# app/adapters/providers/zillow_bridge.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from ...config import settings
from ...domain.parsing import str_list, to_float, to_int
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
from ..clients.http_resilience import describe_http_error, redact_url, resilient_request
from .base import ADAPTER_ERRORS, ProviderCredentials, map_status, now_iso

log = logging.getLogger(__name__)

_STATUS_MAP: dict[str, ListingStatus] = {
    "Active": ListingStatus.active,
    "Pending": ListingStatus.pending,
    "Closed": ListingStatus.sold,
    "Withdrawn": ListingStatus.off_market,
    "Expired": ListingStatus.off_market,
    "Canceled": ListingStatus.off_market,
}

_MLS_STATUS_FILTER = {"active": "Active", "pending": "Pending", "sold": "Closed"}

# Shared property types -> OData predicates (Stellar-style subtypes)
_TYPE_FILTERS = {
    "house": "PropertySubType eq 'Single Family Residence'",
    "single_family": "PropertySubType eq 'Single Family Residence'",
    "condo": "PropertySubType eq 'Condominium'",
    "townhouse": "PropertySubType eq 'Townhouse'",
    "multi_family": "PropertySubType eq 'Multi Family'",
    "apartment": "PropertySubType eq 'Condominium'",
    "land": "PropertyType eq 'Land'",
    "commercial": "contains(tolower(PropertyType), 'commercial')",
}

_SORT_FIELDS = {"price": "ListPrice", "list_date": "OriginalEntryTimestamp", "square_feet": "LivingArea"}


@dataclass(frozen=True)
class ZillowBridgeConfig:
    access_token: str
    server_token: str
    dataset: str
    default_state: str | None = None
    default_mls_status: str | None = None
    base_url: str | None = None

    @classmethod
    def from_credentials(cls, creds: ProviderCredentials) -> "ZillowBridgeConfig | None":
        server_token = creds.api_secret or creds.extra("server_token")
        dataset = creds.extra("dataset")
        if not creds.api_key or not server_token or not dataset:
            return None
        return cls(
            access_token=creds.api_key,
            server_token=server_token,
            dataset=dataset,
            default_state=creds.extra("default_state"),
            default_mls_status=creds.extra("default_mls_status"),
        )


def _odata_str(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _num(value: float) -> str:
    f = float(value)
    return str(int(f)) if f.is_integer() else str(f)


def _enc(value: str) -> str:
    # encodeURIComponent semantics; '$' in parameter names is never encoded
    return quote(value, safe="-_.!~*'()")


class ZillowBridgeProvider:
    """
    Bridge Data Output RESO Web API (OData). Access token travels as the
    first query parameter; '$' in OData parameter names must stay literal.
    """

    key = ProviderKey.zillow_bridge
    label = "Bridge"

    def __init__(self, config: ZillowBridgeConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.config = config
        self.base_url = (config.base_url or settings.ZILLOW_BRIDGE_BASE_URL).rstrip("/")
        self._transport = transport

    def _url(self, path: str, query: str | None = None) -> str:
        token = f"access_token={self.config.access_token}"
        if query:
            return f"{self.base_url}{path}?{token}&{query}"
        return f"{self.base_url}{path}?{token}"

    async def _get(self, path: str, query: str | None = None) -> Any:
        url = self._url(path, query)
        log.debug("bridge GET %s", redact_url(url))
        resp = await resilient_request("GET", url, headers={"accept": "application/json"}, transport=self._transport)
        return resp.json()

    @property
    def _property_path(self) -> str:
        return f"/OData/{self.config.dataset}/Property"

    def build_filters(self, params: CanonicalSearchParams) -> list[str]:
        filters: list[str] = []

        if params.city:
            filters.append(f"contains(tolower(City), {_odata_str(params.city.lower())})")

        state = params.state or self.config.default_state
        if state:
            filters.append(f"StateOrProvince eq {_odata_str(state)}")

        if params.zip_code:
            filters.append(f"PostalCode eq {_odata_str(params.zip_code)}")
        if params.min_price:
            filters.append(f"ListPrice ge {_num(params.min_price)}")
        if params.max_price:
            filters.append(f"ListPrice le {_num(params.max_price)}")
        if params.bedrooms:
            filters.append(f"BedroomsTotal ge {_num(params.bedrooms)}")
        if params.bathrooms:
            filters.append(f"BathroomsTotalInteger ge {_num(params.bathrooms)}")
        if params.min_square_feet:
            filters.append(f"LivingArea ge {_num(params.min_square_feet)}")
        if params.max_square_feet:
            filters.append(f"LivingArea le {_num(params.max_square_feet)}")

        if params.status:
            mls_status = _MLS_STATUS_FILTER.get(params.status, "Active")
        else:
            mls_status = self.config.default_mls_status or "Active"
        filters.append(f"MlsStatus eq {_odata_str(mls_status)}")

        if params.property_type:
            pt = params.property_type.lower()
            filters.append(_TYPE_FILTERS.get(pt, f"contains(tolower(PropertyType), {_odata_str(pt)})"))

        return filters

    def build_query(self, params: CanonicalSearchParams) -> str:
        parts: list[str] = []

        filters = self.build_filters(params)
        if filters:
            parts.append("$filter=" + _enc(" and ".join(filters)))

        if params.sort_by:
            direction = "asc" if params.sort_order == "asc" else "desc"
            parts.append("$orderby=" + _enc(f"{_SORT_FIELDS[params.sort_by]} {direction}"))
        else:
            parts.append("$orderby=" + _enc("ModificationTimestamp desc"))

        parts.append(f"$top={params.page_limit}")
        parts.append(f"$skip={params.page_offset}")
        parts.append("$count=true")
        return "&".join(parts)

    async def search_normalized(self, params: CanonicalSearchParams) -> ProviderSearchResponse:
        try:
            data = await self._get(self._property_path, self.build_query(params))
            rows = data.get("value") if isinstance(data, dict) else None
            if not isinstance(rows, list):
                raise ValueError("Bridge returned an unexpected payload")
            properties = [self.transform_to_normalized(r) for r in rows if isinstance(r, dict)]
        except ADAPTER_ERRORS as e:
            msg = describe_http_error(self.label, e)
            log.warning("zillow_bridge search failed: %s", msg)
            return ProviderSearchResponse.failure(self.key, params, msg)

        return ProviderSearchResponse(
            success=True,
            properties=properties,
            total=to_int(data.get("@odata.count")) or len(properties),
            limit=params.page_limit,
            offset=params.page_offset,
            provider=self.key,
        )

    async def get_listing(self, listing_key: str) -> CanonicalListing | None:
        try:
            data = await self._get(f"{self._property_path}({_odata_str(listing_key)})")
            if not isinstance(data, dict):
                return None
            return self.transform_to_normalized(data)
        except ADAPTER_ERRORS as e:
            log.warning("zillow_bridge get_listing %s failed: %s", listing_key, describe_http_error(self.label, e))
            return None

    async def test_connection(self) -> ConnectionTestResult:
        try:
            data = await self._get(self._property_path, "$top=1")
        except ADAPTER_ERRORS as e:
            return ConnectionTestResult(success=False, message=describe_http_error(self.label, e))

        if isinstance(data, dict) and isinstance(data.get("value"), list):
            return ConnectionTestResult(success=True, message=f"Connected. Dataset: {self.config.dataset}")
        return ConnectionTestResult(success=False, message="Unexpected response from Bridge")

    def transform_to_normalized(self, raw: dict[str, Any]) -> CanonicalListing:
        street_parts = [str(raw[k]) for k in ("StreetNumber", "StreetName", "StreetSuffix") if raw.get(k)]
        street = raw.get("UnparsedAddress") or " ".join(street_parts) or "Address not available"

        features = (
            str_list(raw.get("InteriorFeatures"))
            + str_list(raw.get("ExteriorFeatures"))
            + str_list(raw.get("Appliances"))
        )
        amenities = (
            str_list(raw.get("CommunityFeatures"))
            + str_list(raw.get("PoolFeatures"))
            + str_list(raw.get("ParkingFeatures"))
            + str_list(raw.get("WaterfrontFeatures"))
        )

        media = [
            m
            for m in (raw.get("Media") or [])
            if isinstance(m, dict) and m.get("MediaURL") and m.get("MediaCategory") in (None, "", "Photo")
        ]
        media.sort(key=lambda m: to_float(m.get("Order")) or 0.0)
        images = [str(m["MediaURL"]) for m in media]

        half_aware = (to_float(raw.get("BathroomsFull")) or 0.0) + (to_float(raw.get("BathroomsHalf")) or 0.0) * 0.5
        bathrooms = half_aware or to_float(raw.get("BathroomsTotalInteger")) or 0.0

        lat = to_float(raw.get("Latitude"))
        lon = to_float(raw.get("Longitude"))

        external_id = str(raw.get("ListingKey") or raw.get("ListingId") or "")
        city = str(raw.get("City") or "")
        now = now_iso()

        return CanonicalListing(
            id=listing_id(self.key, external_id),
            source_provider=self.key,
            external_id=external_id,
            mls_number=raw.get("ListingId") or None,
            title=f"{raw.get('PropertyType') or 'Property'} in {city}".strip(),
            description=str(raw.get("PublicRemarks") or "No description available"),
            price=to_float(raw.get("ListPrice")) or 0.0,
            status=map_status(raw.get("MlsStatus") or raw.get("StandardStatus"), _STATUS_MAP),
            address=Address(
                street=str(street),
                city=city,
                state=str(raw.get("StateOrProvince") or ""),
                zip_code=str(raw.get("PostalCode") or ""),
                country=str(raw.get("Country") or "US"),
            ),
            coordinates=Coordinates(latitude=lat, longitude=lon) if lat and lon else None,
            details=ListingDetails(
                property_type=str(raw.get("PropertyType") or "unknown").lower(),
                bedrooms=to_int(raw.get("BedroomsTotal")) or 0,
                bathrooms=bathrooms,
                square_feet=to_int(raw.get("LivingArea")) or 0,
                lot_size=to_float(raw.get("LotSizeSquareFeet")) or None,
                year_built=to_int(raw.get("YearBuilt")) or None,
            ),
            features=features,
            amenities=amenities,
            images=images,
            virtual_tour_url=raw.get("VirtualTourURLUnbranded") or None,
            agent=Agent(
                name=str(raw["ListAgentFullName"]),
                email=raw.get("ListAgentEmail") or None,
                phone=raw.get("ListAgentDirectPhone") or None,
                company=raw.get("ListOfficeName") or None,
            )
            if raw.get("ListAgentFullName")
            else None,
            list_date=str(raw.get("OriginalEntryTimestamp") or now),
            modified_date=str(raw.get("ModificationTimestamp") or now),
        )
