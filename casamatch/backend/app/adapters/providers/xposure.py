# app/adapters/providers/xposure.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...domain.locations import is_puerto_rico_location
from ...domain.parsing import decode_html, to_float, to_int, to_number
from ...domain.property_types import property_type_from_icon, spanish_label
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
from ...models import LocalListing
from ..repos.local_listings import LocalListingRepository, decode_list
from .base import ADAPTER_ERRORS, ProviderCredentials, map_status

log = logging.getLogger(__name__)

IDX_SOURCE = "xposure"

_STATUS_MAP: dict[str, ListingStatus] = {
    "active": ListingStatus.active,
    "activo": ListingStatus.active,
    "pending": ListingStatus.pending,
    "pendiente": ListingStatus.pending,
    "sold": ListingStatus.sold,
    "vendido": ListingStatus.sold,
    "off_market": ListingStatus.off_market,
}

# Import-side status vocabulary; rented counts as closed
_IMPORT_STATUS = {
    "activo": "active",
    "active": "active",
    "pendiente": "pending",
    "pending": "pending",
    "vendido": "sold",
    "sold": "sold",
    "alquilado": "sold",
    "rented": "sold",
}

FEATURED_IMPORT_COUNT = 10


@dataclass(frozen=True)
class XposureConfig:
    """Local data; nothing to configure."""

    @classmethod
    def from_credentials(cls, creds: ProviderCredentials) -> "XposureConfig":
        return cls()


class XposureProvider:
    """
    Puerto Rico MLS listings imported into the local `properties` table.
    Only answers Puerto Rico searches (or searches with no location at all).
    """

    key = ProviderKey.xposure
    label = "Xposure"

    def __init__(self, config: XposureConfig, *, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.config = config
        self._session_maker = session_maker

    async def search_normalized(self, params: CanonicalSearchParams) -> ProviderSearchResponse:
        if not is_puerto_rico_location(city=params.city, state=params.state, zip_code=params.zip_code):
            log.debug("xposure: skipping non Puerto Rico search")
            return ProviderSearchResponse(
                success=True,
                properties=[],
                total=0,
                limit=params.page_limit,
                offset=params.page_offset,
                provider=self.key,
            )

        try:
            async with self._session_maker() as session:
                rows, total = await LocalListingRepository(session).search(IDX_SOURCE, params)
                properties = [self.transform_to_normalized(r) for r in rows]
        except (SQLAlchemyError, *ADAPTER_ERRORS) as e:
            log.warning("xposure search failed: %s", e)
            return ProviderSearchResponse.failure(self.key, params, f"{self.label} error: {e}")

        log.info("xposure: %d listings (total %d) for city=%s", len(properties), total, params.city or "any")
        return ProviderSearchResponse(
            success=True,
            properties=properties,
            total=total or len(properties),
            limit=params.page_limit,
            offset=params.page_offset,
            provider=self.key,
        )

    async def test_connection(self) -> ConnectionTestResult:
        try:
            async with self._session_maker() as session:
                n = await LocalListingRepository(session).count(IDX_SOURCE)
        except SQLAlchemyError as e:
            return ConnectionTestResult(success=False, message=f"Connection error: {e}")
        return ConnectionTestResult(success=True, message=f"Connected. {n} Xposure listings in the database.")

    def transform_to_normalized(self, row: LocalListing) -> CanonicalListing:
        listing_word = "Alquiler" if row.listing_type == "rent" else "Venta"
        title = row.title or f"{spanish_label(row.property_type)} en {listing_word} - {row.city}"
        description = row.description or (
            f"Propiedad en {row.neighborhood or row.city}, {row.state}. "
            f"{row.bedrooms or 0} habitaciones, {row.bathrooms or 0} baños."
        )

        created = row.created_at.isoformat() if row.created_at else ""
        updated = row.updated_at.isoformat() if row.updated_at else created

        return CanonicalListing(
            id=listing_id(self.key, row.mls_id),
            source_provider=self.key,
            external_id=row.mls_id,
            mls_number=row.mls_id,
            title=title,
            description=description,
            price=float(row.price or 0.0),
            status=map_status(row.status, _STATUS_MAP),
            address=Address(
                street=row.address or "",
                city=row.city or "",
                state=row.state or "",
                zip_code=row.zip_code or "",
                country=row.country or "PR",
            ),
            coordinates=Coordinates(latitude=row.latitude, longitude=row.longitude)
            if row.latitude and row.longitude
            else None,
            details=ListingDetails(
                property_type=row.property_type or "unknown",
                bedrooms=int(row.bedrooms or 0),
                bathrooms=float(row.bathrooms or 0.0),
                square_feet=int(row.square_feet or 0),
                lot_size=row.lot_size or None,
                year_built=row.year_built or None,
            ),
            features=decode_list(row.features_json),
            amenities=decode_list(row.amenities_json),
            images=decode_list(row.images_json),
            agent=Agent(
                name=row.agent_name,
                email=row.agent_email or None,
                phone=row.agent_phone or None,
                company=row.agent_company or None,
            )
            if row.agent_name
            else None,
            list_date=created,
            modified_date=updated,
        )


def transform_xposure_payload(item: dict[str, Any], index: int = FEATURED_IMPORT_COUNT) -> dict[str, Any]:
    """
    Map one record of the Xposure JSON export into `properties` columns.
    Prices arrive as display strings ("USD $2,300.00"); text fields carry
    HTML entities; the property type is only encoded in the map icon name.
    """
    title_raw = str(item.get("title") or "").lower()
    is_rent = "alquiler" in title_raw or bool(item.get("price_current_rent"))

    if is_rent:
        price = to_number(item.get("price_current_rent"))
    else:
        price = to_number(item.get("price_current")) or to_number(item.get("price_sold"))

    city = decode_html(item.get("district") or "Puerto Rico")
    neighborhood = decode_html(item.get("map_area") or "")
    subdivision = decode_html(item.get("subdivision") or "")
    property_type = property_type_from_icon(item.get("property_icon"))
    listing_word = "Alquiler" if is_rent else "Venta"

    street = str(item.get("address") or "").strip()
    if not street:
        street = f"{item.get('stName') or ''} {item.get('stNum') or ''}".strip()

    description = [f"Propiedad en {neighborhood or city}, Puerto Rico."]
    if item.get("bedrooms"):
        description.append(f"{item['bedrooms']} habitaciones.")
    if item.get("bathrooms"):
        description.append(f"{item['bathrooms']} baños.")
    if item.get("sqft_total"):
        description.append(f"{item['sqft_total']} pies cuadrados.")
    if subdivision:
        description.append(f"Ubicado en {subdivision}.")

    features: list[str] = []
    if item.get("parking_spaces"):
        features.append(f"{item['parking_spaces']} estacionamiento(s)")
    if subdivision:
        features.append(f"Urbanización: {subdivision}")

    amenities: list[str] = []
    sub_lower = subdivision.lower()
    if "condominio" in sub_lower:
        amenities.append("Condominio")
    if "urbanizacion" in sub_lower or "urbanización" in sub_lower:
        amenities.append("Urbanización")

    images: list[str] = []
    thumb = item.get("thumbnailPhotoURL")
    if thumb:
        full = str(thumb).replace("&thumbnail", "")
        images.append(full)
        if full != thumb:
            images.append(str(thumb))

    return {
        "mls_id": str(item["id"]),
        "idx_source": IDX_SOURCE,
        "title": f"{spanish_label(property_type)} en {listing_word} - {city}",
        "description": " ".join(description),
        "address": street or "Dirección no disponible",
        "city": city,
        "state": "PR",
        "zip_code": "",
        "country": "PR",
        "neighborhood": neighborhood or None,
        "property_type": property_type,
        "listing_type": "rent" if is_rent else "sale",
        "price": price,
        "bedrooms": to_int(item.get("bedrooms")) or 0,
        "bathrooms": to_float(item.get("bathrooms")) or 0.0,
        "square_feet": int(to_number(item.get("sqft_total"))),
        "lot_size": to_number(item.get("lot_sqft")) or None,
        "year_built": to_int(item.get("year_built")) or None,
        "amenities": amenities,
        "features": features,
        "images": images,
        "latitude": to_float(item.get("lat")) or None,
        "longitude": to_float(item.get("lng")) or None,
        "status": _IMPORT_STATUS.get(str(item.get("status") or "").lower(), "active"),
        "featured": index < FEATURED_IMPORT_COUNT and price > 0,
    }
