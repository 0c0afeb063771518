# app/adapters/repos/local_listings.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.locations import city_variations, normalize_state_code
from ...domain.property_types import normalize_property_type
from ...domain.types import CanonicalSearchParams
from ...models import LocalListing

_LIST_COLUMNS = {"amenities": "amenities_json", "features": "features_json", "images": "images_json"}


class LocalListingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def search(self, idx_source: str, params: CanonicalSearchParams) -> tuple[Sequence[LocalListing], int]:
        """
        Filtered page of stored listings plus the unpaged match count.
        Featured rows always sort first.
        """
        stmt = select(LocalListing).where(LocalListing.idx_source == idx_source)

        if params.city:
            stmt = stmt.where(or_(*[LocalListing.city.ilike(f"%{v}%") for v in city_variations(params.city)]))
        if params.state:
            # rows keep the two-letter code; "Puerto Rico" must match "PR"
            stmt = stmt.where(LocalListing.state.ilike(normalize_state_code(params.state)))
        if params.zip_code:
            stmt = stmt.where(LocalListing.zip_code == params.zip_code)
        if params.min_price:
            stmt = stmt.where(LocalListing.price >= params.min_price)
        if params.max_price:
            stmt = stmt.where(LocalListing.price <= params.max_price)
        if params.bedrooms:
            stmt = stmt.where(LocalListing.bedrooms >= params.bedrooms)
        if params.bathrooms:
            stmt = stmt.where(LocalListing.bathrooms >= params.bathrooms)
        if params.min_square_feet:
            stmt = stmt.where(LocalListing.square_feet >= params.min_square_feet)
        if params.max_square_feet:
            stmt = stmt.where(LocalListing.square_feet <= params.max_square_feet)
        if params.property_type:
            stmt = stmt.where(LocalListing.property_type == normalize_property_type(params.property_type))
        if params.status:
            stmt = stmt.where(LocalListing.status == params.status)
        if params.listing_type:
            stmt = stmt.where(LocalListing.listing_type == params.listing_type)

        total = (await self.session.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()

        if params.sort_by == "price":
            price_order = LocalListing.price.asc() if params.sort_order == "asc" else LocalListing.price.desc()
            stmt = stmt.order_by(LocalListing.featured.desc(), price_order, LocalListing.id.asc())
        else:
            stmt = stmt.order_by(LocalListing.featured.desc(), LocalListing.created_at.desc(), LocalListing.id.asc())

        stmt = stmt.offset(params.page_offset).limit(params.page_limit)
        rows = (await self.session.execute(stmt)).scalars().all()
        return rows, int(total)

    async def count(self, idx_source: str) -> int:
        q = select(func.count()).select_from(LocalListing).where(LocalListing.idx_source == idx_source)
        return int((await self.session.execute(q)).scalar_one())

    async def upsert_from_payload(self, payload: dict[str, Any]) -> tuple[LocalListing, bool]:
        """
        Upsert on (idx_source, mls_id). List fields arrive as python lists
        and are stored JSON-encoded. Returns (row, created).
        Does NOT commit (caller controls transaction boundaries).
        """
        idx_source = str(payload["idx_source"])
        mls_id = str(payload["mls_id"])

        q = select(LocalListing).where(LocalListing.idx_source == idx_source, LocalListing.mls_id == mls_id)
        row = (await self.session.execute(q)).scalars().first()

        created = row is None
        if row is None:
            row = LocalListing(idx_source=idx_source, mls_id=mls_id)
            self.session.add(row)

        for key, value in payload.items():
            if key in ("idx_source", "mls_id"):
                continue
            if key in _LIST_COLUMNS:
                setattr(row, _LIST_COLUMNS[key], json.dumps(list(value or [])))
            elif hasattr(LocalListing, key):
                setattr(row, key, value)

        row.updated_at = datetime.utcnow()
        await self.session.flush()
        return row, created


def decode_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    try:
        v = json.loads(raw)
    except ValueError:
        return []
    return [str(x) for x in v] if isinstance(v, list) else []
