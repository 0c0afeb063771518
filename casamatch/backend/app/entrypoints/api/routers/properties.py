# app/entrypoints/api/routers/properties.py
from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from ..deps import get_aggregator, require_api_key
from ....adapters.providers.showcase_idx import get_demo_listings
from ....domain.types import CanonicalSearchParams
from ....schemas import AggregatedResultOut, ListingOut
from ....service_layer.aggregator import PropertyAggregator

router = APIRouter(tags=["properties"], dependencies=[Depends(require_api_key)])


@router.get("/properties/search", response_model=AggregatedResultOut)
async def search_properties(
    city: str | None = Query(default=None),
    state: str | None = Query(default=None),
    zip_code: str | None = Query(default=None, max_length=10),
    min_price: float | None = Query(default=None, ge=0),
    max_price: float | None = Query(default=None, ge=0),
    property_type: str | None = Query(default=None),
    bedrooms: int | None = Query(default=None, ge=0),
    bathrooms: float | None = Query(default=None, ge=0),
    min_square_feet: int | None = Query(default=None, ge=0),
    max_square_feet: int | None = Query(default=None, ge=0),
    status: Literal["active", "pending", "sold"] | None = Query(default=None),
    listing_type: Literal["sale", "rent"] | None = Query(default=None),
    offset: int | None = Query(default=None, ge=0),
    sort_by: Literal["price", "list_date", "square_feet"] | None = Query(default=None),
    sort_order: Literal["asc", "desc"] | None = Query(default=None),
    aggregator: PropertyAggregator = Depends(get_aggregator),
) -> AggregatedResultOut:
    if min_price is not None and max_price is not None and min_price > max_price:
        raise HTTPException(status_code=400, detail="min_price must be <= max_price")

    # limit is not a query param: the per-provider quota comes from search settings
    params = CanonicalSearchParams(
        city=city,
        state=state,
        zip_code=zip_code,
        min_price=min_price,
        max_price=max_price,
        property_type=property_type,
        bedrooms=bedrooms,
        bathrooms=bathrooms,
        min_square_feet=min_square_feet,
        max_square_feet=max_square_feet,
        status=status,
        listing_type=listing_type,
        offset=offset,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    result = await aggregator.search(params)
    return AggregatedResultOut.model_validate(result)


@router.get("/properties/demo", response_model=list[ListingOut])
def demo_properties() -> list[ListingOut]:
    return [ListingOut.model_validate(p) for p in get_demo_listings()]
