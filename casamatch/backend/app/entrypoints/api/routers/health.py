# app/entrypoints/api/routers/health.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from ..deps import require_api_key
from ....config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/debug/config", dependencies=[Depends(require_api_key)])
def debug_config() -> dict[str, Any]:
    # provider credentials live in the database, so only URLs and tuning show here
    return {
        "ENV": settings.ENV,
        "CASAMATCH_DB_URL": settings.CASAMATCH_DB_URL,
        "API_KEY_SET": bool(settings.API_KEY),
        "SHOWCASE_IDX_BASE_URL": settings.SHOWCASE_IDX_BASE_URL,
        "ZILLOW_BRIDGE_BASE_URL": settings.ZILLOW_BRIDGE_BASE_URL,
        "REALTOR_RAPIDAPI_HOST": settings.REALTOR_RAPIDAPI_HOST,
        "PROVIDER_TIMEOUT_S": settings.PROVIDER_TIMEOUT_S,
        "SETTINGS_CACHE_TTL_S": settings.SETTINGS_CACHE_TTL_S,
        "REJECTED_CALL_POLICY": settings.REJECTED_CALL_POLICY,
    }

