# app/entrypoints/api/routers/providers.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..deps import get_registry, get_settings_store, require_api_key
from ....schemas import ProviderStatusOut, SearchSettingsOut
from ....service_layer.cache import CachedSettingsStore
from ....service_layer.provider_registry import ProviderRegistry
from ....service_layer.search_settings import resolve_search_settings

router = APIRouter(tags=["providers"], dependencies=[Depends(require_api_key)])


@router.get("/providers/status", response_model=ProviderStatusOut)
async def providers_status(registry: ProviderRegistry = Depends(get_registry)) -> ProviderStatusOut:
    return ProviderStatusOut.model_validate(await registry.provider_status_summary())


@router.get("/search-settings", response_model=SearchSettingsOut)
async def search_settings(store: CachedSettingsStore = Depends(get_settings_store)) -> SearchSettingsOut:
    return SearchSettingsOut.model_validate(await resolve_search_settings(store))
