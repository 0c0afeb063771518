# app/service_layer/provider_registry.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
import time
from typing import Any, Callable

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..adapters.providers.base import PropertyProvider, ProviderCredentials
from ..adapters.providers.realtor_rapidapi import RealtorRapidApiConfig, RealtorRapidApiProvider
from ..adapters.providers.showcase_idx import ShowcaseIdxConfig, ShowcaseIdxProvider
from ..adapters.providers.xposure import XposureConfig, XposureProvider
from ..adapters.providers.zillow_bridge import ZillowBridgeConfig, ZillowBridgeProvider
from ..adapters.repos.settings_store import ProviderSettingsRecord
from ..config import settings
from ..domain.types import ConnectionTestResult, ProviderKey

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderContext:
    """Runtime collaborators an adapter may need besides its credentials."""

    session_maker: async_sessionmaker[AsyncSession] | None = None
    transport: httpx.AsyncBaseTransport | None = None


@dataclass(frozen=True)
class ProviderSpec:
    key: ProviderKey
    name: str
    base_url: str
    supported_regions: tuple[str, ...]
    requires_credentials: bool
    # typed config from raw credentials; None => not configured
    parse_config: Callable[[ProviderCredentials], Any]
    build: Callable[[Any, ProviderContext], PropertyProvider]

    def is_configured(self, creds: ProviderCredentials) -> bool:
        return self.parse_config(creds) is not None


def _build_xposure(cfg: XposureConfig, ctx: ProviderContext) -> PropertyProvider:
    if ctx.session_maker is None:
        # the local provider cannot run without a database
        raise ValueError("xposure provider needs a session_maker")
    return XposureProvider(cfg, session_maker=ctx.session_maker)


PROVIDER_SPECS: dict[ProviderKey, ProviderSpec] = {
    ProviderKey.showcase_idx: ProviderSpec(
        key=ProviderKey.showcase_idx,
        name="Showcase IDX",
        base_url=settings.SHOWCASE_IDX_BASE_URL,
        supported_regions=("US", "CA"),
        requires_credentials=True,
        parse_config=ShowcaseIdxConfig.from_credentials,
        build=lambda cfg, ctx: ShowcaseIdxProvider(cfg, transport=ctx.transport),
    ),
    ProviderKey.zillow_bridge: ProviderSpec(
        key=ProviderKey.zillow_bridge,
        name="Zillow (Bridge Data Output)",
        base_url=settings.ZILLOW_BRIDGE_BASE_URL,
        supported_regions=("US",),
        requires_credentials=True,
        parse_config=ZillowBridgeConfig.from_credentials,
        build=lambda cfg, ctx: ZillowBridgeProvider(cfg, transport=ctx.transport),
    ),
    ProviderKey.realtor_rapidapi: ProviderSpec(
        key=ProviderKey.realtor_rapidapi,
        name="Realtor.com (RapidAPI)",
        base_url=f"https://{settings.REALTOR_RAPIDAPI_HOST}",
        supported_regions=("US",),
        requires_credentials=True,
        parse_config=RealtorRapidApiConfig.from_credentials,
        build=lambda cfg, ctx: RealtorRapidApiProvider(cfg, transport=ctx.transport),
    ),
    ProviderKey.xposure: ProviderSpec(
        key=ProviderKey.xposure,
        name="Xposure MLS Puerto Rico",
        base_url="local",
        supported_regions=("PR",),
        requires_credentials=False,
        parse_config=XposureConfig.from_credentials,
        build=_build_xposure,
    ),
}


def parse_provider_key(raw: str) -> ProviderKey | None:
    try:
        return ProviderKey(raw)
    except ValueError:
        return None


def build_provider(
    key: ProviderKey,
    creds: ProviderCredentials,
    ctx: ProviderContext,
    specs: dict[ProviderKey, ProviderSpec] = PROVIDER_SPECS,
) -> PropertyProvider | None:
    """Adapter for the key, or None when credentials/extra config are missing."""
    spec = specs[key]
    cfg = spec.parse_config(creds)
    if cfg is None:
        return None
    try:
        return spec.build(cfg, ctx)
    except ValueError as e:
        log.warning("provider %s could not be constructed: %s", key.value, e)
        return None


def mask_api_key(value: str | None) -> str:
    if not value or len(value) < 12:
        return "********"
    return value[:4] + "***" + value[-4:]


@dataclass(frozen=True)
class ActiveClient:
    provider: ProviderKey
    adapter: PropertyProvider


@dataclass(frozen=True)
class ActiveClients:
    clients: list[ActiveClient] = field(default_factory=list)

    @property
    def providers(self) -> list[ProviderKey]:
        return [c.provider for c in self.clients]


class ProviderRegistry:
    """
    Turns enabled provider settings rows into adapters. Rows that are
    disabled, unknown or missing required credentials are skipped (logged).
    """

    def __init__(
        self,
        store: Any,
        *,
        context: ProviderContext | None = None,
        specs: dict[ProviderKey, ProviderSpec] = PROVIDER_SPECS,
    ) -> None:
        self.store = store
        self.context = context or ProviderContext()
        self.specs = specs

    async def _enabled_records(self) -> list[ProviderSettingsRecord]:
        try:
            return list(await self.store.get_enabled_provider_settings())
        except Exception:  # no settings storage == nothing configured
            log.exception("provider settings lookup failed; treating as no providers")
            return []

    async def get_active_clients(self) -> ActiveClients:
        clients: list[ActiveClient] = []
        seen: set[ProviderKey] = set()

        for rec in await self._enabled_records():
            if not rec.enabled:
                continue
            key = parse_provider_key(rec.provider_key)
            if key is None or key not in self.specs:
                log.warning("unknown provider key in settings: %s", rec.provider_key)
                continue
            if key in seen:
                continue

            adapter = build_provider(key, rec.credentials, self.context, self.specs)
            if adapter is None:
                log.warning("provider %s is enabled but not configured; skipping", key.value)
                continue

            seen.add(key)
            clients.append(ActiveClient(provider=key, adapter=adapter))

        return ActiveClients(clients=clients)

    async def has_active_providers(self) -> bool:
        for rec in await self._enabled_records():
            key = parse_provider_key(rec.provider_key)
            if rec.enabled and key in self.specs and self.specs[key].is_configured(rec.credentials):
                return True
        return False

    async def provider_status_summary(self) -> dict[str, Any]:
        """Every known provider, configured or not. Secrets are masked."""
        try:
            records = {r.provider_key: r for r in await self.store.get_all_provider_settings()}
        except Exception:
            log.exception("provider settings lookup failed")
            records = {}

        providers: list[dict[str, Any]] = []
        for key, spec in self.specs.items():
            rec = records.get(key.value)
            creds = rec.credentials if rec else ProviderCredentials()
            providers.append(
                {
                    "key": key.value,
                    "name": (rec.name if rec and rec.name else spec.name),
                    "enabled": bool(rec and rec.enabled),
                    "configured": spec.is_configured(creds),
                    "requires_credentials": spec.requires_credentials,
                    "api_key_masked": mask_api_key(creds.api_key) if creds.api_key else None,
                    "priority": rec.priority if rec else None,
                    "supported_regions": list(spec.supported_regions),
                    "last_sync_at": rec.last_sync_at if rec else None,
                    "last_sync_status": rec.last_sync_status if rec else None,
                }
            )

        providers.sort(key=lambda p: (p["priority"] is None, p["priority"] or 0))
        return {
            "total_providers": len(providers),
            "active_providers": sum(1 for p in providers if p["enabled"] and p["configured"]),
            "providers": providers,
        }


async def test_provider_connection(
    provider_key: str | ProviderKey,
    *,
    api_key: str | None = None,
    api_secret: str | None = None,
    additional_config: dict[str, Any] | None = None,
    context: ProviderContext | None = None,
    specs: dict[ProviderKey, ProviderSpec] = PROVIDER_SPECS,
) -> ConnectionTestResult:
    """
    Self-test with ad-hoc credentials (before they are saved).
    Unknown keys raise ValueError.
    """
    key = provider_key if isinstance(provider_key, ProviderKey) else parse_provider_key(provider_key)
    if key is None or key not in specs:
        raise ValueError(f"Unknown provider: {provider_key}")

    creds = ProviderCredentials(api_key=api_key, api_secret=api_secret, additional_config=additional_config or {})
    adapter = build_provider(key, creds, context or ProviderContext(), specs)
    if adapter is None:
        return ConnectionTestResult(success=False, message=f"Missing required configuration for {specs[key].name}")

    started = time.monotonic()
    result = await adapter.test_connection()
    log.info("connection test %s: success=%s in %dms", key.value, result.success,
             int((time.monotonic() - started) * 1000))
    return result
