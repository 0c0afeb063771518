# app/service_layer/aggregator.py
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Iterable, Sequence

from ..config import settings
from ..domain.types import (
    AggregatedResult,
    CanonicalListing,
    CanonicalSearchParams,
    ProviderKey,
    ProviderSearchResponse,
    SearchSettings,
)
from .provider_registry import ActiveClient, ProviderRegistry
from .search_settings import compute_limit_per_provider, resolve_search_settings

log = logging.getLogger(__name__)

NO_PROVIDERS = "NO_PROVIDERS"
NO_PROVIDERS_MESSAGE = "no providers configured"

# What to do with an adapter call that raised instead of returning a failure
REJECTED_RECORD = "record"
REJECTED_DROP = "drop"
REJECTED_CALL_POLICIES = (REJECTED_RECORD, REJECTED_DROP)

TIMEOUT_ERROR = "timeout"


def _parse_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def sort_listings(listings: Iterable[CanonicalListing], params: CanonicalSearchParams) -> list[CanonicalListing]:
    """
    Price sort honors sort_order (asc by default). Anything else is newest
    first by list_date, with unparsable dates at the end.
    """
    items = list(listings)
    if params.sort_by == "price":
        return sorted(items, key=lambda p: p.price, reverse=params.sort_order == "desc")

    def newest_first(p: CanonicalListing) -> tuple[bool, float]:
        dt = _parse_date(p.list_date)
        return (dt is None, -dt.timestamp() if dt else 0.0)

    return sorted(items, key=newest_first)


def dedupe_listings(listings: Iterable[CanonicalListing]) -> list[CanonicalListing]:
    seen: set[str] = set()
    out: list[CanonicalListing] = []
    for p in listings:
        if p.id in seen:
            continue
        seen.add(p.id)
        out.append(p)
    return out


def no_providers_result(search_settings: SearchSettings) -> AggregatedResult:
    return AggregatedResult(
        success=False,
        properties=[],
        total_by_provider={},
        errors={"general": NO_PROVIDERS_MESSAGE},
        providers_queried=[],
        search_settings=search_settings,
        error_code=NO_PROVIDERS,
    )


class PropertyAggregator:
    """
    One search fanned out to every active provider. Provider failures are
    partial: they land in `errors` and never fail the whole search.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        timeout_s: float | None = None,
        rejected_call_policy: str | None = None,
    ) -> None:
        policy = rejected_call_policy or settings.REJECTED_CALL_POLICY
        if policy not in REJECTED_CALL_POLICIES:
            raise ValueError(f"rejected_call_policy must be one of {REJECTED_CALL_POLICIES}, got {policy!r}")
        self.registry = registry
        self.timeout_s = settings.PROVIDER_TIMEOUT_S if timeout_s is None else float(timeout_s)
        self.rejected_call_policy = policy

    async def has_active_providers(self) -> bool:
        return await self.registry.has_active_providers()

    async def _run_provider(self, client: ActiveClient, params: CanonicalSearchParams) -> ProviderSearchResponse | None:
        started = time.monotonic()
        try:
            resp = await asyncio.wait_for(client.adapter.search_normalized(params), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            log.warning("provider %s timed out after %.1fs", client.provider.value, self.timeout_s)
            return ProviderSearchResponse.failure(client.provider, params, TIMEOUT_ERROR)
        except Exception as e:
            if self.rejected_call_policy == REJECTED_DROP:
                log.warning("provider %s raised %s; dropped", client.provider.value, type(e).__name__)
                return None
            log.exception("provider %s raised", client.provider.value)
            return ProviderSearchResponse.failure(client.provider, params, str(e) or type(e).__name__)

        log.info(
            "provider %s: success=%s count=%d total=%d in %dms",
            client.provider.value,
            resp.success,
            len(resp.properties),
            resp.total,
            int((time.monotonic() - started) * 1000),
        )
        return resp

    async def search(self, params: CanonicalSearchParams) -> AggregatedResult:
        active = await self.registry.get_active_clients()
        search_settings = await resolve_search_settings(self.registry.store)

        if not active.clients:
            log.warning("property search with no providers configured")
            return no_providers_result(search_settings)

        per_provider = compute_limit_per_provider(search_settings, len(active.clients))
        scoped = replace(params, limit=per_provider)

        outcomes = await asyncio.gather(*(self._run_provider(c, scoped) for c in active.clients))

        properties: list[CanonicalListing] = []
        total_by_provider: dict[str, int] = {}
        errors: dict[str, str] = {}

        for client, resp in zip(active.clients, outcomes):
            if resp is None:
                continue
            if resp.success:
                properties.extend(resp.properties)
                total_by_provider[client.provider.value] = resp.total
            else:
                errors[client.provider.value] = resp.error or "unknown error"

        properties = sort_listings(dedupe_listings(properties), params)

        return AggregatedResult(
            success=bool(properties) or not errors,
            properties=properties,
            total_by_provider=total_by_provider,
            errors=errors,
            providers_queried=list(active.providers),
            search_settings=search_settings,
        )


@dataclass(frozen=True)
class SearchLocation:
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None


def combine_location_results(results: Sequence[AggregatedResult]) -> AggregatedResult:
    """
    Merge per-location searches. Listings are deduped by id (first seen
    wins), totals summed and providers unioned in order. A provider that
    failed for several locations keeps its last error.
    """
    properties: list[CanonicalListing] = []
    total_by_provider: dict[str, int] = {}
    errors: dict[str, str] = {}
    providers: list[ProviderKey] = []

    for r in results:
        properties.extend(r.properties)
        for k, n in r.total_by_provider.items():
            total_by_provider[k] = total_by_provider.get(k, 0) + n
        for k, msg in r.errors.items():
            errors[k] = msg
        for p in r.providers_queried:
            if p not in providers:
                providers.append(p)

    search_settings = results[0].search_settings if results else SearchSettings()
    if results and all(r.error_code == NO_PROVIDERS for r in results):
        return no_providers_result(search_settings)

    properties = dedupe_listings(properties)
    return AggregatedResult(
        success=bool(properties) or not errors,
        properties=properties,
        total_by_provider=total_by_provider,
        errors=errors,
        providers_queried=providers,
        search_settings=search_settings,
    )


async def search_locations(
    aggregator: PropertyAggregator,
    locations: Sequence[SearchLocation],
    base_params: CanonicalSearchParams | None = None,
) -> AggregatedResult:
    base = base_params or CanonicalSearchParams()
    unique: list[SearchLocation] = []
    for loc in locations:
        if loc not in unique:
            unique.append(loc)
    if not unique:
        return await aggregator.search(base)

    results = await asyncio.gather(
        *(aggregator.search(replace(base, city=loc.city, state=loc.state, zip_code=loc.zip_code)) for loc in unique)
    )
    combined = combine_location_results(results)
    log.info(
        "searched %d location(s): %d unique listings, %d provider error(s)",
        len(unique),
        len(combined.properties),
        len(combined.errors),
    )
    return combined


def properties_for_scoring(result: AggregatedResult) -> list[CanonicalListing]:
    return result.properties[: result.search_settings.max_properties_for_ai]
