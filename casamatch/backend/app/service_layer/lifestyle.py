# app/service_layer/lifestyle.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

from ..config import settings
from ..domain.types import CanonicalListing, CanonicalSearchParams, ProviderKey
from .aggregator import (
    NO_PROVIDERS,
    NO_PROVIDERS_MESSAGE,
    PropertyAggregator,
    SearchLocation,
    properties_for_scoring,
    search_locations,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoredMatch:
    listing: CanonicalListing
    score: float
    reasons: list[str] = field(default_factory=list)


class MatchScorer(Protocol):
    """Scores listings against a lifestyle profile (an LLM in production)."""

    async def score(self, profile: dict[str, Any], listings: Sequence[CanonicalListing]) -> list[ScoredMatch]: ...


@dataclass(frozen=True)
class LifestyleMatchResult:
    success: bool
    matches: list[ScoredMatch]
    properties_considered: int
    providers_queried: list[ProviderKey]
    total_by_provider: dict[str, int]
    errors: dict[str, str]
    error_code: str | None = None


def prioritize_preferred_provider(
    matches: Sequence[ScoredMatch],
    provider: ProviderKey | str | None,
    top_n: int,
) -> list[ScoredMatch]:
    """
    The preferred provider's best `top_n` matches go first; everything
    else follows by score.
    """
    by_score = sorted(matches, key=lambda m: m.score, reverse=True)
    if not provider or top_n <= 0:
        return by_score

    key = provider.value if isinstance(provider, ProviderKey) else str(provider)
    head = [m for m in by_score if m.listing.source_provider.value == key][:top_n]
    head_ids = {m.listing.id for m in head}
    return head + [m for m in by_score if m.listing.id not in head_ids]


async def lifestyle_match(
    aggregator: PropertyAggregator,
    scorer: MatchScorer,
    profile: dict[str, Any],
    locations: Sequence[SearchLocation],
    *,
    base_params: CanonicalSearchParams | None = None,
    preferred_provider: ProviderKey | str | None = settings.PREFERRED_PROVIDER,
    top_n: int = settings.PREFERRED_PROVIDER_TOP_N,
) -> LifestyleMatchResult:
    if not await aggregator.has_active_providers():
        return LifestyleMatchResult(
            success=False,
            matches=[],
            properties_considered=0,
            providers_queried=[],
            total_by_provider={},
            errors={"general": NO_PROVIDERS_MESSAGE},
            error_code=NO_PROVIDERS,
        )

    result = await search_locations(aggregator, locations, base_params)
    candidates = properties_for_scoring(result)

    matches: list[ScoredMatch] = []
    if candidates:
        scored = await scorer.score(profile, candidates)
        matches = prioritize_preferred_provider(scored, preferred_provider, top_n)
    log.info("lifestyle match: %d candidates, %d matches", len(candidates), len(matches))

    return LifestyleMatchResult(
        success=result.success,
        matches=matches,
        properties_considered=len(candidates),
        providers_queried=result.providers_queried,
        total_by_provider=result.total_by_provider,
        errors=result.errors,
        error_code=result.error_code,
    )
