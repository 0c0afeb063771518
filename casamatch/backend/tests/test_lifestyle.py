# tests/test_lifestyle.py
import pytest

from app.domain.types import ProviderKey, SearchSettings
from app.service_layer.aggregator import NO_PROVIDERS, PropertyAggregator, SearchLocation
from app.service_layer.lifestyle import ScoredMatch, lifestyle_match, prioritize_preferred_provider

X = ProviderKey.xposure
S = ProviderKey.showcase_idx


class _Scorer:
    def __init__(self):
        self.seen = None

    async def score(self, profile, listings):
        self.seen = list(listings)
        return [ScoredMatch(listing=p, score=p.price / 1000) for p in listings]


def test_preferred_provider_top_n_goes_first(make_listing):
    matches = [
        ScoredMatch(make_listing(S, "s1", 1), 95),
        ScoredMatch(make_listing(X, "x1", 1), 60),
        ScoredMatch(make_listing(S, "s2", 1), 90),
        ScoredMatch(make_listing(X, "x2", 1), 70),
        ScoredMatch(make_listing(X, "x3", 1), 50),
    ]

    out = prioritize_preferred_provider(matches, X, top_n=2)

    assert [m.listing.external_id for m in out] == ["x2", "x1", "s1", "s2", "x3"]


def test_no_preferred_provider_is_plain_score_order(make_listing):
    matches = [ScoredMatch(make_listing(S, str(i), 1), i) for i in (3, 9, 5)]

    out = prioritize_preferred_provider(matches, None, top_n=5)

    assert [m.score for m in out] == [9, 5, 3]


@pytest.mark.asyncio
async def test_lifestyle_match_scores_capped_candidates(make_registry, fake_adapter, make_listing):
    xs = fake_adapter(X, properties=[make_listing(X, str(i), 100000 + i) for i in range(4)])
    ss = fake_adapter(S, properties=[make_listing(S, str(i), 900000 + i) for i in range(4)])
    registry = make_registry({X: xs, S: ss}, search_settings=SearchSettings(max_properties_for_ai=6))
    scorer = _Scorer()

    result = await lifestyle_match(
        PropertyAggregator(registry),
        scorer,
        {"lifestyle": "beach"},
        [SearchLocation(city="San Juan", state="PR")],
        preferred_provider=X,
        top_n=2,
    )

    assert result.success is True
    assert result.properties_considered == 6
    assert len(scorer.seen) == 6
    assert [m.listing.source_provider for m in result.matches[:2]] == [X, X]
    assert result.matches[2].listing.source_provider == S
    assert result.providers_queried == [X, S]


@pytest.mark.asyncio
async def test_lifestyle_match_without_providers_skips_scoring(make_registry, fake_adapter):
    scorer = _Scorer()
    registry = make_registry({X: fake_adapter(X)}, disabled={X})

    result = await lifestyle_match(PropertyAggregator(registry), scorer, {}, [SearchLocation(city="Dorado")])

    assert result.success is False
    assert result.error_code == NO_PROVIDERS
    assert result.matches == []
    assert scorer.seen is None
