import pytest

from signal_engine.signals.base import Evidence
from signal_engine.signals.classifier import evaluate_overrides
from signal_engine.signals.schemas import Direction, Momentum, Strength
from signal_engine.signals.strategies.global_edge import (
    GlobalEdge,
    OpportunityType,
    RegionSentiment,
    cross_border_trends,
    geographic_signals,
    international_sentiment,
    opportunity_type,
    regional_activity,
)
from tests.conftest import NOW, FakeSocial, make_context, make_post

EXPANSION = "Expansion into Germany with a new partnership, demand surging"
TRADE = "Export deal and investment between Europe and Asia"


class TestRegionalActivity:
    def test_engagement_drives_region_sentiment(self):
        posts = [make_post(EXPANSION, likes=100), make_post("Japan is quiet", likes=0)]
        regions = {r.region: r for r in regional_activity(posts)}

        assert regions["Europe"].sentiment is RegionSentiment.positive
        assert regions["Europe"].countries == ["Germany"]
        assert regions["Asia"].sentiment is RegionSentiment.negative
        assert regions["Asia"].share == 0.5

    def test_no_regions(self):
        assert regional_activity([make_post("nothing geographic")]) == []


class TestGeographicSignals:
    def test_consolidates_by_region_country_and_type(self):
        first, second = make_post(EXPANSION, likes=100), make_post(EXPANSION, hours_ago=48)
        signals = geographic_signals([first, second], NOW)

        assert {s.signal_type for s in signals} == {"expansion", "partnership", "demand"}
        expansion = next(s for s in signals if s.signal_type == "expansion")
        assert expansion.region == "Europe"
        assert expansion.country == "Germany"
        assert expansion.post_ids == [first.id, second.id]
        assert expansion.relevance == pytest.approx(0.996, abs=0.001)
        assert expansion.description.startswith("Market expansion detected in Europe: ")

    def test_posts_without_region_are_skipped(self):
        assert geographic_signals([make_post("big partnership announced")], NOW) == []


class TestCrossBorder:
    def test_needs_two_active_regions(self):
        posts = [make_post(TRADE)]
        trends = cross_border_trends(posts, regional_activity(posts))
        assert {t.trend_type for t in trends} == {"trade", "investment"}
        assert trends[0].trend_type == "investment"
        assert {trends[0].source_region, trends[0].target_region} == {"Europe", "Asia"}

    def test_single_region_has_no_trends(self):
        posts = [make_post("Export growth in Germany")]
        assert cross_border_trends(posts, regional_activity(posts)) == []


class TestInternationalSentiment:
    def test_momentum_from_recent_share(self):
        posts = [make_post(EXPANSION, hours_ago=1)] * 7 + [make_post(EXPANSION, hours_ago=24 * 5)] * 3
        sentiment = international_sentiment(posts, regional_activity(posts), NOW)
        assert sentiment.momentum is Momentum.rising
        assert sentiment.diversity == pytest.approx(0.2)

    def test_empty(self):
        sentiment = international_sentiment([], [], NOW)
        assert sentiment.overall is RegionSentiment.neutral
        assert sentiment.momentum is Momentum.declining
        assert sentiment.diversity == 0.0


class TestOpportunityType:
    def test_defaults_to_macro(self):
        assert opportunity_type([], []) is OpportunityType.macro

    def test_expansion_majority(self):
        signals = geographic_signals([make_post("Expansion into Brazil next year")], NOW)
        assert opportunity_type(signals, []) is OpportunityType.expansion


class TestGlobalEdge:
    def test_expansion_story(self):
        strategy = GlobalEdge()
        analysis = strategy.analyze(Evidence(posts=[make_post(EXPANSION, likes=100)]), make_context(strategy))

        assert analysis.score == 48
        assert len(analysis.details.signals) == 3
        assert analysis.details.sentiment.overall is RegionSentiment.positive
        override = evaluate_overrides(strategy.overrides, analysis.details)
        assert override.rule == "early_global_interest"
        assert override.direction is Direction.bullish
        assert override.strength is Strength.weak

    def test_empty_inputs(self):
        strategy = GlobalEdge()
        analysis = strategy.analyze(Evidence(posts=[]), make_context(strategy))
        # Neutral international sentiment alone is worth 10 points
        assert analysis.score == 10
        assert analysis.details.opportunity_type is OpportunityType.macro

    @pytest.mark.asyncio
    async def test_fetch_query(self):
        social = FakeSocial()
        strategy = GlobalEdge()
        await strategy.fetch(make_context(strategy, social=social))
        assert social.calls[0].query.startswith("($TSLA OR TSLA) (international OR global")
