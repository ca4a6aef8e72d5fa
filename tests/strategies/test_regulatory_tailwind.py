import pytest

from signal_engine.signals.base import Evidence
from signal_engine.signals.classifier import evaluate_overrides
from signal_engine.signals.schemas import Direction, Level, Strength
from signal_engine.signals.strategies.regulatory_tailwind import (
    RegulatoryTailwind,
    detect_events,
    keyword_matches,
    related_sectors,
)
from tests.conftest import NOW, FakeSocial, make_context, make_post

APPROVAL = "FDA approval received for new therapy"


class TestKeywordMatches:
    def test_frequency_counts_posts(self):
        posts = [make_post(APPROVAL), make_post(APPROVAL)]
        matches = {m.pattern: m for m in keyword_matches(posts)}
        assert len(matches) == 2
        assert all(m.frequency == 2 for m in matches.values())
        assert {m.weight for m in matches.values()} == {10, 9}

    def test_no_regulatory_language(self):
        assert keyword_matches([make_post("nice candle today")]) == []


class TestEvents:
    def test_fresh_engaged_approval_is_high_impact(self):
        (event,) = detect_events([make_post(APPROVAL, likes=100)], NOW)
        assert event.event_type == "approval"
        assert event.impact is Level.high
        assert event.relevance == pytest.approx(0.996, abs=0.001)
        assert event.description.startswith("Approval detected: FDA approval")

    def test_stale_unengaged_event_is_low_impact(self):
        (event,) = detect_events([make_post("new tax credit for buyers", hours_ago=24 * 7)], NOW)
        assert event.event_type == "tax_benefit"
        assert event.impact is Level.low

    def test_keeps_top_ten(self):
        posts = [make_post(APPROVAL, likes=i) for i in range(15)]
        events = detect_events(posts, NOW)
        assert len(events) == 10
        assert events[0].relevance >= events[-1].relevance

    def test_related_sectors_need_twenty_percent(self):
        posts = [make_post(APPROVAL)] * 2 + [make_post("solar subsidy")] + [make_post("nothing")] * 7
        assert related_sectors(posts) == ["biotech"]


class TestRegulatoryTailwind:
    def test_high_impact_tailwind(self):
        strategy = RegulatoryTailwind()
        posts = [make_post(APPROVAL, likes=100) for _ in range(6)]
        analysis = strategy.analyze(Evidence(posts=posts), make_context(strategy))

        assert analysis.score == 73
        assert analysis.details.impact_level is Level.high
        assert analysis.details.sentiment == "positive"
        assert analysis.details.related_sectors == ["biotech"]
        override = evaluate_overrides(strategy.overrides, analysis.details)
        assert override.rule == "high_impact"
        assert override.direction is Direction.bullish
        assert override.strength is Strength.strong

    def test_empty_inputs(self):
        strategy = RegulatoryTailwind()
        analysis = strategy.analyze(Evidence(posts=[]), make_context(strategy))
        assert analysis.score == 0
        assert analysis.details.impact_level is Level.low
        assert analysis.details.sentiment == "neutral"
        assert evaluate_overrides(strategy.overrides, analysis.details) is None

    @pytest.mark.asyncio
    async def test_fetch_query(self):
        social = FakeSocial()
        strategy = RegulatoryTailwind()
        await strategy.fetch(make_context(strategy, ticker="MRNA", social=social))
        assert social.calls[0].query.startswith("($MRNA OR MRNA) (regulatory OR regulation")
