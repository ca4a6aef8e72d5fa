import pytest

from signal_engine.signals.base import Evidence
from signal_engine.signals.classifier import evaluate_overrides
from signal_engine.signals.schemas import Direction, Momentum, Strength
from signal_engine.signals.strategies.fear_compression import (
    FearCompression,
    compression_components,
    fear_level,
    fear_metrics,
)
from tests.conftest import FakePrices, FakeSocial, make_bars, make_context, make_post

RECOVERING = "capitulation, bottom, recovering, oversold"
PANICKING = "crash, panic, collapse"


# ===========================================================================
# Helpers
# ===========================================================================


def _current(text: str = RECOVERING, n: int = 5):
    return [make_post(text, hours_ago=i + 1) for i in range(n)]


def _historical(text: str = PANICKING, n: int = 5):
    return [make_post(text, hours_ago=24 * 5 + i) for i in range(n)]


# ===========================================================================
# Fear level
# ===========================================================================


class TestFearLevel:
    def test_empty_posts(self):
        assert fear_level([]) == 0.0

    def test_no_indicators(self):
        assert fear_level([make_post("quiet session")]) == 0.0

    def test_recovery_offsets_half_weight(self):
        assert fear_level(_current()) == pytest.approx(0.09)

    def test_pure_recovery_clamps_to_zero(self):
        assert fear_level([make_post("recovering and oversold")]) == 0.0

    def test_panic_level(self):
        assert fear_level(_historical()) == pytest.approx(0.27)


class TestFearMetrics:
    def test_fading_panic_is_declining(self):
        fear = fear_metrics(_current(), _historical())
        assert fear.fear_trend is Momentum.declining
        assert fear.fear_change == pytest.approx(-66.67, abs=0.01)
        assert fear.capitulation_signals == 10
        assert fear.recovery_signals == 10
        assert fear.panic_keywords == 0

    def test_rising_fear(self):
        fear = fear_metrics(_historical(), _current())
        assert fear.fear_trend is Momentum.rising

    def test_no_history_is_stable(self):
        fear = fear_metrics(_current(), [])
        assert fear.fear_change == 0.0
        assert fear.fear_trend is Momentum.stable


class TestCompressionComponents:
    def test_declining_fear_earns_trend_points(self):
        components = {c.name: c.contribution for c in compression_components(fear_metrics(_current(), _historical()))}
        assert components == {"fear_trend": 40, "recovery": 15, "capitulation": 30}


# ===========================================================================
# Strategy
# ===========================================================================


class TestFearCompression:
    def test_compression_example(self):
        strategy = FearCompression()
        ctx = make_context(strategy)
        analysis = strategy.analyze(Evidence(posts=_current(), historical_posts=_historical()), ctx)

        assert analysis.score == pytest.approx(85.0)
        assert analysis.score >= 40
        assert analysis.details.fear.fear_trend is Momentum.declining
        assert analysis.details.resilience == 0.5

        override = evaluate_overrides(strategy.overrides, analysis.details)
        assert override.rule == "compressing"
        assert override.direction is Direction.bullish
        assert override.strength is Strength.moderate

    def test_resilient_price_gives_strong_signal(self):
        strategy = FearCompression()
        ctx = make_context(strategy)
        bars = make_bars([10.0] * 7 + [11.0] * 3)
        analysis = strategy.analyze(Evidence(posts=_current(), historical_posts=_historical(), prices=bars), ctx)
        override = evaluate_overrides(strategy.overrides, analysis.details)
        assert override.rule == "compressed_and_resilient"
        assert override.strength is Strength.strong

    def test_empty_inputs(self):
        strategy = FearCompression()
        analysis = strategy.analyze(Evidence(posts=[]), make_context(strategy))
        assert analysis.score == 0
        assert evaluate_overrides(strategy.overrides, analysis.details) is None

    @pytest.mark.asyncio
    async def test_fetch_uses_windows_and_prices(self):
        social = FakeSocial(_current() + _historical())
        prices = FakePrices(make_bars([10.0] * 40))
        strategy = FearCompression()
        ctx = make_context(strategy, social=social, prices=prices, current_days=2, historical_days=10)

        evidence = await strategy.fetch(ctx)

        assert len(social.calls) == 2
        assert len(evidence.posts) == 5
        assert len(evidence.historical_posts) == 5
        assert len(evidence.prices) == 31
        assert prices.history_calls[0][0] == "TSLA"
