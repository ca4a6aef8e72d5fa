import pytest

from signal_engine.exceptions import InsufficientDataError
from signal_engine.signals.base import Evidence
from signal_engine.signals.classifier import evaluate_overrides
from signal_engine.signals.simulator import Scenario
from signal_engine.signals.strategies.future_price_path import FuturePricePath
from tests.conftest import FakePrices, FakeSocial, make_bars, make_context, make_post, random_walk


class TestFuturePricePath:
    @pytest.mark.asyncio
    async def test_too_little_history_fails_before_searching(self):
        social = FakeSocial()
        strategy = FuturePricePath()
        ctx = make_context(strategy, social=social, prices=FakePrices(make_bars([10.0] * 10)))

        with pytest.raises(InsufficientDataError) as exc_info:
            await strategy.fetch(ctx)

        assert exc_info.value.required == 20
        assert exc_info.value.available == 10
        assert social.calls == []

    @pytest.mark.asyncio
    async def test_fetch_uses_last_close_as_current_price(self):
        bars = make_bars(random_walk(60))
        social = FakeSocial()
        strategy = FuturePricePath()
        ctx = make_context(strategy, social=social, prices=FakePrices(bars))

        evidence = await strategy.fetch(ctx)

        assert evidence.current_price == bars[-1].close
        assert len(evidence.prices) == 60
        assert social.calls[0].query == "($TSLA OR TSLA) -is:retweet"

    def test_bullish_sentiment_makes_bullish_path_most_likely(self):
        bars = make_bars(random_walk(60))
        posts = [make_post("bullish breakout, rally incoming", likes=50) for _ in range(5)]
        strategy = FuturePricePath()
        ctx = make_context(strategy, days_forward=10)

        analysis = strategy.analyze(Evidence(posts=posts, prices=bars, current_price=bars[-1].close), ctx)
        metrics = analysis.details

        assert metrics.simulation.sentiment_bias == 1.0
        assert metrics.most_likely_scenario is Scenario.bullish
        assert analysis.score == 44.0
        assert len(metrics.simulation.paths) == 3
        assert all(len(p.points) == 11 for p in metrics.simulation.paths)
        assert evaluate_overrides(strategy.overrides, metrics) is not None

    def test_neutral_sentiment_makes_base_most_likely(self):
        bars = make_bars(random_walk(60))
        strategy = FuturePricePath()
        ctx = make_context(strategy)

        analysis = strategy.analyze(Evidence(posts=[], prices=bars, current_price=bars[-1].close), ctx)

        assert analysis.details.most_likely_scenario is Scenario.base
        assert analysis.score == 42.0
        override = evaluate_overrides(strategy.overrides, analysis.details)
        assert override.rule == "no_clear_path"

    def test_seeded_analysis_is_deterministic(self):
        bars = make_bars(random_walk(60))
        strategy = FuturePricePath()
        evidence = Evidence(posts=[], prices=bars, current_price=bars[-1].close)

        first = strategy.analyze(evidence, make_context(strategy))
        second = strategy.analyze(evidence, make_context(strategy))

        assert first.details.model_dump() == second.details.model_dump()

    def test_bias_counts_every_keyword_in_a_post(self):
        bars = make_bars(random_walk(60))
        posts = [make_post("bullish breakout rally surge"), make_post("crash")]
        strategy = FuturePricePath()
        evidence = Evidence(posts=posts, prices=bars, current_price=bars[-1].close)

        analysis = strategy.analyze(evidence, make_context(strategy))

        assert analysis.details.simulation.sentiment_bias == pytest.approx(0.6)
        assert analysis.scores["sentiment_bias"] == pytest.approx(0.6)
