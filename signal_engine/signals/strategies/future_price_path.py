"""Future price paths: GBM scenarios tilted by recent social sentiment."""

from pydantic import BaseModel

from signal_engine.exceptions import InsufficientDataError
from signal_engine.signals.base import Analysis, Evidence, SignalContext, SignalStrategy
from signal_engine.signals.classifier import OverrideRule
from signal_engine.signals.indicators import weighted_sentiment_bias
from signal_engine.signals.registry import registry
from signal_engine.signals.schemas import Direction, SignalType, Strength
from signal_engine.signals.simulator import Scenario, SimulationResult
from signal_engine.signals.windows import keyword_query

BULLISH_KEYWORDS = (
    "bullish", "moon", "pump", "breakout", "rally", "surge", "explosion", "momentum",
    "buying", "accumulating", "rocket", "skyrocket", "uptrend",
)
BEARISH_KEYWORDS = (
    "bearish", "crash", "dump", "sell", "short", "plunge", "decline", "downtrend",
    "resistance", "overbought", "bubble", "overvalued", "correction",
)


class FuturePricePathMetrics(BaseModel):
    simulation: SimulationResult
    most_likely_scenario: Scenario
    most_likely_return: float
    most_likely_probability: float


def _leaning(m: FuturePricePathMetrics, scenario: Scenario, threshold: float) -> bool:
    if m.most_likely_scenario is not scenario:
        return False
    ret = m.most_likely_return
    return ret > threshold if threshold > 0 else ret < threshold


@registry.register(
    name="Future Price Path",
    description="Monte Carlo bullish, base and bearish paths biased by social sentiment",
)
class FuturePricePath(SignalStrategy):
    signal_type = SignalType.future_price_path
    defaults = {"days_forward": 30, "historical_days": 60, "sentiment_days": 7}
    overrides = (
        OverrideRule(
            "strong_bullish_path",
            lambda m: _leaning(m, Scenario.bullish, 20),
            direction=Direction.bullish,
            strength=Strength.strong,
        ),
        OverrideRule(
            "bullish_path",
            lambda m: _leaning(m, Scenario.bullish, 10),
            direction=Direction.bullish,
            strength=Strength.moderate,
        ),
        OverrideRule(
            "strong_bearish_path",
            lambda m: _leaning(m, Scenario.bearish, -20),
            direction=Direction.bearish,
            strength=Strength.strong,
        ),
        OverrideRule(
            "bearish_path",
            lambda m: _leaning(m, Scenario.bearish, -10),
            direction=Direction.bearish,
            strength=Strength.moderate,
        ),
        OverrideRule("no_clear_path", lambda m: True, direction=Direction.neutral, strength=Strength.weak),
    )

    async def fetch(self, ctx: SignalContext) -> Evidence:
        bars = await ctx.prices.get_historical_prices(ctx.ticker, ctx.now - ctx.days("historical_days"), ctx.now)
        required = ctx.simulator.config.min_history
        if len(bars) < required:
            raise InsufficientDataError(
                f"Insufficient price data for {ctx.ticker}: need {required} bars, got {len(bars)}",
                required=required,
                available=len(bars),
            )
        posts = await ctx.fetcher.fetch_recent(keyword_query(ctx.ticker), ctx.days("sentiment_days"), ctx.now)
        return Evidence(posts=posts, prices=bars, current_price=bars[-1].close)

    def analyze(self, evidence: Evidence, ctx: SignalContext) -> Analysis:
        bias = weighted_sentiment_bias(evidence.posts, BULLISH_KEYWORDS, BEARISH_KEYWORDS)
        result = ctx.simulator.simulate(
            [b.close for b in evidence.prices],
            days_forward=ctx.params["days_forward"],
            sentiment_bias=bias,
            now=ctx.now,
            historical_days=ctx.params["historical_days"],
            current_price=evidence.current_price,
        )
        best = result.most_likely
        score = round(best.probability * 100, 2)
        metrics = FuturePricePathMetrics(
            simulation=result,
            most_likely_scenario=best.scenario,
            most_likely_return=best.expected_return,
            most_likely_probability=best.probability,
        )
        return Analysis(
            score=score,
            details=metrics,
            scores={"most_likely_probability": score, "sentiment_bias": round(bias, 4)},
        )
