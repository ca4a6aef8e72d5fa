"""Fear compression: panic language fading while the price holds up."""

from collections import Counter
from collections.abc import Sequence

from pydantic import BaseModel

from signal_engine.adapters.schemas import Post
from signal_engine.signals.base import Analysis, Evidence, SignalContext, SignalStrategy
from signal_engine.signals.classifier import OverrideRule
from signal_engine.signals.indicators import clamp, price_resilience, safe_ratio
from signal_engine.signals.lexicon import PatternSet, count_by_category, keywords
from signal_engine.signals.registry import registry
from signal_engine.signals.schemas import Direction, Momentum, SignalType, Strength
from signal_engine.signals.scoring import ScoreComponent, aggregate, breakdown

PANIC = "panic"
CAPITULATION = "capitulation"
RECOVERY = "recovery"

FEAR_INDICATORS = PatternSet(
    "fear_indicators",
    [
        *keywords(PANIC, ("crash", "panic", "bloodbath", "massacre", "collapse"), weight=0.9),
        *keywords(PANIC, ("dump", "plummet", "free fall", "disaster"), weight=0.8),
        *keywords(PANIC, ("tanking",), weight=0.7),
        *keywords(CAPITULATION, ("capitulation",), weight=1.0),
        *keywords(CAPITULATION, ("giving up", "selling everything", "never again"), weight=0.9),
        *keywords(CAPITULATION, ("done with", "can't take it", "cutting losses"), weight=0.8),
        *keywords(CAPITULATION, ("bottom",), weight=0.7),
        *keywords(RECOVERY, ("buying the dip",), weight=0.9),
        *keywords(RECOVERY, ("resilient", "recovering", "oversold", "accumulating"), weight=0.8),
        *keywords(RECOVERY, ("holding up", "bouncing", "opportunity", "stabilizing"), weight=0.7),
    ],
)

# Ten full-weight indicators in one post is treated as maximum fear
MAX_INDICATORS_PER_POST = 10
RECOVERY_DAMPING = 0.5
TREND_CHANGE_PCT = 20


class FearMetrics(BaseModel):
    current_fear_level: float
    historical_fear_level: float
    fear_change: float
    fear_trend: Momentum
    panic_keywords: int
    capitulation_signals: int
    recovery_signals: int


class FearCompressionMetrics(BaseModel):
    compression_score: float
    fear: FearMetrics
    resilience: float
    components: dict[str, float]

    @property
    def fear_level(self) -> float:
        return self.fear.current_fear_level


def fear_level(posts: Sequence[Post]) -> float:
    """Net fear in [0, 1]; recovery language offsets half its weight."""
    if not posts:
        return 0.0
    total = 0.0
    hits = 0
    for post in posts:
        for m in FEAR_INDICATORS.match(post.text):
            total += m.weight * (-RECOVERY_DAMPING if m.category == RECOVERY else 1.0)
            hits += 1
    if not hits:
        return 0.0
    return clamp(total / (len(posts) * MAX_INDICATORS_PER_POST), 0.0, 1.0)


def indicator_counts(posts: Sequence[Post]) -> Counter[str]:
    counts: Counter[str] = Counter()
    for post in posts:
        counts.update(count_by_category(FEAR_INDICATORS.match(post.text)))
    return counts


def fear_metrics(current: Sequence[Post], historical: Sequence[Post]) -> FearMetrics:
    current_level = fear_level(current)
    historical_level = fear_level(historical)
    change = safe_ratio(current_level - historical_level, historical_level) * 100
    if change > TREND_CHANGE_PCT:
        trend = Momentum.rising
    elif change < -TREND_CHANGE_PCT:
        trend = Momentum.declining
    else:
        trend = Momentum.stable
    counts = indicator_counts(current)
    return FearMetrics(
        current_fear_level=current_level,
        historical_fear_level=historical_level,
        fear_change=change,
        fear_trend=trend,
        panic_keywords=counts[PANIC],
        capitulation_signals=counts[CAPITULATION],
        recovery_signals=counts[RECOVERY],
    )


def compression_components(fear: FearMetrics) -> list[ScoreComponent]:
    if fear.fear_trend is Momentum.declining:
        trend_points = 40
    elif fear.fear_trend is Momentum.stable and fear.current_fear_level > 0.5:
        trend_points = 20
    else:
        trend_points = 0

    negative = fear.panic_keywords + fear.capitulation_signals
    recovery_ratio = safe_ratio(fear.recovery_signals, negative + fear.recovery_signals) if negative else 0.0

    if fear.capitulation_signals > 5 and fear.capitulation_signals > fear.panic_keywords:
        capitulation_points = 30
    elif fear.capitulation_signals > 3:
        capitulation_points = 15
    else:
        capitulation_points = 0

    return [
        ScoreComponent("fear_trend", trend_points, cap=40),
        ScoreComponent("recovery", recovery_ratio, weight=30, cap=30),
        ScoreComponent("capitulation", capitulation_points, cap=30),
    ]


@registry.register(
    name="Fear Compression Scan",
    description="Fear subsiding against its baseline while the price stays resilient",
)
class FearCompression(SignalStrategy):
    signal_type = SignalType.fear_compression
    defaults = {"current_days": 3, "historical_days": 14, "price_days": 30}
    overrides = (
        OverrideRule(
            "compressed_and_resilient",
            lambda m: m.compression_score > 70 and m.resilience > 0.6,
            direction=Direction.bullish,
            strength=Strength.strong,
        ),
        OverrideRule(
            "compressing",
            lambda m: m.compression_score > 50 or (m.fear_level > 0.7 and m.resilience > 0.7),
            direction=Direction.bullish,
            strength=Strength.moderate,
        ),
        OverrideRule(
            "fear_rising",
            lambda m: m.fear_level > 0.8 and m.fear.fear_trend is Momentum.rising,
            direction=Direction.bearish,
            strength=Strength.moderate,
        ),
    )

    async def fetch(self, ctx: SignalContext) -> Evidence:
        windows = await ctx.fetcher.fetch_windows(
            ctx.ticker, ctx.days("current_days"), ctx.days("historical_days"), ctx.now
        )
        prices = await ctx.prices.get_historical_prices(ctx.ticker, ctx.now - ctx.days("price_days"), ctx.now)
        return Evidence(posts=windows.current, historical_posts=windows.historical, prices=prices)

    def analyze(self, evidence: Evidence, ctx: SignalContext) -> Analysis:
        fear = fear_metrics(evidence.posts, evidence.historical_posts)
        components = compression_components(fear)
        score = aggregate(components, round_result=False)
        metrics = FearCompressionMetrics(
            compression_score=score,
            fear=fear,
            resilience=price_resilience(evidence.prices),
            components=breakdown(components),
        )
        return Analysis(
            score=score,
            details=metrics,
            scores={"compression_score": score, "resilience": metrics.resilience},
        )
