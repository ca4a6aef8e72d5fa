"""Crowded trade exit: social attention running far ahead of its baseline."""

from pydantic import BaseModel

from signal_engine.signals.base import Analysis, Evidence, SignalContext, SignalStrategy
from signal_engine.signals.classifier import OverrideRule
from signal_engine.signals.indicators import (
    VolumeMetrics,
    aggregate_sentiment,
    keyword_fraction,
    peak_engagement,
    retail_participation,
    volume_metrics,
)
from signal_engine.signals.registry import registry
from signal_engine.signals.schemas import Direction, SignalType
from signal_engine.signals.scoring import ScoreComponent, aggregate, breakdown

EUPHORIA_KEYWORDS = (
    "moon", "rocket", "lambo", "to the moon", "100x", "life changing",
    "generational wealth", "all in", "🚀", "💎", "🌙",
)
CAPITULATION_KEYWORDS = (
    "giving up", "done with", "never again", "selling everything", "capitulation",
    "bottom", "crash", "worthless", "scam", "rugpull",
)

# Sub-score caps
VOLUME_CAP = 40
RETAIL_CAP = 20
EUPHORIA_CAP = 30
PEAK_CAP = 10
# Inputs that earn the full cap
VOLUME_FULL_PCT = 500
PEAK_FULL_ENGAGEMENT = 10_000


class SentimentShift(BaseModel):
    current_sentiment: Direction
    previous_sentiment: Direction
    shifted: bool
    euphoria: float
    capitulation: float


class CrowdedTradeMetrics(BaseModel):
    crowded_score: float
    volume: VolumeMetrics
    peak_engagement: int
    retail_participation: float
    sentiment_shift: SentimentShift
    components: dict[str, float]


@registry.register(
    name="Crowded Trade Exit",
    description="Volume, retail share and euphoria far above the historical baseline",
)
class CrowdedTradeExit(SignalStrategy):
    signal_type = SignalType.crowded_trade_exit
    defaults = {"current_days": 3, "historical_days": 30}
    overrides = (
        OverrideRule("overcrowded", lambda m: m.crowded_score > 70, direction=Direction.bearish),
        OverrideRule(
            "washout",
            lambda m: m.crowded_score < 30 and m.sentiment_shift.capitulation > 0.7,
            direction=Direction.bullish,
        ),
    )

    async def fetch(self, ctx: SignalContext) -> Evidence:
        windows = await ctx.fetcher.fetch_windows(
            ctx.ticker, ctx.days("current_days"), ctx.days("historical_days"), ctx.now
        )
        return Evidence(posts=windows.current, historical_posts=windows.historical)

    def analyze(self, evidence: Evidence, ctx: SignalContext) -> Analysis:
        current, historical = evidence.posts, evidence.historical_posts
        volume = volume_metrics(current, historical, ctx.days("current_days"), ctx.days("historical_days"))
        current_sentiment = aggregate_sentiment(current).label
        previous_sentiment = aggregate_sentiment(historical).label
        shift = SentimentShift(
            current_sentiment=current_sentiment,
            previous_sentiment=previous_sentiment,
            shifted=current_sentiment != previous_sentiment,
            euphoria=keyword_fraction(current, EUPHORIA_KEYWORDS),
            capitulation=keyword_fraction(current, CAPITULATION_KEYWORDS),
        )
        peak = peak_engagement(current)
        retail = retail_participation(current)

        components = [
            ScoreComponent("volume", volume.increase_pct, weight=VOLUME_CAP / VOLUME_FULL_PCT, cap=VOLUME_CAP),
            ScoreComponent("retail", retail, weight=RETAIL_CAP, cap=RETAIL_CAP),
            ScoreComponent("euphoria", shift.euphoria, weight=EUPHORIA_CAP, cap=EUPHORIA_CAP),
            ScoreComponent("peak_engagement", peak, weight=PEAK_CAP / PEAK_FULL_ENGAGEMENT, cap=PEAK_CAP),
        ]
        score = aggregate(components)
        metrics = CrowdedTradeMetrics(
            crowded_score=score,
            volume=volume,
            peak_engagement=peak,
            retail_participation=retail,
            sentiment_shift=shift,
            components=breakdown(components),
        )
        return Analysis(score=score, details=metrics, scores={"crowded_score": score})
