"""Macro-to-micro: broad market narratives starting to show up in a ticker's discussion."""

from pydantic import BaseModel

from signal_engine.signals.base import Analysis, Evidence, SignalContext, SignalStrategy
from signal_engine.signals.classifier import OverrideRule
from signal_engine.signals.narratives import (
    NarrativeCorrelation,
    NarrativeCorrelator,
    correlation_score,
    relevance_score,
    select_macro_narratives,
    timing_score,
)
from signal_engine.signals.registry import registry
from signal_engine.signals.schemas import Direction, SignalType, Strength, Timeframe
from signal_engine.signals.windows import any_of_query, ticker_query

MACRO_KEYWORDS = (
    "sector", "industry", "economy", "fed", "rates", "inflation",
    "gdp", "regulation", "policy", "trend", "theme", "cycle",
)


class MacroToMicroMetrics(BaseModel):
    correlation_score: float
    timing_score: float
    relevance_score: float
    correlations: list[NarrativeCorrelation]
    macro_narrative_count: int
    macro_post_count: int


@registry.register(
    name="Macro to Micro",
    description="Macro, sector and regulatory narratives translating into ticker discussion",
)
class MacroToMicro(SignalStrategy):
    signal_type = SignalType.macro_to_micro
    defaults = {"lookback_days": 14, "macro_lookback_days": 30}
    overrides = (
        OverrideRule(
            "strong_translation",
            lambda m: m.correlation_score > 70 and m.timing_score > 60,
            direction=Direction.bullish,
            strength=Strength.strong,
            timeframe=Timeframe.medium,
        ),
        OverrideRule(
            "translation",
            lambda m: m.correlation_score > 50 and m.timing_score > 40,
            direction=Direction.bullish,
            strength=Strength.moderate,
            timeframe=Timeframe.medium,
        ),
        OverrideRule(
            "early_translation",
            lambda m: m.correlation_score > 30,
            direction=Direction.bullish,
            strength=Strength.weak,
            timeframe=Timeframe.long,
        ),
    )

    def __init__(self, correlator: NarrativeCorrelator | None = None) -> None:
        self._correlator = correlator or NarrativeCorrelator()

    async def fetch(self, ctx: SignalContext) -> Evidence:
        posts = await ctx.fetcher.fetch_recent(ticker_query(ctx.ticker), ctx.days("lookback_days"), ctx.now)
        macro_posts = await ctx.fetcher.fetch_recent(
            any_of_query(MACRO_KEYWORDS), ctx.days("macro_lookback_days"), ctx.now
        )
        narratives = await ctx.llm.detect_narratives(macro_posts) if macro_posts else []
        return Evidence(
            posts=posts,
            context_posts=macro_posts,
            narratives=select_macro_narratives(narratives),
        )

    def analyze(self, evidence: Evidence, ctx: SignalContext) -> Analysis:
        correlations = self._correlator.correlate(evidence.posts, evidence.narratives)
        scores = {
            "correlation_score": correlation_score(correlations),
            "timing_score": timing_score(correlations),
            "relevance_score": relevance_score(correlations),
        }
        metrics = MacroToMicroMetrics(
            **scores,
            correlations=correlations,
            macro_narrative_count=len(evidence.narratives),
            macro_post_count=len(evidence.context_posts),
        )
        return Analysis(score=scores["correlation_score"], details=metrics, scores=scores)
