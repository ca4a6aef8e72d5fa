"""Offline stand-in for the LLM collaborator.

Sentiment is a keyword tally, narratives come from a fixed theme table and the
baseline classification uses a per-signal default strength and timeframe.
Used in ``mock`` mode and in tests.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from signal_engine.adapters.base import LLMAdapter
from signal_engine.adapters.schemas import Post
from signal_engine.signals.lexicon import PatternSet, contains_any, keywords
from signal_engine.signals.schemas import (
    Direction,
    Momentum,
    Narrative,
    NarrativeCategory,
    SentimentAnalysis,
    SignalClassification,
    SignalType,
    Strength,
    Timeframe,
)

KEYWORD_STEP = 0.2
LABEL_THRESHOLD = 0.2

SENTIMENT_WORDS = PatternSet(
    "mock_sentiment",
    keywords(
        Direction.bullish,
        ("buy", "bullish", "moon", "strong", "beat", "growth", "long", "rocket", "accelerating", "opportunity"),
    )
    + keywords(
        Direction.bearish,
        ("sell", "bearish", "crash", "weak", "disappointing", "concerns", "short", "overblown"),
    )
    + keywords(Direction.neutral, ("hold", "wait", "watch", "monitor")),
)

_DEFAULTS: dict[SignalType, tuple[Strength, Timeframe]] = {
    SignalType.whisper_number: (Strength.moderate, Timeframe.short),
    SignalType.crowded_trade_exit: (Strength.strong, Timeframe.short),
    SignalType.small_cap_smart_money: (Strength.moderate, Timeframe.medium),
    SignalType.fear_compression: (Strength.moderate, Timeframe.short),
    SignalType.macro_to_micro: (Strength.moderate, Timeframe.medium),
    SignalType.management_credibility: (Strength.moderate, Timeframe.long),
    SignalType.early_meme: (Strength.moderate, Timeframe.short),
    SignalType.regulatory_tailwind: (Strength.moderate, Timeframe.long),
    SignalType.global_edge: (Strength.moderate, Timeframe.medium),
    SignalType.future_price_path: (Strength.moderate, Timeframe.medium),
}


@dataclass(frozen=True)
class _Theme:
    slug: str
    title: str
    description: str
    category: NarrativeCategory
    score: float
    momentum: Momentum
    words: tuple[str, ...]
    tickers: tuple[str, ...]

    def matches(self, post: Post) -> bool:
        return contains_any(post.text, self.words) or any(c.upper() in self.tickers for c in post.cashtags)


THEMES = (
    _Theme(
        "rate-cuts", "Rate Cut Expectations",
        "Markets pricing in easing as inflation cools and the Fed signals cuts",
        NarrativeCategory.macro, 0.55, Momentum.rising,
        ("fed", "rates", "rate cut", "inflation", "cpi"), (),
    ),
    _Theme(
        "ai-infrastructure", "AI Infrastructure Buildout",
        "Growing demand for semiconductors and data center capacity driven by AI adoption",
        NarrativeCategory.sector, 0.75, Momentum.rising,
        ("artificial intelligence", " ai ", "semiconductor", "data center", "gpu"), ("NVDA", "TSM", "AMD"),
    ),
    _Theme(
        "energy-value", "Energy Sector Value Play",
        "Traditional energy stocks presenting value opportunities amid oversold conditions",
        NarrativeCategory.sector, 0.4, Momentum.stable,
        ("energy", "oil", "oversold"), ("XOM", "CVX"),
    ),
    _Theme(
        "policy-shift", "Regulatory Policy Shift",
        "New legislation and agency guidance reshaping the outlook for regulated industries",
        NarrativeCategory.regulatory, 0.3, Momentum.stable,
        ("regulation", "policy", "legislation", "sec", "fda"), (),
    ),
    _Theme(
        "meme-revival", "Retail Meme Stock Movement",
        "Retail investor enthusiasm for meme stocks with strong community support",
        NarrativeCategory.meme, 0.6, Momentum.stable,
        ("diamond hands", "moon", "squeeze", "apes"), ("GME", "AMC"),
    ),
)


def keyword_sentiment(text: str) -> SentimentAnalysis:
    matches = SENTIMENT_WORDS.match(text)
    bullish = sum(1 for m in matches if m.category == Direction.bullish)
    bearish = sum(1 for m in matches if m.category == Direction.bearish)
    score = max(-1.0, min(1.0, (bullish - bearish) * KEYWORD_STEP))
    if score > LABEL_THRESHOLD:
        label, confidence = Direction.bullish, 0.8
        reasoning = "Text contains positive indicators suggesting optimistic market sentiment"
    elif score < -LABEL_THRESHOLD:
        label, confidence = Direction.bearish, 0.8
        reasoning = "Text contains negative indicators suggesting pessimistic market sentiment"
    else:
        label, confidence = Direction.neutral, 0.65
        reasoning = "Text shows balanced or neutral market sentiment"
    return SentimentAnalysis(
        score=score,
        label=label,
        confidence=confidence,
        keywords=tuple(m.entry.pattern for m in matches),
        reasoning=reasoning,
    )


def _label(score: float) -> Direction:
    if score > LABEL_THRESHOLD:
        return Direction.bullish
    if score < -LABEL_THRESHOLD:
        return Direction.bearish
    return Direction.neutral


class KeywordLLMAdapter(LLMAdapter):
    async def analyze_sentiment(self, text: str) -> SentimentAnalysis:
        return keyword_sentiment(text)

    async def detect_narratives(self, posts: list[Post]) -> list[Narrative]:
        now = datetime.now(UTC)
        narratives = []
        for theme in THEMES:
            matched = [p for p in posts if theme.matches(p)]
            if not matched:
                continue
            narratives.append(
                Narrative(
                    id=f"narrative-{theme.slug}",
                    title=theme.title,
                    description=theme.description,
                    category=theme.category,
                    sentiment=SentimentAnalysis(
                        score=theme.score,
                        label=_label(theme.score),
                        confidence=0.75,
                        keywords=theme.words,
                        analyzed_at=now,
                    ),
                    post_count=len(matched),
                    top_post_ids=tuple(p.id for p in matched),
                    started_at=min(p.created_at for p in matched),
                    last_seen_at=max(p.created_at for p in matched),
                    momentum=theme.momentum,
                    related_tickers=theme.tickers,
                )
            )
        return narratives

    async def classify_signal(self, posts: list[Post], signal_type: SignalType) -> SignalClassification:
        sentiments = [keyword_sentiment(p.text) for p in posts]
        score = _mean([s.score for s in sentiments], 0.0)
        strength, timeframe = _DEFAULTS[signal_type]
        return SignalClassification(
            type=signal_type,
            strength=strength,
            confidence=_mean([s.confidence for s in sentiments], 0.5),
            direction=_label(score),
            timeframe=timeframe,
            tickers=tuple(dict.fromkeys(c.upper() for p in posts for c in p.cashtags)),
            metadata={"average_sentiment": round(score, 4), "source": "keyword"},
        )


def _mean(values: Sequence[float], default: float) -> float:
    return sum(values) / len(values) if values else default
