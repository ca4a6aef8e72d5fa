"""Whisper numbers: informal earnings, revenue and price expectations."""

from collections.abc import Sequence
from enum import StrEnum

from pydantic import BaseModel

from signal_engine.adapters.schemas import Post
from signal_engine.signals.base import Analysis, Evidence, SignalContext, SignalStrategy
from signal_engine.signals.classifier import OverrideRule
from signal_engine.signals.indicators import safe_ratio
from signal_engine.signals.lexicon import LexiconEntry, PatternSet, classify_by_majority, keywords
from signal_engine.signals.registry import registry
from signal_engine.signals.schemas import Direction, SignalType, Strength, Timeframe
from signal_engine.signals.scoring import ScoreComponent, aggregate, breakdown


class WhisperMetric(StrEnum):
    earnings_per_share = "earnings_per_share"
    revenue = "revenue"
    price_target = "price_target"
    growth_rate = "growth_rate"


WHISPER_PATTERNS = PatternSet(
    "whisper_numbers",
    [
        LexiconEntry(r"\b(?:EPS|earnings|estimate)(?:\s+of)?\s+\$?([\d.]+)", WhisperMetric.earnings_per_share, regex=True),
        LexiconEntry(r"\brevenue(?:\s+of)?\s+\$?([\d.]+)\s*(B|M|billion|million)\b", WhisperMetric.revenue, regex=True),
        LexiconEntry(r"\b(?:price\s+target|PT|target)(?:\s+of)?\s+\$?([\d.]+)", WhisperMetric.price_target, regex=True),
        LexiconEntry(r"([\d.]+)%\s+(?:growth|increase)", WhisperMetric.growth_rate, regex=True),
        LexiconEntry(
            r"\b(?:expects|expecting|forecasts?)\s+(?:of\s+)?([\d.]+)%\s+(?:growth|increase)",
            WhisperMetric.growth_rate,
            regex=True,
        ),
    ],
)

CONTEXT_SENTIMENT = PatternSet(
    "whisper_context",
    keywords(
        Direction.bullish,
        ("beat", "exceed", "outperform", "strong", "bullish", "positive", "upgrade", "buy", "incredible", "momentum", "growth"),
    )
    + keywords(Direction.bearish, ("miss", "weak", "bearish", "negative", "downgrade", "sell", "concern", "risk")),
)

CONTEXT_RADIUS = 50
QUERY_TERMS = ("earnings", "estimate", "target", "expects", "forecast")
MENTIONS_FOR_FULL_VOLUME = 10
SENTIMENT_MAJORITY = 0.6


class WhisperNumber(BaseModel):
    metric: WhisperMetric
    value: float
    confidence: float
    mention_count: int
    sentiment: Direction
    source_post_ids: list[str]


class WhisperMetrics(BaseModel):
    whisper_score: float
    whisper_numbers: list[WhisperNumber]
    total_mentions: int
    average_confidence: float
    agreement: float
    whisper_sentiment: Direction
    components: dict[str, float]


def engagement_confidence(post: Post) -> float:
    author, e = post.author, post.engagement
    followers = min(author.follower_count / 100_000, 1.0)
    engagement = min((e.likes + 2 * e.retweets + e.replies) / 1000, 1.0)
    verified = 0.2 if author.verified else 0.0
    return min(followers * 0.4 + engagement * 0.4 + verified, 1.0)


def parse_numbers(text: str) -> list[tuple[WhisperMetric, float, Direction]]:
    found: list[tuple[WhisperMetric, float, Direction]] = []
    for entry, m in WHISPER_PATTERNS.scan(text):
        try:
            value = float(m.group(1))
        except ValueError:
            continue
        if entry.category == WhisperMetric.revenue:
            value *= 1e9 if m.group(2).lower().startswith("b") else 1e6
        window = text[max(0, m.start() - CONTEXT_RADIUS) : m.start() + CONTEXT_RADIUS]
        found.append((WhisperMetric(entry.category), value, classify_by_majority(window, CONTEXT_SENTIMENT)))
    return found


def extract_whisper_numbers(posts: Sequence[Post]) -> list[WhisperNumber]:
    """Merge mentions of the same metric and value; highest confidence first."""
    merged: dict[tuple[WhisperMetric, float], WhisperNumber] = {}
    for post in posts:
        confidence = engagement_confidence(post)
        for metric, value, sentiment in parse_numbers(post.text):
            key = (metric, value)
            existing = merged.get(key)
            if existing is None:
                merged[key] = WhisperNumber(
                    metric=metric,
                    value=value,
                    confidence=confidence,
                    mention_count=1,
                    sentiment=sentiment,
                    source_post_ids=[post.id],
                )
            else:
                existing.mention_count += 1
                existing.source_post_ids.append(post.id)
                existing.confidence = max(existing.confidence, confidence)
    return sorted(merged.values(), key=lambda w: w.confidence, reverse=True)


def mention_sentiment(numbers: Sequence[WhisperNumber]) -> tuple[Direction, float]:
    """Mention-weighted direction and the share of mentions agreeing with the dominant side."""
    total = sum(w.mention_count for w in numbers)
    bullish = sum(w.mention_count for w in numbers if w.sentiment is Direction.bullish)
    bearish = sum(w.mention_count for w in numbers if w.sentiment is Direction.bearish)
    agreement = safe_ratio(max(bullish, bearish), total)
    if safe_ratio(bullish, total) > SENTIMENT_MAJORITY:
        return Direction.bullish, agreement
    if safe_ratio(bearish, total) > SENTIMENT_MAJORITY:
        return Direction.bearish, agreement
    return Direction.neutral, agreement


@registry.register(
    name="Whisper Number Tracker",
    description="Unofficial estimates circulating before official numbers",
)
class WhisperNumberTracker(SignalStrategy):
    signal_type = SignalType.whisper_number
    defaults = {"lookback_days": 7}
    overrides = (
        OverrideRule(
            "bullish_whispers",
            lambda m: m.whisper_score > 60 and m.whisper_sentiment is Direction.bullish,
            direction=Direction.bullish,
            strength=Strength.moderate,
            timeframe=Timeframe.short,
        ),
        OverrideRule(
            "bearish_whispers",
            lambda m: m.whisper_score > 60 and m.whisper_sentiment is Direction.bearish,
            direction=Direction.bearish,
            strength=Strength.moderate,
            timeframe=Timeframe.short,
        ),
    )

    async def fetch(self, ctx: SignalContext) -> Evidence:
        query = f"${ctx.ticker} (" + " OR ".join(QUERY_TERMS) + ")"
        posts = await ctx.fetcher.fetch_recent(query, ctx.days("lookback_days"), ctx.now)
        return Evidence(posts=posts)

    def analyze(self, evidence: Evidence, ctx: SignalContext) -> Analysis:
        numbers = extract_whisper_numbers(evidence.posts)
        total_mentions = sum(w.mention_count for w in numbers)
        average_confidence = safe_ratio(sum(w.confidence for w in numbers), len(numbers))
        sentiment, agreement = mention_sentiment(numbers)

        components = [
            ScoreComponent("mentions", total_mentions, weight=40 / MENTIONS_FOR_FULL_VOLUME, cap=40),
            ScoreComponent("confidence", average_confidence, weight=40, cap=40),
            ScoreComponent("agreement", agreement, weight=20, cap=20),
        ]
        score = aggregate(components)
        metrics = WhisperMetrics(
            whisper_score=score,
            whisper_numbers=numbers,
            total_mentions=total_mentions,
            average_confidence=average_confidence,
            agreement=agreement,
            whisper_sentiment=sentiment,
            components=breakdown(components),
        )
        return Analysis(score=score, details=metrics, scores={"whisper_score": score})
