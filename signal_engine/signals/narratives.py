"""Match a ticker's local discussion against broad market narratives.

A narrative counts as translating into the ticker's discussion when its
keywords show up in the local posts. Narratives whose correlation falls below
``MIN_CORRELATION`` are dropped from the result, not just scored low.
"""

from collections.abc import Iterable, Sequence

from pydantic import BaseModel

from signal_engine.adapters.schemas import Post
from signal_engine.signals.indicators import days_between, safe_ratio
from signal_engine.signals.lexicon import PatternSet, classify_by_majority, keywords
from signal_engine.signals.schemas import Direction, Momentum, Narrative, NarrativeCategory
from signal_engine.signals.scoring import ScoreComponent, aggregate

MACRO_CATEGORIES = frozenset({NarrativeCategory.macro, NarrativeCategory.sector, NarrativeCategory.regulatory})
MIN_CORRELATION = 0.4
TITLE_SIMILARITY_THRESHOLD = 0.7
MIN_KEYWORD_LENGTH = 4

_MOMENTUM_RANK = {Momentum.rising: 2, Momentum.stable: 1, Momentum.declining: 0}
_MOMENTUM_RELEVANCE = {Momentum.rising: 1.0, Momentum.stable: 0.7, Momentum.declining: 0.4}

LOCAL_SENTIMENT = PatternSet(
    "local_sentiment",
    keywords(
        Direction.bullish,
        ("buy", "long", "bullish", "opportunity", "growth", "potential", "breakout", "upside", "positive", "strong"),
    )
    + keywords(
        Direction.bearish,
        ("sell", "short", "bearish", "risk", "decline", "concern", "downside", "negative", "weak", "warning"),
    ),
)


class NarrativeCorrelation(BaseModel):
    narrative: Narrative
    correlation: float
    shared_keywords: list[str]
    time_lag_days: float
    relevance: float


def narrative_keywords(narrative: Narrative) -> list[str]:
    words = [k.lower() for k in narrative.sentiment.keywords]
    for text in (narrative.title, narrative.description):
        for raw in text.lower().split():
            word = raw.strip(".,:;!?()[]\"'")
            if len(word) >= MIN_KEYWORD_LENGTH:
                words.append(word)
    return list(dict.fromkeys(w for w in words if w))


def title_similarity(a: str, b: str) -> float:
    """Jaccard similarity of the character sets of two titles."""
    left, right = set(a.lower()), set(b.lower())
    return safe_ratio(len(left & right), len(left | right))


def deduplicate(narratives: Iterable[Narrative]) -> list[Narrative]:
    unique: list[Narrative] = []
    for narrative in narratives:
        if not any(title_similarity(n.title, narrative.title) > TITLE_SIMILARITY_THRESHOLD for n in unique):
            unique.append(narrative)
    return unique


def rank_by_momentum(narratives: Iterable[Narrative], limit: int = 10) -> list[Narrative]:
    # sorted() is stable, so equal momentum keeps detection order
    return sorted(narratives, key=lambda n: _MOMENTUM_RANK[n.momentum], reverse=True)[:limit]


def select_macro_narratives(narratives: Iterable[Narrative], limit: int = 10) -> list[Narrative]:
    macro = [n for n in narratives if n.category in MACRO_CATEGORIES]
    return rank_by_momentum(deduplicate(macro), limit)


def overall_sentiment(posts: Sequence[Post]) -> Direction:
    """Bullish or bearish only when that side outnumbers the other by 1.5x."""
    labels = [classify_by_majority(p.text, LOCAL_SENTIMENT) for p in posts]
    bullish = labels.count(Direction.bullish)
    bearish = labels.count(Direction.bearish)
    if bullish > bearish * 1.5:
        return Direction.bullish
    if bearish > bullish * 1.5:
        return Direction.bearish
    return Direction.neutral


class NarrativeCorrelator:
    def __init__(self, min_correlation: float = MIN_CORRELATION) -> None:
        self._min_correlation = min_correlation

    def correlate(self, posts: Sequence[Post], narratives: Iterable[Narrative]) -> list[NarrativeCorrelation]:
        """Correlations at or above the threshold, strongest first."""
        local_sentiment = overall_sentiment(posts)
        kept = [
            c
            for c in (self.correlate_one(posts, n, local_sentiment) for n in narratives)
            if c.correlation >= self._min_correlation
        ]
        return sorted(kept, key=lambda c: c.correlation, reverse=True)

    def correlate_one(
        self,
        posts: Sequence[Post],
        narrative: Narrative,
        local_sentiment: Direction | None = None,
    ) -> NarrativeCorrelation:
        terms = narrative_keywords(narrative)
        shared: list[str] = []
        match_count = 0
        for post in posts:
            text = post.text.lower()
            for term in terms:
                if term in text:
                    match_count += 1
                    if term not in shared:
                        shared.append(term)

        overlap = len(shared) / max(len(terms), 1)
        frequency = match_count / max(len(posts), 1)
        if local_sentiment is None:
            local_sentiment = overall_sentiment(posts)

        return NarrativeCorrelation(
            narrative=narrative,
            correlation=min(overlap * 0.6 + frequency * 0.4, 1.0),
            shared_keywords=shared,
            time_lag_days=self._time_lag(posts, narrative),
            relevance=self._relevance(posts, narrative, local_sentiment),
        )

    @staticmethod
    def _time_lag(posts: Sequence[Post], narrative: Narrative) -> float:
        if not posts:
            return 0.0
        latest = max(p.created_at for p in posts)
        return round(max(days_between(narrative.last_seen_at, latest), 0.0), 2)

    @staticmethod
    def _relevance(posts: Sequence[Post], narrative: Narrative, local_sentiment: Direction) -> float:
        if not posts:
            return 0.0
        if local_sentiment == narrative.sentiment.label:
            sentiment_match = 1.0
        elif local_sentiment is Direction.neutral:
            sentiment_match = 0.5
        else:
            sentiment_match = 0.0
        category = 1.0 if narrative.category in MACRO_CATEGORIES else 0.5
        return sentiment_match * 0.4 + category * 0.3 + _MOMENTUM_RELEVANCE[narrative.momentum] * 0.3


# ---------------------------------------------------------------------------
# Aggregate scores
# ---------------------------------------------------------------------------


def correlation_score(correlations: Sequence[NarrativeCorrelation]) -> float:
    if not correlations:
        return 0.0
    average = sum(c.correlation for c in correlations) / len(correlations)
    return aggregate(
        [
            ScoreComponent("strength", average, weight=70, cap=70),
            ScoreComponent("breadth", min(len(correlations) / 5, 1.0), weight=30, cap=30),
        ]
    )


def timing_score(correlations: Sequence[NarrativeCorrelation]) -> float:
    """Peaks for a 3-7 day lag between the narrative and local discussion."""
    if not correlations:
        return 0.0
    lag = sum(c.time_lag_days for c in correlations) / len(correlations)
    if 3 <= lag <= 7:
        return 100.0
    if 1 <= lag < 3:
        return 70.0
    if 7 < lag <= 14:
        return 50.0
    if lag > 14:
        return 20.0
    return 40.0


def relevance_score(correlations: Sequence[NarrativeCorrelation]) -> float:
    if not correlations:
        return 0.0
    average = sum(c.relevance for c in correlations) / len(correlations)
    shared = sum(len(c.shared_keywords) for c in correlations) / len(correlations)
    return aggregate(
        [
            ScoreComponent("relevance", average, weight=80, cap=80),
            ScoreComponent("keyword_coverage", min(shared / 10, 1.0), weight=20, cap=20),
        ]
    )
