"""Shared fixtures: post/profile factories, recording fake collaborators and a frozen clock."""

from datetime import UTC, datetime, timedelta
from itertools import count

import numpy as np
import pytest

from signal_engine.adapters.base import LLMAdapter, PriceAdapter, SocialAdapter
from signal_engine.adapters.schemas import EngagementMetrics, Post, PriceBar, SearchParams, UserProfile
from signal_engine.signals.base import SignalContext, SignalStrategy
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
from signal_engine.signals.simulator import PricePathSimulator
from signal_engine.signals.windows import TemporalWindowFetcher

NOW = datetime(2024, 6, 14, 12, 0, tzinfo=UTC)

_ids = count(1)


def make_profile(
    username: str = "trader",
    followers: int = 1_000,
    following: int = 100,
    verified: bool = False,
    age_days: float = 1_000,
    bio: str | None = None,
    user_id: str | None = None,
) -> UserProfile:
    return UserProfile(
        id=user_id or f"u-{username}",
        username=username,
        display_name=username.title(),
        verified=verified,
        follower_count=followers,
        following_count=following,
        created_at=NOW - timedelta(days=age_days),
        bio=bio,
    )


def make_post(
    text: str,
    author: UserProfile | None = None,
    hours_ago: float = 1.0,
    likes: int = 0,
    retweets: int = 0,
    replies: int = 0,
    quotes: int = 0,
    hashtags: tuple[str, ...] = (),
    mentions: tuple[str, ...] = (),
    cashtags: tuple[str, ...] = (),
    post_id: str | None = None,
) -> Post:
    return Post(
        id=post_id or f"p-{next(_ids)}",
        text=text,
        author=author or make_profile(),
        created_at=NOW - timedelta(hours=hours_ago),
        engagement=EngagementMetrics(likes=likes, retweets=retweets, replies=replies, quotes=quotes),
        hashtags=hashtags,
        mentions=mentions,
        cashtags=cashtags,
    )


def make_bars(closes: list[float], end: datetime = NOW) -> list[PriceBar]:
    start = end - timedelta(days=len(closes) - 1)
    return [
        PriceBar(
            timestamp=start + timedelta(days=i),
            open=c,
            high=c * 1.01,
            low=c * 0.99,
            close=c,
            volume=1_000_000,
        )
        for i, c in enumerate(closes)
    ]


def random_walk(n: int, start: float = 100.0, seed: int = 42) -> list[float]:
    rng = np.random.default_rng(seed)
    return list(start * np.exp(np.cumsum(rng.normal(0.0005, 0.02, n))))


def make_narrative(
    title: str,
    keywords: tuple[str, ...] = (),
    category: NarrativeCategory = NarrativeCategory.macro,
    momentum: Momentum = Momentum.stable,
    label: Direction = Direction.bullish,
    days_ago: float = 5,
    narrative_id: str | None = None,
) -> Narrative:
    return Narrative(
        id=narrative_id or title.lower().replace(" ", "-"),
        title=title,
        category=category,
        sentiment=SentimentAnalysis(score=0.5, label=label, confidence=0.8, keywords=keywords),
        started_at=NOW - timedelta(days=days_ago + 3),
        last_seen_at=NOW - timedelta(days=days_ago),
        momentum=momentum,
    )


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class FakeSocial(SocialAdapter):
    """Returns posts whose ``created_at`` falls inside the requested window; records every call.

    ``routes`` maps a query substring to its own post list, for strategies that run
    more than one search.
    """

    def __init__(
        self,
        posts: list[Post] | None = None,
        error: Exception | None = None,
        routes: dict[str, list[Post]] | None = None,
    ) -> None:
        self.posts = posts or []
        self.error = error
        self.routes = routes or {}
        self.calls: list[SearchParams] = []

    async def search_posts(self, params: SearchParams) -> list[Post]:
        self.calls.append(params)
        if self.error is not None:
            raise self.error
        posts = next((p for key, p in self.routes.items() if key in params.query), self.posts)
        return [
            p
            for p in posts
            if (params.start_time is None or p.created_at >= params.start_time)
            and (params.end_time is None or p.created_at <= params.end_time)
        ]


class FakeLLM(LLMAdapter):
    def __init__(
        self,
        direction: Direction = Direction.neutral,
        confidence: float = 0.42,
        tickers: tuple[str, ...] = (),
        narratives: list[Narrative] | None = None,
    ) -> None:
        self.direction = direction
        self.confidence = confidence
        self.tickers = tickers
        self.narratives = narratives or []
        self.classified: list[tuple[list[Post], SignalType]] = []
        self.narrative_calls: list[list[Post]] = []

    async def analyze_sentiment(self, text: str):
        raise NotImplementedError

    async def detect_narratives(self, posts: list[Post]) -> list[Narrative]:
        self.narrative_calls.append(posts)
        return self.narratives

    async def classify_signal(self, posts: list[Post], signal_type: SignalType) -> SignalClassification:
        self.classified.append((posts, signal_type))
        return SignalClassification(
            type=signal_type,
            strength=Strength.moderate,
            confidence=self.confidence,
            direction=self.direction,
            timeframe=Timeframe.medium,
            tickers=self.tickers,
            generated_at=NOW,
        )


class FakePrices(PriceAdapter):
    def __init__(self, bars: list[PriceBar] | None = None, current: float = 10.0) -> None:
        self.bars = bars or []
        self.current = current
        self.history_calls: list[tuple[str, datetime, datetime]] = []

    async def get_historical_prices(self, ticker: str, start: datetime, end: datetime) -> list[PriceBar]:
        self.history_calls.append((ticker, start, end))
        return [b for b in self.bars if start <= b.timestamp <= end]

    async def get_current_price(self, ticker: str) -> float:
        return self.current


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


def make_context(
    strategy: SignalStrategy,
    ticker: str = "TSLA",
    social: FakeSocial | None = None,
    llm: FakeLLM | None = None,
    prices: FakePrices | None = None,
    now: datetime = NOW,
    **params: int,
) -> SignalContext:
    return SignalContext(
        ticker=ticker,
        now=now,
        params=strategy.resolve_params(params),
        fetcher=TemporalWindowFetcher(social or FakeSocial()),
        llm=llm or FakeLLM(),
        prices=prices or FakePrices(),
        simulator=PricePathSimulator(seed=7),
    )
