"""Statistics shared by the signal strategies.

Everything here is a pure function of its inputs. Empty post lists, zero
denominators and missing optional fields resolve to an explicit neutral value
instead of raising.
"""

import math
from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from pydantic import BaseModel

from signal_engine.adapters.schemas import Post, PriceBar, UserProfile
from signal_engine.signals.lexicon import (
    RETAIL_SENTIMENT,
    LexiconEntry,
    PatternSet,
    classify_by_majority,
    contains_any,
)
from signal_engine.signals.schemas import Direction

RETAIL_FOLLOWER_THRESHOLD = 10_000
SENTIMENT_MAJORITY = 0.6
VIRAL_RATE_PER_HOUR = 2.0
HASHTAG_MIN_COUNT = 5
HASHTAG_AUTHOR_SHARE = 0.5
COORDINATION_AUTHOR_SHARE = 0.3
ACCELERATION_GROWTH_PCT = 20.0


def clamp(value: float, low: float, high: float) -> float:
    if math.isnan(value):
        return low
    return max(low, min(high, value))


def safe_ratio(numerator: float, denominator: float, default: float = 0.0) -> float:
    if not denominator:
        return default
    return numerator / denominator


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def days_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 86400


# ---------------------------------------------------------------------------
# Engagement
# ---------------------------------------------------------------------------


def raw_engagement(post: Post) -> int:
    e = post.engagement
    return e.likes + e.retweets + e.replies


def weighted_engagement(post: Post, include_quotes: bool = True) -> int:
    e = post.engagement
    total = e.likes + 2 * e.retweets + e.replies
    if include_quotes:
        total += e.quotes
    return total


def peak_engagement(posts: Iterable[Post]) -> int:
    return max((weighted_engagement(p) for p in posts), default=0)


def distinct_authors(posts: Iterable[Post]) -> dict[str, UserProfile]:
    authors: dict[str, UserProfile] = {}
    for post in posts:
        authors.setdefault(post.author.id, post.author)
    return authors


def retail_participation(posts: Sequence[Post], threshold: int = RETAIL_FOLLOWER_THRESHOLD) -> float:
    """Share of posts whose author is below the follower threshold."""
    retail = sum(1 for p in posts if p.author.follower_count < threshold)
    return safe_ratio(retail, len(posts))


def account_age_days(profile: UserProfile, now: datetime) -> float:
    return max(days_between(profile.created_at, now), 0.0)


def recency_score(created_at: datetime, now: datetime, horizon_days: float) -> float:
    """1.0 for a post made at ``now``, falling linearly to 0 at ``horizon_days`` old."""
    return clamp(1 - days_between(created_at, now) / horizon_days, 0.0, 1.0)


# ---------------------------------------------------------------------------
# Volume
# ---------------------------------------------------------------------------


class VolumeMetrics(BaseModel):
    current_count: int
    historical_count: int
    historical_average: float
    increase_pct: float


def volume_metrics(
    current: Sequence[Post],
    historical: Sequence[Post],
    current_window: timedelta,
    historical_window: timedelta,
) -> VolumeMetrics:
    """Compare the current window's post count with the historical count scaled to the same length."""
    historical_average = len(historical) * safe_ratio(
        current_window.total_seconds(), historical_window.total_seconds()
    )
    increase_pct = safe_ratio(len(current) - historical_average, historical_average) * 100
    return VolumeMetrics(
        current_count=len(current),
        historical_count=len(historical),
        historical_average=historical_average,
        increase_pct=increase_pct,
    )


# ---------------------------------------------------------------------------
# Sentiment
# ---------------------------------------------------------------------------


class SentimentBreakdown(BaseModel):
    bullish: int = 0
    bearish: int = 0
    neutral: int = 0
    label: Direction = Direction.neutral


def aggregate_sentiment(posts: Sequence[Post], pattern_set: PatternSet = RETAIL_SENTIMENT) -> SentimentBreakdown:
    """Per-post keyword-majority labels; the aggregate needs a >60% share in one direction."""
    counts = Counter(classify_by_majority(p.text, pattern_set) for p in posts)
    total = len(posts)
    label = Direction.neutral
    if total:
        if counts[Direction.bullish] / total > SENTIMENT_MAJORITY:
            label = Direction.bullish
        elif counts[Direction.bearish] / total > SENTIMENT_MAJORITY:
            label = Direction.bearish
    return SentimentBreakdown(
        bullish=counts[Direction.bullish],
        bearish=counts[Direction.bearish],
        neutral=counts[Direction.neutral],
        label=label,
    )


def keyword_fraction(posts: Sequence[Post], words: Iterable[str]) -> float:
    """Fraction of posts containing at least one of ``words``."""
    words = tuple(words)
    hits = sum(1 for p in posts if contains_any(p.text, words))
    return clamp(safe_ratio(hits, len(posts)), 0.0, 1.0)


def weighted_sentiment_bias(posts: Sequence[Post], bullish: Iterable[str], bearish: Iterable[str]) -> float:
    """Engagement-weighted keyword polarity in [-1, 1]; 0 when no keyword is present.

    Every matching keyword adds the post's weight, so a post naming three bullish
    terms counts three times.
    """
    bullish, bearish = tuple(bullish), tuple(bearish)
    bull_weight = bear_weight = 0.0
    for post in posts:
        weight = math.log(weighted_engagement(post, include_quotes=False) + 1) / 10 + 1
        bull_weight += weight * sum(1 for word in bullish if contains_any(post.text, (word,)))
        bear_weight += weight * sum(1 for word in bearish if contains_any(post.text, (word,)))
    return clamp(safe_ratio(bull_weight - bear_weight, bull_weight + bear_weight), -1.0, 1.0)


# ---------------------------------------------------------------------------
# Hashtags and activity timing
# ---------------------------------------------------------------------------


class HashtagStat(BaseModel):
    tag: str
    count: int
    growth_rate: float
    authors: int


class HashtagAnalysis(BaseModel):
    top_hashtags: list[HashtagStat] = []
    unique_hashtags: int = 0
    coordinated: bool = False
    viral_hashtags: list[str] = []


def hashtag_analysis(posts: Sequence[Post], top_n: int = 10) -> HashtagAnalysis:
    counts: Counter[str] = Counter()
    first_seen: dict[str, datetime] = {}
    last_seen: dict[str, datetime] = {}
    users: defaultdict[str, set[str]] = defaultdict(set)

    for post in posts:
        for raw in post.hashtags:
            tag = raw.lower().lstrip("#")
            counts[tag] += 1
            first_seen[tag] = min(first_seen.get(tag, post.created_at), post.created_at)
            last_seen[tag] = max(last_seen.get(tag, post.created_at), post.created_at)
            users[tag].add(post.author.id)

    stats = [
        HashtagStat(
            tag=tag,
            count=count,
            growth_rate=count / max(hours_between(first_seen[tag], last_seen[tag]), 1.0),
            authors=len(users[tag]),
        )
        for tag, count in counts.most_common()
    ]
    author_total = len(distinct_authors(posts))
    coordinated = any(
        s.authors > author_total * HASHTAG_AUTHOR_SHARE and s.count > HASHTAG_MIN_COUNT for s in stats
    )
    top = stats[:top_n]
    return HashtagAnalysis(
        top_hashtags=top,
        unique_hashtags=len(counts),
        coordinated=coordinated,
        viral_hashtags=[
            s.tag for s in top if s.growth_rate > VIRAL_RATE_PER_HOUR and s.count > HASHTAG_MIN_COUNT
        ],
    )


def hour_bucket(moment: datetime) -> datetime:
    return moment.replace(minute=0, second=0, microsecond=0)


def coordinated_activity(posts: Sequence[Post]) -> bool:
    """True when one clock hour holds more than 30% of the distinct authors."""
    buckets: defaultdict[datetime, set[str]] = defaultdict(set)
    for post in posts:
        buckets[hour_bucket(post.created_at)].add(post.author.id)
    if not buckets:
        return False
    largest = max(len(authors) for authors in buckets.values())
    return largest > len(distinct_authors(posts)) * COORDINATION_AUTHOR_SHARE


class EngagementVelocity(BaseModel):
    current_rate: float = 0.0
    growth_rate: float = 0.0
    accelerating: bool = False
    peak_hour: datetime | None = None
    average_engagement: float = 0.0
    retweet_to_like_ratio: float = 0.0


def engagement_velocity(posts: Sequence[Post]) -> EngagementVelocity:
    """Split posts in time order and compare engagement of the later half with the earlier one."""
    if not posts:
        return EngagementVelocity()

    ordered = sorted(posts, key=lambda p: p.created_at)
    midpoint = len(ordered) // 2
    first_half = sum(raw_engagement(p) for p in ordered[:midpoint])
    second_half = sum(raw_engagement(p) for p in ordered[midpoint:])
    growth_rate = safe_ratio(second_half - first_half, first_half) * 100

    recent_hours = max(hours_between(ordered[midpoint].created_at, ordered[-1].created_at), 1.0)

    hourly: defaultdict[datetime, int] = defaultdict(int)
    for post in ordered:
        hourly[hour_bucket(post.created_at)] += raw_engagement(post)
    peak_hour = None
    best = 0
    for hour, total in hourly.items():
        if total > best:
            peak_hour, best = hour, total

    total_engagement = sum(raw_engagement(p) for p in ordered)
    retweets = sum(p.engagement.retweets for p in ordered)
    likes = sum(p.engagement.likes for p in ordered)
    return EngagementVelocity(
        current_rate=second_half / recent_hours,
        growth_rate=growth_rate,
        accelerating=growth_rate > ACCELERATION_GROWTH_PCT,
        peak_hour=peak_hour,
        average_engagement=total_engagement / len(ordered),
        retweet_to_like_ratio=safe_ratio(retweets, likes),
    )


# ---------------------------------------------------------------------------
# Geography
# ---------------------------------------------------------------------------

# The US abbreviation is matched case-sensitively so the pronoun "us" is not a region
REGIONS = PatternSet(
    "regions",
    [
        LexiconEntry(
            r"\b((?-i:USA?)|United States|America|Canada|Mexico|North America)\b", "North America", regex=True
        ),
        LexiconEntry(r"\b(Europe|EU|European|UK|Britain|Germany|France|Spain|Italy)\b", "Europe", regex=True),
        LexiconEntry(r"\b(Asia|China|Japan|South Korea|India|Singapore|Hong Kong|Taiwan)\b", "Asia", regex=True),
        LexiconEntry(r"\b(Latin America|Brazil|Argentina|Chile|Colombia|Peru)\b", "Latin America", regex=True),
        LexiconEntry(r"\b(Middle East|UAE|Saudi Arabia|Israel|Dubai|Qatar)\b", "Middle East", regex=True),
        LexiconEntry(r"\b(Africa|South Africa|Nigeria|Kenya|Egypt)\b", "Africa", regex=True),
        LexiconEntry(r"\b(Australia|New Zealand|Oceania|Pacific)\b", "Oceania", regex=True),
    ],
)

COUNTRIES = PatternSet(
    "countries",
    [
        LexiconEntry(r"\b(China|Chinese|PRC|mainland)\b", "China", regex=True),
        LexiconEntry(r"\b(India|Indian)\b", "India", regex=True),
        LexiconEntry(r"\b(Japan|Japanese)\b", "Japan", regex=True),
        LexiconEntry(r"\b(South Korea|Korean|Korea)\b", "South Korea", regex=True),
        LexiconEntry(r"\b(Germany|German)\b", "Germany", regex=True),
        LexiconEntry(r"\b(UK|Britain|British|United Kingdom)\b", "United Kingdom", regex=True),
        LexiconEntry(r"\b(France|French)\b", "France", regex=True),
        LexiconEntry(r"\b(Brazil|Brazilian)\b", "Brazil", regex=True),
        LexiconEntry(r"\b(Mexico|Mexican)\b", "Mexico", regex=True),
        LexiconEntry(r"\b(Canada|Canadian)\b", "Canada", regex=True),
    ],
)

COUNTRY_REGIONS: dict[str, tuple[str, ...]] = {
    "China": ("Asia",),
    "India": ("Asia",),
    "Japan": ("Asia",),
    "South Korea": ("Asia",),
    "Germany": ("Europe",),
    "United Kingdom": ("Europe",),
    "France": ("Europe",),
    "Brazil": ("Latin America",),
    "Mexico": ("North America", "Latin America"),
    "Canada": ("North America",),
}


def match_regions(text: str) -> list[str]:
    return [m.category for m in REGIONS.match(text)]


def match_countries(text: str) -> list[str]:
    return [m.category for m in COUNTRIES.match(text)]


# ---------------------------------------------------------------------------
# Prices
# ---------------------------------------------------------------------------

_RESILIENCE_STEPS = ((5.0, 0.9), (2.0, 0.8), (0.0, 0.7), (-5.0, 0.6), (-10.0, 0.4))


def price_resilience(bars: Sequence[PriceBar], recent: int = 3, prior: int = 7) -> float:
    """Score in [0, 1] for how the last few closes hold up against the ones before them."""
    if len(bars) < 2:
        return 0.5
    closes = [b.close for b in bars]
    recent_closes = closes[-recent:]
    prior_closes = closes[-(recent + prior) : -recent] or closes[:1]
    recent_avg = sum(recent_closes) / len(recent_closes)
    prior_avg = sum(prior_closes) / len(prior_closes)
    change_pct = safe_ratio(recent_avg - prior_avg, prior_avg) * 100
    for threshold, score in _RESILIENCE_STEPS:
        if change_pct > threshold:
            return score
    return 0.2
