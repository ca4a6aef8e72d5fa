"""Early meme formation: crowd language, hashtag swarms and accelerating engagement."""

import re
from collections import defaultdict
from collections.abc import Sequence
from datetime import datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel

from signal_engine.adapters.schemas import Post, UserProfile
from signal_engine.signals.base import Analysis, Evidence, SignalContext, SignalStrategy
from signal_engine.signals.classifier import OverrideRule
from signal_engine.signals.indicators import (
    RETAIL_FOLLOWER_THRESHOLD,
    EngagementVelocity,
    HashtagAnalysis,
    coordinated_activity,
    distinct_authors,
    engagement_velocity,
    hashtag_analysis,
    raw_engagement,
    safe_ratio,
)
from signal_engine.signals.lexicon import LexiconEntry, PatternSet
from signal_engine.signals.registry import registry
from signal_engine.signals.schemas import Direction, SignalType, Strength, Timeframe
from signal_engine.signals.scoring import ScoreComponent, aggregate, breakdown
from signal_engine.signals.windows import ticker_query


class MemeStage(StrEnum):
    nascent = "nascent"
    emerging = "emerging"
    accelerating = "accelerating"
    mature = "mature"
    fading = "fading"


def _meme(pattern: str, category: str, weight: float) -> LexiconEntry:
    return LexiconEntry(pattern, category, weight=weight, regex=True)


MEME_PATTERNS = PatternSet(
    "meme_language",
    [
        _meme(r"\b(apes?|retards?|autists?)\s+(together|strong|united)\b", "collective_action", 10),
        _meme(r"\b(we|us)\s+(hold|buy|like the stock)\b", "collective_action", 8),
        _meme(r"\b(hold the line|apes strong)\b", "collective_action", 9),
        _meme(r"💎\s*🙌|diamond\s*hands", "diamond_hands", 9),
        _meme(r"\b(hodl|holding|never selling)\b", "diamond_hands", 7),
        _meme(r"\b(paper hands|weak hands)\b", "diamond_hands", 6),
        _meme(r"🚀{2,}|to the moon|moon\s*(?:soon|mission)", "rocket_emoji", 8),
        _meme(r"\b(moon|mooning|moonshot)\b", "rocket_emoji", 7),
        _meme(r"\b(short\s*squeeze|squeeze\s*(the|those)\s*shorts?)\b", "squeeze_narrative", 10),
        _meme(r"\b(hedge\s*funds?|wall\s*street|institutions?)\s*(against|losing|wrong)\b", "retail_vs_institutions", 9),
        _meme(r"\b(stick it to|beat|destroy)\s*(wall\s*street|hedgies?|shorts?)\b", "retail_vs_institutions", 9),
        _meme(r"\b(apes?\s*together|stronger\s*together)\b", "apes_together", 9),
        _meme(r"🦍+", "apes_together", 7),
        _meme(r"\b(yolo|all\s*in|life\s*savings)\b", "yolo", 10),
        _meme(r"\bjust\s*bought\s*\d+", "yolo", 7),
        _meme(r"\b(don't\s*miss|last\s*chance|fomo|get\s*in\s*now)\b", "fomo_inducing", 8),
        _meme(r"\b(next\s*(gme|gamestop|amc)|missed\s*gme)\b", "fomo_inducing", 9),
        _meme(r"\b(undervalued|overlooked|hidden\s*gem|sleeping\s*giant)\b", "underdog_story", 7),
        _meme(r"\b(this\s*is\s*the\s*way|this\s*is\s*it)\b", "underdog_story", 6),
    ],
)

MEME_STOCKS = re.compile(r"\b(gme|amc|bbby|pltr|tsla|nvda)\b", re.IGNORECASE)
CASHTAG = re.compile(r"\$([A-Z]{1,5})\b")

NEW_ACCOUNT_DAYS = 30
EXAMPLES_PER_PATTERN = 3
VIRAL_SPREADERS = 5


class LanguagePattern(BaseModel):
    pattern: str
    category: str
    frequency: int
    weight: float
    example_post_ids: list[str]


class CommunityIndicators(BaseModel):
    new_accounts_pct: float = 0.0
    coordinated_activity: bool = False
    cross_pollination: int = 0
    echo_chamber: float = 0.0
    influencer_participation: int = 0


class EarlyMemeMetrics(BaseModel):
    meme_score: float
    stage: MemeStage
    language_patterns: list[LanguagePattern]
    hashtags: HashtagAnalysis
    velocity: EngagementVelocity
    community: CommunityIndicators
    viral_spreaders: list[UserProfile]
    components: dict[str, float]


def language_patterns(posts: Sequence[Post]) -> list[LanguagePattern]:
    """One row per pattern hit; frequency counts posts, not occurrences."""
    hits: dict[LexiconEntry, list[Post]] = defaultdict(list)
    for post in posts:
        for match in MEME_PATTERNS.match(post.text):
            hits[match.entry].append(post)
    return [
        LanguagePattern(
            pattern=entry.pattern,
            category=entry.category,
            frequency=len(matched),
            weight=entry.weight,
            example_post_ids=[p.id for p in matched[:EXAMPLES_PER_PATTERN]],
        )
        for entry, matched in hits.items()
    ]


def community_indicators(posts: Sequence[Post], now: datetime) -> CommunityIndicators:
    if not posts:
        return CommunityIndicators()

    authors = distinct_authors(posts)
    cutoff = now - timedelta(days=NEW_ACCOUNT_DAYS)
    new_accounts = sum(1 for p in posts if p.author.created_at > cutoff)

    other_tickers: set[str] = set()
    for post in posts:
        if MEME_STOCKS.search(post.text):
            other_tickers.update(CASHTAG.findall(post.text))

    known = set(authors) | {a.username.lower() for a in authors.values()}
    mentioned = {m.lower().lstrip("@") for p in posts for m in p.mentions}
    internal = sum(1 for m in mentioned if m in known)

    return CommunityIndicators(
        new_accounts_pct=new_accounts / len(posts) * 100,
        coordinated_activity=coordinated_activity(posts),
        cross_pollination=len(other_tickers),
        echo_chamber=safe_ratio(internal, len(mentioned)),
        influencer_participation=sum(
            1 for a in authors.values() if a.follower_count > RETAIL_FOLLOWER_THRESHOLD
        ),
    )


def viral_spreaders(posts: Sequence[Post], limit: int = VIRAL_SPREADERS) -> list[UserProfile]:
    totals: dict[str, int] = defaultdict(int)
    for post in posts:
        totals[post.author.id] += raw_engagement(post)
    authors = distinct_authors(posts)
    ranked = sorted(totals, key=lambda author_id: totals[author_id], reverse=True)
    return [authors[author_id] for author_id in ranked[:limit]]


def hashtag_points(hashtags: HashtagAnalysis) -> float:
    return 8 * float(hashtags.coordinated) + min(3 * len(hashtags.viral_hashtags), 12)


def velocity_points(velocity: EngagementVelocity) -> float:
    return (
        10 * float(velocity.accelerating)
        + 8 * float(velocity.retweet_to_like_ratio > 0.3)
        + 7 * float(velocity.growth_rate > 50)
    )


def community_points(community: CommunityIndicators) -> float:
    return (
        5 * float(community.coordinated_activity)
        + 3 * float(community.echo_chamber > 0.5)
        + min(2 * community.influencer_participation, 7)
    )


def meme_components(
    patterns: Sequence[LanguagePattern],
    hashtags: HashtagAnalysis,
    velocity: EngagementVelocity,
    community: CommunityIndicators,
) -> list[ScoreComponent]:
    return [
        ScoreComponent("language", sum(p.frequency * p.weight for p in patterns), weight=0.1, cap=40),
        ScoreComponent("hashtags", hashtag_points(hashtags), cap=20),
        ScoreComponent("velocity", velocity_points(velocity), cap=25),
        ScoreComponent("community", community_points(community), cap=15),
    ]


def formation_stage(score: float, velocity: EngagementVelocity, post_count: int) -> MemeStage:
    if score < 20:
        return MemeStage.nascent
    # Ahead of the score bands: collapsing engagement is fading at any score of 20 or more
    if velocity.growth_rate < -20:
        return MemeStage.fading
    if score < 40:
        return MemeStage.emerging
    if score < 70 or (velocity.accelerating and post_count > 20):
        return MemeStage.accelerating
    return MemeStage.mature


@registry.register(
    name="Early Meme Formation",
    description="Meme language, hashtag coordination and engagement velocity around a ticker",
)
class EarlyMemeFormation(SignalStrategy):
    signal_type = SignalType.early_meme
    defaults = {"lookback_hours": 48}
    overrides = (
        OverrideRule(
            "meme_accelerating",
            lambda m: m.stage is MemeStage.accelerating and m.meme_score > 70,
            direction=Direction.bullish,
            strength=Strength.strong,
            timeframe=Timeframe.short,
        ),
        OverrideRule(
            "meme_emerging",
            lambda m: m.stage is MemeStage.emerging and m.meme_score > 50,
            direction=Direction.bullish,
            strength=Strength.moderate,
            timeframe=Timeframe.short,
        ),
        OverrideRule(
            "meme_fading",
            lambda m: m.stage is MemeStage.fading,
            direction=Direction.bearish,
            strength=Strength.moderate,
            timeframe=Timeframe.short,
        ),
    )

    async def fetch(self, ctx: SignalContext) -> Evidence:
        posts = await ctx.fetcher.fetch_recent(ticker_query(ctx.ticker), ctx.hours("lookback_hours"), ctx.now)
        return Evidence(posts=posts)

    def analyze(self, evidence: Evidence, ctx: SignalContext) -> Analysis:
        posts = evidence.posts
        patterns = language_patterns(posts)
        hashtags = hashtag_analysis(posts)
        velocity = engagement_velocity(posts)
        community = community_indicators(posts, ctx.now)

        components = meme_components(patterns, hashtags, velocity, community)
        score = aggregate(components)
        metrics = EarlyMemeMetrics(
            meme_score=score,
            stage=formation_stage(score, velocity, len(posts)),
            language_patterns=patterns,
            hashtags=hashtags,
            velocity=velocity,
            community=community,
            viral_spreaders=viral_spreaders(posts),
            components=breakdown(components),
        )
        return Analysis(score=score, details=metrics, scores={"meme_score": score})
