"""Small-cap smart money: credible, established accounts discussing a small company."""

from collections.abc import Sequence
from datetime import datetime

import structlog
from pydantic import BaseModel

from signal_engine.adapters.schemas import Post, UserProfile
from signal_engine.signals.base import Analysis, Evidence, SignalContext, SignalStrategy
from signal_engine.signals.classifier import OverrideRule
from signal_engine.signals.indicators import account_age_days, safe_ratio
from signal_engine.signals.lexicon import PatternSet, classify_by_majority, contains_any, keywords
from signal_engine.signals.registry import registry
from signal_engine.signals.schemas import Direction, SignalType, Strength
from signal_engine.signals.scoring import ScoreComponent, aggregate, breakdown
from signal_engine.signals.windows import ticker_query

logger = structlog.get_logger()

SMALL_CAP_THRESHOLD = 2_000_000_000
# Shares outstanding are not available from the price feed
ASSUMED_SHARES_OUTSTANDING = 100_000_000

MIN_FOLLOWERS = 10_000
MIN_ACCOUNT_AGE_DAYS = 365
REQUIRE_VERIFIED = False

SMART_MONEY_SENTIMENT = PatternSet(
    "smart_money_sentiment",
    keywords(
        Direction.bullish,
        (
            "buy", "long", "bullish", "undervalued", "opportunity", "strong", "growth", "potential",
            "breakout", "accumulating", "adding", "conviction", "upside", "positioned", "buying",
        ),
    )
    + keywords(
        Direction.bearish,
        (
            "sell", "short", "bearish", "overvalued", "risk", "weak", "decline", "concern",
            "selling", "reducing", "exiting", "downside", "warning", "caution",
        ),
    ),
)

TOPICS: dict[str, tuple[str, ...]] = {
    "earnings": ("earnings", "eps", "revenue", "guidance", "beat", "miss"),
    "acquisition": ("acquisition", "merger", "takeover", "buyout", "acquiring", "m&a"),
    "insider": ("insider", "ceo", "cfo", "executive", "management", "director", "buying", "selling"),
    "catalyst": ("catalyst", "announcement", "news", "event", "conference"),
    "technical": ("breakout", "support", "resistance", "pattern", "chart", "volume"),
    "fundamental": ("valuation", "p/e", "cash flow", "balance sheet", "debt", "fcf"),
    "product": ("product", "launch", "release", "innovation", "patent"),
    "partnership": ("partnership", "deal", "contract", "agreement", "collaboration"),
    "regulatory": ("fda", "approval", "regulation", "compliance", "license"),
}


class SmartMoneyMention(BaseModel):
    post_id: str
    author: UserProfile
    author_credibility: float
    influence: float
    sentiment: Direction
    topics: list[str]


class SmallCapMetrics(BaseModel):
    credibility_score: float
    market_cap: float
    is_small_cap: bool
    mentions: list[SmartMoneyMention]
    components: dict[str, float]

    @property
    def mention_count(self) -> int:
        return len(self.mentions)


def author_credibility(profile: UserProfile, now: datetime) -> float:
    score = min(profile.follower_count / 100_000, 1.0) * 0.4
    if profile.verified:
        score += 0.2
    score += min(account_age_days(profile, now) / (365 * 3), 1.0) * 0.2
    if profile.following_count > 0:
        score += min(profile.follower_count / profile.following_count / 10, 1.0) * 0.2
    return min(score, 1.0)


def influence(post: Post, credibility: float) -> float:
    e = post.engagement
    engagement = e.likes + 3 * e.retweets + 2 * e.replies + 2 * e.quotes
    return min(engagement / 1000, 1.0) * 0.6 + credibility * 0.4


def is_smart_money(profile: UserProfile, now: datetime) -> bool:
    if profile.follower_count < MIN_FOLLOWERS:
        return False
    if REQUIRE_VERIFIED and not profile.verified:
        return False
    return account_age_days(profile, now) >= MIN_ACCOUNT_AGE_DAYS


def extract_topics(text: str) -> list[str]:
    return [topic for topic, words in TOPICS.items() if contains_any(text, words)]


def smart_money_mentions(posts: Sequence[Post], now: datetime) -> list[SmartMoneyMention]:
    mentions = []
    for post in posts:
        if not is_smart_money(post.author, now):
            continue
        credibility = author_credibility(post.author, now)
        mentions.append(
            SmartMoneyMention(
                post_id=post.id,
                author=post.author,
                author_credibility=credibility,
                influence=influence(post, credibility),
                sentiment=classify_by_majority(post.text, SMART_MONEY_SENTIMENT),
                topics=extract_topics(post.text),
            )
        )
    return sorted(mentions, key=lambda m: m.influence, reverse=True)


@registry.register(
    name="Small-Cap Smart Money",
    description="Mentions of a small-cap ticker by credible, established accounts",
)
class SmallCapSmartMoney(SignalStrategy):
    signal_type = SignalType.small_cap_smart_money
    defaults = {"lookback_days": 7}
    overrides = (
        OverrideRule(
            "broad_credible_interest",
            lambda m: m.mention_count >= 5 and m.credibility_score > 70,
            strength=Strength.strong,
        ),
        OverrideRule(
            "some_credible_interest",
            lambda m: m.mention_count >= 3 and m.credibility_score > 50,
            strength=Strength.moderate,
        ),
        OverrideRule("thin_interest", lambda m: True, strength=Strength.weak),
    )

    async def fetch(self, ctx: SignalContext) -> Evidence:
        price = await ctx.prices.get_current_price(ctx.ticker)
        market_cap = price * ASSUMED_SHARES_OUTSTANDING
        if market_cap > SMALL_CAP_THRESHOLD:
            logger.warning("small_cap_threshold_exceeded", ticker=ctx.ticker, estimated_market_cap=market_cap)
        posts = await ctx.fetcher.fetch_recent(ticker_query(ctx.ticker), ctx.days("lookback_days"), ctx.now)
        return Evidence(posts=posts, current_price=price)

    def analyze(self, evidence: Evidence, ctx: SignalContext) -> Analysis:
        mentions = smart_money_mentions(evidence.posts, ctx.now)
        n = len(mentions)
        components = [
            ScoreComponent("credibility", safe_ratio(sum(m.author_credibility for m in mentions), n), weight=40, cap=40),
            ScoreComponent("influence", safe_ratio(sum(m.influence for m in mentions), n), weight=40, cap=40),
            ScoreComponent("mentions", min(n / 10, 1.0), weight=20, cap=20),
        ]
        score = aggregate(components)
        market_cap = (evidence.current_price or 0.0) * ASSUMED_SHARES_OUTSTANDING
        metrics = SmallCapMetrics(
            credibility_score=score,
            market_cap=market_cap,
            is_small_cap=market_cap <= SMALL_CAP_THRESHOLD,
            mentions=mentions,
            components=breakdown(components),
        )
        smart_ids = {m.post_id for m in mentions}
        return Analysis(
            score=score,
            details=metrics,
            scores={"credibility_score": score},
            posts=[p for p in evidence.posts if p.id in smart_ids],
        )
