"""Global edge: regional expansion, demand and cross-border activity around a ticker."""

import re
from collections import Counter, defaultdict
from collections.abc import Sequence
from datetime import datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel

from signal_engine.adapters.schemas import Post
from signal_engine.signals.base import Analysis, Evidence, SignalContext, SignalStrategy
from signal_engine.signals.classifier import OverrideRule
from signal_engine.signals.indicators import (
    COUNTRY_REGIONS,
    REGIONS,
    match_countries,
    match_regions,
    raw_engagement,
    recency_score,
)
from signal_engine.signals.lexicon import LexiconEntry, PatternSet
from signal_engine.signals.registry import registry
from signal_engine.signals.schemas import Direction, Momentum, SignalType, Strength, Timeframe
from signal_engine.signals.scoring import ScoreComponent, aggregate, breakdown
from signal_engine.signals.windows import keyword_query

GEOGRAPHIC_TERMS = ("international", "global", "market", "country", "region", "expand", "expansion")

SIGNAL_PATTERNS = PatternSet(
    "geographic_signals",
    [
        LexiconEntry(r"\b(expand|expansion|entering|launch|open|opening)\s+(?:in|into|to)\b", "expansion", 0.9, True),
        LexiconEntry(r"\b(partner|partnership|joint venture|collaboration|alliance)\b", "partnership", 0.8, True),
        LexiconEntry(r"\b(approval|approved|regulatory|license|permit)\b", "regulatory", 0.85, True),
        LexiconEntry(r"\b(demand|sales|growth|market share|penetration)\b", "demand", 0.7, True),
        LexiconEntry(r"\b(supply|manufacturing|production|facility|plant)\b", "supply", 0.7, True),
        LexiconEntry(r"\b(compet\w*|rival|market leader|dominant|challenging)\b", "competition", 0.6, True),
    ],
)

CROSS_BORDER_PATTERNS = PatternSet(
    "cross_border",
    [
        LexiconEntry(r"\b(export|import|trade|tariff)\b", "trade", 0.8, True),
        LexiconEntry(r"\b(invest|investment|acquire|acquisition|stake)\b", "investment", 0.9, True),
        LexiconEntry(r"\b(expand|expansion|enter|market entry)\b", "expansion", 0.85, True),
        LexiconEntry(r"\b(compet\w*|rival|challenge)\b", "competition", 0.7, True),
        LexiconEntry(r"\b(supply chain|sourcing|supplier|logistics)\b", "supply_chain", 0.75, True),
    ],
)

_WORD = re.compile(r"\b\w+\b")
SIGNAL_HORIZON_DAYS = 7
RECENT_DAYS = 2
DESCRIPTION_LENGTH = 80

SIGNAL_LABELS = {
    "expansion": "Market expansion detected",
    "partnership": "Partnership opportunity detected",
    "regulatory": "Regulatory development detected",
    "demand": "Demand increase detected",
    "supply": "Supply development detected",
    "competition": "Competitive activity detected",
}


class RegionSentiment(StrEnum):
    positive = "positive"
    negative = "negative"
    neutral = "neutral"


class OpportunityType(StrEnum):
    expansion = "expansion"
    arbitrage = "arbitrage"
    regulatory = "regulatory"
    macro = "macro"
    mixed = "mixed"


class RegionalActivity(BaseModel):
    region: str
    countries: list[str]
    post_count: int
    sentiment: RegionSentiment
    top_keywords: list[str]
    engagement_score: float
    share: float


class GeographicSignal(BaseModel):
    region: str
    country: str | None
    signal_type: str
    strength: float
    relevance: float
    description: str
    post_ids: list[str]
    detected_at: datetime


class CrossBorderTrend(BaseModel):
    source_region: str
    target_region: str
    trend_type: str
    strength: float
    description: str
    post_ids: list[str]


class InternationalSentiment(BaseModel):
    overall: RegionSentiment
    regional: dict[str, float]
    momentum: Momentum
    diversity: float


class GlobalEdgeMetrics(BaseModel):
    global_score: float
    regions: list[RegionalActivity]
    signals: list[GeographicSignal]
    cross_border_trends: list[CrossBorderTrend]
    sentiment: InternationalSentiment
    opportunity_type: OpportunityType
    components: dict[str, float]


def regional_activity(posts: Sequence[Post]) -> list[RegionalActivity]:
    region_posts: defaultdict[str, list[Post]] = defaultdict(list)
    region_countries: defaultdict[str, set[str]] = defaultdict(set)
    region_words: defaultdict[str, Counter[str]] = defaultdict(Counter)

    for post in posts:
        for region in match_regions(post.text):
            region_posts[region].append(post)
            region_words[region].update(w for w in _WORD.findall(post.text.lower()) if len(w) > 4)
        for country in match_countries(post.text):
            for region in COUNTRY_REGIONS.get(country, ()):
                region_countries[region].add(country)

    total = len(posts) or 1
    activities = []
    for region in REGIONS.categories:
        matched = region_posts.get(region)
        if not matched:
            continue
        engagement_score = min(sum(raw_engagement(p) for p in matched) / len(matched) / 100, 1.0)
        # Regions carry no text sentiment; strong engagement stands in for a positive reception
        if engagement_score > 0.7:
            sentiment = RegionSentiment.positive
        elif engagement_score < 0.3:
            sentiment = RegionSentiment.negative
        else:
            sentiment = RegionSentiment.neutral
        activities.append(
            RegionalActivity(
                region=region,
                countries=sorted(region_countries[region]),
                post_count=len(matched),
                sentiment=sentiment,
                top_keywords=[w for w, _ in region_words[region].most_common(5)],
                engagement_score=engagement_score,
                share=len(matched) / total,
            )
        )
    return sorted(activities, key=lambda a: a.post_count, reverse=True)


def _describe(signal_type: str, region: str, text: str) -> str:
    snippet = text[:DESCRIPTION_LENGTH] + ("..." if len(text) > DESCRIPTION_LENGTH else "")
    return f"{SIGNAL_LABELS[signal_type]} in {region}: {snippet}"


def geographic_signals(posts: Sequence[Post], now: datetime, limit: int = 10) -> list[GeographicSignal]:
    """Signals consolidated by (region, country, type), most relevant first."""
    consolidated: dict[tuple[str, str | None, str], GeographicSignal] = {}
    for post in posts:
        regions = match_regions(post.text)
        if not regions:
            continue
        countries = match_countries(post.text)
        region, country = regions[0], (countries[0] if countries else None)
        relevance = (
            recency_score(post.created_at, now, SIGNAL_HORIZON_DAYS) * 0.6
            + min(raw_engagement(post) / 100, 1.0) * 0.4
        )
        for match in SIGNAL_PATTERNS.match(post.text):
            key = (region, country, match.category)
            existing = consolidated.get(key)
            if existing is None:
                consolidated[key] = GeographicSignal(
                    region=region,
                    country=country,
                    signal_type=match.category,
                    strength=match.weight,
                    relevance=relevance,
                    description=_describe(match.category, region, post.text),
                    post_ids=[post.id],
                    detected_at=post.created_at,
                )
            else:
                existing.post_ids.append(post.id)
                existing.relevance = max(existing.relevance, relevance)
                existing.strength = max(existing.strength, match.weight)
    return sorted(consolidated.values(), key=lambda s: s.relevance, reverse=True)[:limit]


def cross_border_trends(
    posts: Sequence[Post],
    regions: Sequence[RegionalActivity],
    limit: int = 5,
) -> list[CrossBorderTrend]:
    """Trends from posts naming two or more active regions; source and target follow region rank."""
    active = [r.region for r in regions]
    consolidated: dict[tuple[str, str, str], CrossBorderTrend] = {}
    for post in posts:
        named = set(match_regions(post.text))
        mentioned = [r for r in active if r in named]
        if len(mentioned) < 2:
            continue
        source, target = mentioned[0], mentioned[1]
        for match in CROSS_BORDER_PATTERNS.match(post.text):
            key = (source, target, match.category)
            existing = consolidated.get(key)
            if existing is None:
                consolidated[key] = CrossBorderTrend(
                    source_region=source,
                    target_region=target,
                    trend_type=match.category,
                    strength=match.weight,
                    description=f"{match.category} activity between {source} and {target}",
                    post_ids=[post.id],
                )
            else:
                existing.post_ids.append(post.id)
                existing.strength = max(existing.strength, match.weight)
    return sorted(consolidated.values(), key=lambda t: t.strength, reverse=True)[:limit]


def international_sentiment(
    posts: Sequence[Post],
    regions: Sequence[RegionalActivity],
    now: datetime,
) -> InternationalSentiment:
    positive = sum(1 for r in regions if r.sentiment is RegionSentiment.positive)
    negative = sum(1 for r in regions if r.sentiment is RegionSentiment.negative)
    overall = RegionSentiment.neutral
    if positive > negative * 1.5:
        overall = RegionSentiment.positive
    elif negative > positive * 1.5:
        overall = RegionSentiment.negative

    cutoff = now - timedelta(days=RECENT_DAYS)
    recent_ratio = sum(1 for p in posts if p.created_at > cutoff) / (len(posts) or 1)
    momentum = Momentum.stable
    if recent_ratio > 0.6:
        momentum = Momentum.rising
    elif recent_ratio < 0.3:
        momentum = Momentum.declining

    return InternationalSentiment(
        overall=overall,
        regional={
            r.region: r.engagement_score * (1 if r.sentiment is RegionSentiment.positive else -1)
            for r in regions
        },
        momentum=momentum,
        diversity=min(len(regions) / 5, 1.0),
    )


def opportunity_type(
    signals: Sequence[GeographicSignal],
    trends: Sequence[CrossBorderTrend],
) -> OpportunityType:
    counts = Counter(s.signal_type for s in signals)
    if counts["expansion"] > len(signals) * 0.5:
        return OpportunityType.expansion
    if counts["regulatory"] > len(signals) * 0.4:
        return OpportunityType.regulatory
    if len(trends) > 2 and counts["demand"] > 2:
        return OpportunityType.arbitrage
    if len(signals) > 3:
        return OpportunityType.mixed
    return OpportunityType.macro


_SENTIMENT_POINTS = {RegionSentiment.positive: 20.0, RegionSentiment.neutral: 10.0, RegionSentiment.negative: 0.0}


def global_components(
    signals: Sequence[GeographicSignal],
    trends: Sequence[CrossBorderTrend],
    sentiment: InternationalSentiment,
) -> list[ScoreComponent]:
    return [
        ScoreComponent("signals", sum(s.strength * s.relevance for s in signals), weight=10, cap=40),
        ScoreComponent("diversity", sentiment.diversity, weight=20, cap=20),
        ScoreComponent("cross_border", sum(t.strength for t in trends), weight=10, cap=20),
        ScoreComponent("sentiment", _SENTIMENT_POINTS[sentiment.overall], cap=20),
    ]


@registry.register(
    name="Global Edge",
    description="Geographic expansion, demand and cross-border trends in ticker discussion",
)
class GlobalEdge(SignalStrategy):
    signal_type = SignalType.global_edge
    defaults = {"lookback_days": 7}
    overrides = (
        OverrideRule(
            "broad_global_opportunity",
            lambda m: m.global_score > 70 and len(m.signals) > 3,
            direction=Direction.bullish,
            strength=Strength.strong,
            timeframe=Timeframe.medium,
        ),
        OverrideRule(
            "global_opportunity",
            lambda m: m.global_score > 50 and len(m.signals) > 1,
            direction=Direction.bullish,
            strength=Strength.moderate,
            timeframe=Timeframe.medium,
        ),
        OverrideRule(
            "early_global_interest",
            lambda m: m.global_score > 30,
            direction=Direction.bullish,
            strength=Strength.weak,
            timeframe=Timeframe.long,
        ),
    )

    async def fetch(self, ctx: SignalContext) -> Evidence:
        posts = await ctx.fetcher.fetch_recent(
            keyword_query(ctx.ticker, GEOGRAPHIC_TERMS), ctx.days("lookback_days"), ctx.now
        )
        return Evidence(posts=posts)

    def analyze(self, evidence: Evidence, ctx: SignalContext) -> Analysis:
        posts = evidence.posts
        regions = regional_activity(posts)
        signals = geographic_signals(posts, ctx.now)
        trends = cross_border_trends(posts, regions)
        sentiment = international_sentiment(posts, regions, ctx.now)

        components = global_components(signals, trends, sentiment)
        score = aggregate(components)
        metrics = GlobalEdgeMetrics(
            global_score=score,
            regions=regions,
            signals=signals,
            cross_border_trends=trends,
            sentiment=sentiment,
            opportunity_type=opportunity_type(signals, trends),
            components=breakdown(components),
        )
        return Analysis(score=score, details=metrics, scores={"global_score": score})
