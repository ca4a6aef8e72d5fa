"""Regulatory tailwinds: approvals, subsidies and policy relief around a ticker."""

from collections import Counter, defaultdict
from collections.abc import Sequence
from datetime import datetime

from pydantic import BaseModel

from signal_engine.adapters.schemas import Post
from signal_engine.signals.base import Analysis, Evidence, SignalContext, SignalStrategy
from signal_engine.signals.classifier import OverrideRule
from signal_engine.signals.indicators import raw_engagement, recency_score
from signal_engine.signals.lexicon import LexiconEntry, PatternSet
from signal_engine.signals.registry import registry
from signal_engine.signals.schemas import Direction, Level, SignalType, Strength, Timeframe
from signal_engine.signals.scoring import ScoreComponent, aggregate, breakdown
from signal_engine.signals.windows import keyword_query


def _rule(pattern: str, category: str, weight: float, event_type: str) -> LexiconEntry:
    return LexiconEntry(pattern, category, weight=weight, regex=True, tag=event_type)


REGULATORY_PATTERNS = PatternSet(
    "regulatory",
    [
        _rule(r"\b(fda|approval|approved|cleared|authorized)\b", "approval", 10, "approval"),
        _rule(r"\b(sec|approval|approved|cleared)\b", "approval", 9, "approval"),
        _rule(r"\b(permit|permits|permitted|license|licensed)\b", "approval", 7, "approval"),
        _rule(r"\b(policy|policies|regulation|regulations)\s+(change|shift|reform|update)", "policy", 8, "policy_change"),
        _rule(r"\b(executive order|presidential|administration)\b", "policy", 7, "policy_change"),
        _rule(r"\b(bill|legislation|law)\s+(passed|signed|enacted)", "legislation", 10, "legislation"),
        _rule(r"\b(congress|senate|house)\s+(passed|approved)", "legislation", 9, "legislation"),
        _rule(r"\b(bipartisan|legislation|support)\b", "legislation", 6, "legislation"),
        _rule(r"\b(deregulation|deregulate|regulatory relief|reduced regulation)", "deregulation", 10, "deregulation"),
        _rule(
            r"\b(remove|removing|eliminated|eliminating)\s+(restriction|restrictions|barrier|barriers)",
            "deregulation",
            9,
            "deregulation",
        ),
        _rule(r"\b(streamline|streamlined|streamlining)\s+(process|regulation|approval)", "deregulation", 8, "deregulation"),
        _rule(r"\b(subsidy|subsidies|grant|grants|funding|incentive|incentives)", "subsidy", 9, "subsidy"),
        _rule(r"\b(government funding|federal funding|state funding)", "subsidy", 8, "subsidy"),
        _rule(r"\b(tax\s+credit|tax\s+break|tax\s+incentive|tax\s+benefit)", "tax", 9, "tax_benefit"),
        _rule(r"\b(tax\s+cut|reduced\s+tax|lower\s+tax)", "tax", 8, "tax_benefit"),
        _rule(r"\b(trade\s+agreement|trade\s+deal|tariff\s+reduction|tariff\s+removed)", "trade", 8, "trade_agreement"),
        _rule(r"\b(export|exports|import|imports)\s+(approved|expanded|increased)", "trade", 7, "trade_agreement"),
        _rule(r"\b(court|judge|ruling|verdict)\s+(favor|favorable|won|victory)", "legal", 9, "legal_victory"),
        _rule(r"\b(lawsuit|litigation)\s+(dismissed|settled|won)", "legal", 8, "legal_victory"),
        _rule(r"\b(regulatory\s+clarity|clear\s+guidance|guidance\s+issued)", "regulatory_clarity", 7, "regulatory_clarity"),
        _rule(
            r"\b(framework|guidelines|guidance)\s+(published|issued|announced)",
            "regulatory_clarity",
            6,
            "regulatory_clarity",
        ),
        _rule(r"\b(exempt|exemption|exempted|waiver|waived)", "regulatory_clarity", 8, "exemption"),
    ],
)

SECTORS = PatternSet(
    "sectors",
    [
        LexiconEntry(r"\b(biotech|pharmaceutical|drug|therapy|fda|clinical)", "biotech", regex=True),
        LexiconEntry(r"\b(crypto|cryptocurrency|bitcoin|blockchain|digital asset)", "crypto", regex=True),
        LexiconEntry(r"\b(energy|oil|gas|renewable|solar|wind|nuclear)", "energy", regex=True),
        LexiconEntry(r"\b(bank|banking|fintech|financial|sec|securities)", "finance", regex=True),
        LexiconEntry(r"\b(healthcare|health care|medical|hospital|insurance)", "healthcare", regex=True),
        LexiconEntry(r"\b(tech|technology|software|ai|artificial intelligence)", "tech", regex=True),
        LexiconEntry(r"\b(defense|military|aerospace|weapons)", "defense", regex=True),
        LexiconEntry(r"\b(automotive|electric vehicle|ev|car|auto)", "automotive", regex=True),
        LexiconEntry(r"\b(telecom|5g|wireless|broadband|spectrum)", "telecom", regex=True),
        LexiconEntry(r"\b(cannabis|marijuana|hemp|cbd)", "cannabis", regex=True),
    ],
)

POSITIVE_EVENT_TYPES = frozenset(
    {"approval", "deregulation", "subsidy", "tax_benefit", "trade_agreement", "legal_victory", "exemption"}
)
QUERY_TERMS = ("regulatory", "regulation", "policy", "legislation", "approved", "approval", "FDA", "SEC")
EVENT_POINTS = {Level.high: 15.0, Level.medium: 8.0, Level.low: 3.0}
RECENCY_HORIZON_DAYS = 7
MAX_EVENTS = 10


class KeywordMatch(BaseModel):
    pattern: str
    category: str
    weight: float
    frequency: int
    post_ids: list[str]


class RegulatoryEvent(BaseModel):
    event_type: str
    category: str
    impact: Level
    relevance: float
    description: str
    post_id: str
    detected_at: datetime


class RegulatoryMetrics(BaseModel):
    tailwind_score: float
    impact_level: Level
    sentiment: str
    keyword_matches: list[KeywordMatch]
    events: list[RegulatoryEvent]
    related_sectors: list[str]
    components: dict[str, float]


def keyword_matches(posts: Sequence[Post]) -> list[KeywordMatch]:
    hits: defaultdict[LexiconEntry, list[str]] = defaultdict(list)
    for post in posts:
        for m in REGULATORY_PATTERNS.match(post.text):
            hits[m.entry].append(post.id)
    return [
        KeywordMatch(
            pattern=entry.pattern,
            category=entry.category,
            weight=entry.weight,
            frequency=len(ids),
            post_ids=ids,
        )
        for entry, ids in hits.items()
    ]


def detect_events(posts: Sequence[Post], now: datetime) -> list[RegulatoryEvent]:
    """One event per matching post, typed by its first matching pattern; top ten by relevance."""
    events: list[RegulatoryEvent] = []
    for post in posts:
        matches = REGULATORY_PATTERNS.match(post.text)
        if not matches:
            continue
        entry = matches[0].entry
        recency = recency_score(post.created_at, now, RECENCY_HORIZON_DAYS)
        engagement = min(raw_engagement(post) / 100, 1.0)
        relevance = (recency * 0.6 + engagement * 0.4) * (entry.weight / 10)
        if entry.weight >= 9 and relevance > 0.6:
            impact = Level.high
        elif entry.weight >= 7 and relevance > 0.4:
            impact = Level.medium
        else:
            impact = Level.low
        label = entry.tag.replace("_", " ")
        events.append(
            RegulatoryEvent(
                event_type=entry.tag,
                category=entry.category,
                impact=impact,
                relevance=relevance,
                description=f"{label.capitalize()} detected: {post.text[:100]}",
                post_id=post.id,
                detected_at=post.created_at,
            )
        )
    events.sort(key=lambda e: e.relevance, reverse=True)
    return events[:MAX_EVENTS]


def related_sectors(posts: Sequence[Post]) -> list[str]:
    """Sectors named in at least 20% of posts (and never fewer than two)."""
    counts: Counter[str] = Counter()
    for post in posts:
        counts.update(m.category for m in SECTORS.match(post.text))
    threshold = max(len(posts) * 0.2, 2)
    return [sector for sector, count in counts.most_common() if count >= threshold]


def impact_level(score: float, events: Sequence[RegulatoryEvent]) -> Level:
    high = sum(1 for e in events if e.impact is Level.high)
    if score > 70 or high >= 2:
        return Level.high
    if score > 40 or high >= 1:
        return Level.medium
    return Level.low


def regulatory_sentiment(matches: Sequence[KeywordMatch], events: Sequence[RegulatoryEvent]) -> str:
    positive = sum(1 for e in events if e.event_type in POSITIVE_EVENT_TYPES)
    if positive > len(events) * 0.6 or len(matches) > 3:
        return "positive"
    return "neutral"


@registry.register(
    name="Regulatory Tailwind Radar",
    description="Favourable regulatory events discussed alongside the ticker",
)
class RegulatoryTailwind(SignalStrategy):
    signal_type = SignalType.regulatory_tailwind
    defaults = {"lookback_days": 7}
    overrides = (
        OverrideRule(
            "high_impact",
            lambda m: m.impact_level is Level.high and m.tailwind_score > 70,
            direction=Direction.bullish,
            strength=Strength.strong,
            timeframe=Timeframe.medium,
        ),
        OverrideRule(
            "medium_impact",
            lambda m: m.impact_level is Level.medium and m.tailwind_score > 50,
            direction=Direction.bullish,
            strength=Strength.moderate,
            timeframe=Timeframe.medium,
        ),
        OverrideRule(
            "emerging",
            lambda m: m.tailwind_score > 30,
            direction=Direction.bullish,
            strength=Strength.weak,
            timeframe=Timeframe.long,
        ),
    )

    async def fetch(self, ctx: SignalContext) -> Evidence:
        query = keyword_query(ctx.ticker, QUERY_TERMS)
        posts = await ctx.fetcher.fetch_recent(query, ctx.days("lookback_days"), ctx.now)
        return Evidence(posts=posts)

    def analyze(self, evidence: Evidence, ctx: SignalContext) -> Analysis:
        matches = keyword_matches(evidence.posts)
        events = detect_events(evidence.posts, ctx.now)
        components = [
            ScoreComponent("keywords", sum(m.frequency * m.weight for m in matches), weight=1 / 5, cap=50),
            ScoreComponent("events", sum(EVENT_POINTS[e.impact] for e in events), cap=50),
        ]
        score = aggregate(components)
        metrics = RegulatoryMetrics(
            tailwind_score=score,
            impact_level=impact_level(score, events),
            sentiment=regulatory_sentiment(matches, events),
            keyword_matches=matches,
            events=events,
            related_sectors=related_sectors(evidence.posts),
            components=breakdown(components),
        )
        return Analysis(score=score, details=metrics, scores={"tailwind_score": score})
