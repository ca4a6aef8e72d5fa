"""Management credibility: tone and red flags in official communication."""

import re
from collections import Counter
from collections.abc import Sequence
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel

from signal_engine.adapters.schemas import Post, UserProfile
from signal_engine.signals.base import Analysis, Evidence, SignalContext, SignalStrategy
from signal_engine.signals.classifier import OverrideRule
from signal_engine.signals.indicators import days_between, distinct_authors, raw_engagement, safe_ratio
from signal_engine.signals.lexicon import LexiconEntry, PatternSet
from signal_engine.signals.registry import registry
from signal_engine.signals.schemas import Direction, Level, SignalType, Strength, Timeframe
from signal_engine.signals.scoring import ScoreComponent, aggregate, breakdown
from signal_engine.signals.windows import ticker_query


class Tone(StrEnum):
    defensive = "defensive"
    promotional = "promotional"
    transparent = "transparent"
    evasive = "evasive"
    measured = "measured"
    mixed = "mixed"


LEVEL_POINTS = {Level.high: 10.0, Level.medium: 5.0, Level.low: 2.0}


def _row(pattern: str, category: str, level: Level) -> LexiconEntry:
    return LexiconEntry(pattern, category, weight=LEVEL_POINTS[level], regex=True, tag=level)


RED_FLAGS = PatternSet(
    "management_red_flags",
    [
        _row(r"will (definitely|absolutely|certainly) (moon|explode|10x|100x)", "overpromising", Level.high),
        _row(r"guaranteed (profit|returns|gains)", "overpromising", Level.high),
        _row(r"to the moon", "overpromising", Level.medium),
        _row(r"next (bitcoin|ethereum|tesla)", "overpromising", Level.medium),
        _row(r"haters (gonna hate|wrong)", "defensive", Level.high),
        _row(r"(fud|spreading lies|fake news)", "defensive", Level.medium),
        _row(r"they don't understand", "defensive", Level.low),
        _row(r"(short sellers|shorts) are (lying|wrong|scared)", "attacking_critics", Level.high),
        _row(r"critics will be proven wrong", "attacking_critics", Level.medium),
        _row(r"buy buy buy", "excessive_promotion", Level.high),
        _row(r"don't miss out", "excessive_promotion", Level.medium),
        _row(r"last chance", "excessive_promotion", Level.medium),
        _row(r"soon™", "vague_language", Level.low),
        _row(r"big announcement (soon|coming)", "vague_language", Level.medium),
        _row(r"working on something huge", "vague_language", Level.medium),
        _row(r"not our fault", "blaming_others", Level.medium),
        _row(r"(regulators|competition|market) (against|targeting) us", "blaming_others", Level.medium),
    ],
)

POSITIVE_SIGNALS = PatternSet(
    "management_positive_signals",
    [
        _row(r"(sharing|disclosing) (details|information|data)", "transparency", Level.high),
        _row(r"here's what (happened|we learned|went wrong)", "transparency", Level.high),
        _row(r"quarterly (results|report|update)", "transparency", Level.medium),
        _row(r"we (made a mistake|were wrong|need to improve)", "accountability", Level.high),
        _row(r"taking responsibility", "accountability", Level.high),
        _row(r"could have done better", "accountability", Level.medium),
        _row(r"metrics show|data indicates|numbers demonstrate", "data_driven", Level.high),
        _row(r"\d+% (growth|increase|improvement)", "data_driven", Level.medium),
        _row(r"addressing (concerns|questions|feedback)", "addressing_concerns", Level.high),
        _row(r"we hear you", "addressing_concerns", Level.medium),
        _row(r"(long[- ]term|sustainable|building for)", "long_term_focus", Level.medium),
        _row(r"patient capital", "long_term_focus", Level.high),
        _row(r"launching (on|in) \w+ \d+", "specific_details", Level.high),
        _row(r"\$\d+[km] (revenue|partnership|contract)", "specific_details", Level.high),
    ],
)

_TRANSPARENCY = re.compile(r"\b(sharing|update|report|data|metrics|details)\b", re.IGNORECASE)
_VAGUE = re.compile(r"\b(soon|coming|big announcement)\b", re.IGNORECASE)
_ACCOUNTABILITY = re.compile(r"\b(mistake|wrong|improve|responsibility|apologize|sorry)\b", re.IGNORECASE)
_PROMOTIONAL = re.compile(r"\b(buy|moon|explode|amazing|incredible|revolutionary|game[- ]?changer)\b", re.IGNORECASE)
_DEFENSIVE = re.compile(r"\b(haters|fud|wrong|lies|critics|shorts)\b", re.IGNORECASE)
_EVASIVE = re.compile(r"\b(soon|maybe|possibly|considering|exploring)\b", re.IGNORECASE)
_MEASURED = re.compile(r"\b(cautious|careful|gradual|steady|sustainable)\b", re.IGNORECASE)

_PROMISE = re.compile(r"\b(launching|release|partnership|success|great)\b", re.IGNORECASE)
_SETBACK = re.compile(r"\b(delayed|postponed|issue|problem|challenge)\b", re.IGNORECASE)
_DENIAL = re.compile(r"\bno (plans|intention)\b", re.IGNORECASE)
_ANNOUNCEMENT = re.compile(r"\b(announcing|launching|introducing)\b", re.IGNORECASE)

MANAGEMENT_ACCOUNT_MIN_SCORE = 50
MAX_MANAGEMENT_ACCOUNTS = 5
INCONSISTENCY_WINDOW_DAYS = 30
INCONSISTENCY_HIGH_DAYS = 7
NEUTRAL_TONE = 0.5


class ToneAnalysis(BaseModel):
    overall_tone: Tone = Tone.mixed
    transparency: float = NEUTRAL_TONE
    consistency: float = NEUTRAL_TONE
    accountability: float = NEUTRAL_TONE
    promotional_level: float = NEUTRAL_TONE
    defensiveness: float = NEUTRAL_TONE


class Finding(BaseModel):
    type: str
    level: Level
    description: str
    post_id: str | None = None
    detected_at: datetime


class ManagementCredibilityMetrics(BaseModel):
    credibility_score: float
    management_accounts: list[UserProfile]
    tone: ToneAnalysis
    red_flags: list[Finding]
    positive_signals: list[Finding]
    components: dict[str, float]


def account_score(profile: UserProfile, ticker: str, best_engagement_ratio: float) -> int:
    score = 0
    if profile.verified:
        score += 30
    if profile.follower_count > 10_000:
        score += 20
    if profile.follower_count > 50_000:
        score += 10
    official = re.compile(rf"({re.escape(ticker)}|official|ceo|founder|team)", re.IGNORECASE)
    if official.search(profile.username) or official.search(profile.bio or ""):
        score += 40
    if best_engagement_ratio > 0.01:
        score += 10
    return score


def identify_management_accounts(posts: Sequence[Post], ticker: str) -> list[UserProfile]:
    best_ratio: dict[str, float] = {}
    for post in posts:
        ratio = raw_engagement(post) / max(post.author.follower_count, 1)
        best_ratio[post.author.id] = max(best_ratio.get(post.author.id, 0.0), ratio)

    scored = [
        (account_score(profile, ticker, best_ratio[author_id]), profile)
        for author_id, profile in distinct_authors(posts).items()
    ]
    scored = [item for item in scored if item[0] > MANAGEMENT_ACCOUNT_MIN_SCORE]
    scored.sort(key=lambda item: item[0], reverse=True)
    return [profile for _, profile in scored[:MAX_MANAGEMENT_ACCOUNTS]]


def analyze_tone(posts: Sequence[Post]) -> ToneAnalysis:
    if not posts:
        return ToneAnalysis()

    counts: Counter[str] = Counter()
    tones: list[Tone] = []
    for post in posts:
        text = post.text
        if _TRANSPARENCY.search(text) and not _VAGUE.search(text):
            counts["transparency"] += 1
            tones.append(Tone.transparent)
        if _ACCOUNTABILITY.search(text):
            counts["accountability"] += 1
            tones.append(Tone.transparent)
        if _PROMOTIONAL.search(text):
            counts["promotional"] += 1
            tones.append(Tone.promotional)
        if _DEFENSIVE.search(text):
            counts["defensive"] += 1
            tones.append(Tone.defensive)
        if _EVASIVE.search(text):
            tones.append(Tone.evasive)
        if _MEASURED.search(text):
            tones.append(Tone.measured)

    n = len(posts)
    transparency = min(counts["transparency"] / n, 1.0)
    accountability = min(counts["accountability"] / n, 1.0)
    promotional = min(counts["promotional"] / n, 1.0)
    defensiveness = min(counts["defensive"] / n, 1.0)
    tone_counts = Counter(tones)
    consistency = safe_ratio(max(tone_counts.values(), default=0), len(tones), default=NEUTRAL_TONE)

    if defensiveness > 0.3:
        overall = Tone.defensive
    elif promotional > 0.4:
        overall = Tone.promotional
    elif transparency > 0.3 and accountability > 0.2:
        overall = Tone.transparent
    elif tone_counts[Tone.evasive] > len(tones) * 0.3:
        overall = Tone.evasive
    elif tone_counts[Tone.measured] > len(tones) * 0.3:
        overall = Tone.measured
    else:
        overall = Tone.mixed

    return ToneAnalysis(
        overall_tone=overall,
        transparency=transparency,
        consistency=min(consistency, 1.0),
        accountability=accountability,
        promotional_level=promotional,
        defensiveness=defensiveness,
    )


def scan_findings(posts: Sequence[Post], pattern_set: PatternSet) -> list[Finding]:
    return [
        Finding(
            type=m.category,
            level=Level(m.entry.tag),
            description=f"Detected {m.category} pattern",
            post_id=post.id,
            detected_at=post.created_at,
        )
        for post in posts
        for m in pattern_set.match(post.text)
    ]


def detect_inconsistencies(posts: Sequence[Post]) -> list[Finding]:
    """Upbeat statements followed by setbacks, or denials followed by announcements."""
    ordered = sorted(posts, key=lambda p: p.created_at)
    findings: list[Finding] = []
    for i, earlier in enumerate(ordered):
        for later in ordered[i + 1 :]:
            contradicts = (_PROMISE.search(earlier.text) and _SETBACK.search(later.text)) or (
                _DENIAL.search(earlier.text) and _ANNOUNCEMENT.search(later.text)
            )
            if not contradicts:
                continue
            gap = days_between(earlier.created_at, later.created_at)
            if gap < INCONSISTENCY_WINDOW_DAYS:
                findings.append(
                    Finding(
                        type="inconsistent",
                        level=Level.high if gap < INCONSISTENCY_HIGH_DAYS else Level.medium,
                        description=f"Potentially contradictory statements within {round(gap)} days",
                        post_id=later.id,
                        detected_at=later.created_at,
                    )
                )
    return findings


def credibility_components(
    tone: ToneAnalysis, red_flags: Sequence[Finding], positives: Sequence[Finding]
) -> list[ScoreComponent]:
    tone_points = (
        tone.transparency * 15
        + tone.accountability * 15
        + tone.consistency * 15
        + (1 - tone.defensiveness) * 10
        + (1 - tone.promotional_level) * 5
    )
    return [
        ScoreComponent("tone", tone_points, cap=60),
        ScoreComponent("red_flags", sum(LEVEL_POINTS[f.level] for f in red_flags), cap=30, penalty=True),
        ScoreComponent("positive_signals", sum(LEVEL_POINTS[f.level] for f in positives), cap=30),
    ]


@registry.register(
    name="Management Credibility",
    description="Tone, consistency and red flags in management communication",
)
class ManagementCredibility(SignalStrategy):
    signal_type = SignalType.management_credibility
    defaults = {"lookback_days": 30}
    # The < 25 band must come before < 40 or it can never match
    overrides = (
        OverrideRule(
            "highly_credible",
            lambda m: m.credibility_score > 75,
            direction=Direction.bullish,
            strength=Strength.strong,
            timeframe=Timeframe.long,
        ),
        OverrideRule(
            "credible",
            lambda m: m.credibility_score > 60,
            direction=Direction.bullish,
            strength=Strength.moderate,
            timeframe=Timeframe.medium,
        ),
        OverrideRule(
            "not_credible",
            lambda m: m.credibility_score < 25,
            direction=Direction.bearish,
            strength=Strength.strong,
            timeframe=Timeframe.short,
        ),
        OverrideRule(
            "questionable",
            lambda m: m.credibility_score < 40,
            direction=Direction.bearish,
            strength=Strength.moderate,
            timeframe=Timeframe.medium,
        ),
    )

    async def fetch(self, ctx: SignalContext) -> Evidence:
        posts = await ctx.fetcher.fetch_recent(ticker_query(ctx.ticker), ctx.days("lookback_days"), ctx.now)
        return Evidence(posts=posts)

    def analyze(self, evidence: Evidence, ctx: SignalContext) -> Analysis:
        accounts = identify_management_accounts(evidence.posts, ctx.ticker)
        account_ids = {a.id for a in accounts}
        management_posts = [p for p in evidence.posts if p.author.id in account_ids]

        tone = analyze_tone(management_posts)
        red_flags = scan_findings(management_posts, RED_FLAGS) + detect_inconsistencies(management_posts)
        positives = scan_findings(management_posts, POSITIVE_SIGNALS)
        components = credibility_components(tone, red_flags, positives)
        score = aggregate(components)

        metrics = ManagementCredibilityMetrics(
            credibility_score=score,
            management_accounts=accounts,
            tone=tone,
            red_flags=red_flags,
            positive_signals=positives,
            components=breakdown(components),
        )
        return Analysis(
            score=score,
            details=metrics,
            scores={"credibility_score": score},
            posts=management_posts,
        )
