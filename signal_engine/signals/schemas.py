"""Output types of the signal engine.

``AnalyzerResult.details`` carries the per-signal metrics model defined
next to each strategy; it is serialized with its concrete fields.
"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny, field_validator

from signal_engine.adapters.schemas import Post, PriceBar


class SignalType(StrEnum):
    whisper_number = "whisper_number"
    crowded_trade_exit = "crowded_trade_exit"
    small_cap_smart_money = "small_cap_smart_money"
    fear_compression = "fear_compression"
    macro_to_micro = "macro_to_micro"
    management_credibility = "management_credibility"
    early_meme = "early_meme"
    regulatory_tailwind = "regulatory_tailwind"
    global_edge = "global_edge"
    future_price_path = "future_price_path"


class Direction(StrEnum):
    bullish = "bullish"
    bearish = "bearish"
    neutral = "neutral"


class Strength(StrEnum):
    weak = "weak"
    moderate = "moderate"
    strong = "strong"


class Timeframe(StrEnum):
    short = "short"
    medium = "medium"
    long = "long"


class Level(StrEnum):
    low = "low"
    medium = "medium"
    high = "high"


class Momentum(StrEnum):
    rising = "rising"
    stable = "stable"
    declining = "declining"


class NarrativeCategory(StrEnum):
    macro = "macro"
    sector = "sector"
    company = "company"
    regulatory = "regulatory"
    technical = "technical"
    meme = "meme"
    other = "other"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SentimentAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=-1.0, le=1.0)
    label: Direction
    confidence: float = Field(gt=0.0, le=1.0)
    keywords: tuple[str, ...] = ()
    reasoning: str | None = None
    analyzed_at: datetime = Field(default_factory=_utcnow)


class Narrative(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    category: NarrativeCategory = NarrativeCategory.other
    sentiment: SentimentAnalysis
    post_count: int = Field(default=0, ge=0)
    top_post_ids: tuple[str, ...] = ()
    started_at: datetime
    last_seen_at: datetime
    momentum: Momentum = Momentum.stable
    related_tickers: tuple[str, ...] = ()

    @field_validator("top_post_ids")
    @classmethod
    def _keep_top_three(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return value[:3]


class SignalClassification(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: SignalType
    strength: Strength
    confidence: float = Field(gt=0.0, le=1.0)
    direction: Direction
    timeframe: Timeframe
    tickers: tuple[str, ...] = ()
    metadata: dict[str, Any] = Field(default_factory=dict)
    generated_at: datetime = Field(default_factory=_utcnow)


class AnalyzerResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    ticker: str
    signal_type: SignalType
    score: float
    scores: dict[str, float] = Field(default_factory=dict)
    details: SerializeAsAny[BaseModel]
    signal: SignalClassification
    posts: tuple[Post, ...] = ()
    prices: tuple[PriceBar, ...] = ()
    analyzed_at: datetime = Field(default_factory=_utcnow)
