"""Building blocks shared by every signal strategy.

A strategy has two halves: ``fetch`` awaits the collaborators for its
evidence, and ``analyze`` turns that evidence into scores and a metrics model
without any I/O. The generic pipeline in ``service.py`` runs both halves,
asks the LLM collaborator for a baseline classification and applies the
strategy's ``overrides`` to it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import ClassVar

from pydantic import BaseModel

from signal_engine.adapters.base import LLMAdapter, PriceAdapter
from signal_engine.adapters.schemas import Post, PriceBar
from signal_engine.exceptions import ValidationError
from signal_engine.signals.classifier import OverrideRule
from signal_engine.signals.schemas import Narrative, SignalType
from signal_engine.signals.simulator import PricePathSimulator
from signal_engine.signals.windows import TemporalWindowFetcher


@dataclass(frozen=True)
class SignalContext:
    ticker: str
    now: datetime
    params: dict[str, int]
    fetcher: TemporalWindowFetcher
    llm: LLMAdapter
    prices: PriceAdapter
    simulator: PricePathSimulator

    def days(self, name: str) -> timedelta:
        return timedelta(days=self.params[name])

    def hours(self, name: str) -> timedelta:
        return timedelta(hours=self.params[name])


@dataclass(frozen=True)
class Evidence:
    posts: list[Post]
    historical_posts: list[Post] = field(default_factory=list)
    context_posts: list[Post] = field(default_factory=list)
    prices: list[PriceBar] = field(default_factory=list)
    narratives: list[Narrative] = field(default_factory=list)
    current_price: float | None = None


@dataclass(frozen=True)
class Analysis:
    score: float
    details: BaseModel
    scores: dict[str, float] = field(default_factory=dict)
    # Evidence kept on the result and sent to the baseline classifier; None keeps every fetched post
    posts: list[Post] | None = None


class SignalStrategy(ABC):
    signal_type: ClassVar[SignalType]
    defaults: ClassVar[dict[str, int]] = {}
    overrides: ClassVar[tuple[OverrideRule, ...]] = ()

    def resolve_params(self, params: dict[str, int]) -> dict[str, int]:
        unknown = set(params) - set(self.defaults)
        if unknown:
            raise ValidationError(
                f"Unknown parameter(s) for {self.signal_type}: {', '.join(sorted(unknown))}"
            )
        resolved = {**self.defaults, **{k: v for k, v in params.items() if v is not None}}
        for name, value in resolved.items():
            if value <= 0:
                raise ValidationError(f"Parameter '{name}' must be positive, got {value}")
        return resolved

    @abstractmethod
    async def fetch(self, ctx: SignalContext) -> Evidence: ...

    @abstractmethod
    def analyze(self, evidence: Evidence, ctx: SignalContext) -> Analysis: ...
