"""Baseline classification followed by local threshold overrides.

The LLM collaborator produces a baseline ``SignalClassification``. Each
strategy then declares an ordered tuple of ``OverrideRule`` objects over its
own metrics; the first rule whose predicate holds replaces the baseline's
direction/strength/timeframe. Confidence always stays the baseline's.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from signal_engine.signals.schemas import Direction, SignalClassification, Strength, Timeframe


@dataclass(frozen=True)
class LocalOverride:
    rule: str
    direction: Direction | None = None
    strength: Strength | None = None
    timeframe: Timeframe | None = None


@dataclass(frozen=True)
class OverrideRule:
    name: str
    when: Callable[[Any], bool]
    direction: Direction | None = None
    strength: Strength | None = None
    timeframe: Timeframe | None = None

    def to_override(self) -> LocalOverride:
        return LocalOverride(
            rule=self.name,
            direction=self.direction,
            strength=self.strength,
            timeframe=self.timeframe,
        )


def evaluate_overrides(rules: Sequence[OverrideRule], metrics: Any) -> LocalOverride | None:
    """Return the override of the first matching rule, or None to keep the baseline."""
    for rule in rules:
        if rule.when(metrics):
            return rule.to_override()
    return None


def merge_tickers(tickers: Sequence[str], ticker: str) -> tuple[str, ...]:
    return tuple(dict.fromkeys([*tickers, ticker]))


def classify(
    baseline: SignalClassification,
    ticker: str,
    override: LocalOverride | None = None,
) -> SignalClassification:
    """Apply ``override`` on top of ``baseline``; the baseline object is not modified."""
    update: dict[str, Any] = {"tickers": merge_tickers(baseline.tickers, ticker)}
    if override is not None:
        if override.direction is not None:
            update["direction"] = override.direction
        if override.strength is not None:
            update["strength"] = override.strength
        if override.timeframe is not None:
            update["timeframe"] = override.timeframe
        update["metadata"] = {**baseline.metadata, "override_rule": override.rule}
    return baseline.model_copy(update=update)
