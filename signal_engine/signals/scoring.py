"""Two-stage clamped weighted scoring.

Each component contributes ``value * weight`` clamped to ``[0, cap]``;
penalty components subtract their clamped contribution. The sum is then
clamped to the score range, so no single runaway indicator can dominate.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from signal_engine.signals.indicators import clamp

SCORE_MIN = 0.0
SCORE_MAX = 100.0


@dataclass(frozen=True)
class ScoreComponent:
    name: str
    value: float
    weight: float = 1.0
    cap: float = SCORE_MAX
    penalty: bool = False

    @property
    def contribution(self) -> float:
        points = clamp(self.value * self.weight, 0.0, self.cap)
        return -points if self.penalty else points


def aggregate(
    components: Iterable[ScoreComponent],
    low: float = SCORE_MIN,
    high: float = SCORE_MAX,
    round_result: bool = True,
) -> float:
    total = clamp(sum(c.contribution for c in components), low, high)
    return float(round(total)) if round_result else total


def breakdown(components: Iterable[ScoreComponent]) -> dict[str, float]:
    """Per-component contribution, for attaching to a result's details."""
    return {c.name: round(c.contribution, 4) for c in components}
