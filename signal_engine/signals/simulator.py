"""Monte Carlo price paths under geometric Brownian motion.

Three scenarios (bullish, base, bearish) are simulated from the drift and
volatility of historical daily log returns, nudged by a social sentiment
bias. Scenario confidence and probability come from fixed rule tables, not
from the simulated variance. The tables live in ``SimulationConfig`` so they
can be tuned without touching the algorithm.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum

import numpy as np
from pydantic import BaseModel

from signal_engine.exceptions import InsufficientDataError


class Scenario(StrEnum):
    bullish = "bullish"
    base = "base"
    bearish = "bearish"


@dataclass(frozen=True)
class ScenarioSpec:
    scenario: Scenario
    drift_multiplier: float
    volatility_multiplier: float


@dataclass(frozen=True)
class SimulationConfig:
    trading_days_per_year: int = 252
    min_history: int = 20
    confidence_level: float = 0.95
    z_score: float = 1.96
    price_floor: float = 0.01
    # Per-day drift added when the sentiment sign agrees with the scenario
    directional_sentiment_drift: float = 0.002
    base_sentiment_drift: float = 0.001
    # Reported drift adjustment: bias * scale
    sentiment_adjustment_scale: float = 0.15
    sentiment_threshold: float = 0.3
    base_confidence: float = 0.6
    aligned_confidence: float = 0.7
    neutral_confidence: float = 0.5
    contradicted_confidence: float = 0.3
    aligned_probability: float = 0.45
    calm_base_probability: float = 0.5
    split_base_probability: float = 0.25
    scenarios: tuple[ScenarioSpec, ...] = field(
        default_factory=lambda: (
            ScenarioSpec(Scenario.bullish, 1.5, 0.9),
            ScenarioSpec(Scenario.base, 1.0, 1.0),
            ScenarioSpec(Scenario.bearish, 0.5, 1.1),
        )
    )


class PricePoint(BaseModel):
    date: datetime
    price: float
    high: float
    low: float


class PricePath(BaseModel):
    scenario: Scenario
    confidence: float
    probability: float
    expected_return: float
    volatility: float
    points: list[PricePoint]


class SimulationParameters(BaseModel):
    days_forward: int
    historical_days: int
    volatility: float
    drift: float
    sentiment_adjustment: float
    confidence_level: float


class SimulationResult(BaseModel):
    current_price: float
    sentiment_bias: float
    parameters: SimulationParameters
    paths: list[PricePath]

    @property
    def most_likely(self) -> PricePath:
        # max() keeps the first of equal probabilities, i.e. scenario order breaks ties
        return max(self.paths, key=lambda p: p.probability)


def historical_metrics(closes: Sequence[float], trading_days: int = 252) -> tuple[float, float]:
    """Annualized drift and volatility (population standard deviation) of daily log returns."""
    returns = np.diff(np.log(np.asarray(closes, dtype=float)))
    if returns.size == 0:
        return 0.0, 0.0
    return float(returns.mean() * trading_days), float(returns.std() * np.sqrt(trading_days))


def box_muller(rng: np.random.Generator, size: int) -> np.ndarray:
    """Standard normal draws from pairs of uniforms."""
    # 1 - U keeps u1 in (0, 1] so the log is finite
    u1 = 1.0 - rng.random(size)
    u2 = rng.random(size)
    return np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)


def normalize_probabilities(raw: Sequence[float]) -> list[float]:
    """Normalize to two decimals summing to exactly 1.00.

    The rounding residue is assigned to the largest entry.
    """
    total = sum(raw)
    if total <= 0:
        raw = [1.0] * len(raw)
        total = float(len(raw))
    cents = [round(p / total * 100) for p in raw]
    largest = max(range(len(cents)), key=lambda i: cents[i])
    cents[largest] += 100 - sum(cents)
    return [c / 100 for c in cents]


class PricePathSimulator:
    def __init__(self, config: SimulationConfig | None = None, seed: int | None = None) -> None:
        self._config = config or SimulationConfig()
        self._seed = seed

    @property
    def config(self) -> SimulationConfig:
        return self._config

    def simulate(
        self,
        closes: Sequence[float],
        days_forward: int,
        sentiment_bias: float,
        now: datetime,
        historical_days: int | None = None,
        current_price: float | None = None,
    ) -> SimulationResult:
        cfg = self._config
        if len(closes) < cfg.min_history:
            raise InsufficientDataError(
                f"Price simulation needs at least {cfg.min_history} closes, got {len(closes)}",
                required=cfg.min_history,
                available=len(closes),
            )

        bias = max(-1.0, min(1.0, sentiment_bias))
        price0 = current_price if current_price is not None else float(closes[-1])
        drift, volatility = historical_metrics(closes, cfg.trading_days_per_year)
        daily_drift = drift / cfg.trading_days_per_year
        daily_vol = volatility / np.sqrt(cfg.trading_days_per_year)

        # One generator per invocation; never shared between calls
        rng = np.random.default_rng(self._seed)

        paths: list[PricePath] = []
        raw_probabilities: list[float] = []
        for spec in cfg.scenarios:
            scenario_drift = daily_drift * spec.drift_multiplier + self._sentiment_drift(spec.scenario, bias)
            scenario_vol = daily_vol * spec.volatility_multiplier
            points = self._walk(price0, days_forward, scenario_drift, scenario_vol, rng, now)
            final = points[-1].price
            paths.append(
                PricePath(
                    scenario=spec.scenario,
                    confidence=self._confidence(spec.scenario, bias),
                    probability=0.0,
                    expected_return=round((final - price0) / price0 * 100, 2),
                    volatility=volatility * spec.volatility_multiplier,
                    points=points,
                )
            )
            raw_probabilities.append(self._raw_probability(spec.scenario, bias))

        for path, probability in zip(paths, normalize_probabilities(raw_probabilities), strict=True):
            path.probability = probability

        return SimulationResult(
            current_price=price0,
            sentiment_bias=bias,
            parameters=SimulationParameters(
                days_forward=days_forward,
                historical_days=historical_days if historical_days is not None else len(closes),
                volatility=volatility,
                drift=drift,
                sentiment_adjustment=bias * cfg.sentiment_adjustment_scale,
                confidence_level=cfg.confidence_level,
            ),
            paths=paths,
        )

    def _walk(
        self,
        price0: float,
        days: int,
        drift: float,
        vol: float,
        rng: np.random.Generator,
        now: datetime,
    ) -> list[PricePoint]:
        cfg = self._config
        points = [PricePoint(date=now, price=price0, high=price0, low=price0)]
        if days <= 0:
            return points

        shocks = box_muller(rng, days)
        prices = price0 * np.exp(np.cumsum(drift + shocks * vol))
        for day, price in enumerate(prices, start=1):
            half_width = cfg.z_score * price * vol * np.sqrt(day)
            points.append(
                PricePoint(
                    date=now + timedelta(days=day),
                    price=round(float(price), 2),
                    high=round(float(price + half_width), 2),
                    low=round(max(float(price - half_width), cfg.price_floor), 2),
                )
            )
        return points

    def _sentiment_drift(self, scenario: Scenario, bias: float) -> float:
        cfg = self._config
        if scenario is Scenario.bullish and bias > 0:
            return bias * cfg.directional_sentiment_drift
        if scenario is Scenario.bearish and bias < 0:
            return bias * cfg.directional_sentiment_drift
        if scenario is Scenario.base:
            return bias * cfg.base_sentiment_drift
        return 0.0

    def _confidence(self, scenario: Scenario, bias: float) -> float:
        cfg = self._config
        threshold = cfg.sentiment_threshold
        if scenario is Scenario.base:
            return cfg.base_confidence
        aligned = bias > threshold if scenario is Scenario.bullish else bias < -threshold
        contradicted = bias < -threshold if scenario is Scenario.bullish else bias > threshold
        if aligned:
            return cfg.aligned_confidence
        if contradicted:
            return cfg.contradicted_confidence
        return cfg.neutral_confidence

    def _raw_probability(self, scenario: Scenario, bias: float) -> float:
        cfg = self._config
        threshold = cfg.sentiment_threshold
        if scenario is Scenario.bullish and bias > threshold:
            return cfg.aligned_probability
        if scenario is Scenario.bearish and bias < -threshold:
            return cfg.aligned_probability
        if scenario is Scenario.base:
            return cfg.calm_base_probability if abs(bias) < threshold else cfg.split_base_probability
        return 1 / 3
