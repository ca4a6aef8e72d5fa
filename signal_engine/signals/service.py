from datetime import UTC, datetime

import structlog

import signal_engine.signals.strategies  # noqa: F401  registers every strategy
from signal_engine.adapters.base import LLMAdapter, PriceAdapter, SocialAdapter
from signal_engine.config import settings
from signal_engine.exceptions import ValidationError
from signal_engine.signals.base import SignalContext
from signal_engine.signals.classifier import classify, evaluate_overrides
from signal_engine.signals.registry import SignalDefinition, registry
from signal_engine.signals.schemas import AnalyzerResult
from signal_engine.signals.simulator import PricePathSimulator
from signal_engine.signals.windows import TemporalWindowFetcher

logger = structlog.get_logger()


def normalize_ticker(ticker: str) -> str:
    normalized = ticker.upper().strip().lstrip("$")
    if not normalized:
        raise ValidationError("Ticker must not be empty")
    return normalized


class SignalService:
    def __init__(
        self,
        social: SocialAdapter,
        llm: LLMAdapter,
        prices: PriceAdapter,
        simulator: PricePathSimulator | None = None,
        post_cap: int | None = None,
    ) -> None:
        self._fetcher = TemporalWindowFetcher(social)
        self._llm = llm
        self._prices = prices
        self._simulator = simulator or PricePathSimulator(seed=settings.simulation_seed)
        self._post_cap = post_cap or settings.classification_post_cap

    def list_signals(self) -> list[SignalDefinition]:
        return registry.get_signals()

    async def run_signal(
        self,
        signal_type: str,
        ticker: str,
        now: datetime | None = None,
        **params: int | None,
    ) -> AnalyzerResult:
        """Fetch evidence, score it, and classify it with local overrides applied."""
        definition = registry.get(signal_type)
        ticker = normalize_ticker(ticker)
        strategy = definition.strategy
        resolved = strategy.resolve_params(params)
        now = now or datetime.now(UTC)

        logger.info("signal_run", signal_type=definition.signal_type, ticker=ticker, params=resolved)
        ctx = SignalContext(
            ticker=ticker,
            now=now,
            params=resolved,
            fetcher=self._fetcher,
            llm=self._llm,
            prices=self._prices,
            simulator=self._simulator,
        )

        evidence = await strategy.fetch(ctx)
        analysis = strategy.analyze(evidence, ctx)
        posts = analysis.posts if analysis.posts is not None else evidence.posts

        baseline = await self._llm.classify_signal(posts[: self._post_cap], definition.signal_type)
        override = evaluate_overrides(strategy.overrides, analysis.details)
        signal = classify(baseline, ticker, override)

        logger.info(
            "signal_complete",
            signal_type=definition.signal_type,
            ticker=ticker,
            score=analysis.score,
            direction=signal.direction,
            strength=signal.strength,
            override_rule=override.rule if override else None,
            post_count=len(posts),
        )
        return AnalyzerResult(
            ticker=ticker,
            signal_type=definition.signal_type,
            score=analysis.score,
            scores=analysis.scores,
            details=analysis.details,
            signal=signal,
            posts=tuple(posts),
            prices=tuple(evidence.prices),
            analyzed_at=now,
        )
