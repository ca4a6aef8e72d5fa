import pytest

import signal_engine.signals.strategies  # noqa: F401
from signal_engine.signals.base import Evidence
from signal_engine.signals.classifier import classify, evaluate_overrides
from signal_engine.signals.registry import registry
from signal_engine.signals.schemas import Direction, SignalClassification, SignalType, Strength, Timeframe
from tests.conftest import NOW, make_bars, make_context, make_narrative, make_post, make_profile, random_walk

CEO = make_profile("tsla_ceo", followers=200_000, verified=True, bio="CEO of Tesla $TSLA")
FUND = make_profile("deepvalue", followers=40_000, age_days=3_000, bio="Portfolio manager, small caps")
RETAIL = make_profile("apes4life", followers=150, age_days=10)

TEXTS = [
    ("$TSLA to the moon 🚀 diamond hands, apes together strong #squeeze", RETAIL),
    ("Whisper EPS $1.25 vs consensus $1.10 for $TSLA, strong beat likely", FUND),
    ("FDA approval expected, new legislation gives $TSLA a tax credit tailwind", FUND),
    ("$TSLA expansion into Japan and Europe, demand in China accelerating", FUND),
    ("We delivered record results and take full responsibility for the delay", CEO),
    ("Fed rate cuts and inflation data will drive the sector", FUND),
    ("Panic selling in $TSLA, fear everywhere, capitulation", RETAIL),
    ("$TSLA crash incoming, overvalued bubble", RETAIL),
]

BUNDLE = Evidence(
    posts=[
        make_post(text, author=author, hours_ago=1 + i * 3, likes=10 * i, retweets=i, hashtags=("squeeze",) * (i % 2))
        for i, (text, author) in enumerate(TEXTS)
    ],
    historical_posts=[make_post("fear and panic, sell everything", author=RETAIL, hours_ago=100 + i) for i in range(6)],
    context_posts=[make_post("Fed rate cuts and inflation", author=FUND, hours_ago=48)],
    prices=make_bars(random_walk(30)),
    narratives=[make_narrative("Fed Rate Cuts", keywords=("fed", "rate", "inflation"), days_ago=4)],
    current_price=12.5,
)

BASELINE = SignalClassification(
    type=SignalType.whisper_number,
    strength=Strength.weak,
    confidence=0.5,
    direction=Direction.neutral,
    timeframe=Timeframe.medium,
    tickers=("TSLA", "NVDA"),
    generated_at=NOW,
)

NON_SIMULATED = [d for d in registry.get_signals() if d.signal_type is not SignalType.future_price_path]


def _run(definition):
    strategy = definition.strategy
    analysis = strategy.analyze(BUNDLE, make_context(strategy))
    override = evaluate_overrides(strategy.overrides, analysis.details)
    signal = classify(BASELINE.model_copy(update={"type": definition.signal_type}), "TSLA", override)
    return analysis, signal


@pytest.mark.parametrize("definition", NON_SIMULATED, ids=lambda d: d.signal_type.value)
def test_analysis_is_deterministic(definition):
    first, first_signal = _run(definition)
    second, second_signal = _run(definition)

    assert 0 <= first.score <= 100
    assert first.score == second.score
    assert first.scores == second.scores
    assert first.details.model_dump() == second.details.model_dump()
    assert first_signal == second_signal
    assert first_signal.tickers == ("TSLA", "NVDA")


def test_covers_every_non_simulated_signal():
    assert len(NON_SIMULATED) == 9
