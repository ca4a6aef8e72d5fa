import pytest

from signal_engine.signals.classifier import evaluate_overrides
from signal_engine.signals.schemas import Momentum, NarrativeCategory, Strength
from signal_engine.signals.strategies.macro_to_micro import MACRO_KEYWORDS, MacroToMicro
from signal_engine.signals.windows import any_of_query
from tests.conftest import FakeLLM, FakeSocial, make_context, make_narrative, make_post

FED = make_narrative("Fed rate cuts", keywords=("rates", "fed"), momentum=Momentum.rising)
MEME = make_narrative("Meme stocks back", category=NarrativeCategory.meme, momentum=Momentum.rising)


def _social(ticker_posts, macro_posts):
    return FakeSocial(routes={"$TSLA": ticker_posts, "(sector OR": macro_posts})


class TestMacroToMicro:
    @pytest.mark.asyncio
    async def test_narrative_translating_into_ticker_discussion(self):
        ticker_posts = [make_post("fed rates cuts are a tailwind, buy", hours_ago=i + 1) for i in range(3)]
        macro_posts = [make_post("inflation cooling, fed to cut rates", hours_ago=24 * 6)]
        social = _social(ticker_posts, macro_posts)
        llm = FakeLLM(narratives=[FED, MEME])
        strategy = MacroToMicro()
        ctx = make_context(strategy, social=social, llm=llm)

        evidence = await strategy.fetch(ctx)
        analysis = strategy.analyze(evidence, ctx)

        assert [c.query for c in social.calls] == ["$TSLA -is:retweet", any_of_query(MACRO_KEYWORDS)]
        assert (social.calls[1].end_time - social.calls[1].start_time).days == 30
        assert llm.narrative_calls == [macro_posts]
        assert evidence.narratives == [FED]

        metrics = analysis.details
        assert metrics.macro_post_count == 1
        assert metrics.macro_narrative_count == 1
        (correlation,) = metrics.correlations
        assert correlation.correlation == 1.0
        assert metrics.correlation_score == 76
        assert metrics.timing_score == 100
        assert analysis.score == 76

        override = evaluate_overrides(strategy.overrides, metrics)
        assert override.rule == "strong_translation"
        assert override.strength is Strength.strong

    @pytest.mark.asyncio
    async def test_no_macro_posts_skips_narrative_detection(self):
        llm = FakeLLM(narratives=[FED])
        strategy = MacroToMicro()
        ctx = make_context(strategy, social=_social([make_post("fed")], []), llm=llm)

        evidence = await strategy.fetch(ctx)
        analysis = strategy.analyze(evidence, ctx)

        assert llm.narrative_calls == []
        assert analysis.score == 0
        assert analysis.details.correlations == []
        assert evaluate_overrides(strategy.overrides, analysis.details) is None

    @pytest.mark.asyncio
    async def test_unrelated_discussion_has_no_correlations(self):
        llm = FakeLLM(narratives=[FED])
        strategy = MacroToMicro()
        social = _social([make_post("new car deliveries look great")], [make_post("economy slowing")])
        ctx = make_context(strategy, social=social, llm=llm)

        analysis = strategy.analyze(await strategy.fetch(ctx), ctx)

        assert analysis.details.correlations == []
        assert analysis.scores == {"correlation_score": 0.0, "timing_score": 0.0, "relevance_score": 0.0}
