import pytest

from signal_engine.signals.narratives import (
    NarrativeCorrelator,
    correlation_score,
    deduplicate,
    narrative_keywords,
    overall_sentiment,
    select_macro_narratives,
    timing_score,
)
from signal_engine.signals.schemas import Direction, Momentum, NarrativeCategory
from tests.conftest import make_narrative, make_post


class TestNarrativeKeywords:
    def test_merges_sentiment_keywords_and_long_title_words(self):
        narrative = make_narrative("Fed rate cuts", keywords=("rates", "Fed"))
        assert narrative_keywords(narrative) == ["rates", "fed", "rate", "cuts"]


class TestSelection:
    def test_dedupes_similar_titles(self):
        a = make_narrative("Rate cuts", narrative_id="a")
        b = make_narrative("Rate cuts!", narrative_id="b")
        c = make_narrative("Xylophone zoo", narrative_id="c")
        assert [n.id for n in deduplicate([a, b, c])] == ["a", "c"]

    def test_keeps_macro_categories_ranked_by_momentum(self):
        narratives = [
            make_narrative("Inflation sticky", category=NarrativeCategory.macro, momentum=Momentum.declining),
            make_narrative("Meme stocks back", category=NarrativeCategory.meme, momentum=Momentum.rising),
            make_narrative("Chip subsidies", category=NarrativeCategory.regulatory, momentum=Momentum.rising),
        ]
        selected = select_macro_narratives(narratives)
        assert [n.title for n in selected] == ["Chip subsidies", "Inflation sticky"]


class TestCorrelator:
    def test_zero_overlap_is_excluded(self):
        narrative = make_narrative("Fed rate cuts", keywords=("rates", "fed"))
        posts = [make_post("earnings beat, margins up")]
        assert NarrativeCorrelator().correlate(posts, [narrative]) == []

    def test_full_overlap(self):
        narrative = make_narrative("Fed rate cuts", keywords=("rates", "fed"))
        posts = [make_post("fed cuts rates today", hours_ago=24)]
        (corr,) = NarrativeCorrelator().correlate(posts, [narrative])
        assert corr.correlation == 1.0
        assert corr.shared_keywords == ["rates", "fed", "rate", "cuts"]
        assert corr.time_lag_days == pytest.approx(4.0)

    def test_correlation_is_bounded_and_sorted(self):
        strong = make_narrative("Fed rate cuts", keywords=("rates", "fed"))
        weak = make_narrative("Energy transition", keywords=("solar", "grid", "battery", "wind", "rates"))
        posts = [make_post("fed cuts rates, solar names too")]
        correlations = NarrativeCorrelator(min_correlation=0.0).correlate(posts, [weak, strong])
        assert [c.narrative.title for c in correlations] == ["Fed rate cuts", "Energy transition"]
        assert all(0.0 <= c.correlation <= 1.0 for c in correlations)

    def test_relevance_prefers_matching_sentiment(self):
        narrative = make_narrative("Growth rally", keywords=("growth",), momentum=Momentum.rising)
        bullish_posts = [make_post("strong growth, buy the breakout")]
        bearish_posts = [make_post("growth concern, sell the risk")]
        correlator = NarrativeCorrelator()
        assert correlator.correlate_one(bullish_posts, narrative).relevance == pytest.approx(1.0)
        assert correlator.correlate_one(bearish_posts, narrative).relevance == pytest.approx(0.6)

    def test_empty_posts(self):
        narrative = make_narrative("Fed rate cuts", keywords=("rates",))
        corr = NarrativeCorrelator().correlate_one([], narrative)
        assert corr.correlation == 0.0
        assert corr.time_lag_days == 0.0
        assert corr.relevance == 0.0


class TestAggregateScores:
    def test_overall_sentiment_needs_one_and_a_half_times(self):
        posts = [make_post("buy"), make_post("buy"), make_post("sell")]
        assert overall_sentiment(posts) is Direction.bullish
        assert overall_sentiment(posts + [make_post("sell")]) is Direction.neutral

    def test_scores_are_zero_without_correlations(self):
        assert correlation_score([]) == 0.0
        assert timing_score([]) == 0.0

    def test_timing_peaks_for_three_to_seven_days(self):
        narrative = make_narrative("Fed rate cuts", keywords=("rates", "fed"), days_ago=5)
        posts = [make_post("fed rates", hours_ago=0)]
        correlations = NarrativeCorrelator().correlate(posts, [narrative])
        assert timing_score(correlations) == 100.0
