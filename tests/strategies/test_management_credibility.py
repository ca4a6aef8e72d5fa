from signal_engine.signals.base import Evidence
from signal_engine.signals.classifier import evaluate_overrides
from signal_engine.signals.schemas import Direction, Level, Strength, Timeframe
from signal_engine.signals.strategies.management_credibility import (
    ManagementCredibility,
    Tone,
    account_score,
    analyze_tone,
    detect_inconsistencies,
    identify_management_accounts,
)
from tests.conftest import make_context, make_post, make_profile

CEO = make_profile("tsla_ceo", followers=100_000, verified=True)
RETAIL = make_profile("randomguy", followers=200)

TRANSPARENT = (
    "Sharing details from our quarterly report: metrics show 25% growth. "
    "We made a mistake on delivery and are taking responsibility."
)
HYPE = "Guaranteed returns for holders, we will definitely moon. Buy buy buy, don't miss out!"


class TestManagementAccounts:
    def test_account_score(self):
        assert account_score(CEO, "TSLA", 0.0) == 100
        assert account_score(RETAIL, "TSLA", 0.0) == 0
        ir = make_profile("acme_ir", followers=20_000, bio="Official investor relations team")
        assert account_score(ir, "TSLA", 0.02) == 70

    def test_identify_excludes_low_scores(self):
        posts = [make_post("hello", author=CEO), make_post("hello", author=RETAIL)]
        assert identify_management_accounts(posts, "TSLA") == [CEO]


class TestTone:
    def test_empty_is_neutral_mixed(self):
        tone = analyze_tone([])
        assert tone.overall_tone is Tone.mixed
        assert tone.transparency == 0.5

    def test_transparent(self):
        tone = analyze_tone([make_post(TRANSPARENT, author=CEO)])
        assert tone.overall_tone is Tone.transparent
        assert tone.transparency == 1.0
        assert tone.accountability == 1.0

    def test_promotional(self):
        assert analyze_tone([make_post(HYPE, author=CEO)]).overall_tone is Tone.promotional


class TestInconsistencies:
    def test_promise_then_setback(self):
        posts = [
            make_post("Launching the partnership next month", author=CEO, hours_ago=24 * 5),
            make_post("Rollout delayed by a supply issue", author=CEO, hours_ago=24),
        ]
        (finding,) = detect_inconsistencies(posts)
        assert finding.level is Level.high
        assert finding.post_id == posts[1].id

    def test_old_contradictions_are_ignored(self):
        posts = [
            make_post("No plans to raise capital", author=CEO, hours_ago=24 * 60),
            make_post("Announcing a new offering", author=CEO, hours_ago=1),
        ]
        assert detect_inconsistencies(posts) == []


class TestManagementCredibility:
    def test_credible_management(self):
        strategy = ManagementCredibility()
        posts = [make_post(TRANSPARENT, author=CEO), make_post("to the moon!!", author=RETAIL)]
        analysis = strategy.analyze(Evidence(posts=posts), make_context(strategy))

        assert analysis.score == 90
        assert analysis.posts == [posts[0]]
        assert analysis.details.red_flags == []
        override = evaluate_overrides(strategy.overrides, analysis.details)
        assert override.rule == "highly_credible"
        assert override.timeframe is Timeframe.long

    def test_hype_is_not_credible(self):
        strategy = ManagementCredibility()
        analysis = strategy.analyze(Evidence(posts=[make_post(HYPE, author=CEO)]), make_context(strategy))

        assert analysis.score == 0
        assert {f.type for f in analysis.details.red_flags} == {"overpromising", "excessive_promotion"}
        override = evaluate_overrides(strategy.overrides, analysis.details)
        assert override.rule == "not_credible"
        assert override.direction is Direction.bearish
        assert override.strength is Strength.strong

    def test_no_management_accounts(self):
        strategy = ManagementCredibility()
        analysis = strategy.analyze(Evidence(posts=[make_post("buy", author=RETAIL)]), make_context(strategy))
        assert analysis.details.management_accounts == []
        assert analysis.posts == []
        assert 0 <= analysis.score <= 100
