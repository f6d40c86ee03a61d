import asyncio

import pytest

from mindspace.backend.app import main, stress_engine
from mindspace.backend.app.exceptions import BankValidationError, ClassificationGap, PolicyOverlap
from mindspace.backend.app.stress_bank import STRESS_QUESTIONS
from mindspace.backend.app.stress_engine import ScoringRange


def test_policy_covers_every_supported_sample_size():
    stress_engine.validate_scoring()


def test_default_policy_keeps_reference_ranges():
    ranges = stress_engine.scoring_policy(5)
    assert [(r.min_score, r.max_score, r.level) for r in ranges] == [
        (0, 7, "Low Stress"),
        (8, 13, "Moderate Stress"),
        (14, 20, "High Stress"),
    ]


def test_policy_stretches_top_tier_for_long_quizzes():
    ranges = stress_engine.scoring_policy(50)
    assert ranges[-1].max_score == 200
    assert ranges[0].max_score == 7
    assert stress_engine.classify_score(200, ranges).level == "High Stress"


def test_gap_between_ranges_detected():
    ranges = (
        ScoringRange(0, 5, "Low Stress", "", "success"),
        ScoringRange(8, 20, "High Stress", "", "warning"),
    )
    with pytest.raises(ClassificationGap) as excinfo:
        stress_engine.check_policy_coverage(ranges, sample_size=5, max_value=4)
    assert excinfo.value.details == {"score": 6, "sample_size": 5}


def test_uncovered_top_detected():
    with pytest.raises(ClassificationGap):
        stress_engine.check_policy_coverage(stress_engine.BASE_SCORING_RANGES, sample_size=10, max_value=4)


def test_overlap_detected():
    ranges = (
        ScoringRange(0, 8, "Low Stress", "", "success"),
        ScoringRange(8, 20, "High Stress", "", "warning"),
    )
    with pytest.raises(PolicyOverlap):
        stress_engine.check_policy_coverage(ranges, sample_size=5, max_value=4)


def test_startup_self_checks_pass():
    main.run_self_checks()


def test_self_checks_reject_duplicate_question(monkeypatch):
    monkeypatch.setattr(main, "all_questions", lambda: STRESS_QUESTIONS + (STRESS_QUESTIONS[0],))
    with pytest.raises(BankValidationError):
        main.run_self_checks()


def test_self_checks_reject_unstretched_ranges(monkeypatch):
    monkeypatch.setattr(stress_engine, "scoring_policy", lambda sample_size, max_value: stress_engine.BASE_SCORING_RANGES)
    with pytest.raises(ClassificationGap) as excinfo:
        main.run_self_checks()
    assert excinfo.value.details == {"score": 21, "sample_size": 6}


def test_app_startup_aborts_on_broken_bank(monkeypatch):
    monkeypatch.setattr(main, "all_questions", lambda: ())

    async def start():
        async with main.lifespan(main.app):
            pass

    with pytest.raises(BankValidationError):
        asyncio.run(start())
