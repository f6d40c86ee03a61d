from __future__ import annotations

import random
from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .exceptions import (
    ClassificationGap,
    IncompleteAssessment,
    InvalidAnswer,
    InvalidSampleSize,
    PolicyOverlap,
)
from .stress_bank import STRESS_QUESTIONS, Question, max_option_value

QUIZ_ID = "stress-assessment"
QUIZ_TITLE = "Stress Level Assessment"
QUIZ_DESCRIPTION = "This brief assessment can help you understand your current stress levels."
DEFAULT_SAMPLE_SIZE = 10

LOW_STRESS = "Low Stress"
MODERATE_STRESS = "Moderate Stress"
HIGH_STRESS = "High Stress"


@dataclass(frozen=True)
class ScoringRange:
    min_score: int
    max_score: int
    level: str
    description: str
    tag: str

    def contains(self, score: int) -> bool:
        return self.min_score <= score <= self.max_score


@dataclass(frozen=True)
class Quiz:
    id: str
    title: str
    description: str
    questions: Tuple[Question, ...]
    scoring: Tuple[ScoringRange, ...]

    @property
    def max_score(self) -> int:
        return len(self.questions) * max_option_value(self.questions)

    def question_ids(self) -> List[str]:
        return [question.id for question in self.questions]


@dataclass
class AssessmentResult:
    total_score: int
    max_score: int
    tier: ScoringRange
    recommended_steps: List[str]


BASE_SCORING_RANGES: Tuple[ScoringRange, ...] = (
    ScoringRange(
        min_score=0,
        max_score=7,
        level=LOW_STRESS,
        description="You're managing stress well. Keep up the good work with your current coping strategies.",
        tag="success",
    ),
    ScoringRange(
        min_score=8,
        max_score=13,
        level=MODERATE_STRESS,
        description=(
            "You're experiencing some stress. Consider incorporating stress-reduction techniques "
            "into your routine."
        ),
        tag="info",
    ),
    ScoringRange(
        min_score=14,
        max_score=20,
        level=HIGH_STRESS,
        description=(
            "You're experiencing significant stress. It may be helpful to speak with a counselor "
            "or mental health professional."
        ),
        tag="warning",
    ),
)

RECOMMENDED_STEPS: Dict[str, List[str]] = {
    LOW_STRESS: [
        "Continue your current stress management practices.",
        "Consider sharing your strategies with friends who might benefit.",
    ],
    MODERATE_STRESS: [
        "Try our breathing exercises or journaling tools.",
        "Consider establishing a regular self-care routine.",
        "Explore our stress management resources.",
    ],
    HIGH_STRESS: [
        "Consider speaking with a counselor or mental health professional.",
        "Use our crisis resources if you need immediate support.",
        "Try daily stress-reduction activities like breathing exercises.",
    ],
}


def scoring_policy(
    sample_size: int,
    max_value: int = 4,
    base_ranges: Sequence[ScoringRange] = BASE_SCORING_RANGES,
) -> Tuple[ScoringRange, ...]:
    """Scoring ranges for a quiz of ``sample_size`` questions.

    The base ranges were authored for a 20-point scale. Longer quizzes can
    reach higher totals, so the top tier is stretched up to the achievable
    maximum instead of leaving those totals unclassified.
    """
    ranges = list(base_ranges)
    if not ranges:
        return ()
    achievable = sample_size * max_value
    top = ranges[-1]
    if achievable > top.max_score:
        ranges[-1] = replace(top, max_score=achievable)
    return tuple(ranges)


def check_policy_coverage(ranges: Sequence[ScoringRange], sample_size: int, max_value: int) -> None:
    for item in ranges:
        if item.min_score > item.max_score:
            raise PolicyOverlap(f"Range {item.level} is inverted ({item.min_score} > {item.max_score}).")
    for prev, curr in zip(ranges, ranges[1:]):
        if curr.min_score <= prev.max_score:
            raise PolicyOverlap(
                f"Ranges {prev.level} and {curr.level} overlap or are out of order."
            )
    for score in range(0, sample_size * max_value + 1):
        if not any(item.contains(score) for item in ranges):
            raise ClassificationGap(score, sample_size=sample_size)


def validate_scoring(questions: Sequence[Question] = STRESS_QUESTIONS) -> None:
    """Check the policy for every sample size the quiz endpoint accepts."""
    max_value = max_option_value(questions)
    for sample_size in range(0, len(questions) + 1):
        check_policy_coverage(scoring_policy(sample_size, max_value), sample_size, max_value)


def sample_questions(
    questions: Sequence[Question],
    count: int,
    rng: Optional[random.Random] = None,
) -> List[Question]:
    pool = list(questions)
    if isinstance(count, bool) or not isinstance(count, int) or count < 0 or count > len(pool):
        raise InvalidSampleSize(count, len(pool))
    if count == 0:
        return []
    rng = rng or random.Random()
    rng.shuffle(pool)
    return pool[:count]


def score_answers(questions: Sequence[Question], answers: Mapping[str, int]) -> int:
    quiz_ids = {question.id for question in questions}
    for question_id in answers:
        if question_id not in quiz_ids:
            raise InvalidAnswer(
                f"Answer given for question {question_id}, which is not part of this quiz.",
                question_id=question_id,
            )

    missing = [question.id for question in questions if question.id not in answers]
    if missing:
        raise IncompleteAssessment(missing)

    total = 0
    for question in questions:
        value = answers[question.id]
        if isinstance(value, bool) or not isinstance(value, int) or value not in question.option_values():
            raise InvalidAnswer(
                f"Invalid option value {value!r} for question {question.id}.",
                question_id=question.id,
            )
        total += value
    return total


def classify_score(score: int, ranges: Sequence[ScoringRange]) -> ScoringRange:
    for item in ranges:
        if item.contains(score):
            return item
    raise ClassificationGap(score)


def recommended_steps(level: str) -> List[str]:
    return list(RECOMMENDED_STEPS.get(level, []))


def create_quiz(
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    rng: Optional[random.Random] = None,
    questions: Sequence[Question] = STRESS_QUESTIONS,
) -> Quiz:
    selected = sample_questions(questions, sample_size, rng=rng)
    return Quiz(
        id=QUIZ_ID,
        title=QUIZ_TITLE,
        description=QUIZ_DESCRIPTION,
        questions=tuple(selected),
        scoring=scoring_policy(sample_size, max_option_value(questions)),
    )


def evaluate(quiz: Union[Quiz, Sequence[Question]], answers: Mapping[str, int]) -> AssessmentResult:
    if isinstance(quiz, Quiz):
        questions = quiz.questions
        ranges = quiz.scoring
    else:
        questions = tuple(quiz)
        ranges = scoring_policy(len(questions), max_option_value(STRESS_QUESTIONS))

    total = score_answers(questions, answers)
    tier = classify_score(total, ranges)
    return AssessmentResult(
        total_score=total,
        max_score=len(questions) * max_option_value(questions),
        tier=tier,
        recommended_steps=recommended_steps(tier.level),
    )
