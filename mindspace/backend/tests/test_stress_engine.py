import os
import random
import sys
import unittest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from mindspace.backend.app import stress_engine
from mindspace.backend.app.exceptions import (
    ClassificationGap,
    IncompleteAssessment,
    InvalidAnswer,
    InvalidSampleSize,
)
from mindspace.backend.app.stress_bank import STRESS_QUESTIONS


def answer_all(questions, value):
    return {q.id: value for q in questions}


class SamplerTests(unittest.TestCase):
    def test_sample_returns_distinct_bank_questions(self):
        rng = random.Random(7)
        bank_ids = {q.id for q in STRESS_QUESTIONS}
        for count in (0, 1, 10, 25, 50):
            selected = stress_engine.sample_questions(STRESS_QUESTIONS, count, rng=rng)
            ids = [q.id for q in selected]
            self.assertEqual(len(ids), count)
            self.assertEqual(len(set(ids)), count)
            self.assertTrue(set(ids) <= bank_ids)

    def test_sample_zero_is_empty(self):
        self.assertEqual(stress_engine.sample_questions(STRESS_QUESTIONS, 0), [])

    def test_sample_does_not_mutate_bank(self):
        before = [q.id for q in STRESS_QUESTIONS]
        stress_engine.sample_questions(STRESS_QUESTIONS, 10, rng=random.Random(1))
        self.assertEqual([q.id for q in STRESS_QUESTIONS], before)

    def test_same_seed_same_selection(self):
        first = stress_engine.sample_questions(STRESS_QUESTIONS, 10, rng=random.Random(42))
        second = stress_engine.sample_questions(STRESS_QUESTIONS, 10, rng=random.Random(42))
        self.assertEqual([q.id for q in first], [q.id for q in second])

    def test_every_question_eventually_selected(self):
        rng = random.Random(2024)
        seen = set()
        for _ in range(1000):
            seen.update(q.id for q in stress_engine.sample_questions(STRESS_QUESTIONS, 10, rng=rng))
        self.assertEqual(seen, {q.id for q in STRESS_QUESTIONS})

    def test_oversized_sample_rejected(self):
        with self.assertRaises(InvalidSampleSize) as ctx:
            stress_engine.sample_questions(STRESS_QUESTIONS, 51)
        self.assertEqual(ctx.exception.details, {"requested": 51, "available": 50})

    def test_negative_sample_rejected(self):
        with self.assertRaises(InvalidSampleSize):
            stress_engine.sample_questions(STRESS_QUESTIONS, -1)


class ScorerTests(unittest.TestCase):
    def setUp(self):
        self.questions = list(STRESS_QUESTIONS[:5])

    def test_score_is_sum_of_values(self):
        answers = {"q1": 0, "q2": 1, "q3": 2, "q4": 3, "q5": 4}
        self.assertEqual(stress_engine.score_answers(self.questions, answers), 10)

    def test_score_independent_of_order(self):
        answers = {"q1": 3, "q2": 1, "q3": 4, "q4": 0, "q5": 2}
        forward = stress_engine.score_answers(self.questions, answers)
        backward = stress_engine.score_answers(list(reversed(self.questions)), dict(reversed(list(answers.items()))))
        self.assertEqual(forward, backward)

    def test_missing_answer_rejected(self):
        with self.assertRaises(IncompleteAssessment) as ctx:
            stress_engine.score_answers(self.questions, {"q1": 1, "q2": 1, "q3": 1})
        self.assertEqual(ctx.exception.details["missing_question_ids"], ["q4", "q5"])

    def test_answer_outside_quiz_rejected(self):
        answers = answer_all(self.questions, 1)
        answers["q40"] = 2
        with self.assertRaises(InvalidAnswer):
            stress_engine.score_answers(self.questions, answers)

    def test_value_not_an_option_rejected(self):
        answers = answer_all(self.questions, 1)
        answers["q2"] = 7
        with self.assertRaises(InvalidAnswer):
            stress_engine.score_answers(self.questions, answers)

    def test_empty_quiz_scores_zero(self):
        self.assertEqual(stress_engine.score_answers([], {}), 0)


class ClassifierTests(unittest.TestCase):
    def test_reference_boundaries(self):
        ranges = stress_engine.BASE_SCORING_RANGES
        self.assertEqual(stress_engine.classify_score(0, ranges).level, "Low Stress")
        self.assertEqual(stress_engine.classify_score(7, ranges).level, "Low Stress")
        self.assertEqual(stress_engine.classify_score(8, ranges).level, "Moderate Stress")
        self.assertEqual(stress_engine.classify_score(13, ranges).level, "Moderate Stress")
        self.assertEqual(stress_engine.classify_score(14, ranges).level, "High Stress")
        self.assertEqual(stress_engine.classify_score(20, ranges).level, "High Stress")

    def test_matched_range_contains_score(self):
        ranges = stress_engine.scoring_policy(10)
        for score in range(0, 41):
            tier = stress_engine.classify_score(score, ranges)
            self.assertTrue(tier.min_score <= score <= tier.max_score)
            self.assertEqual(sum(1 for item in ranges if item.contains(score)), 1)

    def test_classify_is_repeatable(self):
        ranges = stress_engine.BASE_SCORING_RANGES
        self.assertEqual(stress_engine.classify_score(11, ranges), stress_engine.classify_score(11, ranges))

    def test_unmatched_score_raises_gap(self):
        with self.assertRaises(ClassificationGap):
            stress_engine.classify_score(21, stress_engine.BASE_SCORING_RANGES)


class QuizTests(unittest.TestCase):
    def test_create_quiz_defaults(self):
        quiz = stress_engine.create_quiz(rng=random.Random(3))
        self.assertEqual(quiz.id, "stress-assessment")
        self.assertEqual(quiz.title, "Stress Level Assessment")
        self.assertEqual(len(quiz.questions), 10)
        self.assertEqual(quiz.max_score, 40)
        self.assertEqual(quiz.scoring[-1].max_score, 40)

    def test_evaluate_all_minimum_is_low_stress(self):
        quiz = stress_engine.create_quiz(rng=random.Random(5))
        answers = {q.id: min(q.option_values()) for q in quiz.questions}
        result = stress_engine.evaluate(quiz, answers)
        self.assertEqual(result.total_score, 0)
        self.assertEqual(result.tier.level, "Low Stress")
        self.assertTrue(result.recommended_steps)

    def test_evaluate_total_of_eight_is_moderate(self):
        quiz = stress_engine.create_quiz(rng=random.Random(9))
        answers = {q.id: 0 for q in quiz.questions}
        for question in quiz.questions[:4]:
            answers[question.id] = 2
        result = stress_engine.evaluate(quiz, answers)
        self.assertEqual(result.total_score, 8)
        self.assertEqual(result.tier.level, "Moderate Stress")

    def test_evaluate_twenty_and_maximum_are_high(self):
        quiz = stress_engine.create_quiz(rng=random.Random(11))
        half = {q.id: 2 for q in quiz.questions}
        self.assertEqual(stress_engine.evaluate(quiz, half).tier.level, "High Stress")
        worst = {q.id: 4 for q in quiz.questions}
        result = stress_engine.evaluate(quiz, worst)
        self.assertEqual(result.total_score, 40)
        self.assertEqual(result.max_score, 40)
        self.assertEqual(result.tier.level, "High Stress")

    def test_evaluate_question_list(self):
        questions = list(STRESS_QUESTIONS[10:15])
        result = stress_engine.evaluate(questions, answer_all(questions, 1))
        self.assertEqual(result.total_score, 5)
        self.assertEqual(result.max_score, 20)
        self.assertEqual(result.tier.level, "Low Stress")

    def test_recommended_steps_unknown_level(self):
        self.assertEqual(stress_engine.recommended_steps("Unknown"), [])


if __name__ == "__main__":
    unittest.main()
