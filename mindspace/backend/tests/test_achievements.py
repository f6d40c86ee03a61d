import os
import sys
import unittest
from datetime import date, timedelta

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from mindspace.backend.app import achievements
from mindspace.backend.app.achievements import UserStats


def by_id(statuses):
    return {item.id: item for item in statuses}


class AchievementTests(unittest.TestCase):
    def test_nothing_unlocked_for_new_user(self):
        statuses = achievements.evaluate_achievements(UserStats(total_mood_logs=0, streak_count=0))
        self.assertEqual(len(statuses), len(achievements.ACHIEVEMENTS))
        self.assertFalse(any(item.is_unlocked for item in statuses))

    def test_first_mood_unlocks_first_step_and_explorer(self):
        statuses = by_id(achievements.evaluate_achievements(UserStats(total_mood_logs=1, streak_count=1)))
        self.assertTrue(statuses["first-mood"].newly_unlocked)
        self.assertTrue(statuses["explorer"].newly_unlocked)
        self.assertFalse(statuses["mood-week"].is_unlocked)
        self.assertEqual(statuses["mood-week"].current_progress, 1)

    def test_streak_thresholds(self):
        statuses = by_id(achievements.evaluate_achievements(UserStats(total_mood_logs=10, streak_count=7)))
        self.assertTrue(statuses["streak-3"].is_unlocked)
        self.assertTrue(statuses["streak-7"].is_unlocked)
        self.assertFalse(statuses["streak-30"].is_unlocked)

    def test_tool_progress_is_capped(self):
        statuses = by_id(achievements.evaluate_achievements(UserStats(total_mood_logs=60, streak_count=0)))
        self.assertEqual(statuses["self-care"].current_progress, 5)
        self.assertTrue(statuses["self-care"].is_unlocked)

    def test_existing_badge_is_not_new(self):
        statuses = by_id(achievements.evaluate_achievements(
            UserStats(total_mood_logs=1, streak_count=1),
            badges=["first-mood"],
        ))
        self.assertTrue(statuses["first-mood"].is_unlocked)
        self.assertFalse(statuses["first-mood"].newly_unlocked)

    def test_badge_stays_unlocked_after_streak_breaks(self):
        statuses = by_id(achievements.evaluate_achievements(
            UserStats(total_mood_logs=5, streak_count=0),
            badges=["streak-3"],
        ))
        self.assertTrue(statuses["streak-3"].is_unlocked)


class StreakTests(unittest.TestCase):
    def test_current_streak_counts_back_from_today(self):
        today = date(2025, 3, 10)
        dates = [today - timedelta(days=offset) for offset in range(4)]
        self.assertEqual(achievements.compute_current_streak(dates, today), 4)

    def test_current_streak_survives_until_today_is_logged(self):
        today = date(2025, 3, 10)
        dates = [today - timedelta(days=1), today - timedelta(days=2)]
        self.assertEqual(achievements.compute_current_streak(dates, today), 2)

    def test_current_streak_broken(self):
        today = date(2025, 3, 10)
        dates = [today - timedelta(days=3), today - timedelta(days=4)]
        self.assertEqual(achievements.compute_current_streak(dates, today), 0)

    def test_best_streak(self):
        base = date(2025, 1, 1)
        dates = [base, base + timedelta(days=1), base + timedelta(days=5),
                 base + timedelta(days=6), base + timedelta(days=7), base + timedelta(days=7)]
        self.assertEqual(achievements.compute_best_streak(dates), 3)
        self.assertEqual(achievements.compute_best_streak([]), 0)


if __name__ == "__main__":
    unittest.main()
