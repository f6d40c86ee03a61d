from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Optional

ACHIEVEMENTS = [
    {"id": "first-mood", "title": "First Step", "description": "Log your first mood entry",
     "category": "mood", "requirement": 1},
    {"id": "mood-week", "title": "Week Warrior", "description": "Log moods for 7 days",
     "category": "mood", "requirement": 7},
    {"id": "mood-month", "title": "Monthly Master", "description": "Log moods for 30 days",
     "category": "mood", "requirement": 30},
    {"id": "streak-3", "title": "Getting Started", "description": "Maintain a 3-day streak",
     "category": "streak", "requirement": 3},
    {"id": "streak-7", "title": "Week Champion", "description": "Maintain a 7-day streak",
     "category": "streak", "requirement": 7},
    {"id": "streak-30", "title": "Consistency King", "description": "Maintain a 30-day streak",
     "category": "streak", "requirement": 30},
    {"id": "self-care", "title": "Self-Care Advocate", "description": "Use 5 different self-help tools",
     "category": "tools", "requirement": 5},
    {"id": "explorer", "title": "Resource Explorer", "description": "Browse mental health resources",
     "category": "engagement", "requirement": 1},
]

ACHIEVEMENT_IDS = {item["id"] for item in ACHIEVEMENTS}


@dataclass
class UserStats:
    total_mood_logs: int
    streak_count: int


@dataclass
class AchievementStatus:
    id: str
    title: str
    description: str
    category: str
    requirement: int
    current_progress: int
    is_unlocked: bool
    newly_unlocked: bool


def progress_for(category: str, requirement: int, stats: UserStats) -> int:
    if category == "mood":
        return stats.total_mood_logs
    if category == "streak":
        return stats.streak_count
    # Tool usage is not tracked separately yet; approximate it from mood logs.
    if category == "tools":
        return min(requirement, stats.total_mood_logs // 3)
    if category == "engagement":
        return 1 if stats.total_mood_logs > 0 else 0
    return 0


def evaluate_achievements(stats: UserStats, badges: Optional[Iterable[str]] = None) -> List[AchievementStatus]:
    earned = set(badges or [])
    statuses: List[AchievementStatus] = []
    for item in ACHIEVEMENTS:
        progress = progress_for(item["category"], item["requirement"], stats)
        reached = progress >= item["requirement"]
        was_unlocked = item["id"] in earned
        statuses.append(AchievementStatus(
            id=item["id"],
            title=item["title"],
            description=item["description"],
            category=item["category"],
            requirement=item["requirement"],
            current_progress=progress,
            is_unlocked=was_unlocked or reached,
            newly_unlocked=reached and not was_unlocked,
        ))
    return statuses


def compute_current_streak(dates: List[date], today: date) -> int:
    if not dates:
        return 0
    date_set = set(dates)
    streak = 0
    day = today
    # Not having logged yet today does not break yesterday's streak.
    if day not in date_set:
        day = day - timedelta(days=1)
    while day in date_set:
        streak += 1
        day = day - timedelta(days=1)
    return streak


def compute_best_streak(dates: List[date]) -> int:
    ordered = sorted(set(dates))
    if not ordered:
        return 0
    best = 1
    current = 1
    for prev, curr in zip(ordered, ordered[1:]):
        if curr == prev + timedelta(days=1):
            current += 1
            best = max(best, current)
        else:
            current = 1
    return best
