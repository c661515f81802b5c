"""XP, levels, goal progress and streaks.

Everything here is a pure function of its arguments; an omitted ``today``
means today in the configured timezone. Bad numbers (negative,
NaN, infinite, booleans) raise ``ValidationError`` instead of producing a
value.
"""
import math
from datetime import date, timedelta
from typing import Dict, Iterable, Optional

from lifeos.config import local_today
from lifeos.errors import ValidationError
from lifeos.models.schemas import GoalStatus, Task, XPReward

EFFORT_BASE_XP: Dict[str, int] = {"low": 50, "medium": 100, "high": 150}
PRIORITY_MULTIPLIER: Dict[str, float] = {"low": 1.0, "medium": 1.2, "high": 1.5}
URGENCY_BONUS = 25
IMPORTANCE_BONUS = 25
FOCUS_XP_PER_MINUTE = 10
XP_PER_LEVEL_UNIT = 500
MAX_STREAK_DAYS = 365

LEVEL_TITLES = {
    0: "Beginner",
    1: "Novice",
    2: "Apprentice",
    3: "Practitioner",
    4: "Expert",
    5: "Architect",
    6: "Master",
    7: "Virtuoso",
    8: "Legend",
}


def _check_number(name: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be finite, got {value!r}")
    if value < 0:
        raise ValidationError(f"{name} must not be negative, got {value!r}")
    return value


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def task_xp_breakdown(task: Task) -> XPReward:
    base = EFFORT_BASE_XP[task.effort or "medium"]
    multiplier = PRIORITY_MULTIPLIER[task.priority]
    urgency = URGENCY_BONUS if task.is_urgent else 0
    importance = IMPORTANCE_BONUS if task.is_important else 0
    return XPReward(
        base_xp=base,
        effort_multiplier=multiplier,
        urgency_bonus=urgency,
        importance_bonus=importance,
        total_xp=math.floor(base * multiplier + urgency + importance),
    )


def task_xp(task: Task) -> int:
    return task_xp_breakdown(task).total_xp


def focus_xp(minutes) -> int:
    minutes = _check_number("minutes", minutes)
    return int(minutes * FOCUS_XP_PER_MINUTE)


def level_from_xp(xp) -> int:
    xp = _check_number("xp", xp)
    # floor(sqrt(xp / 500)) without float error at exact squares
    return math.isqrt(int(xp) // XP_PER_LEVEL_UNIT)


def xp_for_next_level(level) -> int:
    level = int(_check_number("level", level))
    return (level + 1) ** 2 * XP_PER_LEVEL_UNIT


def level_title(level: int) -> str:
    if level >= 9:
        return "Transcendent"
    return LEVEL_TITLES.get(level, "Unknown")


def goal_progress(completed, total) -> int:
    completed = _check_number("completed", completed)
    total = _check_number("total", total)
    if total == 0:
        return 0
    return min(100, _round_half_up(completed / total * 100))


def goal_status(progress, target_date: Optional[date] = None, today: Optional[date] = None) -> GoalStatus:
    progress = _check_number("progress", progress)
    if progress == 100:
        return "completed"
    if target_date is not None:
        days_left = (target_date - (today or local_today())).days
        if days_left < 0 or (progress < 30 and days_left < 7):
            return "behind"
    return "on-track"


def habit_streak(completed_days: Iterable[date], today: Optional[date] = None) -> int:
    """Consecutive completed days ending today, or yesterday if today is open."""
    days = set(completed_days)
    if not days:
        return 0
    cursor = today or local_today()
    if cursor not in days:
        cursor -= timedelta(days=1)
    streak = 0
    while streak < MAX_STREAK_DAYS and cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak
