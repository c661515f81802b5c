"""Eisenhower-matrix classification of tasks.

Tasks carry explicit ``is_urgent`` / ``is_important`` flags. Rows written
before those columns existed have them unset, and for those the quadrant is
derived from ``priority`` and how soon the task is due.
"""
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from lifeos.config import local_today
from lifeos.models.schemas import Quadrant, Task

URGENT_WITHIN_DAYS = 3

_FLAGS: Dict[Quadrant, Tuple[bool, bool]] = {
    Quadrant.DO_FIRST: (True, True),
    Quadrant.SCHEDULE: (False, True),
    Quadrant.DELEGATE: (True, False),
    Quadrant.ELIMINATE: (False, False),
}
_BY_FLAGS = {flags: q for q, flags in _FLAGS.items()}


def _days_until(due: datetime, today: date) -> int:
    return (due.date() - today).days


def urgency_importance(task: Task, today: Optional[date] = None) -> Tuple[bool, bool]:
    if task.is_urgent is not None and task.is_important is not None:
        return task.is_urgent, task.is_important

    today = today or local_today()
    urgent = task.priority == "high"
    if not urgent and task.due_date is not None:
        urgent = 0 <= _days_until(task.due_date, today) <= URGENT_WITHIN_DAYS
    important = task.priority in ("medium", "high")
    return urgent, important


def classify(task: Task, today: Optional[date] = None) -> Quadrant:
    """Return the quadrant for ``task``; ``today`` pins the reference day."""
    return _BY_FLAGS[urgency_importance(task, today)]


def quadrant_flags(quadrant: Quadrant) -> Tuple[bool, bool]:
    """(is_urgent, is_important) to write when a task is moved into ``quadrant``."""
    return _FLAGS[quadrant]


def partition(tasks: Iterable[Task], today: Optional[date] = None) -> Dict[Quadrant, List[Task]]:
    today = today or local_today()
    out: Dict[Quadrant, List[Task]] = {q: [] for q in Quadrant}
    for task in tasks:
        out[classify(task, today)].append(task)
    return out
