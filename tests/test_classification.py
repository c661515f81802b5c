from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from lifeos import config
from lifeos.core.classification import classify, partition, quadrant_flags, urgency_importance
from lifeos.models.schemas import Quadrant, Task

TODAY = date(2025, 3, 10)


def _task(**kw):
    kw.setdefault("id", "t1")
    kw.setdefault("title", "Write report")
    return Task(**kw)


def _due(days):
    return datetime.combine(TODAY + timedelta(days=days), datetime.min.time()).replace(hour=12)


@pytest.mark.parametrize(
    "urgent,important,expected",
    [
        (True, True, Quadrant.DO_FIRST),
        (False, True, Quadrant.SCHEDULE),
        (True, False, Quadrant.DELEGATE),
        (False, False, Quadrant.ELIMINATE),
    ],
)
def test_explicit_flags_win_over_priority_and_due_date(urgent, important, expected):
    for priority in ("low", "medium", "high"):
        for due in (None, _due(0), _due(30)):
            task = _task(is_urgent=urgent, is_important=important, priority=priority, due_date=due)
            assert classify(task, TODAY) == expected


def test_legacy_high_priority_is_urgent_whatever_the_due_date():
    for due in (None, _due(-5), _due(1), _due(100)):
        urgent, important = urgency_importance(_task(priority="high", due_date=due), TODAY)
        assert urgent is True
        assert important is True


def test_legacy_due_window_boundaries():
    assert urgency_importance(_task(priority="low", due_date=_due(3)), TODAY)[0] is True
    assert urgency_importance(_task(priority="low", due_date=_due(0)), TODAY)[0] is True
    assert urgency_importance(_task(priority="low", due_date=_due(4)), TODAY)[0] is False
    # overdue is outside the window
    assert urgency_importance(_task(priority="low", due_date=_due(-1)), TODAY)[0] is False


def test_legacy_importance_follows_priority():
    assert classify(_task(priority="medium"), TODAY) == Quadrant.SCHEDULE
    assert classify(_task(priority="low"), TODAY) == Quadrant.ELIMINATE
    assert classify(_task(priority="low", due_date=_due(2)), TODAY) == Quadrant.DELEGATE


def test_half_set_flags_fall_back_to_legacy_rule():
    task = _task(priority="high", is_urgent=False, is_important=None)
    assert classify(task, TODAY) == Quadrant.DO_FIRST


def test_classify_is_stable_for_identical_input():
    task = _task(priority="low", due_date=_due(3))
    assert {classify(task, TODAY) for _ in range(5)} == {Quadrant.DELEGATE}


def test_partition_keeps_order_and_covers_every_quadrant():
    tasks = [
        _task(id="a", is_urgent=True, is_important=True),
        _task(id="b", is_urgent=False, is_important=False),
        _task(id="c", is_urgent=True, is_important=True),
    ]
    matrix = partition(tasks, TODAY)
    assert set(matrix) == set(Quadrant)
    assert [t.id for t in matrix[Quadrant.DO_FIRST]] == ["a", "c"]
    assert [t.id for t in matrix[Quadrant.ELIMINATE]] == ["b"]
    assert matrix[Quadrant.SCHEDULE] == []


def test_quadrant_flags_round_trip_through_classify():
    for quadrant in Quadrant:
        urgent, important = quadrant_flags(quadrant)
        assert classify(_task(is_urgent=urgent, is_important=important), TODAY) == quadrant


def test_default_day_is_today_in_the_configured_timezone(monkeypatch):
    kiritimati = ZoneInfo("Pacific/Kiritimati")
    monkeypatch.setattr(config, "get_settings", lambda: config.Settings(timezone="Pacific/Kiritimati"))
    there = datetime.now(kiritimati).date()
    assert config.local_today() == there

    # due in three days over there; on a host running behind it may read as four
    legacy = _task(priority="low", due_date=datetime.combine(there + timedelta(days=3), datetime.min.time()).replace(hour=12))
    assert classify(legacy) == Quadrant.DELEGATE
    assert partition([legacy])[Quadrant.DELEGATE] == [legacy]
