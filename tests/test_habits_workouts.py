import asyncio
from datetime import date, timedelta

import pytest

from lifeos.dependencies.auth import ANONYMOUS_OWNER
from lifeos.errors import NotFound
from lifeos.models.schemas import HabitCreate, WorkoutCreate, WorkoutUpdate
from lifeos.services.habits import HabitService
from lifeos.services.workouts import WorkoutService

TODAY = date(2025, 3, 10)


def run(coro):
    return asyncio.run(coro)


def test_toggle_flips_todays_completion(store):
    habits = HabitService(store, "user-1", today=lambda: TODAY)

    async def scenario():
        habit = await habits.create_habit(HabitCreate(title="Meditate", emoji="🧘"))
        on = await habits.toggle(habit.id)
        listed_on = await habits.list_habits()
        off = await habits.toggle(habit.id)
        listed_off = await habits.list_habits()
        return on, listed_on, off, listed_off

    on, listed_on, off, listed_off = run(scenario())
    assert on is True and off is False
    assert listed_on[0].completed_today is True
    assert listed_on[0].streak == 1
    assert listed_off[0].completed_today is False
    assert listed_off[0].streak == 0


def test_streak_counts_consecutive_past_days(store):
    habits = HabitService(store, "user-1", today=lambda: TODAY)

    async def scenario():
        habit = await habits.create_habit(HabitCreate(title="Run"))
        for back in (1, 2, 3, 5):
            await habits.toggle(habit.id, TODAY - timedelta(days=back))
        return (await habits.list_habits())[0]

    habit = run(scenario())
    assert habit.completed_today is False
    assert habit.streak == 3
    assert habit.emoji == "✅"


def test_habits_are_scoped_to_their_owner(store):
    mine = HabitService(store, "user-1", today=lambda: TODAY)
    theirs = HabitService(store, "user-2", today=lambda: TODAY)
    habit = run(mine.create_habit(HabitCreate(title="Journal")))
    assert run(theirs.list_habits()) == []
    with pytest.raises(NotFound):
        run(theirs.toggle(habit.id))


def test_deleting_a_habit_drops_its_logs(store):
    habits = HabitService(store, ANONYMOUS_OWNER, today=lambda: TODAY)

    async def scenario():
        habit = await habits.create_habit(HabitCreate(title="Stretch"))
        await habits.toggle(habit.id)
        await habits.delete_habit(habit.id)
        await habits.delete_habit(habit.id)

    run(scenario())
    assert run(store.select("habits")) == []
    assert run(store.select("habit_logs")) == []


def test_workout_notes_crud(store):
    workouts = WorkoutService(store, ANONYMOUS_OWNER)

    async def scenario():
        first = await workouts.create_workout(WorkoutCreate(week_name="Week 1"))
        await workouts.create_workout(WorkoutCreate(week_name="Week 2", note_content="legs"))
        edited = await workouts.update_workout(first.id, WorkoutUpdate(note_content="push day"))
        await workouts.delete_workout(first.id)
        return edited, await workouts.list_workouts()

    edited, remaining = run(scenario())
    assert edited.week_name == "Week 1"
    assert edited.note_content == "push day"
    assert [w.week_name for w in remaining] == ["Week 2"]


def test_updating_a_missing_workout(store):
    with pytest.raises(NotFound):
        run(WorkoutService(store, "user-1").update_workout("missing", WorkoutUpdate(week_name="x")))
