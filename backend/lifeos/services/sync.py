"""Task and calendar-event synchronization.

The primary store is authoritative. Google Calendar is a best-effort mirror
for events: its failures show up as a warning on the result and never undo
the primary write.

Each ``SyncService`` keeps a ``LocalView`` per entity, an ordered list of
records with a ``RecordState`` per record. Every optimistic change goes
through ``SyncService._optimistic``: snapshot, apply, await the store, then
settle on the store's record or roll back. A rollback only happens while the
view still holds the value that operation wrote, so a later write is never
clobbered by an earlier failure.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Dict, Generic, List, NamedTuple, Optional, Sequence, TypeVar
from uuid import uuid4

from pydantic import BaseModel

from lifeos.dependencies.auth import AuthContext
from lifeos.errors import MirrorError, NotFound, PersistenceError, ValidationError
from lifeos.integrations.google_calendar import GoogleCalendarClient
from lifeos.models.schemas import (
    CalendarEvent,
    EventCreate,
    EventSyncResult,
    EventUpdate,
    Task,
    TaskCreate,
    TaskUpdate,
)
from lifeos.storage.base import Filter, PrimaryStore, eq, gte, lte

logger = logging.getLogger(__name__)

TASKS = "tasks"
EVENTS = "events"

R = TypeVar("R", bound=BaseModel)


class RecordState(str, Enum):
    LOCAL_ONLY = "local-only"
    PERSISTED = "persisted"
    MIRRORED = "mirrored"
    GONE = "gone"


class _Snapshot(NamedTuple):
    index: int
    record: BaseModel
    state: RecordState


class LocalView(Generic[R]):
    """Ordered records plus where each one is in its sync lifecycle."""

    def __init__(self) -> None:
        self._records: List[R] = []
        self._states: Dict[str, RecordState] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(list(self._records))

    @property
    def records(self) -> List[R]:
        return list(self._records)

    def _index(self, record_id: str) -> Optional[int]:
        for i, record in enumerate(self._records):
            if record.id == record_id:
                return i
        return None

    def get(self, record_id: str) -> Optional[R]:
        i = self._index(record_id)
        return None if i is None else self._records[i]

    def state(self, record_id: str) -> Optional[RecordState]:
        return self._states.get(record_id)

    def replace_all(self, records: Sequence[R], state_of: Callable[[R], RecordState]) -> None:
        self._records = list(records)
        self._states = {r.id: state_of(r) for r in self._records}

    def snapshot(self, record_id: str) -> Optional[_Snapshot]:
        i = self._index(record_id)
        if i is None:
            return None
        return _Snapshot(i, self._records[i], self._states.get(record_id, RecordState.PERSISTED))

    def put(self, record: R, state: RecordState, *, position: Optional[int] = None) -> None:
        i = self._index(record.id)
        if i is not None:
            self._records[i] = record
        elif position is None:
            self._records.append(record)
        else:
            self._records.insert(position, record)
        self._states[record.id] = state

    def discard(self, record_id: str) -> Optional[R]:
        i = self._index(record_id)
        if i is None:
            return None
        self._states.pop(record_id, None)
        return self._records.pop(i)

    def mark_gone(self, record_id: str) -> None:
        self._states[record_id] = RecordState.GONE

    def settle(self, key: str, record: R, state: RecordState, *, position: Optional[int] = None) -> None:
        """Replace whatever sits under ``key`` with the acknowledged ``record``."""
        i = self._index(key)
        if i is None:
            self.put(record, state, position=position)
            return
        if record.id != key:
            self._states.pop(key, None)
            duplicate = self._index(record.id)
            if duplicate is not None:
                self._records.pop(duplicate)
                if duplicate < i:
                    i -= 1
        self._records[i] = record
        self._states[record.id] = state

    def roll_back(self, key: str, before: Optional[_Snapshot], optimistic: Optional[R]) -> None:
        current = self.get(key)
        if optimistic is not None:
            if current is not optimistic:
                return
            self.discard(key)
        elif current is not None:
            return
        if before is not None:
            self._records.insert(min(before.index, len(self._records)), before.record)
            self._states[key] = before.state


@dataclass
class TaskChange:
    """What listeners hear after a task write is acknowledged."""

    kind: str  # created | updated | completed | reopened | deleted
    task: Task
    previous: Optional[Task] = None


TaskListener = Callable[[TaskChange], Awaitable[None]]


def _event_state(event: CalendarEvent) -> RecordState:
    return RecordState.MIRRORED if event.google_event_id else RecordState.PERSISTED


def _task_state(task: Task) -> RecordState:
    return RecordState.PERSISTED


class SyncService:
    def __init__(
        self,
        store: PrimaryStore,
        auth: AuthContext,
        calendar: Optional[GoogleCalendarClient] = None,
        listeners: Sequence[TaskListener] = (),
    ) -> None:
        self.store = store
        self.auth = auth
        self.calendar = calendar
        self._listeners: List[TaskListener] = list(listeners)
        self.tasks: LocalView[Task] = LocalView()
        self.events: LocalView[CalendarEvent] = LocalView()

    def add_listener(self, listener: TaskListener) -> None:
        self._listeners.append(listener)

    def _owned(self, record_id: str) -> List[Filter]:
        return [eq("id", record_id), eq("user_id", self.auth.require_user())]

    async def _optimistic(
        self,
        view: LocalView,
        key: str,
        write: Callable[[], Awaitable[Optional[R]]],
        state_of: Callable[[R], RecordState],
        *,
        apply: Optional[R] = None,
        remove: bool = False,
        position: Optional[int] = None,
    ) -> Optional[R]:
        before = view.snapshot(key)
        if remove:
            view.discard(key)
        elif apply is not None:
            view.put(apply, before.state if before else RecordState.LOCAL_ONLY, position=position)
        try:
            result = await write()
        except Exception:
            view.roll_back(key, before, apply)
            raise
        if remove:
            view.mark_gone(key)
        elif result is not None:
            view.settle(key, result, state_of(result), position=position)
        return result

    async def _emit(self, change: TaskChange) -> None:
        for listener in self._listeners:
            try:
                await listener(change)
            except Exception:
                logger.exception("[sync] task listener failed for %s %s", change.kind, change.task.id)

    # --- tasks ---------------------------------------------------------------

    async def load_tasks(self) -> List[Task]:
        uid = self.auth.require_user()
        rows = await self.store.select(TASKS, [eq("user_id", uid)], order="created_at", desc=True)
        tasks = [Task.model_validate(r) for r in rows]
        self.tasks.replace_all(tasks, _task_state)
        return tasks

    async def create_task(self, data: TaskCreate) -> Task:
        uid = self.auth.require_user()
        row = {**data.model_dump(mode="json", exclude_none=True), "user_id": uid}
        placeholder = Task(id=f"pending-{uuid4().hex}", user_id=uid, **data.model_dump())

        async def write() -> Task:
            return Task.model_validate(await self.store.insert(TASKS, row))

        task = await self._optimistic(self.tasks, placeholder.id, write, _task_state, apply=placeholder, position=0)
        await self._emit(TaskChange("created", task))
        return task

    async def _previous_task(self, task_id: str) -> Optional[Task]:
        cached = self.tasks.get(task_id)
        if cached is not None or not self._listeners:
            return cached
        row = await self.store.select_one(TASKS, self._owned(task_id))
        return Task.model_validate(row) if row else None

    async def update_task(self, task_id: str, changes: TaskUpdate) -> Task:
        filters = self._owned(task_id)
        previous = await self._previous_task(task_id)
        values = changes.changes()
        optimistic = None
        current = self.tasks.get(task_id)
        if current is not None and values:
            optimistic = current.model_copy(update={k: getattr(changes, k) for k in changes.model_fields_set})

        async def write() -> Task:
            if values:
                rows = await self.store.update(TASKS, filters, values)
            else:
                rows = await self.store.select(TASKS, filters, limit=1)
            if not rows:
                raise NotFound("task", task_id)
            return Task.model_validate(rows[0])

        task = await self._optimistic(self.tasks, task_id, write, _task_state, apply=optimistic)
        await self._emit(TaskChange(_change_kind(previous, task), task, previous))
        return task

    async def toggle_task(self, task_id: str, completed: bool) -> Task:
        return await self.update_task(task_id, TaskUpdate(is_completed=completed))

    async def delete_task(self, task_id: str) -> None:
        """Delete ``task_id``; deleting a missing task is not an error."""
        filters = self._owned(task_id)

        async def write():
            return await self.store.delete(TASKS, filters)

        before = self.tasks.get(task_id)
        deleted = await self._optimistic(self.tasks, task_id, write, _task_state, remove=True)
        if deleted:
            await self._emit(TaskChange("deleted", Task.model_validate(deleted[0]), before))

    # --- events --------------------------------------------------------------

    async def load_events(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[CalendarEvent]:
        """Owner's events by start time, optionally only those starting in [start, end]."""
        filters: List[Filter] = [eq("user_id", self.auth.require_user())]
        if start is not None:
            filters.append(gte("start", start))
        if end is not None:
            filters.append(lte("start", end))
        rows = await self.store.select(EVENTS, filters, order="start")
        events = [CalendarEvent.model_validate(r) for r in rows]
        self.events.replace_all(events, _event_state)
        return events

    def _calendar_connected(self) -> bool:
        return self.calendar is not None and self.calendar.is_connected()

    async def _attach_external_id(self, event: CalendarEvent, external_id: str) -> CalendarEvent:
        rows = await self.store.update(EVENTS, self._owned(event.id), {"google_event_id": external_id})
        if rows:
            return CalendarEvent.model_validate(rows[0])
        return event.model_copy(update={"google_event_id": external_id})

    async def _mirror_create(self, event: CalendarEvent) -> EventSyncResult:
        try:
            external_id = await self.calendar.create_event(event)
            event = await self._attach_external_id(event, external_id)
        except (MirrorError, PersistenceError) as e:
            logger.warning("[sync] mirroring event %s to Google Calendar failed: %s", event.id, e)
            return EventSyncResult(event=event, mirror="failed", warning=str(e))
        self.events.put(event, _event_state(event))
        return EventSyncResult(event=event, mirror="mirrored")

    async def create_event(self, data: EventCreate) -> EventSyncResult:
        uid = self.auth.require_user()
        row = {**data.model_dump(mode="json"), "user_id": uid}
        placeholder = CalendarEvent(id=f"pending-{uuid4().hex}", user_id=uid, **data.model_dump())

        async def write() -> CalendarEvent:
            return CalendarEvent.model_validate(await self.store.insert(EVENTS, row))

        event = await self._optimistic(self.events, placeholder.id, write, _event_state, apply=placeholder)
        if not self._calendar_connected():
            return EventSyncResult(event=event, mirror="skipped")
        return await self._mirror_create(event)

    async def update_event(self, event_id: str, changes: EventUpdate) -> EventSyncResult:
        filters = self._owned(event_id)
        existing = await self.store.select_one(EVENTS, filters)
        if existing is None:
            raise NotFound("event", event_id)
        values = changes.changes()
        stored = CalendarEvent.model_validate(existing)
        start = changes.start if "start" in values else stored.start
        end = changes.end if "end" in values else stored.end
        if end < start:
            raise ValidationError("end must not be before start")

        optimistic = None
        current = self.events.get(event_id)
        if current is not None and values:
            optimistic = current.model_copy(update={k: getattr(changes, k) for k in changes.model_fields_set})

        async def write() -> CalendarEvent:
            rows = await self.store.update(EVENTS, filters, values) if values else [existing]
            if not rows:
                raise NotFound("event", event_id)
            return CalendarEvent.model_validate(rows[0])

        event = await self._optimistic(self.events, event_id, write, _event_state, apply=optimistic)

        external_id = existing.get("google_event_id")
        if not self._calendar_connected():
            return EventSyncResult(event=event, mirror="skipped")
        if not external_id:
            # created while disconnected; mirror it now
            return await self._mirror_create(event)
        try:
            await self.calendar.update_event(external_id, event)
        except MirrorError as e:
            logger.warning("[sync] mirroring update of event %s failed: %s", event_id, e)
            return EventSyncResult(event=event, mirror="failed", warning=str(e))
        return EventSyncResult(event=event, mirror="mirrored")

    async def delete_event(self, event_id: str) -> EventSyncResult:
        """Delete ``event_id`` and its Google copy; deleting a missing event is not an error."""
        filters = self._owned(event_id)
        existing = await self.store.select_one(EVENTS, filters)

        async def write():
            return await self.store.delete(EVENTS, filters)

        await self._optimistic(self.events, event_id, write, _event_state, remove=True)
        external_id = existing.get("google_event_id") if existing else None
        if not external_id or not self._calendar_connected():
            return EventSyncResult(mirror="skipped")
        try:
            await self.calendar.delete_event(external_id)
        except MirrorError as e:
            logger.warning("[sync] deleting Google copy of event %s failed: %s", event_id, e)
            return EventSyncResult(mirror="failed", warning=str(e))
        return EventSyncResult(mirror="mirrored")


def _change_kind(previous: Optional[Task], task: Task) -> str:
    was_completed = previous.is_completed if previous is not None else False
    if task.is_completed and not was_completed:
        return "completed"
    if was_completed and not task.is_completed:
        return "reopened"
    return "updated"
