from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, FrozenSet, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, Field, field_validator, model_validator

Priority = Literal["low", "medium", "high"]
Effort = Literal["low", "medium", "high"]
GoalCategory = Literal["health", "business", "learning", "finance", "personal", "social"]
GoalStatus = Literal["on-track", "behind", "completed", "archived"]
EventStatus = Literal["active", "cancelled", "completed"]
FocusMode = Literal["pomodoro", "shortBreak", "longBreak"]
MirrorStatus = Literal["skipped", "mirrored", "failed"]

DEFAULT_EVENT_COLOR = "#3b82f6"
DEFAULT_EVENT_TEXT_COLOR = "#ffffff"


class Quadrant(str, Enum):
    DO_FIRST = "do-first"
    SCHEDULE = "schedule"
    DELEGATE = "delegate"
    ELIMINATE = "eliminate"


def _not_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("title is required")
    return value


Title = Annotated[str, AfterValidator(_not_blank)]


class PartialUpdate(BaseModel):
    """Base for PATCH payloads.

    Presence is tracked by pydantic's ``model_fields_set``: a field that was
    not sent is left untouched, an explicit ``None`` clears it. Only fields
    listed in ``nullable`` may be cleared.
    """

    nullable: ClassVar[FrozenSet[str]] = frozenset()

    @model_validator(mode="after")
    def _reject_clearing_required(self):
        for name in self.model_fields_set:
            if getattr(self, name) is None and name not in self.nullable:
                raise ValueError(f"{name} cannot be cleared")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)


# --- Tasks -------------------------------------------------------------------

class Task(BaseModel):
    id: str
    user_id: Optional[str] = None
    title: str
    priority: Priority = "medium"
    # None on legacy rows created before the Eisenhower columns existed
    is_urgent: Optional[bool] = None
    is_important: Optional[bool] = None
    is_completed: bool = False
    due_date: Optional[datetime] = None
    goal_id: Optional[str] = None
    effort: Optional[Effort] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TaskCreate(BaseModel):
    title: Title
    priority: Priority = "medium"
    is_urgent: bool = False
    is_important: bool = False
    is_completed: bool = False
    due_date: Optional[datetime] = None
    goal_id: Optional[str] = None
    effort: Optional[Effort] = None


class TaskUpdate(PartialUpdate):
    nullable: ClassVar[FrozenSet[str]] = frozenset({"due_date", "goal_id", "effort"})

    title: Optional[Title] = None
    priority: Optional[Priority] = None
    is_urgent: Optional[bool] = None
    is_important: Optional[bool] = None
    is_completed: Optional[bool] = None
    due_date: Optional[datetime] = None
    goal_id: Optional[str] = None
    effort: Optional[Effort] = None


class XPReward(BaseModel):
    base_xp: int
    effort_multiplier: float
    urgency_bonus: int
    importance_bonus: int
    total_xp: int


# --- Goals -------------------------------------------------------------------

class Goal(BaseModel):
    id: str
    user_id: Optional[str] = None
    title: str
    category: GoalCategory
    why: str = ""
    status: GoalStatus = "on-track"
    target_date: Optional[date] = None
    progress: int = Field(0, ge=0, le=100)
    total_tasks: int = 0
    completed_tasks: int = 0
    # Filled from the tasks table, not a column
    linked_task_ids: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("why", mode="before")
    @classmethod
    def _why(cls, v):
        return v or ""


class GoalCreate(BaseModel):
    title: Title
    category: GoalCategory
    why: str = ""
    target_date: Optional[date] = None


class GoalUpdate(PartialUpdate):
    nullable: ClassVar[FrozenSet[str]] = frozenset({"target_date"})

    title: Optional[Title] = None
    category: Optional[GoalCategory] = None
    why: Optional[str] = None
    target_date: Optional[date] = None


# --- Profile / focus ---------------------------------------------------------

class UserProfile(BaseModel):
    id: str
    name: str = "LifeOS User"
    email: Optional[str] = None
    xp: int = 0
    level: int = 0
    focus_minutes: int = 0
    streak: int = 0
    tasks_completed: int = 0
    achievements: List[str] = Field(default_factory=list)
    member_since: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("achievements", mode="before")
    @classmethod
    def _achievements(cls, v):
        return v or []


class ProfileUpdate(PartialUpdate):
    nullable: ClassVar[FrozenSet[str]] = frozenset({"email"})

    name: Optional[str] = None
    email: Optional[str] = None
    achievements: Optional[List[str]] = None


class FocusSession(BaseModel):
    id: str
    user_id: Optional[str] = None
    mode: FocusMode = "pomodoro"
    duration_minutes: int
    task_id: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class FocusSessionCreate(BaseModel):
    mode: FocusMode = "pomodoro"
    duration_minutes: int
    task_id: Optional[str] = None
    started_at: Optional[datetime] = None


AlarmSound = Literal["bell", "digital", "wood", "bird"]


class TimerSettings(BaseModel):
    pomodoro_duration: int = Field(25, ge=1, le=90)
    short_break_duration: int = Field(5, ge=1, le=30)
    long_break_duration: int = Field(15, ge=1, le=60)
    auto_start_breaks: bool = False
    auto_start_pomodoros: bool = False
    volume: int = Field(50, ge=0, le=100)
    alarm_sound: AlarmSound = "bell"


class ProgressSummary(BaseModel):
    xp: int
    level: int
    level_title: str
    xp_for_next_level: int
    tasks_completed: int
    focus_minutes: int


# --- Calendar ----------------------------------------------------------------

class CalendarEvent(BaseModel):
    id: str
    user_id: Optional[str] = None
    title: str
    start: datetime
    end: datetime
    all_day: bool = False
    description: Optional[str] = None
    status: EventStatus = "active"
    background_color: Optional[str] = None
    border_color: Optional[str] = None
    text_color: Optional[str] = None
    # Back-reference into Google Calendar; absent means "not mirrored"
    google_event_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EventCreate(BaseModel):
    title: Title
    start: datetime
    end: datetime
    all_day: bool = False
    description: Optional[str] = None
    status: EventStatus = "active"
    background_color: str = DEFAULT_EVENT_COLOR
    border_color: str = DEFAULT_EVENT_COLOR
    text_color: str = DEFAULT_EVENT_TEXT_COLOR

    @model_validator(mode="after")
    def _ordered(self):
        if self.end < self.start:
            raise ValueError("end must not be before start")
        return self


class EventUpdate(PartialUpdate):
    nullable: ClassVar[FrozenSet[str]] = frozenset(
        {"description", "background_color", "border_color", "text_color"}
    )

    title: Optional[Title] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    all_day: Optional[bool] = None
    description: Optional[str] = None
    status: Optional[EventStatus] = None
    background_color: Optional[str] = None
    border_color: Optional[str] = None
    text_color: Optional[str] = None


class EventSyncResult(BaseModel):
    event: Optional[CalendarEvent] = None
    mirror: MirrorStatus = "skipped"
    warning: Optional[str] = None


# --- Habits / workouts -------------------------------------------------------

class Habit(BaseModel):
    id: str
    user_id: Optional[str] = None
    title: str
    emoji: str = "✅"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_today: bool = False
    streak: int = 0


class HabitCreate(BaseModel):
    title: Title
    emoji: str = "✅"


class HabitLog(BaseModel):
    id: str
    habit_id: str
    completed_at: date
    created_at: Optional[datetime] = None


class Workout(BaseModel):
    id: str
    user_id: Optional[str] = None
    week_name: str
    note_content: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WorkoutCreate(BaseModel):
    week_name: Title
    note_content: str = ""


class WorkoutUpdate(PartialUpdate):
    week_name: Optional[Title] = None
    note_content: Optional[str] = None


# --- Chat / dashboard --------------------------------------------------------

class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(..., min_length=1)


class Dashboard(BaseModel):
    today_events: List[CalendarEvent]
    pending_tasks: List[Task]
    completed_today: int
    progress: Optional[ProgressSummary] = None
