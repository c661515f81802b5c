import json
import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Optional, Tuple
from zoneinfo import ZoneInfo

from langchain_core.tools import tool
from pydantic import ValidationError as PayloadError

from lifeos.errors import LifeOSError
from lifeos.models.schemas import CalendarEvent, EventCreate
from lifeos.services.sync import SyncService

logger = logging.getLogger(__name__)

AUTH_REQUIRED = "Authentication required: please sign in to LifeOS to use your calendar."
NO_EVENTS = "No events found for the requested period."
UPCOMING_LIMIT = 10


def _event_json(event: CalendarEvent) -> dict:
    return {
        "id": event.id,
        "title": event.title,
        "start": event.start.isoformat(),
        "end": event.end.isoformat(),
        "all_day": event.all_day,
        "description": event.description,
    }


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()


def _parse_instant(value: str, tz: ZoneInfo) -> datetime:
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=tz)


def day_bounds(day: date, tz: ZoneInfo) -> Tuple[datetime, datetime]:
    """First and last instant of ``day`` in ``tz``."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    return start, start + timedelta(days=1) - timedelta(microseconds=1)


def make_calendar_tools(sync: SyncService, tz: ZoneInfo) -> Tuple[Any, Any]:
    """Return the chat model's calendar tools bound to ``sync``.

    Tools never raise: failures come back as text the model can relay.
    - getCalendarEvents(date: str | None = None) -> str
    - createCalendarEvent(title, start, end, description=None) -> str
    """

    @tool("getCalendarEvents")
    async def get_calendar_events(date: Optional[str] = None) -> str:
        """Get the user's calendar events. `date` (YYYY-MM-DD) limits the result to that day; without it the next 10 upcoming events are returned."""
        if not sync.auth.is_authenticated:
            return AUTH_REQUIRED
        try:
            if date:
                try:
                    day = _parse_day(date)
                except ValueError:
                    return f"Error: '{date}' is not a valid date. Use YYYY-MM-DD."
                events = await sync.load_events(*day_bounds(day, tz))
            else:
                events = (await sync.load_events(start=datetime.now(tz)))[:UPCOMING_LIMIT]
        except LifeOSError as e:
            logger.warning("[tools] getCalendarEvents failed: %s", e)
            return f"Error fetching calendar events: {e}"
        if not events:
            return NO_EVENTS
        return json.dumps({"events": [_event_json(e) for e in events], "count": len(events)})

    @tool("createCalendarEvent")
    async def create_calendar_event(title: str, start: str, end: str, description: Optional[str] = None) -> str:
        """Create a calendar event. `start` and `end` are ISO-8601 timestamps such as 2025-01-15T09:00:00."""
        if not sync.auth.is_authenticated:
            return AUTH_REQUIRED
        try:
            starts_at = _parse_instant(start, tz)
            ends_at = _parse_instant(end, tz)
        except ValueError:
            return f"Error: start and end must be ISO-8601 timestamps, got start={start!r} end={end!r}."
        try:
            payload = EventCreate(title=title, start=starts_at, end=ends_at, description=description)
        except PayloadError as e:
            return f"Error: invalid event: {e.errors()[0]['msg']}"
        try:
            result = await sync.create_event(payload)
        except LifeOSError as e:
            logger.warning("[tools] createCalendarEvent failed: %s", e)
            return f"Error creating calendar event: {e}"
        body = {"status": "created", "event": _event_json(result.event), "mirror": result.mirror}
        if result.warning:
            body["warning"] = result.warning
        return json.dumps(body)

    return get_calendar_events, create_calendar_event
