import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import httpx

from lifeos.errors import CalendarNotConnected, MirrorError
from lifeos.models.schemas import CalendarEvent

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"


def event_payload(event: CalendarEvent) -> Dict[str, Any]:
    """Google Calendar body for ``event``; all-day events use ``date``."""
    if event.all_day:
        # Google treats the end date as exclusive
        end_day = event.end.date()
        if end_day <= event.start.date():
            end_day = event.start.date() + timedelta(days=1)
        start = {"date": event.start.date().isoformat()}
        end = {"date": end_day.isoformat()}
    else:
        start = {"dateTime": _stamp(event.start)}
        end = {"dateTime": _stamp(event.end)}
    payload: Dict[str, Any] = {"summary": event.title, "start": start, "end": end}
    if event.description:
        payload["description"] = event.description
    if event.status == "cancelled":
        payload["status"] = "cancelled"
    return payload


def _stamp(value: datetime) -> str:
    return value.isoformat() if value.tzinfo else value.isoformat() + "Z"


class GoogleCalendarClient:
    """Thin async wrapper over the Calendar v3 events endpoints.

    Every failure surfaces as ``MirrorError``; callers treat those as
    warnings.
    """

    def __init__(
        self,
        access_token: Optional[str],
        calendar_id: str = "primary",
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._access_token = access_token
        self._calendar_id = calendar_id
        self._transport = transport

    def is_connected(self) -> bool:
        return bool(self._access_token)

    def _headers(self) -> Dict[str, str]:
        if not self._access_token:
            raise CalendarNotConnected()
        return {
            "Authorization": f"Bearer {self._access_token}",
            "Accept": "application/json",
        }

    async def _send(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{GOOGLE_CALENDAR_API}/calendars/{self._calendar_id}/events{path}"
        headers = self._headers()
        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
                resp = await client.request(method, url, headers=headers, json=payload)
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise MirrorError(f"Google Calendar {method} failed with {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise MirrorError(f"Google Calendar unreachable: {e}") from e
        if resp.status_code == 204 or not resp.content:
            return {}
        return resp.json()

    async def create_event(self, event: CalendarEvent) -> str:
        data = await self._send("POST", "", event_payload(event))
        external_id = data.get("id") if isinstance(data, dict) else None
        if not external_id:
            raise MirrorError("Google Calendar returned no event id")
        return external_id

    async def update_event(self, external_id: str, event: CalendarEvent) -> None:
        await self._send("PATCH", f"/{external_id}", event_payload(event))

    async def delete_event(self, external_id: str) -> None:
        try:
            await self._send("DELETE", f"/{external_id}")
        except MirrorError as e:
            # already gone upstream
            cause = e.__cause__
            if isinstance(cause, httpx.HTTPStatusError) and cause.response.status_code in (404, 410):
                logger.info("[calendar] event %s already deleted", external_id)
                return
            raise
