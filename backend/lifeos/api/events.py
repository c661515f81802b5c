from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends

from lifeos.dependencies.services import get_sync_service
from lifeos.models.schemas import CalendarEvent, EventCreate, EventSyncResult, EventUpdate
from lifeos.services.sync import SyncService

router = APIRouter()


@router.get("", response_model=List[CalendarEvent])
async def list_events(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    sync: SyncService = Depends(get_sync_service),
):
    return await sync.load_events(start, end)


@router.post("", response_model=EventSyncResult, status_code=201)
async def create_event(payload: EventCreate, sync: SyncService = Depends(get_sync_service)):
    return await sync.create_event(payload)


@router.patch("/{event_id}", response_model=EventSyncResult)
async def update_event(event_id: str, payload: EventUpdate, sync: SyncService = Depends(get_sync_service)):
    return await sync.update_event(event_id, payload)


@router.delete("/{event_id}", response_model=EventSyncResult)
async def delete_event(event_id: str, sync: SyncService = Depends(get_sync_service)):
    return await sync.delete_event(event_id)
