import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from lifeos.agents.chat import ChatProxy, guarded
from lifeos.config import Settings, get_settings
from lifeos.dependencies.services import get_sync_service
from lifeos.models.schemas import ChatRequest
from lifeos.services.sync import SyncService
from lifeos.tools.calendar_tools import make_calendar_tools

logger = logging.getLogger(__name__)

router = APIRouter()


def get_chat_proxy(
    settings: Settings = Depends(get_settings),
    sync: SyncService = Depends(get_sync_service),
) -> ChatProxy:
    if not settings.openai_api_key:
        logger.error("[chat] OPENAI_API_KEY is not set")
        raise HTTPException(
            status_code=500,
            detail="OpenAI API key not configured. Please add OPENAI_API_KEY to your .env file.",
        )
    return ChatProxy(settings, make_calendar_tools(sync, settings.tz))


@router.post("")
async def chat(req: ChatRequest, proxy: ChatProxy = Depends(get_chat_proxy)):
    """Stream the assistant's reply as plain text.

    Upstream failures are written into the body; the status stays 200 once
    the request has been accepted.
    """
    logger.info("[chat] %d messages", len(req.messages))
    return StreamingResponse(guarded(proxy.stream(req.messages)), media_type="text/plain; charset=utf-8")
