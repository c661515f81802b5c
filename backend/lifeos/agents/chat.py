"""Streaming chat proxy in front of the OpenAI chat model.

``ChatProxy.stream`` yields text as the model produces it. When the model
asks for tools, their results are fed back and the model is streamed again,
up to ``Settings.chat_max_steps`` rounds. ``guarded`` turns any failure into
a last chunk of plain text, so an HTTP response that has already started
still ends with something the user can read.
"""
import logging
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_openai import ChatOpenAI

from lifeos.agents.prompts import LIFEOS_SYSTEM_PROMPT
from lifeos.agents.utils.tracing import TracingCallbackHandler
from lifeos.config import Settings
from lifeos.models.schemas import ChatMessage

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "Sorry, I couldn't reach the LifeOS assistant right now. Please try again in a moment."

_ROLES = {"system": SystemMessage, "user": HumanMessage, "assistant": AIMessage}


def _text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(p.get("text", "") if isinstance(p, dict) else str(p) for p in content)
    return ""


def build_llm(settings: Settings, tools: Sequence[Any] = ()):
    llm = ChatOpenAI(
        model=settings.chat_model,
        temperature=settings.chat_temperature,
        max_tokens=settings.chat_max_tokens,
        api_key=settings.openai_api_key,
        streaming=True,
    )
    return llm.bind_tools(list(tools)) if tools else llm


class ChatProxy:
    def __init__(
        self,
        settings: Settings,
        tools: Sequence[Any] = (),
        *,
        llm: Any = None,
        tracer: Optional[TracingCallbackHandler] = None,
    ) -> None:
        self.settings = settings
        self.tools: Dict[str, Any] = {t.name: t for t in tools}
        self.llm = llm if llm is not None else build_llm(settings, tools)
        self.tracer = tracer or TracingCallbackHandler()

    def build_messages(self, turns: Sequence[ChatMessage]) -> List[BaseMessage]:
        prompt = LIFEOS_SYSTEM_PROMPT.format(
            today=datetime.now(self.settings.tz).date().isoformat(),
            timezone=self.settings.timezone,
        )
        return [SystemMessage(content=prompt), *(_ROLES[t.role](content=t.content) for t in turns)]

    async def _run_tool(self, call: Dict[str, Any]) -> str:
        tool = self.tools.get(call["name"])
        if tool is None:
            return f"Error: unknown tool {call['name']}"
        try:
            output = await tool.ainvoke(call.get("args") or {}, config={"callbacks": [self.tracer]})
        except Exception as e:
            logger.warning("[chat] tool %s failed: %s", call["name"], e)
            return f"Error running {call['name']}: {e}"
        return output if isinstance(output, str) else str(output)

    async def stream(self, turns: Sequence[ChatMessage]) -> AsyncIterator[str]:
        messages = self.build_messages(turns)
        for step in range(self.settings.chat_max_steps):
            gathered = None
            async for chunk in self.llm.astream(messages, config={"callbacks": [self.tracer]}):
                text = _text(chunk.content)
                if text:
                    yield text
                gathered = chunk if gathered is None else gathered + chunk
            calls = list(getattr(gathered, "tool_calls", None) or [])
            if not calls:
                return
            logger.info("[chat] step %d: %s", step, ", ".join(c["name"] for c in calls))
            messages.append(AIMessage(content=_text(gathered.content), tool_calls=calls))
            for call in calls:
                messages.append(ToolMessage(content=await self._run_tool(call), tool_call_id=call["id"]))
        logger.warning("[chat] stopped after %d tool rounds", self.settings.chat_max_steps)


async def guarded(chunks: AsyncIterator[str]) -> AsyncIterator[str]:
    """Pass ``chunks`` through; a failure becomes a final plain-text message."""
    sent = False
    try:
        async for text in chunks:
            sent = True
            yield text
    except Exception as e:
        logger.exception("[chat] upstream failed")
        prefix = "\n\n" if sent else ""
        yield f"{prefix}{FALLBACK_REPLY} ({type(e).__name__}: {e})" if str(e) else f"{prefix}{FALLBACK_REPLY}"
