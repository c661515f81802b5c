import logging
from typing import Any, Dict, List

from langchain_core.callbacks import BaseCallbackHandler

logger = logging.getLogger("lifeos.trace")


class TracingCallbackHandler(BaseCallbackHandler):
    """Logs model and tool activity of a chat turn, keeping a truncated copy in ``events``."""

    def __init__(self, limit: int = 400) -> None:
        self.limit = limit
        self.events: List[Dict[str, Any]] = []

    def _truncate(self, value: Any, limit: int = 0) -> str:
        limit = limit or self.limit
        text = value if isinstance(value, str) else repr(value)
        if len(text) > limit:
            return text[:limit] + "…"
        return text

    def _label(self, serialized: Any) -> str:
        if isinstance(serialized, dict):
            for key in ("name", "id"):
                value = serialized.get(key)
                if value:
                    return ".".join(map(str, value)) if isinstance(value, list) else str(value)
        return self._truncate(serialized, 120)

    def _log(self, kind: str, payload: Dict[str, Any]) -> None:
        self.events.append({"type": kind, **payload})
        label = payload.get("name") or payload.get("tool") or ""
        logger.debug("[TRACE] %s: %s", kind, label)

    def on_chat_model_start(self, serialized, messages, **kwargs):
        turns = [self._truncate(getattr(m, "content", m)) for batch in (messages or []) for m in batch]
        self._log("llm_start", {"name": self._label(serialized), "messages": turns[-3:]})

    def on_llm_start(self, serialized, prompts, **kwargs):
        self._log("llm_start", {"name": self._label(serialized), "prompts": [self._truncate(p) for p in prompts or []]})

    def on_llm_end(self, response, **kwargs):
        texts: List[str] = []
        for generations in getattr(response, "generations", None) or []:
            for gen in generations:
                message = getattr(gen, "message", None)
                text = getattr(message, "content", None) or getattr(gen, "text", None)
                if text:
                    texts.append(self._truncate(text))
        self._log("llm_end", {"response": texts})

    def on_llm_error(self, error, **kwargs):
        logger.warning("[TRACE] llm_error: %s", error)
        self.events.append({"type": "llm_error", "error": self._truncate(str(error))})

    def on_tool_start(self, serialized, input_str, **kwargs):
        name = self._label(serialized)
        logger.info("[TRACE] tool_start: %s", name)
        self.events.append({"type": "tool_start", "tool": name, "input": self._truncate(input_str)})

    def on_tool_end(self, output, **kwargs):
        self._log("tool_end", {"output": self._truncate(output)})

    def on_tool_error(self, error, **kwargs):
        logger.warning("[TRACE] tool_error: %s", error)
        self.events.append({"type": "tool_error", "error": self._truncate(str(error))})
