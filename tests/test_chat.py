import asyncio

from langchain_core.messages import AIMessageChunk, HumanMessage, SystemMessage, ToolMessage

from lifeos.agents.chat import FALLBACK_REPLY, ChatProxy, guarded
from lifeos.api.chat import get_chat_proxy
from lifeos.config import get_settings
from lifeos.main import app
from lifeos.models.schemas import ChatMessage
from lifeos.services.sync import SyncService
from lifeos.tools.calendar_tools import NO_EVENTS, make_calendar_tools


class FakeStreamingLLM:
    """Replays one list of chunks per model call."""

    def __init__(self, *rounds):
        self.rounds = list(rounds)
        self.calls = []

    async def astream(self, messages, config=None):
        self.calls.append(list(messages))
        for chunk in self.rounds.pop(0):
            yield chunk


class ExplodingLLM:
    def __init__(self, after=()):
        self.after = list(after)

    async def astream(self, messages, config=None):
        for chunk in self.after:
            yield chunk
        raise RuntimeError("upstream 503")


def _collect(stream):
    async def go():
        return [text async for text in stream]

    return asyncio.run(go())


def _turns(*texts):
    return [ChatMessage(role="user", content=t) for t in texts]


def test_system_prompt_comes_first(settings):
    proxy = ChatProxy(settings, llm=FakeStreamingLLM())
    messages = proxy.build_messages(
        [ChatMessage(role="user", content="hi"), ChatMessage(role="assistant", content="hello")]
    )
    assert isinstance(messages[0], SystemMessage)
    assert "You are LifeOS" in messages[0].content
    assert isinstance(messages[1], HumanMessage)
    assert messages[2].content == "hello"


def test_text_is_streamed_as_produced(settings):
    llm = FakeStreamingLLM([AIMessageChunk(content="Plan "), AIMessageChunk(content="your day.")])
    chunks = _collect(ChatProxy(settings, llm=llm).stream(_turns("help")))
    assert chunks == ["Plan ", "your day."]


def test_tool_calls_are_run_and_fed_back(settings, store, auth):
    tools = make_calendar_tools(SyncService(store, auth), settings.tz)
    call = AIMessageChunk(
        content="",
        tool_call_chunks=[{"name": "getCalendarEvents", "args": '{"date": "2025-03-10"}', "id": "call_1", "index": 0}],
    )
    llm = FakeStreamingLLM([call], [AIMessageChunk(content="You're free "), AIMessageChunk(content="all day.")])
    chunks = _collect(ChatProxy(settings, tools, llm=llm).stream(_turns("what's on today?")))

    assert "".join(chunks) == "You're free all day."
    second_call = llm.calls[1]
    assert isinstance(second_call[-1], ToolMessage)
    assert second_call[-1].content == NO_EVENTS
    assert second_call[-1].tool_call_id == "call_1"


def test_unknown_tool_is_answered_in_band(settings):
    call = AIMessageChunk(content="", tool_call_chunks=[{"name": "deleteEverything", "args": "{}", "id": "c9", "index": 0}])
    llm = FakeStreamingLLM([call], [AIMessageChunk(content="Sorry.")])
    assert _collect(ChatProxy(settings, llm=llm).stream(_turns("x"))) == ["Sorry."]
    assert "unknown tool" in llm.calls[1][-1].content


def test_tool_rounds_are_bounded(settings):
    settings = settings.model_copy(update={"chat_max_steps": 2})
    call = AIMessageChunk(content="", tool_call_chunks=[{"name": "nope", "args": "{}", "id": "c", "index": 0}])
    llm = FakeStreamingLLM([call], [call], [AIMessageChunk(content="never")])
    assert _collect(ChatProxy(settings, llm=llm).stream(_turns("loop"))) == []
    assert len(llm.calls) == 2


def test_guarded_turns_failure_before_first_token_into_text(settings):
    chunks = _collect(guarded(ChatProxy(settings, llm=ExplodingLLM()).stream(_turns("hi"))))
    assert len(chunks) == 1
    assert chunks[0].startswith(FALLBACK_REPLY)
    assert "upstream 503" in chunks[0]


def test_guarded_keeps_partial_output(settings):
    llm = ExplodingLLM(after=[AIMessageChunk(content="Half an ans")])
    chunks = _collect(guarded(ChatProxy(settings, llm=llm).stream(_turns("hi"))))
    assert chunks[0] == "Half an ans"
    assert FALLBACK_REPLY in chunks[1]


def test_chat_route_reports_upstream_failure_with_200(client, settings):
    app.dependency_overrides[get_chat_proxy] = lambda: ChatProxy(settings, llm=ExplodingLLM())
    resp = client.post("/chat", json={"messages": [{"role": "user", "content": "hi"}]})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert FALLBACK_REPLY in resp.text


def test_chat_route_streams_text(client, settings):
    llm = FakeStreamingLLM([AIMessageChunk(content="Hello"), AIMessageChunk(content=" there")])
    app.dependency_overrides[get_chat_proxy] = lambda: ChatProxy(settings, llm=llm)
    resp = client.post("/chat", json={"messages": [{"role": "user", "content": "hi"}]})
    assert resp.status_code == 200
    assert resp.text == "Hello there"


def test_chat_route_without_api_key_is_a_configuration_error(client, settings):
    app.dependency_overrides[get_settings] = lambda: settings.model_copy(update={"openai_api_key": ""})
    resp = client.post("/chat", json={"messages": [{"role": "user", "content": "hi"}]})
    assert resp.status_code == 500
    assert "OPENAI_API_KEY" in resp.json()["detail"]


def test_chat_route_rejects_empty_conversation(client):
    assert client.post("/chat", json={"messages": []}).status_code == 422
