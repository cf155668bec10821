import asyncio
import json

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from chatbridge.core.auth import issue_user_token
from chatbridge.core.exceptions import ExternalServiceError
from chatbridge.llm.api.chat import _sse_frames
from chatbridge.llm.main import create_app
from chatbridge.llm.services.completion_driver import CompletionDriver
from chatbridge.llm.services.conversation_service import ConversationService
from chatbridge.llm.services.streaming_driver import StreamingDriver

from .fakes import BUILTIN_TOOL_NAMES, USER_ID, ScriptedLLM, completion, content_event, finish_event, tool_call


def _app(settings, store, *, stream_llm=None, completion_llm=None):
    return create_app(
        settings,
        llm_clients={"openai": completion_llm or ScriptedLLM(), "grok": stream_llm or ScriptedLLM()},
        store=store,
    )


def _auth(settings, user_id=USER_ID, scheme="Bearer") -> dict[str, str]:
    return {"Authorization": f"{scheme} {issue_user_token(user_id, settings)}"}


def _sse_events(body: str) -> list[tuple[str, dict]]:
    events = []
    for frame in body.strip().split("\n\n"):
        name = "message"
        data = None
        for line in frame.splitlines():
            if line.startswith("event: "):
                name = line[len("event: "):]
            elif line.startswith("data: "):
                data = json.loads(line[len("data: "):])
        events.append((name, data))
    return events


async def _drain(channel):
    return [chunk async for chunk in channel]


@pytest.mark.asyncio
async def test_health_endpoint(settings, store):
    app = _app(settings, store)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/health/")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["tools"] == len(BUILTIN_TOOL_NAMES)


@pytest.mark.asyncio
async def test_chat_routes_require_credentials(settings, store):
    app = _app(settings, store)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        missing = await client.get("/chat/sessions")
        garbage = await client.get("/chat/sessions", headers={"Authorization": "Bearer not-a-jwt"})

    assert missing.status_code == 401
    assert garbage.status_code == 401


@pytest.mark.asyncio
async def test_session_lifecycle(settings, store):
    app = _app(settings, store)
    headers = _auth(settings, scheme="CustomBearer")

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        created = await client.post("/chat/sessions", json={"name": "Planning"}, headers=headers)
        session_id = created.json()["id"]
        added = await client.post(
            f"/chat/sessions/{session_id}/messages",
            json={"content": "hello", "structuredContent": {"k": "v"}, "widgetId": "/w"},
            headers=headers,
        )
        listed = await client.get("/chat/sessions", headers=headers)
        messages = await client.get(f"/chat/sessions/{session_id}/messages", headers=headers)
        deleted_messages = await client.post(
            "/chat/messages/delete", json={"messageIds": [added.json()["id"]]}, headers=headers
        )
        deleted = await client.delete(f"/chat/sessions/{session_id}", headers=headers)
        gone = await client.get(f"/chat/sessions/{session_id}/messages", headers=headers)

    assert created.status_code == 200
    assert added.json()["structured_content"] == {"k": "v"}
    assert added.json()["widget_id"] == "/w"
    assert [s["id"] for s in listed.json()] == [session_id]
    assert [m["content"] for m in messages.json()] == ["hello"]
    assert deleted_messages.json() == {"success": True, "deleted": 1}
    assert deleted.json()["success"] is True
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_other_users_session_is_not_found(settings, store):
    session = await store.create_session("someone-else", "Theirs")
    app = _app(settings, store)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get(f"/chat/sessions/{session.id}/messages", headers=_auth(settings))

    assert response.status_code == 404
    assert session.id in response.json()["detail"]


@pytest.mark.asyncio
async def test_complete_endpoint_runs_tool_loop(settings, store):
    completion_llm = ScriptedLLM(
        [completion("", [tool_call("c1", "add", {"a": 1, "b": 2})]), completion("1 + 2 = 3")]
    )
    app = _app(settings, store, completion_llm=completion_llm)
    session = await store.create_session(USER_ID, "Maths")

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.post(
            f"/chat/sessions/{session.id}/complete", json={"content": "1 + 2?"}, headers=_auth(settings)
        )

    assert response.status_code == 200
    body = response.json()
    assert body["user_message"]["content"] == "1 + 2?"
    assert body["assistant_message"]["content"] == "1 + 2 = 3"


@pytest.mark.asyncio
async def test_complete_endpoint_maps_upstream_failure_to_502(settings, store):
    app = _app(settings, store, completion_llm=ScriptedLLM([ExternalServiceError("openai down")]))
    session = await store.create_session(USER_ID, "Maths")

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.post(
            f"/chat/sessions/{session.id}/complete", json={"content": "hi"}, headers=_auth(settings)
        )

    assert response.status_code == 502
    assert "openai down" in response.json()["detail"]


@pytest.mark.asyncio
async def test_stream_endpoint_emits_sse_frames(settings, store):
    stream_llm = ScriptedLLM(streams=[[content_event("Hello"), content_event(" world"), finish_event()]])
    app = _app(settings, store, stream_llm=stream_llm)
    session = await store.create_session(USER_ID, "Chat")
    message = await store.add_message(USER_ID, session.id, "hi", "user")

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get(f"/chat/messages/{message.id}/stream", headers=_auth(settings))

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = _sse_events(response.text)
    assert [data["type"] for _, data in events] == ["content", "content", "done"]
    stored = await store.get_messages(USER_ID, session.id)
    assert events[-1][1]["assistantMessageId"] == stored[-1].id


@pytest.mark.asyncio
async def test_stream_endpoint_reports_failure_as_error_event(settings, store):
    stream_llm = ScriptedLLM(streams=[[content_event("par"), ExternalServiceError("grok down")]])
    app = _app(settings, store, stream_llm=stream_llm)
    session = await store.create_session(USER_ID, "Chat")
    message = await store.add_message(USER_ID, session.id, "hi", "user")

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get(f"/chat/messages/{message.id}/stream", headers=_auth(settings))

    events = _sse_events(response.text)
    assert events[0][1] == {"type": "content", "content": "par"}
    assert events[-1] == ("error", {"error": "grok down"})


@pytest.mark.asyncio
async def test_stream_endpoint_unknown_message_is_404(settings, store):
    app = _app(settings, store)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/chat/messages/missing/stream", headers=_auth(settings))

    assert response.status_code == 404


def test_websocket_streams_reply_chunks(settings, store):
    stream_llm = ScriptedLLM(streams=[[content_event("Hi!"), finish_event()]])
    client = TestClient(_app(settings, store, stream_llm=stream_llm))
    headers = _auth(settings)
    session = client.post("/chat/sessions", json={"name": "Chat"}, headers=headers).json()
    message = client.post(
        f"/chat/sessions/{session['id']}/messages", json={"content": "hello"}, headers=headers
    ).json()
    token = issue_user_token(USER_ID, settings)

    with client.websocket_connect(f"/chat/ws?token={token}") as websocket:
        websocket.send_json({"type": "stream_message", "message_id": message["id"]})
        first = websocket.receive_json()
        last = websocket.receive_json()
        websocket.send_json({"type": "mystery"})
        error = websocket.receive_json()

    assert first == {"type": "content", "content": "Hi!"}
    assert last["type"] == "done"
    assert last["assistantMessageId"]
    assert error["type"] == "error"


def test_websocket_rejects_invalid_token(settings, store):
    client = TestClient(_app(settings, store))

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/chat/ws?token=bogus") as websocket:
            websocket.receive_json()


@pytest.mark.asyncio
async def test_sse_body_starts_the_run_lazily_and_releases_it_on_close(settings, store, registry, executor):
    long_reply = [content_event(f"part {i} ") for i in range(10)] + [finish_event()]
    stream_llm = ScriptedLLM(streams=[long_reply, [content_event("Fresh."), finish_event()]])
    tight = settings.model_copy(update={"chunk_queue_size": 1})
    service = ConversationService(
        store,
        StreamingDriver(stream_llm, registry, executor),
        CompletionDriver(ScriptedLLM(), registry, executor),
        ScriptedLLM(),
        tight,
    )
    session = await service.create_session(USER_ID, "Chat")
    message = await service.add_user_message(USER_ID, session.id, "hi")

    unstarted = _sse_frames(service, USER_ID, message.id)
    await asyncio.sleep(0)
    assert stream_llm.stream_calls == []
    await unstarted.aclose()

    frames = _sse_frames(service, USER_ID, message.id)
    first = await anext(frames)
    await frames.aclose()

    channel = service.stream_message(USER_ID, message.id)
    chunks = await asyncio.wait_for(_drain(channel), timeout=5)

    assert json.loads(first.removeprefix("data: ")) == {"type": "content", "content": "part 0 "}
    assert [c.type for c in chunks] == ["content", "done"]
    stored = await store.get_messages(USER_ID, session.id)
    assert [(m.role, m.content) for m in stored] == [("user", "hi"), ("assistant", "Fresh.")]
