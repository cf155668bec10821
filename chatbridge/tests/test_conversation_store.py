import asyncio

import pytest

from chatbridge.core.exceptions import MessageNotFoundError, SessionNotFoundError


@pytest.mark.asyncio
async def test_store_keeps_messages_in_insertion_order(store):
    session = await store.create_session("user-1", "Chat")

    await store.add_message("user-1", session.id, "hello", "user")
    await store.add_message("user-1", session.id, "hi there", "assistant")
    await store.add_message("user-1", session.id, "how are you?", "user")

    history = await store.get_messages("user-1", session.id)
    assert [m.content for m in history] == ["hello", "hi there", "how are you?"]
    assert [m.role for m in history] == ["user", "assistant", "user"]


@pytest.mark.asyncio
async def test_sessions_are_listed_most_recent_first(store):
    older = await store.create_session("user-1", "Older")
    await asyncio.sleep(0.001)
    newer = await store.create_session("user-1", "Newer")
    await asyncio.sleep(0.001)

    await store.add_message("user-1", older.id, "bump", "user")

    sessions = await store.list_sessions("user-1")
    assert [s.id for s in sessions] == [older.id, newer.id]


@pytest.mark.asyncio
async def test_sessions_are_scoped_to_their_owner(store):
    session = await store.create_session("user-1", "Private")

    assert await store.list_sessions("user-2") == []
    with pytest.raises(SessionNotFoundError):
        await store.get_messages("user-2", session.id)
    with pytest.raises(SessionNotFoundError):
        await store.add_message("user-2", session.id, "intrude", "user")


@pytest.mark.asyncio
async def test_get_message_is_scoped_to_owner(store):
    session = await store.create_session("user-1", "Chat")
    message = await store.add_message("user-1", session.id, "hello", "user")

    assert (await store.get_message("user-1", message.id)).content == "hello"
    with pytest.raises(MessageNotFoundError):
        await store.get_message("user-2", message.id)


@pytest.mark.asyncio
async def test_delete_messages_ignores_foreign_ids(store):
    mine = await store.create_session("user-1", "Mine")
    theirs = await store.create_session("user-2", "Theirs")
    kept = await store.add_message("user-1", mine.id, "keep", "user")
    dropped = await store.add_message("user-1", mine.id, "drop", "user")
    foreign = await store.add_message("user-2", theirs.id, "foreign", "user")

    deleted = await store.delete_messages("user-1", [dropped.id, foreign.id, "missing"])

    assert deleted == 1
    assert [m.id for m in await store.get_messages("user-1", mine.id)] == [kept.id]
    assert [m.id for m in await store.get_messages("user-2", theirs.id)] == [foreign.id]


@pytest.mark.asyncio
async def test_delete_and_rename_session(store):
    session = await store.create_session("user-1", "New conversation")

    renamed = await store.rename_session("user-1", session.id, "Weekend plans")
    assert renamed.name == "Weekend plans"

    await store.delete_session("user-1", session.id)
    with pytest.raises(SessionNotFoundError):
        await store.get_session("user-1", session.id)
