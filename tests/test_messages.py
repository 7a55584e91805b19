from datetime import datetime, timedelta, timezone

import app.services.messages as messages_service
from models.schemas import Message
from app.services.messages import (
    derive_conversations, get_conversations, get_message, get_thread,
    mark_message_as_read, send_message, stream_conversations
)
from app.services.users import create_user_profile


async def test_sent_message_is_unread_and_visible_to_both_sides():
    message_id = await send_message("u1", "u2", "hi")

    message = await get_message(message_id)
    assert message.read is False
    assert message.timestamp is not None

    thread = await get_thread("u1", "u2")
    assert [m.id for m in thread] == [message_id]

    conversations = await get_conversations("u2")
    assert len(conversations) == 1
    assert conversations[0].participant_id == "u1"
    assert conversations[0].last_message == "hi"
    assert conversations[0].unread == 1


async def test_thread_is_symmetric_and_ascending():
    first = await send_message("a", "b", "one")
    second = await send_message("b", "a", "two")
    await send_message("a", "c", "elsewhere")
    await send_message("a", "a", "note to self")
    third = await send_message("a", "b", "three")

    forward = await get_thread("a", "b")
    backward = await get_thread("b", "a")

    assert [m.id for m in forward] == [first, second, third]
    assert [m.id for m in backward] == [m.id for m in forward]
    timestamps = [m.timestamp for m in forward]
    assert timestamps == sorted(timestamps)


async def test_conversations_group_by_counterparty_with_unread_counts():
    await send_message("u2", "u1", "hello from u2")
    await send_message("u1", "u2", "reply to u2")
    await send_message("u3", "u1", "first from u3")
    await send_message("u3", "u1", "second from u3")
    await send_message("u2", "u3", "not involving u1")

    conversations = {c.participant_id: c for c in await get_conversations("u1")}

    assert set(conversations) == {"u2", "u3"}
    assert conversations["u2"].unread == 1
    assert conversations["u2"].last_message == "reply to u2"
    assert conversations["u3"].unread == 2
    assert conversations["u3"].last_message == "second from u3"


async def test_marking_read_lowers_unread_count():
    message_id = await send_message("u1", "u2", "hi")
    await send_message("u1", "u2", "are you there?")

    await mark_message_as_read(message_id)

    conversations = await get_conversations("u2")
    assert conversations[0].unread == 1
    assert (await get_message(message_id)).read is True


async def test_conversation_names_come_from_profiles():
    await create_user_profile("u1", "Amina", "amina@example.com", "farmer")
    await send_message("u1", "u2", "hi")

    conversations = await get_conversations("u2")

    assert conversations[0].participant_name == "Amina"


def test_derive_conversations_takes_first_message_as_latest():
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def message(message_id, sender, receiver, minutes, read=False):
        return Message(id=message_id, sender_id=sender, receiver_id=receiver, content=message_id,
                       timestamp=now + timedelta(minutes=minutes), read=read)

    newest_first = [
        message("m4", "vet", "me", 4),
        message("m3", "me", "other", 3),
        message("m2", "vet", "me", 2, read=True),
        message("m1", "x", "y", 1),
    ]

    conversations = {c.participant_id: c for c in derive_conversations(newest_first, "me")}

    assert set(conversations) == {"vet", "other"}
    assert conversations["vet"].last_message == "m4"
    assert conversations["vet"].unread == 1
    assert conversations["other"].unread == 0


async def test_stream_yields_a_fresh_snapshot_per_change(monkeypatch):
    await send_message("u1", "u2", "hi")

    async def fake_watch(collection_name):
        await send_message("u3", "u2", "new sender")
        yield {"operationType": "insert"}

    monkeypatch.setattr(messages_service, "watch_changes", fake_watch)

    snapshots = [snapshot async for snapshot in stream_conversations("u2")]

    assert len(snapshots) == 2
    assert [c.participant_id for c in snapshots[0]] == ["u1"]
    assert {c.participant_id for c in snapshots[1]} == {"u1", "u3"}
