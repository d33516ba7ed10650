from __future__ import annotations

import asyncio

import pytest

from social_chat.domain.value_objects.enums import SessionState
from tests.conftest import emit, open_connection


async def joined(gateway, me: str, peer: str):
    session, ws = await open_connection(gateway)
    await emit(gateway, session, "join", selfId=me, peerId=peer)
    return session, ws


# -- join / presence ---------------------------------------------------------


@pytest.mark.asyncio
async def test_join_announces_self_and_reports_peer_status(gateway):
    session, ws = await joined(gateway, "alice", "bob")

    assert session.state is SessionState.JOINED
    assert session.username == "alice"
    assert ws.events("userOnlineStatus") == [
        {"username": "alice", "online": True},
        {"username": "bob", "online": False},
    ]


@pytest.mark.asyncio
async def test_both_sides_learn_the_other_is_online(gateway):
    _, ws_a = await joined(gateway, "alice", "bob")
    ws_a.clear()
    _, ws_b = await joined(gateway, "bob", "alice")

    assert ws_a.events("userOnlineStatus") == [{"username": "bob", "online": True}]
    assert ws_b.events("userOnlineStatus") == [
        {"username": "bob", "online": True},
        {"username": "alice", "online": True},
    ]


@pytest.mark.asyncio
async def test_disconnect_broadcasts_offline_to_everyone(gateway, uow):
    uow.add_user("carol")
    session_a, _ = await joined(gateway, "alice", "bob")
    _, ws_b = await joined(gateway, "bob", "alice")
    _, ws_c = await joined(gateway, "carol", "bob")
    ws_b.clear()
    ws_c.clear()

    await gateway.close(session_a)

    assert session_a.state is SessionState.CLOSED
    assert ws_b.events("userOnlineStatus") == [{"username": "alice", "online": False}]
    assert ws_c.events("userOnlineStatus") == [{"username": "alice", "online": False}]
    assert await gateway.presence.is_online("alice") is False


@pytest.mark.asyncio
async def test_user_stays_online_while_another_connection_is_open(gateway):
    first, _ = await joined(gateway, "alice", "bob")
    second, _ = await joined(gateway, "alice", "bob")
    _, ws_b = await joined(gateway, "bob", "alice")
    ws_b.clear()

    await gateway.close(first)
    assert ws_b.events("userOnlineStatus") == []
    assert await gateway.presence.is_online("alice") is True

    await gateway.close(second)
    assert ws_b.events("userOnlineStatus") == [{"username": "alice", "online": False}]


@pytest.mark.asyncio
async def test_closing_unbound_connection_is_silent(gateway):
    _, ws_b = await joined(gateway, "bob", "alice")
    ws_b.clear()
    session, _ = await open_connection(gateway)

    await gateway.close(session)
    await gateway.close(session)

    assert ws_b.sent == []


@pytest.mark.asyncio
async def test_closed_session_ignores_events(gateway, uow):
    session, ws = await joined(gateway, "alice", "bob")
    await gateway.close(session)
    ws.clear()

    await emit(gateway, session, "sendMessage", selfId="alice", peerId="bob", message={"text": "late"})
    await emit(gateway, session, "ping")

    assert ws.sent == []
    assert uow.all_messages() == []


# -- messages ----------------------------------------------------------------


@pytest.mark.asyncio
async def test_send_message_stores_ciphertext_and_broadcasts_plaintext(gateway, uow, codec, alice):
    session_a, ws_a = await joined(gateway, "alice", "bob")
    _, ws_b = await joined(gateway, "bob", "alice")

    await emit(
        gateway, session_a, "sendMessage",
        selfId="alice", peerId="bob",
        message={"text": "secret", "time": "12:00", "clientId": "tmp-1"},
    )

    expected = {"newMessage": {"text": "secret", "time": "12:00", "clientId": "tmp-1", "sender": "alice"}}
    assert ws_a.events("messageReceived") == [expected]
    assert ws_b.events("messageReceived") == [expected]

    [stored] = uow.all_messages()
    assert "secret" not in stored.content
    assert codec.decrypt(stored.content) == "secret"
    assert stored.read_by == {alice.id}
    assert stored.sender_id == alice.id


@pytest.mark.asyncio
async def test_conversation_is_created_once_and_reused(gateway, uow):
    session_a, _ = await joined(gateway, "alice", "bob")
    session_b, _ = await joined(gateway, "bob", "alice")

    await emit(gateway, session_a, "sendMessage", selfId="alice", peerId="bob", message={"text": "hi"})
    await emit(gateway, session_b, "sendMessage", selfId="bob", peerId="alice", message={"text": "hey"})

    assert len(uow.conversations._store) == 1
    assert len(uow.all_messages()) == 2


@pytest.mark.asyncio
async def test_concurrent_sends_are_all_persisted(gateway, uow):
    session_a, _ = await joined(gateway, "alice", "bob")
    session_b, _ = await joined(gateway, "bob", "alice")

    sends = [
        emit(gateway, session_a if i % 2 else session_b, "sendMessage",
             selfId="alice" if i % 2 else "bob",
             peerId="bob" if i % 2 else "alice",
             message={"text": f"m{i}"})
        for i in range(20)
    ]
    await asyncio.gather(*sends)

    assert len(uow.conversations._store) == 1
    [conversation] = uow.conversations._store.values()
    messages = uow.conversations._messages[conversation.id]
    assert len(messages) == 20
    assert conversation.last_message == messages[-1]
    assert [m.created_at for m in messages] == sorted(m.created_at for m in messages)


@pytest.mark.asyncio
async def test_send_to_unknown_peer_reports_error(gateway, uow):
    session, ws = await joined(gateway, "alice", "bob")
    ws.clear()

    await emit(gateway, session, "sendMessage", selfId="alice", peerId="nobody", message={"text": "hi"})

    [error] = ws.events("error")
    assert error["code"] == "unknown_user"
    assert "nobody" in error["detail"]
    assert ws.events("messageReceived") == []
    assert uow.all_messages() == []


@pytest.mark.asyncio
async def test_failed_persist_reports_send_failed_and_does_not_broadcast(gateway, uow):
    session_a, ws_a = await joined(gateway, "alice", "bob")
    _, ws_b = await joined(gateway, "bob", "alice")
    uow.fail_commit = True

    await emit(gateway, session_a, "sendMessage", selfId="alice", peerId="bob", message={"text": "hi"})

    assert ws_a.events("error") == [{"code": "send_failed", "detail": "Message could not be saved"}]
    assert ws_a.events("messageReceived") == []
    assert ws_b.events("messageReceived") == []


@pytest.mark.asyncio
async def test_send_as_someone_else_is_rejected(gateway, uow):
    session, ws = await joined(gateway, "alice", "bob")
    ws.clear()

    await emit(gateway, session, "sendMessage", selfId="bob", peerId="alice", message={"text": "spoof"})

    assert [e["code"] for e in ws.events("error")] == ["identity_mismatch"]
    assert uow.all_messages() == []


# -- read state --------------------------------------------------------------


@pytest.mark.asyncio
async def test_join_marks_pending_messages_read_once(gateway, uow, bob):
    session_a, _ = await joined(gateway, "alice", "bob")
    for text in ("one", "two"):
        await emit(gateway, session_a, "sendMessage", selfId="alice", peerId="bob", message={"text": text})

    session_b, ws_b = await joined(gateway, "bob", "alice")
    assert ws_b.events("unreadUpdated") == [{"userId": "alice"}]
    assert all(m.is_read_by(bob.id) for m in uow.all_messages())

    ws_b.clear()
    await emit(gateway, session_b, "join", selfId="bob", peerId="alice")
    assert ws_b.events("unreadUpdated") == []


@pytest.mark.asyncio
async def test_messages_sent_while_peer_away_are_read_on_rejoin(gateway, uow, bob):
    session_a, _ = await joined(gateway, "alice", "bob")
    session_b, _ = await joined(gateway, "bob", "alice")
    await emit(gateway, session_a, "sendMessage", selfId="alice", peerId="bob", message={"text": "hi"})
    await gateway.close(session_b)
    await emit(gateway, session_a, "sendMessage", selfId="alice", peerId="bob", message={"text": "hello"})

    [conversation] = uow.conversations._store.values()
    assert await uow.messages.count_unread([conversation.id], bob.id) == {conversation.id: 2}

    _, ws_b = await joined(gateway, "bob", "alice")

    assert ws_b.events("unreadUpdated") == [{"userId": "alice"}]
    assert await uow.messages.count_unread([conversation.id], bob.id) == {}


@pytest.mark.asyncio
async def test_join_with_nothing_to_read_emits_no_update(gateway):
    _, ws = await joined(gateway, "alice", "bob")
    assert ws.events("unreadUpdated") == []


@pytest.mark.asyncio
async def test_failed_read_reconciliation_is_not_surfaced(gateway, uow):
    session_a, _ = await joined(gateway, "alice", "bob")
    await emit(gateway, session_a, "sendMessage", selfId="alice", peerId="bob", message={"text": "hi"})
    uow.fail_commit = True

    session_b, ws_b = await joined(gateway, "bob", "alice")

    assert session_b.state is SessionState.JOINED
    assert ws_b.events("unreadUpdated") == []
    assert ws_b.events("error") == []


@pytest.mark.asyncio
async def test_join_with_unknown_peer_is_rejected_before_binding(gateway):
    session, ws = await joined(gateway, "alice", "ghost")

    assert session.state is SessionState.UNBOUND
    assert session.username is None
    assert ws.events("error") == [{"code": "unknown_user", "detail": "User not found: ghost"}]
    assert ws.events("userOnlineStatus") == []
    assert await gateway.presence.is_online("alice") is False


@pytest.mark.asyncio
async def test_unknown_self_never_appears_online(gateway):
    _, ws_b = await joined(gateway, "bob", "alice")
    ws_b.clear()

    session, ws = await joined(gateway, "ghost", "bob")

    assert [e["code"] for e in ws.events("error")] == ["unknown_user"]
    assert ws_b.sent == []
    assert await gateway.presence.is_online("ghost") is False

    await gateway.close(session)
    assert ws_b.sent == []


@pytest.mark.asyncio
async def test_rejected_join_can_be_retried(gateway):
    session, ws = await joined(gateway, "alice", "ghost")
    ws.clear()

    await emit(gateway, session, "join", selfId="alice", peerId="bob")

    assert session.state is SessionState.JOINED
    assert ws.events("userOnlineStatus")[0] == {"username": "alice", "online": True}


# -- typing ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_typing_is_relayed_to_peer_only(gateway):
    session_a, ws_a = await joined(gateway, "alice", "bob")
    _, ws_b = await joined(gateway, "bob", "alice")

    await emit(gateway, session_a, "typing", selfId="alice", peerId="bob")
    await emit(gateway, session_a, "stopTyping", selfId="alice", peerId="bob")

    assert ws_b.events("typing") == [{"username": "alice"}]
    assert ws_b.events("stopTyping") == [{"username": "alice"}]
    assert ws_a.events("typing") == []
    assert ws_a.events("stopTyping") == []


@pytest.mark.asyncio
async def test_typing_does_not_leak_into_other_rooms(gateway, uow):
    uow.add_user("carol")
    session_a, _ = await joined(gateway, "alice", "bob")
    _, ws_c = await joined(gateway, "carol", "bob")

    await emit(gateway, session_a, "typing", selfId="alice", peerId="bob")

    assert ws_c.events("typing") == []


# -- protocol errors ---------------------------------------------------------


@pytest.mark.asyncio
async def test_events_before_join_are_rejected(gateway):
    session, ws = await open_connection(gateway)

    await emit(gateway, session, "typing", selfId="alice", peerId="bob")

    assert [e["code"] for e in ws.events("error")] == ["not_joined"]
    assert session.state is SessionState.UNBOUND


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "data",
    [
        {"selfId": "alice"},
        {"selfId": "alice", "peerId": "alice"},
        {"selfId": "", "peerId": "bob"},
    ],
)
async def test_invalid_join_payload(gateway, data):
    session, ws = await open_connection(gateway)

    await emit(gateway, session, "join", **data)

    assert [e["code"] for e in ws.events("error")] == ["invalid_payload"]
    assert session.state is SessionState.UNBOUND


@pytest.mark.asyncio
async def test_send_message_without_text_is_invalid(gateway):
    session, ws = await joined(gateway, "alice", "bob")

    await emit(gateway, session, "sendMessage", selfId="alice", peerId="bob", message={})

    assert [e["code"] for e in ws.events("error")] == ["invalid_payload"]


@pytest.mark.asyncio
async def test_unknown_event_type(gateway):
    session, ws = await open_connection(gateway)

    await emit(gateway, session, "dance")

    assert ws.events("error") == [{"code": "unknown_type", "detail": "dance"}]


@pytest.mark.asyncio
async def test_ping_gets_pong(gateway):
    session, ws = await open_connection(gateway)

    await emit(gateway, session, "ping")

    assert ws.sent == [{"type": "pong", "data": {}}]


@pytest.mark.asyncio
async def test_shutdown_clears_presence(gateway):
    await joined(gateway, "alice", "bob")
    await gateway.shutdown()
    assert await gateway.presence.is_online("alice") is False


@pytest.mark.asyncio
async def test_join_lookup_failure_reports_and_stays_unbound(gateway, uow, monkeypatch):
    async def broken(username):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(uow.users, "get_by_username", broken)
    session, ws = await joined(gateway, "alice", "bob")

    assert session.state is SessionState.UNBOUND
    assert [e["code"] for e in ws.events("error")] == ["join_failed"]
    assert await gateway.presence.is_online("alice") is False
