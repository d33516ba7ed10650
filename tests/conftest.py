"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import json
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Iterable
from uuid import UUID

import pytest

from social_chat.application.ports.presence import PresenceTracker
from social_chat.application.uow import UoWFactory
from social_chat.domain.entities.conversation import Conversation, append_time, ordered_pair
from social_chat.domain.entities.message import Message
from social_chat.domain.entities.user import User
from social_chat.infrastructure.crypto.aes_codec import AesCbcCodec
from social_chat.infrastructure.presence.memory import InMemoryPresence
from social_chat.infrastructure.presence.redis_presence import RedisPresence
from social_chat.infrastructure.ws.gateway import ChatGateway, ClientSession
from social_chat.infrastructure.ws.manager import RoomManager
from social_chat.infrastructure.ws.protocol import WsInbound

TEST_KEY = b"0123456789abcdef0123456789abcdef"


class TickingClock:
    """Advances one millisecond per call so timestamps are strictly ordered."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        self._now += timedelta(milliseconds=1)
        return self._now


@dataclass
class FakeUserReader:
    _users: dict[str, User] = field(default_factory=dict)

    async def get_by_username(self, username: str) -> User | None:
        return self._users.get(username)

    async def get_by_ids(self, user_ids: Iterable[UUID]) -> dict[UUID, User]:
        wanted = set(user_ids)
        return {u.id: u for u in self._users.values() if u.id in wanted}


@dataclass
class FakeConnectionReader:
    _accepted: set[frozenset[UUID]] = field(default_factory=set)

    async def is_accepted(self, first_id: UUID, second_id: UUID) -> bool:
        return frozenset((first_id, second_id)) in self._accepted


@dataclass
class FakeConversationReader:
    _store: dict[UUID, Conversation] = field(default_factory=dict)
    _messages: dict[UUID, list[Message]] = field(default_factory=dict)

    async def find_between(self, first_id: UUID, second_id: UUID) -> Conversation | None:
        pair = ordered_pair(first_id, second_id)
        for c in self._store.values():
            if c.participant_ids == pair:
                return c
        return None

    async def list_for_user(self, user_id: UUID) -> list[Conversation]:
        mine = [c for c in self._store.values() if user_id in c.participant_ids]
        return sorted(mine, key=lambda c: c.updated_at, reverse=True)


@dataclass
class FakeConversationWriter:
    """Plain read-modify-write store: concurrent appends can lose updates."""

    _reader: FakeConversationReader

    async def create(self, first_id: UUID, second_id: UUID) -> Conversation:
        await asyncio.sleep(0)
        low, high = ordered_pair(first_id, second_id)
        now = datetime.now(timezone.utc)
        conversation = Conversation(
            id=uuid.uuid4(),
            participant_low_id=low,
            participant_high_id=high,
            last_message=None,
            created_at=now,
            updated_at=now,
        )
        self._reader._store[conversation.id] = conversation
        self._reader._messages[conversation.id] = []
        return conversation

    async def append_message(self, conversation_id: UUID, message: Message) -> Message:
        messages = list(self._reader._messages.get(conversation_id, []))
        conversation = self._reader._store[conversation_id]
        await asyncio.sleep(0)
        latest = conversation.last_message.created_at if conversation.last_message else None
        message = replace(message, created_at=append_time(message.created_at, latest))
        messages.append(message)
        self._reader._messages[conversation_id] = messages
        self._reader._store[conversation_id] = replace(
            conversation, last_message=message, updated_at=message.created_at,
        )
        return message


@dataclass
class FakeMessageReader:
    _conversations: FakeConversationReader

    async def list_before(
        self,
        conversation_id: UUID,
        *,
        before: datetime | None = None,
        limit: int = 20,
    ) -> list[Message]:
        msgs = self._conversations._messages.get(conversation_id, [])
        if before is not None:
            msgs = [m for m in msgs if m.created_at < before]
        return msgs[-limit:]

    async def count_unread(
        self, conversation_ids: Iterable[UUID], reader_id: UUID
    ) -> dict[UUID, int]:
        counts: dict[UUID, int] = {}
        for cid in conversation_ids:
            n = sum(1 for m in self._conversations._messages.get(cid, []) if not m.is_read_by(reader_id))
            if n:
                counts[cid] = n
        return counts


@dataclass
class FakeMessageWriter:
    _conversations: FakeConversationReader

    async def mark_all_read(self, conversation_id: UUID, reader_id: UUID) -> int:
        changed = 0
        updated: list[Message] = []
        for m in self._conversations._messages.get(conversation_id, []):
            if not m.is_read_by(reader_id):
                m = replace(m, read_by=m.read_by | {reader_id})
                changed += 1
            updated.append(m)
        self._conversations._messages[conversation_id] = updated
        return changed


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    users: FakeUserReader = field(default_factory=FakeUserReader)
    connections: FakeConnectionReader = field(default_factory=FakeConnectionReader)
    conversations: FakeConversationReader = field(default_factory=FakeConversationReader)
    conversations_w: FakeConversationWriter | None = None
    messages: FakeMessageReader | None = None
    messages_w: FakeMessageWriter | None = None
    commits: int = 0
    fail_commit: bool = False

    def __post_init__(self) -> None:
        if self.conversations_w is None:
            self.conversations_w = FakeConversationWriter(self.conversations)
        if self.messages is None:
            self.messages = FakeMessageReader(self.conversations)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.conversations)

    def add_user(self, username: str, **kwargs: Any) -> User:
        user = User(id=uuid.uuid4(), username=username, **kwargs)
        self.users._users[username] = user
        return user

    def block(self, blocker: User, blocked: User) -> User:
        updated = replace(blocker, blocked_user_ids=blocker.blocked_user_ids | {blocked.id})
        self.users._users[blocker.username] = updated
        return updated

    def connect(self, first: User, second: User) -> None:
        self.connections._accepted.add(frozenset((first.id, second.id)))

    def all_messages(self) -> list[Message]:
        return [m for msgs in self.conversations._messages.values() for m in msgs]

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        if self.fail_commit:
            raise RuntimeError("database unavailable")
        self.commits += 1

    async def rollback(self) -> None:
        pass


def uow_factory_for(uow: FakeUoW) -> UoWFactory:
    @asynccontextmanager
    async def _scope() -> AsyncIterator[FakeUoW]:
        yield uow

    return _scope  # type: ignore[return-value]


class FakeRedis:
    """The handful of set commands RedisPresence relies on."""

    def __init__(self) -> None:
        self.sets: dict[str, set[str]] = {}

    async def sadd(self, key: str, member: str) -> int:
        members = self.sets.setdefault(key, set())
        before = len(members)
        members.add(member)
        return len(members) - before

    async def srem(self, key: str, member: str) -> int:
        members = self.sets.get(key)
        if not members or member not in members:
            return 0
        members.discard(member)
        if not members:
            del self.sets[key]
        return 1

    async def scard(self, key: str) -> int:
        return len(self.sets.get(key, ()))

    async def exists(self, key: str) -> int:
        return int(key in self.sets)


class FakeWebSocket:
    """Records every frame sent by the server."""

    def __init__(self) -> None:
        self.accepted = False
        self.broken = False
        self.sent: list[dict[str, Any]] = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, raw: str) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(raw))

    def events(self, event_type: str | None = None) -> list[dict[str, Any]]:
        return [e["data"] for e in self.sent if event_type is None or e["type"] == event_type]

    def clear(self) -> None:
        self.sent.clear()


async def emit(gateway: ChatGateway, session: ClientSession, event_type: str, **data: Any) -> None:
    await gateway.handle(session, WsInbound(type=event_type, data=data))


async def open_connection(gateway: ChatGateway) -> tuple[ClientSession, FakeWebSocket]:
    ws = FakeWebSocket()
    session = await gateway.open(ws)  # type: ignore[arg-type]
    return session, ws


@pytest.fixture
def codec() -> AesCbcCodec:
    return AesCbcCodec(TEST_KEY)


@pytest.fixture
def uow() -> FakeUoW:
    return FakeUoW()


@pytest.fixture
def alice(uow: FakeUoW) -> User:
    return uow.add_user("alice", first_name="Alice", last_name="Liddell")


@pytest.fixture
def bob(uow: FakeUoW) -> User:
    return uow.add_user("bob")


@pytest.fixture(params=["memory", "redis"])
def presence(request) -> PresenceTracker:
    if request.param == "memory":
        return InMemoryPresence()
    return RedisPresence(FakeRedis(), "test:presence")  # type: ignore[arg-type]


@pytest.fixture
def gateway(uow: FakeUoW, codec: AesCbcCodec, presence: PresenceTracker, alice, bob) -> ChatGateway:
    return ChatGateway(
        RoomManager(),
        presence,
        codec,
        uow_factory_for(uow),
        clock=TickingClock(),
    )
