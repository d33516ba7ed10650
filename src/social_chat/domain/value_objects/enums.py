from __future__ import annotations

from enum import StrEnum


class ConnectionStatus(StrEnum):
    INTERESTED = "interested"
    IGNORED = "ignored"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class SessionState(StrEnum):
    UNBOUND = "unbound"
    JOINED = "joined"
    CLOSED = "closed"
