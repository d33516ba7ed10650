from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    username: str
    first_name: str | None = None
    last_name: str | None = None
    avatar: str | None = None
    blocked_user_ids: frozenset[UUID] = field(default_factory=frozenset)

    @property
    def display_name(self) -> str:
        full = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full.strip() or self.username

    @property
    def avatar_url(self) -> str:
        return self.avatar or f"https://ui-avatars.com/api/?name={self.username}"

    def has_blocked(self, other: User) -> bool:
        return other.id in self.blocked_user_ids
