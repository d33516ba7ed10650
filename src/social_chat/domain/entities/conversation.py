from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from social_chat.domain.entities.message import Message


def append_time(proposed: datetime, latest: datetime | None) -> datetime:
    """Timestamp for a message appended after one stamped ``latest``.

    A sender that read the clock before waiting on the conversation lock may
    hold an older time than the message already stored; it is moved forward
    so the last appended message is also the newest.
    """
    if latest is None or proposed >= latest:
        return proposed
    return latest


def ordered_pair(first: UUID, second: UUID) -> tuple[UUID, UUID]:
    """Canonical storage order for a participant pair."""
    return (first, second) if str(first) <= str(second) else (second, first)


@dataclass(frozen=True, slots=True)
class Conversation:
    id: UUID
    participant_low_id: UUID
    participant_high_id: UUID
    last_message: Message | None
    created_at: datetime
    updated_at: datetime

    @property
    def participant_ids(self) -> tuple[UUID, UUID]:
        return (self.participant_low_id, self.participant_high_id)

    def other_participant(self, user_id: UUID) -> UUID:
        if user_id == self.participant_low_id:
            return self.participant_high_id
        return self.participant_low_id
