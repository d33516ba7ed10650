"""Room identifiers for a pair of chat participants."""
from __future__ import annotations

import hashlib

from social_chat.domain.value_objects.ids import RoomId


def derive_room_id(first: str, second: str) -> RoomId:
    """Return the same room id for (a, b) and (b, a).

    Each identifier is length-prefixed before hashing, so no pair of
    usernames can produce the same preimage as another pair.
    """
    encoded = "".join(f"{len(part)}:{part}" for part in sorted((first, second)))
    return RoomId(hashlib.sha256(encoded.encode("utf-8")).hexdigest())
