from __future__ import annotations

from typing import NewType

# hex digest naming a fan-out channel for one user pair
RoomId = NewType("RoomId", str)
