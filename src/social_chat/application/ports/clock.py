from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC; message timestamps come from here."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
