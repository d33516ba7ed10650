from __future__ import annotations

from typing import Protocol


class MessageCodec(Protocol):
    def encrypt(self, plaintext: str) -> str: ...

    def decrypt(self, envelope: str | None) -> str: ...
