"""AES-256-CBC encryption of message bodies at rest.

Envelope format: ``base64(iv) + ":" + base64(ciphertext)`` with standard,
padded Base64. A fresh 16-byte IV is drawn for every call.
"""
from __future__ import annotations

import base64
import binascii
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from social_chat.application.exceptions import CodecError

KEY_SIZE = 32
IV_SIZE = 16
SEPARATOR = ":"


class AesCbcCodec:
    """Implements application.ports.codec.MessageCodec."""

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_SIZE:
            raise ValueError(f"Encryption key must be {KEY_SIZE} bytes, got {len(key)}")
        self._key = key

    @classmethod
    def from_secret(cls, secret: str) -> AesCbcCodec:
        return cls(secret.encode("utf-8"))

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_SIZE)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return (
            base64.b64encode(iv).decode("ascii")
            + SEPARATOR
            + base64.b64encode(ciphertext).decode("ascii")
        )

    def decrypt(self, envelope: str | None) -> str:
        if not envelope:
            return ""

        iv_part, sep, ct_part = envelope.partition(SEPARATOR)
        if not sep or not ct_part:
            raise CodecError("Malformed envelope: missing IV separator")
        try:
            iv = base64.b64decode(iv_part, validate=True)
            ciphertext = base64.b64decode(ct_part, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise CodecError("Malformed envelope: invalid base64") from exc
        if len(iv) != IV_SIZE:
            raise CodecError(f"Malformed envelope: IV must be {IV_SIZE} bytes")
        if not ciphertext or len(ciphertext) % IV_SIZE:
            raise CodecError("Malformed envelope: ciphertext is not block aligned")

        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        try:
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            raw = unpadder.update(padded) + unpadder.finalize()
            return raw.decode("utf-8")
        except (ValueError, UnicodeDecodeError) as exc:
            # bad padding or garbage plaintext: wrong key or tampered data
            raise CodecError("Decryption failed") from exc
