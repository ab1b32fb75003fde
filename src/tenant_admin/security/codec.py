"""Reversible at-rest encoding for encrypted settings and stored secrets.

Two modes exist and one of them is chosen per process:

* ``aes-gcm`` -- AES-256-GCM with a fresh 16-byte nonce per value. Output is
  ``hex(nonce):hex(tag):hex(ciphertext)``.
* ``base64`` -- a plain binary-to-text transform with no secrecy, kept for
  rows written by deployments that never enabled real encryption.

Neither mode raises past this module. Encryption failures store the
plaintext, decryption failures return the stored text as-is; both are logged.
"""

from __future__ import annotations

import base64
import binascii
import secrets
from typing import Literal

import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = structlog.get_logger()

CodecMode = Literal["base64", "aes-gcm"]

KEY_LENGTH = 32
NONCE_LENGTH = 16
TAG_LENGTH = 16
FALLBACK_KEY = "default-32-character-encryption-key!!"


def normalize_key(key: str | None) -> str:
    """Force *key* to exactly 32 characters.

    Short keys are right-padded with ``"0"``, long keys truncated. This is not
    a KDF; it must stay byte-compatible with existing ciphertext.
    """
    if not key:
        key = FALLBACK_KEY
    if len(key) < KEY_LENGTH:
        return key.ljust(KEY_LENGTH, "0")
    return key[:KEY_LENGTH]


def _looks_encrypted(value: str) -> bool:
    return value.count(":") == 2


class SecretCodec:
    """Encode/decode stored secrets using the configured mode."""

    def __init__(self, secret_key: str | None, mode: CodecMode = "base64"):
        if mode not in ("base64", "aes-gcm"):
            raise ValueError(f"Unknown codec mode: {mode!r}")
        self.mode = mode
        self._key = normalize_key(secret_key).encode("utf-8")

    def encode(self, plaintext: str) -> str:
        if self.mode == "aes-gcm":
            return self.encrypt(plaintext)
        return self.simple_encode(plaintext)

    def decode(self, stored: str) -> str:
        if self.mode == "aes-gcm":
            return self.decrypt(stored)
        return self.simple_decode(stored)

    def encrypt(self, plaintext: str) -> str:
        if not plaintext:
            return ""
        try:
            nonce = secrets.token_bytes(NONCE_LENGTH)
            sealed = AESGCM(self._key).encrypt(nonce, plaintext.encode("utf-8"), None)
        except (ValueError, TypeError) as exc:
            logger.error("encryption_failed", error=str(exc))
            return plaintext
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return f"{nonce.hex()}:{tag.hex()}:{ciphertext.hex()}"

    def decrypt(self, stored: str) -> str:
        if not stored:
            return ""
        if not _looks_encrypted(stored):
            return stored
        nonce_hex, tag_hex, ciphertext_hex = stored.split(":")
        try:
            nonce = bytes.fromhex(nonce_hex)
            sealed = bytes.fromhex(ciphertext_hex) + bytes.fromhex(tag_hex)
            return AESGCM(self._key).decrypt(nonce, sealed, None).decode("utf-8")
        except (InvalidTag, ValueError, UnicodeDecodeError) as exc:
            logger.warning("decryption_failed", error=type(exc).__name__)
            return stored

    @staticmethod
    def simple_encode(plaintext: str) -> str:
        if not plaintext:
            return ""
        return base64.b64encode(plaintext.encode("utf-8")).decode("ascii")

    @staticmethod
    def simple_decode(stored: str) -> str:
        if not stored:
            return ""
        try:
            return base64.b64decode(stored, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            logger.warning("simple_decode_failed")
            return stored
