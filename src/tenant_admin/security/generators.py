"""Random key/secret generation and display masking."""

from __future__ import annotations

import secrets
import string

ALPHABET = string.ascii_letters + string.digits
MASK_PLACEHOLDER = "..."
VISIBLE_TAIL = 6


def generate_random_string(length: int = 24) -> str:
    """Alphanumeric string drawn from the OS CSPRNG."""
    if length <= 0:
        return ""
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def generate_api_key(prefix: str = "pk") -> str:
    return f"{prefix}_{generate_random_string(24)}"


def generate_webhook_secret() -> str:
    return f"whsec_{generate_random_string(32)}"


def mask_secret(value: object) -> str:
    """Return a display form that never shows more than prefix + 6 chars.

    ``pk_abcdefghij`` -> ``pk_...efghij``; ``pk_abc`` -> ``pk_...``;
    a secret without a prefix keeps only its first six characters.
    """
    if not isinstance(value, str) or not value:
        return MASK_PLACEHOLDER
    if "_" not in value:
        return f"{value[:VISIBLE_TAIL]}{MASK_PLACEHOLDER}"

    prefix, rest = value.split("_", 1)
    if not prefix:
        return MASK_PLACEHOLDER
    if len(rest) <= VISIBLE_TAIL:
        return f"{prefix}_{MASK_PLACEHOLDER}"
    return f"{prefix}_{MASK_PLACEHOLDER}{rest[-VISIBLE_TAIL:]}"
