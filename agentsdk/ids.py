"""Random identifiers."""

from __future__ import annotations

import secrets
import uuid

_SHORT_ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def generate_uuid() -> str:
    """Return a random version-4 UUID in canonical lower-case form."""
    return str(uuid.uuid4())


def short_id(length: int = 8) -> str:
    """Return a random identifier of lower-case letters and digits."""
    if length < 0:
        raise ValueError("length must not be negative")
    return "".join(secrets.choice(_SHORT_ID_ALPHABET) for _ in range(length))