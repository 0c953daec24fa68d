"""Deterministic digests used for content-addressable IDs and fingerprints."""

import hashlib


def sha256_hex(value: str) -> str:
    """Hex-encoded SHA-256 of a UTF-8 string."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def sha1_hex(value: str) -> str:
    """Hex-encoded SHA-1 of a UTF-8 string."""
    return hashlib.sha1(value.encode("utf-8")).hexdigest()


def short_hash(value: str, length: int = 10) -> str:
    """First ``length`` hex characters of the SHA-256 of ``value``."""
    return sha256_hex(value)[:length]


def content_id(*parts: object) -> str:
    """Generate a stable row ID from its identifying fields.

    The ID is the SHA-1 of the fields joined with ``|``. ``None`` renders as
    the empty string so that a missing field and an empty one hash alike.
    Nothing time- or run-dependent may be passed in: re-ingesting unchanged
    content must reproduce the same ID.

    Args:
        *parts: Identifying fields, in a fixed order per entity kind

    Returns:
        40-character hex digest
    """
    return sha1_hex("|".join("" if part is None else str(part) for part in parts))
