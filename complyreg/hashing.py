"""
complyreg Hashing

SHA-256 helpers for the mutation journal and the 32-byte content digests
carried by submissions and reports. Digests are opaque: the registry checks
their length, never their relationship to any document.
"""

import hashlib
from typing import Any, Optional, Union

from .canonicalization import canonicalize
from .errors import InvalidArgument

DIGEST_SIZE = 32


def sha256_hash(data: Union[bytes, str]) -> str:
    """
    Compute SHA-256 hash in prefixed form.

    Returns:
        Hash string in format "sha256:abcdef..."
    """
    if isinstance(data, str):
        data = data.encode('utf-8')

    digest = hashlib.sha256(data).hexdigest().lower()
    return f"sha256:{digest}"


def content_digest(data: Union[bytes, str]) -> bytes:
    """Raw 32-byte SHA-256 digest, suitable as a data or report hash."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha256(data).digest()


def payload_hash(payload: Any) -> str:
    """payload_hash = SHA-256(canonical JSON(payload))"""
    return sha256_hash(canonicalize(payload))


def chain_entry_hash(prev_entry_hash: Optional[str], payload_hash: str) -> str:
    """
    Link a journal entry to its predecessor.

    The first entry has no predecessor and hashes the empty string in its
    place.
    """
    data = (prev_entry_hash or "").encode("utf-8") + payload_hash.encode("utf-8")
    return sha256_hash(data)


def coerce_digest(value: Union[bytes, bytearray, str], field: str) -> bytes:
    """
    Normalise a content digest to exactly 32 raw bytes.

    Accepts raw bytes or a hex string (optionally "0x" or "sha256:"
    prefixed). Anything else, or a digest of the wrong size, raises
    InvalidArgument.
    """
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str):
        text = value.strip().lower()
        for prefix in ("sha256:", "0x"):
            if text.startswith(prefix):
                text = text[len(prefix):]
                break
        try:
            raw = bytes.fromhex(text)
        except ValueError:
            raise InvalidArgument(field, "must be valid hexadecimal")
    else:
        raise InvalidArgument(field, "must be bytes or a hex string")

    if len(raw) != DIGEST_SIZE:
        raise InvalidArgument(
            field,
            f"must be exactly {DIGEST_SIZE} bytes",
            observed_length=len(raw),
        )
    return raw
