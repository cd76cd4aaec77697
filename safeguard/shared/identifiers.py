"""Time-ordered identifiers for stored records."""

import secrets
import time
import uuid


def uuid7() -> uuid.UUID:
    """Generate a UUID version 7.

    Layout: 48-bit Unix timestamp in milliseconds, 4-bit version, 12 random
    bits, 2-bit RFC 4122 variant, 62 random bits. IDs created later sort
    after earlier ones (to millisecond resolution), which keeps the primary
    key index append-mostly and gives a stable tie-breaker when two entries
    share an ``updated_at``.
    """
    timestamp_ms = time.time_ns() // 1_000_000
    rand_a = secrets.randbits(12)
    rand_b = secrets.randbits(62)

    value = (timestamp_ms & ((1 << 48) - 1)) << 80
    value |= 0x7 << 76
    value |= rand_a << 64
    value |= 0b10 << 62
    value |= rand_b
    return uuid.UUID(int=value)


def new_entry_id() -> str:
    """Opaque identifier assigned by the local store on insert."""
    return str(uuid7())
