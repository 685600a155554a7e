"""Constants for the note ledger."""

from enum import IntEnum


U64_MAX = 2**64 - 1

# Placeholder carried by deposit audit records instead of the real commitment.
REDACTED_COMMITMENT = b""


class EventKind(IntEnum):
    """Audit record kinds, in the order they were introduced."""

    DEPOSIT = 1
    WITHDRAWAL = 2
