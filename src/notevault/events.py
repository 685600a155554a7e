"""Audit records emitted on committed ledger transitions.

Deposit records never carry the note's commitment: the field is always the
redacted placeholder, and the real bytes stay in the note itself.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterator, Protocol, Union, runtime_checkable

from notevault.constants import REDACTED_COMMITMENT, EventKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DepositEvent:
    owner: str
    amount: int
    note_id: int
    commitment: bytes = REDACTED_COMMITMENT

    kind = EventKind.DEPOSIT

    def __post_init__(self) -> None:
        if self.commitment != REDACTED_COMMITMENT:
            raise ValueError("deposit audit records must not carry commitment bytes")

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.name.lower(),
            "owner": self.owner,
            "amount": self.amount,
            "note_id": self.note_id,
            "commitment": self.commitment.hex(),
        }


@dataclass(frozen=True)
class WithdrawalEvent:
    owner: str
    note_id: int
    amount: int
    recipient: str

    kind = EventKind.WITHDRAWAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.name.lower(),
            "owner": self.owner,
            "note_id": self.note_id,
            "amount": self.amount,
            "recipient": self.recipient,
        }


AuditEvent = Union[DepositEvent, WithdrawalEvent]


@runtime_checkable
class EventSink(Protocol):
    """Append-only receiver of audit records."""

    def record(self, event: AuditEvent) -> None: ...


class MemoryEventSink:
    """In-process audit trail, kept in emission order."""

    def __init__(self) -> None:
        self._events: list[AuditEvent] = []

    def record(self, event: AuditEvent) -> None:
        self._events.append(event)

    @property
    def events(self) -> tuple[AuditEvent, ...]:
        return tuple(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[AuditEvent]:
        return iter(tuple(self._events))


class LoggingEventSink:
    """Writes each audit record as a single JSON log line."""

    def __init__(self, log: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self._log = log or logger
        self._level = level

    def record(self, event: AuditEvent) -> None:
        self._log.log(self._level, "audit %s", json.dumps(event.to_dict(), sort_keys=True))
