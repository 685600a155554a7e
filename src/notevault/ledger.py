"""Note ledger: notes, the note registry, and the vault record.

Pure data model — no I/O. Amounts are integer units of the custodied
asset and ids are u64 values handed out by a monotonic counter. Transfers,
persistence, and audit emission are driven by ``notevault.vault.NoteVault``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Iterator

from notevault.constants import U64_MAX

logger = logging.getLogger(__name__)

_SCHEMA_VERSION = 1


# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------


class VaultError(Exception):
    """Base exception for ledger operations."""

    code = "vault_error"


class NotAdmin(VaultError):
    """initialize() called by a principal other than the administrator."""

    code = "not_admin"


class AlreadyInitialized(VaultError):
    """initialize() called after the vault record was created."""

    code = "already_initialized"


class NotInitialized(VaultError):
    """Operation attempted before the vault record exists."""

    code = "not_initialized"


class NoteNotFound(VaultError):
    """No note carries the requested id."""

    code = "note_not_found"

    def __init__(self, note_id: int) -> None:
        super().__init__(f"note {note_id} not found")
        self.note_id = note_id


class NotNoteOwner(VaultError):
    """Withdrawal attempted by someone other than the note's owner."""

    code = "not_note_owner"


class NoteAlreadySpent(VaultError):
    """Withdrawal attempted on a tombstoned note."""

    code = "note_already_spent"


class InsufficientLocked(VaultError):
    """Aggregate locked total is below a note's amount.

    Unreachable while the balance invariant holds; seeing it means the
    record is corrupt.
    """

    code = "insufficient_locked"


class InvalidAmount(VaultError):
    code = "invalid_amount"


class InvalidCommitment(VaultError):
    code = "invalid_commitment"


class LockedOverflow(VaultError):
    """Deposit would push ``total_locked`` past the u64 range."""

    code = "locked_overflow"


class InvariantViolation(VaultError):
    code = "invariant_violation"


class CorruptVaultState(VaultError):
    code = "corrupt_vault_state"


def _require_u64(value: Any, what: str) -> int:
    # bool is an int subclass; True is not an amount.
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidAmount(f"{what} must be an integer, got {type(value).__name__}")
    if value < 0 or value > U64_MAX:
        raise InvalidAmount(f"{what} must be within 0..{U64_MAX}, got {value}")
    return value


# ---------------------------------------------------------------------------
# Note
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Note:
    """One locked, redeemable unit of value.

    Frozen: spending a note replaces the registry entry with a copy whose
    ``spent`` flag is set, so id/owner/commitment/amount can never change.
    """

    id: int
    owner: str
    commitment: bytes
    amount: int
    spent: bool = False

    def metadata(self) -> tuple[str, int, bool]:
        return (self.owner, self.amount, self.spent)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner": self.owner,
            "commitment": self.commitment.hex(),
            "amount": self.amount,
            "spent": self.spent,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Note:
        """Build a note from its serialized form. Raises on malformed input."""
        try:
            owner = data["owner"]
            spent = data["spent"]
            commitment = bytes.fromhex(data.get("commitment", ""))
        except (KeyError, TypeError, ValueError) as e:
            raise CorruptVaultState(f"malformed note record: {e}") from e
        if not isinstance(owner, str) or not isinstance(spent, bool):
            raise CorruptVaultState("malformed note record: bad owner/spent type")
        try:
            note_id = _require_u64(data.get("id"), "note id")
            amount = _require_u64(data.get("amount"), "note amount")
        except InvalidAmount as e:
            raise CorruptVaultState(f"malformed note record: {e}") from e
        return cls(
            id=note_id,
            owner=owner,
            commitment=commitment,
            amount=amount,
            spent=spent,
        )


# ---------------------------------------------------------------------------
# NoteRegistry
# ---------------------------------------------------------------------------


class NoteRegistry:
    """Append-only note storage with O(1) lookup by id.

    The list is the source of truth, kept in id order. ``_index`` maps each
    id to its list position and is rebuilt whenever notes are loaded.
    """

    def __init__(self, notes: list[Note] | None = None, next_note_id: int = 0) -> None:
        self._notes: list[Note] = []
        self._index: dict[int, int] = {}
        self._next_note_id = next_note_id
        for note in notes or []:
            self._append(note)

    def _append(self, note: Note) -> None:
        if note.id in self._index:
            raise CorruptVaultState(f"duplicate note id {note.id}")
        if self._notes and note.id <= self._notes[-1].id:
            raise CorruptVaultState(f"note id {note.id} out of order")
        if note.id >= self._next_note_id:
            raise CorruptVaultState(
                f"note id {note.id} not below next_note_id {self._next_note_id}"
            )
        self._index[note.id] = len(self._notes)
        self._notes.append(note)

    @property
    def next_note_id(self) -> int:
        return self._next_note_id

    def create(self, owner: str, commitment: bytes, amount: int) -> Note:
        """Append a fresh unspent note under the next id."""
        note = Note(
            id=self._next_note_id,
            owner=owner,
            commitment=commitment,
            amount=amount,
        )
        self._next_note_id += 1
        self._index[note.id] = len(self._notes)
        self._notes.append(note)
        return note

    def _position(self, note_id: object) -> int | None:
        # Only genuine u64 ints name a note; True and 1.0 hash like 1.
        if type(note_id) is not int or not 0 <= note_id <= U64_MAX:
            return None
        return self._index.get(note_id)

    def find(self, note_id: int) -> Note:
        pos = self._position(note_id)
        if pos is None:
            raise NoteNotFound(note_id)
        return self._notes[pos]

    def mark_spent(self, note_id: int) -> Note:
        """Tombstone a note in place. Returns the spent record."""
        pos = self._position(note_id)
        if pos is None:
            raise NoteNotFound(note_id)
        note = self._notes[pos]
        if note.spent:
            raise NoteAlreadySpent(f"note {note_id} already spent")
        spent = replace(note, spent=True)
        self._notes[pos] = spent
        return spent

    def __contains__(self, note_id: object) -> bool:
        return self._position(note_id) is not None

    def count(self) -> int:
        return len(self._notes)

    def __len__(self) -> int:
        return len(self._notes)

    def __iter__(self) -> Iterator[Note]:
        return iter(self._notes)

    def unspent(self) -> Iterator[Note]:
        return (n for n in self._notes if not n.spent)


# ---------------------------------------------------------------------------
# VaultStore
# ---------------------------------------------------------------------------


@dataclass
class VaultStore:
    """The ledger record: aggregate locked total plus the note registry.

    ``total_locked`` tracks the sum of unspent note amounts incrementally;
    ``audit()`` recomputes it for verification only.
    """

    total_locked: int = 0
    registry: NoteRegistry = field(default_factory=NoteRegistry)

    @property
    def next_note_id(self) -> int:
        return self.registry.next_note_id

    # -- queries --------------------------------------------------------------

    def note_count(self) -> int:
        return self.registry.count()

    def note_metadata(self, note_id: int) -> tuple[str, int, bool]:
        return self.registry.find(note_id).metadata()

    def audit(self) -> None:
        """Recompute the unspent sum and compare it with ``total_locked``."""
        expected = sum(n.amount for n in self.registry.unspent())
        if expected != self.total_locked:
            raise InvariantViolation(
                f"total_locked is {self.total_locked} but unspent notes sum to {expected}"
            )

    # -- transition checks (no mutation) --------------------------------------

    def check_deposit(self, commitment: bytes, amount: int, allow_zero: bool = True) -> None:
        """Validate a deposit before any funds move."""
        if not isinstance(commitment, bytes):
            raise InvalidCommitment(
                f"commitment must be bytes, got {type(commitment).__name__}"
            )
        _require_u64(amount, "amount")
        if amount == 0 and not allow_zero:
            raise InvalidAmount("zero-amount deposits are disabled")
        if self.total_locked + amount > U64_MAX:
            raise LockedOverflow(
                f"locking {amount} would overflow total_locked ({self.total_locked})"
            )

    def check_withdraw(self, caller: str, note_id: int) -> Note:
        """Run the withdrawal checks in order. Returns the resolved note."""
        note = self.registry.find(note_id)
        if note.owner != caller:
            raise NotNoteOwner(f"note {note_id} is not owned by {caller}")
        if note.spent:
            raise NoteAlreadySpent(f"note {note_id} already spent")
        if self.total_locked < note.amount:
            raise InsufficientLocked(
                f"total_locked {self.total_locked} below note amount {note.amount}"
            )
        return note

    # -- mutations ------------------------------------------------------------

    def deposit(
        self, depositor: str, commitment: bytes, amount: int, allow_zero: bool = True,
    ) -> Note:
        """Record a lock of ``amount`` owned by ``depositor``."""
        self.check_deposit(commitment, amount, allow_zero)
        note = self.registry.create(depositor, commitment, amount)
        self.total_locked += amount
        return note

    def withdraw(self, caller: str, note_id: int) -> Note:
        """Tombstone ``note_id`` and release its amount from the total."""
        note = self.check_withdraw(caller, note_id)
        spent = self.registry.mark_spent(note.id)
        self.total_locked -= note.amount
        return spent

    # -- serialization --------------------------------------------------------

    def to_json(self) -> str:
        """Serialize to JSON string with schema version."""
        return json.dumps({
            "v": _SCHEMA_VERSION,
            "next_note_id": self.next_note_id,
            "total_locked": self.total_locked,
            "notes": [n.to_dict() for n in self.registry],
        }, indent=2)

    @classmethod
    def from_json(cls, data: str) -> VaultStore:
        """Deserialize and audit a stored record.

        Raises ``CorruptVaultState`` on unreadable data and
        ``InvariantViolation`` when the stored total disagrees with the notes.
        A custodial record is never replaced by a fresh one.
        """
        try:
            obj = json.loads(data)
        except (json.JSONDecodeError, TypeError) as e:
            raise CorruptVaultState(f"vault record is not valid JSON: {e}") from e

        if not isinstance(obj, dict):
            raise CorruptVaultState("vault record is not a JSON object")

        version = obj.get("v")
        if version != _SCHEMA_VERSION:
            raise CorruptVaultState(f"unsupported vault schema version {version!r}")

        raw_notes = obj.get("notes", [])
        if not isinstance(raw_notes, list) or not all(isinstance(n, dict) for n in raw_notes):
            raise CorruptVaultState("vault notes must be a list of objects")

        try:
            next_note_id = _require_u64(obj.get("next_note_id"), "next_note_id")
            total_locked = _require_u64(obj.get("total_locked"), "total_locked")
        except InvalidAmount as e:
            raise CorruptVaultState(str(e)) from e

        registry = NoteRegistry(
            [Note.from_dict(n) for n in raw_notes],
            next_note_id=next_note_id,
        )
        store = cls(total_locked=total_locked, registry=registry)
        store.audit()
        logger.debug(
            "Loaded vault record: %d note(s), total_locked=%d.",
            store.note_count(), store.total_locked,
        )
        return store
