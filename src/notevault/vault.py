"""NoteVault — the handle every ledger operation goes through.

Wraps one VaultStore with the collaborators it needs:

- a ``TransferGateway`` that moves funds into and out of custody,
- a ``StoreBackend`` the record is written through to after each commit,
- an ``EventSink`` receiving the audit trail.

A single ``asyncio.Lock`` serializes every operation, so operations are
totally ordered and note ids follow deposit order. Each transition runs its
checks, moves funds, then records the audit event and mutates the record
with no await in between. If either of those fails after funds moved, the
transfer is reversed before the error propagates.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from notevault.config import NoteVaultConfig
from notevault.constants import REDACTED_COMMITMENT
from notevault.events import AuditEvent, DepositEvent, MemoryEventSink, WithdrawalEvent
from notevault.ledger import (
    AlreadyInitialized,
    NotAdmin,
    NotInitialized,
    Note,
    VaultStore,
)
from notevault.transfer_gateway import TransferError

if TYPE_CHECKING:
    from notevault.events import EventSink
    from notevault.store_backend import StoreBackend
    from notevault.transfer_gateway import TransferGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Receipt:
    """Outcome of one committed transition."""

    note: Note
    total_locked: int


class NoteVault:
    """Custodial note ledger bound to its gateway, backend, and audit sink.

    - ``initialize()`` creates the record once, admin only.
    - ``deposit()`` pulls funds into custody and issues a note.
    - ``withdraw()`` tombstones a note and releases its amount.
    - Queries read the record loaded from the backend on first use.
    """

    def __init__(
        self,
        config: NoteVaultConfig,
        gateway: TransferGateway,
        backend: StoreBackend,
        sink: EventSink | None = None,
    ) -> None:
        self._config = config
        self._gateway = gateway
        self._backend = backend
        self._sink = sink if sink is not None else MemoryEventSink()
        self._store: VaultStore | None = None
        self._loaded = False
        self._lock = asyncio.Lock()
        self._events_recorded = 0
        self._total_persists = 0
        self._last_persist_at: str | None = None

    @property
    def config(self) -> NoteVaultConfig:
        return self._config

    @property
    def sink(self) -> EventSink:
        return self._sink

    # -- record loading / persistence ----------------------------------------

    async def _load(self) -> VaultStore | None:
        """Return the record, fetching it from the backend on first use."""
        if not self._loaded:
            raw = await self._backend.fetch_vault(self._config.admin_principal)
            if raw is not None:
                self._store = VaultStore.from_json(raw)
            self._loaded = True
        return self._store

    async def _require_store(self) -> VaultStore:
        store = await self._load()
        if store is None:
            raise NotInitialized("vault has not been initialized")
        return store

    async def _persist(self, store: VaultStore) -> bool:
        """Write the record through to the backend with retry. True on success."""
        max_attempts = 1 + self._config.persist_retries
        for attempt in range(max_attempts):
            try:
                await self._backend.store_vault(
                    self._config.admin_principal, store.to_json()
                )
                self._last_persist_at = datetime.now(timezone.utc).isoformat()
                self._total_persists += 1
                return True
            except Exception:
                if attempt < max_attempts - 1:
                    logger.warning(
                        "Persist attempt %d/%d failed, retrying in %.1fs...",
                        attempt + 1, max_attempts, self._config.persist_retry_delay,
                    )
                    await asyncio.sleep(self._config.persist_retry_delay)
                else:
                    logger.error(
                        "CRITICAL: Failed to persist vault record after %d attempt(s). "
                        "Committed state is in memory but may be lost on restart.",
                        max_attempts,
                    )
        return False

    async def _compensate(self, sender: str, recipient: str, amount: int) -> None:
        """Reverse a transfer whose ledger update could not be applied."""
        try:
            await self._gateway.transfer(sender, recipient, amount)
        except TransferError:
            logger.error(
                "CRITICAL: Could not return %d from %s to %s after a failed "
                "ledger update; manual reconciliation required.",
                amount, sender, recipient,
            )
            raise

    def _emit(self, event: AuditEvent) -> None:
        self._sink.record(event)
        self._events_recorded += 1

    # -- transitions ----------------------------------------------------------

    async def initialize(self, caller: str) -> None:
        """Create the vault record. Admin only, exactly once."""
        async with self._lock:
            if caller != self._config.admin_principal:
                raise NotAdmin(f"{caller} is not the vault administrator")
            if await self._load() is not None:
                raise AlreadyInitialized("vault already initialized")
            store = VaultStore()
            await self._backend.store_vault(self._config.admin_principal, store.to_json())
            self._store = store
            self._total_persists += 1
            logger.info("Vault initialized by %s.", caller)

    async def deposit(self, depositor: str, commitment: bytes, amount: int) -> int:
        """Lock ``amount`` from ``depositor`` against ``commitment``. Returns the note id."""
        receipt = await self.deposit_with_receipt(depositor, commitment, amount)
        return receipt.note.id

    async def deposit_with_receipt(
        self, depositor: str, commitment: bytes, amount: int,
    ) -> Receipt:
        """Deposit, returning the new note and the total as of this transition."""
        async with self._lock:
            store = await self._require_store()
            allow_zero = self._config.allow_zero_amount
            store.check_deposit(commitment, amount, allow_zero)
            event = DepositEvent(owner=depositor, amount=amount, note_id=store.next_note_id)

            custody = self._config.custody_principal
            await self._gateway.transfer(depositor, custody, amount)
            # Nothing is awaited between recording and applying, so the audit
            # record and the ledger change land together or not at all.
            try:
                self._emit(event)
                note = store.deposit(depositor, commitment, amount, allow_zero)
            except Exception:
                await self._compensate(custody, depositor, amount)
                raise
            receipt = Receipt(note=note, total_locked=store.total_locked)

            await self._persist(store)
            logger.info(
                "Deposit: note %d locks %d for %s (total_locked=%d).",
                note.id, amount, depositor, receipt.total_locked,
            )
            return receipt

    async def withdraw(self, caller: str, note_id: int, recipient: str) -> None:
        """Redeem ``note_id`` for its owner, paying ``recipient``."""
        await self.withdraw_with_receipt(caller, note_id, recipient)

    async def withdraw_with_receipt(
        self, caller: str, note_id: int, recipient: str,
    ) -> Receipt:
        """Withdraw, returning the spent note and the total as of this transition."""
        async with self._lock:
            store = await self._require_store()
            note = store.check_withdraw(caller, note_id)
            event = WithdrawalEvent(
                owner=note.owner,
                note_id=note.id,
                amount=note.amount,
                recipient=recipient,
            )

            source = (
                self._config.custody_principal
                if self._config.release_from_custody
                else caller
            )
            await self._gateway.transfer(source, recipient, note.amount)
            try:
                self._emit(event)
                spent = store.withdraw(caller, note.id)
            except Exception:
                await self._compensate(recipient, source, note.amount)
                raise
            receipt = Receipt(note=spent, total_locked=store.total_locked)

            await self._persist(store)
            logger.info(
                "Withdrawal: note %d released %d to %s (total_locked=%d).",
                note.id, note.amount, recipient, receipt.total_locked,
            )
            return receipt

    # -- convenience forwarding ----------------------------------------------

    async def withdraw_to_self(self, caller: str, note_id: int) -> None:
        await self.withdraw(caller, note_id, caller)

    async def deposit_without_commitment(self, depositor: str, amount: int) -> int:
        return await self.deposit(depositor, REDACTED_COMMITMENT, amount)

    # -- queries --------------------------------------------------------------

    async def is_initialized(self) -> bool:
        async with self._lock:
            return await self._load() is not None

    async def total_locked(self) -> int:
        async with self._lock:
            return (await self._require_store()).total_locked

    async def note_count(self) -> int:
        async with self._lock:
            return (await self._require_store()).note_count()

    async def note_metadata(self, note_id: int) -> tuple[str, int, bool]:
        """Return ``(owner, amount, spent)`` for ``note_id``."""
        async with self._lock:
            return (await self._require_store()).note_metadata(note_id)

    async def note_exists(self, note_id: int) -> bool:
        async with self._lock:
            return note_id in (await self._require_store()).registry

    async def is_empty(self) -> bool:
        return await self.note_count() == 0

    async def audit(self) -> None:
        """Recompute the locked total from the notes; raises on mismatch."""
        async with self._lock:
            (await self._require_store()).audit()

    def health(self) -> dict[str, object]:
        """Return ledger health metrics for monitoring."""
        store = self._store
        return {
            "initialized": store is not None,
            "total_locked": store.total_locked if store else 0,
            "note_count": store.note_count() if store else 0,
            "unspent_count": sum(1 for _ in store.registry.unspent()) if store else 0,
            "next_note_id": store.next_note_id if store else 0,
            "events_recorded": self._events_recorded,
            "total_persists": self._total_persists,
            "last_persist_at": self._last_persist_at,
            "release_from_custody": self._config.release_from_custody,
        }
