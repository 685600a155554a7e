"""Note tools: deposit, withdraw, note_status, vault_status.

Each tool returns a plain dict so hosts can hand results straight to an
agent or serialize them as an HTTP response. Failures never raise; they
come back as ``{"success": False, "error_code": ..., "error": ...}`` with
the error code of the underlying exception.
"""

from __future__ import annotations

import logging
from typing import Any

from notevault.ledger import VaultError
from notevault.transfer_gateway import TransferError
from notevault.vault import NoteVault

logger = logging.getLogger(__name__)


def _failure(exc: VaultError | TransferError) -> dict[str, Any]:
    return {"success": False, "error_code": exc.code, "error": str(exc)}


def _decode_commitment(commitment_hex: str | None) -> bytes:
    if not commitment_hex:
        return b""
    return bytes.fromhex(commitment_hex.removeprefix("0x"))


async def deposit_tool(
    vault: NoteVault,
    depositor: str,
    amount: int,
    commitment_hex: str | None = None,
) -> dict[str, Any]:
    """Lock ``amount`` from the depositor and issue a note.

    Args:
        vault: The note vault.
        depositor: Authenticated principal making the deposit.
        amount: Units to lock.
        commitment_hex: Optional hex-encoded commitment bytes. Omitted means
            an empty commitment.

    Returns dict with:
        success: True when the note was issued.
        note_id: Id to present at withdrawal.
        amount: Echo of the locked amount.
        total_locked: Vault total after the deposit.
    """
    try:
        commitment = _decode_commitment(commitment_hex)
    except ValueError as e:
        return {
            "success": False,
            "error_code": "invalid_commitment",
            "error": f"commitment_hex is not valid hex: {e}",
        }

    try:
        receipt = await vault.deposit_with_receipt(depositor, commitment, amount)
    except (VaultError, TransferError) as e:
        logger.info("Deposit by %s rejected: %s", depositor, e)
        return _failure(e)

    return {
        "success": True,
        "note_id": receipt.note.id,
        "amount": amount,
        "total_locked": receipt.total_locked,
        "message": (
            f"Locked {amount:,} units as note {receipt.note.id}. "
            "Keep the note id and your commitment; both are needed to redeem."
        ),
    }


async def withdraw_tool(
    vault: NoteVault,
    caller: str,
    note_id: int,
    recipient: str | None = None,
) -> dict[str, Any]:
    """Redeem a note owned by ``caller``; pays the caller when no recipient is given."""
    target = recipient or caller
    try:
        receipt = await vault.withdraw_with_receipt(caller, note_id, target)
    except (VaultError, TransferError) as e:
        logger.info("Withdrawal of note %s by %s rejected: %s", note_id, caller, e)
        return _failure(e)

    return {
        "success": True,
        "note_id": note_id,
        "owner": receipt.note.owner,
        "amount": receipt.note.amount,
        "recipient": target,
        "total_locked": receipt.total_locked,
        "message": f"Released {receipt.note.amount:,} units from note {note_id} to {target}.",
    }


async def note_status_tool(vault: NoteVault, note_id: int) -> dict[str, Any]:
    """Read-only snapshot of one note."""
    try:
        owner, amount, spent = await vault.note_metadata(note_id)
    except VaultError as e:
        return _failure(e)
    return {
        "success": True,
        "note_id": note_id,
        "owner": owner,
        "amount": amount,
        "spent": spent,
    }


async def vault_status_tool(vault: NoteVault) -> dict[str, Any]:
    """Aggregate totals plus health metrics. Read-only."""
    try:
        total = await vault.total_locked()
        count = await vault.note_count()
    except VaultError as e:
        return _failure(e)
    return {
        "success": True,
        "total_locked": total,
        "note_count": count,
        "health": vault.health(),
    }
