"""notevault — custodial note ledger.

Locks a fungible asset against opaque commitments and releases it when the
note's owner redeems it.
"""

__version__ = "0.1.0"

from notevault.config import NoteVaultConfig
from notevault.constants import U64_MAX, REDACTED_COMMITMENT, EventKind
from notevault.events import DepositEvent, WithdrawalEvent, EventSink, MemoryEventSink, LoggingEventSink
from notevault.ledger import (
    Note,
    NoteRegistry,
    VaultStore,
    VaultError,
    NotAdmin,
    AlreadyInitialized,
    NotInitialized,
    NoteNotFound,
    NotNoteOwner,
    NoteAlreadySpent,
    InsufficientLocked,
    InvalidAmount,
    InvalidCommitment,
    LockedOverflow,
    InvariantViolation,
    CorruptVaultState,
)
from notevault.transfer_gateway import (
    TransferGateway,
    TransferError,
    InsufficientFunds,
    TransferRejected,
    GatewayUnavailable,
)
from notevault.store_backend import StoreBackend
from notevault.vault import NoteVault, Receipt
from notevault.gateways import HttpTransferGateway, MemoryTransferGateway
from notevault.backends import MemoryStoreBackend

__all__ = [
    "NoteVaultConfig",
    "U64_MAX",
    "REDACTED_COMMITMENT",
    "EventKind",
    "DepositEvent",
    "WithdrawalEvent",
    "EventSink",
    "MemoryEventSink",
    "LoggingEventSink",
    "Note",
    "NoteRegistry",
    "VaultStore",
    "VaultError",
    "NotAdmin",
    "AlreadyInitialized",
    "NotInitialized",
    "NoteNotFound",
    "NotNoteOwner",
    "NoteAlreadySpent",
    "InsufficientLocked",
    "InvalidAmount",
    "InvalidCommitment",
    "LockedOverflow",
    "InvariantViolation",
    "CorruptVaultState",
    "TransferGateway",
    "TransferError",
    "InsufficientFunds",
    "TransferRejected",
    "GatewayUnavailable",
    "StoreBackend",
    "NoteVault",
    "Receipt",
    "HttpTransferGateway",
    "MemoryTransferGateway",
    "MemoryStoreBackend",
]
