"""Transfer capability consumed by the vault, plus its error hierarchy.

Defines the TransferGateway Protocol NoteVault depends on. Concrete
implementations live in ``notevault.gateways``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------


class TransferError(Exception):
    """Base exception for failed asset transfers."""

    code = "transfer_failed"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InsufficientFunds(TransferError):
    """Sender's balance cannot cover the amount."""

    code = "insufficient_funds"


class TransferRejected(TransferError):
    """Gateway refused the transfer (auth, validation, policy)."""

    code = "transfer_rejected"


class GatewayUnavailable(TransferError):
    """Network, timeout, or server-side failure (retryable by the host)."""

    code = "gateway_unavailable"


@runtime_checkable
class TransferGateway(Protocol):
    """Atomic, all-or-nothing movement of the custodied asset.

    ``transfer`` either moves the full amount or raises ``TransferError``
    leaving both balances untouched.
    """

    async def transfer(self, sender: str, recipient: str, amount: int) -> None: ...
