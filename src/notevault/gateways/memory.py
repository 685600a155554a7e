"""In-process balance book implementing the TransferGateway protocol."""

from __future__ import annotations

import logging

from notevault.transfer_gateway import InsufficientFunds, TransferRejected

logger = logging.getLogger(__name__)


class MemoryTransferGateway:
    """Principal balances held in a dict.

    ``transfer`` checks and moves inside one synchronous block, so it is
    atomic with respect to other coroutines on the same loop.
    """

    def __init__(self, balances: dict[str, int] | None = None) -> None:
        self._balances: dict[str, int] = dict(balances or {})
        self.transfers: list[tuple[str, str, int]] = []

    def balance_of(self, principal: str) -> int:
        return self._balances.get(principal, 0)

    def mint(self, principal: str, amount: int) -> None:
        """Credit ``amount`` out of thin air (seeding test and dev accounts)."""
        if amount < 0:
            raise ValueError(f"amount must be non-negative, got {amount}")
        self._balances[principal] = self.balance_of(principal) + amount

    async def transfer(self, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise TransferRejected(f"negative transfer amount {amount}")
        available = self.balance_of(sender)
        if available < amount:
            raise InsufficientFunds(
                f"{sender} holds {available}, cannot move {amount}"
            )
        self._balances[sender] = available - amount
        self._balances[recipient] = self.balance_of(recipient) + amount
        self.transfers.append((sender, recipient, amount))
        logger.debug("Moved %d from %s to %s.", amount, sender, recipient)
