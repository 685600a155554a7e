"""Concrete TransferGateway implementations."""

from notevault.gateways.http import HttpTransferGateway
from notevault.gateways.memory import MemoryTransferGateway

__all__ = ["HttpTransferGateway", "MemoryTransferGateway"]
