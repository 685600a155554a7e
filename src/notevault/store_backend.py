"""Abstract persistence interface for the vault record.

Defines the StoreBackend Protocol that NoteVault depends on.
Concrete implementations live in ``notevault.backends``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class StoreBackend(Protocol):
    """Async persistence backend for the serialized VaultStore.

    Records are keyed by the administrative principal; one per deployment.
    """

    async def store_vault(self, admin: str, vault_json: str) -> None: ...

    async def fetch_vault(self, admin: str) -> str | None: ...
