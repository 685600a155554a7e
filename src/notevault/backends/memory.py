"""Dict-backed StoreBackend for tests and single-process deployments."""

from __future__ import annotations


class MemoryStoreBackend:
    """Keeps the latest serialized record per admin principal."""

    def __init__(self, records: dict[str, str] | None = None) -> None:
        self._records: dict[str, str] = dict(records or {})
        self.writes = 0

    async def store_vault(self, admin: str, vault_json: str) -> None:
        self._records[admin] = vault_json
        self.writes += 1

    async def fetch_vault(self, admin: str) -> str | None:
        return self._records.get(admin)
