"""Concrete StoreBackend implementations."""

from notevault.backends.memory import MemoryStoreBackend

__all__ = ["MemoryStoreBackend"]
