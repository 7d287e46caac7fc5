"""Per-user state storage"""

from vendor_memory.storage.memory_store import InMemoryStore, MemoryStore

__all__ = ["MemoryStore", "InMemoryStore"]
