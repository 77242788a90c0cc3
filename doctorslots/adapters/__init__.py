"""
Adapters layer - Store implementations for doctors and appointments.
"""

from .json_store import JsonFileStore
from .memory_store import InMemoryStore

__all__ = ["InMemoryStore", "JsonFileStore"]
