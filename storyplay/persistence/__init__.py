"""
Persistence Module - Save slots and persistent variables.

Play state itself is in-memory; only what the player explicitly saves
(save slots) and variables declared with local persistence are written
to a store.
"""

from .store import (
    KeyValueStore,
    MemoryStore,
    FileStore,
    SAVE_DATA_KEY,
    VARIABLES_KEY,
)

__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "FileStore",
    "SAVE_DATA_KEY",
    "VARIABLES_KEY",
]
