"""Storage layer for persistent data."""

from zkpool.storage.database import (
    Base,
    NoteRecord,
    NoteStatus,
    NoteStore,
    get_note_store,
    reset_note_store,
)

__all__ = [
    "Base",
    "NoteRecord",
    "NoteStatus",
    "NoteStore",
    "get_note_store",
    "reset_note_store",
]
