"""Wire models."""

from zkpool.models.schemas import NOTE_FORMAT_VERSION, LeafSnapshot, NotePayload

__all__ = ["NOTE_FORMAT_VERSION", "LeafSnapshot", "NotePayload"]
