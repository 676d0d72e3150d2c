"""Tests for the local note store."""

import pytest
from cryptography.fernet import Fernet

from zkpool.core.note import generate_note
from zkpool.exceptions import NoteNotFoundError, StorageError
from zkpool.storage.database import (
    NoteRecord,
    NoteStatus,
    NoteStore,
    get_note_store,
    reset_note_store,
)


@pytest.fixture
def encrypted_store(tmp_path, hasher):
    store = NoteStore(f"sqlite:///{tmp_path / 'enc.db'}", hasher, Fernet.generate_key().decode())
    store.create_tables()
    yield store
    store.engine.dispose()


class TestNoteStore:
    """Basic note persistence."""

    def test_save_and_get(self, note_store, golden_note):
        note_store.save_note(golden_note)
        assert note_store.get_note(golden_note.commitment) == golden_note
        assert note_store.get_status(golden_note.commitment) == NoteStatus.PENDING

    def test_settled_note_is_confirmed(self, note_store, golden_note):
        note_store.save_note(golden_note.with_settlement("sig"))
        assert note_store.get_status(golden_note.commitment) == NoteStatus.CONFIRMED

    def test_duplicate(self, note_store, golden_note):
        note_store.save_note(golden_note)
        with pytest.raises(StorageError):
            note_store.save_note(golden_note)

    def test_missing(self, note_store):
        with pytest.raises(NoteNotFoundError):
            note_store.get_note(b"\x00" * 32)

    def test_attach_settlement(self, note_store, golden_note):
        note_store.save_note(golden_note)
        settled = note_store.attach_settlement(golden_note.commitment, "deposit-1")
        assert settled.settlement_ref == "deposit-1"
        assert note_store.get_note(golden_note.commitment).settlement_ref == "deposit-1"
        assert note_store.get_status(golden_note.commitment) == NoteStatus.CONFIRMED

    def test_mark_spent(self, note_store, golden_note):
        note_store.save_note(golden_note)
        assert note_store.mark_spent(golden_note.commitment, "withdraw-1")
        assert not note_store.mark_spent(golden_note.commitment)
        assert note_store.get_status(golden_note.commitment) == NoteStatus.SPENT

    def test_list_unspent(self, note_store, hasher):
        notes = [generate_note(i + 1, hasher) for i in range(3)]
        for note in notes:
            note_store.save_note(note)
        note_store.mark_spent(notes[1].commitment)
        assert note_store.list_unspent() == [notes[0], notes[2]]

    def test_nullifier_hash_stored(self, note_store, golden_note):
        note_store.save_note(golden_note)
        with note_store.get_session() as session:
            record = session.query(NoteRecord).filter_by(commitment=golden_note.commitment).one()
            assert record.nullifier_hash.hex() == (
                "19ce57ae14821ddc6cf27b93b7c0043f9e086fc58f76bcc1a83182e0be02d8bb"
            )
            assert record.amount == str(golden_note.amount)


class TestEncryptedNoteStore:
    """Notes encrypted at rest."""

    def test_round_trip(self, encrypted_store, golden_note):
        encrypted_store.save_note(golden_note)
        assert encrypted_store.get_note(golden_note.commitment) == golden_note

    def test_secret_not_in_clear(self, encrypted_store, golden_note):
        encrypted_store.save_note(golden_note)
        with encrypted_store.get_session() as session:
            record = session.query(NoteRecord).one()
            assert record.encrypted == 1
            assert "nullifierSecret" not in record.encoded_note

    def test_wrong_key(self, encrypted_store, golden_note, hasher):
        encrypted_store.save_note(golden_note)
        other = NoteStore(encrypted_store.database_url, hasher, Fernet.generate_key().decode())
        with pytest.raises(StorageError, match="wrong encryption key"):
            other.get_note(golden_note.commitment)

    def test_missing_key(self, encrypted_store, golden_note, hasher):
        encrypted_store.save_note(golden_note)
        plain = NoteStore(encrypted_store.database_url, hasher)
        with pytest.raises(StorageError):
            plain.get_note(golden_note.commitment)


class TestDefaultStore:
    def test_singleton(self, tmp_path):
        reset_note_store()
        url = f"sqlite:///{tmp_path / 'default.db'}"
        try:
            assert get_note_store(url) is get_note_store(url)
        finally:
            reset_note_store()
