"""Tests for deposit notes and the note transport format."""

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest
from hypothesis import given, strategies as st, settings

from zkpool.core.commitment import compute_nullifier_hash
from zkpool.core.note import (
    DepositNote,
    create_note,
    decode_note,
    derive_withdrawal_material,
    encode_note,
    generate_note,
)
from zkpool.crypto.hasher import get_hasher
from zkpool.exceptions import (
    InvalidAmountError,
    NoteDecodeError,
    UnsupportedNoteVersionError,
)


def _payload(encoded: str) -> dict:
    return json.loads(base64.b64decode(encoded))


def _encode(payload: dict) -> str:
    return base64.b64encode(json.dumps(payload).encode()).decode()


class TestCreateNote:
    """Tests for note creation."""

    def test_golden_note(self, golden_note):
        assert golden_note.commitment.hex() == (
            "09dcc87e135ad8998801f05605820e8882bcf7b75aa786823ac03bbc86e4d215"
        )
        assert golden_note.settlement_ref is None
        assert golden_note.created_at.tzinfo is not None

    def test_deterministic(self, golden_note, hasher):
        again = create_note(golden_note.secret, golden_note.nullifier_secret, golden_note.amount, hasher)
        assert again.precommitment == golden_note.precommitment
        assert again.commitment == golden_note.commitment

    def test_rejects_naive_timestamp(self, hasher):
        with pytest.raises(ValueError):
            create_note(b"\x01" * 32, b"\x02" * 32, 5, hasher, created_at=datetime(2024, 1, 1))

    def test_generate_note_rejects_zero(self):
        with pytest.raises(InvalidAmountError):
            generate_note(0)

    def test_generated_notes_differ(self):
        assert generate_note(10).commitment != generate_note(10).commitment

    def test_with_settlement_returns_copy(self, golden_note):
        settled = golden_note.with_settlement("sig-1")
        assert settled.settlement_ref == "sig-1"
        assert golden_note.settlement_ref is None
        assert settled.commitment == golden_note.commitment

    def test_repr_hides_secrets(self, golden_note):
        text = repr(golden_note)
        assert golden_note.secret.hex() not in text
        assert golden_note.nullifier_secret.hex() not in text

    def test_notes_are_immutable(self, golden_note):
        with pytest.raises(AttributeError):
            golden_note.amount = 1


class TestWithdrawalMaterial:
    def test_projection(self, golden_note, hasher):
        material = derive_withdrawal_material(golden_note, hasher)
        assert material.secret == golden_note.secret
        assert material.amount == golden_note.amount
        assert material.nullifier_hash == compute_nullifier_hash(golden_note.nullifier_secret, hasher)
        assert material.nullifier_hash.hex() == (
            "19ce57ae14821ddc6cf27b93b7c0043f9e086fc58f76bcc1a83182e0be02d8bb"
        )


class TestNoteEncoding:
    """Tests for encode/decode."""

    def test_round_trip(self, golden_note):
        assert decode_note(encode_note(golden_note)) == golden_note

    def test_round_trip_with_settlement(self, golden_note):
        settled = golden_note.with_settlement("5xSig")
        assert decode_note(encode_note(settled)) == settled

    def test_round_trip_non_utc_offset(self, hasher):
        tz = timezone(timedelta(hours=-5))
        note = create_note(b"\x01" * 32, b"\x02" * 32, 7, hasher, created_at=datetime(2025, 3, 1, 12, tzinfo=tz))
        assert decode_note(encode_note(note)) == note

    def test_payload_fields(self, golden_note):
        payload = _payload(encode_note(golden_note))
        assert set(payload) == {
            "version", "hash", "secret", "nullifierSecret", "precommitment",
            "amount", "commitment", "settlementRef", "timestamp",
        }
        assert payload["version"] == 1
        assert payload["hash"] == "poseidon-sponge"
        assert payload["amount"] == "1000000000"
        assert payload["secret"] == "00" * 31 + "01"
        assert payload["settlementRef"] is None

    def test_whitespace_is_tolerated(self, golden_note):
        encoded = encode_note(golden_note)
        wrapped = "\n".join(encoded[i:i + 40] for i in range(0, len(encoded), 40))
        assert decode_note(wrapped) == golden_note

    @given(st.integers(min_value=1, max_value=2**64 - 1))
    @settings(max_examples=15, deadline=None)
    def test_round_trip_any_amount(self, amount):
        note = generate_note(amount, get_hasher("sha256"))
        assert decode_note(encode_note(note, get_hasher("sha256")), get_hasher("sha256")) == note


class TestNoteDecodeErrors:
    """Malformed input raises typed decode errors."""

    @pytest.mark.parametrize("text", ["", "not base64!!", base64.b64encode(b"\xff\xfe").decode()])
    def test_garbage(self, text):
        with pytest.raises(NoteDecodeError):
            decode_note(text)

    def test_non_string(self):
        with pytest.raises(NoteDecodeError):
            decode_note(b"abc")

    def test_json_array(self):
        with pytest.raises(NoteDecodeError):
            decode_note(_encode([1, 2]))

    def test_missing_version(self, golden_note):
        payload = _payload(encode_note(golden_note))
        del payload["version"]
        with pytest.raises(NoteDecodeError):
            decode_note(_encode(payload))

    def test_unknown_version(self, golden_note):
        payload = _payload(encode_note(golden_note))
        payload["version"] = 2
        with pytest.raises(UnsupportedNoteVersionError):
            decode_note(_encode(payload))

    @pytest.mark.parametrize("field", ["secret", "nullifierSecret", "amount", "settlementRef", "timestamp"])
    def test_missing_field(self, golden_note, field):
        payload = _payload(encode_note(golden_note))
        del payload[field]
        with pytest.raises(NoteDecodeError):
            decode_note(_encode(payload))

    def test_unknown_field(self, golden_note):
        payload = _payload(encode_note(golden_note))
        payload["memo"] = "hi"
        with pytest.raises(NoteDecodeError):
            decode_note(_encode(payload))

    def test_tampered_amount(self, golden_note):
        payload = _payload(encode_note(golden_note))
        payload["amount"] = "999"
        with pytest.raises(NoteDecodeError, match="commitment"):
            decode_note(_encode(payload))

    def test_tampered_precommitment(self, golden_note):
        payload = _payload(encode_note(golden_note))
        payload["precommitment"] = "00" * 32
        with pytest.raises(NoteDecodeError, match="precommitment"):
            decode_note(_encode(payload))

    @pytest.mark.parametrize("amount", ["0", "18446744073709551616", "-5", "1.5"])
    def test_bad_amount(self, golden_note, amount):
        payload = _payload(encode_note(golden_note))
        payload["amount"] = amount
        with pytest.raises(NoteDecodeError):
            decode_note(_encode(payload))

    def test_naive_timestamp(self, golden_note):
        payload = _payload(encode_note(golden_note))
        payload["timestamp"] = "2024-01-01T00:00:00"
        with pytest.raises(NoteDecodeError):
            decode_note(_encode(payload))

    def test_hasher_mismatch(self, golden_note):
        with pytest.raises(NoteDecodeError, match="hasher"):
            decode_note(encode_note(golden_note), get_hasher("sha256"))
