"""Deposit notes: the only durable record of a deposit.

A note holds every secret needed to withdraw. Losing it loses the funds;
leaking it lets anyone withdraw them. Notes are immutable: the only change
after creation is attaching the settlement reference once the deposit
transaction confirms, which produces a new note.

Transport format (version 1):
    base64( json({
        "version": 1,
        "hash": "<hasher name>",
        "secret": "<hex32>",
        "nullifierSecret": "<hex32>",
        "precommitment": "<hex32>",
        "amount": "<decimal u64>",
        "commitment": "<hex32>",
        "settlementRef": "<str>" | null,
        "timestamp": "<ISO-8601 with offset>"
    }) )

Every key is required; unknown keys are rejected.
"""

import base64
import binascii
import json
import logging
from dataclasses import dataclass, replace
from datetime import datetime, UTC
from typing import NamedTuple, Optional

from pydantic import ValidationError

from zkpool.core.commitment import (
    compute_commitment,
    compute_nullifier_hash,
    compute_precommitment,
    generate_secrets,
    validate_amount,
)
from zkpool.crypto.hasher import Hasher, get_hasher
from zkpool.exceptions import (
    InvalidAmountError,
    InvalidSecretError,
    NoteDecodeError,
    UnsupportedNoteVersionError,
)
from zkpool.models.schemas import NOTE_FORMAT_VERSION, NotePayload
from zkpool.utils.encoding import U64_MAX, bytes_to_hex, short_hex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DepositNote:
    """User-held record of one deposit."""

    secret: bytes
    nullifier_secret: bytes
    precommitment: bytes
    amount: int
    commitment: bytes
    created_at: datetime
    settlement_ref: Optional[str] = None

    def with_settlement(self, settlement_ref: str) -> "DepositNote":
        """Return a copy carrying the deposit's settlement reference."""
        return replace(self, settlement_ref=settlement_ref)

    def __repr__(self) -> str:
        # Never print secret material
        return (
            f"DepositNote(amount={self.amount}, "
            f"commitment={short_hex(self.commitment)}, "
            f"settlement_ref={self.settlement_ref!r})"
        )


class WithdrawalMaterial(NamedTuple):
    """Projection of a note that feeds the withdrawal assembler."""

    secret: bytes
    nullifier_secret: bytes
    precommitment: bytes
    amount: int
    nullifier_hash: bytes


def create_note(
    secret: bytes,
    nullifier_secret: bytes,
    amount: int,
    hasher: Optional[Hasher] = None,
    created_at: Optional[datetime] = None,
) -> DepositNote:
    """
    Build a note from secret material.

    Args:
        secret: 32-byte secret
        nullifier_secret: 32-byte nullifier secret
        amount: Deposit value (positive u64)
        hasher: Hash primitive (default from registry)
        created_at: Creation time (default: now, UTC)

    Returns:
        DepositNote: Note with precommitment and commitment filled in

    Raises:
        InvalidSecretError: If secrets are not 32 bytes
        InvalidAmountError: If amount is not a positive u64
    """
    hasher = hasher or get_hasher()
    if created_at is not None and created_at.tzinfo is None:
        raise ValueError("created_at must be timezone-aware")

    precommitment = compute_precommitment(secret, nullifier_secret, hasher)
    commitment = compute_commitment(amount, precommitment, hasher)

    return DepositNote(
        secret=secret,
        nullifier_secret=nullifier_secret,
        precommitment=precommitment,
        amount=amount,
        commitment=commitment,
        created_at=created_at or datetime.now(UTC),
    )


def generate_note(amount: int, hasher: Optional[Hasher] = None) -> DepositNote:
    """Create a note for amount from freshly generated secrets."""
    validate_amount(amount)
    secret, nullifier_secret = generate_secrets()
    return create_note(secret, nullifier_secret, amount, hasher)


def derive_withdrawal_material(note: DepositNote, hasher: Optional[Hasher] = None) -> WithdrawalMaterial:
    """Project a note onto the values the withdrawal proof needs."""
    hasher = hasher or get_hasher()
    return WithdrawalMaterial(
        secret=note.secret,
        nullifier_secret=note.nullifier_secret,
        precommitment=note.precommitment,
        amount=note.amount,
        nullifier_hash=compute_nullifier_hash(note.nullifier_secret, hasher),
    )


def encode_note(note: DepositNote, hasher: Optional[Hasher] = None) -> str:
    """
    Serialize a note to its portable base64 form.

    Args:
        note: Note to encode
        hasher: Hasher the note's commitments were computed with

    Returns:
        str: Base64 text, safe to store offline
    """
    hasher = hasher or get_hasher()
    payload = NotePayload(
        version=NOTE_FORMAT_VERSION,
        hash=hasher.name,
        secret=bytes_to_hex(note.secret),
        nullifier_secret=bytes_to_hex(note.nullifier_secret),
        precommitment=bytes_to_hex(note.precommitment),
        amount=str(note.amount),
        commitment=bytes_to_hex(note.commitment),
        settlement_ref=note.settlement_ref,
        timestamp=note.created_at.isoformat(),
    )
    body = json.dumps(payload.model_dump(by_alias=True), separators=(",", ":"), sort_keys=True)
    return base64.b64encode(body.encode("utf-8")).decode("ascii")


def decode_note(encoded: str, hasher: Optional[Hasher] = None) -> DepositNote:
    """
    Parse and check an encoded note.

    The precommitment and commitment are recomputed from the secrets and
    must match the stored values.

    Args:
        encoded: Base64 text produced by encode_note
        hasher: Hasher the note is expected to use

    Returns:
        DepositNote: Decoded note

    Raises:
        UnsupportedNoteVersionError: If the format version is unknown
        NoteDecodeError: If the text is malformed, incomplete or inconsistent
    """
    hasher = hasher or get_hasher()

    if not isinstance(encoded, str):
        raise NoteDecodeError(f"Encoded note must be a string, got {type(encoded).__name__}")

    try:
        raw = base64.b64decode("".join(encoded.split()), validate=True)
        data = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise NoteDecodeError(f"Note is not valid base64 JSON: {e}") from e

    if not isinstance(data, dict):
        raise NoteDecodeError("Note body must be a JSON object")
    if "version" not in data:
        raise NoteDecodeError("Note is missing the 'version' field")
    if data["version"] != NOTE_FORMAT_VERSION:
        raise UnsupportedNoteVersionError(f"Unsupported note version: {data['version']!r}")

    try:
        payload = NotePayload.model_validate(data)
    except ValidationError as e:
        raise NoteDecodeError(f"Invalid note fields: {e}") from e

    if payload.hash != hasher.name:
        raise NoteDecodeError(
            f"Note was created with hasher '{payload.hash}', expected '{hasher.name}'"
        )

    amount = int(payload.amount)
    if amount > U64_MAX:
        raise NoteDecodeError("Note amount exceeds the u64 range")

    try:
        note = create_note(
            secret=bytes.fromhex(payload.secret),
            nullifier_secret=bytes.fromhex(payload.nullifier_secret),
            amount=amount,
            hasher=hasher,
            created_at=datetime.fromisoformat(payload.timestamp),
        )
    except (InvalidAmountError, InvalidSecretError) as e:
        raise NoteDecodeError(f"Invalid note contents: {e}") from e

    if note.precommitment != bytes.fromhex(payload.precommitment):
        raise NoteDecodeError("Note precommitment does not match its secrets")
    if note.commitment != bytes.fromhex(payload.commitment):
        raise NoteDecodeError("Note commitment does not match its secrets and amount")

    if payload.settlement_ref is not None:
        note = note.with_settlement(payload.settlement_ref)

    logger.debug(f"Decoded note for commitment {short_hex(note.commitment)}")
    return note
