"""Withdrawal proof inputs: assembly and circuit field encoding.

Inputs to the withdrawal circuit:

    private: secret, nullifier_secret, merkle_path[D], path_indices[D]
    public:  root, nullifier_hash, recipient, amount, new_commitment

Every 32-byte value is read big-endian and passed as a decimal string.
Secrets, tree nodes and hashes must already be canonical field elements;
the recipient (an arbitrary 32-byte public key) is reduced modulo p.
An encoding mismatch does not fail locally; it yields a proof the verifier
rejects, so the encoding is pinned by golden-vector tests.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from zkpool.core.merkle_tree import MerklePath, verify_path
from zkpool.core.note import DepositNote, derive_withdrawal_material, generate_note
from zkpool.crypto.field import bytes_to_field, bytes_to_field_mod
from zkpool.crypto.hasher import Hasher, get_hasher
from zkpool.exceptions import (
    FieldEncodingError,
    InvalidMerklePathError,
    InvalidRecipientError,
    InvalidWithdrawalAmountError,
)
from zkpool.utils.encoding import U64_MAX, short_hex

logger = logging.getLogger(__name__)

# New-commitment slot for a full withdrawal: no leaf is inserted
EMPTY_COMMITMENT = b"\x00" * 32


@dataclass(frozen=True, repr=False)
class ProofInputs:
    """Everything the proving backend needs for one withdrawal."""

    # Private
    secret: bytes
    nullifier_secret: bytes
    merkle_path: Tuple[bytes, ...]
    path_indices: Tuple[int, ...]

    # Public
    root: bytes
    nullifier_hash: bytes
    recipient: bytes
    amount: int

    # Inserted by the ledger in the same instruction that spends the nullifier
    new_commitment: bytes = EMPTY_COMMITMENT
    change_note: Optional[DepositNote] = None

    @property
    def is_partial(self) -> bool:
        return self.change_note is not None

    def __repr__(self) -> str:
        return (
            f"ProofInputs(root={short_hex(self.root)}, "
            f"nullifier_hash={short_hex(self.nullifier_hash)}, "
            f"amount={self.amount}, partial={self.is_partial})"
        )


@dataclass(frozen=True)
class WitnessMap:
    """Field-encoded inputs, ready for the backend."""

    private: Dict[str, Union[str, List[str]]]
    public: Dict[str, str]


def build_inputs(
    note: DepositNote,
    path: MerklePath,
    recipient: bytes,
    withdraw_amount: int,
    hasher: Optional[Hasher] = None,
    depth: Optional[int] = None,
) -> ProofInputs:
    """
    Assemble withdrawal proof inputs for a note.

    A partial withdrawal (withdraw_amount < note.amount) issues a change note
    for the remainder from fresh secrets; its commitment fills the
    new-commitment slot. A full withdrawal leaves the slot all zeros.

    Args:
        note: Note being spent
        path: Freshly computed path for note.commitment
        recipient: 32-byte recipient identifier
        withdraw_amount: Amount in (0, note.amount]
        hasher: Hash primitive
        depth: Expected tree depth, if known

    Returns:
        ProofInputs: Inputs, new commitment and optional change note

    Raises:
        InvalidWithdrawalAmountError: If the amount is zero, negative or over balance
        InvalidRecipientError: If recipient is not 32 bytes
        InvalidMerklePathError: If path does not authenticate the note commitment
    """
    hasher = hasher or get_hasher()

    if not isinstance(withdraw_amount, int) or isinstance(withdraw_amount, bool):
        raise InvalidWithdrawalAmountError(
            f"Withdrawal amount must be an integer, got {type(withdraw_amount).__name__}"
        )
    if withdraw_amount <= 0:
        raise InvalidWithdrawalAmountError("Withdrawal amount must be positive")
    if withdraw_amount > note.amount:
        raise InvalidWithdrawalAmountError(
            f"Cannot withdraw {withdraw_amount}: note holds {note.amount}"
        )

    if not isinstance(recipient, bytes) or len(recipient) != 32:
        raise InvalidRecipientError("Recipient must be 32 bytes")

    if not verify_path(note.commitment, path, path.root, hasher, depth):
        raise InvalidMerklePathError("Merkle path does not authenticate the note commitment")

    material = derive_withdrawal_material(note, hasher)

    change_note = None
    new_commitment = EMPTY_COMMITMENT
    if withdraw_amount < note.amount:
        change_note = generate_note(note.amount - withdraw_amount, hasher)
        new_commitment = change_note.commitment

    logger.info(
        f"Built withdrawal inputs: amount={withdraw_amount} "
        f"nullifier={short_hex(material.nullifier_hash)} "
        f"partial={change_note is not None}"
    )

    return ProofInputs(
        secret=material.secret,
        nullifier_secret=material.nullifier_secret,
        merkle_path=tuple(path.siblings),
        path_indices=tuple(path.path_indices),
        root=path.root,
        nullifier_hash=material.nullifier_hash,
        recipient=recipient,
        amount=withdraw_amount,
        new_commitment=new_commitment,
        change_note=change_note,
    )


def _encode_amount(amount: int, name: str = "amount") -> str:
    if not isinstance(amount, int) or isinstance(amount, bool) or not 0 <= amount <= U64_MAX:
        raise FieldEncodingError(name, "amount must be a u64")
    return str(amount)


def encode_public_inputs(
    root: bytes,
    nullifier_hash: bytes,
    recipient: bytes,
    amount: int,
    new_commitment: bytes,
) -> Dict[str, str]:
    """
    Encode the public inputs in circuit order.

    new_commitment is always bound, so the change leaf the ledger inserts is
    the one the proof was made for (all zeros for a full withdrawal).

    Raises:
        FieldEncodingError: Naming the first field that cannot be encoded
    """
    return {
        "root": str(bytes_to_field(root, "root")),
        "nullifier_hash": str(bytes_to_field(nullifier_hash, "nullifier_hash")),
        "recipient": str(bytes_to_field_mod(recipient, "recipient")),
        "amount": _encode_amount(amount),
        "new_commitment": str(bytes_to_field(new_commitment, "new_commitment")),
    }


def encode_witness(inputs: ProofInputs) -> WitnessMap:
    """
    Field-encode proof inputs for the backend.

    Raises:
        FieldEncodingError: Naming the first field that cannot be encoded
    """
    if len(inputs.merkle_path) != len(inputs.path_indices):
        raise FieldEncodingError("path_indices", "length differs from merkle_path")

    indices = []
    for i, side in enumerate(inputs.path_indices):
        if side not in (0, 1) or isinstance(side, bool):
            raise FieldEncodingError(f"path_indices[{i}]", "side bit must be 0 or 1")
        indices.append(str(side))

    private = {
        "secret": str(bytes_to_field(inputs.secret, "secret")),
        "nullifier_secret": str(bytes_to_field(inputs.nullifier_secret, "nullifier_secret")),
        "merkle_path": [
            str(bytes_to_field(sibling, f"merkle_path[{i}]"))
            for i, sibling in enumerate(inputs.merkle_path)
        ],
        "path_indices": indices,
    }

    public = encode_public_inputs(
        inputs.root,
        inputs.nullifier_hash,
        inputs.recipient,
        inputs.amount,
        inputs.new_commitment,
    )

    return WitnessMap(private=private, public=public)
