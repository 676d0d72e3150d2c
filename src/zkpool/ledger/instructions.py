"""Instruction payloads for the pool program.

Layouts (all integers little-endian):

    deposit_native:   disc[8] | amount u64 | precommitment[32]
    withdraw_native:  disc[8] | amount u64 | nullifier_hash[32]
                      | new_commitment[32] | proof_len u32 | proof[proof_len]

disc is the Anchor discriminator, sha256("global:<name>")[:8].
"""

import hashlib
from dataclasses import dataclass

from zkpool.exceptions import InstructionDecodeError
from zkpool.utils.encoding import U64_MAX, is_bytes32, u32_le, u64_le

DISCRIMINATOR_SIZE = 8


def instruction_discriminator(name: str) -> bytes:
    """Anchor discriminator for a global instruction."""
    return hashlib.sha256(f"global:{name}".encode("utf-8")).digest()[:DISCRIMINATOR_SIZE]


DEPOSIT_DISCRIMINATOR = instruction_discriminator("deposit_native")
WITHDRAW_DISCRIMINATOR = instruction_discriminator("withdraw_native")

DEPOSIT_SIZE = DISCRIMINATOR_SIZE + 8 + 32
WITHDRAW_HEADER_SIZE = DISCRIMINATOR_SIZE + 8 + 32 + 32 + 4


@dataclass(frozen=True)
class DepositInstruction:
    amount: int
    precommitment: bytes


@dataclass(frozen=True)
class WithdrawalInstruction:
    amount: int
    nullifier_hash: bytes
    new_commitment: bytes
    proof: bytes


def _check_amount(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or not 0 < amount <= U64_MAX:
        raise ValueError(f"Amount must be a positive u64, got {amount!r}")


def encode_deposit_instruction(amount: int, precommitment: bytes) -> bytes:
    """
    Build the deposit_native payload.

    Raises:
        ValueError: If amount is not a positive u64 or precommitment is not 32 bytes
    """
    _check_amount(amount)
    if not is_bytes32(precommitment):
        raise ValueError("Precommitment must be 32 bytes")
    return DEPOSIT_DISCRIMINATOR + u64_le(amount) + precommitment


def encode_withdrawal_instruction(
    amount: int, nullifier_hash: bytes, new_commitment: bytes, proof: bytes
) -> bytes:
    """
    Build the withdraw_native payload.

    Raises:
        ValueError: If a field has the wrong size or the proof is empty
    """
    _check_amount(amount)
    if not is_bytes32(nullifier_hash):
        raise ValueError("Nullifier hash must be 32 bytes")
    if not is_bytes32(new_commitment):
        raise ValueError("New commitment must be 32 bytes")
    if not isinstance(proof, bytes) or not proof:
        raise ValueError("Proof must be non-empty bytes")
    return (
        WITHDRAW_DISCRIMINATOR
        + u64_le(amount)
        + nullifier_hash
        + new_commitment
        + u32_le(len(proof))
        + proof
    )


def decode_deposit_instruction(data: bytes) -> DepositInstruction:
    """
    Parse a deposit_native payload.

    Raises:
        InstructionDecodeError: If data is not a well-formed deposit payload
    """
    if len(data) != DEPOSIT_SIZE:
        raise InstructionDecodeError(f"Deposit payload must be {DEPOSIT_SIZE} bytes, got {len(data)}")
    if data[:DISCRIMINATOR_SIZE] != DEPOSIT_DISCRIMINATOR:
        raise InstructionDecodeError("Not a deposit_native instruction")

    amount = int.from_bytes(data[8:16], "little")
    if amount == 0:
        raise InstructionDecodeError("Deposit amount must be positive")
    return DepositInstruction(amount=amount, precommitment=bytes(data[16:48]))


def decode_withdrawal_instruction(data: bytes) -> WithdrawalInstruction:
    """
    Parse a withdraw_native payload.

    Raises:
        InstructionDecodeError: If data is truncated, has trailing bytes or the wrong discriminator
    """
    if len(data) < WITHDRAW_HEADER_SIZE:
        raise InstructionDecodeError(
            f"Withdrawal payload must be at least {WITHDRAW_HEADER_SIZE} bytes, got {len(data)}"
        )
    if data[:DISCRIMINATOR_SIZE] != WITHDRAW_DISCRIMINATOR:
        raise InstructionDecodeError("Not a withdraw_native instruction")

    amount = int.from_bytes(data[8:16], "little")
    nullifier_hash = bytes(data[16:48])
    new_commitment = bytes(data[48:80])
    proof_len = int.from_bytes(data[80:84], "little")

    if len(data) != WITHDRAW_HEADER_SIZE + proof_len:
        raise InstructionDecodeError(
            f"Proof length prefix {proof_len} does not match payload size {len(data)}"
        )
    if amount == 0:
        raise InstructionDecodeError("Withdrawal amount must be positive")

    return WithdrawalInstruction(
        amount=amount,
        nullifier_hash=nullifier_hash,
        new_commitment=new_commitment,
        proof=bytes(data[WITHDRAW_HEADER_SIZE:]),
    )
