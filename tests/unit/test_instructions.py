"""Tests for the instruction payload codec."""

import pytest

from zkpool.exceptions import InstructionDecodeError
from zkpool.ledger.instructions import (
    DEPOSIT_DISCRIMINATOR,
    WITHDRAW_DISCRIMINATOR,
    decode_deposit_instruction,
    decode_withdrawal_instruction,
    encode_deposit_instruction,
    encode_withdrawal_instruction,
)

PRECOMMITMENT = bytes(range(32))
NULLIFIER = b"\xaa" * 32
NEW_COMMITMENT = b"\xbb" * 32


class TestDiscriminators:
    def test_values(self):
        assert DEPOSIT_DISCRIMINATOR.hex() == "0d9e0ddf5fd51c06"
        assert WITHDRAW_DISCRIMINATOR.hex() == "71e31a2035425afa"


class TestDepositInstruction:
    def test_layout(self):
        data = encode_deposit_instruction(1_000_000_000, PRECOMMITMENT)
        assert len(data) == 48
        assert data[:8] == DEPOSIT_DISCRIMINATOR
        assert data[8:16] == (1_000_000_000).to_bytes(8, "little")
        assert data[16:] == PRECOMMITMENT

    def test_decode(self):
        decoded = decode_deposit_instruction(encode_deposit_instruction(5, PRECOMMITMENT))
        assert decoded.amount == 5
        assert decoded.precommitment == PRECOMMITMENT

    @pytest.mark.parametrize("amount", [0, 2**64])
    def test_bad_amount(self, amount):
        with pytest.raises(ValueError):
            encode_deposit_instruction(amount, PRECOMMITMENT)

    def test_bad_precommitment(self):
        with pytest.raises(ValueError):
            encode_deposit_instruction(1, b"\x00" * 31)

    def test_decode_wrong_size(self):
        with pytest.raises(InstructionDecodeError):
            decode_deposit_instruction(encode_deposit_instruction(1, PRECOMMITMENT)[:-1])

    def test_decode_wrong_discriminator(self):
        data = encode_withdrawal_instruction(1, NULLIFIER, NEW_COMMITMENT, b"p")[:48]
        with pytest.raises(InstructionDecodeError):
            decode_deposit_instruction(data)


class TestWithdrawalInstruction:
    def test_layout(self):
        proof = b"\x01\x02\x03"
        data = encode_withdrawal_instruction(42, NULLIFIER, NEW_COMMITMENT, proof)
        assert data[:8] == WITHDRAW_DISCRIMINATOR
        assert data[8:16] == (42).to_bytes(8, "little")
        assert data[16:48] == NULLIFIER
        assert data[48:80] == NEW_COMMITMENT
        assert data[80:84] == (3).to_bytes(4, "little")
        assert data[84:] == proof

    def test_decode(self):
        proof = b"\x09" * 256
        decoded = decode_withdrawal_instruction(
            encode_withdrawal_instruction(42, NULLIFIER, NEW_COMMITMENT, proof)
        )
        assert decoded.amount == 42
        assert decoded.nullifier_hash == NULLIFIER
        assert decoded.new_commitment == NEW_COMMITMENT
        assert decoded.proof == proof

    def test_empty_proof_rejected(self):
        with pytest.raises(ValueError):
            encode_withdrawal_instruction(1, NULLIFIER, NEW_COMMITMENT, b"")

    def test_truncated(self):
        data = encode_withdrawal_instruction(1, NULLIFIER, NEW_COMMITMENT, b"\x01" * 10)
        with pytest.raises(InstructionDecodeError):
            decode_withdrawal_instruction(data[:-1])
        with pytest.raises(InstructionDecodeError):
            decode_withdrawal_instruction(data[:50])

    def test_trailing_bytes(self):
        data = encode_withdrawal_instruction(1, NULLIFIER, NEW_COMMITMENT, b"\x01")
        with pytest.raises(InstructionDecodeError):
            decode_withdrawal_instruction(data + b"\x00")
