"""Ledger boundary: instruction codec, client interface and reference ledger."""

from zkpool.ledger.client import DEFAULT_TREE_ID, LedgerClient
from zkpool.ledger.instructions import (
    DEPOSIT_DISCRIMINATOR,
    WITHDRAW_DISCRIMINATOR,
    DepositInstruction,
    WithdrawalInstruction,
    decode_deposit_instruction,
    decode_withdrawal_instruction,
    encode_deposit_instruction,
    encode_withdrawal_instruction,
    instruction_discriminator,
)
from zkpool.ledger.memory import InMemoryLedger

__all__ = [
    "DEFAULT_TREE_ID",
    "LedgerClient",
    "DEPOSIT_DISCRIMINATOR",
    "WITHDRAW_DISCRIMINATOR",
    "DepositInstruction",
    "WithdrawalInstruction",
    "decode_deposit_instruction",
    "decode_withdrawal_instruction",
    "encode_deposit_instruction",
    "encode_withdrawal_instruction",
    "instruction_discriminator",
    "InMemoryLedger",
]
