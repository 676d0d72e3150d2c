"""Deposit and withdrawal orchestration.

DEPOSIT:
    1. Generate secrets and build the note (commitment = H(amount || precommitment))
    2. Submit deposit_native(amount, precommitment)
    3. Attach the settlement reference to the note; store it if a store is configured

WITHDRAW:
    1. Fetch the leaf set and compute a fresh path for the note's commitment
    2. Assemble proof inputs (change note for a partial withdrawal)
    3. Generate the proof
    4. Submit withdraw_native(amount, nullifier_hash, new_commitment, proof)

Ledger reads/writes and proving are the only blocking calls; each is
bounded by the configured timeout. Nothing is retried here. Only one
withdrawal per nullifier hash may be in flight at a time.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Callable, Optional, Set, TypeVar

from zkpool.config import Settings, get_settings
from zkpool.core.merkle_tree import compute_path
from zkpool.core.note import DepositNote, derive_withdrawal_material, generate_note
from zkpool.core.prover import ProverContext
from zkpool.core.zkproof import build_inputs
from zkpool.crypto.hasher import get_hasher
from zkpool.exceptions import LedgerTimeoutError, NoteNotFoundError, WithdrawalInProgressError
from zkpool.ledger.client import DEFAULT_TREE_ID, LedgerClient
from zkpool.ledger.instructions import encode_deposit_instruction, encode_withdrawal_instruction
from zkpool.storage.database import NoteStore
from zkpool.utils.encoding import bytes_to_hex, short_hex
from zkpool.utils.timeouts import call_with_timeout

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WithdrawalReceipt:
    """Receipt for a confirmed withdrawal."""

    settlement_ref: str
    nullifier_hash: bytes
    amount: int
    recipient: bytes
    change_note: Optional[DepositNote]
    timestamp: datetime

    def to_dict(self) -> dict:
        """Convert to dictionary (without change-note secrets)."""
        return {
            "settlement_ref": self.settlement_ref,
            "nullifier_hash": bytes_to_hex(self.nullifier_hash),
            "amount": self.amount,
            "recipient": bytes_to_hex(self.recipient),
            "change_commitment": bytes_to_hex(self.change_note.commitment) if self.change_note else None,
            "change_amount": self.change_note.amount if self.change_note else 0,
            "timestamp": self.timestamp.isoformat(),
        }


class PrivacyPoolClient:
    """
    Client-side driver of the deposit and withdrawal flows.

    The ledger client and the proving context are owned by the caller; the
    prover must be initialized before withdrawing.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        prover: ProverContext,
        settings: Optional[Settings] = None,
        note_store: Optional[NoteStore] = None,
    ):
        self.ledger = ledger
        self.prover = prover
        self.settings = settings or get_settings()
        self.hasher = get_hasher(self.settings.hasher)
        self.note_store = note_store

        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="zkpool-ledger")
        self._in_flight: Set[bytes] = set()
        self._in_flight_lock = threading.Lock()

    def close(self) -> None:
        """Stop the ledger worker pool. The prover is left to its owner."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "PrivacyPoolClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _ledger_call(self, fn: Callable[[], T], description: str) -> T:
        return call_with_timeout(
            self._executor, fn, self.settings.ledger_timeout, LedgerTimeoutError, description
        )

    def deposit(self, amount: int, tree_id: str = DEFAULT_TREE_ID) -> DepositNote:
        """
        Create a note for amount and deposit it.

        Args:
            amount: Deposit value (positive u64)
            tree_id: Target tree

        Returns:
            DepositNote: Note carrying the settlement reference

        Raises:
            InvalidAmountError: If amount is not a positive u64
            LedgerTimeoutError: If the ledger does not answer in time
        """
        note = generate_note(amount, self.hasher)
        if self.note_store is not None:
            self.note_store.save_note(note)

        instruction = encode_deposit_instruction(note.amount, note.precommitment)
        settlement_ref = self._ledger_call(
            lambda: self.ledger.submit_deposit(tree_id, instruction), "Deposit submission"
        )

        note = note.with_settlement(settlement_ref)
        if self.note_store is not None:
            self.note_store.attach_settlement(note.commitment, settlement_ref)

        logger.info(f"Deposited {amount} as {short_hex(note.commitment)} ({settlement_ref})")
        return note

    def withdraw(
        self,
        note: DepositNote,
        recipient: bytes,
        amount: Optional[int] = None,
        tree_id: str = DEFAULT_TREE_ID,
    ) -> WithdrawalReceipt:
        """
        Withdraw amount (default: the whole note) to recipient.

        Args:
            note: Note being spent
            recipient: 32-byte recipient identifier
            amount: Amount to withdraw; the remainder becomes a change note
            tree_id: Tree holding the note's commitment

        Returns:
            WithdrawalReceipt: Settlement reference and optional change note

        Raises:
            WithdrawalInProgressError: If this note is already being withdrawn
            CommitmentNotFoundError: If the commitment is not in the leaf set
            InvalidWithdrawalAmountError: If amount is zero or exceeds the note
            ProofGenerationError: If proving fails or times out
            LedgerError: Surfaced unmodified from the ledger
        """
        withdraw_amount = note.amount if amount is None else amount
        nullifier_hash = derive_withdrawal_material(note, self.hasher).nullifier_hash

        with self._in_flight_lock:
            if nullifier_hash in self._in_flight:
                raise WithdrawalInProgressError(
                    f"Withdrawal already in progress for nullifier {nullifier_hash.hex()}"
                )
            self._in_flight.add(nullifier_hash)

        try:
            receipt = self._withdraw(note, recipient, withdraw_amount, tree_id)
        finally:
            with self._in_flight_lock:
                self._in_flight.discard(nullifier_hash)

        return receipt

    def _withdraw(
        self, note: DepositNote, recipient: bytes, withdraw_amount: int, tree_id: str
    ) -> WithdrawalReceipt:
        leaves = self._ledger_call(lambda: self.ledger.get_leaves(tree_id), "Leaf fetch")
        path = compute_path(leaves, note.commitment, self.hasher, self.settings.tree_depth)

        inputs = build_inputs(
            note, path, recipient, withdraw_amount, self.hasher, self.settings.tree_depth
        )
        proof = self.prover.generate_proof(inputs, timeout=self.settings.prover_timeout)

        instruction = encode_withdrawal_instruction(
            inputs.amount, inputs.nullifier_hash, inputs.new_commitment, proof
        )
        settlement_ref = self._ledger_call(
            lambda: self.ledger.submit_withdrawal(tree_id, recipient, instruction),
            "Withdrawal submission",
        )

        change_note = inputs.change_note.with_settlement(settlement_ref) if inputs.change_note else None
        if self.note_store is not None:
            try:
                self.note_store.mark_spent(note.commitment, settlement_ref)
            except NoteNotFoundError:
                logger.debug(f"Spent note {short_hex(note.commitment)} was not in the store")
            if change_note is not None:
                self.note_store.save_note(change_note)

        logger.info(
            f"Withdrew {withdraw_amount} of {note.amount} "
            f"(nullifier {short_hex(inputs.nullifier_hash)}, {settlement_ref})"
        )

        return WithdrawalReceipt(
            settlement_ref=settlement_ref,
            nullifier_hash=inputs.nullifier_hash,
            amount=withdraw_amount,
            recipient=recipient,
            change_note=change_note,
            timestamp=datetime.now(UTC),
        )
