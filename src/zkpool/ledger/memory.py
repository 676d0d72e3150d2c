"""In-process reference ledger.

Mirrors the pool program closely enough to run complete deposit and
withdrawal flows locally: commitments are derived from the deposited
precommitment, withdrawal proofs are checked against the current root,
nullifier hashes are accepted at most once and a non-zero change
commitment is appended in the same step.
"""

import hashlib
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Set

from zkpool.config import Settings, get_settings
from zkpool.core.commitment import compute_commitment
from zkpool.core.merkle_tree import DEFAULT_DEPTH, IncrementalMerkleTree
from zkpool.core.prover import ProverContext
from zkpool.core.zkproof import EMPTY_COMMITMENT, encode_public_inputs
from zkpool.crypto.hasher import Hasher, get_hasher
from zkpool.exceptions import (
    FieldEncodingError,
    NullifierAlreadySpentError,
    TransactionRejectedError,
    UnknownTreeError,
)
from zkpool.ledger.client import DEFAULT_TREE_ID, LedgerClient
from zkpool.ledger.instructions import decode_deposit_instruction, decode_withdrawal_instruction
from zkpool.utils.encoding import is_bytes32, short_hex

logger = logging.getLogger(__name__)

DEFAULT_ROOT_HISTORY_SIZE = 30


@dataclass
class _TreeState:
    tree: IncrementalMerkleTree
    root_history: Deque[bytes]
    nullifiers: Set[bytes] = field(default_factory=set)
    balance: int = 0


class InMemoryLedger(LedgerClient):
    """
    Reference ledger keeping every tree in memory.

    Args:
        prover: Initialized proving context used to verify withdrawal proofs
        hasher: Hash primitive shared with the client
        depth: Tree depth
        root_history_size: Number of recent roots remembered per tree
    """

    def __init__(
        self,
        prover: ProverContext,
        hasher: Optional[Hasher] = None,
        depth: int = DEFAULT_DEPTH,
        root_history_size: int = DEFAULT_ROOT_HISTORY_SIZE,
    ):
        self.prover = prover
        self.hasher = hasher or get_hasher()
        self.depth = depth
        self.root_history_size = root_history_size
        self._trees: Dict[str, _TreeState] = {}
        self._sequence = 0
        self._lock = threading.Lock()
        self.create_tree(DEFAULT_TREE_ID)

    @classmethod
    def from_settings(
        cls, prover: ProverContext, settings: Optional[Settings] = None
    ) -> "InMemoryLedger":
        """Build a ledger with the configured hasher, depth and root history."""
        settings = settings or get_settings()
        return cls(
            prover,
            hasher=get_hasher(settings.hasher),
            depth=settings.tree_depth,
            root_history_size=settings.root_history_size,
        )

    def create_tree(self, tree_id: str) -> None:
        """Open an empty tree; no-op if it already exists."""
        with self._lock:
            if tree_id in self._trees:
                return
            tree = IncrementalMerkleTree(self.depth, self.hasher)
            self._trees[tree_id] = _TreeState(
                tree=tree,
                root_history=deque([tree.root], maxlen=self.root_history_size),
            )
            logger.info(f"Created tree '{tree_id}' (depth {self.depth})")

    def _state(self, tree_id: str) -> _TreeState:
        try:
            return self._trees[tree_id]
        except KeyError:
            raise UnknownTreeError(f"Unknown tree '{tree_id}'")

    def _settlement_ref(self, kind: str, instruction: bytes) -> str:
        self._sequence += 1
        digest = hashlib.sha256(instruction + self._sequence.to_bytes(8, "big")).hexdigest()
        return f"{kind}-{self._sequence}-{digest[:16]}"

    def _insert(self, state: _TreeState, leaf: bytes) -> int:
        index = state.tree.insert(leaf)
        state.root_history.append(state.tree.root)
        return index

    def get_leaves(self, tree_id: str = DEFAULT_TREE_ID) -> List[bytes]:
        with self._lock:
            return list(self._state(tree_id).tree.leaves)

    def get_current_root(self, tree_id: str = DEFAULT_TREE_ID) -> bytes:
        with self._lock:
            return self._state(tree_id).tree.root

    def is_known_root(self, root: bytes, tree_id: str = DEFAULT_TREE_ID) -> bool:
        """Check whether root is among the tree's recent roots."""
        with self._lock:
            return root in self._state(tree_id).root_history

    def is_spent(self, nullifier_hash: bytes, tree_id: str = DEFAULT_TREE_ID) -> bool:
        with self._lock:
            return nullifier_hash in self._state(tree_id).nullifiers

    def balance(self, tree_id: str = DEFAULT_TREE_ID) -> int:
        with self._lock:
            return self._state(tree_id).balance

    def submit_deposit(self, tree_id: str, instruction: bytes) -> str:
        deposit = decode_deposit_instruction(instruction)
        commitment = compute_commitment(deposit.amount, deposit.precommitment, self.hasher)

        with self._lock:
            state = self._state(tree_id)
            index = self._insert(state, commitment)
            state.balance += deposit.amount
            ref = self._settlement_ref("deposit", instruction)

        logger.info(
            f"Deposit {deposit.amount} into '{tree_id}' at leaf {index} "
            f"(commitment {short_hex(commitment)})"
        )
        return ref

    def submit_withdrawal(self, tree_id: str, recipient: bytes, instruction: bytes) -> str:
        withdrawal = decode_withdrawal_instruction(instruction)
        if not is_bytes32(recipient):
            raise TransactionRejectedError("Recipient must be 32 bytes")

        with self._lock:
            state = self._state(tree_id)

            if withdrawal.nullifier_hash in state.nullifiers:
                raise NullifierAlreadySpentError(withdrawal.nullifier_hash)
            if withdrawal.amount > state.balance:
                raise TransactionRejectedError(
                    f"Vault holds {state.balance}, cannot pay out {withdrawal.amount}"
                )

            try:
                public_inputs = encode_public_inputs(
                    state.tree.root,
                    withdrawal.nullifier_hash,
                    recipient,
                    withdrawal.amount,
                    withdrawal.new_commitment,
                )
            except FieldEncodingError as e:
                raise TransactionRejectedError(f"Invalid public input: {e}") from e

            if not self.prover.verify_proof(withdrawal.proof, public_inputs):
                raise TransactionRejectedError("Proof verification failed")

            state.nullifiers.add(withdrawal.nullifier_hash)
            state.balance -= withdrawal.amount
            if withdrawal.new_commitment != EMPTY_COMMITMENT:
                self._insert(state, withdrawal.new_commitment)
            ref = self._settlement_ref("withdraw", instruction)

        logger.info(
            f"Withdrew {withdrawal.amount} from '{tree_id}' "
            f"(nullifier {short_hex(withdrawal.nullifier_hash)})"
        )
        return ref
