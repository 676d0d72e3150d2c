"""Ledger boundary consumed by the client.

The ledger owns vault balances, the authoritative commitment tree and the
spent-nullifier records. Its data is trusted as authoritative; errors it
raises are surfaced to callers unmodified.
"""

from abc import ABC, abstractmethod
from typing import List

DEFAULT_TREE_ID = "native"


class LedgerClient(ABC):
    """Read and write interface of the pool program."""

    @abstractmethod
    def get_leaves(self, tree_id: str = DEFAULT_TREE_ID) -> List[bytes]:
        """Ordered 32-byte commitments of the tree, in insertion order."""

    @abstractmethod
    def get_current_root(self, tree_id: str = DEFAULT_TREE_ID) -> bytes:
        """Current 32-byte root of the tree."""

    @abstractmethod
    def submit_deposit(self, tree_id: str, instruction: bytes) -> str:
        """
        Submit a deposit_native payload.

        Returns:
            str: Settlement reference of the confirmed transaction
        """

    @abstractmethod
    def submit_withdrawal(self, tree_id: str, recipient: bytes, instruction: bytes) -> str:
        """
        Submit a withdraw_native payload paying out to recipient.

        Returns:
            str: Settlement reference of the confirmed transaction

        Raises:
            NullifierAlreadySpentError: If the nullifier hash was already accepted
            TransactionRejectedError: If the ledger rejects the instruction
        """
