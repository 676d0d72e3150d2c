"""Merkle membership engine over the ledger's published leaf set.

Tree Structure:
    - Fixed depth D (default 20); must match the circuit and the ledger
    - Leaves appended left to right in deposit order
    - Unfilled subtrees take a per-level zero value:
          zero(0) = H(32 zero bytes)
          zero(k) = H(zero(k-1) || zero(k-1))
    - Padding is applied level by level; the 2^D leaf row is never built

The ledger is the source of truth for leaves. Paths are recomputed on demand
and never persisted.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Sequence, Tuple

from zkpool.crypto.hasher import Hasher, get_hasher
from zkpool.exceptions import CommitmentNotFoundError, MerkleTreeError, TreeFullError

DEFAULT_DEPTH = 20
MAX_DEPTH = 32
LEAF_SIZE = 32
EMPTY_LEAF_PREIMAGE = b"\x00" * 32


@dataclass(frozen=True)
class MerklePath:
    """
    Authentication path for one leaf.

    path_indices[i] is 0 when the running node is the left child at level i
    (the sibling is on the right) and 1 when it is the right child.
    """

    siblings: Tuple[bytes, ...]
    path_indices: Tuple[int, ...]
    root: bytes
    leaf_index: int

    @property
    def depth(self) -> int:
        return len(self.siblings)


def _check_depth(depth: int) -> None:
    if not isinstance(depth, int) or depth < 1 or depth > MAX_DEPTH:
        raise ValueError(f"Tree depth must be between 1 and {MAX_DEPTH}")


@lru_cache(maxsize=None)
def _zero_values(hasher: Hasher, depth: int) -> Tuple[bytes, ...]:
    values = [hasher.hash(EMPTY_LEAF_PREIMAGE)]
    for _ in range(depth):
        values.append(hasher.hash_pair(values[-1], values[-1]))
    return tuple(values)


def zero_values(hasher: Optional[Hasher] = None, depth: int = DEFAULT_DEPTH) -> Tuple[bytes, ...]:
    """
    Zero value of every level, zero(0) through zero(depth).

    zero(depth) is the root of an empty tree.
    """
    _check_depth(depth)
    return _zero_values(hasher or get_hasher(), depth)


def _parent_level(level_nodes: Sequence[bytes], zero: bytes, hasher: Hasher) -> List[bytes]:
    parents = []
    for i in range(0, len(level_nodes), 2):
        left = level_nodes[i]
        right = level_nodes[i + 1] if i + 1 < len(level_nodes) else zero
        parents.append(hasher.hash_pair(left, right))
    return parents


def _check_leaves(leaves: Sequence[bytes], depth: int) -> None:
    if len(leaves) > 2**depth:
        raise TreeFullError(f"Leaf set of {len(leaves)} exceeds capacity {2**depth}")
    for i, leaf in enumerate(leaves):
        if not isinstance(leaf, bytes) or len(leaf) != LEAF_SIZE:
            raise MerkleTreeError(f"Leaf {i} must be {LEAF_SIZE} bytes")


def compute_root(
    leaves: Sequence[bytes], hasher: Optional[Hasher] = None, depth: int = DEFAULT_DEPTH
) -> bytes:
    """
    Canonical root of a (possibly partial) leaf set.

    Args:
        leaves: Ordered leaves as published by the ledger
        hasher: Hash primitive
        depth: Tree depth

    Returns:
        bytes: 32-byte root; zero(depth) for an empty set
    """
    hasher = hasher or get_hasher()
    _check_depth(depth)
    _check_leaves(leaves, depth)
    zeros = zero_values(hasher, depth)

    level_nodes = list(leaves)
    for level in range(depth):
        if not level_nodes:
            return zeros[depth]
        level_nodes = _parent_level(level_nodes, zeros[level], hasher)
    return level_nodes[0] if level_nodes else zeros[depth]


def compute_path(
    leaves: Sequence[bytes],
    target_commitment: bytes,
    hasher: Optional[Hasher] = None,
    depth: int = DEFAULT_DEPTH,
) -> MerklePath:
    """
    Compute the authentication path and root for target_commitment.

    The leaf is located by equality scan; the first occurrence wins.

    Args:
        leaves: Ordered leaves as published by the ledger
        target_commitment: Leaf to prove membership of
        hasher: Hash primitive
        depth: Tree depth

    Returns:
        MerklePath: Siblings, side bits and root

    Raises:
        CommitmentNotFoundError: If target_commitment is not in leaves
        TreeFullError: If leaves exceed the tree capacity
    """
    hasher = hasher or get_hasher()
    _check_depth(depth)
    _check_leaves(leaves, depth)

    try:
        leaf_index = list(leaves).index(target_commitment)
    except ValueError:
        raise CommitmentNotFoundError(f"Commitment not in leaf set of {len(leaves)} leaves")

    zeros = zero_values(hasher, depth)
    siblings: List[bytes] = []
    indices: List[int] = []

    level_nodes = list(leaves)
    position = leaf_index

    for level in range(depth):
        sibling_position = position ^ 1
        if sibling_position < len(level_nodes):
            siblings.append(level_nodes[sibling_position])
        else:
            siblings.append(zeros[level])
        indices.append(position & 1)

        level_nodes = _parent_level(level_nodes, zeros[level], hasher)
        position >>= 1

    return MerklePath(
        siblings=tuple(siblings),
        path_indices=tuple(indices),
        root=level_nodes[0],
        leaf_index=leaf_index,
    )


def compute_root_from_path(
    leaf: bytes,
    siblings: Sequence[bytes],
    path_indices: Sequence[int],
    hasher: Optional[Hasher] = None,
) -> bytes:
    """
    Replay a path from leaf to root.

    Raises:
        ValueError: If the path is malformed
    """
    hasher = hasher or get_hasher()
    if len(siblings) != len(path_indices):
        raise ValueError("Siblings and path indices must have the same length")

    current = leaf
    for sibling, side in zip(siblings, path_indices):
        if side == 0:
            current = hasher.hash_pair(current, sibling)
        elif side == 1:
            current = hasher.hash_pair(sibling, current)
        else:
            raise ValueError(f"Path index must be 0 or 1, got {side!r}")
    return current


def verify_path(
    leaf: bytes,
    path: MerklePath,
    expected_root: bytes,
    hasher: Optional[Hasher] = None,
    depth: Optional[int] = None,
) -> bool:
    """
    Check that path authenticates leaf under expected_root.

    Usable without the leaf set. Malformed input yields False rather than
    an exception.

    Args:
        leaf: 32-byte leaf value
        path: Path to replay (its own root field is not trusted)
        expected_root: Root to compare against
        hasher: Hash primitive
        depth: Required path length, if known

    Returns:
        bool: True if the replayed root equals expected_root
    """
    try:
        if not isinstance(leaf, bytes) or len(leaf) != LEAF_SIZE:
            return False
        if not isinstance(expected_root, bytes) or len(expected_root) != LEAF_SIZE:
            return False
        if depth is not None and len(path.siblings) != depth:
            return False

        computed = compute_root_from_path(leaf, path.siblings, path.path_indices, hasher)
        return computed == expected_root

    except (ValueError, TypeError, AttributeError):
        return False


def leaves_from_account_data(data: bytes, count: int) -> List[bytes]:
    """
    Slice a raw leaf buffer (consecutive 32-byte records) into leaves.

    Args:
        data: Raw account bytes holding the leaf array
        count: Number of leaves in use (the ledger's next index)

    Raises:
        MerkleTreeError: If data holds fewer than count leaves
    """
    if count < 0:
        raise MerkleTreeError("Leaf count must be non-negative")
    if len(data) < count * LEAF_SIZE:
        raise MerkleTreeError(
            f"Account data holds {len(data) // LEAF_SIZE} leaves, expected {count}"
        )
    return [bytes(data[i * LEAF_SIZE:(i + 1) * LEAF_SIZE]) for i in range(count)]


class IncrementalMerkleTree:
    """
    Append-only tree that keeps one filled subtree per level.

    Each insert updates the root in O(depth) hashes. The root always equals
    compute_root() over the same leaves.
    """

    def __init__(self, depth: int = DEFAULT_DEPTH, hasher: Optional[Hasher] = None):
        """
        Initialize empty tree.

        Args:
            depth: Tree depth

        Raises:
            ValueError: If depth is invalid
        """
        _check_depth(depth)
        self.depth = depth
        self.hasher = hasher or get_hasher()
        self.max_leaves = 2**depth

        self.leaves: List[bytes] = []
        self._zeros = zero_values(self.hasher, depth)
        self._filled_subtrees: List[bytes] = list(self._zeros[:depth])
        self._root = self._zeros[depth]

    def insert(self, leaf: bytes) -> int:
        """
        Append a leaf and return its index.

        Raises:
            ValueError: If leaf is not 32 bytes
            TreeFullError: If the tree is full
        """
        if not isinstance(leaf, bytes) or len(leaf) != LEAF_SIZE:
            raise ValueError("Leaf must be 32 bytes")

        if len(self.leaves) >= self.max_leaves:
            raise TreeFullError(f"Tree is full (max {self.max_leaves} leaves)")

        leaf_index = len(self.leaves)
        self.leaves.append(leaf)

        current = leaf
        position = leaf_index
        for level in range(self.depth):
            if position % 2 == 0:
                self._filled_subtrees[level] = current
                current = self.hasher.hash_pair(current, self._zeros[level])
            else:
                current = self.hasher.hash_pair(self._filled_subtrees[level], current)
            position >>= 1

        self._root = current
        return leaf_index

    def path(self, commitment: bytes) -> MerklePath:
        """Authentication path for a stored leaf."""
        return compute_path(self.leaves, commitment, self.hasher, self.depth)

    @property
    def root(self) -> bytes:
        """Get the current Merkle root hash."""
        return self._root

    def __len__(self) -> int:
        """Return the number of leaves in the tree."""
        return len(self.leaves)

    def __repr__(self) -> str:
        """String representation of the tree."""
        return (
            f"IncrementalMerkleTree(depth={self.depth}, "
            f"leaves={len(self.leaves)}/{self.max_leaves}, "
            f"root={self.root.hex()[:16]}...)"
        )
