"""Named hash primitive used for every commitment, nullifier and tree node.

Every caller goes through a Hasher instance, so the function that must match
the proving circuit and the on-chain verifier bit-for-bit is selected in one
place (the ``hasher`` setting) and never hard-coded at a call site.
"""

import hashlib
from abc import ABC, abstractmethod
from typing import Dict, Type

from Crypto.Hash import keccak

from zkpool.crypto.field import field_to_bytes
from zkpool.crypto.sponge import sponge_hash
from zkpool.exceptions import UnknownHasherError

DIGEST_SIZE = 32


class Hasher(ABC):
    """Fixed-output hash over concatenated byte strings."""

    name: str = ""

    def hash(self, *parts: bytes) -> bytes:
        """
        Hash the concatenation of parts.

        Args:
            *parts: Byte strings, concatenated in order before hashing

        Returns:
            bytes: 32-byte digest
        """
        for part in parts:
            if not isinstance(part, (bytes, bytearray)):
                raise TypeError(f"Hash input must be bytes, got {type(part).__name__}")
        return self._digest(b"".join(parts))

    def hash_pair(self, left: bytes, right: bytes) -> bytes:
        """
        Hash two 32-byte tree nodes, left first.

        Raises:
            ValueError: If either node is not 32 bytes
        """
        if not isinstance(left, bytes) or len(left) != DIGEST_SIZE:
            raise ValueError("Left hash must be 32 bytes")
        if not isinstance(right, bytes) or len(right) != DIGEST_SIZE:
            raise ValueError("Right hash must be 32 bytes")
        return self._digest(left + right)

    @abstractmethod
    def _digest(self, data: bytes) -> bytes:
        """Hash a single byte string."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class PoseidonSpongeHasher(Hasher):
    """Circuit-friendly sponge over the BN254 scalar field (default)."""

    name = "poseidon-sponge"

    def _digest(self, data: bytes) -> bytes:
        return sponge_hash(data)


def _reduce(digest: bytes) -> bytes:
    return field_to_bytes(int.from_bytes(digest, "big"))


class Sha256Hasher(Hasher):
    """
    SHA-256 with the digest reduced modulo the BN254 prime.

    Same value a circuit gets from `Field::from_be_bytes(sha256(..))`, so
    every node and nullifier hash stays a canonical field element.
    """

    name = "sha256"

    def _digest(self, data: bytes) -> bytes:
        return _reduce(hashlib.sha256(data).digest())


class Keccak256Hasher(Hasher):
    """Keccak-256 (pre-standard SHA-3 padding), reduced modulo the BN254 prime."""

    name = "keccak256"

    def _digest(self, data: bytes) -> bytes:
        return _reduce(keccak.new(digest_bits=256, data=data).digest())


_REGISTRY: Dict[str, Type[Hasher]] = {
    PoseidonSpongeHasher.name: PoseidonSpongeHasher,
    Sha256Hasher.name: Sha256Hasher,
    Keccak256Hasher.name: Keccak256Hasher,
}

_instances: Dict[str, Hasher] = {}

DEFAULT_HASHER = PoseidonSpongeHasher.name


def available_hashers() -> list:
    """Names of all registered hashers."""
    return sorted(_REGISTRY)


def get_hasher(name: str = DEFAULT_HASHER) -> Hasher:
    """
    Resolve a registered hasher by name.

    Hashers are stateless, so one shared instance per name is returned.

    Raises:
        UnknownHasherError: If no hasher is registered under name
    """
    if name not in _REGISTRY:
        raise UnknownHasherError(
            f"Unknown hasher '{name}' (available: {', '.join(available_hashers())})"
        )
    if name not in _instances:
        _instances[name] = _REGISTRY[name]()
    return _instances[name]
