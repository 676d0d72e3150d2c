"""Secret material, commitment and nullifier derivation.

    Precommitment  = H(secret || nullifier_secret)
    Commitment     = H(u64_le(amount) || precommitment)
    NullifierHash  = H(nullifier_secret)

The commitment is the Merkle leaf inserted at deposit time. The nullifier
hash is published at withdrawal and may be accepted by the ledger at most
once. It is only ever derived from the nullifier secret.
"""

import secrets
from typing import Optional, Tuple

from zkpool.crypto.field import FIELD_MODULUS
from zkpool.crypto.hasher import Hasher, get_hasher
from zkpool.exceptions import InvalidAmountError, InvalidSecretError, RandomnessUnavailableError
from zkpool.utils.encoding import U64_MAX

SECRET_SIZE = 32  # bytes
HASH_SIZE = 32


def generate_secret() -> bytes:
    """
    Draw 32 bytes of secret material from the OS CSPRNG.

    The value is drawn uniformly below the BN254 modulus so that it can be
    passed to the circuit as a canonical field element.

    Raises:
        RandomnessUnavailableError: If the OS has no secure randomness source
    """
    try:
        value = secrets.randbelow(FIELD_MODULUS)
    except NotImplementedError as e:
        raise RandomnessUnavailableError(f"No secure randomness source available: {e}") from e
    return value.to_bytes(SECRET_SIZE, "big")


def generate_secrets() -> Tuple[bytes, bytes]:
    """Generate an independent (secret, nullifier_secret) pair."""
    return generate_secret(), generate_secret()


def validate_secret(value: bytes, name: str = "secret") -> bytes:
    """Check that secret material is exactly 32 bytes."""
    if not isinstance(value, bytes) or len(value) != SECRET_SIZE:
        raise InvalidSecretError(f"{name} must be {SECRET_SIZE} bytes")
    return value


def validate_amount(amount: int) -> int:
    """
    Check that an amount is a positive u64.

    Raises:
        InvalidAmountError: If amount is not an int in [1, 2^64 - 1]
    """
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise InvalidAmountError(f"Amount must be an integer, got {type(amount).__name__}")
    if amount <= 0:
        raise InvalidAmountError("Amount must be greater than zero")
    if amount > U64_MAX:
        raise InvalidAmountError("Amount exceeds the u64 range")
    return amount


def compute_precommitment(
    secret: bytes, nullifier_secret: bytes, hasher: Optional[Hasher] = None
) -> bytes:
    """Compute H(secret || nullifier_secret)."""
    hasher = hasher or get_hasher()
    validate_secret(secret, "secret")
    validate_secret(nullifier_secret, "nullifier_secret")
    return hasher.hash(secret, nullifier_secret)


def compute_commitment(amount: int, precommitment: bytes, hasher: Optional[Hasher] = None) -> bytes:
    """
    Compute the tree leaf H(u64_le(amount) || precommitment).

    Args:
        amount: Value in the smallest unit (positive u64)
        precommitment: 32-byte precommitment

    Returns:
        bytes: 32-byte commitment
    """
    hasher = hasher or get_hasher()
    validate_amount(amount)
    validate_secret(precommitment, "precommitment")
    return hasher.hash(amount.to_bytes(8, "little"), precommitment)


def compute_nullifier_hash(nullifier_secret: bytes, hasher: Optional[Hasher] = None) -> bytes:
    """Compute H(nullifier_secret)."""
    hasher = hasher or get_hasher()
    validate_secret(nullifier_secret, "nullifier_secret")
    return hasher.hash(nullifier_secret)
