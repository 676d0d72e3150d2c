"""BN254 scalar field helpers.

All commitments, nullifier hashes and tree nodes that cross into the proving
circuit are interpreted as elements of the BN254 scalar field. A 32-byte value
maps to a field element by reading it as a big-endian integer.
"""

from zkpool.exceptions import FieldEncodingError

# BN254 (alt_bn128) scalar field modulus
FIELD_MODULUS = 21888242871839275222246405745257275088548364400416034343698204186575808495617

FIELD_BYTES = 32


def bytes_to_field(value: bytes, name: str = "value") -> int:
    """
    Read a 32-byte big-endian value as a canonical field element.

    Args:
        value: 32-byte big-endian encoding
        name: Field name used in error messages

    Returns:
        int: Field element in [0, p)

    Raises:
        FieldEncodingError: If the value is not 32 bytes or is >= p
    """
    if not isinstance(value, bytes) or len(value) != FIELD_BYTES:
        raise FieldEncodingError(name, "expected 32 bytes")
    element = int.from_bytes(value, "big")
    if element >= FIELD_MODULUS:
        raise FieldEncodingError(name, "value is not a canonical BN254 field element")
    return element


def bytes_to_field_mod(value: bytes, name: str = "value") -> int:
    """Read a 32-byte big-endian value reduced modulo p."""
    if not isinstance(value, bytes) or len(value) != FIELD_BYTES:
        raise FieldEncodingError(name, "expected 32 bytes")
    return int.from_bytes(value, "big") % FIELD_MODULUS


def field_to_bytes(element: int) -> bytes:
    """Encode a field element as 32 big-endian bytes."""
    return (element % FIELD_MODULUS).to_bytes(FIELD_BYTES, "big")


def is_canonical(value: bytes) -> bool:
    """Check whether a 32-byte value is a canonical field element."""
    return len(value) == FIELD_BYTES and int.from_bytes(value, "big") < FIELD_MODULUS
