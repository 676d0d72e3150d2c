"""Cryptographic primitives module"""

from zkpool.crypto.field import FIELD_MODULUS, bytes_to_field, field_to_bytes
from zkpool.crypto.hasher import (
    Hasher,
    PoseidonSpongeHasher,
    Sha256Hasher,
    Keccak256Hasher,
    available_hashers,
    get_hasher,
)

__all__ = [
    'FIELD_MODULUS',
    'bytes_to_field',
    'field_to_bytes',
    'Hasher',
    'PoseidonSpongeHasher',
    'Sha256Hasher',
    'Keccak256Hasher',
    'available_hashers',
    'get_hasher',
]
