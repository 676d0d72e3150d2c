"""Algebraic sponge hash over the BN254 scalar field.

A Poseidon-style permutation (HADES design: full rounds around a block of
partial rounds, x^5 S-box, MDS mixing) used in sponge mode so that the same
function can be evaluated natively and inside an arithmetic circuit.

Parameters:
    - Width 3: one capacity element, two rate elements
    - 8 full rounds, 57 partial rounds, alpha = 5
    - MDS: Cauchy matrix M[i][j] = 1 / (i + (3 + j))
    - Round constants: SHA-256(seed || u32_be(i)) mod p

Byte encoding:
    The concatenated input is split into 31-byte chunks, each read
    big-endian (so every chunk is below p). The capacity element is seeded
    with the input length in bytes, which makes zero-padding of the final
    block unambiguous. The digest is the first rate element after the last
    permutation, written as 32 big-endian bytes.

Warning:
    A deployment must use exactly the parameter set its circuit and on-chain
    verifier use. These constants are this package's parameter set; swapping
    in another one means registering another Hasher, not editing callers.
"""

import hashlib
from typing import List, Sequence, Tuple

from zkpool.crypto.field import FIELD_MODULUS

WIDTH = 3
FULL_ROUNDS = 8
PARTIAL_ROUNDS = 57
ALPHA = 5
RATE = WIDTH - 1
CHUNK_SIZE = 31
ROUND_CONSTANT_SEED = b"zkpool.poseidon-sponge.v1"


def _generate_round_constants() -> Tuple[int, ...]:
    count = (FULL_ROUNDS + PARTIAL_ROUNDS) * WIDTH
    return tuple(
        int.from_bytes(
            hashlib.sha256(ROUND_CONSTANT_SEED + i.to_bytes(4, "big")).digest(), "big"
        )
        % FIELD_MODULUS
        for i in range(count)
    )


def _generate_mds() -> Tuple[Tuple[int, ...], ...]:
    return tuple(
        tuple(pow(i + WIDTH + j, -1, FIELD_MODULUS) for j in range(WIDTH))
        for i in range(WIDTH)
    )


ROUND_CONSTANTS = _generate_round_constants()
MDS_MATRIX = _generate_mds()


def permute(state: Sequence[int]) -> List[int]:
    """
    Apply the full permutation to a width-3 state.

    Args:
        state: Three field elements

    Returns:
        List[int]: Permuted state
    """
    if len(state) != WIDTH:
        raise ValueError(f"State must have exactly {WIDTH} elements")

    p = FIELD_MODULUS
    current = [s % p for s in state]
    half = FULL_ROUNDS // 2

    for rnd in range(FULL_ROUNDS + PARTIAL_ROUNDS):
        offset = rnd * WIDTH
        current = [(s + ROUND_CONSTANTS[offset + k]) % p for k, s in enumerate(current)]

        if rnd < half or rnd >= half + PARTIAL_ROUNDS:
            current = [pow(s, ALPHA, p) for s in current]
        else:
            current[0] = pow(current[0], ALPHA, p)

        current = [sum(m * s for m, s in zip(row, current)) % p for row in MDS_MATRIX]

    return current


def bytes_to_elements(data: bytes) -> List[int]:
    """Pack bytes into 31-byte big-endian field elements, padded to the rate."""
    elements = [
        int.from_bytes(data[i:i + CHUNK_SIZE], "big") for i in range(0, len(data), CHUNK_SIZE)
    ]
    if not elements:
        elements = [0] * RATE
    while len(elements) % RATE:
        elements.append(0)
    return elements


def sponge_hash(data: bytes) -> bytes:
    """
    Hash a byte string with the sponge.

    Args:
        data: Arbitrary-length input

    Returns:
        bytes: 32-byte digest, always a canonical field element
    """
    p = FIELD_MODULUS
    state = [len(data) % p, 0, 0]

    elements = bytes_to_elements(data)
    for i in range(0, len(elements), RATE):
        for k in range(RATE):
            state[1 + k] = (state[1 + k] + elements[i + k]) % p
        state = permute(state)

    return state[1].to_bytes(32, "big")
