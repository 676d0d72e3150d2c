"""Tests for the hash primitive and the sponge permutation."""

import pytest
from hypothesis import given, strategies as st, settings

from zkpool.crypto.field import FIELD_MODULUS
from zkpool.crypto.hasher import (
    Keccak256Hasher,
    PoseidonSpongeHasher,
    Sha256Hasher,
    available_hashers,
    get_hasher,
)
from zkpool.crypto.sponge import (
    MDS_MATRIX,
    ROUND_CONSTANTS,
    WIDTH,
    bytes_to_elements,
    permute,
    sponge_hash,
)
from zkpool.exceptions import UnknownHasherError


class TestSpongeParameters:
    """Pinned parameter set of the sponge."""

    def test_round_constant_count(self):
        assert len(ROUND_CONSTANTS) == (8 + 57) * WIDTH

    def test_first_round_constant(self):
        assert ROUND_CONSTANTS[0] == (
            12883433631785686194644943311380296432962530871573770667166333227358712065442
        )

    def test_mds_first_entry(self):
        """M[0][0] = 1/3 mod p."""
        assert MDS_MATRIX[0][0] == (
            14592161914559516814830937163504850059032242933610689562465469457717205663745
        )
        assert (MDS_MATRIX[0][0] * 3) % FIELD_MODULUS == 1

    def test_all_constants_in_field(self):
        assert all(0 <= c < FIELD_MODULUS for c in ROUND_CONSTANTS)


class TestSponge:
    """Tests for sponge hashing."""

    def test_empty_input_vector(self):
        assert sponge_hash(b"").hex() == (
            "1556222a6770dbc4efc47b2a55932ef83e1c5a9e528a00c9d9772ce9d0ea4132"
        )

    def test_empty_input_packs_to_one_block(self):
        assert bytes_to_elements(b"") == [0, 0]

    def test_packing_pads_to_rate(self):
        elements = bytes_to_elements(b"\x01" * 32)
        assert len(elements) == 2
        assert elements[1] == 1

    def test_length_separates_zero_padding(self):
        """Trailing zero bytes change the digest."""
        assert sponge_hash(b"\x00") != sponge_hash(b"\x00\x00")
        assert sponge_hash(b"") != sponge_hash(b"\x00")

    def test_permute_rejects_wrong_width(self):
        with pytest.raises(ValueError):
            permute([1, 2])

    @given(st.binary(max_size=200))
    @settings(max_examples=25, deadline=None)
    def test_output_is_canonical(self, data: bytes):
        digest = sponge_hash(data)
        assert len(digest) == 32
        assert int.from_bytes(digest, "big") < FIELD_MODULUS


class TestHasher:
    """Tests for the hasher interface and registry."""

    def test_default_is_sponge(self):
        assert isinstance(get_hasher(), PoseidonSpongeHasher)

    def test_registry_names(self):
        assert available_hashers() == ["keccak256", "poseidon-sponge", "sha256"]

    def test_instances_are_shared(self):
        assert get_hasher("sha256") is get_hasher("sha256")

    def test_unknown_hasher(self):
        with pytest.raises(UnknownHasherError):
            get_hasher("md5")

    def test_hash_concatenates_parts(self):
        for name in available_hashers():
            h = get_hasher(name)
            assert h.hash(b"ab", b"cd") == h.hash(b"abcd")

    def test_hash_pair_matches_hash(self):
        h = get_hasher()
        left, right = b"\x01" * 32, b"\x02" * 32
        assert h.hash_pair(left, right) == h.hash(left, right)
        assert h.hash_pair(left, right) != h.hash_pair(right, left)

    def test_hash_pair_rejects_short_nodes(self):
        with pytest.raises(ValueError):
            get_hasher().hash_pair(b"\x01" * 31, b"\x02" * 32)

    def test_hash_rejects_non_bytes(self):
        with pytest.raises(TypeError):
            get_hasher().hash("abc")

    def test_sha256_known_value(self):
        # sha256("abc") = ba7816bf...f20015ad, reduced mod p
        assert Sha256Hasher().hash(b"abc").hex() == (
            "294b2b66eb6cef6d18506fbad92a190c3767a8ca28eb28e8e86b1ea6220015aa"
        )

    def test_keccak256_known_value(self):
        # keccak256("") = c5d24601...5d85a470, reduced mod p
        assert Keccak256Hasher().hash(b"").hex() == (
            "04410c360230a295b13d66d8d6c1a24c44311531e39c64f66c7301b49d85a46c"
        )

    @pytest.mark.parametrize("name", ["sha256", "keccak256"])
    @given(data=st.binary(max_size=96))
    @settings(max_examples=50, deadline=None)
    def test_digests_are_field_elements(self, name, data):
        assert int.from_bytes(get_hasher(name).hash(data), "big") < FIELD_MODULUS
