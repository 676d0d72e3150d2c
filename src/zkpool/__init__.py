"""Main package initialization."""

__version__ = "0.1.0"
__author__ = "ZKPool Team"
__description__ = "Privacy-pool client: deposit notes, Merkle membership paths and withdrawal proof inputs"

from .core.merkle_tree import IncrementalMerkleTree, MerklePath, compute_path, compute_root, verify_path
from .core.note import DepositNote, create_note, decode_note, encode_note, generate_note
from .core.zkproof import ProofInputs, build_inputs
from .core.prover import MockProvingBackend, NoirCliBackend, ProverContext, create_prover
from .core.mixer import PrivacyPoolClient, WithdrawalReceipt

__all__ = [
    "IncrementalMerkleTree",
    "MerklePath",
    "compute_path",
    "compute_root",
    "verify_path",
    "DepositNote",
    "create_note",
    "decode_note",
    "encode_note",
    "generate_note",
    "ProofInputs",
    "build_inputs",
    "MockProvingBackend",
    "NoirCliBackend",
    "ProverContext",
    "create_prover",
    "PrivacyPoolClient",
    "WithdrawalReceipt",
]
