"""Custom exceptions for the privacy-pool client.

The hierarchy follows how callers are expected to react:

- InputValidationError: the request itself is wrong; never retry.
- MerkleTreeError / CommitmentNotFoundError: usually a stale leaf snapshot;
  the caller may refresh the leaves and try again.
- ProvingError: the proving backend or the witness encoding failed.
- LedgerError: raised by ledger clients and surfaced unmodified.
"""


class ZKPoolException(Exception):
    """Base exception for all privacy-pool client errors."""
    pass


# Input Validation Errors
class InputValidationError(ZKPoolException):
    """Base exception for locally detected invalid input."""
    pass


class InvalidAmountError(InputValidationError):
    """Raised when an amount is not a positive 64-bit unsigned integer."""
    pass


class InvalidWithdrawalAmountError(InvalidAmountError):
    """Raised when a withdrawal amount is zero or exceeds the note balance."""
    pass


class InvalidSecretError(InputValidationError):
    """Raised when secret material has the wrong type or length."""
    pass


class InvalidRecipientError(InputValidationError):
    """Raised when a recipient identifier is not 32 bytes."""
    pass


class InvalidMerklePathError(InputValidationError):
    """Raised when a Merkle path does not authenticate the note commitment."""
    pass


class NoteDecodeError(InputValidationError):
    """Raised when an encoded note is malformed or inconsistent."""
    pass


class UnsupportedNoteVersionError(NoteDecodeError):
    """Raised when an encoded note carries an unknown format version."""
    pass


# Cryptography Errors
class CryptoError(ZKPoolException):
    """Base exception for cryptographic errors."""
    pass


class RandomnessUnavailableError(CryptoError):
    """Raised when no cryptographically secure randomness source is available."""
    pass


class UnknownHasherError(CryptoError):
    """Raised when a hasher name is not registered."""
    pass


# Merkle Tree Errors
class MerkleTreeError(ZKPoolException):
    """Base exception for Merkle tree errors."""
    pass


class CommitmentNotFoundError(MerkleTreeError):
    """Raised when the target commitment is absent from the leaf set."""
    pass


class TreeFullError(MerkleTreeError):
    """Raised when a leaf set exceeds the tree capacity."""
    pass


# Proving Errors
class ProvingError(ZKPoolException):
    """Base exception for proof construction errors."""
    pass


class FieldEncodingError(ProvingError):
    """Raised when a proof input cannot be encoded as a field element."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Cannot encode '{field}': {reason}")


class ProverNotInitializedError(ProvingError):
    """Raised when the proving context is used before init() or after close()."""
    pass


class ProofGenerationError(ProvingError):
    """Raised when the proving backend fails to execute or prove."""
    pass


class ProofTimeoutError(ProofGenerationError):
    """Raised when the proving backend exceeds the caller's timeout."""
    pass


# Ledger Errors
class LedgerError(ZKPoolException):
    """Base exception for ledger interaction errors."""
    pass


class LedgerTimeoutError(LedgerError):
    """Raised when a ledger call exceeds the caller's timeout."""
    pass


class InstructionDecodeError(LedgerError):
    """Raised when an instruction payload cannot be decoded."""
    pass


class TransactionRejectedError(LedgerError):
    """Raised when the ledger rejects a submitted instruction."""
    pass


class NullifierAlreadySpentError(TransactionRejectedError):
    """Raised when the ledger has already accepted this nullifier hash."""

    def __init__(self, nullifier_hash: bytes):
        self.nullifier_hash = nullifier_hash
        super().__init__(f"Nullifier already spent: {nullifier_hash.hex()}")


class UnknownTreeError(LedgerError):
    """Raised when a tree identifier is not known to the ledger."""
    pass


# Orchestration Errors
class WithdrawalInProgressError(ZKPoolException):
    """Raised when a withdrawal for the same nullifier hash is already running."""
    pass


# Storage Errors
class StorageError(ZKPoolException):
    """Base exception for storage errors."""
    pass


class NoteNotFoundError(StorageError):
    """Raised when a note is not present in the note store."""
    pass
