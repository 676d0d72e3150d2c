"""Pytest configuration and fixtures."""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from zkpool.config import Settings, reset_settings
from zkpool.core.note import create_note
from zkpool.core.prover import MockProvingBackend, ProverContext
from zkpool.crypto.hasher import get_hasher
from zkpool.ledger.memory import InMemoryLedger
from zkpool.storage.database import NoteStore

GOLDEN_SECRET = bytes(31) + b"\x01"
GOLDEN_NULLIFIER_SECRET = bytes(31) + b"\x02"
GOLDEN_AMOUNT = 1_000_000_000

# Small trees keep path computation fast in tests
TEST_DEPTH = 8


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def hasher():
    """Default hash primitive."""
    return get_hasher()


@pytest.fixture
def sha_hasher():
    return get_hasher("sha256")


@pytest.fixture
def golden_note(hasher):
    """Note for the fixed secrets and 1_000_000_000 units."""
    return create_note(GOLDEN_SECRET, GOLDEN_NULLIFIER_SECRET, GOLDEN_AMOUNT, hasher)


@pytest.fixture
def settings():
    """Settings for a small test tree, ignoring the environment."""
    return Settings(_env_file=None, tree_depth=TEST_DEPTH, ledger_timeout=5.0, prover_timeout=5.0)


@pytest.fixture
def prover(hasher):
    """Initialized mock proving context."""
    with ProverContext(MockProvingBackend(hasher)) as context:
        yield context


@pytest.fixture
def ledger(prover, hasher):
    """Reference ledger verifying proofs with the mock prover."""
    return InMemoryLedger(prover, hasher, depth=TEST_DEPTH)


@pytest.fixture
def note_store(tmp_path, hasher):
    """Note store backed by a temporary SQLite file."""
    store = NoteStore(f"sqlite:///{tmp_path / 'notes.db'}", hasher)
    store.create_tables()
    yield store
    store.engine.dispose()
