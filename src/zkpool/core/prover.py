"""Proving backend boundary and the owned proving context.

The backend (circuit execution + proof generation) is external. This module
only hands it the field-encoded witness map and forwards the opaque proof
bytes it returns.

Instead of a process-wide singleton, callers construct a ProverContext,
initialize it once (idempotent) and release it explicitly:

    with ProverContext(NoirCliBackend("mixer")) as prover:
        proof = prover.generate_proof(inputs, timeout=120)
"""

import hashlib
import json
import logging
import shutil
import subprocess
import tempfile
import threading
import uuid
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from zkpool.config import Settings, get_settings
from zkpool.core.zkproof import ProofInputs, encode_witness
from zkpool.crypto.field import field_to_bytes
from zkpool.crypto.hasher import Hasher
from zkpool.exceptions import (
    ProofGenerationError,
    ProofTimeoutError,
    ProverNotInitializedError,
)
from zkpool.utils.timeouts import call_with_timeout

logger = logging.getLogger(__name__)

InputMap = Mapping[str, Union[str, List[str]]]


class ProvingBackend(ABC):
    """Circuit execution and proof generation/verification."""

    def load(self) -> None:
        """Acquire backend resources. Called once by ProverContext.init()."""

    @abstractmethod
    def execute(self, private_inputs: InputMap, public_inputs: Mapping[str, str]) -> Any:
        """Run the circuit on the inputs and return a witness."""

    @abstractmethod
    def generate_proof(self, witness: Any) -> bytes:
        """Produce proof bytes for a witness."""

    @abstractmethod
    def verify_proof(self, proof: bytes, public_inputs: Mapping[str, str]) -> bool:
        """Check proof bytes against the public inputs."""

    def destroy(self) -> None:
        """Release backend resources. Called once by ProverContext.close()."""


class MockProvingBackend(ProvingBackend):
    """
    Deterministic stand-in backend for tests and dry runs.

    Proofs are 256 bytes derived from the public inputs, so a proof only
    verifies against the inputs it was made for. When a hasher is given,
    execute() also checks nullifier_hash == H(nullifier_secret), which is
    the one circuit constraint checkable without the note amount.

    Proves nothing about the secrets; never use against a real ledger.
    """

    PROOF_SIZE = 256

    def __init__(self, hasher: Optional[Hasher] = None):
        self.hasher = hasher
        self.loaded = False
        self.proofs_generated = 0

    def load(self) -> None:
        self.loaded = True

    def destroy(self) -> None:
        self.loaded = False

    def execute(self, private_inputs: InputMap, public_inputs: Mapping[str, str]) -> Any:
        if self.hasher is not None:
            nullifier_secret = field_to_bytes(int(private_inputs["nullifier_secret"]))
            expected = int.from_bytes(self.hasher.hash(nullifier_secret), "big")
            if expected != int(public_inputs["nullifier_hash"]):
                raise ValueError("Witness constraint failed: nullifier_hash")
        return dict(public_inputs)

    def generate_proof(self, witness: Any) -> bytes:
        self.proofs_generated += 1
        return self._proof_for(witness)

    def verify_proof(self, proof: bytes, public_inputs: Mapping[str, str]) -> bool:
        return proof == self._proof_for(public_inputs)

    def _proof_for(self, public_inputs: Mapping[str, str]) -> bytes:
        seed = json.dumps(dict(public_inputs), sort_keys=True).encode("utf-8")
        blocks = [
            hashlib.sha256(b"zkpool.mock-proof" + seed + i.to_bytes(4, "big")).digest()
            for i in range(self.PROOF_SIZE // 32)
        ]
        return b"".join(blocks)


def _toml_value(value: Union[str, List[str]]) -> str:
    if isinstance(value, list):
        return "[" + ", ".join(f'"{item}"' for item in value) + "]"
    return f'"{value}"'


def render_prover_toml(private_inputs: InputMap, public_inputs: Mapping[str, str]) -> str:
    """Render inputs in Noir's Prover.toml format."""
    lines = [f"{key} = {_toml_value(value)}" for key, value in private_inputs.items()]
    lines.extend(f"{key} = {_toml_value(value)}" for key, value in public_inputs.items())
    return "\n".join(lines) + "\n"


class NoirCliBackend(ProvingBackend):
    """
    Noir circuit executed with `nargo`, proved and verified with `bb`.

    Expects a compiled circuit: <circuit_dir>/target/<circuit_name>.json.
    """

    WITNESS_PREFIX = "withdraw_witness"

    def __init__(
        self,
        circuit_dir: Union[str, Path],
        circuit_name: str = "mixer",
        nargo_bin: str = "nargo",
        bb_bin: str = "bb",
        command_timeout: Optional[float] = None,
    ):
        self.circuit_dir = Path(circuit_dir)
        self.circuit_name = circuit_name
        self.nargo_bin = nargo_bin
        self.bb_bin = bb_bin
        self.command_timeout = command_timeout
        self._workdir: Optional[Path] = None

    @property
    def bytecode_path(self) -> Path:
        return self.circuit_dir / "target" / f"{self.circuit_name}.json"

    def load(self) -> None:
        for binary in (self.nargo_bin, self.bb_bin):
            if shutil.which(binary) is None:
                raise FileNotFoundError(f"'{binary}' not found on PATH")
        if not self.bytecode_path.exists():
            raise FileNotFoundError(f"Compiled circuit not found: {self.bytecode_path}")

        self._workdir = Path(tempfile.mkdtemp(prefix="zkpool-bb-"))
        self._run([self.bb_bin, "write_vk", "-b", str(self.bytecode_path), "-o", str(self._workdir)])
        logger.info(f"Loaded Noir circuit {self.bytecode_path}")

    def destroy(self) -> None:
        if self._workdir is not None:
            shutil.rmtree(self._workdir, ignore_errors=True)
            self._workdir = None

    def _run(self, cmd: List[str], cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
        logger.debug(f"Running {' '.join(cmd)}")
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=self.command_timeout,
        )
        if result.returncode != 0:
            raise RuntimeError(
                f"{cmd[0]} {cmd[1]} failed (exit {result.returncode}): {result.stderr.strip()}"
            )
        return result

    def _require_workdir(self) -> Path:
        if self._workdir is None:
            raise RuntimeError("Backend not loaded")
        return self._workdir

    def execute(self, private_inputs: InputMap, public_inputs: Mapping[str, str]) -> Path:
        # Per-call input and witness names; concurrent proofs share circuit_dir
        tag = uuid.uuid4().hex[:12]
        prover_name = f"Prover_{tag}"
        witness_name = f"{self.WITNESS_PREFIX}_{tag}"
        prover_toml = self.circuit_dir / f"{prover_name}.toml"

        prover_toml.write_text(render_prover_toml(private_inputs, public_inputs), encoding="utf-8")
        try:
            self._run(
                [self.nargo_bin, "execute", "--prover-name", prover_name, witness_name],
                cwd=self.circuit_dir,
            )
        finally:
            prover_toml.unlink(missing_ok=True)
        return self.circuit_dir / "target" / f"{witness_name}.gz"

    def generate_proof(self, witness: Path) -> bytes:
        out_dir = Path(tempfile.mkdtemp(dir=self._require_workdir()))
        try:
            self._run(
                [
                    self.bb_bin, "prove",
                    "-b", str(self.bytecode_path),
                    "-w", str(witness),
                    "-o", str(out_dir),
                ]
            )
        finally:
            witness.unlink(missing_ok=True)
        return (out_dir / "proof").read_bytes()

    def verify_proof(self, proof: bytes, public_inputs: Mapping[str, str]) -> bool:
        workdir = self._require_workdir()
        check_dir = Path(tempfile.mkdtemp(dir=workdir))
        proof_path = check_dir / "proof"
        inputs_path = check_dir / "public_inputs"
        proof_path.write_bytes(proof)
        inputs_path.write_bytes(b"".join(field_to_bytes(int(v)) for v in public_inputs.values()))

        result = subprocess.run(
            [
                self.bb_bin, "verify",
                "-k", str(workdir / "vk"),
                "-p", str(proof_path),
                "-i", str(inputs_path),
            ],
            capture_output=True,
            text=True,
            timeout=self.command_timeout,
        )
        return result.returncode == 0


class ProverContext:
    """
    Owned handle on a proving backend.

    init() is idempotent and thread-safe; close() releases the backend and
    the worker pool. A closed context cannot be reused.
    """

    def __init__(
        self,
        backend: ProvingBackend,
        default_timeout: Optional[float] = None,
        max_workers: int = 2,
    ):
        self.backend = backend
        self.default_timeout = default_timeout
        self._max_workers = max_workers
        self._lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._closed = False

    @property
    def initialized(self) -> bool:
        return self._executor is not None

    def init(self) -> "ProverContext":
        """
        Load the backend once.

        Raises:
            ProverNotInitializedError: If the context was closed
            ProofGenerationError: If the backend is unavailable
        """
        with self._lock:
            if self._closed:
                raise ProverNotInitializedError("Prover context has been closed")
            if self._executor is None:
                try:
                    self.backend.load()
                except Exception as e:
                    raise ProofGenerationError(f"Proving backend unavailable: {e}") from e
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="zkpool-prover"
                )
                logger.info(f"Initialized proving backend {type(self.backend).__name__}")
        return self

    def close(self) -> None:
        """
        Release the backend. Safe to call more than once.

        Queued work is cancelled; work already running (including attempts
        abandoned after a timeout) finishes before the backend is destroyed.
        """
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True, cancel_futures=True)
                self._executor = None
                self.backend.destroy()
                logger.info("Closed proving backend")
            self._closed = True

    def __enter__(self) -> "ProverContext":
        return self.init()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_executor(self) -> ThreadPoolExecutor:
        executor = self._executor
        if executor is None:
            raise ProverNotInitializedError("Call init() before using the prover")
        return executor

    def generate_proof(self, inputs: ProofInputs, timeout: Optional[float] = None) -> bytes:
        """
        Encode inputs, run the backend and return the proof bytes.

        Args:
            inputs: Assembled withdrawal inputs
            timeout: Seconds before the attempt is abandoned

        Raises:
            FieldEncodingError: If an input cannot be field-encoded
            ProofTimeoutError: If the backend exceeds the timeout
            ProofGenerationError: If witness generation or proving fails
        """
        executor = self._require_executor()
        witness_map = encode_witness(inputs)

        def _prove() -> bytes:
            witness = self.backend.execute(witness_map.private, witness_map.public)
            return self.backend.generate_proof(witness)

        try:
            proof = call_with_timeout(
                executor,
                _prove,
                timeout if timeout is not None else self.default_timeout,
                ProofTimeoutError,
                "Proof generation",
            )
        except ProofTimeoutError:
            raise
        except Exception as e:
            raise ProofGenerationError(f"Failed to generate proof: {e}") from e

        if not isinstance(proof, (bytes, bytearray)) or not proof:
            raise ProofGenerationError("Proving backend returned an empty proof")

        logger.info(f"Generated proof of {len(proof)} bytes")
        return bytes(proof)

    def verify_proof(
        self, proof: bytes, public_inputs: Mapping[str, str], timeout: Optional[float] = None
    ) -> bool:
        """
        Verify proof bytes against encoded public inputs.

        Raises:
            ProofTimeoutError: If the backend exceeds the timeout
            ProofGenerationError: If the backend fails while verifying
        """
        executor = self._require_executor()
        try:
            return bool(
                call_with_timeout(
                    executor,
                    lambda: self.backend.verify_proof(proof, public_inputs),
                    timeout if timeout is not None else self.default_timeout,
                    ProofTimeoutError,
                    "Proof verification",
                )
            )
        except ProofTimeoutError:
            raise
        except Exception as e:
            raise ProofGenerationError(f"Failed to verify proof: {e}") from e

    def public_inputs(self, inputs: ProofInputs) -> Mapping[str, str]:
        """Encoded public inputs for inputs, as this context proves them."""
        return encode_witness(inputs).public


def create_prover(settings: Optional[Settings] = None) -> ProverContext:
    """Build an uninitialized ProverContext for the configured Noir circuit."""
    settings = settings or get_settings()
    backend = NoirCliBackend(
        settings.circuit_dir,
        circuit_name=settings.circuit_name,
        nargo_bin=settings.nargo_bin,
        bb_bin=settings.bb_bin,
        command_timeout=settings.prover_timeout,
    )
    return ProverContext(
        backend,
        default_timeout=settings.prover_timeout,
    )
