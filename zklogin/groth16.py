"""Groth16 over BN254 through zksnake: key documents, setup, proving, verification."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from zksnake.groth16 import Groth16
from zksnake.groth16 import Proof as EngineProof
from zksnake.groth16 import ProvingKey as EngineProvingKey
from zksnake.groth16 import VerifyingKey as EngineVerifyingKey

from .circuit import Assignment, CompiledCircuit
from .constants import CURVE, ENGINE_CURVE, PROTOCOL
from .errors import ArtifactError, MalformedProofError, WitnessError
from .proof import G1_HEX_LENGTH, G2_HEX_LENGTH, Groth16Proof, point_from_hex, point_to_hex

logger = logging.getLogger(__name__)

# alpha_1, beta_2, delta_2, beta_1, delta_1 as compressed 32-byte words
_PROVING_KEY_HEADER = 7 * 32


@dataclass(frozen=True)
class VerificationKey:
    circuit_id: str
    key: EngineVerifyingKey

    @property
    def n_public(self) -> int:
        return len(self.key.ic) - 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "protocol": PROTOCOL,
            "curve": CURVE,
            "circuit_id": self.circuit_id,
            "nPublic": self.n_public,
            "vk_alpha_1": point_to_hex(self.key.alpha_1),
            "vk_beta_2": point_to_hex(self.key.beta_2),
            "vk_gamma_2": point_to_hex(self.key.gamma_2),
            "vk_delta_2": point_to_hex(self.key.delta_2),
            "IC": [point_to_hex(point) for point in self.key.ic],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VerificationKey":
        try:
            _check_header(data)
            ic = data["IC"]
            if not isinstance(ic, list) or not ic:
                raise ValueError("IC must be a non-empty list")
            key = EngineVerifyingKey(
                point_from_hex(data["vk_alpha_1"], G1_HEX_LENGTH, "vk_alpha_1"),
                point_from_hex(data["vk_beta_2"], G2_HEX_LENGTH, "vk_beta_2"),
                point_from_hex(data["vk_gamma_2"], G2_HEX_LENGTH, "vk_gamma_2"),
                point_from_hex(data["vk_delta_2"], G2_HEX_LENGTH, "vk_delta_2"),
                [point_from_hex(point, G1_HEX_LENGTH, "IC") for point in ic],
            )
            verification_key = cls(circuit_id=str(data["circuit_id"]), key=key)
        except (KeyError, TypeError, ValueError, MalformedProofError) as exc:
            raise ArtifactError(f"Invalid verification key: {exc}") from exc
        if verification_key.n_public != data.get("nPublic", verification_key.n_public):
            raise ArtifactError("Verification key IC length does not match nPublic")
        return verification_key


@dataclass(frozen=True)
class ProvingKey:
    circuit_id: str
    key: EngineProvingKey

    def to_bytes(self) -> bytes:
        return bytes(self.key.to_bytes())

    @classmethod
    def from_bytes(cls, circuit_id: str, raw: bytes) -> "ProvingKey":
        if len(raw) < _PROVING_KEY_HEADER:
            raise ArtifactError("Invalid proving key: truncated header")
        try:
            key = EngineProvingKey.from_bytes(raw, ENGINE_CURVE)
        except ValueError as exc:
            raise ArtifactError(f"Invalid proving key: {exc}") from exc
        return cls(circuit_id=circuit_id, key=key)


def _check_header(data: Mapping[str, Any]) -> None:
    if data.get("protocol") != PROTOCOL:
        raise ValueError(f"unsupported protocol {data.get('protocol')!r}")
    if data.get("curve", CURVE) != CURVE:
        raise ValueError(f"unsupported curve {data.get('curve')!r}")


def setup(circuit: CompiledCircuit) -> Tuple[ProvingKey, VerificationKey]:
    """Run a single-party trusted setup for ``circuit``.

    zksnake samples the toxic waste inside :meth:`Groth16.setup` and does not
    keep it.
    """

    started = time.perf_counter()
    system = Groth16(circuit.r1cs, ENGINE_CURVE)
    system.setup()
    logger.info(
        "Trusted setup finished for circuit %s (%d constraints, domain %d) in %.1fs",
        circuit.digest[:16],
        circuit.num_constraints,
        circuit.domain_size,
        time.perf_counter() - started,
    )
    return (
        ProvingKey(circuit_id=circuit.digest, key=system.proving_key),
        VerificationKey(circuit_id=circuit.digest, key=system.verifying_key),
    )


def check_proving_key(proving_key: ProvingKey, circuit: CompiledCircuit) -> None:
    """Raise :class:`ArtifactError` unless ``proving_key`` was derived for ``circuit``."""

    if proving_key is None:
        raise ArtifactError("Proving key is missing")
    if proving_key.circuit_id != circuit.digest:
        raise ArtifactError("Proving key belongs to a different circuit")
    key = proving_key.key
    mismatches = [
        len(key.kdelta_1) != circuit.num_private,
        len(key.tau_1) != circuit.domain_size,
        len(key.tau_2) != circuit.domain_size,
        len(key.target_1) != circuit.domain_size,
    ]
    if any(mismatches):
        raise ArtifactError("Proving key does not match the circuit parameters")


def create_proof(
    proving_key: ProvingKey,
    circuit: CompiledCircuit,
    assignment: Assignment,
) -> Tuple[Groth16Proof, List[int]]:
    check_proving_key(proving_key, circuit)
    started = time.perf_counter()
    system = Groth16(circuit.r1cs, ENGINE_CURVE)
    system.proving_key = proving_key.key
    try:
        proof = system.prove(assignment.public, assignment.private)
    except ValueError as exc:
        raise WitnessError("Witness does not satisfy the login circuit") from exc
    logger.debug("Groth16 proof computed in %.2fs", time.perf_counter() - started)
    return Groth16Proof(a=proof.A, b=proof.B, c=proof.C), list(assignment.signals)


def verify_proof(
    verification_key: VerificationKey,
    circuit: CompiledCircuit,
    public_signals: Sequence[int],
    proof: Groth16Proof,
) -> bool:
    if verification_key.circuit_id != circuit.digest:
        raise ArtifactError("Verification key belongs to a different circuit")
    if len(public_signals) != verification_key.n_public:
        raise MalformedProofError(
            f"Expected {verification_key.n_public} public signals, got {len(public_signals)}"
        )
    system = Groth16(circuit.r1cs, ENGINE_CURVE)
    system.verifying_key = verification_key.key
    return bool(system.verify(EngineProof(proof.a, proof.b, proof.c), circuit.public_witness(public_signals)))


__all__ = [
    "VerificationKey",
    "ProvingKey",
    "setup",
    "check_proving_key",
    "create_proof",
    "verify_proof",
]
