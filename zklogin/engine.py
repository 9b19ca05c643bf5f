"""Proof and verification engines for the password login circuit."""

from __future__ import annotations

import logging
from concurrent.futures import Executor, Future
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from .circuit import PasswordLoginCircuit, Witness
from .errors import ArtifactError, MalformedProofError
from .groth16 import ProvingKey, VerificationKey, create_proof, verify_proof
from .proof import Groth16Proof, Proof, parse_proof, parse_public_signals

logger = logging.getLogger(__name__)

_CIRCUIT = PasswordLoginCircuit()


def prove(witness: Witness, proving_key: Optional[ProvingKey]) -> Tuple[Groth16Proof, List[int]]:
    """Prove knowledge of ``witness`` for the login circuit.

    Returns the proof and the public signals ``[commitment, match]``. Raises
    ``WitnessError`` when the secret and salt do not open the commitment and
    ``ArtifactError`` when the proving key is unusable.
    """

    if proving_key is None:
        raise ArtifactError("Proving key is missing")
    compiled = _CIRCUIT.compile()
    assignment = _CIRCUIT.solve(witness)
    return create_proof(proving_key, compiled, assignment)


def prove_in_background(
    executor: Executor,
    witness: Witness,
    proving_key: ProvingKey,
) -> "Future[Tuple[Groth16Proof, List[int]]]":
    return executor.submit(prove, witness, proving_key)


def verify(
    verification_key: Optional[VerificationKey],
    public_signals: Sequence[Any],
    proof: Union[Proof, Mapping[str, Any]],
) -> bool:
    """Check ``proof`` against ``public_signals``.

    Returns ``False`` for well-formed proofs that do not verify and raises
    ``MalformedProofError`` for inputs that cannot be parsed.
    """

    if verification_key is None:
        raise ArtifactError("Verification key is missing")
    parsed = parse_proof(proof)
    if not isinstance(parsed, Groth16Proof):
        raise MalformedProofError(f"No verifier for protocol {parsed.protocol!r}")
    signals = parse_public_signals(public_signals)
    valid = verify_proof(verification_key, _CIRCUIT.compile(), signals, parsed)
    logger.debug("Proof verification result: %s", valid)
    return valid


__all__ = ["prove", "prove_in_background", "verify"]
