"""Client-side enrollment and login helpers."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from .circuit import Witness
from .commitment import create_commitment
from .coordinator import AUTHENTICATION_FAILED, SessionCoordinator, SessionToken
from .engine import prove
from .errors import VerificationFailedError, WitnessError
from .field import encode_secret, parse_field_element, parse_salt, salt_to_field
from .groth16 import ProvingKey
from .proof import public_signals_to_json


def enrollment_payload(identity: str, secret: bytes | str, salt: Optional[bytes | str] = None) -> Dict[str, str]:
    """Build the ``{identity, salt, commitment}`` enrollment request."""

    commitment = create_commitment(secret, salt)
    return {
        "identity": identity,
        "salt": commitment.salt_hex,
        "commitment": commitment.commitment_hex,
    }


def build_witness(secret: bytes | str, salt: bytes | str, commitment: Any) -> Witness:
    return Witness(
        secret_field=encode_secret(secret),
        salt_field=salt_to_field(parse_salt(salt)),
        commitment=parse_field_element(commitment, name="commitment"),
    )


def create_login_proof(
    secret: bytes | str,
    salt: bytes | str,
    commitment: Any,
    proving_key: ProvingKey,
) -> Tuple[Dict[str, Any], List[str]]:
    """Prove knowledge of ``secret`` for an enrollment record.

    Returns the wire forms of the proof and public signals. Raises
    ``WitnessError`` locally when the secret does not match, so nothing is
    sent for a login that cannot succeed.
    """

    proof, public_signals = prove(build_witness(secret, salt, commitment), proving_key)
    return proof.to_dict(), public_signals_to_json(public_signals)


def register_user(coordinator: SessionCoordinator, identity: str, secret: bytes | str) -> Dict[str, str]:
    payload = enrollment_payload(identity, secret)
    coordinator.enroll(payload["identity"], payload["salt"], payload["commitment"])
    return payload


def login(
    coordinator: SessionCoordinator,
    identity: str,
    secret: bytes | str,
    proving_key: ProvingKey,
) -> SessionToken:
    """Run the full fetch, prove and authenticate sequence in-process."""

    record = coordinator.fetch_enrollment(identity)
    try:
        proof, public_signals = create_login_proof(secret, record.salt, record.commitment, proving_key)
    except WitnessError:
        raise VerificationFailedError(AUTHENTICATION_FAILED) from None
    return coordinator.authenticate(identity, proof, public_signals)


__all__ = [
    "enrollment_payload",
    "build_witness",
    "create_login_proof",
    "register_user",
    "login",
]
