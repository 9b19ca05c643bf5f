"""Zero-knowledge password commitment and login."""

from .artifacts import ArtifactManifest, ArtifactRegistry, write_artifacts
from .auth import create_login_proof, enrollment_payload, login, register_user
from .circuit import PasswordLoginCircuit, Witness
from .commitment import Commitment, commit, create_commitment, generate_salt
from .coordinator import AuthState, SessionCoordinator, SessionToken, SessionTokenIssuer
from .engine import prove, prove_in_background, verify
from .errors import (
    ArtifactError,
    MalformedProofError,
    NotFoundError,
    StoreFormatError,
    ValidationError,
    VerificationFailedError,
    WitnessError,
    ZKLoginError,
)
from .field import encode_secret
from .groth16 import ProvingKey, VerificationKey, setup
from .proof import Groth16Proof, parse_proof
from .store import CommitmentRecord, JsonRecordStore, MemoryRecordStore, RecordStore

__all__ = [
    "ArtifactManifest",
    "ArtifactRegistry",
    "write_artifacts",
    "create_login_proof",
    "enrollment_payload",
    "login",
    "register_user",
    "PasswordLoginCircuit",
    "Witness",
    "Commitment",
    "commit",
    "create_commitment",
    "generate_salt",
    "AuthState",
    "SessionCoordinator",
    "SessionToken",
    "SessionTokenIssuer",
    "prove",
    "prove_in_background",
    "verify",
    "ArtifactError",
    "MalformedProofError",
    "NotFoundError",
    "StoreFormatError",
    "ValidationError",
    "VerificationFailedError",
    "WitnessError",
    "ZKLoginError",
    "encode_secret",
    "ProvingKey",
    "VerificationKey",
    "setup",
    "Groth16Proof",
    "parse_proof",
    "CommitmentRecord",
    "JsonRecordStore",
    "MemoryRecordStore",
    "RecordStore",
]
