"""Shared, lazily built artifacts for the test suite.

The trusted setup and a reference proof are the slow parts of the suite, so
each is built once per process.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional, Tuple

from zklogin.artifacts import ArtifactRegistry
from zklogin.circuit import PasswordLoginCircuit, Witness
from zklogin.commitment import Commitment, create_commitment
from zklogin.coordinator import SessionCoordinator
from zklogin.engine import prove
from zklogin.field import encode_secret, salt_to_field
from zklogin.groth16 import ProvingKey, VerificationKey, setup
from zklogin.proof import Groth16Proof
from zklogin.store import MemoryRecordStore, RecordStore

SECRET = "correct horse battery staple"
SALT = bytes.fromhex("7b8c08ed08f2dfac38c869bd832f6d3f")


@lru_cache(maxsize=1)
def keys() -> Tuple[ProvingKey, VerificationKey]:
    return setup(PasswordLoginCircuit().compile())


def witness_for(secret: str, commitment: Commitment) -> Witness:
    return Witness(
        secret_field=encode_secret(secret),
        salt_field=salt_to_field(commitment.salt),
        commitment=commitment.value,
    )


@lru_cache(maxsize=1)
def reference_proof() -> Tuple[Commitment, Groth16Proof, List[int]]:
    commitment = create_commitment(SECRET, SALT)
    proof, public_signals = prove(witness_for(SECRET, commitment), keys()[0])
    return commitment, proof, public_signals


def make_coordinator(store: Optional[RecordStore] = None) -> SessionCoordinator:
    proving_key, verification_key = keys()
    return SessionCoordinator(
        store if store is not None else MemoryRecordStore(),
        ArtifactRegistry.from_keys(proving_key, verification_key),
    )
