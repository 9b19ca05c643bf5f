"""Fixed parameters shared by the commitment scheme, circuit and prover."""

from __future__ import annotations

from zksnake.constant import BN254_SCALAR_FIELD

# Scalar field of BN254; every circuit value lives here.
FIELD_MODULUS = BN254_SCALAR_FIELD
FIELD_BITS = FIELD_MODULUS.bit_length()

# 31 of the 32 SHA-256 bytes keep the encoded secret below the modulus.
SECRET_FIELD_BYTES = 31
SALT_BYTES = 16

POSEIDON_WIDTH = 3
POSEIDON_ALPHA = 5
POSEIDON_FULL_ROUNDS = 8
# Partial rounds for widths 2 through 17, as published with circomlib.
POSEIDON_PARTIAL_ROUNDS = (56, 57, 56, 60, 60, 63, 64, 63, 60, 66, 60, 65, 70, 60, 64, 68)

CIRCUIT_NAME = "pwd_login"
CIRCUIT_VERSION = 1

PROTOCOL = "groth16"
CURVE = "bn128"
# Curve name understood by zksnake.
ENGINE_CURVE = "BN254"

__all__ = [
    "FIELD_MODULUS",
    "FIELD_BITS",
    "SECRET_FIELD_BYTES",
    "SALT_BYTES",
    "POSEIDON_WIDTH",
    "POSEIDON_ALPHA",
    "POSEIDON_FULL_ROUNDS",
    "POSEIDON_PARTIAL_ROUNDS",
    "CIRCUIT_NAME",
    "CIRCUIT_VERSION",
    "PROTOCOL",
    "CURVE",
    "ENGINE_CURVE",
]
