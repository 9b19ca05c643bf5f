"""Salted Poseidon commitments to a password."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Optional, Tuple

from .constants import SALT_BYTES
from .field import encode_secret, parse_salt, salt_to_field, to_hex
from .poseidon import hash2


@dataclass(frozen=True)
class Commitment:
    """Public enrollment values produced from a secret."""

    salt: bytes
    value: int

    @property
    def salt_hex(self) -> str:
        return self.salt.hex()

    @property
    def commitment_hex(self) -> str:
        return to_hex(self.value)


def generate_salt() -> bytes:
    """Generate a fresh 128-bit salt."""

    return secrets.token_bytes(SALT_BYTES)


def commit_fields(secret_field: int, salt_field: int) -> int:
    return hash2(secret_field, salt_field)


def commit(secret: bytes | str, salt: Optional[bytes | str] = None) -> Tuple[bytes, int]:
    """Commit to ``secret``, drawing a random salt when none is supplied."""

    salt_bytes = generate_salt() if salt is None else parse_salt(salt)
    value = commit_fields(encode_secret(secret), salt_to_field(salt_bytes))
    return salt_bytes, value


def create_commitment(secret: bytes | str, salt: Optional[bytes | str] = None) -> Commitment:
    salt_bytes, value = commit(secret, salt)
    return Commitment(salt=salt_bytes, value=value)


__all__ = ["Commitment", "generate_salt", "commit_fields", "commit", "create_commitment"]
