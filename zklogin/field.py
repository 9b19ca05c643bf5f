"""Encoding of secrets, salts and field elements."""

from __future__ import annotations

import hashlib
from typing import Union

from .constants import FIELD_MODULUS, SALT_BYTES, SECRET_FIELD_BYTES
from .errors import ValidationError

FieldLike = Union[int, str]


def encode_secret(secret: bytes | str) -> int:
    """Map an arbitrary secret into the scalar field.

    The SHA-256 digest is truncated to 31 bytes before conversion, so the
    result is always below the modulus without any reduction.
    """

    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    digest = hashlib.sha256(secret).digest()
    return int.from_bytes(digest[:SECRET_FIELD_BYTES], "big")


def salt_to_field(salt: bytes) -> int:
    if len(salt) != SALT_BYTES:
        raise ValidationError(f"Salt must be {SALT_BYTES} bytes")
    return int.from_bytes(salt, "big")


def parse_salt(value: bytes | str | None) -> bytes:
    """Decode a salt given as raw bytes or as hex (with or without ``0x``)."""

    if value is None or value == "" or value == b"":
        raise ValidationError("Missing salt")
    if isinstance(value, bytes):
        salt = value
    else:
        text = value[2:] if value.lower().startswith("0x") else value
        try:
            salt = bytes.fromhex(text)
        except ValueError as exc:
            raise ValidationError("Salt must be hex encoded") from exc
    if len(salt) != SALT_BYTES:
        raise ValidationError(f"Salt must be {SALT_BYTES} bytes")
    return salt


def parse_field_element(value: FieldLike | None, *, name: str = "value") -> int:
    """Decode an int, ``0x`` hex string or decimal string into a field element."""

    if value is None or isinstance(value, bool):
        raise ValidationError(f"Missing {name}")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            if text.lower().startswith("0x"):
                number = int(text, 16)
            elif text.isdigit():
                number = int(text, 10)
            else:
                raise ValueError(text)
        except ValueError as exc:
            raise ValidationError(f"{name} is not a field element") from exc
    else:
        raise ValidationError(f"{name} is not a field element")
    if not 0 <= number < FIELD_MODULUS:
        raise ValidationError(f"{name} is outside the scalar field")
    return number


def to_hex(value: int) -> str:
    return f"0x{value:064x}"


def inverse(value: int) -> int:
    if value % FIELD_MODULUS == 0:
        raise ZeroDivisionError("zero has no inverse in the scalar field")
    return pow(value, FIELD_MODULUS - 2, FIELD_MODULUS)


__all__ = [
    "encode_secret",
    "salt_to_field",
    "parse_salt",
    "parse_field_element",
    "to_hex",
    "inverse",
]
