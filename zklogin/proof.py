"""Proof containers, tagged by proving protocol.

Curve points travel as compressed hex, the encoding zksnake reads and
writes: 64 hex digits for a G1 point and 128 for a G2 point.
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Mapping, Sequence, Type, Union

from zksnake.ecc import EllipticCurve

from .constants import CURVE, ENGINE_CURVE, FIELD_MODULUS, PROTOCOL
from .errors import MalformedProofError

G1_HEX_LENGTH = 64
G2_HEX_LENGTH = 128

_HEX_DIGITS = frozenset(string.hexdigits)
_PROOF_TYPES: Dict[str, Type["Proof"]] = {}


def point_to_hex(point: Any) -> str:
    return bytes(point.to_bytes()).hex()


def point_from_hex(value: Any, length: int, label: str) -> Any:
    """Decode a compressed point, raising :class:`MalformedProofError` on bad input."""

    if not isinstance(value, str):
        raise MalformedProofError(f"{label} must be a hex string")
    if len(value) != length or not _HEX_DIGITS.issuperset(value):
        raise MalformedProofError(f"{label} must be {length} hex digits")
    try:
        return EllipticCurve(ENGINE_CURVE).from_hex(value)
    except ValueError as exc:
        raise MalformedProofError(f"{label} is not a curve point") from exc


class Proof:
    """Base class for protocol specific proofs."""

    protocol: ClassVar[str]

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Proof":
        raise NotImplementedError


def register_proof_type(cls: Type[Proof]) -> Type[Proof]:
    _PROOF_TYPES[cls.protocol] = cls
    return cls


@register_proof_type
@dataclass(frozen=True, eq=False)
class Groth16Proof(Proof):
    """Three group elements: ``a`` and ``c`` in G1, ``b`` in G2."""

    protocol: ClassVar[str] = PROTOCOL

    a: Any
    b: Any
    c: Any

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pi_a": point_to_hex(self.a),
            "pi_b": point_to_hex(self.b),
            "pi_c": point_to_hex(self.c),
            "protocol": self.protocol,
            "curve": CURVE,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Groth16Proof":
        curve = data.get("curve", CURVE)
        if curve != CURVE:
            raise MalformedProofError(f"Unsupported curve {curve!r}")
        try:
            return cls(
                a=point_from_hex(data["pi_a"], G1_HEX_LENGTH, "pi_a"),
                b=point_from_hex(data["pi_b"], G2_HEX_LENGTH, "pi_b"),
                c=point_from_hex(data["pi_c"], G1_HEX_LENGTH, "pi_c"),
            )
        except KeyError as exc:
            raise MalformedProofError(f"Proof is missing {exc.args[0]}") from exc


def parse_proof(data: Union[Proof, Mapping[str, Any]]) -> Proof:
    """Deserialize a proof, dispatching on its ``protocol`` tag."""

    if isinstance(data, Proof):
        return data
    if not isinstance(data, Mapping):
        raise MalformedProofError("Proof must be an object")
    tag = data.get("protocol")
    proof_type = _PROOF_TYPES.get(tag) if isinstance(tag, str) else None
    if proof_type is None:
        raise MalformedProofError(f"Unsupported proof protocol {tag!r}")
    return proof_type.from_dict(data)


def parse_public_signals(signals: Sequence[Any]) -> List[int]:
    if not isinstance(signals, (list, tuple)):
        raise MalformedProofError("Public signals must be a list")
    parsed = []
    for signal in signals:
        if isinstance(signal, bool):
            raise MalformedProofError("Public signal is not a field element")
        if isinstance(signal, int):
            value = signal
        elif isinstance(signal, str) and signal.isascii() and signal.isdigit():
            value = int(signal)
        else:
            raise MalformedProofError("Public signal is not a field element")
        if not 0 <= value < FIELD_MODULUS:
            raise MalformedProofError("Public signal is outside the scalar field")
        parsed.append(value)
    return parsed


def public_signals_to_json(signals: Sequence[int]) -> List[str]:
    return [str(value) for value in signals]


__all__ = [
    "Proof",
    "Groth16Proof",
    "G1_HEX_LENGTH",
    "G2_HEX_LENGTH",
    "point_from_hex",
    "point_to_hex",
    "register_proof_type",
    "parse_proof",
    "parse_public_signals",
    "public_signals_to_json",
]
