"""Poseidon permutation over the BN254 scalar field.

Round constants and the MDS matrix are produced by the Grain LFSR procedure
from the Poseidon reference: the LFSR is seeded with the field type, S-box
type, field size, width and round counts, warmed up for 160 clocks, and then
emits bits through a self-shrinking filter.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import List, Sequence, Tuple

from .constants import (
    FIELD_BITS,
    FIELD_MODULUS,
    POSEIDON_ALPHA,
    POSEIDON_FULL_ROUNDS,
    POSEIDON_PARTIAL_ROUNDS,
)
from .field import inverse


def _to_bits(value: int, width: int) -> List[int]:
    return [(value >> (width - 1 - i)) & 1 for i in range(width)]


class _GrainLFSR:
    def __init__(self, field_bits: int, width: int, full_rounds: int, partial_rounds: int) -> None:
        state: List[int] = []
        state += _to_bits(1, 2)  # prime field
        state += _to_bits(0, 4)  # x^alpha S-box
        state += _to_bits(field_bits, 12)
        state += _to_bits(width, 12)
        state += _to_bits(full_rounds, 10)
        state += _to_bits(partial_rounds, 10)
        state += [1] * 30
        self._state = state
        for _ in range(160):
            self._clock()

    def _clock(self) -> int:
        s = self._state
        bit = s[62] ^ s[51] ^ s[38] ^ s[23] ^ s[13] ^ s[0]
        s.pop(0)
        s.append(bit)
        return bit

    def random_bits(self, count: int) -> int:
        value = 0
        produced = 0
        while produced < count:
            keep = self._clock()
            bit = self._clock()
            if keep:
                value = (value << 1) | bit
                produced += 1
        return value

    def field_element(self) -> int:
        while True:
            candidate = self.random_bits(FIELD_BITS)
            if candidate < FIELD_MODULUS:
                return candidate


@dataclass(frozen=True)
class PoseidonParams:
    width: int
    full_rounds: int
    partial_rounds: int
    round_constants: Tuple[int, ...]
    mds: Tuple[Tuple[int, ...], ...]

    @property
    def total_rounds(self) -> int:
        return self.full_rounds + self.partial_rounds

    def is_full_round(self, index: int) -> bool:
        half = self.full_rounds // 2
        return index < half or index >= half + self.partial_rounds

    def constant(self, round_index: int, position: int) -> int:
        return self.round_constants[round_index * self.width + position]


def _cauchy_mds(lfsr: _GrainLFSR, width: int) -> Tuple[Tuple[int, ...], ...]:
    while True:
        values = [lfsr.random_bits(FIELD_BITS) % FIELD_MODULUS for _ in range(2 * width)]
        if len(set(values)) != len(values):
            continue
        xs, ys = values[:width], values[width:]
        if any((x + y) % FIELD_MODULUS == 0 for x in xs for y in ys):
            continue
        return tuple(tuple(inverse(x + y) for y in ys) for x in xs)


@lru_cache(maxsize=None)
def poseidon_params(width: int, full_rounds: int = POSEIDON_FULL_ROUNDS) -> PoseidonParams:
    """Parameters for a state of ``width`` elements (one capacity element plus inputs)."""

    if not 2 <= width < 2 + len(POSEIDON_PARTIAL_ROUNDS):
        raise ValueError(f"Unsupported Poseidon width {width}")
    partial_rounds = POSEIDON_PARTIAL_ROUNDS[width - 2]
    lfsr = _GrainLFSR(FIELD_BITS, width, full_rounds, partial_rounds)
    constants = tuple(lfsr.field_element() for _ in range((full_rounds + partial_rounds) * width))
    mds = _cauchy_mds(lfsr, width)
    return PoseidonParams(
        width=width,
        full_rounds=full_rounds,
        partial_rounds=partial_rounds,
        round_constants=constants,
        mds=mds,
    )


def permute(state: Sequence[int], params: PoseidonParams) -> List[int]:
    if len(state) != params.width:
        raise ValueError("State width does not match Poseidon parameters")
    p = FIELD_MODULUS
    current = [value % p for value in state]
    for r in range(params.total_rounds):
        current = [(value + params.constant(r, i)) % p for i, value in enumerate(current)]
        if params.is_full_round(r):
            current = [pow(value, POSEIDON_ALPHA, p) for value in current]
        else:
            current[0] = pow(current[0], POSEIDON_ALPHA, p)
        current = [
            sum(m * value for m, value in zip(row, current)) % p
            for row in params.mds
        ]
    return current


def poseidon_hash(inputs: Sequence[int]) -> int:
    """Hash field elements with a capacity-one sponge of width ``len(inputs) + 1``."""

    params = poseidon_params(len(inputs) + 1)
    return permute([0, *inputs], params)[0]


def hash2(left: int, right: int) -> int:
    return poseidon_hash([left, right])


__all__ = ["PoseidonParams", "poseidon_params", "permute", "poseidon_hash", "hash2"]
