"""The password login circuit.

Private inputs ``secret`` and ``salt``, public input ``commitment`` and
public output ``match``::

    h     = Poseidon(secret, salt)
    match = IsEqual(h, commitment)
    match * (match - 1) == 0
    match == 1

The boolean constraint is redundant with IsEqual. Public signals are
ordered ``[commitment, match]`` on the wire, whatever order the constraint
system keeps them in.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Iterable, List, Sequence, Tuple, Union

from zksnake.arithmetization import R1CS, ConstraintSystem, Var
from zksnake.utils import next_power_of_two

from .constants import CIRCUIT_NAME, CIRCUIT_VERSION, ENGINE_CURVE, FIELD_MODULUS, POSEIDON_ALPHA
from .errors import WitnessError
from .field import inverse
from .poseidon import hash2, poseidon_params

PUBLIC_SIGNALS = ("commitment", "match")
PRIVATE_INPUTS = ("secret", "salt", "is_equal.inv")

P = FIELD_MODULUS
NEG_ONE = P - 1

# A circuit value is either a known constant or a zksnake expression.
Value = Union[int, Var]


@dataclass(frozen=True)
class Witness:
    """Private inputs held by the prover. Values never appear in ``repr``."""

    secret_field: int = field(repr=False)
    salt_field: int = field(repr=False)
    commitment: int


def _allocate(cs: ConstraintSystem, name: str) -> Var:
    var = Var(name)
    cs.add_variable(var)
    return var


def _linear(terms: Iterable[Tuple[int, Value]], constant: int = 0) -> Value:
    """``sum(coefficient * value) + constant`` with constants folded natively."""

    expr = None
    for coefficient, value in terms:
        if isinstance(value, int):
            constant = (constant + coefficient * value) % P
            continue
        term = value * coefficient
        expr = term if expr is None else expr + term
    if expr is None:
        return constant
    return expr + constant if constant else expr


def _sbox(cs: ConstraintSystem, x: Value, label: str) -> Value:
    if isinstance(x, int):
        return pow(x, POSEIDON_ALPHA, P)
    x2 = _allocate(cs, f"{label}.x2")
    cs.add_constraint(x2 == x * x)
    x4 = _allocate(cs, f"{label}.x4")
    cs.add_constraint(x4 == x2 * x2)
    x5 = _allocate(cs, f"{label}.x5")
    cs.add_constraint(x5 == x4 * x)
    return x5


def _pin(cs: ConstraintSystem, value: Value, name: str) -> Value:
    """Give a linear expression its own variable so later rounds stay small."""

    if isinstance(value, int):
        return value
    var = _allocate(cs, name)
    cs.add_constraint(var - value == 0)
    return var


def poseidon_gadget(cs: ConstraintSystem, inputs: Sequence[Value], label: str = "poseidon") -> Value:
    """In-circuit mirror of :func:`zklogin.poseidon.poseidon_hash`."""

    params = poseidon_params(len(inputs) + 1)
    state: List[Value] = [0, *inputs]
    for r in range(params.total_rounds):
        state = [_linear([(1, value)], params.constant(r, i)) for i, value in enumerate(state)]
        if params.is_full_round(r):
            state = [_sbox(cs, value, f"{label}.r{r}.s{i}") for i, value in enumerate(state)]
        else:
            state[0] = _sbox(cs, state[0], f"{label}.r{r}.s0")
        state = [_linear(zip(row, state)) for row in params.mds]
        if not params.is_full_round(r):
            state[1:] = [_pin(cs, value, f"{label}.r{r}.m{i}") for i, value in enumerate(state[1:], 1)]
    return state[0]


def is_equal(cs: ConstraintSystem, left: Value, right: Var, inv: Var, out: Var) -> None:
    """Constrain ``out`` to ``1`` when ``left == right`` and ``0`` otherwise.

    ``inv`` is supplied by the prover: the inverse of ``right - left`` or zero.
    """

    diff = right - left
    cs.add_constraint(out - 1 == (diff * NEG_ONE) * inv)
    cs.add_constraint(diff * out == 0)


@dataclass(frozen=True)
class CompiledCircuit:
    r1cs: R1CS
    digest: str
    public_order: Tuple[str, ...]
    num_constraints: int
    num_private: int
    domain_size: int

    def public_witness(self, signals: Sequence[int]) -> List[int]:
        """Arrange wire-ordered signals the way the constraint system expects."""

        by_name = dict(zip(PUBLIC_SIGNALS, signals))
        return [1] + [by_name[name] for name in self.public_order]


@dataclass(frozen=True)
class Assignment:
    public: List[int] = field(repr=False)
    private: List[int] = field(repr=False)
    signals: List[int]


def _digest(r1cs: R1CS, witness_names: Sequence[str]) -> str:
    h = hashlib.sha256(f"{CIRCUIT_NAME}:{CIRCUIT_VERSION}:".encode())
    h.update(",".join(str(name) for name in witness_names).encode())
    for matrix in (r1cs.A, r1cs.B, r1cs.C):
        h.update(b"|")
        for row, col, value in matrix.triplets:
            h.update(f"{row}:{col}:{value % P};".encode())
    return h.hexdigest()


class PasswordLoginCircuit:
    name = CIRCUIT_NAME
    version = CIRCUIT_VERSION

    def synthesize(self) -> ConstraintSystem:
        cs = ConstraintSystem(["commitment", *PRIVATE_INPUTS], ["match"], P)
        commitment = Var("commitment")
        match = Var("match")
        secret = Var("secret")
        salt = Var("salt")

        digest = poseidon_gadget(cs, [secret, salt])
        is_equal(cs, digest, commitment, Var("is_equal.inv"), match)
        cs.add_constraint(match * (match - 1) == 0)
        cs.add_constraint(match == 1)

        cs.set_public(commitment)
        cs.set_public(match)
        return cs

    def compile(self) -> CompiledCircuit:
        return _compiled()

    def solve(self, witness: Witness) -> Assignment:
        """Compute the full assignment or raise :class:`WitnessError`."""

        for label, value in (
            ("secret", witness.secret_field),
            ("salt", witness.salt_field),
            ("commitment", witness.commitment),
        ):
            if not 0 <= value < P:
                raise WitnessError(f"{label} is outside the scalar field")

        compiled = _compiled()
        diff = (witness.commitment - hash2(witness.secret_field, witness.salt_field)) % P
        inputs: Dict[str, int] = {
            "commitment": witness.commitment,
            "secret": witness.secret_field,
            "salt": witness.salt_field,
            "is_equal.inv": inverse(diff) if diff else 0,
        }
        try:
            solution = compiled.r1cs.solve(inputs)
            public, private = compiled.r1cs.generate_witness(solution)
        except (KeyError, ValueError) as exc:
            raise WitnessError("Witness does not satisfy the login circuit") from exc
        if not compiled.r1cs.is_sat(public, private):
            raise WitnessError("Witness does not satisfy the login circuit")
        return Assignment(
            public=public,
            private=private,
            signals=[solution[name] % P for name in PUBLIC_SIGNALS],
        )


@lru_cache(maxsize=1)
def _compiled() -> CompiledCircuit:
    cs = PasswordLoginCircuit().synthesize()
    r1cs = R1CS(cs, ENGINE_CURVE)
    r1cs.compile()
    names = [str(name) for name in cs.get_witness_vector()]
    return CompiledCircuit(
        r1cs=r1cs,
        digest=_digest(r1cs, names),
        public_order=tuple(names[1 : r1cs.n_public]),
        num_constraints=cs.num_constraints(),
        num_private=r1cs.A.n_col - r1cs.n_public,
        domain_size=next_power_of_two(r1cs.A.n_row),
    )


__all__ = [
    "PUBLIC_SIGNALS",
    "Witness",
    "Assignment",
    "CompiledCircuit",
    "poseidon_gadget",
    "is_equal",
    "PasswordLoginCircuit",
]
