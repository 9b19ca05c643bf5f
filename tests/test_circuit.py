import unittest

from zksnake.arithmetization import ConstraintSystem, Var

from zklogin.circuit import PUBLIC_SIGNALS, PasswordLoginCircuit, Witness, poseidon_gadget
from zklogin.commitment import create_commitment
from zklogin.constants import FIELD_MODULUS
from zklogin.errors import WitnessError
from zklogin.field import encode_secret, salt_to_field
from zklogin.poseidon import hash2


class TestPasswordLoginCircuit(unittest.TestCase):
    def setUp(self) -> None:
        self.circuit = PasswordLoginCircuit()
        self.commitment = create_commitment("hunter2", bytes(range(16)))

    def _witness(self, secret: str) -> Witness:
        return Witness(
            secret_field=encode_secret(secret),
            salt_field=salt_to_field(self.commitment.salt),
            commitment=self.commitment.value,
        )

    def test_compiled_layout(self) -> None:
        compiled = self.circuit.compile()
        self.assertEqual(sorted(compiled.public_order), sorted(PUBLIC_SIGNALS))
        self.assertEqual(compiled.r1cs.n_public, 3)
        self.assertEqual(len(compiled.digest), 64)
        self.assertEqual(compiled.domain_size & (compiled.domain_size - 1), 0)
        self.assertGreaterEqual(compiled.domain_size, compiled.num_constraints)
        self.assertIs(compiled, self.circuit.compile())

    def test_public_witness_follows_constraint_order(self) -> None:
        compiled = self.circuit.compile()
        arranged = compiled.public_witness([self.commitment.value, 1])
        self.assertEqual(arranged[0], 1)
        self.assertEqual(arranged[1 + compiled.public_order.index("commitment")], self.commitment.value)
        self.assertEqual(arranged[1 + compiled.public_order.index("match")], 1)

    def test_matching_secret_solves(self) -> None:
        assignment = self.circuit.solve(self._witness("hunter2"))
        self.assertEqual(assignment.signals, [self.commitment.value, 1])
        self.assertTrue(self.circuit.compile().r1cs.is_sat(assignment.public, assignment.private))

    def test_wrong_secret_is_rejected(self) -> None:
        with self.assertRaises(WitnessError):
            self.circuit.solve(self._witness("hunter3"))

    def test_out_of_field_input_is_rejected(self) -> None:
        witness = Witness(secret_field=FIELD_MODULUS, salt_field=1, commitment=self.commitment.value)
        with self.assertRaises(WitnessError):
            self.circuit.solve(witness)

    def test_witness_repr_hides_private_inputs(self) -> None:
        witness = self._witness("hunter2")
        self.assertNotIn(str(witness.secret_field), repr(witness))
        self.assertNotIn(str(witness.salt_field), repr(witness))

    def test_assignment_repr_hides_witness(self) -> None:
        assignment = self.circuit.solve(self._witness("hunter2"))
        self.assertNotIn(str(encode_secret("hunter2")), repr(assignment))

    def test_gadget_matches_native_hash(self) -> None:
        cs = ConstraintSystem(["left", "right"], ["digest"], FIELD_MODULUS)
        digest = Var("digest")
        cs.add_constraint(digest - poseidon_gadget(cs, [Var("left"), Var("right")]) == 0)
        solution = cs.solve({"left": 11, "right": 22})
        self.assertEqual(solution["digest"] % FIELD_MODULUS, hash2(11, 22))


if __name__ == "__main__":
    unittest.main()
