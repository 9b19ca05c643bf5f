import unittest

from fastapi.testclient import TestClient
from support import SECRET, make_coordinator, reference_proof

from zklogin.artifacts import ArtifactRegistry
from zklogin.commitment import create_commitment
from zklogin.config import Settings
from zklogin.coordinator import SessionCoordinator
from zklogin.proof import public_signals_to_json
from zklogin.server import create_app
from zklogin.store import MemoryRecordStore

IDENTITY = "test@example.com"


class TestServer(unittest.TestCase):
    def setUp(self) -> None:
        self.coordinator = make_coordinator()
        self.client = TestClient(create_app(Settings(store_backend="memory"), self.coordinator))

    def _signup(self) -> None:
        commitment, _, _ = reference_proof()
        response = self.client.post(
            "/signup",
            json={"identity": IDENTITY, "salt": commitment.salt_hex, "commitment": commitment.commitment_hex},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"ok": True})

    def test_signup_and_login_data(self) -> None:
        self._signup()
        response = self.client.get("/loginData", params={"identity": IDENTITY})
        self.assertEqual(response.status_code, 200)
        commitment, _, _ = reference_proof()
        self.assertEqual(
            response.json(),
            {"salt": commitment.salt_hex, "commitment": commitment.commitment_hex},
        )

    def test_signup_accepts_legacy_field_names(self) -> None:
        commitment = create_commitment(SECRET)
        response = self.client.post(
            "/signup",
            json={"email": IDENTITY, "saltHex": commitment.salt_hex, "commitmentHex": commitment.commitment_hex},
        )
        self.assertEqual(response.status_code, 200)

    def test_signup_missing_fields(self) -> None:
        commitment = create_commitment(SECRET)
        response = self.client.post("/signup", json={"salt": commitment.salt_hex})
        self.assertEqual(response.status_code, 400)
        response = self.client.post("/signup", json={})
        self.assertEqual(response.status_code, 400)

    def test_login_data_unknown(self) -> None:
        self.assertEqual(self.client.get("/loginData", params={"identity": "nobody@example.com"}).status_code, 404)
        self.assertEqual(self.client.get("/loginData").status_code, 404)

    def test_login_success(self) -> None:
        self._signup()
        _, proof, public_signals = reference_proof()
        response = self.client.post(
            "/login",
            json={
                "identity": IDENTITY,
                "proof": proof.to_dict(),
                "publicSignals": public_signals_to_json(public_signals),
            },
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["ok"])
        self.assertTrue(body["token"])

    def test_login_failures_are_distinguishable(self) -> None:
        self._signup()
        _, proof, public_signals = reference_proof()
        body = {"proof": proof.to_dict(), "publicSignals": public_signals_to_json(public_signals)}

        unknown = self.client.post("/login", json=dict(body, identity="nobody@example.com"))
        self.assertEqual(unknown.status_code, 404)

        invalid = self.client.post(
            "/login",
            json=dict(body, identity=IDENTITY, publicSignals=list(reversed(body["publicSignals"]))),
        )
        self.assertEqual(invalid.status_code, 401)
        self.assertEqual(invalid.json(), {"detail": "Authentication failed"})

        malformed = self.client.post(
            "/login",
            json={"identity": IDENTITY, "proof": {"protocol": "groth16"}, "publicSignals": ["0"]},
        )
        self.assertEqual(malformed.status_code, 401)
        self.assertEqual(malformed.json(), invalid.json())

        missing = self.client.post("/login", json={"identity": IDENTITY})
        self.assertEqual(missing.status_code, 400)

        broken_server = TestClient(
            create_app(
                Settings(store_backend="memory"),
                SessionCoordinator(self.coordinator.store, ArtifactRegistry.from_keys()),
            )
        )
        missing_key = broken_server.post("/login", json=dict(body, identity=IDENTITY))
        self.assertEqual(missing_key.status_code, 500)

    def test_badly_typed_login_payloads_fail_authentication(self) -> None:
        self._signup()
        _, proof, public_signals = reference_proof()
        signals = public_signals_to_json(public_signals)

        garbage_proof = self.client.post(
            "/login", json={"identity": IDENTITY, "proof": "garbage", "publicSignals": signals}
        )
        self.assertEqual(garbage_proof.status_code, 401)
        self.assertEqual(garbage_proof.json(), {"detail": "Authentication failed"})

        garbage_signals = self.client.post(
            "/login", json={"identity": IDENTITY, "proof": proof.to_dict(), "publicSignals": "x"}
        )
        self.assertEqual(garbage_signals.status_code, 401)

        unknown = self.client.post(
            "/login", json={"identity": "nobody@example.com", "proof": "garbage", "publicSignals": "x"}
        )
        self.assertEqual(unknown.status_code, 404)

    def _token(self) -> str:
        _, proof, public_signals = reference_proof()
        response = self.client.post(
            "/login",
            json={
                "identity": IDENTITY,
                "proof": proof.to_dict(),
                "publicSignals": public_signals_to_json(public_signals),
            },
        )
        self.assertEqual(response.status_code, 200)
        return response.json()["token"]

    def test_delete_account_requires_own_session(self) -> None:
        self._signup()
        url = f"/account/{IDENTITY}"
        self.assertEqual(self.client.delete(url).status_code, 401)
        self.assertEqual(self.client.delete(url, headers={"Authorization": "Bearer nope"}).status_code, 401)

        other = self.coordinator.token_issuer.issue("other@example.com")
        self.assertEqual(self.client.delete(url, headers={"Authorization": f"Bearer {other}"}).status_code, 401)

        token = self._token()
        headers = {"Authorization": f"Bearer {token}"}
        self.assertEqual(self.client.delete(url, headers=headers).status_code, 200)
        self.assertIsNone(self.coordinator.token_issuer.resolve(token))
        self.assertEqual(self.client.delete(url, headers=headers).status_code, 401)

    def test_published_verification_key(self) -> None:
        response = self.client.get("/artifacts/verification_key")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["nPublic"], 2)

    def test_default_app_uses_settings(self) -> None:
        app = create_app(Settings(store_backend="memory"))
        self.assertIsInstance(app.state.coordinator.store, MemoryRecordStore)


if __name__ == "__main__":
    unittest.main()
