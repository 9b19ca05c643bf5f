"""Command line interface for zero-knowledge password login."""

from __future__ import annotations

import argparse
import getpass
import json
import logging
import sys
from pathlib import Path

from zklogin.artifacts import ArtifactRegistry, write_artifacts
from zklogin.auth import create_login_proof, enrollment_payload, login
from zklogin.circuit import PasswordLoginCircuit
from zklogin.commitment import create_commitment
from zklogin.config import Settings, configure_logging
from zklogin.coordinator import SessionCoordinator
from zklogin.engine import verify
from zklogin.errors import VerificationFailedError, WitnessError, ZKLoginError
from zklogin.groth16 import setup
from zklogin.store import migrate_legacy_store

logger = logging.getLogger("zk_login")


def parse_args(argv: list[str]) -> argparse.Namespace:
    defaults = Settings.from_env()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--store",
        default=str(defaults.store_path),
        help=f"Location of the JSON record store (default: {defaults.store_path})",
    )
    parser.add_argument(
        "--keys",
        default=str(defaults.artifact_dir),
        help=f"Directory holding the proving artifacts (default: {defaults.artifact_dir})",
    )
    parser.add_argument("--log-level", default=defaults.log_level, help="Logging level")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup", help="Run the trusted setup and write proving artifacts")

    commit_parser = subparsers.add_parser("commit", help="Compute a salted commitment")
    commit_parser.add_argument("--secret", help="Password (prompted when omitted)")
    commit_parser.add_argument("--salt", help="Hex-encoded 16 byte salt (random when omitted)")

    enroll_parser = subparsers.add_parser("enroll", help="Enroll an identity in the record store")
    enroll_parser.add_argument("identity", help="Identity key, e.g. an email address")
    enroll_parser.add_argument("--secret", help="Password (prompted when omitted)")

    fetch_parser = subparsers.add_parser("fetch", help="Show the public enrollment record")
    fetch_parser.add_argument("identity")

    prove_parser = subparsers.add_parser("prove", help="Create a login proof")
    prove_parser.add_argument("--secret", help="Password (prompted when omitted)")
    prove_parser.add_argument("--salt", required=True, help="Hex-encoded salt from the enrollment")
    prove_parser.add_argument("--commitment", required=True, help="Commitment from the enrollment")
    prove_parser.add_argument("--proof-out", default="proof.json", help="Where to write the proof")
    prove_parser.add_argument("--public-out", default="public.json", help="Where to write public signals")

    verify_parser = subparsers.add_parser("verify", help="Verify a proof against public signals")
    verify_parser.add_argument("proof", help="Path to proof.json")
    verify_parser.add_argument("public", help="Path to public.json")

    login_parser = subparsers.add_parser("login", help="Prove and authenticate against the local store")
    login_parser.add_argument("identity")
    login_parser.add_argument("--secret", help="Password (prompted when omitted)")

    delete_parser = subparsers.add_parser("delete", help="Delete an enrollment")
    delete_parser.add_argument("identity")

    migrate_parser = subparsers.add_parser("migrate-store", help="Convert a legacy record file")
    migrate_parser.add_argument("path", help="Legacy JSON record file")

    return parser.parse_args(argv)


def _secret(namespace: argparse.Namespace) -> str:
    return namespace.secret if namespace.secret is not None else getpass.getpass("Password: ")


def _coordinator(namespace: argparse.Namespace) -> SessionCoordinator:
    settings = Settings(store_path=Path(namespace.store), artifact_dir=Path(namespace.keys))
    return SessionCoordinator(settings.create_store(), settings.create_registry())


def _print(payload: object) -> None:
    print(json.dumps(payload, indent=2))


def run(namespace: argparse.Namespace) -> int:
    if namespace.command == "setup":
        proving_key, verification_key = setup(PasswordLoginCircuit().compile())
        manifest = write_artifacts(namespace.keys, proving_key, verification_key)
        _print(manifest.to_dict())
        return 0

    if namespace.command == "commit":
        commitment = create_commitment(_secret(namespace), namespace.salt)
        _print({"salt": commitment.salt_hex, "commitment": commitment.commitment_hex})
        return 0

    if namespace.command == "enroll":
        coordinator = _coordinator(namespace)
        payload = enrollment_payload(namespace.identity, _secret(namespace))
        coordinator.enroll(payload["identity"], payload["salt"], payload["commitment"])
        _print({"ok": True, "salt": payload["salt"], "commitment": payload["commitment"]})
        return 0

    if namespace.command == "fetch":
        record = _coordinator(namespace).fetch_enrollment(namespace.identity)
        _print({"salt": record.salt_hex, "commitment": record.commitment_hex})
        return 0

    if namespace.command == "prove":
        registry = ArtifactRegistry(namespace.keys)
        try:
            proof, public_signals = create_login_proof(
                _secret(namespace),
                namespace.salt,
                namespace.commitment,
                registry.proving_key(),
            )
        except WitnessError:
            print("Password does not match the commitment", file=sys.stderr)
            return 1
        Path(namespace.proof_out).write_text(json.dumps(proof, indent=2), encoding="utf-8")
        Path(namespace.public_out).write_text(json.dumps(public_signals, indent=2), encoding="utf-8")
        _print({"proof": namespace.proof_out, "public": namespace.public_out})
        return 0

    if namespace.command == "verify":
        registry = ArtifactRegistry(namespace.keys)
        proof = json.loads(Path(namespace.proof).read_text(encoding="utf-8"))
        public_signals = json.loads(Path(namespace.public).read_text(encoding="utf-8"))
        _print({"verified": verify(registry.verification_key(), public_signals, proof)})
        return 0

    if namespace.command == "login":
        coordinator = _coordinator(namespace)
        try:
            session = login(
                coordinator,
                namespace.identity,
                _secret(namespace),
                coordinator.artifacts.proving_key(),
            )
        except VerificationFailedError as exc:
            print(str(exc), file=sys.stderr)
            return 1
        _print({"ok": True, "token": session.token})
        return 0

    if namespace.command == "delete":
        _coordinator(namespace).delete_enrollment(namespace.identity)
        _print({"ok": True})
        return 0

    if namespace.command == "migrate-store":
        count = migrate_legacy_store(namespace.path)
        _print({"ok": True, "records": count})
        return 0

    raise RuntimeError("Unreachable")


def main(argv: list[str] | None = None) -> int:
    namespace = parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(namespace.log_level)
    try:
        return run(namespace)
    except ZKLoginError as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"{type(exc).__name__}: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
