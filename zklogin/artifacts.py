"""Published proving artifacts.

A directory of artifacts holds the proving key (zksnake's binary encoding),
the verification key (JSON) and a
``manifest.json`` naming the circuit, its version, its constraint digest and
the SHA-256 of each key file. Keys are loaded once, checked against the
manifest digests and the compiled circuit, and then shared read-only.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .circuit import PasswordLoginCircuit
from .constants import CIRCUIT_NAME, CIRCUIT_VERSION
from .errors import ArtifactError
from .groth16 import ProvingKey, VerificationKey, check_proving_key

logger = logging.getLogger(__name__)

MANIFEST_FILE = "manifest.json"
PROVING_KEY_FILE = f"{CIRCUIT_NAME}_v{CIRCUIT_VERSION}_proving_key.bin"
VERIFICATION_KEY_FILE = f"{CIRCUIT_NAME}_v{CIRCUIT_VERSION}_verification_key.json"


@dataclass(frozen=True)
class ArtifactManifest:
    circuit: str
    version: int
    circuit_id: str
    proving_key: str
    proving_key_sha256: str
    verification_key: str
    verification_key_sha256: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "circuit": self.circuit,
            "version": self.version,
            "circuit_id": self.circuit_id,
            "files": {
                "proving_key": {"path": self.proving_key, "sha256": self.proving_key_sha256},
                "verification_key": {
                    "path": self.verification_key,
                    "sha256": self.verification_key_sha256,
                },
            },
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "ArtifactManifest":
        try:
            files = data["files"]
            return ArtifactManifest(
                circuit=str(data["circuit"]),
                version=int(data["version"]),
                circuit_id=str(data["circuit_id"]),
                proving_key=str(files["proving_key"]["path"]),
                proving_key_sha256=str(files["proving_key"]["sha256"]),
                verification_key=str(files["verification_key"]["path"]),
                verification_key_sha256=str(files["verification_key"]["sha256"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ArtifactError(f"Invalid artifact manifest: {exc}") from exc


def _sha256(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


def _write_json(path: Path, payload: Dict[str, Any]) -> None:
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    os.replace(tmp_path, path)


def _read_bytes(path: Path, expected_sha256: Optional[str]) -> bytes:
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ArtifactError(f"Cannot read artifact {path}: {exc.strerror}") from exc
    if expected_sha256 is not None and hashlib.sha256(raw).hexdigest() != expected_sha256:
        raise ArtifactError(f"Artifact {path.name} does not match its published digest")
    return raw


def _read_json(path: Path, expected_sha256: Optional[str]) -> Dict[str, Any]:
    raw = _read_bytes(path, expected_sha256)
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ArtifactError(f"Artifact {path.name} is not valid JSON") from exc


def write_artifacts(
    directory: str | os.PathLike,
    proving_key: ProvingKey,
    verification_key: VerificationKey,
) -> ArtifactManifest:
    """Write both keys and their manifest into ``directory``."""

    target = Path(directory)
    target.mkdir(parents=True, exist_ok=True)
    pk_path = target / PROVING_KEY_FILE
    vk_path = target / VERIFICATION_KEY_FILE
    tmp_path = pk_path.with_name(pk_path.name + ".tmp")
    tmp_path.write_bytes(proving_key.to_bytes())
    os.replace(tmp_path, pk_path)
    _write_json(vk_path, verification_key.to_dict())
    manifest = ArtifactManifest(
        circuit=CIRCUIT_NAME,
        version=CIRCUIT_VERSION,
        circuit_id=verification_key.circuit_id,
        proving_key=PROVING_KEY_FILE,
        proving_key_sha256=_sha256(pk_path),
        verification_key=VERIFICATION_KEY_FILE,
        verification_key_sha256=_sha256(vk_path),
    )
    _write_json(target / MANIFEST_FILE, manifest.to_dict())
    logger.info("Wrote %s v%d artifacts to %s", CIRCUIT_NAME, CIRCUIT_VERSION, target)
    return manifest


def read_manifest(directory: str | os.PathLike) -> ArtifactManifest:
    return ArtifactManifest.from_dict(_read_json(Path(directory) / MANIFEST_FILE, None))


def load_proving_key(path: str | os.PathLike, circuit_id: str, sha256: Optional[str] = None) -> ProvingKey:
    """Read a binary proving key. The file carries no circuit id, so the caller supplies it."""

    return ProvingKey.from_bytes(circuit_id, _read_bytes(Path(path), sha256))


def load_verification_key(path: str | os.PathLike, sha256: Optional[str] = None) -> VerificationKey:
    return VerificationKey.from_dict(_read_json(Path(path), sha256))


def _check_manifest(manifest: ArtifactManifest) -> None:
    if manifest.circuit != CIRCUIT_NAME or manifest.version != CIRCUIT_VERSION:
        raise ArtifactError(
            f"Artifacts are for {manifest.circuit} v{manifest.version}, "
            f"expected {CIRCUIT_NAME} v{CIRCUIT_VERSION}"
        )
    if manifest.circuit_id != PasswordLoginCircuit().compile().digest:
        raise ArtifactError("Artifacts were derived from a different constraint system")


class ArtifactRegistry:
    """Process-wide, read-only holder of the proving artifacts.

    Keys are loaded lazily on first use and replaced only through
    :meth:`reload`.
    """

    def __init__(self, directory: Optional[str | os.PathLike] = None) -> None:
        self.directory = Path(directory) if directory is not None else None
        self._lock = threading.Lock()
        self._manifest: Optional[ArtifactManifest] = None
        self._proving_key: Optional[ProvingKey] = None
        self._verification_key: Optional[VerificationKey] = None

    @classmethod
    def from_keys(
        cls,
        proving_key: Optional[ProvingKey] = None,
        verification_key: Optional[VerificationKey] = None,
    ) -> "ArtifactRegistry":
        registry = cls()
        registry._proving_key = proving_key
        registry._verification_key = verification_key
        return registry

    def _directory(self) -> Path:
        if self.directory is None:
            raise ArtifactError("No artifact directory configured")
        return self.directory

    def manifest(self) -> ArtifactManifest:
        with self._lock:
            if self._manifest is None:
                manifest = read_manifest(self._directory())
                _check_manifest(manifest)
                self._manifest = manifest
            return self._manifest

    def verification_key(self) -> VerificationKey:
        if self._verification_key is None:
            manifest = self.manifest()
            key = load_verification_key(
                self._directory() / manifest.verification_key,
                manifest.verification_key_sha256,
            )
            if key.circuit_id != manifest.circuit_id:
                raise ArtifactError("Verification key does not match the manifest")
            with self._lock:
                self._verification_key = key
        return self._verification_key

    def proving_key(self) -> ProvingKey:
        if self._proving_key is None:
            manifest = self.manifest()
            key = load_proving_key(
                self._directory() / manifest.proving_key,
                manifest.circuit_id,
                manifest.proving_key_sha256,
            )
            check_proving_key(key, PasswordLoginCircuit().compile())
            with self._lock:
                self._proving_key = key
        return self._proving_key

    def reload(self) -> ArtifactManifest:
        """Re-read the manifest and verification key, swapping them in atomically."""

        directory = self._directory()
        manifest = read_manifest(directory)
        _check_manifest(manifest)
        verification_key = load_verification_key(
            directory / manifest.verification_key,
            manifest.verification_key_sha256,
        )
        with self._lock:
            self._manifest = manifest
            self._verification_key = verification_key
            self._proving_key = None
        logger.info("Reloaded artifacts for circuit %s", manifest.circuit_id[:16])
        return manifest


__all__ = [
    "ArtifactManifest",
    "ArtifactRegistry",
    "MANIFEST_FILE",
    "PROVING_KEY_FILE",
    "VERIFICATION_KEY_FILE",
    "write_artifacts",
    "read_manifest",
    "load_proving_key",
    "load_verification_key",
]
