import json
import tempfile
import unittest
from pathlib import Path

from support import keys

from zklogin.artifacts import (
    MANIFEST_FILE,
    PROVING_KEY_FILE,
    VERIFICATION_KEY_FILE,
    ArtifactRegistry,
    read_manifest,
    write_artifacts,
)
from zklogin.circuit import PasswordLoginCircuit
from zklogin.errors import ArtifactError


class TestArtifacts(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.directory = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_written_artifacts_load_through_registry(self) -> None:
        proving_key, verification_key = keys()
        manifest = write_artifacts(self.directory, proving_key, verification_key)
        self.assertEqual(manifest.circuit_id, PasswordLoginCircuit().compile().digest)
        self.assertEqual(read_manifest(self.directory), manifest)

        registry = ArtifactRegistry(self.directory)
        self.assertEqual(registry.verification_key().to_dict(), verification_key.to_dict())
        self.assertEqual(registry.proving_key().to_bytes(), proving_key.to_bytes())
        self.assertTrue((self.directory / PROVING_KEY_FILE).read_bytes())
        self.assertIs(registry.verification_key(), registry.verification_key())

    def test_tampered_key_is_rejected(self) -> None:
        write_artifacts(self.directory, *keys())
        path = self.directory / VERIFICATION_KEY_FILE
        document = json.loads(path.read_text(encoding="utf-8"))
        document["IC"] = document["IC"][:1]
        path.write_text(json.dumps(document), encoding="utf-8")
        with self.assertRaises(ArtifactError):
            ArtifactRegistry(self.directory).verification_key()

    def test_missing_directory_is_an_artifact_error(self) -> None:
        with self.assertRaises(ArtifactError):
            ArtifactRegistry(self.directory / "absent").verification_key()
        with self.assertRaises(ArtifactError):
            ArtifactRegistry.from_keys().verification_key()
        with self.assertRaises(ArtifactError):
            ArtifactRegistry.from_keys().proving_key()
        with self.assertRaises(ArtifactError):
            ArtifactRegistry().reload()

    def test_corrupted_proving_key_is_rejected(self) -> None:
        write_artifacts(self.directory, *keys())
        path = self.directory / PROVING_KEY_FILE
        raw = bytearray(path.read_bytes())
        raw[-1] ^= 0x01
        path.write_bytes(bytes(raw))
        registry = ArtifactRegistry(self.directory)
        registry.verification_key()
        with self.assertRaises(ArtifactError):
            registry.proving_key()

    def test_manifest_for_other_version_is_rejected(self) -> None:
        write_artifacts(self.directory, *keys())
        path = self.directory / MANIFEST_FILE
        document = json.loads(path.read_text(encoding="utf-8"))
        document["version"] = 2
        path.write_text(json.dumps(document), encoding="utf-8")
        with self.assertRaises(ArtifactError):
            ArtifactRegistry(self.directory).manifest()

    def test_reload_picks_up_new_files(self) -> None:
        write_artifacts(self.directory, *keys())
        registry = ArtifactRegistry(self.directory)
        registry.verification_key()
        (self.directory / MANIFEST_FILE).unlink()
        with self.assertRaises(ArtifactError):
            registry.reload()
        write_artifacts(self.directory, *keys())
        manifest = registry.reload()
        self.assertEqual(registry.manifest(), manifest)


if __name__ == "__main__":
    unittest.main()
