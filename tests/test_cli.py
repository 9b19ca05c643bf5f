import contextlib
import io
import json
import os
import tempfile
import unittest

from support import SECRET, keys

import zk_login
from zklogin.artifacts import write_artifacts


class TestCommandLine(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.store = os.path.join(self._tmp.name, "records.json")
        self.keys = os.path.join(self._tmp.name, "keys")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _run(self, *argv: str) -> tuple:
        stdout = io.StringIO()
        stderr = io.StringIO()
        with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
            code = zk_login.main(["--store", self.store, "--keys", self.keys, *argv])
        return code, stdout.getvalue(), stderr.getvalue()

    def test_commit_is_deterministic_for_a_salt(self) -> None:
        salt = "00" * 16
        _, first, _ = self._run("commit", "--secret", SECRET, "--salt", salt)
        _, second, _ = self._run("commit", "--secret", SECRET, "--salt", salt)
        self.assertEqual(json.loads(first), json.loads(second))
        self.assertEqual(json.loads(first)["salt"], salt)

    def test_enroll_fetch_login(self) -> None:
        write_artifacts(self.keys, *keys())
        code, output, _ = self._run("enroll", "a@example.com", "--secret", SECRET)
        self.assertEqual(code, 0)
        enrolled = json.loads(output)

        code, output, _ = self._run("fetch", "a@example.com")
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(output)["commitment"], enrolled["commitment"])

        code, output, _ = self._run("login", "a@example.com", "--secret", SECRET)
        self.assertEqual(code, 0)
        self.assertTrue(json.loads(output)["token"])

        code, _, error = self._run("login", "a@example.com", "--secret", "wrong")
        self.assertEqual(code, 1)
        self.assertIn("Authentication failed", error)

    def test_unknown_identity_reports_error(self) -> None:
        code, _, error = self._run("fetch", "nobody@example.com")
        self.assertEqual(code, 1)
        self.assertIn("NotFoundError", error)


if __name__ == "__main__":
    unittest.main()
