from __future__ import annotations

import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

from scripts.progress_admin import (
    EXIT_MALFORMED,
    EXIT_NOT_FOUND,
    EXIT_OK,
    EXIT_STORE_UNAVAILABLE,
    main,
)


class ProgressAdminCliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.location = str(self.root / "logs")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _run(self, *argv: str) -> tuple[int, dict]:
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            code = main(["--backend", "json", "--location", self.location, *argv])
        return code, json.loads(buffer.getvalue())

    def _payload_file(self, name: str, payload: dict) -> str:
        path = self.root / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return str(path)

    def test_submit_show_list_delete(self) -> None:
        first = self._payload_file("a1.json", {"playerName": "alice", "stats": {"gold": 150}, "swords": {"sword1": 2}})
        second = self._payload_file("a2.json", {"playerName": "alice", "stats": {"gold": 50}, "swords": {"sword1": 2}})

        code, body = self._run("submit", "--file", first)
        self.assertEqual((code, body["status"]), (EXIT_OK, "CREATED"))

        code, body = self._run("submit", "--file", second)
        self.assertEqual((code, body["status"]), (EXIT_OK, "REGRESSION_DETECTED"))
        self.assertEqual(body["reasons"], ["stats.gold"])

        code, body = self._run("show", "alice")
        self.assertEqual(code, EXIT_OK)
        self.assertEqual(body["dataloss"]["currentData"]["stats"], {"gold": 50})

        code, body = self._run("list", "--dataloss")
        self.assertEqual([row["name"] for row in body["logs"]], ["alice"])
        code, body = self._run("list")
        self.assertEqual(body["logs"], [])

        code, body = self._run("delete", "alice")
        self.assertEqual((code, body["status"]), (EXIT_OK, "DELETED"))
        code, body = self._run("delete", "alice")
        self.assertEqual((code, body["status"]), (EXIT_NOT_FOUND, "NOT_FOUND"))
        code, body = self._run("show", "alice")
        self.assertEqual(code, EXIT_NOT_FOUND)

    def test_submit_from_stdin(self) -> None:
        stdin = io.StringIO(json.dumps({"playerName": "bob", "swords": {"sword1": 0}}))
        with patch("sys.stdin", stdin):
            code, body = self._run("submit")
        self.assertEqual((code, body["status"]), (EXIT_OK, "CREATED"))

    def test_malformed_payload_exit_code(self) -> None:
        bad_json = self.root / "bad.json"
        bad_json.write_text("{oops", encoding="utf-8")
        code, body = self._run("submit", "--file", str(bad_json))
        self.assertEqual((code, body["code"]), (EXIT_MALFORMED, "MALFORMED_INPUT"))

        bad_shape = self._payload_file("shape.json", {"playerName": "bob", "stats": {"gold": "1"}})
        code, body = self._run("submit", "--file", bad_shape)
        self.assertEqual(code, EXIT_MALFORMED)

        code, body = self._run("submit", "--file", str(self.root / "missing.json"))
        self.assertEqual(code, EXIT_MALFORMED)

    def test_store_unavailable_exit_code(self) -> None:
        blocker = self.root / "blocker"
        blocker.write_text("", encoding="utf-8")
        payload = self._payload_file("ok.json", {"playerName": "bob"})

        buffer = io.StringIO()
        with redirect_stdout(buffer):
            code = main(["--backend", "json", "--location", str(blocker), "submit", "--file", payload])

        self.assertEqual(code, EXIT_STORE_UNAVAILABLE)
        self.assertEqual(json.loads(buffer.getvalue())["code"], "STORE_UNAVAILABLE")


if __name__ == "__main__":
    unittest.main()
