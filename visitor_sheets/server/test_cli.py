import io
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest import mock

from visitor_sheets.server import cli
from visitor_sheets.server.errors import SheetWriteError


class TestCli(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.cfg_path = os.path.join(self.tmp.name, "config.yaml")
        with open(self.cfg_path, "w", encoding="utf-8") as f:
            f.write("google:\n  sheet_id: sheet123\nlogging:\n  level: WARNING\n")

    @mock.patch("visitor_sheets.server.cli.VisitorTracker")
    def test_track_appends_parsed_row(self, tracker_cls):
        ua = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/124.0 Safari/537.36"
        out = io.StringIO()
        with redirect_stdout(out):
            rc = cli.main(["--config", self.cfg_path, "track", "--hostname", "example.com", "--user-agent", ua])
        self.assertEqual(rc, 0)
        settings = tracker_cls.call_args.args[0]
        self.assertEqual(settings.google.sheet_id, "sheet123")
        record = tracker_cls.return_value.track.call_args.args[0]
        self.assertEqual((record.hostname, record.device, record.os, record.browser), ("example.com", "Desktop", "Windows", "Chrome"))
        self.assertIn("Appended", out.getvalue())

    @mock.patch("visitor_sheets.server.cli.VisitorTracker")
    def test_track_failure_exit_code(self, tracker_cls):
        tracker_cls.return_value.track.side_effect = SheetWriteError("Google Sheets append failed: 403", status=403)
        err = io.StringIO()
        with redirect_stderr(err):
            rc = cli.main(["--config", self.cfg_path, "track"])
        self.assertEqual(rc, 1)
        self.assertIn("403", err.getvalue())

    @mock.patch("visitor_sheets.server.cli.VisitorTracker")
    def test_debug(self, tracker_cls):
        tracker_cls.return_value.diagnose.return_value = {"sheetId": "sheet123", "testResult": {"canRead": True}}
        out = io.StringIO()
        with redirect_stdout(out):
            rc = cli.main(["--config", self.cfg_path, "debug"])
        self.assertEqual(rc, 0)
        self.assertIn('"status": "success"', out.getvalue())

    def test_invalid_config(self):
        with open(self.cfg_path, "w", encoding="utf-8") as f:
            f.write("http:\n  timeout_seconds: soon\n")
        err = io.StringIO()
        with redirect_stderr(err):
            rc = cli.main(["--config", self.cfg_path, "debug"])
        self.assertEqual(rc, 2)


if __name__ == "__main__":
    unittest.main()
