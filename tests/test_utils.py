#!/usr/bin/env python3
"""Tests for environment-driven settings and logging setup."""

import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from src.utils import load_settings, setup_logging
from src.utils.settings import default_fallback_path


class TestLoadSettings(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.env_file = Path(self._tmp.name) / ".env"

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = load_settings(self.env_file)
        self.assertEqual(settings.host, "0.0.0.0")
        self.assertEqual(settings.port, 3001)
        self.assertEqual(settings.max_messages, 1000)
        self.assertEqual(settings.heartbeat_timeout_sec, 10.0)
        self.assertEqual(settings.sweep_interval_sec, 5.0)
        self.assertEqual(settings.server_url, "http://localhost:3001/api")
        self.assertEqual(settings.poll_interval_sec, 1.0)
        self.assertEqual(settings.fallback_path, default_fallback_path())

    def test_env_file_and_overrides(self):
        self.env_file.write_text(
            "CHAT_SERVER_PORT=4000\nCHAT_SERVER_URL=http://example:4000/api/\n",
            encoding="utf-8",
        )
        with patch.dict(os.environ, {"CHAT_MAX_MESSAGES": "50"}, clear=True):
            settings = load_settings(self.env_file)
        self.assertEqual(settings.port, 4000)
        self.assertEqual(settings.server_url, "http://example:4000/api")
        self.assertEqual(settings.max_messages, 50)

    def test_invalid_number(self):
        with patch.dict(os.environ, {"CHAT_SERVER_PORT": "abc"}, clear=True):
            with self.assertRaises(ValueError):
                load_settings(self.env_file)


class TestSetupLogging(unittest.TestCase):

    def setUp(self):
        root = logging.getLogger()
        self._saved_handlers = list(root.handlers)
        self._saved_level = root.level
        self._tmp = tempfile.TemporaryDirectory()

    def tearDown(self):
        root = logging.getLogger()
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = self._saved_handlers
        root.setLevel(self._saved_level)
        self._tmp.cleanup()

    def test_category_files(self):
        log_dir = setup_logging(Path(self._tmp.name) / "logs")
        logging.getLogger("src.store.chat_store").info("store line")
        logging.getLogger("src.client.chat_service").info("client line")
        for handler in logging.getLogger().handlers:
            handler.flush()

        server_log = (log_dir / "server.log").read_text(encoding="utf-8")
        client_log = (log_dir / "client.log").read_text(encoding="utf-8")
        self.assertIn("store line", server_log)
        self.assertNotIn("client line", server_log)
        self.assertIn("client line", client_log)
        self.assertIn("store line", (log_dir / "app.log").read_text(encoding="utf-8"))
        self.assertEqual((log_dir / "error.log").read_text(encoding="utf-8"), "")


if __name__ == "__main__":
    unittest.main()
