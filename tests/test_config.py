from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import config
from render import DEFAULT_CODE_THEME, DEFAULT_WIDTH


class ConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "markterm.json"
        patcher = mock.patch.object(config, "CONFIG_PATH", self.path)
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, data) -> None:
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def test_missing_file_uses_defaults(self) -> None:
        self.assertEqual(config.load_config(), {})
        self.assertEqual(config.load_max_width(), DEFAULT_WIDTH)
        self.assertEqual(config.load_code_theme(), DEFAULT_CODE_THEME)
        self.assertTrue(config.load_watch_enabled())

    def test_values_are_read(self) -> None:
        self._write({"max_width": 72, "code_theme": " dracula ", "watch": False})
        self.assertEqual(config.load_max_width(), 72)
        self.assertEqual(config.load_code_theme(), "dracula")
        self.assertFalse(config.load_watch_enabled())

    def test_malformed_json_uses_defaults(self) -> None:
        self.path.write_text("{not json", encoding="utf-8")
        self.assertEqual(config.load_config(), {})

    def test_non_object_uses_defaults(self) -> None:
        self._write([1, 2, 3])
        self.assertEqual(config.load_config(), {})

    def test_invalid_values_use_defaults(self) -> None:
        for value in (0, -5, True, "80", 1.5):
            with self.subTest(value=value):
                self._write({"max_width": value, "code_theme": "", "watch": "yes"})
                self.assertEqual(config.load_max_width(), DEFAULT_WIDTH)
                self.assertEqual(config.load_code_theme(), DEFAULT_CODE_THEME)
                self.assertTrue(config.load_watch_enabled())


if __name__ == "__main__":
    unittest.main()
