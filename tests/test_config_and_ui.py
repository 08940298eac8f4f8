"""Tests for settings handling and the main window wiring.

Covers: sw.core.config, sw.ui.app, sw.ui.widgets
"""

import json
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

# Keep logs out of the real user profile, and let Qt run without a display
os.environ.setdefault("STOPWATCH_HOME", tempfile.mkdtemp(prefix="stopwatch_test_"))
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


def _ensure_qapp():
    from PySide6.QtWidgets import QApplication

    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app


# ──────────────────────────────────────────────────────────────────────────
# config.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestConfig(unittest.TestCase):
    """Tests for settings load/save in config.py."""

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self._tmppath = Path(self.tmpdir)

        # Monkey-patch config paths to use temp dir
        from sw.core import config
        self._orig_settings_path = config.SETTINGS_PATH
        config.SETTINGS_PATH = self._tmppath / "settings.json"

    def tearDown(self):
        from sw.core import config
        config.SETTINGS_PATH = self._orig_settings_path
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def _write(self, payload):
        from sw.core import config
        with open(config.SETTINGS_PATH, "w", encoding="utf-8") as f:
            f.write(payload if isinstance(payload, str) else json.dumps(payload))

    def test_fresh_start_returns_defaults(self):
        """No settings file → defaults."""
        from sw.core import config
        settings = config.load_settings()
        self.assertEqual(settings, config.build_default_settings())
        self.assertEqual(settings["tick_interval_ms"], 10)
        self.assertEqual(settings["tick_strategy"], "drift_free")

    def test_fresh_start_writes_settings_file(self):
        """load_settings() on fresh start writes the defaults to disk."""
        from sw.core import config
        config.load_settings()
        self.assertTrue(config.SETTINGS_PATH.exists())
        with open(config.SETTINGS_PATH, encoding="utf-8") as f:
            self.assertEqual(json.load(f), config.build_default_settings())

    def test_save_creates_missing_directory(self):
        from sw.core import config
        config.SETTINGS_PATH = self._tmppath / "nested" / "settings.json"
        config.save_settings(config.build_default_settings())
        self.assertTrue(config.SETTINGS_PATH.exists())

    def test_save_and_load_roundtrip(self):
        from sw.core import config
        settings = config.build_default_settings()
        settings["tick_strategy"] = "accumulate"
        settings["confirm_reset"] = True
        config.save_settings(settings)
        self.assertEqual(config.load_settings(), settings)

    def test_invalid_values_are_defaulted(self):
        """Bad types and out-of-range values fall back per key."""
        from sw.core import config
        self._write({
            "tick_interval_ms": 0,
            "tick_strategy": "turbo",
            "always_on_top": "yes",
            "confirm_reset": True,
        })
        settings = config.load_settings()
        self.assertEqual(settings["tick_interval_ms"], 10)
        self.assertEqual(settings["tick_strategy"], "drift_free")
        self.assertFalse(settings["always_on_top"])
        self.assertTrue(settings["confirm_reset"])

    def test_bool_is_not_an_interval(self):
        from sw.core import config
        self._write({"tick_interval_ms": True})
        self.assertEqual(config.load_settings()["tick_interval_ms"], 10)

    def test_missing_keys_are_filled(self):
        from sw.core import config
        self._write({"tick_interval_ms": 50})
        settings = config.load_settings()
        self.assertEqual(settings["tick_interval_ms"], 50)
        self.assertEqual(settings["tick_strategy"], "drift_free")

    def test_unknown_keys_are_dropped(self):
        from sw.core import config
        self._write({"theme": "Galaxy Dark"})
        self.assertNotIn("theme", config.load_settings())

    def test_corrupted_file_returns_defaults(self):
        from sw.core import config
        self._write("{invalid json!!")
        self.assertEqual(config.load_settings(), config.build_default_settings())

    def test_non_object_file_returns_defaults(self):
        from sw.core import config
        self._write([1, 2])
        self.assertEqual(config.load_settings(), config.build_default_settings())


# ──────────────────────────────────────────────────────────────────────────
# MainWindow tests
# ──────────────────────────────────────────────────────────────────────────

class TestMainWindow(unittest.TestCase):

    def setUp(self):
        self.app = _ensure_qapp()
        self._windows = []

    def tearDown(self):
        for w in self._windows:
            w.close()
        self.app.processEvents()

    def make_window(self, initial=None, **overrides):
        from sw.core import config
        from sw.core.store import MemoryStore
        from sw.ui.app import MainWindow
        settings = config.build_default_settings()
        settings.update(overrides)
        self.store = MemoryStore(initial)
        w = MainWindow(settings=settings, store=self.store)
        w.show()
        self._windows.append(w)
        return w

    def test_fresh_window_is_idle(self):
        w = self.make_window()
        self.assertEqual(w._widgets["time"].text(), "0:00:00.000")
        self.assertEqual(w._widgets["toggle"].text(), "Start")
        self.assertEqual(w._widgets["status"].text(), "Ready")
        self.assertTrue(w._widgets["reset"].isHidden())

    def test_cold_load_shows_paused_time(self):
        w = self.make_window({"elapsedTime": "1500", "isRunning": "false"})
        self.assertEqual(w._widgets["time"].text(), "0:00:01.500")
        self.assertEqual(w._widgets["status"].text(), "Paused")
        self.assertFalse(w._widgets["reset"].isHidden())

    def test_toggle_button_starts_and_pauses(self):
        w = self.make_window()
        w._widgets["toggle"].click()
        self.assertTrue(w.engine.running)
        self.assertEqual(w._widgets["toggle"].text(), "Pause")
        self.assertEqual(self.store.get("isRunning"), "true")

        w._widgets["toggle"].click()
        self.assertFalse(w.engine.running)
        self.assertEqual(w._widgets["toggle"].text(), "Start")

    def test_reset_button_clears_everything(self):
        w = self.make_window({"elapsedTime": "90000", "isRunning": "false"})
        w._widgets["reset"].click()
        self.assertEqual(w._widgets["time"].text(), "0:00:00.000")
        self.assertTrue(w._widgets["reset"].isHidden())
        self.assertEqual(self.store.data, {})

    def test_close_releases_engine(self):
        w = self.make_window()
        w._widgets["toggle"].click()
        w.close()
        self.assertFalse(w.engine.tick_active)
        self.assertIsNone(w.engine._lifecycle)

    def test_declined_reset_confirmation_keeps_time(self):
        from PySide6.QtWidgets import QMessageBox
        w = self.make_window({"elapsedTime": "90000", "isRunning": "false"}, confirm_reset=True)
        saved = dict(self.store.data)
        with patch.object(QMessageBox, "question", return_value=QMessageBox.StandardButton.No) as asked:
            w._widgets["reset"].click()
        asked.assert_called_once()
        self.assertEqual(self.store.data, saved)
        self.assertEqual(w._widgets["time"].text(), "0:01:30.000")

    def test_accepted_reset_confirmation_clears(self):
        from PySide6.QtWidgets import QMessageBox
        w = self.make_window({"elapsedTime": "90000", "isRunning": "false"}, confirm_reset=True)
        with patch.object(QMessageBox, "question", return_value=QMessageBox.StandardButton.Yes):
            w._widgets["reset"].click()
        self.assertEqual(self.store.data, {})
        self.assertEqual(w._widgets["time"].text(), "0:00:00.000")

    def test_reset_without_confirmation_never_asks(self):
        from PySide6.QtWidgets import QMessageBox
        w = self.make_window({"elapsedTime": "500", "isRunning": "false"})
        with patch.object(QMessageBox, "question") as asked:
            w._widgets["reset"].click()
        asked.assert_not_called()
        self.assertEqual(self.store.data, {})

    def test_always_on_top_flag(self):
        from PySide6.QtCore import Qt
        on_top = self.make_window(always_on_top=True)
        normal = self.make_window()
        self.assertTrue(on_top.windowFlags() & Qt.WindowStaysOnTopHint)
        self.assertFalse(normal.windowFlags() & Qt.WindowStaysOnTopHint)


if __name__ == "__main__":
    unittest.main()
