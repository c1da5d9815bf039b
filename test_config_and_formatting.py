import json
import os
import tempfile
import unittest
from unittest import mock

# Ensure local imports work when running this file directly.
THIS_DIR = os.path.dirname(os.path.abspath(__file__))
if THIS_DIR not in os.sys.path:
    os.sys.path.insert(0, THIS_DIR)

import config
from utils.formatting import describe_audio_features, format_duration, format_key, format_track_line


class TestConfig(unittest.TestCase):
    def test_defaults_are_valid(self):
        is_valid, errors = config.validate_config(dict(config.DEFAULT_CONFIG))
        self.assertTrue(is_valid, errors)

    def test_load_applies_defaults(self):
        with tempfile.TemporaryDirectory() as td:
            path = os.path.join(td, "config.json")
            with open(path, "w", encoding="utf-8") as f:
                json.dump({"app_origin": "http://example.test"}, f)

            with mock.patch.object(config, "CONFIG_PATH", path):
                loaded = config.load_config()

        self.assertEqual(loaded["app_origin"], "http://example.test")
        self.assertEqual(loaded["refresh_base_url"], config.DEFAULT_CONFIG["refresh_base_url"])
        self.assertEqual(loaded["seed_track_count"], 5)

    def test_missing_file_raises(self):
        with mock.patch.object(config, "CONFIG_PATH", os.path.join(tempfile.gettempdir(), "does-not-exist.json")):
            with self.assertRaises(FileNotFoundError):
                config.load_config()

    def test_validation_errors(self):
        cfg = dict(config.DEFAULT_CONFIG)
        cfg["seed_track_count"] = 9
        cfg["refresh_base_url"] = "localhost:8888"
        cfg["log_level"] = "LOUD"
        cfg["request_timeout"] = True

        is_valid, errors = config.validate_config(cfg)

        self.assertFalse(is_valid)
        joined = "\n".join(errors)
        self.assertIn("seed_track_count", joined)
        self.assertIn("refresh_base_url", joined)
        self.assertIn("log_level", joined)
        self.assertIn("request_timeout", joined)

    def test_update_config_rejects_unknown_and_invalid(self):
        with tempfile.TemporaryDirectory() as td:
            path = os.path.join(td, "config.json")
            with mock.patch.object(config, "CONFIG_PATH", path):
                config.save_config(dict(config.DEFAULT_CONFIG))

                ok, _ = config.update_config("nope", 1)
                self.assertFalse(ok)

                ok, _ = config.update_config("recommendation_limit", 500)
                self.assertFalse(ok)

                ok, _ = config.update_config("recommendation_limit", 10)
                self.assertTrue(ok)
                self.assertEqual(config.load_config()["recommendation_limit"], 10)


class TestFormatting(unittest.TestCase):
    def test_format_duration(self):
        self.assertEqual(format_duration(180000), "3:00")
        self.assertEqual(format_duration(61999), "1:01")
        self.assertEqual(format_duration(None), "--:--")

    def test_format_track_line(self):
        track = {"name": "Song", "artists": [{"name": "A"}, {"name": "B"}], "duration_ms": 125000}
        self.assertEqual(format_track_line(track), "A, B - Song (2:05)")

    def test_format_key(self):
        self.assertEqual(format_key(0, 1), "C major")
        self.assertEqual(format_key(9, 0), "A minor")
        self.assertEqual(format_key(-1, 1), "Unknown")
        self.assertEqual(format_key(None, 1), "Unknown")

    def test_describe_audio_features(self):
        described = describe_audio_features({"energy": 0.9, "tempo": 128.4, "key": 2, "mode": 1, "loudness": -5.3})
        self.assertEqual(described["energy"], "90%")
        self.assertEqual(described["tempo"], "128 BPM")
        self.assertEqual(described["key"], "D major")
        self.assertEqual(described["loudness"], "-5.3 dB")
        self.assertEqual(describe_audio_features(None), {})


if __name__ == "__main__":
    unittest.main(verbosity=2)
