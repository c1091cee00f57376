import os
import tempfile
import unittest

from core.config import ConfigError, load_config, validate_config

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
MAIN_CONFIG_DIR = os.path.join(REPO_ROOT, "config")
TEST_CONFIG_DIR = os.path.join(REPO_ROOT, "config", "tests")


def _write(path: str, text: str):
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


class TestConfigLoading(unittest.TestCase):
    def test_test_config_loads(self):
        cfg = load_config(TEST_CONFIG_DIR)
        validate_config(cfg)
        self.assertEqual(cfg.scale.transport, "mock")
        self.assertEqual(cfg.printer.label_size, "100x100")
        self.assertEqual(cfg.label_defaults["tracking_number"], "TEST-001")
        self.assertTrue(cfg.paths["label"].endswith("label_test.yaml"))
        # Unset blocks fall back to schema defaults.
        self.assertEqual(cfg.label.qr_url_template, "https://tracking.post.ir/?id={tracking}")

    def test_shipped_config_is_valid(self):
        cfg = load_config(MAIN_CONFIG_DIR)
        validate_config(cfg)
        self.assertEqual(cfg.label_defaults["weight"], "205")

    def test_missing_main_config(self):
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(ConfigError):
                load_config(d)

    def test_multiple_main_configs(self):
        with tempfile.TemporaryDirectory() as d:
            _write(os.path.join(d, "main_a.yaml"), "scale: {}\n")
            _write(os.path.join(d, "main_b.yaml"), "scale: {}\n")
            with self.assertRaises(ConfigError):
                load_config(d)

    def test_unknown_keys_are_rejected(self):
        cases = [
            ("bogus", "bogus: 1\n"),
            ("scale.speed", "scale:\n  speed: 3\n"),
        ]
        for expected, text in cases:
            with self.subTest(key=expected):
                with tempfile.TemporaryDirectory() as d:
                    _write(os.path.join(d, "main_x.yaml"), text)
                    with self.assertRaises(ConfigError) as cm:
                        load_config(d)
                    self.assertIn(expected, str(cm.exception))

    def test_missing_label_defaults_file(self):
        with tempfile.TemporaryDirectory() as d:
            _write(os.path.join(d, "main_x.yaml"), "label:\n  defaults_file: nope.yaml\n")
            with self.assertRaises(ConfigError):
                load_config(d)

    def test_invalid_yaml(self):
        with tempfile.TemporaryDirectory() as d:
            _write(os.path.join(d, "main_x.yaml"), "scale: [1, 2\n")
            with self.assertRaises(ConfigError):
                load_config(d)


class TestConfigValidation(unittest.TestCase):
    def test_invalid_values_raise_config_error(self):
        cases = [
            ("scale.baud_rate", "scale", {"baud_rate": 14400}),
            ("scale.flush_quiet_ms", "scale", {"flush_quiet_ms": 0}),
            ("scale.read_timeout_ms", "scale", {"read_timeout_ms": 0}),
            ("scale.buffer_cap", "scale", {"buffer_cap": 0}),
            ("scale.encoding", "scale", {"encoding": "no-such-codec"}),
            ("printer.baud_rate", "printer", {"baud_rate": "fast"}),
            ("printer.label_size", "printer", {"label_size": "50x30"}),
            ("printer.copies", "printer", {"copies": 0}),
            ("label.qr_url_template", "label", {"qr_url_template": "https://x/{id}"}),
            ("label.qr_url_template", "label", {"qr_url_template": "https://x/"}),
            ("hmi.port", "hmi", {"port": 70000}),
            ("runtime.log_level", "runtime", {"log_level": "loud"}),
            ("runtime.log_history_size", "runtime", {"log_history_size": 0}),
        ]
        for expected_name, target, patch in cases:
            with self.subTest(field=expected_name, patch=patch):
                cfg = load_config(TEST_CONFIG_DIR)
                obj = getattr(cfg, target)
                for k, v in patch.items():
                    setattr(obj, k, v)
                with self.assertRaises(ConfigError) as cm:
                    validate_config(cfg)
                self.assertIn(expected_name, str(cm.exception))

    def test_unknown_label_default_field(self):
        cfg = load_config(TEST_CONFIG_DIR)
        cfg.label_defaults["colour"] = "red"
        with self.assertRaises(ConfigError) as cm:
            validate_config(cfg)
        self.assertIn("colour", str(cm.exception))


if __name__ == "__main__":
    unittest.main()
