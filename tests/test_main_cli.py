import contextlib
import io
import os
import tempfile
import unittest

from main import main

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
TEST_CONFIG_DIR = os.path.join(REPO_ROOT, "config", "tests")


def _run(*argv):
    out = io.StringIO()
    with contextlib.redirect_stdout(out):
        code = main(["--config-dir", TEST_CONFIG_DIR, "--log-level", "error", *argv])
    return code, out.getvalue()


class TestMainCli(unittest.TestCase):
    def test_encode_prints_program(self):
        code, text = _run("encode", "--set", "weight=999", "--copies", "2")
        self.assertEqual(code, 0)
        self.assertTrue(text.startswith("SIZE 100 mm,100 mm\n"))
        self.assertIn('"WEIGHT: 999 g"', text)
        self.assertIn('"TEST-001"', text)
        self.assertTrue(text.endswith("PRINT 2\n"))

    def test_encode_rejects_unknown_field(self):
        code, text = _run("encode", "--set", "colour=red")
        self.assertEqual(code, 1)
        self.assertEqual(text, "")

    def test_encode_rejects_bad_size(self):
        code, _text = _run("encode", "--size", "1x1")
        self.assertEqual(code, 1)

    def test_ports_lists_mock_endpoint(self):
        code, text = _run("ports")
        self.assertEqual(code, 0)
        self.assertIn("[mock]", text)
        self.assertIn("mock0", text)

    def test_missing_config_exits_1(self):
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(SystemExit) as cm:
                main(["--config-dir", d, "--log-level", "error", "ports"])
        self.assertEqual(cm.exception.code, 1)


if __name__ == "__main__":
    unittest.main()
