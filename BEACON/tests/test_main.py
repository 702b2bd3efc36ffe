import unittest
from unittest import mock
from pathlib import Path
import contextlib
import io
import tempfile
import sys

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from BEACON import main as cli


class TestCommandLine(unittest.TestCase):
    def test_unknown_preset_is_usage_error(self):
        err = io.StringIO()
        with tempfile.TemporaryDirectory() as td:
            argv = ["beacon", "--config", str(Path(td) / "absent.json"), "--preset", "Ultraviolet"]
            with mock.patch.object(sys, "argv", argv), contextlib.redirect_stderr(err):
                with self.assertRaises(SystemExit) as ctx:
                    cli.main()

        self.assertEqual(ctx.exception.code, 2)
        self.assertIn("unknown preset 'Ultraviolet'", err.getvalue())
        self.assertIn("Infrared", err.getvalue())


if __name__ == "__main__":
    unittest.main()
