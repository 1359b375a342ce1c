"""
Test suite for the `nyas` command line.

Author: xwest
"""

import logging
import os
import sys
import tempfile
import unittest

from click.testing import CliRunner

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from nyascript import __version__
from nyascript.cli import main


class TestCommandLine(unittest.TestCase):
    """Test cases for the run, check and tokens commands."""

    def setUp(self):
        self.runner = CliRunner()
        self.directory = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.directory.cleanup()
        # Drop the handler bound to the runner's stderr
        logger = logging.getLogger("nyascript")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)

    def _script(self, source: str) -> str:
        path = os.path.join(self.directory.name, "script.nyas")
        with open(path, "w", encoding="utf-8") as f:
            f.write(source)
        return path

    def test_run_success(self):
        result = self.runner.invoke(main, ["run", self._script('print "hello";')])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Scanning...", result.output)
        self.assertIn("Parsing...", result.output)
        self.assertIn("hello\n", result.output)
        self.assertIn("Script exit with code 0", result.output)

    def test_run_quiet(self):
        result = self.runner.invoke(main, ["run", "--quiet", self._script('print "hello";')])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(result.output, "hello\n")

    def test_run_parse_error(self):
        result = self.runner.invoke(main, ["run", self._script("print y;")])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Script exit with code 1", result.output)
        self.assertIn("Cannot use variable y before Declaration", result.output)

    def test_run_strict(self):
        result = self.runner.invoke(main, ["run", "--strict", self._script("print y; print z;")])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Parsing canceled due to strict mode.", result.output)
        self.assertNotIn("Cannot use variable z", result.output)

    def test_run_runtime_error(self):
        result = self.runner.invoke(main, ["run", self._script("var f = null; f();")])
        self.assertEqual(result.exit_code, 2)
        self.assertIn("Can not INVOKE uncallable object [NULL].", result.output)
        self.assertIn("R001: Uncallable object", result.output)
        self.assertIn("Script exit with code 2", result.output)

    def test_check(self):
        result = self.runner.invoke(main, ["check", self._script("var x = 1;")])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("No errors found.", result.output)

    def test_check_reports_errors(self):
        result = self.runner.invoke(main, ["check", self._script("print y; print z;")])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Found 2 error(s).", result.output)
        self.assertIn("P004 Undeclared identifier: 2", result.output)

    def test_check_ir(self):
        result = self.runner.invoke(main, ["check", "--ir", self._script("var x = 1;")])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("program", result.output)

    def test_tokens(self):
        result = self.runner.invoke(main, ["tokens", self._script("var x;")])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("VAR", result.output)
        self.assertIn("EOF", result.output)

    def test_version(self):
        result = self.runner.invoke(main, ["--version"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn(__version__, result.output)


if __name__ == '__main__':
    unittest.main()
