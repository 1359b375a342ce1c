"""
Test suite for the NyaScript native function library.

Tests cover:
- Registry operations and host function wrapping
- Standard library results and their warnings
- File helpers and I/O failure handling
- Host redirection hooks

Author: xwest
"""

import os
import random
import sys
import tempfile
import unittest
from io import StringIO

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from nyascript.pipeline import run_source
from nyascript.runtime import (
    Interpreter, NativeRegistry, default_registry, DynamicValue, ValueKind,
    NyaRuntimeError, RedirectHooks, register_redirects,
)


def _quoted(text: str) -> str:
    """NyaScript string literal for `text`."""
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


class TestNativeRegistry(unittest.TestCase):
    """Test cases for NativeRegistry."""

    def test_register_and_lookup(self):
        registry = NativeRegistry()
        function = registry.register("Twice", lambda value: value.payload * 2)
        self.assertIs(registry.lookup("Twice"), function)
        self.assertEqual(function.arity, 1)
        self.assertIn("Twice", registry)
        self.assertIsNone(registry.lookup("Missing"))

    def test_decorator_and_names(self):
        registry = NativeRegistry()

        @registry.native("Zed")
        def zed():
            return None

        @registry.native(arity=2)
        def alpha(*values):
            return len(values)

        self.assertEqual(registry.names(), ["Zed", "alpha"])
        self.assertEqual(len(registry), 2)
        self.assertEqual(registry.lookup("alpha").arity, 2)
        self.assertTrue(registry.lookup("alpha").accepts_varargs)

    def test_similar_names(self):
        registry = default_registry()
        self.assertIn("FileReadAllText", registry.similar_names("fileread"))

    def test_host_results_are_converted(self):
        registry = default_registry()

        @registry.native("Pet")
        def pet():
            return {"name": "Tama", "tags": ["cat", 1]}

        out = StringIO()
        run_source("var p = $Pet(); print p.name; print p.tags;", output=out, natives=registry)
        self.assertEqual(out.getvalue(), 'Tama\n["cat", 1]\n')


class TestStandardLibrary(unittest.TestCase):
    """Test cases for the functions of default_registry()."""

    def setUp(self):
        self.out = StringIO()
        self.natives = default_registry(
            stdout=self.out, stdin=StringIO("hello\nworld\n"), rng=random.Random(7)
        )
        self.interpreter = Interpreter(natives=self.natives, output=self.out)

    def _eval(self, source: str) -> DynamicValue:
        return run_source(source, natives=self.natives, interpreter=self.interpreter)

    def _warnings(self):
        return [warning.message for warning in self.interpreter.warnings]

    def test_concat(self):
        self.assertEqual(str(self._eval("$Concat([1], [2, 3]);")), "[1, 2, 3]")
        self.assertEqual(str(self._eval("$Concat([1], 2);")), "[1, 2]")

    def test_concat_warns_on_non_array(self):
        with self.assertLogs("nyascript.runtime", level="WARNING"):
            value = self._eval("$Concat(1, 2);")
        self.assertTrue(value.is_null)
        self.assertIn("the first argument should be array or tuple", self._warnings()[0])

    def test_len(self):
        self.assertEqual(self._eval('$Len("abc");').payload, 3.0)
        self.assertEqual(self._eval("$Len({a: 1, b: 2});").payload, 2.0)

    def test_len_of_null_is_fatal(self):
        with self.assertRaises(NyaRuntimeError) as context:
            self._eval("$Len(null);")
        self.assertIn("NULL argument error", str(context.exception))

    def test_to_string(self):
        value = self._eval("$ToString([1, true]);")
        self.assertEqual(value.kind, ValueKind.STRING)
        self.assertEqual(value.payload, "[1, true]")

    def test_console(self):
        self._eval('$DebugLog("a"); $DebugLog(1); $DebugLogLine("b");')
        self.assertEqual(self.out.getvalue(), "a1b\n")
        self.assertEqual(self._eval("$DebugReadLine();").payload, "hello")
        self.assertEqual(self._eval("$DebugReadLine();").payload, "world")

    def test_file_round_trip(self):
        with tempfile.TemporaryDirectory() as directory:
            path = _quoted(os.path.join(directory, "note.txt"))
            self._eval(f'$FileWriteAllText({path}, "one\\ntwo");')
            self.assertEqual(self._eval(f"$FileReadAllText({path});").payload, "one\ntwo")

            self._eval(f'$FileWriteAllLines({path}, ["x", 2]);')
            lines = self._eval(f"$FileReadAllLines({path});")
            self.assertEqual(str(lines), '["x", "2"]')
        self.assertEqual(self._warnings(), [])

    def test_missing_file_warns(self):
        with tempfile.TemporaryDirectory() as directory:
            path = _quoted(os.path.join(directory, "missing.txt"))
            with self.assertLogs("nyascript.runtime", level="WARNING"):
                text = self._eval(f"$FileReadAllText({path});")
                lines = self._eval(f"$FileReadAllLines({path});")
        self.assertEqual(text.payload, "")
        self.assertTrue(lines.is_null)
        self.assertTrue(all("doesn't exist." in message for message in self._warnings()))
        self.assertEqual(len(self._warnings()), 2)

    def test_undecodable_file_warns(self):
        with tempfile.TemporaryDirectory() as directory:
            raw_path = os.path.join(directory, "binary.dat")
            with open(raw_path, "wb") as f:
                f.write(b"\xff\xfe bad")
            path = _quoted(raw_path)
            with self.assertLogs("nyascript.runtime", level="WARNING"):
                text = self._eval(f"$FileReadAllText({path});")
                lines = self._eval(f"$FileReadAllLines({path});")
        self.assertEqual(text.payload, "")
        self.assertTrue(lines.is_null)
        self.assertEqual(len(self._warnings()), 2)
        self.assertTrue(all("is not valid UTF-8 text." in message for message in self._warnings()))

    def test_invalid_path_warns(self):
        path = _quoted("a\x00b")
        with self.assertLogs("nyascript.runtime", level="WARNING"):
            text = self._eval(f"$FileReadAllText({path});")
            lines = self._eval(f"$FileReadAllLines({path});")
            self._eval(f'$FileWriteAllText({path}, "x");')
            self._eval(f'$FileWriteAllLines({path}, ["x"]);')
        self.assertEqual(text.payload, "")
        self.assertTrue(lines.is_null)
        self.assertEqual(len(self._warnings()), 4)
        self.assertTrue(all("is not a valid path." in message for message in self._warnings()))

    def test_file_argument_kinds(self):
        with self.assertLogs("nyascript.runtime", level="WARNING"):
            self._eval('$FileWriteAllText(1, "x");')
            self._eval('$FileWriteAllLines("out.txt", "x");')
        self.assertIn("the argument 'path' should be string", self._warnings()[0])
        self.assertIn("the argument 'texts' should be array", self._warnings()[1])

    def test_random(self):
        number = self._eval("$Random();").payload
        self.assertTrue(0.0 <= number < 1.0)
        value = self._eval("$RandomInt(10);").payload
        self.assertTrue(0 <= value < 10)
        self.assertEqual(value, int(value))
        ranged = self._eval("$RandomRange(5, 8);").payload
        self.assertTrue(5 <= ranged < 8)
        self.assertEqual(self._eval("$RandomRange(3, 3);").payload, 3.0)

    def test_random_warnings(self):
        with self.assertLogs("nyascript.runtime", level="WARNING"):
            self.assertEqual(self._eval("$RandomInt(0);").payload, -1.0)
            self.assertEqual(self._eval('$RandomInt("x");').payload, -1.0)
            self.assertEqual(self._eval("$RandomRange(5, 1);").payload, -1.0)
        self.assertEqual(len(self._warnings()), 3)

    def test_ticks(self):
        first = self._eval("$Ticks();").payload
        self.assertGreater(first, 0)

    def test_warning(self):
        with self.assertLogs("nyascript.runtime", level="WARNING") as logs:
            self.assertTrue(self._eval('$Warning("look out");').is_null)
        self.assertEqual(logs.output, ["WARNING:nyascript.runtime:[ Runtime Warning ]: look out"])

    def test_eval_shares_the_registry(self):
        value = self._eval('$Eval("$DebugLog(\\"inner\\"); 2 * 21;");')
        self.assertEqual(value.payload, 42.0)
        self.assertEqual(self.out.getvalue(), "inner")

    def test_redirects_unregistered(self):
        registry = NativeRegistry()
        register_redirects(registry, RedirectHooks())
        interpreter = Interpreter(natives=registry)
        with self.assertLogs("nyascript.runtime", level="WARNING"):
            value = run_source('$PushLine("x"); $WaitInput();', natives=registry, interpreter=interpreter)
        self.assertEqual(value.payload, -1.0)
        self.assertEqual(
            interpreter.warnings[0].message,
            "In static method [Redirect : $PushLine]: Method unregistered.",
        )

    def test_redirects_installed(self):
        lines = []
        cleared = []
        hooks = RedirectHooks(
            push_line=lines.append,
            push_format_line=lambda text: lines.append(f"<{text}>"),
            wait_input=lambda: 13,
            clear_view=lambda: cleared.append(True),
        )
        registry = NativeRegistry()
        register_redirects(registry, hooks)
        value = run_source(
            '$PushLine("a"); $PushFormatLine(1); $ClearView(); $WaitInput();', natives=registry
        )
        self.assertEqual(lines, ["a", "<1>"])
        self.assertEqual(cleared, [True])
        self.assertEqual(value.payload, 13.0)

        hooks.clear()
        self.assertIsNone(hooks.push_line)


if __name__ == '__main__':
    unittest.main()
