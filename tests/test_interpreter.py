"""
Test suite for the NyaScript execution engine.

Tests cover:
- Statements, expressions and printing
- Control flow: loops, switch, goto with forward and shadowed labels
- Functions, lambdas and closures over shared cells
- Records, arrays and reflective field access
- Runtime errors and warnings
- Linked compilation against a persistent global frame

Author: xwest
"""

import unittest
from io import StringIO
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from nyascript.config import CompilerOptions, RuntimeOptions
from nyascript.pipeline import compile_source
from nyascript.runtime import (
    Interpreter, default_registry, DynamicValue, NULL,
    NyaRuntimeError, UncallableError, ArityError, IndexRangeError,
    FieldError, ValueTypeError, RecursionDepthError,
)


class InterpreterTestCase(unittest.TestCase):
    """Shared helpers: compile a snippet and run it with captured output."""

    def setUp(self):
        self.out = StringIO()
        self.natives = default_registry(stdout=self.out)
        self.interpreter = Interpreter(natives=self.natives, output=self.out)

    def _compile(self, source: str, linked=None):
        result = compile_source(source, CompilerOptions(filename="test.nyas"), self.natives, linked)
        self.assertTrue(result.ok, [str(error) for error in result.errors])
        return result

    def _run(self, source: str) -> str:
        self.interpreter.run(self._compile(source).program)
        return self.out.getvalue()


class TestStatements(InterpreterTestCase):
    """Printing, expressions and assignment."""

    def test_print_forms(self):
        output = self._run(
            'print 1; print 2.5; print "s"; print true; print null; '
            'print [1, "a"]; print {k: 1};'
        )
        self.assertEqual(output, '1\n2.5\ns\ntrue\nnull\n[1, "a"]\n{k: 1}\n')

    def test_concatenation(self):
        self.assertEqual(self._run('print "n" + 1 + true;'), "n1true\n")

    def test_compound_assignment_and_steps(self):
        output = self._run("var x = 5; x += 2; x *= 3; print x; print ++x; print --x;")
        self.assertEqual(output, "21\n22\n21\n")

    def test_assignment_takes_whole_ternary(self):
        output = self._run("var x = 0; x = false ? 1 : 2; print x;")
        self.assertEqual(output, "2\n")

    def test_constants(self):
        self.assertEqual(self._run("let k = 2; print k * 3;"), "6\n")

    def test_truthiness(self):
        output = self._run(
            'if (0) print "zero"; if ("") print "empty"; '
            'if (null) print "no"; else print "null";'
        )
        self.assertEqual(output, "zero\nempty\nnull\n")

    def test_logical_operators(self):
        output = self._run('print 1 && null; print null || "x"; print true ^^ true;')
        self.assertEqual(output, "false\ntrue\nfalse\n")

    def test_logical_short_circuit(self):
        output = self._run('fun loud() { print "called"; return true; } print false && loud();')
        self.assertEqual(output, "false\n")

    def test_run_returns_last_expression(self):
        value = self.interpreter.run(self._compile("var x = 40; x + 2;").program)
        self.assertIsInstance(value, DynamicValue)
        self.assertEqual(value.payload, 42.0)

    def test_run_returns_null_after_statement(self):
        value = self.interpreter.run(self._compile("print 1;").program)
        self.assertIs(value, NULL)


class TestControlFlow(InterpreterTestCase):
    """Loops, switch and goto."""

    def test_while_loop(self):
        self.assertEqual(self._run("var i = 0; while (i < 3) { print i; ++i; }"), "0\n1\n2\n")

    def test_for_with_break_and_continue(self):
        output = self._run(
            "for (var i = 0; i < 5; ++i) { if (i == 2) continue; if (i == 4) break; print i; }"
        )
        self.assertEqual(output, "0\n1\n3\n")

    def test_for_without_clauses(self):
        output = self._run("var n = 0; for (;;) { ++n; if (n == 3) break; } print n;")
        self.assertEqual(output, "3\n")

    def test_nested_loops_break_inner_only(self):
        output = self._run(
            "for (var i = 0; i < 2; ++i) { for (var j = 0; j < 5; ++j) { if (j == 1) break; print i + j; } }"
        )
        self.assertEqual(output, "0\n1\n")

    def test_switch_has_no_fallthrough(self):
        output = self._run('switch (2) { case 1: print "a"; case 2: print "b"; case 3: print "c"; }')
        self.assertEqual(output, "b\n")

    def test_switch_default_and_return(self):
        output = self._run(
            'fun name(x) { switch (x) { case 1: return "one"; case 2: return "two"; '
            'default: return "many"; } } print name(1); print name(2); print name(9);'
        )
        self.assertEqual(output, "one\ntwo\nmany\n")

    def test_switch_subject_evaluated_once(self):
        output = self._run(
            "var n = 0; fun next() { ++n; return n; } "
            'switch (next()) { case 5: print "five"; case 6: print "six"; default: print n; }'
        )
        self.assertEqual(output, "1\n")

    def test_forward_goto(self):
        self.assertEqual(self._run('goto skip; print "no"; label skip; print "yes";'), "yes\n")

    def test_backward_goto(self):
        output = self._run("var i = 0; label top; ++i; if (i < 3) goto top; print i;")
        self.assertEqual(output, "3\n")

    def test_forward_goto_with_shadowed_labels(self):
        output = self._run(
            'var trace = ""; '
            '{ goto done; trace = trace + "a"; label done; trace = trace + "b"; } '
            'goto done; trace = trace + "c"; '
            'label done; trace = trace + "d"; '
            'print trace;'
        )
        self.assertEqual(output, "bd\n")

    def test_goto_out_of_nested_block(self):
        output = self._run('{ { goto out; print "inner"; } print "outer"; } print "skipped"; label out; print "yes";')
        self.assertEqual(output, "yes\n")

    def test_goto_out_of_loop(self):
        output = self._run(
            'var i = 0; while (true) { ++i; if (i == 3) goto after; } label after; print i;'
        )
        self.assertEqual(output, "3\n")


class TestFunctions(InterpreterTestCase):
    """Functions, lambdas and closures."""

    def test_recursion(self):
        output = self._run(
            "fun fact(n) { if (n <= 1) return 1; return n * fact(n - 1); } print fact(5);"
        )
        self.assertEqual(output, "120\n")

    def test_missing_return_gives_null(self):
        self.assertEqual(self._run("fun f() {} print f();"), "null\n")

    def test_lambda_self_recursion(self):
        output = self._run("var fib = fun (n) => n < 2 ? n : self(n - 1) + self(n - 2); print fib(10);")
        self.assertEqual(output, "55\n")

    def test_anonymous_lambda_recursion(self):
        output = self._run("var f = fun _(n) => n <= 1 ? 1 : n * _(n - 1); print f(5);")
        self.assertEqual(output, "120\n")

    def test_closures_share_state(self):
        output = self._run(
            "fun counter() { var count = 0; "
            "return { inc: fun () => ++count, get: fun () => count }; } "
            "var c = counter(); c.inc(); c.inc(); print c.get(); "
            "var d = counter(); d.inc(); print d.get(); print c.get();"
        )
        self.assertEqual(output, "2\n1\n2\n")

    def test_closure_mutation_seen_by_outer_scope(self):
        output = self._run(
            "fun outer() { var c = 0; var inc = fun () => ++c; inc(); inc(); return c; } "
            "print outer();"
        )
        self.assertEqual(output, "2\n")

    def test_closure_sees_later_assignment(self):
        self.assertEqual(self._run("var x = 1; var f = fun () => x; x = 5; print f();"), "5\n")

    def test_extra_arguments_ignored(self):
        self.assertEqual(self._run("fun one(a) { return a; } print one(1, 2, 3);"), "1\n")

    def test_many_arguments(self):
        names = ", ".join(f"p{i}" for i in range(20))
        args = ", ".join(str(i) for i in range(20))
        self.assertEqual(self._run(f"fun last({names}) {{ return p19; }} print last({args});"), "19\n")

    def test_deep_recursion(self):
        output = self._run("fun down(n) { if (n == 0) return 0; return down(n - 1); } print down(300);")
        self.assertEqual(output, "0\n")

    def test_call_depth_limit(self):
        interpreter = Interpreter(RuntimeOptions(max_call_depth=50), self.natives, self.out)
        program = self._compile("fun spin(n) { return spin(n + 1); } spin(0);").program
        with self.assertRaises(RecursionDepthError):
            interpreter.run(program)


class TestContainers(InterpreterTestCase):
    """Arrays, strings and records."""

    def test_array_index_and_assignment(self):
        output = self._run("var a = [1, [2, 3]]; a[0] = 10; a[1, 0] += 5; print a; print a[1][1];")
        self.assertEqual(output, "[10, [7, 3]]\n3\n")

    def test_string_index(self):
        self.assertEqual(self._run('print "nya"[1]; var s = "cat"; print s[0];'), "y\nc\n")

    def test_record_this(self):
        output = self._run('var cat = { name: "Tama", me: this }; print cat.me.name;')
        self.assertEqual(output, "Tama\n")

    def test_duplicate_fields_last_wins(self):
        self.assertEqual(self._run("var r = { a: 1, a: 2 }; print r.a; print r;"), "2\n{a: 2}\n")

    def test_string_field_names_and_reflection(self):
        output = self._run(
            'var r = { "full name": "Tama" }; var key = "full name"; print r.@key; '
            'r.@"age" = 3; print r.age;'
        )
        self.assertEqual(output, "Tama\n3\n")

    def test_field_assignment(self):
        self.assertEqual(self._run("var r = {}; r.x = 1; r.x += 1; print r;"), "{x: 2}\n")


class TestRuntimeErrors(InterpreterTestCase):
    """Fatal errors escape run() with a location."""

    def _fails(self, source: str, error_type):
        program = self._compile(source).program
        with self.assertRaises(error_type) as context:
            self.interpreter.run(program)
        self.assertIsInstance(context.exception, NyaRuntimeError)
        return context.exception

    def test_invoke_null(self):
        error = self._fails("var f = null; f();", UncallableError)
        self.assertEqual(str(error), "[ RuntimeError ] at line [1] : Can not INVOKE uncallable object [NULL].")

    def test_arity_error_is_distinct(self):
        error = self._fails("fun g(a, b) {} g(1);", ArityError)
        self.assertNotIsInstance(error, UncallableError)

    def test_index_out_of_range(self):
        self._fails("var a = [1, 2]; print a[5];", IndexRangeError)

    def test_missing_field(self):
        self._fails("var r = {a: 1}; print r.b;", FieldError)

    def test_type_error(self):
        error = self._fails('var x = "a" - 1;', ValueTypeError)
        self.assertIsNotNone(error.location)

    def test_huge_left_shift(self):
        error = self._fails("var x = 1; print x << 100000000000;", ValueTypeError)
        self.assertIn("too large to be a number", error.message)

    def test_error_line(self):
        error = self._fails("var a = 1;\nvar b = null;\nb();", UncallableError)
        self.assertEqual(error.location.line, 3)


class TestNativesAndLinking(InterpreterTestCase):
    """Native calls, warnings and linked compilation."""

    def test_native_call(self):
        self.assertEqual(self._run("print $Len([1, 2, 3]); print $ToString(1.5) + \"!\";"), "3\n1.5!\n")

    def test_warnings_are_collected(self):
        with self.assertLogs("nyascript.runtime", level="WARNING") as logs:
            output = self._run('$Warning("careful"); print $Len(5);')
        self.assertEqual(output, "1\n")
        self.assertEqual(
            [warning.message for warning in self.interpreter.warnings],
            ["careful", "In static method [$Len]: 'number' is not a enumerable type."],
        )
        self.assertIn("[ Runtime Warning ]: careful", logs.output[0])

    def test_eval(self):
        self.assertEqual(self._run('print $Eval("1 + 41;");'), "42\n")

    def test_eval_parse_failure(self):
        with self.assertLogs("nyascript", level="WARNING"):
            output = self._run('print $Eval("1 +");')
        self.assertEqual(output, "null\n")
        self.assertTrue(self.interpreter.warnings[-1].message.endswith("is not a parsable string."))

    def test_runtime_registry_overrides_natives(self):
        program = compile_source("print $ToString(1);").program
        natives = default_registry(stdout=self.out)
        natives.register("ToString", lambda value: "custom")
        Interpreter(natives=natives, output=self.out).run(program)
        self.assertEqual(self.out.getvalue(), "custom\n")

    def test_linked_units_share_globals(self):
        first = self._compile("var shared = 41; fun bump() { ++shared; }")
        self.interpreter.run(first.program)
        second = self._compile("bump(); print shared;", linked=first.exported)
        self.interpreter.run(second.program)
        self.assertEqual(self.out.getvalue(), "42\n")

    def test_repeated_runs_are_independent(self):
        source = "var total = 0; for (var i = 1; i <= 4; ++i) total += i; print total;"
        program = self._compile(source).program
        self.interpreter.run(program)
        Interpreter(natives=self.natives, output=self.out).run(self._compile(source).program)
        self.assertEqual(self.out.getvalue(), "10\n10\n")


if __name__ == '__main__':
    unittest.main()
