"""
Test suite for the NyaScript single-pass compiler.

Tests cover:
- IR emitted for declarations and expressions
- Parse errors, their report format and recovery
- Strict mode
- Scope balance after errors and between compile calls

Author: xwest
"""

import logging
import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from nyascript.config import CompilerOptions
from nyascript.lexer import Lexer
from nyascript.parser import Parser, ParseError, StrictModeAbort
from nyascript.ir import Declare, Box, Unbox, BinaryOp, ExpressionStatement, FunctionLiteral
from nyascript.pipeline import compile_source


class TestParser(unittest.TestCase):
    """Test cases for the compiler."""

    def _compile(self, source: str, strict: bool = False):
        """Compile a snippet with parser diagnostics captured."""
        options = CompilerOptions(strict=strict, filename="test.nyas")
        with self.assertLogs("nyascript", level="DEBUG") as logs:
            # assertLogs needs at least one record
            logging.getLogger("nyascript.parser").debug("compiling")
            result = compile_source(source, options)
        return result, [record.getMessage() for record in logs.records]

    def _messages(self, source: str):
        result, _ = self._compile(source)
        return [error.message for error in result.errors]

    # ------------------------------------------------------------------
    # Successful compilation
    # ------------------------------------------------------------------

    def test_exported_globals(self):
        result, _ = self._compile("var a = 1; fun f(x) { return x; } { var inner = 2; }")
        self.assertTrue(result.ok)
        self.assertEqual(set(result.exported), {"a", "f"})
        self.assertEqual({slot.name for slot in result.program.globals}, {"a", "f"})

    def test_var_initializer_is_boxed(self):
        result, _ = self._compile("var x = 1;")
        declare = result.program.body.statements[0]
        self.assertIsInstance(declare, Declare)
        self.assertIsInstance(declare.initializer, Box)

    def test_constant_initializer_is_unboxed(self):
        result, _ = self._compile("let k = [1];")
        declare = result.program.body.statements[0]
        self.assertTrue(declare.slot.constant)
        self.assertIsInstance(declare.initializer, Unbox)

    def test_static_arithmetic_stays_raw(self):
        result, _ = self._compile("1 + 2;")
        statement = result.program.body.statements[0]
        self.assertIsInstance(statement, ExpressionStatement)
        self.assertIsInstance(statement.expression, BinaryOp)
        self.assertFalse(statement.expression.dynamic)

    def test_function_declaration(self):
        result, _ = self._compile("fun add(a, b) { return a + b; }")
        function = result.program.body.statements[0].initializer
        self.assertIsInstance(function, FunctionLiteral)
        self.assertEqual(function.arity, 2)
        self.assertEqual(function.name, "add")

    def test_many_parameters(self):
        names = ", ".join(f"p{i}" for i in range(20))
        result, _ = self._compile(f"fun wide({names}) {{ return p19; }}")
        self.assertTrue(result.ok)
        self.assertEqual(result.program.body.statements[0].initializer.arity, 20)

    def test_parse_twice_gives_same_result(self):
        tokens = Lexer("var x = 1; fun f() { return x; }").tokenize()
        parser = Parser(tokens)
        first = parser.parse()
        second = parser.parse()
        self.assertTrue(first.ok)
        self.assertTrue(second.ok)
        self.assertEqual(set(first.exported), set(second.exported))
        self.assertEqual(parser.symbols.depth, 0)

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    def test_undeclared_identifier(self):
        result, logs = self._compile("print y;")
        self.assertFalse(result.ok)
        self.assertEqual(result.errors[0].message, "Cannot use variable y before Declaration")
        self.assertIn("[ ParserError ] at line [1] in [y] : Cannot use variable y before Declaration", logs)

    def test_error_at_end_of_input(self):
        result, logs = self._compile("var x = 1")
        self.assertEqual(len(result.errors), 1)
        self.assertIn(
            "[ ParserError ] at line [1] in [end] : Expect ';' after variable declaration.", logs
        )

    def test_recovery_reports_every_error(self):
        result, _ = self._compile("var = 1; var b = 2; print c;")
        self.assertEqual(len(result.errors), 2)
        self.assertIn("b", result.exported)

    def test_scopes_restored_after_error_in_function(self):
        result, _ = self._compile("fun f(a, 1) { } var b = 2;")
        self.assertEqual(len(result.errors), 1)
        self.assertIn("b", result.exported)
        self.assertIn("f", result.exported)

    def test_strict_mode_aborts(self):
        with self.assertLogs("nyascript.parser", level="ERROR"):
            with self.assertRaises(StrictModeAbort) as context:
                compile_source("print y; var x = 1;", CompilerOptions(strict=True))
        error = context.exception
        self.assertIsInstance(error, ParseError)
        self.assertEqual(error.message, "Parsing canceled due to strict mode.")
        self.assertEqual(error.__cause__.message, "Cannot use variable y before Declaration")

    def test_assign_to_constant(self):
        self.assertEqual(self._messages("let k = 1; k = 2;"), ["Cannot assign to constant 'k'."])

    def test_invalid_targets(self):
        self.assertEqual(self._messages("1 = 2;"), ["Invalid assignment target."])
        self.assertEqual(self._messages("++1;"), ["Invalid increment target."])
        self.assertEqual(self._messages("--null;"), ["Invalid decrement target."])

    def test_postfix_step_note(self):
        result, logs = self._compile("var i = 0; i++;")
        self.assertEqual(len(result.errors), 1)
        self.assertIn("[ Note ] NyaScript doesn't support expressions like ' i++ ', do you mean ' ++i '?", logs)

    def test_jumps_outside_their_construct(self):
        self.assertEqual(self._messages("break;"), ["No loops to break."])
        self.assertEqual(self._messages("continue;"), ["No loops to continue."])
        self.assertEqual(self._messages("return 1;"), ["Cannot find RETURN label."])

    def test_break_does_not_cross_function(self):
        messages = self._messages("while (true) { fun f() { break; } break; }")
        self.assertEqual(messages, ["No loops to break."])

    def test_goto_undefined_label(self):
        self.assertEqual(self._messages("goto nowhere;"), ["Undefined label 'nowhere'."])

    def test_goto_does_not_leave_function(self):
        messages = self._messages("label top; fun f() { goto top; }")
        self.assertEqual(messages, ["Undefined label 'top'."])

    def test_duplicate_label(self):
        messages = self._messages("label a; label a;")
        self.assertEqual(len(messages), 1)
        self.assertIn("already declared", messages[0])

    def test_unknown_native(self):
        result, _ = self._compile("$len(1);")
        self.assertEqual(result.errors[0].message, "Invalid static method.")
        self.assertIn("Did you mean '$Len'?", result.errors[0].diagnostic.suggestions)

    def test_this_outside_record(self):
        self.assertEqual(self._messages("print this;"), ["Unexpected keyword 'this'."])

    def test_named_lambda(self):
        messages = self._messages("var f = fun g() => 1;")
        self.assertEqual(len(messages), 1)
        self.assertTrue(messages[0].startswith("Lambda function should not be named"))

    def test_class_is_rejected(self):
        self.assertEqual(self._messages("class A {}"), ["Class declarations are not supported."])

    def test_empty_index(self):
        self.assertEqual(self._messages("var a = [1]; a[];"), ["Too less argument for array index."])

    def test_redeclaration(self):
        messages = self._messages("var a = 1; var a = 2;")
        self.assertEqual(len(messages), 1)
        self.assertIn("already declared", messages[0])

    def test_lexer_errors_fail_compilation(self):
        result, logs = self._compile("var x = `1;")
        self.assertEqual(result.errors, [])
        self.assertEqual(len(result.lex_errors), 1)
        self.assertFalse(result.ok)


if __name__ == '__main__':
    unittest.main()
