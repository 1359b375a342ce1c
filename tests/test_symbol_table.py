"""
Test suite for the NyaScript scope manager.

Author: xwest
"""

import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from nyascript.analyzer import (
    SymbolTable, ScopeKind, LabelKind, VariableSlot, SymbolError, ScopeStackError
)


class TestSymbolTable(unittest.TestCase):
    """Test cases for scopes, slots and labels."""

    def setUp(self):
        self.symbols = SymbolTable()

    def test_slots_are_unique(self):
        first = self.symbols.define_variable("x")
        with self.symbols.scoped(ScopeKind.BLOCK):
            second = self.symbols.define_variable("x")
            self.assertIs(self.symbols.lookup("x"), second)
        self.assertIsNot(first, second)
        self.assertNotEqual(first.id, second.id)
        self.assertIs(self.symbols.lookup("x"), first)

    def test_name_unreachable_after_exit(self):
        self.symbols.enter_scope(ScopeKind.BLOCK)
        self.symbols.define_variable("inner")
        self.symbols.exit_scope()
        self.assertIsNone(self.symbols.lookup("inner"))

    def test_redeclaration_in_same_scope(self):
        self.symbols.define_variable("x")
        with self.assertRaises(SymbolError) as context:
            self.symbols.define_variable("x")
        self.assertEqual(context.exception.diagnostic.code, "S001")

    def test_exit_at_root_is_internal_error(self):
        with self.assertRaises(ScopeStackError):
            self.symbols.exit_scope()
        self.assertTrue(issubclass(ScopeStackError, AssertionError))

    def test_unwind_to_depth(self):
        self.symbols.enter_scope(ScopeKind.FUNCTION)
        depth = self.symbols.depth
        self.symbols.enter_scope(ScopeKind.BLOCK)
        self.symbols.enter_scope(ScopeKind.LOOP)
        self.assertEqual(self.symbols.depth, depth + 2)
        self.symbols.unwind_to(depth)
        self.assertEqual(self.symbols.depth, depth)
        self.assertEqual(self.symbols.current_scope.kind, ScopeKind.FUNCTION)

    def test_scoped_releases_on_error(self):
        with self.assertRaises(RuntimeError):
            with self.symbols.scoped(ScopeKind.BLOCK):
                with self.symbols.scoped(ScopeKind.BLOCK):
                    raise RuntimeError("boom")
        self.assertEqual(self.symbols.depth, 0)

    def test_linked_names_resolve_after_globals(self):
        shared = VariableSlot("shared")
        self.symbols.reset({"shared": shared, "y": VariableSlot("y")})
        self.assertIs(self.symbols.lookup("shared"), shared)
        own = self.symbols.define_variable("y")
        self.assertIs(self.symbols.lookup("y"), own)
        self.assertEqual(set(self.symbols.exported_names()), {"y"})

    def test_reserved_labels_stop_at_function(self):
        with self.symbols.scoped(ScopeKind.LOOP):
            loop_break = self.symbols.define_reserved(LabelKind.BREAK)
            self.assertIs(self.symbols.lookup_reserved(LabelKind.BREAK), loop_break)
            with self.symbols.scoped(ScopeKind.FUNCTION):
                self.symbols.define_reserved(LabelKind.RETURN)
                self.assertIsNone(self.symbols.lookup_reserved(LabelKind.BREAK))
                self.assertIsNotNone(self.symbols.lookup_reserved(LabelKind.RETURN))
        self.assertIsNone(self.symbols.lookup_reserved(LabelKind.RETURN))

    def test_pending_label_is_claimed_by_placement(self):
        pending = self.symbols.declare_pending_label("done")
        self.assertFalse(pending.placed)
        placed = self.symbols.place_label("done")
        self.assertIs(placed, pending)
        self.assertTrue(placed.placed)
        with self.assertRaises(SymbolError) as context:
            self.symbols.place_label("done")
        self.assertEqual(context.exception.diagnostic.code, "S002")

    def test_inner_label_shadows_outer(self):
        outer = self.symbols.declare_pending_label("done")
        with self.symbols.scoped(ScopeKind.BLOCK):
            inner = self.symbols.declare_pending_label("done")
            self.assertIs(self.symbols.lookup_label("done"), inner)
        self.assertIs(self.symbols.lookup_label("done"), outer)

    def test_similar_names(self):
        self.symbols.define_variable("counter")
        self.assertIn("counter", self.symbols.similar_names("countr"))


if __name__ == '__main__':
    unittest.main()
