"""
Scope management for the NyaScript compiler.

Implements the chain of lexical environments the parser consults while it
compiles:
- linked root (names imported from other compilation units)
- global scope (one per compile call)
- nested block, loop, function and record scopes

Each scope keeps two separate tables: identifier -> variable slot, and
label name -> label target. Reserved labels (`break`, `continue`,
`return`) live in the label table under their keyword.

Author: xwest
"""

import itertools
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional
from dataclasses import dataclass, field
from enum import Enum

from ..lexer.tokens import SourceLocation
from .errors import ScopeStackError, create_redeclaration_error


_slot_ids = itertools.count(1)
_label_ids = itertools.count(1)


class ScopeKind(Enum):
    """Types of scopes."""
    LINKED = "linked"
    GLOBAL = "global"
    BLOCK = "block"
    FUNCTION = "function"
    LOOP = "loop"
    RECORD = "record"


class LabelKind(Enum):
    """Control points a label target can stand for."""
    BREAK = "break"
    CONTINUE = "continue"
    RETURN = "return"
    USER = "label"


@dataclass(eq=False)
class VariableSlot:
    """
    Compile-time identity of one declared variable.

    Compared by identity: two declarations never share a slot, even when
    they use the same name in disjoint scopes.
    """
    name: str
    constant: bool = False
    location: Optional[SourceLocation] = None
    id: int = field(default_factory=lambda: next(_slot_ids))

    def __str__(self) -> str:
        return f"{self.name}#{self.id}"


@dataclass(eq=False)
class LabelTarget:
    """Compile-time identity of one control point."""
    name: str
    kind: LabelKind = LabelKind.USER
    location: Optional[SourceLocation] = None
    # False while the label is only known from the pre-scan of its block
    placed: bool = False
    id: int = field(default_factory=lambda: next(_label_ids))

    def __str__(self) -> str:
        return f"{self.name}@{self.id}"


@dataclass
class Scope:
    """Represents a lexical scope."""
    kind: ScopeKind
    parent: Optional['Scope'] = None
    variables: Dict[str, VariableSlot] = field(default_factory=dict)
    labels: Dict[str, LabelTarget] = field(default_factory=dict)

    def define_variable(self, slot: VariableSlot) -> VariableSlot:
        """Define a variable in this scope."""
        if slot.name in self.variables:
            raise create_redeclaration_error(slot.name, "variable", slot.location)
        self.variables[slot.name] = slot
        return slot

    def define_label(self, target: LabelTarget) -> LabelTarget:
        """Define a label in this scope."""
        if target.name in self.labels:
            raise create_redeclaration_error(target.name, "label", target.location)
        self.labels[target.name] = target
        return target

    def lookup(self, name: str) -> Optional[VariableSlot]:
        """Look up a variable in this scope and parent scopes."""
        scope: Optional[Scope] = self
        while scope is not None:
            slot = scope.variables.get(name)
            if slot is not None:
                return slot
            scope = scope.parent
        return None

    def lookup_label(self, name: str) -> Optional[LabelTarget]:
        """
        Look up a label in this scope and its parents.

        The walk stops after the nearest function scope: control can never
        jump out of a function body.
        """
        scope: Optional[Scope] = self
        while scope is not None:
            target = scope.labels.get(name)
            if target is not None:
                return target
            if scope.kind == ScopeKind.FUNCTION:
                return None
            scope = scope.parent
        return None

    def get_all_names(self) -> List[str]:
        """Get all variable names visible in this scope."""
        names: List[str] = []
        scope: Optional[Scope] = self
        while scope is not None:
            names.extend(scope.variables)
            scope = scope.parent
        return names

    def get_similar_names(self, name: str, max_distance: int = 2) -> List[str]:
        """Get variable names similar to the given name (for error suggestions)."""
        def levenshtein_distance(s1: str, s2: str) -> int:
            if len(s1) < len(s2):
                return levenshtein_distance(s2, s1)

            if len(s2) == 0:
                return len(s1)

            previous_row = list(range(len(s2) + 1))
            for i, c1 in enumerate(s1):
                current_row = [i + 1]
                for j, c2 in enumerate(s2):
                    insertions = previous_row[j + 1] + 1
                    deletions = current_row[j] + 1
                    substitutions = previous_row[j] + (c1 != c2)
                    current_row.append(min(insertions, deletions, substitutions))
                previous_row = current_row

            return previous_row[-1]

        similar_names = []
        for candidate in dict.fromkeys(self.get_all_names()):
            distance = levenshtein_distance(name.lower(), candidate.lower())
            if distance <= max_distance:
                similar_names.append((candidate, distance))

        similar_names.sort(key=lambda x: x[1])
        return [candidate for candidate, _ in similar_names[:5]]

    def __str__(self) -> str:
        return f"Scope({self.kind.value}, {len(self.variables)} variables, {len(self.labels)} labels)"


class SymbolTable:
    """
    Manages the scope stack for one compile call.

    The stack always bottoms out at `linked -> global`; neither root can be
    popped.
    """

    def __init__(self, linked: Optional[Dict[str, VariableSlot]] = None):
        self.reset(linked)

    def reset(self, linked: Optional[Dict[str, VariableSlot]] = None):
        """Drop every scope and start again from fresh linked/global roots."""
        self.linked_scope = Scope(ScopeKind.LINKED)
        for name, slot in (linked or {}).items():
            self.linked_scope.variables[name] = slot
        self.global_scope = Scope(ScopeKind.GLOBAL, parent=self.linked_scope)
        self.current_scope = self.global_scope

    # ------------------------------------------------------------------
    # Scope stack
    # ------------------------------------------------------------------

    @property
    def depth(self) -> int:
        """Number of scopes above the global scope."""
        depth = 0
        scope = self.current_scope
        while scope is not self.global_scope:
            depth += 1
            scope = scope.parent
        return depth

    def enter_scope(self, kind: ScopeKind) -> Scope:
        """Enter a new scope."""
        self.current_scope = Scope(kind, parent=self.current_scope)
        return self.current_scope

    def exit_scope(self) -> Scope:
        """Exit the current scope and return it."""
        if self.current_scope.kind in (ScopeKind.GLOBAL, ScopeKind.LINKED):
            raise ScopeStackError(
                f"Cannot step out of the {self.current_scope.kind.value} scope."
            )
        old_scope = self.current_scope
        self.current_scope = old_scope.parent
        return old_scope

    def unwind_to(self, depth: int):
        """Pop scopes until the stack is back at `depth`."""
        while self.depth > depth:
            self.exit_scope()

    @contextmanager
    def scoped(self, kind: ScopeKind) -> Iterator[Scope]:
        """Enter a scope for the duration of a `with` block, on every exit path."""
        depth = self.depth
        scope = self.enter_scope(kind)
        try:
            yield scope
        finally:
            self.unwind_to(depth)

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------

    def define_variable(self, name: str, location: Optional[SourceLocation] = None,
                        constant: bool = False) -> VariableSlot:
        """Declare a new slot in the current scope."""
        return self.current_scope.define_variable(VariableSlot(name, constant, location))

    def lookup(self, name: str) -> Optional[VariableSlot]:
        """Resolve a name: local scopes, then global, then linked."""
        return self.current_scope.lookup(name)

    def similar_names(self, name: str) -> List[str]:
        return self.current_scope.get_similar_names(name)

    def exported_names(self) -> Dict[str, VariableSlot]:
        """Names declared directly in the global scope, for linking other units."""
        return dict(self.global_scope.variables)

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------

    def define_reserved(self, kind: LabelKind) -> LabelTarget:
        """Bind a fresh break/continue/return target in the current scope."""
        return self.current_scope.define_label(LabelTarget(kind.value, kind, placed=True))

    def lookup_reserved(self, kind: LabelKind) -> Optional[LabelTarget]:
        """Find the nearest break/continue/return target, never crossing a function."""
        return self.current_scope.lookup_label(kind.value)

    def declare_pending_label(self, name: str, location: Optional[SourceLocation] = None) -> LabelTarget:
        """Register a user label found by pre-scanning the current block."""
        return self.current_scope.define_label(LabelTarget(name, LabelKind.USER, location))

    def place_label(self, name: str, location: Optional[SourceLocation] = None) -> LabelTarget:
        """
        Claim the label a `label name;` declaration puts at this position.

        Returns the target registered by the pre-scan when there is one,
        otherwise defines it now.
        """
        target = self.current_scope.labels.get(name)
        if target is None:
            target = self.current_scope.define_label(LabelTarget(name, LabelKind.USER, location))
        elif target.placed:
            raise create_redeclaration_error(name, "label", location)
        target.placed = True
        target.location = location
        return target

    def lookup_label(self, name: str) -> Optional[LabelTarget]:
        """Resolve a user label through the enclosing scopes of the current function."""
        return self.current_scope.lookup_label(name)

    def __str__(self) -> str:
        return f"SymbolTable(depth: {self.depth}, current: {self.current_scope})"
