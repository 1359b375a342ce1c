"""
NyaScript Analyzer Package

Scope management used by the single-pass compiler: nested environments,
variable slots and label targets.

Author: xwest
"""

from .symbol_table import (
    SymbolTable, Scope, ScopeKind, VariableSlot, LabelTarget, LabelKind
)
from .errors import SymbolError, ScopeStackError

__all__ = [
    "SymbolTable",
    "Scope",
    "ScopeKind",
    "VariableSlot",
    "LabelTarget",
    "LabelKind",
    "SymbolError",
    "ScopeStackError",
]
