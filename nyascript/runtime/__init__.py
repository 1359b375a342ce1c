"""
NyaScript Runtime Package

Dynamic values, the tree-walking interpreter and the native function
library.

Key Features:
- Explicit tagged-union values (null, bool, number, string, array,
  record, callable)
- Closures over shared, mutable cells
- Host functions reachable from scripts through `$Name(...)`
- Non-fatal warnings for malformed native calls and I/O failures

Author: xwest
"""

from .values import (
    DynamicValue, ValueKind, NyaCallable, HostFunction,
    NULL, TRUE, FALSE, is_truthy, to_text, binary, unary, invoke,
)
from .errors import (
    NyaRuntimeError, UncallableError, ArityError, IndexRangeError,
    FieldError, ValueTypeError, RecursionDepthError,
    NyaRuntimeWarning, collect_warnings,
)
from .natives import NativeRegistry, default_registry
from .redirect import RedirectHooks, register_redirects, hooks
from .interpreter import Interpreter, Function, Frame, Cell

__all__ = [
    # Values
    "DynamicValue", "ValueKind", "NyaCallable", "HostFunction",
    "NULL", "TRUE", "FALSE", "is_truthy", "to_text", "binary", "unary", "invoke",

    # Errors and warnings
    "NyaRuntimeError", "UncallableError", "ArityError", "IndexRangeError",
    "FieldError", "ValueTypeError", "RecursionDepthError",
    "NyaRuntimeWarning", "collect_warnings",

    # Natives
    "NativeRegistry", "default_registry",
    "RedirectHooks", "register_redirects", "hooks",

    # Execution engine
    "Interpreter", "Function", "Frame", "Cell",
]
