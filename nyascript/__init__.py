"""
NyaScript Language Package

A small dynamically typed scripting language: a single-pass compiler that
emits an executable program graph, and a tree-walking interpreter that
runs it.

Architecture:
    nyascript/
    ├── lexer/           # Tokenization and lexical analysis
    ├── analyzer/        # Scope management (variable slots, label targets)
    ├── parser/          # Single-pass compiler emitting IR
    ├── ir/              # Program graph
    ├── runtime/         # Dynamic values, interpreter, native functions
    ├── pipeline.py      # scan -> parse -> run
    └── cli.py           # `nyas` command line

Author: xwest
License: MIT
"""

__version__ = "0.1.0"
__author__ = "xwest"
__license__ = "MIT"

from .config import CompilerOptions, RuntimeOptions
from .lexer import Lexer
from .parser import Parser, CompileResult, ParseError
from .runtime import DynamicValue, Interpreter, NyaRuntimeError, default_registry
from .pipeline import scan, compile_source, run_source
from .diagnostics import configure_logging

__all__ = [
    # Core classes
    "Lexer",
    "Parser",
    "Interpreter",
    "DynamicValue",
    "CompileResult",

    # Pipeline
    "scan",
    "compile_source",
    "run_source",
    "default_registry",

    # Configuration and diagnostics
    "CompilerOptions",
    "RuntimeOptions",
    "configure_logging",

    # Errors
    "ParseError",
    "NyaRuntimeError",

    # Version info
    "__version__",
    "__author__",
    "__license__",
]
