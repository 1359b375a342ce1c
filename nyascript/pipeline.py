"""
Convenience API tying the phases together: scan -> parse -> run.

Author: xwest
"""

import logging
from typing import Dict, List, Optional, TextIO, Tuple

from .config import CompilerOptions, RuntimeOptions
from .lexer import Lexer, Token, LexerError
from .analyzer import VariableSlot
from .parser import Parser, CompileResult, ParseError
from .runtime.natives import NativeRegistry, default_registry
from .runtime.values import DynamicValue
from .runtime.interpreter import Interpreter


logger = logging.getLogger(__name__)


def scan(source: str, filename: str = "<script>") -> Tuple[List[Token], List[LexerError]]:
    """
    Tokenize source text, logging every lexical error.

    Returns:
        The token list (always ending with EOF) and the collected errors
    """
    lexer = Lexer(source, filename)
    tokens = lexer.tokenize()
    for error in lexer.errors:
        logger.error(str(error))
    return tokens, lexer.errors


def compile_source(source: str, options: Optional[CompilerOptions] = None,
                   natives: Optional[NativeRegistry] = None,
                   linked: Optional[Dict[str, VariableSlot]] = None) -> CompileResult:
    """
    Scan and compile one unit.

    Args:
        source: program text
        options: compiler options
        natives: registry for `$Name(...)` calls (standard library if None)
        linked: names exported by earlier units

    Returns:
        CompileResult; `ok` is False when scanning or parsing reported errors

    Raises:
        ParseError: on the first parse error in strict mode
    """
    options = options or CompilerOptions()
    tokens, lex_errors = scan(source, options.filename)
    result = Parser(tokens, options, natives).parse(linked)
    result.lex_errors = list(lex_errors)
    return result


def run_source(source: str, options: Optional[CompilerOptions] = None,
               runtime_options: Optional[RuntimeOptions] = None,
               output: Optional[TextIO] = None,
               natives: Optional[NativeRegistry] = None,
               interpreter: Optional[Interpreter] = None) -> DynamicValue:
    """
    Compile and run a unit in one step.

    When `output` is given without a registry, the standard library writes
    its console output to the same stream as `print`.

    Returns:
        Value of the last top-level expression statement, or null

    Raises:
        ParseError: when the unit has lexical or parse errors
        NyaRuntimeError: when execution fails
    """
    if natives is None:
        natives = default_registry(stdout=output)
    result = compile_source(source, options, natives)
    if not result.ok:
        count = len(result.errors) + len(result.lex_errors)
        raise ParseError(f"Compilation failed with {count} error(s).")
    if interpreter is None:
        interpreter = Interpreter(runtime_options, natives, output)
    return interpreter.run(result.program)
