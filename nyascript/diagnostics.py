"""
Logging setup for the diagnostics sink.

Library modules only create loggers under the `nyascript` hierarchy;
applications (and the command line) decide where the messages go.

Author: xwest
"""

import logging
import sys
from collections import Counter
from typing import Any, Iterable, List, Optional, TextIO

from .lexer.errors import ERROR_CODES
from .analyzer.errors import SCOPE_ERROR_CODES
from .parser.errors import PARSER_ERROR_CODES
from .runtime.errors import RUNTIME_ERROR_CODES


ROOT_LOGGER = "nyascript"

# Marks handlers installed here so a second call replaces them
_INSTALLED = "_nyascript_handler"


def configure_logging(level: int = logging.INFO, stream: Optional[TextIO] = None) -> logging.Handler:
    """
    Send NyaScript diagnostics to a stream as plain messages.

    Args:
        level: minimum level to emit
        stream: destination (sys.stderr if None)

    Returns:
        The installed handler
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, _INSTALLED, False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    setattr(handler, _INSTALLED, True)
    logger.addHandler(handler)
    logger.setLevel(level)
    return handler


def describe_code(code: Optional[str]) -> Optional[str]:
    """
    Short title for a diagnostic code (`L0xx`, `S0xx`, `P0xx` or `R0xx`).

    Returns None for an unknown or missing code.
    """
    if not code:
        return None
    tables = {
        "L": ERROR_CODES,
        "S": SCOPE_ERROR_CODES,
        "P": PARSER_ERROR_CODES,
        "R": RUNTIME_ERROR_CODES,
    }
    return tables.get(code[0], {}).get(code)


def summarize_codes(errors: Iterable[Any]) -> List[str]:
    """
    One `CODE title: count` line per distinct code among `errors`.

    Errors without a code are left out.
    """
    counts = Counter(error.diagnostic.code for error in errors if error.diagnostic.code)
    return [f"{code} {describe_code(code) or 'Unknown'}: {count}"
            for code, count in sorted(counts.items())]
