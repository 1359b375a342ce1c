"""
Runtime errors and warnings for NyaScript.

Errors escape to whoever runs the program. Warnings never escape: they are
logged as `[ Runtime Warning ]: ...` and the failed operation yields a
null/default value instead.

Author: xwest
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional

from ..lexer.tokens import SourceLocation
from ..lexer.errors import Diagnostic


logger = logging.getLogger("nyascript.runtime")


class NyaRuntimeError(Exception):
    """
    Exception raised when a running script hits a fatal error.

    Subclasses tell the failure kinds apart so callers can react to each.
    """

    code = "R000"

    def __init__(self, message: str, location: Optional[SourceLocation] = None,
                 help_text: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.diagnostic = Diagnostic(
            message=message,
            location=location,
            severity="error",
            code=self.code,
            help_text=help_text,
        )

    @property
    def location(self) -> Optional[SourceLocation]:
        return self.diagnostic.location

    def with_location(self, location: Optional[SourceLocation]) -> 'NyaRuntimeError':
        """Attach a source location if none is known yet."""
        if self.diagnostic.location is None and location is not None:
            self.diagnostic.location = location
        return self

    def __str__(self) -> str:
        if self.location is not None:
            return f"[ RuntimeError ] at line [{self.location.line}] : {self.message}"
        return f"[ RuntimeError ] : {self.message}"


class UncallableError(NyaRuntimeError):
    """Invoking a value that is not a function."""
    code = "R001"


class ArityError(NyaRuntimeError):
    """Invoking a function with fewer arguments than it declares."""
    code = "R002"


class IndexRangeError(NyaRuntimeError):
    """Index outside the bounds of an array or string."""
    code = "R003"


class FieldError(NyaRuntimeError):
    """Record has no field with the requested name."""
    code = "R004"


class ValueTypeError(NyaRuntimeError):
    """Operation applied to a value of the wrong kind."""
    code = "R005"


class RecursionDepthError(NyaRuntimeError):
    """Call nesting went past the configured limit."""
    code = "R006"


# Runtime error codes for categorization
RUNTIME_ERROR_CODES = {
    "R000": "Runtime error",
    "R001": "Uncallable object",
    "R002": "Too few arguments",
    "R003": "Index out of range",
    "R004": "Missing record field",
    "R005": "Incompatible value kind",
    "R006": "Call depth exceeded",
}


@dataclass
class NyaRuntimeWarning:
    """A non-fatal runtime problem."""
    message: str

    def __str__(self) -> str:
        return f"[ Runtime Warning ]: {self.message}"

    @classmethod
    def log(cls, message: str) -> 'NyaRuntimeWarning':
        """Report a warning to the log and to every active collector."""
        warning = cls(message)
        logger.warning(str(warning))
        for collector in _collectors:
            collector.append(warning)
        return warning


_collectors: List[List[NyaRuntimeWarning]] = []


@contextmanager
def collect_warnings(target: List[NyaRuntimeWarning]) -> Iterator[List[NyaRuntimeWarning]]:
    """Also append warnings raised inside the `with` block to `target`."""
    _collectors.append(target)
    try:
        yield target
    finally:
        _collectors.pop()
