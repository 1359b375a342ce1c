"""
Native function registry and the standard library.

Scripts call host functions with the `$Name(args)` sigil; the compiler
resolves the name here at compile time. Host functions receive
DynamicValue arguments and may return None, a primitive, a DynamicValue,
a list (array) or a str-keyed dict (record).

Malformed arguments and I/O failures never stop a script: they are
reported as runtime warnings and the function returns a default value.

Author: xwest
"""

import math
import random
import sys
import time
from typing import Any, Callable, Dict, List, Optional, TextIO, Union

from .errors import NyaRuntimeError, NyaRuntimeWarning
from .values import DynamicValue, HostFunction, ValueKind, to_text
from .redirect import register_redirects


class NativeRegistry:
    """Name -> host function table consulted by the compiler."""

    def __init__(self):
        self._functions: Dict[str, HostFunction] = {}

    def register(self, name: str, func: Callable[..., Any], arity: Optional[int] = None) -> HostFunction:
        """Register (or replace) a host function under `name`."""
        function = HostFunction(func, name=name, arity=arity)
        self._functions[name] = function
        return function

    def native(self, name: Optional[str] = None, arity: Optional[int] = None):
        """Decorator form of register(); defaults to the function's own name."""
        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.register(name or func.__name__, func, arity)
            return func
        return decorator

    def lookup(self, name: str) -> Optional[HostFunction]:
        return self._functions.get(name)

    def names(self) -> List[str]:
        return sorted(self._functions)

    def similar_names(self, name: str) -> List[str]:
        """Registered names that differ from `name` only by case or a prefix."""
        lowered = name.lower()
        return [candidate for candidate in self.names()
                if candidate.lower() == lowered or candidate.lower().startswith(lowered)]

    def __contains__(self, name: str) -> bool:
        return name in self._functions

    def __len__(self) -> int:
        return len(self._functions)


def _short(text: str) -> str:
    """Shorten a path or code string for a warning message."""
    return text if len(text) <= 32 else text[:29] + " ..."


def _kind_name(value: DynamicValue) -> str:
    return value.kind.value


def _io_warning(method: str, path: str, error: Union[OSError, ValueError]):
    """Turn a failure inside a file method into a runtime warning."""
    shown = _short(path)
    if isinstance(error, FileNotFoundError):
        message = f"the specified file \"{shown}\" doesn't exist."
    elif isinstance(error, NotADirectoryError):
        message = f"the specified directory \"{shown}\" doesn't exist."
    elif isinstance(error, PermissionError):
        message = f"no permission to access the specified file or directory \"{shown}\""
    elif isinstance(error, IsADirectoryError):
        message = f"the path \"{shown}\" is a directory."
    elif isinstance(error, UnicodeError):
        message = f"the file \"{shown}\" is not valid UTF-8 text."
    elif isinstance(error, ValueError):
        message = f"the path string \"{shown}\" is not a valid path."
    else:
        message = f"where the path string is \"{shown}\" occurred exception: {error}"
    NyaRuntimeWarning.log(f"In static method [${method}]: {message}")


def _integral(method: str, argument: str, value: DynamicValue) -> Optional[int]:
    if value.kind != ValueKind.NUMBER:
        NyaRuntimeWarning.log(
            f"In static method [${method}]: the argument '{argument}' should be number, "
            f"but given '{_kind_name(value)}'."
        )
        return None
    if not math.isfinite(value.payload):
        NyaRuntimeWarning.log(
            f"In static method [${method}]: the argument '{argument}' should be finite, "
            f"but given {to_text(value)}."
        )
        return None
    return int(value.payload)


def default_registry(stdout: Optional[TextIO] = None, stdin: Optional[TextIO] = None,
                     rng: Optional[random.Random] = None) -> NativeRegistry:
    """
    Build a registry holding the standard library.

    Args:
        stdout: stream for DebugLog/DebugLogLine (sys.stdout at call time if None)
        stdin: stream for DebugReadLine (sys.stdin at call time if None)
        rng: random source for Random/RandomInt/RandomRange

    Returns:
        A new NativeRegistry
    """
    registry = NativeRegistry()
    rng = rng or random.Random()

    def out() -> TextIO:
        return stdout if stdout is not None else sys.stdout

    # Arrays and strings

    @registry.native("Concat")
    def concat(left: DynamicValue, right: DynamicValue):
        if left.kind != ValueKind.ARRAY:
            NyaRuntimeWarning.log(
                "In static method [$Concat]: the first argument should be array or tuple, "
                f"but what have given is '{_kind_name(left)}'."
            )
            return None
        if right.kind == ValueKind.ARRAY:
            return DynamicValue.array(left.payload + right.payload)
        return DynamicValue.array(left.payload + [right])

    @registry.native("Len")
    def length(value: DynamicValue):
        if value.kind == ValueKind.NULL:
            raise NyaRuntimeError("In static method [$Len]: NULL argument error.")
        if value.kind in (ValueKind.ARRAY, ValueKind.STRING, ValueKind.RECORD):
            return len(value.payload)
        NyaRuntimeWarning.log(f"In static method [$Len]: '{_kind_name(value)}' is not a enumerable type.")
        return 1

    @registry.native("ToString")
    def to_string(value: DynamicValue):
        return to_text(value)

    # Console

    @registry.native("DebugLog")
    def debug_log(value: DynamicValue):
        out().write(to_text(value))

    @registry.native("DebugLogLine")
    def debug_log_line(value: DynamicValue):
        out().write(to_text(value) + "\n")

    @registry.native("DebugReadLine")
    def debug_read_line():
        source = stdin if stdin is not None else sys.stdin
        line = source.readline()
        return line.rstrip("\r\n")

    # Files

    @registry.native("FileReadAllText")
    def file_read_all_text(path: DynamicValue):
        if path.kind != ValueKind.STRING:
            NyaRuntimeWarning.log(
                f"In static method [$FileReadAllText]: the type of '{_kind_name(path)}' is not string."
            )
            return ""
        try:
            with open(path.payload, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, ValueError) as e:
            _io_warning("FileReadAllText", path.payload, e)
            return ""

    @registry.native("FileReadAllLines")
    def file_read_all_lines(path: DynamicValue):
        if path.kind != ValueKind.STRING:
            NyaRuntimeWarning.log(
                f"In static method [$FileReadAllLines]: the type of '{_kind_name(path)}' is not string."
            )
            return None
        try:
            with open(path.payload, "r", encoding="utf-8") as f:
                return f.read().splitlines()
        except (OSError, ValueError) as e:
            _io_warning("FileReadAllLines", path.payload, e)
            return None

    @registry.native("FileWriteAllText")
    def file_write_all_text(path: DynamicValue, text: DynamicValue):
        if path.kind != ValueKind.STRING:
            NyaRuntimeWarning.log(
                "In static method [$FileWriteAllText]: the argument 'path' should be string, "
                f"but given '{_kind_name(path)}'."
            )
            return
        if text.kind != ValueKind.STRING:
            NyaRuntimeWarning.log(
                "In static method [$FileWriteAllText]: the argument 'text' should be string, "
                f"but given '{_kind_name(text)}'."
            )
            return
        try:
            with open(path.payload, "w", encoding="utf-8") as f:
                f.write(text.payload)
        except (OSError, ValueError) as e:
            _io_warning("FileWriteAllText", path.payload, e)

    @registry.native("FileWriteAllLines")
    def file_write_all_lines(path: DynamicValue, lines: DynamicValue):
        if path.kind != ValueKind.STRING:
            NyaRuntimeWarning.log(
                "In static method [$FileWriteAllLines]: the argument 'path' should be string, "
                f"but given '{_kind_name(path)}'."
            )
            return
        if lines.kind != ValueKind.ARRAY:
            NyaRuntimeWarning.log(
                "In static method [$FileWriteAllLines]: the argument 'texts' should be array, "
                f"but given '{_kind_name(lines)}'."
            )
            return
        try:
            with open(path.payload, "w", encoding="utf-8") as f:
                for line in lines.payload:
                    f.write(to_text(line) + "\n")
        except (OSError, ValueError) as e:
            _io_warning("FileWriteAllLines", path.payload, e)

    # Random numbers

    @registry.native("Random")
    def random_number():
        return rng.random()

    @registry.native("RandomInt")
    def random_int(maximum: DynamicValue):
        upper = _integral("RandomInt", "maxVal", maximum)
        if upper is None:
            return -1
        if upper <= 0:
            NyaRuntimeWarning.log(f"In static method [$RandomInt]: 'maxVal' should be positive, but given {upper}.")
            return -1
        return rng.randrange(upper)

    @registry.native("RandomRange")
    def random_range(minimum: DynamicValue, maximum: DynamicValue):
        lower = _integral("RandomRange", "minVal", minimum)
        if lower is None:
            return -1
        upper = _integral("RandomRange", "maxVal", maximum)
        if upper is None:
            return -1
        if lower == upper:
            return lower
        if lower > upper:
            NyaRuntimeWarning.log(
                f"In static method [$RandomRange]: 'minVal' {lower} is greater than 'maxVal' {upper}."
            )
            return -1
        return rng.randrange(lower, upper)

    # Time

    @registry.native("Ticks")
    def ticks():
        # 100-nanosecond intervals since the Unix epoch
        return time.time_ns() // 100

    # Interpreter

    @registry.native("Eval")
    def evaluate(code: DynamicValue):
        if code.kind != ValueKind.STRING:
            NyaRuntimeWarning.log(f"In static method [$Eval]: the type of '{_kind_name(code)}' is not string.")
            return None

        # Imported here: the pipeline depends on this module
        from ..config import CompilerOptions
        from ..parser.errors import ParseError
        from ..pipeline import compile_source
        from .interpreter import Interpreter

        try:
            result = compile_source(code.payload, CompilerOptions(strict=True, filename="<eval>"), registry)
        except ParseError:
            NyaRuntimeWarning.log(f"In static method [$Eval]: \"{_short(code.payload)}\" is not a parsable string.")
            return None
        if not result.ok:
            NyaRuntimeWarning.log(f"In static method [$Eval]: \"{_short(code.payload)}\" is not a parsable string.")
            return None
        return Interpreter(natives=registry, output=out()).run(result.program)

    # Environment

    @registry.native("Warning")
    def warning(value: DynamicValue):
        NyaRuntimeWarning.log(to_text(value))

    register_redirects(registry)
    return registry
