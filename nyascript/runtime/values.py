"""
NyaScript Dynamic Value Model

Every value a script can hold is a DynamicValue: an explicit tagged union
of null, bool, number, string, array, record and callable. Operators,
truthiness, invocation, indexing and field access are all decided here by
matching on the tag.

Compiled code also moves "raw" host values around (None, bool, float,
str) where the compiler knows the static type of an expression, e.g.
literals and constants. All operations accept raw or dynamic operands; the
result is dynamic whenever any operand was.

Author: xwest
"""

import inspect
import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from .errors import (
    UncallableError, ArityError, IndexRangeError, FieldError, ValueTypeError
)


class ValueKind(Enum):
    """Tag of a DynamicValue."""
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    RECORD = "record"
    CALLABLE = "callable"


class NyaCallable(ABC):
    """Payload of a CALLABLE value: something with a fixed arity that can run."""

    name: str = "<anonymous>"
    arity: int = 0

    @abstractmethod
    def call(self, args: List['DynamicValue']) -> 'DynamicValue':
        """Run with exactly `arity` arguments."""

    def __str__(self) -> str:
        return f"<fun {self.name}/{self.arity}>"


class HostFunction(NyaCallable):
    """Wraps a plain Python callable so scripts can invoke it."""

    def __init__(self, func: Callable[..., Any], name: Optional[str] = None,
                 arity: Optional[int] = None):
        self.func = func
        self.name = name or getattr(func, "__name__", "<host>")
        required, accepts_varargs = _signature_shape(func)
        self.arity = required if arity is None else arity
        self.accepts_varargs = accepts_varargs

    def call(self, args: List['DynamicValue']) -> 'DynamicValue':
        return DynamicValue.convert(self.func(*args))


def _signature_shape(func: Callable[..., Any]):
    """Count required positional parameters and spot *args."""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return 0, True

    required = 0
    varargs = False
    for param in signature.parameters.values():
        if param.kind == param.VAR_POSITIONAL:
            varargs = True
        elif (param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD)
              and param.default is param.empty):
            required += 1
    return required, varargs


class DynamicValue:
    """
    The language's universal value wrapper.

    Instances are immutable; array and record payloads are shared by
    reference like ordinary containers. Never construct one around another
    DynamicValue: use DynamicValue.convert.
    """

    __slots__ = ("kind", "payload")

    def __init__(self, kind: ValueKind, payload: Any = None):
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "payload", payload)

    def __setattr__(self, name, value):
        raise AttributeError("DynamicValue is immutable")

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def convert(cls, raw: Any) -> 'DynamicValue':
        """
        Wrap an arbitrary host value.

        Args:
            raw: None, bool, int/float, str, list/tuple, dict with string
                keys, a callable, or an existing DynamicValue

        Returns:
            The wrapped value (an existing DynamicValue is returned as is)

        Raises:
            ValueTypeError: for host types the language cannot represent
        """
        if isinstance(raw, DynamicValue):
            return raw
        if raw is None:
            return NULL
        if isinstance(raw, bool):
            return TRUE if raw else FALSE
        if isinstance(raw, (int, float)):
            return cls(ValueKind.NUMBER, float(raw))
        if isinstance(raw, str):
            return cls(ValueKind.STRING, raw)
        if isinstance(raw, (list, tuple)):
            return cls(ValueKind.ARRAY, [cls.convert(item) for item in raw])
        if isinstance(raw, dict):
            record: Dict[str, DynamicValue] = {}
            for key, item in raw.items():
                if not isinstance(key, str):
                    raise ValueTypeError(
                        f"Record keys must be strings, got [{type(key).__name__}]."
                    )
                record[key] = cls.convert(item)
            return cls(ValueKind.RECORD, record)
        if isinstance(raw, NyaCallable):
            return cls(ValueKind.CALLABLE, raw)
        if callable(raw):
            return cls(ValueKind.CALLABLE, HostFunction(raw))
        raise ValueTypeError(f"Cannot convert host value of type [{type(raw).__name__}].")

    @classmethod
    def array(cls, items: List['DynamicValue']) -> 'DynamicValue':
        """Wrap an already-converted list without copying it."""
        return cls(ValueKind.ARRAY, items)

    @classmethod
    def record(cls, fields: Dict[str, 'DynamicValue']) -> 'DynamicValue':
        """Wrap an already-converted dict without copying it."""
        return cls(ValueKind.RECORD, fields)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def is_null(self) -> bool:
        return self.kind == ValueKind.NULL

    def is_true(self) -> bool:
        """Only null and false are falsy; 0 and "" are true."""
        if self.kind == ValueKind.NULL:
            return False
        if self.kind == ValueKind.BOOL:
            return self.payload
        return True

    def unbox(self) -> Any:
        """Raw payload (containers stay lists/dicts of DynamicValue)."""
        return self.payload

    def __bool__(self) -> bool:
        return self.is_true()

    def __eq__(self, other: Any) -> bool:
        return values_equal(self, other)

    __hash__ = None

    def __str__(self) -> str:
        return to_text(self)

    def __repr__(self) -> str:
        return f"DynamicValue({self.kind.value}, {_quote(self)})"


NULL = DynamicValue(ValueKind.NULL)
TRUE = DynamicValue(ValueKind.BOOL, True)
FALSE = DynamicValue(ValueKind.BOOL, False)


# ----------------------------------------------------------------------
# Helpers on raw-or-dynamic operands
# ----------------------------------------------------------------------

def payload_of(value: Any) -> Any:
    """Raw payload of a raw or dynamic operand."""
    if isinstance(value, DynamicValue):
        return value.payload
    return value


def kind_of(value: Any) -> ValueKind:
    """Tag of a raw or dynamic operand."""
    if isinstance(value, DynamicValue):
        return value.kind
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, list):
        return ValueKind.ARRAY
    if isinstance(value, dict):
        return ValueKind.RECORD
    if isinstance(value, NyaCallable):
        return ValueKind.CALLABLE
    raise ValueTypeError(f"Unknown host value of type [{type(value).__name__}].")


def is_truthy(value: Any) -> bool:
    """Truthiness of a raw or dynamic operand."""
    if isinstance(value, DynamicValue):
        return value.is_true()
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return True


def box(value: Any) -> DynamicValue:
    """Wrap a raw operand; dynamic operands pass through."""
    return DynamicValue.convert(value)


def unbox(value: Any) -> Any:
    """
    Strip the wrapper from scalar values.

    Arrays, records and callables keep their DynamicValue so they stay
    indexable and callable.
    """
    if isinstance(value, DynamicValue) and value.kind in (
            ValueKind.NULL, ValueKind.BOOL, ValueKind.NUMBER, ValueKind.STRING):
        return value.payload
    return value


def _result(raw: Any, dynamic: bool) -> Any:
    return DynamicValue.convert(raw) if dynamic else raw


# ----------------------------------------------------------------------
# Text form
# ----------------------------------------------------------------------

def format_number(number: float) -> str:
    """Integral numbers print without a fraction."""
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    if number.is_integer() and abs(number) < 1e16:
        return str(int(number))
    return repr(number)


def to_text(value: Any) -> str:
    """Textual form used by print, string concatenation and ToString."""
    return _text(value, set(), nested=False)


def _quote(value: Any) -> str:
    return _text(value, set(), nested=True)


def _text(value: Any, seen: Set[int], nested: bool) -> str:
    kind = kind_of(value)
    payload = payload_of(value)

    if kind == ValueKind.NULL:
        return "null"
    if kind == ValueKind.BOOL:
        return "true" if payload else "false"
    if kind == ValueKind.NUMBER:
        return format_number(float(payload))
    if kind == ValueKind.STRING:
        if nested:
            return '"' + payload.replace("\\", "\\\\").replace('"', '\\"') + '"'
        return payload
    if kind == ValueKind.CALLABLE:
        return str(payload)

    # Containers may refer to themselves
    if id(payload) in seen:
        return "[...]" if kind == ValueKind.ARRAY else "{...}"
    seen = seen | {id(payload)}
    if kind == ValueKind.ARRAY:
        return "[" + ", ".join(_text(item, seen, True) for item in payload) + "]"
    return "{" + ", ".join(f"{key}: {_text(item, seen, True)}" for key, item in payload.items()) + "}"


# ----------------------------------------------------------------------
# Operators
# ----------------------------------------------------------------------

def _is_number(raw: Any) -> bool:
    return isinstance(raw, (int, float)) and not isinstance(raw, bool)


def _operand_error(op: str, *operands: Any) -> ValueTypeError:
    kinds = " and ".join(f"[{kind_of(o).value}]" for o in operands)
    return ValueTypeError(f"Operator '{op}' cannot be applied to {kinds}.")


def _as_integer(op: str, raw: Any, original: Any) -> int:
    if not _is_number(raw) or not math.isfinite(raw) or not float(raw).is_integer():
        raise ValueTypeError(
            f"Operator '{op}' needs integral numbers, got [{to_text(original)}]."
        )
    return int(raw)


def _divide(left: float, right: float) -> float:
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


def _modulo(left: float, right: float) -> float:
    if right == 0 or math.isinf(left):
        return math.nan
    return math.fmod(left, right)


# Any nonzero integer shifted further left than this overflows a float
_MAX_LEFT_SHIFT = 1100


def _to_float(op: str, result: int) -> float:
    try:
        return float(result)
    except OverflowError:
        raise ValueTypeError(f"Result of '{op}' is too large to be a number.") from None


def values_equal(left: Any, right: Any) -> bool:
    """
    Equality used by `==`, `!=` and switch cases.

    Different kinds are never equal; arrays, records and callables compare
    by identity.
    """
    left_kind, right_kind = kind_of(left), kind_of(right)
    if left_kind != right_kind:
        return False
    a, b = payload_of(left), payload_of(right)
    if left_kind in (ValueKind.ARRAY, ValueKind.RECORD, ValueKind.CALLABLE):
        return a is b
    return a == b


def binary(op: str, left: Any, right: Any) -> Any:
    """
    Apply a binary operator.

    Args:
        op: one of + - * / % & | ^ << >> < <= > >= == !=
        left: raw or dynamic operand
        right: raw or dynamic operand

    Returns:
        The result, wrapped when either operand was dynamic

    Raises:
        ValueTypeError: when the operand kinds do not support the operator
    """
    dynamic = isinstance(left, DynamicValue) or isinstance(right, DynamicValue)
    a, b = payload_of(left), payload_of(right)

    if op == "==":
        return _result(values_equal(left, right), dynamic)
    if op == "!=":
        return _result(not values_equal(left, right), dynamic)

    if op == "+":
        if isinstance(a, str) or isinstance(b, str):
            return _result(to_text(left) + to_text(right), dynamic)
        if _is_number(a) and _is_number(b):
            return _result(a + b, dynamic)
        raise _operand_error(op, left, right)

    if op in ("<", "<=", ">", ">="):
        comparable = (
            (_is_number(a) and _is_number(b))
            or (isinstance(a, str) and isinstance(b, str))
        )
        if not comparable:
            raise _operand_error(op, left, right)
        if op == "<":
            outcome = a < b
        elif op == "<=":
            outcome = a <= b
        elif op == ">":
            outcome = a > b
        else:
            outcome = a >= b
        return _result(outcome, dynamic)

    if op in ("-", "*", "/", "%"):
        if not (_is_number(a) and _is_number(b)):
            raise _operand_error(op, left, right)
        if op == "-":
            return _result(a - b, dynamic)
        if op == "*":
            return _result(a * b, dynamic)
        if op == "/":
            return _result(_divide(float(a), float(b)), dynamic)
        return _result(_modulo(float(a), float(b)), dynamic)

    if op in ("&", "|", "^", "<<", ">>"):
        if not (_is_number(a) and _is_number(b)):
            raise _operand_error(op, left, right)
        x = _as_integer(op, a, left)
        y = _as_integer(op, b, right)
        if op == "&":
            outcome = x & y
        elif op == "|":
            outcome = x | y
        elif op == "^":
            outcome = x ^ y
        else:
            if y < 0:
                raise ValueTypeError(f"Negative shift count [{y}].")
            if op == "<<" and x != 0 and y > _MAX_LEFT_SHIFT:
                raise ValueTypeError(f"Result of '{op}' is too large to be a number.")
            outcome = x << y if op == "<<" else x >> y
        return _result(_to_float(op, outcome), dynamic)

    raise ValueTypeError(f"Unknown binary operator '{op}'.")


def unary(op: str, operand: Any) -> Any:
    """
    Apply a prefix operator: - ! ~ ++ --.

    `++`/`--` only compute the stepped value; storing it back is the
    caller's job.
    """
    dynamic = isinstance(operand, DynamicValue)
    a = payload_of(operand)

    if op == "!":
        return _result(not is_truthy(operand), dynamic)
    if not _is_number(a):
        raise _operand_error(op, operand)
    if op == "-":
        return _result(-a, dynamic)
    if op == "++":
        return _result(a + 1, dynamic)
    if op == "--":
        return _result(a - 1, dynamic)
    if op == "~":
        return _result(float(~_as_integer(op, a, operand)), dynamic)
    raise ValueTypeError(f"Unknown unary operator '{op}'.")


# ----------------------------------------------------------------------
# Invocation and containers
# ----------------------------------------------------------------------

def invoke(callee: Any, args: Sequence[Any]) -> DynamicValue:
    """
    Call a function value.

    Raises:
        UncallableError: callee is not a function
        ArityError: fewer arguments than the function declares
    """
    kind = kind_of(callee)
    if kind != ValueKind.CALLABLE:
        if kind == ValueKind.NULL:
            raise UncallableError("Can not INVOKE uncallable object [NULL].")
        raise UncallableError(f"Can not INVOKE uncallable object type [{kind.value}].")

    function: NyaCallable = payload_of(callee)
    if len(args) < function.arity:
        raise ArityError(
            f"Argument given is LESS THAN demanded for function [{function.name}]: "
            f"expected {function.arity}, got {len(args)}."
        )

    boxed = [box(arg) for arg in args]
    if not getattr(function, "accepts_varargs", False):
        boxed = boxed[:function.arity]
    return box(function.call(boxed))


def _index_position(index: Any, length: int, container_kind: ValueKind) -> int:
    raw = payload_of(index)
    if not _is_number(raw) or not math.isfinite(raw) or not float(raw).is_integer():
        raise ValueTypeError(f"Index [{to_text(index)}] is not an integral number.")
    position = int(raw)
    if position < 0 or position >= length:
        raise IndexRangeError(
            f"Index [{position}] is OUT OF RANGE when accessing [{container_kind.value}] "
            f"of length {length}."
        )
    return position


def get_index(container: Any, index: Any) -> Any:
    """
    Read `container[index]`.

    Strings yield one-character strings. The element comes back dynamic
    unless the container itself was a raw string.
    """
    kind = kind_of(container)
    payload = payload_of(container)

    if kind == ValueKind.ARRAY:
        return payload[_index_position(index, len(payload), kind)]
    if kind == ValueKind.STRING:
        char = payload[_index_position(index, len(payload), kind)]
        return _result(char, isinstance(container, DynamicValue) or isinstance(index, DynamicValue))
    if kind == ValueKind.NULL:
        raise ValueTypeError("Type of [NULL] is NOT an accessable type.")
    raise ValueTypeError(f"Type of [{kind.value}] is NOT an accessable type.")


def set_index(container: Any, index: Any, value: Any) -> DynamicValue:
    """Write `container[index] = value`; only arrays are mutable."""
    kind = kind_of(container)
    payload = payload_of(container)

    if kind == ValueKind.ARRAY:
        stored = box(value)
        payload[_index_position(index, len(payload), kind)] = stored
        return stored
    if kind == ValueKind.STRING:
        raise ValueTypeError("Strings are immutable; cannot assign to a string index.")
    raise ValueTypeError(f"Type of [{kind.value}] is NOT an accessable type.")


def _field_key(key: Any) -> str:
    # Reflective keys (`.@expr`) are converted to their text form
    raw = payload_of(key)
    if isinstance(raw, str):
        return raw
    return to_text(key)


def get_field(container: Any, key: Any) -> DynamicValue:
    """Read `container.key` from a record."""
    kind = kind_of(container)
    name = _field_key(key)

    if kind == ValueKind.RECORD:
        fields = payload_of(container)
        if name not in fields:
            raise FieldError(f"Not field named as [{name}].")
        return fields[name]
    if kind == ValueKind.NULL:
        raise ValueTypeError("Type of [NULL] is NOT an accessable type.")
    raise ValueTypeError(f"Type of [{kind.value}] doesn't have fields.")


def set_field(container: Any, key: Any, value: Any) -> DynamicValue:
    """Write `container.key = value`, adding the field when missing."""
    kind = kind_of(container)
    name = _field_key(key)

    if kind == ValueKind.RECORD:
        stored = box(value)
        payload_of(container)[name] = stored
        return stored
    if kind == ValueKind.NULL:
        raise ValueTypeError("Type of [NULL] is NOT an accessable type.")
    raise ValueTypeError(f"Type of [{kind.value}] doesn't have fields.")
