"""
NyaScript Intermediate Representation (program graph)

Defines the executable tree the single-pass compiler emits. Every name in
it is already resolved: variables point at VariableSlot identities and
jumps at LabelTarget identities, so the execution engine never looks a
name up.

Expression nodes carry a `dynamic` flag. It is True when the node always
evaluates to a DynamicValue; False when it may produce a raw host value
(literals, constants, arithmetic over them). The compiler inserts Box
nodes wherever a possibly-raw result flows into a dynamic slot.

Author: xwest
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Dict, Any, Tuple
from enum import Enum

from ..lexer.tokens import SourceLocation
from ..analyzer.symbol_table import VariableSlot, LabelTarget, LabelKind


class IRNodeType(Enum):
    """Enumeration of IR node types."""

    # ========================================================================
    # Structure
    # ========================================================================
    PROGRAM = "program"
    BLOCK = "block"
    EXPRESSION_STATEMENT = "expression_statement"
    DECLARE = "declare"
    PRINT = "print"

    # ========================================================================
    # Values
    # ========================================================================
    LITERAL = "literal"
    VARIABLE = "variable"
    BOX = "box"
    UNBOX = "unbox"
    ARRAY = "array"
    RECORD = "record"
    FUNCTION = "function"

    # ========================================================================
    # Operators
    # ========================================================================
    BINARY_OP = "binary_op"
    LOGICAL_OP = "logical_op"
    UNARY_OP = "unary_op"
    TERNARY = "ternary"

    # ========================================================================
    # Assignment
    # ========================================================================
    ASSIGN_VARIABLE = "assign_variable"
    ASSIGN_INDEX = "assign_index"
    ASSIGN_FIELD = "assign_field"

    # ========================================================================
    # Access and calls
    # ========================================================================
    CALL = "call"
    NATIVE_CALL = "native_call"
    INDEX = "index"
    FIELD = "field"

    # ========================================================================
    # Control flow
    # ========================================================================
    IF = "if"
    LOOP = "loop"
    JUMP = "jump"
    LABEL = "label"


class IRNode(ABC):
    """Base class for all IR nodes."""

    dynamic = False

    def __init__(self, node_type: IRNodeType, location: Optional[SourceLocation] = None):
        self.node_type = node_type
        self.location = location

    @abstractmethod
    def __str__(self) -> str:
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.node_type.value}>"


def _indent(text: str) -> str:
    return "\n".join("  " + line for line in text.splitlines())


# ============================================================================
# Structure
# ============================================================================

class Block(IRNode):
    """
    Statement sequence with its own variables.

    `slots` lists the variables declared directly in this block; each entry
    into the block gets fresh cells for them. `label_index` maps the id of
    every label placed directly in this block to the position of the
    statement that follows it, which is where a goto resumes.
    """

    def __init__(self, statements: List[IRNode], slots: Optional[List[VariableSlot]] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.BLOCK, location)
        self.statements = statements
        self.slots = list(slots or [])
        self.label_index: Dict[int, int] = {}
        for position, statement in enumerate(statements):
            if isinstance(statement, LabelPlacement):
                self.label_index[statement.target.id] = position + 1

    def __str__(self) -> str:
        header = "block"
        if self.slots:
            header += " [" + ", ".join(str(slot) for slot in self.slots) + "]"
        body = "\n".join(_indent(str(statement)) for statement in self.statements)
        return f"{header} {{\n{body}\n}}" if body else f"{header} {{}}"


class Program(IRNode):
    """A compiled unit; its body's slots are the unit's global variables."""

    def __init__(self, body: Block, filename: str = "<script>"):
        super().__init__(IRNodeType.PROGRAM, body.location)
        self.body = body
        self.filename = filename

    @property
    def globals(self) -> List[VariableSlot]:
        return self.body.slots

    def __str__(self) -> str:
        return f"program {self.filename}\n{self.body}"


class ExpressionStatement(IRNode):
    """Expression evaluated for its effects."""

    def __init__(self, expression: IRNode, location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.EXPRESSION_STATEMENT, location)
        self.expression = expression

    def __str__(self) -> str:
        return f"{self.expression};"


class Declare(IRNode):
    """Initialize a freshly declared variable or constant."""

    def __init__(self, slot: VariableSlot, initializer: IRNode,
                 location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.DECLARE, location)
        self.slot = slot
        self.initializer = initializer

    def __str__(self) -> str:
        keyword = "let" if self.slot.constant else "var"
        return f"{keyword} {self.slot} = {self.initializer};"


class Print(IRNode):
    """Write the textual form of a value and a newline."""

    def __init__(self, expression: IRNode, location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.PRINT, location)
        self.expression = expression

    def __str__(self) -> str:
        return f"print {self.expression};"


# ============================================================================
# Values
# ============================================================================

class Literal(IRNode):
    """Raw constant: None, bool, float or str."""

    def __init__(self, value: Any, location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.LITERAL, location)
        self.value = value

    def __str__(self) -> str:
        if isinstance(self.value, str):
            return repr(self.value)
        if self.value is None:
            return "null"
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        return str(self.value)


class VariableRef(IRNode):
    """Read a variable slot."""

    def __init__(self, slot: VariableSlot, location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.VARIABLE, location)
        self.slot = slot
        # Constants hold unboxed values
        self.dynamic = not slot.constant

    def __str__(self) -> str:
        return str(self.slot)


class Box(IRNode):
    """Wrap a possibly-raw value into a DynamicValue."""

    dynamic = True

    def __init__(self, expression: IRNode):
        super().__init__(IRNodeType.BOX, expression.location)
        self.expression = expression

    def __str__(self) -> str:
        return f"box({self.expression})"


class Unbox(IRNode):
    """Strip the wrapper from scalar values (containers stay wrapped)."""

    def __init__(self, expression: IRNode):
        super().__init__(IRNodeType.UNBOX, expression.location)
        self.expression = expression

    def __str__(self) -> str:
        return f"unbox({self.expression})"


class ArrayLiteral(IRNode):
    """`[a, b, ...]`: items are dynamic expressions."""

    dynamic = True

    def __init__(self, items: List[IRNode], location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.ARRAY, location)
        self.items = items

    def __str__(self) -> str:
        return "[" + ", ".join(str(item) for item in self.items) + "]"


class RecordLiteral(IRNode):
    """
    `{name: value, ...}`.

    The record exists before its fields are evaluated; `this_slot` is bound
    to it so field initializers can refer to the record. Fields are stored
    in order, so a repeated name keeps the last value.
    """

    dynamic = True

    def __init__(self, fields: List[Tuple[str, IRNode]], this_slot: VariableSlot,
                 location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.RECORD, location)
        self.fields = fields
        self.this_slot = this_slot

    def __str__(self) -> str:
        return "{" + ", ".join(f"{name}: {value}" for name, value in self.fields) + "}"


class FunctionLiteral(IRNode):
    """
    A function definition; evaluates to a closure over the current frame.

    `self_slot` is bound to the closure itself inside each call (lambdas use
    it for self-recursion). Named functions leave it None and recurse
    through the variable they are declared in.
    """

    dynamic = True

    def __init__(self, name: str, params: List[VariableSlot], body: Block,
                 return_target: LabelTarget, self_slot: Optional[VariableSlot] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.FUNCTION, location)
        self.name = name
        self.params = params
        self.body = body
        self.return_target = return_target
        self.self_slot = self_slot

    @property
    def arity(self) -> int:
        return len(self.params)

    def __str__(self) -> str:
        params = ", ".join(str(param) for param in self.params)
        return f"fun {self.name}({params}) {self.body}"


# ============================================================================
# Operators
# ============================================================================

class BinaryOp(IRNode):
    """Arithmetic, bitwise, comparison or equality operator."""

    def __init__(self, operator: str, left: IRNode, right: IRNode,
                 location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.BINARY_OP, location)
        self.operator = operator
        self.left = left
        self.right = right
        self.dynamic = left.dynamic or right.dynamic

    def __str__(self) -> str:
        return f"({self.left} {self.operator} {self.right})"


class LogicalOp(IRNode):
    """`&&`, `||` (short-circuit) and `^^`; always yields a raw bool."""

    def __init__(self, operator: str, left: IRNode, right: IRNode,
                 location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.LOGICAL_OP, location)
        self.operator = operator
        self.left = left
        self.right = right

    def __str__(self) -> str:
        return f"({self.left} {self.operator} {self.right})"


class UnaryOp(IRNode):
    """Prefix `-`, `!` or `~`."""

    def __init__(self, operator: str, operand: IRNode,
                 location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.UNARY_OP, location)
        self.operator = operator
        self.operand = operand
        self.dynamic = operand.dynamic

    def __str__(self) -> str:
        return f"({self.operator}{self.operand})"


class Ternary(IRNode):
    """`condition ? then : else`; both branches are dynamic."""

    dynamic = True

    def __init__(self, condition: IRNode, then_expr: IRNode, else_expr: IRNode,
                 location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.TERNARY, location)
        self.condition = condition
        self.then_expr = then_expr
        self.else_expr = else_expr

    def __str__(self) -> str:
        return f"({self.condition} ? {self.then_expr} : {self.else_expr})"


# ============================================================================
# Assignment
# ============================================================================

class _Assignment(IRNode):
    """
    Shared shape of the assignment nodes.

    `operator` is None for `=`, a binary operator for compound assignment
    (`+=` stores `old + value`), or `++`/`--` for prefix increments, which
    have no value operand.
    """

    dynamic = True

    def __init__(self, node_type: IRNodeType, value: Optional[IRNode], operator: Optional[str],
                 location: Optional[SourceLocation]):
        super().__init__(node_type, location)
        self.value = value
        self.operator = operator

    @property
    def symbol(self) -> str:
        if self.operator is None:
            return "="
        if self.operator in ("++", "--"):
            return self.operator
        return self.operator + "="

    def _render(self, target: str) -> str:
        if self.operator in ("++", "--"):
            return f"{self.operator}{target}"
        return f"{target} {self.symbol} {self.value}"


class AssignVariable(_Assignment):
    """Store into a variable slot."""

    def __init__(self, slot: VariableSlot, value: Optional[IRNode], operator: Optional[str] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.ASSIGN_VARIABLE, value, operator, location)
        self.slot = slot

    def __str__(self) -> str:
        return self._render(str(self.slot))


class AssignIndex(_Assignment):
    """Store into `container[index]`."""

    def __init__(self, container: IRNode, index: IRNode, value: Optional[IRNode],
                 operator: Optional[str] = None, location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.ASSIGN_INDEX, value, operator, location)
        self.container = container
        self.index = index

    def __str__(self) -> str:
        return self._render(f"{self.container}[{self.index}]")


class AssignField(_Assignment):
    """Store into `container.key`."""

    def __init__(self, container: IRNode, key: IRNode, value: Optional[IRNode],
                 operator: Optional[str] = None, location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.ASSIGN_FIELD, value, operator, location)
        self.container = container
        self.key = key

    def __str__(self) -> str:
        return self._render(f"{self.container}.@{self.key}")


# ============================================================================
# Access and calls
# ============================================================================

class Call(IRNode):
    """Invoke a function value."""

    dynamic = True

    def __init__(self, callee: IRNode, arguments: List[IRNode],
                 location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.CALL, location)
        self.callee = callee
        self.arguments = arguments

    def __str__(self) -> str:
        return f"{self.callee}(" + ", ".join(str(arg) for arg in self.arguments) + ")"


class NativeCall(IRNode):
    """`$Name(args)`: call a host function resolved at compile time."""

    dynamic = True

    def __init__(self, name: str, function: Any, arguments: List[IRNode],
                 location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.NATIVE_CALL, location)
        self.name = name
        self.function = function
        self.arguments = arguments

    def __str__(self) -> str:
        return f"${self.name}(" + ", ".join(str(arg) for arg in self.arguments) + ")"


class Index(IRNode):
    """Read `container[index]`."""

    def __init__(self, container: IRNode, index: IRNode,
                 location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.INDEX, location)
        self.container = container
        self.index = index
        # Only a raw string indexed by a raw number yields a raw character
        self.dynamic = container.dynamic or index.dynamic

    def __str__(self) -> str:
        return f"{self.container}[{self.index}]"


class Field(IRNode):
    """Read `container.key`; `key` is an expression for `.@expr`."""

    dynamic = True

    def __init__(self, container: IRNode, key: IRNode,
                 location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.FIELD, location)
        self.container = container
        self.key = key

    def __str__(self) -> str:
        if isinstance(self.key, Literal) and isinstance(self.key.value, str):
            return f"{self.container}.{self.key.value}"
        return f"{self.container}.@{self.key}"


# ============================================================================
# Control flow
# ============================================================================

class If(IRNode):
    """Conditional statement."""

    def __init__(self, condition: IRNode, then_branch: IRNode,
                 else_branch: Optional[IRNode] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.IF, location)
        self.condition = condition
        self.then_branch = then_branch
        self.else_branch = else_branch

    def __str__(self) -> str:
        text = f"if {self.condition}\n{_indent(str(self.then_branch))}"
        if self.else_branch is not None:
            text += f"\nelse\n{_indent(str(self.else_branch))}"
        return text


class Loop(IRNode):
    """
    Unconditional loop whose body breaks out once the condition is false.

    Both `for` and `while` compile to this shape:
    `loop { if (condition) { body; increment } else break }`. A `continue`
    still runs the increment.
    """

    def __init__(self, condition: IRNode, body: IRNode, increment: Optional[IRNode],
                 break_target: LabelTarget, continue_target: LabelTarget,
                 location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.LOOP, location)
        self.condition = condition
        self.body = body
        self.increment = increment
        self.break_target = break_target
        self.continue_target = continue_target

    def __str__(self) -> str:
        step = f"; {self.increment}" if self.increment is not None else ""
        return f"loop ({self.condition}{step})\n{_indent(str(self.body))}"


class Jump(IRNode):
    """
    Transfer control to a label target.

    Covers `break`, `continue`, `return` (with a value) and `goto`; `kind`
    is the kind of the target.
    """

    def __init__(self, target: LabelTarget, value: Optional[IRNode] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.JUMP, location)
        self.target = target
        self.value = value

    @property
    def kind(self) -> LabelKind:
        return self.target.kind

    def __str__(self) -> str:
        if self.kind == LabelKind.USER:
            return f"goto {self.target};"
        if self.value is not None:
            return f"{self.kind.value} {self.value};"
        return f"{self.kind.value};"


class LabelPlacement(IRNode):
    """Marks where a user label sits in its block."""

    def __init__(self, target: LabelTarget, location: Optional[SourceLocation] = None):
        super().__init__(IRNodeType.LABEL, location)
        self.target = target

    def __str__(self) -> str:
        return f"label {self.target};"
