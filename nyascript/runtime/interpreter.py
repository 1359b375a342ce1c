"""
NyaScript Execution Engine

Tree-walking interpreter for the program graph produced by the compiler.

Variables live in cells owned by frames; a frame is created for every
block, call and record literal that declares slots. Closures keep a
reference to the frame they were created in, so a captured variable is
the same cell for the closure and for the scope that declared it.

Non-local control flow (break, continue, return, goto) is a JumpSignal
exception caught by whichever loop, call or block owns the target.

Author: xwest
"""

import sys
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, TextIO

from ..config import RuntimeOptions
from ..analyzer.symbol_table import VariableSlot, LabelTarget
from ..ir.ir_nodes import IRNode, IRNodeType, Program, Block, FunctionLiteral
from .errors import (
    NyaRuntimeError, NyaRuntimeWarning, RecursionDepthError, collect_warnings
)
from .values import (
    DynamicValue, ValueKind, NyaCallable, NULL,
    binary, unary, is_truthy, box, unbox, to_text, invoke,
    get_index, set_index, get_field, set_field,
)


# Python frames used by one nested script call, used to size the host stack
_HOST_FRAMES_PER_CALL = 16


class Cell:
    """Storage for one variable; shared by every closure that captures it."""

    __slots__ = ("value",)

    def __init__(self, value: Any = NULL):
        self.value = value

    def __repr__(self) -> str:
        return f"Cell({self.value!r})"


class Frame:
    """Cells for the slots of one activation, chained to the enclosing frame."""

    __slots__ = ("parent", "cells")

    def __init__(self, parent: Optional['Frame'] = None, slots: Iterable[VariableSlot] = ()):
        self.parent = parent
        self.cells: Dict[int, Cell] = {slot.id: Cell() for slot in slots}

    def lookup(self, slot: VariableSlot) -> Cell:
        frame: Optional[Frame] = self
        while frame is not None:
            cell = frame.cells.get(slot.id)
            if cell is not None:
                return cell
            frame = frame.parent
        raise NyaRuntimeError(f"Variable [{slot.name}] is not bound in this frame.")


class JumpSignal(Exception):
    """Carries a jump to `target` up to the construct that owns it."""

    def __init__(self, target: LabelTarget, value: Any = None):
        super().__init__(target.name)
        self.target = target
        self.value = value


class Function(NyaCallable):
    """A script function value: definition plus the frame it closes over."""

    def __init__(self, node: FunctionLiteral, closure: Frame, interpreter: 'Interpreter'):
        self.node = node
        self.closure = closure
        self.interpreter = interpreter
        self.name = node.name
        self.arity = node.arity

    def call(self, args: List[DynamicValue]) -> DynamicValue:
        return self.interpreter.call_function(self, args)


@contextmanager
def _host_stack(limit: int) -> Iterator[None]:
    """Raise the interpreter recursion limit for the duration of a run."""
    previous = sys.getrecursionlimit()
    if previous < limit:
        sys.setrecursionlimit(limit)
    try:
        yield
    finally:
        if previous < limit:
            sys.setrecursionlimit(previous)


class Interpreter:
    """
    Evaluates compiled programs.

    Global variables live in a frame that persists across run() calls, so
    a program compiled against another program's exported names (linked
    compilation) sees the values that program left behind.
    """

    def __init__(self, options: Optional[RuntimeOptions] = None, natives=None,
                 output: Optional[TextIO] = None):
        """
        Args:
            options: runtime options (call depth limit)
            natives: registry whose functions replace same-named native
                functions bound at compile time
            output: stream for `print` (sys.stdout at call time if None)
        """
        self.options = options or RuntimeOptions()
        self.natives = natives
        self.output = output
        self.global_frame = Frame()
        self.warnings: List[NyaRuntimeWarning] = []
        self.call_depth = 0

        self._init_dispatch_table()

    def _init_dispatch_table(self):
        """Map every IR node type to its handler."""
        self.handlers: Dict[IRNodeType, Callable[[Any, Frame], Any]] = {
            # Structure
            IRNodeType.BLOCK: self._exec_block,
            IRNodeType.EXPRESSION_STATEMENT: self._exec_expression_statement,
            IRNodeType.DECLARE: self._exec_declare,
            IRNodeType.PRINT: self._exec_print,

            # Values
            IRNodeType.LITERAL: self._eval_literal,
            IRNodeType.VARIABLE: self._eval_variable,
            IRNodeType.BOX: self._eval_box,
            IRNodeType.UNBOX: self._eval_unbox,
            IRNodeType.ARRAY: self._eval_array,
            IRNodeType.RECORD: self._eval_record,
            IRNodeType.FUNCTION: self._eval_function,

            # Operators
            IRNodeType.BINARY_OP: self._eval_binary,
            IRNodeType.LOGICAL_OP: self._eval_logical,
            IRNodeType.UNARY_OP: self._eval_unary,
            IRNodeType.TERNARY: self._eval_ternary,

            # Assignment
            IRNodeType.ASSIGN_VARIABLE: self._eval_assign_variable,
            IRNodeType.ASSIGN_INDEX: self._eval_assign_index,
            IRNodeType.ASSIGN_FIELD: self._eval_assign_field,

            # Access and calls
            IRNodeType.CALL: self._eval_call,
            IRNodeType.NATIVE_CALL: self._eval_native_call,
            IRNodeType.INDEX: self._eval_index,
            IRNodeType.FIELD: self._eval_field,

            # Control flow
            IRNodeType.IF: self._exec_if,
            IRNodeType.LOOP: self._exec_loop,
            IRNodeType.JUMP: self._exec_jump,
            IRNodeType.LABEL: self._exec_label,
        }

    @property
    def out(self) -> TextIO:
        return self.output if self.output is not None else sys.stdout

    def run(self, program: Program) -> DynamicValue:
        """
        Execute a compiled program.

        Args:
            program: output of the compiler

        Returns:
            The value of the last top-level statement when it is an
            expression statement, otherwise null

        Raises:
            NyaRuntimeError: on any fatal runtime error
        """
        for slot in program.globals:
            self.global_frame.cells.setdefault(slot.id, Cell())

        stack_limit = self.options.max_call_depth * _HOST_FRAMES_PER_CALL + 1000
        with collect_warnings(self.warnings), _host_stack(stack_limit):
            try:
                result = self._run_statements(program.body, self.global_frame)
            except JumpSignal as signal:
                raise NyaRuntimeError(f"Undefined label [{signal.target.name}].") from None
            except RecursionError:
                raise RecursionDepthError("Call depth exceeded the host stack.") from None
        return box(result)

    def reset(self):
        """Forget every global variable."""
        self.global_frame = Frame()

    def call_function(self, function: Function, args: List[DynamicValue]) -> DynamicValue:
        """Run a script function with already-checked arguments."""
        if self.call_depth >= self.options.max_call_depth:
            raise RecursionDepthError(
                f"Call depth exceeded {self.options.max_call_depth} in function [{function.name}]."
            )

        node = function.node
        frame = Frame(function.closure, node.params)
        for slot, arg in zip(node.params, args):
            frame.cells[slot.id].value = arg
        if node.self_slot is not None:
            frame.cells[node.self_slot.id] = Cell(DynamicValue(ValueKind.CALLABLE, function))

        self.call_depth += 1
        try:
            self._execute(node.body, frame)
        except JumpSignal as signal:
            if signal.target is not node.return_target:
                raise
            return box(signal.value)
        finally:
            self.call_depth -= 1
        # Falling off the end returns null
        return NULL

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _execute(self, node: IRNode, frame: Frame) -> Any:
        try:
            return self.handlers[node.node_type](node, frame)
        except NyaRuntimeError as error:
            error.with_location(node.location)
            raise

    _evaluate = _execute

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def _exec_block(self, node: Block, frame: Frame) -> Any:
        if node.slots:
            frame = Frame(frame, node.slots)
        return self._run_statements(node, frame)

    def _run_statements(self, block: Block, frame: Frame) -> Any:
        """Run a block's statements, resuming after a label when a goto lands here."""
        statements = block.statements
        position = 0
        result = None
        while True:
            try:
                while position < len(statements):
                    statement = statements[position]
                    position += 1
                    result = self._execute(statement, frame)
                return result
            except JumpSignal as signal:
                resume = block.label_index.get(signal.target.id)
                if resume is None:
                    raise
                position = resume
                result = None

    def _exec_expression_statement(self, node, frame: Frame) -> Any:
        return self._evaluate(node.expression, frame)

    def _exec_declare(self, node, frame: Frame) -> None:
        frame.lookup(node.slot).value = self._evaluate(node.initializer, frame)

    def _exec_print(self, node, frame: Frame) -> None:
        self.out.write(to_text(self._evaluate(node.expression, frame)) + "\n")

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def _eval_literal(self, node, frame: Frame) -> Any:
        return node.value

    def _eval_variable(self, node, frame: Frame) -> Any:
        return frame.lookup(node.slot).value

    def _eval_box(self, node, frame: Frame) -> DynamicValue:
        return box(self._evaluate(node.expression, frame))

    def _eval_unbox(self, node, frame: Frame) -> Any:
        return unbox(self._evaluate(node.expression, frame))

    def _eval_array(self, node, frame: Frame) -> DynamicValue:
        return DynamicValue.array([box(self._evaluate(item, frame)) for item in node.items])

    def _eval_record(self, node, frame: Frame) -> DynamicValue:
        fields: Dict[str, DynamicValue] = {}
        record = DynamicValue.record(fields)
        inner = Frame(frame, [node.this_slot])
        inner.cells[node.this_slot.id].value = record
        for name, value in node.fields:
            fields[name] = box(self._evaluate(value, inner))
        return record

    def _eval_function(self, node, frame: Frame) -> DynamicValue:
        return DynamicValue(ValueKind.CALLABLE, Function(node, frame, self))

    # ------------------------------------------------------------------
    # Operators
    # ------------------------------------------------------------------

    def _eval_binary(self, node, frame: Frame) -> Any:
        left = self._evaluate(node.left, frame)
        right = self._evaluate(node.right, frame)
        return binary(node.operator, left, right)

    def _eval_logical(self, node, frame: Frame) -> bool:
        left = is_truthy(self._evaluate(node.left, frame))
        if node.operator == "&&":
            return left and is_truthy(self._evaluate(node.right, frame))
        if node.operator == "||":
            return left or is_truthy(self._evaluate(node.right, frame))
        return left != is_truthy(self._evaluate(node.right, frame))

    def _eval_unary(self, node, frame: Frame) -> Any:
        return unary(node.operator, self._evaluate(node.operand, frame))

    def _eval_ternary(self, node, frame: Frame) -> Any:
        if is_truthy(self._evaluate(node.condition, frame)):
            return self._evaluate(node.then_expr, frame)
        return self._evaluate(node.else_expr, frame)

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    def _updated(self, node, current: Callable[[], Any], frame: Frame) -> Any:
        """New value for an assignment node given a reader for the old one."""
        if node.operator is None:
            return self._evaluate(node.value, frame)
        if node.operator in ("++", "--"):
            return unary(node.operator, current())
        old = current()
        return binary(node.operator, old, self._evaluate(node.value, frame))

    def _eval_assign_variable(self, node, frame: Frame) -> DynamicValue:
        cell = frame.lookup(node.slot)
        cell.value = box(self._updated(node, lambda: cell.value, frame))
        return cell.value

    def _eval_assign_index(self, node, frame: Frame) -> DynamicValue:
        container = self._evaluate(node.container, frame)
        index = self._evaluate(node.index, frame)
        value = self._updated(node, lambda: get_index(container, index), frame)
        return set_index(container, index, value)

    def _eval_assign_field(self, node, frame: Frame) -> DynamicValue:
        container = self._evaluate(node.container, frame)
        key = self._evaluate(node.key, frame)
        value = self._updated(node, lambda: get_field(container, key), frame)
        return set_field(container, key, value)

    # ------------------------------------------------------------------
    # Access and calls
    # ------------------------------------------------------------------

    def _eval_call(self, node, frame: Frame) -> DynamicValue:
        callee = self._evaluate(node.callee, frame)
        args = [self._evaluate(arg, frame) for arg in node.arguments]
        return invoke(callee, args)

    def _eval_native_call(self, node, frame: Frame) -> DynamicValue:
        function = node.function
        if self.natives is not None:
            function = self.natives.lookup(node.name) or function
        args = [self._evaluate(arg, frame) for arg in node.arguments]
        return invoke(DynamicValue(ValueKind.CALLABLE, function), args)

    def _eval_index(self, node, frame: Frame) -> Any:
        container = self._evaluate(node.container, frame)
        return get_index(container, self._evaluate(node.index, frame))

    def _eval_field(self, node, frame: Frame) -> DynamicValue:
        container = self._evaluate(node.container, frame)
        return get_field(container, self._evaluate(node.key, frame))

    # ------------------------------------------------------------------
    # Control flow
    # ------------------------------------------------------------------

    def _exec_if(self, node, frame: Frame) -> None:
        if is_truthy(self._evaluate(node.condition, frame)):
            self._execute(node.then_branch, frame)
        elif node.else_branch is not None:
            self._execute(node.else_branch, frame)

    def _exec_loop(self, node, frame: Frame) -> None:
        while is_truthy(self._evaluate(node.condition, frame)):
            try:
                self._execute(node.body, frame)
            except JumpSignal as signal:
                if signal.target is node.break_target:
                    break
                if signal.target is not node.continue_target:
                    raise
            if node.increment is not None:
                self._execute(node.increment, frame)

    def _exec_jump(self, node, frame: Frame) -> None:
        value = self._evaluate(node.value, frame) if node.value is not None else None
        raise JumpSignal(node.target, value)

    def _exec_label(self, node, frame: Frame) -> None:
        return None
