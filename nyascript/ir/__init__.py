"""
NyaScript IR Package

The program graph produced by the compiler and consumed by the
interpreter.

Author: xwest
"""

from .ir_nodes import (
    IRNode, IRNodeType, Program, Block, ExpressionStatement, Declare, Print,
    Literal, VariableRef, Box, Unbox, ArrayLiteral, RecordLiteral, FunctionLiteral,
    BinaryOp, LogicalOp, UnaryOp, Ternary,
    AssignVariable, AssignIndex, AssignField,
    Call, NativeCall, Index, Field,
    If, Loop, Jump, LabelPlacement,
)

__all__ = [
    "IRNode", "IRNodeType", "Program", "Block", "ExpressionStatement", "Declare", "Print",
    "Literal", "VariableRef", "Box", "Unbox", "ArrayLiteral", "RecordLiteral", "FunctionLiteral",
    "BinaryOp", "LogicalOp", "UnaryOp", "Ternary",
    "AssignVariable", "AssignIndex", "AssignField",
    "Call", "NativeCall", "Index", "Field",
    "If", "Loop", "Jump", "LabelPlacement",
]
