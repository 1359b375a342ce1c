"""
NyaScript Single-Pass Compiler

Recursive-descent parser that resolves scopes and emits the executable IR
in the same walk; there is no separate syntax tree.

Grammar, lowest precedence first:

    expression  -> assignment ( "?" expression ":" expression )?
    assignment  -> logic_xor ( ( "=" | "+=" | "-=" | "*=" | "/=" | "%=" ) expression )?
    logic_xor   -> logic_or ( "^^" logic_or )*
    logic_or    -> logic_and ( "||" logic_and )*
    logic_and   -> equality ( "&&" equality )*
    equality    -> comparison ( ( "==" | "!=" ) comparison )*
    comparison  -> bit_logic ( ( ">" | ">=" | "<" | "<=" ) bit_logic )*
    bit_logic   -> bit_shift ( ( "&" | "|" | "^" ) bit_shift )*
    bit_shift   -> term ( ( "<<" | ">>" ) term )*
    term        -> factor ( ( "+" | "-" ) factor )*
    factor      -> unary ( ( "*" | "/" | "%" ) unary )*
    unary       -> ( "!" | "-" | "~" | "++" | "--" ) unary | callable
    callable    -> ( "$" IDENTIFIER arguments | tuple ) ( arguments | index | field )*
    tuple       -> array | record | lambda | primary

Author: xwest
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Callable

from ..config import CompilerOptions
from ..lexer.tokens import Token, TokenType
from ..lexer.errors import LexerError
from ..analyzer.symbol_table import SymbolTable, ScopeKind, LabelKind, VariableSlot
from ..analyzer.errors import SymbolError
from ..ir.ir_nodes import (
    IRNode, Program, Block, ExpressionStatement, Declare, Print,
    Literal, VariableRef, Box, Unbox, ArrayLiteral, RecordLiteral, FunctionLiteral,
    BinaryOp, LogicalOp, UnaryOp, Ternary,
    AssignVariable, AssignIndex, AssignField,
    Call, NativeCall, Index, Field,
    If, Loop, Jump, LabelPlacement,
)
from ..runtime.natives import NativeRegistry, default_registry
from .errors import (
    ParseError, SyntaxErrorRecovery, create_expected_token_error,
    create_invalid_target_error, create_undeclared_error, postfix_step_note
)


logger = logging.getLogger("nyascript.parser")


class StrictModeAbort(ParseError):
    """Raised out of parse() by the first error when strict mode is on."""


@dataclass
class CompileResult:
    """Output of one compile call."""
    program: Program
    # Names declared directly in the global scope, for linking later units
    exported: Dict[str, VariableSlot] = field(default_factory=dict)
    errors: List[ParseError] = field(default_factory=list)
    # Filled in by the pipeline; the parser only sees tokens
    lex_errors: List[LexerError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors and not self.lex_errors


class Parser:
    """
    NyaScript single-pass compiler.

    Parses declarations one at a time, reporting and recovering from
    errors per declaration unless strict mode is on.
    """

    def __init__(self, tokens: List[Token], options: Optional[CompilerOptions] = None,
                 natives: Optional[NativeRegistry] = None):
        """
        Initialize parser with a list of tokens.

        Args:
            tokens: List of tokens from the lexer, ending with EOF
            options: compiler options (strict mode, file name)
            natives: registry used to resolve `$Name(...)` calls
        """
        self.tokens = tokens
        self.current = 0
        self.options = options or CompilerOptions()
        self.natives = natives if natives is not None else default_registry()
        self.symbols = SymbolTable()
        self.errors: List[ParseError] = []

        self._init_parsing_tables()

    def _init_parsing_tables(self):
        """Initialize operator and statement dispatch tables."""

        self.declaration_parsers: Dict[TokenType, Callable[[], IRNode]] = {
            TokenType.VAR: self._var_declaration,
            TokenType.LET: self._const_declaration,
            TokenType.FUN: self._function_declaration,
            TokenType.LABEL: self._label_declaration,
            TokenType.CLASS: self._class_declaration,
        }

        self.statement_parsers: Dict[TokenType, Callable[[], IRNode]] = {
            TokenType.LEFT_BRACE: self._block_statement,
            TokenType.IF: self._if_statement,
            TokenType.SWITCH: self._switch_statement,
            TokenType.FOR: self._for_statement,
            TokenType.WHILE: self._while_statement,
            TokenType.BREAK: self._break_statement,
            TokenType.CONTINUE: self._continue_statement,
            TokenType.GOTO: self._goto_statement,
            TokenType.RETURN: self._return_statement,
            TokenType.PRINT: self._print_statement,
        }

        self.assignment_operators: Dict[TokenType, Optional[str]] = {
            TokenType.ASSIGN: None,
            TokenType.PLUS_ASSIGN: "+",
            TokenType.MINUS_ASSIGN: "-",
            TokenType.STAR_ASSIGN: "*",
            TokenType.SLASH_ASSIGN: "/",
            TokenType.PERCENT_ASSIGN: "%",
        }

        self.equality_operators = {TokenType.EQUAL: "==", TokenType.NOT_EQUAL: "!="}
        self.comparison_operators = {
            TokenType.GREATER: ">",
            TokenType.GREATER_EQUAL: ">=",
            TokenType.LESS: "<",
            TokenType.LESS_EQUAL: "<=",
        }
        self.bit_logic_operators = {
            TokenType.BIT_AND: "&",
            TokenType.BIT_OR: "|",
            TokenType.BIT_XOR: "^",
        }
        self.shift_operators = {TokenType.LEFT_SHIFT: "<<", TokenType.RIGHT_SHIFT: ">>"}
        self.term_operators = {TokenType.PLUS: "+", TokenType.MINUS: "-"}
        self.factor_operators = {TokenType.STAR: "*", TokenType.SLASH: "/", TokenType.PERCENT: "%"}

        self.unary_operators = {TokenType.BANG: "!", TokenType.MINUS: "-", TokenType.BIT_NOT: "~"}
        self.step_operators = {TokenType.INCREMENT: "++", TokenType.DECREMENT: "--"}

    def parse(self, linked_names: Optional[Dict[str, VariableSlot]] = None) -> CompileResult:
        """
        Compile the token stream.

        Args:
            linked_names: slots exported by previously compiled units; they
                resolve after the unit's own globals

        Returns:
            CompileResult with the program, the unit's exported globals and
            every reported error

        Raises:
            ParseError: the first error, when strict mode is on
        """
        self.current = 0
        self.errors = []
        self.symbols.reset(linked_names)

        try:
            start = self._peek().location
            self._prescan_labels()
            statements: List[IRNode] = []
            while not self._is_at_end():
                statement = self._declaration()
                if statement is not None:
                    statements.append(statement)

            body = Block(statements, list(self.symbols.global_scope.variables.values()), start)
            program = Program(body, self.options.filename)
            exported = self.symbols.exported_names()
        finally:
            # Nothing declared here may leak into the next compile call
            self.symbols.reset()

        return CompileResult(program, exported, list(self.errors))

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def _declaration(self) -> Optional[IRNode]:
        """Parse one declaration or statement, recovering from errors in it."""
        depth = self.symbols.depth
        try:
            parser = self.declaration_parsers.get(self._peek().type)
            if parser is not None:
                self._advance()
                return parser()
            return self._statement()
        except StrictModeAbort:
            raise
        except ParseError as error:
            self._report(error)
            self.symbols.unwind_to(depth)
            self._synchronize()
            if self.options.strict:
                raise StrictModeAbort(
                    "Parsing canceled due to strict mode.", token=error.token, code="P009"
                ) from error
            return None

    def _var_declaration(self) -> IRNode:
        name = self._consume(TokenType.IDENTIFIER, "Expect variable name.")
        slot = self._define_variable(name)

        initializer: IRNode = Literal(None, name.location)
        if self._match(TokenType.ASSIGN):
            initializer = self._expression()

        self._consume(TokenType.SEMICOLON, "Expect ';' after variable declaration.")
        return Declare(slot, self._boxed(initializer), name.location)

    def _const_declaration(self) -> IRNode:
        name = self._consume(TokenType.IDENTIFIER, "Expect constant value name.")
        self._consume(TokenType.ASSIGN, "Constant value must have initialize expression.")
        # The initializer is compiled before the name exists
        initializer = self._expression()
        if initializer.dynamic:
            initializer = Unbox(initializer)

        slot = self._define_variable(name, constant=True)
        self._consume(TokenType.SEMICOLON, "Expect ';' after variable declaration.")
        return Declare(slot, initializer, name.location)

    def _function_declaration(self) -> IRNode:
        name = self._consume(TokenType.IDENTIFIER, "Expect function name.")
        # Declared before the body so the function can call itself
        slot = self._define_variable(name)

        with self.symbols.scoped(ScopeKind.FUNCTION):
            return_target = self.symbols.define_reserved(LabelKind.RETURN)
            self._consume(TokenType.LEFT_PAREN, "Expect '(' after function name.")
            params = self._parameters()
            self._consume(TokenType.LEFT_BRACE, "Expect '{' before function body.")
            body = self._block_body(self._previous())

        function = FunctionLiteral(name.lexeme, params, body, return_target, location=name.location)
        return Declare(slot, function, name.location)

    def _parameters(self) -> List[VariableSlot]:
        """Parse `name, name, ...)` after the opening parenthesis."""
        params: List[VariableSlot] = []
        if not self._check(TokenType.RIGHT_PAREN):
            while True:
                param = self._consume(TokenType.IDENTIFIER, "Expect parameter name.")
                params.append(self._define_variable(param))
                if not self._match(TokenType.COMMA):
                    break
        self._consume(TokenType.RIGHT_PAREN, "Expect ')' after parameters.")
        return params

    def _label_declaration(self) -> IRNode:
        name = self._consume(TokenType.IDENTIFIER, "Expect label name.")
        self._consume(TokenType.SEMICOLON, "Expect ';' after label declaration.")
        try:
            target = self.symbols.place_label(name.lexeme, name.location)
        except SymbolError as error:
            raise self._from_symbol_error(error, name) from error
        return LabelPlacement(target, name.location)

    def _class_declaration(self) -> IRNode:
        raise ParseError(
            "Class declarations are not supported.", token=self._previous(), code="P008",
            help_text="Use a record literal with function fields instead.",
        )

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _statement(self) -> IRNode:
        parser = self.statement_parsers.get(self._peek().type)
        if parser is not None:
            self._advance()
            return parser()
        return self._expression_statement()

    def _expression_statement(self) -> IRNode:
        expr = self._expression()
        self._consume(TokenType.SEMICOLON, "Expect ';' after expression.")
        return ExpressionStatement(expr, expr.location)

    def _block_statement(self) -> IRNode:
        return self._block_body(self._previous())

    def _block_body(self, brace: Token) -> Block:
        """Parse declarations up to the closing brace, in a fresh scope."""
        with self.symbols.scoped(ScopeKind.BLOCK) as scope:
            self._prescan_labels()
            statements: List[IRNode] = []
            while not self._check(TokenType.RIGHT_BRACE) and not self._is_at_end():
                statement = self._declaration()
                if statement is not None:
                    statements.append(statement)
            self._consume(TokenType.RIGHT_BRACE, "Expect '}' after block.")
            return Block(statements, list(scope.variables.values()), brace.location)

    def _prescan_labels(self):
        """
        Register the labels declared directly in the block about to be parsed.

        Scans forward from the current token to the matching `}` (or EOF),
        skipping nested braces, so a goto can refer to a label further down.
        """
        depth = 0
        position = self.current
        while position < len(self.tokens):
            token = self.tokens[position]
            if token.type == TokenType.EOF:
                break
            if token.type == TokenType.LEFT_BRACE:
                depth += 1
            elif token.type == TokenType.RIGHT_BRACE:
                if depth == 0:
                    break
                depth -= 1
            elif (depth == 0 and token.type == TokenType.LABEL
                  and position + 1 < len(self.tokens)
                  and self.tokens[position + 1].type == TokenType.IDENTIFIER):
                name = self.tokens[position + 1]
                # A repeated label is reported when its second declaration is parsed
                if name.lexeme not in self.symbols.current_scope.labels:
                    self.symbols.declare_pending_label(name.lexeme, name.location)
            position += 1

    def _if_statement(self) -> IRNode:
        keyword = self._previous()
        self._consume(TokenType.LEFT_PAREN, "Expect '(' after 'if'.")
        condition = self._expression()
        self._consume(TokenType.RIGHT_PAREN, "Expect ')' after if condition.")

        then_branch = self._statement()
        # else binds to the nearest if
        else_branch = self._statement() if self._match(TokenType.ELSE) else None
        return If(condition, then_branch, else_branch, keyword.location)

    def _switch_statement(self) -> IRNode:
        """Compile `switch` as a chain of equality tests on a subject evaluated once."""
        keyword = self._previous()
        self._consume(TokenType.LEFT_PAREN, "Expect '(' after switch.")
        subject = self._expression()
        self._consume(TokenType.RIGHT_PAREN, "Expect ')' after switch test value.")
        self._consume(TokenType.LEFT_BRACE, "Expect '{' before any 'case' expression.")
        self._consume(TokenType.CASE, "Switch statement should have at least one case.")

        subject_slot = VariableSlot("switch", location=keyword.location)
        cases = []
        while True:
            test = self._expression()
            self._consume(TokenType.COLON, "Expect ':' after the expression of a case.")
            cases.append((test, self._statement()))
            if not self._match(TokenType.CASE):
                break

        chain: Optional[IRNode] = None
        if self._match(TokenType.DEFAULT):
            self._consume(TokenType.COLON, "Expect ':' after the default expression.")
            chain = self._statement()

        self._consume(TokenType.RIGHT_BRACE, "Expect '}' after switch-case statement.")

        for test, body in reversed(cases):
            matches = BinaryOp("==", VariableRef(subject_slot, test.location), test, test.location)
            chain = If(matches, body, chain, test.location)

        return Block(
            [Declare(subject_slot, self._boxed(subject), keyword.location), chain],
            [subject_slot],
            keyword.location,
        )

    def _for_statement(self) -> IRNode:
        keyword = self._previous()
        with self.symbols.scoped(ScopeKind.LOOP) as scope:
            break_target = self.symbols.define_reserved(LabelKind.BREAK)
            continue_target = self.symbols.define_reserved(LabelKind.CONTINUE)

            self._consume(TokenType.LEFT_PAREN, "Expect '(' after 'for'.")
            initializer: Optional[IRNode] = None
            if self._match(TokenType.SEMICOLON):
                initializer = None
            elif self._match(TokenType.VAR):
                initializer = self._var_declaration()
            else:
                initializer = self._expression_statement()

            condition: IRNode = Literal(True, keyword.location)
            if not self._check(TokenType.SEMICOLON):
                condition = self._expression()
            self._consume(TokenType.SEMICOLON, "Expect ';' after loop condition.")

            increment: Optional[IRNode] = None
            if not self._check(TokenType.RIGHT_PAREN):
                step = self._expression()
                increment = ExpressionStatement(step, step.location)
            self._consume(TokenType.RIGHT_PAREN, "Expect ')' after for clauses.")

            body = self._statement()
            loop = Loop(condition, body, increment, break_target, continue_target, keyword.location)
            if initializer is None:
                return loop
            return Block([initializer, loop], list(scope.variables.values()), keyword.location)

    def _while_statement(self) -> IRNode:
        keyword = self._previous()
        with self.symbols.scoped(ScopeKind.LOOP):
            break_target = self.symbols.define_reserved(LabelKind.BREAK)
            continue_target = self.symbols.define_reserved(LabelKind.CONTINUE)

            self._consume(TokenType.LEFT_PAREN, "Expect '(' after 'while'.")
            condition = self._expression()
            self._consume(TokenType.RIGHT_PAREN, "Expect ')' after condition.")
            body = self._statement()
            return Loop(condition, body, None, break_target, continue_target, keyword.location)

    def _break_statement(self) -> IRNode:
        keyword = self._previous()
        target = self.symbols.lookup_reserved(LabelKind.BREAK)
        if target is None:
            raise ParseError("No loops to break.", token=keyword, code="P005")
        self._consume(TokenType.SEMICOLON, "Expect ';' after break statement.")
        return Jump(target, location=keyword.location)

    def _continue_statement(self) -> IRNode:
        keyword = self._previous()
        target = self.symbols.lookup_reserved(LabelKind.CONTINUE)
        if target is None:
            raise ParseError("No loops to continue.", token=keyword, code="P005")
        self._consume(TokenType.SEMICOLON, "Expect ';' after continue statement.")
        return Jump(target, location=keyword.location)

    def _goto_statement(self) -> IRNode:
        name = self._consume(TokenType.IDENTIFIER, "Expect goto label.")
        target = self.symbols.lookup_label(name.lexeme)
        if target is None or target.kind != LabelKind.USER:
            raise ParseError(
                f"Undefined label '{name.lexeme}'.", token=name, code="P006",
                help_text="A goto can only reach labels of its own block or an enclosing one.",
            )
        self._consume(TokenType.SEMICOLON, "Expect ';' after goto statement.")
        return Jump(target, location=name.location)

    def _return_statement(self) -> IRNode:
        keyword = self._previous()
        value: IRNode = Literal(None, keyword.location)
        if not self._check(TokenType.SEMICOLON):
            value = self._expression()

        target = self.symbols.lookup_reserved(LabelKind.RETURN)
        if target is None:
            raise ParseError("Cannot find RETURN label.", token=keyword, code="P005")
        self._consume(TokenType.SEMICOLON, "Expect ';' after return value.")
        return Jump(target, self._boxed(value), keyword.location)

    def _print_statement(self) -> IRNode:
        keyword = self._previous()
        value = self._expression()
        self._consume(TokenType.SEMICOLON, "Expect ';' after value.")
        return Print(value, keyword.location)

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _expression(self) -> IRNode:
        expr = self._assignment()
        if self._match(TokenType.QUESTION):
            question = self._previous()
            then_expr = self._expression()
            self._consume(TokenType.COLON, "Expect ':' in condition expression.")
            else_expr = self._expression()
            expr = Ternary(expr, self._boxed(then_expr), self._boxed(else_expr), question.location)
        return expr

    def _assignment(self) -> IRNode:
        expr = self._logic_xor()

        if self._peek().type in self.assignment_operators:
            operator_token = self._advance()
            operator = self.assignment_operators[operator_token.type]
            value = self._boxed(self._expression())
            return self._assign_to(expr, value, operator, operator_token)

        return expr

    def _assign_to(self, target: IRNode, value: Optional[IRNode], operator: Optional[str],
                   operator_token: Token, what: str = "assignment") -> IRNode:
        """Build the store node for `target op= value` (or `++target`)."""
        location = operator_token.location
        if isinstance(target, VariableRef):
            if target.slot.constant:
                raise ParseError(
                    f"Cannot assign to constant '{target.slot.name}'.", token=operator_token,
                    code="P003", help_text="Declare it with 'var' to make it assignable.",
                )
            return AssignVariable(target.slot, value, operator, location)
        if isinstance(target, Index):
            return AssignIndex(target.container, target.index, value, operator, location)
        if isinstance(target, Field):
            return AssignField(target.container, target.key, value, operator, location)
        raise create_invalid_target_error(operator_token, what)

    def _logic_xor(self) -> IRNode:
        expr = self._logic_or()
        while self._match(TokenType.XOR):
            operator = self._previous()
            expr = LogicalOp("^^", expr, self._logic_or(), operator.location)
        return expr

    def _logic_or(self) -> IRNode:
        expr = self._logic_and()
        while self._match(TokenType.OR):
            operator = self._previous()
            expr = LogicalOp("||", expr, self._logic_and(), operator.location)
        return expr

    def _logic_and(self) -> IRNode:
        expr = self._equality()
        while self._match(TokenType.AND):
            operator = self._previous()
            expr = LogicalOp("&&", expr, self._equality(), operator.location)
        return expr

    def _binary_level(self, operand: Callable[[], IRNode], operators: Dict[TokenType, str]) -> IRNode:
        """Left-associative loop shared by the binary precedence levels."""
        expr = operand()
        while self._peek().type in operators:
            operator = self._advance()
            right = operand()
            expr = BinaryOp(operators[operator.type], expr, right, operator.location)
        return expr

    def _equality(self) -> IRNode:
        return self._binary_level(self._comparison, self.equality_operators)

    def _comparison(self) -> IRNode:
        return self._binary_level(self._bit_logic, self.comparison_operators)

    def _bit_logic(self) -> IRNode:
        return self._binary_level(self._bit_shift, self.bit_logic_operators)

    def _bit_shift(self) -> IRNode:
        return self._binary_level(self._term, self.shift_operators)

    def _term(self) -> IRNode:
        return self._binary_level(self._factor, self.term_operators)

    def _factor(self) -> IRNode:
        return self._binary_level(self._unary, self.factor_operators)

    def _unary(self) -> IRNode:
        token_type = self._peek().type
        if token_type in self.unary_operators:
            operator = self._advance()
            return UnaryOp(self.unary_operators[token_type], self._unary(), operator.location)
        if token_type in self.step_operators:
            operator = self._advance()
            target = self._unary()
            what = "increment" if token_type == TokenType.INCREMENT else "decrement"
            return self._assign_to(target, None, self.step_operators[token_type], operator, what)
        return self._callable()

    def _callable(self) -> IRNode:
        if self._match(TokenType.DOLLAR):
            expr = self._native_call()
        else:
            expr = self._tuple()

        while True:
            if self._match(TokenType.LEFT_PAREN):
                paren = self._previous()
                expr = Call(expr, self._arguments(), paren.location)
            elif self._match(TokenType.LEFT_BRACKET):
                expr = self._index(expr)
            elif self._match(TokenType.DOT):
                expr = self._field(expr)
            else:
                return expr

    def _arguments(self) -> List[IRNode]:
        """Parse `arg, arg, ...)` after the opening parenthesis; arguments are boxed."""
        arguments: List[IRNode] = []
        if not self._check(TokenType.RIGHT_PAREN):
            while True:
                arguments.append(self._boxed(self._expression()))
                if not self._match(TokenType.COMMA):
                    break
        self._consume(TokenType.RIGHT_PAREN, "Expect ')' after arguments.")
        return arguments

    def _native_call(self) -> IRNode:
        name = self._consume(TokenType.IDENTIFIER, "Expect static method name.")
        function = self.natives.lookup(name.lexeme)
        if function is None:
            raise ParseError(
                "Invalid static method.", token=name, code="P007",
                suggestions=[f"Did you mean '${candidate}'?"
                             for candidate in self.natives.similar_names(name.lexeme)],
            )
        self._consume(TokenType.LEFT_PAREN, "Expect '(' after static method name.")
        return NativeCall(name.lexeme, function, self._arguments(), name.location)

    def _index(self, container: IRNode) -> IRNode:
        """`a[i]`, with `a[i, j]` meaning `a[i][j]`."""
        bracket = self._previous()
        if self._check(TokenType.RIGHT_BRACKET):
            raise ParseError("Too less argument for array index.", token=self._advance(), code="P002")
        if isinstance(container, Literal) and not isinstance(container.value, str):
            raise ParseError("Not an accessable array.", token=bracket, code="P005")

        while True:
            index = self._expression()
            container = Index(container, index, bracket.location)
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RIGHT_BRACKET, "Expect ']' for array index.")
        return container

    def _field(self, container: IRNode) -> IRNode:
        """`a.name`, or `a.@expr` with the key computed at runtime."""
        dot = self._previous()
        if isinstance(container, Literal):
            raise ParseError(f"Type of [{container}] doesn't have any field.", token=dot, code="P005")

        if self._match(TokenType.IDENTIFIER):
            name = self._previous()
            return Field(container, Literal(name.lexeme, name.location), dot.location)
        if self._match(TokenType.AT):
            return Field(container, self._tuple(), dot.location)
        raise ParseError("Expect field name.", token=self._peek(), code="P001")

    def _tuple(self) -> IRNode:
        if self._match(TokenType.LEFT_BRACKET):
            return self._array_literal()
        if self._match(TokenType.LEFT_BRACE):
            return self._record_literal()
        if self._match(TokenType.FUN):
            return self._lambda()
        return self._primary()

    def _array_literal(self) -> IRNode:
        bracket = self._previous()
        items: List[IRNode] = []
        if not self._check(TokenType.RIGHT_BRACKET):
            while True:
                items.append(self._boxed(self._expression()))
                if not self._match(TokenType.COMMA):
                    break
        self._consume(TokenType.RIGHT_BRACKET, "Expect ']' after tuple definition.")
        return ArrayLiteral(items, bracket.location)

    def _record_literal(self) -> IRNode:
        brace = self._previous()
        fields = []
        # Field initializers see the record under construction as `this`
        with self.symbols.scoped(ScopeKind.RECORD):
            this_slot = self.symbols.define_variable("this", brace.location)
            if not self._check(TokenType.RIGHT_BRACE):
                while True:
                    if self._match(TokenType.IDENTIFIER):
                        name = self._previous().lexeme
                    elif self._match(TokenType.STRING):
                        name = self._previous().literal
                    else:
                        raise ParseError("Field name must be declared.", token=self._advance(), code="P008")
                    self._consume(TokenType.COLON, "Expect ':' after field name.")
                    fields.append((name, self._boxed(self._expression())))
                    if not self._match(TokenType.COMMA):
                        break

        self._consume(TokenType.RIGHT_BRACE, "Expect '}' after container definition.")
        return RecordLiteral(fields, this_slot, brace.location)

    def _lambda(self) -> IRNode:
        """`fun (params) { body }` or `fun (params) => expr`; `fun _(...)` is allowed."""
        keyword = self._previous()
        self_name = "self"
        if self._check(TokenType.IDENTIFIER):
            name = self._advance()
            if name.lexeme != "_":
                raise ParseError(
                    "Lambda function should not be named, or should be named as anonymous '_'; "
                    "To recur, use 'self()' for nameless, or '_()' for anonymous.",
                    token=name, code="P008",
                )
            self_name = "_"

        with self.symbols.scoped(ScopeKind.FUNCTION):
            # The self name is only visible inside the lambda
            self_slot = self.symbols.define_variable(self_name, keyword.location)
            return_target = self.symbols.define_reserved(LabelKind.RETURN)

            self._consume(TokenType.LEFT_PAREN, "Expect '(' after function name.")
            params = self._parameters()

            if self._match(TokenType.FAT_ARROW):
                arrow = self._previous()
                value = self._expression()
                body = Block([Jump(return_target, self._boxed(value), arrow.location)], [], arrow.location)
            else:
                self._consume(TokenType.LEFT_BRACE, "Expect '{' before function body.")
                body = self._block_body(self._previous())

        return FunctionLiteral(self_name, params, body, return_target, self_slot, keyword.location)

    def _primary(self) -> IRNode:
        token = self._peek()

        if self._match(TokenType.FALSE):
            return Literal(False, token.location)
        if self._match(TokenType.TRUE):
            return Literal(True, token.location)
        if self._match(TokenType.NULL):
            return Literal(None, token.location)
        if self._match(TokenType.NUMBER, TokenType.STRING):
            return Literal(token.literal, token.location)

        if self._match(TokenType.IDENTIFIER):
            slot = self.symbols.lookup(token.lexeme)
            if slot is None:
                raise create_undeclared_error(token, self.symbols.similar_names(token.lexeme))
            return VariableRef(slot, token.location)

        if self._match(TokenType.LEFT_PAREN):
            expr = self._expression()
            self._consume(TokenType.RIGHT_PAREN, "Expect ')' after expression.")
            return expr

        if self._match(TokenType.THIS):
            slot = self.symbols.lookup("this")
            if slot is None:
                raise ParseError("Unexpected keyword 'this'.", token=token, code="P004")
            return VariableRef(slot, token.location)

        raise ParseError("Expect expression.", token=token, code="P002")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _boxed(expr: IRNode) -> IRNode:
        """Ensure a value reaching a dynamic slot is a DynamicValue."""
        return expr if expr.dynamic else Box(expr)

    def _define_variable(self, name: Token, constant: bool = False) -> VariableSlot:
        try:
            return self.symbols.define_variable(name.lexeme, name.location, constant)
        except SymbolError as error:
            raise self._from_symbol_error(error, name) from error

    @staticmethod
    def _from_symbol_error(error: SymbolError, token: Token) -> ParseError:
        return ParseError(
            error.message, token=token, code=error.diagnostic.code,
            help_text=error.diagnostic.help_text,
        )

    def _report(self, error: ParseError):
        """Record an error and send it to the diagnostics sink."""
        self.errors.append(error)
        logger.error(error.report())
        note = postfix_step_note(error)
        if note is not None:
            logger.error(note)

    def _synchronize(self):
        self.current = SyntaxErrorRecovery.synchronize_to_statement_boundary(self.tokens, self.current)

    # Utility methods

    def _match(self, *token_types: TokenType) -> bool:
        """Check if current token matches one of the types and consume if so."""
        if self._check(*token_types):
            self._advance()
            return True
        return False

    def _check(self, *token_types: TokenType) -> bool:
        """Check if current token matches one of the types without consuming."""
        if self._is_at_end():
            return False
        return self._peek().type in token_types

    def _advance(self) -> Token:
        """Consume and return current token."""
        if not self._is_at_end():
            self.current += 1
        return self._previous()

    def _is_at_end(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _peek(self) -> Token:
        return self.tokens[self.current]

    def _previous(self) -> Token:
        return self.tokens[self.current - 1] if self.current > 0 else self.tokens[0]

    def _consume(self, token_type: TokenType, message: str) -> Token:
        """Consume token of expected type or raise error."""
        if self._check(token_type):
            return self._advance()
        raise create_expected_token_error(token_type, self._peek(), message)
