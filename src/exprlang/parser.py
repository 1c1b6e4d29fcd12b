"""
Recursive descent parser for exprlang.

Converts the lexer's token stream into an Abstract Syntax Tree (AST),
holding exactly one token of lookahead. Statements are parsed by recursive
descent; expressions by precedence climbing.
"""

import logging
from enum import IntEnum
from typing import List, Optional, Callable, TypeVar, Union

from .tokens import Token, TokenType, SourceSpan
from .lexer import Lexer
from .ast import (
    Operator, LiteralKind,
    # Expressions
    Expression, Literal, Variable, EnvVariable, ArrayLiteral, IndexExpr,
    CallExpr, BinaryOp, PrefixOp, PostfixOp,
    # Statements
    Statement, EmptyStatement, LetStatement, Block, IfStatement, ForStatement,
    ReturnStatement, BreakStatement, ContinueStatement, ExpressionStatement,
    FunctionDef, Program,
)
from .errors import (
    error_invalid_token,
    error_unexpected_token,
    error_unexpected_eof,
    error_invalid_expression,
    error_misplaced_function,
    error_nesting_too_deep,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Precedence(IntEnum):
    """Binding power of operators, lowest first."""
    LOWEST = 0
    ASSIGN = 1          # =
    LOGIC_OR = 2        # ||
    LOGIC_AND = 3       # &&
    EQUALITY = 4        # == !=
    COMPARISON = 5      # < <= > >=
    TERM = 6            # + -
    FACTOR = 7          # * / %
    PREFIX = 8          # -x !x
    POSTFIX = 9         # x++ x--
    CALL = 10           # f(x)
    INDEX = 11          # a[i]
    ACCESS = 12         # a.b
    PRIMARY = 13


class Parser:
    """
    Recursive descent parser for exprlang.

    Usage:
        parser = Parser(source)
        program = parser.parse()

    Operator precedence (lowest to highest):
        =               (right-associative)
        ||
        &&
        == !=
        < <= > >=
        + -
        * / %
        prefix - !
        postfix ++ --, call (), index [], access .
    """

    PRECEDENCE = {
        TokenType.ASSIGN: Precedence.ASSIGN,
        TokenType.OR: Precedence.LOGIC_OR,
        TokenType.AND: Precedence.LOGIC_AND,
        TokenType.EQ: Precedence.EQUALITY,
        TokenType.NE: Precedence.EQUALITY,
        TokenType.LT: Precedence.COMPARISON,
        TokenType.LE: Precedence.COMPARISON,
        TokenType.GT: Precedence.COMPARISON,
        TokenType.GE: Precedence.COMPARISON,
        TokenType.PLUS: Precedence.TERM,
        TokenType.MINUS: Precedence.TERM,
        TokenType.STAR: Precedence.FACTOR,
        TokenType.SLASH: Precedence.FACTOR,
        TokenType.PERCENT: Precedence.FACTOR,
        TokenType.INCREMENT: Precedence.POSTFIX,
        TokenType.DECREMENT: Precedence.POSTFIX,
        TokenType.LPAREN: Precedence.CALL,
        TokenType.LBRACKET: Precedence.INDEX,
        TokenType.DOT: Precedence.ACCESS,
    }

    BINARY_OPERATORS = {
        TokenType.ASSIGN: Operator.ASSIGN,
        TokenType.OR: Operator.OR,
        TokenType.AND: Operator.AND,
        TokenType.EQ: Operator.EQUAL,
        TokenType.NE: Operator.NOT_EQUAL,
        TokenType.LT: Operator.LESS,
        TokenType.LE: Operator.LESS_EQUAL,
        TokenType.GT: Operator.GREATER,
        TokenType.GE: Operator.GREATER_EQUAL,
        TokenType.PLUS: Operator.ADD,
        TokenType.MINUS: Operator.SUBTRACT,
        TokenType.STAR: Operator.MULTIPLY,
        TokenType.SLASH: Operator.DIVIDE,
        TokenType.PERCENT: Operator.MODULO,
    }

    PREFIX_OPERATORS = {
        TokenType.MINUS: Operator.SUBTRACT,
        TokenType.BANG: Operator.NOT,
    }

    POSTFIX_TOKENS = {
        TokenType.LPAREN,
        TokenType.LBRACKET,
        TokenType.INCREMENT,
        TokenType.DECREMENT,
    }

    RIGHT_ASSOCIATIVE = {TokenType.ASSIGN}

    def __init__(self, source: Union[str, bytes, Lexer], filename: Optional[str] = None):
        if isinstance(source, Lexer):
            self.lexer = source
        else:
            self.lexer = Lexer(source, filename)
        self.filename = filename
        self._lookahead: Optional[Token] = None
        self._previous: Optional[Token] = None

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get the lookahead token, pulling it from the lexer on demand."""
        if self._lookahead is None:
            token = self.lexer.next_token()
            if token.type == TokenType.INVALID:
                raise error_invalid_token(token.value, token.span, self._source_line(token))
            self._lookahead = token
        return self._lookahead

    def _check(self, token_type: TokenType) -> bool:
        return self._current().type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        return self._current().type in token_types

    def _is_at_end(self) -> bool:
        return self._check(TokenType.EOF)

    def _advance(self) -> Token:
        """Consume and return the lookahead token."""
        token = self._current()
        if token.type != TokenType.EOF:
            self._lookahead = None
        self._previous = token
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _error(self, expected: str) -> None:
        """Raise a parser error at the lookahead token."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span)
        raise error_unexpected_token(expected, token.describe(), token.span, self._source_line(token))

    def _source_line(self, token: Token) -> Optional[str]:
        return self.lexer.get_source_line(token.span.start.line)

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to the last consumed token."""
        end = self._previous if self._previous is not None else start
        return SourceSpan(start.span.start, end.span.end)

    def _parse_list(self, end: TokenType, separator: TokenType,
                    parse_item: Callable[[], T]) -> List[T]:
        """
        Parse separated items up to (not including) the closing token.

        An empty list is allowed; a trailing separator is not.
        """
        items: List[T] = []
        if self._check(end):
            return items
        items.append(parse_item())
        while self._match(separator):
            items.append(parse_item())
        return items

    # =========================================================================
    # Expressions
    # =========================================================================

    def parse_expression(self) -> Expression:
        """Parse a full expression."""
        return self.parse_expression_precedence(Precedence.LOWEST)

    def parse_expression_precedence(self, precedence: Precedence) -> Expression:
        """Parse an expression whose operators all bind tighter than ``precedence``."""
        expr = self._parse_prefix_expr()

        while True:
            token = self._current()
            next_precedence = self.PRECEDENCE.get(token.type)
            if next_precedence is None or next_precedence <= precedence:
                break
            if token.type in self.POSTFIX_TOKENS:
                expr = self._parse_postfix_expr(expr)
            else:
                expr = self._parse_binary_expr(expr, next_precedence)

        return expr

    def _parse_binary_expr(self, left: Expression, precedence: Precedence) -> Expression:
        op_token = self._advance()

        if op_token.type == TokenType.DOT:
            name = self._consume(TokenType.IDENTIFIER, "attribute name")
            right = Variable(name.value, span=name.span)
            return BinaryOp(Operator.ACCESS, left, right, span=SourceSpan(left.span.start, name.span.end))

        # Right-associative operators let the right side absorb one level lower
        if op_token.type in self.RIGHT_ASSOCIATIVE:
            right = self.parse_expression_precedence(Precedence(precedence - 1))
        else:
            right = self.parse_expression_precedence(precedence)

        return BinaryOp(
            self.BINARY_OPERATORS[op_token.type],
            left,
            right,
            span=SourceSpan(left.span.start, right.span.end),
        )

    def _parse_prefix_expr(self) -> Expression:
        """Parse prefix expressions (-x, !x) or fall through to a primary."""
        token = self._current()
        if token.type in self.PREFIX_OPERATORS:
            self._advance()
            operand = self.parse_expression_precedence(Precedence.PREFIX)
            return PrefixOp(
                self.PREFIX_OPERATORS[token.type],
                operand,
                span=SourceSpan(token.span.start, operand.span.end),
            )
        return self._parse_primary_expr()

    def _parse_postfix_expr(self, expr: Expression) -> Expression:
        """Parse one postfix form: call, index, increment or decrement."""
        token = self._advance()

        if token.type == TokenType.LPAREN:
            arguments = self._parse_list(TokenType.RPAREN, TokenType.COMMA, self.parse_expression)
            end = self._consume(TokenType.RPAREN, "')'")
            return CallExpr(expr, arguments, span=SourceSpan(expr.span.start, end.span.end))

        if token.type == TokenType.LBRACKET:
            index = self.parse_expression()
            end = self._consume(TokenType.RBRACKET, "']'")
            return IndexExpr(expr, index, span=SourceSpan(expr.span.start, end.span.end))

        operator = Operator.INCREMENT if token.type == TokenType.INCREMENT else Operator.DECREMENT
        return PostfixOp(operator, expr, span=SourceSpan(expr.span.start, token.span.end))

    def _parse_primary_expr(self) -> Expression:
        """Parse literals, names, grouped expressions and array literals."""
        token = self._current()
        t = token.type

        if t == TokenType.NULL:
            self._advance()
            return Literal(None, LiteralKind.NULL, span=token.span)
        if t in (TokenType.TRUE, TokenType.FALSE):
            self._advance()
            return Literal(t == TokenType.TRUE, LiteralKind.BOOLEAN, span=token.span)
        if t == TokenType.INTEGER:
            self._advance()
            return Literal(token.value, LiteralKind.INTEGER, span=token.span)
        if t == TokenType.FLOAT:
            self._advance()
            return Literal(token.value, LiteralKind.FLOAT, span=token.span)
        if t == TokenType.STRING:
            self._advance()
            return Literal(token.value, LiteralKind.STRING, span=token.span)
        if t == TokenType.IDENTIFIER:
            self._advance()
            return Variable(token.value, span=token.span)
        if t == TokenType.ENV_VARIABLE:
            self._advance()
            return EnvVariable(token.value, span=token.span)

        if t == TokenType.LPAREN:
            self._advance()
            expr = self.parse_expression()
            self._consume(TokenType.RPAREN, "')'")
            return expr

        if t == TokenType.LBRACKET:
            self._advance()
            elements = self._parse_list(TokenType.RBRACKET, TokenType.COMMA, self.parse_expression)
            self._consume(TokenType.RBRACKET, "']'")
            return ArrayLiteral(elements, span=self._span_from(token))

        if t == TokenType.EOF:
            raise error_unexpected_eof("expression", token.span)
        raise error_invalid_expression(token.describe(), token.span, self._source_line(token))

    # =========================================================================
    # Statements
    # =========================================================================

    def parse_statement(self) -> Statement:
        """Parse one statement, including top-level function declarations."""
        token = self._current()
        t = token.type

        if t == TokenType.FN:
            return self._parse_function_def()
        if t == TokenType.LET:
            return self._parse_let_statement()
        if t == TokenType.IF:
            return self._parse_if_statement()
        if t == TokenType.FOR:
            return self._parse_for_statement()
        if t == TokenType.RETURN:
            return self._parse_return_statement()
        if t == TokenType.BREAK:
            self._advance()
            self._consume(TokenType.SEMICOLON, "';'")
            return BreakStatement(span=self._span_from(token))
        if t == TokenType.CONTINUE:
            self._advance()
            self._consume(TokenType.SEMICOLON, "';'")
            return ContinueStatement(span=self._span_from(token))
        if t == TokenType.LBRACE:
            return self._parse_block()
        if t == TokenType.SEMICOLON:
            self._advance()
            return EmptyStatement(span=token.span)

        return self._parse_expression_statement()

    def _parse_nested_statement(self) -> Statement:
        """Parse a statement inside a block, branch or loop body."""
        stmt = self.parse_statement()
        if isinstance(stmt, FunctionDef):
            raise error_misplaced_function(stmt.name, stmt.span, self.lexer.get_source_line(stmt.span.start.line))
        return stmt

    def _parse_expression_statement(self) -> ExpressionStatement:
        start = self._current()
        expr = self.parse_expression()
        self._consume(TokenType.SEMICOLON, "';'")
        return ExpressionStatement(expr, span=self._span_from(start))

    def _parse_let_statement(self) -> LetStatement:
        """Parse: let name [= expr];"""
        start = self._advance()
        name = self._consume(TokenType.IDENTIFIER, "variable name").value

        initializer = None
        if self._match(TokenType.ASSIGN):
            initializer = self.parse_expression()

        self._consume(TokenType.SEMICOLON, "';'")
        return LetStatement(name, initializer, span=self._span_from(start))

    def _parse_block(self) -> Block:
        """Parse: { statement* }"""
        start = self._consume(TokenType.LBRACE, "'{'")
        statements = []
        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            statements.append(self._parse_nested_statement())
        self._consume(TokenType.RBRACE, "'}'")
        return Block(statements, span=self._span_from(start))

    def _parse_if_statement(self) -> IfStatement:
        """Parse: if (cond) { ... } [else { ... } | else statement]"""
        start = self._advance()
        self._consume(TokenType.LPAREN, "'(' after 'if'")
        condition = self.parse_expression()
        self._consume(TokenType.RPAREN, "')'")
        then_branch = self._parse_block()

        else_branch = None
        if self._match(TokenType.ELSE):
            if self._check(TokenType.LBRACE):
                else_branch = self._parse_block()
            else:
                else_branch = self._parse_nested_statement()

        return IfStatement(condition, then_branch, else_branch, span=self._span_from(start))

    def _parse_for_statement(self) -> ForStatement:
        """Parse: for ([init]; [cond]; [incr]) body"""
        start = self._advance()
        self._consume(TokenType.LPAREN, "'(' after 'for'")

        # The initializer consumes its own ';'
        if self._match(TokenType.SEMICOLON):
            initializer = None
        elif self._check(TokenType.LET):
            initializer = self._parse_let_statement()
        else:
            initializer = self._parse_expression_statement()

        condition = None
        if not self._check(TokenType.SEMICOLON):
            condition = self.parse_expression()
        self._consume(TokenType.SEMICOLON, "';'")

        increment = None
        if not self._check(TokenType.RPAREN):
            increment = self.parse_expression()
        self._consume(TokenType.RPAREN, "')'")

        body = self._parse_nested_statement()
        return ForStatement(initializer, condition, increment, body, span=self._span_from(start))

    def _parse_return_statement(self) -> ReturnStatement:
        """Parse: return [expr];"""
        start = self._advance()
        value = None
        if not self._check(TokenType.SEMICOLON):
            value = self.parse_expression()
        self._consume(TokenType.SEMICOLON, "';'")
        return ReturnStatement(value, span=self._span_from(start))

    def _parse_parameter(self) -> str:
        return self._consume(TokenType.IDENTIFIER, "parameter name").value

    def _parse_function_def(self) -> FunctionDef:
        """Parse: fn name(params) { body }"""
        start = self._advance()
        name = self._consume(TokenType.IDENTIFIER, "function name").value
        self._consume(TokenType.LPAREN, "'('")
        parameters = self._parse_list(TokenType.RPAREN, TokenType.COMMA, self._parse_parameter)
        self._consume(TokenType.RPAREN, "')'")
        body = self._parse_block()
        return FunctionDef(name, parameters, body, span=self._span_from(start))

    # =========================================================================
    # Program
    # =========================================================================

    def parse(self) -> Program:
        """Parse statements until end of input."""
        start = self._current()
        statements: List[Statement] = []
        functions = {}

        while not self._is_at_end():
            try:
                stmt = self.parse_statement()
            except RecursionError as exc:
                raise error_nesting_too_deep(self._current().span) from exc
            if isinstance(stmt, FunctionDef):
                if stmt.name in functions:
                    logger.debug("function '%s' redefined at %s", stmt.name, stmt.span.start)
                functions[stmt.name] = stmt
            else:
                statements.append(stmt)

        end = self._current()
        return Program(statements, functions, span=SourceSpan(start.span.start, end.span.end))


def parse(source: Union[str, bytes], filename: Optional[str] = None) -> Program:
    """
    Convenience function to parse source code into a program.

    Args:
        source: The source code to parse
        filename: Optional filename for error messages

    Returns:
        Parsed Program AST

    Raises:
        LexerError: If the source contains an invalid token
        ParserError: If parsing fails
    """
    return Parser(source, filename).parse()


def parse_expression(source: str, filename: Optional[str] = None) -> Expression:
    """Parse source consisting of exactly one expression."""
    parser = Parser(source, filename)
    try:
        expr = parser.parse_expression()
    except RecursionError as exc:
        raise error_nesting_too_deep(parser._current().span) from exc
    if not parser._is_at_end():
        parser._error("end of expression")
    return expr
