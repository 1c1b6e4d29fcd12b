"""
exprlang - a small imperative expression language.

This package provides:
- Lexer: Tokenizes source code
- Parser: Builds an AST from the token stream
- Evaluator: Runs the AST against a Context

Usage:
    from exprlang import run, parse, Context, Evaluator

    # One call
    result = run('return 1 + 2 * 3;')

    # Or step by step, with host-provided values
    program = parse('''
        fn greet(name) { return "hello, " + name; }
        return greet($who);
    ''')
    ctx = Context(program)
    ctx.define("who", "world")
    result = Evaluator(ctx).eval()
"""

import logging

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    Precedence,
    parse,
    parse_expression,
)

from .ast import (
    # Base
    AstNode,
    AstVisitor,
    Operator,
    LiteralKind,
    # Expressions
    Expression,
    Literal,
    Variable,
    EnvVariable,
    ArrayLiteral,
    IndexExpr,
    CallExpr,
    BinaryOp,
    PrefixOp,
    PostfixOp,
    # Statements
    Statement,
    EmptyStatement,
    LetStatement,
    Block,
    IfStatement,
    ForStatement,
    ReturnStatement,
    BreakStatement,
    ContinueStatement,
    ExpressionStatement,
    FunctionDef,
    Program,
    # Helpers
    format_ast,
)

from .errors import (
    Diagnostic,
    ExprError,
    LexerError,
    ParserError,
    EvaluationError,
    TypeMismatchError,
    UndefinedNameError,
    ArityError,
    NumericError,
    IndexRangeError,
    RecursionLimitError,
    ControlFlowError,
)

from .config import EvaluatorConfig

from .runtime import (
    ValueKind,
    Comparison,
    Object,
    Null,
    Boolean,
    Integer,
    Float,
    String,
    Array,
    UserFunction,
    NativeFunction,
    wrap_value,
    unwrap_value,
    Stack,
    Context,
    FlowKind,
    ControlFlow,
    Evaluator,
    run,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
