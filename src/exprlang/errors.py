"""
Exceptions and diagnostics for exprlang.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E2xx: Type errors
- E3xx: Name errors
- E4xx: Runtime errors
"""

from dataclasses import dataclass, field
from typing import Optional, List
from .tokens import SourceSpan


@dataclass
class Diagnostic:
    """A single diagnostic message."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    span: Optional[SourceSpan] = None
    source_line: Optional[str] = None   # The line of source the span starts on
    hints: List[str] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        header = f"error[{self.code}]: {self.message}"
        if self.span is not None:
            header = f"{self.span.start}: {header}"
        parts.append(header)

        if show_source and self.span is not None and self.source_line is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            if self.span.start.line == self.span.end.line:
                end_col = self.span.end.column
            else:
                end_col = len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        result = {
            "code": self.code,
            "message": self.message,
            "hints": self.hints,
        }
        if self.span is not None:
            result["range"] = {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            }
        return result


class ExprError(Exception):
    """Base exception for all exprlang errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def code(self) -> str:
        return self.diagnostic.code

    def attach_span(self, span: Optional[SourceSpan], source_line: Optional[str] = None) -> None:
        """Record where the error happened, unless a location is already known."""
        if self.diagnostic.span is None and span is not None:
            self.diagnostic.span = span
            self.diagnostic.source_line = source_line

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(ExprError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(ExprError):
    """Error during parsing (E1xx)."""
    pass


class EvaluationError(ExprError):
    """Base class for errors raised while evaluating a program."""
    pass


class TypeMismatchError(EvaluationError):
    """Operation applied to values of the wrong kind (E2xx)."""
    pass


class UndefinedNameError(EvaluationError):
    """Reference to an unbound variable or function (E3xx)."""
    pass


class ArityError(EvaluationError):
    """Function called with the wrong number of arguments (E401)."""
    pass


class NumericError(EvaluationError):
    """Division by zero or integer overflow (E402)."""
    pass


class IndexRangeError(EvaluationError):
    """Index outside the bounds of an array or string (E403)."""
    pass


class RecursionLimitError(EvaluationError):
    """Call depth exceeded the configured limit (E404)."""
    pass


class ControlFlowError(EvaluationError):
    """break or continue used outside of a loop (E405)."""
    pass


def _diagnostic(code: str, message: str, span: Optional[SourceSpan] = None,
                source_line: Optional[str] = None, hints: List[str] = None) -> Diagnostic:
    return Diagnostic(
        code=code,
        message=message,
        span=span,
        source_line=source_line,
        hints=hints or [],
    )


# --- Lexer error codes ---

def error_invalid_encoding(reason: str) -> LexerError:
    """E001: Source bytes are not valid UTF-8."""
    return LexerError(_diagnostic("E001", f"invalid UTF-8 in source: {reason}"))


def error_invalid_token(reason: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Invalid token reached by the parser."""
    return LexerError(_diagnostic("E002", reason, span, source_line))


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    return ParserError(_diagnostic("E101", f"expected {expected}, found {found}", span, source_line))


def error_unexpected_eof(expected: str, span: SourceSpan) -> ParserError:
    """E102: Unexpected end of file."""
    return ParserError(_diagnostic("E102", f"unexpected end of file, expected {expected}", span))


def error_invalid_expression(found: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E103: Token cannot start an expression."""
    return ParserError(_diagnostic("E103", f"expected expression, found {found}", span, source_line))


def error_misplaced_function(name: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E104: Function declared somewhere other than the top level."""
    return ParserError(_diagnostic(
        "E104",
        f"function '{name}' must be declared at the top level",
        span,
        source_line,
    ))


def error_nesting_too_deep(span: SourceSpan = None) -> ParserError:
    """E105: Source nested deeper than the parser can follow."""
    return ParserError(_diagnostic("E105", "expression or block nesting too deep", span))


# --- Type error codes ---

def error_unsupported_operand(operator: str, *kinds: str) -> TypeMismatchError:
    """E201: Operator not defined for the operand kinds."""
    operands = ", ".join(kinds)
    return TypeMismatchError(_diagnostic("E201", f"unsupported operand kind(s) for '{operator}': {operands}"))


def error_non_boolean_condition(kind: str, span: SourceSpan = None) -> TypeMismatchError:
    """E202: Condition did not evaluate to a Boolean."""
    return TypeMismatchError(_diagnostic("E202", f"condition must be Boolean, found {kind}", span))


def error_invalid_assignment_target(target: str, span: SourceSpan = None) -> TypeMismatchError:
    """E203: Left side of '=' or operand of '++'/'--' is not assignable."""
    return TypeMismatchError(_diagnostic("E203", f"cannot assign to {target}", span))


def error_not_callable(kind: str, span: SourceSpan = None) -> TypeMismatchError:
    """E204: Called value is not a function."""
    return TypeMismatchError(_diagnostic("E204", f"value of kind {kind} is not callable", span))


def error_no_attribute(kind: str, name: str, span: SourceSpan = None) -> TypeMismatchError:
    """E205: Attribute not supported by the value kind."""
    return TypeMismatchError(_diagnostic("E205", f"value of kind {kind} has no attribute '{name}'", span))


def error_unconvertible_value(type_name: str) -> TypeMismatchError:
    """E206: Host value has no runtime equivalent."""
    return TypeMismatchError(_diagnostic("E206", f"cannot convert {type_name} to a runtime value"))


# --- Name error codes ---

def error_undefined_variable(name: str, span: SourceSpan = None) -> UndefinedNameError:
    """E301: Undefined variable."""
    return UndefinedNameError(_diagnostic("E301", f"undefined variable '{name}'", span))


def error_undeclared_assignment(name: str, span: SourceSpan = None) -> UndefinedNameError:
    """E302: Assignment to a variable that was never declared."""
    return UndefinedNameError(_diagnostic(
        "E302",
        f"cannot assign to undeclared variable '{name}'",
        span,
        hints=[f"declare it first with 'let {name} = ...;'"],
    ))


def error_undefined_function(name: str, span: SourceSpan = None) -> UndefinedNameError:
    """E303: Undefined function."""
    return UndefinedNameError(_diagnostic("E303", f"undefined function '{name}'", span))


def error_undefined_env_variable(name: str, span: SourceSpan = None) -> UndefinedNameError:
    """E304: Environment variable not provided by the host."""
    return UndefinedNameError(_diagnostic("E304", f"undefined environment variable '${name}'", span))


# --- Runtime error codes ---

def error_arity_mismatch(name: str, expected: int, found: int, span: SourceSpan = None) -> ArityError:
    """E401: Wrong number of arguments."""
    return ArityError(_diagnostic(
        "E401",
        f"function '{name}' expects {expected} argument(s), got {found}",
        span,
    ))


def error_division_by_zero(operator: str = "/") -> NumericError:
    """E402: Division or modulo by zero."""
    return NumericError(_diagnostic("E402", f"division by zero in '{operator}'"))


def error_integer_overflow(value: int) -> NumericError:
    """E402: Integer result does not fit in 64 bits."""
    return NumericError(_diagnostic("E402", f"integer overflow: {value} does not fit in 64 bits"))


def error_index_out_of_range(index: int, length: int) -> IndexRangeError:
    """E403: Index out of range."""
    return IndexRangeError(_diagnostic("E403", f"index {index} out of range for length {length}"))


def error_recursion_limit(limit: int, span: SourceSpan = None) -> RecursionLimitError:
    """E404: Call depth limit exceeded."""
    return RecursionLimitError(_diagnostic(
        "E404",
        f"maximum call depth of {limit} exceeded",
        span,
        hints=["raise EvaluatorConfig.max_call_depth or EXPR_MAX_CALL_DEPTH"],
    ))


def error_loop_control_outside_loop(keyword: str, span: SourceSpan = None) -> ControlFlowError:
    """E405: break/continue with no enclosing loop."""
    return ControlFlowError(_diagnostic("E405", f"'{keyword}' outside of a loop", span))

