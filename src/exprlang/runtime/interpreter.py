"""
Tree-walking evaluator for exprlang.

Statements produce a ``ControlFlow`` signal that tells the enclosing
construct whether to continue, leave a loop, or return from a function.
Expressions produce runtime ``Object`` values.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Mapping, Optional, Union

from .values import (
    Object, Null, Boolean, Integer, Float, String, Array,
    UserFunction, NativeFunction, compare_values,
)
from .context import Context
from ..ast import (
    Operator, LiteralKind, format_ast,
    Statement, EmptyStatement, LetStatement, Block, IfStatement, ForStatement,
    ReturnStatement, BreakStatement, ContinueStatement, ExpressionStatement,
    FunctionDef,
    Expression, Literal, Variable, EnvVariable, ArrayLiteral, IndexExpr,
    CallExpr, BinaryOp, PrefixOp, PostfixOp,
)
from ..config import EvaluatorConfig
from ..errors import (
    EvaluationError,
    error_unsupported_operand,
    error_non_boolean_condition,
    error_invalid_assignment_target,
    error_not_callable,
    error_arity_mismatch,
    error_recursion_limit,
    error_loop_control_outside_loop,
)
from ..tokens import SourceSpan

logger = logging.getLogger(__name__)


class FlowKind(Enum):
    NONE = "none"
    BREAK = "break"
    CONTINUE = "continue"
    RETURN = "return"


@dataclass(frozen=True)
class ControlFlow:
    """Signal returned by every executed statement."""
    kind: FlowKind
    value: Optional[Object] = None

    @classmethod
    def returning(cls, value: Object) -> "ControlFlow":
        return cls(FlowKind.RETURN, value)


NONE_FLOW = ControlFlow(FlowKind.NONE)
BREAK_FLOW = ControlFlow(FlowKind.BREAK)
CONTINUE_FLOW = ControlFlow(FlowKind.CONTINUE)

# Operator -> Object method name
ARITHMETIC = {
    Operator.ADD: "add",
    Operator.SUBTRACT: "sub",
    Operator.MULTIPLY: "mul",
    Operator.DIVIDE: "div",
    Operator.MODULO: "mod",
}

COMPARISONS = {
    Operator.EQUAL,
    Operator.NOT_EQUAL,
    Operator.LESS,
    Operator.LESS_EQUAL,
    Operator.GREATER,
    Operator.GREATER_EQUAL,
}


class Evaluator:
    """
    Tree-walking evaluator over a Context.

    Usage:
        ctx = Context(parse(source))
        result = Evaluator(ctx).eval()

    ``&&`` and ``||`` evaluate both operands before combining them.
    """

    def __init__(self, context: Context):
        self.context = context
        self.config: EvaluatorConfig = context.config
        self._call_depth = 0

    # =========================================================================
    # Entry points
    # =========================================================================

    def eval(self) -> Object:
        """
        Run the context's program.

        Returns:
            The value of the first top-level ``return``, or null when the
            program runs off the end.

        Raises:
            EvaluationError: On any runtime failure; nothing is recovered.
        """
        try:
            for stmt in self.context.program.statements:
                flow = self.execute(stmt)
                if flow.kind == FlowKind.RETURN:
                    return flow.value
                self._reject_loop_control(flow, stmt)
            return Null()
        except RecursionError as exc:
            raise error_recursion_limit(self.config.max_call_depth) from exc

    def eval_expression(self, expr: Expression) -> Object:
        """Evaluate a single expression in the current context."""
        try:
            return self._evaluate(expr)
        except RecursionError as exc:
            raise error_recursion_limit(self.config.max_call_depth) from exc

    def execute(self, stmt: Statement) -> ControlFlow:
        """Execute one statement and return its control-flow signal."""
        if self.config.trace:
            logger.debug("exec %s at %s", type(stmt).__name__, stmt.span.start if stmt.span else "?")
        try:
            return self._execute_statement(stmt)
        except EvaluationError as exc:
            self._locate(exc, stmt.span)
            raise

    def _locate(self, exc: EvaluationError, span: Optional[SourceSpan]) -> None:
        if span is None:
            return
        exc.attach_span(span, self.context.get_source_line(span.start.line))

    def _reject_loop_control(self, flow: ControlFlow, stmt: Statement) -> None:
        if flow.kind in (FlowKind.BREAK, FlowKind.CONTINUE):
            raise error_loop_control_outside_loop(flow.kind.value, stmt.span)

    # =========================================================================
    # Statements
    # =========================================================================

    def _execute_statement(self, stmt: Statement) -> ControlFlow:
        if isinstance(stmt, ExpressionStatement):
            self._evaluate(stmt.expression)
            return NONE_FLOW
        elif isinstance(stmt, LetStatement):
            return self._execute_let(stmt)
        elif isinstance(stmt, IfStatement):
            return self._execute_if(stmt)
        elif isinstance(stmt, ForStatement):
            return self._execute_for(stmt)
        elif isinstance(stmt, Block):
            return self._execute_block(stmt)
        elif isinstance(stmt, ReturnStatement):
            return self._execute_return(stmt)
        elif isinstance(stmt, BreakStatement):
            return BREAK_FLOW
        elif isinstance(stmt, ContinueStatement):
            return CONTINUE_FLOW
        elif isinstance(stmt, EmptyStatement):
            return NONE_FLOW
        else:
            raise RuntimeError(f"Unknown statement type: {type(stmt).__name__}")

    def _execute_let(self, stmt: LetStatement) -> ControlFlow:
        if stmt.initializer is not None:
            value = self._evaluate(stmt.initializer)
        else:
            value = Null()
        self.context.declare_variable(stmt.name, value)
        return NONE_FLOW

    def _condition(self, expr: Expression) -> bool:
        """Evaluate a condition, which must produce a Boolean."""
        value = self._evaluate(expr)
        if not isinstance(value, Boolean):
            raise error_non_boolean_condition(value.kind.value, expr.span)
        return value.value

    def _execute_if(self, stmt: IfStatement) -> ControlFlow:
        if self._condition(stmt.condition):
            return self.execute(stmt.then_branch)
        if stmt.else_branch is not None:
            return self.execute(stmt.else_branch)
        return NONE_FLOW

    def _execute_for(self, stmt: ForStatement) -> ControlFlow:
        # The initializer's bindings live in the loop's own frame
        with self.context.scope("for"):
            if stmt.initializer is not None:
                self.execute(stmt.initializer)

            while stmt.condition is None or self._condition(stmt.condition):
                flow = self.execute(stmt.body)
                if flow.kind == FlowKind.BREAK:
                    break
                if flow.kind == FlowKind.RETURN:
                    return flow
                if stmt.increment is not None:
                    self._evaluate(stmt.increment)

        return NONE_FLOW

    def _execute_block(self, block: Block, name: str = "block") -> ControlFlow:
        with self.context.scope(name):
            return self._execute_statements(block.statements)

    def _execute_statements(self, statements: List[Statement]) -> ControlFlow:
        for stmt in statements:
            flow = self.execute(stmt)
            if flow.kind != FlowKind.NONE:
                return flow
        return NONE_FLOW

    def _execute_return(self, stmt: ReturnStatement) -> ControlFlow:
        if stmt.value is None:
            return ControlFlow.returning(Null())
        return ControlFlow.returning(self._evaluate(stmt.value))

    # =========================================================================
    # Expressions
    # =========================================================================

    def _evaluate(self, expr: Expression) -> Object:
        """Evaluate an expression, recording its location on runtime errors."""
        try:
            return self._evaluate_expression(expr)
        except EvaluationError as exc:
            self._locate(exc, expr.span)
            raise

    def _evaluate_expression(self, expr: Expression) -> Object:
        if isinstance(expr, Literal):
            return self._eval_literal(expr)
        elif isinstance(expr, Variable):
            return self.context.get_variable(expr.name)
        elif isinstance(expr, BinaryOp):
            return self._eval_binary_op(expr)
        elif isinstance(expr, CallExpr):
            return self._eval_call(expr)
        elif isinstance(expr, PrefixOp):
            return self._eval_prefix_op(expr)
        elif isinstance(expr, PostfixOp):
            return self._eval_postfix_op(expr)
        elif isinstance(expr, IndexExpr):
            return self._evaluate(expr.object).index(self._evaluate(expr.index))
        elif isinstance(expr, ArrayLiteral):
            return Array([self._evaluate(element) for element in expr.elements])
        elif isinstance(expr, EnvVariable):
            return self.context.get_env_variable(expr.name)
        else:
            raise RuntimeError(f"Unknown expression type: {type(expr).__name__}")

    def _eval_literal(self, lit: Literal) -> Object:
        if lit.literal_type == LiteralKind.INTEGER:
            return Integer(lit.value)
        elif lit.literal_type == LiteralKind.FLOAT:
            return Float(lit.value)
        elif lit.literal_type == LiteralKind.STRING:
            return String(lit.value)
        elif lit.literal_type == LiteralKind.BOOLEAN:
            return Boolean(lit.value)
        elif lit.literal_type == LiteralKind.NULL:
            return Null()
        else:
            raise RuntimeError(f"Unknown literal type: {lit.literal_type}")

    def _eval_binary_op(self, op: BinaryOp) -> Object:
        if op.operator == Operator.ASSIGN:
            return self._eval_assignment(op)
        if op.operator == Operator.ACCESS:
            return self._evaluate(op.left).get_attr(op.right.name)

        # Both sides are always evaluated, including for && and ||
        left = self._evaluate(op.left)
        right = self._evaluate(op.right)

        if op.operator in ARITHMETIC:
            return getattr(left, ARITHMETIC[op.operator])(right)
        if op.operator in COMPARISONS:
            return Boolean(compare_values(left, right, op.operator.value))
        if op.operator == Operator.AND:
            return left.logic_and(right)
        if op.operator == Operator.OR:
            return left.logic_or(right)
        raise RuntimeError(f"Unknown binary operator: {op.operator}")

    def _eval_assignment(self, op: BinaryOp) -> Object:
        target = op.left
        if isinstance(target, Variable):
            value = self._evaluate(op.right)
            self.context.set_variable(target.name, value)
            return value
        if isinstance(target, IndexExpr):
            container = self._evaluate(target.object)
            index = self._evaluate(target.index)
            value = self._evaluate(op.right)
            container.set_index(index, value)
            return value
        raise error_invalid_assignment_target(format_ast(target), target.span)

    def _eval_prefix_op(self, op: PrefixOp) -> Object:
        operand = self._evaluate(op.operand)
        if op.operator == Operator.SUBTRACT:
            return operand.negate()
        if op.operator == Operator.NOT:
            return operand.logical_not()
        raise RuntimeError(f"Unknown prefix operator: {op.operator}")

    def _eval_postfix_op(self, op: PostfixOp) -> Object:
        """Apply ++/-- to an Integer variable or array element, storing the result."""
        target = op.operand
        if isinstance(target, Variable):
            current = self.context.get_variable(target.name)
        elif isinstance(target, IndexExpr):
            container = self._evaluate(target.object)
            index = self._evaluate(target.index)
            current = container.index(index)
        else:
            raise error_invalid_assignment_target(format_ast(target), target.span)

        if not isinstance(current, Integer):
            raise error_unsupported_operand(op.operator.value, current.kind.value)

        if op.operator == Operator.INCREMENT:
            updated = current.add(Integer(1))
        else:
            updated = current.sub(Integer(1))

        if isinstance(target, Variable):
            self.context.set_variable(target.name, updated)
        else:
            container.set_index(index, updated)
        return updated

    def _eval_call(self, call: CallExpr) -> Object:
        callee = self._evaluate(call.callee)

        if isinstance(callee, UserFunction):
            function = self.context.get_function(callee.name)
            arguments = [self._evaluate(arg) for arg in call.arguments]
            return self._call_user_function(function, arguments, call.span)

        if isinstance(callee, NativeFunction):
            arguments = [self._evaluate(arg) for arg in call.arguments]
            logger.debug("native call %s with %d argument(s)", callee.name, len(arguments))
            return callee.call(arguments)

        raise error_not_callable(callee.kind.value, call.callee.span)

    def _call_user_function(self, function: FunctionDef, arguments: List[Object],
                            span: Optional[SourceSpan] = None) -> Object:
        if len(arguments) != len(function.parameters):
            raise error_arity_mismatch(function.name, len(function.parameters), len(arguments), span)
        if self._call_depth >= self.config.max_call_depth:
            raise error_recursion_limit(self.config.max_call_depth, span)

        self._call_depth += 1
        logger.debug("enter %s (depth %d)", function.name, self._call_depth)
        try:
            with self.context.scope(f"fn {function.name}"):
                for name, value in zip(function.parameters, arguments):
                    self.context.declare_variable(name, value)
                flow = self._execute_statements(function.body.statements)
        finally:
            self._call_depth -= 1

        logger.debug("leave %s", function.name)
        if flow.kind == FlowKind.RETURN:
            return flow.value
        if flow.kind in (FlowKind.BREAK, FlowKind.CONTINUE):
            raise error_loop_control_outside_loop(flow.kind.value, function.span)
        return Null()


def run(
    source: Union[str, bytes],
    environment: Optional[Mapping[str, Any]] = None,
    config: Optional[EvaluatorConfig] = None,
    filename: Optional[str] = None,
) -> Object:
    """
    High-level API to parse and evaluate source code in one call.

        from exprlang import run

        result = run('''
            fn add(a, b) { return a + b; }
            return add($x, 2);
        ''', {"x": 40})

        assert result == Integer(42)

    Args:
        source: Program source code
        environment: Host values visible as $name (raw Python values are wrapped)
        config: Evaluator settings; defaults to EvaluatorConfig()
        filename: Optional filename for error messages

    Returns:
        The program's result value

    Raises:
        LexerError, ParserError: If the source does not parse
        EvaluationError: If evaluation fails
    """
    from ..parser import Parser

    parser = Parser(source, filename)
    program = parser.parse()
    context = Context(program, environment, config, source=parser.lexer.source)
    return Evaluator(context).eval()
