"""
Abstract Syntax Tree (AST) node definitions for exprlang.

Every node is a dataclass that owns its children. Source spans are carried
for error reporting but are excluded from equality, so ``==`` compares two
trees structurally: same node class and equal children.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Union, Any
from abc import ABC
from .tokens import SourceSpan


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False, kw_only=True)

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor(ABC):
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


class Operator(Enum):
    """Binary, prefix and postfix operators, valued by their spelling."""
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    MODULO = "%"
    ASSIGN = "="
    NOT = "!"
    EQUAL = "=="
    NOT_EQUAL = "!="
    LESS = "<"
    LESS_EQUAL = "<="
    GREATER = ">"
    GREATER_EQUAL = ">="
    AND = "&&"
    OR = "||"
    INCREMENT = "++"
    DECREMENT = "--"
    ACCESS = "."

    def __str__(self) -> str:
        return self.value


class LiteralKind(Enum):
    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass
class Literal(Expression):
    """A literal value (null, boolean, integer, float, string)."""
    value: Union[None, bool, int, float, str]
    literal_type: LiteralKind


@dataclass
class Variable(Expression):
    """A reference to a variable or function name."""
    name: str


@dataclass
class EnvVariable(Expression):
    """A host-provided value, written $name (name stored without '$')."""
    name: str


@dataclass
class ArrayLiteral(Expression):
    """An array literal, e.g. [1, 2, 3]."""
    elements: List[Expression]


@dataclass
class IndexExpr(Expression):
    """Indexing, e.g. items[0]."""
    object: Expression
    index: Expression


@dataclass
class CallExpr(Expression):
    """A function call, e.g. add(1, 2)."""
    callee: Expression
    arguments: List[Expression]


@dataclass
class BinaryOp(Expression):
    """A binary operation, including assignment and attribute access."""
    operator: Operator
    left: Expression
    right: Expression


@dataclass
class PrefixOp(Expression):
    """A prefix operation (-x, !x)."""
    operator: Operator
    operand: Expression


@dataclass
class PostfixOp(Expression):
    """A postfix operation (x++, x--)."""
    operator: Operator
    operand: Expression


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass
class EmptyStatement(Statement):
    """A lone ';'."""
    pass


@dataclass
class LetStatement(Statement):
    """Variable declaration: let x = expr; (initializer optional)."""
    name: str
    initializer: Optional[Expression] = None


@dataclass
class Block(Statement):
    """A braced sequence of statements with its own scope."""
    statements: List[Statement]


@dataclass
class IfStatement(Statement):
    """
    Conditional statement.

    The else branch is either a Block or another statement (usually an
    IfStatement for else-if chains).
    """
    condition: Expression
    then_branch: Block
    else_branch: Optional[Statement] = None


@dataclass
class ForStatement(Statement):
    """C-style loop: for (init; condition; increment) body."""
    initializer: Optional[Statement]
    condition: Optional[Expression]
    increment: Optional[Expression]
    body: Statement


@dataclass
class ReturnStatement(Statement):
    value: Optional[Expression] = None


@dataclass
class BreakStatement(Statement):
    pass


@dataclass
class ContinueStatement(Statement):
    pass


@dataclass
class ExpressionStatement(Statement):
    """An expression evaluated for its side effects."""
    expression: Expression


@dataclass
class FunctionDef(Statement):
    """
    A top-level function declaration.

    Example:
        fn add(a, b) { return a + b; }
    """
    name: str
    parameters: List[str]
    body: Block


@dataclass
class Program(AstNode):
    """
    A parsed program.

    Function declarations are moved out of the statement list into the
    ``functions`` table; every other top-level statement keeps its order.
    """
    statements: List[Statement] = field(default_factory=list)
    functions: Dict[str, FunctionDef] = field(default_factory=dict)


# =============================================================================
# Visitor Helpers
# =============================================================================

class FormatVisitor(AstVisitor):
    """Renders a tree as a compact, parenthesized string for debugging."""

    def _opt(self, node: Optional[AstNode]) -> str:
        return "_" if node is None else node.accept(self)

    def visit_Literal(self, node: Literal) -> str:
        if node.literal_type == LiteralKind.NULL:
            return "null"
        if node.literal_type == LiteralKind.BOOLEAN:
            return "true" if node.value else "false"
        if node.literal_type == LiteralKind.STRING:
            return '"' + node.value.encode("unicode_escape").decode("ascii") + '"'
        return repr(node.value)

    def visit_Variable(self, node: Variable) -> str:
        return node.name

    def visit_EnvVariable(self, node: EnvVariable) -> str:
        return f"${node.name}"

    def visit_ArrayLiteral(self, node: ArrayLiteral) -> str:
        return "[" + ", ".join(e.accept(self) for e in node.elements) + "]"

    def visit_IndexExpr(self, node: IndexExpr) -> str:
        return f"{node.object.accept(self)}[{node.index.accept(self)}]"

    def visit_CallExpr(self, node: CallExpr) -> str:
        args = ", ".join(a.accept(self) for a in node.arguments)
        return f"{node.callee.accept(self)}({args})"

    def visit_BinaryOp(self, node: BinaryOp) -> str:
        return f"({node.operator} {node.left.accept(self)} {node.right.accept(self)})"

    def visit_PrefixOp(self, node: PrefixOp) -> str:
        return f"({node.operator} {node.operand.accept(self)})"

    def visit_PostfixOp(self, node: PostfixOp) -> str:
        return f"({node.operand.accept(self)} {node.operator})"

    def visit_EmptyStatement(self, node: EmptyStatement) -> str:
        return ";"

    def visit_LetStatement(self, node: LetStatement) -> str:
        if node.initializer is None:
            return f"(let {node.name})"
        return f"(let {node.name} {node.initializer.accept(self)})"

    def visit_Block(self, node: Block) -> str:
        return "{" + " ".join(s.accept(self) for s in node.statements) + "}"

    def visit_IfStatement(self, node: IfStatement) -> str:
        text = f"(if {node.condition.accept(self)} {node.then_branch.accept(self)}"
        if node.else_branch is not None:
            text += f" else {node.else_branch.accept(self)}"
        return text + ")"

    def visit_ForStatement(self, node: ForStatement) -> str:
        return (f"(for {self._opt(node.initializer)} {self._opt(node.condition)} "
                f"{self._opt(node.increment)} {node.body.accept(self)})")

    def visit_ReturnStatement(self, node: ReturnStatement) -> str:
        if node.value is None:
            return "(return)"
        return f"(return {node.value.accept(self)})"

    def visit_BreakStatement(self, node: BreakStatement) -> str:
        return "(break)"

    def visit_ContinueStatement(self, node: ContinueStatement) -> str:
        return "(continue)"

    def visit_ExpressionStatement(self, node: ExpressionStatement) -> str:
        return f"{node.expression.accept(self)};"

    def visit_FunctionDef(self, node: FunctionDef) -> str:
        return f"(fn {node.name}({', '.join(node.parameters)}) {node.body.accept(self)})"

    def visit_Program(self, node: Program) -> str:
        parts = [fn.accept(self) for fn in node.functions.values()]
        parts.extend(s.accept(self) for s in node.statements)
        return "\n".join(parts)


def format_ast(node: AstNode) -> str:
    """Render an AST node as a compact string, e.g. ``(+ 1 (* 2 3))``."""
    return node.accept(FormatVisitor())
