"""
Runtime values for the exprlang evaluator.

Every runtime value is an ``Object``. Primitive kinds (Null, Boolean,
Integer, Float, String) are immutable, so binding one to a new name behaves
like a copy. Arrays and functions are shared by reference.

Each operation defaults to raising ``TypeMismatchError``; a kind only
overrides the operations it supports.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Sequence

from ..errors import (
    error_unsupported_operand,
    error_no_attribute,
    error_division_by_zero,
    error_integer_overflow,
    error_index_out_of_range,
    error_unconvertible_value,
)

INT_MIN = -(2 ** 63)
INT_MAX = 2 ** 63 - 1


class ValueKind(Enum):
    NULL = "Null"
    BOOLEAN = "Boolean"
    INTEGER = "Integer"
    FLOAT = "Float"
    STRING = "String"
    ARRAY = "Array"
    FUNCTION = "Function"
    NATIVE_FUNCTION = "NativeFunction"


class Comparison(Enum):
    """Three-way comparison result."""
    EQUAL = 0
    LESS = -1
    GREATER = 1


def _three_way(a, b) -> Comparison:
    if a == b:
        return Comparison.EQUAL
    if a > b:
        return Comparison.GREATER
    return Comparison.LESS


class Object:
    """Base class of all runtime values."""

    kind: ValueKind
    # Whether <, <=, >, >= are meaningful for this kind
    ordered = False

    def _unsupported(self, symbol: str, other: "Object" = None):
        if other is None:
            return error_unsupported_operand(symbol, self.kind.value)
        return error_unsupported_operand(symbol, self.kind.value, other.kind.value)

    def add(self, other: "Object") -> "Object":
        raise self._unsupported("+", other)

    def sub(self, other: "Object") -> "Object":
        raise self._unsupported("-", other)

    def mul(self, other: "Object") -> "Object":
        raise self._unsupported("*", other)

    def div(self, other: "Object") -> "Object":
        raise self._unsupported("/", other)

    def mod(self, other: "Object") -> "Object":
        raise self._unsupported("%", other)

    def compare(self, other: "Object", symbol: str = "==") -> Comparison:
        raise self._unsupported(symbol, other)

    def logic_and(self, other: "Object") -> "Object":
        raise self._unsupported("&&", other)

    def logic_or(self, other: "Object") -> "Object":
        raise self._unsupported("||", other)

    def negate(self) -> "Object":
        raise self._unsupported("-")

    def logical_not(self) -> "Object":
        raise self._unsupported("!")

    def index(self, index: "Object") -> "Object":
        raise self._unsupported("[]", index)

    def set_index(self, index: "Object", value: "Object") -> None:
        raise self._unsupported("[]=", index)

    def get_attr(self, name: str) -> "Object":
        raise error_no_attribute(self.kind.value, name)

    def inspect(self) -> str:
        """Render the value the way it would be written in source."""
        raise NotImplementedError

    def __str__(self) -> str:
        return self.inspect()


@dataclass(frozen=True)
class Null(Object):
    kind = ValueKind.NULL

    def compare(self, other: Object, symbol: str = "==") -> Comparison:
        if isinstance(other, Null):
            return Comparison.EQUAL
        return super().compare(other, symbol)

    def inspect(self) -> str:
        return "null"


@dataclass(frozen=True)
class Boolean(Object):
    value: bool
    kind = ValueKind.BOOLEAN

    def compare(self, other: Object, symbol: str = "==") -> Comparison:
        if isinstance(other, Boolean):
            return _three_way(self.value, other.value)
        return super().compare(other, symbol)

    def logic_and(self, other: Object) -> Object:
        if isinstance(other, Boolean):
            return Boolean(self.value and other.value)
        return super().logic_and(other)

    def logic_or(self, other: Object) -> Object:
        if isinstance(other, Boolean):
            return Boolean(self.value or other.value)
        return super().logic_or(other)

    def logical_not(self) -> Object:
        return Boolean(not self.value)

    def inspect(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class Integer(Object):
    """A signed 64-bit integer; results outside that range raise NumericError."""
    value: int
    kind = ValueKind.INTEGER
    ordered = True

    def __post_init__(self):
        if not INT_MIN <= self.value <= INT_MAX:
            raise error_integer_overflow(self.value)

    def add(self, other: Object) -> Object:
        if isinstance(other, Integer):
            return Integer(self.value + other.value)
        if isinstance(other, Float):
            return Float(self.value + other.value)
        return super().add(other)

    def sub(self, other: Object) -> Object:
        if isinstance(other, Integer):
            return Integer(self.value - other.value)
        if isinstance(other, Float):
            return Float(self.value - other.value)
        return super().sub(other)

    def mul(self, other: Object) -> Object:
        if isinstance(other, Integer):
            return Integer(self.value * other.value)
        if isinstance(other, Float):
            return Float(self.value * other.value)
        return super().mul(other)

    def _truncated_quotient(self, divisor: int) -> int:
        # Rounds toward zero, unlike Python's floor division
        quotient = abs(self.value) // abs(divisor)
        if (self.value < 0) != (divisor < 0):
            quotient = -quotient
        return quotient

    def div(self, other: Object) -> Object:
        if isinstance(other, Integer):
            if other.value == 0:
                raise error_division_by_zero("/")
            return Integer(self._truncated_quotient(other.value))
        if isinstance(other, Float):
            if other.value == 0.0:
                raise error_division_by_zero("/")
            return Float(self.value / other.value)
        return super().div(other)

    def mod(self, other: Object) -> Object:
        if isinstance(other, Integer):
            if other.value == 0:
                raise error_division_by_zero("%")
            # Remainder takes the sign of the dividend
            return Integer(self.value - other.value * self._truncated_quotient(other.value))
        return super().mod(other)

    def compare(self, other: Object, symbol: str = "==") -> Comparison:
        if isinstance(other, Integer):
            return _three_way(self.value, other.value)
        if isinstance(other, Float):
            return _three_way(float(self.value), other.value)
        return super().compare(other, symbol)

    def negate(self) -> Object:
        return Integer(-self.value)

    def inspect(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Float(Object):
    value: float
    kind = ValueKind.FLOAT
    ordered = True

    def _operand(self, other: Object):
        if isinstance(other, (Integer, Float)):
            return float(other.value)
        return None

    def add(self, other: Object) -> Object:
        rhs = self._operand(other)
        if rhs is None:
            return super().add(other)
        return Float(self.value + rhs)

    def sub(self, other: Object) -> Object:
        rhs = self._operand(other)
        if rhs is None:
            return super().sub(other)
        return Float(self.value - rhs)

    def mul(self, other: Object) -> Object:
        rhs = self._operand(other)
        if rhs is None:
            return super().mul(other)
        return Float(self.value * rhs)

    def div(self, other: Object) -> Object:
        rhs = self._operand(other)
        if rhs is None:
            return super().div(other)
        if rhs == 0.0:
            raise error_division_by_zero("/")
        return Float(self.value / rhs)

    def compare(self, other: Object, symbol: str = "==") -> Comparison:
        rhs = self._operand(other)
        if rhs is None:
            return super().compare(other, symbol)
        return _three_way(self.value, rhs)

    def negate(self) -> Object:
        return Float(-self.value)

    def inspect(self) -> str:
        return repr(self.value)


@dataclass(frozen=True)
class String(Object):
    value: str
    kind = ValueKind.STRING
    ordered = True

    def add(self, other: Object) -> Object:
        if isinstance(other, String):
            return String(self.value + other.value)
        return super().add(other)

    def compare(self, other: Object, symbol: str = "==") -> Comparison:
        if isinstance(other, String):
            return _three_way(self.value, other.value)
        return super().compare(other, symbol)

    def index(self, index: Object) -> Object:
        if isinstance(index, Integer):
            if not 0 <= index.value < len(self.value):
                raise error_index_out_of_range(index.value, len(self.value))
            return String(self.value[index.value])
        return super().index(index)

    def get_attr(self, name: str) -> Object:
        if name == "length":
            return Integer(len(self.value))
        return super().get_attr(name)

    def inspect(self) -> str:
        return f'"{self.value}"'


@dataclass(eq=True)
class Array(Object):
    """A mutable sequence of values, shared by reference."""
    elements: List[Object] = field(default_factory=list)
    kind = ValueKind.ARRAY

    def _check_index(self, index: Object) -> int:
        if not 0 <= index.value < len(self.elements):
            raise error_index_out_of_range(index.value, len(self.elements))
        return index.value

    def index(self, index: Object) -> Object:
        if isinstance(index, Integer):
            return self.elements[self._check_index(index)]
        return super().index(index)

    def set_index(self, index: Object, value: Object) -> None:
        if isinstance(index, Integer):
            self.elements[self._check_index(index)] = value
            return
        super().set_index(index, value)

    def get_attr(self, name: str) -> Object:
        if name == "length":
            return Integer(len(self.elements))
        return super().get_attr(name)

    def inspect(self) -> str:
        return "[" + ", ".join(e.inspect() for e in self.elements) + "]"


@dataclass(frozen=True)
class UserFunction(Object):
    """A reference to a function declared in the program, resolved by name."""
    name: str
    kind = ValueKind.FUNCTION

    def inspect(self) -> str:
        return f"<fn {self.name}>"


@dataclass(frozen=True)
class NativeFunction(Object):
    """A host-provided function called with the evaluated argument list."""
    name: str
    callback: Callable[[List[Object]], Any] = field(compare=False)
    kind = ValueKind.NATIVE_FUNCTION

    def call(self, arguments: Sequence[Object]) -> Object:
        return wrap_value(self.callback(list(arguments)))

    def inspect(self) -> str:
        return f"<native fn {self.name}>"


# Convenience conversions between Python data and runtime values

def wrap_value(data: Any) -> Object:
    """
    Convert a Python value into a runtime Object.

    Objects pass through unchanged. None, bool, int, float, str, lists and
    tuples are converted; callables become NativeFunction values.
    """
    if isinstance(data, Object):
        return data
    if data is None:
        return Null()
    if isinstance(data, bool):
        return Boolean(data)
    if isinstance(data, int):
        return Integer(data)
    if isinstance(data, float):
        return Float(data)
    if isinstance(data, str):
        return String(data)
    if isinstance(data, (list, tuple)):
        return Array([wrap_value(item) for item in data])
    if callable(data):
        return NativeFunction(getattr(data, "__name__", "native"), data)
    raise error_unconvertible_value(type(data).__name__)


def unwrap_value(value: Object) -> Any:
    """Convert a runtime Object back into plain Python data."""
    if isinstance(value, Null):
        return None
    if isinstance(value, (Boolean, Integer, Float, String)):
        return value.value
    if isinstance(value, Array):
        return [unwrap_value(item) for item in value.elements]
    if isinstance(value, NativeFunction):
        return value.callback
    return value


def compare_values(left: Object, right: Object, symbol: str) -> bool:
    """
    Apply a relational operator (==, !=, <, <=, >, >=) to two values.

    Equality is defined by each kind's ``compare``; comparing unrelated
    kinds (including null against anything but null) raises. Ordering
    operators need an ordered kind on both sides.
    """
    if symbol in ("==", "!="):
        equal = left.compare(right, symbol) == Comparison.EQUAL
        return equal if symbol == "==" else not equal

    if not (left.ordered and right.ordered):
        raise error_unsupported_operand(symbol, left.kind.value, right.kind.value)

    result = left.compare(right, symbol)
    if symbol == "<":
        return result == Comparison.LESS
    if symbol == "<=":
        return result != Comparison.GREATER
    if symbol == ">":
        return result == Comparison.GREATER
    if symbol == ">=":
        return result != Comparison.LESS
    raise ValueError(f"not a comparison operator: {symbol}")
