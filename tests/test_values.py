"""
Tests for exprlang runtime values.
"""

import pytest

from exprlang import (
    Null, Boolean, Integer, Float, String, Array, UserFunction, NativeFunction,
    Comparison, ValueKind, wrap_value, unwrap_value,
    TypeMismatchError, NumericError, IndexRangeError,
)
from exprlang.runtime import compare_values


class TestArithmetic:
    """Test arithmetic rules and type promotion."""

    def test_integer_stays_integer(self):
        assert Integer(2).add(Integer(3)) == Integer(5)
        assert Integer(2).sub(Integer(3)) == Integer(-1)
        assert Integer(2).mul(Integer(3)) == Integer(6)

    def test_mixed_promotes_to_float(self):
        assert Integer(1).add(Float(2.5)) == Float(3.5)
        assert Float(2.5).add(Integer(1)) == Float(3.5)
        assert Float(5.0).div(Integer(2)) == Float(2.5)
        assert Integer(5).div(Float(2.0)) == Float(2.5)

    def test_integer_division_truncates_toward_zero(self):
        assert Integer(7).div(Integer(2)) == Integer(3)
        assert Integer(-7).div(Integer(2)) == Integer(-3)
        assert Integer(7).div(Integer(-2)) == Integer(-3)

    def test_modulo_sign_follows_dividend(self):
        assert Integer(7).mod(Integer(3)) == Integer(1)
        assert Integer(-7).mod(Integer(2)) == Integer(-1)
        assert Integer(7).mod(Integer(-2)) == Integer(1)

    def test_division_by_zero(self):
        for lhs, rhs in [
            (Integer(1), Integer(0)),
            (Integer(1), Float(0.0)),
            (Float(1.0), Integer(0)),
            (Float(1.0), Float(0.0)),
        ]:
            with pytest.raises(NumericError):
                lhs.div(rhs)

    def test_modulo_by_zero(self):
        with pytest.raises(NumericError) as exc_info:
            Integer(5).mod(Integer(0))
        assert exc_info.value.code == "E402"

    def test_float_has_no_modulo(self):
        with pytest.raises(TypeMismatchError):
            Float(5.5).mod(Integer(2))
        with pytest.raises(TypeMismatchError):
            Integer(5).mod(Float(2.0))

    def test_overflow(self):
        with pytest.raises(NumericError):
            Integer(2 ** 63 - 1).add(Integer(1))
        with pytest.raises(NumericError):
            Integer(-(2 ** 63)).negate()
        with pytest.raises(NumericError):
            Integer(2 ** 63)

    def test_string_concatenation(self):
        assert String("a").add(String("b")) == String("ab")

    def test_unsupported_names_operator_and_kinds(self):
        with pytest.raises(TypeMismatchError) as exc_info:
            String("a").add(Integer(1))
        message = str(exc_info.value)
        assert "'+'" in message
        assert "String" in message
        assert "Integer" in message

    def test_null_and_boolean_have_no_arithmetic(self):
        with pytest.raises(TypeMismatchError):
            Null().add(Null())
        with pytest.raises(TypeMismatchError):
            Boolean(True).add(Boolean(False))

    def test_negate(self):
        assert Integer(3).negate() == Integer(-3)
        assert Float(1.5).negate() == Float(-1.5)
        with pytest.raises(TypeMismatchError):
            String("x").negate()

    def test_logic(self):
        assert Boolean(True).logic_and(Boolean(False)) == Boolean(False)
        assert Boolean(False).logic_or(Boolean(True)) == Boolean(True)
        assert Boolean(True).logical_not() == Boolean(False)
        with pytest.raises(TypeMismatchError):
            Boolean(True).logic_and(Integer(1))
        with pytest.raises(TypeMismatchError):
            Integer(1).logical_not()


class TestComparison:
    """Test three-way comparison and relational operators."""

    def test_numeric(self):
        assert Integer(1).compare(Integer(2)) == Comparison.LESS
        assert Integer(2).compare(Float(2.0)) == Comparison.EQUAL
        assert Float(3.5).compare(Integer(3)) == Comparison.GREATER

    def test_integer_promoted_before_float_comparison(self):
        """Integer vs Float compares as Float, whichever side the Integer is on."""
        big = Integer(9007199254740993)
        near = Float(9007199254740992.0)
        assert big.compare(near) == Comparison.EQUAL
        assert near.compare(big) == Comparison.EQUAL
        assert compare_values(big, near, "==") is True
        assert compare_values(near, big, "==") is True

    def test_strings_are_lexicographic(self):
        assert String("abc").compare(String("abd")) == Comparison.LESS
        assert String("b").compare(String("abc")) == Comparison.GREATER

    def test_boolean_only_with_boolean(self):
        assert Boolean(True).compare(Boolean(True)) == Comparison.EQUAL
        with pytest.raises(TypeMismatchError):
            Boolean(True).compare(Integer(1))

    def test_mismatched_kinds(self):
        with pytest.raises(TypeMismatchError):
            Integer(1).compare(String("1"))

    def test_relational_operators(self):
        assert compare_values(Integer(1), Integer(2), "<") is True
        assert compare_values(Integer(2), Integer(2), "<=") is True
        assert compare_values(Integer(2), Integer(2), ">") is False
        assert compare_values(Integer(3), Integer(2), ">=") is True
        assert compare_values(Integer(2), Float(2.0), "==") is True
        assert compare_values(String("a"), String("b"), "!=") is True

    def test_booleans_are_not_ordered(self):
        with pytest.raises(TypeMismatchError):
            compare_values(Boolean(True), Boolean(False), "<")

    def test_null_equality(self):
        """Null equals only null; comparing it with another kind raises."""
        assert compare_values(Null(), Null(), "==") is True
        assert compare_values(Null(), Null(), "!=") is False
        with pytest.raises(TypeMismatchError):
            compare_values(Integer(1), Null(), "==")
        with pytest.raises(TypeMismatchError):
            compare_values(Null(), String("x"), "!=")
        with pytest.raises(TypeMismatchError):
            compare_values(Null(), Integer(1), "<")


class TestContainers:
    """Test arrays, string indexing and attributes."""

    def test_array_index(self):
        array = Array([Integer(1), Integer(2)])
        assert array.index(Integer(1)) == Integer(2)

    def test_array_index_out_of_range(self):
        array = Array([Integer(1)])
        with pytest.raises(IndexRangeError):
            array.index(Integer(1))
        with pytest.raises(IndexRangeError):
            array.index(Integer(-1))

    def test_array_index_requires_integer(self):
        with pytest.raises(TypeMismatchError):
            Array([]).index(String("0"))

    def test_array_set_index(self):
        array = Array([Integer(1)])
        array.set_index(Integer(0), String("x"))
        assert array.elements == [String("x")]

    def test_string_index(self):
        assert String("abc").index(Integer(2)) == String("c")
        with pytest.raises(TypeMismatchError):
            String("abc").set_index(Integer(0), String("z"))

    def test_length_attribute(self):
        assert Array([Null(), Null()]).get_attr("length") == Integer(2)
        assert String("héllo").get_attr("length") == Integer(5)

    def test_unknown_attribute(self):
        with pytest.raises(TypeMismatchError) as exc_info:
            Integer(1).get_attr("length")
        assert exc_info.value.code == "E205"


class TestInspect:
    """Test value rendering."""

    def test_primitives(self):
        assert Null().inspect() == "null"
        assert Boolean(True).inspect() == "true"
        assert Integer(-4).inspect() == "-4"
        assert Float(2.5).inspect() == "2.5"
        assert String("hi").inspect() == '"hi"'

    def test_array(self):
        assert Array([Integer(1), String("a"), Null()]).inspect() == '[1, "a", null]'

    def test_functions(self):
        assert UserFunction("add").inspect() == "<fn add>"
        assert NativeFunction("print", print).inspect() == "<native fn print>"

    def test_str_uses_inspect(self):
        assert str(Array([])) == "[]"

    def test_kinds(self):
        assert Integer(1).kind == ValueKind.INTEGER
        assert Float(1.0).kind == ValueKind.FLOAT


class TestConversions:
    """Test wrap_value / unwrap_value."""

    def test_wrap(self):
        assert wrap_value(None) == Null()
        assert wrap_value(True) == Boolean(True)
        assert wrap_value(3) == Integer(3)
        assert wrap_value(1.5) == Float(1.5)
        assert wrap_value("s") == String("s")
        assert wrap_value([1, "a"]) == Array([Integer(1), String("a")])

    def test_wrap_passes_objects_through(self):
        value = Integer(1)
        assert wrap_value(value) is value

    def test_wrap_callable(self):
        def double(args):
            return args[0].value * 2

        native = wrap_value(double)
        assert isinstance(native, NativeFunction)
        assert native.name == "double"
        assert native.call([Integer(4)]) == Integer(8)

    def test_wrap_unsupported(self):
        with pytest.raises(TypeMismatchError) as exc_info:
            wrap_value({"a": 1})
        assert exc_info.value.code == "E206"

    def test_unwrap(self):
        assert unwrap_value(Null()) is None
        assert unwrap_value(Integer(3)) == 3
        assert unwrap_value(Array([Boolean(False), Float(0.5)])) == [False, 0.5]
