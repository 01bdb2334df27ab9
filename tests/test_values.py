"""Tests for the abstract value lattice and the operator typing rules."""

import math

import pytest
from hypothesis import given, settings

from pyunbox.core.typing_rules import binary_result, compare_result, subscript_result, unary_result
from pyunbox.core.values import (
    INT64_MAX,
    AbstractValueKind,
    Any,
    ConstantValue,
    SizedValue,
    Undefined,
    common_kind,
    parent_kind,
    to_abstract,
    value_of_kind,
)
from pyunbox.testing.strategies import abstract_values

K = AbstractValueKind


def const(value):
    return to_abstract(value)


class TestLatticeShape:
    def test_numbers_share_a_parent(self):
        for kind in (K.BOOL, K.INTEGER, K.BIG_INTEGER, K.FLOAT, K.COMPLEX):
            assert parent_kind(kind) is K.NUMBER

    def test_objects_share_a_parent(self):
        for kind in (K.NONE, K.STRING, K.LIST, K.TUPLE, K.DICT, K.ITERATOR, K.CODE):
            assert parent_kind(kind) is K.OBJECT

    def test_top_and_bottom(self):
        assert Any.is_top() and not Any.is_bottom()
        assert Undefined.is_bottom() and not Undefined.is_top()
        assert not const(1).is_top()

    def test_any_is_the_root(self):
        assert parent_kind(K.NUMBER) is K.ANY
        assert parent_kind(K.OBJECT) is K.ANY
        assert parent_kind(K.ANY) is None

    def test_common_kind(self):
        assert common_kind(K.INTEGER, K.FLOAT) is K.NUMBER
        assert common_kind(K.STRING, K.LIST) is K.OBJECT
        assert common_kind(K.INTEGER, K.STRING) is K.ANY
        assert common_kind(K.UNDEFINED, K.FLOAT) is K.FLOAT


class TestMerge:
    def test_same_constant_is_kept(self):
        assert const(3).merge(const(3)) == ConstantValue(K.INTEGER, 3)

    def test_different_constants_widen_to_kind(self):
        assert const(1).merge(const(2)) == value_of_kind(K.INTEGER)

    def test_distinct_numbers_widen_to_number(self):
        assert const(1).merge(const(1.5)) == value_of_kind(K.NUMBER)

    def test_number_and_object_widen_to_any(self):
        assert const(1).merge(const("x")) is Any

    def test_sized_tuples(self):
        assert SizedValue(K.TUPLE, 2).merge(SizedValue(K.TUPLE, 2)) == SizedValue(K.TUPLE, 2)
        assert SizedValue(K.TUPLE, 2).merge(SizedValue(K.TUPLE, 3)) == value_of_kind(K.TUPLE)

    def test_float_constants_compare_by_repr(self):
        assert const(0.0) != const(-0.0)
        assert ConstantValue(K.FLOAT, math.nan) == ConstantValue(K.FLOAT, math.nan)

    def test_bool_and_int_constants_differ(self):
        assert const(True) != const(1)
        assert const(True).merge(const(1)) == value_of_kind(K.NUMBER)

    @given(abstract_values())
    def test_undefined_is_identity(self, value):
        assert Undefined.merge(value) == value
        assert value.merge(Undefined) == value

    @given(abstract_values())
    def test_any_is_absorbing(self, value):
        assert Any.merge(value) is Any
        assert value.merge(Any) is Any

    @given(abstract_values())
    def test_idempotent(self, value):
        assert value.merge(value) == value

    @given(abstract_values(), abstract_values())
    def test_commutative(self, a, b):
        assert a.merge(b) == b.merge(a)

    @settings(max_examples=200)
    @given(abstract_values(), abstract_values(), abstract_values())
    def test_associative(self, a, b, c):
        assert a.merge(b.merge(c)) == a.merge(b).merge(c)

    @given(abstract_values(), abstract_values())
    def test_merge_is_an_upper_bound(self, a, b):
        joined = a.merge(b)
        assert a.leq(joined)
        assert b.leq(joined)


class TestToAbstract:
    @pytest.mark.parametrize(
        "constant, expected",
        [
            (None, value_of_kind(K.NONE)),
            (True, ConstantValue(K.BOOL, True)),
            (7, ConstantValue(K.INTEGER, 7)),
            (INT64_MAX + 1, value_of_kind(K.BIG_INTEGER)),
            (2.5, ConstantValue(K.FLOAT, 2.5)),
            ("s", ConstantValue(K.STRING, "s")),
            (b"b", ConstantValue(K.BYTES, b"b")),
            ((1, 2, 3), SizedValue(K.TUPLE, 3)),
            (frozenset({1}), value_of_kind(K.FROZENSET)),
            (object(), Any),
        ],
    )
    def test_constants(self, constant, expected):
        assert to_abstract(constant) == expected

    def test_code_objects(self):
        assert to_abstract(compile("1", "<t>", "eval")) == value_of_kind(K.CODE)

    def test_truthiness(self):
        assert const(0).truthiness() is False
        assert const("x").truthiness() is True
        assert value_of_kind(K.NONE).truthiness() is False
        assert SizedValue(K.TUPLE, 0).truthiness() is False
        assert value_of_kind(K.INTEGER).truthiness() is None

    def test_unboxable_kinds(self):
        assert const(1).supports_unboxing
        assert const(1.0).supports_unboxing
        assert const(True).supports_unboxing
        assert not value_of_kind(K.BIG_INTEGER).supports_unboxing
        assert not Any.supports_unboxing


class TestTypingRules:
    def test_folds_integer_addition(self):
        assert binary_result("+", const(1), const(2)) == ConstantValue(K.INTEGER, 3)

    def test_overflow_folds_to_big_integer(self):
        assert binary_result("*", const(INT64_MAX), const(2)) == value_of_kind(K.BIG_INTEGER)

    def test_division_by_zero_is_not_folded(self):
        assert binary_result("/", const(1), const(0)) == value_of_kind(K.FLOAT)
        assert binary_result("//", const(1), const(0)) == value_of_kind(K.INTEGER)

    def test_mixed_numbers(self):
        assert binary_result("+", value_of_kind(K.INTEGER), value_of_kind(K.FLOAT)) == value_of_kind(K.FLOAT)
        assert binary_result("/", value_of_kind(K.INTEGER), value_of_kind(K.INTEGER)) == value_of_kind(K.FLOAT)

    def test_unknown_operands_give_any(self):
        assert binary_result("+", Any, const(1)) is Any
        assert binary_result("+", const("a"), const(1)) is Any

    def test_sequences(self):
        assert binary_result("+", SizedValue(K.TUPLE, 1), SizedValue(K.TUPLE, 2)) == SizedValue(K.TUPLE, 3)
        assert binary_result("*", value_of_kind(K.LIST), const(3)) == value_of_kind(K.LIST)

    def test_unary(self):
        assert unary_result("-", const(4)) == ConstantValue(K.INTEGER, -4)
        assert unary_result("not", const(0)) == ConstantValue(K.BOOL, True)
        assert unary_result("not", Any) == value_of_kind(K.BOOL)
        assert unary_result("~", value_of_kind(K.FLOAT)) is Any

    def test_compare(self):
        assert compare_result("<", const(1), const(2)) == ConstantValue(K.BOOL, True)
        assert compare_result("==", value_of_kind(K.INTEGER), const(2)) == value_of_kind(K.BOOL)
        assert compare_result("<", Any, const(2)) is Any

    def test_subscript(self):
        assert subscript_result(value_of_kind(K.STRING), const(0)) == value_of_kind(K.STRING)
        assert subscript_result(value_of_kind(K.BYTES), const(0)) == value_of_kind(K.INTEGER)
        assert subscript_result(value_of_kind(K.LIST), const(0)) is Any
