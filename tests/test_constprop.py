# tests/test_constprop.py
"""
Tests for constant propagation: expression evaluation, eligibility,
boundary/initial facts, meet and transfer.
"""

import pytest

from tacflow.cfg import build_cfg
from tacflow.constprop import ConstantPropagation, can_hold_int, evaluate
from tacflow.fact import CPFact
from tacflow.ir import (
    ArithmeticOp,
    AssignStmt,
    BitwiseOp,
    CastExp,
    ConditionOp,
    FieldLoad,
    IntLiteral,
    Invoke,
    InvokeExp,
    LoadField,
    NegExp,
    Nop,
    PrimitiveType,
    ShiftOp,
    make_binary,
)
from tacflow.lattice import INT_MAX, INT_MIN, NAC, UNDEF, make_constant
from tacflow.parser import parse_method
from tests.conftest import PARAM_IR, int_var, typed_var


X = int_var("x")
Y = int_var("y")
Z = int_var("z")


def lit(n):
    return IntLiteral(n)


def fold(op, a, b):
    return evaluate(make_binary(op, lit(a), lit(b)), CPFact())


class TestCanHoldInt:

    @pytest.mark.parametrize("type_name", ["byte", "short", "int", "char", "boolean"])
    def test_int_like(self, type_name):
        assert can_hold_int(typed_var("v", type_name))

    @pytest.mark.parametrize("type_name", ["long", "float", "double", "String", "int[]"])
    def test_not_int_like(self, type_name):
        assert not can_hold_int(typed_var("v", type_name))


class TestEvaluateLeaves:

    def test_literal(self):
        assert evaluate(lit(42), CPFact()) == make_constant(42)

    def test_var_reads_fact(self):
        fact = CPFact({X: make_constant(3), Y: NAC})
        assert evaluate(X, fact) == make_constant(3)
        assert evaluate(Y, fact) == NAC
        assert evaluate(Z, fact) == UNDEF

    @pytest.mark.parametrize("exp", [
        NegExp(IntLiteral(1)),
        CastExp(PrimitiveType.INT, IntLiteral(1)),
        InvokeExp("f", (IntLiteral(1),)),
    ])
    def test_unknown_shapes_are_nac(self, exp):
        assert evaluate(exp, CPFact()) == NAC


class TestArithmetic:

    def test_basic(self):
        assert fold(ArithmeticOp.ADD, 2, 3) == make_constant(5)
        assert fold(ArithmeticOp.SUB, 2, 3) == make_constant(-1)
        assert fold(ArithmeticOp.MUL, -4, 3) == make_constant(-12)

    def test_overflow_wraps(self):
        assert fold(ArithmeticOp.ADD, INT_MAX, 1) == make_constant(INT_MIN)
        assert fold(ArithmeticOp.MUL, 65536, 65536) == make_constant(0)

    def test_division_truncates_toward_zero(self):
        assert fold(ArithmeticOp.DIV, 7, 2) == make_constant(3)
        assert fold(ArithmeticOp.DIV, -7, 2) == make_constant(-3)
        assert fold(ArithmeticOp.DIV, 7, -2) == make_constant(-3)
        assert fold(ArithmeticOp.DIV, -7, -2) == make_constant(3)

    def test_int_min_div_minus_one(self):
        assert fold(ArithmeticOp.DIV, INT_MIN, -1) == make_constant(INT_MIN)
        assert fold(ArithmeticOp.REM, INT_MIN, -1) == make_constant(0)

    def test_remainder_sign_follows_dividend(self):
        assert fold(ArithmeticOp.REM, 7, 2) == make_constant(1)
        assert fold(ArithmeticOp.REM, -7, 2) == make_constant(-1)
        assert fold(ArithmeticOp.REM, 7, -2) == make_constant(1)
        assert fold(ArithmeticOp.REM, -7, -2) == make_constant(-1)

    def test_division_by_zero_is_undef(self):
        assert fold(ArithmeticOp.DIV, 5, 0) == UNDEF
        assert fold(ArithmeticOp.REM, 5, 0) == UNDEF

    def test_division_by_zero_variable(self):
        fact = CPFact({X: make_constant(5), Y: make_constant(0)})
        exp = make_binary(ArithmeticOp.DIV, X, Y)
        assert evaluate(exp, fact) == UNDEF


class TestConditions:

    @pytest.mark.parametrize("op,a,b,expected", [
        (ConditionOp.EQ, 1, 1, 1),
        (ConditionOp.EQ, 1, 2, 0),
        (ConditionOp.NE, 1, 2, 1),
        (ConditionOp.LT, -1, 0, 1),
        (ConditionOp.LE, 3, 3, 1),
        (ConditionOp.GT, 3, 1, 1),
        (ConditionOp.GE, 0, 1, 0),
    ])
    def test_relational(self, op, a, b, expected):
        assert fold(op, a, b) == make_constant(expected)


class TestShiftsAndBits:

    def test_shl(self):
        assert fold(ShiftOp.SHL, 1, 4) == make_constant(16)
        assert fold(ShiftOp.SHL, 1, 31) == make_constant(INT_MIN)

    def test_shift_distance_masked(self):
        assert fold(ShiftOp.SHL, 1, 33) == make_constant(2)
        assert fold(ShiftOp.SHR, 16, 32) == make_constant(16)

    def test_shr_is_arithmetic(self):
        assert fold(ShiftOp.SHR, -8, 1) == make_constant(-4)

    def test_ushr_is_logical(self):
        assert fold(ShiftOp.USHR, -1, 28) == make_constant(15)
        assert fold(ShiftOp.USHR, -8, 0) == make_constant(-8)
        assert fold(ShiftOp.USHR, 8, 1) == make_constant(4)

    def test_bitwise(self):
        assert fold(BitwiseOp.AND, 6, 3) == make_constant(2)
        assert fold(BitwiseOp.OR, 6, 3) == make_constant(7)
        assert fold(BitwiseOp.XOR, 6, 3) == make_constant(5)
        assert fold(BitwiseOp.AND, -1, 0xFF) == make_constant(255)


class TestOperandStates:

    def test_nac_wins(self):
        fact = CPFact({X: NAC})
        assert evaluate(make_binary(ArithmeticOp.ADD, X, Y), fact) == NAC
        assert evaluate(make_binary(ArithmeticOp.ADD, Y, X), fact) == NAC

    def test_nac_wins_over_zero_divisor(self):
        fact = CPFact({X: NAC})
        assert evaluate(make_binary(ArithmeticOp.DIV, X, lit(0)), fact) == NAC

    def test_undef_with_constant_is_undef(self):
        fact = CPFact({X: make_constant(1)})
        assert evaluate(make_binary(ArithmeticOp.ADD, X, Y), fact) == UNDEF

    def test_nested(self):
        fact = CPFact({X: make_constant(3)})
        inner = make_binary(ArithmeticOp.ADD, X, lit(1))
        assert evaluate(make_binary(ArithmeticOp.MUL, inner, lit(2)), fact) == make_constant(8)

    def test_fact_not_modified(self):
        fact = CPFact({X: make_constant(3)})
        evaluate(make_binary(ArithmeticOp.ADD, X, Y), fact)
        assert fact == CPFact({X: make_constant(3)})


class TestAnalysisContract:

    def test_identity(self, analysis):
        assert analysis.is_forward() is True
        assert analysis.get_id() == "constprop"
        assert ConstantPropagation.ID == "constprop"

    def test_boundary_fact_marks_int_params_nac(self, analysis):
        ir = parse_method(PARAM_IR)
        fact = analysis.new_boundary_fact(build_cfg(ir))
        assert fact.to_dict() == {"p": "NAC"}

    def test_initial_fact_is_fresh_and_empty(self, analysis):
        a = analysis.new_initial_fact()
        b = analysis.new_initial_fact()
        assert len(a) == 0
        assert a is not b

    def test_meet_into(self, analysis):
        target = CPFact({X: make_constant(1), Y: make_constant(2)})
        analysis.meet_into(CPFact({X: make_constant(1), Y: make_constant(3), Z: make_constant(4)}), target)
        assert target.get(X) == make_constant(1)
        assert target.get(Y) == NAC
        assert target.get(Z) == make_constant(4)

    def test_meet_into_leaves_source_alone(self, analysis):
        source = CPFact({X: NAC})
        analysis.meet_into(source, CPFact({X: make_constant(1)}))
        assert source == CPFact({X: NAC})


class TestTransfer:

    def test_assign_constant(self, analysis):
        out = CPFact()
        stmt = AssignStmt(X, lit(4))
        assert analysis.transfer_node(stmt, CPFact(), out) is True
        assert out.get(X) == make_constant(4)
        assert analysis.transfer_node(stmt, CPFact(), out) is False

    def test_kill_then_gen(self, analysis):
        out = CPFact()
        in_fact = CPFact({X: make_constant(1), Y: NAC})
        analysis.transfer_node(AssignStmt(X, make_binary(ArithmeticOp.ADD, X, lit(1))), in_fact, out)
        assert out == CPFact({X: make_constant(2), Y: NAC})
        assert in_fact.get(X) == make_constant(1)

    def test_assign_undef_removes_binding(self, analysis):
        out = CPFact()
        analysis.transfer_node(AssignStmt(X, Z), CPFact({X: make_constant(1)}), out)
        assert X not in out

    def test_invoke_result_is_nac(self, analysis):
        out = CPFact()
        analysis.transfer_node(Invoke(X, InvokeExp("f", ())), CPFact(), out)
        assert out.get(X) == NAC

    def test_invoke_without_result_copies(self, analysis):
        out = CPFact()
        in_fact = CPFact({X: make_constant(1)})
        assert analysis.transfer_node(Invoke(None, InvokeExp("f", ())), in_fact, out) is True
        assert out == in_fact

    def test_field_load_is_nac(self, analysis):
        out = CPFact()
        base = typed_var("o", "Point")
        analysis.transfer_node(LoadField(X, FieldLoad(base, "x")), CPFact(), out)
        assert out.get(X) == NAC

    def test_ineligible_lvalue_is_skipped(self, analysis):
        out = CPFact()
        lng = typed_var("l", "long")
        analysis.transfer_node(AssignStmt(lng, lit(5)), CPFact(), out)
        assert lng not in out
        assert len(out) == 0

    def test_non_definition_is_identity(self, analysis):
        out = CPFact({Y: make_constant(9)})
        in_fact = CPFact({X: NAC})
        assert analysis.transfer_node(Nop(), in_fact, out) is True
        assert out == in_fact
