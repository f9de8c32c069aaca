"""
tacflow/constprop.py
════════════════════

Intraprocedural constant propagation.

Direction:   FORWARD
Confluence:  MEET (flat lattice meet)
Lattice:     Var → Value   (:class:`~tacflow.fact.CPFact`)
Transfer:    kill/gen on the variable a statement defines.

Only variables that can hold an integer (``byte``, ``short``, ``int``,
``char``, ``boolean``) are tracked; all others are absent from every
fact.

Arithmetic follows Java ``int`` semantics: results wrap to 32 bits,
division truncates toward zero, the remainder takes the sign of the
dividend, and shift distances use their low five bits.  Division or
remainder by a constant zero yields ``UNDEF``.
"""

from __future__ import annotations

import operator
from typing import Callable, Dict, Optional

from tacflow.analysis import AbstractDataflowAnalysis
from tacflow.cfg import CFG
from tacflow.config import AnalysisConfig, register_analysis
from tacflow.fact import CPFact
from tacflow.ir import (
    ArithmeticExp,
    ArithmeticOp,
    BinaryExp,
    BitwiseExp,
    BitwiseOp,
    ConditionExp,
    ConditionOp,
    DefinitionStmt,
    Exp,
    IntLiteral,
    PrimitiveType,
    ShiftExp,
    ShiftOp,
    Stmt,
    Var,
)
from tacflow.lattice import (
    NAC,
    UNDEF,
    Constant,
    NotAConstant,
    Value,
    make_constant,
    meet_value,
    to_int32,
    to_uint32,
)


_INT_LIKE = frozenset({
    PrimitiveType.BYTE,
    PrimitiveType.SHORT,
    PrimitiveType.INT,
    PrimitiveType.CHAR,
    PrimitiveType.BOOLEAN,
})


def can_hold_int(var: Var) -> bool:
    """Return ``True`` if *var*'s declared type can hold an integer value."""
    return var.type in _INT_LIKE


# ═════════════════════════════════════════════════════════════════════════
#  CONCRETE OPERATORS  (both operands are known 32-bit ints)
# ═════════════════════════════════════════════════════════════════════════

def _java_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return to_int32(q if (a < 0) == (b < 0) else -q)


def _java_rem(a: int, b: int) -> int:
    r = abs(a) % abs(b)
    return r if a >= 0 else -r


_ARITHMETIC: Dict[ArithmeticOp, Callable[[int, int], int]] = {
    ArithmeticOp.ADD: operator.add,
    ArithmeticOp.SUB: operator.sub,
    ArithmeticOp.MUL: operator.mul,
    ArithmeticOp.DIV: _java_div,
    ArithmeticOp.REM: _java_rem,
}

_CONDITION: Dict[ConditionOp, Callable[[int, int], bool]] = {
    ConditionOp.EQ: operator.eq,
    ConditionOp.NE: operator.ne,
    ConditionOp.LT: operator.lt,
    ConditionOp.LE: operator.le,
    ConditionOp.GT: operator.gt,
    ConditionOp.GE: operator.ge,
}

_SHIFT: Dict[ShiftOp, Callable[[int, int], int]] = {
    ShiftOp.SHL: lambda a, n: a << n,
    ShiftOp.SHR: lambda a, n: a >> n,
    ShiftOp.USHR: lambda a, n: to_uint32(a) >> n,
}

_BITWISE: Dict[BitwiseOp, Callable[[int, int], int]] = {
    BitwiseOp.OR: operator.or_,
    BitwiseOp.AND: operator.and_,
    BitwiseOp.XOR: operator.xor,
}


def _fold(exp: BinaryExp, i1: int, i2: int) -> Optional[Value]:
    """Apply *exp*'s operator to two constants.  ``None`` for unknown operators."""
    if isinstance(exp, ArithmeticExp):
        if exp.op in (ArithmeticOp.DIV, ArithmeticOp.REM) and i2 == 0:
            return UNDEF
        return make_constant(_ARITHMETIC[exp.op](i1, i2))
    if isinstance(exp, ConditionExp):
        return make_constant(1 if _CONDITION[exp.op](i1, i2) else 0)
    if isinstance(exp, ShiftExp):
        return make_constant(_SHIFT[exp.op](i1, i2 & 0x1F))
    if isinstance(exp, BitwiseExp):
        return make_constant(_BITWISE[exp.op](i1, i2))
    return None


def evaluate(exp: Exp, in_fact: CPFact) -> Value:
    """Evaluate *exp* against *in_fact*.

    Parameters
    ----------
    exp : Exp
        The expression to evaluate.
    in_fact : CPFact
        IN fact of the statement containing *exp*.  Not modified.

    Returns
    -------
    Value
        ``#c`` when the expression is a known constant, ``NAC`` when an
        operand is NAC or the expression shape is not understood, and
        ``UNDEF`` otherwise (including division by zero).
    """
    if isinstance(exp, IntLiteral):
        return make_constant(exp.value)
    if isinstance(exp, Var):
        return in_fact.get(exp)
    if isinstance(exp, BinaryExp):
        v1 = evaluate(exp.operand1, in_fact)
        v2 = evaluate(exp.operand2, in_fact)
        if isinstance(v1, NotAConstant) or isinstance(v2, NotAConstant):
            return NAC
        if isinstance(v1, Constant) and isinstance(v2, Constant):
            folded = _fold(exp, to_int32(v1.value), to_int32(v2.value))
            if folded is not None:
                return folded
        return UNDEF
    return NAC


# ═════════════════════════════════════════════════════════════════════════
#  ANALYSIS
# ═════════════════════════════════════════════════════════════════════════

@register_analysis
class ConstantPropagation(AbstractDataflowAnalysis[Stmt, CPFact]):
    """
    Constant propagation over the flat lattice ``UNDEF ⊑ #i ⊑ NAC``.

    After solving, ``result.get_out_fact(stmt).get(var)`` is the value of
    ``var`` just after ``stmt``.
    """

    ID = "constprop"

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        super().__init__(config if config is not None else AnalysisConfig(self.ID))

    def is_forward(self) -> bool:
        return True

    def new_boundary_fact(self, cfg: CFG[Stmt]) -> CPFact:
        # Arguments are unknown on entry.
        fact = CPFact()
        for param in cfg.get_ir().get_params():
            if can_hold_int(param):
                fact.update(param, NAC)
        return fact

    def new_initial_fact(self) -> CPFact:
        return CPFact()

    def meet_into(self, fact: CPFact, target: CPFact) -> None:
        # Only variables present in ``fact`` can change ``target``.
        for var, value in list(fact.items()):
            target.update(var, self.meet_value(target.get(var), value))

    def meet_value(self, v1: Value, v2: Value) -> Value:
        return meet_value(v1, v2)

    def transfer_node(self, stmt: Stmt, in_fact: CPFact, out_fact: CPFact) -> bool:
        new_out = in_fact.copy()
        if isinstance(stmt, DefinitionStmt):
            lvalue = stmt.get_def()
            if lvalue is not None and can_hold_int(lvalue):
                rvalue = stmt.get_rvalue()
                if isinstance(rvalue, Exp):
                    new_out.update(lvalue, evaluate(rvalue, in_fact))
                else:
                    new_out.update(lvalue, NAC)
        return out_fact.copy_from(new_out)
