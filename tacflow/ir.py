"""
tacflow/ir.py
═════════════

A small three-address intermediate representation.

The dataflow engine only needs a handful of things from the IR:

  - which variables a method declares, with their declared types;
  - the method's parameters (for the boundary fact);
  - for every statement, whether it defines a variable and, if so, the
    right-hand side of the definition.

Everything here is immutable except :class:`IR`, which indexes its
statements on construction.

Expression shapes
─────────────────
::

    Exp
    ├── IntLiteral             42
    ├── Var                    x
    ├── BinaryExp
    │   ├── ArithmeticExp      x + y, x - y, x * y, x / y, x % y
    │   ├── ConditionExp       x == y, x != y, x < y, …   (0 / 1)
    │   ├── ShiftExp           x << y, x >> y, x >>> y
    │   └── BitwiseExp         x | y, x & y, x ^ y
    ├── NegExp                 -x
    ├── CastExp                (T) x
    └── InvokeExp              f(a, b)

``FieldLoad`` (``o.f``) is a right-hand side that is *not* an
expression: it reads memory the IR does not model.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union


# ═══════════════════════════════════════════════════════════════════════════
#  TYPES
# ═══════════════════════════════════════════════════════════════════════════

class PrimitiveType(enum.Enum):
    BYTE = "byte"
    SHORT = "short"
    INT = "int"
    CHAR = "char"
    BOOLEAN = "boolean"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class ReferenceType:
    """Any non-primitive type, identified by name (``String``, ``int[]``, …)."""

    name: str

    def __str__(self) -> str:
        return self.name


Type = Union[PrimitiveType, ReferenceType]

_PRIMITIVES_BY_NAME: Dict[str, PrimitiveType] = {t.value: t for t in PrimitiveType}


def parse_type(name: str) -> Type:
    """Map a type name to a :data:`Type`."""
    prim = _PRIMITIVES_BY_NAME.get(name)
    if prim is not None:
        return prim
    return ReferenceType(name)


# ═══════════════════════════════════════════════════════════════════════════
#  EXPRESSIONS
# ═══════════════════════════════════════════════════════════════════════════

class Exp:
    """Marker base class for expressions."""

    __slots__ = ()


@dataclass(frozen=True, slots=True)
class IntLiteral(Exp):
    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True, slots=True)
class Var(Exp):
    """A local variable or parameter of a method.

    Two ``Var`` objects are the same variable iff they share name and
    declared type.
    """

    name: str
    type: Type

    def __str__(self) -> str:
        return self.name


class ArithmeticOp(enum.Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    REM = "%"


class ConditionOp(enum.Enum):
    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="


class ShiftOp(enum.Enum):
    SHL = "<<"
    SHR = ">>"
    USHR = ">>>"


class BitwiseOp(enum.Enum):
    OR = "|"
    AND = "&"
    XOR = "^"


BinaryOp = Union[ArithmeticOp, ConditionOp, ShiftOp, BitwiseOp]


@dataclass(frozen=True, slots=True)
class BinaryExp(Exp):
    """``operand1 <op> operand2``.  Subclasses fix the operator family."""

    op: BinaryOp
    operand1: Exp
    operand2: Exp

    def __str__(self) -> str:
        return f"{self.operand1} {self.op.value} {self.operand2}"


@dataclass(frozen=True, slots=True)
class ArithmeticExp(BinaryExp):
    op: ArithmeticOp


@dataclass(frozen=True, slots=True)
class ConditionExp(BinaryExp):
    op: ConditionOp


@dataclass(frozen=True, slots=True)
class ShiftExp(BinaryExp):
    op: ShiftOp


@dataclass(frozen=True, slots=True)
class BitwiseExp(BinaryExp):
    op: BitwiseOp


@dataclass(frozen=True, slots=True)
class NegExp(Exp):
    operand: Exp

    def __str__(self) -> str:
        return f"-{self.operand}"


@dataclass(frozen=True, slots=True)
class CastExp(Exp):
    cast_type: Type
    operand: Exp

    def __str__(self) -> str:
        return f"({self.cast_type}) {self.operand}"


@dataclass(frozen=True, slots=True)
class InvokeExp(Exp):
    method_name: str
    args: Tuple[Exp, ...] = ()

    def __str__(self) -> str:
        return f"{self.method_name}({', '.join(str(a) for a in self.args)})"


@dataclass(frozen=True, slots=True)
class FieldLoad:
    """``base.field`` – a right-hand side that is not an :class:`Exp`."""

    base: Var
    field_name: str

    def __str__(self) -> str:
        return f"{self.base}.{self.field_name}"


RValue = Union[Exp, FieldLoad]


_OP_FAMILIES: Tuple[Tuple[type, type], ...] = (
    (ArithmeticOp, ArithmeticExp),
    (ConditionOp, ConditionExp),
    (ShiftOp, ShiftExp),
    (BitwiseOp, BitwiseExp),
)


def make_binary(op: BinaryOp, operand1: Exp, operand2: Exp) -> BinaryExp:
    """Build the ``BinaryExp`` subclass matching the family of *op*."""
    for op_cls, exp_cls in _OP_FAMILIES:
        if isinstance(op, op_cls):
            return exp_cls(op, operand1, operand2)
    raise TypeError(f"not a binary operator: {op!r}")


# ═══════════════════════════════════════════════════════════════════════════
#  STATEMENTS
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(eq=False)
class Stmt:
    """Base statement.  Statements compare by identity.

    ``index`` is the position in the owning method's statement list, or
    ``-1`` for the synthetic entry/exit nodes a CFG adds.
    """

    index: int = field(default=-1, init=False)

    def get_def(self) -> Optional[Var]:
        return None

    def get_uses(self) -> List[Exp]:
        return []


@dataclass(eq=False)
class DefinitionStmt(Stmt):
    """A statement that may assign a variable."""

    def get_rvalue(self) -> Optional[RValue]:
        raise NotImplementedError


@dataclass(eq=False)
class AssignStmt(DefinitionStmt):
    """``lvalue = rvalue`` where *rvalue* is an expression."""

    lvalue: Var
    rvalue: Exp

    def get_def(self) -> Optional[Var]:
        return self.lvalue

    def get_rvalue(self) -> Optional[RValue]:
        return self.rvalue

    def get_uses(self) -> List[Exp]:
        return [self.rvalue]

    def __str__(self) -> str:
        return f"{self.lvalue} = {self.rvalue};"


@dataclass(eq=False)
class Invoke(DefinitionStmt):
    """``[result =] method(args)``."""

    result: Optional[Var]
    invoke_exp: InvokeExp

    def get_def(self) -> Optional[Var]:
        return self.result

    def get_rvalue(self) -> Optional[RValue]:
        return self.invoke_exp

    def get_uses(self) -> List[Exp]:
        return list(self.invoke_exp.args)

    def __str__(self) -> str:
        if self.result is None:
            return f"{self.invoke_exp};"
        return f"{self.result} = {self.invoke_exp};"


@dataclass(eq=False)
class LoadField(DefinitionStmt):
    """``lvalue = base.field``."""

    lvalue: Var
    field_load: FieldLoad

    def get_def(self) -> Optional[Var]:
        return self.lvalue

    def get_rvalue(self) -> Optional[RValue]:
        return self.field_load

    def get_uses(self) -> List[Exp]:
        return [self.field_load.base]

    def __str__(self) -> str:
        return f"{self.lvalue} = {self.field_load};"


@dataclass(eq=False)
class If(Stmt):
    condition: ConditionExp
    target: str

    def get_uses(self) -> List[Exp]:
        return [self.condition]

    def __str__(self) -> str:
        return f"if ({self.condition}) goto {self.target};"


@dataclass(eq=False)
class Goto(Stmt):
    target: str

    def __str__(self) -> str:
        return f"goto {self.target};"


@dataclass(eq=False)
class Label(Stmt):
    name: str

    def __str__(self) -> str:
        return f"{self.name}:"


@dataclass(eq=False)
class Return(Stmt):
    value: Optional[Exp] = None

    def get_uses(self) -> List[Exp]:
        return [] if self.value is None else [self.value]

    def __str__(self) -> str:
        if self.value is None:
            return "return;"
        return f"return {self.value};"


@dataclass(eq=False)
class Nop(Stmt):
    def __str__(self) -> str:
        return "nop;"


# ═══════════════════════════════════════════════════════════════════════════
#  METHOD IR
# ═══════════════════════════════════════════════════════════════════════════

class IR:
    """The body of one method.

    Parameters
    ----------
    method_name : str
    params : sequence of Var
        Formal parameters, in declaration order.
    variables : sequence of Var
        Locals (parameters are added automatically).
    stmts : sequence of Stmt
        Statement list; ``index`` is assigned here.
    """

    def __init__(
        self,
        method_name: str,
        params: Sequence[Var],
        variables: Sequence[Var],
        stmts: Sequence[Stmt],
    ) -> None:
        self.method_name = method_name
        self._params: List[Var] = list(params)
        self._vars: List[Var] = list(self._params)
        for v in variables:
            if v not in self._vars:
                self._vars.append(v)
        self._stmts: List[Stmt] = list(stmts)
        self._labels: Dict[str, Stmt] = {}
        for i, stmt in enumerate(self._stmts):
            stmt.index = i
            if isinstance(stmt, Label):
                self._labels[stmt.name] = stmt

    def get_params(self) -> List[Var]:
        return list(self._params)

    def get_vars(self) -> List[Var]:
        return list(self._vars)

    def get_stmts(self) -> List[Stmt]:
        return list(self._stmts)

    def get_stmt(self, index: int) -> Stmt:
        return self._stmts[index]

    def get_label(self, name: str) -> Optional[Stmt]:
        return self._labels.get(name)

    def __iter__(self) -> Iterator[Stmt]:
        return iter(self._stmts)

    def __len__(self) -> int:
        return len(self._stmts)

    def __repr__(self) -> str:
        return (
            f"IR(method={self.method_name!r}, params={len(self._params)}, "
            f"stmts={len(self._stmts)})"
        )
