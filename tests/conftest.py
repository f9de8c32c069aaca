# tests/conftest.py
"""
Shared fixtures and IR sources for the tacflow test-suite.
"""

import logging

import pytest

from tacflow.cfg import build_cfg
from tacflow.constprop import ConstantPropagation
from tacflow.ir import PrimitiveType, ReferenceType, Var
from tacflow.parser import parse_method
from tacflow.solver import WorkListSolver


# ═══════════════════════════════════════════════════════════════════════
#  IR SOURCES
# ═══════════════════════════════════════════════════════════════════════

STRAIGHT_LINE_IR = """
(method straight
  (vars (int x) (int y) (int z))
  (body
    (assign x 1)
    (assign y 2)
    (assign z (+ x y))))
"""

BRANCH_JOIN_IR = """
(method branch
  (params (boolean c))
  (vars (int x))
  (body
    (assign x 1)
    (if (ne c 0) then)
    (goto join)
    (label then)
    (assign x 2)
    (label join)
    (return x)))
"""

BRANCH_SAME_CONSTANT_IR = """
(method same
  (params (int p))
  (vars (int x))
  (body
    (if (gt p 0) pos)
    (assign x 7)
    (goto join)
    (label pos)
    (assign x 7)
    (label join)
    (return x)))
"""

DIV_BY_ZERO_IR = """
(method divzero
  (vars (int x) (int y) (int r))
  (body
    (assign x 5)
    (assign y (/ x 0))
    (assign r (rem x 0))))
"""

PARAM_IR = """
(method param
  (params (int p) (long q) (Object o))
  (vars (int x))
  (body
    (nop)
    (assign x 1)
    (return p)))
"""

CONDITION_IR = """
(method cond
  (vars (int x) (int y) (int z))
  (body
    (assign x 3)
    (assign y (> x 1))
    (assign z (le x 1))))
"""

LOOP_IR = """
(method loop
  (vars (int i) (int k))
  (body
    (assign i 0)
    (assign k 4)
    (label head)
    (if (ge i 10) done)
    (assign i (+ i 1))
    (goto head)
    (label done)
    (return i)))
"""

MIXED_TYPES_IR = """
(method mixed
  (params (Point pt))
  (vars (int x) (long l) (double d) (String s) (char ch) (int f) (int r))
  (body
    (assign l 5)
    (assign d 2)
    (assign ch 65)
    (assign x (+ ch 1))
    (load f pt x)
    (assign r (invoke next x))
    (invoke log s)))
"""

TWO_METHODS_IR = """
(program
  (method first
    (vars (int a))
    (body (assign a 40)))
  (method second
    (params (int p))
    (vars (int b))
    (body (assign b (mul p 2)) (return b))))
"""


# ═══════════════════════════════════════════════════════════════════════
#  HELPERS
# ═══════════════════════════════════════════════════════════════════════

def int_var(name):
    return Var(name, PrimitiveType.INT)


def typed_var(name, type_name):
    prim = {t.value: t for t in PrimitiveType}.get(type_name)
    return Var(name, prim if prim is not None else ReferenceType(type_name))


def solve(source, **kwargs):
    """Parse *source*, build its CFG and run constant propagation."""
    ir = parse_method(source)
    cfg = build_cfg(ir)
    result = WorkListSolver(ConstantPropagation(), **kwargs).solve(cfg)
    return ir, cfg, result


def var_named(ir, name):
    for v in ir.get_vars():
        if v.name == name:
            return v
    raise KeyError(name)


# ═══════════════════════════════════════════════════════════════════════
#  FIXTURES
# ═══════════════════════════════════════════════════════════════════════

@pytest.fixture
def straight_line():
    return solve(STRAIGHT_LINE_IR)


@pytest.fixture
def analysis():
    return ConstantPropagation()


@pytest.fixture(autouse=True)
def _reset_tacflow_logger():
    """Drop handlers the CLI installs so captured streams are not reused."""
    yield
    log = logging.getLogger("tacflow")
    for h in list(log.handlers):
        if not isinstance(h, logging.NullHandler):
            log.removeHandler(h)
    log.setLevel(logging.NOTSET)
