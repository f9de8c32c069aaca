"""
tacflow: iterative dataflow analysis over a three-address IR
==============================================================

A generic worklist fixpoint solver, a statement-level CFG, and a
constant-propagation analysis built on the flat lattice
``UNDEF ⊑ #i ⊑ NAC``.

Quick start
-----------
::

    from tacflow import parse_method, run_analysis

    ir = parse_method('''
        (method demo
          (vars (int x) (int y) (int z))
          (body (assign x 1) (assign y 2) (assign z (+ x y))))
    ''')
    cfg, result = run_analysis(ir)
    print(result.get_out_fact(cfg.get_exit()))   # {x=#1, y=#2, z=#3}
"""

from __future__ import annotations

import logging
from typing import List

__version__ = "0.1.0"
__license__ = "MIT"

_log = logging.getLogger(__name__)
_log.addHandler(logging.NullHandler())

from tacflow.errors import (  # noqa: E402
    CFGError,
    ConfigError,
    NonConvergenceError,
    ParseError,
    SolverError,
    TacflowError,
    UnsupportedAnalysisError,
)
from tacflow.lattice import (  # noqa: E402
    NAC,
    UNDEF,
    Constant,
    NotAConstant,
    Undefined,
    Value,
    make_constant,
    meet_value,
)
from tacflow.fact import CPFact  # noqa: E402
from tacflow.cfg import CFG, CFGEdge, EdgeKind, build_cfg  # noqa: E402
from tacflow.analysis import AbstractDataflowAnalysis, DataflowAnalysis  # noqa: E402
from tacflow.config import (  # noqa: E402
    AnalysisConfig,
    available_analyses,
    get_analysis_class,
    register_analysis,
    run_analysis,
)
from tacflow.constprop import ConstantPropagation, can_hold_int, evaluate  # noqa: E402
from tacflow.solver import (  # noqa: E402
    DataflowResult,
    Solver,
    WorkListSolver,
    make_solver,
)
from tacflow.parser import parse_file, parse_method, parse_program  # noqa: E402

__all__: List[str] = [
    "AbstractDataflowAnalysis",
    "AnalysisConfig",
    "CFG",
    "CFGEdge",
    "CFGError",
    "CPFact",
    "ConfigError",
    "Constant",
    "ConstantPropagation",
    "DataflowAnalysis",
    "DataflowResult",
    "EdgeKind",
    "NAC",
    "NonConvergenceError",
    "NotAConstant",
    "ParseError",
    "Solver",
    "SolverError",
    "TacflowError",
    "UNDEF",
    "Undefined",
    "UnsupportedAnalysisError",
    "Value",
    "WorkListSolver",
    "available_analyses",
    "build_cfg",
    "can_hold_int",
    "evaluate",
    "get_analysis_class",
    "make_constant",
    "make_solver",
    "meet_value",
    "parse_file",
    "parse_method",
    "parse_program",
    "register_analysis",
    "run_analysis",
]
