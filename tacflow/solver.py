"""
tacflow.solver
==============

Fixpoint engines for :class:`~tacflow.analysis.DataflowAnalysis`.

The engine is generic: it only knows the five-method analysis contract
and the CFG's ``is_entry`` / ``get_preds_of`` / ``get_succs_of``
queries.  Any analysis plugs in unchanged.

Algorithm (forward)
-------------------
1.  OUT[entry] ← boundary fact; IN[n], OUT[n] ← initial fact for every
    other node (a fresh object per slot, never shared).
2.  Seed a FIFO worklist with every non-entry node.
3.  Pop ``n``; meet OUT[p] into IN[n] for every predecessor ``p``
    (cumulatively, on top of the current IN[n]); run the transfer
    function; if OUT[n] changed, enqueue every successor of ``n``.
4.  Stop when the worklist is empty.

Termination follows from the finite height of the lattice and the
monotonicity of meet and transfer.  The iteration order only affects
how many steps are taken, never the fixpoint itself.

Backward solving is declared but not implemented; asking for it raises
:class:`~tacflow.errors.UnsupportedAnalysisError`.

Public API
----------
    DataflowResult  - per-node IN/OUT fact table
    Solver          - abstract base (initialisation + direction dispatch)
    WorkListSolver  - FIFO worklist implementation
    make_solver     - default solver for an analysis
"""

from __future__ import annotations

import abc
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Generic, Iterable, List, Optional, Tuple, TypeVar

from tacflow.analysis import DataflowAnalysis
from tacflow.cfg import CFG
from tacflow.errors import NonConvergenceError, UnsupportedAnalysisError

logger = logging.getLogger(__name__)

Node = TypeVar("Node")
Fact = TypeVar("Fact")


# ===========================================================================
# DATAFLOW RESULT
# ===========================================================================

@dataclass
class DataflowResult(Generic[Node, Fact]):
    """Container for dataflow analysis results.

    Attributes
    ----------
    facts_in : dict
        Map from CFG node → incoming dataflow fact.
    facts_out : dict
        Map from CFG node → outgoing dataflow fact.
    iterations : int
        Number of worklist iterations performed.
    converged : bool
        Whether the analysis reached a fixpoint.
    elapsed_seconds : float
        Wall-clock time.
    """
    facts_in: Dict[Node, Fact] = field(default_factory=dict)
    facts_out: Dict[Node, Fact] = field(default_factory=dict)
    iterations: int = 0
    converged: bool = False
    elapsed_seconds: float = 0.0

    def get_in_fact(self, node: Node) -> Fact:
        return self.facts_in[node]

    def get_out_fact(self, node: Node) -> Fact:
        return self.facts_out[node]

    def set_in_fact(self, node: Node, fact: Fact) -> None:
        self.facts_in[node] = fact

    def set_out_fact(self, node: Node, fact: Fact) -> None:
        self.facts_out[node] = fact

    def get_result(self, node: Node) -> Fact:
        """The analysis result at *node*, i.e. its OUT fact."""
        return self.facts_out[node]

    def fact_at(self, node: Node, *, before: bool = True) -> Optional[Fact]:
        """Return the IN fact (``before=True``) or OUT fact of *node*, if any."""
        if before:
            return self.facts_in.get(node)
        return self.facts_out.get(node)

    def nodes(self) -> List[Node]:
        return list(self.facts_out)

    def items(self) -> Iterable[Tuple[Node, Fact, Fact]]:
        """Iterate over ``(node, fact_in, fact_out)`` triples."""
        for node, out_fact in self.facts_out.items():
            yield node, self.facts_in.get(node), out_fact


# ===========================================================================
# SOLVERS
# ===========================================================================

class Solver(abc.ABC, Generic[Node, Fact]):
    """Base class for dataflow solvers.

    Parameters
    ----------
    analysis : DataflowAnalysis
        The analysis to solve.
    max_iterations : int, optional
        Safety bound on worklist iterations; ``None`` means unbounded.
    """

    def __init__(
        self,
        analysis: DataflowAnalysis[Node, Fact],
        max_iterations: Optional[int] = None,
    ) -> None:
        self.analysis = analysis
        self.max_iterations = max_iterations

    def solve(self, cfg: CFG[Node]) -> DataflowResult[Node, Fact]:
        """Run the analysis on *cfg* to a fixpoint.

        Raises
        ------
        UnsupportedAnalysisError
            For backward analyses.
        NonConvergenceError
            If ``max_iterations`` is exceeded.
        """
        t0 = time.monotonic()
        result = self.initialize(cfg)
        self.do_solve(cfg, result)
        result.converged = True
        result.elapsed_seconds = time.monotonic() - t0
        logger.info(
            "%s reached a fixpoint on %r after %d iterations (%.3fs)",
            type(self.analysis).__name__, cfg, result.iterations,
            result.elapsed_seconds,
        )
        return result

    def initialize(self, cfg: CFG[Node]) -> DataflowResult[Node, Fact]:
        result: DataflowResult[Node, Fact] = DataflowResult()
        if self.analysis.is_forward():
            self.initialize_forward(cfg, result)
        else:
            self.initialize_backward(cfg, result)
        return result

    def initialize_forward(self, cfg: CFG[Node], result: DataflowResult[Node, Fact]) -> None:
        for node in cfg:
            result.set_in_fact(node, self.analysis.new_initial_fact())
            if cfg.is_entry(node):
                result.set_out_fact(node, self.analysis.new_boundary_fact(cfg))
            else:
                result.set_out_fact(node, self.analysis.new_initial_fact())

    def initialize_backward(self, cfg: CFG[Node], result: DataflowResult[Node, Fact]) -> None:
        raise UnsupportedAnalysisError(
            f"{type(self).__name__} does not support backward analyses "
            f"({type(self.analysis).__name__})"
        )

    def do_solve(self, cfg: CFG[Node], result: DataflowResult[Node, Fact]) -> None:
        if self.analysis.is_forward():
            self.do_solve_forward(cfg, result)
        else:
            self.do_solve_backward(cfg, result)

    @abc.abstractmethod
    def do_solve_forward(self, cfg: CFG[Node], result: DataflowResult[Node, Fact]) -> None:
        ...

    @abc.abstractmethod
    def do_solve_backward(self, cfg: CFG[Node], result: DataflowResult[Node, Fact]) -> None:
        ...


class WorkListSolver(Solver[Node, Fact]):
    """FIFO worklist solver."""

    def do_solve_forward(self, cfg: CFG[Node], result: DataflowResult[Node, Fact]) -> None:
        analysis = self.analysis
        worklist: Deque[Node] = deque(n for n in cfg if not cfg.is_entry(n))
        iterations = 0

        while worklist:
            if self.max_iterations is not None and iterations >= self.max_iterations:
                result.iterations = iterations
                raise NonConvergenceError(self.max_iterations)
            node = worklist.popleft()
            iterations += 1

            in_fact = result.get_in_fact(node)
            for pred in cfg.get_preds_of(node):
                analysis.meet_into(result.get_out_fact(pred), in_fact)

            changed = analysis.transfer_node(node, in_fact, result.get_out_fact(node))
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    "iteration %d: %s -> %r%s",
                    iterations, cfg.node_label(node), result.get_out_fact(node),
                    " (changed)" if changed else "",
                )
            if changed:
                worklist.extend(cfg.get_succs_of(node))

        result.iterations = iterations

    def do_solve_backward(self, cfg: CFG[Node], result: DataflowResult[Node, Fact]) -> None:
        raise UnsupportedAnalysisError(
            "Backward worklist solving is not implemented"
        )


def make_solver(
    analysis: DataflowAnalysis[Node, Fact],
    max_iterations: Optional[int] = None,
) -> Solver[Node, Fact]:
    """Return the default solver for *analysis*."""
    return WorkListSolver(analysis, max_iterations=max_iterations)
