"""
tacflow/analysis.py
═══════════════════

The contract between a dataflow analysis and the solvers.

An analysis supplies five things:

  - ``is_forward()``                       - propagation direction
  - ``new_boundary_fact(cfg)``             - fact at entry (forward) / exit (backward)
  - ``new_initial_fact()``                 - fact at every other node before iteration
  - ``meet_into(fact, target)``            - merge *fact* into *target* in place
  - ``transfer_node(node, in, out)``       - update *out* from *in*; report change

The solvers in :mod:`tacflow.solver` only ever talk to this interface,
never to a concrete analysis.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from tacflow.cfg import CFG
    from tacflow.config import AnalysisConfig

Node = TypeVar("Node")
Fact = TypeVar("Fact")


class DataflowAnalysis(ABC, Generic[Node, Fact]):
    """Abstract dataflow analysis over ``CFG[Node]`` with facts of type ``Fact``."""

    @abstractmethod
    def is_forward(self) -> bool:
        ...

    @abstractmethod
    def new_boundary_fact(self, cfg: CFG[Node]) -> Fact:
        """Fact for the entry node (forward) or exit node (backward)."""
        ...

    @abstractmethod
    def new_initial_fact(self) -> Fact:
        """Fact for every non-boundary node before iteration starts."""
        ...

    @abstractmethod
    def meet_into(self, fact: Fact, target: Fact) -> None:
        """Meet *fact* into *target*, mutating *target*."""
        ...

    @abstractmethod
    def transfer_node(self, node: Node, in_fact: Fact, out_fact: Fact) -> bool:
        """Apply the node's transfer function.

        Forward analyses read *in_fact* and write *out_fact* (backward
        ones the reverse).  Returns ``True`` iff the written fact changed.
        """
        ...


class AbstractDataflowAnalysis(DataflowAnalysis[Node, Fact]):
    """A dataflow analysis built from an :class:`~tacflow.config.AnalysisConfig`."""

    ID: str = ""

    def __init__(self, config: AnalysisConfig) -> None:
        self.config = config

    def get_id(self) -> str:
        return self.config.get_id()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.config!r})"
