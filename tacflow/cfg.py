"""
tacflow.cfg
===========

Statement-level control flow graphs.

Each node of a :class:`CFG` is one IR statement; two synthetic ``Nop``
statements serve as the unique entry and exit.  The graph is generic
over its node type so the solver never depends on :mod:`tacflow.ir`.

Public API
----------
    EdgeKind    - classification of an edge
    CFGEdge     - a directed edge
    CFG         - the graph itself
    build_cfg   - construct a CFG from a method's :class:`~tacflow.ir.IR`
"""

from __future__ import annotations

import enum
from typing import (
    Dict,
    Generic,
    Iterator,
    List,
    Optional,
    Set,
    TypeVar,
)

from tacflow.errors import CFGError
from tacflow.ir import IR, Goto, If, Nop, Return, Stmt

N = TypeVar("N")


# ---------------------------------------------------------------------------
# Edge kinds
# ---------------------------------------------------------------------------


class EdgeKind(enum.Enum):
    """Classification of a CFG edge."""

    ENTRY = "entry"
    FALL_THROUGH = "fall-through"
    IF_TRUE = "if-true"
    IF_FALSE = "if-false"
    GOTO = "goto"
    RETURN = "return"


# ---------------------------------------------------------------------------
# CFGEdge
# ---------------------------------------------------------------------------

class CFGEdge(Generic[N]):
    """A directed edge in the CFG.

    Attributes
    ----------
    src : node
    dst : node
    kind : EdgeKind
    """

    __slots__ = ("src", "dst", "kind")

    def __init__(self, src: N, dst: N, kind: EdgeKind = EdgeKind.FALL_THROUGH) -> None:
        self.src = src
        self.dst = dst
        self.kind = kind

    def __repr__(self) -> str:
        return f"CFGEdge({self.src!s} -> {self.dst!s}, kind={self.kind.value!r})"

    def __hash__(self) -> int:
        return hash((id(self.src), id(self.dst), self.kind))

    def __eq__(self, other) -> bool:
        if isinstance(other, CFGEdge):
            return (
                self.src is other.src
                and self.dst is other.dst
                and self.kind == other.kind
            )
        return NotImplemented


# ---------------------------------------------------------------------------
# CFG
# ---------------------------------------------------------------------------

class CFG(Generic[N]):
    """Intraprocedural control flow graph for a single method.

    Attributes
    ----------
    ir : IR
        The method this CFG represents.
    entry : node
        Synthetic entry node.
    exit : node
        Synthetic exit node.
    nodes : list
        All nodes (entry first, exit last once :func:`build_cfg` is done).
    edges : list[CFGEdge]
        All edges.
    """

    def __init__(self, ir: IR, entry: N, exit: N) -> None:
        self.ir = ir
        self.entry = entry
        self.exit = exit
        self.nodes: List[N] = []
        self.edges: List[CFGEdge[N]] = []
        self._in_edges: Dict[int, List[CFGEdge[N]]] = {}
        self._out_edges: Dict[int, List[CFGEdge[N]]] = {}
        self.add_node(entry)

    # ----- graph mutation ---------------------------------------------------

    def add_node(self, node: N) -> N:
        """Register *node* in this CFG and return it."""
        if id(node) not in self._out_edges:
            self.nodes.append(node)
            self._in_edges[id(node)] = []
            self._out_edges[id(node)] = []
        return node

    def add_edge(self, src: N, dst: N, kind: EdgeKind = EdgeKind.FALL_THROUGH) -> CFGEdge[N]:
        """Create an edge, register it, and wire up predecessor/successor lists."""
        self.add_node(src)
        self.add_node(dst)
        e = CFGEdge(src, dst, kind)
        self.edges.append(e)
        self._out_edges[id(src)].append(e)
        self._in_edges[id(dst)].append(e)
        return e

    # ----- queries ----------------------------------------------------------

    def get_ir(self) -> IR:
        return self.ir

    def get_entry(self) -> N:
        return self.entry

    def get_exit(self) -> N:
        return self.exit

    def is_entry(self, node: N) -> bool:
        return node is self.entry

    def is_exit(self, node: N) -> bool:
        return node is self.exit

    def get_in_edges_of(self, node: N) -> List[CFGEdge[N]]:
        return list(self._in_edges[id(node)])

    def get_out_edges_of(self, node: N) -> List[CFGEdge[N]]:
        return list(self._out_edges[id(node)])

    def get_preds_of(self, node: N) -> List[N]:
        """Distinct predecessors of *node*, in edge-insertion order."""
        return _distinct(e.src for e in self._in_edges[id(node)])

    def get_succs_of(self, node: N) -> List[N]:
        """Distinct successors of *node*, in edge-insertion order."""
        return _distinct(e.dst for e in self._out_edges[id(node)])

    def reachable_from(self, start: N) -> Set[int]:
        """Return the ids of the nodes reachable from *start* (DFS)."""
        visited: Set[int] = set()
        worklist = [start]
        while worklist:
            n = worklist.pop()
            if id(n) in visited:
                continue
            visited.add(id(n))
            for e in self._out_edges[id(n)]:
                worklist.append(e.dst)
        return visited

    def __iter__(self) -> Iterator[N]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    # ----- serialisation helpers --------------------------------------------

    def node_label(self, node: N) -> str:
        if node is self.entry:
            return "[entry]"
        if node is self.exit:
            return "[exit]"
        index = getattr(node, "index", None)
        if index is not None and index >= 0:
            return f"{index}: {node}"
        return str(node)

    def to_dot(self, title: Optional[str] = None) -> str:
        """Return a Graphviz DOT representation of this CFG."""
        lines = ["digraph CFG {"]
        if title:
            lines.append(f'  label="{title}";')
        lines.append("  node [shape=box, fontname=monospace, fontsize=10];")
        ids = {id(n): i for i, n in enumerate(self.nodes)}
        for n in self.nodes:
            lbl = self.node_label(n).replace('"', '\\"')
            color = ""
            if n is self.entry:
                color = ', style=filled, fillcolor="#ccffcc"'
            elif n is self.exit:
                color = ', style=filled, fillcolor="#ffcccc"'
            lines.append(f'  N{ids[id(n)]} [label="{lbl}"{color}];')
        for e in self.edges:
            style = ""
            if e.kind == EdgeKind.IF_TRUE:
                style = ', color=green, fontcolor=green'
            elif e.kind == EdgeKind.IF_FALSE:
                style = ', color=red, fontcolor=red'
            elif e.kind == EdgeKind.RETURN:
                style = ', style=dotted'
            lines.append(
                f'  N{ids[id(e.src)]} -> N{ids[id(e.dst)]} '
                f'[label="{e.kind.value}"{style}];'
            )
        lines.append("}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"CFG(method={self.ir.method_name!r}, nodes={len(self.nodes)}, "
            f"edges={len(self.edges)})"
        )


def _distinct(nodes) -> List:
    seen: Set[int] = set()
    out = []
    for n in nodes:
        if id(n) not in seen:
            seen.add(id(n))
            out.append(n)
    return out


# ===========================================================================
# CFG BUILDER
# ===========================================================================

def build_cfg(ir: IR) -> CFG[Stmt]:
    """Build the statement-level CFG of *ir*.

    Edges:

    - entry → first statement (or exit, for an empty body);
    - ``If`` → label target (``IF_TRUE``) and next statement (``IF_FALSE``);
    - ``Goto`` → label target only;
    - ``Return`` → exit;
    - anything else → next statement, the last one → exit.

    Raises
    ------
    CFGError
        If an ``If`` or ``Goto`` names a label the method does not define.
    """
    stmts = ir.get_stmts()
    cfg: CFG[Stmt] = CFG(ir, Nop(), Nop())
    for stmt in stmts:
        cfg.add_node(stmt)
    cfg.add_node(cfg.exit)

    def _next(i: int) -> Stmt:
        return stmts[i + 1] if i + 1 < len(stmts) else cfg.exit

    def _target(stmt: Stmt, label: str) -> Stmt:
        target = ir.get_label(label)
        if target is None:
            raise CFGError(
                f"{ir.method_name}: statement {stmt.index} jumps to "
                f"undefined label {label!r}"
            )
        return target

    cfg.add_edge(cfg.entry, stmts[0] if stmts else cfg.exit, EdgeKind.ENTRY)
    for i, stmt in enumerate(stmts):
        if isinstance(stmt, If):
            cfg.add_edge(stmt, _target(stmt, stmt.target), EdgeKind.IF_TRUE)
            cfg.add_edge(stmt, _next(i), EdgeKind.IF_FALSE)
        elif isinstance(stmt, Goto):
            cfg.add_edge(stmt, _target(stmt, stmt.target), EdgeKind.GOTO)
        elif isinstance(stmt, Return):
            cfg.add_edge(stmt, cfg.exit, EdgeKind.RETURN)
        else:
            cfg.add_edge(stmt, _next(i), EdgeKind.FALL_THROUGH)
    return cfg
