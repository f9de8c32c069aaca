#!/usr/bin/env python3
"""tacflow/main.py — CLI entry-point for tacflow.

Usage examples
--------------
    # Constant propagation over every method of an IR file
    tacflow analyze prog.tir

    # Same, as JSON, with analysis options
    tacflow analyze prog.tir --analysis "constprop:trace=true" --format json

    # Dump the control-flow graphs in Graphviz DOT syntax
    tacflow cfg prog.tir --output prog.dot

    # List registered analyses
    tacflow analyses

Exit codes
----------
    0   Success.
    1   The analysis itself failed (e.g. did not converge).
    2   Infrastructure failure (missing file, parse or config error).

The module doubles as ``python -m tacflow`` via ``tacflow/__main__.py``.
"""

from __future__ import annotations

import argparse
import io
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, TextIO

from tacflow import __version__
from tacflow.cfg import CFG, build_cfg
from tacflow.config import AnalysisConfig, DEFAULT_ANALYSIS, available_analyses, run_analysis
from tacflow.errors import CFGError, ConfigError, ParseError, SolverError
from tacflow.ir import IR
from tacflow.parser import parse_file
from tacflow.solver import DataflowResult

_log = logging.getLogger("tacflow")

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``tacflow`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("tacflow")
    root.setLevel(level)
    root.addHandler(handler)


def _resolve_path(raw: str, label: str = "file") -> Optional[Path]:
    """Resolve *raw* to an absolute ``Path``; ``None`` (logged) if missing."""
    p = Path(raw).expanduser().resolve()
    if not p.exists():
        _log.error("%s not found: %s", label, p)
        return None
    return p


def _open_output(dest: Optional[str]) -> TextIO:
    """``None`` or ``"-"`` → ``sys.stdout``; otherwise open the path for writing."""
    if dest is None or dest == "-":
        return sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return open(p, "w", encoding="utf-8")


def _emit(text: str, dest: Optional[str]) -> None:
    """Write the finished report; the destination is only opened here."""
    out = _open_output(dest)
    try:
        out.write(text)
    finally:
        if out is not sys.stdout:
            out.close()


def _load_methods(raw_path: str) -> Optional[List[IR]]:
    path = _resolve_path(raw_path, "IR file")
    if path is None:
        return None
    _log.info("Parsing IR file: %s", path)
    try:
        return parse_file(path)
    except ParseError as exc:
        _log.error("Parse error: %s", exc)
        return None


def _fact_to_json(fact: Any) -> Any:
    if fact is None:
        return None
    if hasattr(fact, "to_dict"):
        return fact.to_dict()
    return repr(fact)


# ===========================================================================
# Reporting
# ===========================================================================

def _result_rows(cfg: CFG, result: DataflowResult) -> List[Dict[str, Any]]:
    rows = []
    for node in cfg:
        rows.append({
            "index": getattr(node, "index", -1),
            "stmt": cfg.node_label(node),
            "in": result.fact_at(node, before=True),
            "out": result.fact_at(node, before=False),
        })
    return rows


def _write_text(
    stream: TextIO,
    method: IR,
    config: AnalysisConfig,
    cfg: CFG,
    result: DataflowResult,
) -> None:
    stream.write(
        f"== {method.method_name} ({config}, {result.iterations} iterations)\n"
    )
    rows = _result_rows(cfg, result)
    width = max(len(r["stmt"]) for r in rows)
    for r in rows:
        stream.write(f"  {r['stmt']:<{width}}  IN {r['in']!r}  OUT {r['out']!r}\n")
    stream.write("\n")


def _method_to_json(
    method: IR,
    config: AnalysisConfig,
    cfg: CFG,
    result: DataflowResult,
) -> Dict[str, Any]:
    return {
        "method": method.method_name,
        "analysis": config.get_id(),
        "options": config.get_options(),
        "iterations": result.iterations,
        "nodes": [
            {
                "index": r["index"],
                "stmt": r["stmt"],
                "in": _fact_to_json(r["in"]),
                "out": _fact_to_json(r["out"]),
            }
            for r in _result_rows(cfg, result)
        ],
    }


# ===========================================================================
# Sub-command implementations
# ===========================================================================

def cmd_analyze(args: argparse.Namespace) -> int:
    """Run the selected analysis on every method of an IR file."""
    try:
        config = AnalysisConfig.parse(args.analysis)
    except ConfigError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA

    methods = _load_methods(args.file)
    if methods is None:
        return EXIT_INFRA

    documents = []
    buf = io.StringIO()
    for method in methods:
        try:
            cfg, result = run_analysis(
                method, config, max_iterations=args.max_iterations
            )
        except (ConfigError, CFGError) as exc:
            _log.error("%s", exc)
            return EXIT_INFRA
        except SolverError as exc:
            _log.error("Analysis of %s failed: %s", method.method_name, exc)
            return EXIT_ERROR
        if args.format == "json":
            documents.append(_method_to_json(method, config, cfg, result))
        else:
            _write_text(buf, method, config, cfg, result)
    if args.format == "json":
        buf.write(json.dumps({"methods": documents}, indent=2) + "\n")

    _emit(buf.getvalue(), args.output)
    return EXIT_OK


def cmd_cfg(args: argparse.Namespace) -> int:
    """Write each method's CFG as a DOT digraph."""
    methods = _load_methods(args.file)
    if methods is None:
        return EXIT_INFRA

    buf = io.StringIO()
    for method in methods:
        try:
            cfg = build_cfg(method)
        except CFGError as exc:
            _log.error("%s", exc)
            return EXIT_INFRA
        buf.write(cfg.to_dot(title=method.method_name) + "\n")

    _emit(buf.getvalue(), args.output)
    return EXIT_OK


def cmd_analyses(args: argparse.Namespace) -> int:
    """List the registered analysis ids."""
    for analysis_id in available_analyses():
        print(analysis_id)
    return EXIT_OK


# ===========================================================================
# Argument parser
# ===========================================================================

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="tacflow",
        description="Iterative dataflow analysis over a three-address IR.",
    )
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ap.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="Increase log verbosity (-v INFO, -vv DEBUG).",
    )
    sub = ap.add_subparsers(dest="command", metavar="<command>")
    sub.required = True

    p_an = sub.add_parser("analyze", help="Run a dataflow analysis on an IR file.")
    p_an.add_argument("file", help="Path to an S-expression IR file.")
    p_an.add_argument(
        "--analysis", "-a", default=DEFAULT_ANALYSIS,
        help="Analysis id with optional options, e.g. 'constprop:key=value'.",
    )
    p_an.add_argument(
        "--format", "-f", choices=("text", "json"), default="text",
        help="Output format (default: text).",
    )
    p_an.add_argument("--output", "-o", default=None, help="Output path (default: stdout).")
    p_an.add_argument(
        "--max-iterations", type=int, default=None,
        help="Abort if the worklist has not emptied after N iterations.",
    )
    p_an.set_defaults(func=cmd_analyze)

    p_cfg = sub.add_parser("cfg", help="Dump control-flow graphs as DOT.")
    p_cfg.add_argument("file", help="Path to an S-expression IR file.")
    p_cfg.add_argument("--output", "-o", default=None, help="Output path (default: stdout).")
    p_cfg.set_defaults(func=cmd_cfg)

    p_list = sub.add_parser("analyses", help="List available analyses.")
    p_list.set_defaults(func=cmd_analyses)

    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
