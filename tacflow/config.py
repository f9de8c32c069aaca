"""
tacflow/config.py
═════════════════

Analysis configuration and the registry of available analyses.

An analysis is selected by its id string plus free-form options::

    AnalysisConfig.parse("constprop")
    AnalysisConfig.parse("constprop:dump=true;limit=3")

The core analyses read none of the options; they are carried so that
callers (and future analyses) can thread settings through.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Type

from tacflow.errors import ConfigError

if TYPE_CHECKING:
    from tacflow.analysis import AbstractDataflowAnalysis
    from tacflow.cfg import CFG
    from tacflow.ir import IR
    from tacflow.solver import DataflowResult

logger = logging.getLogger(__name__)

DEFAULT_ANALYSIS = "constprop"

_ID_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")


def _coerce(raw: str) -> Any:
    low = raw.lower()
    if low == "true":
        return True
    if low == "false":
        return False
    try:
        return int(raw, 0)
    except ValueError:
        return raw


@dataclass(frozen=True)
class AnalysisConfig:
    """Identifier and options of one analysis run.

    Attributes
    ----------
    id : str
        Analysis id, e.g. ``"constprop"``.
    options : dict
        Arbitrary key/value options.
    """

    id: str
    options: Dict[str, Any] = field(default_factory=dict)

    def get_id(self) -> str:
        return self.id

    def get_options(self) -> Dict[str, Any]:
        return dict(self.options)

    def get_option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)

    @classmethod
    def parse(cls, text: str) -> AnalysisConfig:
        """Parse ``"<id>[:key=value[;key=value...]]"``.

        Values ``true``/``false`` become booleans and integer literals
        become ints; anything else stays a string.

        Raises
        ------
        ConfigError
            On an empty/invalid id or an option without ``=``.
        """
        head, _, rest = text.strip().partition(":")
        head = head.strip()
        if not _ID_RE.match(head):
            raise ConfigError(f"Invalid analysis id: {head!r}")
        options: Dict[str, Any] = {}
        for item in rest.split(";"):
            item = item.strip()
            if not item:
                continue
            key, sep, value = item.partition("=")
            if not sep or not key.strip():
                raise ConfigError(
                    f"Malformed option {item!r} for analysis {head!r} "
                    f"(expected key=value)"
                )
            options[key.strip()] = _coerce(value.strip())
        return cls(head, options)

    def __str__(self) -> str:
        if not self.options:
            return self.id
        opts = ";".join(f"{k}={v}" for k, v in self.options.items())
        return f"{self.id}:{opts}"


# ═══════════════════════════════════════════════════════════════════════════
#  REGISTRY
# ═══════════════════════════════════════════════════════════════════════════

_REGISTRY: Dict[str, Type[AbstractDataflowAnalysis]] = {}


def register_analysis(cls: Type[AbstractDataflowAnalysis]) -> Type[AbstractDataflowAnalysis]:
    """Class decorator: make *cls* selectable by its ``ID``."""
    analysis_id = getattr(cls, "ID", "")
    if not analysis_id:
        raise ConfigError(f"{cls.__name__} has no ID")
    _REGISTRY[analysis_id] = cls
    logger.debug("Registered analysis %s -> %s", analysis_id, cls.__name__)
    return cls


def get_analysis_class(analysis_id: str) -> Type[AbstractDataflowAnalysis]:
    try:
        return _REGISTRY[analysis_id]
    except KeyError:
        raise ConfigError(
            f"Unknown analysis {analysis_id!r}; "
            f"available: {', '.join(available_analyses()) or '(none)'}"
        ) from None


def available_analyses() -> List[str]:
    return sorted(_REGISTRY)


def create_analysis(config: AnalysisConfig) -> AbstractDataflowAnalysis:
    return get_analysis_class(config.get_id())(config)


def run_analysis(
    ir: IR,
    config: Optional[AnalysisConfig] = None,
    *,
    max_iterations: Optional[int] = None,
) -> Tuple[CFG, DataflowResult]:
    """Build the CFG of *ir*, run the configured analysis, return both.

    Parameters
    ----------
    ir : IR
        The method to analyse.
    config : AnalysisConfig, optional
        Defaults to plain ``constprop``.
    max_iterations : int, optional
        Worklist bound passed to the solver.
    """
    from tacflow.cfg import build_cfg
    from tacflow.solver import make_solver

    if config is None:
        config = AnalysisConfig(DEFAULT_ANALYSIS)
    analysis = create_analysis(config)
    cfg = build_cfg(ir)
    logger.info("Running %s on %s", config, ir.method_name)
    result = make_solver(analysis, max_iterations=max_iterations).solve(cfg)
    return cfg, result
