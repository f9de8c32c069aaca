"""
tacflow/errors.py
═════════════════

Exception types raised by the tacflow pipeline.

Hierarchy
─────────
::

    TacflowError (base)
    ├── ParseError              - malformed S-expression IR
    ├── CFGError                - graph construction failures
    ├── ConfigError             - bad analysis id / option text
    └── SolverError             - fixpoint engine failures
        ├── UnsupportedAnalysisError  - e.g. backward solving
        └── NonConvergenceError       - iteration bound exceeded

Lattice-level "gaps" (division by zero, conflicting constants, …) are
*not* errors: they are ordinary ``Value`` results and never surface
here.
"""

from __future__ import annotations

from typing import Any, Optional


class TacflowError(Exception):
    """Base class for every error raised by tacflow."""


class ParseError(TacflowError):
    """Raised when an S-expression cannot be mapped to an IR node.

    Attributes
    ----------
    message : str
        Human-readable description.
    form : object, optional
        The raw S-expression that triggered the error.
    filename : str, optional
        Source file, when parsing from disk.
    """

    def __init__(
        self,
        message: str,
        form: Any = None,
        filename: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.form = form
        self.filename = filename

    def __str__(self) -> str:
        text = self.message
        if self.form is not None:
            text = f"{text}: {self.form!r}"
        if self.filename:
            text = f"{self.filename}: {text}"
        return text


class CFGError(TacflowError):
    """Raised when a control-flow graph cannot be built from the IR."""


class ConfigError(TacflowError):
    """Raised for unknown analysis ids or malformed option strings."""


class SolverError(TacflowError):
    """Base class for fixpoint engine failures."""


class UnsupportedAnalysisError(SolverError, NotImplementedError):
    """The solver was asked for something it does not implement."""


class NonConvergenceError(SolverError):
    """The worklist did not empty within the configured bound."""

    def __init__(self, max_iterations: int) -> None:
        super().__init__(
            f"Dataflow analysis did not converge in {max_iterations} iterations"
        )
        self.max_iterations = max_iterations
