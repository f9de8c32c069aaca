"""
tacflow/fact.py
═══════════════

``CPFact`` – the abstract environment attached to each program point by
constant propagation:  ``Var → Value``.

Unmapped variables are implicitly ``UNDEF``.  Writing ``UNDEF`` removes
the key, so "absent" and "explicitly undefined" are one state and two
facts compare equal exactly when they agree on every variable.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, Optional, Tuple

from tacflow.ir import Var
from tacflow.lattice import UNDEF, Undefined, Value


class CPFact:
    """Mutable mapping from variables to lattice values."""

    __slots__ = ("_map",)

    def __init__(self, mapping: Optional[Dict[Var, Value]] = None) -> None:
        self._map: Dict[Var, Value] = {}
        if mapping:
            for var, value in mapping.items():
                self.update(var, value)

    def get(self, var: Var) -> Value:
        return self._map.get(var, UNDEF)

    def update(self, var: Var, value: Value) -> bool:
        """Bind *var* to *value*.  Returns ``True`` if the fact changed."""
        if isinstance(value, Undefined):
            return self._map.pop(var, None) is not None
        old = self._map.get(var)
        self._map[var] = value
        return old != value

    def remove(self, var: Var) -> Optional[Value]:
        return self._map.pop(var, None)

    def copy(self) -> CPFact:
        new = CPFact()
        new._map = dict(self._map)
        return new

    def copy_from(self, other: CPFact) -> bool:
        """Overwrite this fact with *other*'s contents.  Returns ``True`` on change."""
        if self._map == other._map:
            return False
        self._map = dict(other._map)
        return True

    def keys(self) -> Iterable[Var]:
        return self._map.keys()

    def items(self) -> Iterable[Tuple[Var, Value]]:
        return self._map.items()

    def to_dict(self) -> Dict[str, str]:
        """Name → textual value, for reporting."""
        return {var.name: repr(value) for var, value in self._sorted_items()}

    def _sorted_items(self):
        return sorted(self._map.items(), key=lambda kv: kv[0].name)

    def __contains__(self, var: object) -> bool:
        return var in self._map

    def __iter__(self) -> Iterator[Var]:
        return iter(self._map)

    def __len__(self) -> int:
        return len(self._map)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CPFact):
            return self._map == other._map
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        entries = ", ".join(f"{var.name}={value!r}" for var, value in self._sorted_items())
        return f"{{{entries}}}"
