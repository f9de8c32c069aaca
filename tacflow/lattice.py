"""
tacflow/lattice.py
══════════════════

The flat constant lattice used by constant propagation.

::

                NAC
          /  /  |  \\  \\
    … #-1  #0  #1  #2 …
          \\  \\  |  /  /
               UNDEF

``UNDEF`` (bottom) means "no information yet", ``#i`` means "exactly
the integer *i*", ``NAC`` (top) means "provably not a single constant".
Distinct constants are incomparable.

A ``Value`` is one of three frozen dataclasses; there is no fourth
state.  Constants carry 32-bit two's-complement integers (the width of
a Java ``int``), so every arithmetic result is wrapped through
:func:`to_int32` before it is lifted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Optional, Union


_INT_BITS: Final[int] = 32
_INT_MASK: Final[int] = (1 << _INT_BITS) - 1
_INT_SIGN: Final[int] = 1 << (_INT_BITS - 1)

INT_MIN: Final[int] = -_INT_SIGN
INT_MAX: Final[int] = _INT_SIGN - 1


def to_int32(n: int) -> int:
    """Wrap an arbitrary Python int to the signed 32-bit range."""
    n &= _INT_MASK
    return n - (1 << _INT_BITS) if n & _INT_SIGN else n


def to_uint32(n: int) -> int:
    """Reinterpret an int as its unsigned 32-bit bit pattern."""
    return n & _INT_MASK


# ═══════════════════════════════════════════════════════════════════════════
#  VALUE VARIANTS
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class Undefined:
    """Lattice bottom: nothing is known about the variable yet."""

    def __repr__(self) -> str:
        return "UNDEF"


@dataclass(frozen=True, slots=True)
class Constant:
    """A single known integer value."""

    value: int

    def __repr__(self) -> str:
        return f"#{self.value}"


@dataclass(frozen=True, slots=True)
class NotAConstant:
    """Lattice top: the variable provably holds more than one value."""

    def __repr__(self) -> str:
        return "NAC"


Value = Union[Undefined, Constant, NotAConstant]

UNDEF: Final[Undefined] = Undefined()
NAC: Final[NotAConstant] = NotAConstant()


def make_constant(n: int) -> Constant:
    """Lift *n* (wrapped to 32 bits) into the lattice."""
    return Constant(to_int32(n))


def is_undef(v: Value) -> bool:
    return isinstance(v, Undefined)


def is_constant(v: Value) -> bool:
    return isinstance(v, Constant)


def is_nac(v: Value) -> bool:
    return isinstance(v, NotAConstant)


def constant_of(v: Value) -> Optional[int]:
    """Return the integer carried by *v*, or ``None`` if it is not a constant."""
    if isinstance(v, Constant):
        return v.value
    return None


# ═══════════════════════════════════════════════════════════════════════════
#  MEET
# ═══════════════════════════════════════════════════════════════════════════

def meet_value(v1: Value, v2: Value) -> Value:
    """Meet two lattice values.

    Rules, in priority order:

    1. ``NAC ⊓ _ = NAC``
    2. ``UNDEF ⊓ v = v``
    3. ``#a ⊓ #b = #a`` if ``a == b`` else ``NAC``
    """
    if isinstance(v1, NotAConstant) or isinstance(v2, NotAConstant):
        return NAC
    if isinstance(v1, Undefined):
        return v2
    if isinstance(v2, Undefined):
        return v1
    if v1.value == v2.value:
        return v1
    return NAC


def leq(v1: Value, v2: Value) -> bool:
    """Information order: ``UNDEF ⊑ #i ⊑ NAC``."""
    if isinstance(v1, Undefined) or isinstance(v2, NotAConstant):
        return True
    if isinstance(v1, NotAConstant) or isinstance(v2, Undefined):
        return False
    return v1.value == v2.value
