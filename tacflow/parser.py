"""tacflow/parser.py – S-expression → IR reader.

Converts the output of ``sexpdata.parse`` (nested Python lists,
:class:`sexpdata.Symbol`, strings, ints) into the IR defined in
:mod:`tacflow.ir`.

Design principles
-----------------
* **Head-symbol dispatch** – every list ``(tag ...)`` is dispatched on
  ``tag`` to a dedicated ``_parse_<tag>`` helper.
* **Fail-fast** – ``ParseError`` carries the offending form.
* **Declared variables only** – every variable must appear in the
  method's ``params`` or ``vars`` section, since its declared type
  decides whether constant propagation tracks it.

Surface syntax
--------------
::

    (program <method> ...)          ;; or a single bare <method>

    (method <name>
      (params (<type> <var>) ...)
      (vars   (<type> <var>) ...)
      (body   <stmt> ...))

    ;; statements
    (assign <var> <exp>)            ;; x = e      (e may be an invoke)
    (invoke <name> <exp> ...)       ;; f(a, b)    (result discarded)
    (load <var> <base-var> <field>) ;; x = o.f
    (if (<relop> <exp> <exp>) <label>)
    (goto <label>)
    (label <label>)
    (return) | (return <exp>)
    (nop)

    ;; expressions
    42 | true | false | <var>
    (<binop> <exp> <exp>)           ;; + - * / % == != < <= > >= << >> >>> | & ^
                                    ;; or add sub mul div rem eq ne lt le gt ge
                                    ;;    shl shr ushr or and xor
    (neg <exp>)
    (cast <type> <exp>)
    (invoke <name> <exp> ...)

Public API
----------
``parse_program(text) -> list[IR]``
``parse_method(text) -> IR``
``parse_file(path) -> list[IR]``
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import sexpdata
from sexpdata import Symbol

from tacflow.errors import ParseError
from tacflow.ir import (
    IR,
    ArithmeticOp,
    AssignStmt,
    BinaryOp,
    BitwiseOp,
    CastExp,
    ConditionExp,
    ConditionOp,
    Exp,
    FieldLoad,
    Goto,
    If,
    IntLiteral,
    Invoke,
    InvokeExp,
    Label,
    LoadField,
    NegExp,
    Nop,
    Return,
    ShiftOp,
    Stmt,
    Var,
    make_binary,
    parse_type,
)

logger = logging.getLogger(__name__)

# Type alias for raw sexpdata output
Sexp = Any  # Union[list, Symbol, str, int, float]


# ═══════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════

def _sym_name(s: Sexp) -> str:
    """Extract the string name from a ``sexpdata.Symbol``, or raise."""
    if isinstance(s, Symbol):
        return s.value()
    raise ParseError(f"Expected symbol, got {type(s).__name__}", s)


def _expect_list(s: Sexp, *, min_len: int = 0, max_len: Optional[int] = None) -> list:
    """Assert that *s* is a list with an arity in ``[min_len, max_len]``."""
    if not isinstance(s, list):
        raise ParseError(f"Expected list, got {type(s).__name__}", s)
    if len(s) < min_len:
        raise ParseError(
            f"List too short: expected at least {min_len} elements, got {len(s)}", s
        )
    if max_len is not None and len(s) > max_len:
        raise ParseError(
            f"List too long: expected at most {max_len} elements, got {len(s)}", s
        )
    return s


def _head(s: list) -> str:
    """Return the head symbol name of a list form ``(tag ...)``."""
    if not s:
        raise ParseError("Unexpected empty list", s)
    return _sym_name(s[0])


def _as_name(s: Sexp) -> str:
    """Accept a symbol or a string literal as a name."""
    if isinstance(s, Symbol):
        return s.value()
    if isinstance(s, str):
        return s
    raise ParseError(f"Expected name, got {type(s).__name__}", s)


def _as_int(s: Sexp) -> Optional[int]:
    if isinstance(s, int) and not isinstance(s, bool):
        return s
    return None


# ═══════════════════════════════════════════════════════════════════════
#  Operators
# ═══════════════════════════════════════════════════════════════════════

_BINARY_OPS: Dict[str, BinaryOp] = {}
for _op in (*ArithmeticOp, *ConditionOp, *ShiftOp, *BitwiseOp):
    _BINARY_OPS[_op.value] = _op
    _BINARY_OPS[_op.name.lower()] = _op
del _op

_BOOL_LITERALS: Dict[str, int] = {"true": 1, "false": 0}


# ═══════════════════════════════════════════════════════════════════════
#  Method scope
# ═══════════════════════════════════════════════════════════════════════

class _MethodScope:
    """Declared variables of the method being parsed."""

    def __init__(self, method_name: str) -> None:
        self.method_name = method_name
        self.params: List[Var] = []
        self.vars: Dict[str, Var] = {}

    def declare(self, decl: Sexp) -> Var:
        _expect_list(decl, min_len=2, max_len=2)
        var = Var(_as_name(decl[1]), parse_type(_as_name(decl[0])))
        existing = self.vars.get(var.name)
        if existing is not None:
            if existing != var:
                raise ParseError(
                    f"{self.method_name}: variable {var.name!r} redeclared "
                    f"as {var.type} (was {existing.type})",
                    decl,
                )
            return existing
        self.vars[var.name] = var
        return var

    def lookup(self, s: Sexp) -> Var:
        name = _sym_name(s)
        var = self.vars.get(name)
        if var is None:
            raise ParseError(f"{self.method_name}: undeclared variable {name!r}", s)
        return var


# ═══════════════════════════════════════════════════════════════════════
#  Expressions
# ═══════════════════════════════════════════════════════════════════════

def _parse_exp(s: Sexp, scope: _MethodScope) -> Exp:
    value = _as_int(s)
    if value is not None:
        return IntLiteral(value)
    if isinstance(s, Symbol):
        lit = _BOOL_LITERALS.get(s.value())
        if lit is not None:
            return IntLiteral(lit)
        return scope.lookup(s)
    if isinstance(s, list) and s:
        tag = _head(s)
        op = _BINARY_OPS.get(tag)
        if op is not None:
            _expect_list(s, min_len=3, max_len=3)
            return make_binary(op, _parse_exp(s[1], scope), _parse_exp(s[2], scope))
        if tag == "neg":
            _expect_list(s, min_len=2, max_len=2)
            return NegExp(_parse_exp(s[1], scope))
        if tag == "cast":
            _expect_list(s, min_len=3, max_len=3)
            return CastExp(parse_type(_as_name(s[1])), _parse_exp(s[2], scope))
        if tag == "invoke":
            return _parse_invoke_exp(s, scope)
        raise ParseError(f"Unknown expression form: ({tag} ...)", s)
    raise ParseError("Expected expression", s)


def _parse_invoke_exp(s: list, scope: _MethodScope) -> InvokeExp:
    _expect_list(s, min_len=2)
    args = tuple(_parse_exp(a, scope) for a in s[2:])
    return InvokeExp(_as_name(s[1]), args)


# ═══════════════════════════════════════════════════════════════════════
#  Statements
# ═══════════════════════════════════════════════════════════════════════

_STMT_DISPATCH: Dict[str, Callable[[list, _MethodScope], Stmt]] = {}


def _register(tag: str):
    """Decorator: register a statement parser under *tag*."""
    def deco(fn):
        _STMT_DISPATCH[tag] = fn
        return fn
    return deco


@_register("assign")
def _parse_assign(s: list, scope: _MethodScope) -> Stmt:
    _expect_list(s, min_len=3, max_len=3)
    lhs = scope.lookup(s[1])
    rhs = _parse_exp(s[2], scope)
    if isinstance(rhs, InvokeExp):
        return Invoke(lhs, rhs)
    return AssignStmt(lhs, rhs)


@_register("invoke")
def _parse_invoke(s: list, scope: _MethodScope) -> Stmt:
    return Invoke(None, _parse_invoke_exp(s, scope))


@_register("load")
def _parse_load(s: list, scope: _MethodScope) -> Stmt:
    _expect_list(s, min_len=4, max_len=4)
    return LoadField(scope.lookup(s[1]), FieldLoad(scope.lookup(s[2]), _as_name(s[3])))


@_register("if")
def _parse_if(s: list, scope: _MethodScope) -> Stmt:
    _expect_list(s, min_len=3, max_len=3)
    cond = _parse_exp(s[1], scope)
    if not isinstance(cond, ConditionExp):
        raise ParseError("if condition must be a comparison", s[1])
    return If(cond, _as_name(s[2]))


@_register("goto")
def _parse_goto(s: list, scope: _MethodScope) -> Stmt:
    _expect_list(s, min_len=2, max_len=2)
    return Goto(_as_name(s[1]))


@_register("label")
def _parse_label(s: list, scope: _MethodScope) -> Stmt:
    _expect_list(s, min_len=2, max_len=2)
    return Label(_as_name(s[1]))


@_register("return")
def _parse_return(s: list, scope: _MethodScope) -> Stmt:
    _expect_list(s, min_len=1, max_len=2)
    if len(s) == 1:
        return Return()
    return Return(_parse_exp(s[1], scope))


@_register("nop")
def _parse_nop(s: list, scope: _MethodScope) -> Stmt:
    _expect_list(s, min_len=1, max_len=1)
    return Nop()


def _parse_stmt(s: Sexp, scope: _MethodScope) -> Stmt:
    _expect_list(s, min_len=1)
    tag = _head(s)
    parser = _STMT_DISPATCH.get(tag)
    if parser is None:
        raise ParseError(f"Unknown statement form: ({tag} ...)", s)
    return parser(s, scope)


# ═══════════════════════════════════════════════════════════════════════
#  Methods and programs
# ═══════════════════════════════════════════════════════════════════════

def _parse_method_form(s: Sexp) -> IR:
    _expect_list(s, min_len=2)
    if _head(s) != "method":
        raise ParseError(f"Expected (method ...), got ({_head(s)} ...)", s)
    scope = _MethodScope(_as_name(s[1]))

    sections: Dict[str, list] = {}
    for section in s[2:]:
        _expect_list(section, min_len=1)
        tag = _head(section)
        if tag not in ("params", "vars", "body"):
            raise ParseError(f"Unknown method section: ({tag} ...)", section)
        if tag in sections:
            raise ParseError(f"{scope.method_name}: duplicate ({tag} ...) section", section)
        sections[tag] = section[1:]

    for decl in sections.get("params", []):
        scope.params.append(scope.declare(decl))
    for decl in sections.get("vars", []):
        scope.declare(decl)

    stmts = [_parse_stmt(st, scope) for st in sections.get("body", [])]
    labels = set()
    for st in stmts:
        if isinstance(st, Label):
            if st.name in labels:
                raise ParseError(f"{scope.method_name}: duplicate label {st.name!r}")
            labels.add(st.name)

    return IR(scope.method_name, scope.params, list(scope.vars.values()), stmts)


def _loads(text: str) -> Sexp:
    try:
        forms = sexpdata.parse(text, nil=None, true=None, false=None)
    except Exception as e:
        detail = str(e) or type(e).__name__
        raise ParseError(f"S-expression syntax error: {detail}") from e
    if len(forms) != 1:
        raise ParseError(f"Expected a single top-level form, got {len(forms)}")
    return forms[0]


def parse_program(text: str) -> List[IR]:
    """Parse ``(program <method> ...)`` or a bare ``(method ...)``."""
    raw = _loads(text)
    _expect_list(raw, min_len=1)
    if _head(raw) == "program":
        methods = [_parse_method_form(m) for m in raw[1:]]
    else:
        methods = [_parse_method_form(raw)]
    names = [m.method_name for m in methods]
    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        raise ParseError(f"Duplicate method name(s): {', '.join(dupes)}")
    logger.debug("Parsed %d method(s): %s", len(methods), ", ".join(names))
    return methods


def parse_method(text: str) -> IR:
    """Parse a single ``(method ...)`` form."""
    return _parse_method_form(_loads(text))


def parse_file(path: Union[str, Path]) -> List[IR]:
    """Read and parse an IR file.

    Raises
    ------
    ParseError
        With ``filename`` set to *path*, also when the file cannot be
        read or is not valid UTF-8.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(f"Cannot read IR file: {e}", filename=str(p)) from e
    try:
        return parse_program(text)
    except ParseError as e:
        e.filename = str(p)
        raise
