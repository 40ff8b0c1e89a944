"""Terms, literals and the literal text syntax.

A literal is a predicate name applied to an ordered tuple of terms. Terms
are either constants (strings, numbers, booleans) or variables. Variables
only appear in rule patterns; facts and goals are ground.

Text syntax:
    Name
    Name(arg1,arg2,...)

Arguments are bare identifiers (string constants), integers, floats,
``true``/``false``, quoted strings, or ``?Name`` variables where patterns
are allowed. Rendering is canonical, so ``parse_literal(str(lit)) == lit``
for every ground literal.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Union

from homereason.errors import MalformedInput

__all__ = [
    "Constant",
    "Variable",
    "Term",
    "Literal",
    "Substitution",
    "format_bindings",
    "parse_literal",
    "render_value",
]

ConstantValue = Union[str, int, float, bool]

_IDENT_RE = re.compile(r"[A-Za-z_]\w*")

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
      | (?P<number>-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?(?![\w.]))
      | (?P<variable>\?[A-Za-z_]\w*)
      | (?P<name>[A-Za-z_]\w*)
      | (?P<punct>[(),])
    )
    """,
    re.VERBOSE,
)

_BOOLEANS = {"true": True, "false": False}


def render_value(value: ConstantValue) -> str:
    """Render a constant value in canonical literal syntax."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if _IDENT_RE.fullmatch(value) and value not in _BOOLEANS:
        return value
    return json.dumps(value, ensure_ascii=False)


@dataclass(frozen=True, eq=False)
class Constant:
    """A constant term.

    Equality is by type as well as value, so ``1``, ``1.0``, ``True``
    and ``"1"`` are four different constants.
    """

    value: ConstantValue

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Constant):
            return NotImplemented
        return type(self.value) is type(other.value) and self.value == other.value

    def __hash__(self) -> int:
        return hash((type(self.value).__name__, self.value))

    def __str__(self) -> str:
        return render_value(self.value)

    def is_number(self) -> bool:
        """True for int and float values (booleans excluded)."""
        return isinstance(self.value, (int, float)) and not isinstance(self.value, bool)


@dataclass(frozen=True)
class Variable:
    """A variable term, written ``?Name`` in rule text."""

    name: str

    def __str__(self) -> str:
        return f"?{self.name}"


Term = Union[Constant, Variable]

# Variable name -> bound constant
Substitution = dict[str, Constant]


@dataclass(frozen=True)
class Literal:
    """A predicate applied to an ordered tuple of terms.

    Attributes:
        predicate: The predicate name
        args: Argument terms (tuple for hashability)
    """

    predicate: str
    args: tuple[Term, ...] = ()

    def __str__(self) -> str:
        if not self.args:
            return self.predicate
        return f"{self.predicate}({','.join(str(arg) for arg in self.args)})"

    @property
    def arity(self) -> int:
        return len(self.args)

    @property
    def key(self) -> str:
        """Canonical string used to deduplicate ground literals."""
        return str(self)

    def is_ground(self) -> bool:
        return all(isinstance(arg, Constant) for arg in self.args)

    def variables(self) -> list[str]:
        """Variable names in order of first occurrence."""
        seen: list[str] = []
        for arg in self.args:
            if isinstance(arg, Variable) and arg.name not in seen:
                seen.append(arg.name)
        return seen

    def substitute(self, bindings: Substitution) -> Literal:
        """Replace bound variables with their constants.

        Unbound variables are left in place, so the result is ground only
        when every variable of this literal is bound.
        """
        if not bindings:
            return self
        return Literal(
            self.predicate,
            tuple(
                bindings.get(arg.name, arg) if isinstance(arg, Variable) else arg
                for arg in self.args
            ),
        )


def format_bindings(bindings: Substitution) -> str:
    """Render bindings as ``Room=Bedroom, T=15.0``."""
    return ", ".join(f"{name}={value}" for name, value in bindings.items())


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    end = len(text.rstrip())
    while pos < end:
        m = _TOKEN_RE.match(text, pos)
        if m is None or m.end() == pos:
            raise MalformedInput(
                f"Unexpected character {text[pos:pos + 1]!r} at position {pos} in {text!r}"
            )
        kind = m.lastgroup
        tokens.append((kind, m.group(kind)))
        pos = m.end()
    return tokens


def _string_value(token: str, text: str) -> str:
    body = token[1:-1]
    if token[0] == "'":
        return re.sub(r"\\(.)", r"\1", body)
    try:
        value = json.loads(token)
        value.encode("utf-8")
    except (json.JSONDecodeError, UnicodeEncodeError) as e:
        raise MalformedInput(f"Invalid string {token!r} in {text!r}: {e}") from e
    return value


def _number_value(token: str, text: str) -> int | float:
    if any(c in token for c in ".eE"):
        value = float(token)
        if not math.isfinite(value):
            raise MalformedInput(f"Number out of range: {token} in {text!r}")
        return value
    try:
        return int(token)
    except ValueError as e:
        raise MalformedInput(f"Number out of range in {text[:40]!r}...: {e}") from e


def _parse_term(kind: str, token: str, text: str, allow_variables: bool) -> Term:
    if kind == "string":
        return Constant(_string_value(token, text))
    if kind == "number":
        return Constant(_number_value(token, text))
    if kind == "name":
        if token in _BOOLEANS:
            return Constant(_BOOLEANS[token])
        return Constant(token)
    if kind == "variable":
        if not allow_variables:
            raise MalformedInput(f"Variables are not allowed here: {token} in {text!r}")
        return Variable(token[1:])
    raise MalformedInput(f"Expected an argument, got {token!r} in {text!r}")


def parse_literal(text: str, allow_variables: bool = False) -> Literal:
    """Parse literal text such as ``Temperature(Bedroom,15.0)``.

    Args:
        text: The literal text
        allow_variables: Accept ``?Name`` variables (rule patterns only)

    Returns:
        The parsed Literal

    Raises:
        MalformedInput: If the text is not a single well-formed literal
    """
    if not isinstance(text, str) or not text.strip():
        raise MalformedInput("Literal text must be a non-empty string")
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise MalformedInput(f"Literal text is not valid UTF-8: {e}") from e

    tokens = _tokenize(text)
    kind, name = tokens[0]
    if kind != "name":
        raise MalformedInput(f"Literal must start with a predicate name: {text!r}")
    if len(tokens) == 1:
        return Literal(name)

    if tokens[1] != ("punct", "(") or tokens[-1] != ("punct", ")"):
        raise MalformedInput(f"Expected Name(arg,...): {text!r}")

    inner = tokens[2:-1]
    args: list[Term] = []
    expect_arg = True
    for kind, token in inner:
        if expect_arg:
            args.append(_parse_term(kind, token, text, allow_variables))
        elif (kind, token) != ("punct", ","):
            raise MalformedInput(f"Expected ',' between arguments, got {token!r} in {text!r}")
        expect_arg = not expect_arg

    if inner and expect_arg:
        raise MalformedInput(f"Trailing ',' in {text!r}")

    return Literal(name, tuple(args))
