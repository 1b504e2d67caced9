"""
Term System for qslice

All query clauses are represented as explicit term trees, never as strings.

This ensures:
    - Structural renaming without textual substitution
    - Language independence
    - Serialization capability
    - Deterministic rendering

ARCHITECTURAL RULE:
    No raw query text inside a fragment.
    All clauses must be term-based.

Symbol naming conventions:
    ?name    variable
    $name    datasource special ($ is the default datasource)
    %name    ruleset special (% is the default ruleset)
    other    operator symbol (function, rule name, _, ..., or-join)
"""

from abc import ABC
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional, Tuple


VARIABLE_PREFIX = "?"
DATASOURCE_PREFIX = "$"
RULESET_PREFIX = "%"


class Term(ABC):
    """
    Base class for all clause terms.

    Every concrete term carries an optional ``meta`` mapping. It is
    display metadata only: excluded from equality, never interpreted,
    and preserved by every transform in ``qslice.walk``.
    """

    def with_meta(self, meta: Optional[Mapping[str, Any]]) -> "Term":
        return replace(self, meta=meta)


@dataclass(frozen=True)
class Keyword:
    """
    An attribute ident such as ``:artist/name``.

    This is a value, not a term. It lives inside a Literal.
    """

    name: str

    def __post_init__(self):
        if not self.name.startswith(":"):
            object.__setattr__(self, "name", ":" + self.name)


@dataclass(frozen=True)
class Symbol(Term):
    """
    A named leaf.

    Examples:
        - ?artist        (variable)
        - $              (default datasource)
        - %              (default ruleset)
        - ground, >, _   (operator symbols)

    IMPORTANT:
        A Symbol does not know whether it is bound.
        Classification belongs to the fragment layer.
    """

    name: str
    meta: Optional[Mapping[str, Any]] = field(default=None, compare=False, repr=False)

    @property
    def is_variable(self) -> bool:
        return self.name.startswith(VARIABLE_PREFIX) and len(self.name) > 1

    @property
    def is_datasource(self) -> bool:
        return self.name.startswith(DATASOURCE_PREFIX)

    @property
    def is_ruleset(self) -> bool:
        return self.name.startswith(RULESET_PREFIX)

    @property
    def is_special(self) -> bool:
        return self.is_datasource or self.is_ruleset

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Sequence(Term):
    """
    A call-like list: rule invocations, predicate expressions,
    and forms such as ``(not ...)`` or ``(or-join [...] ...)``.

    Example:
        (> ?year 1970)

    Becomes:
        Sequence((Symbol(">"), Symbol("?year"), Literal(1970)))
    """

    items: Tuple[Term, ...] = ()
    meta: Optional[Mapping[str, Any]] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(self.items))

    @property
    def head(self) -> Optional[Term]:
        return self.items[0] if self.items else None


@dataclass(frozen=True)
class Vector(Term):
    """
    A pattern-like list: data patterns and expression clauses.

    Example:
        [?track :track/artists ?artist]
    """

    items: Tuple[Term, ...] = ()
    meta: Optional[Mapping[str, Any]] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(self.items))

    @property
    def head(self) -> Optional[Term]:
        return self.items[0] if self.items else None


@dataclass(frozen=True)
class Literal(Term):
    """
    Represents an opaque constant value.

    Examples:
        - 1970
        - "John Lennon"
        - Keyword(":artist/name")
        - ["a", "b"]   (collection literal)

    IMPORTANT:
        Literals are never walked and never renamed.
    """

    value: Any
    meta: Optional[Mapping[str, Any]] = field(default=None, compare=False, repr=False)


DATASOURCE = Symbol(DATASOURCE_PREFIX)
RULESET = Symbol(RULESET_PREFIX)


def sym(name: str) -> Symbol:
    return Symbol(name)


def kw(name: str) -> Literal:
    return Literal(Keyword(name))


def lit(value: Any) -> Literal:
    return Literal(value)


def seq(*items) -> Sequence:
    return Sequence(tuple(term_of(i) for i in items))


def vec(*items) -> Vector:
    return Vector(tuple(term_of(i) for i in items))


def term_of(obj: Any) -> Term:
    """Factory function for Term: lists become Vectors, tuples become Sequences."""
    if isinstance(obj, Term):
        return obj
    if isinstance(obj, list):
        return Vector(tuple(term_of(i) for i in obj))
    if isinstance(obj, tuple):
        return Sequence(tuple(term_of(i) for i in obj))
    return Literal(obj)
