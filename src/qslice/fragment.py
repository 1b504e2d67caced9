"""
Fragment (qslice) Model

A fragment is one independently-authored piece of a query:
    - where:        the clauses it contributes
    - provide:      symbols it exposes for unification by other fragments
    - require:      symbols some other fragment must provide
    - let_pairs:    parameter bindings (replaced wholesale on rebind)
    - must_let:     variables that must be bound before compilation
    - selectivity:  ordering key, smaller sorts earlier
    - locked:       once set, binding operations fail
    - extra:        caller bookkeeping, never read by qslice

ARCHITECTURAL RULE:
    Fragments are immutable values.
    Every operation returns a new fragment.
    Invariants are checked on every construction, including the
    functional updates made by ``dataclasses.replace``.

Variable classification:
    Every variable occurring in ``where`` falls into exactly one role,
    in this order of precedence: PROVIDE, REQUIRE, LET, OWNED.
    OWNED variables are private to the fragment and are renamed by the
    compiler so they never unify across fragment boundaries.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from qslice.bindings import (
    BindingForm,
    binding_of,
    binding_symbols,
    check_binding_value,
    validate_form,
)
from qslice.config import SliceConfig
from qslice.errors import InvalidBindingForm, InvalidConfiguration, LockedFragment
from qslice.terms import DATASOURCE, RULESET, Sequence, Symbol, Term, Vector, term_of
from qslice.walk import symbols_in_order


_NESTED_FORMS = frozenset({"not", "or", "and"})
_JOIN_FORMS = frozenset({"not-join", "or-join"})


class VarRole(Enum):
    PROVIDE = "provide"
    REQUIRE = "require"
    LET = "let"
    OWNED = "owned"


def _dedupe(symbols: Iterable[Symbol]) -> Tuple[Symbol, ...]:
    return tuple(dict.fromkeys(symbols))


def _clause_specials(clause: Term, explicit_source: bool = False) -> List[Symbol]:
    """Specials implied by the shape of one clause."""
    if isinstance(clause, Vector):
        head = clause.head
        if head is None or isinstance(head, Sequence):
            # predicate or function expression
            return []
        if isinstance(head, Symbol) and head.is_datasource:
            return []
        return [] if explicit_source else [DATASOURCE]

    if isinstance(clause, Sequence):
        items = list(clause.items)
        if items and isinstance(items[0], Symbol) and items[0].is_datasource:
            explicit_source = True
            items = items[1:]
        if not items or not isinstance(items[0], Symbol):
            return []
        head, rest = items[0], items[1:]
        if head.is_ruleset:
            return []
        if head.name in _NESTED_FORMS:
            body = rest
        elif head.name in _JOIN_FORMS:
            body = rest[1:]
        else:
            # rule invocation
            return [RULESET]
        out: List[Symbol] = []
        for sub in body:
            out.extend(_clause_specials(sub, explicit_source))
        return out

    return []


def infer_specials(where: Iterable[Term]) -> Tuple[Symbol, ...]:
    """
    Infer the implicit datasource and ruleset a list of clauses needs.

    A positional data pattern implies ``$``; a rule invocation implies
    ``%``. An explicit ``$src`` or ``%rules`` prefix suppresses the
    implicit one.
    """
    out: List[Symbol] = []
    for clause in where:
        out.extend(_clause_specials(clause))
    return _dedupe(out)


@dataclass(frozen=True)
class Fragment:
    """
    An immutable, composable piece of a query.

    Build fragments with ``qslice`` or ``make_qslice``; constructing
    ``Fragment`` directly skips special inference but not validation.
    """

    name: Optional[str] = None
    where: Tuple[Term, ...] = ()
    provide: Tuple[Symbol, ...] = ()
    require: Tuple[Symbol, ...] = ()
    let_pairs: Tuple[Tuple[BindingForm, Any], ...] = ()
    must_let: Tuple[Symbol, ...] = ()
    selectivity: int = 0
    locked: bool = False
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "where", tuple(self.where))
        object.__setattr__(self, "provide", _dedupe(self.provide))
        object.__setattr__(self, "require", _dedupe(self.require))
        object.__setattr__(self, "must_let", _dedupe(self.must_let))
        object.__setattr__(self, "let_pairs", tuple((form, value) for form, value in self.let_pairs))
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))
        self._check_invariants()

    def _check_invariants(self) -> None:
        for clause in self.where:
            if not isinstance(clause, Term):
                raise InvalidConfiguration(
                    f"Clause {clause!r} is not a term", fragment=self, context={"clause": clause}
                )
        if isinstance(self.selectivity, bool) or not isinstance(self.selectivity, int):
            raise InvalidConfiguration(
                f"Selectivity must be an integer, got {self.selectivity!r}", fragment=self
            )

        for label, symbols in (("provide", self.provide), ("require", self.require), ("must-let", self.must_let)):
            for s in symbols:
                if not isinstance(s, Symbol) or not (s.is_variable or s.is_special):
                    raise InvalidConfiguration(
                        f"{label} entry {s!r} is neither a variable nor a special", fragment=self, unmet=[s]
                    )

        required = set(self.require)
        overlap = [s for s in self.provide if s in required]
        if overlap:
            raise InvalidConfiguration(
                f"Fragment {self.label} both provides and requires", fragment=self, unmet=overlap
            )

        unclassified = [
            s for s in self.free_vars if s.is_special and s not in required and s not in self.provide
        ]
        if unclassified:
            raise InvalidConfiguration(
                f"Fragment {self.label} uses specials it neither provides nor requires",
                fragment=self,
                unmet=unclassified,
            )

        bindable = set(self.bindable_vars)
        not_bindable = [s for s in self.must_let if s not in bindable]
        if not_bindable:
            raise InvalidConfiguration(
                f"Fragment {self.label} lists must-let variables it cannot bind",
                fragment=self,
                unmet=not_bindable,
            )

        bound = set()
        for form, value in self.let_pairs:
            validate_form(form)
            for s in binding_symbols(form):
                if s not in bindable:
                    raise InvalidBindingForm(
                        f"{s} is not bindable in fragment {self.label}", fragment=self, unmet=[s]
                    )
                if s in bound:
                    raise InvalidBindingForm(
                        f"{s} is bound more than once in fragment {self.label}", fragment=self, unmet=[s]
                    )
                bound.add(s)
            check_binding_value(form, value)

    # ------------------------------------------------------------------
    # Derived classification
    # ------------------------------------------------------------------

    @property
    def label(self) -> str:
        return self.name if self.name is not None else "<unnamed>"

    @property
    def free_vars(self) -> Tuple[Symbol, ...]:
        """Variables and specials occurring in ``where``, first occurrence first."""
        return tuple(s for s in symbols_in_order(self.where) if s.is_variable or s.is_special)

    @property
    def bindable_vars(self) -> Tuple[Symbol, ...]:
        required = set(self.require)
        return tuple(s for s in _dedupe(self.free_vars + self.provide) if s not in required)

    @property
    def let_symbols(self) -> Tuple[Symbol, ...]:
        return tuple(s for form, _ in self.let_pairs for s in binding_symbols(form))

    @property
    def owned_vars(self) -> Tuple[Symbol, ...]:
        """Variables private to this fragment and left unbound."""
        roles = self.classify()
        return tuple(s for s in self.free_vars if roles[s] is VarRole.OWNED)

    @property
    def private_vars(self) -> Tuple[Symbol, ...]:
        """Owned variables plus let-bound variables that are not provided."""
        exposed = set(self.provide) | set(self.require)
        candidates = _dedupe(self.free_vars + self.let_symbols)
        return tuple(s for s in candidates if s.is_variable and s not in exposed)

    @property
    def unbound_must_let(self) -> Tuple[Symbol, ...]:
        bound = set(self.let_symbols)
        return tuple(s for s in self.must_let if s not in bound)

    def classify(self) -> Dict[Symbol, VarRole]:
        provided = set(self.provide)
        required = set(self.require)
        bound = set(self.let_symbols)
        roles: Dict[Symbol, VarRole] = {}
        for s in _dedupe(self.free_vars + self.provide + self.require + self.let_symbols):
            if s in provided:
                roles[s] = VarRole.PROVIDE
            elif s in required:
                roles[s] = VarRole.REQUIRE
            elif s in bound:
                roles[s] = VarRole.LET
            else:
                roles[s] = VarRole.OWNED
        return roles

    # ------------------------------------------------------------------
    # Functional updates
    # ------------------------------------------------------------------

    def bind(self, form: Any, value: Any) -> "Fragment":
        """Bind a single form, replacing any previous bindings."""
        return self.bind_all([(form, value)])

    def bind_all(self, pairs: Any) -> "Fragment":
        """
        Replace ``let_pairs`` with ``pairs``.

        Args:
            pairs: (binding form, value) pairs, or a mapping of them.
                Forms may be given as plain data, see ``binding_of``.

        Raises:
            LockedFragment: the fragment is locked
            InvalidBindingForm: a form or value cannot be bound here
        """
        if self.locked:
            raise LockedFragment(f"Fragment {self.label} is locked", fragment=self)
        if isinstance(pairs, Mapping):
            pairs = pairs.items()
        normalized = []
        for form, value in pairs:
            form = binding_of(form)
            validate_form(form)
            normalized.append((form, value))
        return replace(self, let_pairs=tuple(normalized))

    def with_selectivity(self, selectivity: int) -> "Fragment":
        return replace(self, selectivity=selectivity)

    def with_name(self, name: Optional[str]) -> "Fragment":
        return replace(self, name=name)

    def with_extra(self, **entries: Any) -> "Fragment":
        merged = dict(self.extra)
        merged.update(entries)
        return replace(self, extra=merged)

    def lock(self) -> "Fragment":
        """Freeze bindings. There is no way back."""
        if self.locked:
            return self
        return replace(self, locked=True)


def used_symbols(fragments: Iterable[Fragment]) -> Set[Symbol]:
    """Every symbol occurring in, or declared by, ``fragments``."""
    used: Set[Symbol] = set()
    for fragment in fragments:
        used.update(symbols_in_order(fragment.where))
        used.update(fragment.provide + fragment.require + fragment.must_let + fragment.let_symbols)
    return used


def _as_symbol(value: Any) -> Symbol:
    if isinstance(value, Symbol):
        return value
    if isinstance(value, str):
        return Symbol(value)
    raise InvalidConfiguration(f"Expected a symbol, got {value!r}", context={"value": value})


def make_qslice(config: SliceConfig) -> Fragment:
    """
    Build a fragment from a SliceConfig.

    Implicit specials inferred from clause shape, and explicit special
    symbols found in clauses, are added to ``require`` unless already
    provided or required.
    """
    where = tuple(term_of(c) for c in config.where)
    provide = _dedupe(_as_symbol(s) for s in config.provide)
    explicit = _dedupe(_as_symbol(s) for s in config.require)

    declared = set(provide) | set(explicit)
    found = infer_specials(where) + tuple(s for s in symbols_in_order(where) if s.is_special)
    implied = tuple(s for s in _dedupe(found) if s not in declared)

    fragment = Fragment(
        name=config.name,
        where=where,
        provide=provide,
        require=explicit + implied,
        must_let=tuple(_as_symbol(s) for s in config.must_let),
        selectivity=config.selectivity,
        extra=config.extra,
    )
    if config.let:
        fragment = fragment.bind_all(config.let)
    if config.locked:
        fragment = fragment.lock()
    return fragment


def qslice(
    where: Iterable[Any] = (),
    *,
    name: Optional[str] = None,
    provide: Iterable[Any] = (),
    require: Iterable[Any] = (),
    must_let: Iterable[Any] = (),
    selectivity: int = 0,
    let: Any = (),
    locked: bool = False,
    extra: Optional[Mapping[str, Any]] = None,
) -> Fragment:
    """Keyword front-end for ``make_qslice``."""
    if isinstance(let, Mapping):
        let = list(let.items())
    return make_qslice(
        SliceConfig(
            where=list(where),
            name=name,
            provide=list(provide),
            require=list(require),
            must_let=list(must_let),
            selectivity=selectivity,
            let=list(let),
            locked=locked,
            extra=dict(extra or {}),
        )
    )
