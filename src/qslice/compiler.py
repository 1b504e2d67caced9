"""
Query compiler: ordered fragments in, one datalog program out.

Steps, all-or-nothing:
    1. Satisfaction: every required symbol is provided by another fragment
    2. Must-let: every must-let variable is bound
    3. Ordering: stable sort by ascending selectivity
    4. Index assignment: slice_index = sorted position
    5. Renaming: private variables get names derived from
       (slice_index, original name, position within the fragment),
       suffixed when that name already occurs anywhere in the input
    6. Assembly: clauses, parameter declarations and arguments

The compiler keeps no state between calls and never mutates its
inputs. Two compilations of equal fragment lists produce equal output,
symbol names included.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from qslice.bindings import binding_symbols, render_binding, substitute_binding
from qslice.errors import InvalidBindingForm, UnsatisfiedMustLet, UnsatisfiedRequirement
from qslice.fragment import Fragment, used_symbols
from qslice.terms import Symbol, Term
from qslice.walk import substitute, unused_symbol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SliceOrder:
    """Position of one fragment in the compiled program."""

    slice_index: int
    name: Optional[str]
    selectivity: int


@dataclass(frozen=True)
class CompiledQuery:
    """
    The compiled program.

    Properties:
        query:   mapping with "find" (passed through verbatim),
                 "in" (parameter declarations) and "where" (clauses)
        args:    positional arguments, one per parameter declaration
        order:   SliceOrder per fragment, in compiled order
        slices:  the renamed fragments, in compiled order
    """

    query: Dict[str, Any]
    args: Tuple[Any, ...] = ()
    order: Tuple[SliceOrder, ...] = ()
    slices: Tuple[Fragment, ...] = field(default=(), compare=False)

    @property
    def where(self) -> Tuple[Term, ...]:
        return self.query["where"]

    @property
    def params(self) -> Tuple[Term, ...]:
        return self.query["in"]

    def as_tuple(self) -> Tuple[Dict[str, Any], Tuple[Any, ...], Tuple[SliceOrder, ...]]:
        return self.query, self.args, self.order


def fresh_symbol(
    symbol: Symbol, slice_index: int, position: int, taken: Optional[Set[Symbol]] = None
) -> Symbol:
    """
    Deterministic private name for ``symbol`` in slice ``slice_index``.

    The name is ``<name>__<slice_index>_<position>``, suffixed with
    ``_<n>`` when that symbol is already in ``taken``. The chosen symbol
    is added to ``taken``. It carries no metadata, so each replaced
    occurrence keeps its own.
    """
    return unused_symbol(f"{symbol.name}__{slice_index}_{position}", set() if taken is None else taken)


def check_satisfied(slices: Sequence[Fragment]) -> None:
    """Raise UnsatisfiedRequirement unless every requirement is provided elsewhere."""
    for index, fragment in enumerate(slices):
        if not fragment.require:
            continue
        provided = set()
        for other_index, other in enumerate(slices):
            if other_index != index:
                provided.update(other.provide)
        unmet = [s for s in fragment.require if s not in provided]
        if unmet:
            raise UnsatisfiedRequirement(
                f"Fragment {fragment.label} has requirements no other fragment provides",
                fragment=fragment,
                unmet=unmet,
                context={"position": index},
            )


def check_must_let(slices: Sequence[Fragment]) -> None:
    for index, fragment in enumerate(slices):
        unmet = fragment.unbound_must_let
        if unmet:
            raise UnsatisfiedMustLet(
                f"Fragment {fragment.label} has must-let variables without a binding",
                fragment=fragment,
                unmet=unmet,
                context={"position": index},
            )


def order_slices(slices: Sequence[Fragment]) -> List[Fragment]:
    """Stable sort by ascending selectivity."""
    return sorted(slices, key=lambda fragment: fragment.selectivity)


def rename_private(fragment: Fragment, slice_index: int, taken: Optional[Set[Symbol]] = None) -> Fragment:
    """
    Rename the private variables of ``fragment`` for position ``slice_index``.

    Fresh names avoid every symbol in ``taken``, which defaults to the
    symbols of ``fragment`` itself, and are added to it.
    """
    if taken is None:
        taken = used_symbols([fragment])
    rename_map = {
        symbol: fresh_symbol(symbol, slice_index, position, taken)
        for position, symbol in enumerate(fragment.private_vars)
    }
    if not rename_map:
        return fragment
    return replace(
        fragment,
        where=tuple(substitute(clause, rename_map) for clause in fragment.where),
        let_pairs=tuple((substitute_binding(form, rename_map), value) for form, value in fragment.let_pairs),
        must_let=tuple(rename_map.get(s, s) for s in fragment.must_let),
    )


def _assemble_params(slices: Sequence[Fragment]) -> Tuple[List[Term], List[Any]]:
    """
    Parameter declarations and arguments, specials first.

    A special bound by more than one fragment is declared once with the
    first binding. Later bindings with an equal value are dropped
    silently; a later binding with a different value is dropped with a
    UserWarning.
    """
    specials: Dict[Symbol, Tuple[Fragment, Any]] = {}
    params: List[Term] = []
    args: List[Any] = []
    declared: Dict[Symbol, Fragment] = {}

    for fragment in slices:
        for form, value in fragment.let_pairs:
            if isinstance(form, Symbol) and form.is_special:
                if form in specials:
                    first, first_value = specials[form]
                    if first_value != value:
                        warnings.warn(
                            f"Special {form} bound by both {first.label} and {fragment.label}; "
                            f"keeping the binding from {first.label}",
                            UserWarning,
                        )
                    continue
                specials[form] = (fragment, value)
                continue
            for s in binding_symbols(form):
                if s in declared:
                    raise InvalidBindingForm(
                        f"{s} is declared as a parameter by both {declared[s].label} and {fragment.label}",
                        fragment=fragment,
                        unmet=[s],
                    )
                declared[s] = fragment
            params.append(render_binding(form))
            args.append(value)

    special_params: List[Term] = list(specials)
    special_args = [value for _, value in specials.values()]
    return special_params + params, special_args + args


def compile_query(find: Any, slices: Sequence[Fragment]) -> CompiledQuery:
    """
    Compile an ordered list of fragments.

    Args:
        find: result projection, passed through verbatim
        slices: fragments, in caller order

    Returns:
        CompiledQuery

    Raises:
        UnsatisfiedRequirement: a required symbol is not provided elsewhere
        UnsatisfiedMustLet: a must-let variable is unbound
        InvalidBindingForm: two fragments declare the same parameter
    """
    slices = tuple(slices)
    check_satisfied(slices)
    check_must_let(slices)

    taken = used_symbols(slices)
    ordered = [rename_private(fragment, index, taken) for index, fragment in enumerate(order_slices(slices))]

    where: List[Term] = []
    for fragment in ordered:
        where.extend(fragment.where)
    params, args = _assemble_params(ordered)

    order = tuple(
        SliceOrder(slice_index=index, name=fragment.name, selectivity=fragment.selectivity)
        for index, fragment in enumerate(ordered)
    )
    logger.debug(
        "Compiled %d slices into %d clauses and %d parameters: %s",
        len(ordered),
        len(where),
        len(params),
        [(o.slice_index, o.name, o.selectivity) for o in order],
    )
    return CompiledQuery(
        query={"find": find, "in": tuple(params), "where": tuple(where)},
        args=tuple(args),
        order=order,
        slices=tuple(ordered),
    )
