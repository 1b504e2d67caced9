"""
Disjunction combinator: merge bound fragments into one or-join fragment.

Each branch is one fragment and becomes one arm of

    (or-join [[required-bound ...] provided ...] arm ...)

Within an arm:
    - let pairs are absorbed as ``[(ground value) form]`` clauses
      placed before the branch's own clauses
    - variables the branch neither provides nor requires are renamed
      ``<name>__or<branch_index>`` so no arm shares a private name
      with another arm or with any symbol already in the branches

The result is locked: its bindings live inside the clause and cannot
be rebound from outside.

KNOWN LIMITATION:
    One fragment per branch. Multi-fragment branches would need the
    scoping of private variables to be worked out across the fragments
    of a branch first.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence as SequenceT, Set, Tuple

from qslice.bindings import render_binding, substitute_binding
from qslice.errors import InvalidBranch
from qslice.fragment import Fragment, qslice, used_symbols
from qslice.terms import Literal, Sequence, Symbol, Term, Vector
from qslice.walk import substitute, unused_symbol

logger = logging.getLogger(__name__)

OR_JOIN = Symbol("or-join")
AND = Symbol("and")
GROUND = Symbol("ground")


def _dedupe(symbols: Iterable[Symbol]) -> List[Symbol]:
    return list(dict.fromkeys(symbols))


def branch_symbol(symbol: Symbol, branch_index: int, taken: Optional[Set[Symbol]] = None) -> Symbol:
    """
    Private name for ``symbol`` inside arm ``branch_index``, suffixed
    with ``_<n>`` when already in ``taken``. Carries no metadata.
    """
    return unused_symbol(f"{symbol.name}__or{branch_index}", set() if taken is None else taken)


def _check_branch(branch_index: int, branch: Any) -> None:
    if not isinstance(branch, Fragment):
        raise InvalidBranch(
            f"Branch {branch_index} is not a fragment: {branch!r}", context={"branch_index": branch_index}
        )
    unbound = branch.unbound_must_let
    if unbound:
        raise InvalidBranch(
            f"Branch {branch.label} has unbound must-let variables",
            fragment=branch,
            unmet=unbound,
            context={"branch_index": branch_index},
        )
    specials = [s for s in branch.provide + branch.let_symbols if s.is_special]
    if specials:
        raise InvalidBranch(
            f"Branch {branch.label} provides or binds specials, which cannot escape a disjunction",
            fragment=branch,
            unmet=_dedupe(specials),
            context={"branch_index": branch_index},
        )
    occurring = set(branch.free_vars) | set(branch.let_symbols)
    escaping = [s for s in branch.provide if s not in occurring]
    if escaping:
        raise InvalidBranch(
            f"Branch {branch.label} provides variables it never binds",
            fragment=branch,
            unmet=escaping,
            context={"branch_index": branch_index},
        )


def _ground_clause(form, value: Any) -> Term:
    return Vector((Sequence((GROUND, Literal(value))), render_binding(form)))


def branch_arm(branch_index: int, branch: Fragment, taken: Optional[Set[Symbol]] = None) -> Term:
    """
    Render ``branch`` as one scoped arm of the disjunction.

    Private names avoid every symbol in ``taken``, which defaults to the
    symbols of ``branch`` itself.
    """
    if taken is None:
        taken = used_symbols([branch])
    rename_map: Dict[Symbol, Symbol] = {s: branch_symbol(s, branch_index, taken) for s in branch.private_vars}
    clauses: List[Term] = [
        _ground_clause(substitute_binding(form, rename_map), value) for form, value in branch.let_pairs
    ]
    clauses.extend(substitute(clause, rename_map) for clause in branch.where)
    if len(clauses) == 1:
        return clauses[0]
    return Sequence((AND,) + tuple(clauses))


def disjunction_header(branches: SequenceT[Fragment]) -> Tuple[List[Symbol], List[Symbol]]:
    """Required-bound variables and provided variables of the or-join header."""
    required = _dedupe(s for b in branches for s in b.require if s.is_variable)
    required_set = set(required)
    provided = _dedupe(s for b in branches for s in b.provide if s not in required_set)
    return required, provided


def or_qslice(branches: Iterable[Fragment]) -> Fragment:
    """
    Merge bound fragments into a single locked fragment.

    Args:
        branches: one already-bound fragment per branch

    Returns:
        Fragment whose only clause is an or-join over the branches

    Raises:
        InvalidBranch: a branch cannot be scoped safely
    """
    branches = tuple(branches)
    if not branches:
        raise InvalidBranch("A disjunction needs at least one branch")
    for index, branch in enumerate(branches):
        _check_branch(index, branch)

    required, provided = disjunction_header(branches)
    if not required and not provided:
        raise InvalidBranch(
            "A disjunction must expose at least one variable",
            context={"branches": [b.label for b in branches]},
        )

    header_items: List[Term] = []
    if required:
        header_items.append(Vector(tuple(required)))
    header_items.extend(provided)
    header = Vector(tuple(header_items))

    taken = used_symbols(branches)
    arms = tuple(branch_arm(index, branch, taken) for index, branch in enumerate(branches))
    clause = Sequence((OR_JOIN, header) + arms)

    names = " ".join(b.name if b.name is not None else "_" for b in branches)
    require = _dedupe(s for b in branches for s in b.require)
    logger.debug("or-join over %d branches, header %s", len(branches), header)

    return qslice(
        [clause],
        name=f"or({names})",
        provide=provided,
        require=require,
        locked=True,
    )
