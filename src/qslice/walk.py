"""
Tree walking for qslice terms.

A post-order walk that rebuilds Sequence and Vector nodes and keeps
every node's display metadata. Sequence and Vector are walked
identically; Literals are leaves and are never entered.

Walks use an explicit stack, so nesting depth is not bounded by the
interpreter's recursion limit.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Set, Tuple

from qslice.terms import Sequence, Symbol, Term, Vector


def _merge_meta(original: Term, result: Term) -> Term:
    if not isinstance(result, Term) or original.meta is None or result.meta is original.meta:
        return result
    merged = dict(original.meta)
    if result.meta:
        merged.update(result.meta)
    return result.with_meta(merged)


def postwalk(fn: Callable[[Term], Term], term: Term) -> Term:
    """Apply ``fn`` to every node bottom-up, preserving metadata."""
    results: List[Term] = []
    stack: List[Tuple[Term, bool]] = [(term, False)]
    while stack:
        node, expanded = stack.pop()
        composite = isinstance(node, (Sequence, Vector))
        if composite and not expanded:
            stack.append((node, True))
            stack.extend((item, False) for item in reversed(node.items))
            continue
        if composite:
            count = len(node.items)
            items: Tuple[Term, ...] = ()
            if count:
                items = tuple(results[-count:])
                del results[-count:]
            rebuilt = replace(node, items=items)
        else:
            rebuilt = node
        results.append(_merge_meta(node, fn(rebuilt)))
    return results[0]


def substitute(term: Term, rename_map: Mapping[Symbol, Symbol]) -> Term:
    """
    Replace every Symbol that is a key of ``rename_map``.

    The replacement keeps the metadata of the node it replaces.
    Literal values pass through untouched.
    """
    if not rename_map:
        return term

    def _replace(node: Term) -> Term:
        if isinstance(node, Symbol):
            return rename_map.get(node, node)
        return node

    return postwalk(_replace, term)


def _collect(term: Term, out: List[Symbol]) -> None:
    stack: List[Term] = [term]
    while stack:
        node = stack.pop()
        if isinstance(node, Symbol):
            out.append(node)
        elif isinstance(node, (Sequence, Vector)):
            stack.extend(reversed(node.items))


def free_symbols(term: Term) -> FrozenSet[Symbol]:
    """All Symbol leaves of a term."""
    out: List[Symbol] = []
    _collect(term, out)
    return frozenset(out)


def symbols_in_order(terms: Iterable[Term]) -> List[Symbol]:
    """Symbol leaves of ``terms`` in first-occurrence order, without duplicates."""
    seen: Dict[Symbol, None] = {}
    for term in terms:
        out: List[Symbol] = []
        _collect(term, out)
        for symbol in out:
            seen.setdefault(symbol, None)
    return list(seen)


def unused_symbol(name: str, taken: Set[Symbol]) -> Symbol:
    """
    ``Symbol(name)``, or ``name`` with the smallest ``_<n>`` suffix that
    is not in ``taken``. The chosen symbol is added to ``taken``.
    """
    candidate = Symbol(name)
    suffix = 0
    while candidate in taken:
        suffix += 1
        candidate = Symbol(f"{name}_{suffix}")
    taken.add(candidate)
    return candidate
