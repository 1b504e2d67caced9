"""
Slice Analyzer: early diagnostics and inventory of fragment lists.

This module provides lightweight analysis of a list of fragments:
    - Provide/require inventory
    - Unsatisfied requirements and unbound must-let variables
    - Clause complexity metrics
    - Private variable names shared between fragments
    - Warning flags for compile-time risk

IMPORTANT: This module does NOT compile and does NOT raise for plan
problems. It only produces read-only reports, so a caller can inspect
everything that is wrong at once instead of the first failure.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence as SequenceT, Set

from qslice.fragment import Fragment
from qslice.terms import Literal, Sequence, Symbol, Term, Vector


@dataclass
class TermMetrics:
    """Metrics about a single clause tree."""
    depth: int = 0
    node_count: int = 0
    symbols: Set[Symbol] = field(default_factory=set)

    def add(self, other: TermMetrics) -> None:
        self.depth = max(self.depth, other.depth)
        self.node_count += other.node_count
        self.symbols.update(other.symbols)


def _analyze_term(term: Optional[Term]) -> TermMetrics:
    """Recursively analyze a clause tree."""
    if term is None:
        return TermMetrics()

    metrics = TermMetrics(node_count=1)

    if isinstance(term, (Sequence, Vector)):
        children = TermMetrics()
        for item in term.items:
            children.add(_analyze_term(item))
        metrics.depth = 1 + children.depth
        metrics.node_count += children.node_count
        metrics.symbols.update(children.symbols)

    elif isinstance(term, Symbol):
        metrics.symbols.add(term)

    elif isinstance(term, Literal):
        # Literals are opaque
        pass

    return metrics


def _slice_label(index: int, fragment: Fragment) -> str:
    return f"{index}:{fragment.label}"


@dataclass
class SliceReport:
    """Analysis report for an ordered list of fragments."""

    total_slices: int = 0
    total_clauses: int = 0
    total_parameters: int = 0
    locked_slices: int = 0

    # Provide / require inventory
    provided_by: Dict[str, List[str]] = field(default_factory=dict)
    unsatisfied: Dict[str, List[str]] = field(default_factory=dict)
    unbound_must_let: Dict[str, List[str]] = field(default_factory=dict)
    unused_provides: Set[str] = field(default_factory=set)

    # Privacy
    owned_vars: Dict[str, List[str]] = field(default_factory=dict)
    shared_private_names: Set[str] = field(default_factory=set)

    # Clause complexity
    max_clause_depth: int = 0
    avg_clause_depth: float = 0.0
    total_term_nodes: int = 0

    # Warnings and flags
    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)


def analyze_slices(slices: SequenceT[Fragment]) -> SliceReport:
    """
    Perform a read-only analysis of a fragment list.

    Checks for:
    - Requirements no other fragment provides
    - Must-let variables without a binding
    - Private variable names used by more than one fragment
    - Clause complexity

    Returns a SliceReport with metrics and warnings.
    """
    slices = list(slices)
    report = SliceReport(total_slices=len(slices))
    labels = [_slice_label(i, f) for i, f in enumerate(slices)]

    # =========================================================================
    # 1. PROVIDE / REQUIRE INVENTORY
    # =========================================================================

    provided_by: Dict[str, List[str]] = defaultdict(list)
    required_anywhere: Set[Symbol] = set()
    for label, fragment in zip(labels, slices):
        for s in fragment.provide:
            provided_by[s.name].append(label)
        required_anywhere.update(fragment.require)
    report.provided_by = dict(provided_by)

    for index, (label, fragment) in enumerate(zip(labels, slices)):
        others: Set[Symbol] = set()
        for other_index, other in enumerate(slices):
            if other_index != index:
                others.update(other.provide)
        unmet = [s.name for s in fragment.require if s not in others]
        if unmet:
            report.unsatisfied[label] = unmet

        unbound = [s.name for s in fragment.unbound_must_let]
        if unbound:
            report.unbound_must_let[label] = unbound

    for fragment in slices:
        for s in fragment.provide:
            if s not in required_anywhere:
                report.unused_provides.add(s.name)

    # =========================================================================
    # 2. COUNTS AND PRIVACY
    # =========================================================================

    private_users: Dict[str, Set[int]] = defaultdict(set)
    for index, (label, fragment) in enumerate(zip(labels, slices)):
        report.total_clauses += len(fragment.where)
        report.total_parameters += len(fragment.let_pairs)
        if fragment.locked:
            report.locked_slices += 1
        report.owned_vars[label] = [s.name for s in fragment.owned_vars]
        for s in fragment.private_vars:
            private_users[s.name].add(index)

    report.shared_private_names = {name for name, users in private_users.items() if len(users) > 1}

    # =========================================================================
    # 3. CLAUSE COMPLEXITY
    # =========================================================================

    all_depths = []
    for fragment in slices:
        for clause in fragment.where:
            metrics = _analyze_term(clause)
            all_depths.append(metrics.depth)
            report.total_term_nodes += metrics.node_count

    if all_depths:
        report.max_clause_depth = max(all_depths)
        report.avg_clause_depth = sum(all_depths) / len(all_depths)

    # =========================================================================
    # 4. WARNING FLAGS
    # =========================================================================

    for label, unmet in report.unsatisfied.items():
        report.add_warning(f"Unsatisfied requirements in {label}: {', '.join(unmet)}")

    for label, unbound in report.unbound_must_let.items():
        report.add_warning(f"Unbound must-let variables in {label}: {', '.join(unbound)}")

    for label, fragment in zip(labels, slices):
        if not fragment.where and not fragment.let_pairs:
            report.add_warning(f"Empty fragment: {label} has no clauses and no bindings")

    names = [f.name for f in slices if f.name is not None]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        report.add_warning(f"Duplicate fragment names: {', '.join(duplicates)}")

    if report.max_clause_depth > 5:
        report.add_warning(f"High clause complexity: max depth {report.max_clause_depth}")

    return report
