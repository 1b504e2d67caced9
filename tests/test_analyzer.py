"""
Tests for the Slice Analyzer.

Tests verify that the analyzer correctly:
    - Inventories provided and required symbols
    - Detects unsatisfied requirements and unbound must-let variables
    - Finds private names shared between fragments
    - Measures clause complexity
    - Never raises for plan problems
"""

from qslice.analyzer import analyze_slices
from qslice.examples import build_example_artist_or_slice, build_example_track_slices
from qslice.fragment import qslice
from qslice.terms import kw, seq, sym, vec


def test_example_slices_are_clean():
    """The example fragment set has nothing to warn about."""
    report = analyze_slices(build_example_track_slices())

    assert report.total_slices == 4
    assert report.total_clauses == 6
    assert report.total_parameters == 3
    assert report.unsatisfied == {}
    assert report.unbound_must_let == {}
    assert report.provided_by["?a"] == ["3:artist"]
    assert report.provided_by["$"] == ["0:db"]
    assert report.warnings == []


def test_unsatisfied_requirement_reported():
    """Analysis reports every gap instead of raising on the first."""
    track = qslice([vec(sym("?t"), kw(":track/name"), sym("?title"))], name="track", provide=["?title"], require=["?t"])
    report = analyze_slices([track])

    assert report.unsatisfied == {"0:track": ["?t", "$"]}
    assert any("Unsatisfied requirements in 0:track" in w for w in report.warnings)


def test_unbound_must_let_reported():
    artist = qslice(
        [vec(sym("?a"), kw(":artist/name"), sym("?n"))],
        name="artist",
        provide=["?a"],
        must_let=["?n"],
    )
    report = analyze_slices([artist])

    assert report.unbound_must_let == {"0:artist": ["?n"]}
    assert any("Unbound must-let" in w for w in report.warnings)


def test_unused_provides():
    a = qslice([vec(sym("?a"), kw(":artist/name"), "x")], provide=["?a"])
    report = analyze_slices([a])
    assert report.unused_provides == {"?a"}


def test_shared_private_names():
    """Two fragments both using ?x privately are flagged; the compiler renames them."""
    a = qslice([vec(sym("?e"), kw(":a/x"), sym("?x"))], name="a", provide=["?e"])
    b = qslice([vec(sym("?e"), kw(":b/x"), sym("?x"))], name="b", provide=["?e"])
    report = analyze_slices([a, b])

    assert report.shared_private_names == {"?x"}
    assert report.owned_vars == {"0:a": ["?x"], "1:b": ["?x"]}


def test_clause_complexity():
    flat = vec(sym("?e"), kw(":a/b"), 1)
    nested = vec(seq(sym(">"), seq(sym("inc"), sym("?e")), 1))
    report = analyze_slices([qslice([flat, nested], provide=["?e"])])

    assert report.max_clause_depth == 3
    assert report.avg_clause_depth == 2.0
    # flat: 4 nodes, nested: 7 nodes
    assert report.total_term_nodes == 4 + 7


def test_deep_clause_warning():
    clause = sym("?e")
    for _ in range(6):
        clause = seq(sym("f"), clause)
    report = analyze_slices([qslice([vec(clause)], provide=["?e"])])

    assert report.max_clause_depth == 7
    assert any("High clause complexity" in w for w in report.warnings)


def test_empty_and_duplicate_fragments():
    report = analyze_slices([qslice([], name="x"), qslice([], name="x")])

    assert "Empty fragment: 0:x has no clauses and no bindings" in report.warnings
    assert "Duplicate fragment names: x" in report.warnings


def test_locked_counted():
    report = analyze_slices([build_example_artist_or_slice()])
    assert report.locked_slices == 1
    assert report.total_clauses == 1
