"""
Tests for term walking: substitution and symbol collection.
"""

from qslice.terms import Literal, Sequence, Symbol, Vector, kw, seq, sym, vec
from qslice.walk import free_symbols, postwalk, substitute, symbols_in_order, unused_symbol


class TestSubstitute:
    """Test symbol substitution."""

    def test_replaces_mapped_symbols(self):
        clause = vec(sym("?e"), kw(":a/b"), sym("?v"))
        out = substitute(clause, {sym("?v"): sym("?v2")})
        assert out == vec(sym("?e"), kw(":a/b"), sym("?v2"))

    def test_recurses_into_sequences_and_vectors(self):
        clause = vec(seq(sym(">"), sym("?x"), 1), sym("?y"))
        out = substitute(clause, {sym("?x"): sym("?z"), sym("?y"): sym("?w")})
        assert out == vec(seq(sym(">"), sym("?z"), 1), sym("?w"))

    def test_position_agnostic(self):
        """Call clauses and pattern clauses are renamed the same way."""
        rename = {sym("?x"): sym("?q")}
        assert substitute(seq(sym("rule"), sym("?x")), rename) == seq(sym("rule"), sym("?q"))
        assert substitute(vec(sym("rule"), sym("?x")), rename) == vec(sym("rule"), sym("?q"))

    def test_literals_untouched(self):
        """A literal that looks like a symbol is not a symbol."""
        clause = vec(sym("?x"), Literal("?x"), Literal([sym("?x")]))
        out = substitute(clause, {sym("?x"): sym("?y")})
        assert out.items[1] == Literal("?x")
        assert out.items[2] == Literal([sym("?x")])

    def test_empty_map_returns_same_term(self):
        clause = vec(sym("?x"))
        assert substitute(clause, {}) is clause

    def test_metadata_preserved_on_replacement(self):
        """The replacement inherits the metadata of the node it replaces."""
        clause = Vector((Symbol("?x", meta={"line": 4}),), meta={"source": "artist"})
        out = substitute(clause, {sym("?x"): sym("?y")})
        assert out.meta == {"source": "artist"}
        assert out.items[0].name == "?y"
        assert out.items[0].meta == {"line": 4}

    def test_replacement_metadata_wins(self):
        clause = Vector((Symbol("?x", meta={"line": 4, "k": 1}),))
        out = substitute(clause, {sym("?x"): Symbol("?y", meta={"k": 2})})
        assert out.items[0].meta == {"line": 4, "k": 2}


class TestPostwalk:
    def test_postwalk_visits_children_first(self):
        visited = []

        def record(node):
            visited.append(node)
            return node

        clause = vec(sym("?a"), seq(sym("f"), sym("?b")))
        postwalk(record, clause)
        assert visited[0] == sym("?a")
        assert visited[-1] == clause


class TestSymbolCollection:
    def test_free_symbols(self):
        clause = vec(seq(sym("ground"), 1), sym("?x"))
        assert free_symbols(clause) == {sym("ground"), sym("?x")}

    def test_free_symbols_ignores_literals(self):
        assert free_symbols(Literal("?x")) == frozenset()

    def test_symbols_in_order(self):
        clauses = [vec(sym("?b"), sym("?a")), Sequence((sym("?a"), sym("?c")))]
        assert symbols_in_order(clauses) == [sym("?b"), sym("?a"), sym("?c")]


class TestDeepNesting:
    """Walks do not depend on the interpreter's recursion limit."""

    DEPTH = 5000

    def nested(self):
        clause = sym("?x")
        for _ in range(self.DEPTH):
            clause = Vector((clause,))
        return clause

    def test_substitute_deep_tree(self):
        out = substitute(self.nested(), {sym("?x"): sym("?y")})
        assert free_symbols(out) == {sym("?y")}

    def test_symbols_in_order_deep_tree(self):
        assert symbols_in_order([self.nested()]) == [sym("?x")]


class TestUnusedSymbol:
    def test_free_name_used_as_is(self):
        taken = set()
        assert unused_symbol("?x__0_0", taken) == sym("?x__0_0")
        assert taken == {sym("?x__0_0")}

    def test_taken_name_gets_suffix(self):
        taken = {sym("?x__0_0"), sym("?x__0_0_1")}
        assert unused_symbol("?x__0_0", taken) == sym("?x__0_0_2")
