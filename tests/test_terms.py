"""
Tests for the qslice Term System

These tests verify:
    - Term objects can be created
    - Symbol naming conventions (variables, specials, operators)
    - Term immutability
    - Metadata is ignored by equality
    - The term_of factory
"""

import pytest
from qslice.terms import (
    DATASOURCE,
    RULESET,
    Keyword,
    Literal,
    Sequence,
    Symbol,
    Term,
    Vector,
    kw,
    seq,
    sym,
    term_of,
    vec,
)


class TestSymbol:
    """Test symbol terms and naming conventions."""

    def test_variable(self):
        """Symbols starting with ? are variables."""
        s = Symbol("?artist")
        assert s.is_variable
        assert not s.is_special

    def test_bare_question_mark_is_not_variable(self):
        """A lone ? names nothing."""
        assert not Symbol("?").is_variable

    def test_datasource_special(self):
        """Symbols starting with $ are datasource specials."""
        assert DATASOURCE.is_datasource
        assert DATASOURCE.is_special
        assert Symbol("$db").is_datasource

    def test_ruleset_special(self):
        """Symbols starting with % are ruleset specials."""
        assert RULESET.is_ruleset
        assert RULESET.is_special

    def test_operator_symbol(self):
        """Other symbols are neither variables nor specials."""
        for name in ["ground", ">", "_", "...", "or-join"]:
            s = Symbol(name)
            assert not s.is_variable
            assert not s.is_special

    def test_symbol_is_term(self):
        assert isinstance(sym("?x"), Term)

    def test_symbol_immutable(self):
        """Symbols should be immutable."""
        s = Symbol("?x")
        with pytest.raises(AttributeError):
            s.name = "?y"

    def test_meta_ignored_by_equality(self):
        """Display metadata must not change identity."""
        assert Symbol("?x", meta={"line": 3}) == Symbol("?x")
        assert hash(Symbol("?x", meta={"line": 3})) == hash(Symbol("?x"))

    def test_with_meta(self):
        s = Symbol("?x").with_meta({"line": 1})
        assert s.meta == {"line": 1}
        assert s == Symbol("?x")


class TestCompositeTerms:
    """Test Sequence and Vector terms."""

    def test_vector_items_are_tuple(self):
        v = Vector([sym("?e"), kw(":a/b"), sym("?v")])
        assert isinstance(v.items, tuple)
        assert v.head == sym("?e")

    def test_empty_head(self):
        assert Vector().head is None
        assert Sequence().head is None

    def test_sequence_and_vector_differ(self):
        """Same items, different shape: not equal."""
        assert Sequence((sym("a"),)) != Vector((sym("a"),))

    def test_seq_and_vec_helpers(self):
        clause = vec(seq(sym(">"), sym("?year"), 1970))
        assert isinstance(clause, Vector)
        assert isinstance(clause.items[0], Sequence)
        assert clause.items[0].items[2] == Literal(1970)


class TestLiteral:
    """Test literal values."""

    def test_keyword_normalized(self):
        """Keywords always carry their leading colon."""
        assert Keyword("artist/name").name == ":artist/name"
        assert kw(":artist/name") == Literal(Keyword(":artist/name"))

    def test_literal_holds_collection(self):
        lit = Literal(["a", "b"])
        assert lit.value == ["a", "b"]


class TestTermOf:
    """Test the term factory."""

    def test_list_becomes_vector(self):
        assert term_of([sym("?e"), 1]) == Vector((sym("?e"), Literal(1)))

    def test_tuple_becomes_sequence(self):
        assert term_of((sym("f"), sym("?x"))) == Sequence((sym("f"), sym("?x")))

    def test_string_is_literal(self):
        """Strings are never read as symbols."""
        assert term_of("?x") == Literal("?x")

    def test_nested(self):
        clause = term_of([(sym("ground"), 1), sym("?x")])
        assert clause == Vector((Sequence((sym("ground"), Literal(1))), sym("?x")))

    def test_term_passes_through(self):
        s = sym("?x")
        assert term_of(s) is s
