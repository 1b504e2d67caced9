"""
Tests for binding forms: construction, validation, rendering and
value shape checks.
"""

import pytest
from qslice.bindings import (
    BindingKind,
    CollectionBinding,
    TupleBinding,
    binding_kind,
    binding_of,
    binding_symbols,
    check_binding_value,
    coll,
    rel,
    render_binding,
    substitute_binding,
    tup,
    validate_form,
)
from qslice.errors import InvalidBindingForm
from qslice.terms import Symbol, Vector, sym


class TestBindingOf:
    """Test building forms from plain data."""

    def test_scalar(self):
        assert binding_of("?x") == sym("?x")

    def test_collection(self):
        assert binding_of(["?x", "..."]) == CollectionBinding(sym("?x"))

    def test_tuple(self):
        assert binding_of(["?a", "?b"]) == TupleBinding((sym("?a"), sym("?b")))

    def test_relation(self):
        assert binding_of([["?a", "?b"]]) == CollectionBinding(TupleBinding((sym("?a"), sym("?b"))))

    def test_helpers_agree(self):
        assert coll("?x") == binding_of(["?x", "..."])
        assert tup("?a", "?b") == binding_of(["?a", "?b"])
        assert rel("?a", "?b") == binding_of([["?a", "?b"]])

    def test_rejects_unknown(self):
        with pytest.raises(InvalidBindingForm):
            binding_of(42)


class TestBindingKind:
    def test_kinds(self):
        assert binding_kind(sym("?x")) is BindingKind.SCALAR
        assert binding_kind(coll("?x")) is BindingKind.COLLECTION
        assert binding_kind(tup("?a", "?b")) is BindingKind.TUPLE
        assert binding_kind(rel("?a", "?b")) is BindingKind.RELATION


class TestRendering:
    """Binding forms render as datalog parameter declarations."""

    def test_scalar(self):
        assert render_binding(sym("?x")) == sym("?x")

    def test_collection(self):
        assert render_binding(coll("?x")) == Vector((sym("?x"), Symbol("...")))

    def test_tuple(self):
        assert render_binding(tup("?a", "_")) == Vector((sym("?a"), sym("_")))

    def test_relation(self):
        assert render_binding(rel("?a", "?b")) == Vector((Vector((sym("?a"), sym("?b"))),))


class TestSymbols:
    def test_placeholders_excluded(self):
        assert binding_symbols(tup("?a", "_", "?b")) == [sym("?a"), sym("?b")]

    def test_nested(self):
        assert binding_symbols(rel("?a", "?b")) == [sym("?a"), sym("?b")]

    def test_substitute(self):
        form = rel("?a", "?b")
        out = substitute_binding(form, {sym("?a"): sym("?z")})
        assert out == rel("?z", "?b")


class TestValidateForm:
    def test_operator_symbol_rejected(self):
        with pytest.raises(InvalidBindingForm):
            validate_form(sym("ground"))

    def test_top_level_placeholder_rejected(self):
        with pytest.raises(InvalidBindingForm):
            validate_form(sym("_"))

    def test_empty_tuple_rejected(self):
        with pytest.raises(InvalidBindingForm):
            validate_form(TupleBinding(()))

    def test_all_placeholder_tuple_rejected(self):
        with pytest.raises(InvalidBindingForm):
            validate_form(tup("_", "_"))

    def test_special_collection_rejected(self):
        with pytest.raises(InvalidBindingForm):
            validate_form(coll("$"))

    def test_special_scalar_accepted(self):
        validate_form(sym("$"))


class TestCheckValue:
    """Value shape checks."""

    def test_collection_needs_iterable(self):
        with pytest.raises(InvalidBindingForm):
            check_binding_value(coll("?x"), 5)

    def test_collection_rejects_string(self):
        """A string is a scalar, not a collection of characters."""
        with pytest.raises(InvalidBindingForm):
            check_binding_value(coll("?x"), "ab")

    def test_collection_accepts_list_and_set(self):
        check_binding_value(coll("?x"), ["a", "b"])
        check_binding_value(coll("?x"), {"a", "b"})

    def test_iterator_not_consumed(self):
        values = iter([("a", 1), ("b", 2)])
        check_binding_value(rel("?k", "?v"), values)
        assert next(values) == ("a", 1)

    def test_tuple_arity(self):
        with pytest.raises(InvalidBindingForm):
            check_binding_value(tup("?a", "?b"), [1, 2, 3])

    def test_relation_rows_checked(self):
        with pytest.raises(InvalidBindingForm):
            check_binding_value(rel("?a", "?b"), [(1, 2), (3,)])

    def test_scalar_accepts_anything(self):
        check_binding_value(sym("?x"), object())
