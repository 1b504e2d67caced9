"""
Binding forms for qslice parameters.

A binding form names the variables a caller-supplied value is matched
against:

    Symbol                       ?x            scalar
    CollectionBinding(?x)        [?x ...]      each element binds ?x
    TupleBinding(?a, ?b)         [?a ?b]       fixed-arity destructure
    CollectionBinding(Tuple)     [[?a ?b]]     relation

The form decides how the parameter is declared; the value itself is
passed to the execution engine unmodified.
"""

from __future__ import annotations

from collections.abc import Iterable, Sized
from collections.abc import Sequence as SequenceABC
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Mapping, Tuple, Union

from qslice.errors import InvalidBindingForm
from qslice.terms import Symbol, Term, Vector


PLACEHOLDER = Symbol("_")
ELLIPSIS = Symbol("...")


@dataclass(frozen=True)
class CollectionBinding:
    """Binds every element of an iterable value against ``inner``."""

    inner: "BindingForm"


@dataclass(frozen=True)
class TupleBinding:
    """Destructures a fixed-arity value. ``_`` skips a position."""

    items: Tuple["BindingForm", ...]

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(self.items))


BindingForm = Union[Symbol, CollectionBinding, TupleBinding]


class BindingKind(Enum):
    SCALAR = "scalar"
    COLLECTION = "collection"
    TUPLE = "tuple"
    RELATION = "relation"


def coll(inner) -> CollectionBinding:
    return CollectionBinding(binding_of(inner))


def tup(*items) -> TupleBinding:
    return TupleBinding(tuple(binding_of(i) for i in items))


def rel(*items) -> CollectionBinding:
    return CollectionBinding(tup(*items))


def binding_of(obj: Any) -> BindingForm:
    """
    Build a binding form from plain Python data.

        "?x"              -> ?x
        ["?x", "..."]     -> [?x ...]
        ["?a", "?b"]      -> [?a ?b]
        [["?a", "?b"]]    -> [[?a ?b]]
    """
    if isinstance(obj, (Symbol, CollectionBinding, TupleBinding)):
        return obj
    if isinstance(obj, str):
        return Symbol(obj)
    if isinstance(obj, (list, tuple)):
        items = list(obj)
        if len(items) == 2 and items[1] in ("...", ELLIPSIS):
            return CollectionBinding(binding_of(items[0]))
        if len(items) == 1 and isinstance(items[0], (list, tuple, TupleBinding)):
            return CollectionBinding(binding_of(items[0]))
        return TupleBinding(tuple(binding_of(i) for i in items))
    raise InvalidBindingForm(f"Cannot build a binding form from {obj!r}", context={"form": obj})


def binding_kind(form: BindingForm) -> BindingKind:
    if isinstance(form, CollectionBinding):
        if isinstance(form.inner, TupleBinding):
            return BindingKind.RELATION
        return BindingKind.COLLECTION
    if isinstance(form, TupleBinding):
        return BindingKind.TUPLE
    return BindingKind.SCALAR


def validate_form(form: Any, top: bool = True) -> None:
    """Raise InvalidBindingForm unless ``form`` is structurally valid."""
    if isinstance(form, Symbol):
        if form == PLACEHOLDER and not top:
            return
        if not (form.is_variable or form.is_special):
            raise InvalidBindingForm(
                f"Binding symbol {form} is neither a variable nor a special",
                unmet=[form],
            )
        return
    if isinstance(form, CollectionBinding):
        if isinstance(form.inner, Symbol) and form.inner.is_special:
            raise InvalidBindingForm("A special cannot be bound as a collection", unmet=[form.inner])
        validate_form(form.inner, top=False)
        return
    if isinstance(form, TupleBinding):
        if not form.items:
            raise InvalidBindingForm("Tuple binding needs at least one item", context={"form": form})
        for item in form.items:
            if isinstance(item, Symbol) and item.is_special:
                raise InvalidBindingForm("A special cannot be destructured", unmet=[item])
            validate_form(item, top=False)
        if not binding_symbols(form):
            raise InvalidBindingForm("Tuple binding binds nothing", context={"form": form})
        return
    raise InvalidBindingForm(f"Unsupported binding form: {form!r}", context={"form": form})


def binding_symbols(form: BindingForm) -> List[Symbol]:
    """Symbols bound by ``form`` in left-to-right order, placeholders excluded."""
    if isinstance(form, Symbol):
        return [] if form == PLACEHOLDER else [form]
    if isinstance(form, CollectionBinding):
        return binding_symbols(form.inner)
    out: List[Symbol] = []
    for item in form.items:
        out.extend(binding_symbols(item))
    return out


def substitute_binding(form: BindingForm, rename_map: Mapping[Symbol, Symbol]) -> BindingForm:
    if isinstance(form, Symbol):
        return rename_map.get(form, form)
    if isinstance(form, CollectionBinding):
        return CollectionBinding(substitute_binding(form.inner, rename_map))
    return TupleBinding(tuple(substitute_binding(i, rename_map) for i in form.items))


def render_binding(form: BindingForm) -> Term:
    """Render a binding form as the term used in a parameter declaration."""
    if isinstance(form, Symbol):
        return form
    if isinstance(form, CollectionBinding):
        if isinstance(form.inner, TupleBinding):
            return Vector((render_binding(form.inner),))
        return Vector((render_binding(form.inner), ELLIPSIS))
    return Vector(tuple(render_binding(i) for i in form.items))


def _is_collection(value: Any) -> bool:
    return isinstance(value, Iterable) and not isinstance(value, (str, bytes, Mapping))


def check_binding_value(form: BindingForm, value: Any) -> None:
    """
    Check that ``value`` has the shape ``form`` expects.

    Only materialized collections are inspected element by element;
    iterators are accepted as-is so they are never consumed here.
    """
    if isinstance(form, Symbol):
        return
    if isinstance(form, CollectionBinding):
        if not _is_collection(value):
            raise InvalidBindingForm(
                f"Collection binding for {render_binding(form)} needs an iterable value, got {type(value).__name__}",
                unmet=binding_symbols(form),
            )
        if isinstance(value, SequenceABC) and not isinstance(form.inner, Symbol):
            for element in value:
                check_binding_value(form.inner, element)
        return
    if not _is_collection(value):
        raise InvalidBindingForm(
            f"Tuple binding for {render_binding(form)} needs a sequence value, got {type(value).__name__}",
            unmet=binding_symbols(form),
        )
    if isinstance(value, Sized) and len(value) != len(form.items):
        raise InvalidBindingForm(
            f"Tuple binding expects {len(form.items)} values, got {len(value)}",
            unmet=binding_symbols(form),
        )
    if isinstance(value, SequenceABC):
        for item, element in zip(form.items, value):
            check_binding_value(item, element)
