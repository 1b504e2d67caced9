"""
Serialization helpers for qslice objects (Term, BindingForm, Fragment, SliceConfig).

Provides JSON/YAML round-trip via an intermediate dict representation.
Fragments are decoded back through the constructor, so every invariant
is checked again on load. Let values must be JSON/YAML representable.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List

import yaml

from qslice.bindings import BindingForm, CollectionBinding, TupleBinding
from qslice.config import SliceConfig
from qslice.fragment import Fragment, make_qslice
from qslice.terms import Keyword, Literal, Sequence, Symbol, Term, Vector


def _value_to_data(value: Any) -> Any:
    """Encode keywords anywhere inside a literal or let value. Tuples become lists."""
    if isinstance(value, Keyword):
        return {"type": "kw", "name": value.name}
    if isinstance(value, (list, tuple)):
        return [_value_to_data(v) for v in value]
    if isinstance(value, dict):
        return {k: _value_to_data(v) for k, v in value.items()}
    return value


def _value_from_data(d: Any) -> Any:
    if isinstance(d, dict):
        if d.get("type") == "kw":
            return Keyword(d["name"])
        return {k: _value_from_data(v) for k, v in d.items()}
    if isinstance(d, list):
        return [_value_from_data(v) for v in d]
    return d


def term_to_dict(term: Term) -> Dict[str, Any]:
    if isinstance(term, Symbol):
        d: Dict[str, Any] = {"type": "sym", "name": term.name}
    elif isinstance(term, Sequence):
        d = {"type": "seq", "items": [term_to_dict(i) for i in term.items]}
    elif isinstance(term, Vector):
        d = {"type": "vec", "items": [term_to_dict(i) for i in term.items]}
    elif isinstance(term, Literal):
        d = {"type": "lit", "value": _value_to_data(term.value)}
    else:
        raise TypeError(f"Unsupported Term type: {type(term)}")
    if term.meta:
        d["meta"] = dict(term.meta)
    return d


def term_from_dict(d: Dict[str, Any]) -> Term:
    t = d.get("type")
    meta = d.get("meta")
    if t == "sym":
        return Symbol(d["name"], meta=meta)
    if t == "seq":
        return Sequence(tuple(term_from_dict(i) for i in d.get("items", [])), meta=meta)
    if t == "vec":
        return Vector(tuple(term_from_dict(i) for i in d.get("items", [])), meta=meta)
    if t == "lit":
        return Literal(_value_from_data(d.get("value")), meta=meta)
    raise TypeError(f"Unsupported term dict type: {t}")


def binding_to_dict(form: BindingForm) -> Dict[str, Any]:
    if isinstance(form, Symbol):
        return {"type": "sym", "name": form.name}
    if isinstance(form, CollectionBinding):
        return {"type": "coll", "inner": binding_to_dict(form.inner)}
    if isinstance(form, TupleBinding):
        return {"type": "tuple", "items": [binding_to_dict(i) for i in form.items]}
    raise TypeError(f"Unsupported binding form: {type(form)}")


def binding_from_dict(d: Dict[str, Any]) -> BindingForm:
    t = d.get("type")
    if t == "sym":
        return Symbol(d["name"])
    if t == "coll":
        return CollectionBinding(binding_from_dict(d["inner"]))
    if t == "tuple":
        return TupleBinding(tuple(binding_from_dict(i) for i in d.get("items", [])))
    raise TypeError(f"Unsupported binding dict type: {t}")


def _symbols_to_list(symbols) -> List[str]:
    return [s.name for s in symbols]


def fragment_to_dict(f: Fragment) -> Dict[str, Any]:
    return {
        "name": f.name,
        "where": [term_to_dict(c) for c in f.where],
        "provide": _symbols_to_list(f.provide),
        "require": _symbols_to_list(f.require),
        "must_let": _symbols_to_list(f.must_let),
        "selectivity": f.selectivity,
        "let": [{"form": binding_to_dict(form), "value": _value_to_data(value)} for form, value in f.let_pairs],
        "locked": f.locked,
        "extra": dict(f.extra),
    }


def config_from_dict(d: Dict[str, Any]) -> SliceConfig:
    return SliceConfig(
        where=[term_from_dict(c) for c in d.get("where", [])],
        name=d.get("name"),
        provide=[Symbol(s) for s in d.get("provide", [])],
        require=[Symbol(s) for s in d.get("require", [])],
        must_let=[Symbol(s) for s in d.get("must_let", [])],
        selectivity=d.get("selectivity", 0),
        let=[(binding_from_dict(p["form"]), _value_from_data(p.get("value"))) for p in d.get("let", [])],
        locked=d.get("locked", False),
        extra=d.get("extra", {}),
    )


def fragment_from_dict(d: Dict[str, Any]) -> Fragment:
    return make_qslice(config_from_dict(d))


def fragment_to_json(f: Fragment) -> str:
    return json.dumps(fragment_to_dict(f), sort_keys=True)


def fragment_from_json(s: str) -> Fragment:
    d = json.loads(s)
    return fragment_from_dict(d)


def fragment_to_yaml(f: Fragment) -> str:
    return yaml.safe_dump(fragment_to_dict(f))


def fragment_from_yaml(s: str) -> Fragment:
    d = yaml.safe_load(s)
    return fragment_from_dict(d)


def slice_config_from_yaml(s: str) -> SliceConfig:
    d = yaml.safe_load(s)
    return config_from_dict(d)
