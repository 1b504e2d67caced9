"""
EDN text generator for compiled qslice queries.

Converts terms and CompiledQuery objects into the EDN query form read
by datalog engines:

    [:find ?name :in $ ?year :where [?a :artist/name ?name] ...]

Only the query is rendered. Arguments stay Python values and are
handed to the engine separately.
"""

from typing import Any, Iterable

from qslice.compiler import CompiledQuery
from qslice.terms import Keyword, Literal, Sequence, Symbol, Term, Vector


def _escape_edn_string(s: str) -> str:
    """Escape special characters for EDN strings."""
    s = s.replace('\\', '\\\\')
    s = s.replace('"', '\\"')
    s = s.replace('\n', '\\n')
    s = s.replace('\t', '\\t')
    return f'"{s}"'


def _join(items: Iterable[Any]) -> str:
    return " ".join(value_to_edn(i) for i in items)


def value_to_edn(value: Any) -> str:
    """Render a Python value (or a term) as EDN."""
    if isinstance(value, Term):
        return term_to_edn(value)
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Keyword):
        return value.name
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return _escape_edn_string(value)
    if isinstance(value, (list, tuple)):
        return f"[{_join(value)}]"
    if isinstance(value, (set, frozenset)):
        return "#{" + " ".join(sorted(value_to_edn(v) for v in value)) + "}"
    if isinstance(value, dict):
        pairs = [f"{value_to_edn(k)} {value_to_edn(v)}" for k, v in value.items()]
        return "{" + ", ".join(pairs) + "}"
    raise TypeError(f"Cannot render {type(value).__name__} as EDN")


def term_to_edn(term: Term) -> str:
    if isinstance(term, Symbol):
        return term.name
    if isinstance(term, Sequence):
        return f"({_join(term.items)})"
    if isinstance(term, Vector):
        return f"[{_join(term.items)}]"
    if isinstance(term, Literal):
        return value_to_edn(term.value)
    raise TypeError(f"Unsupported Term type: {type(term)}")


def _find_to_edn(find: Any) -> str:
    if isinstance(find, str):
        return find
    if isinstance(find, Term):
        return term_to_edn(find)
    return _join(find)


def query_to_edn(compiled: CompiledQuery) -> str:
    """
    Render the query part of a CompiledQuery.

    ``find`` is emitted verbatim when it is a string, otherwise rendered
    item by item. ``:in`` is omitted when there are no parameters.
    """
    query = compiled.query
    parts = [":find", _find_to_edn(query["find"])]
    if query["in"]:
        parts.append(":in")
        parts.append(_join(query["in"]))
    parts.append(":where")
    parts.append(_join(query["where"]))
    return "[" + " ".join(parts) + "]"


def save_edn_file(compiled: CompiledQuery, filename: str) -> None:
    """
    Render the query and save it to a file.

    Args:
        compiled: CompiledQuery to render
        filename: Output file path (.edn extension recommended)
    """
    edn = query_to_edn(compiled)
    with open(filename, 'w') as f:
        f.write(edn)


__all__ = ["query_to_edn", "save_edn_file", "term_to_edn", "value_to_edn"]
