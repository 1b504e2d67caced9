"""Backends for qslice output generation (EDN)."""

from .edn import query_to_edn, save_edn_file, term_to_edn, value_to_edn

__all__ = ["query_to_edn", "save_edn_file", "term_to_edn", "value_to_edn"]
