"""
qslice: composable datalog query fragments.

A query is assembled from independently-authored fragments. Each
fragment declares the variables it provides and requires, carries its
own parameter bindings, and keeps its other variables private. The
compiler checks that every requirement is met, orders the fragments by
selectivity, renames private variables so they cannot unify by
accident, and emits one deterministic program.

This package contains ZERO knowledge of:
    - Query execution
    - Any particular domain query language

All execution happens in the engine that consumes the compiled program.
"""

__version__ = "0.1.0"
