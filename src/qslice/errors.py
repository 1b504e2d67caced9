"""
Structured errors raised by qslice.

Every failure carries:
    kind:      ErrorKind tag
    message:   human-readable description
    fragment:  snapshot of the offending fragment (if any)
    unmet:     the symbols that caused the failure
    context:   any further detail, as a plain dict

Failures are raised at the earliest stage that can detect them:
construction, then binding, then compilation.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple


class ErrorKind(Enum):
    INVALID_CONFIGURATION = "invalid-configuration"
    INVALID_BINDING_FORM = "invalid-binding-form"
    LOCKED_FRAGMENT = "locked-fragment"
    UNSATISFIED_REQUIREMENT = "unsatisfied-requirement"
    UNSATISFIED_MUST_LET = "unsatisfied-must-let"
    INVALID_BRANCH = "invalid-branch"


class QSliceError(Exception):
    """Base class for all qslice failures."""

    kind: ErrorKind

    def __init__(
        self,
        message: str,
        fragment: Any = None,
        unmet: Iterable[Any] = (),
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.fragment = fragment
        self.unmet: Tuple[Any, ...] = tuple(unmet)
        self.context: Dict[str, Any] = dict(context or {})

    def __str__(self) -> str:
        if self.unmet:
            names = " ".join(str(u) for u in self.unmet)
            return f"{self.message} [{names}]"
        return self.message


class InvalidConfiguration(QSliceError):
    """Raised when a fragment is malformed at construction."""
    kind = ErrorKind.INVALID_CONFIGURATION


class InvalidBindingForm(QSliceError):
    """Raised when a binding form or its value cannot be bound."""
    kind = ErrorKind.INVALID_BINDING_FORM


class LockedFragment(QSliceError):
    """Raised when binding a locked fragment."""
    kind = ErrorKind.LOCKED_FRAGMENT


class UnsatisfiedRequirement(QSliceError):
    """Raised when no other fragment provides a required symbol."""
    kind = ErrorKind.UNSATISFIED_REQUIREMENT


class UnsatisfiedMustLet(QSliceError):
    """Raised when a must-let variable is still unbound at compile time."""
    kind = ErrorKind.UNSATISFIED_MUST_LET


class InvalidBranch(QSliceError):
    """Raised when a fragment cannot be used as a disjunction branch."""
    kind = ErrorKind.INVALID_BRANCH
