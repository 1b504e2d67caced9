"""
Fragment configuration.

SliceConfig is the plain, typed description a producer hands to
``qslice.fragment.make_qslice``. It carries no behaviour and performs
no validation; the fragment constructor owns every invariant.

Loading from dicts, JSON or YAML lives in ``qslice.serialization``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from qslice.terms import Symbol, Term


@dataclass
class SliceConfig:
    """
    Constructor input for one fragment.

    Properties:
        where:        clauses contributed by the fragment
        name:         label used in diagnostics only
        provide:      symbols exposed for unification by other fragments
        require:      symbols another fragment must provide
        must_let:     variables that must be bound before compilation
        selectivity:  ordering key, smaller sorts earlier
        let:          (binding form, value) pairs
        locked:       freeze bindings after construction
        extra:        caller bookkeeping, carried through untouched
    """

    where: List[Term] = field(default_factory=list)
    name: Optional[str] = None
    provide: List[Symbol] = field(default_factory=list)
    require: List[Symbol] = field(default_factory=list)
    must_let: List[Symbol] = field(default_factory=list)
    selectivity: int = 0
    let: List[Tuple[Any, Any]] = field(default_factory=list)
    locked: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)
