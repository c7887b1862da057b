"""
Consensus structure prediction for one family.

StructurePredictor wraps one folding backend and one FoldingMode, chosen once
per family by configuration:

    FoldingMode.THERMODYNAMIC    -> RNAalifoldBackend, crossing-free output
    FoldingMode.PSEUDOKNOT_AWARE -> IPknotBackend, crossing pairs allowed

When a constraint cannot be honored the predictor falls back to the
unconstrained structure and marks the result as degraded instead of failing.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from enum import Enum

from .backends import FoldingBackend, FoldResult, IPknotBackend, RNAalifoldBackend
from .constraint import constraint_pairs
from .errors import ConstraintUnsatisfiable
from .stockholm import AlignmentRecord
from .structure import crossing_counts, has_crossing, pairs_to_dotbracket

__all__ = [
    "FoldingMode",
    "ConsensusStructure",
    "StructurePredictor",
    "normalize_pairs",
    "remove_crossings",
    "satisfies_constraint",
    "make_predictor",
]


class FoldingMode(str, Enum):
    THERMODYNAMIC = "thermodynamic"
    PSEUDOKNOT_AWARE = "pseudoknot"


@dataclass(frozen=True)
class ConsensusStructure:
    pairs: tuple[tuple[int, int], ...]
    n_columns: int
    mode: FoldingMode
    confidence: dict[tuple[int, int], float] = field(default_factory=dict)
    constrained: bool = False
    degraded: bool = False

    def dotbracket(self) -> str:
        return pairs_to_dotbracket(self.pairs, self.n_columns)

    def has_crossing(self) -> bool:
        return has_crossing(self.pairs)

    def pair_confidence(self, pair: tuple[int, int]) -> float:
        return self.confidence.get(pair, 1.0)


def normalize_pairs(
    pairs,
    n_columns: int,
    confidence: dict[tuple[int, int], float] | None = None,
) -> list[tuple[int, int]]:
    """
    Order every pair as (i, j) with i < j, drop out-of-range and self pairs,
    and make the result a matching: when two pairs share a column the one
    with higher confidence wins (earlier pair on ties).
    """
    confidence = confidence or {}
    cleaned: list[tuple[int, int]] = []
    for i, j in pairs:
        if i > j:
            i, j = j, i
        if i == j or i < 0 or j >= n_columns:
            continue
        cleaned.append((i, j))

    ranked = sorted(set(cleaned), key=lambda p: (-confidence.get(p, 1.0), p))
    used: set[int] = set()
    kept: list[tuple[int, int]] = []
    for i, j in ranked:
        if i in used or j in used:
            continue
        used.add(i)
        used.add(j)
        kept.append((i, j))
    kept.sort()
    return kept


def remove_crossings(
    pairs,
    confidence: dict[tuple[int, int], float] | None = None,
) -> list[tuple[int, int]]:
    """
    Greedily drop the "worst" crossing pair until no crossings remain.

    "Worst" = highest crossing count, tie-broken by lowest confidence and
    then by the later pair, so the result does not depend on input order.
    """
    confidence = confidence or {}
    current = set(pairs)
    while True:
        counts = crossing_counts(current)
        crossing = [p for p, c in counts.items() if c > 0]
        if not crossing:
            break
        worst = max(crossing, key=lambda p: (counts[p], -confidence.get(p, 1.0), p))
        current.remove(worst)
    return sorted(current)


def satisfies_constraint(pairs, constraint: str) -> bool:
    """True if every pair demanded by the constraint is present."""
    return set(constraint_pairs(constraint)).issubset(set(pairs))


class StructurePredictor:
    def __init__(self, backend: FoldingBackend, mode: FoldingMode, verbosity: int = 1):
        self.backend = backend
        self.mode = FoldingMode(mode)
        self.verbosity = verbosity

    def __repr__(self) -> str:
        return f"StructurePredictor(backend={self.backend.name!r}, mode={self.mode.value!r})"

    def _fold(self, record: AlignmentRecord, constraint: str | None) -> FoldResult:
        return self.backend.fold(record.aligned_sequences(), constraint)

    def predict_consensus_structure(
        self,
        record: AlignmentRecord,
        constraint: str | None = None,
    ) -> ConsensusStructure:
        n_columns = record.n_columns
        degraded = False

        if constraint is None:
            result = self._fold(record, None)
        else:
            try:
                result = self._fold(record, constraint)
                if not satisfies_constraint(result.pairs, constraint):
                    raise ConstraintUnsatisfiable(
                        f"{self.backend.name} structure does not contain every constrained pair"
                    )
            except ConstraintUnsatisfiable as e:
                sys.stderr.write(
                    f"[WARN] {record.family_id}: constraint not satisfiable ({e}); "
                    "falling back to unconstrained folding.\n"
                )
                result = self._fold(record, None)
                degraded = True

        confidence = {
            (min(i, j), max(i, j)): max(0.0, min(1.0, float(v)))
            for (i, j), v in (result.confidence or {}).items()
        }
        pairs = normalize_pairs(result.pairs, n_columns, confidence)

        if self.mode is FoldingMode.THERMODYNAMIC and has_crossing(pairs):
            before = len(pairs)
            pairs = remove_crossings(pairs, confidence)
            sys.stderr.write(
                f"[WARN] {record.family_id}: {self.backend.name} returned crossing pairs; "
                f"removed {before - len(pairs)} to keep the structure nested.\n"
            )

        if self.verbosity >= 3:
            sys.stderr.write(
                f"[PREDICT] {record.family_id} ({self.mode.value}): "
                f"{pairs_to_dotbracket(pairs, n_columns)}\n"
            )

        return ConsensusStructure(
            pairs=tuple(pairs),
            n_columns=n_columns,
            mode=self.mode,
            confidence={p: confidence[p] for p in pairs if p in confidence},
            constrained=constraint is not None and not degraded,
            degraded=degraded,
        )


def make_predictor(config) -> StructurePredictor:
    """Pick the backend for `config.pseudoknot`; never mixed within a family."""
    if config.pseudoknot:
        backend: FoldingBackend = IPknotBackend(
            exe=config.ipknot.exe,
            extra_args=tuple(config.ipknot.extra_args),
        )
        mode = FoldingMode.PSEUDOKNOT_AWARE
    else:
        backend = RNAalifoldBackend(
            exe=config.alifold.exe,
            temperature=config.alifold.temperature,
            extra_args=tuple(config.alifold.extra_args),
        )
        mode = FoldingMode.THERMODYNAMIC
    return StructurePredictor(backend, mode, verbosity=config.verbosity)
