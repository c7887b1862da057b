"""
Decompose a consensus structure into structural elements at several
stringency cutoffs.

For every cutoff the columns of the alignment are partitioned into:

    stem       maximal run of stacked pairs (i, j), (i+1, j-1), ...
    hairpin    unpaired columns of a loop closed by a pair with no inner stem
    bulge      one inner stem, unpaired columns on one side only
    internal   one inner stem, unpaired columns on both sides
    multiloop  two or more inner stems
    exterior   unpaired columns not enclosed by any pair

A pair whose columns have a confidence below the cutoff is read as unpaired
in that profile only. Loops are assigned using the nested (first) layer of
the remaining pairs; stems built from crossing pairs are flagged as
pseudoknots. Each profile is computed on its own, so the cutoff order only
determines the output order.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Sequence

from .errors import PartitionInvariantViolation
from .predictor import ConsensusStructure
from .stockholm import GAP_CHARS, AlignmentRecord
from .structure import is_canonical_pair, pairs_to_layers

__all__ = [
    "ElementKind",
    "ColumnStats",
    "StructuralElement",
    "MotifProfile",
    "compute_column_stats",
    "partition",
    "partition_at",
    "verify_coverage",
]


class ElementKind(str, Enum):
    STEM = "stem"
    HAIRPIN = "hairpin"
    BULGE = "bulge"
    INTERNAL = "internal"
    MULTILOOP = "multiloop"
    EXTERIOR = "exterior"


@dataclass(frozen=True)
class ColumnStats:
    """
    Per-column statistics of one family.

    conservation : frequency of the most common residue (gaps count against it)
    gap_fraction : fraction of sequences with a gap
    confidence   : for paired columns, fraction of sequences forming a
                   canonical pair there times the backend's pair confidence;
                   0.0 for unpaired columns
    """

    conservation: tuple[float, ...]
    gap_fraction: tuple[float, ...]
    confidence: tuple[float, ...]

    @property
    def n_columns(self) -> int:
        return len(self.conservation)


@dataclass(frozen=True)
class StructuralElement:
    kind: ElementKind
    ranges: tuple[tuple[int, int], ...]
    score: float
    pseudoknot: bool = False

    @property
    def start(self) -> int:
        return self.ranges[0][0]

    def columns(self) -> Iterator[int]:
        for start, end in self.ranges:
            yield from range(start, end)

    def size(self) -> int:
        return sum(end - start for start, end in self.ranges)


@dataclass(frozen=True)
class MotifProfile:
    cutoff: float
    elements: tuple[StructuralElement, ...]
    n_columns: int
    unconstrained_fallback: bool = False

    def count(self, kind: ElementKind) -> int:
        return sum(1 for e in self.elements if e.kind is kind)

    def stems(self) -> list[StructuralElement]:
        return [e for e in self.elements if e.kind is ElementKind.STEM]


# ---------------------------------------------------------------------------
# Column statistics
# ---------------------------------------------------------------------------

def compute_column_stats(record: AlignmentRecord, consensus: ConsensusStructure) -> ColumnStats:
    rows = [row.upper().replace("T", "U") for row in record.aligned_sequences()]
    n_rows = len(rows)
    n_columns = consensus.n_columns

    conservation: list[float] = []
    gap_fraction: list[float] = []
    for col in range(n_columns):
        counts: dict[str, int] = {}
        gaps = 0
        for row in rows:
            ch = row[col]
            if ch in GAP_CHARS:
                gaps += 1
            else:
                counts[ch] = counts.get(ch, 0) + 1
        top = max(counts.values()) if counts else 0
        conservation.append(top / n_rows if n_rows else 0.0)
        gap_fraction.append(gaps / n_rows if n_rows else 1.0)

    confidence = [0.0] * n_columns
    for i, j in consensus.pairs:
        support = 0
        for row in rows:
            a, b = row[i], row[j]
            if a in GAP_CHARS or b in GAP_CHARS:
                continue
            if is_canonical_pair(a, b):
                support += 1
        value = (support / n_rows if n_rows else 0.0) * consensus.pair_confidence((i, j))
        confidence[i] = value
        confidence[j] = value

    return ColumnStats(tuple(conservation), tuple(gap_fraction), tuple(confidence))


# ---------------------------------------------------------------------------
# Elementization
# ---------------------------------------------------------------------------

def _stems(pairs: set[tuple[int, int]]) -> list[list[tuple[int, int]]]:
    """Maximal stacks (i, j), (i+1, j-1), ... within one set of pairs."""
    stems: list[list[tuple[int, int]]] = []
    for i, j in sorted(pairs):
        if (i - 1, j + 1) in pairs:
            continue
        stem = [(i, j)]
        k = 1
        while (i + k, j - k) in pairs:
            stem.append((i + k, j - k))
            k += 1
        stems.append(stem)
    return stems


def _runs(columns: Sequence[int]) -> tuple[tuple[int, int], ...]:
    """Collapse sorted columns into half-open contiguous ranges."""
    ranges: list[tuple[int, int]] = []
    for c in columns:
        if ranges and ranges[-1][1] == c:
            ranges[-1] = (ranges[-1][0], c + 1)
        else:
            ranges.append((c, c + 1))
    return tuple(ranges)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _stem_element(stem: list[tuple[int, int]], stats: ColumnStats, pseudoknot: bool) -> StructuralElement:
    i0, j0 = stem[0]
    k = len(stem)
    ranges = ((i0, i0 + k), (j0 - k + 1, j0 + 1))
    cols = [c for start, end in ranges for c in range(start, end)]
    return StructuralElement(
        kind=ElementKind.STEM,
        ranges=ranges,
        score=_mean([stats.confidence[c] for c in cols]),
        pseudoknot=pseudoknot,
    )


def _classify_loop(
    closing: tuple[int, int] | None,
    children: list[tuple[int, int]],
    columns: list[int],
) -> ElementKind:
    if closing is None:
        return ElementKind.EXTERIOR
    if not children:
        return ElementKind.HAIRPIN
    if len(children) == 1:
        a, b = children[0]
        left = any(c < a for c in columns)
        right = any(c > b for c in columns)
        return ElementKind.INTERNAL if (left and right) else ElementKind.BULGE
    return ElementKind.MULTILOOP


def verify_coverage(elements: Sequence[StructuralElement], n_columns: int, cutoff: float) -> None:
    """Raise PartitionInvariantViolation unless every column is covered exactly once."""
    hits = [0] * n_columns
    bad: dict[int, int] = {}
    for element in elements:
        for c in element.columns():
            if 0 <= c < n_columns:
                hits[c] += 1
            else:
                bad[c] = bad.get(c, 0) + 1
    for c, n in enumerate(hits):
        if n != 1:
            bad[c] = n
    if bad:
        raise PartitionInvariantViolation(cutoff, bad)


def partition_at(
    consensus: ConsensusStructure,
    column_stats: ColumnStats,
    cutoff: float,
) -> MotifProfile:
    n_columns = consensus.n_columns
    conf = column_stats.confidence

    effective = [
        (i, j) for (i, j) in consensus.pairs if conf[i] >= cutoff and conf[j] >= cutoff
    ]
    layers = pairs_to_layers(effective)
    nested = set(layers[0]) if layers else set()
    crossing = set(effective) - nested

    elements: list[StructuralElement] = []
    for stem in _stems(nested):
        elements.append(_stem_element(stem, column_stats, pseudoknot=False))
    for stem in _stems(crossing):
        elements.append(_stem_element(stem, column_stats, pseudoknot=True))

    paired_columns = {c for p in effective for c in p}
    closes = {i: j for i, j in nested}
    closing_cols = {j for _i, j in nested}

    # Walk the columns with a stack of open nested pairs: the top of the stack
    # is the pair closing the loop of the current unpaired column.
    stack: list[tuple[int, int]] = []
    children: dict[tuple[int, int] | None, list[tuple[int, int]]] = {None: []}
    loop_columns: dict[tuple[int, int] | None, list[int]] = {}
    for c in range(n_columns):
        if c in closes:
            pair = (c, closes[c])
            parent = stack[-1] if stack else None
            children.setdefault(parent, []).append(pair)
            children.setdefault(pair, [])
            stack.append(pair)
        elif c in closing_cols:
            stack.pop()
        elif c not in paired_columns:
            owner = stack[-1] if stack else None
            loop_columns.setdefault(owner, []).append(c)

    for closing, cols in loop_columns.items():
        kind = _classify_loop(closing, children.get(closing, []), cols)
        elements.append(
            StructuralElement(
                kind=kind,
                ranges=_runs(cols),
                score=_mean([column_stats.conservation[c] for c in cols]),
            )
        )

    elements.sort(key=lambda e: e.start)
    verify_coverage(elements, n_columns, cutoff)

    return MotifProfile(
        cutoff=cutoff,
        elements=tuple(elements),
        n_columns=n_columns,
        unconstrained_fallback=consensus.degraded,
    )


def partition(
    consensus: ConsensusStructure,
    column_stats: ColumnStats,
    cutoffs: Sequence[float],
) -> list[MotifProfile]:
    """One MotifProfile per cutoff, in the order the cutoffs are given."""
    if column_stats.n_columns != consensus.n_columns:
        raise ValueError(
            f"Column statistics cover {column_stats.n_columns} columns, "
            f"consensus has {consensus.n_columns}"
        )
    return [partition_at(consensus, column_stats, float(cutoff)) for cutoff in cutoffs]
