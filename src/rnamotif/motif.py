"""
Motif assembly for one family:

    unreadable block / size ceiling check
    → reference constraint (optional)
    → consensus structure
    → interaction graph per sequence
    → column statistics
    → one structural profile per cutoff

Family-scoped failures become skipped results; a partition coverage defect
propagates to the caller.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

import networkx as nx

from .config import MotifConfig
from .constraint import constraint_for_record
from .errors import PartitionInvariantViolation
from .interaction import build_interaction_graphs
from .partition import ColumnStats, MotifProfile, compute_column_stats, partition
from .predictor import ConsensusStructure, StructurePredictor, make_predictor
from .stockholm import AlignmentRecord

__all__ = [
    "Motif",
    "AssemblyStatus",
    "SkipReason",
    "AssemblyResult",
    "assemble",
    "skipped",
]


class AssemblyStatus(str, Enum):
    ASSEMBLED = "assembled"
    DEGRADED = "degraded"
    SKIPPED = "skipped"


class SkipReason(str, Enum):
    SIZE_CEILING = "size_ceiling"
    MISSING_INPUT = "missing_input"
    FAILED = "failed"


@dataclass(frozen=True)
class Motif:
    header: Mapping[str, str]
    seed_alignment: AlignmentRecord
    interaction_graphs: tuple[nx.Graph, ...]
    pair_lists: tuple[tuple[tuple[int, int], ...], ...]
    consensus: ConsensusStructure
    column_stats: ColumnStats
    profiles: tuple[MotifProfile, ...]

    @property
    def family_id(self) -> str:
        return self.seed_alignment.family_id

    def profile(self, cutoff: float) -> MotifProfile:
        for p in self.profiles:
            if p.cutoff == cutoff:
                return p
        raise KeyError(f"No profile for cutoff {cutoff} in {self.family_id}")


@dataclass(frozen=True)
class AssemblyResult:
    status: AssemblyStatus
    family_id: str
    motif: Optional[Motif] = None
    reason: Optional[SkipReason] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.motif is not None


def skipped(record: AlignmentRecord, reason: SkipReason, message: str) -> AssemblyResult:
    """Placeholder result for a family that produced no motif."""
    return AssemblyResult(
        status=AssemblyStatus.SKIPPED,
        family_id=record.family_id,
        reason=SkipReason(reason),
        message=message,
    )


def _build_motif(
    record: AlignmentRecord,
    config: MotifConfig,
    predictor: StructurePredictor,
) -> Motif:
    constraint = constraint_for_record(record) if config.constrain else None

    consensus = predictor.predict_consensus_structure(record, constraint)
    if config.verbosity >= 2:
        sys.stderr.write(
            f"[RNAMOTIF] {record.family_id}: {len(consensus.pairs)} consensus pairs "
            f"({consensus.mode.value}{', degraded' if consensus.degraded else ''})\n"
        )

    graphs, pair_lists = build_interaction_graphs(record, consensus)
    stats = compute_column_stats(record, consensus)
    profiles = partition(consensus, stats, config.cutoffs)

    if config.verbosity >= 2:
        counts = ", ".join(f"{p.cutoff:g}:{len(p.elements)}" for p in profiles)
        sys.stderr.write(f"[RNAMOTIF] {record.family_id}: elements per cutoff {counts}\n")

    return Motif(
        header=dict(record.header),
        seed_alignment=record,
        interaction_graphs=tuple(graphs),
        pair_lists=tuple(tuple(pl) for pl in pair_lists),
        consensus=consensus,
        column_stats=stats,
        profiles=tuple(profiles),
    )


def assemble(
    record: AlignmentRecord,
    config: MotifConfig,
    predictor: Optional[StructurePredictor] = None,
) -> AssemblyResult:
    if record.format_error is not None:
        message = f"FormatError: {record.format_error}"
        sys.stderr.write(f"[SKIP] {record.family_id}: {message}\n")
        return skipped(record, SkipReason.FAILED, message)

    if record.longest_sequence > config.max_length:
        message = (
            f"alignment length {record.longest_sequence} exceeds "
            f"the ceiling of {config.max_length}"
        )
        sys.stderr.write(f"[SKIP] {record.family_id}: {message}\n")
        return skipped(record, SkipReason.SIZE_CEILING, message)

    if predictor is None:
        predictor = make_predictor(config)

    try:
        motif = _build_motif(record, config, predictor)
    except PartitionInvariantViolation:
        raise
    except Exception as e:
        message = f"{type(e).__name__}: {e}"
        sys.stderr.write(f"[SKIP] {record.family_id}: {message}\n")
        return skipped(record, SkipReason.FAILED, message)

    status = AssemblyStatus.DEGRADED if motif.consensus.degraded else AssemblyStatus.ASSEMBLED
    if config.verbosity >= 1:
        sys.stderr.write(f"[RNAMOTIF] {record.family_id}: {status.value}\n")
    return AssemblyResult(status=status, family_id=record.family_id, motif=motif)
