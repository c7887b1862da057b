"""
Run motif assembly over every family of a seed file.

Families are independent, so they are farmed out to a process pool. The
result list is sized up front with one placeholder per record and each
family's result is written back to its own index, so the output order never
depends on the order in which workers finish.
"""

from __future__ import annotations

import multiprocessing as mp
import sys
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Optional, Sequence, Union

from .config import MotifConfig
from .motif import AssemblyResult, AssemblyStatus, Motif, SkipReason, assemble, skipped
from .predictor import StructurePredictor
from .stockholm import AlignmentRecord

__all__ = [
    "BatchReport",
    "run_batch",
    "family_artifact_present",
]

Presence = Union[Sequence[bool], Callable[[AlignmentRecord], bool], None]


@dataclass
class BatchReport:
    results: list[AssemblyResult]
    elapsed: float = 0.0
    n_workers: int = 1
    parallel: bool = field(default=False)

    def _count(self, status: AssemblyStatus) -> int:
        return sum(1 for r in self.results if r.status is status)

    @property
    def n_assembled(self) -> int:
        return self._count(AssemblyStatus.ASSEMBLED)

    @property
    def n_degraded(self) -> int:
        return self._count(AssemblyStatus.DEGRADED)

    @property
    def n_skipped(self) -> int:
        return self._count(AssemblyStatus.SKIPPED)

    @property
    def n_success(self) -> int:
        return self.n_assembled + self.n_degraded

    def skip_reasons(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for r in self.results:
            if r.reason is not None:
                counts[r.reason.value] = counts.get(r.reason.value, 0) + 1
        return counts

    def motifs(self) -> Iterator[Motif]:
        for r in self.results:
            if r.motif is not None:
                yield r.motif

    def summary_line(self) -> str:
        return (
            f"{self.n_success} of {len(self.results)} families processed "
            f"({self.n_assembled} assembled, {self.n_degraded} degraded, "
            f"{self.n_skipped} skipped) in {self.elapsed:.2f}s"
        )


def family_artifact_present(families_dir: Union[str, Path]) -> Callable[[AlignmentRecord], bool]:
    """
    Presence check for a directory of per-family alignment artifacts:
    a family counts as present when <families_dir>/<ID>/<ID>.msa exists
    and is not empty.
    """
    base = Path(families_dir)

    def present(record: AlignmentRecord) -> bool:
        name = record.header.get("ID") or record.file_stem
        path = base / name / f"{name}.msa"
        return path.is_file() and path.stat().st_size > 0

    return present


def _presence_flags(records: Sequence[AlignmentRecord], present: Presence) -> list[bool]:
    if present is None:
        return [True] * len(records)
    if callable(present):
        return [bool(present(r)) for r in records]
    flags = [bool(p) for p in present]
    if len(flags) != len(records):
        raise ValueError(
            f"Presence flags cover {len(flags)} families, batch has {len(records)}"
        )
    return flags


def _run_sequential(
    records: Sequence[AlignmentRecord],
    todo: list[int],
    config: MotifConfig,
    predictor: Optional[StructurePredictor],
    results: list[AssemblyResult],
) -> None:
    for idx in todo:
        results[idx] = assemble(records[idx], config, predictor)


def run_batch(
    records: Sequence[AlignmentRecord],
    config: MotifConfig,
    present: Presence = None,
    predictor: Optional[StructurePredictor] = None,
) -> BatchReport:
    """
    Assemble every family; the i-th result always belongs to the i-th record.

    `present` is either one flag per record or a callable on the record;
    families that are not present are skipped without being folded.
    """
    t0 = time.perf_counter()
    flags = _presence_flags(records, present)

    results: list[AssemblyResult] = [
        skipped(r, SkipReason.MISSING_INPUT, "input artifact not present") for r in records
    ]
    todo: list[int] = []
    for idx, (record, flag) in enumerate(zip(records, flags)):
        if flag:
            todo.append(idx)
        else:
            sys.stderr.write(f"[SKIP] {record.family_id}: no input artifact, family skipped\n")

    n_workers = min(config.n_workers, max(1, len(todo)))
    parallel = False

    if n_workers > 1:
        try:
            ctx = mp.get_context("fork")
        except ValueError:
            ctx = None

        if ctx is not None:
            try:
                with ProcessPoolExecutor(max_workers=n_workers, mp_context=ctx) as ex:
                    futures = {
                        ex.submit(assemble, records[idx], config, predictor): idx for idx in todo
                    }
                    for fut in as_completed(futures):
                        results[futures[fut]] = fut.result()
                parallel = True
            except (PermissionError, OSError) as exc:
                sys.stderr.write(
                    f"[WARN] Process parallelism unavailable ({exc}); running families sequentially.\n"
                )

    if not parallel:
        n_workers = 1
        _run_sequential(records, todo, config, predictor, results)

    report = BatchReport(
        results=results,
        elapsed=time.perf_counter() - t0,
        n_workers=n_workers,
        parallel=parallel,
    )
    if config.verbosity >= 1:
        sys.stderr.write(f"[BATCH] {report.summary_line()}\n")
    return report
