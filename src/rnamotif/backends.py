"""
Wrappers around the external consensus folding programs.

Both backends take the aligned rows of one family plus an optional
pseudo-bracket constraint and return a FoldResult in alignment columns:

    RNAalifoldBackend : ViennaRNA RNAalifold, crossing-free consensus MFE
    IPknotBackend     : IPknot, pseudoknot-aware consensus

The programs run in a throw-away temporary directory; their text output is
parsed by small pure functions so the parsing can be tested without the
executables.
"""

from __future__ import annotations

import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, Sequence

from .constraint import constraint_pairs
from .errors import ConstraintUnsatisfiable, FormatError
from .stockholm import GAP_CHARS
from .structure import pairs_from_track

__all__ = [
    "FoldResult",
    "FoldingBackend",
    "RNAalifoldBackend",
    "IPknotBackend",
    "parse_alifold_output",
    "parse_ipknot_output",
    "lock_scaffold",
]

# Backends never emit WUSS letters, and letters would match sequence lines
_STRUCTURE_CHARS = set(".()[]{}<>")


@dataclass(frozen=True)
class FoldResult:
    pairs: tuple[tuple[int, int], ...]
    confidence: dict[tuple[int, int], float] | None = None


class FoldingBackend(Protocol):
    name: str

    def fold(self, alignment: Sequence[str], constraint: str | None = None) -> FoldResult:
        ...


def _normalize_row(row: str) -> str:
    return "".join("-" if ch in GAP_CHARS else ch.upper().replace("T", "U") for ch in row)


def _write_stockholm(alignment: Sequence[str], path: Path) -> None:
    with path.open("w") as fh:
        fh.write("# STOCKHOLM 1.0\n\n")
        for k, row in enumerate(alignment):
            fh.write(f"seq{k}  {_normalize_row(row)}\n")
        fh.write("//\n")


def _write_clustal(alignment: Sequence[str], path: Path) -> None:
    with path.open("w") as fh:
        fh.write("CLUSTAL W\n\n")
        for k, row in enumerate(alignment):
            fh.write(f"seq{k}  {_normalize_row(row)}\n")
        fh.write("\n")


def _is_structure_line(token: str, n_columns: int) -> bool:
    return len(token) == n_columns and all(ch in _STRUCTURE_CHARS for ch in token)


def parse_alifold_output(text: str, n_columns: int) -> list[tuple[int, int]]:
    """
    Parse RNAalifold stdout.

    Example:
        __GGGAAACCC_
        .(((...))).. ( -3.50 =  -3.50 +   0.00)
    """
    for line in text.splitlines():
        parts = line.split()
        if not parts:
            continue
        if _is_structure_line(parts[0], n_columns):
            return pairs_from_track(parts[0])
    raise FormatError(f"No consensus structure of length {n_columns} in RNAalifold output")


def parse_ipknot_output(text: str, n_columns: int) -> list[tuple[int, int]]:
    """
    Parse IPknot output; the structure is the last line made only of
    structure characters, pseudoknot layers written as [] and {}.
    """
    found: str | None = None
    for line in text.splitlines():
        s = line.strip()
        if not s or s.startswith(">"):
            continue
        if _is_structure_line(s, n_columns):
            found = s
    if found is None:
        raise FormatError(f"No structure of length {n_columns} in IPknot output")
    return pairs_from_track(found)


def lock_scaffold(
    predicted: Sequence[tuple[int, int]],
    scaffold: Sequence[tuple[int, int]],
) -> list[tuple[int, int]]:
    """
    Keep every scaffold pair and add the predicted pairs that do not reuse a
    scaffold column.
    """
    scaffold_positions: set[int] = set()
    for i, j in scaffold:
        scaffold_positions.add(i)
        scaffold_positions.add(j)
    extra = [
        (i, j)
        for (i, j) in predicted
        if i not in scaffold_positions and j not in scaffold_positions
    ]
    return sorted(set(scaffold) | set(extra))


@dataclass(frozen=True)
class RNAalifoldBackend:
    exe: str = "RNAalifold"
    temperature: float | None = None
    extra_args: tuple[str, ...] = field(default_factory=tuple)
    name: str = "RNAalifold"

    def command(self, aln_path: Path, constrained: bool) -> list[str]:
        cmd = [str(self.exe), "--noPS"]
        if self.temperature is not None:
            cmd += ["-T", str(self.temperature)]
        if constrained:
            cmd += ["-C", "--enforceConstraint"]
        cmd += list(self.extra_args)
        cmd.append(str(aln_path))
        return cmd

    def fold(self, alignment: Sequence[str], constraint: str | None = None) -> FoldResult:
        n_columns = len(alignment[0]) if alignment else 0
        with tempfile.TemporaryDirectory() as tmpdir:
            aln_path = Path(tmpdir) / "family.stk"
            _write_stockholm(alignment, aln_path)
            cmd = self.command(aln_path, constrained=constraint is not None)
            try:
                proc = subprocess.run(
                    cmd,
                    input=(constraint + "\n") if constraint is not None else None,
                    check=True,
                    text=True,
                    capture_output=True,
                    cwd=tmpdir,
                )
            except subprocess.CalledProcessError as e:
                if constraint is None:
                    raise
                raise ConstraintUnsatisfiable(
                    f"RNAalifold rejected the constraint (exit code {e.returncode}): "
                    f"{(e.stderr or '').strip()[:200]}"
                ) from e
        pairs = parse_alifold_output(proc.stdout, n_columns)
        return FoldResult(pairs=tuple(pairs))


@dataclass(frozen=True)
class IPknotBackend:
    exe: str = "ipknot"
    extra_args: tuple[str, ...] = field(default_factory=tuple)
    name: str = "IPknot"

    def command(self, aln_path: Path) -> list[str]:
        return [str(self.exe), *self.extra_args, str(aln_path)]

    def fold(self, alignment: Sequence[str], constraint: str | None = None) -> FoldResult:
        n_columns = len(alignment[0]) if alignment else 0
        with tempfile.TemporaryDirectory() as tmpdir:
            aln_path = Path(tmpdir) / "family.aln"
            _write_clustal(alignment, aln_path)
            proc = subprocess.run(
                self.command(aln_path),
                check=True,
                text=True,
                capture_output=True,
                cwd=tmpdir,
            )
        pairs = parse_ipknot_output(proc.stdout, n_columns)
        # IPknot takes no constraint input: lock the constraint in as a scaffold
        if constraint is not None:
            pairs = lock_scaffold(pairs, constraint_pairs(constraint))
        return FoldResult(pairs=tuple(pairs))
