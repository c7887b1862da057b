"""
Exception types for motif construction.

Family-scoped problems derive from MotifError and are turned into skipped or
degraded results by the assembler. PartitionInvariantViolation is a defect in
the partitioner itself and is never swallowed.
"""

from __future__ import annotations

__all__ = [
    "MotifError",
    "FormatError",
    "ConstraintUnsatisfiable",
    "PartitionInvariantViolation",
]


class MotifError(Exception):
    """Base class for errors that only affect a single family."""


class FormatError(MotifError, ValueError):
    """Malformed or inconsistent alignment, annotation or backend output."""


class ConstraintUnsatisfiable(MotifError):
    """The reference structure cannot be honored by the folding backend."""


class PartitionInvariantViolation(RuntimeError):
    """A column was assigned to zero or several structural elements."""

    def __init__(self, cutoff: float, columns: dict[int, int]):
        self.cutoff = cutoff
        self.columns = dict(columns)
        shown = ", ".join(f"{c}x{n}" for c, n in sorted(self.columns.items())[:10])
        super().__init__(
            f"Partition at cutoff {cutoff} covers {len(self.columns)} column(s) "
            f"an invalid number of times: {shown}"
        )

    def __reduce__(self):
        return (type(self), (self.cutoff, self.columns))
