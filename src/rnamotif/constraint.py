"""
Translate a WUSS reference annotation (Rfam SS_cons) into a folding constraint.

Every bracket class, pseudoknot letters included, is folded down to a single
'(' / ')' pair; every other symbol becomes '.'. Only the nesting topology
survives, crossing classes show up as ordinary nesting violations for the
pseudoknot-aware backend to resolve.
"""

from __future__ import annotations

from .errors import FormatError
from .stockholm import AlignmentRecord
from .structure import CLOSE_TO_OPEN, OPEN_TO_CLOSE

__all__ = [
    "UNPAIRED",
    "OPEN",
    "CLOSE",
    "REFERENCE_TAG",
    "wuss_to_pseudo_bracket",
    "constraint_for_record",
    "constraint_pairs",
]

UNPAIRED = "."
OPEN = "("
CLOSE = ")"

REFERENCE_TAG = "SS_cons"


def wuss_to_pseudo_bracket(annotation: str, n_columns: int) -> str:
    if len(annotation) != n_columns:
        raise FormatError(
            f"Reference annotation has length {len(annotation)}, "
            f"alignment has {n_columns} columns"
        )

    stacks: dict[str, list[int]] = {op: [] for op in OPEN_TO_CLOSE}
    out: list[str] = []
    for idx, ch in enumerate(annotation):
        if ch in OPEN_TO_CLOSE:
            stacks[ch].append(idx)
            out.append(OPEN)
        elif ch in CLOSE_TO_OPEN:
            op = CLOSE_TO_OPEN[ch]
            if not stacks[op]:
                raise FormatError(
                    f"Unbalanced reference annotation: {ch!r} at column {idx} "
                    f"has no matching {op!r}"
                )
            stacks[op].pop()
            out.append(CLOSE)
        else:
            out.append(UNPAIRED)

    for op, stack in stacks.items():
        if stack:
            raise FormatError(
                f"Unbalanced reference annotation: {len(stack)} unmatched {op!r}, "
                f"first at column {stack[0]}"
            )

    return "".join(out)


def constraint_for_record(record: AlignmentRecord) -> str:
    """Build the constraint string from the record's SS_cons track."""
    annotation = record.sequence_information.get(REFERENCE_TAG)
    if annotation is None:
        raise FormatError(f"{record.family_id}: no #=GC {REFERENCE_TAG} annotation")
    return wuss_to_pseudo_bracket(annotation, record.n_columns)


def constraint_pairs(constraint: str) -> list[tuple[int, int]]:
    """Pairs implied by a pseudo-bracket constraint, matched on one stack."""
    stack: list[int] = []
    pairs: list[tuple[int, int]] = []
    for idx, ch in enumerate(constraint):
        if ch == OPEN:
            stack.append(idx)
        elif ch == CLOSE:
            if not stack:
                raise FormatError(f"Unbalanced constraint at column {idx}")
            pairs.append((stack.pop(), idx))
    if stack:
        raise FormatError(f"Unbalanced constraint: unmatched '(' at column {stack[0]}")
    pairs.sort()
    return pairs
