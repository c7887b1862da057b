"""
Reader for (multi-record) Stockholm seed alignments, e.g. Rfam.seed.

Every `# STOCKHOLM 1.0 ... //` block becomes one AlignmentRecord:

    header               : #=GF tags (AC, ID, DE, ...)
    sequences            : name -> aligned sequence (with gaps)
    sequence_information : #=GC tags (SS_cons, RF, ...)
    alignment            : tuple of (name, aligned sequence) rows

Interleaved blocks are concatenated. Rows and #=GC tracks must all have the
same length. A block that breaks this, or has no usable sequence lines, is
still yielded as a record whose `format_error` holds the problem, so the
families after it are read normally. Errors in the block structure itself
(missing '//', data outside a block) end the read. With `strict=True` every
problem raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from .errors import FormatError

__all__ = [
    "GAP_CHARS",
    "AlignmentRecord",
    "read_stockholm",
    "iter_stockholm",
    "aln_to_seq_map",
    "ungapped",
]

# Alignment gaps
GAP_CHARS = set("-._~")


@dataclass(frozen=True)
class AlignmentRecord:
    header: Mapping[str, str]
    sequences: Mapping[str, str]
    sequence_information: Mapping[str, str]
    alignment: tuple[tuple[str, str], ...]
    format_error: Optional[str] = None

    @classmethod
    def from_rows(
        cls,
        rows: list[tuple[str, str]] | dict[str, str],
        header: Mapping[str, str] | None = None,
        sequence_information: Mapping[str, str] | None = None,
        format_error: Optional[str] = None,
    ) -> "AlignmentRecord":
        if isinstance(rows, dict):
            rows = list(rows.items())
        return cls(
            header=MappingProxyType(dict(header or {})),
            sequences=MappingProxyType(dict(rows)),
            sequence_information=MappingProxyType(dict(sequence_information or {})),
            alignment=tuple((name, seq) for name, seq in rows),
            format_error=format_error,
        )

    @classmethod
    def malformed(cls, header: Mapping[str, str], error: FormatError) -> "AlignmentRecord":
        """Stand-in for a block that could not be read; keeps its #=GF header."""
        return cls.from_rows([], header=header, format_error=str(error))

    # mappingproxy does not pickle; worker processes get plain dicts rewrapped
    def __reduce__(self):
        return (
            _rebuild_record,
            (
                list(self.alignment),
                dict(self.header),
                dict(self.sequence_information),
                self.format_error,
            ),
        )

    def __hash__(self) -> int:
        return hash(
            (
                tuple(self.header.items()),
                tuple(self.sequence_information.items()),
                self.alignment,
                self.format_error,
            )
        )

    @property
    def family_id(self) -> str:
        ac = self.header.get("AC")
        id_ = self.header.get("ID")
        if ac and id_:
            return f"{ac} : {id_}"
        return ac or id_ or "<unnamed family>"

    @property
    def file_stem(self) -> str:
        """Identifier safe to use as a file name."""
        stem = self.header.get("AC") or self.header.get("ID") or "family"
        return "".join(ch if ch.isalnum() or ch in "-_." else "_" for ch in stem)

    @property
    def n_columns(self) -> int:
        if not self.alignment:
            return 0
        return len(self.alignment[0][1])

    @property
    def longest_sequence(self) -> int:
        return max((len(seq) for _name, seq in self.alignment), default=0)

    def aligned_sequences(self) -> list[str]:
        return [seq for _name, seq in self.alignment]


def _rebuild_record(rows, header, sequence_information, format_error) -> AlignmentRecord:
    return AlignmentRecord.from_rows(rows, header, sequence_information, format_error)


def aln_to_seq_map(aligned_seq: str) -> tuple[dict[int, int], int]:
    """
    Build a map alignment_index -> sequence_index (ungapped)
    for one sequence. Returns (aln2seq, L), where:
      - aln2seq[i] = seq_index or -1 if gap
      - L = length of ungapped sequence
    """
    aln2seq: dict[int, int] = {}
    pos = 0
    for i, ch in enumerate(aligned_seq):
        if ch in GAP_CHARS:
            aln2seq[i] = -1
        else:
            aln2seq[i] = pos
            pos += 1
    return aln2seq, pos


def ungapped(aligned_seq: str) -> str:
    return "".join(ch for ch in aligned_seq if ch not in GAP_CHARS)


class _RecordBuilder:
    def __init__(self, source: str, start_line: int):
        self.source = source
        self.start_line = start_line
        self.header: dict[str, str] = {}
        self.sequences: dict[str, list[str]] = {}
        self.gc_tracks: dict[str, list[str]] = {}
        self.error: Optional[FormatError] = None

    def add_line(self, line: str, lineno: int) -> None:
        if line.startswith("#=GF "):
            parts = line.split(maxsplit=2)
            if len(parts) < 2:
                return
            tag = parts[1]
            value = parts[2].strip() if len(parts) > 2 else ""
            if tag in self.header:
                self.header[tag] = f"{self.header[tag]} {value}".strip()
            else:
                self.header[tag] = value
            return

        # Only the header is still collected once the block is known to be bad
        if self.error is not None:
            return

        # Per-column markup (WUSS etc.)
        if line.startswith("#=GC "):
            parts = line.split(maxsplit=2)
            if len(parts) < 3:
                raise FormatError(f"{self.source}:{lineno}: #=GC line without data")
            self.gc_tracks.setdefault(parts[1], []).append(parts[2].strip())
            return

        # #=GS, #=GR and free comments carry nothing we need
        if line.startswith("#"):
            return

        parts = line.split()
        if len(parts) != 2:
            raise FormatError(
                f"{self.source}:{lineno}: expected 'name sequence', got {line!r}"
            )
        name, s = parts
        self.sequences.setdefault(name, []).append(s)

    def build(self) -> AlignmentRecord:
        if self.error is not None:
            raise self.error

        rows = [(name, "".join(chunks)) for name, chunks in self.sequences.items()]
        tracks = {tag: "".join(chunks) for tag, chunks in self.gc_tracks.items()}
        label = self.header.get("AC") or self.header.get("ID") or f"line {self.start_line}"

        if not rows:
            raise FormatError(f"{self.source}: record {label} has no sequences")

        lengths = {len(seq) for _name, seq in rows}
        lengths.update(len(track) for track in tracks.values())
        if len(lengths) != 1:
            raise FormatError(
                f"{self.source}: alignment length mismatch in record {label}: "
                f"lengths={sorted(lengths)}"
            )

        return AlignmentRecord.from_rows(rows, self.header, tracks)


def iter_stockholm(path: str | Path, strict: bool = False) -> Iterator[AlignmentRecord]:
    """
    Lazily yield the records of a Stockholm file.

    A block whose content is malformed comes out as a record with
    `format_error` set (or raises, when `strict`); reading then continues
    with the next block.
    """
    path = Path(path)
    if not path.is_file():
        raise FormatError(f"Stockholm file not found: {path}")

    builder: _RecordBuilder | None = None
    # Rfam headers occasionally contain latin-1 author names
    with path.open(encoding="utf-8", errors="replace") as fh:
        for lineno, raw in enumerate(fh, 1):
            line = raw.rstrip("\n").rstrip()
            if not line:
                continue
            if line.startswith("# STOCKHOLM"):
                if builder is not None:
                    raise FormatError(
                        f"{path}:{lineno}: new record starts before '//' "
                        f"closes the record from line {builder.start_line}"
                    )
                builder = _RecordBuilder(str(path), lineno)
                continue
            if line.startswith("//"):
                if builder is None:
                    raise FormatError(f"{path}:{lineno}: '//' without a record")
                try:
                    record = builder.build()
                except FormatError as e:
                    if strict:
                        raise
                    record = AlignmentRecord.malformed(builder.header, e)
                yield record
                builder = None
                continue
            if builder is None:
                raise FormatError(f"{path}:{lineno}: data outside a Stockholm record")
            try:
                builder.add_line(line, lineno)
            except FormatError as e:
                if strict:
                    raise
                builder.error = e

    if builder is not None:
        raise FormatError(
            f"{path}: record starting at line {builder.start_line} is not terminated by '//'"
        )


def read_stockholm(path: str | Path, strict: bool = False) -> list[AlignmentRecord]:
    """Read every record of a Stockholm file."""
    return list(iter_stockholm(path, strict=strict))
