"""
Write motifs to disk.

Layout, one directory per cutoff and one file per family:

    <out_dir>/stats_0/RF00001.txt
    <out_dir>/stats_0.02/RF00001.txt
    ...

Each file holds the family header, the consensus structure and one line per
structural element:

    #=GF AC RF00001
    #=GF ID 5S_rRNA
    #=MOTIF cutoff 0.02
    #=MOTIF mode thermodynamic constrained yes degraded no
    #=MOTIF columns 119 sequences 712
    SS_cons ((((((((((....
    stem       0-10,108-118          0.9123
    hairpin    10-14                 0.8011
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Union

from .motif import Motif
from .partition import MotifProfile, StructuralElement

__all__ = ["stats_dir_name", "format_profile", "write_motif", "write_summary"]


def stats_dir_name(cutoff: float) -> str:
    return f"stats_{cutoff:g}"


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


def _element_line(element: StructuralElement) -> str:
    ranges = ",".join(f"{start}-{end}" for start, end in element.ranges)
    line = f"{element.kind.value:<10} {ranges:<24} {element.score:.4f}"
    if element.pseudoknot:
        line += " pk"
    return line


def format_profile(motif: Motif, profile: MotifProfile) -> str:
    lines = [f"#=GF {tag} {value}" for tag, value in motif.header.items()]
    lines.append(f"#=MOTIF cutoff {profile.cutoff:g}")
    lines.append(
        f"#=MOTIF mode {motif.consensus.mode.value} "
        f"constrained {_yes_no(motif.consensus.constrained)} "
        f"degraded {_yes_no(profile.unconstrained_fallback)}"
    )
    lines.append(
        f"#=MOTIF columns {profile.n_columns} "
        f"sequences {len(motif.seed_alignment.alignment)}"
    )
    lines.append(f"SS_cons {motif.consensus.dotbracket()}")
    lines.extend(_element_line(e) for e in profile.elements)
    return "\n".join(lines) + "\n"


def write_motif(motif: Motif, out_dir: Union[str, Path]) -> list[Path]:
    """Write one file per profile; returns the paths written."""
    out_dir = Path(out_dir)
    stem = motif.seed_alignment.file_stem
    written: list[Path] = []
    for profile in motif.profiles:
        target = out_dir / stats_dir_name(profile.cutoff)
        target.mkdir(parents=True, exist_ok=True)
        path = target / f"{stem}.txt"
        path.write_text(format_profile(motif, profile))
        written.append(path)
    return written


def write_summary(report, path: Union[str, Path]) -> Path:
    """JSON summary of a batch: counts plus one entry per family, in input order."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "families": len(report.results),
        "success": report.n_success,
        "assembled": report.n_assembled,
        "degraded": report.n_degraded,
        "skipped": report.n_skipped,
        "skip_reasons": report.skip_reasons(),
        "elapsed_seconds": round(report.elapsed, 3),
        "workers": report.n_workers,
        "results": [
            {
                "family": r.family_id,
                "status": r.status.value,
                "reason": r.reason.value if r.reason is not None else None,
                "message": r.message,
            }
            for r in report.results
        ],
    }
    path.write_text(json.dumps(data, indent=2) + "\n")
    return path
