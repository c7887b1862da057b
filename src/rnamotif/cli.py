"""
Command-line entry point: build motifs for every family of a seed file.

    rnamotif [-ps] [-co] [-q | -v | -vv] [-c CONFIG] SEED_ALIGNMENT MOTIF_OUTPUT

Motifs are written under MOTIF_OUTPUT (one stats_<cutoff>/ directory per
cutoff) together with a summary.json describing every family.
"""

from __future__ import annotations

import argparse
import dataclasses
import sys
import time
from pathlib import Path
from typing import Optional, Sequence, Union

from .config import MotifConfig, load_config, validate_config
from .errors import MotifError
from .scheduler import BatchReport, family_artifact_present, run_batch
from .stockholm import read_stockholm
from .writer import write_motif, write_summary

__all__ = ["run", "main"]

SUMMARY_NAME = "summary.json"


def _print_options(input_path: Path, output_path: Path, config: MotifConfig) -> None:
    rows = [
        ("Input", str(input_path)),
        ("Output", str(output_path)),
        ("Constrain", "on" if config.constrain else "off"),
        ("Pseudoknot", "on" if config.pseudoknot else "off"),
        ("Max length", str(config.max_length)),
        ("Cutoffs", " ".join(f"{c:g}" for c in config.cutoffs)),
        ("Workers", str(config.n_workers)),
        ("Verbosity", str(config.verbosity)),
    ]
    width = max(len(k) for k, _ in rows)
    for key, value in rows:
        sys.stderr.write(f"[RNAMOTIF] {key:<{width}} : {value}\n")


def run(
    input_path: Union[str, Path],
    output_path: Union[str, Path],
    constrain: bool = False,
    pseudoknot: bool = False,
    config: Optional[MotifConfig] = None,
    families_dir: Optional[Union[str, Path]] = None,
) -> BatchReport:
    """
    Read every family of `input_path`, assemble motifs and write them under
    `output_path`. Flags passed here switch features on in addition to the
    config.
    """
    input_path = Path(input_path)
    output_path = Path(output_path)
    config = config or MotifConfig()
    config = validate_config(
        dataclasses.replace(
            config,
            constrain=config.constrain or constrain,
            pseudoknot=config.pseudoknot or pseudoknot,
        )
    )

    if config.verbosity >= 1:
        _print_options(input_path, output_path, config)

    t0 = time.perf_counter()
    records = read_stockholm(input_path)
    if config.verbosity >= 1:
        ms = (time.perf_counter() - t0) * 1000.0
        sys.stderr.write(f"[RNAMOTIF] {len(records)} records read ({ms:.0f} ms)\n")

    present = family_artifact_present(families_dir) if families_dir is not None else None
    report = run_batch(records, config, present=present)

    output_path.mkdir(parents=True, exist_ok=True)
    for motif in report.motifs():
        write_motif(motif, output_path)
    summary = write_summary(report, output_path / SUMMARY_NAME)

    if config.verbosity >= 1:
        sys.stderr.write(f"[RNAMOTIF] Summary written to {summary}\n")
    return report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Build structural motifs for every family of a Stockholm seed file.",
    )
    parser.add_argument("seed_alignment", metavar="SEED_ALIGNMENT", help="Stockholm seed file (e.g. Rfam.seed).")
    parser.add_argument("motif_output", metavar="MOTIF_OUTPUT", help="Directory for the motif files.")
    parser.add_argument(
        "-ps",
        "--pseudoknot",
        action="store_true",
        help="Predict pseudoknot-aware consensus structures (IPknot) instead of RNAalifold.",
    )
    parser.add_argument(
        "-co",
        "--constrain",
        action="store_true",
        help="Constrain folding with each family's SS_cons annotation.",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-q", "--quiet", dest="verbosity", action="store_const", const=0, help="Only warnings.")
    verbosity.add_argument("-v", "--verbose", dest="verbosity", action="store_const", const=2, help="Per-stage details.")
    verbosity.add_argument(
        "-vv",
        "--very-verbose",
        dest="verbosity",
        action="store_const",
        const=3,
        help="Also print consensus structures.",
    )
    parser.add_argument("-c", "--config", default=None, help="JSON or YAML config file.")
    parser.add_argument("--workers", type=int, default=None, help="Worker processes (default: one per CPU).")
    parser.add_argument(
        "--max-length",
        type=int,
        default=None,
        help="Skip families whose alignment is longer than this (default: 1000).",
    )
    parser.add_argument(
        "--families-dir",
        default=None,
        help="Only process families with a non-empty <dir>/<ID>/<ID>.msa artifact.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(Path(args.config).resolve()) if args.config else MotifConfig()

        overrides = {}
        if args.verbosity is not None:
            overrides["verbosity"] = args.verbosity
        if args.workers is not None:
            overrides["workers"] = args.workers
        if args.max_length is not None:
            overrides["max_length"] = args.max_length
        if overrides:
            config = dataclasses.replace(config, **overrides)

        run(
            args.seed_alignment,
            args.motif_output,
            constrain=args.constrain,
            pseudoknot=args.pseudoknot,
            config=config,
            families_dir=args.families_dir,
        )
    except (MotifError, ValueError, FileNotFoundError) as e:
        sys.stderr.write(f"[ERROR] {e}\n")
        sys.exit(1)


if __name__ == "__main__":
    main()
