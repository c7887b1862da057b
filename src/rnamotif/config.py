"""
Run configuration for motif construction.

A config file (YAML or JSON) mirrors the dataclasses below:

    constrain: false
    pseudoknot: false
    max_length: 1000
    cutoffs: [0, 0.02, 0.04, 0.06, 0.08, 0.1, 0.12, 0.14, 0.16, 0.18, 0.2]
    workers: 8
    verbosity: 1
    alifold:
      exe: RNAalifold
      temperature: 37.0
      extra_args: []
    ipknot:
      exe: ipknot
      extra_args: ["-g", "4", "-g", "8"]

Missing keys keep their defaults. Command-line flags override file values.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Tuple

import yaml

__all__ = [
    "DEFAULT_CUTOFFS",
    "DEFAULT_MAX_LENGTH",
    "AlifoldConfig",
    "IPknotConfig",
    "MotifConfig",
    "load_config",
    "validate_config",
]

DEFAULT_CUTOFFS: Tuple[float, ...] = (0, 0.02, 0.04, 0.06, 0.08, 0.1, 0.12, 0.14, 0.16, 0.18, 0.2)

# Families with longer alignments are not folded
DEFAULT_MAX_LENGTH = 1000


# ---------------------------------------------------------------------------
# Config dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AlifoldConfig:
    exe: str = "RNAalifold"
    temperature: Optional[float] = None
    extra_args: Tuple[str, ...] = ()


@dataclass(frozen=True)
class IPknotConfig:
    exe: str = "ipknot"
    extra_args: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MotifConfig:
    constrain: bool = False
    pseudoknot: bool = False
    max_length: int = DEFAULT_MAX_LENGTH
    cutoffs: Tuple[float, ...] = DEFAULT_CUTOFFS
    workers: Optional[int] = None
    verbosity: int = 1
    alifold: AlifoldConfig = field(default_factory=AlifoldConfig)
    ipknot: IPknotConfig = field(default_factory=IPknotConfig)

    @property
    def n_workers(self) -> int:
        """Worker processes to use; None means one per CPU."""
        if self.workers is None:
            return os.cpu_count() or 1
        return max(1, int(self.workers))


def validate_config(cfg: MotifConfig) -> MotifConfig:
    cutoffs = list(cfg.cutoffs)
    if not cutoffs:
        raise ValueError("At least one cutoff is required")
    if any(c < 0 for c in cutoffs):
        raise ValueError(f"Cutoffs must be non-negative, got {cutoffs}")
    if len(set(cutoffs)) != len(cutoffs):
        raise ValueError(f"Duplicate cutoffs in {cutoffs}")
    if cfg.max_length <= 0:
        raise ValueError(f"max_length must be positive, got {cfg.max_length}")
    if cfg.workers is not None and cfg.workers < 1:
        raise ValueError(f"workers must be at least 1, got {cfg.workers}")
    if not 0 <= cfg.verbosity <= 3:
        raise ValueError(f"verbosity must be between 0 and 3, got {cfg.verbosity}")
    return cfg


def _args(raw: Optional[Sequence[str]]) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        return tuple(raw.split())
    return tuple(str(a) for a in raw)


def load_config(path: Path) -> MotifConfig:
    """
    Load a config from JSON or YAML (chosen by file suffix).
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    text = path.read_text()
    if path.suffix in {".yaml", ".yml"}:
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(f"{path}: invalid YAML: {e}") from e
    else:
        raw = json.loads(text)
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")

    alifold_raw = raw.get("alifold", {}) or {}
    ipknot_raw = raw.get("ipknot", {}) or {}

    temperature = alifold_raw.get("temperature")
    alifold = AlifoldConfig(
        exe=str(alifold_raw.get("exe", "RNAalifold")),
        temperature=float(temperature) if temperature is not None else None,
        extra_args=_args(alifold_raw.get("extra_args")),
    )
    ipknot = IPknotConfig(
        exe=str(ipknot_raw.get("exe", "ipknot")),
        extra_args=_args(ipknot_raw.get("extra_args")),
    )

    workers = raw.get("workers")
    cfg = MotifConfig(
        constrain=bool(raw.get("constrain", False)),
        pseudoknot=bool(raw.get("pseudoknot", False)),
        max_length=int(raw.get("max_length", DEFAULT_MAX_LENGTH)),
        cutoffs=tuple(float(c) for c in raw.get("cutoffs", DEFAULT_CUTOFFS)),
        workers=int(workers) if workers is not None else None,
        verbosity=int(raw.get("verbosity", 1)),
        alifold=alifold,
        ipknot=ipknot,
    )
    return validate_config(cfg)
