"""Structural motif construction for RNA family seed alignments."""

from .config import DEFAULT_CUTOFFS, MotifConfig, load_config
from .errors import ConstraintUnsatisfiable, FormatError, MotifError, PartitionInvariantViolation
from .motif import AssemblyResult, AssemblyStatus, Motif, SkipReason, assemble
from .scheduler import BatchReport, family_artifact_present, run_batch
from .stockholm import AlignmentRecord, read_stockholm

__version__ = "0.1.0"
