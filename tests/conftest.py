# tests/conftest.py
"""Shared test fixtures for motif construction tests."""

import sys
from pathlib import Path

import pytest

# Repo root = parent of this file's directory
ROOT = Path(__file__).resolve().parents[1]

# Ensure the repo root is on sys.path so `import src...` works
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to test fixtures directory."""
    return ROOT / "tests" / "fixtures"


@pytest.fixture
def families_sto_path(fixtures_dir: Path) -> Path:
    """Three families: well supported, one weak helix, broken SS_cons."""
    return fixtures_dir / "families.sto"


@pytest.fixture
def families(families_sto_path: Path):
    from src.rnamotif.stockholm import read_stockholm

    return read_stockholm(families_sto_path)


@pytest.fixture
def three_helix(families):
    """20 columns, 4 sequences, helices (0,18)x3, (3,8)x2, (10,15)x2."""
    return families[0]


@pytest.fixture
def weak_helix(families):
    """Same fold as three_helix but the (10,15) helix is never canonical."""
    return families[1]


@pytest.fixture
def motif_config():
    from src.rnamotif.config import MotifConfig

    return MotifConfig(constrain=True, cutoffs=(0.0, 0.1), workers=1, verbosity=0)


@pytest.fixture
def echo_predictor():
    from fakes import EchoBackend
    from src.rnamotif.predictor import FoldingMode, StructurePredictor

    return StructurePredictor(EchoBackend(), FoldingMode.THERMODYNAMIC, verbosity=0)
