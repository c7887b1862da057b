"""Tests for consensus structure prediction."""

import random

from fakes import EchoBackend, FixedBackend, RejectingBackend
from src.rnamotif.backends import IPknotBackend, RNAalifoldBackend
from src.rnamotif.config import AlifoldConfig, IPknotConfig, MotifConfig
from src.rnamotif.predictor import (
    FoldingMode,
    StructurePredictor,
    make_predictor,
    normalize_pairs,
    remove_crossings,
    satisfies_constraint,
)
from src.rnamotif.stockholm import AlignmentRecord
from src.rnamotif.structure import has_crossing

# H-type pseudoknot: stem 1 (0-3 with 12-15) crosses stem 2 (6-9 with 20-23)
HTYPE_PAIRS = [(0, 15), (1, 14), (2, 13), (3, 12), (6, 23), (7, 22), (8, 21), (9, 20)]


def _record(n_columns: int, n_rows: int = 3) -> AlignmentRecord:
    rows = [(f"s{k}", "ACGU" * (n_columns // 4) + "A" * (n_columns % 4)) for k in range(n_rows)]
    return AlignmentRecord.from_rows(rows, header={"AC": "RF99999", "ID": "test"})


class TestNormalizePairs:
    def test_orders_and_filters(self) -> None:
        assert normalize_pairs([(5, 1), (2, 2), (-1, 3), (4, 10)], 8) == [(1, 5)]

    def test_column_reuse_keeps_higher_confidence(self) -> None:
        confidence = {(0, 5): 0.2, (0, 7): 0.9}
        assert normalize_pairs([(0, 5), (0, 7)], 8, confidence) == [(0, 7)]

    def test_column_reuse_tie_keeps_earlier_pair(self) -> None:
        assert normalize_pairs([(1, 6), (0, 6)], 8) == [(0, 6)]


class TestRemoveCrossings:
    def test_drops_most_crossed_pair(self) -> None:
        pairs = [(0, 10), (2, 12), (4, 14), (11, 13)]
        result = remove_crossings(pairs)
        assert not has_crossing(result)
        assert (2, 12) not in result

    def test_low_confidence_loses_ties(self) -> None:
        result = remove_crossings([(0, 5), (2, 8)], {(0, 5): 0.9, (2, 8): 0.1})
        assert result == [(0, 5)]

    def test_order_independent(self) -> None:
        assert remove_crossings(list(reversed(HTYPE_PAIRS))) == remove_crossings(HTYPE_PAIRS)


class TestStructurePredictor:
    def test_constrained_fold(self, three_helix) -> None:
        predictor = StructurePredictor(EchoBackend(), FoldingMode.THERMODYNAMIC, verbosity=0)
        constraint = "(((((..)).((..)))))."
        result = predictor.predict_consensus_structure(three_helix, constraint)
        assert result.constrained
        assert not result.degraded
        assert satisfies_constraint(result.pairs, constraint)
        assert result.dotbracket() == constraint

    def test_unconstrained_fold(self, three_helix) -> None:
        predictor = StructurePredictor(EchoBackend(fallback=[(0, 18)]), FoldingMode.THERMODYNAMIC)
        result = predictor.predict_consensus_structure(three_helix)
        assert result.pairs == ((0, 18),)
        assert not result.constrained
        assert not result.degraded

    def test_rejected_constraint_degrades(self, three_helix, capsys) -> None:
        predictor = StructurePredictor(RejectingBackend([(3, 8)]), FoldingMode.THERMODYNAMIC)
        result = predictor.predict_consensus_structure(three_helix, "(((((..)).((..))))).")
        assert result.degraded
        assert not result.constrained
        assert result.pairs == ((3, 8),)
        assert "[WARN]" in capsys.readouterr().err

    def test_ignored_constraint_degrades(self, three_helix) -> None:
        """A structure missing constrained pairs counts as unsatisfied."""
        predictor = StructurePredictor(FixedBackend([(3, 8)]), FoldingMode.THERMODYNAMIC)
        result = predictor.predict_consensus_structure(three_helix, "(((((..)).((..))))).")
        assert result.degraded
        assert result.pairs == ((3, 8),)

    def test_confidence_is_clamped(self) -> None:
        record = _record(10)
        backend = FixedBackend([(0, 9), (1, 8)], confidence={(9, 0): 1.7, (1, 8): -0.3})
        result = StructurePredictor(backend, FoldingMode.THERMODYNAMIC).predict_consensus_structure(record)
        assert result.pair_confidence((0, 9)) == 1.0
        assert result.pair_confidence((1, 8)) == 0.0

    def test_verbose_prints_structure(self, capsys) -> None:
        record = _record(10)
        predictor = StructurePredictor(FixedBackend([(0, 9)]), FoldingMode.THERMODYNAMIC, verbosity=3)
        predictor.predict_consensus_structure(record)
        assert "(........)" in capsys.readouterr().err


class TestFoldingModes:
    def test_thermodynamic_output_is_crossing_free(self) -> None:
        """Whatever the backend returns, thermodynamic mode yields a nested matching."""
        rng = random.Random(7)
        for _ in range(100):
            n = rng.randint(4, 40)
            raw = []
            for _ in range(rng.randint(0, 2 * n)):
                i, j = rng.randrange(n + 2) - 1, rng.randrange(n + 2) - 1
                raw.append((i, j))
            confidence = {(min(p), max(p)): rng.random() for p in raw}
            predictor = StructurePredictor(FixedBackend(raw, confidence), FoldingMode.THERMODYNAMIC, verbosity=0)
            result = predictor.predict_consensus_structure(_record(n))

            assert not has_crossing(result.pairs)
            used = [c for p in result.pairs for c in p]
            assert len(used) == len(set(used))
            assert all(0 <= i < j < n for i, j in result.pairs)

    def test_modes_differ_on_pseudoknot(self, capsys) -> None:
        """Same alignment, same backend output: only the pseudoknot-aware mode keeps crossings."""
        record = _record(24)
        thermo = StructurePredictor(FixedBackend(HTYPE_PAIRS), FoldingMode.THERMODYNAMIC)
        aware = StructurePredictor(FixedBackend(HTYPE_PAIRS), FoldingMode.PSEUDOKNOT_AWARE)

        nested = thermo.predict_consensus_structure(record)
        knotted = aware.predict_consensus_structure(record)

        assert not nested.has_crossing()
        assert knotted.has_crossing()
        assert nested.pairs != knotted.pairs
        assert nested.mode is FoldingMode.THERMODYNAMIC
        assert knotted.mode is FoldingMode.PSEUDOKNOT_AWARE
        assert "crossing pairs" in capsys.readouterr().err


class TestMakePredictor:
    def test_thermodynamic(self) -> None:
        cfg = MotifConfig(alifold=AlifoldConfig(exe="/bin/RNAalifold", temperature=30.0))
        predictor = make_predictor(cfg)
        assert predictor.mode is FoldingMode.THERMODYNAMIC
        assert isinstance(predictor.backend, RNAalifoldBackend)
        assert predictor.backend.exe == "/bin/RNAalifold"
        assert predictor.backend.temperature == 30.0

    def test_pseudoknot_aware(self) -> None:
        cfg = MotifConfig(pseudoknot=True, ipknot=IPknotConfig(extra_args=("-g", "4")))
        predictor = make_predictor(cfg)
        assert predictor.mode is FoldingMode.PSEUDOKNOT_AWARE
        assert isinstance(predictor.backend, IPknotBackend)
        assert predictor.backend.extra_args == ("-g", "4")
