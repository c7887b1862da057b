"""Tests for the command-line entry point."""

import json
import textwrap
from pathlib import Path
from unittest.mock import patch

import pytest

from fakes import EchoBackend
from src.rnamotif import scheduler
from src.rnamotif.cli import build_parser, main, run
from src.rnamotif.config import MotifConfig
from src.rnamotif.predictor import FoldingMode, StructurePredictor


def _batch_with_echo(records, config, present=None):
    predictor = StructurePredictor(EchoBackend(), FoldingMode.THERMODYNAMIC, verbosity=0)
    return scheduler.run_batch(records, config, present=present, predictor=predictor)


class TestParser:
    def test_defaults(self) -> None:
        args = build_parser().parse_args(["seed.sto", "out"])
        assert args.seed_alignment == "seed.sto"
        assert args.motif_output == "out"
        assert not args.constrain
        assert not args.pseudoknot
        assert args.verbosity is None

    def test_short_flags(self) -> None:
        args = build_parser().parse_args(["-ps", "-co", "-vv", "seed.sto", "out"])
        assert args.pseudoknot
        assert args.constrain
        assert args.verbosity == 3

    @pytest.mark.parametrize("flag,level", [("-q", 0), ("-v", 2), ("--very-verbose", 3)])
    def test_verbosity(self, flag, level) -> None:
        assert build_parser().parse_args([flag, "a", "b"]).verbosity == level


class TestRun:
    def test_writes_motifs_and_summary(self, tmp_path: Path, families_sto_path: Path) -> None:
        cfg = MotifConfig(cutoffs=(0.0, 0.1), workers=1, verbosity=0)
        with patch("src.rnamotif.cli.run_batch", side_effect=_batch_with_echo):
            report = run(families_sto_path, tmp_path, constrain=True, config=cfg)

        assert report.n_success == 2
        assert (tmp_path / "stats_0" / "RF90001.txt").is_file()
        assert (tmp_path / "stats_0.1" / "RF90002.txt").is_file()
        assert not (tmp_path / "stats_0" / "RF90003.txt").exists()
        summary = json.loads((tmp_path / "summary.json").read_text())
        assert summary["success"] == 2

    def test_families_dir(self, tmp_path: Path, families_sto_path: Path) -> None:
        families_dir = tmp_path / "families"
        (families_dir / "weak_helix").mkdir(parents=True)
        (families_dir / "weak_helix" / "weak_helix.msa").write_text("x\n")
        cfg = MotifConfig(cutoffs=(0.0,), workers=1, verbosity=0)

        with patch("src.rnamotif.cli.run_batch", side_effect=_batch_with_echo):
            report = run(families_sto_path, tmp_path / "out", constrain=True, config=cfg, families_dir=families_dir)

        assert [r.status.value for r in report.results] == ["skipped", "assembled", "skipped"]
        assert report.results[0].reason.value == "missing_input"

    def test_ragged_family_only_skips_itself(self, tmp_path: Path) -> None:
        seed = tmp_path / "seed.sto"
        seed.write_text(
            textwrap.dedent(
                """\
                # STOCKHOLM 1.0
                #=GF AC RF1
                s1  GGGAAACCC
                s2  GGCAAAGCC
                #=GC SS_cons (((...))).
                //
                # STOCKHOLM 1.0
                #=GF AC RF2
                s1  GGGAAACCC
                s2  GGGAAACC
                #=GC SS_cons (((...))).
                //
                """
            )
        )
        out = tmp_path / "out"
        cfg = MotifConfig(cutoffs=(0.0,), workers=1, verbosity=0)

        with patch("src.rnamotif.cli.run_batch", side_effect=_batch_with_echo):
            report = run(seed, out, constrain=True, config=cfg)

        assert report.n_success == 1
        assert report.results[0].ok
        assert report.results[1].reason.value == "failed"
        assert "length mismatch" in report.results[1].message
        assert (out / "stats_0" / "RF1.txt").is_file()
        assert not (out / "stats_0" / "RF2.txt").exists()
        summary = json.loads((out / "summary.json").read_text())
        assert summary["skip_reasons"] == {"failed": 1}


class TestMain:
    def test_end_to_end(self, tmp_path: Path, families_sto_path: Path, capsys) -> None:
        out = tmp_path / "motifs"
        with patch("src.rnamotif.cli.run_batch", side_effect=_batch_with_echo):
            main(["-co", "--workers", "1", str(families_sto_path), str(out)])

        err = capsys.readouterr().err
        assert "3 records read" in err
        assert "Constrain" in err
        assert len(list(out.glob("stats_*"))) == 11
        assert (out / "stats_0.2" / "RF90001.txt").is_file()

    def test_config_file_and_overrides(self, tmp_path: Path, families_sto_path: Path) -> None:
        cfg_path = tmp_path / "cfg.yaml"
        cfg_path.write_text("cutoffs: [0, 0.1]\nmax_length: 10\nverbosity: 2\n")
        seen = {}

        def capture(records, config, present=None):
            seen["config"] = config
            return _batch_with_echo(records, config, present)

        with patch("src.rnamotif.cli.run_batch", side_effect=capture):
            main(["-c", str(cfg_path), "-q", "--max-length", "50", "--workers", "1",
                  str(families_sto_path), str(tmp_path / "out")])

        cfg = seen["config"]
        assert cfg.cutoffs == (0.0, 0.1)
        assert cfg.max_length == 50
        assert cfg.verbosity == 0
        assert cfg.workers == 1

    def test_missing_seed_file(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc:
            main(["-q", str(tmp_path / "missing.sto"), str(tmp_path / "out")])
        assert exc.value.code == 1

    def test_missing_config_file(self, tmp_path: Path, families_sto_path: Path, capsys) -> None:
        with pytest.raises(SystemExit) as exc:
            main(["-c", str(tmp_path / "nope.yaml"), str(families_sto_path), str(tmp_path / "out")])
        assert exc.value.code == 1
        assert "[ERROR] Config file not found" in capsys.readouterr().err

    def test_invalid_config_file(self, tmp_path: Path, families_sto_path: Path, capsys) -> None:
        cfg_path = tmp_path / "cfg.yaml"
        cfg_path.write_text("cutoffs: [0, 0.1\n")
        with pytest.raises(SystemExit) as exc:
            main(["-c", str(cfg_path), str(families_sto_path), str(tmp_path / "out")])
        assert exc.value.code == 1
        assert "invalid YAML" in capsys.readouterr().err
