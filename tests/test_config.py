"""Tests for loading and validating run configuration."""

import json
import textwrap
from dataclasses import replace
from pathlib import Path

import pytest

from src.rnamotif.config import DEFAULT_CUTOFFS, MotifConfig, load_config, validate_config


class TestDefaults:
    def test_defaults(self) -> None:
        cfg = MotifConfig()
        assert not cfg.constrain
        assert not cfg.pseudoknot
        assert cfg.max_length == 1000
        assert cfg.cutoffs == DEFAULT_CUTOFFS
        assert cfg.alifold.exe == "RNAalifold"
        assert cfg.ipknot.exe == "ipknot"

    def test_default_cutoff_order(self) -> None:
        assert list(DEFAULT_CUTOFFS) == sorted(DEFAULT_CUTOFFS)
        assert len(DEFAULT_CUTOFFS) == 11
        assert DEFAULT_CUTOFFS[0] == 0
        assert DEFAULT_CUTOFFS[-1] == 0.2

    def test_workers(self) -> None:
        assert MotifConfig(workers=3).n_workers == 3
        assert MotifConfig().n_workers >= 1


class TestLoadConfig:
    def test_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "cfg.yaml"
        path.write_text(
            textwrap.dedent(
                """
                constrain: true
                pseudoknot: true
                max_length: 500
                cutoffs: [0, 0.05, 0.1]
                workers: 2
                verbosity: 0
                alifold:
                  temperature: 25
                ipknot:
                  exe: /opt/ipknot/bin/ipknot
                  extra_args: ["-g", "4"]
                """
            )
        )
        cfg = load_config(path)
        assert cfg.constrain and cfg.pseudoknot
        assert cfg.max_length == 500
        assert cfg.cutoffs == (0.0, 0.05, 0.1)
        assert cfg.workers == 2
        assert cfg.verbosity == 0
        assert cfg.alifold.temperature == 25.0
        assert cfg.alifold.exe == "RNAalifold"
        assert cfg.ipknot.exe == "/opt/ipknot/bin/ipknot"
        assert cfg.ipknot.extra_args == ("-g", "4")

    def test_json(self, tmp_path: Path) -> None:
        path = tmp_path / "cfg.json"
        path.write_text(json.dumps({"constrain": True, "alifold": {"extra_args": "--cfactor 0.6"}}))
        cfg = load_config(path)
        assert cfg.constrain
        assert cfg.cutoffs == DEFAULT_CUTOFFS
        assert cfg.alifold.extra_args == ("--cfactor", "0.6")

    def test_empty_yaml_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert load_config(path) == MotifConfig()

    def test_example_config(self) -> None:
        root = Path(__file__).resolve().parents[1]
        cfg = load_config(root / "example" / "rnamotif_config.yaml")
        assert cfg.constrain
        assert cfg.cutoffs == tuple(float(c) for c in DEFAULT_CUTOFFS)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("cutoffs: [0, 0.1\n")
        with pytest.raises(ValueError, match="invalid YAML"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            load_config(path)


class TestValidation:
    @pytest.mark.parametrize(
        "changes",
        [
            {"cutoffs": ()},
            {"cutoffs": (0.0, -0.1)},
            {"cutoffs": (0.1, 0.1)},
            {"max_length": 0},
            {"workers": 0},
            {"verbosity": 4},
        ],
    )
    def test_rejects(self, changes) -> None:
        with pytest.raises(ValueError):
            validate_config(replace(MotifConfig(), **changes))

    def test_invalid_file_values(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("cutoffs: [0.1, 0.1]\n")
        with pytest.raises(ValueError, match="Duplicate"):
            load_config(path)
