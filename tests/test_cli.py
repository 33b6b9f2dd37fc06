from pathlib import Path

import pytest
from typer.testing import CliRunner

import run_statml
from statml.core.errors import InvalidConfigError
from statml.core.io import load_json, save_yaml
from statml.rng.mulberry import derive_seed

runner = CliRunner()


@pytest.fixture
def small_cfg(tmp_path: Path) -> Path:
    p = tmp_path / "small.yaml"
    save_yaml(p, {"data": {"n": 60, "seed": 9}, "model": {"epochs": 15}, "split_ratio": 0.75})
    return p


def test_train_manifest_records_reproduction_inputs(tmp_path: Path, small_cfg: Path):
    out = tmp_path / "train"
    res = runner.invoke(run_statml.app, ["train", "--config", str(small_cfg), "--out-dir", str(out)])
    assert res.exit_code == 0, res.output
    man = load_json(out / "manifest.json")
    assert man["command"] == "statml/train"
    assert man["seeds"] == {"data": 9, "init": 9}
    assert man["deterministic_init"] is True and man["split_ratio"] == 0.75
    assert man["config_path"] == str(small_cfg)
    assert set(man["outputs"]) == {"config", "model"} and "train" in man["timings"]
    assert load_json(out / "config.json")["data"]["n"] == 60


def test_uncertainty_manifest_records_stream_seeds(tmp_path: Path, small_cfg: Path):
    out = tmp_path / "unc"
    res = runner.invoke(
        run_statml.app,
        ["uncertainty", "--config", str(small_cfg), "--runs", "2", "--samples", "20", "--out-dir", str(out)],
    )
    assert res.exit_code == 0, res.output
    man = load_json(out / "manifest.json")
    assert man["seeds"]["repeat"] == derive_seed(9, 1)
    assert man["seeds"]["bootstrap"] == derive_seed(9, 2)
    assert len(load_json(out / "repeat_runs.json")) == 2
    assert len(load_json(out / "bootstrap.json")["accuracies"]) == 20


@pytest.mark.parametrize("flag", ["--runs", "--samples"])
def test_zero_counts_are_rejected(tmp_path: Path, small_cfg: Path, flag: str):
    out = tmp_path / "zero"
    res = runner.invoke(
        run_statml.app, ["uncertainty", "--config", str(small_cfg), flag, "0", "--out-dir", str(out)]
    )
    assert res.exit_code != 0
    assert isinstance(res.exception, InvalidConfigError)
    assert not (out / "manifest.json").exists()


def test_preset_flag_does_not_override_file_fields(tmp_path: Path):
    p = tmp_path / "cfg.yaml"
    save_yaml(p, {"data": {"n": 50}, "model": {"lam": 0.5}})
    cfg = run_statml._load(p, "Bigger Dataset", seed=3)
    # file fields win, preset fills the rest
    assert (cfg.data.n, cfg.model.lam) == (50, 0.5)
    assert (cfg.data.noise, cfg.model.epochs) == (0.6, 150)
    assert cfg.data.seed == 3
