from pathlib import Path

import pytest

from statml.classic.linear.logreg_numpy import ModelConfig
from statml.config import (
    ExperimentConfig,
    UncertaintyConfig,
    experiment_config_from_dict,
    load_experiment_config,
)
from statml.core.errors import InvalidConfigError
from statml.core.io import save_yaml
from statml.datasets.presets import PRESETS, apply_preset, get_preset
from statml.datasets.toy import GeneratorConfig

REPO = Path(__file__).resolve().parents[1]


def test_defaults():
    cfg = experiment_config_from_dict({})
    assert cfg.data == GeneratorConfig("blobs", 300, 0.5, 0.9, 42)
    assert (cfg.model.lam, cfg.model.learning_rate, cfg.model.epochs) == (0.01, 0.05, 100)
    assert cfg.uncertainty == UncertaintyConfig(10, 300)


def test_shipped_yaml_matches_defaults():
    assert load_experiment_config(REPO / "configs" / "default.yaml") == ExperimentConfig()


def test_preset_then_overrides(tmp_path: Path):
    p = tmp_path / "exp.yaml"
    save_yaml(p, {"preset": "High Regularization", "data": {"seed": 7}, "model": {"epochs": 40}})
    cfg = load_experiment_config(p)
    assert cfg.data.distribution == "moons" and cfg.data.noise == 0.8 and cfg.data.seed == 7
    assert cfg.model.lam == 1.0 and cfg.model.epochs == 40


def test_preset_argument_sits_below_file_fields(tmp_path: Path):
    p = tmp_path / "exp.yaml"
    save_yaml(p, {"preset": "High Regularization", "data": {"n": 90}})
    cfg = load_experiment_config(p, preset="Low Regularization")
    assert (cfg.data.n, cfg.data.noise, cfg.model.lam) == (90, 0.5, 0.0001)
    assert load_experiment_config(preset="Bigger Dataset").data.n == 800


@pytest.mark.parametrize(
    "raw",
    [
        {"bogus": 1},
        {"data": {"n": 0}},
        {"data": {"colour": "red"}},
        {"model": {"learning_rate": -0.1}},
        {"uncertainty": {"bootstrap_samples": 0}},
        {"split_ratio": 1.0},
        {"data": [1, 2]},
    ],
)
def test_bad_configs_rejected(raw):
    with pytest.raises(InvalidConfigError):
        experiment_config_from_dict(raw)


def test_preset_lookup_is_forgiving():
    assert get_preset("small-noisy").name == "Small & Noisy"
    assert get_preset("BIGGER DATASET").data["n"] == 800
    with pytest.raises(InvalidConfigError):
        get_preset("nope")


def test_apply_preset_keeps_unnamed_fields():
    data = GeneratorConfig(balance=0.3, seed=99)
    model = ModelConfig(learning_rate=0.2)
    new_data, new_model = apply_preset("Low Regularization", data, model)
    assert (new_data.n, new_data.noise, new_data.distribution) == (200, 0.5, "moons")
    assert (new_data.balance, new_data.seed) == (0.3, 99)
    assert (new_model.lam, new_model.epochs, new_model.learning_rate) == (0.0001, 200, 0.2)


def test_all_presets_build_valid_configs():
    for p in PRESETS:
        apply_preset(p, GeneratorConfig(), ModelConfig())
