from __future__ import annotations

import numbers
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

from statml.classic.linear.logreg_numpy import ModelConfig
from statml.core.errors import InvalidConfigError
from statml.core.io import load_yaml
from statml.datasets.presets import apply_preset
from statml.datasets.toy import GeneratorConfig

# ---------------------------
# Config dataclasses
# ---------------------------


@dataclass(frozen=True)
class UncertaintyConfig:
    repeat_runs: int = 10
    bootstrap_samples: int = 300

    def __post_init__(self) -> None:
        for name in ("repeat_runs", "bootstrap_samples"):
            v = getattr(self, name)
            if isinstance(v, bool) or not isinstance(v, numbers.Integral) or v <= 0:
                raise InvalidConfigError(f"{name} must be a positive integer, got {v!r}")


@dataclass(frozen=True)
class ExperimentConfig:
    data: GeneratorConfig = field(default_factory=GeneratorConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    uncertainty: UncertaintyConfig = field(default_factory=UncertaintyConfig)
    split_ratio: float = 0.8
    log_level: str = "INFO"
    log_file: Optional[str] = None
    out_dir: str = "outputs/statml"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


DEFAULT_GENERATOR_CONFIG = GeneratorConfig()
DEFAULT_MODEL_CONFIG = ModelConfig()
DEFAULT_UNCERTAINTY_CONFIG = UncertaintyConfig()


# ---------------------------
# Loading
# ---------------------------

_SECTIONS = {"data", "model", "uncertainty"}
_TOP_LEVEL = {"preset", "split_ratio", "log_level", "log_file", "out_dir"} | _SECTIONS


def _section(d: Dict[str, Any], name: str) -> Dict[str, Any]:
    sec = d.get(name) or {}
    if not isinstance(sec, dict):
        raise InvalidConfigError(f"section {name!r} must be a mapping, got {type(sec).__name__}")
    return sec


def experiment_config_from_dict(d: Dict[str, Any]) -> ExperimentConfig:
    """
    Build an ExperimentConfig from a plain dict (parsed YAML/JSON).

    Order of precedence: defaults < `preset` < explicit `data`/`model` fields.
    Unknown keys are rejected rather than silently ignored.
    """
    unknown = set(d) - _TOP_LEVEL
    if unknown:
        raise InvalidConfigError(f"unknown config keys: {sorted(unknown)}")

    data, model = DEFAULT_GENERATOR_CONFIG, DEFAULT_MODEL_CONFIG
    if d.get("preset"):
        data, model = apply_preset(str(d["preset"]), data, model)

    try:
        data = replace(data, **_section(d, "data"))
        model = replace(model, **_section(d, "model"))
        uncertainty = replace(DEFAULT_UNCERTAINTY_CONFIG, **_section(d, "uncertainty"))
    except TypeError as exc:
        # unexpected field names inside a section
        raise InvalidConfigError(str(exc)) from exc

    split_ratio = float(d.get("split_ratio", 0.8))
    if not (0.0 < split_ratio < 1.0):
        raise InvalidConfigError(f"split_ratio must be in (0, 1), got {split_ratio!r}")

    return ExperimentConfig(
        data=data,
        model=model,
        uncertainty=uncertainty,
        split_ratio=split_ratio,
        log_level=str(d.get("log_level", "INFO")),
        log_file=d.get("log_file"),
        out_dir=str(d.get("out_dir", "outputs/statml")),
    )


def load_experiment_config(
    path: Optional[Path | str] = None, preset: Optional[str] = None
) -> ExperimentConfig:
    """
    Load a YAML experiment file (or start from defaults when `path` is None).
    `preset` replaces any preset the file names; the file's own `data`/`model`
    fields still override it.
    """
    raw = (load_yaml(path) or {}) if path else {}
    if not isinstance(raw, dict):
        raise InvalidConfigError(f"{path}: top level must be a mapping")
    if preset:
        raw = {**raw, "preset": preset}
    return experiment_config_from_dict(raw)
