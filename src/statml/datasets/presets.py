from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Tuple

from statml.classic.linear.logreg_numpy import ModelConfig
from statml.core.errors import InvalidConfigError
from statml.datasets.toy import GeneratorConfig


@dataclass(frozen=True)
class Preset:
    name: str
    description: str
    data: Dict[str, Any] = field(default_factory=dict)  # GeneratorConfig overrides
    model: Dict[str, Any] = field(default_factory=dict)  # ModelConfig overrides


PRESETS: Tuple[Preset, ...] = (
    Preset(
        "Small & Noisy",
        "Small dataset with high noise - shows high variance",
        data={"n": 100, "noise": 1.2, "distribution": "blobs"},
        model={"lam": 0.001, "epochs": 100},
    ),
    Preset(
        "Bigger Dataset",
        "Larger sample size reduces variance",
        data={"n": 800, "noise": 0.6, "distribution": "blobs"},
        model={"lam": 0.01, "epochs": 150},
    ),
    Preset(
        "High Regularization",
        "Strong regularization increases bias, reduces variance",
        data={"n": 300, "noise": 0.8, "distribution": "moons"},
        model={"lam": 1.0, "epochs": 100},
    ),
    Preset(
        "Low Regularization",
        "Weak regularization may lead to overfitting",
        data={"n": 200, "noise": 0.5, "distribution": "moons"},
        model={"lam": 0.0001, "epochs": 200},
    ),
)


def _key(name: str) -> str:
    return "".join(ch for ch in name.lower() if ch.isalnum())


def get_preset(name: str) -> Preset:
    """Case/punctuation-insensitive lookup: "small-noisy" finds "Small & Noisy"."""
    for p in PRESETS:
        if _key(p.name) == _key(name):
            return p
    names = ", ".join(p.name for p in PRESETS)
    raise InvalidConfigError(f"unknown preset {name!r}; available: {names}")


def apply_preset(
    preset: Preset | str, data: GeneratorConfig, model: ModelConfig
) -> Tuple[GeneratorConfig, ModelConfig]:
    """Overlay a preset on existing configs; fields it does not name are kept."""
    p = get_preset(preset) if isinstance(preset, str) else preset
    return replace(data, **p.data), replace(model, **p.model)
