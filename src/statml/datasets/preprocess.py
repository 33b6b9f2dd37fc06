from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from statml.core.errors import InvalidConfigError
from statml.datasets.toy import LabeledPoint
from statml.rng.mulberry import SeededRandom

STD_FLOOR = 1e-8


def _frozen(a: np.ndarray) -> np.ndarray:
    a = np.array(a, dtype=np.float64)
    a.setflags(write=False)
    return a


@dataclass(frozen=True)
class StandardizeResult:
    standardized: Tuple[LabeledPoint, ...]
    mean_x: np.ndarray  # (2,)
    std_x: np.ndarray  # (2,)


@dataclass(frozen=True)
class TrainingData:
    X: np.ndarray  # (n, 2)
    y: np.ndarray  # (n,) labels in {0, 1}

    @property
    def n(self) -> int:
        return int(self.X.shape[0])


def points_to_arrays(points: Sequence[LabeledPoint]) -> TrainingData:
    X = np.array([(p.x, p.y) for p in points], dtype=np.float64).reshape(-1, 2)
    y = np.array([p.label for p in points], dtype=np.float64)
    return TrainingData(X, y)


def check_scaling(mean_x, std_x) -> Tuple[np.ndarray, np.ndarray]:
    """Coerce and validate standardization params: finite means, finite positive stds."""
    mean_x = np.asarray(mean_x, dtype=np.float64)
    std_x = np.asarray(std_x, dtype=np.float64)
    if mean_x.shape != (2,) or std_x.shape != (2,):
        raise InvalidConfigError(
            f"mean_x/std_x must both have shape (2,), got {mean_x.shape} and {std_x.shape}"
        )
    if not np.all(np.isfinite(mean_x)):
        raise InvalidConfigError(f"mean_x must be finite, got {mean_x.tolist()}")
    if not (np.all(np.isfinite(std_x)) and np.all(std_x > 0.0)):
        raise InvalidConfigError(f"std_x must be finite and > 0, got {std_x.tolist()}")
    return mean_x, std_x


def apply_standardization(
    points: Sequence[LabeledPoint], mean_x: np.ndarray, std_x: np.ndarray
) -> Tuple[LabeledPoint, ...]:
    """z = (v - mean) / std with *given* params; labels carried through."""
    mean_x, std_x = check_scaling(mean_x, std_x)
    return tuple(
        LabeledPoint((p.x - mean_x[0]) / std_x[0], (p.y - mean_x[1]) / std_x[1], p.label)
        for p in points
    )


def standardize(points: Sequence[LabeledPoint]) -> StandardizeResult:
    """
    Per-axis z-scoring with population statistics (divide by n).

    Pass 1 takes the means, pass 2 the squared deviations. A component whose
    std falls below 1e-8 is floored to 1.0 so constant features pass through
    centred but unscaled. An empty input yields the identity transform.
    """
    if len(points) == 0:
        return StandardizeResult((), _frozen([0.0, 0.0]), _frozen([1.0, 1.0]))

    X = points_to_arrays(points).X
    mean = X.mean(axis=0)
    std = np.sqrt(((X - mean) ** 2).mean(axis=0))
    std[std < STD_FLOOR] = 1.0

    return StandardizeResult(apply_standardization(points, mean, std), _frozen(mean), _frozen(std))


def train_val_split(
    points: Sequence[LabeledPoint], ratio: float = 0.8
) -> Tuple[Tuple[LabeledPoint, ...], Tuple[LabeledPoint, ...]]:
    """
    Positional split: the first floor(n * ratio) points train, the rest validate.
    No shuffling here; order is whatever the caller passes in.
    """
    if not (0.0 <= ratio <= 1.0):
        raise InvalidConfigError(f"ratio must be in [0, 1], got {ratio!r}")
    n_train = int(np.floor(len(points) * ratio))
    pts = tuple(points)
    return pts[:n_train], pts[n_train:]


def bootstrap_indices(n: int, rng: SeededRandom) -> np.ndarray:
    """n draws with replacement, each index uniform in [0, n)."""
    return rng.indices(n, n)


def bootstrap_sample(points: Sequence[LabeledPoint], rng: SeededRandom) -> Tuple[LabeledPoint, ...]:
    pts = tuple(points)
    return tuple(pts[i] for i in bootstrap_indices(len(pts), rng))
