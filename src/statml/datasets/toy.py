from __future__ import annotations

import math
import numbers
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Sequence, Tuple

from statml.core.errors import InvalidConfigError
from statml.rng.mulberry import SeededRandom

DISTRIBUTIONS = ("blobs", "moons")


@dataclass(frozen=True)
class LabeledPoint:
    x: float
    y: float
    label: int  # 0 or 1


@dataclass(frozen=True)
class Bounds:
    x_min: float
    x_max: float
    y_min: float
    y_max: float


@dataclass(frozen=True)
class Dataset:
    points: Tuple[LabeledPoint, ...]
    bounds: Bounds

    def __len__(self) -> int:
        return len(self.points)

    def class_counts(self) -> Tuple[int, int]:
        n1 = sum(1 for p in self.points if p.label == 1)
        return len(self.points) - n1, n1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "points": [asdict(p) for p in self.points],
            "bounds": asdict(self.bounds),
        }


@dataclass(frozen=True)
class GeneratorConfig:
    distribution: str = "blobs"
    n: int = 300
    balance: float = 0.5  # proportion of class 1
    noise: float = 0.9  # sigma for blobs, jitter for moons
    seed: int = 42

    def __post_init__(self) -> None:
        if self.distribution not in DISTRIBUTIONS:
            raise InvalidConfigError(
                f"distribution must be one of {DISTRIBUTIONS}, got {self.distribution!r}"
            )
        if isinstance(self.n, bool) or not isinstance(self.n, numbers.Integral) or self.n <= 0:
            raise InvalidConfigError(f"n must be a positive integer, got {self.n!r}")
        if not (0.0 < self.balance < 1.0):
            raise InvalidConfigError(f"balance must be in (0, 1), got {self.balance!r}")
        if not (self.noise > 0.0) or not math.isfinite(self.noise):
            raise InvalidConfigError(f"noise must be a positive finite float, got {self.noise!r}")
        if isinstance(self.seed, bool) or not isinstance(self.seed, numbers.Integral):
            raise InvalidConfigError(f"seed must be an integer, got {self.seed!r}")


def compute_bounds(points: Sequence[LabeledPoint], margin: float = 0.1) -> Bounds:
    """
    Axis extrema padded by `margin` of the range on each side.
    An empty point set has no extrema: every bound is NaN.
    """
    if not points:
        nan = float("nan")
        return Bounds(nan, nan, nan, nan)
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    x_min, x_max = min(xs), max(xs)
    y_min, y_max = min(ys), max(ys)
    x_margin = (x_max - x_min) * margin
    y_margin = (y_max - y_min) * margin
    return Bounds(x_min - x_margin, x_max + x_margin, y_min - y_margin, y_max + y_margin)


def _blob_class(rng: SeededRandom, count: int, center: float, noise: float, label: int):
    # x then y, each from its own gaussian call
    return [
        LabeledPoint(rng.gaussian(center, noise), rng.gaussian(center, noise), label)
        for _ in range(count)
    ]


def _moon_class(rng: SeededRandom, count: int, noise: float, label: int) -> List[LabeledPoint]:
    out: List[LabeledPoint] = []
    for _ in range(count):
        t = rng.uniform(0.0, math.pi)
        if label == 0:
            # upper moon
            cx, cy = math.cos(t), math.sin(t)
        else:
            # lower moon, shifted right and down
            cx, cy = 1.0 - math.cos(t), 0.5 - math.sin(t)
        x = cx + rng.gaussian(0.0, noise)
        y = cy + rng.gaussian(0.0, noise)
        out.append(LabeledPoint(x, y, label))
    return out


def shuffle_in_place(items: List[Any], rng: SeededRandom) -> None:
    """Fisher-Yates, walking i from the end down to 1."""
    for i in range(len(items) - 1, 0, -1):
        j = rng.index(i + 1)
        items[i], items[j] = items[j], items[i]


def generate_dataset(config: GeneratorConfig) -> Dataset:
    """
    Build a labeled 2D point set from `config`. The same config always yields
    the same points in the same order.

    Class sizes: n1 = floor(n * balance), n0 = n - n1. Class 0 is drawn fully
    before class 1, then one shuffle on the same stream mixes them.
    """
    rng = SeededRandom(config.seed)
    n1 = int(math.floor(config.n * config.balance))
    n0 = config.n - n1

    if config.distribution == "blobs":
        points = _blob_class(rng, n0, -1.0, config.noise, 0)
        points += _blob_class(rng, n1, 1.0, config.noise, 1)
    else:
        points = _moon_class(rng, n0, config.noise, 0)
        points += _moon_class(rng, n1, config.noise, 1)

    shuffle_in_place(points, rng)
    return Dataset(points=tuple(points), bounds=compute_bounds(points))
