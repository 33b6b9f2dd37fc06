from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from statml.core.errors import InvalidConfigError


@dataclass(frozen=True)
class AccuracySummary:
    mean: float
    std: float  # population std
    confidence_interval: Tuple[float, float]


@dataclass(frozen=True)
class Histogram:
    counts: Tuple[int, ...]
    lo: float
    hi: float

    @property
    def edges(self) -> np.ndarray:
        return np.linspace(self.lo, self.hi, len(self.counts) + 1)


@dataclass(frozen=True)
class WeightSpread:
    mean: np.ndarray  # (3,) per-weight mean across runs
    std: np.ndarray  # (3,) per-weight population std


def percentile_interval(values: Sequence[float], alpha: float = 0.05) -> Tuple[float, float]:
    """
    Empirical (alpha/2, 1 - alpha/2) interval by index: sorted[floor(q * m)].
    """
    if len(values) == 0:
        raise InvalidConfigError("percentile interval of an empty sequence")
    s = sorted(values)
    m = len(s)
    lo = int(math.floor((alpha / 2.0) * m))
    hi = min(m - 1, int(math.floor((1.0 - alpha / 2.0) * m)))
    return float(s[lo]), float(s[hi])


def summarize_accuracies(accuracies: Sequence[float]) -> AccuracySummary:
    a = np.asarray(accuracies, dtype=np.float64)
    if a.size == 0:
        raise InvalidConfigError("cannot summarize an empty accuracy sequence")
    return AccuracySummary(float(a.mean()), float(a.std()), percentile_interval(a.tolist()))


def accuracy_histogram(accuracies: Sequence[float]) -> Histogram:
    """
    Bin count is min(20, max(5, floor(sqrt(m)))); a value on the upper edge
    lands in the last bin. Zero spread collapses everything into one bin.
    """
    a = np.asarray(accuracies, dtype=np.float64)
    if a.size == 0:
        raise InvalidConfigError("cannot bin an empty accuracy sequence")
    lo, hi = float(a.min()), float(a.max())
    if hi == lo:
        return Histogram((int(a.size),), lo, hi)

    num_bins = min(20, max(5, int(math.floor(math.sqrt(a.size)))))
    width = (hi - lo) / num_bins
    idx = np.minimum(num_bins - 1, np.floor((a - lo) / width).astype(np.int64))
    counts = np.bincount(idx, minlength=num_bins)
    return Histogram(tuple(int(c) for c in counts), lo, hi)


def weight_spread(models) -> WeightSpread:
    """Per-weight mean/std over a batch of fitted models (e.g. repeat-training runs)."""
    W = np.array([np.asarray(m.weights, dtype=np.float64) for m in models]).reshape(-1, 3)
    if W.shape[0] == 0:
        raise InvalidConfigError("weight spread needs at least one model")
    return WeightSpread(W.mean(axis=0), W.std(axis=0))
