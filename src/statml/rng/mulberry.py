from __future__ import annotations

import math

import numpy as np

_MASK32 = 0xFFFFFFFF
_INCREMENT = 0x6D2B79F5
_TWO_32 = 4294967296.0


def _imul(a: int, b: int) -> int:
    # low 32 bits of the product, as an unsigned int
    return (a * b) & _MASK32


class SeededRandom:
    """
    Mulberry32 pseudo-random source with uniform and Gaussian sampling.

    State is a single 32-bit word. Every call is a pure function of that state,
    so two instances built from the same seed yield the same stream.
    Gaussian draws use Box-Muller and cache the paired value for the next call.
    """

    def __init__(self, seed: int = 0):
        self.reset(seed)

    def reset(self, seed: int) -> None:
        self._state = int(seed) & _MASK32
        self._has_spare = False
        self._spare = 0.0

    @property
    def state(self) -> int:
        return self._state

    def next(self) -> float:
        """One Mulberry32 step: float in [0, 1)."""
        self._state = (self._state + _INCREMENT) & _MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / _TWO_32

    def uniform(self, lo: float = 0.0, hi: float = 1.0) -> float:
        return lo + (hi - lo) * self.next()

    def index(self, n: int) -> int:
        """Uniform integer in [0, n): floor(next() * n)."""
        return int(self.next() * n)

    def gaussian(self, mean: float = 0.0, std: float = 1.0) -> float:
        if self._has_spare:
            self._has_spare = False
            return self._spare * std + mean

        self._has_spare = True
        u = self.next()
        v = self.next()
        # u == 0 has probability 2**-32; -log(0) is inf and propagates like the reference
        mag = math.sqrt(-2.0 * math.log(u)) if u > 0.0 else math.inf
        self._spare = mag * math.cos(2.0 * math.pi * v)
        return mag * math.sin(2.0 * math.pi * v) * std + mean

    def indices(self, n: int, size: int) -> np.ndarray:
        """`size` independent draws of `index(n)` as an int array."""
        return np.fromiter((self.index(n) for _ in range(size)), dtype=np.int64, count=size)


def derive_seed(seed: int, stream: int) -> int:
    """
    Deterministic 32-bit sub-seed for an independent stream.
    Used when several jobs share one user-facing seed but must not share draws.
    """
    rng = SeededRandom((int(seed) + (int(stream) + 1) * 0x9E3779B9) & _MASK32)
    return int(rng.next() * _TWO_32)
