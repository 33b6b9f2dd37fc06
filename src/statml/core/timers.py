from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

log = logging.getLogger("statml.timers")


class Timer:
    """Wall-clock stopwatch. `elapsed` keeps growing until `stop()` freezes it."""

    def __init__(self) -> None:
        self._start = time.perf_counter()
        self._end: Optional[float] = None

    def stop(self) -> float:
        if self._end is None:
            self._end = time.perf_counter()
        return self.elapsed

    @property
    def elapsed(self) -> float:
        end = time.perf_counter() if self._end is None else self._end
        return end - self._start

    def __repr__(self) -> str:
        return f"{self.elapsed:.3f}s"


@contextmanager
def timed(label: str, timings: Optional[Dict[str, float]] = None) -> Iterator[Timer]:
    """Time a block, log it, and record the seconds under `label` in `timings`."""
    t = Timer()
    try:
        yield t
    finally:
        t.stop()
        log.info("[timer] %s: %s", label, t)
        if timings is not None:
            timings[label] = t.elapsed
