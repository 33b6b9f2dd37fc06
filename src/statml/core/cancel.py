from __future__ import annotations

import threading

from .errors import JobCancelled


class CancelToken:
    """Thread-safe cancellation flag checked by long loops at their checkpoints."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise JobCancelled("computation cancelled")

    def __repr__(self) -> str:
        return f"CancelToken(cancelled={self.cancelled})"
