from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def get_logger(
    name: str = "statml", level: Optional[str] = None, log_file: Optional[str] = None
) -> logging.Logger:
    """
    Return a logger under the `statml` hierarchy, wiring console/file sinks on
    the `statml` root logger. Child loggers (`statml.train`, `statml.jobs`, ...)
    propagate to the same sinks.
    """
    root = logging.getLogger("statml")
    fmt = logging.Formatter(_FORMAT)
    # Avoid adding multiple handlers on repeated runs
    if not root.handlers:
        root.setLevel(logging.INFO)
        ch = logging.StreamHandler()
        ch.setFormatter(fmt)
        root.addHandler(ch)
    if level:
        root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if log_file:
        target = str(Path(log_file).resolve())
        if not any(getattr(h, "baseFilename", None) == target for h in root.handlers):
            Path(target).parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(target)
            fh.setFormatter(fmt)
            root.addHandler(fh)
    return logging.getLogger(name)
