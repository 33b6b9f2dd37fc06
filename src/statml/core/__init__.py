# Shared utilities for all domains. Explicit re-exports for a clean public API.

from .cancel import CancelToken as CancelToken
from .errors import (
    InvalidConfigError as InvalidConfigError,
    JobCancelled as JobCancelled,
    StatMLError as StatMLError,
)
from .io import (
    ensure_dir as ensure_dir,
    load_json as load_json,
    load_yaml as load_yaml,
    save_json as save_json,
    save_yaml as save_yaml,
)
from .logs import get_logger as get_logger
from .manifest import RunManifest as RunManifest, write_manifest as write_manifest
from .timers import Timer as Timer, timed as timed

__all__ = [
    "CancelToken",
    "InvalidConfigError",
    "JobCancelled",
    "StatMLError",
    "ensure_dir",
    "load_json",
    "load_yaml",
    "save_json",
    "save_yaml",
    "get_logger",
    "RunManifest",
    "write_manifest",
    "Timer",
    "timed",
]
