from __future__ import annotations


class StatMLError(Exception):
    """Base class for errors raised by statml."""


class InvalidConfigError(StatMLError, ValueError):
    """
    Rejected input: a config field out of range, an empty training set,
    a non-positive sample count, mismatched weight/scaling shapes.
    """


class JobCancelled(StatMLError):
    """
    Raised inside a computation when its cancel token fires.
    A deliberately discarded result, not a failure.
    """
