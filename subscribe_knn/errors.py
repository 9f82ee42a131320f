# subscribe_knn/errors.py
"""Error kinds raised by the pipeline stages.

None of these are retried: a stage aborts and the error carries the
offending columns or rows so the input or configuration can be fixed.
"""
from __future__ import annotations

from typing import Iterable, Optional

from sklearn.exceptions import NotFittedError


class SubscribeKnnError(Exception):
    """Base class for every error raised by subscribe_knn."""


class ConfigError(SubscribeKnnError, ValueError):
    """Invalid configuration or hyperparameter value."""


class DataError(SubscribeKnnError, ValueError):
    """Input table is unreadable, missing columns, or holds invalid values."""

    def __init__(self, message: str, columns: Optional[Iterable[str]] = None, rows: Optional[Iterable] = None):
        super().__init__(message)
        self.columns = list(columns) if columns is not None else []
        self.rows = list(rows) if rows is not None else []


class DegenerateFeatureError(SubscribeKnnError, ValueError):
    """A numeric feature has zero standard deviation, so scaling is undefined."""

    def __init__(self, message: str, columns: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.columns = list(columns) if columns is not None else []


class UnfittedModelError(SubscribeKnnError, NotFittedError):
    """A scaler or model was used before fit."""


class SchemaMismatchError(SubscribeKnnError, ValueError):
    """Query data lacks a feature the scaler or model was fit on."""

    def __init__(self, message: str, missing: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.missing = list(missing) if missing is not None else []


class EmptyInputError(SubscribeKnnError, ValueError):
    """An operation received zero rows where at least one is required."""
