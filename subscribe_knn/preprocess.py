# subscribe_knn/preprocess.py
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.compose import ColumnTransformer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, StandardScaler

from subscribe_knn.errors import (
    ConfigError,
    DegenerateFeatureError,
    EmptyInputError,
    SchemaMismatchError,
    UnfittedModelError,
)

logger = logging.getLogger(__name__)

DEGENERATE_POLICIES = ("raise", "keep")


def infer_feature_types(X: pd.DataFrame) -> Tuple[List[str], List[str]]:
    num_cols = X.select_dtypes(include=["number"]).columns.tolist()
    cat_cols = X.select_dtypes(include=["object", "string", "category", "bool"]).columns.tolist()
    return num_cols, cat_cols


def check_columns(X: pd.DataFrame, columns: Sequence[str]) -> None:
    missing = [c for c in columns if c not in X.columns]
    if missing:
        raise SchemaMismatchError(f"Input is missing fitted feature columns: {missing}", missing=missing)


class FeatureScaler(BaseEstimator, TransformerMixin):
    """
    Centre and scale numeric columns with statistics frozen at fit time.

    The standard deviation is the population one (ddof=0), as computed by
    StandardScaler. Columns that are not scaled pass through unchanged.

    Parameters
    ----------
    columns : list of str, optional
        Numeric columns to scale. Defaults to every numeric column seen in fit.
    degenerate : {"raise", "keep"}
        What transform does with a zero-variance column: raise
        DegenerateFeatureError, or leave the column unscaled.
    """

    def __init__(self, columns: Optional[Sequence[str]] = None, degenerate: str = "raise"):
        self.columns = columns
        self.degenerate = degenerate

    def fit(self, X: pd.DataFrame, y=None):
        if self.degenerate not in DEGENERATE_POLICIES:
            raise ConfigError(f"degenerate must be one of {DEGENERATE_POLICIES}, got {self.degenerate!r}")
        if not isinstance(X, pd.DataFrame):
            raise TypeError("FeatureScaler expects a pandas DataFrame")
        if len(X) == 0:
            raise EmptyInputError("Cannot fit a scaler on zero rows")

        columns = list(self.columns) if self.columns is not None else infer_feature_types(X)[0]
        check_columns(X, columns)

        self.feature_names_in_ = np.asarray(X.columns, dtype=object)
        self.n_features_in_ = len(self.feature_names_in_)
        self.columns_ = columns
        if columns:
            values = X[columns].to_numpy(dtype=float)
            stats = StandardScaler().fit(values)
            self.mean_ = stats.mean_
            self.std_ = np.sqrt(stats.var_)
            # constant columns can come out with a rounding-level variance
            self.std_[np.ptp(values, axis=0) == 0] = 0.0
        else:
            self.mean_ = np.zeros(0)
            self.std_ = np.zeros(0)
        return self

    def degenerate_columns(self) -> List[str]:
        self._check_fitted()
        return [c for c, s in zip(self.columns_, self.std_) if s == 0]

    def _check_fitted(self) -> None:
        if not hasattr(self, "mean_"):
            raise UnfittedModelError("FeatureScaler is not fitted yet; call fit before transform")

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        self._check_fitted()
        if not isinstance(X, pd.DataFrame):
            raise TypeError("FeatureScaler expects a pandas DataFrame")
        check_columns(X, self.feature_names_in_)

        flat = self.degenerate_columns()
        if flat and self.degenerate == "raise":
            raise DegenerateFeatureError(
                f"Zero standard deviation in training data for {flat}; drop the feature or use degenerate='keep'",
                columns=flat,
            )

        out = X[list(self.feature_names_in_)].copy()
        for col, mean, std in zip(self.columns_, self.mean_, self.std_):
            if std == 0:
                continue
            out[col] = (out[col].astype(float) - mean) / std
        return out

    def get_feature_names_out(self, input_features=None):
        self._check_fitted()
        return self.feature_names_in_.copy()


def build_preprocess(
    numeric: Sequence[str],
    categorical: Sequence[str],
    degenerate: str = "raise",
) -> Pipeline:
    numeric, categorical = list(numeric), list(categorical)
    if not numeric and not categorical:
        raise ConfigError("At least one feature column is required")

    encoders = []
    if numeric:
        encoders.append(("num", "passthrough", numeric))
    if categorical:
        encoders.append(("cat", OneHotEncoder(handle_unknown="ignore", sparse_output=False), categorical))

    encode = ColumnTransformer(
        transformers=encoders,
        remainder="drop",
        sparse_threshold=0.0,
        verbose_feature_names_out=False,
    )
    return Pipeline([
        ("scale", FeatureScaler(columns=numeric, degenerate=degenerate)),
        ("encode", encode),
    ])
