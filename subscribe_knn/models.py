# subscribe_knn/models.py
from __future__ import annotations

import logging
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, ClassifierMixin
from sklearn.exceptions import NotFittedError
from sklearn.pipeline import Pipeline
from sklearn.utils.multiclass import check_classification_targets
from sklearn.utils.validation import check_array, check_is_fitted, check_X_y

from subscribe_knn.config import TARGET_COLUMN
from subscribe_knn.errors import ConfigError, EmptyInputError, SchemaMismatchError, UnfittedModelError
from subscribe_knn.preprocess import build_preprocess, check_columns, infer_feature_types

logger = logging.getLogger(__name__)

WEIGHTS = ("uniform", "distance")


class KNNClassifier(ClassifierMixin, BaseEstimator):
    """
    Brute-force k-nearest-neighbours majority vote over Euclidean distance.

    Neighbours are ordered with a stable sort, so equal distances keep the
    training order. When labels tie on votes, the label met first among the
    neighbours (nearest first) wins.
    """

    def __init__(self, n_neighbors: int = 5, weights: str = "uniform"):
        self.n_neighbors = n_neighbors
        self.weights = weights

    def fit(self, X, y):
        k = self.n_neighbors
        if not isinstance(k, (int, np.integer)) or isinstance(k, bool) or k < 1 or k % 2 == 0:
            raise ConfigError(f"n_neighbors must be an odd integer >= 1, got {k!r}")
        if self.weights not in WEIGHTS:
            raise ConfigError(f"weights must be one of {WEIGHTS}, got {self.weights!r}")

        X, y = check_X_y(X, y, dtype=float)
        check_classification_targets(y)
        if k > X.shape[0]:
            raise ConfigError(f"n_neighbors={k} exceeds the {X.shape[0]} training samples")

        self.classes_ = np.unique(y)
        self.n_features_in_ = X.shape[1]
        self._fit_X = X
        self._fit_y = y
        return self

    def __sklearn_is_fitted__(self) -> bool:
        return hasattr(self, "_fit_X")

    def _check_query(self, X) -> np.ndarray:
        if not self.__sklearn_is_fitted__():
            raise UnfittedModelError("KNNClassifier is not fitted yet; call fit before predict")
        X = check_array(X, dtype=float)
        if X.shape[1] != self.n_features_in_:
            raise SchemaMismatchError(
                f"Query has {X.shape[1]} features but the model was fit on {self.n_features_in_}"
            )
        return X

    def kneighbors(self, X):
        """Return (distances, indices) of the k nearest stored vectors, nearest first."""
        X = self._check_query(X)
        diffs = X[:, np.newaxis, :] - self._fit_X[np.newaxis, :, :]
        dist = np.sqrt((diffs ** 2).sum(axis=2))
        idx = np.argsort(dist, axis=1, kind="stable")[:, : self.n_neighbors]
        return np.take_along_axis(dist, idx, axis=1), idx

    def _votes(self, X) -> List[Dict]:
        dist, idx = self.kneighbors(X)
        votes = []
        for row_dist, row_idx in zip(dist, idx):
            if self.weights == "distance":
                exact = row_dist == 0
                w = exact.astype(float) if exact.any() else 1.0 / row_dist
            else:
                w = np.ones(len(row_idx))
            # insertion order = first appearance in distance order
            tally: Dict = {}
            for label, weight in zip(self._fit_y[row_idx], w):
                tally[label] = tally.get(label, 0.0) + weight
            votes.append(tally)
        return votes

    def predict(self, X) -> np.ndarray:
        # max() keeps the first maximal key, which is the tie-break rule
        labels = [max(tally, key=tally.get) for tally in self._votes(X)]
        return np.asarray(labels, dtype=self.classes_.dtype)

    def predict_proba(self, X) -> np.ndarray:
        votes = self._votes(X)
        proba = np.zeros((len(votes), len(self.classes_)))
        for i, tally in enumerate(votes):
            total = sum(tally.values())
            for j, label in enumerate(self.classes_):
                proba[i, j] = tally.get(label, 0.0) / total
        return proba


def build_knn(
    numeric: Sequence[str],
    categorical: Sequence[str] = (),
    n_neighbors: int = 5,
    weights: str = "uniform",
    degenerate: str = "raise",
) -> Pipeline:
    return Pipeline([
        ("preprocess", build_preprocess(numeric, categorical, degenerate=degenerate)),
        ("knn", KNNClassifier(n_neighbors=n_neighbors, weights=weights)),
    ])


def select_features(df: pd.DataFrame, features: Sequence[str]) -> pd.DataFrame:
    check_columns(df, features)
    return df[list(features)]


def fit_knn(
    train: pd.DataFrame,
    features: Sequence[str],
    n_neighbors: int,
    target: str = TARGET_COLUMN,
    weights: str = "uniform",
    degenerate: str = "raise",
) -> Pipeline:
    X = select_features(train, features)
    numeric, categorical = infer_feature_types(X)
    model = build_knn(numeric, categorical, n_neighbors=n_neighbors, weights=weights, degenerate=degenerate)
    model.fit(X, train[target])
    logger.info(f"Fitted KNN (k={n_neighbors}, weights={weights}) on {len(X)} rows, features={list(features)}")
    return model


def predict_players(model: Pipeline, df: pd.DataFrame, features: Sequence[str]) -> np.ndarray:
    try:
        check_is_fitted(model.steps[-1][1])
    except NotFittedError as e:
        raise UnfittedModelError("Model is not fitted yet; call fit_knn first") from e
    if len(df) == 0:
        raise EmptyInputError("Cannot predict for an empty table; is the test split empty?")
    return model.predict(select_features(df, features))
