# subscribe_knn/tuning.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import GridSearchCV

from subscribe_knn.config import TARGET_COLUMN
from subscribe_knn.data import Seed, stratified_folds
from subscribe_knn.errors import ConfigError
from subscribe_knn.models import build_knn, select_features
from subscribe_knn.preprocess import infer_feature_types

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TuningResult:
    best_k: int
    best_accuracy: float
    # one row per candidate k: k, mean_accuracy, std_accuracy, fold_0..fold_{v-1}
    table: pd.DataFrame

    def accuracy_by_k(self) -> dict:
        return dict(zip(self.table["k"].astype(int), self.table["mean_accuracy"].astype(float)))


def select_best_k(mean_by_k: Mapping[int, float]) -> int:
    """Highest mean accuracy wins; near-equal scores go to the smallest k."""
    if not mean_by_k:
        raise ConfigError("No candidate k values to choose from")
    best = max(mean_by_k.values())
    return min(k for k, acc in mean_by_k.items() if np.isclose(acc, best))


def fold_splits(folds: List[np.ndarray]) -> List[Tuple[np.ndarray, np.ndarray]]:
    """(fit positions, validation positions) for each fold, in fold order."""
    out = []
    for i, held_out in enumerate(folds):
        rest = np.sort(np.concatenate([f for j, f in enumerate(folds) if j != i]))
        out.append((rest, held_out))
    return out


def tune_k(
    train: pd.DataFrame,
    features: Sequence[str],
    candidate_ks: Sequence[int],
    folds: int,
    seed: Seed,
    target: str = TARGET_COLUMN,
    weights: str = "uniform",
    n_jobs: Optional[int] = None,
) -> TuningResult:
    """
    Grid search over the neighbour count with stratified v-fold CV.

    Every (k, fold) fit gets its own clone of the scaler+KNN pipeline, so the
    scaler only ever sees the fitting folds.
    """
    candidate_ks = [int(k) for k in candidate_ks]
    if not candidate_ks:
        raise ConfigError("candidate_ks must not be empty")

    X = select_features(train, features)
    y = train[target]
    numeric, categorical = infer_feature_types(X)

    splits = fold_splits(stratified_folds(y.to_numpy(), folds, seed))
    smallest_fit = min(len(fit_pos) for fit_pos, _ in splits)
    too_big = [k for k in candidate_ks if k > smallest_fit]
    if too_big:
        raise ConfigError(f"candidate k values {too_big} exceed the smallest fitting partition ({smallest_fit} rows)")

    search = GridSearchCV(
        estimator=build_knn(numeric, categorical, weights=weights),
        param_grid={"knn__n_neighbors": candidate_ks},
        scoring="accuracy",
        cv=splits,
        refit=False,
        error_score="raise",
        n_jobs=n_jobs,
    )
    search.fit(X, y)

    res = search.cv_results_
    table = pd.DataFrame({
        "k": np.asarray(res["param_knn__n_neighbors"], dtype=int),
        "mean_accuracy": res["mean_test_score"],
        "std_accuracy": res["std_test_score"],
    })
    for i in range(len(splits)):
        table[f"fold_{i}"] = res[f"split{i}_test_score"]
    table = table.sort_values("k").reset_index(drop=True)

    for row in table.itertuples(index=False):
        logger.info(f"k={row.k}: mean CV accuracy {row.mean_accuracy:.4f} (+/- {row.std_accuracy:.4f})")

    mean_by_k = dict(zip(table["k"], table["mean_accuracy"]))
    best_k = select_best_k(mean_by_k)
    logger.info(f"Selected k={best_k} over {len(splits)} folds")
    return TuningResult(best_k=int(best_k), best_accuracy=float(mean_by_k[best_k]), table=table)
