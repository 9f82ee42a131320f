# subscribe_knn/data.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple, Union

import numpy as np
import pandas as pd

from subscribe_knn.config import (
    COLUMN_RENAMES,
    EXPERIENCE_ORDER,
    FALSE_LABELS,
    REQUIRED_COLUMNS,
    TARGET_COLUMN,
    TRUE_LABELS,
    PipelineConfig,
)
from subscribe_knn.errors import ConfigError, DataError, EmptyInputError

logger = logging.getLogger(__name__)

Seed = Union[int, np.random.Generator]


@dataclass(frozen=True)
class CleaningReport:
    rows_in: int
    rows_dropped_missing_age: int
    rows_out: int


@dataclass(frozen=True)
class Split:
    train: pd.DataFrame
    test: pd.DataFrame


def load_raw(path: Path) -> pd.DataFrame:
    try:
        return pd.read_csv(path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise DataError(f"Could not parse {path}: {e}") from e


def basic_validation_report(df: pd.DataFrame, target: str = TARGET_COLUMN) -> Dict:
    report = {
        "rows": int(df.shape[0]),
        "cols": int(df.shape[1]),
        "duplicate_rows": int(df.duplicated().sum()),
        "missing_pct_top10": (df.isna().mean() * 100).sort_values(ascending=False).head(10).round(2).to_dict(),
    }
    if target in df.columns:
        counts = df[target].value_counts(dropna=False)
        report["target_counts"] = {str(k): int(v) for k, v in counts.to_dict().items()}
        if df[target].dtype == bool:
            report["target_rate"] = float(df[target].mean())
    return report


def _rows(mask: pd.Series) -> List:
    return mask[mask].index.tolist()


def _to_numeric(df: pd.DataFrame, col: str) -> pd.Series:
    values = pd.to_numeric(df[col], errors="coerce")
    bad = values.isna() & df[col].notna()
    if bad.any():
        raise DataError(
            f"Column '{col}' holds non-numeric values at rows {_rows(bad)}",
            columns=[col], rows=_rows(bad),
        )
    return values.astype(float)


def to_label(values: pd.Series) -> pd.Series:
    if values.dtype == bool:
        return values
    if values.isna().any():
        raise DataError(
            f"Column '{values.name}' is missing at rows {_rows(values.isna())}",
            columns=[values.name], rows=_rows(values.isna()),
        )
    text = values.astype(str).str.strip().str.lower()
    known = text.isin(TRUE_LABELS | FALSE_LABELS)
    if not known.all():
        raise DataError(
            f"Column '{values.name}' has unrecognised labels {sorted(text[~known].unique())} "
            f"at rows {_rows(~known)}",
            columns=[values.name], rows=_rows(~known),
        )
    return text.isin(TRUE_LABELS)


def _experience_levels(values: pd.Series) -> List[str]:
    observed = list(pd.unique(values))
    known = [level for level in EXPERIENCE_ORDER if level in observed]
    return known + [level for level in observed if level not in EXPERIENCE_ORDER]


def clean_players(df_raw: pd.DataFrame) -> Tuple[pd.DataFrame, CleaningReport]:
    """
    Rename, validate and coerce the raw players table.

    Rows with a missing age are dropped (never imputed). Every other defect
    in a required column is a DataError naming the column and rows.
    """
    df = df_raw.rename(columns=COLUMN_RENAMES)

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise DataError(f"Missing required columns: {missing}", columns=missing)

    df = df[REQUIRED_COLUMNS].copy()
    rows_in = int(len(df))

    df["age"] = _to_numeric(df, "age")
    no_age = df["age"].isna()
    df = df.loc[~no_age].copy()
    dropped = int(no_age.sum())
    logger.info(f"Dropped {dropped} of {rows_in} rows with missing age")

    df["played_hours"] = _to_numeric(df, "played_hours")
    bad_hours = df["played_hours"].isna() | (df["played_hours"] < 0)
    if bad_hours.any():
        raise DataError(
            f"played_hours must be a non-negative number; bad rows {_rows(bad_hours)}",
            columns=["played_hours"], rows=_rows(bad_hours),
        )

    for col in ["gender", "experience"]:
        absent = df[col].isna()
        if absent.any():
            raise DataError(f"Column '{col}' is missing at rows {_rows(absent)}", columns=[col], rows=_rows(absent))
        df[col] = df[col].astype(str).str.strip()

    df["gender"] = pd.Categorical(df["gender"], categories=sorted(df["gender"].unique()))
    df["experience"] = pd.Categorical(
        df["experience"], categories=_experience_levels(df["experience"]), ordered=True
    )
    df[TARGET_COLUMN] = to_label(df[TARGET_COLUMN]).astype(bool)

    report = CleaningReport(rows_in=rows_in, rows_dropped_missing_age=dropped, rows_out=int(len(df)))
    return df, report


def summarize_by_label(df: pd.DataFrame, target: str = TARGET_COLUMN) -> pd.DataFrame:
    return df.groupby(target, observed=True).agg(
        players=("age", "size"),
        mean_age=("age", "mean"),
        median_age=("age", "median"),
        mean_hours=("played_hours", "mean"),
        median_hours=("played_hours", "median"),
        total_hours=("played_hours", "sum"),
    ).reset_index()


def count_by(df: pd.DataFrame, column: str, target: str = TARGET_COLUMN) -> pd.DataFrame:
    out = df.groupby(column, observed=True)[target].agg(players="size", subscribers="sum").reset_index()
    out["subscribe_rate"] = out["subscribers"] / out["players"]
    return out


# Splitting
#
# Class sizes per subset are decided up front so the stratification bound
# holds exactly; only the order within each class is random.

_FLOOR_EPS = 1e-9


def _train_counts(class_sizes: np.ndarray, train_fraction: float) -> np.ndarray:
    # f * n can land just under an integer (0.29 * 100 == 28.999...)
    total = int(np.floor(train_fraction * class_sizes.sum() + _FLOOR_EPS))
    exact = class_sizes * train_fraction
    counts = np.floor(exact + _FLOOR_EPS).astype(int)
    shortfall = total - int(counts.sum())
    if shortfall > 0:
        order = np.argsort(-(exact - counts), kind="stable")
        counts[order[:shortfall]] += 1
    return counts


def stratified_split(
    df: pd.DataFrame,
    train_fraction: float,
    seed: Seed,
    target: str = TARGET_COLUMN,
) -> Split:
    if not 0 < train_fraction <= 1:
        raise ConfigError(f"train_fraction must be in (0, 1], got {train_fraction}")
    if target not in df.columns:
        raise DataError(f"Missing target column: {target}", columns=[target])

    if len(df) == 0:
        raise EmptyInputError("Cannot split an empty dataset")

    rng = np.random.default_rng(seed)
    y = df[target].to_numpy()
    labels, sizes = np.unique(y, return_counts=True)
    counts = _train_counts(sizes, train_fraction)

    train_pos, test_pos = [], []
    for label, n_train in zip(labels, counts):
        members = rng.permutation(np.flatnonzero(y == label))
        train_pos.append(members[:n_train])
        test_pos.append(members[n_train:])

    train_pos = rng.permutation(np.concatenate(train_pos))
    test_pos = rng.permutation(np.concatenate(test_pos))

    logger.info(f"Stratified split: {len(train_pos)} train / {len(test_pos)} test")
    return Split(train=df.iloc[train_pos].copy(), test=df.iloc[test_pos].copy())


def split_train_val_test(
    df: pd.DataFrame,
    cfg: PipelineConfig = PipelineConfig(),
) -> Tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    rng = np.random.default_rng(cfg.seed)
    outer = stratified_split(df, cfg.train_fraction, rng, target=cfg.target)
    inner = stratified_split(outer.train, cfg.val_fraction, rng, target=cfg.target)
    return inner.train, inner.test, outer.test


def stratified_folds(labels, n_folds: int, seed: Seed) -> List[np.ndarray]:
    """
    Partition positions 0..n-1 into ``n_folds`` stratified folds.

    Each class is shuffled, the classes are laid end to end in sorted label
    order and position j goes to fold j % n_folds, so fold sizes and per-class
    counts differ by at most one.
    """
    y = np.asarray(labels)
    if not isinstance(n_folds, (int, np.integer)) or n_folds < 2:
        raise ConfigError(f"n_folds must be an integer >= 2, got {n_folds!r}")
    if n_folds > len(y):
        raise ConfigError(f"Cannot make {n_folds} folds from {len(y)} rows")

    rng = np.random.default_rng(seed)
    order = np.concatenate([rng.permutation(np.flatnonzero(y == label)) for label in np.unique(y)])
    assignment = np.empty(len(y), dtype=int)
    assignment[order] = np.arange(len(y)) % n_folds

    folds = [np.flatnonzero(assignment == i) for i in range(n_folds)]
    logger.debug(f"Fold sizes: {[len(f) for f in folds]}")
    return folds


def save_processed_splits(splits: Dict[str, pd.DataFrame], out_dir: Path, metadata: Dict) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)

    for name, frame in splits.items():
        frame.to_csv(out_dir / f"{name}.csv", index=False)

    with open(out_dir / "split_metadata.json", "w", encoding="utf-8") as f:
        json.dump(metadata, f, indent=2, default=str)


def load_processed_split(path: Path) -> pd.DataFrame:
    """Read a split written by save_processed_splits and restore the categorical columns."""
    df = pd.read_csv(path)
    df["gender"] = pd.Categorical(df["gender"].astype(str))
    df["experience"] = pd.Categorical(
        df["experience"].astype(str), categories=_experience_levels(df["experience"].astype(str)), ordered=True
    )
    df[TARGET_COLUMN] = to_label(df[TARGET_COLUMN]).astype(bool)
    return df
