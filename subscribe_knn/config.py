# subscribe_knn/config.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from subscribe_knn.errors import ConfigError

PROJECT_ROOT = Path(__file__).resolve().parents[1]

RAW_DATA_PATH = PROJECT_ROOT / "data" / "raw" / "players.csv"
PROCESSED_DIR = PROJECT_ROOT / "data" / "processed"

TARGET_COLUMN = "subscribe"

# raw header -> cleaned name
COLUMN_RENAMES = {"Age": "age"}
REQUIRED_COLUMNS = ["age", "gender", "experience", "played_hours", TARGET_COLUMN]
NUMERIC_COLUMNS = ["age", "played_hours"]
CATEGORICAL_COLUMNS = ["gender", "experience"]
FEATURE_COLUMNS = NUMERIC_COLUMNS + CATEGORICAL_COLUMNS

EXPERIENCE_ORDER = ["Beginner", "Amateur", "Regular", "Veteran", "Pro"]

TRUE_LABELS = {"true", "yes", "1", "t", "y"}
FALSE_LABELS = {"false", "no", "0", "f", "n"}

RANDOM_STATE = 1234
TRAIN_FRACTION = 0.75
# fraction of the train split kept for fitting when carving out a validation set
VAL_FRACTION = 0.75
CANDIDATE_KS = tuple(range(1, 30, 2))
CV_FOLDS = 5
DEFAULT_K = 5
BASELINE_FEATURES = ("age", "played_hours")


def _is_odd_positive(k) -> bool:
    return isinstance(k, int) and not isinstance(k, bool) and k >= 1 and k % 2 == 1


@dataclass(frozen=True)
class PipelineConfig:
    train_fraction: float = TRAIN_FRACTION
    seed: int = RANDOM_STATE
    candidate_ks: Tuple[int, ...] = CANDIDATE_KS
    folds: int = CV_FOLDS
    features: Tuple[str, ...] = BASELINE_FEATURES
    val_fraction: float = VAL_FRACTION
    n_jobs: Optional[int] = None
    target: str = TARGET_COLUMN

    def __post_init__(self):
        # normalise list inputs so the config stays hashable
        object.__setattr__(self, "candidate_ks", tuple(self.candidate_ks))
        object.__setattr__(self, "features", tuple(self.features))

        if not 0 < self.train_fraction <= 1:
            raise ConfigError(f"train_fraction must be in (0, 1], got {self.train_fraction}")
        if not 0 < self.val_fraction <= 1:
            raise ConfigError(f"val_fraction must be in (0, 1], got {self.val_fraction}")
        if not isinstance(self.seed, int) or isinstance(self.seed, bool):
            raise ConfigError(f"seed must be an integer, got {self.seed!r}")
        if not self.candidate_ks:
            raise ConfigError("candidate_ks must not be empty")
        bad_ks = [k for k in self.candidate_ks if not _is_odd_positive(k)]
        if bad_ks:
            raise ConfigError(f"candidate_ks must be odd positive integers, got {bad_ks}")
        if not isinstance(self.folds, int) or self.folds < 2:
            raise ConfigError(f"folds must be an integer >= 2, got {self.folds!r}")
        if not self.features:
            raise ConfigError("features must name at least one column")
        unknown = [c for c in self.features if c not in FEATURE_COLUMNS]
        if unknown:
            raise ConfigError(f"Unknown feature columns: {unknown}; expected a subset of {FEATURE_COLUMNS}")
