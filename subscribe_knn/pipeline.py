# subscribe_knn/pipeline.py
from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.pipeline import Pipeline

from subscribe_knn.config import PipelineConfig
from subscribe_knn.data import Split, stratified_split
from subscribe_knn.evaluate import MetricsReport, score_model
from subscribe_knn.models import fit_knn
from subscribe_knn.tuning import TuningResult, tune_k

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    split: Split
    tuning: TuningResult
    model: Pipeline
    report: MetricsReport


def run_pipeline(df: pd.DataFrame, cfg: PipelineConfig = PipelineConfig()) -> PipelineResult:
    """Split, tune k by CV on the train split, refit on all of it and score the test split."""
    rng = np.random.default_rng(cfg.seed)

    split = stratified_split(df, cfg.train_fraction, rng, target=cfg.target)
    tuning = tune_k(
        split.train, cfg.features, cfg.candidate_ks, cfg.folds, rng,
        target=cfg.target, n_jobs=cfg.n_jobs,
    )
    model = fit_knn(split.train, cfg.features, tuning.best_k, target=cfg.target)
    report = score_model(model, split.test, cfg.features, target=cfg.target)

    logger.info(f"Test accuracy with k={tuning.best_k}: {report.accuracy:.4f} on {report.n} players")
    return PipelineResult(split=split, tuning=tuning, model=model, report=report)
