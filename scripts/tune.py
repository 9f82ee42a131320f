from __future__ import annotations

import argparse
import json
import traceback
from pathlib import Path

import matplotlib
matplotlib.use("Agg")

from subscribe_knn.config import PROJECT_ROOT, PROCESSED_DIR, PipelineConfig
from subscribe_knn.data import load_processed_split
from subscribe_knn.tuning import tune_k
from subscribe_knn.evaluate import plot_k_curve
from subscribe_knn.utils import make_run_paths, setup_logging


def parse_args() -> argparse.Namespace:
    defaults = PipelineConfig()
    parser = argparse.ArgumentParser(description="Choose k by stratified cross-validation on the train split.")
    parser.add_argument("--ks", type=int, nargs="+", default=list(defaults.candidate_ks), help="Candidate k values (odd).")
    parser.add_argument("--folds", type=int, default=defaults.folds, help="Number of CV folds.")
    parser.add_argument("--seed", type=int, default=defaults.seed, help="Seed for fold assignment.")
    parser.add_argument("--features", nargs="+", default=list(defaults.features), help="Feature columns.")
    parser.add_argument("--n-jobs", type=int, default=None, help="Parallel CV jobs.")
    parser.add_argument("--processed", type=str, default=str(PROCESSED_DIR), help="Directory with processed splits.")
    return parser.parse_args()


def main():
    args = parse_args()
    setup_logging()
    cfg = PipelineConfig(
        seed=args.seed, candidate_ks=args.ks, folds=args.folds, features=args.features, n_jobs=args.n_jobs,
    )

    run = make_run_paths(PROJECT_ROOT, tag="tune")
    (run.met_dir / "_started.txt").write_text("tune started", encoding="utf-8")

    try:
        train = load_processed_split(Path(args.processed) / "train.csv")

        print(f"Tuning k over {list(cfg.candidate_ks)} with {cfg.folds}-fold CV on {len(train)} players...")
        result = tune_k(
            train, cfg.features, cfg.candidate_ks, cfg.folds, cfg.seed,
            target=cfg.target, n_jobs=cfg.n_jobs,
        )

        result.table.to_csv(run.met_dir / "accuracy_by_k.csv", index=False)
        best = {
            "best_k": result.best_k,
            "best_accuracy": result.best_accuracy,
            "features": list(cfg.features),
            "folds": cfg.folds,
            "seed": cfg.seed,
        }
        (run.met_dir / "best_k.json").write_text(json.dumps(best, indent=2), encoding="utf-8")
        plot_k_curve(result.table, result.best_k, "KNN: CV accuracy by k", run.fig_dir / "accuracy_by_k.png")

        print("\nMean CV accuracy by k:")
        print(result.table[["k", "mean_accuracy", "std_accuracy"]].to_string(index=False))
        print(f"\nBest k={result.best_k} (mean accuracy {result.best_accuracy:.4f})")

        (run.met_dir / "_finished.txt").write_text("tune finished", encoding="utf-8")

    except Exception as e:
        (run.met_dir / "_FAILED.txt").write_text(
            repr(e) + "\n\n" + traceback.format_exc(),
            encoding="utf-8"
        )
        raise


if __name__ == "__main__":
    main()
