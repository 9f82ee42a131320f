from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Dict, Any

import pandas as pd

import matplotlib
matplotlib.use("Agg")

import joblib

from subscribe_knn.config import PROJECT_ROOT, PROCESSED_DIR, DEFAULT_K, BASELINE_FEATURES, TARGET_COLUMN
from subscribe_knn.data import load_processed_split
from subscribe_knn.models import fit_knn, predict_players
from subscribe_knn.evaluate import evaluate, save_metrics, save_predictions, plot_confusion
from subscribe_knn.utils import latest_run, make_run_paths, setup_logging

FINAL_MODEL_NAME = "KNN_Final"
BEST_K_FILE = "metrics/best_k.json"


def latest_tuned_params(root: Path) -> Dict[str, Any]:
    # skip failed tune runs, which never wrote best_k.json
    latest = latest_run(root, "tune", require=BEST_K_FILE)
    if latest is None:
        return {}
    return json.loads((latest / BEST_K_FILE).read_text(encoding="utf-8"))


def choose_k(override: int | None, tuned: Dict[str, Any]) -> int:
    # an explicit --k wins, including 0
    return override if override is not None else tuned.get("best_k", DEFAULT_K)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Refit KNN with the tuned k on the train split and score the test split.")
    parser.add_argument("--k", type=int, default=None, help="Override the tuned k.")
    parser.add_argument("--processed", type=str, default=str(PROCESSED_DIR), help="Directory with processed splits.")
    return parser.parse_args()


def main():
    args = parse_args()
    setup_logging()

    run = make_run_paths(PROJECT_ROOT, "final")

    train = load_processed_split(Path(args.processed) / "train.csv")
    test = load_processed_split(Path(args.processed) / "test.csv")

    tuned = latest_tuned_params(PROJECT_ROOT)
    k = choose_k(args.k, tuned)
    features = tuned.get("features", list(BASELINE_FEATURES))
    if not tuned and args.k is None:
        print(f"No tune run found; falling back to k={DEFAULT_K}")

    model = fit_knn(train, features, n_neighbors=k)

    # test evaluation
    y_pred = predict_players(model, test, features)
    report = evaluate(y_pred, test[TARGET_COLUMN])
    metrics = report.to_dict()
    metrics.update(model=FINAL_MODEL_NAME, k=int(k), features=features,
                   train_rows=int(len(train)), test_rows=int(len(test)))

    save_metrics(metrics, run.met_dir / "final_test_metrics.json")
    save_predictions(test, y_pred, run.met_dir / "final_test_predictions.csv")
    plot_confusion(report, f"{FINAL_MODEL_NAME}: Confusion (test, k={k})", run.fig_dir / "final_confusion_test.png")

    # save model artifact
    joblib.dump(model, run.mod_dir / f"{FINAL_MODEL_NAME}.joblib")

    pd.DataFrame([metrics]).drop(columns=["features"]).to_csv(run.met_dir / "final_test_metrics.csv", index=False)
    print("Saved final run to:", run.run_dir)
    print("Test metrics:", metrics)


if __name__ == "__main__":
    main()
