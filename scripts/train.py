from __future__ import annotations

import argparse
from pathlib import Path

import matplotlib
matplotlib.use("Agg")

from subscribe_knn.config import PROJECT_ROOT, PROCESSED_DIR, DEFAULT_K, BASELINE_FEATURES, TARGET_COLUMN
from subscribe_knn.data import load_processed_split
from subscribe_knn.models import fit_knn, predict_players
from subscribe_knn.evaluate import evaluate, save_metrics, save_predictions, plot_confusion
from subscribe_knn.utils import make_run_paths, setup_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fit a baseline KNN on the fit split and score the validation split.")
    parser.add_argument("--k", type=int, default=DEFAULT_K, help="Number of neighbours.")
    parser.add_argument("--features", nargs="+", default=list(BASELINE_FEATURES), help="Feature columns.")
    parser.add_argument("--processed", type=str, default=str(PROCESSED_DIR), help="Directory with processed splits.")
    return parser.parse_args()


def main():
    args = parse_args()
    setup_logging()

    processed = Path(args.processed)
    if not processed.exists():
        raise FileNotFoundError(f"Processed data folder not found: {processed}")

    run = make_run_paths(PROJECT_ROOT, tag="baseline")

    # 1) Load data splits
    fit = load_processed_split(processed / "fit.csv")
    val = load_processed_split(processed / "val.csv")

    print("Loaded splits:")
    print("  fit:", fit.shape, " subscribe rate:", float(fit[TARGET_COLUMN].mean()))
    print("  val:", val.shape, " subscribe rate:", float(val[TARGET_COLUMN].mean()))
    print()

    # 2) Fit + evaluate
    model = fit_knn(fit, args.features, n_neighbors=args.k)
    y_pred = predict_players(model, val, args.features)
    report = evaluate(y_pred, val[TARGET_COLUMN])

    metrics = report.to_dict()
    metrics.update(model=f"KNN_k{args.k}", features=args.features, split="val")
    save_metrics(metrics, run.met_dir / "baseline_val_metrics.json")
    save_predictions(val, y_pred, run.met_dir / "baseline_val_predictions.csv")
    plot_confusion(report, f"Confusion (val): KNN k={args.k}", run.fig_dir / "baseline_confusion.png")

    print("Run:", run.run_id)
    print(f"Validation accuracy={report.accuracy:.4f} precision={report.precision:.4f} "
          f"recall={report.recall:.4f} (n={report.n})")


if __name__ == "__main__":
    main()
