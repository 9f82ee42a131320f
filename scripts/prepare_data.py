import argparse
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from subscribe_knn.config import RAW_DATA_PATH, PROCESSED_DIR, TARGET_COLUMN, PipelineConfig
from subscribe_knn.data import (
    load_raw,
    basic_validation_report,
    clean_players,
    summarize_by_label,
    count_by,
    split_train_val_test,
    stratified_split,
    save_processed_splits,
)
from subscribe_knn.utils import setup_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Clean the players table and write stratified splits.")
    parser.add_argument("--data", type=str, default=str(RAW_DATA_PATH), help="Path to the raw players CSV.")
    parser.add_argument("--out", type=str, default=str(PROCESSED_DIR), help="Directory for processed splits.")
    parser.add_argument("--seed", type=int, default=PipelineConfig().seed, help="Random seed for the splits.")
    return parser.parse_args()


def main():
    args = parse_args()
    setup_logging()
    cfg = PipelineConfig(seed=args.seed)

    df_raw = load_raw(Path(args.data))
    raw_report = basic_validation_report(df_raw)

    df, cleaning = clean_players(df_raw)

    print("Players by subscription:")
    print(summarize_by_label(df).to_string(index=False))
    print()
    print(count_by(df, "experience").to_string(index=False))
    print()

    outer = stratified_split(df, cfg.train_fraction, cfg.seed)
    fit, val, _ = split_train_val_test(df, cfg)

    split_report = {
        "train_rate": float(outer.train[TARGET_COLUMN].mean()),
        "test_rate": float(outer.test[TARGET_COLUMN].mean()),
        "fit_rate": float(fit[TARGET_COLUMN].mean()),
        "val_rate": float(val[TARGET_COLUMN].mean()),
        "train_n": int(len(outer.train)),
        "test_n": int(len(outer.test)),
        "fit_n": int(len(fit)),
        "val_n": int(len(val)),
    }

    metadata = {
        "created_at": datetime.now(timezone.utc).isoformat(),
        "raw_path": args.data,
        "processed_dir": args.out,
        "target": TARGET_COLUMN,
        "seed": cfg.seed,
        "train_fraction": cfg.train_fraction,
        "val_fraction": cfg.val_fraction,
        "raw_validation_summary": raw_report,
        "cleaning": asdict(cleaning),
        "split_summary": split_report,
    }

    save_processed_splits(
        {"train": outer.train, "test": outer.test, "fit": fit, "val": val},
        Path(args.out),
        metadata,
    )

    print("Saved splits to:", args.out)
    print(f"Dropped {cleaning.rows_dropped_missing_age} rows with missing age")
    print("Split subscribe rates:", split_report)


if __name__ == "__main__":
    main()
