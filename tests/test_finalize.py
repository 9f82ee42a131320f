"""
Tests for picking the tuned k in the finalize step.
"""

import json
import os

from scripts.finalize import BEST_K_FILE, choose_k, latest_tuned_params
from subscribe_knn.config import DEFAULT_K
from subscribe_knn.utils import latest_run


def _tune_run(root, name, mtime, best=None):
    run_dir = root / "outputs" / "runs" / name
    (run_dir / "metrics").mkdir(parents=True)
    if best is None:
        (run_dir / "_FAILED.txt").write_text("boom", encoding="utf-8")
    else:
        (run_dir / BEST_K_FILE).write_text(json.dumps(best), encoding="utf-8")
    os.utime(run_dir, (mtime, mtime))
    return run_dir


def test_failed_newest_tune_falls_back_to_earlier_success(tmp_path):
    good = _tune_run(tmp_path, "tune_20240101_000000", 1_000, {"best_k": 7, "features": ["age"]})
    failed = _tune_run(tmp_path, "tune_20240102_000000", 2_000)

    assert latest_run(tmp_path, "tune") == failed
    assert latest_run(tmp_path, "tune", require=BEST_K_FILE) == good
    assert latest_tuned_params(tmp_path) == {"best_k": 7, "features": ["age"]}


def test_no_successful_tune_gives_empty_params(tmp_path):
    _tune_run(tmp_path, "tune_20240102_000000", 2_000)
    assert latest_tuned_params(tmp_path) == {}


def test_choose_k():
    assert choose_k(None, {"best_k": 9}) == 9
    assert choose_k(None, {}) == DEFAULT_K
    assert choose_k(3, {"best_k": 9}) == 3
    # 0 is an explicit choice, not "unset"
    assert choose_k(0, {"best_k": 9}) == 0
