from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from datetime import datetime, timezone

@dataclass(frozen=True)
class RunPaths:
    run_id: str
    run_dir: Path
    fig_dir: Path
    met_dir: Path
    mod_dir: Path

def make_run_paths(project_root: Path, tag: str) -> RunPaths:
    run_id = f"{tag}_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}"
    run_dir = project_root / "outputs" / "runs" / run_id
    fig_dir = run_dir / "figures"
    met_dir = run_dir / "metrics"
    mod_dir = run_dir / "models"
    for d in (fig_dir, met_dir, mod_dir):
        d.mkdir(parents=True, exist_ok=True)
    return RunPaths(run_id=run_id, run_dir=run_dir, fig_dir=fig_dir, met_dir=met_dir, mod_dir=mod_dir)

def latest_run(project_root: Path, tag: str, require: str | None = None) -> Path | None:
    """Newest run directory for tag; with require, the newest one holding that relative file."""
    runs = sorted((project_root / "outputs" / "runs").glob(f"{tag}_*"), key=lambda p: p.stat().st_mtime)
    if require is not None:
        runs = [r for r in runs if (r / require).exists()]
    return runs[-1] if runs else None

def setup_logging(log_level: str = "INFO") -> logging.Logger:
    """
    Configure the package logger with a timestamped console handler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        The "subscribe_knn" logger
    """
    logger = logging.getLogger("subscribe_knn")
    logger.setLevel(getattr(logging, log_level.upper()))

    handler = logging.StreamHandler()
    handler.setLevel(getattr(logging, log_level.upper()))
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))

    # Avoid duplicate handlers
    if not logger.handlers:
        logger.addHandler(handler)

    return logger
