from __future__ import annotations
from dataclasses import asdict, dataclass
from pathlib import Path
import json
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from sklearn.metrics import accuracy_score, confusion_matrix

from subscribe_knn.config import TARGET_COLUMN
from subscribe_knn.data import to_label
from subscribe_knn.errors import EmptyInputError
from subscribe_knn.models import predict_players

# positive class is subscribe = True
LABELS = [False, True]


@dataclass(frozen=True)
class MetricsReport:
    accuracy: float
    tp: int
    tn: int
    fp: int
    fn: int

    @property
    def n(self) -> int:
        return self.tp + self.tn + self.fp + self.fn

    @property
    def precision(self) -> float:
        return self.tp / (self.tp + self.fp) if (self.tp + self.fp) else 0.0

    @property
    def recall(self) -> float:
        return self.tp / (self.tp + self.fn) if (self.tp + self.fn) else 0.0

    @property
    def f1(self) -> float:
        p, r = self.precision, self.recall
        return 2 * p * r / (p + r) if (p + r) else 0.0

    def confusion_matrix(self) -> np.ndarray:
        """Rows are true False/True, columns predicted False/True."""
        return np.array([[self.tn, self.fp], [self.fn, self.tp]])

    def to_dict(self) -> dict:
        out = asdict(self)
        out.update(n=self.n, precision=self.precision, recall=self.recall, f1=self.f1)
        return out


def _as_labels(values, name: str) -> np.ndarray:
    # text such as "False" must not be truthy
    return to_label(pd.Series(np.asarray(values), name=name)).to_numpy(dtype=bool)


def evaluate(predictions, truth) -> MetricsReport:
    if len(predictions) == 0:
        raise EmptyInputError("Cannot evaluate zero predictions")
    y_pred = _as_labels(predictions, "predictions")
    y_true = _as_labels(truth, "truth")

    tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=LABELS).ravel()
    return MetricsReport(
        accuracy=float(accuracy_score(y_true, y_pred)),
        tp=int(tp), tn=int(tn), fp=int(fp), fn=int(fn),
    )


def score_model(model, df: pd.DataFrame, features, target: str = TARGET_COLUMN) -> MetricsReport:
    return evaluate(predict_players(model, df, features), df[target])


def save_metrics(metrics: dict, out_path: Path) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(metrics, indent=2), encoding="utf-8")


def save_predictions(df: pd.DataFrame, y_pred, out_path: Path, target: str = TARGET_COLUMN) -> None:
    out = df.copy()
    out["y_true"] = df[target].to_numpy()
    out["y_pred"] = np.asarray(y_pred)
    out.to_csv(out_path, index=False)


def plot_confusion(report: MetricsReport, title: str, out_path: Path):
    cm = report.confusion_matrix()

    fig = plt.figure(figsize=(5, 4))
    plt.imshow(cm)
    plt.xticks([0, 1], ["Pred False", "Pred True"])
    plt.yticks([0, 1], ["True False", "True True"])
    plt.title(title)
    for (i, j), v in np.ndenumerate(cm):
        plt.text(j, i, str(v), ha="center", va="center")
    plt.tight_layout()
    fig.savefig(out_path)
    plt.close(fig)


def plot_k_curve(table: pd.DataFrame, best_k: int, title: str, out_path: Path):
    fig = plt.figure(figsize=(6, 4))
    plt.errorbar(table["k"], table["mean_accuracy"], yerr=table["std_accuracy"], marker="o", capsize=3)
    plt.axvline(best_k, linestyle="--")
    plt.xlabel("Neighbours (k)")
    plt.ylabel("Mean CV accuracy")
    plt.title(title)
    plt.tight_layout()
    fig.savefig(out_path)
    plt.close(fig)
