"""
threshold.py — confusion matrix of a score threshold (score >= threshold
predicts positive) and the usual metrics derived from it.
"""

from __future__ import annotations
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence
import numpy as np

from .common import InvalidInput


def _ratio(num: int, den: int) -> float:
    return num / den if den else 0.0


@dataclass(frozen=True)
class ConfusionCounts:
    tp: int = 0
    tn: int = 0
    fp: int = 0
    fn: int = 0

    @property
    def total(self) -> int:
        return self.tp + self.tn + self.fp + self.fn

    @property
    def accuracy(self) -> float:
        return _ratio(self.tp + self.tn, self.total)

    @property
    def precision(self) -> float:
        return _ratio(self.tp, self.tp + self.fp)

    @property
    def recall(self) -> float:
        return _ratio(self.tp, self.tp + self.fn)

    @property
    def f1(self) -> float:
        p, r = self.precision, self.recall
        return 2 * p * r / (p + r) if (p + r) else 0.0

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out.update(total=self.total, accuracy=self.accuracy, precision=self.precision,
                   recall=self.recall, f1=self.f1)
        return out


def _check(scores, labels):
    scores = np.asarray(scores, dtype=float).ravel()
    labels = np.asarray(labels).ravel()
    if len(scores) != len(labels):
        raise InvalidInput(f"scores and labels length mismatch: {len(scores)} vs {len(labels)}")
    if not np.all(np.isin(labels, (0, 1))):
        raise InvalidInput("labels must be 0 or 1")
    return scores, labels.astype(int)


def predict_at_threshold(scores, threshold: float) -> np.ndarray:
    return (np.asarray(scores, dtype=float) >= threshold).astype(int)


def confusion_at_threshold(scores, labels, threshold: float) -> ConfusionCounts:
    scores, labels = _check(scores, labels)
    pred = predict_at_threshold(scores, threshold)
    return ConfusionCounts(
        tp=int(np.sum((labels == 1) & (pred == 1))),
        tn=int(np.sum((labels == 0) & (pred == 0))),
        fp=int(np.sum((labels == 0) & (pred == 1))),
        fn=int(np.sum((labels == 1) & (pred == 0))),
    )


def threshold_sweep(scores, labels, thresholds: Optional[Sequence[float]] = None) -> List[Dict[str, Any]]:
    """Metrics at every threshold (default 0..100 step 1)."""
    scores, labels = _check(scores, labels)
    if thresholds is None:
        thresholds = range(0, 101)
    rows = []
    for t in thresholds:
        row = confusion_at_threshold(scores, labels, t).to_dict()
        row["threshold"] = float(t)
        rows.append(row)
    return rows
