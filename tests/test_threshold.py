"""
Confusion counts and metrics at a score threshold.
"""

import numpy as np
import pytest

from algorithms.common import InvalidInput
from algorithms.threshold import (ConfusionCounts, confusion_at_threshold,
                                  predict_at_threshold, threshold_sweep)

SCORES = [10, 40, 60, 90]
LABELS = [0, 1, 0, 1]


def test_counts_and_metrics():
    counts = confusion_at_threshold(SCORES, LABELS, 50)
    assert counts == ConfusionCounts(tp=1, tn=1, fp=1, fn=1)
    assert counts.accuracy == 0.5
    assert counts.precision == 0.5
    assert counts.recall == 0.5
    assert counts.f1 == 0.5


def test_score_equal_to_threshold_is_positive():
    np.testing.assert_array_equal(predict_at_threshold([49, 50, 51], 50), [0, 1, 1])


def test_zero_denominators():
    counts = confusion_at_threshold(SCORES, LABELS, 101)
    assert counts.tp == 0 and counts.fp == 0
    assert counts.precision == 0.0
    assert counts.f1 == 0.0
    assert ConfusionCounts().accuracy == 0.0


def test_sweep_recall_is_monotone():
    rng = np.random.default_rng(0)
    scores = rng.uniform(0, 100, 50)
    labels = (scores + rng.normal(0, 20, 50) > 50).astype(int)
    rows = threshold_sweep(scores, labels)
    assert len(rows) == 101
    recalls = [r["recall"] for r in rows]
    assert all(b <= a for a, b in zip(recalls, recalls[1:]))
    assert rows[0]["threshold"] == 0.0
    assert rows[0]["recall"] == 1.0
    assert set(rows[0]) >= {"tp", "tn", "fp", "fn", "accuracy", "precision", "recall", "f1"}


def test_bad_inputs():
    with pytest.raises(InvalidInput):
        confusion_at_threshold([1, 2], [0, 1, 1], 0.5)
    with pytest.raises(InvalidInput):
        confusion_at_threshold([1, 2], [0, 2], 0.5)
