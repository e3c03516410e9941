"""
k-NN vote and neighbour detail.
"""

import numpy as np
import pytest

from algorithms.common import InvalidInput
from algorithms.knn import KNNClassifier

X = np.array([[0, 0], [0, 1], [1, 0], [5, 5], [5, 6]], dtype=float)
Y = np.array(["A", "A", "A", "B", "B"])


def test_majority_vote():
    result = KNNClassifier(k=3).fit(X, Y).classify([0.5, 0.5])
    assert result["prediction"] == "A"
    assert result["votes"] == {"A": 3, "B": 0}
    assert len(result["neighbors"]) == 3
    assert result["avg_distance"] == pytest.approx(np.sqrt(0.5))


def test_tie_goes_to_first_class():
    model = KNNClassifier(k=2).fit([[0, 0], [2, 0]], ["A", "B"])
    result = model.classify([1, 0])
    assert result["votes"] == {"A": 1, "B": 1}
    assert result["prediction"] == "A"
    assert [i for i, _ in result["neighbors"]] == [0, 1]


def test_k_larger_than_dataset_uses_all_points():
    result = KNNClassifier(k=10).fit(X, Y).classify([5, 5.5])
    assert sum(result["votes"].values()) == 5
    assert result["prediction"] == "A"


def test_predict_proba_and_accuracy():
    model = KNNClassifier(k=3).fit(X, Y)
    proba = model.predict_proba([[0.2, 0.2], [5, 5.5]])
    np.testing.assert_allclose(proba[0], [1.0, 0.0])
    np.testing.assert_allclose(proba.sum(axis=1), 1.0)
    assert model.accuracy(X, Y) == 1.0


def test_state_round_trip():
    model = KNNClassifier(k=3).fit(X, Y)
    clone = KNNClassifier().set_state(model.get_state())
    np.testing.assert_array_equal(clone.predict(X), model.predict(X))


def test_invalid_inputs():
    with pytest.raises(InvalidInput):
        KNNClassifier(k=0)
    with pytest.raises(InvalidInput):
        KNNClassifier().fit(X, ["A", "A", "A", "B", "Z"])
