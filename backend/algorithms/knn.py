"""
knn.py — k-nearest-neighbour vote on 2D points, with the neighbour detail
the widget draws (which points voted and how far away they are).
"""

from __future__ import annotations
from typing import Any, Dict, Optional, Sequence
import numpy as np

from .common import BaseModel, InvalidInput, accuracy, check_same_length, to_points


class KNNClassifier(BaseModel):
    task_type = "classification"
    name = "knn"

    def __init__(self, k: int = 3, classes: Sequence = ("A", "B")):
        if int(k) < 1:
            raise InvalidInput(f"k must be >= 1, got {k}")
        if len(classes) != 2:
            raise InvalidInput("k-NN supports exactly two classes")
        self.k = int(k)
        self.classes = tuple(classes)
        self.X_: Optional[np.ndarray] = None
        self.y_: Optional[np.ndarray] = None

    def fit(self, X, y):
        X = to_points(X, min_points=1)
        y = check_same_length(X, y)
        unknown = set(y.tolist()) - set(self.classes)
        if unknown:
            raise InvalidInput(f"labels {sorted(map(str, unknown))} not in classes {list(self.classes)}")
        self.X_, self.y_ = X, y
        return self

    def classify(self, point) -> Dict[str, Any]:
        """Vote among the k closest stored points; ties go to the first class."""
        if self.X_ is None:
            raise RuntimeError("model is not fitted")
        point = np.asarray(point, dtype=float).reshape(2)
        distances = np.sqrt(np.sum((self.X_ - point) ** 2, axis=1))
        order = np.argsort(distances, kind="stable")[: self.k]

        votes = {c: 0 for c in self.classes}
        for idx in order:
            votes[self.y_[idx]] += 1
        first, second = self.classes
        return {
            "prediction": first if votes[first] >= votes[second] else second,
            "votes": votes,
            "neighbors": [(int(i), float(distances[i])) for i in order],
            "avg_distance": float(np.mean(distances[order])) if len(order) else 0.0,
        }

    def predict(self, X):
        X = np.asarray(X, dtype=float).reshape(-1, 2)
        return np.array([self.classify(p)["prediction"] for p in X])

    def predict_proba(self, X):
        X = np.asarray(X, dtype=float).reshape(-1, 2)
        rows = []
        for p in X:
            votes = self.classify(p)["votes"]
            total = sum(votes.values())
            rows.append([votes[c] / total for c in self.classes])
        return np.array(rows).reshape(-1, 2)

    def accuracy(self, X, y) -> float:
        X = to_points(X, min_points=1)
        return accuracy(check_same_length(X, y), self.predict(X))

    def metrics(self, X, y=None):
        return {"accuracy": self.accuracy(X, y)} if y is not None else {}

    def get_state(self):
        return {"k": self.k, "classes": list(self.classes),
                "X": self.X_.tolist() if self.X_ is not None else None,
                "y": self.y_.tolist() if self.y_ is not None else None}

    def set_state(self, state):
        self.k = int(state.get("k", self.k))
        self.classes = tuple(state.get("classes", self.classes))
        if state.get("X") is not None:
            self.X_ = np.asarray(state["X"], dtype=float)
            self.y_ = np.asarray(state["y"])
        return self
