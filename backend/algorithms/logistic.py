"""
logistic.py — binary logistic regression on 2D polynomial features.

Coordinates are divided by `scale` (typically the canvas width/height)
before expansion, the same way for training and for every prediction.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence, Tuple
import numpy as np

from .common import (BaseModel, InvalidInput, accuracy, array_or_none,
                     check_same_length, sigmoid, to_points)
from .contour import marching_squares, sample_grid

PROB_CLIP = 1e-4


def n_polynomial_features(degree: int) -> int:
    return (degree + 1) * (degree + 2) // 2


def polynomial_features(x, y, degree: int) -> np.ndarray:
    """
    Bias first, then for each total degree d = 1..degree the terms
    x^(d-i) * y^i for i = 0..d. Degree 2 gives [1, x, y, x², xy, y²].

    Scalars return a 1D vector; arrays return one row per sample.
    """
    scalar = np.ndim(x) == 0 and np.ndim(y) == 0
    x = np.atleast_1d(np.asarray(x, dtype=float))
    y = np.atleast_1d(np.asarray(y, dtype=float))
    columns = [np.ones_like(x)]
    for d in range(1, degree + 1):
        for i in range(d + 1):
            columns.append(x ** (d - i) * y ** i)
    features = np.column_stack(columns)
    return features[0] if scalar else features


def binary_cross_entropy(p, labels) -> float:
    p = np.clip(np.asarray(p, dtype=float), PROB_CLIP, 1 - PROB_CLIP)
    labels = np.asarray(labels, dtype=float)
    return float(np.mean(-labels * np.log(p) - (1 - labels) * np.log(1 - p)))


class LogisticClassifier(BaseModel):
    task_type = "classification"
    name = "logistic"

    def __init__(self, degree: int = 1, learning_rate: float = 0.1, epochs: int = 100,
                 scale: Sequence[float] = (1.0, 1.0)):
        if int(degree) < 1:
            raise InvalidInput(f"degree must be >= 1, got {degree}")
        self.degree = int(degree)
        self.learning_rate = float(learning_rate)
        self.epochs = int(epochs)
        self.scale = (float(scale[0]), float(scale[1]))
        self.weights_: Optional[np.ndarray] = None
        self.loss_history_: List[float] = []
        self.epoch_ = 0

    def _features(self, X) -> np.ndarray:
        X = np.asarray(X, dtype=float).reshape(-1, 2)
        return polynomial_features(X[:, 0] / self.scale[0], X[:, 1] / self.scale[1], self.degree)

    def _check(self, X, y) -> Tuple[np.ndarray, np.ndarray]:
        X = to_points(X)
        y = check_same_length(X, y)
        if not np.all(np.isin(y, (0, 1))):
            raise InvalidInput("logistic labels must be 0 or 1")
        return X, y.astype(float)

    def reset(self):
        self.weights_ = np.zeros(n_polynomial_features(self.degree))
        self.loss_history_ = []
        self.epoch_ = 0
        return self

    def step(self, X=None, y=None, n_epochs: int = 1):
        X, y = self._check(X, y)
        if self.weights_ is None or len(self.weights_) != n_polynomial_features(self.degree):
            self.reset()
        Phi = self._features(X)
        n = len(y)
        for _ in range(int(n_epochs)):
            error = sigmoid(Phi @ self.weights_) - y
            grad = Phi.T @ error
            self.weights_ = self.weights_ - self.learning_rate * (grad / n)
            self.epoch_ += 1
            self.loss_history_.append(binary_cross_entropy(sigmoid(Phi @ self.weights_), y))
        return self

    def fit(self, X, y):
        self.reset()
        return self.step(X, y, n_epochs=self.epochs)

    def predict_proba(self, X):
        if self.weights_ is None:
            raise RuntimeError("model is not fitted")
        return sigmoid(self._features(X) @ self.weights_)

    def predict(self, X):
        return (self.predict_proba(X) >= 0.5).astype(int)

    def loss(self, X, y) -> float:
        X, y = self._check(X, y)
        return binary_cross_entropy(self.predict_proba(X), y)

    def accuracy(self, X, y) -> float:
        X, y = self._check(X, y)
        return accuracy(y.astype(int), self.predict(X))

    def decision_boundary(self, bounds: Tuple[float, float, float, float],
                          resolution: int = 40) -> List[Tuple[Tuple[float, float], Tuple[float, float]]]:
        """
        Segments of the p = 0.5 level set inside bounds = (x_min, x_max, y_min, y_max).

        Degree 1 is solved analytically: w0 + w1*x/sx + w2*y/sy = 0.
        """
        if self.weights_ is None:
            return []
        if self.degree > 1:
            values, xs, ys = sample_grid(self.predict_proba, bounds, resolution)
            return marching_squares(values, xs, ys, 0.5)

        w0, w1, w2 = self.weights_
        sx, sy = self.scale
        x_min, x_max, y_min, y_max = bounds
        if abs(w2) < 1e-3:
            if abs(w1) <= 1e-3:
                return []
            x_b = (-w0 / w1) * sx
            if not x_min <= x_b <= x_max:
                return []
            return [((x_b, y_min), (x_b, y_max))]
        xs = np.linspace(x_min, x_max, max(2, int(resolution) + 1))
        ys = -(w0 + w1 * xs / sx) / w2 * sy
        inside = (ys >= y_min) & (ys <= y_max)
        if np.sum(inside) < 2:
            return []
        xs, ys = xs[inside], ys[inside]
        return [((float(xs[0]), float(ys[0])), (float(xs[-1]), float(ys[-1])))]

    def metrics(self, X, y=None):
        out: Dict[str, Any] = {"epoch": self.epoch_}
        if y is not None:
            out["accuracy"] = self.accuracy(X, y)
            out["loss"] = self.loss(X, y)
        return out

    def get_state(self):
        return {"degree": self.degree, "learning_rate": self.learning_rate, "epochs": self.epochs,
                "scale": list(self.scale),
                "weights": self.weights_.tolist() if self.weights_ is not None else None,
                "loss_history": list(self.loss_history_), "epoch": self.epoch_}

    def set_state(self, state):
        self.degree = int(state.get("degree", self.degree))
        self.learning_rate = float(state.get("learning_rate", self.learning_rate))
        self.epochs = int(state.get("epochs", self.epochs))
        scale = state.get("scale", self.scale)
        self.scale = (float(scale[0]), float(scale[1]))
        self.weights_ = array_or_none(state.get("weights"))
        self.loss_history_ = list(state.get("loss_history", []))
        self.epoch_ = int(state.get("epoch", 0))
        if self.weights_ is not None and len(self.weights_) != n_polynomial_features(self.degree):
            self.reset()
        return self


def fit_logistic(points, labels, degree: int = 1, learning_rate: float = 0.1,
                 epochs: int = 100) -> np.ndarray:
    """Train on labelled points and return the weight vector."""
    model = LogisticClassifier(degree=degree, learning_rate=learning_rate, epochs=epochs)
    return model.fit(points, labels).weights_.copy()
