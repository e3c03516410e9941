"""
pca.py — principal components of a 2D point cloud via the closed-form
eigen-decomposition of its 2x2 covariance matrix.
"""

from __future__ import annotations
from typing import Optional, Tuple
import math
import numpy as np

from .common import BaseModel, array_or_none, to_points

Vector = Tuple[float, float]


def center_points(points) -> Tuple[np.ndarray, np.ndarray]:
    """Return (mean, points - mean)."""
    P = to_points(points, min_points=1)
    mean = P.mean(axis=0)
    return mean, P - mean


def unit_vector(angle_deg: float) -> np.ndarray:
    rad = math.radians(angle_deg)
    return np.array([math.cos(rad), math.sin(rad)])


def angle_delta(current: float, target: float) -> float:
    """Shortest signed rotation (degrees) taking an axis at `current` onto `target`.

    Axes are undirected, so the result lies in (-90, 90].
    """
    diff = (target - current) % 180.0
    if diff > 90.0:
        diff -= 180.0
    return diff


def _normalise(v: np.ndarray) -> np.ndarray:
    return v / np.linalg.norm(v)


class PCA2D(BaseModel):
    task_type = "dimensionality_reduction"
    name = "pca"

    def __init__(self):
        self.covariance_: Optional[np.ndarray] = None
        self.pc1_: Optional[np.ndarray] = None
        self.pc2_: Optional[np.ndarray] = None
        self.eigenvalues_: Optional[np.ndarray] = None

    def fit(self, X, y=None):
        """Points are expected to be centred already (see center_points)."""
        P = to_points(X)
        n = len(P)
        a = float(np.sum(P[:, 0] ** 2) / (n - 1))
        b = float(np.sum(P[:, 0] * P[:, 1]) / (n - 1))
        d = float(np.sum(P[:, 1] ** 2) / (n - 1))
        self.covariance_ = np.array([[a, b], [b, d]])

        trace = a + d
        det = a * d - b * b
        root = math.sqrt(max(0.0, trace * trace - 4 * det))
        l1 = (trace + root) / 2
        l2 = (trace - root) / 2
        self.eigenvalues_ = np.array([l1, l2])

        if abs(b) < 1e-6:
            pc1 = np.array([1.0, 0.0]) if a > d else np.array([0.0, 1.0])
        else:
            pc1 = _normalise(np.array([1.0, (l1 - a) / b]))
        self.pc1_ = pc1
        self.pc2_ = np.array([-pc1[1], pc1[0]])
        return self

    def transform(self, X):
        if self.pc1_ is None:
            raise RuntimeError("model is not fitted")
        P = np.asarray(X, dtype=float).reshape(-1, 2)
        return np.column_stack([P @ self.pc1_, P @ self.pc2_])

    def predict(self, X):
        # predict() returns the projected coordinates
        return self.transform(X)

    def projected_variance(self, u) -> float:
        """Variance of the fitted data along direction u (normalised first)."""
        u = _normalise(np.asarray(u, dtype=float))
        return float(u @ self.covariance_ @ u)

    def variance_ratio(self, u) -> float:
        total = float(np.sum(self.eigenvalues_))
        return self.projected_variance(u) / total if total > 0 else 0.0

    def pc1_angle(self) -> float:
        angle = math.degrees(math.atan2(self.pc1_[1], self.pc1_[0]))
        return angle % 180.0

    def metrics(self, X=None, y=None):
        total = float(np.sum(self.eigenvalues_))
        return {"eigenvalues": self.eigenvalues_.tolist(), "pc1_angle": self.pc1_angle(),
                "explained_variance_ratio": [float(v / total) if total > 0 else 0.0
                                             for v in self.eigenvalues_]}

    def get_state(self):
        return {"covariance": self.covariance_.tolist() if self.covariance_ is not None else None,
                "pc1": self.pc1_.tolist() if self.pc1_ is not None else None,
                "pc2": self.pc2_.tolist() if self.pc2_ is not None else None,
                "eigenvalues": self.eigenvalues_.tolist() if self.eigenvalues_ is not None else None}

    def set_state(self, state):
        self.covariance_ = array_or_none(state.get("covariance"))
        self.pc1_ = array_or_none(state.get("pc1"))
        self.pc2_ = array_or_none(state.get("pc2"))
        self.eigenvalues_ = array_or_none(state.get("eigenvalues"))
        return self


def pca_2d(points) -> Tuple[Vector, Vector, Tuple[float, float]]:
    model = PCA2D().fit(points)
    l1, l2 = model.eigenvalues_
    return (tuple(model.pc1_.tolist()), tuple(model.pc2_.tolist()), (float(l1), float(l2)))
