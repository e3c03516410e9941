"""
svm.py — binary SVM trained with simplified SMO (random second multiplier,
pass-counter stopping rule, hard sweep cap).

Points live in canvas coordinates; both kernels divide by `scale` first so
that the same C and gamma work for any canvas size.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import logging
import numpy as np

from .common import (BaseModel, InvalidInput, accuracy, array_or_none, check_same_length,
                     make_rng, parse_enum, to_points)

logger = logging.getLogger(__name__)

ALPHA_EPS = 1e-5       # minimum change of alpha_j that counts as progress
SUPPORT_EPS = 1e-4


class Kernel(Enum):
    LINEAR = "linear"
    RBF = "rbf"

    def matrix(self, A: np.ndarray, B: np.ndarray, scale: float, gamma: float) -> np.ndarray:
        A = np.asarray(A, dtype=float).reshape(-1, 2) / scale
        B = np.asarray(B, dtype=float).reshape(-1, 2) / scale
        if self is Kernel.LINEAR:
            return A @ B.T
        sq = np.sum((A[:, None, :] - B[None, :, :]) ** 2, axis=2)
        return np.exp(-gamma * sq)


class SMOClassifier(BaseModel):
    task_type = "classification"
    name = "svm"

    def __init__(self, C: float = 1.0, kernel: Any = "linear", scale: float = 600.0,
                 gamma: float = 10.0, tol: float = 1e-4, max_passes: int = 10,
                 max_iter: int = 2000, random_state: Optional[int] = None):
        self.C = float(C)
        self.kernel = parse_enum(Kernel, kernel)
        self.scale = float(scale)
        self.gamma = float(gamma)
        self.tol = float(tol)
        self.max_passes = int(max_passes)
        self.max_iter = int(max_iter)
        self.random_state = random_state
        self.X_: Optional[np.ndarray] = None
        self.y_: Optional[np.ndarray] = None
        self.alphas_: Optional[np.ndarray] = None
        self.b_ = 0.0
        self.passes_ = 0
        self.iterations_ = 0
        self._gram: Optional[np.ndarray] = None

    def _check(self, X, y) -> Tuple[np.ndarray, np.ndarray]:
        X = to_points(X)
        y = check_same_length(X, y)
        if not np.all(np.isin(y, (-1, 1))):
            raise InvalidInput("SVM labels must be -1 or +1")
        return X, y.astype(float)

    def reset(self, X, y):
        self.X_, self.y_ = self._check(X, y)
        self.alphas_ = np.zeros(len(self.y_))
        self.b_ = 0.0
        self.passes_ = 0
        self.iterations_ = 0
        self._gram = None
        return self

    @property
    def gram(self) -> np.ndarray:
        if self._gram is None:
            self._gram = self.kernel.matrix(self.X_, self.X_, self.scale, self.gamma)
        return self._gram

    @property
    def done(self) -> bool:
        return self.passes_ >= self.max_passes or self.iterations_ >= self.max_iter

    def _f_train(self, i: int) -> float:
        active = self.alphas_ > 0
        return float(np.sum(self.alphas_[active] * self.y_[active] * self.gram[active, i]) + self.b_)

    def step(self, X=None, y=None):
        """One sweep over every multiplier."""
        if self.alphas_ is None:
            self.reset(X, y)
        if self.done:
            return self

        rng = make_rng(self.random_state, self.iterations_)
        K, alphas, labels, C = self.gram, self.alphas_, self.y_, self.C
        n = len(labels)
        num_changed = 0

        for i in range(n):
            E_i = self._f_train(i) - labels[i]
            violates = ((labels[i] * E_i < -self.tol and alphas[i] < C)
                        or (labels[i] * E_i > self.tol and alphas[i] > 0))
            if not violates:
                continue

            j = int(rng.integers(n - 1))
            if j >= i:
                j += 1
            E_j = self._f_train(j) - labels[j]
            a_i_old, a_j_old = alphas[i], alphas[j]

            if labels[i] != labels[j]:
                L = max(0.0, a_j_old - a_i_old)
                H = min(C, C + a_j_old - a_i_old)
            else:
                L = max(0.0, a_i_old + a_j_old - C)
                H = min(C, a_i_old + a_j_old)
            if L == H:
                continue

            eta = 2 * K[i, j] - K[i, i] - K[j, j]
            if eta >= 0:
                continue

            a_j = a_j_old - labels[j] * (E_i - E_j) / eta
            a_j = min(H, max(L, a_j))
            if abs(a_j - a_j_old) < ALPHA_EPS:
                continue
            a_i = a_i_old + labels[i] * labels[j] * (a_j_old - a_j)

            b1 = (self.b_ - E_i - labels[i] * (a_i - a_i_old) * K[i, i]
                  - labels[j] * (a_j - a_j_old) * K[i, j])
            b2 = (self.b_ - E_j - labels[i] * (a_i - a_i_old) * K[i, j]
                  - labels[j] * (a_j - a_j_old) * K[j, j])
            if 0 < a_i < C:
                self.b_ = b1
            elif 0 < a_j < C:
                self.b_ = b2
            else:
                self.b_ = (b1 + b2) / 2

            alphas[i], alphas[j] = a_i, a_j
            num_changed += 1

        self.passes_ = self.passes_ + 1 if num_changed == 0 else 0
        self.iterations_ += 1
        if self.done:
            logger.debug("SMO stopped after %d sweeps, %d support vectors",
                         self.iterations_, len(self.support_vectors()))
        return self

    def fit(self, X, y):
        self.reset(X, y)
        while not self.done:
            self.step()
        return self

    # ---- queries ----

    def decision_function(self, X) -> np.ndarray:
        if self.alphas_ is None:
            raise RuntimeError("model is not fitted")
        active = self.alphas_ > 0
        if not np.any(active):
            return np.full(len(np.asarray(X, dtype=float).reshape(-1, 2)), self.b_)
        K = self.kernel.matrix(self.X_[active], X, self.scale, self.gamma)
        return (self.alphas_[active] * self.y_[active]) @ K + self.b_

    def predict(self, X):
        return np.where(self.decision_function(X) >= 0, 1, -1)

    def support_vectors(self) -> List[int]:
        if self.alphas_ is None:
            return []
        return [int(i) for i in np.flatnonzero(self.alphas_ > SUPPORT_EPS)]

    def accuracy(self, X, y) -> float:
        X = to_points(X, min_points=1)
        return accuracy(check_same_length(X, y), self.predict(X))

    def metrics(self, X, y=None):
        out: Dict[str, Any] = {"iterations": self.iterations_, "passes": self.passes_,
                               "n_support_vectors": len(self.support_vectors()), "b": self.b_}
        if y is not None:
            out["accuracy"] = self.accuracy(X, y)
        return out

    def get_state(self):
        return {"C": self.C, "kernel": self.kernel.value, "scale": self.scale, "gamma": self.gamma,
                "tol": self.tol, "max_passes": self.max_passes, "max_iter": self.max_iter,
                "random_state": self.random_state,
                "X": self.X_.tolist() if self.X_ is not None else None,
                "y": self.y_.tolist() if self.y_ is not None else None,
                "alphas": self.alphas_.tolist() if self.alphas_ is not None else None,
                "b": self.b_, "passes": self.passes_, "iterations": self.iterations_}

    def set_state(self, state):
        self.C = float(state.get("C", self.C))
        self.kernel = parse_enum(Kernel, state.get("kernel", self.kernel))
        self.scale = float(state.get("scale", self.scale))
        self.gamma = float(state.get("gamma", self.gamma))
        self.tol = float(state.get("tol", self.tol))
        self.max_passes = int(state.get("max_passes", self.max_passes))
        self.max_iter = int(state.get("max_iter", self.max_iter))
        self.random_state = state.get("random_state", self.random_state)
        self.X_ = array_or_none(state.get("X"))
        self.y_ = array_or_none(state.get("y"))
        self.alphas_ = array_or_none(state.get("alphas"))
        self.b_ = float(state.get("b", 0.0))
        self.passes_ = int(state.get("passes", 0))
        self.iterations_ = int(state.get("iterations", 0))
        self._gram = None
        return self


def train(points, labels, C: float = 1.0, kernel: Any = "linear",
          random_state: Optional[int] = None, **kwargs) -> Tuple[np.ndarray, float]:
    """Fit on ±1 labelled points and return (alphas, b)."""
    model = SMOClassifier(C=C, kernel=kernel, random_state=random_state, **kwargs).fit(points, labels)
    return model.alphas_.copy(), model.b_
