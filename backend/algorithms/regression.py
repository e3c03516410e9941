"""
regression.py — single-input polynomial regression.

PolynomialRegressionGD trains y = w0 + w1*x + ... + wD*x^D by full-batch
gradient descent on the squared loss, optionally with an L2 (weight decay)
or L1 (proximal soft-threshold, ISTA) penalty on every weight except the
bias. The loss it reports is the plain MSE: the penalty only shapes the
update.

PolynomialRegressionOLS is the closed-form counterpart used to show under-
and over-fitting: normal equations on x/scale with a tiny ridge term.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, List, Optional, Tuple
import logging
import numpy as np

from .common import (BaseModel, InvalidInput, array_or_none, check_same_length,
                     make_rng, mae, mse, parse_enum, to_numpy)

logger = logging.getLogger(__name__)


class Regularization(Enum):
    NONE = "none"
    L1 = "l1"
    L2 = "l2"


def power_features(x, degree: int) -> np.ndarray:
    """[x^0, x^1, ..., x^degree] for every sample (shape (n, degree+1))."""
    x = np.asarray(x, dtype=float).reshape(-1)
    return np.vander(x, degree + 1, increasing=True)


def _as_inputs(X, y, min_points: int = 2) -> Tuple[np.ndarray, np.ndarray]:
    X = to_numpy(X)
    if X.shape[0] < min_points:
        raise InvalidInput(f"regression needs at least {min_points} points, got {X.shape[0]}")
    y = check_same_length(X, y).astype(float)
    return X[:, 0], y

# ------------ Gradient descent ------------

class PolynomialRegressionGD(BaseModel):
    task_type = "regression"
    name = "poly_reg_gd"

    def __init__(self, degree: int = 1, learning_rate: float = 0.05, epochs: int = 100,
                 regularization: Any = "none", lam: float = 0.0,
                 init_scale: float = 0.05, random_state: Optional[int] = None):
        if int(degree) < 0:
            raise InvalidInput(f"degree must be >= 0, got {degree}")
        self.degree = int(degree)
        self.learning_rate = float(learning_rate)
        self.epochs = int(epochs)
        self.regularization = parse_enum(Regularization, regularization)
        self.lam = float(lam)
        self.init_scale = float(init_scale)
        self.random_state = random_state
        self.weights_: Optional[np.ndarray] = None
        self.loss_history_: List[float] = []
        self.epoch_ = 0

    def reset(self):
        """Fresh random weights sized for the current degree."""
        rng = make_rng(self.random_state)
        self.weights_ = rng.uniform(-self.init_scale, self.init_scale, size=self.degree + 1)
        self.loss_history_ = []
        self.epoch_ = 0
        return self

    def set_degree(self, degree: int):
        self.degree = int(degree)
        return self.reset()

    def _epoch(self, Phi: np.ndarray, y: np.ndarray) -> float:
        n = len(y)
        w = self.weights_
        error = Phi @ w - y
        grad = (2.0 / n) * (Phi.T @ error)
        lr, lam = self.learning_rate, self.lam

        stepped = w - lr * grad
        if self.regularization is Regularization.L2:
            stepped[1:] = w[1:] - lr * (grad[1:] + 2.0 * lam * w[1:])
        elif self.regularization is Regularization.L1:
            tail = stepped[1:]
            stepped[1:] = np.sign(tail) * np.maximum(0.0, np.abs(tail) - lr * lam)
        self.weights_ = stepped
        self.epoch_ += 1

        loss = float(np.mean((Phi @ self.weights_ - y) ** 2))
        self.loss_history_.append(loss)
        return loss

    def step(self, X=None, y=None, n_epochs: int = 1):
        x, y = _as_inputs(X, y)
        if self.weights_ is None or len(self.weights_) != self.degree + 1:
            self.reset()
        Phi = power_features(x, self.degree)
        for _ in range(int(n_epochs)):
            loss = self._epoch(Phi, y)
            if not np.isfinite(loss):
                logger.debug("gradient descent diverged at epoch %d (lr=%s)", self.epoch_, self.learning_rate)
                break
        return self

    def fit(self, X, y):
        self.reset()
        return self.step(X, y, n_epochs=self.epochs)

    def predict(self, X):
        if self.weights_ is None:
            raise RuntimeError("model is not fitted")
        x = to_numpy(X)[:, 0]
        return power_features(x, self.degree) @ self.weights_

    def loss(self, X, y) -> float:
        x, y = _as_inputs(X, y, min_points=1)
        return mse(y, self.predict(x))

    def n_zero_weights(self) -> int:
        """Non-bias weights that regularization drove to exactly zero."""
        return int(np.sum(self.weights_[1:] == 0.0)) if self.weights_ is not None else 0

    def metrics(self, X, y=None):
        pred = self.predict(X)
        return {"mse": mse(y, pred), "mae": mae(y, pred), "epoch": self.epoch_,
                "zero_weights": self.n_zero_weights()}

    def get_state(self):
        return {"degree": self.degree, "learning_rate": self.learning_rate, "epochs": self.epochs,
                "regularization": self.regularization.value, "lam": self.lam,
                "init_scale": self.init_scale, "random_state": self.random_state,
                "weights": self.weights_.tolist() if self.weights_ is not None else None,
                "loss_history": list(self.loss_history_), "epoch": self.epoch_}

    def set_state(self, state):
        self.degree = int(state.get("degree", self.degree))
        self.learning_rate = float(state.get("learning_rate", self.learning_rate))
        self.epochs = int(state.get("epochs", self.epochs))
        self.regularization = parse_enum(Regularization, state.get("regularization", self.regularization))
        self.lam = float(state.get("lam", self.lam))
        self.init_scale = float(state.get("init_scale", self.init_scale))
        self.random_state = state.get("random_state", self.random_state)
        self.weights_ = array_or_none(state.get("weights"))
        self.loss_history_ = list(state.get("loss_history", []))
        self.epoch_ = int(state.get("epoch", 0))
        if self.weights_ is not None and len(self.weights_) != self.degree + 1:
            # degree changed since the weights were produced
            self.reset()
        return self


def fit_polynomial_gd(points, degree: int, learning_rate: float, epochs: int,
                      regularization: Any = "none", lam: float = 0.0,
                      random_state: Optional[int] = None) -> Tuple[np.ndarray, List[float]]:
    """Fit on (x, y) pairs and return (weights, loss_history)."""
    P = to_numpy(points)
    if P.shape[0] < 2:
        raise InvalidInput(f"regression needs at least 2 points, got {P.shape[0]}")
    if P.shape[1] != 2:
        raise InvalidInput("points must be (x, y) pairs")
    model = PolynomialRegressionGD(degree=degree, learning_rate=learning_rate, epochs=epochs,
                                   regularization=regularization, lam=lam,
                                   random_state=random_state)
    model.fit(P[:, :1], P[:, 1])
    return model.weights_.copy(), list(model.loss_history_)

# ------------ Closed form ------------

class PolynomialRegressionOLS(BaseModel):
    task_type = "regression"
    name = "poly_reg_ols"

    def __init__(self, degree: int = 3, scale: float = 60.0, ridge: float = 1e-4):
        self.degree = int(degree)
        self.scale = float(scale)
        self.ridge = float(ridge)
        self.coefficients_: Optional[np.ndarray] = None

    def fit(self, X, y):
        x, y = _as_inputs(X, y)
        Phi = power_features(x / self.scale, self.degree)
        A = Phi.T @ Phi + self.ridge * np.eye(self.degree + 1)
        self.coefficients_ = np.linalg.pinv(A) @ (Phi.T @ y)
        return self

    def predict(self, X):
        if self.coefficients_ is None:
            raise RuntimeError("model is not fitted")
        x = to_numpy(X)[:, 0]
        return power_features(x / self.scale, self.degree) @ self.coefficients_

    def rmse(self, X, y) -> float:
        if len(to_numpy(X)) == 0:
            return 0.0
        return float(np.sqrt(mse(y, self.predict(X))))

    def metrics(self, X, y=None):
        pred = self.predict(X)
        return {"mse": mse(y, pred), "mae": mae(y, pred), "rmse": self.rmse(X, y)}

    def get_state(self):
        return {"degree": self.degree, "scale": self.scale, "ridge": self.ridge,
                "coefficients": self.coefficients_.tolist() if self.coefficients_ is not None else None}

    def set_state(self, state):
        self.degree = int(state.get("degree", self.degree))
        self.scale = float(state.get("scale", self.scale))
        self.ridge = float(state.get("ridge", self.ridge))
        self.coefficients_ = array_or_none(state.get("coefficients"))
        return self
