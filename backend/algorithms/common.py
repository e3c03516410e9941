"""
common.py — shared primitives for the widget toolkit: input coercion, the
InvalidInput error, the BaseModel state protocol, metrics and the clamped
sigmoid used by every probabilistic model.
"""

from __future__ import annotations
from typing import Any, Dict, Optional
import math
import numpy as np

# ------------ Errors ------------

class InvalidInput(ValueError):
    """Raised before any computation when the caller supplied unusable data."""

# ------------ Utilities ------------

def to_numpy(X):
    if X is None:
        raise InvalidInput("X is required")
    X = np.asarray(X, dtype=float)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    return X

def to_numpy_1d(y):
    if y is None:
        return None
    y = np.asarray(y)
    if y.dtype.kind in "iu":
        return y.astype(int)
    if y.dtype.kind in "fb":
        return y.astype(float)
    return y

def to_points(X, min_points: int = 2, name: str = "X") -> np.ndarray:
    """Coerce to an (n, 2) float array and reject datasets that are too small."""
    X = to_numpy(X)
    if X.shape[1] != 2:
        raise InvalidInput(f"{name} must have 2 columns, got {X.shape[1]}")
    if X.shape[0] < min_points:
        raise InvalidInput(f"{name} needs at least {min_points} points, got {X.shape[0]}")
    if not np.all(np.isfinite(X)):
        raise InvalidInput(f"{name} contains non-finite coordinates")
    return X

def check_same_length(X: np.ndarray, y) -> np.ndarray:
    if y is None:
        raise InvalidInput("y is required")
    y = to_numpy_1d(y).ravel()
    if len(y) != X.shape[0]:
        raise InvalidInput(f"X and y length mismatch: {X.shape[0]} vs {len(y)}")
    return y

def parse_enum(enum_cls, value):
    """Accept an enum member or its (case-insensitive) value/name."""
    if isinstance(value, enum_cls):
        return value
    for member in enum_cls:
        if str(value).lower() in (str(member.value).lower(), member.name.lower()):
            return member
    valid = [m.value for m in enum_cls]
    raise InvalidInput(f"Unknown {enum_cls.__name__} '{value}'. Valid: {valid}")

def make_rng(random_state: Optional[int], counter: int = 0) -> np.random.Generator:
    # a stepped model restored from state draws from (seed, counter) so replays match
    if random_state is None:
        return np.random.default_rng()
    return np.random.default_rng([int(random_state), int(counter)])

def array_or_none(value, dtype=float):
    return np.array(value, dtype=dtype) if value is not None else None

def sigmoid(z):
    """Logistic function saturated to exactly 0/1 beyond |z| > 500."""
    if np.ndim(z) == 0:
        z = float(z)
        if z > 500:
            return 1.0
        if z < -500:
            return 0.0
        return 1.0 / (1.0 + math.exp(-z))
    z = np.asarray(z, dtype=float)
    out = np.empty_like(z)
    high = z > 500
    low = z < -500
    mid = ~(high | low)
    out[high] = 1.0
    out[low] = 0.0
    out[mid] = 1.0 / (1.0 + np.exp(-z[mid]))
    return out

# ---- Metrics ----

def accuracy(y_true, y_pred) -> float:
    y_true = np.asarray(y_true).ravel()
    y_pred = np.asarray(y_pred).ravel()
    return float(np.mean(y_true == y_pred)) if len(y_true) else 0.0

def mse(y_true, y_pred) -> float:
    y_true = np.asarray(y_true, dtype=float).ravel()
    y_pred = np.asarray(y_pred, dtype=float).ravel()
    return float(np.mean((y_true - y_pred) ** 2)) if len(y_true) else 0.0

def mae(y_true, y_pred) -> float:
    y_true = np.asarray(y_true, dtype=float).ravel()
    y_pred = np.asarray(y_pred, dtype=float).ravel()
    return float(np.mean(np.abs(y_true - y_pred))) if len(y_true) else 0.0

# ------------ Base Class ------------

class BaseModel:
    task_type: str = "base"
    name: str = "base"
    def fit(self, X, y=None): raise NotImplementedError
    def predict(self, X): raise NotImplementedError
    def predict_proba(self, X): return None
    def step(self, X=None, y=None): raise NotImplementedError(f"{self.name} is not steppable")
    def metrics(self, X, y=None) -> Dict[str, Any]: return {}
    def get_state(self) -> Dict[str, Any]: return {}
    def set_state(self, state: Dict[str, Any]): return self
