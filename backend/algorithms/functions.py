"""
functions.py — activation and loss functions for the plotter widgets.

Every function accepts scalars or numpy arrays and returns the same shape.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Optional
import numpy as np

from .common import sigmoid

BCE_EPS = 1e-7


def _out(value, like):
    return float(value) if np.ndim(like) == 0 else value


class Activation(Enum):
    SIGMOID = "sigmoid"
    TANH = "tanh"
    RELU = "relu"
    LEAKY_RELU = "leaky_relu"
    ELU = "elu"
    SWISH = "swish"

    @property
    def info(self) -> Dict[str, Any]:
        return _ACTIVATION_INFO[self]

    @property
    def default_param(self) -> Optional[float]:
        return self.info.get("param_default")

    def value(self, x, param: Optional[float] = None):
        z = np.asarray(x, dtype=float)
        alpha = self.default_param if param is None else float(param)
        if self is Activation.SIGMOID:
            out = sigmoid(z)
        elif self is Activation.TANH:
            out = np.tanh(z)
        elif self is Activation.RELU:
            out = np.maximum(0.0, z)
        elif self is Activation.LEAKY_RELU:
            out = np.where(z > 0, z, alpha * z)
        elif self is Activation.ELU:
            out = np.where(z > 0, z, alpha * (np.exp(np.minimum(z, 0.0)) - 1))
        else:
            out = z * sigmoid(z)
        return _out(out, x)

    def derivative(self, x, param: Optional[float] = None):
        z = np.asarray(x, dtype=float)
        alpha = self.default_param if param is None else float(param)
        if self is Activation.SIGMOID:
            s = sigmoid(z)
            out = s * (1 - s)
        elif self is Activation.TANH:
            out = 1 - np.tanh(z) ** 2
        elif self is Activation.RELU:
            out = np.where(z > 0, 1.0, 0.0)
        elif self is Activation.LEAKY_RELU:
            out = np.where(z > 0, 1.0, alpha)
        elif self is Activation.ELU:
            out = np.where(z > 0, 1.0, alpha * np.exp(np.minimum(z, 0.0)))
        else:
            s = sigmoid(z)
            swish = z * s
            out = swish + s * (1 - swish)
        return _out(out, x)

    def curve(self, xs=None, param: Optional[float] = None) -> Dict[str, list]:
        xs = np.linspace(-6, 6, 241) if xs is None else np.asarray(xs, dtype=float)
        return {"x": xs.tolist(), "y": np.asarray(self.value(xs, param)).tolist(),
                "dy": np.asarray(self.derivative(xs, param)).tolist()}


_ACTIVATION_INFO = {
    Activation.SIGMOID: {"label": "Sigmoid", "formula": "f(x) = 1 / (1 + e^(-x))",
                         "derivative_formula": "f'(x) = f(x) · (1 - f(x))", "range": "(0, 1)"},
    Activation.TANH: {"label": "Tanh", "formula": "f(x) = (e^x - e^(-x)) / (e^x + e^(-x))",
                      "derivative_formula": "f'(x) = 1 - f(x)²", "range": "(-1, 1)"},
    Activation.RELU: {"label": "ReLU", "formula": "f(x) = max(0, x)",
                      "derivative_formula": "f'(x) = 0 if x<0 else 1", "range": "[0, +∞)"},
    Activation.LEAKY_RELU: {"label": "Leaky ReLU", "formula": "f(x) = max(αx, x)",
                            "derivative_formula": "f'(x) = α if x<0 else 1", "range": "(-∞, +∞)",
                            "param_name": "α", "param_default": 0.01, "param_min": 0.01, "param_max": 0.5},
    Activation.ELU: {"label": "ELU", "formula": "f(x) = x if x>0 else α(e^x - 1)",
                     "derivative_formula": "f'(x) = 1 if x>0 else f(x)+α", "range": "(-α, +∞)",
                     "param_name": "α", "param_default": 1.0, "param_min": 0.1, "param_max": 2.0},
    Activation.SWISH: {"label": "Swish", "formula": "f(x) = x · sigmoid(x)",
                       "derivative_formula": "f'(x) = f(x) + sigmoid(x)(1 - f(x))", "range": "(-∞, +∞)"},
}


class Loss(Enum):
    MSE = "mse"
    MAE = "mae"
    BCE = "bce"
    HUBER = "huber"
    HINGE = "hinge"

    @property
    def info(self) -> Dict[str, Any]:
        return _LOSS_INFO[self]

    def value(self, y, y_hat, param: Optional[float] = None):
        """Per-sample loss of predicting y_hat when the target is y."""
        t = np.asarray(y, dtype=float)
        p = np.asarray(y_hat, dtype=float)
        if self is Loss.MSE:
            out = (t - p) ** 2
        elif self is Loss.MAE:
            out = np.abs(t - p)
        elif self is Loss.BCE:
            p = np.clip(p, BCE_EPS, 1 - BCE_EPS)
            t = np.clip(t, 0.0, 1.0)
            out = -(t * np.log(p) + (1 - t) * np.log(1 - p))
        elif self is Loss.HUBER:
            delta = 1.0 if param is None else float(param)
            diff = np.abs(t - p)
            out = np.where(diff <= delta, 0.5 * diff ** 2, delta * diff - 0.5 * delta ** 2)
        else:
            out = np.maximum(0.0, 1 - t * p)
        return _out(out, y_hat) if np.ndim(y) == 0 else out

    def curve(self, y: float, y_hats=None, param: Optional[float] = None) -> Dict[str, list]:
        if y_hats is None:
            lo, hi = self.info["y_hat_range"]
            y_hats = np.linspace(lo, hi, 201)
        y_hats = np.asarray(y_hats, dtype=float)
        return {"y_hat": y_hats.tolist(), "loss": np.asarray(self.value(y, y_hats, param)).tolist()}


_LOSS_INFO = {
    Loss.MSE: {"label": "MSE", "formula": "L = (y - ŷ)²", "usage": "regression",
               "y_hat_range": (-2.0, 2.0)},
    Loss.MAE: {"label": "MAE", "formula": "L = |y - ŷ|", "usage": "regression, robust to outliers",
               "y_hat_range": (-2.0, 2.0)},
    Loss.BCE: {"label": "Binary Cross-Entropy", "formula": "L = -[y·log(ŷ) + (1-y)·log(1-ŷ)]",
               "usage": "binary classification", "y_hat_range": (0.01, 0.99)},
    Loss.HUBER: {"label": "Huber Loss", "formula": "L = ½(y-ŷ)² if |y-ŷ|≤δ, else δ|y-ŷ|-½δ²",
                 "usage": "regression, robust to outliers", "y_hat_range": (-2.0, 2.0),
                 "param_name": "δ", "param_default": 1.0},
    Loss.HINGE: {"label": "Hinge Loss", "formula": "L = max(0, 1 - y·ŷ)",
                 "usage": "SVM classification, y in {-1, 1}", "y_hat_range": (-2.0, 2.0)},
}
