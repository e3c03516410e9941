"""
service.py — one stateless entry point for every widget model.

serve_request(payload: dict) -> dict
  payload = {
    "algo": str,                          # one of the keys in ALGORITHMS below
    "action": "train"|"infer"|"score"|"step",
    "X": list[list[float]] | None,        # points (n_samples x 2); optional for models that carry their own data
    "y": list | None,                     # labels/targets when needed
    "params": dict | None,                # constructor hyperparameters
    "state": dict | None,                 # state returned by a previous call
    "n_steps": int,                       # "step" only, default 1
    "bounds": [x_min, x_max, y_min, y_max]  # optional, for boundary/region drawing
  }

Return:
  {"ok", "algo", "task_type", "action", "y_pred", "y_proba", "metrics",
   "state", "extras", "message"}

serve_widget(payload) covers the widgets that have no model to train
(activation/loss plots, convolution, pooling, threshold explorer).
"""

from __future__ import annotations
from typing import Any, Callable, Dict, Optional
import logging
import numpy as np

from .common import BaseModel, InvalidInput, accuracy, mae, mse, parse_enum, to_numpy_1d
from .convolution import convolve, pool, receptive_field
from .decision_tree import DecisionTreeClassifier
from .descent import GradientDescent1D
from .functions import Activation, Loss
from .kmeans import KMeansStateMachine
from .knn import KNNClassifier
from .logistic import LogisticClassifier
from .mlp import MLPForward
from .pca import PCA2D
from .qlearning import QLearningSession
from .regression import PolynomialRegressionGD, PolynomialRegressionOLS
from .svm import SMOClassifier
from .threshold import confusion_at_threshold, threshold_sweep

logger = logging.getLogger(__name__)

# ------------ Registry & factory ------------

ALGORITHMS = {
    # classification
    "logistic": LogisticClassifier,
    "decision_tree": DecisionTreeClassifier,
    "knn": KNNClassifier,
    "svm": SMOClassifier,
    # regression
    "poly_reg_gd": PolynomialRegressionGD,
    "poly_reg_ols": PolynomialRegressionOLS,
    # unsupervised / other
    "kmeans": KMeansStateMachine,
    "pca": PCA2D,
    "gradient_descent": GradientDescent1D,
    "mlp": MLPForward,
    "qlearning": QLearningSession,
}


def _build_model(algo: str, params: Optional[Dict[str, Any]] = None,
                 state: Optional[Dict[str, Any]] = None) -> BaseModel:
    if algo not in ALGORITHMS:
        raise InvalidInput(f"Unknown algo '{algo}'. Valid: {list(ALGORITHMS.keys())}")
    model = ALGORITHMS[algo](**(params or {}))
    if state:
        model.set_state(state)
    return model


def _to_list(values):
    if values is None:
        return None
    if isinstance(values, np.ndarray) and values.ndim == 2:
        return values.tolist()
    return to_numpy_1d(values).tolist()


def _extras(model: BaseModel, bounds) -> Dict[str, Any]:
    """Drawing helpers that only some models have."""
    out: Dict[str, Any] = {}
    if isinstance(model, LogisticClassifier) and bounds is not None:
        out["boundary"] = model.decision_boundary(tuple(bounds))
    elif isinstance(model, DecisionTreeClassifier):
        out["tree"] = model.export_tree_structure()
        if bounds is not None:
            out["regions"] = model.decision_regions(tuple(bounds))
    elif isinstance(model, SMOClassifier):
        out["support_vectors"] = model.support_vectors()
    elif isinstance(model, KMeansStateMachine) and model.centroids_ is not None:
        out["centroids"] = model.centroids_.tolist()
    elif isinstance(model, PCA2D) and model.pc1_ is not None:
        out["pc1_angle"] = model.pc1_angle()
    elif isinstance(model, GradientDescent1D):
        out["tangent"] = model.tangent()
    elif isinstance(model, QLearningSession):
        out["policy"] = model.greedy_policy()
        out["last_transition"] = model.last_transition_
    return out


def _metrics(model: BaseModel, X, y) -> Dict[str, Any]:
    if model.task_type in ("classification", "regression") and y is None:
        return {}
    return model.metrics(X, y)

# ------------ Service ------------

def serve_request(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Stateless service entry. Train / Infer / Score / Step with a unified JSON payload.
    """
    try:
        algo = payload["algo"]
        action = payload["action"]
        X = payload.get("X", None)
        y = payload.get("y", None)
        params = payload.get("params", None)
        state = payload.get("state", None)
        bounds = payload.get("bounds", None)

        model = _build_model(algo, params, state)
        task_type = getattr(model, "task_type", "unknown")

        y_pred = None; y_proba = None; metrics = None; new_state = None

        if action == "train":
            model.fit(X, y)
            if task_type in ("classification", "regression") and y is not None:
                y_pred = _to_list(model.predict(X))
            metrics = _metrics(model, X, y)
            new_state = model.get_state()

        elif action == "step":
            n_steps = int(payload.get("n_steps", 1))
            for _ in range(max(1, n_steps)):
                model.step(X, y)
            metrics = _metrics(model, X, y)
            new_state = model.get_state()

        elif action == "infer":
            if state is None:
                return {"ok": False, "algo": algo, "action": action, "message": "state is required for infer"}
            if X is None:
                return {"ok": False, "algo": algo, "action": action, "message": "X is required"}
            y_pred = _to_list(model.predict(X))
            proba = model.predict_proba(X)
            if proba is not None:
                y_proba = np.asarray(proba).tolist()

        elif action == "score":
            if y is None:
                return {"ok": False, "algo": algo, "action": action, "message": "y is required for score"}
            if state is None:
                return {"ok": False, "algo": algo, "action": action, "message": "state is required for score"}
            y_hat = model.predict(X)
            if task_type == "classification":
                metrics = {"accuracy": accuracy(y, y_hat)}
            elif task_type == "regression":
                metrics = {"mse": mse(y, y_hat), "mae": mae(y, y_hat)}
            else:
                metrics = {}
        else:
            return {"ok": False, "algo": algo, "action": action, "message": f"Unknown action {action}"}

        return {"ok": True, "algo": algo, "task_type": task_type, "action": action,
                "y_pred": y_pred, "y_proba": y_proba, "metrics": metrics, "state": new_state,
                "extras": _extras(model, bounds), "message": None}

    except Exception as e:
        logger.debug("serve_request failed for %s/%s", payload.get("algo"), payload.get("action"), exc_info=True)
        return {"ok": False, "algo": payload.get("algo"), "action": payload.get("action"),
                "message": f"{type(e).__name__}: {str(e)}"}

# ------------ Model-free widgets ------------

def _activation(p: Dict[str, Any]) -> Dict[str, Any]:
    fn = parse_enum(Activation, p.get("function", "relu"))
    out = {"info": fn.info, **fn.curve(p.get("xs"), p.get("param"))}
    if p.get("x") is not None:
        out["at"] = {"x": float(p["x"]), "y": fn.value(float(p["x"]), p.get("param")),
                     "dy": fn.derivative(float(p["x"]), p.get("param"))}
    return out


def _loss(p: Dict[str, Any]) -> Dict[str, Any]:
    fn = parse_enum(Loss, p.get("function", "mse"))
    target = float(p.get("y", 1.0))
    out = {"info": fn.info, **fn.curve(target, p.get("y_hats"), p.get("param"))}
    if p.get("y_hat") is not None:
        out["at"] = {"y_hat": float(p["y_hat"]), "loss": fn.value(target, float(p["y_hat"]), p.get("param"))}
    return out


def _convolution(p: Dict[str, Any]) -> Dict[str, Any]:
    kernel = p.get("kernel", "edge")
    out = {"output": convolve(p["image"], kernel).tolist()}
    if p.get("x") is not None and p.get("y") is not None:
        out["detail"] = receptive_field(p["image"], int(p["x"]), int(p["y"]), kernel)
    return out


def _pooling(p: Dict[str, Any]) -> Dict[str, Any]:
    result = pool(p["grid"], p.get("mode", "max"), int(p.get("size", 2)), int(p.get("stride", 2)))
    return {"output": result.astype(int).tolist()}


def _threshold(p: Dict[str, Any]) -> Dict[str, Any]:
    counts = confusion_at_threshold(p["scores"], p["labels"], float(p.get("threshold", 50)))
    out = {"counts": counts.to_dict()}
    if p.get("sweep"):
        out["sweep"] = threshold_sweep(p["scores"], p["labels"])
    return out


WIDGETS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    "activation": _activation,
    "loss": _loss,
    "convolution": _convolution,
    "pooling": _pooling,
    "threshold": _threshold,
}


def serve_widget(payload: Dict[str, Any]) -> Dict[str, Any]:
    """{"widget": name, "params": {...}} -> {"ok", "widget", "result", "message"}"""
    widget = payload.get("widget")
    try:
        if widget not in WIDGETS:
            raise InvalidInput(f"Unknown widget '{widget}'. Valid: {list(WIDGETS.keys())}")
        return {"ok": True, "widget": widget, "result": WIDGETS[widget](payload.get("params") or {}),
                "message": None}
    except Exception as e:
        return {"ok": False, "widget": widget, "result": None, "message": f"{type(e).__name__}: {str(e)}"}
