"""
mlp.py — forward pass through a small fully connected sigmoid network.

Weights, biases and the default inputs are drawn uniformly and rounded to
two decimals so the per-node arithmetic can be shown verbatim.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence
import numpy as np

from .common import BaseModel, InvalidInput, make_rng, sigmoid


class MLPForward(BaseModel):
    task_type = "visualization"
    name = "mlp"

    def __init__(self, layer_sizes: Sequence[int] = (3, 4, 2), random_state: Optional[int] = None):
        sizes = [int(s) for s in layer_sizes]
        if len(sizes) < 2 or min(sizes) < 1:
            raise InvalidInput(f"layer_sizes needs at least two positive layers, got {list(layer_sizes)}")
        self.layer_sizes = sizes
        self.random_state = random_state
        self.reset()

    def reset(self):
        rng = make_rng(self.random_state)
        self.weights_: List[np.ndarray] = [
            np.round(rng.uniform(-1, 1, size=(n_in, n_out)), 2)
            for n_in, n_out in zip(self.layer_sizes[:-1], self.layer_sizes[1:])
        ]
        self.biases_: List[np.ndarray] = [np.round(rng.uniform(-1, 1, size=n), 2)
                                          for n in self.layer_sizes[1:]]
        self.inputs_ = np.round(rng.uniform(0, 1, size=self.layer_sizes[0]), 2)
        self.activations_: List[np.ndarray] = []
        return self

    def forward(self, inputs=None) -> List[np.ndarray]:
        """Activations of every layer, the input layer first."""
        if inputs is not None:
            x = np.asarray(inputs, dtype=float).ravel()
            if len(x) != self.layer_sizes[0]:
                raise InvalidInput(f"expected {self.layer_sizes[0]} inputs, got {len(x)}")
            self.inputs_ = x
        layers = [self.inputs_]
        for W, b in zip(self.weights_, self.biases_):
            layers.append(sigmoid(b + layers[-1] @ W))
        self.activations_ = layers
        return layers

    def node_detail(self, layer: int, index: int) -> Dict[str, Any]:
        """Incoming terms, bias, pre-activation and output of one node."""
        if not self.activations_:
            self.forward()
        if not (0 <= layer < len(self.layer_sizes)) or not (0 <= index < self.layer_sizes[layer]):
            raise InvalidInput(f"no node {index} in layer {layer}")
        value = float(self.activations_[layer][index])
        if layer == 0:
            return {"layer": 0, "index": index, "value": value, "inputs": []}
        prev = self.activations_[layer - 1]
        weights = self.weights_[layer - 1][:, index]
        bias = float(self.biases_[layer - 1][index])
        return {"layer": layer, "index": index, "value": value, "bias": bias,
                "inputs": [(float(v), float(w)) for v, w in zip(prev, weights)],
                "z": bias + float(prev @ weights)}

    def fit(self, X=None, y=None):
        self.forward(X)
        return self

    def predict(self, X):
        X = np.asarray(X, dtype=float).reshape(-1, self.layer_sizes[0])
        out = X
        for W, b in zip(self.weights_, self.biases_):
            out = sigmoid(b + out @ W)
        return out

    def metrics(self, X=None, y=None):
        return {"layer_sizes": list(self.layer_sizes),
                "n_parameters": int(sum(W.size for W in self.weights_) + sum(b.size for b in self.biases_))}

    def get_state(self):
        return {"layer_sizes": list(self.layer_sizes), "random_state": self.random_state,
                "weights": [W.tolist() for W in self.weights_],
                "biases": [b.tolist() for b in self.biases_],
                "inputs": self.inputs_.tolist(),
                "activations": [a.tolist() for a in self.activations_]}

    def set_state(self, state):
        self.layer_sizes = [int(s) for s in state.get("layer_sizes", self.layer_sizes)]
        self.random_state = state.get("random_state", self.random_state)
        if state.get("weights") is not None:
            self.weights_ = [np.array(W, dtype=float) for W in state["weights"]]
            self.biases_ = [np.array(b, dtype=float) for b in state["biases"]]
        if state.get("inputs") is not None:
            self.inputs_ = np.array(state["inputs"], dtype=float)
        self.activations_ = [np.array(a, dtype=float) for a in state.get("activations", [])]
        return self
