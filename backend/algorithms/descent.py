"""
descent.py — gradient descent on a one-dimensional cost curve, one update
per step() so the caller can animate the path.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Dict, List, Optional
import logging
import math

from .common import BaseModel, make_rng, parse_enum

logger = logging.getLogger(__name__)


class CostFunction(Enum):
    QUADRATIC = "deg2"
    QUARTIC = "deg4"

    @property
    def label(self) -> str:
        if self is CostFunction.QUADRATIC:
            return "y = 0.5x²-2"
        return "y = x⁴ - 4x² + 0.5x + 3"

    def cost(self, x: float) -> float:
        if self is CostFunction.QUADRATIC:
            return 0.5 * x * x - 2
        return x ** 4 - 4 * x * x + 0.5 * x + 3

    def grad(self, x: float) -> float:
        if self is CostFunction.QUADRATIC:
            return x
        return 4 * x ** 3 - 8 * x + 0.5


class GradientDescent1D(BaseModel):
    task_type = "optimization"
    name = "gradient_descent"

    GRAD_TOL = 1e-3
    DIVERGE_LIMIT = 100.0

    def __init__(self, function: Any = "deg2", learning_rate: float = 0.1,
                 start: Optional[float] = None, max_steps: int = 100,
                 random_state: Optional[int] = None):
        self.function = parse_enum(CostFunction, function)
        self.learning_rate = float(learning_rate)
        self.max_steps = int(max_steps)
        self.random_state = random_state
        if start is None:
            start = float(make_rng(random_state).uniform(-4.0, 4.0))
        self.reset(start)

    def reset(self, start: Optional[float] = None):
        if start is None:
            start = self.path_[0]["x"]
        self.x_ = float(start)
        self.path_: List[Dict[str, float]] = [{"x": self.x_, "cost": self.function.cost(self.x_)}]
        self.steps_ = 0
        self.status_ = "running"
        return self

    @property
    def done(self) -> bool:
        return self.status_ != "running"

    def step(self, X=None, y=None):
        if self.done:
            return self
        if self.steps_ >= self.max_steps:
            self.status_ = "max_steps"
            return self
        grad = self.function.grad(self.x_)
        if math.isnan(self.x_) or abs(self.x_) > self.DIVERGE_LIMIT:
            self.status_ = "diverged"
            logger.debug("1D descent diverged at x=%s (lr=%s)", self.x_, self.learning_rate)
            return self
        self.x_ = self.x_ - self.learning_rate * grad
        self.path_.append({"x": self.x_, "cost": self.function.cost(self.x_)})
        self.steps_ += 1
        if abs(grad) < self.GRAD_TOL:
            self.status_ = "converged"
        return self

    def fit(self, X=None, y=None):
        while not self.done:
            self.step()
        return self

    def tangent(self, half_width: float = 0.6):
        """Endpoints of the tangent line at the current position."""
        x = self.x_
        c = self.function.cost(x)
        g = self.function.grad(x)
        return [(x - half_width, c - g * half_width), (x + half_width, c + g * half_width)]

    def metrics(self, X=None, y=None):
        return {"x": self.x_, "cost": self.function.cost(self.x_), "steps": self.steps_,
                "status": self.status_}

    def get_state(self):
        return {"function": self.function.value, "learning_rate": self.learning_rate,
                "max_steps": self.max_steps, "random_state": self.random_state,
                "x": self.x_, "path": list(self.path_), "steps": self.steps_, "status": self.status_}

    def set_state(self, state):
        self.function = parse_enum(CostFunction, state.get("function", self.function))
        self.learning_rate = float(state.get("learning_rate", self.learning_rate))
        self.max_steps = int(state.get("max_steps", self.max_steps))
        self.random_state = state.get("random_state", self.random_state)
        self.x_ = float(state.get("x", self.x_))
        self.path_ = list(state.get("path", [{"x": self.x_, "cost": self.function.cost(self.x_)}]))
        self.steps_ = int(state.get("steps", 0))
        self.status_ = state.get("status", "running")
        return self
