"""
kmeans.py — Lloyd's algorithm as a step-driven state machine.

Every call to step() performs exactly one phase so the widget can show
initialisation, assignment and centroid update separately:

    IDLE -> INIT -> ASSIGN -> UPDATE -> ASSIGN -> ... -> CONVERGED

`phase` is the phase that was last completed.
"""

from __future__ import annotations
from enum import Enum
from typing import List, Optional
import logging
import numpy as np

from .common import BaseModel, InvalidInput, array_or_none, make_rng, parse_enum, to_points

logger = logging.getLogger(__name__)


class Phase(Enum):
    IDLE = "idle"
    INIT = "init"
    ASSIGN = "assign"
    UPDATE = "update"
    CONVERGED = "converged"


class KMeansStateMachine(BaseModel):
    task_type = "unsupervised"
    name = "kmeans"

    def __init__(self, k: int = 3, threshold: float = 1.0, random_state: Optional[int] = None):
        if int(k) < 1:
            raise InvalidInput(f"k must be >= 1, got {k}")
        self.k = int(k)
        self.threshold = float(threshold)
        self.random_state = random_state
        self.X_: Optional[np.ndarray] = None
        self.n_inits_ = 0
        self.reset()

    def reset(self):
        self.phase = Phase.IDLE
        self.centroids_: Optional[np.ndarray] = None
        self.labels_: Optional[np.ndarray] = None if self.X_ is None else np.full(len(self.X_), -1)
        self.iteration_ = 0
        self.last_shift_: Optional[float] = None
        return self

    def set_data(self, X):
        X = to_points(X)
        if self.k > len(X):
            raise InvalidInput(f"k={self.k} exceeds number of points ({len(X)})")
        self.X_ = X
        return self.reset()

    # ---- phases ----

    def _init_centroids(self):
        rng = make_rng(self.random_state, self.n_inits_)
        self.n_inits_ += 1
        chosen: List[int] = []
        seen = set()
        while len(chosen) < self.k:
            idx = int(rng.integers(len(self.X_)))
            if idx not in seen:
                seen.add(idx)
                chosen.append(idx)
        self.centroids_ = self.X_[chosen].copy()
        self.labels_ = np.full(len(self.X_), -1)
        self.phase = Phase.INIT

    def _assign(self):
        self.labels_ = self.assign(self.X_)
        self.phase = Phase.ASSIGN

    def _update(self):
        new_centroids = self.centroids_.copy()
        for c in range(self.k):
            members = self.X_[self.labels_ == c]
            if len(members):
                new_centroids[c] = members.mean(axis=0)
        shifts = np.sqrt(np.sum((new_centroids - self.centroids_) ** 2, axis=1))
        self.centroids_ = new_centroids
        self.last_shift_ = float(shifts.max())
        self.iteration_ += 1
        if np.all(shifts < self.threshold):
            self.phase = Phase.CONVERGED
            logger.debug("k-means converged after %d updates (k=%d)", self.iteration_, self.k)
        else:
            self.phase = Phase.UPDATE

    def step(self, X=None, y=None):
        if X is not None and self.X_ is None:
            self.set_data(X)
        if self.X_ is None:
            raise InvalidInput("no data set")
        if self.phase is Phase.IDLE:
            self._init_centroids()
        elif self.phase in (Phase.INIT, Phase.UPDATE):
            self._assign()
        elif self.phase is Phase.ASSIGN:
            self._update()
        return self

    def run(self, max_steps: int = 300):
        for _ in range(int(max_steps)):
            if self.phase is Phase.CONVERGED:
                break
            self.step()
        return self

    def fit(self, X, y=None):
        self.set_data(X)
        return self.run()

    # ---- queries ----

    def assign(self, points) -> np.ndarray:
        """Nearest centroid per point; the lowest index wins ties."""
        if self.centroids_ is None:
            raise RuntimeError("centroids are not initialised")
        P = np.asarray(points, dtype=float).reshape(-1, 2)
        dists = np.sum((P[:, None, :] - self.centroids_[None, :, :]) ** 2, axis=2)
        return np.argmin(dists, axis=1)

    def predict(self, X):
        return self.assign(X)

    def inertia(self) -> float:
        if self.centroids_ is None or self.labels_ is None or np.any(self.labels_ < 0):
            return 0.0
        return float(np.sum((self.X_ - self.centroids_[self.labels_]) ** 2))

    def cluster_sizes(self) -> List[int]:
        if self.labels_ is None:
            return [0] * self.k
        return [int(np.sum(self.labels_ == c)) for c in range(self.k)]

    def metrics(self, X=None, y=None):
        return {"phase": self.phase.value, "iteration": self.iteration_, "inertia": self.inertia(),
                "cluster_sizes": self.cluster_sizes(), "last_shift": self.last_shift_}

    def get_state(self):
        return {"k": self.k, "threshold": self.threshold, "random_state": self.random_state,
                "phase": self.phase.value, "n_inits": self.n_inits_, "iteration": self.iteration_,
                "last_shift": self.last_shift_,
                "X": self.X_.tolist() if self.X_ is not None else None,
                "centroids": self.centroids_.tolist() if self.centroids_ is not None else None,
                "labels": self.labels_.tolist() if self.labels_ is not None else None}

    def set_state(self, state):
        self.k = int(state.get("k", self.k))
        self.threshold = float(state.get("threshold", self.threshold))
        self.random_state = state.get("random_state", self.random_state)
        self.X_ = array_or_none(state.get("X"))
        self.reset()
        self.phase = parse_enum(Phase, state.get("phase", Phase.IDLE))
        self.n_inits_ = int(state.get("n_inits", 0))
        self.iteration_ = int(state.get("iteration", 0))
        self.last_shift_ = state.get("last_shift")
        self.centroids_ = array_or_none(state.get("centroids"))
        self.labels_ = array_or_none(state.get("labels"), dtype=int)
        return self
