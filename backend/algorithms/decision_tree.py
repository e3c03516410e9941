"""
decision_tree.py — binary, axis-aligned CART tree on 2D points.

Each node is split on x or y at the midpoint between two consecutive
distinct coordinates that minimises the size-weighted impurity of the two
children. The tree is rebuilt from scratch on every change.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple
import math
import numpy as np

from .common import BaseModel, InvalidInput, accuracy, check_same_length, parse_enum, to_points

FEATURES = ("x", "y")


class Criterion(Enum):
    GINI = "gini"
    ENTROPY = "entropy"

    def impurity(self, counts: Sequence[int]) -> float:
        total = sum(counts)
        if total == 0:
            return 0.0
        probs = [c / total for c in counts]
        if self is Criterion.GINI:
            return 1.0 - sum(p * p for p in probs)
        return -sum(p * math.log2(p) for p in probs if p > 0)


def gini_impurity(labels, classes: Sequence = ("A", "B")) -> float:
    labels = np.asarray(labels)
    return Criterion.GINI.impurity([int(np.sum(labels == c)) for c in classes])


def entropy(labels, classes: Sequence = ("A", "B")) -> float:
    labels = np.asarray(labels)
    return Criterion.ENTROPY.impurity([int(np.sum(labels == c)) for c in classes])


@dataclass
class TreeNode:
    """One node; internal nodes carry a split, leaves a prediction and stop reason."""

    split_feature: Optional[str] = None    # 'x' or 'y'
    split_value: Optional[float] = None    # value <= split_value goes left
    left: Optional["TreeNode"] = None
    right: Optional["TreeNode"] = None

    predicted_class: Any = None
    class_counts: Dict[Any, int] = field(default_factory=dict)
    n_samples: int = 0
    depth: int = 0
    stop_reason: Optional[str] = None      # leaves only

    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def to_dict(self) -> Dict[str, Any]:
        out = {"n_samples": self.n_samples, "depth": self.depth,
               "class_counts": {str(k): int(v) for k, v in self.class_counts.items()},
               "predicted_class": _plain(self.predicted_class), "is_leaf": self.is_leaf()}
        if self.is_leaf():
            out["stop_reason"] = self.stop_reason
        else:
            out["split_feature"] = self.split_feature
            out["split_value"] = float(self.split_value)
            out["left"] = self.left.to_dict()
            out["right"] = self.right.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any], classes: Sequence) -> "TreeNode":
        by_name = {str(c): c for c in classes}
        node = cls(predicted_class=by_name.get(str(data["predicted_class"]), data["predicted_class"]),
                   class_counts={by_name.get(k, k): int(v) for k, v in data["class_counts"].items()},
                   n_samples=int(data["n_samples"]), depth=int(data["depth"]),
                   stop_reason=data.get("stop_reason"))
        if not data.get("is_leaf", True):
            node.split_feature = data["split_feature"]
            node.split_value = float(data["split_value"])
            node.left = cls.from_dict(data["left"], classes)
            node.right = cls.from_dict(data["right"], classes)
        return node


def _plain(value):
    return value.item() if hasattr(value, "item") else value


class DecisionTreeClassifier(BaseModel):
    task_type = "classification"
    name = "decision_tree"

    def __init__(self, max_depth: int = 3, criterion: Any = "gini", classes: Sequence = ("A", "B")):
        if len(classes) != 2:
            raise InvalidInput("decision tree supports exactly two classes")
        self.max_depth = int(max_depth)
        self.criterion = parse_enum(Criterion, criterion)
        self.classes = tuple(classes)
        self.root_: Optional[TreeNode] = None

    # ---- building ----

    def _counts(self, y: np.ndarray) -> Dict[Any, int]:
        return {c: int(np.sum(y == c)) for c in self.classes}

    def _split_cost(self, y_left: np.ndarray, y_right: np.ndarray) -> float:
        total = len(y_left) + len(y_right)
        cost_left = self.criterion.impurity(list(self._counts(y_left).values()))
        cost_right = self.criterion.impurity(list(self._counts(y_right).values()))
        return (len(y_left) / total) * cost_left + (len(y_right) / total) * cost_right

    def _find_best_split(self, X: np.ndarray, y: np.ndarray) -> Optional[Tuple[int, float]]:
        best_cost = math.inf
        best = None
        for feature_idx in range(len(FEATURES)):
            column = X[:, feature_idx]
            ordered = column[np.argsort(column, kind="stable")]
            for a, b in zip(ordered[:-1], ordered[1:]):
                if a == b:
                    continue
                threshold = (a + b) / 2
                left_mask = column <= threshold
                cost = self._split_cost(y[left_mask], y[~left_mask])
                if cost < best_cost:
                    best_cost = cost
                    best = (feature_idx, float(threshold))
        return best

    def _build(self, X: np.ndarray, y: np.ndarray, depth: int) -> TreeNode:
        counts = self._counts(y)
        first, second = self.classes
        node = TreeNode(
            predicted_class=first if counts[first] >= counts[second] else second,
            class_counts=counts,
            n_samples=len(y),
            depth=depth,
        )

        if counts[first] == 0 or counts[second] == 0:
            node.stop_reason = "pure"
        elif depth >= self.max_depth:
            node.stop_reason = "max_depth"
        elif len(y) < 2:
            node.stop_reason = "min_samples"
        if node.stop_reason:
            return node

        split = self._find_best_split(X, y)
        if split is None:
            node.stop_reason = "no_split"
            return node

        feature_idx, threshold = split
        left_mask = X[:, feature_idx] <= threshold
        if not np.any(left_mask) or np.all(left_mask):
            node.stop_reason = "empty_partition"
            return node

        node.split_feature = FEATURES[feature_idx]
        node.split_value = threshold
        node.left = self._build(X[left_mask], y[left_mask], depth + 1)
        node.right = self._build(X[~left_mask], y[~left_mask], depth + 1)
        return node

    def fit(self, X, y):
        X = to_points(X)
        y = check_same_length(X, y)
        unknown = set(y.tolist()) - set(self.classes)
        if unknown:
            raise InvalidInput(f"labels {sorted(map(str, unknown))} not in classes {list(self.classes)}")
        self.root_ = self._build(X, y, depth=0)
        return self

    # ---- queries ----

    def predict_one(self, point) -> Any:
        if self.root_ is None:
            raise RuntimeError("model is not fitted")
        node = self.root_
        while not node.is_leaf():
            value = point[FEATURES.index(node.split_feature)]
            node = node.left if value <= node.split_value else node.right
        return node.predicted_class

    def predict(self, X):
        X = np.asarray(X, dtype=float).reshape(-1, 2)
        return np.array([self.predict_one(p) for p in X])

    def accuracy(self, X, y) -> float:
        X = to_points(X, min_points=1)
        return accuracy(check_same_length(X, y), self.predict(X))

    def tree_stats(self) -> Dict[str, int]:
        stats = {"n_nodes": 0, "n_leaves": 0, "max_depth": 0}

        def _traverse(node: TreeNode):
            stats["n_nodes"] += 1
            stats["max_depth"] = max(stats["max_depth"], node.depth)
            if node.is_leaf():
                stats["n_leaves"] += 1
            else:
                _traverse(node.left)
                _traverse(node.right)

        if self.root_ is not None:
            _traverse(self.root_)
        return stats

    def leaves(self) -> List[TreeNode]:
        out: List[TreeNode] = []
        stack = [self.root_] if self.root_ is not None else []
        while stack:
            node = stack.pop()
            if node.is_leaf():
                out.append(node)
            else:
                stack.extend([node.right, node.left])
        return out

    def decision_regions(self, bounds: Tuple[float, float, float, float]) -> List[Dict[str, Any]]:
        """Axis-aligned rectangles (x_min, x_max, y_min, y_max) per leaf."""
        regions: List[Dict[str, Any]] = []

        def _walk(node: TreeNode, x_min, x_max, y_min, y_max):
            if node.is_leaf():
                regions.append({"bounds": (x_min, x_max, y_min, y_max),
                                "predicted_class": _plain(node.predicted_class)})
                return
            v = node.split_value
            if node.split_feature == "x":
                _walk(node.left, x_min, v, y_min, y_max)
                _walk(node.right, v, x_max, y_min, y_max)
            else:
                _walk(node.left, x_min, x_max, y_min, v)
                _walk(node.right, x_min, x_max, v, y_max)

        if self.root_ is not None:
            _walk(self.root_, *bounds)
        return regions

    def export_tree_structure(self) -> Dict[str, Any]:
        return self.root_.to_dict() if self.root_ is not None else {}

    def metrics(self, X, y=None):
        out: Dict[str, Any] = dict(self.tree_stats())
        if y is not None:
            out["accuracy"] = self.accuracy(X, y)
        return out

    def get_state(self):
        return {"max_depth": self.max_depth, "criterion": self.criterion.value,
                "classes": [_plain(c) for c in self.classes],
                "tree": self.export_tree_structure() or None}

    def set_state(self, state):
        self.max_depth = int(state.get("max_depth", self.max_depth))
        self.criterion = parse_enum(Criterion, state.get("criterion", self.criterion))
        self.classes = tuple(state.get("classes", self.classes))
        tree = state.get("tree")
        self.root_ = TreeNode.from_dict(tree, self.classes) if tree else None
        return self

    def __repr__(self) -> str:
        if self.root_ is None:
            return "DecisionTreeClassifier(not fitted)"
        stats = self.tree_stats()
        return (f"DecisionTreeClassifier(depth={stats['max_depth']}, "
                f"n_leaves={stats['n_leaves']}, criterion={self.criterion.value})")


def build(points, labels, max_depth: int = 3, criterion: Any = "gini",
          classes: Sequence = ("A", "B")) -> TreeNode:
    """Build a tree and return its root node."""
    return DecisionTreeClassifier(max_depth=max_depth, criterion=criterion,
                                  classes=classes).fit(points, labels).root_


def predict(node: TreeNode, point) -> Any:
    while not node.is_leaf():
        value = point[FEATURES.index(node.split_feature)]
        node = node.left if value <= node.split_value else node.right
    return node.predicted_class
