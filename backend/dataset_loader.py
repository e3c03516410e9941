import numpy as np
from sklearn.datasets import make_blobs
import logging

logger = logging.getLogger(__name__)

# Canvas sizes and point counts of the widgets that draw each dataset
CONFIG = {
    "canvas_width": 600,
    "canvas_height": 500,
    "logistic_points_per_class": 12,
    "logistic_spread": 70,
    "tree_points_per_class": 30,
    "tree_spread": 50,
    "knn_points_per_class": 15,
    "knn_spread": 80,
    "knn_mixed_points": 5,
    "kmeans_points": 150,
    "kmeans_spread": 60,
    "pca_points": 100,
    "pca_spread": 150,
    "svm_canvas_height": 400,
    "regression_points": 20,
    "fit_points": 20,
    "fit_test_points": 10,
    "threshold_samples": 200,
}

DATASETS = [
    "logistic_blobs", "tree_xor", "knn_blobs", "kmeans_blobs", "pca_cloud",
    "svm_linear", "svm_ring", "regression_curve", "fit_curve", "threshold_scores",
]


def _seed(rng):
    return int(rng.integers(2 ** 31 - 1))


def _blobs(centers, n_per_center, spread, labels, rng):
    X, idx = make_blobs(n_samples=[n_per_center] * len(centers), centers=np.asarray(centers, dtype=float),
                        cluster_std=spread, random_state=_seed(rng))
    return X, np.asarray(labels)[idx]


def fit_ground_truth(x):
    return 10 * np.sin(x / 10) + 0.1 * (x - 20) ** 2 - 40


def regression_ground_truth(x):
    return 0.8 * np.sin(3 * np.pi * x) + 0.2 * np.cos(5 * x)


def generate_correlated_cloud(n, correlation=0.8, noise=20.0, spread=150.0, rng=None):
    """Gaussian cloud stretched along 45 degrees and centred; returns (mean, points)."""
    rng = rng if rng is not None else np.random.default_rng()
    z = rng.standard_normal((n, 2)) * [spread, spread * (1 - correlation * 0.9)]
    z += rng.uniform(-noise, noise, size=(n, 2))
    c = s = np.sqrt(0.5)
    rotated = z @ np.array([[c, s], [-s, c]])
    mean = rotated.mean(axis=0)
    return mean, rotated - mean


def load_dataset(dataset_name, random_state=None, **overrides):
    """
    Build a widget dataset and return (X, y) numpy arrays (y is None when unlabelled).
    """
    cfg = {**CONFIG, **overrides}
    rng = np.random.default_rng(random_state)
    w, h = cfg["canvas_width"], cfg["canvas_height"]
    try:
        if dataset_name == "logistic_blobs":
            X, y = _blobs([(w * 0.3, h * 0.35), (w * 0.7, h * 0.65)], cfg["logistic_points_per_class"],
                          cfg["logistic_spread"], [0, 1], rng)
        elif dataset_name == "tree_xor":
            half = cfg["tree_points_per_class"] // 2
            X, y = _blobs([(w * 0.3, h * 0.3), (w * 0.8, h * 0.8), (w * 0.7, h * 0.3), (w * 0.3, h * 0.7)],
                          half, cfg["tree_spread"], ["A", "A", "B", "B"], rng)
        elif dataset_name == "knn_blobs":
            X, y = _blobs([(w * 0.25, h * 0.35), (w * 0.75, h * 0.65)], cfg["knn_points_per_class"],
                          cfg["knn_spread"], ["A", "B"], rng)
            n_mix = cfg["knn_mixed_points"]
            mixed = np.array([w * 0.5, h * 0.5]) + rng.standard_normal((n_mix, 2)) * 60
            X = np.vstack([X, mixed])
            y = np.concatenate([y, np.where(rng.random(n_mix) > 0.5, "A", "B")])
        elif dataset_name == "kmeans_blobs":
            n_centers = int(cfg.get("n_centers") or rng.integers(2, 5))
            centers = rng.uniform([w * 0.1, h * 0.1], [w * 0.9, h * 0.9], size=(n_centers, 2))
            X, _ = make_blobs(n_samples=cfg["kmeans_points"], centers=centers,
                              cluster_std=cfg["kmeans_spread"], random_state=_seed(rng))
            y = None
        elif dataset_name == "pca_cloud":
            _, X = generate_correlated_cloud(cfg["pca_points"], cfg.get("correlation", 0.8),
                                             cfg.get("noise", 20.0), cfg["pca_spread"], rng)
            y = None
        elif dataset_name == "svm_linear":
            sh = cfg["svm_canvas_height"]
            pos = rng.uniform([50, 50], [w * 0.4 + 50, sh * 0.5 + 50], size=(20, 2))
            neg = rng.uniform([w * 0.5, sh * 0.4], [w * 0.9, sh * 0.9], size=(20, 2))
            X = np.vstack([pos, neg])
            y = np.array([1] * 20 + [-1] * 20)
        elif dataset_name == "svm_ring":
            sh = cfg["svm_canvas_height"]
            center = np.array([w / 2, sh / 2])
            angles = rng.uniform(0, 2 * np.pi, 50)
            radii = np.concatenate([rng.uniform(0, 50, 20), rng.uniform(90, 150, 30)])
            X = center + np.column_stack([radii * np.cos(angles), radii * np.sin(angles)])
            y = np.array([1] * 20 + [-1] * 30)
        elif dataset_name == "regression_curve":
            x = rng.uniform(0.05, 0.95, cfg["regression_points"])
            noise = cfg.get("noise", 20) / 100
            X = x.reshape(-1, 1)
            y = regression_ground_truth(x) + (rng.random(len(x)) - 0.5) * noise
        elif dataset_name == "fit_curve":
            n = cfg["fit_points"] + cfg["fit_test_points"]
            x = rng.uniform(5, 55, n)
            noise = cfg.get("noise", 5)
            X = x.reshape(-1, 1)
            y = fit_ground_truth(x) + (rng.random(n) - 0.5) * noise * 2
        elif dataset_name == "threshold_scores":
            overlap = cfg.get("overlap", 40)
            n = cfg["threshold_samples"] // 2
            spread = 30 * (1 - overlap / 100)
            std = 10 + overlap / 10
            scores = np.concatenate([rng.normal(50 - spread, std, n), rng.normal(50 + spread, std, n)])
            X = np.clip(scores, 0, 100).reshape(-1, 1)
            y = np.array([0] * n + [1] * n)
        else:
            raise ValueError(f"Unknown dataset: {dataset_name}")

        logger.info(f"Loaded dataset: {dataset_name}, shape: X={X.shape}, y={None if y is None else y.shape}")
        return X, y

    except Exception as e:
        logger.error(f"Failed to load dataset {dataset_name}: {str(e)}")
        raise
