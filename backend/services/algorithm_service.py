import numpy as np
import logging
from algorithms.service import ALGORITHMS, serve_request, serve_widget
from algorithms.pca import center_points
from dataset_loader import CONFIG, load_dataset
from sklearn.metrics import confusion_matrix, classification_report, accuracy_score, precision_score, recall_score, f1_score

logger = logging.getLogger(__name__)

CLASSIFICATION_ALGORITHMS = ['logistic', 'decision_tree', 'knn', 'svm']
REGRESSION_ALGORITHMS = ['poly_reg_gd', 'poly_reg_ols']
UNSUPERVISED_ALGORITHMS = ['kmeans', 'pca']
SELF_CONTAINED_ALGORITHMS = ['gradient_descent', 'mlp', 'qlearning']

# datasets each classifier understands (label domain has to match)
CLASSIFICATION_DATASETS = {
    'logistic': ['logistic_blobs'],
    'decision_tree': ['tree_xor', 'knn_blobs'],
    'knn': ['knn_blobs', 'tree_xor'],
    'svm': ['svm_linear', 'svm_ring'],
}
REGRESSION_DATASETS = ['regression_curve', 'fit_curve']


def validate_algorithm_dataset_compatibility(algorithm, dataset_name, X, y, action="train"):
    """
    Check that an algorithm can run on a dataset. Returns (ok, message).
    """
    if algorithm in SELF_CONTAINED_ALGORITHMS:
        return True, "ok"

    if algorithm in UNSUPERVISED_ALGORITHMS:
        if X is None or len(X) == 0:
            return False, "feature data X is empty"
        return True, "ok"

    if dataset_name is not None:
        if algorithm in CLASSIFICATION_ALGORITHMS and dataset_name not in CLASSIFICATION_DATASETS[algorithm]:
            return False, (f"classifier '{algorithm}' cannot use dataset '{dataset_name}' "
                           f"(expected one of {CLASSIFICATION_DATASETS[algorithm]})")
        if algorithm in REGRESSION_ALGORITHMS and dataset_name not in REGRESSION_DATASETS:
            return False, f"regressor '{algorithm}' cannot use dataset '{dataset_name}'"

    if X is None or len(X) == 0:
        return False, "feature data X is empty"

    if action != "infer" and (y is None or len(y) == 0):
        return False, "label data y is empty"

    return True, "ok"


def _resolve_data(request_data):
    """Return (dataset_name, X, y, X_test, y_test) from a dataset name or inline X/y."""
    dataset_name = request_data.get("dataset")
    if dataset_name:
        X, y = load_dataset(dataset_name, **(request_data.get("dataset_params") or {}))
        if dataset_name == "fit_curve":
            n_train = (request_data.get("dataset_params") or {}).get("fit_points", CONFIG["fit_points"])
            return dataset_name, X[:n_train], y[:n_train], X[n_train:], y[n_train:]
        return dataset_name, X, y, None, None

    X = request_data.get("X")
    y = request_data.get("y")
    X = np.asarray(X, dtype=float) if X is not None else None
    y = np.asarray(y) if y is not None else None
    return None, X, y, None, None


def _classification_report(y_true, y_pred):
    """Confusion matrix, per-class report and precision/recall/F1 via scikit-learn."""
    out = {}
    labels = np.unique(np.concatenate([y_true, y_pred]))
    out["labels"] = labels.tolist()
    out["confusion_matrix"] = confusion_matrix(y_true, y_pred, labels=labels).tolist()

    class_report = classification_report(y_true, y_pred, labels=labels, output_dict=True, zero_division=0)
    for key in class_report:
        if isinstance(class_report[key], dict):
            for sub_key in class_report[key]:
                class_report[key][sub_key] = float(class_report[key][sub_key])
    out["classification_report"] = class_report

    class_accuracy = {}
    for cls in np.unique(y_true):
        mask = y_true == cls
        class_accuracy[str(cls)] = float(np.mean(y_pred[mask] == cls))
    out["class_accuracy"] = class_accuracy

    # the second label is the positive one ({0,1}, {A,B}, {-1,+1} all sort that way)
    average = "binary" if len(labels) == 2 else "macro"
    pos_label = labels[-1] if average == "binary" else 1
    out["metrics"] = {
        "accuracy": float(accuracy_score(y_true, y_pred)),
        "precision": float(precision_score(y_true, y_pred, average=average, pos_label=pos_label, zero_division=0)),
        "recall": float(recall_score(y_true, y_pred, average=average, pos_label=pos_label, zero_division=0)),
        "f1_score": float(f1_score(y_true, y_pred, average=average, pos_label=pos_label, zero_division=0)),
    }
    return out


def _regression_report(y_true, y_pred):
    residuals = y_true - y_pred
    max_pairs = min(100, len(y_true))
    return {
        "residuals": residuals.tolist(),
        "prediction_pairs": [{"true": float(t), "pred": float(p)}
                             for t, p in zip(y_true[:max_pairs], y_pred[:max_pairs])],
        "metrics": {
            "residual_mean": float(np.mean(residuals)),
            "residual_std": float(np.std(residuals)),
            "residual_min": float(np.min(residuals)),
            "residual_max": float(np.max(residuals)),
        },
    }


def handle_algorithm_request(request_data: dict) -> dict:
    """
    Bridge between a client request and the algorithms package.

    request_data = {"algorithm", "action", "dataset" | "X"/"y", "params",
                    "state", "dataset_params", "n_steps", "bounds"}
    """
    try:
        algo_name = request_data["algorithm"]
        action = request_data.get("action", "train")
        params = request_data.get("params") or {}
        state = request_data.get("state")

        if algo_name not in ALGORITHMS:
            return {"code": 400, "message": f"unknown algorithm '{algo_name}'", "data": {}}

        logger.info(f"Handling request - algorithm: {algo_name}, action: {action}, "
                    f"dataset: {request_data.get('dataset', 'inline')}")

        # 1. data: a named dataset, inline points, or nothing for self-contained widgets
        if algo_name in SELF_CONTAINED_ALGORITHMS:
            dataset_name, X, y_true, X_test, y_test = request_data.get("dataset"), request_data.get("X"), None, None, None
        else:
            dataset_name, X, y_true, X_test, y_test = _resolve_data(request_data)
            # stepping models (k-means, SMO) carry their data in the state
            if not (X is None and state and action == "step"):
                is_valid, validation_msg = validate_algorithm_dataset_compatibility(algo_name, dataset_name, X, y_true, action)
                if not is_valid:
                    return {"code": 400, "message": f"incompatible algorithm and dataset: {validation_msg}", "data": {}}

        if action in ["infer", "score"] and not state:
            return {"code": 400, "message": f"action '{action}' requires a model state", "data": {}}

        # canvas datasets are in pixels; logistic features are divided by the canvas size
        if algo_name == "logistic" and dataset_name and "scale" not in params:
            canvas = {**CONFIG, **(request_data.get("dataset_params") or {})}
            params = {**params, "scale": [canvas["canvas_width"], canvas["canvas_height"]]}

        mean = None
        if algo_name == "pca" and X is not None:
            mean, X = center_points(X)

        payload = {
            "algo": algo_name,
            "action": action,
            "X": X.tolist() if isinstance(X, np.ndarray) else X,
            "y": y_true.tolist() if y_true is not None else None,
            "params": params,
            "state": state,
            "n_steps": request_data.get("n_steps", 1),
            "bounds": request_data.get("bounds"),
        }
        result = serve_request(payload)

        if not result["ok"]:
            return {"code": 400, "message": f"algorithm failed: {result['message']}", "data": {}}

        data = {
            "basic_info": {
                "algorithm": algo_name,
                "dataset": dataset_name,
                "task_type": result["task_type"],
                "action": action,
            },
            "metrics": result["metrics"] or {},
            "y_pred": result["y_pred"] or [],
            "y_proba": result["y_proba"] or [],
            "state": result["state"],
            "extras": result["extras"],
            "X": payload["X"],
            "y_true": payload["y"],
            "dataset_info": {
                "n_samples": int(len(X)) if X is not None else 0,
                "n_features": int(np.asarray(X).shape[1]) if X is not None and np.ndim(X) == 2 else None,
                "n_classes": int(len(np.unique(y_true))) if y_true is not None and result["task_type"] == "classification" else None,
            },
            "confusion_matrix": None,
            "classification_report": None,
            "class_accuracy": None,
            "residuals": None,
            "prediction_pairs": None,
            "cluster_centers": None,
        }

        if mean is not None:
            data["mean"] = mean.tolist()

        if algo_name == "kmeans" and result["state"] and result["state"].get("centroids") is not None:
            data["cluster_centers"] = result["state"]["centroids"]
            data["cluster_labels"] = result["state"].get("labels")

        # scikit-learn evaluation of the training predictions
        if action in ["train", "score"] and y_true is not None and result["y_pred"]:
            y_pred_np = np.asarray(result["y_pred"])
            if result["task_type"] == "classification":
                report = _classification_report(np.asarray(y_true), y_pred_np)
                data["metrics"].update(report.pop("metrics"))
                data.update(report)
            elif result["task_type"] == "regression":
                report = _regression_report(np.asarray(y_true, dtype=float), y_pred_np.astype(float))
                data["metrics"].update(report.pop("metrics"))
                data.update(report)

        if X_test is not None and result["state"] and action == "train":
            scored = serve_request({"algo": algo_name, "action": "score", "X": X_test.tolist(),
                                    "y": y_test.tolist(), "params": params, "state": result["state"]})
            if scored["ok"]:
                data["metrics"]["test_mse"] = scored["metrics"]["mse"]
                data["metrics"]["test_rmse"] = float(np.sqrt(scored["metrics"]["mse"]))
                data["X_test"] = X_test.tolist()
                data["y_test"] = y_test.tolist()

        logger.info(f"Algorithm finished: {algo_name}, action: {action}, metrics: {data['metrics']}")
        return {"code": 200, "message": "success", "data": data}

    except (KeyError, ValueError) as e:
        logger.error(f"Bad algorithm request: {str(e)}")
        return {"code": 400, "message": f"bad request: {str(e)}", "data": {}}
    except Exception as e:
        logger.error(f"Algorithm service error: {str(e)}")
        return {"code": 500, "message": f"server error: {str(e)}", "data": {}}


def handle_widget_request(request_data: dict) -> dict:
    """Model-free widgets (activation/loss curves, convolution, pooling, threshold)."""
    try:
        widget = request_data["widget"]
        params = dict(request_data.get("params") or {})
        if widget == "threshold" and "scores" not in params:
            X, y = load_dataset("threshold_scores", random_state=request_data.get("random_state"),
                                overlap=params.get("overlap", 40))
            params["scores"], params["labels"] = X.ravel().tolist(), y.tolist()

        logger.info(f"Handling widget request: {widget}")
        result = serve_widget({"widget": widget, "params": params})
        if not result["ok"]:
            return {"code": 400, "message": f"widget failed: {result['message']}", "data": {}}
        data = {"widget": widget, **result["result"]}
        if widget == "threshold":
            data["scores"], data["labels"] = params["scores"], params["labels"]
        return {"code": 200, "message": "success", "data": data}

    except KeyError as e:
        logger.error(f"Bad widget request: missing {str(e)}")
        return {"code": 400, "message": f"bad request: missing {str(e)}", "data": {}}
    except Exception as e:
        logger.error(f"Widget service error: {str(e)}")
        return {"code": 500, "message": f"server error: {str(e)}", "data": {}}
