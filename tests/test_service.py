"""
Request layer: the stateless serve_request/serve_widget entry points and the
dataset-aware handle_algorithm_request bridge.
"""

import json

import pytest

from algorithms.service import ALGORITHMS, serve_request, serve_widget
from services.algorithm_service import (handle_algorithm_request, handle_widget_request,
                                        validate_algorithm_dataset_compatibility)

POINTS = [[-1.0, -1.0], [-2.0, -1.0], [1.0, 1.0], [2.0, 1.0]]

TRAIN_CASES = [
    ("logistic", POINTS, [0, 0, 1, 1], {"degree": 1, "learning_rate": 0.5, "epochs": 50}),
    ("decision_tree", POINTS, ["A", "A", "B", "B"], {"max_depth": 2}),
    ("knn", POINTS, ["A", "A", "B", "B"], {"k": 1}),
    ("svm", [[100, 100], [120, 80], [500, 500], [520, 480]], [1, 1, -1, -1], {"C": 10, "random_state": 0}),
    ("poly_reg_gd", [[0.0], [0.5], [1.0]], [1.0, 2.0, 3.0], {"degree": 1, "learning_rate": 0.5, "random_state": 0}),
    ("poly_reg_ols", [[5.0], [20.0], [40.0]], [1.0, 4.0, 9.0], {"degree": 2}),
    ("kmeans", POINTS + [[0.0, 0.5], [0.5, 0.0]], None, {"k": 2, "random_state": 0}),
    ("pca", POINTS, None, {}),
    ("gradient_descent", None, None, {"start": 3.0}),
    ("mlp", None, None, {"random_state": 0}),
    ("qlearning", None, None, {"random_state": 0}),
]


def test_every_algorithm_is_covered():
    assert {case[0] for case in TRAIN_CASES} == set(ALGORITHMS)


@pytest.mark.parametrize("algo,X,y,params", TRAIN_CASES)
def test_train_returns_serialisable_state(algo, X, y, params):
    result = serve_request({"algo": algo, "action": "train", "X": X, "y": y, "params": params,
                            "bounds": [-3, 3, -3, 3]})
    assert result["ok"], result["message"]
    assert result["task_type"] == ALGORITHMS[algo].task_type
    json.dumps(result["state"])
    if y is not None:
        assert len(result["y_pred"]) == len(y)


def test_train_infer_score_round_trip():
    trained = serve_request({"algo": "logistic", "action": "train", "X": POINTS, "y": [0, 0, 1, 1],
                             "params": {"learning_rate": 0.5, "epochs": 200}})
    inferred = serve_request({"algo": "logistic", "action": "infer", "X": POINTS, "state": trained["state"]})
    assert inferred["ok"]
    assert inferred["y_pred"] == [0, 0, 1, 1]
    assert len(inferred["y_proba"]) == 4
    scored = serve_request({"algo": "logistic", "action": "score", "X": POINTS, "y": [0, 0, 1, 1],
                            "state": trained["state"]})
    assert scored["metrics"] == {"accuracy": 1.0}


def test_step_threads_state_between_calls():
    X = POINTS + [[0.0, 0.5], [0.5, 0.0]]
    first = serve_request({"algo": "kmeans", "action": "step", "X": X, "params": {"k": 2, "random_state": 0}})
    assert first["state"]["phase"] == "init"
    second = serve_request({"algo": "kmeans", "action": "step", "state": first["state"]})
    assert second["state"]["phase"] == "assign"
    multi = serve_request({"algo": "gradient_descent", "action": "step", "params": {"start": 3.0}, "n_steps": 5})
    assert multi["metrics"]["steps"] == 5
    assert "tangent" in multi["extras"]


def test_failures_are_reported_not_raised():
    unknown = serve_request({"algo": "naive_bayes", "action": "train"})
    assert not unknown["ok"]
    assert unknown["message"].startswith("InvalidInput")
    assert not serve_request({"algo": "knn", "action": "infer", "X": POINTS})["ok"]
    assert not serve_request({"algo": "knn", "action": "explain"})["ok"]
    not_steppable = serve_request({"algo": "decision_tree", "action": "step", "X": POINTS,
                                   "y": ["A", "A", "B", "B"]})
    assert not_steppable["message"].startswith("NotImplementedError")
    bad_labels = serve_request({"algo": "svm", "action": "train", "X": POINTS, "y": [0, 0, 1, 1]})
    assert "InvalidInput" in bad_labels["message"]


def test_widgets():
    act = serve_widget({"widget": "activation", "params": {"function": "sigmoid", "x": 0}})
    assert act["ok"] and act["result"]["at"]["y"] == 0.5
    loss = serve_widget({"widget": "loss", "params": {"function": "hinge", "y": 1, "y_hat": 0.3}})
    assert loss["result"]["at"]["loss"] == pytest.approx(0.7)
    conv = serve_widget({"widget": "convolution",
                         "params": {"image": [[0] * 5] * 5, "kernel": "identity", "x": 2, "y": 2}})
    assert conv["result"]["detail"]["output"] == 0
    pooled = serve_widget({"widget": "pooling", "params": {"grid": [[1, 2], [3, 4]], "mode": "max"}})
    assert pooled["result"]["output"] == [[4]]
    thr = serve_widget({"widget": "threshold",
                        "params": {"scores": [10, 90], "labels": [0, 1], "threshold": 50, "sweep": True}})
    assert thr["result"]["counts"]["accuracy"] == 1.0
    assert len(thr["result"]["sweep"]) == 101
    missing = serve_widget({"widget": "histogram"})
    assert not missing["ok"] and missing["result"] is None


def test_compatibility_rules():
    assert validate_algorithm_dataset_compatibility("svm", "tree_xor", POINTS, [1, 1, 1, 1])[0] is False
    assert validate_algorithm_dataset_compatibility("knn", "tree_xor", POINTS, ["A"] * 4)[0] is True
    assert validate_algorithm_dataset_compatibility("knn", None, POINTS, None)[0] is False
    assert validate_algorithm_dataset_compatibility("knn", None, POINTS, None, action="infer")[0] is True
    assert validate_algorithm_dataset_compatibility("pca", None, [], None)[0] is False
    assert validate_algorithm_dataset_compatibility("mlp", None, None, None)[0] is True


def test_classification_request_on_dataset():
    response = handle_algorithm_request({"algorithm": "decision_tree", "action": "train",
                                         "dataset": "tree_xor", "dataset_params": {"random_state": 0},
                                         "bounds": [0, 600, 0, 500]})
    assert response["code"] == 200
    data = response["data"]
    assert data["labels"] == ["A", "B"]
    assert len(data["confusion_matrix"]) == 2
    assert {"accuracy", "precision", "recall", "f1_score"} <= set(data["metrics"])
    assert data["dataset_info"]["n_samples"] == 60
    assert data["extras"]["regions"]


def test_bad_requests():
    assert handle_algorithm_request({"algorithm": "decision_tree", "dataset": "svm_linear"})["code"] == 400
    assert handle_algorithm_request({"algorithm": "lda"})["code"] == 400
    assert handle_algorithm_request({"action": "train"})["code"] == 400
    assert handle_algorithm_request({"algorithm": "knn", "action": "infer", "X": POINTS})["code"] == 400
    assert handle_algorithm_request({"algorithm": "knn", "dataset": "no_such_set"})["code"] == 400


def test_fit_curve_reports_held_out_error():
    response = handle_algorithm_request({"algorithm": "poly_reg_ols", "dataset": "fit_curve",
                                         "dataset_params": {"random_state": 1}, "params": {"degree": 3}})
    assert response["code"] == 200
    data = response["data"]
    assert len(data["X"]) == 20 and len(data["X_test"]) == 10
    assert data["metrics"]["test_rmse"] >= 0
    assert len(data["residuals"]) == 20


def test_pca_request_is_centred():
    response = handle_algorithm_request({"algorithm": "pca", "dataset": "pca_cloud",
                                         "dataset_params": {"random_state": 0}})
    assert response["code"] == 200
    assert len(response["data"]["mean"]) == 2
    assert 0 <= response["data"]["extras"]["pc1_angle"] < 180


def test_kmeans_stepping_over_requests():
    first = handle_algorithm_request({"algorithm": "kmeans", "action": "step", "dataset": "kmeans_blobs",
                                      "dataset_params": {"random_state": 0, "n_centers": 3},
                                      "params": {"k": 3, "random_state": 0}})
    assert first["code"] == 200
    assert len(first["data"]["cluster_centers"]) == 3
    second = handle_algorithm_request({"algorithm": "kmeans", "action": "step",
                                       "params": {"k": 3}, "state": first["data"]["state"]})
    assert second["code"] == 200
    assert second["data"]["metrics"]["phase"] == "assign"


def test_threshold_widget_loads_scores():
    response = handle_widget_request({"widget": "threshold", "random_state": 0, "params": {"threshold": 50}})
    assert response["code"] == 200
    assert len(response["data"]["scores"]) == 200
    assert response["data"]["counts"]["total"] == 200
    assert handle_widget_request({"params": {}})["code"] == 400


def test_logistic_on_canvas_dataset_is_normalised():
    for seed in range(5):
        response = handle_algorithm_request({"algorithm": "logistic", "action": "train",
                                             "dataset": "logistic_blobs",
                                             "dataset_params": {"random_state": seed}})
        assert response["code"] == 200
        assert response["data"]["state"]["scale"] == [600.0, 500.0]
        assert response["data"]["metrics"]["accuracy"] > 0.6
    inline = handle_algorithm_request({"algorithm": "logistic", "X": POINTS, "y": [0, 0, 1, 1]})
    assert inline["data"]["state"]["scale"] == [1.0, 1.0]
