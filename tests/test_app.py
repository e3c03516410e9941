"""
HTTP blueprint and Socket.IO events, driven through the Flask and
Flask-SocketIO test clients.
"""

import pytest

from app import app, socketio


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as c:
        yield c


@pytest.fixture
def sio_client():
    c = socketio.test_client(app)
    yield c
    if c.is_connected():
        c.disconnect()


def _events(received, name):
    return [msg["args"][0] for msg in received if msg["name"] == name]


def test_index(client):
    body = client.get("/").get_json()
    assert "/api/algorithm/run" in body["endpoints"]


def test_list_endpoints(client):
    algos = client.get("/api/algorithm/list").get_json()["data"]
    assert algos["algorithms"]["svm"] == "classification"
    assert "threshold" in algos["widgets"]
    datasets = client.get("/api/algorithm/datasets").get_json()["data"]["datasets"]
    assert "fit_curve" in datasets


def test_run_endpoint(client):
    response = client.post("/api/algorithm/run", json={
        "algorithm": "knn", "dataset": "knn_blobs", "params": {"k": 3},
        "dataset_params": {"random_state": 0},
    })
    body = response.get_json()
    assert body["code"] == 200
    assert body["data"]["basic_info"]["task_type"] == "classification"
    assert 0.0 <= body["data"]["metrics"]["accuracy"] <= 1.0


def test_run_endpoint_rejects_mismatch(client):
    body = client.post("/api/algorithm/run", json={"algorithm": "svm", "dataset": "logistic_blobs"}).get_json()
    assert body["code"] == 400


def test_widget_endpoint(client):
    body = client.post("/api/algorithm/widget", json={
        "widget": "pooling", "params": {"grid": [[1, 2], [3, 4]], "mode": "mean"},
    }).get_json()
    assert body["code"] == 200
    assert body["data"]["output"] == [[3]]


def test_socket_connect_and_ping(sio_client):
    assert _events(sio_client.get_received(), "connection_response")
    sio_client.emit("ping")
    assert _events(sio_client.get_received(), "pong")


def test_socket_run_and_step(sio_client):
    sio_client.get_received()
    sio_client.emit("run_algorithm", {"algorithm": "pca", "dataset": "pca_cloud",
                                      "dataset_params": {"random_state": 0}})
    received = sio_client.get_received()
    assert _events(received, "algorithm_status")
    assert len(_events(received, "algorithm_result")) == 1

    sio_client.emit("step_algorithm", {"algorithm": "gradient_descent", "params": {"start": 3.0}})
    steps = _events(sio_client.get_received(), "algorithm_step")
    assert steps[0]["metrics"]["steps"] == 1


def test_socket_reports_errors(sio_client):
    sio_client.get_received()
    sio_client.emit("run_algorithm", {"algorithm": "knn", "dataset": "svm_ring"})
    errors = _events(sio_client.get_received(), "algorithm_error")
    assert errors and "incompatible" in errors[0]["error"]
