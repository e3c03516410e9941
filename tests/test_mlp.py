"""
Forward pass of the small sigmoid network.
"""

import numpy as np
import pytest

from algorithms.common import InvalidInput, sigmoid
from algorithms.mlp import MLPForward


def test_parameters_are_rounded_and_bounded():
    net = MLPForward(random_state=0)
    assert [W.shape for W in net.weights_] == [(3, 4), (4, 2)]
    for W in net.weights_:
        assert np.all(np.abs(W) <= 1.0)
        np.testing.assert_allclose(W, np.round(W, 2))
    assert np.all((net.inputs_ >= 0) & (net.inputs_ <= 1))


def test_forward_layers():
    net = MLPForward(random_state=1)
    layers = net.forward()
    assert [len(a) for a in layers] == [3, 4, 2]
    assert np.all((layers[-1] > 0) & (layers[-1] < 1))
    np.testing.assert_allclose(net.predict(net.inputs_)[0], layers[-1])


def test_node_detail_arithmetic():
    net = MLPForward(random_state=2)
    net.forward([0.1, 0.5, 0.9])
    detail = net.node_detail(1, 2)
    assert len(detail["inputs"]) == 3
    z = detail["bias"] + sum(v * w for v, w in detail["inputs"])
    assert detail["z"] == pytest.approx(z)
    assert detail["value"] == pytest.approx(sigmoid(z))
    assert net.node_detail(0, 0)["inputs"] == []


def test_seed_is_reproducible_and_state_round_trips():
    a = MLPForward(layer_sizes=(2, 3, 1), random_state=5)
    b = MLPForward(layer_sizes=(2, 3, 1), random_state=5)
    np.testing.assert_array_equal(a.weights_[0], b.weights_[0])
    a.forward()
    clone = MLPForward().set_state(a.get_state())
    np.testing.assert_allclose(clone.forward()[-1], a.activations_[-1])


def test_invalid_shapes():
    with pytest.raises(InvalidInput):
        MLPForward(layer_sizes=(3,))
    with pytest.raises(InvalidInput):
        MLPForward(random_state=0).forward([1.0, 2.0])
    with pytest.raises(InvalidInput):
        MLPForward(random_state=0).node_detail(2, 5)
