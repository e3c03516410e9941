"""
Activation and loss functions.
"""

import math

import numpy as np
import pytest

from algorithms.common import InvalidInput, parse_enum
from algorithms.functions import Activation, Loss


def test_activation_values():
    assert Activation.SIGMOID.value(0) == 0.5
    assert Activation.TANH.value(0) == 0.0
    assert Activation.RELU.value(-1) == 0.0
    assert Activation.RELU.value(2.5) == 2.5
    assert Activation.LEAKY_RELU.value(-1) == pytest.approx(-0.01)
    assert Activation.LEAKY_RELU.value(-1, param=0.2) == pytest.approx(-0.2)
    assert Activation.ELU.value(-1) == pytest.approx(math.exp(-1) - 1)
    assert Activation.SWISH.value(0) == 0.0


def test_activation_derivatives():
    assert Activation.SIGMOID.derivative(0) == pytest.approx(0.25)
    assert Activation.TANH.derivative(0) == pytest.approx(1.0)
    assert Activation.RELU.derivative(2) == 1.0
    assert Activation.RELU.derivative(-2) == 0.0
    assert Activation.LEAKY_RELU.derivative(-3, param=0.3) == pytest.approx(0.3)
    assert Activation.ELU.derivative(-1) == pytest.approx(math.exp(-1))
    assert Activation.SWISH.derivative(0) == pytest.approx(0.5)


def test_derivative_matches_finite_difference():
    xs = np.array([-2.0, -0.5, 0.7, 3.0])
    h = 1e-6
    for act in Activation:
        numeric = (act.value(xs + h) - act.value(xs - h)) / (2 * h)
        np.testing.assert_allclose(act.derivative(xs), numeric, atol=1e-5)


def test_curve_shapes():
    curve = Activation.ELU.curve()
    assert len(curve["x"]) == len(curve["y"]) == len(curve["dy"]) == 241
    assert Activation.LEAKY_RELU.info["param_default"] == 0.01
    assert parse_enum(Activation, "leaky_relu") is Activation.LEAKY_RELU
    assert parse_enum(Activation, "ReLU") is Activation.RELU
    with pytest.raises(InvalidInput):
        parse_enum(Activation, "softmax")


def test_loss_values():
    assert Loss.MSE.value(1, 0.5) == pytest.approx(0.25)
    assert Loss.MAE.value(1, 0.5) == pytest.approx(0.5)
    assert Loss.HUBER.value(0, 3) == pytest.approx(2.5)
    assert Loss.HUBER.value(0, 0.5) == pytest.approx(0.125)
    assert Loss.HUBER.value(0, 3, param=2.0) == pytest.approx(4.0)
    assert Loss.HINGE.value(1, 0.3) == pytest.approx(0.7)
    assert Loss.HINGE.value(-1, 0.3) == pytest.approx(1.3)
    assert Loss.HINGE.value(1, 2.0) == 0.0


def test_bce_is_finite_at_extremes():
    assert Loss.BCE.value(1, 1.0) == pytest.approx(1e-7, rel=1e-3)
    assert Loss.BCE.value(1, 0.0) == pytest.approx(-math.log(1e-7))
    assert np.all(np.isfinite(Loss.BCE.curve(0, [0.0, 0.5, 1.0])["loss"]))


def test_loss_curve_default_range():
    curve = Loss.BCE.curve(1)
    assert len(curve["y_hat"]) == 201
    assert curve["y_hat"][0] == pytest.approx(0.01)
    assert curve["y_hat"][-1] == pytest.approx(0.99)
