"""
One-dimensional gradient descent on the two cost curves.
"""

import pytest

from algorithms.descent import CostFunction, GradientDescent1D


def test_cost_and_gradient():
    assert CostFunction.QUADRATIC.cost(2.0) == pytest.approx(0.0)
    assert CostFunction.QUADRATIC.grad(2.0) == pytest.approx(2.0)
    assert CostFunction.QUARTIC.cost(0.0) == pytest.approx(3.0)
    assert CostFunction.QUARTIC.grad(1.0) == pytest.approx(-3.5)


def test_quadratic_converges():
    gd = GradientDescent1D("deg2", learning_rate=0.1, start=3.0).fit()
    assert gd.status_ == "converged"
    assert abs(gd.x_) < 1e-3
    assert gd.steps_ < 100
    assert gd.path_[0]["x"] == 3.0


def test_large_rate_diverges():
    gd = GradientDescent1D("deg2", learning_rate=2.5, start=3.0).fit()
    assert gd.status_ == "diverged"
    assert abs(gd.x_) > 100


def test_tiny_rate_hits_step_limit():
    gd = GradientDescent1D("deg2", learning_rate=0.001, start=3.0).fit()
    assert gd.status_ == "max_steps"
    assert gd.steps_ == 100
    assert len(gd.path_) == 101


def test_quartic_settles_in_right_basin():
    gd = GradientDescent1D(CostFunction.QUARTIC, learning_rate=0.01, start=2.0).fit()
    assert gd.x_ > 0


def test_step_after_done_is_noop():
    gd = GradientDescent1D("deg2", learning_rate=0.1, start=3.0).fit()
    x = gd.x_
    gd.step()
    assert gd.x_ == x


def test_random_start_in_range_and_state_round_trip():
    gd = GradientDescent1D("deg4", random_state=5)
    assert -4.0 <= gd.x_ < 4.0
    gd.step()
    restored = GradientDescent1D("deg2", start=0.0).set_state(gd.get_state())
    assert restored.function is CostFunction.QUARTIC
    assert restored.x_ == gd.x_
    assert restored.steps_ == 1
