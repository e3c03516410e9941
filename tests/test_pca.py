"""
Closed-form 2D PCA.
"""

import numpy as np
import pytest

from algorithms.pca import PCA2D, angle_delta, center_points, pca_2d, unit_vector


def test_components_are_orthonormal():
    rng = np.random.default_rng(0)
    _, P = center_points(rng.normal(size=(50, 2)) @ np.array([[2.0, 0.5], [0.5, 1.0]]))
    model = PCA2D().fit(P)
    assert np.linalg.norm(model.pc1_) == pytest.approx(1.0)
    assert np.linalg.norm(model.pc2_) == pytest.approx(1.0)
    assert model.pc1_ @ model.pc2_ == pytest.approx(0.0, abs=1e-12)
    assert model.eigenvalues_[0] >= model.eigenvalues_[1]
    np.testing.assert_allclose(np.cov(P.T), model.covariance_)


def test_axis_aligned_cloud():
    pc1, pc2, (l1, l2) = pca_2d([[-2, 0], [2, 0], [0, -1], [0, 1]])
    assert pc1 == (1.0, 0.0)
    assert pc2 == pytest.approx((0.0, 1.0))
    assert l1 == pytest.approx(8 / 3)
    assert l2 == pytest.approx(2 / 3)


def test_diagonal_line():
    model = PCA2D().fit([[-1, -1], [0, 0], [1, 1]])
    np.testing.assert_allclose(model.eigenvalues_, [2.0, 0.0], atol=1e-12)
    assert model.pc1_angle() == pytest.approx(45.0)
    assert model.projected_variance(model.pc1_) == pytest.approx(2.0)
    assert model.variance_ratio([1, 1]) == pytest.approx(1.0)


def test_negative_correlation_angle_in_range():
    model = PCA2D().fit([[-1, 1], [1, -1], [0, 0]])
    assert model.pc1_angle() == pytest.approx(135.0)


def test_degenerate_cloud_does_not_fail():
    model = PCA2D().fit([[0, 0], [0, 0], [0, 0]])
    np.testing.assert_allclose(model.eigenvalues_, [0.0, 0.0])
    assert model.variance_ratio([1, 0]) == 0.0


def test_projected_variance_along_unit_vector():
    model = PCA2D().fit([[-2, 0], [2, 0], [0, -1], [0, 1]])
    assert model.projected_variance(unit_vector(90)) == pytest.approx(2 / 3)
    assert model.variance_ratio(unit_vector(0)) == pytest.approx(0.8)


def test_angle_delta_shortest_rotation():
    assert angle_delta(170, 10) == pytest.approx(20)
    assert angle_delta(10, 170) == pytest.approx(-20)
    assert angle_delta(0, 90) == pytest.approx(90)
    assert angle_delta(45, 45) == 0


def test_center_and_transform():
    mean, P = center_points([[1, 2], [3, 4]])
    np.testing.assert_allclose(mean, [2, 3])
    np.testing.assert_allclose(P.mean(axis=0), [0, 0])
    model = PCA2D().fit(P)
    projected = model.transform(P)
    assert projected.shape == (2, 2)
    np.testing.assert_allclose(projected[:, 1], 0.0, atol=1e-12)
