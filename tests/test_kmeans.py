"""
Step-driven k-means: phase order, initialisation, assignment and convergence.
"""

import numpy as np
import pytest

from algorithms.common import InvalidInput
from algorithms.kmeans import KMeansStateMachine, Phase


def _blobs(seed=0):
    rng = np.random.default_rng(seed)
    centers = np.array([[100, 100], [400, 100], [250, 400]], dtype=float)
    return np.vstack([c + rng.normal(0, 15, size=(20, 2)) for c in centers])


def test_phase_sequence():
    km = KMeansStateMachine(k=3, random_state=0)
    X = _blobs()
    assert km.phase is Phase.IDLE
    km.step(X)
    assert km.phase is Phase.INIT
    km.step()
    assert km.phase is Phase.ASSIGN
    km.step()
    assert km.phase in (Phase.UPDATE, Phase.CONVERGED)


def test_init_picks_distinct_points():
    X = _blobs()
    km = KMeansStateMachine(k=3, random_state=4).step(X)
    rows = {tuple(c) for c in km.centroids_}
    assert len(rows) == 3
    data_rows = {tuple(p) for p in X}
    assert rows <= data_rows
    assert np.all(km.labels_ == -1)


def test_inertia_never_increases():
    km = KMeansStateMachine(k=3, random_state=1)
    km.set_data(_blobs(1))
    km.step()
    history = []
    for _ in range(60):
        if km.phase is Phase.CONVERGED:
            break
        km.step()
        history.append(km.inertia())
    assert all(b <= a + 1e-9 for a, b in zip(history, history[1:]))


def test_converges_and_stays_converged():
    km = KMeansStateMachine(k=3, random_state=2).fit(_blobs(2))
    assert km.phase is Phase.CONVERGED
    centroids = km.centroids_.copy()
    km.step()
    np.testing.assert_array_equal(km.centroids_, centroids)
    assert sum(km.cluster_sizes()) == 60


def test_same_seed_same_result():
    a = KMeansStateMachine(k=3, random_state=9).fit(_blobs())
    b = KMeansStateMachine(k=3, random_state=9).fit(_blobs())
    np.testing.assert_allclose(a.centroids_, b.centroids_)


def test_assignment_tie_goes_to_lowest_index():
    km = KMeansStateMachine(k=2)
    km.centroids_ = np.array([[0.0, 0.0], [2.0, 0.0]])
    assert km.assign([[1.0, 0.0]])[0] == 0


def test_empty_cluster_keeps_position():
    km = KMeansStateMachine(k=2)
    km.set_data([[0, 0], [1, 0], [0, 1]])
    km.centroids_ = np.array([[0.0, 0.0], [100.0, 100.0]])
    km.labels_ = np.array([0, 0, 0])
    km.phase = Phase.ASSIGN
    km.step()
    np.testing.assert_allclose(km.centroids_[1], [100.0, 100.0])
    np.testing.assert_allclose(km.centroids_[0], [1 / 3, 1 / 3])


def test_reset_and_state_round_trip():
    km = KMeansStateMachine(k=3, random_state=3)
    km.step(_blobs())
    km.step()
    clone = KMeansStateMachine().set_state(km.get_state())
    assert clone.phase is Phase.ASSIGN
    np.testing.assert_array_equal(clone.labels_, km.labels_)
    clone.step()
    km.step()
    np.testing.assert_allclose(clone.centroids_, km.centroids_)
    km.reset()
    assert km.phase is Phase.IDLE and km.centroids_ is None


def test_k_larger_than_data_rejected():
    with pytest.raises(InvalidInput):
        KMeansStateMachine(k=5).set_data([[0, 0], [1, 1]])
    with pytest.raises(InvalidInput):
        KMeansStateMachine(k=0)
