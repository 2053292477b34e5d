"""
Unit tests for pathweight.core.merge module.
"""

import pytest
import numpy as np

from pathweight.core.merge import collect_trajectory, merge_trajectories, project, thin
from pathweight.core.trajectory import NO_REACTION, Trajectory
from pathweight.core.configuration import SXConfiguration, SRXConfiguration, marginal_configuration


@pytest.fixture
def s_traj():
    return Trajectory(t=[0.0, 1.0, 3.0], u=[[1], [2], [1]], i=[-1, 0, 1], species=["S"])


@pytest.fixture
def x_traj():
    return Trajectory(t=[0.0, 0.5, 1.0, 2.0], u=[[0], [1], [2], [1]], i=[-1, 2, 2, 3], species=["X"])


class TestMerge:
    """Test merging onto the union timeline."""

    def test_union_of_times(self, s_traj, x_traj):
        samples = list(merge_trajectories(s_traj, x_traj))
        assert [t for _, t, _ in samples] == [0.0, 0.5, 1.0, 2.0, 3.0]
        assert [list(u) for u, _, _ in samples] == [[1, 0], [1, 1], [2, 2], [2, 1], [1, 1]]

    def test_origin_index(self, s_traj, x_traj):
        """Simultaneous jumps report the first advancing component."""
        origins = [i for _, _, i in merge_trajectories(s_traj, x_traj)]
        assert origins == [NO_REACTION, 2, 0, 3, 1]

    def test_restartable(self, s_traj, x_traj):
        merged = merge_trajectories(s_traj, x_traj)
        first = [(list(u), t) for u, t, _ in merged]
        second = [(list(u), t) for u, t, _ in merged]
        assert first == second

    def test_species_and_width(self, s_traj, x_traj):
        merged = merge_trajectories(s_traj, x_traj)
        assert merged.n_species == 2
        assert merged.species == ["S", "X"]

    def test_merge_with_itself(self, s_traj):
        merged = collect_trajectory(project(merge_trajectories(s_traj, s_traj), [0]))
        assert np.array_equal(merged.t, s_traj.t)
        assert np.array_equal(merged.u, s_traj.u)

    def test_no_inputs(self):
        with pytest.raises(ValueError):
            merge_trajectories()

    def test_does_not_mutate_inputs(self, s_traj, x_traj):
        for u, _, _ in merge_trajectories(s_traj, x_traj):
            u[:] = -7
        assert np.array_equal(s_traj.u[:, 0], [1, 2, 1])
        assert np.array_equal(x_traj.u[:, 0], [0, 1, 2, 1])

    def test_staggered_starts(self):
        a = Trajectory(t=[0.0, 2.0], u=[[1], [2]])
        b = Trajectory(t=[1.0, 3.0], u=[[5], [6]])
        samples = list(merge_trajectories(a, b))
        assert [t for _, t, _ in samples] == [0.0, 1.0, 2.0, 3.0]
        assert [list(u) for u, _, _ in samples] == [[1, 5], [1, 5], [2, 5], [2, 6]]
        # order of the inputs does not change the timeline
        assert [t for _, t, _ in merge_trajectories(b, a)] == [0.0, 1.0, 2.0, 3.0]


class TestRoundTrip:
    """Test merge then project and thin."""

    def test_recover_components(self, s_traj, x_traj):
        merged = merge_trajectories(s_traj, x_traj)
        s_back = collect_trajectory(thin(project(merged, [0])))
        x_back = collect_trajectory(thin(project(merged, [1])))
        assert np.array_equal(s_back.u, s_traj.u)
        assert np.array_equal(s_back.t, s_traj.t)
        assert np.array_equal(x_back.u, x_traj.u)
        assert np.array_equal(x_back.t, x_traj.t)

    def test_thin_drops_repeats(self):
        samples = [(np.array([1]), 0.0, -1), (np.array([1]), 1.0, 0), (np.array([2]), 2.0, 0)]
        assert [t for _, t, _ in thin(samples)] == [0.0, 2.0]


class TestConfiguration:
    """Test indexing and collapsing of configurations."""

    def test_index_single_column(self, s_traj, x_traj):
        conf = SXConfiguration(s_traj, x_traj)
        x = conf[1]
        assert np.array_equal(x.u[:, 0], [0, 1, 2, 1])
        assert x.species == ["X"]

    def test_index_multiple_columns(self, s_traj, x_traj):
        conf = SXConfiguration(s_traj, x_traj)
        joint = conf[[0, 1]]
        assert len(joint) == 5
        assert joint.n_species == 2

    def test_copy(self, s_traj, x_traj):
        conf = SXConfiguration(s_traj, x_traj)
        other = conf.copy()
        other.s_traj.u[0, 0] = 9
        assert conf.s_traj.u[0, 0] == 1

    def test_marginal_configuration(self, s_traj, x_traj):
        r_traj = Trajectory(t=[0.0, 1.5], u=[[4], [5]], species=["R"])
        conf = SRXConfiguration(s_traj, r_traj, x_traj)
        collapsed = marginal_configuration(conf)
        assert collapsed.s_traj.n_species == 2
        assert collapsed.s_traj.species == ["S", "R"]
        assert np.array_equal(collapsed.s_traj(1.6), [2, 5])
        assert np.array_equal(collapsed.x_traj.u, x_traj.u)
