"""
Unit tests for pathweight.core.simulation module.
"""

import pytest
import numpy as np

from pathweight.core.reactions import Reaction, ReactionNetwork
from pathweight.core.simulation import DirectMethod, JumpProblem, TrajectoryOverride
from pathweight.core.trajectory import NO_REACTION, Trajectory


@pytest.fixture
def birth_death():
    return ReactionNetwork.from_reactions(
        [Reaction("k", products={"A": 1}), Reaction("g", reactants={"A": 1})]
    )


@pytest.fixture
def problem(birth_death):
    return JumpProblem(
        channels=birth_death.channels(),
        u0=np.array([10]),
        tspan=(0.0, 2.0),
        params={"k": 5.0, "g": 0.5},
        species=birth_death.species,
    )


class TestJumpProblem:
    """Test the simulation template."""

    def test_immutable_initial_state(self, problem):
        with pytest.raises(ValueError):
            problem.u0[0] = 3

    def test_remake(self, problem):
        other = problem.remake(u0=np.array([1]), tspan=(1.0, 3.0))
        assert other.tspan == (1.0, 3.0)
        assert other.u0[0] == 1
        assert problem.tspan == (0.0, 2.0)
        assert problem.u0[0] == 10
        assert other.channels is problem.channels

    def test_invalid_span(self, problem):
        with pytest.raises(ValueError, match="Invalid time span"):
            problem.remake(tspan=(2.0, 1.0))

    def test_width_mismatch(self, birth_death):
        with pytest.raises(ValueError):
            JumpProblem(channels=birth_death.channels(), u0=np.array([1, 2]), tspan=(0.0, 1.0))


class TestDirectMethod:
    """Test exact stochastic simulation."""

    def test_trajectory_shape(self, problem, rng):
        traj = problem.solve(rng)
        assert traj.t_start == 0.0
        assert traj.t_end == 2.0
        assert traj.i[0] == NO_REACTION
        assert traj.i[-1] == NO_REACTION
        assert traj.species == ["A"]
        assert np.all(np.diff(traj.t) > 0)

    def test_jumps_follow_channels(self, problem, rng):
        traj = problem.solve(rng)
        effects = {0: 1, 1: -1}
        for k in range(1, len(traj) - 1):
            assert traj.u[k, 0] - traj.u[k - 1, 0] == effects[traj.i[k]]

    def test_reproducible(self, problem):
        a = problem.solve(np.random.default_rng(7))
        b = problem.solve(np.random.default_rng(7))
        assert np.array_equal(a.t, b.t)
        assert np.array_equal(a.u, b.u)

    def test_pure_birth_mean(self, rng):
        """Number of births over T is Poisson(k T)."""
        net = ReactionNetwork.from_reactions([Reaction("k", products={"A": 1})])
        problem = JumpProblem(net.channels(), np.array([0]), (0.0, 1.0), {"k": 20.0})
        counts = [problem.solve(rng).u[-1, 0] for _ in range(400)]
        assert abs(np.mean(counts) - 20.0) < 1.5

    def test_no_channels_fire(self, rng):
        net = ReactionNetwork.from_reactions([Reaction("g", reactants={"A": 1})])
        problem = JumpProblem(net.channels(), np.array([0]), (0.0, 1.0), {"g": 1.0})
        traj = problem.solve(rng)
        assert np.array_equal(traj.t, [0.0, 1.0])
        assert np.array_equal(traj.u[:, 0], [0, 0])


class TestTrajectoryOverride:
    """Test conditioning on a recorded trajectory."""

    @pytest.fixture
    def signal(self):
        return Trajectory(t=[0.0, 0.5, 1.5], u=[[0], [40], [0]])

    @pytest.fixture
    def response_problem(self):
        rn = ReactionNetwork.from_reactions(
            [Reaction("kr", reactants={"S": 1}, products={"S": 1, "R": 1})]
        )
        return JumpProblem(rn.channels(), np.array([99, 0]), (0.0, 2.0), {"kr": 1.0}, rn.species)

    def test_times_in_window(self, signal):
        override = TrajectoryOverride(signal, [0])
        assert list(override.times_in(0.0, 1.5)) == [0.5, 1.5]
        assert list(override.times_in(0.5, 1.0)) == []

    def test_index_length_mismatch(self, signal):
        with pytest.raises(ValueError):
            TrajectoryOverride(signal, [0, 1], [0])

    def test_driven_simulation(self, signal, response_problem, rng):
        override = TrajectoryOverride(signal, [0], [0])
        traj = response_problem.solve(rng, override=override)
        # initial state is overwritten by the signal at t0
        assert traj.u[0, 0] == 0
        for u, t, i in traj:
            assert u[0] == signal(t)[0]
        # R can only be produced while S > 0
        assert traj(0.49)[1] == 0
        assert traj(2.0)[1] == traj(1.5)[1]
        assert 0.5 in traj.t
        assert 1.5 in traj.t
        override_rows = [k for k in range(1, len(traj) - 1) if traj.i[k] == NO_REACTION]
        assert [traj.t[k] for k in override_rows] == [0.5, 1.5]
