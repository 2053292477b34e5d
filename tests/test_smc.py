"""
Tests for the sequential Monte Carlo estimator.
"""

import logging

import pytest
import numpy as np

from pathweight.core.configuration import SXConfiguration
from pathweight.core.ensembles import MarginalEnsemble
from pathweight.core.trajectory import Trajectory
from pathweight.estimators import DirectMCEstimate, SMCEstimate, SMCResult
from pathweight.estimators.smc import (
    JumpParticle,
    effective_sample_size,
    resample,
    resampling_weights,
)
from pathweight.example_systems import gene_expression_system

DTIMES = [0.0, 0.25, 0.5, 0.75, 1.0]


@pytest.fixture
def system():
    return gene_expression_system(mean_s=5, dtimes=DTIMES)


@pytest.fixture
def ensemble(system):
    return MarginalEnsemble.from_system(system)


class TestResamplingWeights:
    """Test log-sum-exp stabilization."""

    def test_nonnegative_with_unit_max(self):
        w = resampling_weights(np.array([-1000.0, -1001.0, -np.inf]))
        assert np.all(w >= 0)
        assert np.isclose(w.max(), 1.0)
        assert w[2] == 0.0
        assert np.isfinite(w.sum()) and w.sum() > 0

    def test_all_impossible(self):
        w = resampling_weights(np.full(4, -np.inf))
        assert np.array_equal(w, np.ones(4))

    def test_effective_sample_size(self):
        assert np.isclose(effective_sample_size(np.zeros(10)), 10.0)
        assert np.isclose(effective_sample_size(np.array([0.0, -np.inf, -np.inf])), 1.0)


class TestResample:
    """Test multinomial resampling."""

    @pytest.fixture
    def particles(self):
        return [JumpParticle(np.array([k]), weight=-float(k)) for k in range(5)]

    def test_states_come_from_population(self, particles, rng):
        before = {int(p.u[0]) for p in particles}
        log_w = np.array([p.weight for p in particles])
        for _ in range(20):
            after = resample(particles, log_w, rng)
            assert len(after) == len(particles)
            assert {int(p.u[0]) for p in after} <= before
            assert all(p.weight == 0.0 for p in after)

    def test_impossible_particles_are_dropped(self, particles, rng):
        log_w = np.array([0.0, -np.inf, -np.inf, -np.inf, -np.inf])
        after = resample(particles, log_w, rng)
        assert all(p.u[0] == 0 for p in after)

    def test_offspring_copy_state(self, particles, rng):
        after = resample(particles, np.zeros(5), rng)
        after[0].u[0] = 99
        assert 99 not in [p.u[0] for p in particles]

    def test_lineage(self, particles, rng):
        after = resample(particles, np.zeros(5), rng, track_lineage=True)
        assert all(p.parent in particles for p in after)
        untracked = resample(particles, np.zeros(5), rng)
        assert all(p.parent is None for p in untracked)


class TestSMCEstimate:
    """Test the particle filter."""

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            SMCEstimate(0)

    def test_weight_matrix(self, system, ensemble, rng):
        conf = system.generate_configuration(rng)
        weights = SMCEstimate(8).sample(conf, ensemble, rng)
        assert weights.shape == (8, len(DTIMES))
        assert np.all(weights[:, 0] == 0.0)

    def test_result(self, system, ensemble, rng):
        conf = system.generate_configuration(rng)
        result = SMCEstimate(8).simulate(conf, ensemble, rng)
        assert isinstance(result, SMCResult)
        log_marginal = result.log_marginal()
        assert log_marginal.shape == (len(DTIMES),)
        assert log_marginal[0] == 0.0

    def test_inspect_final_population(self, system, ensemble, rng):
        conf = system.generate_configuration(rng)
        seen = []
        SMCEstimate(6).sample(conf, ensemble, rng, inspect=seen.extend)
        assert len(seen) == 6
        assert all(isinstance(p, JumpParticle) for p in seen)

    def test_lineage_survives_population_replacement(self, system, ensemble, rng):
        conf = system.generate_configuration(rng)
        seen = []
        SMCEstimate(4, track_lineage=True).sample(conf, ensemble, rng, inspect=seen.extend)
        assert all(p.parent is not None for p in seen)
        # three resampling steps on a five-point grid
        depth = 0
        particle = seen[0]
        while particle.parent is not None:
            particle = particle.parent
            depth += 1
        assert depth == len(DTIMES) - 2

    def test_no_lineage_by_default(self, system, ensemble, rng):
        conf = system.generate_configuration(rng)
        seen = []
        SMCEstimate(4).sample(conf, ensemble, rng, inspect=seen.extend)
        assert all(p.parent is None for p in seen)

    def test_single_particle_matches_direct_mc(self, system, replay, rng):
        """With one particle there is nothing to resample."""
        conf = system.generate_configuration(rng)
        ensemble = MarginalEnsemble.from_system(system, simulator=replay(conf.s_traj))
        smc = SMCEstimate(1).simulate(conf, ensemble, rng).log_marginal()
        direct = DirectMCEstimate(1).simulate(conf, ensemble, rng).log_marginal()
        assert np.allclose(smc, direct)
        assert np.isclose(smc[-1], -ensemble.energy_difference(conf)[-1])

    def test_all_weights_impossible(self, system, ensemble, rng, caplog):
        s_traj = Trajectory(t=[0.0, 1.0], u=[[5], [5]])
        x_traj = Trajectory(t=[0.0, 0.1, 1.0], u=[[5], [7], [7]])
        conf = SXConfiguration(s_traj, x_traj)
        with caplog.at_level(logging.WARNING, logger="pathweight.estimators.smc"):
            result = SMCEstimate(4).simulate(conf, ensemble, rng)
        assert "All particle weights are -inf" in caplog.text
        assert np.all(result.log_marginal()[1:] == -np.inf)
