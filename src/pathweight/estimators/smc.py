"""
Sequential Monte Carlo estimate of marginal path likelihoods.

A population of particles is propagated across the checkpoint grid. After
each interval every particle is weighted by the likelihood of the observed
output on that interval, then the population is resampled in proportion to
these weights. The log marginal likelihood is

    log Z = sum_i log( (1/N) sum_j exp(w_j^i) )

which is consistent as N grows but biased for finite N.
"""

from typing import Callable, List, Optional
from dataclasses import dataclass
import logging

import numpy as np

from pathweight.estimators.results import SMCResult

logger = logging.getLogger(__name__)


class JumpParticle:
    """
    Particle of the filter.

    Attributes:
        u: Current state of the simulated process
        weight: Log weight accumulated since the last checkpoint
        parent: Parent particle before the last resampling (lineage only,
            never mutated through this reference)
    """

    __slots__ = ("u", "weight", "parent")

    def __init__(self, u: np.ndarray, weight: float = 0.0, parent: Optional["JumpParticle"] = None):
        self.u = u
        self.weight = weight
        self.parent = parent

    @classmethod
    def spawn(cls, ensemble) -> "JumpParticle":
        """New particle at the ensemble's initial state."""
        return cls(ensemble.initial_state())

    @classmethod
    def offspring(cls, parent: "JumpParticle", track_lineage: bool = False) -> "JumpParticle":
        """Copy of a parent's state with the weight reset to zero."""
        return cls(
            np.array(parent.u, copy=True),
            0.0,
            parent if track_lineage else None,
        )

    def propagate(self, conf, ensemble, tspan, rng: np.random.Generator) -> "JumpParticle":
        """Simulate the interval and set the weight to its log-likelihood."""
        self.u, self.weight = ensemble.propagate(conf, self.u, tspan, rng)
        return self

    def __repr__(self) -> str:
        return f"JumpParticle(u={self.u}, weight={self.weight:.4g})"


def resampling_weights(log_weights: np.ndarray) -> np.ndarray:
    """
    Unnormalized resampling weights exp(w - max w).

    All entries are non-negative and the maximum is 1 whenever at least one
    log weight is finite. If every log weight is -inf, uniform weights are
    returned.
    """
    log_weights = np.asarray(log_weights, dtype=float)
    top = np.max(log_weights)
    if top == -np.inf:
        return np.ones_like(log_weights)
    return np.exp(log_weights - top)


def resample(
    particles: List[JumpParticle],
    log_weights: np.ndarray,
    rng: np.random.Generator,
    track_lineage: bool = False,
) -> List[JumpParticle]:
    """
    Multinomial resampling with replacement.

    Args:
        particles: Current population
        log_weights: Log weight of each particle
        rng: Random number generator
        track_lineage: Keep references to the parents

    Returns:
        New population of the same size, weights reset to zero
    """
    weights = resampling_weights(log_weights)
    n = len(particles)
    parent_indices = rng.choice(n, size=n, replace=True, p=weights / weights.sum())
    return [JumpParticle.offspring(particles[k], track_lineage) for k in parent_indices]


def effective_sample_size(log_weights: np.ndarray) -> float:
    """Kish effective sample size of a set of log weights."""
    w = resampling_weights(log_weights)
    return float(w.sum() ** 2 / np.sum(w ** 2))


@dataclass
class SMCEstimate:
    """
    Sequential Monte Carlo marginal-likelihood estimator.

    Attributes:
        num_particles: Population size N
        track_lineage: Keep parent references on resampled particles
    """

    num_particles: int
    track_lineage: bool = False

    def __post_init__(self):
        if self.num_particles < 1:
            raise ValueError(f"num_particles must be positive, got {self.num_particles}")

    @property
    def name(self) -> str:
        return "SMC"

    def sample(
        self,
        conf,
        ensemble,
        rng: Optional[np.random.Generator] = None,
        inspect: Optional[Callable[[List[JumpParticle]], None]] = None,
    ) -> np.ndarray:
        """
        Run the particle filter.

        Args:
            conf: Configuration holding the observed output
            ensemble: Marginal or conditional ensemble
            rng: Random number generator
            inspect: Optional callback receiving the final population

        Returns:
            (num_particles, len(dtimes)) matrix of incremental log weights
        """
        if rng is None:
            rng = np.random.default_rng()
        dtimes = ensemble.dtimes
        n_checkpoints = len(dtimes)

        particles = [JumpParticle.spawn(ensemble) for _ in range(self.num_particles)]
        weights = np.zeros((self.num_particles, n_checkpoints))

        for i in range(n_checkpoints - 1):
            tspan = (float(dtimes[i]), float(dtimes[i + 1]))
            for j, particle in enumerate(particles):
                particle.propagate(conf, ensemble, tspan, rng)
                weights[j, i + 1] = particle.weight

            if i + 1 == n_checkpoints - 1:
                break

            column = weights[:, i + 1]
            if not np.any(np.isfinite(column)):
                logger.warning(f"All particle weights are -inf at t={tspan[1]}")
            logger.debug(f"t={tspan[1]:.4g} ESS={effective_sample_size(column):.1f}")
            particles = resample(particles, column, rng, self.track_lineage)

        if inspect is not None:
            inspect(particles)
        return weights

    def simulate(
        self,
        conf,
        ensemble,
        rng: Optional[np.random.Generator] = None,
        inspect: Optional[Callable[[List[JumpParticle]], None]] = None,
    ) -> SMCResult:
        """Run the filter and wrap the weight matrix."""
        return SMCResult(self.sample(conf, ensemble, rng=rng, inspect=inspect))
