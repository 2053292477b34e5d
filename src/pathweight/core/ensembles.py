"""
Ensembles: the stochastic process whose paths an estimator integrates out.

An ensemble binds a reduced simulation template, a path-density model of the
output given the simulated process, and the checkpoint grid.

- MarginalEnsemble simulates the whole driving process (signal, or signal and
  response) and scores the observed output against it.
- ConditionalEnsemble simulates only the response network while the observed
  signal trajectory is injected at its time stamps.

Each ensemble lays out its evaluation state as
`simulated species + output species`; its TrajectoryDistribution is built for
exactly that layout and observes only the output columns.
"""

from typing import List, Optional, Tuple, Union
import logging

import numpy as np

from pathweight.core.configuration import SRXConfiguration, SXConfiguration
from pathweight.core.distribution import TrajectoryDistribution, validate_checkpoints
from pathweight.core.merge import merge_trajectories, project
from pathweight.core.reactions import ReactionNetwork
from pathweight.core.simulation import JumpProblem, JumpSimulator, TrajectoryOverride
from pathweight.core.systems import SRXSystem, SXSystem
from pathweight.core.trajectory import Trajectory, sub_trajectory

logger = logging.getLogger(__name__)


def _output_distribution(
    xn: ReactionNetwork,
    simulated: List[str],
    x_species: List[str],
    params: dict,
) -> TrajectoryDistribution:
    layout = list(simulated) + list(x_species)
    return TrajectoryDistribution(
        xn.channels(layout),
        observed=range(len(simulated), len(layout)),
        params=params,
        n_species=len(layout),
    )


def _check_no_tilt(theta: float) -> None:
    if theta != 0.0:
        raise NotImplementedError(
            f"Direct sampling does not support a nonzero interaction parameter (theta={theta})"
        )


class Ensemble:
    """Shared behaviour of marginal and conditional ensembles."""

    jump_problem: JumpProblem
    dist: TrajectoryDistribution
    dtimes: np.ndarray

    def _validate(self) -> None:
        self.dtimes = validate_checkpoints(self.dtimes)
        t0, t1 = self.jump_problem.tspan
        if self.dtimes[0] != t0 or self.dtimes[-1] != t1:
            raise ValueError(
                f"Checkpoints [{self.dtimes[0]}, {self.dtimes[-1]}] do not match "
                f"the simulation interval ({t0}, {t1})"
            )

    @property
    def tspan(self) -> Tuple[float, float]:
        return self.jump_problem.tspan

    def initial_state(self) -> np.ndarray:
        return np.array(self.jump_problem.u0, copy=True)

    def _override(self, conf) -> Optional[TrajectoryOverride]:
        return None

    def _simulate(self, conf, rng, u0=None, tspan=None) -> Trajectory:
        problem = self.jump_problem.remake(u0=u0, tspan=tspan)
        return problem.solve(rng, override=self._override(conf))

    def propagate(
        self,
        conf: Union[SXConfiguration, SRXConfiguration],
        u0: np.ndarray,
        tspan: Tuple[float, float],
        rng: np.random.Generator,
    ) -> Tuple[np.ndarray, float]:
        """
        Continue the simulated process over one interval and weight it.

        Args:
            conf: Configuration holding the observed output
            u0: Simulated state at tspan[0]
            tspan: Interval (a, b)
            rng: Random number generator

        Returns:
            (state at b, log-likelihood of the output on (a, b])
        """
        segment = self._simulate(conf, rng, u0=u0, tspan=tspan)
        x_slice = conf.x_traj.slice(*tspan)
        log_weight = self.dist.trajectory_energy(
            merge_trajectories(segment, x_slice), tspan=tspan
        )
        return segment.u[-1].copy(), log_weight

    def collect_samples(
        self,
        conf: Union[SXConfiguration, SRXConfiguration],
        num_samples: int,
        rng: np.random.Generator,
    ) -> np.ndarray:
        """
        Cumulative log-likelihoods of the output under independent full paths.

        Returns:
            (num_samples, len(dtimes)) matrix
        """
        result = np.empty((num_samples, len(self.dtimes)), dtype=float)
        for row in result:
            path = self._simulate(conf, rng)
            self.dist.cumulative_logpdf(
                merge_trajectories(path, conf.x_traj), self.dtimes, out=row
            )
        return result


class MarginalEnsemble(Ensemble):
    """
    Ensemble of driving-process realizations for the marginal density.

    Attributes:
        jump_problem: Simulation template of the driving network
        dist: Output density given the driving process
        dtimes: Checkpoint grid
        species: Species simulated by the ensemble
    """

    def __init__(
        self,
        jump_problem: JumpProblem,
        dist: TrajectoryDistribution,
        dtimes,
    ):
        self.jump_problem = jump_problem
        self.dist = dist
        self.dtimes = dtimes
        self._validate()
        self.species = list(jump_problem.species)

    @classmethod
    def from_system(
        cls,
        system: Union[SXSystem, SRXSystem],
        simulator: Optional[JumpSimulator] = None,
    ) -> "MarginalEnsemble":
        """
        Build the marginal ensemble of a coupled system.

        For an SRXSystem the driving process is signal and response jointly.
        """
        driving = system.driving_network
        idxs = system.species_indices(driving.species)
        problem = JumpProblem(
            channels=driving.channels(),
            u0=system.u0[idxs],
            tspan=system.tspan,
            params=system.params,
            species=driving.species,
            simulator=simulator or system.simulator,
        )
        dist = _output_distribution(system.xn, driving.species, system.x_species, system.params)
        logger.debug(f"Marginal ensemble simulates {driving.species}")
        return cls(problem, dist, system.dtimes)

    def sample(
        self,
        conf: SXConfiguration,
        rng: Optional[np.random.Generator] = None,
        theta: float = 0.0,
    ) -> SXConfiguration:
        """Fresh driving trajectory paired with the observed output."""
        _check_no_tilt(theta)
        s_traj = self._simulate(conf, rng)
        return SXConfiguration(s_traj, conf.x_traj)

    def energy_difference(self, conf: SXConfiguration) -> np.ndarray:
        """Negative cumulative log-likelihood of the output given conf.s_traj."""
        merged = merge_trajectories(conf.s_traj, conf.x_traj)
        return -self.dist.cumulative_logpdf(merged, self.dtimes)

    def __repr__(self) -> str:
        return f"MarginalEnsemble(species={self.species}, checkpoints={len(self.dtimes)})"


class ConditionalEnsemble(Ensemble):
    """
    Ensemble of response realizations driven by an observed signal.

    Attributes:
        jump_problem: Simulation template of the response network
        dist: Output density given signal and response
        dtimes: Checkpoint grid
        indep_idxs: Columns of the response state changed by its reactions
        dep_idxs: Columns only read by the response network (injected signal)
        signal_idxs: Signal-trajectory columns feeding dep_idxs
        joint_idxs: Joint-layout columns of the evaluation layout
    """

    def __init__(
        self,
        jump_problem: JumpProblem,
        dist: TrajectoryDistribution,
        indep_idxs: List[int],
        dep_idxs: List[int],
        signal_idxs: List[int],
        joint_idxs: List[int],
        dtimes,
    ):
        self.jump_problem = jump_problem
        self.dist = dist
        self.indep_idxs = list(indep_idxs)
        self.dep_idxs = list(dep_idxs)
        self.signal_idxs = list(signal_idxs)
        self.joint_idxs = list(joint_idxs)
        self.dtimes = dtimes
        self._validate()
        self.species = list(jump_problem.species)

    @classmethod
    def from_system(
        cls,
        system: SRXSystem,
        simulator: Optional[JumpSimulator] = None,
    ) -> "ConditionalEnsemble":
        """Build the conditional ensemble of an SRXSystem."""
        if not isinstance(system, SRXSystem):
            raise TypeError("A conditional ensemble requires an SRXSystem")
        rn = system.rn
        problem = JumpProblem(
            channels=rn.channels(),
            u0=system.u0[system.species_indices(rn.species)],
            tspan=system.tspan,
            params=system.params,
            species=rn.species,
            simulator=simulator or system.simulator,
        )
        dep_species = rn.dependent_species()
        indep_idxs = rn.species_indices(rn.independent_species())
        dep_idxs = rn.species_indices(dep_species)
        signal_idxs = [system.s_species.index(sp) for sp in dep_species]

        dist = _output_distribution(system.xn, rn.species, system.x_species, system.params)
        joint_idxs = system.species_indices(list(rn.species) + list(system.x_species))
        logger.debug(f"Conditional ensemble simulates {rn.species}, driven by {dep_species}")
        return cls(problem, dist, indep_idxs, dep_idxs, signal_idxs, joint_idxs, system.dtimes)

    def _override(self, conf: SRXConfiguration) -> TrajectoryOverride:
        return TrajectoryOverride(conf.s_traj, self.dep_idxs, self.signal_idxs)

    def sample(
        self,
        conf: SRXConfiguration,
        rng: Optional[np.random.Generator] = None,
        theta: float = 0.0,
    ) -> SRXConfiguration:
        """Fresh response trajectory given the observed signal."""
        _check_no_tilt(theta)
        path = self._simulate(conf, rng)
        r_traj = sub_trajectory(path, self.indep_idxs)
        return SRXConfiguration(conf.s_traj, r_traj, conf.x_traj)

    def energy_difference(self, conf: SRXConfiguration) -> np.ndarray:
        """Negative cumulative log-likelihood of the output given signal and response."""
        merged = project(conf.merged(), self.joint_idxs)
        return -self.dist.cumulative_logpdf(merged, self.dtimes)

    def __repr__(self) -> str:
        return (
            f"ConditionalEnsemble(species={self.species}, driven={len(self.dep_idxs)}, "
            f"checkpoints={len(self.dtimes)})"
        )
