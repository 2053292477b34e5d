"""
Coupled reaction systems.

An SXSystem couples a signal network to an output network; an SRXSystem
inserts an intermediate response network between them. Both own the joint
simulation template used to generate configurations and the checkpoint grid
shared by every estimator running on them.

Species roles:
- signal species: every species of the signal network
- response species: species changed by the response network
- output species: species changed by the output network
The joint state is laid out as signal + response + output species.
"""

from typing import Dict, List, Mapping, Optional, Sequence, Union
import logging

import numpy as np

from pathweight.core.configuration import SRXConfiguration, SXConfiguration
from pathweight.core.distribution import validate_checkpoints
from pathweight.core.reactions import ReactionNetwork
from pathweight.core.simulation import DirectMethod, JumpProblem, JumpSimulator
from pathweight.core.trajectory import sub_trajectory

logger = logging.getLogger(__name__)

InitialState = Union[Sequence[int], Mapping[str, int]]


def _merge_params(*groups: Mapping[str, float]) -> Dict[str, float]:
    params: Dict[str, float] = {}
    for group in groups:
        for name, value in group.items():
            if name in params and params[name] != value:
                raise ValueError(
                    f"Parameter '{name}' given twice with different values "
                    f"({params[name]} and {value})"
                )
            params[name] = float(value)
    return params


def _initial_state(u0: InitialState, species: List[str]) -> np.ndarray:
    if isinstance(u0, Mapping):
        unknown = [sp for sp in u0 if sp not in species]
        if unknown:
            raise ValueError(f"Initial state names unknown species {unknown}")
        return np.array([u0.get(sp, 0) for sp in species], dtype=int)
    u0 = np.asarray(u0, dtype=int)
    if u0.shape != (len(species),):
        raise ValueError(
            f"Initial state has shape {u0.shape}, expected ({len(species)},) for {species}"
        )
    return u0


def _check_disjoint(changed: List[str], upstream: List[str], role: str) -> None:
    overlap = [sp for sp in changed if sp in upstream]
    if overlap:
        raise ValueError(f"The {role} network changes upstream species {overlap}")


def _check_covered(network: ReactionNetwork, upstream: List[str], role: str) -> None:
    outside = [sp for sp in network.dependent_species() if sp not in upstream]
    if outside:
        raise ValueError(f"The {role} network reads species {outside} that no upstream network provides")


class JumpSystem:
    """Shared behaviour of coupled systems."""

    joint: ReactionNetwork
    u0: np.ndarray
    params: Dict[str, float]
    dtimes: np.ndarray
    simulator: JumpSimulator

    @property
    def tspan(self):
        return (float(self.dtimes[0]), float(self.dtimes[-1]))

    def species_indices(self, names: Sequence[str]) -> List[int]:
        return self.joint.species_indices(names)

    def _joint_problem(self) -> JumpProblem:
        return JumpProblem(
            channels=self.joint.channels(),
            u0=self.u0,
            tspan=self.tspan,
            params=self.params,
            species=self.joint.species,
            simulator=self.simulator,
        )


class SXSystem(JumpSystem):
    """
    Signal network coupled to an output network.

    Attributes:
        sn: Signal network
        xn: Output network (reads signal species, changes output species)
        u0: Joint initial state
        params: Parameters of all networks
        dtimes: Checkpoint grid; first and last entries bound the simulation
        jump_problem: Joint simulation template
    """

    def __init__(
        self,
        sn: ReactionNetwork,
        xn: ReactionNetwork,
        u0: InitialState,
        ps: Mapping[str, float],
        px: Mapping[str, float],
        dtimes: Sequence[float],
        simulator: Optional[JumpSimulator] = None,
    ):
        self.sn = sn
        self.xn = xn
        self.dtimes = validate_checkpoints(dtimes)
        self.simulator = simulator or DirectMethod()

        self.s_species = list(sn.species)
        self.x_species = xn.independent_species()
        _check_disjoint(self.x_species, self.s_species, "output")
        _check_covered(xn, self.s_species, "output")

        self.joint = sn.merge(xn)
        self.u0 = _initial_state(u0, self.joint.species)
        self.ps = dict(ps)
        self.px = dict(px)
        self.params = _merge_params(ps, px)
        self.jump_problem = self._joint_problem()

    @property
    def driving_network(self) -> ReactionNetwork:
        """Network whose trajectories the marginal density integrates out."""
        return self.sn

    def generate_configuration(self, rng: Optional[np.random.Generator] = None) -> SXConfiguration:
        """
        Simulate one joint trajectory and split it into signal and output.

        Args:
            rng: Random number generator

        Returns:
            SXConfiguration
        """
        trajectory = self.jump_problem.solve(rng)
        s_traj = sub_trajectory(trajectory, self.species_indices(self.s_species))
        x_traj = sub_trajectory(trajectory, self.species_indices(self.x_species))
        logger.debug(f"Generated configuration with {len(trajectory)} joint samples")
        return SXConfiguration(s_traj, x_traj)

    def __repr__(self) -> str:
        return f"SXSystem(species={self.joint.species}, checkpoints={len(self.dtimes)})"


class SRXSystem(JumpSystem):
    """
    Signal, intermediate response and output networks in a cascade.

    Attributes:
        sn: Signal network
        rn: Response network (reads signal species)
        xn: Output network (reads signal/response species)
        u0: Joint initial state
        params: Parameters of all networks
        dtimes: Checkpoint grid; first and last entries bound the simulation
        jump_problem: Joint simulation template
    """

    def __init__(
        self,
        sn: ReactionNetwork,
        rn: ReactionNetwork,
        xn: ReactionNetwork,
        u0: InitialState,
        ps: Mapping[str, float],
        pr: Mapping[str, float],
        px: Mapping[str, float],
        dtimes: Sequence[float],
        simulator: Optional[JumpSimulator] = None,
    ):
        self.sn = sn
        self.rn = rn
        self.xn = xn
        self.dtimes = validate_checkpoints(dtimes)
        self.simulator = simulator or DirectMethod()

        self.s_species = list(sn.species)
        self.r_species = rn.independent_species()
        self.x_species = xn.independent_species()
        _check_disjoint(self.r_species, self.s_species, "response")
        _check_disjoint(self.x_species, self.s_species + self.r_species, "output")
        _check_covered(rn, self.s_species, "response")
        _check_covered(xn, self.s_species + self.r_species, "output")

        self.joint = sn.merge(rn).merge(xn)
        self.u0 = _initial_state(u0, self.joint.species)
        self.ps = dict(ps)
        self.pr = dict(pr)
        self.px = dict(px)
        self.params = _merge_params(ps, pr, px)
        self.jump_problem = self._joint_problem()

    @property
    def driving_network(self) -> ReactionNetwork:
        """Signal and response networks, integrated out by the marginal density."""
        return self.sn.merge(self.rn)

    def generate_configuration(self, rng: Optional[np.random.Generator] = None) -> SRXConfiguration:
        """
        Simulate one joint trajectory and split it into signal, response and output.

        Args:
            rng: Random number generator

        Returns:
            SRXConfiguration
        """
        trajectory = self.jump_problem.solve(rng)
        s_traj = sub_trajectory(trajectory, self.species_indices(self.s_species))
        r_traj = sub_trajectory(trajectory, self.species_indices(self.r_species))
        x_traj = sub_trajectory(trajectory, self.species_indices(self.x_species))
        logger.debug(f"Generated configuration with {len(trajectory)} joint samples")
        return SRXConfiguration(s_traj, r_traj, x_traj)

    def __repr__(self) -> str:
        return f"SRXSystem(species={self.joint.species}, checkpoints={len(self.dtimes)})"
