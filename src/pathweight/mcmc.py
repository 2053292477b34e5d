"""
Markov chain Monte Carlo in trajectory space.

The chain state is a full configuration. A proposal regrows a random piece of
the driving trajectory ("shooting"):

- forward: keep the prefix up to a branch time and resimulate the suffix
- backward: keep the suffix after a branch time and replace the prefix by a
  time-reversed fresh simulation started from the branch state

The Metropolis acceptance test itself lives with the caller, which compares
`energy` of the proposed and the current configuration and then reports the
outcome through `accept` / `reject`.
"""

from typing import Dict, List, Optional
import logging

import numpy as np

from pathweight.core.configuration import SXConfiguration
from pathweight.core.ensembles import MarginalEnsemble
from pathweight.core.merge import merge_trajectories
from pathweight.core.simulation import JumpProblem
from pathweight.core.trajectory import NO_REACTION, Trajectory

logger = logging.getLogger(__name__)


def _simulate_branch(
    problem: JumpProblem,
    u0: np.ndarray,
    tspan,
    rng: np.random.Generator,
) -> Trajectory:
    segment = problem.remake(u0=u0, tspan=tspan).solve(rng)
    if segment.t_end < tspan[1]:
        segment.extend([tspan[1]], segment.u[-1:], [NO_REACTION])
    return segment


def shoot_forward(
    new_traj: Trajectory,
    old_traj: Trajectory,
    problem: JumpProblem,
    branch_time: float,
    rng: np.random.Generator,
) -> None:
    """
    Regrow the suffix of a trajectory after `branch_time`.

    `new_traj` is cleared and refilled with the samples of `old_traj` strictly
    before `branch_time`, followed by a fresh simulation on
    [branch_time, t_end] started from the held state at `branch_time`.
    `new_traj` and `old_traj` may be the same object.
    """
    branch_value = old_traj(branch_time)
    branch_point = int(np.searchsorted(old_traj.t, branch_time, side="left"))
    tspan = (branch_time, old_traj.t_end)

    prefix_t = old_traj.t[:branch_point].copy()
    prefix_u = old_traj.u[:branch_point].copy()
    prefix_i = old_traj.i[:branch_point].copy()

    segment = _simulate_branch(problem, branch_value, tspan, rng)

    new_traj.clear()
    new_traj.extend(prefix_t, prefix_u, prefix_i)
    new_traj.extend(segment.t, segment.u, segment.i)


def shoot_backward(
    new_traj: Trajectory,
    old_traj: Trajectory,
    problem: JumpProblem,
    branch_time: float,
    rng: np.random.Generator,
) -> None:
    """
    Regrow the prefix of a trajectory before `branch_time`.

    A fresh path is simulated on [t_start, branch_time] from the held state at
    `branch_time` and reversed in time: a simulated time tau maps to
    t_start + branch_time - tau, so the reversed path starts at t_start and
    arrives at the branch state at `branch_time`. The samples of `old_traj`
    at or after `branch_time` are appended unchanged.
    `new_traj` and `old_traj` may be the same object.
    """
    branch_value = old_traj(branch_time)
    branch_point = int(np.searchsorted(old_traj.t, branch_time, side="left"))
    t_start = old_traj.t_start
    tspan = (t_start, branch_time)

    suffix_t = old_traj.t[branch_point:].copy()
    suffix_u = old_traj.u[branch_point:].copy()
    suffix_i = old_traj.i[branch_point:].copy()

    segment = _simulate_branch(problem, branch_value, tspan, rng)

    # the state held on [tau_k, tau_{k+1}) is entered at the mirrored time of tau_{k+1}
    reversed_u = segment.u[-2::-1] if len(segment) > 1 else segment.u[:0]
    reversed_t = t_start + (branch_time - segment.t[:0:-1])
    reversed_i = np.full(len(reversed_t), NO_REACTION, dtype=int)

    new_traj.clear()
    new_traj.extend(reversed_t, reversed_u, reversed_i)
    new_traj.extend(suffix_t, suffix_u, suffix_i)


def propose(
    new_traj: Trajectory,
    old_traj: Trajectory,
    problem: JumpProblem,
    rng: np.random.Generator,
) -> float:
    """
    Regrowth move on a single trajectory.

    Draws a regrowth duration uniformly on [0, duration] and shoots forward
    or backward with equal probability.

    Returns:
        Regrowth duration
    """
    regrow_duration = rng.uniform() * old_traj.duration
    if rng.random() < 0.5:
        logger.debug(f"Forward shooting over {regrow_duration:.4g}")
        shoot_forward(new_traj, old_traj, problem, old_traj.t_end - regrow_duration, rng)
    else:
        logger.debug(f"Backward shooting over {regrow_duration:.4g}")
        shoot_backward(new_traj, old_traj, problem, old_traj.t_start + regrow_duration, rng)
    return regrow_duration


class TrajectoryChain:
    """
    Markov chain over configurations of a marginal ensemble.

    Attributes:
        ensemble: MarginalEnsemble providing the simulator and density
        theta: Interaction parameter tilting the path measure
        last_regrowth: Regrowth duration of the latest proposal
        accepted_list: Regrowth durations of accepted proposals
        rejected_list: Regrowth durations of rejected proposals
    """

    def __init__(self, ensemble: MarginalEnsemble, theta: float = 1.0):
        self.ensemble = ensemble
        self.theta = float(theta)
        self.last_regrowth = 0.0
        self.accepted_list: List[float] = []
        self.rejected_list: List[float] = []

    def reset(self) -> None:
        """Clear the move statistics."""
        self.accepted_list.clear()
        self.rejected_list.clear()

    def accept(self) -> None:
        self.accepted_list.append(self.last_regrowth)

    def reject(self) -> None:
        self.rejected_list.append(self.last_regrowth)

    @property
    def acceptance_rate(self) -> float:
        total = len(self.accepted_list) + len(self.rejected_list)
        return len(self.accepted_list) / total if total else float("nan")

    def statistics(self) -> Dict[str, float]:
        """Summary of the recorded regrowth durations."""
        return {
            "accepted": len(self.accepted_list),
            "rejected": len(self.rejected_list),
            "acceptance_rate": self.acceptance_rate,
            "mean_accepted_regrowth": (
                float(np.mean(self.accepted_list)) if self.accepted_list else float("nan")
            ),
            "mean_rejected_regrowth": (
                float(np.mean(self.rejected_list)) if self.rejected_list else float("nan")
            ),
        }

    def energy(self, conf: SXConfiguration, theta: Optional[float] = None) -> float:
        """
        Tilting energy of a configuration.

        Zero without interaction, otherwise theta times the log-likelihood of
        the output given the driving trajectory over the whole grid.
        """
        theta = self.theta if theta is None else theta
        if theta == 0.0:
            return 0.0
        merged = merge_trajectories(conf.s_traj, conf.x_traj)
        return theta * self.ensemble.dist.trajectory_energy(merged, tspan=self.ensemble.tspan)

    def propose(
        self,
        new_conf: SXConfiguration,
        old_conf: SXConfiguration,
        rng: Optional[np.random.Generator] = None,
    ) -> SXConfiguration:
        """
        Fill `new_conf.s_traj` with a regrown copy of `old_conf.s_traj`.

        Returns:
            new_conf
        """
        if rng is None:
            rng = np.random.default_rng()
        self.last_regrowth = propose(new_conf.s_traj, old_conf.s_traj, self.ensemble.jump_problem, rng)
        return new_conf

    def __repr__(self) -> str:
        return (
            f"TrajectoryChain(theta={self.theta}, accepted={len(self.accepted_list)}, "
            f"rejected={len(self.rejected_list)})"
        )
