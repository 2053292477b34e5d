"""Joint samples of the signal, response and output trajectories."""

from typing import Sequence, Tuple, Union
from dataclasses import dataclass

import numpy as np

from pathweight.core.merge import (
    MergedTrajectory,
    collect_trajectory,
    merge_trajectories,
    project,
    thin,
)
from pathweight.core.trajectory import Trajectory


class Configuration:
    """Shared behaviour of joint trajectory samples."""

    @property
    def trajectories(self) -> Tuple[Trajectory, ...]:
        raise NotImplementedError

    def merged(self) -> MergedTrajectory:
        """Lazy merge of all component trajectories."""
        return merge_trajectories(*self.trajectories)

    def __getitem__(self, index: Union[int, Sequence[int]]) -> Trajectory:
        """
        Reduced trajectory of selected merged columns.

        The components are merged, the columns selected and consecutive
        duplicate states removed.
        """
        idxs = np.atleast_1d(np.asarray(index, dtype=int))
        merged = self.merged()
        names = merged.species
        species = [names[k] for k in idxs] if any(names) else None
        return collect_trajectory(thin(project(merged, idxs)), species=species)


@dataclass(eq=False)
class SXConfiguration(Configuration):
    """
    One joint sample of a signal and an output trajectory.

    Attributes:
        s_traj: Signal trajectory
        x_traj: Output trajectory
    """

    s_traj: Trajectory
    x_traj: Trajectory

    @property
    def trajectories(self) -> Tuple[Trajectory, ...]:
        return (self.s_traj, self.x_traj)

    def copy(self) -> "SXConfiguration":
        return SXConfiguration(self.s_traj.copy(), self.x_traj.copy())

    def __repr__(self) -> str:
        return f"SXConfiguration(s={self.s_traj!r}, x={self.x_traj!r})"


@dataclass(eq=False)
class SRXConfiguration(Configuration):
    """
    One joint sample of a signal, an intermediate response and an output.

    Attributes:
        s_traj: Signal trajectory
        r_traj: Intermediate response trajectory
        x_traj: Output trajectory
    """

    s_traj: Trajectory
    r_traj: Trajectory
    x_traj: Trajectory

    @property
    def trajectories(self) -> Tuple[Trajectory, ...]:
        return (self.s_traj, self.r_traj, self.x_traj)

    def copy(self) -> "SRXConfiguration":
        return SRXConfiguration(self.s_traj.copy(), self.r_traj.copy(), self.x_traj.copy())

    def __repr__(self) -> str:
        return f"SRXConfiguration(s={self.s_traj!r}, r={self.r_traj!r}, x={self.x_traj!r})"


def marginal_configuration(conf: SRXConfiguration) -> SXConfiguration:
    """
    Collapse signal and response into a single driving trajectory.

    The returned configuration treats (s, r) jointly as the signal so that the
    marginal ensemble can integrate over both.
    """
    merged = merge_trajectories(conf.s_traj, conf.r_traj)
    names = merged.species
    s_traj = collect_trajectory(merged, species=names if any(names) else None)
    return SXConfiguration(s_traj, conf.x_traj.copy())
