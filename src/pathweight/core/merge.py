"""
Merging of independently time-stamped trajectories.

The merged timeline is the union of the time stamps of all inputs. At each
time the merged state is the concatenation of every input's most recently
observed state. All transforms are lazy and restartable: iterating twice
produces the same sequence and never mutates the inputs.
"""

from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from pathweight.core.trajectory import NO_REACTION, Trajectory

Sample = Tuple[np.ndarray, float, int]


class MergedTrajectory:
    """
    Lazy union of several trajectories on a common timeline.

    Iteration yields (u_merged, t, i) triples. `i` is the channel index
    recorded by the component that advanced at `t` (the lowest-numbered one
    when several advance together) and -1 at the starting point.
    A component starting after the earliest start holds its first state
    until its first time stamp, which is emitted like any other sample.

    Attributes:
        components: Input trajectories in column order
    """

    def __init__(self, components: Sequence[Trajectory]):
        if len(components) == 0:
            raise ValueError("merge_trajectories requires at least one trajectory")
        for traj in components:
            if len(traj) == 0:
                raise ValueError("Cannot merge an empty trajectory")
        self.components = list(components)

    @property
    def n_species(self) -> int:
        return sum(traj.n_species for traj in self.components)

    @property
    def species(self) -> List[str]:
        names: List[str] = []
        for traj in self.components:
            names.extend(traj.species or [""] * traj.n_species)
        return names

    def __iter__(self) -> Iterator[Sample]:
        comps = self.components
        k = len(comps)
        t = min(traj.t[0] for traj in comps)
        # -1: component starts later; its first sample is the next event
        idx = [0 if traj.t[0] <= t else -1 for traj in comps]
        origin = NO_REACTION

        while True:
            u = np.concatenate([comps[c].u[max(idx[c], 0)] for c in range(k)])
            yield u, float(t), origin

            next_times = [
                comps[c].t[idx[c] + 1] if idx[c] + 1 < len(comps[c]) else np.inf
                for c in range(k)
            ]
            t_next = min(next_times)
            if t_next == np.inf:
                return

            origin = NO_REACTION
            for c in range(k):
                # advance every component sharing the next time stamp
                if next_times[c] == t_next:
                    idx[c] += 1
                    if origin == NO_REACTION:
                        origin = int(comps[c].i[idx[c]])
            t = t_next

    def __repr__(self) -> str:
        return f"MergedTrajectory(components={len(self.components)})"


def merge_trajectories(*trajs: Trajectory) -> MergedTrajectory:
    """
    Merge trajectories onto the union of their time stamps.

    Args:
        *trajs: One or more trajectories

    Returns:
        Restartable MergedTrajectory

    Example:
        >>> s = Trajectory(t=[0.0, 1.0], u=[[1], [2]])
        >>> x = Trajectory(t=[0.0, 0.5], u=[[0], [1]])
        >>> [(list(u), t) for u, t, _ in merge_trajectories(s, x)]
        [([1, 0], 0.0), ([1, 1], 0.5), ([2, 1], 1.0)]
    """
    return MergedTrajectory(trajs)


class _Transform:
    """Restartable lazy transform over an iterable of samples."""

    def __init__(self, source: Iterable[Sample]):
        self.source = source

    def __iter__(self) -> Iterator[Sample]:
        raise NotImplementedError


class Project(_Transform):
    """Select a subset of state columns."""

    def __init__(self, source: Iterable[Sample], idxs: Sequence[int]):
        super().__init__(source)
        self.idxs = np.atleast_1d(np.asarray(idxs, dtype=int))

    def __iter__(self) -> Iterator[Sample]:
        for u, t, i in self.source:
            yield u[self.idxs], t, i


class Thin(_Transform):
    """Drop samples whose state equals the previous sample's state."""

    def __iter__(self) -> Iterator[Sample]:
        previous: Optional[np.ndarray] = None
        for u, t, i in self.source:
            if previous is not None and np.array_equal(u, previous):
                continue
            previous = u
            yield u, t, i


def project(source: Iterable[Sample], idxs: Sequence[int]) -> Project:
    return Project(source, idxs)


def thin(source: Iterable[Sample]) -> Thin:
    return Thin(source)


def collect_trajectory(
    source: Iterable[Sample],
    species: Optional[List[str]] = None,
) -> Trajectory:
    """
    Materialize a sample iterable into a Trajectory.

    Args:
        source: Iterable of (u, t, i) triples
        species: Optional species names for the columns

    Returns:
        Trajectory with copies of all samples
    """
    samples = [(np.array(u, copy=True), t, i) for u, t, i in source]
    return Trajectory.from_samples(samples, species=species)
