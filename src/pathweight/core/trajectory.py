"""Trajectory container for continuous-time jump processes."""

from typing import Iterator, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field

import numpy as np


NO_REACTION = -1


@dataclass(eq=False)
class Trajectory:
    """
    Piecewise-constant sample path of a jump process.

    Each sample marks the time at which the state changed (or was recorded).
    Between samples the state is held at its last value (right-continuous,
    step-hold semantics).

    Attributes:
        t: Strictly increasing time stamps, shape (n,)
        u: State vectors, shape (n, n_species), one row per sample. A 1-D
            array is read as one species per sample.
        i: Index of the channel that fired at each sample (-1 for none)
        species: Optional species names for the columns of u
    """

    t: np.ndarray
    u: np.ndarray
    i: Optional[np.ndarray] = None
    species: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Coerce arrays and validate shape and time ordering."""
        self.t = np.asarray(self.t, dtype=float)
        u = np.asarray(self.u)
        if u.ndim == 1:
            # one species per sample; multi-species states must be 2-D
            u = u.reshape(-1, 1)
        if u.ndim != 2:
            raise ValueError(f"State array must be 2-D, got shape {u.shape}")
        self.u = u
        if self.i is None:
            self.i = np.full(len(self.t), NO_REACTION, dtype=int)
        else:
            self.i = np.asarray(self.i, dtype=int)

        if self.t.ndim != 1:
            raise ValueError(f"Time stamps must be 1-D, got shape {self.t.shape}")
        if len(self.t) != len(self.u) or len(self.t) != len(self.i):
            raise ValueError(
                f"Length mismatch: {len(self.t)} times, {len(self.u)} states, "
                f"{len(self.i)} indices"
            )
        if len(self.t) > 1 and np.any(np.diff(self.t) <= 0):
            raise ValueError("Trajectory time stamps must be strictly increasing")

    @classmethod
    def from_samples(
        cls,
        samples: Sequence[Tuple[Sequence[int], float, int]],
        species: Optional[List[str]] = None,
    ) -> "Trajectory":
        """
        Build a trajectory from (u, t, i) triples.

        Args:
            samples: Sequence of (state, time, channel index) triples
            species: Optional species names

        Returns:
            Trajectory holding the samples
        """
        if len(samples) == 0:
            raise ValueError("Cannot build a trajectory from zero samples")
        u = np.array([np.asarray(s[0]) for s in samples])
        t = np.array([s[1] for s in samples], dtype=float)
        i = np.array([s[2] for s in samples], dtype=int)
        return cls(t=t, u=u, i=i, species=list(species or []))

    @property
    def n_species(self) -> int:
        return self.u.shape[1]

    @property
    def t_start(self) -> float:
        return float(self.t[0])

    @property
    def t_end(self) -> float:
        return float(self.t[-1])

    @property
    def duration(self) -> float:
        """Time between the first and the last sample."""
        return self.t_end - self.t_start

    def index_at(self, time: float) -> int:
        """
        Index of the sample holding the state at `time`.

        Times before the first sample map to the first sample.
        """
        idx = int(np.searchsorted(self.t, time, side="right")) - 1
        return max(idx, 0)

    def __call__(self, time: float) -> np.ndarray:
        """Step-hold lookup of the state at an arbitrary time."""
        return self.u[self.index_at(time)].copy()

    def __len__(self) -> int:
        return len(self.t)

    def __iter__(self) -> Iterator[Tuple[np.ndarray, float, int]]:
        for k in range(len(self.t)):
            yield self.u[k], float(self.t[k]), int(self.i[k])

    def copy(self) -> "Trajectory":
        return Trajectory(
            t=self.t.copy(),
            u=self.u.copy(),
            i=self.i.copy(),
            species=list(self.species),
        )

    def slice(self, a: float, b: float) -> "Trajectory":
        """
        Restrict the trajectory to the interval [a, b].

        The first sample is the held state at `a` (stamped at time `a`),
        followed by every sample with a < t <= b.

        Args:
            a: Start of the window
            b: End of the window (inclusive)

        Returns:
            New trajectory covering [a, min(b, t_end)]
        """
        if b < a:
            raise ValueError(f"Empty window [{a}, {b}]")
        first = self.index_at(a)
        lo = int(np.searchsorted(self.t, a, side="right"))
        hi = int(np.searchsorted(self.t, b, side="right"))
        t = np.concatenate([[a], self.t[lo:hi]])
        u = np.concatenate([self.u[first:first + 1], self.u[lo:hi]])
        i = np.concatenate([[NO_REACTION], self.i[lo:hi]])
        return Trajectory(t=t, u=u, i=i, species=list(self.species))

    def clear(self) -> None:
        """Drop all samples, keeping the state width."""
        self.t = np.empty(0, dtype=float)
        self.u = np.empty((0, self.u.shape[1]), dtype=self.u.dtype)
        self.i = np.empty(0, dtype=int)

    def extend(self, t: np.ndarray, u: np.ndarray, i: np.ndarray) -> None:
        """
        Append samples in place.

        Raises:
            ValueError: If the appended times do not continue the time axis
        """
        t = np.asarray(t, dtype=float)
        if len(t) == 0:
            return
        u = np.asarray(u).reshape(len(t), self.u.shape[1])
        if len(self.t) > 0 and t[0] <= self.t[-1]:
            raise ValueError(
                f"Appended time {t[0]} does not follow last time {self.t[-1]}"
            )
        if np.any(np.diff(t) <= 0):
            raise ValueError("Appended time stamps must be strictly increasing")
        self.t = np.concatenate([self.t, t])
        self.u = np.concatenate([self.u, u.astype(self.u.dtype, copy=False)])
        self.i = np.concatenate([self.i, np.asarray(i, dtype=int)])

    def __repr__(self) -> str:
        if len(self.t) == 0:
            return f"Trajectory(samples=0, species={self.n_species})"
        return (
            f"Trajectory(samples={len(self.t)}, species={self.n_species}, "
            f"t=[{self.t_start:.4g}, {self.t_end:.4g}])"
        )


def sub_trajectory(traj: Trajectory, idxs: Sequence[int]) -> Trajectory:
    """
    Extract a subset of species from a trajectory.

    Consecutive samples with identical projected states are collapsed, but a
    sample at the original end time is kept so the time horizon survives.

    Args:
        traj: Source trajectory
        idxs: Column indices to keep

    Returns:
        Projected trajectory
    """
    idxs = list(idxs)
    u = traj.u[:, idxs]
    keep = np.ones(len(traj.t), dtype=bool)
    if len(traj.t) > 1:
        keep[1:] = np.any(u[1:] != u[:-1], axis=1)
        keep[-1] = True
    species = [traj.species[k] for k in idxs] if traj.species else []
    i = traj.i.copy()
    if len(traj.t) > 1 and not np.any(u[-1] != u[-2]):
        i[-1] = NO_REACTION
    return Trajectory(t=traj.t[keep], u=u[keep], i=i[keep], species=species)
