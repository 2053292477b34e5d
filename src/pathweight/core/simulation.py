"""
Jump-path simulation.

A JumpProblem is an immutable simulator template: channels, initial state,
time span and parameters. Each particle or regrowth move derives its own
problem with `remake` and solves it with a fresh random stream; nothing is
mutated in place.

DirectMethod is the reference simulator (Gillespie's direct method). Any
object with a `simulate(problem, rng, override=None) -> Trajectory` method can
be plugged in instead.
"""

from typing import Mapping, Optional, Protocol, Sequence, Tuple
from dataclasses import dataclass, field, replace

import numpy as np

from pathweight.core.reactions import ReactionChannel
from pathweight.core.trajectory import NO_REACTION, Trajectory


class TrajectoryOverride:
    """
    Conditioning callback that injects a recorded trajectory into a simulation.

    At every time stamp of `trajectory` the components `state_idxs` of the
    simulated state are reset to the recorded values. Simulators must
    recompute their rates after each override.

    Attributes:
        trajectory: Recorded driving trajectory
        state_idxs: Simulated-state columns that are overwritten
        traj_idxs: Columns of `trajectory` providing the values
    """

    def __init__(
        self,
        trajectory: Trajectory,
        state_idxs: Sequence[int],
        traj_idxs: Optional[Sequence[int]] = None,
    ):
        self.trajectory = trajectory
        self.state_idxs = np.asarray(list(state_idxs), dtype=int)
        if traj_idxs is None:
            traj_idxs = range(trajectory.n_species)
        self.traj_idxs = np.asarray(list(traj_idxs), dtype=int)
        if len(self.state_idxs) != len(self.traj_idxs):
            raise ValueError(
                f"Override maps {len(self.traj_idxs)} trajectory columns "
                f"onto {len(self.state_idxs)} state columns"
            )

    def initial(self, u0: np.ndarray, t0: float) -> np.ndarray:
        """Initial state with the driven components set to their value at t0."""
        u = np.array(u0, copy=True)
        u[self.state_idxs] = self.trajectory(t0)[self.traj_idxs]
        return u

    def times_in(self, a: float, b: float) -> np.ndarray:
        """Override times in the half-open window (a, b]."""
        t = self.trajectory.t
        return t[(t > a) & (t <= b)]

    def apply(self, u: np.ndarray, t: float) -> np.ndarray:
        """Overwrite the driven components in place; return u."""
        u[self.state_idxs] = self.trajectory(t)[self.traj_idxs]
        return u


class JumpSimulator(Protocol):
    """Interface of a jump-path simulator."""

    def simulate(
        self,
        problem: "JumpProblem",
        rng: np.random.Generator,
        override: Optional[TrajectoryOverride] = None,
    ) -> Trajectory:
        ...


@dataclass(frozen=True)
class DirectMethod:
    """
    Exact stochastic simulation (direct method).

    Records the initial state at tspan[0], every reaction event, every
    override that changes the state (channel index -1), and a final sample
    at tspan[1] holding the last state.
    """

    def simulate(
        self,
        problem: "JumpProblem",
        rng: np.random.Generator,
        override: Optional[TrajectoryOverride] = None,
    ) -> Trajectory:
        t0, t_end = problem.tspan
        channels = problem.channels
        params = problem.params

        u = np.array(problem.u0, copy=True)
        if override is not None:
            u = override.initial(u, t0)
            stops = list(override.times_in(t0, t_end))
        else:
            stops = []

        times = [t0]
        states = [u.copy()]
        indices = [NO_REACTION]

        t = t0
        stop_idx = 0
        rates = np.array([ch.rate(u, params) for ch in channels])
        while True:
            total = rates.sum()
            t_stop = stops[stop_idx] if stop_idx < len(stops) else np.inf
            t_next = t + rng.exponential(1.0 / total) if total > 0 else np.inf

            if t_stop <= t_next and t_stop <= t_end:
                t = t_stop
                stop_idx += 1
                before = u.copy()
                override.apply(u, t)
                if not np.array_equal(before, u) and t < t_end:
                    times.append(t)
                    states.append(u.copy())
                    indices.append(NO_REACTION)
                # state changed externally, rates are stale
                rates = np.array([ch.rate(u, params) for ch in channels])
                continue

            if t_next > t_end:
                break

            k = int(rng.choice(len(channels), p=rates / total))
            t = t_next
            u = u + channels[k].net_effect
            times.append(t)
            states.append(u.copy())
            indices.append(k)
            rates = np.array([ch.rate(u, params) for ch in channels])

        if t_end > times[-1]:
            times.append(t_end)
            states.append(u.copy())
            indices.append(NO_REACTION)
        elif t_end == times[-1]:
            states[-1] = u.copy()

        return Trajectory(
            t=np.array(times),
            u=np.array(states),
            i=np.array(indices),
            species=list(problem.species),
        )


@dataclass(frozen=True, eq=False)
class JumpProblem:
    """
    Immutable simulation template.

    Attributes:
        channels: Reaction channels of the simulated network
        u0: Initial state
        tspan: (t_start, t_end)
        params: Parameters for the rate functions
        species: Species names of the state columns
        simulator: Simulator used by `solve`
    """

    channels: Tuple[ReactionChannel, ...]
    u0: np.ndarray
    tspan: Tuple[float, float]
    params: Mapping[str, float] = field(default_factory=dict)
    species: Tuple[str, ...] = ()
    simulator: JumpSimulator = field(default_factory=DirectMethod)

    def __post_init__(self):
        u0 = np.array(self.u0, copy=True)
        u0.setflags(write=False)
        object.__setattr__(self, "u0", u0)
        object.__setattr__(self, "channels", tuple(self.channels))
        object.__setattr__(self, "species", tuple(self.species))
        t0, t1 = float(self.tspan[0]), float(self.tspan[1])
        if t1 < t0:
            raise ValueError(f"Invalid time span ({t0}, {t1})")
        object.__setattr__(self, "tspan", (t0, t1))
        for ch in self.channels:
            if len(ch.net_effect) != len(u0):
                raise ValueError(
                    f"Channel '{ch.name}' acts on {len(ch.net_effect)} species, "
                    f"state has {len(u0)}"
                )

    def remake(
        self,
        u0: Optional[np.ndarray] = None,
        tspan: Optional[Tuple[float, float]] = None,
    ) -> "JumpProblem":
        """Copy of the template with a new initial state and/or time span."""
        changes = {}
        if u0 is not None:
            changes["u0"] = u0
        if tspan is not None:
            changes["tspan"] = tspan
        return replace(self, **changes)

    def solve(
        self,
        rng: Optional[np.random.Generator] = None,
        override: Optional[TrajectoryOverride] = None,
    ) -> Trajectory:
        """Simulate one trajectory on tspan."""
        if rng is None:
            rng = np.random.default_rng()
        return self.simulator.simulate(self, rng, override=override)
