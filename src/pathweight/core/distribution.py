"""
Path densities of continuous-time Markov jump trajectories.

For a trajectory with samples (t_0, u_0), ..., (t_n, u_n) the log density is

    log p0(u_0) + sum_k [ log a_r(u_{k-1}) - (t_k - t_{k-1}) * A(u_{k-1}) ]

where A is the total rate of all channels and a_r is the rate of the channel
whose net effect equals u_k - u_{k-1}. A transition that no channel explains
makes the whole path impossible (log density -inf).
"""

from typing import Callable, Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np

from pathweight.core.reactions import ReactionChannel

NEG_INF = float("-inf")


def _zero_log_p0(u: np.ndarray) -> float:
    return 0.0


def validate_checkpoints(dtimes: Sequence[float]) -> np.ndarray:
    """
    Coerce a checkpoint grid and check that it is strictly increasing.

    Raises:
        ValueError: If the grid is empty, not 1-D, or not strictly increasing
    """
    dtimes = np.asarray(dtimes, dtype=float)
    if dtimes.ndim != 1 or len(dtimes) == 0:
        raise ValueError(f"Checkpoint grid must be a non-empty 1-D sequence, got {dtimes!r}")
    if np.any(np.diff(dtimes) <= 0):
        raise ValueError("Checkpoint grid must be strictly increasing")
    return dtimes


class TrajectoryDistribution:
    """
    Path-probability model of a jump process.

    Immutable after construction; safe to share between evaluations.

    Attributes:
        channels: Reaction channels in declared order
        log_p0: Function(u) -> log density of the first state
        observed: Boolean mask of the state components scored by the density
        params: Default parameter mapping for rate evaluation
    """

    def __init__(
        self,
        channels: Sequence[ReactionChannel],
        log_p0: Optional[Callable[[np.ndarray], float]] = None,
        observed: Optional[Sequence[int]] = None,
        params: Optional[Mapping[str, float]] = None,
        n_species: Optional[int] = None,
    ):
        """
        Initialize a path-density model.

        Args:
            channels: Reaction channels, all over the same state layout
            log_p0: Initial log density (default: 0 for every state)
            observed: Column indices scored by the density (default: all).
                A transition that only changes unobserved columns is treated
                as a driving-process update and contributes nothing.
            params: Default parameters passed to the rate functions
            n_species: State width; required when `channels` is empty
        """
        self.channels: Tuple[ReactionChannel, ...] = tuple(channels)
        if n_species is None:
            if not self.channels:
                raise ValueError("n_species is required for a distribution without channels")
            n_species = len(self.channels[0].net_effect)
        for ch in self.channels:
            if len(ch.net_effect) != n_species:
                raise ValueError(
                    f"Channel '{ch.name}' acts on {len(ch.net_effect)} species, expected {n_species}"
                )
        self.n_species = n_species
        self.log_p0 = log_p0 if log_p0 is not None else _zero_log_p0
        self.params = dict(params or {})

        mask = np.zeros(n_species, dtype=bool)
        if observed is None:
            mask[:] = True
        else:
            mask[np.asarray(list(observed), dtype=int)] = True
        self.observed = mask
        self._effects = (
            np.stack([ch.net_effect[mask] for ch in self.channels])
            if self.channels
            else np.zeros((0, int(mask.sum())), dtype=int)
        )

    def _params(self, params: Optional[Mapping[str, float]]) -> Mapping[str, float]:
        return self.params if params is None else params

    def _check_width(self, u: np.ndarray) -> None:
        if len(u) != self.n_species:
            raise ValueError(
                f"State has {len(u)} components but the distribution expects {self.n_species}"
            )

    def total_rate(self, u: np.ndarray, params: Optional[Mapping[str, float]] = None) -> float:
        """Sum of all channel rates at state u."""
        params = self._params(params)
        return sum(ch.rate(u, params) for ch in self.channels)

    def match_channel(self, du: np.ndarray) -> Optional[int]:
        """
        Index of the first channel whose net effect equals du.

        Only observed components are compared.

        Returns:
            Channel index, or None if no channel matches
        """
        du = np.asarray(du)[self.observed]
        for k in range(len(self._effects)):
            if np.array_equal(self._effects[k], du):
                return k
        return None

    def channel_rate(
        self,
        u: np.ndarray,
        du: np.ndarray,
        params: Optional[Mapping[str, float]] = None,
    ) -> float:
        """Rate at u of the channel explaining du, 0 if there is none."""
        k = self.match_channel(du)
        if k is None:
            return 0.0
        return self.channels[k].rate(u, self._params(params))

    def jump_log_rate(
        self,
        u: np.ndarray,
        du: np.ndarray,
        params: Optional[Mapping[str, float]] = None,
    ) -> float:
        """
        Log rate of the transition u -> u + du.

        Returns 0 when du leaves every observed component unchanged and -inf
        when no channel explains du (or the matching channel has zero rate).
        """
        if not np.any(np.asarray(du)[self.observed] != 0):
            return 0.0
        rate = self.channel_rate(u, du, params)
        if rate <= 0.0:
            return NEG_INF
        return float(np.log(rate))

    def logpdf(
        self,
        trajectory: Iterable[Tuple[np.ndarray, float, int]],
        params: Optional[Mapping[str, float]] = None,
    ) -> float:
        """
        Log path density of a trajectory.

        Args:
            trajectory: Trajectory or iterable of (u, t, i) samples
            params: Parameter mapping (default: self.params)

        Returns:
            Log density, -inf for an impossible trajectory
        """
        params = self._params(params)
        samples = iter(trajectory)
        try:
            uprev, tprev, _ = next(samples)
        except StopIteration:
            raise ValueError("Cannot evaluate the density of an empty trajectory")
        uprev = np.array(uprev, copy=True)
        self._check_width(uprev)

        result = float(self.log_p0(uprev))
        for u, t, _ in samples:
            du = u - uprev
            result -= (t - tprev) * self.total_rate(uprev, params)
            jump = self.jump_log_rate(uprev, du, params)
            if jump == NEG_INF:
                return NEG_INF
            result += jump
            tprev = t
            uprev = np.array(u, copy=True)
        return result

    def cumulative_logpdf(
        self,
        trajectory: Iterable[Tuple[np.ndarray, float, int]],
        dtimes: Sequence[float],
        params: Optional[Mapping[str, float]] = None,
        out: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """
        Running log path density evaluated on a checkpoint grid.

        A checkpoint inside a holding interval receives the partial survival
        term up to the checkpoint. A jump exactly at a checkpoint is counted at
        that checkpoint. Checkpoints past the last sample keep holding the
        last state. Once the path becomes impossible every later checkpoint
        is -inf.

        Args:
            trajectory: Trajectory or iterable of (u, t, i) samples
            dtimes: Strictly increasing checkpoint grid
            params: Parameter mapping (default: self.params)
            out: Optional preallocated output vector

        Returns:
            Vector of cumulative log densities, one per checkpoint
        """
        params = self._params(params)
        dtimes = validate_checkpoints(dtimes)
        if out is None:
            out = np.empty(len(dtimes), dtype=float)
        elif len(out) != len(dtimes):
            raise ValueError(f"Output has length {len(out)}, expected {len(dtimes)}")

        samples = iter(trajectory)
        try:
            uprev, tprev, _ = next(samples)
        except StopIteration:
            raise ValueError("Cannot evaluate the density of an empty trajectory")
        uprev = np.array(uprev, copy=True)
        self._check_width(uprev)

        acc = float(self.log_p0(uprev))
        k = 0
        n_checkpoints = len(dtimes)
        while k < n_checkpoints and dtimes[k] <= tprev:
            out[k] = acc
            k += 1

        for u, t, _ in samples:
            rate = self.total_rate(uprev, params)
            while k < n_checkpoints and dtimes[k] < t:
                out[k] = acc - (dtimes[k] - tprev) * rate
                k += 1
            acc -= (t - tprev) * rate
            jump = self.jump_log_rate(uprev, u - uprev, params)
            if jump == NEG_INF:
                out[k:] = NEG_INF
                return out
            acc += jump
            while k < n_checkpoints and dtimes[k] <= t:
                out[k] = acc
                k += 1
            tprev = t
            uprev = np.array(u, copy=True)

        if k < n_checkpoints:
            rate = self.total_rate(uprev, params)
            out[k:] = acc - (dtimes[k:] - tprev) * rate
        return out

    def trajectory_energy(
        self,
        trajectory: Iterable[Tuple[np.ndarray, float, int]],
        params: Optional[Mapping[str, float]] = None,
        tspan: Optional[Tuple[float, float]] = None,
    ) -> float:
        """
        Log density of the dynamics on the window (a, b], without log p0.

        Survival terms are clipped to the window and only jumps with
        a < t <= b contribute. When an explicit window extends past the last
        sample, the last state is held until b.

        Args:
            trajectory: Trajectory or iterable of (u, t, i) samples
            params: Parameter mapping (default: self.params)
            tspan: Window (a, b); default: span of the trajectory

        Returns:
            Log density increment, -inf for an impossible window
        """
        params = self._params(params)
        samples = iter(trajectory)
        try:
            uprev, tprev, _ = next(samples)
        except StopIteration:
            raise ValueError("Cannot evaluate the density of an empty trajectory")
        uprev = np.array(uprev, copy=True)
        self._check_width(uprev)

        a, b = (tprev, np.inf) if tspan is None else (float(tspan[0]), float(tspan[1]))
        result = 0.0
        for u, t, _ in samples:
            if tprev >= b:
                break
            lo = max(tprev, a)
            hi = min(t, b)
            if hi > lo:
                result -= (hi - lo) * self.total_rate(uprev, params)
            if a < t <= b:
                jump = self.jump_log_rate(uprev, u - uprev, params)
                if jump == NEG_INF:
                    return NEG_INF
                result += jump
            tprev = t
            uprev = np.array(u, copy=True)

        if tspan is not None and b > tprev:
            result -= (b - max(tprev, a)) * self.total_rate(uprev, params)
        return result

    def __repr__(self) -> str:
        return (
            f"TrajectoryDistribution(channels={len(self.channels)}, "
            f"species={self.n_species}, observed={int(self.observed.sum())})"
        )


def logpdf(
    dist: TrajectoryDistribution,
    trajectory: Iterable[Tuple[np.ndarray, float, int]],
    params: Optional[Mapping[str, float]] = None,
) -> float:
    return dist.logpdf(trajectory, params)


def cumulative_logpdf(
    dist: TrajectoryDistribution,
    trajectory: Iterable[Tuple[np.ndarray, float, int]],
    dtimes: Sequence[float],
    params: Optional[Mapping[str, float]] = None,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    return dist.cumulative_logpdf(trajectory, dtimes, params=params, out=out)


def trajectory_energy(
    dist: TrajectoryDistribution,
    trajectory: Iterable[Tuple[np.ndarray, float, int]],
    params: Optional[Mapping[str, float]] = None,
    tspan: Optional[Tuple[float, float]] = None,
) -> float:
    return dist.trajectory_energy(trajectory, params=params, tspan=tspan)
