"""Estimator results and their persistence."""

from typing import Union
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from scipy.special import logsumexp


def logmeanexp(a: np.ndarray, axis: int = 0) -> np.ndarray:
    """
    log(mean(exp(a))) along an axis, computed stably.

    Entries of -inf are allowed; a slice of only -inf gives -inf.
    """
    a = np.asarray(a, dtype=float)
    return logsumexp(a, axis=axis) - np.log(a.shape[axis])


class SimulationResult:
    """
    Base class of estimator results.

    Attributes:
        samples: (samples or particles, checkpoints) matrix
    """

    kind = "simulation"
    samples: np.ndarray

    def log_marginal(self) -> np.ndarray:
        raise NotImplementedError

    @property
    def num_samples(self) -> int:
        return self.samples.shape[0]

    @property
    def num_checkpoints(self) -> int:
        return self.samples.shape[1]


@dataclass(eq=False)
class SMCResult(SimulationResult):
    """
    Particle weights of a sequential Monte Carlo run.

    Column i+1 holds the incremental log-likelihoods of the interval
    (t_i, t_{i+1}]; column 0 is zero.
    """

    samples: np.ndarray
    kind = "smc"

    def log_marginal(self) -> np.ndarray:
        """Running estimate sum_i log((1/N) sum_j exp(w_j^i))."""
        return np.cumsum(logmeanexp(self.samples, axis=0))

    def __repr__(self) -> str:
        return f"SMCResult(particles={self.num_samples}, checkpoints={self.num_checkpoints})"


@dataclass(eq=False)
class DirectMCResult(SimulationResult):
    """Cumulative log-likelihoods of independent full-path samples."""

    samples: np.ndarray
    kind = "directmc"

    def log_marginal(self) -> np.ndarray:
        """Per-checkpoint log of the sample mean of the likelihoods."""
        return logmeanexp(self.samples, axis=0)

    def __repr__(self) -> str:
        return f"DirectMCResult(samples={self.num_samples}, checkpoints={self.num_checkpoints})"


_RESULT_TYPES = {cls.kind: cls for cls in (SMCResult, DirectMCResult)}


def save_result(
    path: Union[str, Path],
    result: SimulationResult,
    dtimes: Union[np.ndarray, None] = None,
) -> Path:
    """
    Write a result to a compressed .npz archive.

    Args:
        path: Destination file
        result: SMCResult or DirectMCResult
        dtimes: Optional checkpoint grid stored alongside

    Returns:
        Path that was written
    """
    path = Path(path)
    arrays = {"kind": np.array(result.kind), "samples": result.samples}
    if dtimes is not None:
        arrays["dtimes"] = np.asarray(dtimes, dtype=float)
    with open(path, "wb") as fh:
        np.savez_compressed(fh, **arrays)
    return path


def load_result(path: Union[str, Path]) -> SimulationResult:
    """
    Read a result written by save_result.

    Raises:
        ValueError: If the archive holds an unknown result kind
    """
    with np.load(Path(path)) as data:
        kind = str(data["kind"])
        if kind not in _RESULT_TYPES:
            raise ValueError(f"Unknown result kind '{kind}' in {path}")
        return _RESULT_TYPES[kind](samples=data["samples"].copy())
