"""
Mutual information between trajectories.

For a configuration (s, x) the pathwise mutual information at time t is

    log p(x_[0,t] | s_[0,t]) - log p(x_[0,t])

The conditional density is either exact (SXSystem: the output depends only on
the observed signal) or estimated by integrating over the response with the
conditional ensemble (SRXSystem). The marginal density is always estimated by
integrating over the driving process with the marginal ensemble. Averaging
over independently generated configurations gives the mutual information
rate estimate.
"""

from pathlib import Path
from typing import Optional, Sequence, Tuple, Union
from dataclasses import dataclass
import logging
import time

import numpy as np
import pandas as pd

from pathweight.core.configuration import SRXConfiguration, SXConfiguration, marginal_configuration
from pathweight.core.ensembles import ConditionalEnsemble, MarginalEnsemble
from pathweight.core.systems import SRXSystem, SXSystem

logger = logging.getLogger(__name__)


@dataclass
class MutualInformationSettings:
    """Settings of a mutual information run."""

    num_responses: int = 1
    """Number of independent configurations to average over."""

    seed: Optional[int] = None
    """Seed of the random number generator (None: fresh entropy)."""

    def __post_init__(self):
        if self.num_responses < 1:
            raise ValueError(f"num_responses must be positive, got {self.num_responses}")


@dataclass
class CompiledSXSystem:
    """SXSystem with its marginal ensemble built once."""

    system: SXSystem
    marginal_ensemble: MarginalEnsemble


@dataclass
class CompiledSRXSystem:
    """SRXSystem with its marginal and conditional ensembles built once."""

    system: SRXSystem
    marginal_ensemble: MarginalEnsemble
    conditional_ensemble: ConditionalEnsemble


CompiledSystem = Union[CompiledSXSystem, CompiledSRXSystem]


def compile_system(system: Union[SXSystem, SRXSystem]) -> CompiledSystem:
    """Derive the ensembles of a system."""
    if isinstance(system, SRXSystem):
        return CompiledSRXSystem(
            system,
            MarginalEnsemble.from_system(system),
            ConditionalEnsemble.from_system(system),
        )
    if isinstance(system, SXSystem):
        return CompiledSXSystem(system, MarginalEnsemble.from_system(system))
    raise TypeError(f"Cannot compile {type(system).__name__}")


def marginal_density(
    compiled: CompiledSystem,
    algorithm,
    conf: Union[SXConfiguration, SRXConfiguration],
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Estimated log p(x) on the checkpoint grid."""
    if isinstance(compiled, CompiledSRXSystem):
        conf = marginal_configuration(conf)
    result = algorithm.simulate(conf, compiled.marginal_ensemble, rng=rng)
    return result.log_marginal()


def conditional_density(
    compiled: CompiledSystem,
    algorithm,
    conf: Union[SXConfiguration, SRXConfiguration],
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Log p(x | s) on the checkpoint grid; exact for an SXSystem."""
    if isinstance(compiled, CompiledSRXSystem):
        result = algorithm.simulate(conf, compiled.conditional_ensemble, rng=rng)
        return result.log_marginal()
    return -compiled.marginal_ensemble.energy_difference(conf)


def mutual_information(
    system: Union[SXSystem, SRXSystem],
    algorithm,
    num_responses: int = 1,
    rng: Optional[np.random.Generator] = None,
) -> pd.DataFrame:
    """
    Estimate the trajectory mutual information of a system.

    Args:
        system: SXSystem or SRXSystem
        algorithm: SMCEstimate or DirectMCEstimate
        num_responses: Number of independent configurations
        rng: Random number generator

    Returns:
        DataFrame with one row per configuration and columns
        Marginal, Conditional, MutualInformation (arrays over the
        checkpoint grid) and CPUTime (seconds)
    """
    if rng is None:
        rng = np.random.default_rng()
    compiled = compile_system(system)

    rows = []
    for k in range(num_responses):
        start = time.process_time()
        conf = system.generate_configuration(rng)
        conditional = conditional_density(compiled, algorithm, conf, rng)
        marginal = marginal_density(compiled, algorithm, conf, rng)
        elapsed = time.process_time() - start
        rows.append(
            {
                "Marginal": marginal,
                "Conditional": conditional,
                "MutualInformation": conditional - marginal,
                "CPUTime": elapsed,
            }
        )
        logger.info(
            f"[{algorithm.name}] response {k + 1}/{num_responses}: "
            f"MI(T)={conditional[-1] - marginal[-1]:.4f} ({elapsed:.2f}s)"
        )
    return pd.DataFrame(rows)


def mean_mutual_information(result: pd.DataFrame) -> np.ndarray:
    """Average of the MutualInformation column over configurations."""
    return np.mean(np.stack(result["MutualInformation"].to_list()), axis=0)


RESULT_ARRAYS = {
    "marginal": "Marginal",
    "conditional": "Conditional",
    "mutual_information": "MutualInformation",
}


def save_mutual_information(
    path: Union[str, Path],
    result: pd.DataFrame,
    dtimes: Sequence[float],
) -> Path:
    """
    Write a mutual information result to a compressed .npz archive.

    Layout of the archive:
        dtimes: Checkpoint grid, shape (n_checkpoints,)
        marginal: Log marginal densities, shape (num_responses, n_checkpoints)
        conditional: Log conditional densities, same shape as marginal
        mutual_information: conditional - marginal, same shape as marginal
        cpu_time: CPU seconds per configuration, shape (num_responses,)

    Args:
        path: Output file (.npz is appended when the suffix is missing)
        result: DataFrame returned by mutual_information
        dtimes: Checkpoint grid the result was computed on

    Returns:
        Path of the written archive
    """
    path = Path(path)
    if path.suffix != ".npz":
        path = path.with_name(path.name + ".npz")
    dtimes = np.asarray(dtimes, dtype=float)
    arrays = {key: np.stack(result[column].to_list()) for key, column in RESULT_ARRAYS.items()}
    for key, values in arrays.items():
        if values.shape[1] != len(dtimes):
            raise ValueError(
                f"'{key}' has {values.shape[1]} checkpoints but the grid has {len(dtimes)}"
            )
    np.savez_compressed(path, dtimes=dtimes, cpu_time=result["CPUTime"].to_numpy(), **arrays)
    logger.info(f"Saved {len(result)} responses to {path}")
    return path


def load_mutual_information(path: Union[str, Path]) -> Tuple[pd.DataFrame, np.ndarray]:
    """
    Read an archive written by save_mutual_information.

    Returns:
        (result, dtimes) with result in the layout of mutual_information
    """
    with np.load(path) as data:
        dtimes = data["dtimes"]
        frame = {column: list(data[key]) for key, column in RESULT_ARRAYS.items()}
        frame["CPUTime"] = data["cpu_time"]
    return pd.DataFrame(frame), dtimes
