"""Direct Monte Carlo estimate of marginal path likelihoods."""

from typing import Optional
from dataclasses import dataclass

import numpy as np

from pathweight.estimators.results import DirectMCResult


@dataclass
class DirectMCEstimate:
    """
    Brute-force estimator averaging over independent full paths.

    Each sample simulates the ensemble's process over the whole checkpoint
    grid and records the cumulative log-likelihood of the observed output.
    Unbiased for the likelihood (not its log), but its variance grows quickly
    with trajectory length.

    Attributes:
        num_samples: Number of independent paths
    """

    num_samples: int

    def __post_init__(self):
        if self.num_samples < 1:
            raise ValueError(f"num_samples must be positive, got {self.num_samples}")

    @property
    def name(self) -> str:
        return "Direct MC"

    def simulate(
        self,
        conf,
        ensemble,
        rng: Optional[np.random.Generator] = None,
        theta: float = 0.0,
    ) -> DirectMCResult:
        """
        Draw independent paths and score the observed output.

        Args:
            conf: Configuration holding the observed output
            ensemble: Marginal or conditional ensemble
            rng: Random number generator
            theta: Interaction parameter; must be 0

        Returns:
            DirectMCResult with a (num_samples, len(dtimes)) matrix

        Raises:
            NotImplementedError: If theta is nonzero
        """
        if theta != 0.0:
            raise NotImplementedError(
                f"Direct Monte Carlo cannot sample a tilted ensemble (theta={theta})"
            )
        if rng is None:
            rng = np.random.default_rng()
        return DirectMCResult(ensemble.collect_samples(conf, self.num_samples, rng))
