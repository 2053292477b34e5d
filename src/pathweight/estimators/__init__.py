"""Monte Carlo estimators of marginal trajectory likelihoods."""

from pathweight.estimators.results import (
    SimulationResult,
    SMCResult,
    DirectMCResult,
    logmeanexp,
    save_result,
    load_result,
)
from pathweight.estimators.smc import JumpParticle, SMCEstimate, resample, effective_sample_size
from pathweight.estimators.direct_mc import DirectMCEstimate

__all__ = [
    "SimulationResult",
    "SMCResult",
    "DirectMCResult",
    "logmeanexp",
    "save_result",
    "load_result",
    "JumpParticle",
    "SMCEstimate",
    "resample",
    "effective_sample_size",
    "DirectMCEstimate",
]
