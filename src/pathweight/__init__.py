"""
pathweight: path-weight sampling for trajectories of reaction networks

Exact path densities of continuous-time jump processes and Monte Carlo
estimators of marginal trajectory likelihoods, combined into estimates of the
mutual information between an input and an output trajectory.
"""

__version__ = "0.1.0"

from pathweight.core.trajectory import Trajectory, sub_trajectory
from pathweight.core.merge import merge_trajectories, collect_trajectory
from pathweight.core.reactions import Reaction, ReactionChannel, ReactionNetwork
from pathweight.core.distribution import (
    TrajectoryDistribution,
    logpdf,
    cumulative_logpdf,
    trajectory_energy,
)
from pathweight.core.simulation import DirectMethod, JumpProblem
from pathweight.core.configuration import SXConfiguration, SRXConfiguration
from pathweight.core.systems import SXSystem, SRXSystem
from pathweight.core.ensembles import MarginalEnsemble, ConditionalEnsemble
from pathweight.estimators import (
    SMCEstimate,
    DirectMCEstimate,
    SMCResult,
    DirectMCResult,
)
from pathweight.information import mutual_information

__all__ = [
    "Trajectory",
    "sub_trajectory",
    "merge_trajectories",
    "collect_trajectory",
    "Reaction",
    "ReactionChannel",
    "ReactionNetwork",
    "TrajectoryDistribution",
    "logpdf",
    "cumulative_logpdf",
    "trajectory_energy",
    "DirectMethod",
    "JumpProblem",
    "SXConfiguration",
    "SRXConfiguration",
    "SXSystem",
    "SRXSystem",
    "MarginalEnsemble",
    "ConditionalEnsemble",
    "SMCEstimate",
    "DirectMCEstimate",
    "SMCResult",
    "DirectMCResult",
    "mutual_information",
    "__version__",
]
