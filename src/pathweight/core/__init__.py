"""Core abstractions for trajectories, reaction networks, path densities and ensembles."""

from pathweight.core.trajectory import NO_REACTION, Trajectory, sub_trajectory
from pathweight.core.merge import (
    MergedTrajectory,
    merge_trajectories,
    project,
    thin,
    collect_trajectory,
)
from pathweight.core.reactions import Reaction, ReactionChannel, ReactionNetwork
from pathweight.core.distribution import (
    TrajectoryDistribution,
    validate_checkpoints,
    logpdf,
    cumulative_logpdf,
    trajectory_energy,
)
from pathweight.core.simulation import (
    TrajectoryOverride,
    DirectMethod,
    JumpProblem,
)
from pathweight.core.configuration import (
    SXConfiguration,
    SRXConfiguration,
    marginal_configuration,
)
from pathweight.core.systems import SXSystem, SRXSystem
from pathweight.core.ensembles import MarginalEnsemble, ConditionalEnsemble
