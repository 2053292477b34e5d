"""Shared fixtures."""

import numpy as np
import pytest

from pathweight.core.reactions import Reaction, ReactionChannel, ReactionNetwork
from pathweight.core.trajectory import NO_REACTION, Trajectory


class ReplaySimulator:
    """
    Simulator stub that replays a recorded trajectory.

    `simulate` ignores the initial state and the random stream and returns
    the recorded path restricted to the problem's time span, holding the
    last state until the end of the span.
    """

    def __init__(self, recorded: Trajectory):
        self.recorded = recorded
        self.calls = 0

    def simulate(self, problem, rng, override=None):
        self.calls += 1
        a, b = problem.tspan
        segment = self.recorded.slice(a, b)
        if segment.t_end < b:
            segment.extend([b], segment.u[-1:], [NO_REACTION])
        return segment


@pytest.fixture
def replay():
    """Factory for replay simulators."""
    return ReplaySimulator


@pytest.fixture
def rng():
    """Create a reproducible RNG."""
    return np.random.default_rng(42)


@pytest.fixture
def two_state_channels():
    """Birth with rate kappa*(1-n) and death with rate lambda*n on one species."""
    birth = ReactionChannel(
        rate_fn=lambda u, p: p["kappa"] * (1 - u[0]),
        net_effect=np.array([1]),
        name="birth",
    )
    death = ReactionChannel(
        rate_fn=lambda u, p: p["lambda"] * u[0],
        net_effect=np.array([-1]),
        name="death",
    )
    return (birth, death)


@pytest.fixture
def small_srx_networks():
    """Signal S, response R reading S, output X reading R."""
    sn = ReactionNetwork.from_reactions(
        [Reaction("ks", products={"S": 1}), Reaction("ls", reactants={"S": 1})],
        name="signal",
    )
    rn = ReactionNetwork.from_reactions(
        [
            Reaction("kr", reactants={"S": 1}, products={"S": 1, "R": 1}),
            Reaction("lr", reactants={"R": 1}),
        ],
        name="response",
    )
    xn = ReactionNetwork.from_reactions(
        [
            Reaction("kx", reactants={"R": 1}, products={"R": 1, "X": 1}),
            Reaction("lx", reactants={"X": 1}),
        ],
        name="output",
    )
    return sn, rn, xn
