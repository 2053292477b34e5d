"""
Preset reaction systems.

Both presets are parametrized by means and time scales of the stationary
state; rate constants are derived from them.
"""

from typing import Sequence

import numpy as np

from pathweight.core.reactions import Reaction, ReactionNetwork
from pathweight.core.systems import SRXSystem, SXSystem

DEFAULT_DTIMES = np.round(np.arange(0.0, 2.0 + 1e-9, 0.1), 10)


def gene_expression_system(
    mean_s: float = 50,
    corr_time_s: float = 1.0,
    corr_time_x: float = 0.1,
    dtimes: Sequence[float] = DEFAULT_DTIMES,
) -> SXSystem:
    """
    Birth-death signal S driving the production of an output X.

    Reactions:
        kappa, ∅ --> S
        lambda, S --> ∅
        rho, S --> X + S
        mu, X --> ∅

    Args:
        mean_s: Stationary mean copy number of S (and of X)
        corr_time_s: Correlation time of the signal
        corr_time_x: Lifetime of the output
        dtimes: Checkpoint grid

    Returns:
        SXSystem starting at the stationary means
    """
    sn = ReactionNetwork.from_reactions(
        [
            Reaction("kappa", products={"S": 1}),
            Reaction("lambda", reactants={"S": 1}),
        ],
        name="signal",
    )
    xn = ReactionNetwork.from_reactions(
        [
            Reaction("rho", reactants={"S": 1}, products={"X": 1, "S": 1}),
            Reaction("mu", reactants={"X": 1}),
        ],
        name="output",
    )

    lam = 1 / corr_time_s
    kappa = mean_s * lam
    mu = 1 / corr_time_x
    rho = mu
    mean_x = mean_s

    u0 = {"S": int(round(mean_s)), "X": int(round(mean_x))}
    ps = {"kappa": kappa, "lambda": lam}
    px = {"rho": rho, "mu": mu}
    return SXSystem(sn, xn, u0, ps, px, dtimes)


def chemotaxis_system(
    mean_L: float = 20,
    num_receptors: int = 10000,
    Y_tot: int = 5000,
    L_timescale: float = 1.0,
    LR_timescale: float = 0.01,
    LR_ratio: float = 0.5,
    Y_timescale: float = 0.1,
    Y_ratio: float = 1 / 6,
    q: float = 0.0,
    dtimes: Sequence[float] = DEFAULT_DTIMES,
) -> SRXSystem:
    """
    Ligand L binding receptors R, bound receptors LR phosphorylating Y.

    Reactions:
        kappa, ∅ --> L
        lambda, L --> ∅
        rho, L + R --> L + LR
        mu, LR --> R
        delta, LR + Y --> Yp + LR
        chi, Yp --> Y

    Args:
        mean_L: Mean ligand copy number
        num_receptors: Total receptors (R + LR)
        Y_tot: Total messenger (Y + Yp)
        L_timescale: Correlation time of the ligand. The birth rate kappa is
            mean_L / L_timescale, so the stationary mean stays at mean_L.
        LR_timescale: Correlation time of receptor binding
        LR_ratio: Stationary fraction of bound receptors
        Y_timescale: Correlation time of phosphorylation
        Y_ratio: Stationary fraction of phosphorylated messenger
        q: Log-shift of the effective ligand concentration seen by receptors
        dtimes: Checkpoint grid

    Returns:
        SRXSystem starting at the stationary means
    """
    mean_LR = num_receptors * LR_ratio
    mean_R = num_receptors - mean_LR
    mean_Yp = Y_tot * Y_ratio
    mean_Y = Y_tot - mean_Yp
    eq_L = mean_L * np.exp(-q)

    sn = ReactionNetwork.from_reactions(
        [
            Reaction("kappa", products={"L": 1}),
            Reaction("lambda", reactants={"L": 1}),
        ],
        name="ligand",
    )
    rn = ReactionNetwork.from_reactions(
        [
            Reaction("rho", reactants={"L": 1, "R": 1}, products={"L": 1, "LR": 1}),
            Reaction("mu", reactants={"LR": 1}, products={"R": 1}),
        ],
        name="receptor",
    )
    xn = ReactionNetwork.from_reactions(
        [
            Reaction("delta", reactants={"LR": 1, "Y": 1}, products={"Yp": 1, "LR": 1}),
            Reaction("chi", reactants={"Yp": 1}, products={"Y": 1}),
        ],
        name="messenger",
    )

    lam = 1 / L_timescale
    ps = {"kappa": mean_L * lam, "lambda": lam}

    rho = 1 / (eq_L * LR_timescale * (1 + mean_R / mean_LR))
    mu = eq_L * rho * mean_R / mean_LR
    pr = {"rho": rho, "mu": mu}

    chi = 1 / (Y_timescale * (1 + Y_ratio))
    delta = chi * Y_ratio / mean_LR
    px = {"delta": delta, "chi": chi}

    u0 = {
        "L": int(round(mean_L)),
        "R": int(round(mean_R)),
        "LR": int(round(mean_LR)),
        "Y": int(round(mean_Y)),
        "Yp": int(round(mean_Yp)),
    }
    return SRXSystem(sn, rn, xn, u0, ps, pr, px, dtimes)
