"""
Reaction networks and reaction channels.

A ReactionNetwork is a list of mass-action reactions over named species.
Path densities and simulators never look at reactions directly: they consume
ReactionChannels, i.e. a rate function plus an integer net-effect vector,
built once for a fixed species layout.
"""

from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union
from dataclasses import dataclass, field
from math import factorial

import numpy as np

RateFn = Callable[[np.ndarray, Mapping[str, float]], float]


@dataclass(frozen=True, eq=False)
class ReactionChannel:
    """
    One possible state transition.

    Attributes:
        rate_fn: Function(state, params) -> propensity >= 0
        net_effect: Integer change applied to the state when the channel fires
        name: Optional label used in diagnostics
    """

    rate_fn: RateFn
    net_effect: np.ndarray
    name: str = ""

    def __post_init__(self):
        net_effect = np.asarray(self.net_effect, dtype=int)
        if not np.any(net_effect != 0):
            raise ValueError(f"Channel {self.name or '<unnamed>'} has zero net effect")
        net_effect.setflags(write=False)
        object.__setattr__(self, "net_effect", net_effect)

    def rate(self, u: np.ndarray, params: Mapping[str, float]) -> float:
        return float(self.rate_fn(u, params))


@dataclass(frozen=True)
class Reaction:
    """
    Mass-action reaction.

    Attributes:
        rate: Parameter name looked up at evaluation time, or a constant
        reactants: {species: stoichiometry} consumed
        products: {species: stoichiometry} produced
    """

    rate: Union[str, float]
    reactants: Dict[str, int] = field(default_factory=dict)
    products: Dict[str, int] = field(default_factory=dict)

    @property
    def net_stoichiometry(self) -> Dict[str, int]:
        """Net change per species, omitting species that are unchanged."""
        net: Dict[str, int] = {}
        for sp, n in self.reactants.items():
            net[sp] = net.get(sp, 0) - n
        for sp, n in self.products.items():
            net[sp] = net.get(sp, 0) + n
        return {sp: n for sp, n in net.items() if n != 0}

    @property
    def species(self) -> List[str]:
        names = list(self.reactants)
        names.extend(sp for sp in self.products if sp not in self.reactants)
        return names

    def __str__(self) -> str:
        def side(d):
            if not d:
                return "∅"
            return " + ".join(f"{n}{sp}" if n > 1 else sp for sp, n in d.items())
        return f"{self.rate}, {side(self.reactants)} --> {side(self.products)}"


def _mass_action_rate(
    rate: Union[str, float],
    columns: Tuple[int, ...],
    stoich: Tuple[int, ...],
) -> RateFn:
    """Build k * prod_s C(n_s, c_s) for a fixed set of state columns."""
    norm = float(np.prod([factorial(c) for c in stoich])) if stoich else 1.0

    def propensity(u: np.ndarray) -> float:
        value = 1.0
        for col, c in zip(columns, stoich):
            n = float(u[col])
            for k in range(c):
                value *= max(n - k, 0.0)
        return value / norm

    if isinstance(rate, str):
        def rate_fn(u, params):
            return params[rate] * propensity(u)
    else:
        constant = float(rate)

        def rate_fn(u, params):
            return constant * propensity(u)

    return rate_fn


@dataclass
class ReactionNetwork:
    """
    Ordered species plus mass-action reactions.

    Species indices are stable for the lifetime of a network. Reactions may
    reference species of other networks (e.g. a response network reading a
    signal species); such species are added to `species` automatically.

    Attributes:
        species: Ordered species names
        reactions: Reactions in declared order
        name: Optional label
    """

    species: List[str] = field(default_factory=list)
    reactions: List[Reaction] = field(default_factory=list)
    name: str = ""

    def __post_init__(self):
        species = list(self.species)
        for reaction in self.reactions:
            for sp in reaction.species:
                if sp not in species:
                    species.append(sp)
        if len(set(species)) != len(species):
            raise ValueError(f"Duplicate species in network: {species}")
        self.species = species

    @classmethod
    def from_reactions(
        cls,
        reactions: Sequence[Reaction],
        species: Optional[Sequence[str]] = None,
        name: str = "",
    ) -> "ReactionNetwork":
        """
        Create a network, inferring species order from the reactions.

        Args:
            reactions: Mass-action reactions
            species: Optional explicit species order (extended as needed)
            name: Optional label

        Returns:
            ReactionNetwork
        """
        return cls(species=list(species or []), reactions=list(reactions), name=name)

    @property
    def n_species(self) -> int:
        return len(self.species)

    def species_indices(self, names: Sequence[str]) -> List[int]:
        """
        Column index of each named species.

        Raises:
            ValueError: If a species is not part of the network
        """
        lookup = {sp: k for k, sp in enumerate(self.species)}
        missing = [sp for sp in names if sp not in lookup]
        if missing:
            raise ValueError(f"Species {missing} not in network {self.species}")
        return [lookup[sp] for sp in names]

    def independent_species(self) -> List[str]:
        """Species changed by at least one reaction, in network order."""
        changed = set()
        for reaction in self.reactions:
            changed.update(reaction.net_stoichiometry)
        return [sp for sp in self.species if sp in changed]

    def dependent_species(self) -> List[str]:
        """Species that the reactions only read."""
        changed = set(self.independent_species())
        return [sp for sp in self.species if sp not in changed]

    def merge(self, other: "ReactionNetwork", name: str = "") -> "ReactionNetwork":
        """
        Union of two networks.

        Species of `self` come first, followed by the new species of `other`.
        """
        species = list(self.species)
        species.extend(sp for sp in other.species if sp not in species)
        return ReactionNetwork(
            species=species,
            reactions=list(self.reactions) + list(other.reactions),
            name=name or "+".join(n for n in (self.name, other.name) if n),
        )

    def channels(self, layout: Optional[Sequence[str]] = None) -> Tuple[ReactionChannel, ...]:
        """
        Build the channel list for a species layout.

        Args:
            layout: Species name for each state column (default: network order)

        Returns:
            Tuple of ReactionChannels in reaction order

        Raises:
            ValueError: If a reaction references a species absent from layout
        """
        layout = list(self.species if layout is None else layout)
        lookup = {sp: k for k, sp in enumerate(layout)}
        channels = []
        for reaction in self.reactions:
            missing = [sp for sp in reaction.species if sp not in lookup]
            if missing:
                raise ValueError(
                    f"Reaction '{reaction}' uses species {missing} missing from layout {layout}"
                )
            columns = tuple(lookup[sp] for sp in reaction.reactants)
            stoich = tuple(reaction.reactants.values())
            net_effect = np.zeros(len(layout), dtype=int)
            for sp, n in reaction.net_stoichiometry.items():
                net_effect[lookup[sp]] = n
            channels.append(
                ReactionChannel(
                    rate_fn=_mass_action_rate(reaction.rate, columns, stoich),
                    net_effect=net_effect,
                    name=str(reaction),
                )
            )
        return tuple(channels)

    def __repr__(self) -> str:
        return f"ReactionNetwork(species={self.species}, reactions={len(self.reactions)})"
