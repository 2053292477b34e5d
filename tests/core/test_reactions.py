"""
Unit tests for pathweight.core.reactions module.
"""

import pytest
import numpy as np

from pathweight.core.reactions import Reaction, ReactionChannel, ReactionNetwork


@pytest.fixture
def network():
    """Dimerization plus a reaction reading an external species E."""
    return ReactionNetwork.from_reactions(
        [
            Reaction("k", reactants={"A": 2}, products={"B": 1}),
            Reaction("c", reactants={"E": 1, "B": 1}, products={"E": 1}),
            Reaction(0.5, products={"A": 1}),
        ]
    )


class TestReaction:
    """Test stoichiometry bookkeeping."""

    def test_net_stoichiometry_omits_catalysts(self):
        r = Reaction("k", reactants={"S": 1}, products={"S": 1, "X": 1})
        assert r.net_stoichiometry == {"X": 1}
        assert r.species == ["S", "X"]

    def test_str(self):
        r = Reaction("mu", reactants={"X": 1})
        assert str(r) == "mu, X --> ∅"


class TestReactionChannel:
    """Test channel validation."""

    def test_zero_net_effect(self):
        with pytest.raises(ValueError, match="zero net effect"):
            ReactionChannel(rate_fn=lambda u, p: 1.0, net_effect=[0, 0])

    def test_net_effect_read_only(self):
        ch = ReactionChannel(rate_fn=lambda u, p: 1.0, net_effect=[1, 0])
        with pytest.raises(ValueError):
            ch.net_effect[0] = 3


class TestReactionNetwork:
    """Test species layout and channel construction."""

    def test_species_inferred_in_order(self, network):
        assert network.species == ["A", "B", "E"]
        assert network.n_species == 3

    def test_independent_and_dependent(self, network):
        assert network.independent_species() == ["A", "B"]
        assert network.dependent_species() == ["E"]

    def test_duplicate_species(self):
        with pytest.raises(ValueError, match="Duplicate"):
            ReactionNetwork(species=["A", "A"])

    def test_species_indices(self, network):
        assert network.species_indices(["E", "A"]) == [2, 0]
        with pytest.raises(ValueError):
            network.species_indices(["Z"])

    def test_mass_action_propensities(self, network):
        channels = network.channels()
        u = np.array([4, 3, 2])
        params = {"k": 2.0, "c": 0.1}
        # k * C(4, 2)
        assert np.isclose(channels[0].rate(u, params), 2.0 * 6)
        assert np.isclose(channels[1].rate(u, params), 0.1 * 2 * 3)
        assert np.isclose(channels[2].rate(u, params), 0.5)

    def test_net_effects(self, network):
        effects = [list(ch.net_effect) for ch in network.channels()]
        assert effects == [[-2, 1, 0], [0, -1, 0], [1, 0, 0]]

    def test_channels_for_layout(self, network):
        channels = network.channels(["E", "B", "A", "Y"])
        assert list(channels[0].net_effect) == [0, 1, -2, 0]
        u = np.array([2, 3, 4, 0])
        assert np.isclose(channels[1].rate(u, {"c": 1.0}), 6.0)

    def test_layout_missing_species(self, network):
        with pytest.raises(ValueError, match="missing from layout"):
            network.channels(["A", "B"])

    def test_merge(self):
        sn = ReactionNetwork.from_reactions([Reaction("k", products={"S": 1})])
        xn = ReactionNetwork.from_reactions(
            [Reaction("r", reactants={"S": 1}, products={"S": 1, "X": 1})]
        )
        joint = sn.merge(xn)
        assert joint.species == ["S", "X"]
        assert len(joint.reactions) == 2
        assert xn.species == ["S", "X"]
