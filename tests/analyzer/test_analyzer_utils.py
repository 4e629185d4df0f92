"""Tests for analyzer helpers."""

import pytest

from clusterbalance.analyzer.actions import ActionAcceptance, ActionType, BalancingAction
from clusterbalance.analyzer.utils import (
    EPSILON,
    SortedBrokerSet,
    compare,
    is_proposal_acceptable_for_optimized_goals,
)
from clusterbalance.model import TopicPartition


class StubGoal:
    """Goal returning a fixed verdict and counting calls."""

    def __init__(self, name, acceptance):
        self.name = name
        self.acceptance = acceptance
        self.calls = 0

    def action_acceptance(self, action, cluster_model):
        self.calls += 1
        return self.acceptance


class TestCompare:
    """Test compare."""

    def test_within_epsilon_is_equal(self):
        """Test values closer than epsilon compare equal."""
        assert compare(1.0, 1.0 + EPSILON / 2) == 0

    def test_greater_and_less(self):
        """Test ordering beyond epsilon."""
        assert compare(2.0, 1.0) == 1
        assert compare(1.0, 2.0) == -1


class TestAcceptanceChain:
    """Test is_proposal_acceptable_for_optimized_goals."""

    @pytest.fixture
    def action(self):
        return BalancingAction(TopicPartition("t", 0), 0, 1, ActionType.INTER_BROKER_REPLICA_MOVEMENT)

    def test_all_accept(self, action):
        """Test acceptance when every goal accepts."""
        goals = [StubGoal("a", ActionAcceptance.ACCEPT), StubGoal("b", ActionAcceptance.ACCEPT)]

        assert is_proposal_acceptable_for_optimized_goals(goals, action, None) == ActionAcceptance.ACCEPT

    def test_short_circuits_on_first_rejection(self, action):
        """Test later goals are not asked after a rejection."""
        first = StubGoal("a", ActionAcceptance.BROKER_REJECT)
        second = StubGoal("b", ActionAcceptance.REPLICA_REJECT)

        result = is_proposal_acceptable_for_optimized_goals([first, second], action, None)

        assert result == ActionAcceptance.BROKER_REJECT
        assert second.calls == 0

    def test_no_optimized_goals(self, action):
        """Test an empty chain accepts."""
        assert is_proposal_acceptable_for_optimized_goals([], action, None) == ActionAcceptance.ACCEPT


class TestSortedBrokerSet:
    """Test SortedBrokerSet."""

    def test_orders_by_count_then_id(self, cluster_builder):
        """Test ascending replica count with ties broken by id."""
        model = cluster_builder([3, 1, 3, 2])

        brokers = SortedBrokerSet(model.brokers())

        assert [b.id for b in brokers] == [1, 3, 0, 2]

    def test_reinsert_after_relocation(self, cluster_builder):
        """Test discard and add restore order after counts change."""
        model = cluster_builder([3, 1, 3, 2])
        brokers = SortedBrokerSet(model.brokers())

        model.relocate_replica(TopicPartition("topic", 0), 0, 1)
        model.relocate_replica(TopicPartition("topic", 1), 0, 1)
        brokers.discard(model.broker(1))
        brokers.add(model.broker(1))
        brokers.discard(model.broker(0))
        brokers.add(model.broker(0))

        assert [b.id for b in brokers] == [0, 3, 1, 2]
        assert len(brokers) == 4

    def test_discard_missing_is_noop(self, cluster_builder):
        """Test discarding a broker not in the set."""
        model = cluster_builder([1, 1])
        brokers = SortedBrokerSet([model.broker(0)])

        brokers.discard(model.broker(1))

        assert model.broker(0) in brokers
        assert model.broker(1) not in brokers
