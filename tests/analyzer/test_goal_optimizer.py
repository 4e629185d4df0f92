"""Tests for the goal optimizer."""

import pytest

from clusterbalance.analyzer import (
    ActionAcceptance,
    BalancingConstraint,
    ClusterModelStatsComparator,
    ExecutionProposal,
    Goal,
    GoalOptimizer,
    OptimizationFailureError,
    OptimizationOptions,
    ReplicaDistributionGoal,
)
from clusterbalance.model import Statistic, TopicPartition


class RejectDestinationGoal(Goal):
    """Goal that forbids any action onto one broker."""

    class _Comparator(ClusterModelStatsComparator):
        def __init__(self, result):
            self.result = result

        def compare(self, stats1, stats2):
            return self.result

        def explain_last_comparison(self):
            return "always worse" if self.result < 0 else None

    def __init__(self, broker_id, comparison=0):
        self.broker_id = broker_id
        self.comparison = comparison
        self.seen_optimized_goals = None

    @property
    def name(self):
        return f"RejectDestination{self.broker_id}"

    def optimize(self, cluster_model, optimized_goals, optimization_options):
        self.seen_optimized_goals = list(optimized_goals)
        return True

    def action_acceptance(self, action, cluster_model):
        if action.destination_broker_id == self.broker_id:
            return ActionAcceptance.BROKER_REJECT
        return ActionAcceptance.ACCEPT

    def cluster_model_stats_comparator(self):
        return self._Comparator(self.comparison)


def replica_goal():
    return ReplicaDistributionGoal(BalancingConstraint(replica_count_balance_threshold=1.10))


class TestGoalOptimizer:
    """Test GoalOptimizer."""

    def test_optimizations_balance_cluster(self, cluster_builder):
        """Test proposals move replicas off the overloaded broker."""
        model = cluster_builder([20, 5, 5, 10])
        optimizer = GoalOptimizer([replica_goal()])

        result = optimizer.optimizations(model)

        assert result.goal_results == {"ReplicaDistributionGoal": True}
        assert result.violated_goals == []
        assert len(result.proposals) == 9
        assert (result.stats_after.replica_stats[Statistic.ST_DEV]
                < result.stats_before.replica_stats[Statistic.ST_DEV])
        for proposal in result.proposals:
            assert proposal.old_replicas == [0]
            assert proposal.new_replicas in ([1], [2])
            assert proposal.replicas_to_remove() == [0]

    def test_prior_goal_acceptance_is_honoured(self, cluster_builder):
        """Test a higher priority goal's rejection keeps replicas off a broker."""
        model = cluster_builder([20, 5, 5, 10])
        blocker = RejectDestinationGoal(1)
        goal = replica_goal()
        optimizer = GoalOptimizer([blocker, goal])

        result = optimizer.optimizations(model)

        assert model.broker(1).num_replicas == 5
        assert all(p.new_replicas != [1] for p in result.proposals)
        assert blocker.seen_optimized_goals == []

    def test_later_goals_see_optimized_goals(self, cluster_builder):
        """Test goals receive the goals optimized before them."""
        model = cluster_builder([10, 10])
        goal = replica_goal()
        follower = RejectDestinationGoal(7)

        GoalOptimizer([goal, follower]).optimizations(model)

        assert follower.seen_optimized_goals == [goal]

    def test_regression_fails_optimization(self, cluster_builder):
        """Test a goal whose comparator reports a regression aborts."""
        model = cluster_builder([10, 10])
        optimizer = GoalOptimizer([RejectDestinationGoal(0, comparison=-1)])

        with pytest.raises(OptimizationFailureError, match="always worse"):
            optimizer.optimizations(model)

    def test_regression_ignored_while_self_healing(self, cluster_builder):
        """Test comparisons are skipped when the model has dead brokers."""
        model = cluster_builder([10, 10, 2], dead=[2])
        optimizer = GoalOptimizer([RejectDestinationGoal(0, comparison=-1)])

        result = optimizer.optimizations(model)

        assert result.goal_results == {"RejectDestination0": True}

    def test_self_healing_proposals(self, cluster_builder):
        """Test a dead broker's replicas are all proposed elsewhere."""
        model = cluster_builder([10, 10, 10, 6], dead=[3])

        result = GoalOptimizer([replica_goal()]).optimizations(model)

        assert len(result.proposals) == 6
        assert all(p.replicas_to_remove() == [3] for p in result.proposals)
        assert model.broker(3).num_replicas == 0

    def test_shared_balancing_constraint(self, cluster_builder):
        """Test goals without their own constraint use the optimizer's."""
        model = cluster_builder([20, 5, 5, 10])
        goal = ReplicaDistributionGoal()
        constraint = BalancingConstraint(replica_count_balance_threshold=1.5)

        result = GoalOptimizer([goal], balancing_constraint=constraint).optimizations(model)

        assert goal.balancing_constraint is constraint
        assert (goal.balance_lower_limit, goal.balance_upper_limit) == (5, 15)
        assert model.broker(0).num_replicas == 15
        assert len(result.proposals) == 5

    def test_goal_keeps_own_constraint(self):
        """Test a constraint given to the goal wins over the optimizer's."""
        goal = replica_goal()

        GoalOptimizer([goal], balancing_constraint=BalancingConstraint(replica_count_balance_threshold=1.5))

        assert goal.balancing_constraint.replica_count_balance_threshold == 1.10

    def test_duplicate_goal_names(self):
        """Test goals must have unique names."""
        with pytest.raises(ValueError):
            GoalOptimizer([replica_goal(), replica_goal()])

    def test_excluded_topics_from_options(self, cluster_builder):
        """Test options reach the goals."""
        model = cluster_builder([20, 5, 5, 10], topic="frozen")
        options = OptimizationOptions.create(excluded_topics=["frozen"])

        result = GoalOptimizer([replica_goal()]).optimizations(model, options)

        assert result.proposals == []
        assert result.violated_goals == ["ReplicaDistributionGoal"]


class TestExecutionProposal:
    """Test ExecutionProposal."""

    def test_replica_changes(self):
        """Test replicas to add and remove."""
        proposal = ExecutionProposal(
            topic_partition=TopicPartition("t", 0),
            old_replicas=[1, 2, 3],
            new_replicas=[2, 3, 4],
            old_leader=1,
            new_leader=2,
        )

        assert proposal.replicas_to_add() == [4]
        assert proposal.replicas_to_remove() == [1]
        assert proposal.has_replica_action()
        assert proposal.has_leader_action()

    def test_leader_only_change(self):
        """Test reordering replicas is not a replica action."""
        proposal = ExecutionProposal(
            topic_partition=TopicPartition("t", 0),
            old_replicas=[1, 2],
            new_replicas=[2, 1],
            old_leader=1,
            new_leader=2,
        )

        assert not proposal.has_replica_action()
        assert proposal.has_leader_action()
