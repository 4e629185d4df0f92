"""
Goal optimizer.

Runs goals in priority order over one cluster model, so every goal's
moves are checked against the goals optimized before it, and turns the
resulting replica placement into execution proposals.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from clusterbalance.analyzer.constraint import BalancingConstraint
from clusterbalance.analyzer.errors import OptimizationFailureError
from clusterbalance.analyzer.goals.abstract_goal import AbstractGoal
from clusterbalance.analyzer.goals.goal import Goal
from clusterbalance.analyzer.options import OptimizationOptions
from clusterbalance.model.cluster import ClusterModel
from clusterbalance.model.replica import TopicPartition
from clusterbalance.model.stats import ClusterModelStats
from clusterbalance.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ExecutionProposal:
    """
    Replica placement change for one partition.

    Attributes:
        topic_partition: Partition to reassign
        old_replicas: Broker IDs before optimization, leader first
        new_replicas: Broker IDs after optimization, leader first
        old_leader: Leader broker before optimization
        new_leader: Leader broker after optimization
    """
    topic_partition: TopicPartition
    old_replicas: List[int]
    new_replicas: List[int]
    old_leader: Optional[int] = None
    new_leader: Optional[int] = None

    def replicas_to_add(self) -> List[int]:
        return [r for r in self.new_replicas if r not in self.old_replicas]

    def replicas_to_remove(self) -> List[int]:
        return [r for r in self.old_replicas if r not in self.new_replicas]

    def has_replica_action(self) -> bool:
        return set(self.old_replicas) != set(self.new_replicas)

    def has_leader_action(self) -> bool:
        return self.old_leader != self.new_leader


@dataclass
class OptimizerResult:
    """
    Outcome of running every goal.

    Attributes:
        goal_results: Goal name -> whether the goal ended fully satisfied
        stats_before: Statistics before the first goal ran
        stats_after: Statistics after the last goal ran
        proposals: Placement changes, ordered by topic-partition
    """
    goal_results: Dict[str, bool] = field(default_factory=dict)
    stats_before: Optional[ClusterModelStats] = None
    stats_after: Optional[ClusterModelStats] = None
    proposals: List[ExecutionProposal] = field(default_factory=list)

    @property
    def violated_goals(self) -> List[str]:
        return [name for name, succeeded in self.goal_results.items() if not succeeded]


class GoalOptimizer:
    """Applies goals to a cluster model in priority order."""

    def __init__(
        self,
        goals: Sequence[Goal],
        balancing_constraint: Optional[BalancingConstraint] = None,
    ):
        """
        Initialize optimizer.

        Args:
            goals: Goals, highest priority first
            balancing_constraint: Constraint for goals built without their own

        Raises:
            ValueError: If two goals share a name
        """
        names = [goal.name for goal in goals]
        if len(names) != len(set(names)):
            raise ValueError(f"Goal names must be unique, got {names}")

        self.goals = list(goals)
        self.balancing_constraint = balancing_constraint

        if balancing_constraint is not None:
            for goal in self.goals:
                if isinstance(goal, AbstractGoal):
                    goal.use_default_balancing_constraint(balancing_constraint)

    def optimizations(
        self,
        cluster_model: ClusterModel,
        optimization_options: Optional[OptimizationOptions] = None,
    ) -> OptimizerResult:
        """
        Optimize the cluster model for every goal.

        Args:
            cluster_model: Cluster state, mutated in place
            optimization_options: Options; defaults when None

        Returns:
            Optimization result

        Raises:
            OptimizationFailureError: If a goal fails or leaves its statistics worse
        """
        options = optimization_options or OptimizationOptions()
        result = OptimizerResult(stats_before=cluster_model.get_cluster_stats())

        initial_replicas = cluster_model.replica_distribution()
        initial_leaders = cluster_model.leader_distribution()
        optimized_goals: List[Goal] = []

        for goal in self.goals:
            stats_before_goal = cluster_model.get_cluster_stats()
            self_healing = bool(cluster_model.dead_brokers())

            succeeded = goal.optimize(cluster_model, list(optimized_goals), options)

            stats_after_goal = cluster_model.get_cluster_stats()
            # Evacuating dead brokers may legitimately spread alive brokers further apart.
            if not self_healing:
                comparator = goal.cluster_model_stats_comparator()
                if comparator.compare(stats_after_goal, stats_before_goal) < 0:
                    raise OptimizationFailureError(
                        goal.name,
                        "Optimized result is worse than before. "
                        f"Reason: {comparator.explain_last_comparison()}",
                    )

            optimized_goals.append(goal)
            result.goal_results[goal.name] = succeeded

            logger.info(
                "Goal optimized",
                goal=goal.name,
                succeeded=succeeded,
                stats=stats_after_goal.to_dict(),
            )

        result.stats_after = cluster_model.get_cluster_stats()
        result.proposals = self._proposals(cluster_model, initial_replicas, initial_leaders)

        logger.info(
            "Optimization complete",
            proposals=len(result.proposals),
            violated_goals=result.violated_goals,
        )
        return result

    @staticmethod
    def _proposals(
        cluster_model: ClusterModel,
        initial_replicas: Dict[TopicPartition, List[int]],
        initial_leaders: Dict[TopicPartition, Optional[int]],
    ) -> List[ExecutionProposal]:
        final_replicas = cluster_model.replica_distribution()
        final_leaders = cluster_model.leader_distribution()

        proposals = []
        for tp in sorted(final_replicas):
            proposal = ExecutionProposal(
                topic_partition=tp,
                old_replicas=initial_replicas[tp],
                new_replicas=final_replicas[tp],
                old_leader=initial_leaders[tp],
                new_leader=final_leaders[tp],
            )
            if proposal.has_replica_action() or proposal.has_leader_action():
                proposals.append(proposal)
        return proposals
