"""
Base class for goals that rebalance broker by broker.

Subclasses supply the per-broker rebalance step and the state hooks run
before and after each round. The base class drives the rounds and owns
the relocation primitive every move goes through.
"""

from abc import abstractmethod
from typing import Iterable, List, Optional, Sequence

from clusterbalance.analyzer.actions import ActionAcceptance, ActionType, BalancingAction
from clusterbalance.analyzer.constraint import BalancingConstraint
from clusterbalance.analyzer.goals.goal import Goal
from clusterbalance.analyzer.options import OptimizationOptions
from clusterbalance.analyzer.utils import is_proposal_acceptable_for_optimized_goals
from clusterbalance.model.broker import Broker
from clusterbalance.model.cluster import ClusterModel
from clusterbalance.model.replica import Replica
from clusterbalance.utils.logging import get_logger

logger = get_logger(__name__)


class AbstractGoal(Goal):
    """
    Round-based goal.

    optimize() calls init_goal_state(), then repeats rounds of
    rebalance_for_broker() over brokers_to_balance() followed by
    update_goal_state() until a round marks the goal finished.
    """

    def __init__(self, balancing_constraint: Optional[BalancingConstraint] = None):
        """
        Initialize goal.

        Args:
            balancing_constraint: Thresholds; defaults apply when None
        """
        self._has_own_constraint = balancing_constraint is not None
        self._balancing_constraint = balancing_constraint or BalancingConstraint()
        self._finished = False
        self._succeeded = True

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def balancing_constraint(self) -> BalancingConstraint:
        return self._balancing_constraint

    def use_default_balancing_constraint(self, balancing_constraint: BalancingConstraint) -> None:
        """Adopt a shared constraint unless one was given at construction."""
        if not self._has_own_constraint:
            self._balancing_constraint = balancing_constraint

    def optimize(
        self,
        cluster_model: ClusterModel,
        optimized_goals: Sequence[Goal],
        optimization_options: OptimizationOptions,
    ) -> bool:
        self._succeeded = True
        self._finished = False

        logger.debug("Starting optimization", goal=self.name)

        self.init_goal_state(cluster_model, optimization_options)
        rounds = 0
        while not self._finished:
            rounds += 1
            for broker in self.brokers_to_balance(cluster_model):
                self.rebalance_for_broker(broker, cluster_model, optimized_goals, optimization_options)
            self.update_goal_state(cluster_model, optimization_options)

        logger.info(
            "Finished optimization",
            goal=self.name,
            rounds=rounds,
            succeeded=self._succeeded,
        )
        return self._succeeded

    def finish(self) -> None:
        self._finished = True

    def brokers_to_balance(self, cluster_model: ClusterModel) -> List[Broker]:
        return cluster_model.brokers()

    @abstractmethod
    def init_goal_state(self, cluster_model: ClusterModel, optimization_options: OptimizationOptions) -> None:
        pass

    @abstractmethod
    def update_goal_state(self, cluster_model: ClusterModel, optimization_options: OptimizationOptions) -> None:
        """Close a round; must call finish() once no further round is needed."""
        pass

    @abstractmethod
    def rebalance_for_broker(
        self,
        broker: Broker,
        cluster_model: ClusterModel,
        optimized_goals: Sequence[Goal],
        optimization_options: OptimizationOptions,
    ) -> None:
        pass

    @abstractmethod
    def self_satisfied(self, cluster_model: ClusterModel, action: BalancingAction) -> bool:
        """Whether this goal still holds after the action."""
        pass

    def maybe_apply_balancing_action(
        self,
        cluster_model: ClusterModel,
        replica: Replica,
        candidate_brokers: Iterable[Broker],
        action_type: ActionType,
        optimized_goals: Sequence[Goal],
        optimization_options: OptimizationOptions,
    ) -> Optional[Broker]:
        """
        Apply an action on the first candidate broker that admits it.

        A candidate admits the action when the move is legit, this goal
        stays satisfied and every optimized goal accepts it.

        Args:
            cluster_model: Cluster state
            replica: Replica to act on
            candidate_brokers: Destinations, in preference order
            action_type: Replica movement or leadership movement
            optimized_goals: Previously optimized goals
            optimization_options: Options for this optimization

        Returns:
            The broker the action was applied to, or None

        Raises:
            ValueError: For action types that cannot be applied to a single replica
        """
        if action_type not in (ActionType.INTER_BROKER_REPLICA_MOVEMENT, ActionType.LEADERSHIP_MOVEMENT):
            raise ValueError(f"Unsupported balancing action {action_type} is provided.")

        for broker in self._eligible_brokers(replica, candidate_brokers, action_type, optimization_options):
            action = BalancingAction(
                topic_partition=replica.topic_partition,
                source_broker_id=replica.broker.id,
                destination_broker_id=broker.id,
                action_type=action_type,
            )
            if not self._legit_move(replica, broker, action_type):
                continue
            if not self.self_satisfied(cluster_model, action):
                continue

            acceptance = is_proposal_acceptable_for_optimized_goals(optimized_goals, action, cluster_model)
            if acceptance != ActionAcceptance.ACCEPT:
                continue

            if action_type == ActionType.LEADERSHIP_MOVEMENT:
                cluster_model.relocate_leadership(
                    replica.topic_partition, action.source_broker_id, action.destination_broker_id
                )
            else:
                cluster_model.relocate_replica(
                    replica.topic_partition, action.source_broker_id, action.destination_broker_id
                )
            return broker

        return None

    def _eligible_brokers(
        self,
        replica: Replica,
        candidate_brokers: Iterable[Broker],
        action_type: ActionType,
        optimization_options: OptimizationOptions,
    ) -> List[Broker]:
        excluded = (
            optimization_options.excluded_brokers_for_replica_move
            if action_type == ActionType.INTER_BROKER_REPLICA_MOVEMENT
            else frozenset()
        )
        return [
            b for b in candidate_brokers
            if b.id != replica.broker.id and b.id not in excluded
        ]

    @staticmethod
    def _legit_move(replica: Replica, destination: Broker, action_type: ActionType) -> bool:
        if action_type == ActionType.INTER_BROKER_REPLICA_MOVEMENT:
            return destination.is_alive and destination.replica(replica.topic_partition) is None
        # Leadership can only move to an alive broker already hosting the partition.
        return (
            replica.is_leader
            and destination.is_alive
            and destination.replica(replica.topic_partition) is not None
        )

    @staticmethod
    def should_exclude(replica: Replica, excluded_topics: Iterable[str]) -> bool:
        """
        Whether a replica is excluded from moves.

        Replicas on dead brokers are never excluded; they must be moved off.
        """
        return replica.topic_partition.topic in excluded_topics and replica.broker.is_alive
