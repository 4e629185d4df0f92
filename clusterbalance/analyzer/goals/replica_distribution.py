"""
Replica distribution goal.

Moves replicas so the number of replicas on each alive broker is
- under: ceil(average replicas per alive broker * (1 + balance percentage))
- above: floor(average replicas per alive broker * max(0, 1 - balance percentage))

Dead brokers are drained completely. New brokers are filled before any
existing broker below the lower limit.
"""

import heapq
import math
from typing import List, Optional, Sequence, Set, Tuple

from clusterbalance.analyzer.actions import ActionAcceptance, ActionType, BalancingAction
from clusterbalance.analyzer.constraint import BalancingConstraint
from clusterbalance.analyzer.errors import OptimizationFailureError
from clusterbalance.analyzer.goals.abstract_goal import AbstractGoal
from clusterbalance.analyzer.goals.goal import ClusterModelStatsComparator, Goal
from clusterbalance.analyzer.options import OptimizationOptions
from clusterbalance.analyzer.utils import EPSILON, SortedBrokerSet, compare
from clusterbalance.model.broker import Broker
from clusterbalance.model.cluster import ClusterModel
from clusterbalance.model.replica import Resource
from clusterbalance.model.sorted_replicas import (
    prioritize_immigrants,
    select_immigrants,
    sort_by_metric,
)
from clusterbalance.model.stats import ClusterModelStats, Statistic
from clusterbalance.utils.logging import get_logger

logger = get_logger(__name__)

LIMIT_PRECISION = 9


def balance_limits(num_replicas: int, num_alive_brokers: int, balance_percentage: float) -> Tuple[int, int, float]:
    """
    Compute the acceptable replica count band per alive broker.

    Args:
        num_replicas: Replicas to spread
        num_alive_brokers: Alive brokers to spread them over
        balance_percentage: Allowed deviation from the average (0.1 = 10%)

    Returns:
        (lower limit, upper limit, average)

    Raises:
        ZeroDivisionError: If there are no alive brokers
    """
    average = num_replicas / num_alive_brokers
    # Rounding drops float noise, e.g. 10 * 1.1 == 11.000000000000002.
    upper = math.ceil(round(average * (1 + balance_percentage), LIMIT_PRECISION))
    lower = math.floor(round(average * max(0.0, 1 - balance_percentage), LIMIT_PRECISION))
    return lower, upper, average


class ReplicaDistributionGoal(AbstractGoal):
    """
    Soft goal balancing the replica count of every broker.

    Brokers that could not be brought within the limits are recorded in
    broker_ids_above_balance_upper_limit / broker_ids_under_balance_lower_limit
    for diagnostics; they do not fail the optimization.
    """

    def __init__(self, balancing_constraint: Optional[BalancingConstraint] = None):
        super().__init__(balancing_constraint)
        self._balance_upper_limit = 0
        self._balance_lower_limit = 0
        self._avg_replicas_on_alive_broker = 0.0
        self._self_healing_dead_brokers_only = False
        self._broker_ids_above_balance_upper_limit: Set[int] = set()
        self._broker_ids_under_balance_lower_limit: Set[int] = set()

    @property
    def balance_upper_limit(self) -> int:
        return self._balance_upper_limit

    @property
    def balance_lower_limit(self) -> int:
        return self._balance_lower_limit

    @property
    def broker_ids_above_balance_upper_limit(self) -> Set[int]:
        return set(self._broker_ids_above_balance_upper_limit)

    @property
    def broker_ids_under_balance_lower_limit(self) -> Set[int]:
        return set(self._broker_ids_under_balance_lower_limit)

    def balance_percentage(self) -> float:
        return self.balancing_constraint.replica_balance_percentage

    def num_interested_replicas(self, cluster_model: ClusterModel) -> int:
        return cluster_model.num_replicas()

    # Lifecycle

    def init_goal_state(self, cluster_model: ClusterModel, optimization_options: OptimizationOptions) -> None:
        self._self_healing_dead_brokers_only = False
        self._broker_ids_above_balance_upper_limit = set()
        self._broker_ids_under_balance_lower_limit = set()

        num_alive_brokers = len(cluster_model.alive_brokers())
        if num_alive_brokers == 0:
            raise OptimizationFailureError(self.name, "Cannot compute balance limits: cluster has no alive brokers.")

        self._balance_lower_limit, self._balance_upper_limit, self._avg_replicas_on_alive_broker = balance_limits(
            self.num_interested_replicas(cluster_model),
            num_alive_brokers,
            self.balance_percentage(),
        )
        logger.debug(
            "Initialized balance limits",
            goal=self.name,
            average=self._avg_replicas_on_alive_broker,
            lower=self._balance_lower_limit,
            upper=self._balance_upper_limit,
        )

        cluster_model.track_sorted_replicas(
            self.name,
            selection_func=select_immigrants() if optimization_options.only_move_immigrant_replicas else None,
            priority_funcs=[prioritize_immigrants()],
            score_func=sort_by_metric(Resource.DISK),
        )

    def update_goal_state(self, cluster_model: ClusterModel, optimization_options: OptimizationOptions) -> None:
        try:
            self._update_balance_state(cluster_model)
        except OptimizationFailureError:
            cluster_model.untrack_sorted_replicas(self.name)
            raise

        if self._finished:
            cluster_model.untrack_sorted_replicas(self.name)

    def _update_balance_state(self, cluster_model: ClusterModel) -> None:
        # Excluded topics are still counted towards the balance; only their moves are skipped.
        if self._broker_ids_above_balance_upper_limit:
            logger.warning(
                "Replica count above balance limit",
                goal=self.name,
                broker_ids=sorted(self._broker_ids_above_balance_upper_limit),
                upper_limit=self._balance_upper_limit,
            )
            self._succeeded = False
        if self._broker_ids_under_balance_lower_limit:
            logger.warning(
                "Replica count under balance limit",
                goal=self.name,
                broker_ids=sorted(self._broker_ids_under_balance_lower_limit),
                lower_limit=self._balance_lower_limit,
            )
            self._succeeded = False

        remaining = sorted(b.id for b in cluster_model.dead_brokers() if b.num_replicas > 0)
        if remaining:
            if self._self_healing_dead_brokers_only:
                raise OptimizationFailureError(
                    self.name,
                    f"Cannot move all replicas away from dead brokers {remaining}.",
                )
            self._self_healing_dead_brokers_only = True
            self._broker_ids_above_balance_upper_limit.clear()
            self._broker_ids_under_balance_lower_limit.clear()
            logger.warning(
                "Omitting balance limit to relocate remaining replicas from dead brokers",
                goal=self.name,
                dead_broker_ids=remaining,
            )
            return

        self.finish()

    def brokers_to_balance(self, cluster_model: ClusterModel) -> List[Broker]:
        if self._self_healing_dead_brokers_only:
            return cluster_model.dead_brokers()
        return cluster_model.brokers()

    # Acceptance

    def action_acceptance(self, action: BalancingAction, cluster_model: ClusterModel) -> ActionAcceptance:
        """
        Check whether an action keeps both brokers within the balance limits.

        A replica movement is accepted if, after the move, the destination
        is not above the upper limit and the source is not under the lower
        limit (zero for a dead source).

        Raises:
            ValueError: For an unknown action type
        """
        if action.action_type in (ActionType.INTER_BROKER_REPLICA_SWAP, ActionType.LEADERSHIP_MOVEMENT):
            return ActionAcceptance.ACCEPT

        if action.action_type == ActionType.INTER_BROKER_REPLICA_MOVEMENT:
            source = cluster_model.broker(action.source_broker_id)
            destination = cluster_model.broker(action.destination_broker_id)
            if (self._is_under_upper_limit_after_add(destination)
                    and self._is_above_lower_limit_after_remove(source)):
                return ActionAcceptance.ACCEPT
            return ActionAcceptance.REPLICA_REJECT

        raise ValueError(f"Unsupported balancing action {action.action_type} is provided.")

    def self_satisfied(self, cluster_model: ClusterModel, action: BalancingAction) -> bool:
        if (self._self_healing_dead_brokers_only
                and action.action_type == ActionType.INTER_BROKER_REPLICA_MOVEMENT
                and not cluster_model.broker(action.source_broker_id).is_alive):
            return True
        return self.action_acceptance(action, cluster_model) == ActionAcceptance.ACCEPT

    def _is_under_upper_limit_after_add(self, broker: Broker) -> bool:
        return broker.num_replicas + 1 <= (self._balance_upper_limit if broker.is_alive else 0)

    def _is_above_lower_limit_after_remove(self, broker: Broker) -> bool:
        return broker.num_replicas - 1 >= (self._balance_lower_limit if broker.is_alive else 0)

    # Rebalancing

    def rebalance_for_broker(
        self,
        broker: Broker,
        cluster_model: ClusterModel,
        optimized_goals: Sequence[Goal],
        optimization_options: OptimizationOptions,
    ) -> None:
        logger.debug(
            "Rebalancing broker",
            broker_id=broker.id,
            lower=self._balance_lower_limit,
            upper=self._balance_upper_limit,
        )
        num_replicas = broker.num_replicas
        require_less = num_replicas > self._balance_upper_limit if broker.is_alive else num_replicas > 0
        require_more = broker.is_alive and num_replicas < self._balance_lower_limit

        if broker.is_alive and not require_more and not require_less:
            return
        if cluster_model.new_brokers() and require_more and not broker.is_new:
            # New brokers are filled first.
            return
        self_healing = bool(cluster_model.dead_brokers()) and broker.is_alive
        if ((self_healing or optimization_options.only_move_immigrant_replicas)
                and require_less and not broker.immigrant_replicas):
            return

        if require_less and self._rebalance_by_moving_replicas_out(
                broker, cluster_model, optimized_goals, optimization_options):
            self._broker_ids_above_balance_upper_limit.add(broker.id)
            logger.debug(
                "Failed to sufficiently decrease replica count",
                broker_id=broker.id,
                replicas=broker.num_replicas,
            )
        elif require_more and self._rebalance_by_moving_replicas_in(
                broker, cluster_model, optimized_goals, optimization_options):
            self._broker_ids_under_balance_lower_limit.add(broker.id)
            logger.debug(
                "Failed to sufficiently increase replica count",
                broker_id=broker.id,
                replicas=broker.num_replicas,
            )
        else:
            logger.debug(
                "Balanced replica count",
                broker_id=broker.id,
                replicas=broker.num_replicas,
            )

    def _rebalance_by_moving_replicas_out(
        self,
        broker: Broker,
        cluster_model: ClusterModel,
        optimized_goals: Sequence[Goal],
        optimization_options: OptimizationOptions,
    ) -> bool:
        """
        Move replicas off an overloaded or dead broker.

        Returns:
            True if the broker is still above its limit
        """
        excluded_topics = optimization_options.excluded_topics
        if self._self_healing_dead_brokers_only:
            eligible = cluster_model.alive_brokers()
        else:
            eligible = [b for b in cluster_model.alive_brokers() if b.num_replicas < self._balance_upper_limit]
        candidate_brokers = SortedBrokerSet(eligible)
        threshold = self._balance_upper_limit if broker.is_alive else 0

        # Ascending disk usage, immigrants first.
        for replica in broker.tracked_sorted_replicas(self.name).sorted_replicas():
            if self.should_exclude(replica, excluded_topics):
                continue

            destination = self.maybe_apply_balancing_action(
                cluster_model,
                replica,
                candidate_brokers,
                ActionType.INTER_BROKER_REPLICA_MOVEMENT,
                optimized_goals,
                optimization_options,
            )
            if destination is None:
                continue

            if broker.num_replicas <= threshold:
                return False

            candidate_brokers.discard(destination)
            if destination.num_replicas < self._balance_upper_limit or self._self_healing_dead_brokers_only:
                candidate_brokers.add(destination)

        return broker.num_replicas > 0

    def _rebalance_by_moving_replicas_in(
        self,
        broker: Broker,
        cluster_model: ClusterModel,
        optimized_goals: Sequence[Goal],
        optimization_options: OptimizationOptions,
    ) -> bool:
        """
        Move replicas onto an underloaded broker, draining the most loaded source first.

        Returns:
            True if the broker is still under its limit
        """
        excluded_topics = optimization_options.excluded_topics
        threshold = self._balance_lower_limit if broker.is_alive else 0
        has_dead_brokers = bool(cluster_model.dead_brokers())

        # Most replicas first, ties by ascending broker id.
        eligible_brokers = [
            (-b.num_replicas, b.id, b)
            for b in cluster_model.alive_brokers()
            if b.num_replicas > self._balance_lower_limit
        ]
        heapq.heapify(eligible_brokers)
        candidate_brokers = [broker]

        while eligible_brokers:
            _, _, source = heapq.heappop(eligible_brokers)

            replicas_to_move = source.tracked_sorted_replicas(self.name).sorted_replicas()
            if has_dead_brokers and source.is_alive:
                replicas_to_move = [r for r in replicas_to_move if r.is_immigrant]

            for replica in replicas_to_move:
                if self.should_exclude(replica, excluded_topics):
                    continue

                destination = self.maybe_apply_balancing_action(
                    cluster_model,
                    replica,
                    candidate_brokers,
                    ActionType.INTER_BROKER_REPLICA_MOVEMENT,
                    optimized_goals,
                    optimization_options,
                )
                # A source that never gives up a replica is not re-enqueued.
                if destination is None:
                    continue

                if broker.num_replicas >= threshold:
                    return False

                if eligible_brokers and source.num_replicas < -eligible_brokers[0][0]:
                    heapq.heappush(eligible_brokers, (-source.num_replicas, source.id, source))
                    break

        return True

    def cluster_model_stats_comparator(self) -> ClusterModelStatsComparator:
        return ReplicaDistributionGoalStatsComparator(self.name)


class ReplicaDistributionGoalStatsComparator(ClusterModelStatsComparator):
    """Prefers the statistics with the lower replica count standard deviation."""

    def __init__(self, goal_name: str, epsilon: float = EPSILON):
        self._goal_name = goal_name
        self._epsilon = epsilon
        self._reason_for_last_negative_result: Optional[str] = None

    def compare(self, stats1: ClusterModelStats, stats2: ClusterModelStats) -> int:
        st_dev1 = stats1.replica_stats[Statistic.ST_DEV]
        st_dev2 = stats2.replica_stats[Statistic.ST_DEV]
        result = compare(st_dev2, st_dev1, self._epsilon)
        if result <= 0:
            self._reason_for_last_negative_result = (
                f"Violated {self._goal_name}. [Std Deviation of Replica Distribution] "
                f"post-optimization:{st_dev1:.3f} pre-optimization:{st_dev2:.3f}"
            )
        return result

    def explain_last_comparison(self) -> Optional[str]:
        return self._reason_for_last_negative_result
