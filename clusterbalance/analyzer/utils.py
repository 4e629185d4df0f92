"""
Helpers shared by goals and the optimizer.
"""

import bisect
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Iterator, List, Sequence, Tuple

from clusterbalance.analyzer.actions import ActionAcceptance, BalancingAction
from clusterbalance.model.broker import Broker
from clusterbalance.model.cluster import ClusterModel
from clusterbalance.utils.logging import get_logger

if TYPE_CHECKING:
    from clusterbalance.analyzer.goals.goal import Goal

logger = get_logger(__name__)

# Values closer than this are treated as equal when comparing statistics.
EPSILON = 1e-5


def compare(d1: float, d2: float, epsilon: float = EPSILON) -> int:
    """
    Compare two floats with a tolerance.

    Args:
        d1: First value
        d2: Second value
        epsilon: Tolerance

    Returns:
        1 if d1 is greater, -1 if d2 is greater, 0 if within epsilon
    """
    if d2 - d1 > epsilon:
        return -1
    if d1 - d2 > epsilon:
        return 1
    return 0


def is_proposal_acceptable_for_optimized_goals(
    optimized_goals: Sequence["Goal"],
    action: BalancingAction,
    cluster_model: ClusterModel,
) -> ActionAcceptance:
    """
    Check an action against every goal optimized before the current one.

    Goals are asked in priority order; the first rejection is returned.

    Args:
        optimized_goals: Previously optimized goals, in priority order
        action: Proposed action
        cluster_model: Current cluster state

    Returns:
        ACCEPT, or the first rejecting goal's verdict
    """
    for goal in optimized_goals:
        acceptance = goal.action_acceptance(action, cluster_model)
        if acceptance != ActionAcceptance.ACCEPT:
            logger.debug(
                "Action rejected by optimized goal",
                action=str(action),
                goal=goal.name,
                acceptance=acceptance.value,
            )
            return acceptance
    return ActionAcceptance.ACCEPT


def replica_count_key(broker: Broker) -> Tuple[int, int]:
    """Order brokers ascending by replica count, then broker id."""
    return (broker.num_replicas, broker.id)


class SortedBrokerSet:
    """
    Ordered set of brokers whose sort key changes as relocations happen.

    Each broker is stored under the key it had when added. After a broker
    gains or loses replicas, discard it and add it back to restore order.
    """

    def __init__(
        self,
        brokers: Iterable[Broker] = (),
        key: Callable[[Broker], Tuple] = replica_count_key,
    ):
        self._key = key
        self._keys: List[Tuple] = []
        self._brokers: List[Broker] = []
        self._key_by_id: Dict[int, Tuple] = {}

        for broker in brokers:
            self.add(broker)

    def add(self, broker: Broker) -> None:
        if broker.id in self._key_by_id:
            return

        key = self._key(broker)
        index = bisect.bisect_left(self._keys, key)
        self._keys.insert(index, key)
        self._brokers.insert(index, broker)
        self._key_by_id[broker.id] = key

    def discard(self, broker: Broker) -> None:
        key = self._key_by_id.pop(broker.id, None)
        if key is None:
            return

        index = bisect.bisect_left(self._keys, key)
        del self._keys[index]
        del self._brokers[index]

    def __iter__(self) -> Iterator[Broker]:
        return iter(list(self._brokers))

    def __len__(self) -> int:
        return len(self._brokers)

    def __contains__(self, broker: Broker) -> bool:
        return broker.id in self._key_by_id
