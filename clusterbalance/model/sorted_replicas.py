"""
Tracked sorted replica views.

A SortedReplicas instance keeps a broker's replicas filtered and ordered by
a set of functions. The owning broker inserts and removes entries as
replicas arrive and leave, so a view always reflects every relocation made
since it was created.

Ordering key of a replica, compared left to right:
1. the values of the priority functions (lower first)
2. the score function (lower first)
3. the topic-partition
"""

import bisect
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence, Tuple

from clusterbalance.model.replica import Replica, Resource, TopicPartition

if TYPE_CHECKING:
    from clusterbalance.model.broker import Broker

SelectionFunction = Callable[[Replica], bool]
PriorityFunction = Callable[[Replica], int]
ScoreFunction = Callable[[Replica], float]


def select_immigrants() -> SelectionFunction:
    """Select only immigrant replicas."""
    return lambda replica: replica.is_immigrant


def prioritize_immigrants() -> PriorityFunction:
    """Order immigrant replicas before native ones."""
    return lambda replica: 0 if replica.is_immigrant else 1


def sort_by_metric(resource: Resource) -> ScoreFunction:
    """Order replicas by ascending utilization of a resource."""
    return lambda replica: replica.utilization(resource)


class SortedReplicas:
    """Incrementally maintained, ordered subset of one broker's replicas."""

    def __init__(
        self,
        broker: "Broker",
        selection_func: Optional[SelectionFunction] = None,
        priority_funcs: Sequence[PriorityFunction] = (),
        score_func: Optional[ScoreFunction] = None,
    ):
        """
        Initialize a view over the broker's current replicas.

        Args:
            broker: Broker whose replicas are tracked
            selection_func: Filter; None keeps every replica
            priority_funcs: Functions ordering replicas before the score
            score_func: Ascending sort score; None sorts by topic-partition only
        """
        self._broker = broker
        self._selection_func = selection_func
        self._priority_funcs = tuple(priority_funcs)
        self._score_func = score_func

        self._keys: List[Tuple] = []
        self._replicas: List[Replica] = []
        # Key each replica was inserted under; replica attributes may change later.
        self._key_by_tp: Dict[TopicPartition, Tuple] = {}

        for replica in broker.replicas:
            self.add(replica)

    def _key(self, replica: Replica) -> Tuple:
        priorities = tuple(func(replica) for func in self._priority_funcs)
        score = self._score_func(replica) if self._score_func else 0.0
        return (priorities, score, replica.topic_partition)

    def add(self, replica: Replica) -> None:
        """
        Insert a replica that arrived on the broker.

        Args:
            replica: Replica now hosted by the broker
        """
        if self._selection_func is not None and not self._selection_func(replica):
            return
        if replica.topic_partition in self._key_by_tp:
            return

        key = self._key(replica)
        index = bisect.bisect_left(self._keys, key)
        self._keys.insert(index, key)
        self._replicas.insert(index, replica)
        self._key_by_tp[replica.topic_partition] = key

    def remove(self, replica: Replica) -> None:
        """
        Remove a replica that left the broker.

        Args:
            replica: Replica no longer hosted by the broker
        """
        key = self._key_by_tp.pop(replica.topic_partition, None)
        if key is None:
            return

        index = bisect.bisect_left(self._keys, key)
        del self._keys[index]
        del self._replicas[index]

    def sorted_replicas(self) -> List[Replica]:
        """
        Get the tracked replicas in order.

        Returns:
            A copy of the ordered replicas, safe to iterate while relocating
        """
        return list(self._replicas)

    def __len__(self) -> int:
        return len(self._replicas)
