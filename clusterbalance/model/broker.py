"""
Broker state for the cluster model.
"""

from enum import Enum
from typing import Dict, List, Optional, Sequence

from clusterbalance.model.replica import Replica, TopicPartition
from clusterbalance.model.sorted_replicas import (
    PriorityFunction,
    ScoreFunction,
    SelectionFunction,
    SortedReplicas,
)


class BrokerState(str, Enum):
    """Broker liveness as seen by the optimizer."""

    ALIVE = "alive"    # Existing, healthy broker
    NEW = "new"        # Recently added broker; alive and should be filled first
    DEAD = "dead"      # Failed broker; every replica must be moved off


class Broker:
    """
    A cluster node hosting replicas.

    Replicas are only added and removed through the cluster model's
    relocation primitives. Every add/remove keeps the immigrant subset
    and all tracked sorted replica views current.
    """

    def __init__(self, broker_id: int, rack: Optional[str] = None, state: BrokerState = BrokerState.ALIVE):
        """
        Initialize broker.

        Args:
            broker_id: Unique broker identifier
            rack: Optional rack ID
            state: Initial broker state
        """
        self.id = broker_id
        self.rack = rack
        self.state = state

        self._replicas: Dict[TopicPartition, Replica] = {}
        self._immigrant_replicas: Dict[TopicPartition, Replica] = {}
        self._sorted_replicas: Dict[str, SortedReplicas] = {}

    @property
    def is_alive(self) -> bool:
        return self.state != BrokerState.DEAD

    @property
    def is_new(self) -> bool:
        return self.state == BrokerState.NEW

    @property
    def replicas(self) -> List[Replica]:
        return list(self._replicas.values())

    @property
    def num_replicas(self) -> int:
        return len(self._replicas)

    @property
    def immigrant_replicas(self) -> List[Replica]:
        return list(self._immigrant_replicas.values())

    @property
    def leader_replicas(self) -> List[Replica]:
        return [r for r in self._replicas.values() if r.is_leader]

    def replica(self, tp: TopicPartition) -> Optional[Replica]:
        """
        Get the replica of a partition hosted here.

        Args:
            tp: Topic-partition

        Returns:
            Replica or None
        """
        return self._replicas.get(tp)

    def add_replica(self, replica: Replica) -> None:
        """
        Host a replica on this broker.

        Args:
            replica: Replica to add; its broker must already point here
        """
        self._replicas[replica.topic_partition] = replica
        if replica.is_immigrant:
            self._immigrant_replicas[replica.topic_partition] = replica
        for sorted_replicas in self._sorted_replicas.values():
            sorted_replicas.add(replica)

    def remove_replica(self, tp: TopicPartition) -> Replica:
        """
        Stop hosting a replica.

        Args:
            tp: Topic-partition of the replica

        Returns:
            The removed replica

        Raises:
            ValueError: If the broker does not host the partition
        """
        replica = self._replicas.pop(tp, None)
        if replica is None:
            raise ValueError(f"Broker {self.id} does not host a replica of {tp}")

        self._immigrant_replicas.pop(tp, None)
        for sorted_replicas in self._sorted_replicas.values():
            sorted_replicas.remove(replica)
        return replica

    def track_sorted_replicas(
        self,
        name: str,
        selection_func: Optional[SelectionFunction],
        priority_funcs: Sequence[PriorityFunction],
        score_func: Optional[ScoreFunction],
    ) -> None:
        self._sorted_replicas[name] = SortedReplicas(self, selection_func, priority_funcs, score_func)

    def untrack_sorted_replicas(self, name: str) -> None:
        self._sorted_replicas.pop(name, None)

    def tracked_sorted_replicas(self, name: str) -> SortedReplicas:
        """
        Get a tracked sorted replica view by name.

        Raises:
            KeyError: If no view is tracked under the name
        """
        try:
            return self._sorted_replicas[name]
        except KeyError:
            raise KeyError(f"Broker {self.id} has no sorted replicas tracked as {name!r}") from None

    def is_tracking(self, name: str) -> bool:
        return name in self._sorted_replicas

    def __repr__(self) -> str:
        return f"Broker(id={self.id}, state={self.state.value}, replicas={self.num_replicas})"
