"""
In-memory cluster model.

Holds brokers and replicas, answers the queries goals make while
optimizing, and applies relocations. Goals never create or destroy
replicas; they only request moves through relocate_replica and
relocate_leadership.
"""

from typing import Dict, List, Optional, Sequence

from clusterbalance.model.broker import Broker, BrokerState
from clusterbalance.model.replica import Replica, Resource, TopicPartition
from clusterbalance.model.sorted_replicas import (
    PriorityFunction,
    ScoreFunction,
    SelectionFunction,
)
from clusterbalance.model.stats import ClusterModelStats, compute_statistics
from clusterbalance.utils.logging import get_logger

logger = get_logger(__name__)


class ClusterModel:
    """
    Mutable state of the cluster under optimization.

    Not thread-safe: one optimization round mutates the model in place.
    """

    def __init__(self):
        """Initialize an empty cluster model."""
        self._brokers: Dict[int, Broker] = {}

        # Partition -> replicas, in replica list order (leader preference order)
        self._partitions: Dict[TopicPartition, List[Replica]] = {}

    # Building the model

    def create_broker(
        self,
        broker_id: int,
        rack: Optional[str] = None,
        state: BrokerState = BrokerState.ALIVE,
    ) -> Broker:
        """
        Add a broker to the model.

        Args:
            broker_id: Unique broker identifier
            rack: Optional rack ID
            state: Initial broker state

        Returns:
            The created broker

        Raises:
            ValueError: If the broker already exists
        """
        if broker_id in self._brokers:
            raise ValueError(f"Broker {broker_id} already exists")

        broker = Broker(broker_id, rack=rack, state=state)
        self._brokers[broker_id] = broker
        return broker

    def create_replica(
        self,
        topic: str,
        partition: int,
        broker_id: int,
        is_leader: bool = False,
        load: Optional[Dict[Resource, float]] = None,
    ) -> Replica:
        """
        Place a replica of a partition on a broker.

        Args:
            topic: Topic name
            partition: Partition number
            broker_id: Hosting broker ID
            is_leader: Whether the replica leads the partition
            load: Per-resource utilization

        Returns:
            The created replica

        Raises:
            ValueError: If the broker already hosts the partition
        """
        broker = self.broker(broker_id)
        tp = TopicPartition(topic, partition)
        if broker.replica(tp) is not None:
            raise ValueError(f"Broker {broker_id} already hosts a replica of {tp}")

        replica = Replica(tp, broker, is_leader=is_leader, load=load)
        broker.add_replica(replica)
        self._partitions.setdefault(tp, []).append(replica)
        return replica

    def set_broker_state(self, broker_id: int, state: BrokerState) -> None:
        """
        Change broker liveness.

        Args:
            broker_id: Broker ID
            state: New state
        """
        self.broker(broker_id).state = state

    # Queries

    def broker(self, broker_id: int) -> Broker:
        """
        Look up a broker.

        Raises:
            KeyError: If the broker is unknown
        """
        try:
            return self._brokers[broker_id]
        except KeyError:
            raise KeyError(f"Unknown broker {broker_id}") from None

    def brokers(self) -> List[Broker]:
        """All brokers, ascending by id."""
        return [self._brokers[broker_id] for broker_id in sorted(self._brokers)]

    def alive_brokers(self) -> List[Broker]:
        return [b for b in self.brokers() if b.is_alive]

    def dead_brokers(self) -> List[Broker]:
        return [b for b in self.brokers() if not b.is_alive]

    def new_brokers(self) -> List[Broker]:
        return [b for b in self.brokers() if b.is_new]

    def num_replicas(self) -> int:
        return sum(len(replicas) for replicas in self._partitions.values())

    def num_leader_replicas(self) -> int:
        return sum(1 for replicas in self._partitions.values() for r in replicas if r.is_leader)

    def topics(self) -> List[str]:
        return sorted({tp.topic for tp in self._partitions})

    def partition(self, tp: TopicPartition) -> List[Replica]:
        """
        Get the replicas of a partition.

        Raises:
            KeyError: If the partition is unknown
        """
        try:
            return list(self._partitions[tp])
        except KeyError:
            raise KeyError(f"Unknown partition {tp}") from None

    def replica(self, tp: TopicPartition, broker_id: int) -> Replica:
        """
        Get the replica of a partition on a broker.

        Raises:
            ValueError: If the broker does not host the partition
        """
        replica = self.broker(broker_id).replica(tp)
        if replica is None:
            raise ValueError(f"Broker {broker_id} does not host a replica of {tp}")
        return replica

    # Relocation primitives

    def relocate_replica(self, tp: TopicPartition, source_broker_id: int, destination_broker_id: int) -> None:
        """
        Move one replica between brokers.

        Leadership, if held, moves with the replica.

        Args:
            tp: Topic-partition of the replica
            source_broker_id: Broker currently hosting the replica
            destination_broker_id: Broker to move the replica to

        Raises:
            ValueError: If the source does not host the partition or the
                destination already does
        """
        source = self.broker(source_broker_id)
        destination = self.broker(destination_broker_id)
        if destination.replica(tp) is not None:
            raise ValueError(f"Broker {destination_broker_id} already hosts a replica of {tp}")

        replica = source.remove_replica(tp)
        replica.broker = destination
        destination.add_replica(replica)

        logger.debug(
            "Relocated replica",
            topic=tp.topic,
            partition=tp.partition,
            source_broker_id=source_broker_id,
            destination_broker_id=destination_broker_id,
        )

    def relocate_leadership(self, tp: TopicPartition, source_broker_id: int, destination_broker_id: int) -> bool:
        """
        Move partition leadership between two of its replicas.

        Args:
            tp: Topic-partition
            source_broker_id: Broker hosting the current leader
            destination_broker_id: Broker hosting the new leader

        Returns:
            True if leadership moved, False if the source was not the leader
        """
        source_replica = self.replica(tp, source_broker_id)
        if not source_replica.is_leader:
            return False

        destination_replica = self.replica(tp, destination_broker_id)
        source_replica.is_leader = False
        destination_replica.is_leader = True

        logger.debug(
            "Relocated leadership",
            topic=tp.topic,
            partition=tp.partition,
            source_broker_id=source_broker_id,
            destination_broker_id=destination_broker_id,
        )
        return True

    # Tracked sorted replicas

    def track_sorted_replicas(
        self,
        name: str,
        selection_func: Optional[SelectionFunction] = None,
        priority_funcs: Sequence[PriorityFunction] = (),
        score_func: Optional[ScoreFunction] = None,
    ) -> None:
        """
        Register a named sorted replica view on every broker.

        Args:
            name: View name, usually the goal name
            selection_func: Filter; None keeps every replica
            priority_funcs: Functions ordering replicas before the score
            score_func: Ascending sort score
        """
        for broker in self._brokers.values():
            broker.track_sorted_replicas(name, selection_func, priority_funcs, score_func)

    def untrack_sorted_replicas(self, name: str) -> None:
        """Release the named sorted replica view on every broker."""
        for broker in self._brokers.values():
            broker.untrack_sorted_replicas(name)

    # Snapshots

    def replica_distribution(self) -> Dict[TopicPartition, List[int]]:
        """
        Get broker IDs hosting each partition.

        Returns:
            Topic-partition -> broker IDs, leader first
        """
        distribution = {}
        for tp, replicas in self._partitions.items():
            ordered = sorted(replicas, key=lambda r: not r.is_leader)
            distribution[tp] = [r.broker.id for r in ordered]
        return distribution

    def leader_distribution(self) -> Dict[TopicPartition, Optional[int]]:
        """
        Get the leader broker of each partition.

        Returns:
            Topic-partition -> leader broker ID, None when leaderless
        """
        leaders = {}
        for tp, replicas in self._partitions.items():
            leader = next((r for r in replicas if r.is_leader), None)
            leaders[tp] = leader.broker.id if leader else None
        return leaders

    def get_cluster_stats(self) -> ClusterModelStats:
        """
        Compute balance statistics over alive brokers.

        Returns:
            Cluster statistics snapshot
        """
        alive = self.alive_brokers()
        return ClusterModelStats(
            num_alive_brokers=len(alive),
            num_replicas=self.num_replicas(),
            replica_stats=compute_statistics([b.num_replicas for b in alive]),
            leader_replica_stats=compute_statistics([len(b.leader_replicas) for b in alive]),
        )

    def __repr__(self) -> str:
        return f"ClusterModel(brokers={len(self._brokers)}, replicas={self.num_replicas()})"
