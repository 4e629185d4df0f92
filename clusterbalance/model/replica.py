"""
Replica and topic-partition types for the cluster model.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, Optional

if TYPE_CHECKING:
    from clusterbalance.model.broker import Broker


@dataclass(frozen=True, order=True)
class TopicPartition:
    """
    Represents a topic-partition pair.

    Attributes:
        topic: Topic name
        partition: Partition number
    """
    topic: str
    partition: int

    def __str__(self) -> str:
        return f"{self.topic}-{self.partition}"


class Resource(str, Enum):
    """Resources a replica consumes on its broker."""

    CPU = "cpu"
    NW_IN = "nw_in"
    NW_OUT = "nw_out"
    DISK = "disk"


class Replica:
    """
    One copy of a partition, resident on exactly one broker.

    A replica remembers the broker it was created on. When its current
    broker differs from that one, the replica is an immigrant: it was
    relocated during the current optimization.
    """

    def __init__(
        self,
        topic_partition: TopicPartition,
        broker: "Broker",
        is_leader: bool = False,
        load: Optional[Dict[Resource, float]] = None,
    ):
        """
        Initialize replica.

        Args:
            topic_partition: Partition this replica belongs to
            broker: Broker currently hosting the replica
            is_leader: Whether this replica leads its partition
            load: Per-resource utilization of this replica
        """
        self.topic_partition = topic_partition
        self.broker = broker
        self.original_broker = broker
        self.is_leader = is_leader
        self.load: Dict[Resource, float] = dict(load or {})

    @property
    def is_immigrant(self) -> bool:
        return self.broker.id != self.original_broker.id

    def utilization(self, resource: Resource) -> float:
        """
        Get utilization of a resource.

        Args:
            resource: Resource to look up

        Returns:
            Utilization, 0.0 when unknown
        """
        return self.load.get(resource, 0.0)

    def __repr__(self) -> str:
        return (
            f"Replica(tp={self.topic_partition}, broker={self.broker.id}, "
            f"original_broker={self.original_broker.id}, leader={self.is_leader})"
        )
