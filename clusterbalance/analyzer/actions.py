"""
Balancing actions proposed by goals and the verdicts goals return on them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from clusterbalance.model.replica import TopicPartition


class ActionType(str, Enum):
    """Kinds of balancing action."""

    INTER_BROKER_REPLICA_MOVEMENT = "inter_broker_replica_movement"
    INTER_BROKER_REPLICA_SWAP = "inter_broker_replica_swap"
    LEADERSHIP_MOVEMENT = "leadership_movement"


class ActionAcceptance(str, Enum):
    """Verdict of a goal on a proposed action."""

    ACCEPT = "accept"
    REPLICA_REJECT = "replica_reject"    # This replica may not move, others might
    BROKER_REJECT = "broker_reject"      # Nothing may move onto the destination


@dataclass(frozen=True)
class BalancingAction:
    """
    A proposed change to the cluster model.

    Attributes:
        topic_partition: Partition of the replica to act on
        source_broker_id: Broker currently hosting the replica (or leadership)
        destination_broker_id: Broker receiving the replica (or leadership)
        action_type: Kind of action
        destination_topic_partition: Partition of the replica coming back, for swaps
    """
    topic_partition: TopicPartition
    source_broker_id: int
    destination_broker_id: int
    action_type: ActionType
    destination_topic_partition: Optional[TopicPartition] = None

    def __str__(self) -> str:
        return (
            f"{self.action_type.value}({self.topic_partition}: "
            f"{self.source_broker_id} -> {self.destination_broker_id})"
        )
