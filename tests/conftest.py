"""Shared fixtures for cluster model tests."""

from typing import Iterable, Sequence

import pytest

from clusterbalance.model import BrokerState, ClusterModel, Resource


def build_cluster(
    replica_counts: Sequence[int],
    dead: Iterable[int] = (),
    new: Iterable[int] = (),
    topic: str = "topic",
) -> ClusterModel:
    """
    Build a cluster of single-replica partitions.

    Broker i gets replica_counts[i] replicas. Every replica belongs to its
    own partition, so any replica can move to any other broker. Disk usage
    grows with the partition number.
    """
    dead = set(dead)
    new = set(new)
    model = ClusterModel()

    for broker_id in range(len(replica_counts)):
        if broker_id in dead:
            state = BrokerState.DEAD
        elif broker_id in new:
            state = BrokerState.NEW
        else:
            state = BrokerState.ALIVE
        model.create_broker(broker_id, state=state)

    partition = 0
    for broker_id, count in enumerate(replica_counts):
        for _ in range(count):
            model.create_replica(
                topic,
                partition,
                broker_id,
                is_leader=True,
                load={Resource.DISK: float(partition)},
            )
            partition += 1

    return model


@pytest.fixture
def cluster_builder():
    """Builder for single-replica-partition clusters."""
    return build_cluster
