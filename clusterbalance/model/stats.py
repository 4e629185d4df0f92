"""
Aggregate statistics over a cluster model.
"""

import statistics
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Sequence


class Statistic(str, Enum):
    """Statistics computed over per-broker values."""

    AVG = "avg"
    MAX = "max"
    MIN = "min"
    ST_DEV = "st_dev"


def compute_statistics(values: Sequence[float]) -> Dict[Statistic, float]:
    """
    Compute statistics over per-broker values.

    Standard deviation is the population standard deviation. An empty
    input yields zero for every statistic.

    Args:
        values: One value per broker

    Returns:
        Statistic -> value
    """
    if not values:
        return {stat: 0.0 for stat in Statistic}

    return {
        Statistic.AVG: statistics.fmean(values),
        Statistic.MAX: float(max(values)),
        Statistic.MIN: float(min(values)),
        Statistic.ST_DEV: statistics.pstdev(values),
    }


@dataclass
class ClusterModelStats:
    """
    Snapshot of cluster balance, taken over alive brokers.

    Attributes:
        num_alive_brokers: Alive brokers at snapshot time
        num_replicas: Total replicas in the cluster
        replica_stats: Statistics of replica count per alive broker
        leader_replica_stats: Statistics of leader count per alive broker
    """
    num_alive_brokers: int
    num_replicas: int
    replica_stats: Dict[Statistic, float] = field(default_factory=dict)
    leader_replica_stats: Dict[Statistic, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging."""
        return {
            "num_alive_brokers": self.num_alive_brokers,
            "num_replicas": self.num_replicas,
            "replica_stats": {k.value: v for k, v in self.replica_stats.items()},
            "leader_replica_stats": {k.value: v for k, v in self.leader_replica_stats.items()},
        }
