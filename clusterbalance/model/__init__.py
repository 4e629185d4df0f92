"""
Cluster model consumed and mutated by optimization goals.
"""

from clusterbalance.model.broker import Broker, BrokerState
from clusterbalance.model.cluster import ClusterModel
from clusterbalance.model.replica import Replica, Resource, TopicPartition
from clusterbalance.model.sorted_replicas import (
    SortedReplicas,
    prioritize_immigrants,
    select_immigrants,
    sort_by_metric,
)
from clusterbalance.model.stats import ClusterModelStats, Statistic

__all__ = [
    # Model
    "ClusterModel",
    "Broker",
    "BrokerState",
    "Replica",
    "Resource",
    "TopicPartition",
    # Sorted replicas
    "SortedReplicas",
    "prioritize_immigrants",
    "select_immigrants",
    "sort_by_metric",
    # Stats
    "ClusterModelStats",
    "Statistic",
]
