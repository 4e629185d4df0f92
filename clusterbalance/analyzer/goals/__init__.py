"""
Optimization goals.
"""

from clusterbalance.analyzer.goals.abstract_goal import AbstractGoal
from clusterbalance.analyzer.goals.goal import ClusterModelStatsComparator, Goal
from clusterbalance.analyzer.goals.replica_distribution import (
    ReplicaDistributionGoal,
    ReplicaDistributionGoalStatsComparator,
    balance_limits,
)

__all__ = [
    "Goal",
    "ClusterModelStatsComparator",
    "AbstractGoal",
    "ReplicaDistributionGoal",
    "ReplicaDistributionGoalStatsComparator",
    "balance_limits",
]
