"""
Analyzer: goals, balancing actions and the goal optimizer.
"""

from clusterbalance.analyzer.actions import ActionAcceptance, ActionType, BalancingAction
from clusterbalance.analyzer.constraint import BalancingConstraint
from clusterbalance.analyzer.errors import OptimizationFailureError
from clusterbalance.analyzer.goals import (
    AbstractGoal,
    ClusterModelStatsComparator,
    Goal,
    ReplicaDistributionGoal,
)
from clusterbalance.analyzer.optimizer import ExecutionProposal, GoalOptimizer, OptimizerResult
from clusterbalance.analyzer.options import OptimizationOptions

__all__ = [
    # Actions
    "ActionAcceptance",
    "ActionType",
    "BalancingAction",
    # Configuration
    "BalancingConstraint",
    "OptimizationOptions",
    # Goals
    "Goal",
    "AbstractGoal",
    "ClusterModelStatsComparator",
    "ReplicaDistributionGoal",
    # Optimizer
    "GoalOptimizer",
    "OptimizerResult",
    "ExecutionProposal",
    # Errors
    "OptimizationFailureError",
]
