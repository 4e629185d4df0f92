"""
Capability interfaces every optimization goal implements.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from clusterbalance.analyzer.actions import ActionAcceptance, BalancingAction
from clusterbalance.analyzer.options import OptimizationOptions
from clusterbalance.model.cluster import ClusterModel
from clusterbalance.model.stats import ClusterModelStats


class ClusterModelStatsComparator(ABC):
    """Judges whether an optimization round improved a goal's statistics."""

    @abstractmethod
    def compare(self, stats1: ClusterModelStats, stats2: ClusterModelStats) -> int:
        """
        Compare two statistics snapshots.

        Args:
            stats1: Candidate (post-optimization) statistics
            stats2: Reference (pre-optimization) statistics

        Returns:
            Positive if stats1 is preferred, 0 if equivalent, negative if stats2 is preferred
        """
        pass

    @abstractmethod
    def explain_last_comparison(self) -> Optional[str]:
        """Explain the last comparison that did not favour stats1."""
        pass

    def is_improvement(self, stats1: ClusterModelStats, stats2: ClusterModelStats) -> bool:
        """Whether stats1 is strictly better than stats2."""
        return self.compare(stats1, stats2) > 0


class Goal(ABC):
    """
    An optimization goal.

    Goals run in priority order. Each goal moves replicas to satisfy itself
    while every action it takes must be accepted by the goals optimized
    before it.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Stable goal identifier."""
        pass

    @abstractmethod
    def optimize(
        self,
        cluster_model: ClusterModel,
        optimized_goals: Sequence["Goal"],
        optimization_options: OptimizationOptions,
    ) -> bool:
        """
        Optimize the cluster model for this goal.

        Args:
            cluster_model: Cluster state, mutated in place
            optimized_goals: Goals already optimized, in priority order
            optimization_options: Options for this optimization

        Returns:
            True if every broker ended within this goal's limits
        """
        pass

    @abstractmethod
    def action_acceptance(self, action: BalancingAction, cluster_model: ClusterModel) -> ActionAcceptance:
        """
        Check whether an action proposed by a later goal keeps this goal satisfied.

        Args:
            action: Proposed action
            cluster_model: Current cluster state

        Returns:
            Verdict on the action
        """
        pass

    @abstractmethod
    def cluster_model_stats_comparator(self) -> ClusterModelStatsComparator:
        pass

    def __repr__(self) -> str:
        return self.name
