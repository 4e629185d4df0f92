"""
Options shaping a single optimization.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable


@dataclass(frozen=True)
class OptimizationOptions:
    """
    Read-only options supplied once per optimization.

    Attributes:
        excluded_topics: Topics whose replicas must not be moved
        only_move_immigrant_replicas: Only move replicas already relocated in this optimization
        excluded_brokers_for_replica_move: Brokers that may not receive replicas
    """
    excluded_topics: FrozenSet[str] = field(default_factory=frozenset)
    only_move_immigrant_replicas: bool = False
    excluded_brokers_for_replica_move: FrozenSet[int] = field(default_factory=frozenset)

    @classmethod
    def create(
        cls,
        excluded_topics: Iterable[str] = (),
        only_move_immigrant_replicas: bool = False,
        excluded_brokers_for_replica_move: Iterable[int] = (),
    ) -> "OptimizationOptions":
        """Build options from any iterables."""
        return cls(
            excluded_topics=frozenset(excluded_topics),
            only_move_immigrant_replicas=only_move_immigrant_replicas,
            excluded_brokers_for_replica_move=frozenset(excluded_brokers_for_replica_move),
        )

    @classmethod
    def from_config(cls, config) -> "OptimizationOptions":
        """
        Build options from the ``optimization`` section of a Config.

        Args:
            config: Config instance

        Returns:
            Optimization options
        """
        return cls.create(
            excluded_topics=config.get("optimization.excluded_topics") or (),
            only_move_immigrant_replicas=bool(config.get("optimization.only_move_immigrant_replicas", False)),
            excluded_brokers_for_replica_move=config.get("optimization.excluded_brokers_for_replica_move") or (),
        )
