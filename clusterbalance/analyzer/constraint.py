"""
Balancing constraints shared by goals.
"""

from dataclasses import dataclass

DEFAULT_REPLICA_COUNT_BALANCE_THRESHOLD = 1.10


@dataclass(frozen=True)
class BalancingConstraint:
    """
    Thresholds goals balance against.

    Attributes:
        replica_count_balance_threshold: Allowed ratio of a broker's replica
            count to the cluster average (1.10 allows 10% either way)
    """
    replica_count_balance_threshold: float = DEFAULT_REPLICA_COUNT_BALANCE_THRESHOLD

    def __post_init__(self):
        if self.replica_count_balance_threshold < 1:
            raise ValueError(
                f"Replica count balance threshold must be at least 1, "
                f"got {self.replica_count_balance_threshold}"
            )

    @property
    def replica_balance_percentage(self) -> float:
        return self.replica_count_balance_threshold - 1

    @classmethod
    def from_config(cls, config) -> "BalancingConstraint":
        """
        Build constraints from the ``analyzer`` section of a Config.

        Args:
            config: Config instance

        Returns:
            Balancing constraint
        """
        return cls(
            replica_count_balance_threshold=float(
                config.get(
                    "analyzer.replica_count_balance_threshold",
                    DEFAULT_REPLICA_COUNT_BALANCE_THRESHOLD,
                )
            ),
        )
