"""Errors raised by the analyzer."""


class OptimizationFailureError(Exception):
    """
    A goal could not complete an optimization round.

    Raised for cluster-wide failures such as an empty set of alive brokers,
    or replicas that cannot be moved off dead brokers. Partial balancing of
    individual brokers is not a failure.
    """

    def __init__(self, goal_name: str, message: str):
        self.goal_name = goal_name
        super().__init__(f"[{goal_name}] {message}")
