"""
clusterbalance - replica distribution balancing for partitioned storage clusters.

This package implements a goal-based rebalancing optimizer with:
- An in-memory cluster model of brokers and replicas
- Incrementally maintained sorted replica views
- A replica distribution goal that drains overloaded and dead brokers
  and fills underloaded and new ones
- A goal optimizer chaining goals in priority order
"""

__version__ = "0.1.0"

from clusterbalance import analyzer, model

__all__ = [
    "analyzer",
    "model",
]
