#!/usr/bin/env python3
"""
Replica distribution demo.

Builds a small cluster with one overloaded broker and one dead broker,
runs the replica distribution goal and prints the resulting proposals.
"""

from clusterbalance.analyzer import (
    BalancingConstraint,
    GoalOptimizer,
    OptimizationOptions,
    ReplicaDistributionGoal,
)
from clusterbalance.model import BrokerState, ClusterModel, Resource, Statistic
from clusterbalance.utils.config import get_config
from clusterbalance.utils.logging import configure_from_config


def build_cluster() -> ClusterModel:
    model = ClusterModel()
    for broker_id in range(4):
        model.create_broker(broker_id, rack=f"rack-{broker_id % 2}")
    model.create_broker(4, state=BrokerState.DEAD)

    layout = {0: 20, 1: 5, 2: 5, 3: 10, 4: 4}
    partition = 0
    for broker_id, count in layout.items():
        for _ in range(count):
            model.create_replica(
                "demo-topic",
                partition,
                broker_id,
                is_leader=True,
                load={Resource.DISK: float(partition % 7)},
            )
            partition += 1
    return model


def main():
    config = get_config()
    config.set("logging.format", "console")
    configure_from_config(config)

    print("=" * 60)
    print("clusterbalance - Replica Distribution Demo")
    print("=" * 60)

    model = build_cluster()
    print("\n[1] Replicas per broker before:")
    for broker in model.brokers():
        print(f"  broker {broker.id} ({broker.state.value}): {broker.num_replicas}")

    optimizer = GoalOptimizer(
        [ReplicaDistributionGoal()],
        balancing_constraint=BalancingConstraint.from_config(config),
    )
    result = optimizer.optimizations(model, OptimizationOptions.from_config(config))

    print("\n[2] Replicas per broker after:")
    for broker in model.brokers():
        print(f"  broker {broker.id} ({broker.state.value}): {broker.num_replicas}")

    print(f"\n[3] {len(result.proposals)} proposals:")
    for proposal in result.proposals:
        print(f"  {proposal.topic_partition}: {proposal.old_replicas} -> {proposal.new_replicas}")

    before = result.stats_before.replica_stats[Statistic.ST_DEV]
    after = result.stats_after.replica_stats[Statistic.ST_DEV]
    print(f"\n[4] Replica count std deviation: {before:.3f} -> {after:.3f}")
    print(f"    Violated goals: {result.violated_goals or 'none'}")


if __name__ == "__main__":
    main()
