"""Tests for tracked sorted replica views."""

import pytest

from clusterbalance.model import (
    ClusterModel,
    Resource,
    TopicPartition,
    prioritize_immigrants,
    select_immigrants,
    sort_by_metric,
)


def disk_order(replicas):
    return [r.topic_partition.partition for r in replicas]


class TestSortedReplicas:
    """Test SortedReplicas."""

    @pytest.fixture
    def model(self):
        """Create two brokers with replicas of varying disk usage."""
        model = ClusterModel()
        model.create_broker(0)
        model.create_broker(1)
        for partition, disk in [(0, 30.0), (1, 10.0), (2, 20.0)]:
            model.create_replica("t", partition, 0, load={Resource.DISK: disk})
        for partition, disk in [(3, 50.0), (4, 5.0)]:
            model.create_replica("t", partition, 1, load={Resource.DISK: disk})
        return model

    def test_sorted_by_disk(self, model):
        """Test replicas are ordered by ascending disk usage."""
        model.track_sorted_replicas("view", score_func=sort_by_metric(Resource.DISK))

        view = model.broker(0).tracked_sorted_replicas("view")

        assert disk_order(view.sorted_replicas()) == [1, 2, 0]
        assert len(view) == 3

    def test_immigrants_prioritized(self, model):
        """Test immigrants come before native replicas."""
        model.track_sorted_replicas(
            "view",
            priority_funcs=[prioritize_immigrants()],
            score_func=sort_by_metric(Resource.DISK),
        )

        model.relocate_replica(TopicPartition("t", 3), 1, 0)

        view = model.broker(0).tracked_sorted_replicas("view")
        assert disk_order(view.sorted_replicas()) == [3, 1, 2, 0]

    def test_view_follows_relocations(self, model):
        """Test the view reflects replicas leaving and arriving."""
        model.track_sorted_replicas("view", score_func=sort_by_metric(Resource.DISK))
        source_view = model.broker(0).tracked_sorted_replicas("view")
        destination_view = model.broker(1).tracked_sorted_replicas("view")

        model.relocate_replica(TopicPartition("t", 1), 0, 1)

        assert disk_order(source_view.sorted_replicas()) == [2, 0]
        assert disk_order(destination_view.sorted_replicas()) == [4, 1, 3]

    def test_selection_keeps_only_immigrants(self, model):
        """Test an immigrant-only view starts empty and fills on moves."""
        model.track_sorted_replicas(
            "view",
            selection_func=select_immigrants(),
            score_func=sort_by_metric(Resource.DISK),
        )
        view = model.broker(1).tracked_sorted_replicas("view")

        assert view.sorted_replicas() == []

        model.relocate_replica(TopicPartition("t", 0), 0, 1)

        assert disk_order(view.sorted_replicas()) == [0]

    def test_sorted_replicas_is_a_copy(self, model):
        """Test iterating the returned list is safe while relocating."""
        model.track_sorted_replicas("view", score_func=sort_by_metric(Resource.DISK))
        view = model.broker(0).tracked_sorted_replicas("view")

        replicas = view.sorted_replicas()
        for replica in replicas:
            model.relocate_replica(replica.topic_partition, 0, 1)

        assert len(replicas) == 3
        assert len(view) == 0

    def test_untrack(self, model):
        """Test releasing a view on every broker."""
        model.track_sorted_replicas("view")

        model.untrack_sorted_replicas("view")

        for broker in model.brokers():
            assert not broker.is_tracking("view")
            with pytest.raises(KeyError):
                broker.tracked_sorted_replicas("view")
