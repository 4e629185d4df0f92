"""Tests for configuration loading."""

import pytest

from clusterbalance.analyzer import BalancingConstraint, OptimizationOptions
from clusterbalance.utils.config import DEFAULT_CONFIG_PATH, Config, get_config, reset_config


@pytest.fixture
def config_file(tmp_path):
    """Write a configuration file."""
    path = tmp_path / "clusterbalance.yaml"
    path.write_text(
        "analyzer:\n"
        "  replica_count_balance_threshold: 1.25\n"
        "optimization:\n"
        "  only_move_immigrant_replicas: true\n"
        "  excluded_topics: [audit, metrics]\n"
        "  excluded_brokers_for_replica_move: [5]\n"
    )
    return str(path)


class TestConfig:
    """Test Config."""

    def test_packaged_defaults(self, monkeypatch):
        """Test defaults load from the file inside the package."""
        monkeypatch.delenv("REPLICA_COUNT_BALANCE_THRESHOLD", raising=False)

        config = Config()

        assert DEFAULT_CONFIG_PATH.parent.parent.name == "clusterbalance"
        assert DEFAULT_CONFIG_PATH.exists()
        assert config.get("analyzer.replica_count_balance_threshold") == 1.10
        assert config.get("optimization.excluded_topics") == []

    def test_file_values(self, config_file, monkeypatch):
        """Test values from a configuration file."""
        monkeypatch.delenv("REPLICA_COUNT_BALANCE_THRESHOLD", raising=False)
        config = Config(config_file)

        assert config.get("analyzer.replica_count_balance_threshold") == 1.25
        assert config.get("analyzer.missing", "fallback") == "fallback"

    def test_env_override(self, config_file, monkeypatch):
        """Test environment variables win over the file."""
        monkeypatch.setenv("REPLICA_COUNT_BALANCE_THRESHOLD", "1.5")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        config = Config(config_file)

        assert config.get("analyzer.replica_count_balance_threshold") == 1.5
        assert config.get("logging.level") == "DEBUG"

    def test_set_nested(self):
        """Test dot-notation set creates sections."""
        config = Config()

        config.set("a.b.c", 3)

        assert config.get("a.b.c") == 3
        assert config.get("a.b") == {"c": 3}

    def test_constraint_from_config(self, config_file, monkeypatch):
        """Test building the balancing constraint."""
        monkeypatch.delenv("REPLICA_COUNT_BALANCE_THRESHOLD", raising=False)
        constraint = BalancingConstraint.from_config(Config(config_file))

        assert constraint.replica_count_balance_threshold == 1.25
        assert constraint.replica_balance_percentage == pytest.approx(0.25)

    def test_options_from_config(self, config_file):
        """Test building optimization options."""
        options = OptimizationOptions.from_config(Config(config_file))

        assert options.only_move_immigrant_replicas is True
        assert options.excluded_topics == frozenset({"audit", "metrics"})
        assert options.excluded_brokers_for_replica_move == frozenset({5})

    def test_global_config(self):
        """Test the global instance is created once."""
        reset_config()
        try:
            assert get_config() is get_config()
        finally:
            reset_config()
