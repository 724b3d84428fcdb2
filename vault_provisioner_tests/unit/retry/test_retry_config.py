"""Tests for retry configuration and tenacity integration."""

import pytest

from vault_provisioner.retry import RetryConfiguration, RetryPresets
from vault_provisioner.retry.tenacity_base import get_stop_strategy, get_wait_strategy


class TestRetryConfiguration:
    """Test RetryConfiguration dataclass."""

    def test_default_values(self):
        """Test default configuration values."""
        config = RetryConfiguration()
        assert config.max_attempts == 3
        assert config.base_delay == 1.0
        assert config.max_delay == 60.0
        assert config.exponential_base == 2.0
        assert config.jitter == 0.1
        assert config.fixed_delay is False
        assert config.max_elapsed is None

    def test_custom_values(self):
        """Test custom configuration values."""
        config = RetryConfiguration(max_attempts=5, base_delay=0.5, fixed_delay=True)
        assert config.max_attempts == 5
        assert config.base_delay == 0.5
        assert config.fixed_delay is True

    @pytest.mark.parametrize("kwargs", [
        {"max_attempts": 0},
        {"base_delay": -1},
        {"max_delay": 0},
        {"exponential_base": 0.5},
        {"jitter": -0.1},
        {"max_elapsed": 0},
    ])
    def test_validation(self, kwargs):
        """Test invalid values are rejected."""
        with pytest.raises(ValueError):
            RetryConfiguration(**kwargs)


class TestStrategies:
    """Test tenacity strategy construction."""

    def test_fixed_wait(self):
        """Fixed delay waits base_delay every time."""
        wait = get_wait_strategy(RetryConfiguration(base_delay=0.5, fixed_delay=True))
        assert wait.wait_fixed == 0.5

    def test_elapsed_limit_combines_stops(self):
        """max_elapsed adds a time based stop."""
        stop = get_stop_strategy(RetryConfiguration(max_attempts=5, max_elapsed=30.0))
        assert type(stop).__name__ == "stop_any"

    def test_presets(self):
        """Test namespace presets match server behaviour."""
        assert RetryPresets.NAMESPACE_POLL.max_attempts == 11
        assert RetryPresets.NAMESPACE_POLL.fixed_delay is True
        assert RetryPresets.NAMESPACE_DELETE.max_elapsed == 30.0
