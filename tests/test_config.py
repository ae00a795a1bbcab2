"""Tests for reconnect and transport configuration."""

from __future__ import annotations

import pytest

from multimodal_live_core.config import ReconnectPolicy, TransportConfig
from multimodal_live_core.errors import LiveInvalidArgument


class TestReconnectPolicy:
    """Tests for ReconnectPolicy."""

    def test_defaults(self):
        """Test three attempts from a two second base."""
        policy = ReconnectPolicy()
        assert policy.max_attempts == 3
        assert policy.base_delay == 2.0

    def test_delays_double(self):
        """Test exponential backoff per attempt."""
        policy = ReconnectPolicy()
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]

    def test_can_retry(self):
        """Test the budget ceiling."""
        policy = ReconnectPolicy(max_attempts=2)
        assert policy.can_retry(0)
        assert policy.can_retry(1)
        assert not policy.can_retry(2)

    def test_zero_attempts_disables_reconnect(self):
        """Test max_attempts=0 never retries."""
        assert not ReconnectPolicy(max_attempts=0).can_retry(0)

    def test_attempts_start_at_one(self):
        """Test attempt numbering is 1-based."""
        with pytest.raises(LiveInvalidArgument):
            ReconnectPolicy().delay_for(0)

    @pytest.mark.parametrize(
        "kwargs", [{"max_attempts": -1}, {"base_delay": 0}, {"base_delay": -1.0}]
    )
    def test_validation(self, kwargs):
        """Test invalid values are rejected."""
        with pytest.raises(LiveInvalidArgument):
            ReconnectPolicy(**kwargs)

    def test_frozen(self):
        """Test policies are immutable."""
        policy = ReconnectPolicy()
        with pytest.raises(AttributeError):
            policy.max_attempts = 5  # type: ignore[misc]


class TestTransportConfig:
    """Tests for TransportConfig."""

    def test_defaults(self):
        """Test default websocket options."""
        config = TransportConfig()
        assert config.ping_interval == 20
        assert config.open_timeout == 15.0
        assert config.close_timeout == 5.0
        assert config.max_size is None

    def test_ping_can_be_disabled(self):
        """Test ping_interval=None is allowed."""
        assert TransportConfig(ping_interval=None).ping_interval is None

    @pytest.mark.parametrize(
        "kwargs",
        [{"open_timeout": 0}, {"close_timeout": -1}, {"ping_interval": 0}],
    )
    def test_validation(self, kwargs):
        """Test invalid values are rejected."""
        with pytest.raises(LiveInvalidArgument):
            TransportConfig(**kwargs)
