"""Connection tuning for live sessions."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import LiveInvalidArgument

NORMAL_CLOSURE = 1000
ABNORMAL_CLOSURE = 1006


@dataclass(frozen=True, slots=True)
class ReconnectPolicy:
    """Bounded exponential backoff for abnormal closures.

    Attributes:
        max_attempts: Reconnects allowed before the session stays closed
        base_delay: Delay before the first reconnect (seconds)
    """

    max_attempts: int = 3
    base_delay: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise LiveInvalidArgument("max_attempts must not be negative")
        if self.base_delay <= 0:
            raise LiveInvalidArgument("base_delay must be positive")

    def can_retry(self, attempts: int) -> bool:
        """Return True while the reconnect budget is not exhausted."""
        return attempts < self.max_attempts

    def delay_for(self, attempt: int) -> float:
        """Delay for the given 1-based attempt number."""
        if attempt < 1:
            raise LiveInvalidArgument("attempt numbers start at 1")
        return self.base_delay * (2 ** (attempt - 1))


@dataclass(frozen=True, slots=True)
class TransportConfig:
    """WebSocket options passed to the transport layer."""

    ping_interval: int | None = 20
    open_timeout: float = 15.0
    close_timeout: float = 5.0
    max_size: int | None = None

    def __post_init__(self) -> None:
        if self.open_timeout <= 0:
            raise LiveInvalidArgument("open_timeout must be positive")
        if self.close_timeout <= 0:
            raise LiveInvalidArgument("close_timeout must be positive")
        if self.ping_interval is not None and self.ping_interval <= 0:
            raise LiveInvalidArgument("ping_interval must be positive or None")
