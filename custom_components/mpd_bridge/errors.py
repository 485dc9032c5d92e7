"""Error taxonomy for the MPD Bridge integration."""
from __future__ import annotations

from enum import StrEnum


class MpdBridgeError(Exception):
    """Base class for MPD Bridge errors."""


class ConfigError(MpdBridgeError):
    """A configuration key could not be applied."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key


class UnknownConfigKey(ConfigError):
    """Key does not follow the <playerId>.(host|port|password) pattern."""


class InvalidConfigValue(ConfigError):
    """Key is known but its value cannot be used."""


class PlayerConnectionError(MpdBridgeError):
    """Connecting to a daemon failed."""

    def __init__(self, kind: ConnectionErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class CommandError(MpdBridgeError):
    """An inbound command could not be executed."""

    def __init__(self, kind: CommandErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class EventProcessingError(MpdBridgeError):
    """Querying the daemon while handling a notification failed."""


class ConnectionErrorKind(StrEnum):
    """Why a connect attempt left the player disconnected."""

    UNKNOWN_PLAYER = "unknown_player"
    UNKNOWN_HOST = "unknown_host"
    AUTH_FAILED = "auth_failed"
    TIMEOUT = "timeout"
    REFUSED = "refused"


class CommandErrorKind(StrEnum):
    """Why a dispatched command had no effect."""

    PLAYER_UNAVAILABLE = "player_unavailable"
    UNKNOWN_ACTION = "unknown_action"
    UNSUPPORTED_ACTION = "unsupported_action"
    INVALID_PARAM = "invalid_param"
    TRANSPORT = "transport"
