"""Parse the flat <playerId>.(host|port|password) configuration map."""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .const import CONF_BINDINGS, CONF_HOST, CONF_PASSWORD, CONF_PORT, DEFAULT_PORT
from .errors import ConfigError, InvalidConfigValue, UnknownConfigKey

_LOGGER = logging.getLogger(__name__)

PLAYER_KEY_PATTERN = re.compile(r"^(.*?)\.(host|port|password)$")

# Keys owned by the hosting framework, passed through untouched
RESERVED_KEYS = frozenset({CONF_BINDINGS})


@dataclass
class PlayerSettings:
    """Connection settings for one player, as read from configuration."""

    host: str = ""
    port: int = DEFAULT_PORT
    password: str | None = None


@dataclass
class ParsedConfig:
    """Result of parsing a configuration map.

    Bad keys are collected in ``errors``; the remaining keys still apply.
    """

    players: dict[str, PlayerSettings] = field(default_factory=dict)
    errors: list[ConfigError] = field(default_factory=list)
    bindings: dict[str, str] = field(default_factory=dict)


def parse_player_config(config: Mapping[str, Any]) -> ParsedConfig:
    """Split a flat key/value map into per-player settings."""
    parsed = ParsedConfig()

    for key, value in config.items():
        if key in RESERVED_KEYS:
            if key == CONF_BINDINGS and isinstance(value, Mapping):
                parsed.bindings = {str(k): str(v) for k, v in value.items()}
            continue

        try:
            player_id, setting, converted = _parse_key(key, value)
        except ConfigError as err:
            _LOGGER.warning("Ignoring configuration key: %s", err)
            parsed.errors.append(err)
            continue

        settings = parsed.players.setdefault(player_id, PlayerSettings())
        setattr(settings, setting, converted)

    for player_id, settings in list(parsed.players.items()):
        if not settings.host:
            err = InvalidConfigValue(
                f"{player_id}.{CONF_HOST}", "a host is required for every player"
            )
            _LOGGER.warning("Ignoring player %s: %s", player_id, err)
            parsed.errors.append(err)
            del parsed.players[player_id]

    _LOGGER.debug(
        "Parsed %d players (%d configuration errors)",
        len(parsed.players),
        len(parsed.errors),
    )
    return parsed


def _parse_key(key: str, value: Any) -> tuple[str, str, Any]:
    match = PLAYER_KEY_PATTERN.match(key)
    if match is None or not match.group(1):
        raise UnknownConfigKey(
            key, "does not follow the expected pattern '<playerId>.<host|port|password>'"
        )
    player_id, setting = match.group(1), match.group(2)

    if setting == CONF_HOST:
        host = str(value).strip()
        if not host:
            raise InvalidConfigValue(key, "host must not be empty")
        return player_id, setting, host
    if setting == CONF_PORT:
        try:
            port = int(value)
        except (TypeError, ValueError) as err:
            raise InvalidConfigValue(key, f"invalid port {value!r}") from err
        if not 0 < port < 65536:
            raise InvalidConfigValue(key, f"port out of range: {port}")
        return player_id, setting, port
    if setting == CONF_PASSWORD:
        return player_id, setting, str(value) if value else None
    raise UnknownConfigKey(key, f"the given config key '{setting}' is unknown")
