"""Constants for the MPD Bridge integration."""
from typing import Final

DOMAIN: Final = "mpd_bridge"

# Config
CONF_BINDINGS: Final = "bindings"  # pass-through key, not a player setting
CONF_HOST: Final = "host"
CONF_PORT: Final = "port"
CONF_PASSWORD: Final = "password"

# Defaults
DEFAULT_NAME: Final = "MPD Bridge"
DEFAULT_PORT: Final = 6600
CONNECTION_TIMEOUT: Final = 5  # seconds
VOLUME_CHANGE_SIZE: Final = 5  # percent per INCREASE / DECREASE
VOLUME_MIN: Final = 0
VOLUME_MAX: Final = 100

# Daily reconnect sweep, as (hour, minute, second)
DEFAULT_SWEEP: Final = (0, 0, 0)

# Idle subsystems the notification stream listens to
IDLE_SUBSYSTEMS: Final = ("mixer", "player", "output")

# Inbound command keys for typed values
COMMAND_PERCENT: Final = "PERCENT"
COMMAND_NUMBER: Final = "NUMBER"

# Home Assistant surface
SERVICE_SEND_COMMAND: Final = "send_command"
EVENT_ITEM_UPDATE: Final = f"{DOMAIN}_item_update"
ATTR_ITEM: Final = "item"
ATTR_COMMAND: Final = "command"
ATTR_PERCENT: Final = "percent"
ATTR_NUMBER: Final = "number"
ATTR_VALUE: Final = "value"
