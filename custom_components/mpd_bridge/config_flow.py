"""Config flow for MPD Bridge: entries come from YAML import only."""
from __future__ import annotations

import logging
from typing import Any

from homeassistant.config_entries import ConfigFlow, ConfigFlowResult

from .config import parse_player_config
from .const import DEFAULT_NAME, DOMAIN

_LOGGER = logging.getLogger(__name__)


class MpdBridgeConfigFlow(ConfigFlow, domain=DOMAIN):
    """Create or update the single MPD Bridge entry from configuration.yaml."""

    VERSION = 1

    async def async_step_import(
        self, import_data: dict[str, Any]
    ) -> ConfigFlowResult:
        """Handle the flat player map imported from YAML."""
        parsed = parse_player_config(import_data)
        if not parsed.players:
            _LOGGER.warning("No valid player configured for %s", DOMAIN)
            return self.async_abort(reason="no_players")

        existing = await self.async_set_unique_id(DOMAIN)
        if existing is not None:
            # Replace rather than merge so removed player keys disappear;
            # the entry's update listener re-applies the new map
            self.hass.config_entries.async_update_entry(
                existing, data=dict(import_data)
            )
            return self.async_abort(reason="already_configured")

        _LOGGER.info("Creating %s entry for players %s", DOMAIN, sorted(parsed.players))
        return self.async_create_entry(title=DEFAULT_NAME, data=dict(import_data))
