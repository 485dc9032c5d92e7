"""The MPD Bridge integration."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import voluptuous as vol

from homeassistant.config_entries import SOURCE_IMPORT, ConfigEntry, ConfigEntryState
from homeassistant.core import HomeAssistant, ServiceCall
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.typing import ConfigType

from .bridge import MpdBridge
from .const import ATTR_ITEM, DOMAIN, SERVICE_SEND_COMMAND
from .helpers import (
    SEND_COMMAND_SCHEMA,
    HassItemBus,
    HassSweepScheduler,
    command_from_service_data,
)

_LOGGER = logging.getLogger(__name__)

CONFIG_SCHEMA = vol.Schema(
    {
        DOMAIN: vol.Schema(
            {
                cv.string: vol.Any(
                    cv.string, vol.Coerce(int), {cv.string: cv.string}
                )
            }
        )
    },
    extra=vol.ALLOW_EXTRA,
)


@dataclass
class MpdBridgeRuntimeData:
    """Runtime data for the MPD Bridge integration."""

    bridge: MpdBridge


type MpdBridgeConfigEntry = ConfigEntry[MpdBridgeRuntimeData]


def entry_config(entry: ConfigEntry) -> dict[str, Any]:
    """Flat configuration map of an entry (options override data)."""
    return {**entry.data, **entry.options}


async def async_setup(hass: HomeAssistant, config: ConfigType) -> bool:
    """Import the YAML configuration into a config entry."""
    if DOMAIN in config:
        hass.async_create_task(
            hass.config_entries.flow.async_init(
                DOMAIN, context={"source": SOURCE_IMPORT}, data=dict(config[DOMAIN])
            )
        )
    return True


async def async_setup_entry(hass: HomeAssistant, entry: MpdBridgeConfigEntry) -> bool:
    """Set up MPD Bridge from a config entry."""
    _LOGGER.info("Setting up MPD Bridge integration")

    bridge = MpdBridge(HassItemBus(hass), HassSweepScheduler(hass))
    errors = await bridge.async_update_config(entry_config(entry))
    for err in errors:
        _LOGGER.warning("Configuration error: %s", err)

    entry.runtime_data = MpdBridgeRuntimeData(bridge=bridge)
    entry.async_on_unload(entry.add_update_listener(_async_update_listener))

    if not hass.services.has_service(DOMAIN, SERVICE_SEND_COMMAND):
        hass.services.async_register(
            DOMAIN,
            SERVICE_SEND_COMMAND,
            _async_make_send_command(hass),
            schema=SEND_COMMAND_SCHEMA,
        )

    _LOGGER.info(
        "MPD Bridge integration setup complete (%d players, %d bound items)",
        len(bridge.registry),
        len(bridge.bindings),
    )
    return True


async def async_unload_entry(hass: HomeAssistant, entry: MpdBridgeConfigEntry) -> bool:
    """Unload a config entry."""
    await entry.runtime_data.bridge.async_shutdown()
    if not _loaded_entries(hass, exclude=entry):
        hass.services.async_remove(DOMAIN, SERVICE_SEND_COMMAND)
    return True


async def _async_update_listener(
    hass: HomeAssistant, entry: MpdBridgeConfigEntry
) -> None:
    """Re-apply the configuration after the entry changed."""
    _LOGGER.debug("Configuration of %s updated", entry.entry_id)
    errors = await entry.runtime_data.bridge.async_update_config(entry_config(entry))
    for err in errors:
        _LOGGER.warning("Configuration error: %s", err)


def _loaded_entries(
    hass: HomeAssistant, exclude: ConfigEntry | None = None
) -> list[MpdBridgeConfigEntry]:
    return [
        entry
        for entry in hass.config_entries.async_entries(DOMAIN)
        if entry.state is ConfigEntryState.LOADED and entry is not exclude
    ]


def _async_make_send_command(hass: HomeAssistant):
    async def _async_send_command(call: ServiceCall) -> None:
        item = call.data[ATTR_ITEM]
        command = command_from_service_data(call.data)
        for entry in _loaded_entries(hass):
            await entry.runtime_data.bridge.async_receive_command(item, command)

    return _async_send_command
