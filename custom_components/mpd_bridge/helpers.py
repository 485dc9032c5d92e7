"""Home Assistant adapters for the MPD Bridge core."""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime
from typing import Any

import voluptuous as vol

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.event import async_track_time_change
from homeassistant.util import slugify

from .const import (
    ATTR_COMMAND,
    ATTR_ITEM,
    ATTR_NUMBER,
    ATTR_PERCENT,
    ATTR_VALUE,
    DOMAIN,
    EVENT_ITEM_UPDATE,
    VOLUME_MAX,
    VOLUME_MIN,
)
from .models import (
    DecimalCommand,
    InboundCommand,
    ItemValue,
    OnOff,
    Percent,
    PercentCommand,
)

_LOGGER = logging.getLogger(__name__)

SEND_COMMAND_SCHEMA = vol.All(
    vol.Schema(
        {
            vol.Required(ATTR_ITEM): cv.string,
            vol.Exclusive(ATTR_COMMAND, "value"): cv.string,
            vol.Exclusive(ATTR_PERCENT, "value"): vol.All(
                vol.Coerce(int), vol.Range(min=VOLUME_MIN, max=VOLUME_MAX)
            ),
            vol.Exclusive(ATTR_NUMBER, "value"): vol.All(
                vol.Coerce(int), vol.Range(min=0)
            ),
        }
    ),
    cv.has_at_least_one_key(ATTR_COMMAND, ATTR_PERCENT, ATTR_NUMBER),
)


def command_from_service_data(data: Mapping[str, Any]) -> InboundCommand:
    """Build the typed inbound command from validated service data."""
    if ATTR_PERCENT in data:
        return PercentCommand(Percent(data[ATTR_PERCENT]))
    if ATTR_NUMBER in data:
        return DecimalCommand(data[ATTR_NUMBER])
    return data[ATTR_COMMAND]


def item_entity_id(item: str) -> str:
    """Return the state entity id that mirrors an item."""
    return f"{DOMAIN}.{slugify(item)}"


def state_from_value(value: ItemValue) -> str | int:
    if isinstance(value, OnOff):
        return value.value
    if isinstance(value, Percent):
        return value.value
    return value


class HassItemBus:
    """Publish item updates as states and bus events."""

    def __init__(self, hass: HomeAssistant) -> None:
        self._hass = hass

    def publish(self, item: str, value: ItemValue) -> None:
        state = state_from_value(value)
        _LOGGER.debug("Updating item %s to %s", item, state)
        self._hass.states.async_set(item_entity_id(item), state)
        self._hass.bus.async_fire(EVENT_ITEM_UPDATE, {ATTR_ITEM: item, ATTR_VALUE: state})


class HassSweepScheduler:
    """Run coroutines daily at a fixed wall-clock time."""

    def __init__(self, hass: HomeAssistant) -> None:
        self._hass = hass

    def schedule(
        self,
        when: tuple[int, int, int],
        job: Callable[[], Awaitable[Any]],
    ) -> CALLBACK_TYPE:
        hour, minute, second = when

        @callback
        def _async_fire(now: datetime) -> None:
            _LOGGER.debug("Running scheduled reconnect sweep at %s", now)
            self._hass.async_create_background_task(
                job(), name=f"{DOMAIN}_reconnect_sweep"
            )

        return async_track_time_change(
            self._hass, _async_fire, hour=hour, minute=minute, second=second
        )

    def cancel(self, handle: CALLBACK_TYPE) -> None:
        handle()
