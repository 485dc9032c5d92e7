"""Binding provider: which items drive and display which player actions.

Each item carries a binding string of comma separated entries::

    <command>:<playerId>:<action>[:<param>]

``command`` is the inbound token the entry reacts to (``ON``, ``OFF``,
``INCREASE``...), or ``PERCENT`` / ``NUMBER`` for typed values. For example::

    living_power:  "ON:living:play, OFF:living:stop"
    living_volume: "PERCENT:living:volume, INCREASE:living:volume_increase"
    living_zone2:  "ON:living:enable:2, OFF:living:disable:2"
    living_title:  "ON:living:trackinfo"

A parameter containing commas is wrapped in double quotes::

    living_hello:  'ON:living:playsong:"Hello, Goodbye"'
"""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping

from .const import COMMAND_NUMBER, COMMAND_PERCENT
from .errors import ConfigError
from .models import (
    Action,
    BindingTarget,
    DecimalCommand,
    InboundCommand,
    PercentCommand,
)

_LOGGER = logging.getLogger(__name__)

# Comma separated entries; commas inside double quotes do not split
ENTRY_PATTERN = re.compile(r'(?:[^,"]|"[^"]*")+')


class BindingRegistry:
    """Resolve inbound commands and look up items bound to player actions."""

    def __init__(self) -> None:
        # item -> command key -> target
        self._bindings: dict[str, dict[str, BindingTarget]] = {}

    def load(self, bindings: Mapping[str, str]) -> list[ConfigError]:
        """Replace all bindings; return the errors of rejected items."""
        self._bindings.clear()
        errors: list[ConfigError] = []
        for item, binding in bindings.items():
            try:
                self.add(item, binding)
            except ConfigError as err:
                _LOGGER.warning("Ignoring binding of %s: %s", item, err)
                errors.append(err)
        return errors

    def add(self, item: str, binding: str) -> None:
        """Parse and register the binding string of one item."""
        if binding.count('"') % 2:
            raise ConfigError(item, "unbalanced quotes")
        entries: dict[str, BindingTarget] = {}
        for raw in ENTRY_PATTERN.findall(binding):
            raw = raw.strip()
            if not raw:
                continue
            parts = [part.strip() for part in raw.split(":", 3)]
            if len(parts) < 3 or not all(parts[:3]):
                raise ConfigError(
                    item, f"'{raw}' is not '<command>:<playerId>:<action>[:<param>]'"
                )
            command, player_id, action = parts[:3]
            param = _unquote(parts[3]) if len(parts) == 4 else None
            if Action.from_string(action) is None:
                raise ConfigError(item, f"unknown action '{action}'")
            entries[command.upper()] = BindingTarget(
                player_id, action.lower(), param
            )
        if not entries:
            raise ConfigError(item, "empty binding")
        self._bindings[item] = entries

    def resolve_command(
        self, item: str, command: InboundCommand
    ) -> BindingTarget | None:
        """Return what *command* sent to *item* should do, or None."""
        entries = self._bindings.get(item)
        if entries is None:
            return None
        target = entries.get(command_key(command))
        if target is None:
            return None
        if target.param is not None:
            # A static parameter in the binding wins over the command value
            return target
        return BindingTarget(target.player_id, target.action, command_value(command))

    def items_for(
        self, player_id: str, action: Action, output: int | None = None
    ) -> set[str]:
        """Return the items bound to (player, action[, 1-based output])."""
        items: set[str] = set()
        for item, entries in self._bindings.items():
            for target in entries.values():
                if target.player_id != player_id or target.action != action:
                    continue
                if output is not None and target.param != str(output):
                    continue
                items.add(item)
        return items

    def __len__(self) -> int:
        return len(self._bindings)


def command_key(command: InboundCommand) -> str:
    if isinstance(command, PercentCommand):
        return COMMAND_PERCENT
    if isinstance(command, DecimalCommand):
        return COMMAND_NUMBER
    return command.strip().upper()


def command_value(command: InboundCommand):
    if isinstance(command, PercentCommand):
        return command.value
    if isinstance(command, DecimalCommand):
        return command.value
    return None


def _unquote(param: str) -> str | None:
    if len(param) >= 2 and param[0] == param[-1] == '"':
        param = param[1:-1]
    return param or None
