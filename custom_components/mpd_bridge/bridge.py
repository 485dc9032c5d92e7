"""Bridge facade wiring registry, supervisor, translator and dispatcher."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .bindings import BindingRegistry
from .config import parse_player_config
from .const import CONNECTION_TIMEOUT, DEFAULT_SWEEP, VOLUME_CHANGE_SIZE
from .dispatcher import CommandDispatcher
from .errors import ConfigError
from .models import CommandResult, InboundCommand
from .registry import PlayerRegistry
from .session import MpdSession
from .supervisor import ReconnectSupervisor, Scheduler, SessionFactory
from .translator import EventTranslator, ItemBus

_LOGGER = logging.getLogger(__name__)


class MpdBridge:
    """Two-way bridge between the item bus and a set of daemons."""

    def __init__(
        self,
        bus: ItemBus,
        scheduler: Scheduler,
        bindings: BindingRegistry | None = None,
        timeout: float = CONNECTION_TIMEOUT,
        volume_step: int = VOLUME_CHANGE_SIZE,
        sweep: tuple[int, int, int] = DEFAULT_SWEEP,
        session_factory: SessionFactory = MpdSession.async_open,
    ) -> None:
        self.registry = PlayerRegistry()
        self.bindings = bindings or BindingRegistry()
        self.translator = EventTranslator(self.registry, self.bindings, bus)
        self.supervisor = ReconnectSupervisor(
            self.registry,
            scheduler,
            self.translator.async_handle,
            timeout=timeout,
            session_factory=session_factory,
        )
        self.dispatcher = CommandDispatcher(
            self.registry, self.supervisor, volume_step=volume_step
        )
        self._sweep = sweep

    async def async_update_config(self, config: Mapping[str, Any]) -> list[ConfigError]:
        """Apply a new configuration map.

        Disconnects everything and cancels the sweep, applies the new
        player entries and bindings, then reconnects and reschedules.
        Returns the errors of keys that could not be applied.
        """
        parsed = parse_player_config(config)

        await self.supervisor.async_disconnect_all()
        self.supervisor.cancel_sweep()

        for player_id in sorted(self.registry.all_player_ids() - set(parsed.players)):
            await self.supervisor.async_remove(player_id)
        for player_id, settings in parsed.players.items():
            await self.supervisor.async_configure(
                player_id, settings.host, settings.port, settings.password
            )

        errors = list(parsed.errors)
        errors.extend(self.bindings.load(parsed.bindings))

        await self.supervisor.async_connect_all()
        self.supervisor.schedule_sweep(self._sweep)
        return errors

    async def async_receive_command(
        self, item: str, command: InboundCommand
    ) -> CommandResult | None:
        """Handle a command sent to *item* on the bus.

        Returns None if no binding matches the item and command.
        """
        target = self.bindings.resolve_command(item, command)
        if target is None:
            _LOGGER.warning(
                "Cannot find matching binding [item=%s, command=%s]", item, command
            )
            return None
        return await self.dispatcher.async_dispatch(
            target.player_id, target.action, target.param
        )

    async def async_shutdown(self) -> None:
        await self.supervisor.async_shutdown()
