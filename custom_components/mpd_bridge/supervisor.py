"""Connection lifecycle and scheduled reconnect sweep."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any, Protocol

from .const import CONNECTION_TIMEOUT, DEFAULT_SWEEP
from .errors import ConnectionErrorKind, PlayerConnectionError
from .registry import PlayerRegistry
from .session import EventSink, MpdSession

_LOGGER = logging.getLogger(__name__)

SessionFactory = Callable[..., Awaitable[MpdSession]]


class Scheduler(Protocol):
    """Periodic scheduling service the sweep registers with."""

    def schedule(
        self, when: tuple[int, int, int], callback: Callable[[], Awaitable[None]]
    ) -> Any:
        """Run *callback* daily at (hour, minute, second); return a handle."""

    def cancel(self, handle: Any) -> None:
        """Remove a registration returned by schedule()."""


class PlayerState(StrEnum):
    """Connection state of one player."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ReconnectSupervisor:
    """Connect, disconnect and periodically reconnect configured players.

    All lifecycle operations of one player run under that player's lock,
    so they never interleave with each other or with a notification
    handler still using the old session.
    """

    def __init__(
        self,
        registry: PlayerRegistry,
        scheduler: Scheduler,
        sink: EventSink,
        timeout: float = CONNECTION_TIMEOUT,
        session_factory: SessionFactory = MpdSession.async_open,
    ) -> None:
        self._registry = registry
        self._scheduler = scheduler
        self._sink = sink
        self._timeout = timeout
        self._session_factory = session_factory
        self._connecting: set[str] = set()
        self._sweep_handle: Any = None
        self._teardown_tasks: set[asyncio.Task] = set()

    def state(self, player_id: str) -> PlayerState:
        if player_id in self._connecting:
            return PlayerState.CONNECTING
        if self._registry.session(player_id) is not None:
            return PlayerState.CONNECTED
        return PlayerState.DISCONNECTED

    async def async_connect(self, player_id: str) -> ConnectionErrorKind | None:
        """Connect *player_id* unless already connected.

        Returns None on success (or if already connected), otherwise the
        reason the player stays disconnected.
        """
        config = self._registry.get(player_id)
        if config is None:
            _LOGGER.warning("No configuration for player %s", player_id)
            return ConnectionErrorKind.UNKNOWN_PLAYER
        async with config.lock:
            return await self._connect_locked(player_id)

    async def async_disconnect(self, player_id: str) -> None:
        """Tear down the session of *player_id*, if any."""
        config = self._registry.get(player_id)
        if config is None:
            return
        async with config.lock:
            await self._disconnect_locked(player_id)

    async def async_reconnect(self, player_id: str) -> ConnectionErrorKind | None:
        """Disconnect fully, then connect again."""
        config = self._registry.get(player_id)
        if config is None:
            return ConnectionErrorKind.UNKNOWN_PLAYER
        _LOGGER.info("Reconnecting player %s", player_id)
        async with config.lock:
            await self._disconnect_locked(player_id)
            return await self._connect_locked(player_id)

    async def async_configure(
        self, player_id: str, host: str, port: int, password: str | None
    ) -> None:
        """Apply new connection details, disconnecting the player first.

        A session opened meanwhile (e.g. by a command self-heal) is torn
        down under the lock so it never outlives its old details.
        """
        config = self._registry.get(player_id)
        if config is None:
            self._registry.upsert(player_id, host, port, password)
            return
        async with config.lock:
            await self._disconnect_locked(player_id)
            self._registry.upsert(player_id, host, port, password)

    async def async_remove(self, player_id: str) -> None:
        """Disconnect and forget a player that left the configuration."""
        config = self._registry.get(player_id)
        if config is None:
            return
        async with config.lock:
            await self._disconnect_locked(player_id)
            self._registry.remove(player_id)
        _LOGGER.debug("Removed player %s", player_id)

    async def async_connect_all(self) -> dict[str, ConnectionErrorKind]:
        """Connect every known player; return the failures by player id."""
        _LOGGER.debug("Connecting to all players")
        failures: dict[str, ConnectionErrorKind] = {}
        for player_id in sorted(self._registry.all_player_ids()):
            error = await self.async_connect(player_id)
            if error is not None:
                failures[player_id] = error
        return failures

    async def async_disconnect_all(self) -> None:
        for player_id in sorted(self._registry.all_player_ids()):
            await self.async_disconnect(player_id)

    async def async_reconnect_all(self) -> dict[str, ConnectionErrorKind]:
        """Sweep: disconnect every player, then connect them one by one."""
        _LOGGER.info("Reconnecting all players")
        await self.async_disconnect_all()
        return await self.async_connect_all()

    # -- Sweep scheduling --

    def schedule_sweep(self, when: tuple[int, int, int] = DEFAULT_SWEEP) -> None:
        """Register the periodic reconnect sweep, replacing any previous one."""
        self.cancel_sweep()
        self._sweep_handle = self._scheduler.schedule(when, self.async_reconnect_all)
        _LOGGER.debug("Scheduled daily reconnect of all players at %02d:%02d:%02d", *when)

    def cancel_sweep(self) -> None:
        if self._sweep_handle is None:
            return
        self._scheduler.cancel(self._sweep_handle)
        self._sweep_handle = None
        _LOGGER.debug("Cancelled reconnect sweep")

    @property
    def sweep_scheduled(self) -> bool:
        return self._sweep_handle is not None

    async def async_shutdown(self) -> None:
        """Cancel the sweep, pending teardowns and disconnect everything."""
        self.cancel_sweep()
        for task in list(self._teardown_tasks):
            task.cancel()
        await self.async_disconnect_all()

    # -- Internals (caller holds the player lock) --

    async def _connect_locked(self, player_id: str) -> ConnectionErrorKind | None:
        config = self._registry.get(player_id)
        if config is None:
            return ConnectionErrorKind.UNKNOWN_PLAYER
        if config.session is not None:
            return None

        self._connecting.add(player_id)
        try:
            session = await self._session_factory(config, timeout=self._timeout)
        except PlayerConnectionError as err:
            _LOGGER.warning("Error connecting to player %s: %s", player_id, err)
            return err.kind
        finally:
            self._connecting.discard(player_id)

        self._registry.set_session(player_id, session)
        session.start_notifications(self._sink, self._on_session_lost)
        _LOGGER.info("Connected to player %s (%s:%s)", player_id, config.host, config.port)
        return None

    async def _disconnect_locked(self, player_id: str) -> None:
        session = self._registry.session(player_id)
        if session is None:
            return
        await session.stop_notifications()
        session.close()
        self._registry.set_session(player_id, None)
        self._registry.clear_caches(player_id)
        _LOGGER.info("Disconnected from player %s", player_id)

    def _on_session_lost(self, lost: MpdSession) -> None:
        """Tear down a session whose stream died on its own.

        Runs from inside the stream task, so the teardown is handed off to
        a separate task rather than awaited here.
        """
        player_id = lost.player_id
        _LOGGER.warning("Lost connection to player %s", player_id)
        task = asyncio.create_task(
            self._teardown_if_current(player_id, lost),
            name=f"mpd_bridge_teardown_{player_id}",
        )
        self._teardown_tasks.add(task)
        task.add_done_callback(self._teardown_tasks.discard)

    async def _teardown_if_current(self, player_id: str, lost: MpdSession) -> None:
        config = self._registry.get(player_id)
        if config is None:
            return
        async with config.lock:
            # A reconnect may already have replaced the dead session
            if config.session is lost:
                await self._disconnect_locked(player_id)
