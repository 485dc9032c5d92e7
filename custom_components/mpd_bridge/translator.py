"""Translate daemon notifications into deduplicated bus updates."""
from __future__ import annotations

import logging
from typing import Protocol

from .const import VOLUME_MAX, VOLUME_MIN
from .errors import EventProcessingError
from .models import (
    Action,
    EventKind,
    ItemValue,
    MpdEvent,
    OnOff,
    Percent,
    PlayStatus,
    Song,
    to_external_output,
)
from .registry import PlayerConfig, PlayerRegistry
from .session import TRANSPORT_ERRORS, MpdSession

_LOGGER = logging.getLogger(__name__)


class ItemLookup(Protocol):
    """Query side of the binding-provider registry."""

    def items_for(
        self, player_id: str, action: Action, output: int | None = None
    ) -> set[str]:
        """Return the names of items bound to (player, action[, output])."""


class ItemBus(Protocol):
    """Publish side of the home-automation bus."""

    def publish(self, item: str, value: ItemValue) -> None:
        """Post a state update for *item*."""


class EventTranslator:
    """Sink for every session's notification stream.

    Events of one player arrive in order; events of different players may
    interleave. Cache updates are made under the player's lock.
    """

    def __init__(
        self, registry: PlayerRegistry, items: ItemLookup, bus: ItemBus
    ) -> None:
        self._registry = registry
        self._items = items
        self._bus = bus

    async def async_handle(self, event: MpdEvent) -> None:
        """Route one event to the handler for its kind."""
        config = self._registry.get(event.player_id)
        if config is None:
            _LOGGER.debug("Dropping %s for unknown player %s", event.kind, event.player_id)
            return

        if event.kind is EventKind.VOLUME:
            self._handle_volume(event)
        elif event.kind is EventKind.PLAY_STATE:
            await self._async_handle_play_state(config, event)
        elif event.kind is EventKind.TRACK_POSITION:
            await self._async_check_song(config)
        elif event.kind is EventKind.OUTPUT:
            await self._async_handle_outputs(config)
        elif event.kind is EventKind.PLAYER_CHANGED:
            self._handle_player_changed(event)

    def _handle_volume(self, event: MpdEvent) -> None:
        volume = event.volume
        _LOGGER.debug("Volume on %s changed to %s", event.player_id, volume)
        if volume is None or not VOLUME_MIN <= volume <= VOLUME_MAX:
            _LOGGER.warning(
                "Volume on %s is invalid: %s - ignoring it", event.player_id, volume
            )
            return
        self._broadcast(event.player_id, Action.VOLUME, Percent(volume))

    async def _async_handle_play_state(
        self, config: PlayerConfig, event: MpdEvent
    ) -> None:
        status = event.status
        if status is None:
            return
        playing = status.is_playing

        async with config.lock:
            if config.play_state == playing:
                _LOGGER.debug("Play state of %s unchanged (%s)", config.player_id, status)
            else:
                _LOGGER.debug("Play state of %s changed to %s", config.player_id, status)
                config.play_state = playing
                if playing:
                    self._broadcast(config.player_id, Action.PLAY, OnOff.ON)
                else:
                    self._broadcast(config.player_id, Action.STOP, OnOff.OFF)

        # The daemon does not reliably report song changes on their own
        await self._async_check_song(config)

    async def _async_check_song(self, config: PlayerConfig) -> None:
        async with config.lock:
            session = config.session
            if session is None:
                _LOGGER.debug("No session for %s, skipping song check", config.player_id)
                return
            try:
                song = await self._async_fetch_song(config.player_id, session)
            except EventProcessingError as err:
                _LOGGER.warning("%s", err)
                return

            current = _song_key(song)
            if current == config.song:
                return
            config.song = current

        title, artist = current
        _LOGGER.debug("Current song on %s: %s - %s", config.player_id, artist, title)
        self._broadcast(config.player_id, Action.TRACKINFO, title)
        self._broadcast(config.player_id, Action.TRACKARTIST, artist)
        self._broadcast(
            config.player_id,
            Action.PLAYSONGID,
            song.song_id if song is not None else 0,
        )

    @staticmethod
    async def _async_fetch_song(player_id: str, session: MpdSession) -> Song | None:
        try:
            return await session.current_song()
        except TRANSPORT_ERRORS as err:
            raise EventProcessingError(
                f"Failed to fetch current song from {player_id}: {err}"
            ) from err

    async def _async_handle_outputs(self, config: PlayerConfig) -> None:
        _LOGGER.debug("Output change event from %s", config.player_id)
        session = config.session
        if session is None:
            return
        try:
            outputs = await session.outputs()
        except TRANSPORT_ERRORS as err:
            _LOGGER.warning(
                "Failed to list outputs of %s: %s", config.player_id, err
            )
            return

        for output in outputs:
            action = Action.ENABLE if output.enabled else Action.DISABLE
            self._broadcast(
                config.player_id,
                action,
                OnOff.ON if output.enabled else OnOff.OFF,
                output=to_external_output(output.output_id),
            )

    def _handle_player_changed(self, event: MpdEvent) -> None:
        """Extension hook for richer player-change detection; does nothing yet."""

    def _broadcast(
        self,
        player_id: str,
        action: Action,
        value: ItemValue,
        output: int | None = None,
    ) -> None:
        for item in self._items.items_for(player_id, action, output):
            if item and item.strip():
                self._bus.publish(item, value)


def _song_key(song: Song | None) -> tuple[str, str]:
    if song is None:
        return ("", "")
    return (song.title or "", song.artist or "")
