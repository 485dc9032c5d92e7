"""Map inbound actions onto daemon operations."""
from __future__ import annotations

import logging
from typing import Any

from .const import VOLUME_CHANGE_SIZE
from .errors import CommandError, CommandErrorKind
from .models import (
    Action,
    CommandResult,
    Percent,
    READ_ONLY_ACTIONS,
    Song,
    clamp_volume,
    to_internal_output,
)
from .registry import PlayerRegistry
from .session import TRANSPORT_ERRORS, MpdSession
from .supervisor import ReconnectSupervisor

_LOGGER = logging.getLogger(__name__)


class CommandDispatcher:
    """Execute (player, action, param) commands against live sessions.

    Never raises: every failure is logged and reported in the returned
    CommandResult so one bad command cannot affect other players.
    """

    def __init__(
        self,
        registry: PlayerRegistry,
        supervisor: ReconnectSupervisor,
        volume_step: int = VOLUME_CHANGE_SIZE,
    ) -> None:
        self._registry = registry
        self._supervisor = supervisor
        self._volume_step = volume_step

    async def async_dispatch(
        self, player_id: str, action: Action | str, param: Any = None
    ) -> CommandResult:
        """Run one command and report its outcome."""
        session = await self._async_get_session(player_id)
        if session is None:
            _LOGGER.warning(
                "Didn't find a connected player for player id '%s'", player_id
            )
            return CommandResult(
                player_id, str(action), CommandErrorKind.PLAYER_UNAVAILABLE
            )

        resolved = action if isinstance(action, Action) else Action.from_string(action)
        if resolved is None:
            _LOGGER.warning("Unknown player command '%s' for %s", action, player_id)
            return CommandResult(player_id, str(action), CommandErrorKind.UNKNOWN_ACTION)

        try:
            await self._async_execute(session, resolved, param)
        except CommandError as err:
            _LOGGER.warning(
                "Command '%s' for %s rejected: %s", resolved, player_id, err
            )
            return CommandResult(player_id, resolved, err.kind)
        except TRANSPORT_ERRORS as err:
            _LOGGER.warning(
                "Failed to execute '%s' on %s: %s", resolved, player_id, err
            )
            return CommandResult(player_id, resolved, CommandErrorKind.TRANSPORT)

        _LOGGER.info("Executed command '%s' for player '%s'", resolved, player_id)
        return CommandResult(player_id, resolved)

    async def _async_get_session(self, player_id: str) -> MpdSession | None:
        session = self._registry.session(player_id)
        if session is not None:
            return session
        if player_id not in self._registry:
            return None
        # Self-heal: one connect attempt before giving up
        await self._supervisor.async_connect(player_id)
        return self._registry.session(player_id)

    async def _async_execute(
        self, session: MpdSession, action: Action, param: Any
    ) -> None:
        if action is Action.PAUSE:
            await session.pause()
        elif action is Action.PLAY:
            await session.play()
        elif action is Action.STOP:
            await session.stop()
        elif action is Action.VOLUME_INCREASE:
            await self._async_step_volume(session, self._volume_step)
        elif action is Action.VOLUME_DECREASE:
            await self._async_step_volume(session, -self._volume_step)
        elif action is Action.VOLUME:
            await session.set_volume(_percent_param(param))
        elif action is Action.NEXT:
            await session.next()
        elif action is Action.PREV:
            await session.previous()
        elif action is Action.PLAYSONG:
            await self._async_play_song(session, param)
        elif action is Action.PLAYSONGID:
            song_id = _int_param(param, "song id")
            _LOGGER.debug("Play id %s on %s", song_id, session.player_id)
            await session.play_id(Song(song_id=song_id))
        elif action in (Action.ENABLE, Action.DISABLE):
            external = _int_param(param, "output index")
            try:
                output_id = to_internal_output(external)
            except ValueError as err:
                raise CommandError(CommandErrorKind.INVALID_PARAM, str(err)) from err
            if action is Action.ENABLE:
                await session.enable_output(output_id)
            else:
                await session.disable_output(output_id)
        elif action in READ_ONLY_ACTIONS:
            raise CommandError(
                CommandErrorKind.UNSUPPORTED_ACTION,
                f"'{action}' is a read-only action",
            )
        else:
            raise CommandError(CommandErrorKind.UNKNOWN_ACTION, f"'{action}'")

    async def _async_step_volume(self, session: MpdSession, delta: int) -> None:
        current = await session.get_volume()
        if current < 0:
            raise CommandError(
                CommandErrorKind.INVALID_PARAM,
                f"{session.player_id} has no volume control",
            )
        await session.set_volume(clamp_volume(current + delta))

    async def _async_play_song(self, session: MpdSession, param: Any) -> None:
        if not isinstance(param, str) or not param.strip():
            raise CommandError(CommandErrorKind.INVALID_PARAM, "missing song title")
        _LOGGER.debug("Searching for song %s on %s", param, session.player_id)
        songs = await session.find_title(param)
        if not songs:
            _LOGGER.info("Song not found on %s: %s", session.player_id, param)
            return
        song = songs[0]
        _LOGGER.debug("Song found: %s", song.file)
        await session.clear_queue()
        await session.add(song)
        await session.play()


def _percent_param(param: Any) -> int:
    if isinstance(param, Percent):
        return param.value
    if isinstance(param, int) and not isinstance(param, bool):
        return param
    raise CommandError(CommandErrorKind.INVALID_PARAM, f"expected a percent, got {param!r}")


def _int_param(param: Any, what: str) -> int:
    if isinstance(param, bool):
        raise CommandError(CommandErrorKind.INVALID_PARAM, f"invalid {what}: {param!r}")
    if isinstance(param, int):
        return param
    if isinstance(param, str):
        try:
            return int(param.strip())
        except ValueError:
            pass
    raise CommandError(CommandErrorKind.INVALID_PARAM, f"invalid {what}: {param!r}")
