"""Live daemon session: one python-mpd2 connection plus its idle stream."""
from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import Awaitable, Callable
from typing import Any

from mpd import CommandError, ConnectionError as MPDConnectionError, MPDError
from mpd.asyncio import MPDClient

from .const import CONNECTION_TIMEOUT, IDLE_SUBSYSTEMS
from .errors import ConnectionErrorKind, PlayerConnectionError
from .models import EventKind, MpdEvent, Output, PlayStatus, Song
from .registry import PlayerConfig

_LOGGER = logging.getLogger(__name__)

# Errors that mean the daemon could not answer a command
TRANSPORT_ERRORS = (MPDError, OSError, asyncio.TimeoutError)

EventSink = Callable[[MpdEvent], Awaitable[None]]
LostCallback = Callable[["MpdSession"], None]


def play_status_transition(previous: str | None, current: str) -> PlayStatus | None:
    """Derive the coarse transition between two daemon ``state`` values.

    Returns None when nothing changed.
    """
    if previous == current:
        return None
    if current == "play":
        return PlayStatus.UNPAUSED if previous == "pause" else PlayStatus.STARTED
    if current == "pause":
        return PlayStatus.PAUSED
    return PlayStatus.STOPPED


class MpdSession:
    """An authenticated connection to one daemon.

    Owned exclusively by its PlayerConfig. The notification stream runs
    in a background task and forwards MpdEvents to a sink in arrival order.
    """

    def __init__(self, player_id: str, client: MPDClient) -> None:
        self.player_id = player_id
        self._client = client
        self._task: asyncio.Task | None = None
        self._stopping = False

    @classmethod
    async def async_open(
        cls,
        config: PlayerConfig,
        timeout: float = CONNECTION_TIMEOUT,
        client_factory: Callable[[], MPDClient] = MPDClient,
    ) -> MpdSession:
        """Connect and authenticate, raising PlayerConnectionError on failure."""
        client = client_factory()
        _LOGGER.debug(
            "Connecting to %s at %s:%s", config.player_id, config.host, config.port
        )
        try:
            async with asyncio.timeout(timeout):
                await client.connect(config.host, config.port)
                if config.password:
                    await client.password(config.password)
        except socket.gaierror as err:
            _safe_disconnect(client)
            raise PlayerConnectionError(
                ConnectionErrorKind.UNKNOWN_HOST,
                f"Unknown host {config.host}: {err}",
            ) from err
        except asyncio.TimeoutError as err:
            _safe_disconnect(client)
            raise PlayerConnectionError(
                ConnectionErrorKind.TIMEOUT,
                f"Timeout connecting to {config.host}:{config.port}",
            ) from err
        except CommandError as err:
            _safe_disconnect(client)
            raise PlayerConnectionError(
                ConnectionErrorKind.AUTH_FAILED,
                f"Authentication rejected by {config.host}:{config.port}: {err}",
            ) from err
        except (MPDError, OSError) as err:
            _safe_disconnect(client)
            raise PlayerConnectionError(
                ConnectionErrorKind.REFUSED,
                f"Unable to connect to {config.host}:{config.port}: {err}",
            ) from err
        return cls(config.player_id, client)

    # -- Notification stream --

    @property
    def streaming(self) -> bool:
        """Return True if the notification task is running."""
        return self._task is not None and not self._task.done()

    def start_notifications(self, sink: EventSink, on_lost: LostCallback) -> None:
        """Start forwarding idle notifications to *sink*.

        *on_lost* is called with this session if the stream dies on its own
        (not after stop_notifications).
        """
        if self.streaming:
            _LOGGER.debug("Notification stream of %s already running", self.player_id)
            return
        self._stopping = False
        self._task = asyncio.create_task(
            self._run_loop(sink, on_lost),
            name=f"mpd_bridge_stream_{self.player_id}",
        )

    async def stop_notifications(self) -> None:
        """Stop the notification stream and wait for it to finish."""
        self._stopping = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    def close(self) -> None:
        """Drop the connection. The stream must be stopped first."""
        _safe_disconnect(self._client)

    async def _run_loop(self, sink: EventSink, on_lost: LostCallback) -> None:
        try:
            previous = await self._client.status()
            async for subsystems in self._client.idle(list(IDLE_SUBSYSTEMS)):
                previous = await self._dispatch(sink, subsystems, previous)
            _LOGGER.info("Notification stream of %s ended", self.player_id)
        except asyncio.CancelledError:
            _LOGGER.debug("Notification stream of %s cancelled", self.player_id)
            return
        except (MPDError, OSError) as err:
            _LOGGER.warning(
                "Notification stream of %s failed: %s", self.player_id, err
            )
        except Exception:
            _LOGGER.exception(
                "Unexpected error in notification stream of %s", self.player_id
            )

        if not self._stopping:
            on_lost(self)

    async def _dispatch(
        self,
        sink: EventSink,
        subsystems: list[str],
        previous: dict[str, Any],
    ) -> dict[str, Any]:
        """Translate one idle wake-up into events; return the new status."""
        _LOGGER.debug("Idle wake-up on %s: %s", self.player_id, subsystems)
        status = await self._client.status()
        events: list[MpdEvent] = []

        if "mixer" in subsystems:
            events.append(
                MpdEvent(
                    self.player_id,
                    EventKind.VOLUME,
                    volume=int(status.get("volume", -1)),
                )
            )
        if "player" in subsystems:
            transition = play_status_transition(
                previous.get("state"), status.get("state", "stop")
            )
            if transition is not None:
                events.append(
                    MpdEvent(self.player_id, EventKind.PLAY_STATE, status=transition)
                )
            if status.get("songid") != previous.get("songid") or status.get(
                "elapsed"
            ) != previous.get("elapsed"):
                elapsed = status.get("elapsed")
                events.append(
                    MpdEvent(
                        self.player_id,
                        EventKind.TRACK_POSITION,
                        elapsed=float(elapsed) if elapsed is not None else None,
                    )
                )
        if "output" in subsystems:
            events.append(MpdEvent(self.player_id, EventKind.OUTPUT))

        for event in events:
            try:
                await sink(event)
            except Exception:
                _LOGGER.exception("Error handling %s on %s", event.kind, self.player_id)
        return status

    # -- Transport controls --

    async def play(self) -> None:
        await self._client.play()

    async def pause(self) -> None:
        await self._client.pause(1)

    async def stop(self) -> None:
        await self._client.stop()

    async def next(self) -> None:
        await self._client.next()

    async def previous(self) -> None:
        await self._client.previous()

    async def get_volume(self) -> int:
        status = await self._client.status()
        return int(status.get("volume", -1))

    async def set_volume(self, volume: int) -> None:
        await self._client.setvol(volume)

    # -- Queue / library --

    async def find_title(self, title: str) -> list[Song]:
        """Exact title search, in the order the daemon returns matches."""
        results = await self._client.find("title", title)
        return [song for song in map(Song.from_mpd, results) if song is not None]

    async def clear_queue(self) -> None:
        await self._client.clear()

    async def add(self, song: Song) -> None:
        await self._client.add(song.file)

    async def play_id(self, song: Song) -> None:
        await self._client.playid(song.song_id)

    async def current_song(self) -> Song | None:
        return Song.from_mpd(await self._client.currentsong())

    # -- Outputs --

    async def outputs(self) -> list[Output]:
        return [Output.from_mpd(data) for data in await self._client.outputs()]

    async def enable_output(self, output_id: int) -> None:
        await self._client.enableoutput(output_id)

    async def disable_output(self, output_id: int) -> None:
        await self._client.disableoutput(output_id)


def _safe_disconnect(client: MPDClient) -> None:
    try:
        client.disconnect()
    except (MPDConnectionError, OSError) as err:
        _LOGGER.debug("Ignoring error on disconnect: %s", err)
