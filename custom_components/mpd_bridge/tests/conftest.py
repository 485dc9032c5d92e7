"""Shared test fixtures and fakes for MPD Bridge tests."""
from __future__ import annotations

from typing import Any

from custom_components.mpd_bridge.errors import PlayerConnectionError
from custom_components.mpd_bridge.models import Output, Song

# Flat configuration map as read from configuration.yaml
MOCK_CONFIG = {
    "living.host": "192.168.1.10",
    "living.port": "6600",
    "kitchen.host": "kitchen.local",
    "kitchen.password": "s3cret",
    "bindings": {
        "living_power": "ON:living:play, OFF:living:stop",
        "living_pause": "ON:living:pause",
        "living_volume": (
            "PERCENT:living:volume, INCREASE:living:volume_increase, "
            "DECREASE:living:volume_decrease"
        ),
        "living_skip": "ON:living:next, OFF:living:prev",
        "living_song": "NUMBER:living:playsongid",
        "living_yesterday": "ON:living:playsong:Yesterday",
        "living_zone1": "ON:living:enable:1, OFF:living:disable:1",
        "living_zone2": "ON:living:enable:2, OFF:living:disable:2",
        "living_title": "ON:living:trackinfo",
        "living_artist": "ON:living:trackartist",
        "kitchen_power": "ON:kitchen:play, OFF:kitchen:stop",
    },
}

MOCK_LIBRARY = [
    Song(file="beatles/help/yesterday.flac", title="Yesterday", artist="The Beatles", song_id=7),
    Song(file="covers/yesterday.mp3", title="Yesterday", artist="Ray Charles", song_id=12),
]

MOCK_OUTPUTS = [
    Output(output_id=0, name="Living room", enabled=True),
    Output(output_id=1, name="Zone 2", enabled=False),
]

# python-mpd2 style responses
MOCK_STATUS_PLAYING = {
    "volume": "40",
    "state": "play",
    "songid": "7",
    "elapsed": "12.500",
}
MOCK_CURRENT_SONG = {
    "file": "beatles/help/yesterday.flac",
    "title": "Yesterday",
    "artist": "The Beatles",
    "id": "7",
}


class FakeSession:
    """In-memory stand-in for MpdSession that records daemon calls."""

    def __init__(
        self,
        player_id: str,
        volume: int = 50,
        library: list[Song] | None = None,
        current: Song | None = None,
        outputs: list[Output] | None = None,
        log: list[str] | None = None,
    ) -> None:
        self.player_id = player_id
        self.volume = volume
        self.library = list(library or [])
        self.current = current
        self.output_list = list(outputs or [])
        self.queue: list[Song] = []
        self.calls: list[tuple[Any, ...]] = []
        self.log = log if log is not None else []
        self.fail: Exception | None = None
        self.sink = None
        self.on_lost = None
        self.streaming = False
        self.closed = False

    def _record(self, *call: Any) -> None:
        self.calls.append(call)
        if self.fail is not None:
            raise self.fail

    # Notification stream
    def start_notifications(self, sink, on_lost) -> None:
        self.sink = sink
        self.on_lost = on_lost
        self.streaming = True
        self.log.append(f"start:{self.player_id}")

    async def stop_notifications(self) -> None:
        self.streaming = False
        self.log.append(f"stop:{self.player_id}")

    def close(self) -> None:
        self.closed = True
        self.log.append(f"close:{self.player_id}")

    # Transport
    async def play(self) -> None:
        self._record("play")

    async def pause(self) -> None:
        self._record("pause")

    async def stop(self) -> None:
        self._record("stop")

    async def next(self) -> None:
        self._record("next")

    async def previous(self) -> None:
        self._record("previous")

    async def get_volume(self) -> int:
        self._record("get_volume")
        return self.volume

    async def set_volume(self, volume: int) -> None:
        self._record("set_volume", volume)
        self.volume = volume

    async def find_title(self, title: str) -> list[Song]:
        self._record("find_title", title)
        return [song for song in self.library if song.title == title]

    async def clear_queue(self) -> None:
        self._record("clear_queue")
        self.queue.clear()

    async def add(self, song: Song) -> None:
        self._record("add", song.file)
        self.queue.append(song)

    async def play_id(self, song: Song) -> None:
        self._record("play_id", song.song_id)

    async def current_song(self) -> Song | None:
        self._record("current_song")
        return self.current

    async def outputs(self) -> list[Output]:
        self._record("outputs")
        return list(self.output_list)

    async def enable_output(self, output_id: int) -> None:
        self._record("enable_output", output_id)

    async def disable_output(self, output_id: int) -> None:
        self._record("disable_output", output_id)


class FakeSessionFactory:
    """Replacement for MpdSession.async_open handing out FakeSessions."""

    def __init__(self, **session_kwargs: Any) -> None:
        self.session_kwargs = session_kwargs
        self.failures: dict[str, PlayerConnectionError] = {}
        self.opened: list[FakeSession] = []
        self.log: list[str] = []

    async def __call__(self, config, timeout: float = 5) -> FakeSession:
        self.log.append(f"open:{config.player_id}")
        failure = self.failures.get(config.player_id)
        if failure is not None:
            raise failure
        session = FakeSession(config.player_id, log=self.log, **self.session_kwargs)
        self.opened.append(session)
        return session


class FakeScheduler:
    """Scheduler that only records registrations."""

    def __init__(self) -> None:
        self.jobs: dict[int, tuple[tuple[int, int, int], Any]] = {}
        self.cancelled: list[int] = []
        self._next = 0

    def schedule(self, when, callback) -> int:
        self._next += 1
        self.jobs[self._next] = (when, callback)
        return self._next

    def cancel(self, handle: int) -> None:
        self.cancelled.append(handle)
        self.jobs.pop(handle, None)


class FakeBus:
    """Publish bus that records every update."""

    def __init__(self) -> None:
        self.updates: list[tuple[str, Any]] = []

    def publish(self, item: str, value: Any) -> None:
        self.updates.append((item, value))

    def values_for(self, item: str) -> list[Any]:
        return [value for name, value in self.updates if name == item]
