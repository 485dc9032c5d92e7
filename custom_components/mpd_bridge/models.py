"""Data types shared by the MPD Bridge core."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, StrEnum

from .const import VOLUME_MAX, VOLUME_MIN
from .errors import CommandErrorKind


class Action(StrEnum):
    """Player actions an item can be bound to."""

    PAUSE = "pause"
    PLAY = "play"
    STOP = "stop"
    VOLUME_INCREASE = "volume_increase"
    VOLUME_DECREASE = "volume_decrease"
    VOLUME = "volume"
    NEXT = "next"
    PREV = "prev"
    PLAYSONG = "playsong"
    PLAYSONGID = "playsongid"
    ENABLE = "enable"
    DISABLE = "disable"
    TRACKARTIST = "trackartist"
    TRACKINFO = "trackinfo"

    @classmethod
    def from_string(cls, value: str) -> Action | None:
        """Return the action named by *value* (case-insensitive), or None."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


# Outbound-only: they name items that display daemon state
READ_ONLY_ACTIONS = frozenset({Action.TRACKARTIST, Action.TRACKINFO})


class OnOff(StrEnum):
    """Switch-like state published to the bus."""

    ON = "on"
    OFF = "off"


@dataclass(frozen=True)
class Percent:
    """Percentage value in [0, 100]."""

    value: int

    def __post_init__(self) -> None:
        if not VOLUME_MIN <= self.value <= VOLUME_MAX:
            raise ValueError(f"Percent out of range: {self.value}")


@dataclass(frozen=True)
class PercentCommand:
    """Inbound percent command (volume set)."""

    value: Percent


@dataclass(frozen=True)
class DecimalCommand:
    """Inbound numeric command (play song by id)."""

    value: int


ItemValue = OnOff | Percent | str | int
InboundCommand = PercentCommand | DecimalCommand | str


class PlayStatus(StrEnum):
    """Coarse play-state transitions reported by the notification stream."""

    STARTED = "started"
    UNPAUSED = "unpaused"
    PAUSED = "paused"
    STOPPED = "stopped"

    @property
    def is_playing(self) -> bool:
        return self in (PlayStatus.STARTED, PlayStatus.UNPAUSED)


class EventKind(Enum):
    """Notification categories delivered by a session."""

    VOLUME = "volume"
    PLAY_STATE = "play_state"
    TRACK_POSITION = "track_position"
    OUTPUT = "output"
    PLAYER_CHANGED = "player_changed"


@dataclass(frozen=True)
class MpdEvent:
    """A single daemon notification, tagged with its player and kind.

    Only the payload field matching ``kind`` is set:
      - VOLUME          → ``volume``
      - PLAY_STATE      → ``status``
      - TRACK_POSITION  → ``elapsed``
      - OUTPUT / PLAYER_CHANGED carry no payload
    """

    player_id: str
    kind: EventKind
    volume: int | None = None
    status: PlayStatus | None = None
    elapsed: float | None = None


@dataclass(frozen=True)
class Song:
    """Subset of a daemon song record used by the bridge."""

    file: str = ""
    title: str = ""
    artist: str = ""
    song_id: int = 0

    @classmethod
    def from_mpd(cls, data: dict | None) -> Song | None:
        """Build a Song from a python-mpd2 song dict (None if empty)."""
        if not data:
            return None
        song_id = data.get("id")
        return cls(
            file=_first(data.get("file")),
            title=_first(data.get("title")),
            artist=_first(data.get("artist")),
            song_id=int(song_id) if song_id is not None else 0,
        )


def _first(value: str | list[str] | None) -> str:
    # python-mpd2 returns a list when a tag occurs more than once
    if value is None:
        return ""
    if isinstance(value, list):
        return value[0] if value else ""
    return value


@dataclass(frozen=True)
class Output:
    """A daemon audio output, with its 0-based internal id."""

    output_id: int
    name: str
    enabled: bool

    @classmethod
    def from_mpd(cls, data: dict) -> Output:
        return cls(
            output_id=int(data["outputid"]),
            name=data.get("outputname", ""),
            enabled=data.get("outputenabled") == "1",
        )


@dataclass(frozen=True)
class BindingTarget:
    """What an inbound item command resolves to."""

    player_id: str
    action: str
    param: str | None = None


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one dispatched command."""

    player_id: str
    action: str
    error: CommandErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def clamp_volume(volume: int) -> int:
    """Clamp *volume* to the daemon's [0, 100] range."""
    return max(VOLUME_MIN, min(VOLUME_MAX, volume))


def to_internal_output(external: int) -> int:
    """Map a 1-based output index from the bus to the daemon's 0-based id."""
    if external < 1:
        raise ValueError(f"Output index must be >= 1, got {external}")
    return external - 1


def to_external_output(internal: int) -> int:
    """Map a daemon's 0-based output id to the bus's 1-based index."""
    return internal + 1
