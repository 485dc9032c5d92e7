"""Per-player configuration and session registry."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .const import DEFAULT_PORT

if TYPE_CHECKING:
    from .session import MpdSession

_LOGGER = logging.getLogger(__name__)


@dataclass(eq=False)
class PlayerConfig:
    """Connection details and live state of one configured daemon.

    The lock serializes connect/disconnect and the dedup caches of this
    player only; other players are never blocked by it.
    """

    player_id: str
    host: str = ""
    port: int = DEFAULT_PORT
    password: str | None = None
    session: MpdSession | None = None
    # Dedup caches, written by the event translator
    play_state: bool | None = None
    song: tuple[str, str] | None = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def __repr__(self) -> str:
        masked = "***" if self.password else None
        return (
            f"PlayerConfig(player_id={self.player_id!r}, host={self.host!r}, "
            f"port={self.port}, password={masked!r}, "
            f"connected={self.session is not None})"
        )


class PlayerRegistry:
    """Arena of PlayerConfig entries keyed by player id."""

    def __init__(self) -> None:
        self._players: dict[str, PlayerConfig] = {}

    def upsert(
        self,
        player_id: str,
        host: str,
        port: int = DEFAULT_PORT,
        password: str | None = None,
    ) -> PlayerConfig:
        """Create or update a player's connection details.

        An existing live session is left untouched.
        """
        config = self._players.get(player_id)
        if config is None:
            config = PlayerConfig(player_id=player_id)
            self._players[player_id] = config
            _LOGGER.debug("Registered player %s", player_id)
        config.host = host
        config.port = port
        config.password = password
        return config

    def get(self, player_id: str) -> PlayerConfig | None:
        return self._players.get(player_id)

    def remove(self, player_id: str) -> PlayerConfig | None:
        """Forget a player. Its session must already be torn down."""
        config = self._players.get(player_id)
        if config is not None and config.session is not None:
            raise RuntimeError(f"Player {player_id} still has a live session")
        return self._players.pop(player_id, None)

    def set_session(self, player_id: str, session: MpdSession | None) -> None:
        """Attach or clear the live session of a player.

        Replacing one live session with another is a programming error:
        the old one must be disconnected first.
        """
        config = self._players.get(player_id)
        if config is None:
            raise KeyError(player_id)
        if session is not None and config.session is not None:
            raise RuntimeError(
                f"Player {player_id} already has a live session; disconnect first"
            )
        config.session = session

    def session(self, player_id: str) -> MpdSession | None:
        config = self._players.get(player_id)
        return config.session if config is not None else None

    def lock(self, player_id: str) -> asyncio.Lock:
        config = self._players.get(player_id)
        if config is None:
            raise KeyError(player_id)
        return config.lock

    def clear_caches(self, player_id: str) -> None:
        config = self._players.get(player_id)
        if config is not None:
            config.play_state = None
            config.song = None

    def all_player_ids(self) -> set[str]:
        return set(self._players)

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._players

    def __len__(self) -> int:
        return len(self._players)
