"""Tests for ReconnectSupervisor."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from custom_components.mpd_bridge.const import DEFAULT_SWEEP
from custom_components.mpd_bridge.errors import ConnectionErrorKind, PlayerConnectionError
from custom_components.mpd_bridge.registry import PlayerRegistry
from custom_components.mpd_bridge.supervisor import PlayerState, ReconnectSupervisor

from .conftest import FakeScheduler, FakeSessionFactory


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_supervisor(players=("living",), factory=None, scheduler=None):
    registry = PlayerRegistry()
    for player_id in players:
        registry.upsert(player_id, f"{player_id}.local")
    factory = factory or FakeSessionFactory()
    supervisor = ReconnectSupervisor(
        registry,
        scheduler or FakeScheduler(),
        AsyncMock(),
        session_factory=factory,
    )
    return supervisor, registry, factory


# ---------------------------------------------------------------------------
# Connect / disconnect
# ---------------------------------------------------------------------------

class TestConnect:

    @pytest.mark.asyncio
    async def test_connect_stores_session_and_starts_stream(self):
        supervisor, registry, factory = _make_supervisor()

        assert await supervisor.async_connect("living") is None

        session = registry.session("living")
        assert session is factory.opened[0]
        assert session.streaming
        assert supervisor.state("living") is PlayerState.CONNECTED

    @pytest.mark.asyncio
    async def test_connect_is_noop_when_connected(self):
        """No double connect: a second call keeps the first session."""
        supervisor, registry, factory = _make_supervisor()

        await supervisor.async_connect("living")
        await supervisor.async_connect("living")

        assert len(factory.opened) == 1

    @pytest.mark.asyncio
    async def test_concurrent_connects_open_one_session(self):
        supervisor, registry, factory = _make_supervisor()

        await asyncio.gather(
            supervisor.async_connect("living"), supervisor.async_connect("living")
        )

        assert len(factory.opened) == 1

    @pytest.mark.asyncio
    async def test_connect_failure_leaves_player_disconnected(self):
        factory = FakeSessionFactory()
        factory.failures["living"] = PlayerConnectionError(
            ConnectionErrorKind.UNKNOWN_HOST, "unknown host"
        )
        supervisor, registry, _ = _make_supervisor(factory=factory)

        error = await supervisor.async_connect("living")

        assert error is ConnectionErrorKind.UNKNOWN_HOST
        assert registry.session("living") is None
        assert supervisor.state("living") is PlayerState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_connect_unknown_player(self):
        supervisor, _, _ = _make_supervisor()

        assert await supervisor.async_connect("ghost") is ConnectionErrorKind.UNKNOWN_PLAYER

    @pytest.mark.asyncio
    async def test_disconnect_stops_stream_then_closes(self):
        supervisor, registry, factory = _make_supervisor()
        await supervisor.async_connect("living")
        session = registry.session("living")
        registry.get("living").play_state = True

        await supervisor.async_disconnect("living")

        assert factory.log[-2:] == ["stop:living", "close:living"]
        assert session.closed
        assert registry.session("living") is None
        assert registry.get("living").play_state is None

    @pytest.mark.asyncio
    async def test_disconnect_absent_is_noop(self):
        supervisor, _, factory = _make_supervisor()

        await supervisor.async_disconnect("living")
        await supervisor.async_disconnect("ghost")

        assert factory.log == []


class TestReconnect:

    @pytest.mark.asyncio
    async def test_reconnect_disconnects_before_connecting(self):
        supervisor, registry, factory = _make_supervisor()
        await supervisor.async_connect("living")
        first = registry.session("living")

        await supervisor.async_reconnect("living")

        assert factory.log == [
            "open:living",
            "start:living",
            "stop:living",
            "close:living",
            "open:living",
            "start:living",
        ]
        assert registry.session("living") is not first
        assert first.closed

    @pytest.mark.asyncio
    async def test_reconnect_failure_leaves_player_disconnected(self):
        supervisor, registry, factory = _make_supervisor()
        await supervisor.async_connect("living")
        factory.failures["living"] = PlayerConnectionError(
            ConnectionErrorKind.REFUSED, "refused"
        )

        error = await supervisor.async_reconnect("living")

        assert error is ConnectionErrorKind.REFUSED
        assert registry.session("living") is None

    @pytest.mark.asyncio
    async def test_connect_all_continues_after_failure(self):
        """One player's failure does not block the others."""
        factory = FakeSessionFactory()
        factory.failures["bedroom"] = PlayerConnectionError(
            ConnectionErrorKind.TIMEOUT, "timeout"
        )
        supervisor, registry, _ = _make_supervisor(
            players=("bedroom", "kitchen", "living"), factory=factory
        )

        failures = await supervisor.async_connect_all()

        assert failures == {"bedroom": ConnectionErrorKind.TIMEOUT}
        assert registry.session("kitchen") is not None
        assert registry.session("living") is not None

    @pytest.mark.asyncio
    async def test_reconnect_all_is_sequential(self):
        supervisor, _, factory = _make_supervisor(players=("kitchen", "living"))
        await supervisor.async_connect_all()
        factory.log.clear()

        await supervisor.async_reconnect_all()

        assert factory.log == [
            "stop:kitchen",
            "close:kitchen",
            "stop:living",
            "close:living",
            "open:kitchen",
            "start:kitchen",
            "open:living",
            "start:living",
        ]


class TestLostSession:

    @pytest.mark.asyncio
    async def test_lost_stream_tears_down_player(self):
        supervisor, registry, _ = _make_supervisor()
        await supervisor.async_connect("living")
        session = registry.session("living")

        session.on_lost(session)
        await asyncio.gather(*supervisor._teardown_tasks)

        assert registry.session("living") is None
        assert session.closed

    @pytest.mark.asyncio
    async def test_lost_stream_ignored_after_reconnect(self):
        supervisor, registry, _ = _make_supervisor()
        await supervisor.async_connect("living")
        stale = registry.session("living")
        await supervisor.async_reconnect("living")
        fresh = registry.session("living")

        stale.on_lost(stale)
        await asyncio.gather(*supervisor._teardown_tasks)

        assert registry.session("living") is fresh
        assert not fresh.closed


class TestSweep:

    def test_schedule_sweep_registers_reconnect_all(self):
        scheduler = FakeScheduler()
        supervisor, _, _ = _make_supervisor(scheduler=scheduler)

        supervisor.schedule_sweep()

        assert supervisor.sweep_scheduled
        ((when, callback),) = scheduler.jobs.values()
        assert when == DEFAULT_SWEEP
        assert callback == supervisor.async_reconnect_all

    def test_reschedule_cancels_previous(self):
        scheduler = FakeScheduler()
        supervisor, _, _ = _make_supervisor(scheduler=scheduler)

        supervisor.schedule_sweep()
        supervisor.schedule_sweep((3, 30, 0))

        assert scheduler.cancelled == [1]
        assert list(scheduler.jobs) == [2]

    def test_cancel_sweep(self):
        scheduler = FakeScheduler()
        supervisor, _, _ = _make_supervisor(scheduler=scheduler)
        supervisor.schedule_sweep()

        supervisor.cancel_sweep()
        supervisor.cancel_sweep()

        assert not supervisor.sweep_scheduled
        assert scheduler.cancelled == [1]

    @pytest.mark.asyncio
    async def test_shutdown(self):
        scheduler = FakeScheduler()
        supervisor, registry, _ = _make_supervisor(scheduler=scheduler)
        await supervisor.async_connect("living")
        supervisor.schedule_sweep()

        await supervisor.async_shutdown()

        assert scheduler.jobs == {}
        assert registry.session("living") is None


class TestReconfigure:

    @pytest.mark.asyncio
    async def test_remove_disconnects_then_forgets(self):
        supervisor, registry, _ = _make_supervisor()
        await supervisor.async_connect("living")
        session = registry.session("living")

        await supervisor.async_remove("living")
        await supervisor.async_remove("living")

        assert session.closed
        assert "living" not in registry

    @pytest.mark.asyncio
    async def test_remove_waits_for_connect_in_progress(self):
        supervisor, registry, factory = _make_supervisor()

        await asyncio.gather(
            supervisor.async_connect("living"), supervisor.async_remove("living")
        )

        assert "living" not in registry
        assert factory.opened[0].closed

    @pytest.mark.asyncio
    async def test_configure_drops_session_with_old_details(self):
        supervisor, registry, _ = _make_supervisor()
        await supervisor.async_connect("living")
        old = registry.session("living")

        await supervisor.async_configure("living", "10.0.0.9", 6601, None)

        assert old.closed
        assert registry.session("living") is None
        assert (registry.get("living").host, registry.get("living").port) == (
            "10.0.0.9",
            6601,
        )

    @pytest.mark.asyncio
    async def test_configure_new_player(self):
        supervisor, registry, _ = _make_supervisor()

        await supervisor.async_configure("kitchen", "kitchen.local", 6600, "pw")

        assert registry.get("kitchen").password == "pw"
