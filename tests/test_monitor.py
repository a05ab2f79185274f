"""Tests for the polling status monitor."""

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from granted_relay.config import MonitorConfig
from granted_relay.monitor import StatusMonitor

DWELL = 0.05


class _FakeRelay:
    def __init__(self) -> None:
        self.door = "DOOR_BLOCKED"
        self.robot = "ROBOT_IDLE"
        self.reset_calls = 0

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/door-status", self._door)
        app.router.add_get("/robot-status", self._robot)
        app.router.add_post("/reset-door-status", self._reset)
        return app

    async def _door(self, _request: web.Request) -> web.Response:
        return web.json_response({"stringMessage": self.door})

    async def _robot(self, _request: web.Request) -> web.Response:
        return web.json_response({"stringMessage": self.robot})

    async def _reset(self, _request: web.Request) -> web.Response:
        self.reset_calls += 1
        self.door = "DOOR_BLOCKED"
        return web.json_response(
            {"success": True, "message": "Door status reset to BLOCKED"}
        )


@pytest.mark.asyncio
async def test_monitor_acts_on_stable_robot_commands():
    relay = _FakeRelay()
    async with TestServer(relay.build_app()) as server:
        config = MonitorConfig(base_url=f"http://{server.host}:{server.port}")
        async with StatusMonitor(config, dwell=DWELL) as monitor:
            await monitor.poll_once()
            await asyncio.sleep(DWELL * 3)
            assert monitor.accepted_commands == ["ROBOT_IDLE"]

            relay.robot = "ROBOT_START"
            await monitor.poll_once()
            assert monitor.window.pending == "ROBOT_START"
            await asyncio.sleep(DWELL * 3)

            assert monitor.automation_running is True
            assert monitor.accepted_commands == ["ROBOT_IDLE", "ROBOT_START"]

            # A steady value is promoted only once.
            await monitor.poll_once()
            await asyncio.sleep(DWELL * 3)
            assert monitor.accepted_commands == ["ROBOT_IDLE", "ROBOT_START"]

            relay.robot = "ROBOT_IDLE"
            await monitor.poll_once()
            await asyncio.sleep(DWELL * 3)
            assert monitor.accepted_commands[-1] == "ROBOT_IDLE"
            assert monitor.automation_running is True
            assert monitor.stop_after_cycle is True


@pytest.mark.asyncio
async def test_monitor_ignores_flicker_shorter_than_dwell():
    relay = _FakeRelay()
    relay.robot = "ROBOT_START"
    async with TestServer(relay.build_app()) as server:
        config = MonitorConfig(base_url=f"http://{server.host}:{server.port}")
        async with StatusMonitor(config, dwell=0.5) as monitor:
            await monitor.poll_once()
            relay.robot = "ROBOT_IDLE"
            await monitor.poll_once()
            await asyncio.sleep(0.1)

            assert monitor.accepted_commands == []
            assert monitor.window.candidate == "ROBOT_IDLE"


@pytest.mark.asyncio
async def test_monitor_resets_door_after_delay():
    relay = _FakeRelay()
    relay.door = "DOOR_AUTHORIZED"
    async with TestServer(relay.build_app()) as server:
        config = MonitorConfig(
            base_url=f"http://{server.host}:{server.port}",
            reset_door_after_seconds=DWELL,
        )
        async with StatusMonitor(config, dwell=DWELL) as monitor:
            await monitor.poll_once()
            assert relay.reset_calls == 0

            await asyncio.sleep(DWELL * 2)
            await monitor.poll_once()

            assert relay.reset_calls == 1
            assert relay.door == "DOOR_BLOCKED"


@pytest.mark.asyncio
async def test_monitor_without_reset_leaves_door_alone():
    relay = _FakeRelay()
    relay.door = "DOOR_AUTHORIZED"
    async with TestServer(relay.build_app()) as server:
        config = MonitorConfig(base_url=f"http://{server.host}:{server.port}")
        async with StatusMonitor(config, dwell=DWELL) as monitor:
            await monitor.poll_once()
            await asyncio.sleep(DWELL * 2)
            await monitor.poll_once()

    assert relay.reset_calls == 0


@pytest.mark.asyncio
async def test_monitor_tolerates_unreachable_relay():
    config = MonitorConfig(base_url="http://127.0.0.1:1")
    async with StatusMonitor(config, dwell=DWELL, request_timeout=1.0) as monitor:
        await monitor.poll_once()

        assert monitor.window.candidate is None
        assert await monitor.reset_door() is False


@pytest.mark.asyncio
async def test_monitor_requires_context():
    monitor = StatusMonitor(MonitorConfig(), dwell=DWELL)

    with pytest.raises(RuntimeError):
        await monitor.poll_once()


def _observe(monitor: StatusMonitor, clock, command: str) -> None:
    monitor.window.observe(command, clock.time())


def test_start_refused_while_cycle_is_running(clock):
    monitor = StatusMonitor(
        MonitorConfig(), dwell=0.25, cycle_seconds=15.0, scheduler=clock
    )

    _observe(monitor, clock, "ROBOT_START")
    clock.advance(1.0)
    _observe(monitor, clock, "ROBOT_IDLE")
    clock.advance(1.0)
    _observe(monitor, clock, "ROBOT_START")
    clock.advance(1.0)

    assert monitor.accepted_commands == ["ROBOT_START", "ROBOT_IDLE"]
    assert monitor.automation_running is True
    assert monitor.stop_after_cycle is True

    clock.advance(12.5)

    assert monitor.automation_running is False
    assert monitor.stop_after_cycle is False
    assert monitor.completed_cycles == 1


def test_start_accepted_again_after_cycle_completes(clock):
    monitor = StatusMonitor(
        MonitorConfig(), dwell=0.25, cycle_seconds=4.0, scheduler=clock
    )

    _observe(monitor, clock, "ROBOT_START")
    clock.advance(1.0)
    _observe(monitor, clock, "ROBOT_IDLE")
    clock.advance(4.0)
    assert monitor.automation_running is False

    _observe(monitor, clock, "ROBOT_START")
    clock.advance(1.0)

    assert monitor.accepted_commands == ["ROBOT_START", "ROBOT_IDLE", "ROBOT_START"]
    assert monitor.automation_running is True
    assert monitor.stop_after_cycle is False
