"""HTTP status surface and WebSocket endpoint for presentation clients."""

from __future__ import annotations

import contextlib
import logging
from typing import Awaitable, Callable, Optional

from aiohttp import web

from .config import ServerConfig
from .health import HealthReporter
from .notifications import ClientNotifier
from .relay import CommandRelay

LOGGER = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _cors_middleware(origin: str):
    @web.middleware
    async def middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        if request.method == "OPTIONS":
            response: web.StreamResponse = web.Response(status=204)
        else:
            response = await handler(request)
        if not response.prepared:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    return middleware


def create_app(
    relay: CommandRelay,
    notifier: ClientNotifier,
    *,
    health: Optional[HealthReporter] = None,
    config: Optional[ServerConfig] = None,
) -> web.Application:
    config = config or ServerConfig()
    app = web.Application(middlewares=[_cors_middleware(config.cors_origin)])

    async def door_status(_request: web.Request) -> web.Response:
        return web.json_response({"stringMessage": relay.door_status})

    async def robot_status(_request: web.Request) -> web.Response:
        return web.json_response({"stringMessage": relay.robot_status})

    async def reset_door_status(_request: web.Request) -> web.Response:
        relay.reset_door_status()
        return web.json_response(
            {"success": True, "message": "Door status reset to BLOCKED"}
        )

    async def healthz(_request: web.Request) -> web.Response:
        if health is None:
            return web.json_response({"status": "ok", "components": []})
        snapshot = await health.snapshot()
        status = 200 if snapshot["status"] == "ok" else 503
        return web.json_response(snapshot, status=status)

    app.router.add_get("/door-status", door_status)
    app.router.add_get("/robot-status", robot_status)
    app.router.add_post("/reset-door-status", reset_door_status)
    app.router.add_get("/healthz", healthz)
    app.router.add_get("/ws", notifier.handle_websocket)

    index_path = config.index_path
    if index_path is not None:

        async def index(_request: web.Request) -> web.StreamResponse:
            if not index_path.is_file():
                raise web.HTTPNotFound(text=f"{index_path.name} not found")
            return web.FileResponse(index_path)

        app.router.add_get("/", index)

    return app


class StatusServer:
    """Runs the status application on ``host:port``."""

    def __init__(
        self,
        relay: CommandRelay,
        notifier: ClientNotifier,
        config: ServerConfig,
        *,
        health: Optional[HealthReporter] = None,
    ) -> None:
        self._relay = relay
        self._notifier = notifier
        self._config = config
        self._health = health
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    async def start(self) -> None:
        app = create_app(
            self._relay, self._notifier, health=self._health, config=self._config
        )
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._config.host, self._config.port)
        await self._site.start()
        base = f"http://{self._config.host}:{self._config.port}"
        LOGGER.info("Web server running at %s", base)
        LOGGER.info("Door API running at %s/door-status", base)
        LOGGER.info("Robot API running at %s/robot-status", base)

    async def stop(self) -> None:
        await self._notifier.close()
        with contextlib.suppress(Exception):
            if self._site is not None:
                await self._site.stop()
        if self._runner is not None:
            await self._runner.cleanup()
        self._site = None
        self._runner = None
