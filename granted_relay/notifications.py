"""WebSocket fan-out of relay events to presentation clients."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Mapping, Set

from aiohttp import WSMsgType, web

LOGGER = logging.getLogger(__name__)


class ClientNotifier:
    """Pushes named events to every connected WebSocket client.

    Delivery is at-most-once: there is no per-client queue or replay, and a
    client whose send fails is dropped.
    """

    def __init__(self, *, heartbeat: float = 20.0) -> None:
        self._heartbeat = heartbeat
        self._clients: Set[web.WebSocketResponse] = set()
        self._tasks: Set[asyncio.Task[None]] = set()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def emit(self, event: str, data: Mapping[str, Any]) -> None:
        if not self._clients:
            return
        message = json.dumps({"event": event, "data": dict(data)})
        task = asyncio.get_running_loop().create_task(self._broadcast(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _broadcast(self, message: str) -> None:
        dead = []
        for ws in list(self._clients):
            try:
                await ws.send_str(message)
            except (ConnectionResetError, RuntimeError) as exc:
                LOGGER.debug("Dropping websocket client: %s", exc)
                dead.append(ws)

        for ws in dead:
            self._clients.discard(ws)

    async def handle_websocket(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse(heartbeat=self._heartbeat)
        await ws.prepare(request)

        self._clients.add(ws)
        LOGGER.info("Client connected (%d total)", len(self._clients))
        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT and msg.data == "ping":
                    await ws.send_str("pong")
                elif msg.type == WSMsgType.ERROR:
                    break
        finally:
            self._clients.discard(ws)
            LOGGER.info("Client disconnected (%d remaining)", len(self._clients))

        return ws

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        for ws in list(self._clients):
            await ws.close()
        self._clients.clear()
