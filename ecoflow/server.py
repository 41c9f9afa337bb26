from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Set

import websockets

from .constants import TICK_INTERVAL_SECONDS, WEBSOCKET_HOST, WEBSOCKET_PORT
from .engine import SimulationEngine
from .message_handlers import MessageRouter
from .state import load_graph

LOGGER = logging.getLogger(__name__)


class WebSocketServer:
    def __init__(
        self,
        engine: Optional[SimulationEngine] = None,
        tick_interval: float = TICK_INTERVAL_SECONDS,
    ) -> None:
        self.clients: Set[websockets.WebSocketServerProtocol] = set()
        self.broadcast_task: Optional[asyncio.Task] = None
        self.tick_interval = float(tick_interval)

        self.message_router = MessageRouter()

        # Server context shared with message handlers
        self.server_context: Dict[str, Any] = {
            "tick_interval": self.tick_interval,
            "engine": engine or SimulationEngine(),
            "clients": self.clients,
        }

    async def handler(self, websocket: websockets.WebSocketServerProtocol) -> None:
        self.clients.add(websocket)
        try:
            async for raw in websocket:
                try:
                    msg = json.loads(raw)
                except json.JSONDecodeError as e:
                    LOGGER.warning("Ignoring malformed message: %s", e)
                    continue
                if not isinstance(msg, dict):
                    continue
                try:
                    await self.message_router.route_message(websocket, msg, self.server_context)
                except Exception:
                    # Log error but continue processing other messages
                    LOGGER.exception("Error processing %s message", msg.get("type"))
        finally:
            self.clients.discard(websocket)

    async def start(self, host: str = WEBSOCKET_HOST, port: int = WEBSOCKET_PORT) -> None:
        async with websockets.serve(self.handler, host, port, ping_interval=20, ping_timeout=20):
            self.broadcast_task = asyncio.create_task(self._broadcast_loop())
            await asyncio.Future()

    async def run_scheduled_tick(self) -> bool:
        """Advance the engine once if it is running; return whether a tick ran."""
        engine: SimulationEngine = self.server_context["engine"]
        if not engine.running:
            return False
        try:
            engine.advance()
        except Exception:
            LOGGER.exception("Scheduled tick failed; pausing the simulation")
            engine.pause()
            await self.message_router.broadcast(
                self.server_context,
                {"type": "status", "running": engine.running, "tick": engine.tick_count},
            )
            return False
        await self.message_router.broadcast(self.server_context, engine.to_tick_message())
        return True

    async def _broadcast_loop(self) -> None:
        # Pausing only stops scheduling; a tick in flight always completes
        while True:
            await asyncio.sleep(self.tick_interval)
            await self.run_scheduled_tick()


async def main(graph_path: Optional[Path] = None, host: str = WEBSOCKET_HOST, port: int = WEBSOCKET_PORT) -> None:
    engine = SimulationEngine()
    if graph_path is not None:
        nodes, edges = load_graph(graph_path)
        engine.load_graph(nodes, edges)
    server = WebSocketServer(engine)
    LOGGER.info("WebSocket server starting on ws://%s:%s", host, port)
    await server.start(host, port)


def run() -> None:
    parser = argparse.ArgumentParser(description="Run the resource-flow simulation server.")
    parser.add_argument("--graph", type=Path, default=None, help="Snapshot file to load at startup")
    parser.add_argument("--host", default=WEBSOCKET_HOST, help=f"Host/interface to bind (default: {WEBSOCKET_HOST})")
    parser.add_argument("--port", type=int, default=WEBSOCKET_PORT, help=f"Port to listen on (default: {WEBSOCKET_PORT})")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    try:
        asyncio.run(main(args.graph, args.host, args.port))
    except KeyboardInterrupt:
        LOGGER.info("Shutting down.")


if __name__ == "__main__":
    run()
