from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import websockets

from .constants import TICK_INTERVAL_SECONDS
from .engine import SimulationEngine, SimulationValidationError
from .history import HistoryExportError
from .state import SnapshotLoadError, snapshot_filename

LOGGER = logging.getLogger(__name__)


class MessageRouter:
    """Routes websocket messages from an editor client to the simulation engine."""

    def __init__(self) -> None:
        self.handlers = {
            "requestInit": self.handle_request_init,
            "play": self.handle_play,
            "pause": self.handle_pause,
            "togglePlay": self.handle_toggle_play,
            "step": self.handle_step,
            "reset": self.handle_reset,
            "loadGraph": self.handle_load_graph,
            "saveGraph": self.handle_save_graph,
            "exportHistory": self.handle_export_history,
            "inspectNode": self.handle_inspect_node,
        }

    async def route_message(
        self,
        websocket: websockets.WebSocketServerProtocol,
        msg: Dict[str, Any],
        server_context: Dict[str, Any],
    ) -> None:
        msg_type = msg.get("type")
        handler = self.handlers.get(msg_type)
        if not handler:
            await self._send_error(websocket, f"Unknown message type: {msg_type}")
            return

        try:
            await handler(websocket, msg, server_context)
        except (SimulationValidationError, SnapshotLoadError, HistoryExportError) as e:
            LOGGER.warning("Rejected %s message: %s", msg_type, e)
            await self._send_error(websocket, str(e))

    # ------------------------------------------------------------------
    # Session controls
    # ------------------------------------------------------------------

    async def handle_request_init(
        self,
        websocket: websockets.WebSocketServerProtocol,
        msg: Dict[str, Any],
        server_context: Dict[str, Any],
    ) -> None:
        engine: SimulationEngine = server_context["engine"]
        tick_interval = server_context.get("tick_interval", TICK_INTERVAL_SECONDS)
        await self._send_safe(websocket, json.dumps(engine.to_init_message(tick_interval)))

    async def handle_play(
        self,
        websocket: websockets.WebSocketServerProtocol,
        msg: Dict[str, Any],
        server_context: Dict[str, Any],
    ) -> None:
        server_context["engine"].play()
        await self._broadcast_status(server_context)

    async def handle_pause(
        self,
        websocket: websockets.WebSocketServerProtocol,
        msg: Dict[str, Any],
        server_context: Dict[str, Any],
    ) -> None:
        server_context["engine"].pause()
        await self._broadcast_status(server_context)

    async def handle_toggle_play(
        self,
        websocket: websockets.WebSocketServerProtocol,
        msg: Dict[str, Any],
        server_context: Dict[str, Any],
    ) -> None:
        server_context["engine"].toggle_play()
        await self._broadcast_status(server_context)

    async def handle_step(
        self,
        websocket: websockets.WebSocketServerProtocol,
        msg: Dict[str, Any],
        server_context: Dict[str, Any],
    ) -> None:
        engine: SimulationEngine = server_context["engine"]
        engine.step()
        await self.broadcast(server_context, engine.to_tick_message())

    async def handle_reset(
        self,
        websocket: websockets.WebSocketServerProtocol,
        msg: Dict[str, Any],
        server_context: Dict[str, Any],
    ) -> None:
        engine: SimulationEngine = server_context["engine"]
        engine.reset()
        await self.broadcast(server_context, engine.to_tick_message())

    # ------------------------------------------------------------------
    # Snapshot exchange
    # ------------------------------------------------------------------

    async def handle_load_graph(
        self,
        websocket: websockets.WebSocketServerProtocol,
        msg: Dict[str, Any],
        server_context: Dict[str, Any],
    ) -> None:
        engine: SimulationEngine = server_context["engine"]
        engine.load_snapshot(msg.get("graph"))
        tick_interval = server_context.get("tick_interval", TICK_INTERVAL_SECONDS)
        await self.broadcast(server_context, engine.to_init_message(tick_interval))

    async def handle_save_graph(
        self,
        websocket: websockets.WebSocketServerProtocol,
        msg: Dict[str, Any],
        server_context: Dict[str, Any],
    ) -> None:
        engine: SimulationEngine = server_context["engine"]
        payload = {
            "type": "graphSnapshot",
            "filename": snapshot_filename(),
            "graph": engine.to_snapshot(),
        }
        await self._send_safe(websocket, json.dumps(payload))

    async def handle_export_history(
        self,
        websocket: websockets.WebSocketServerProtocol,
        msg: Dict[str, Any],
        server_context: Dict[str, Any],
    ) -> None:
        engine: SimulationEngine = server_context["engine"]
        filename = str(msg.get("filename") or "simulation-data.csv")
        payload = {
            "type": "historyExport",
            "filename": filename,
            "csv": engine.export_history_csv(),
        }
        await self._send_safe(websocket, json.dumps(payload))

    async def handle_inspect_node(
        self,
        websocket: websockets.WebSocketServerProtocol,
        msg: Dict[str, Any],
        server_context: Dict[str, Any],
    ) -> None:
        engine: SimulationEngine = server_context["engine"]
        await self._send_safe(websocket, json.dumps(engine.to_node_message(str(msg.get("nodeId")))))

    # ------------------------------------------------------------------
    # Delivery helpers
    # ------------------------------------------------------------------

    async def _broadcast_status(self, server_context: Dict[str, Any]) -> None:
        engine: SimulationEngine = server_context["engine"]
        await self.broadcast(
            server_context,
            {"type": "status", "running": engine.running, "tick": engine.tick_count},
        )

    async def broadcast(self, server_context: Dict[str, Any], message: Dict[str, Any]) -> None:
        payload = json.dumps(message)
        for websocket in list(server_context.get("clients", set())):
            await self._send_safe(websocket, payload)

    async def _send_error(
        self, websocket: Optional[websockets.WebSocketServerProtocol], message: str
    ) -> None:
        await self._send_safe(websocket, json.dumps({"type": "error", "message": message}))

    async def _send_safe(self, websocket: Optional[websockets.WebSocketServerProtocol], payload: str) -> None:
        if not websocket:
            return
        try:
            await websocket.send(payload)
        except websockets.exceptions.ConnectionClosed:
            LOGGER.debug("Dropped message for closed connection")
