"""
Simulation Engine - session state around the tick driver.
Holds the current graph, tick count, history and play/pause status; the
server (or any other caller) decides when to call ``step``.
"""
import logging
import random
from typing import Any, Dict, List, Optional, Sequence

from .constants import HISTORY_LIMIT
from .history import HistoryRecorder, export_history_csv
from .models import Edge, Node
from .simulation import TickResult, copy_nodes, run_simulation_tick
from .state import build_graph_from_dict, graph_to_dict, node_to_dict

LOGGER = logging.getLogger(__name__)


class SimulationValidationError(Exception):
    """Raised when a session request refers to something that does not exist."""
    pass


class SimulationEngine:
    """Stateful wrapper that runs ticks over the current graph snapshot."""

    def __init__(
        self,
        nodes: Optional[Sequence[Node]] = None,
        edges: Optional[Sequence[Edge]] = None,
        rng: Optional[random.Random] = None,
        history_limit: int = HISTORY_LIMIT,
    ) -> None:
        self.rng: random.Random = rng if rng is not None else random.Random()
        self.nodes: List[Node] = copy_nodes(nodes or [])
        self.edges: List[Edge] = list(edges or [])
        self.tick_count: int = 0
        self.running: bool = False
        self.history = HistoryRecorder(history_limit)
        self.last_stats: Dict[str, float] = {}

    # ------------------------------------------------------------------
    # Cadence controls
    # ------------------------------------------------------------------

    def play(self) -> None:
        self.running = True

    def pause(self) -> None:
        self.running = False

    def toggle_play(self) -> bool:
        self.running = not self.running
        return self.running

    def step(self) -> TickResult:
        """Run exactly one tick, pausing first if the session is running."""
        if self.running:
            self.pause()
        return self.advance()

    def advance(self) -> TickResult:
        """Run one tick without touching the running flag (used by the tick loop)."""
        result = run_simulation_tick(self.nodes, self.edges, self.rng)
        self.nodes = result.nodes
        self.last_stats = dict(result.stats)
        self.tick_count += 1
        self.history.record(self.tick_count, self.nodes, result.stats)
        return result

    def reset(self) -> None:
        """Zero node values and discard history; topology and rates are untouched."""
        self.running = False
        self.tick_count = 0
        self.last_stats = {}
        self.history.clear()
        for node in self.nodes:
            node.value = 0

    # ------------------------------------------------------------------
    # Snapshot replacement
    # ------------------------------------------------------------------

    def load_graph(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> None:
        self.reset()
        self.nodes = copy_nodes(nodes)
        self.edges = list(edges)
        LOGGER.info("Loaded graph with %d nodes and %d edges", len(self.nodes), len(self.edges))

    def load_snapshot(self, data: Dict[str, Any]) -> None:
        nodes, edges = build_graph_from_dict(data)
        self.load_graph(nodes, edges)

    def to_snapshot(self) -> Dict[str, Any]:
        return graph_to_dict(self.nodes, self.edges)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_node(self, node_id: str) -> Node:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise SimulationValidationError(f"Node {node_id} does not exist")

    def to_node_message(self, node_id: str) -> Dict[str, Any]:
        return {"type": "node", "node": node_to_dict(self.get_node(node_id))}

    def export_history_csv(self) -> str:
        return export_history_csv(self.history.points())

    def to_tick_message(self) -> Dict[str, Any]:
        return {
            "type": "tick",
            "tick": self.tick_count,
            "running": self.running,
            "nodes": [{"id": n.id, "value": n.value} for n in self.nodes],
            "stats": dict(self.last_stats),
        }

    def to_init_message(self, tick_interval: float) -> Dict[str, Any]:
        return {
            "type": "init",
            "tickInterval": tick_interval,
            "tick": self.tick_count,
            "running": self.running,
            "graph": self.to_snapshot(),
            "history": self.history.points(),
        }
