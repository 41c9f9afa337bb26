"""
Tick driver - runs the fixed six-phase update over one graph snapshot.
The caller decides cadence; a tick is one uninterrupted call.
"""
import dataclasses
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .graph_index import GraphIndex
from .models import Edge, Node
from .phases import (
    run_consume_phase,
    run_convert_phase,
    run_gate_phase,
    run_generate_phase,
    run_merge_phase,
    run_split_phase,
)


@dataclass
class TickResult:
    nodes: List[Node]
    stats: Dict[str, float] = field(default_factory=dict)


def copy_nodes(nodes: Sequence[Node]) -> List[Node]:
    """Return fresh node objects so the input snapshot is never mutated."""
    return [dataclasses.replace(n) for n in nodes]


def run_simulation_tick(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    rng: Optional[random.Random] = None,
) -> TickResult:
    """Advance the graph one tick and return the new node snapshot plus statistics.

    Phase order is Gate, Convert, Generate, Consume, Split, Merge. All phases
    share one working copy, so each sees the mutations of the ones before it.
    Degraded conditions (bad ranges, failing formulas, shortages, dangling
    edges) only show up in the resulting values and statistics.
    """
    if rng is None:
        rng = random.Random()

    next_nodes = copy_nodes(nodes)
    index = GraphIndex(next_nodes, edges)
    stats: Dict[str, float] = {}

    run_gate_phase(next_nodes, index)
    run_convert_phase(next_nodes, index, rng, stats)
    run_generate_phase(next_nodes, index, rng)
    run_consume_phase(next_nodes, index, rng)
    run_split_phase(next_nodes, index, rng, stats)
    run_merge_phase(next_nodes, index, rng, stats)

    return TickResult(nodes=next_nodes, stats=stats)
