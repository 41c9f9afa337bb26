"""Per-kind update rules run once per tick against a shared working snapshot.

Phases mutate the nodes held by the ``GraphIndex`` in place, so a change made
by an earlier phase (a converter draining a pool, say) is visible to every
later phase of the same tick.
"""
import math
import random
from typing import Dict, List, Tuple

from .constants import (
    CONVERTER,
    DRAIN,
    GATE,
    MERGER,
    POOL,
    SOURCE,
    SPLITTER,
    throughput_stat_key,
)
from .formula import Number, try_evaluate_formula
from .graph_index import GraphIndex
from .models import Edge, Node
from .rates import resolve_quantity


def _nodes_of_kind(nodes: List[Node], kind: str) -> List[Node]:
    return [n for n in nodes if n.kind == kind]


def _gate_signal(node: Node) -> Number:
    """Value a node contributes when bound to a gate variable."""
    if node.holds_value:
        return node.value
    if node.kind == SOURCE:
        # Constant signal, not resampled
        return node.rate
    return 0


def run_gate_phase(nodes: List[Node], index: GraphIndex) -> None:
    # Single pass in list order; a gate reading a later gate sees last tick's value
    for gate in _nodes_of_kind(nodes, GATE):
        variables: Dict[str, Number] = {}
        for edge in index.incoming(gate.id):
            source_node = index.node(edge.source_node_id)
            if source_node is None or not edge.variable_name:
                continue
            variables[edge.variable_name] = _gate_signal(source_node)

        if gate.formula:
            gate.value = try_evaluate_formula(gate.formula, variables)
        else:
            gate.value = 0


def _run_recipe_once(converter: Node, index: GraphIndex, rng: random.Random) -> bool:
    """Attempt one all-or-nothing repetition of a converter's recipe."""
    inputs = index.incoming(converter.id)
    outputs = index.outgoing(converter.id)

    costs: Dict[int, float] = {}
    required_by_source: Dict[str, float] = {}
    for position, edge in enumerate(inputs):
        required = resolve_quantity(edge, rng)
        costs[position] = required
        source_node = index.node(edge.source_node_id)
        if source_node is None or not source_node.holds_value:
            continue
        total = required
        if source_node.kind == POOL:
            # Parallel edges from one pool draw on the same stock; gates are not drawn down
            total += required_by_source.get(source_node.id, 0)
            required_by_source[source_node.id] = total
        if source_node.value < total:
            return False

    if not inputs or not outputs:
        return False

    for position, edge in enumerate(inputs):
        source_node = index.node(edge.source_node_id)
        # Gates are read-only preconditions
        if source_node is not None and source_node.kind == POOL:
            source_node.value -= costs[position]

    for edge in outputs:
        target_node = index.node(edge.target_node_id)
        amount = resolve_quantity(edge, rng)
        if target_node is not None and target_node.kind == POOL:
            target_node.add(amount)
    return True


def run_convert_phase(
    nodes: List[Node], index: GraphIndex, rng: random.Random, stats: Dict[str, float]
) -> None:
    for converter in _nodes_of_kind(nodes, CONVERTER):
        key = throughput_stat_key(converter.id)
        stats[key] = 0

        attempts = max(1, resolve_quantity(converter, rng))
        completed = 0
        while completed < attempts:
            if not _run_recipe_once(converter, index, rng):
                # Shortage or blockage stops this converter for the tick
                break
            completed += 1
        stats[key] = completed


def run_generate_phase(nodes: List[Node], index: GraphIndex, rng: random.Random) -> None:
    for source in _nodes_of_kind(nodes, SOURCE):
        generated = resolve_quantity(source, rng)
        for edge in index.outgoing(source.id):
            target_node = index.node(edge.target_node_id)
            if target_node is not None and target_node.kind == POOL:
                target_node.add(generated)


def run_consume_phase(nodes: List[Node], index: GraphIndex, rng: random.Random) -> None:
    for drain in _nodes_of_kind(nodes, DRAIN):
        drained = resolve_quantity(drain, rng)
        for edge in index.incoming(drain.id):
            source_node = index.node(edge.source_node_id)
            if source_node is not None and source_node.kind == POOL:
                source_node.value = max(0, source_node.value - drained)


def _gather(inputs: Tuple[Edge, ...], index: GraphIndex, throughput: float) -> float:
    """Pull up to ``throughput`` from ``inputs`` in edge order."""
    gathered = 0
    for edge in inputs:
        if gathered >= throughput:
            break
        source_node = index.node(edge.source_node_id)
        if source_node is None or not source_node.holds_value:
            continue
        taken = max(0, min(source_node.value, throughput - gathered))
        if source_node.kind == POOL:
            source_node.value -= taken
        # Gates contribute without being drawn down
        gathered += taken
    return gathered


def _distribute(outputs: Tuple[Edge, ...], index: GraphIndex, gathered: float) -> None:
    """Spread ``gathered`` evenly; the first outputs absorb the remainder one unit each."""
    base = math.floor(gathered / len(outputs))
    remainder = gathered % len(outputs)
    for edge in outputs:
        target_node = index.node(edge.target_node_id)
        if target_node is None or target_node.kind != POOL:
            continue
        amount = base
        if remainder > 0:
            amount += 1
            remainder -= 1
        target_node.add(amount)


def _run_flow_nodes(
    nodes: List[Node],
    kind: str,
    index: GraphIndex,
    rng: random.Random,
    stats: Dict[str, float],
) -> None:
    for flow_node in _nodes_of_kind(nodes, kind):
        key = throughput_stat_key(flow_node.id)
        stats[key] = 0

        throughput = resolve_quantity(flow_node, rng)
        inputs = index.incoming(flow_node.id)
        outputs = index.outgoing(flow_node.id)
        if not inputs or not outputs:
            continue

        gathered = _gather(inputs, index, throughput)
        if gathered > 0:
            _distribute(outputs, index, gathered)
            stats[key] = gathered


def run_split_phase(
    nodes: List[Node], index: GraphIndex, rng: random.Random, stats: Dict[str, float]
) -> None:
    _run_flow_nodes(nodes, SPLITTER, index, rng, stats)


def run_merge_phase(
    nodes: List[Node], index: GraphIndex, rng: random.Random, stats: Dict[str, float]
) -> None:
    # Same gather/distribute rule as splitters; the kinds differ only visually
    _run_flow_nodes(nodes, MERGER, index, rng, stats)
