import json
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .constants import (
    DEFAULT_EDGE_RATE,
    SNAPSHOT_FILENAME_PREFIX,
    SNAPSHOT_FORMAT_VERSION,
    normalize_node_kind,
)
from .models import Edge, Node

# Persisted names for kinds whose editor vocabulary differs from ours
_PERSISTED_KIND_NAMES: Dict[str, str] = {
    "gate": "register",
    "annotation": "text",
}


class SnapshotLoadError(Exception):
    """Raised when a snapshot payload cannot be turned into a graph."""


def _coerce_float(value: Any, default: float = 0) -> float:
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    # Keep whole numbers integral so arithmetic stays exact
    return int(number) if number.is_integer() else number


def _coerce_optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return int(number) if number.is_integer() else number


def _coerce_optional_str(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def _require_id(entry: Any, what: str) -> str:
    if not isinstance(entry, dict) or entry.get("id") in (None, ""):
        raise SnapshotLoadError(f"{what} entry is missing an id")
    return str(entry["id"])


def _parse_node(entry: Dict[str, Any]) -> Node:
    node_id = _require_id(entry, "Node")
    data = entry.get("data") if isinstance(entry.get("data"), dict) else {}
    position = entry.get("position") if isinstance(entry.get("position"), dict) else {}
    return Node(
        id=node_id,
        kind=normalize_node_kind(entry.get("type")),
        label=str(data.get("label", "") or ""),
        value=_coerce_float(data.get("value")),
        rate=_coerce_float(data.get("rate")),
        rate_max=_coerce_optional_float(data.get("rateMax")),
        is_random=bool(data.get("isRandom", False)),
        capacity=_coerce_optional_float(data.get("capacity")),
        formula=_coerce_optional_str(data.get("formula")),
        x=float(_coerce_float(position.get("x"))),
        y=float(_coerce_float(position.get("y"))),
        font_size=_coerce_optional_float(data.get("fontSize")),
    )


def _parse_edge(entry: Dict[str, Any]) -> Edge:
    edge_id = _require_id(entry, "Edge")
    if entry.get("source") is None or entry.get("target") is None:
        raise SnapshotLoadError(f"Edge {edge_id} is missing an endpoint")
    data = entry.get("data") if isinstance(entry.get("data"), dict) else {}
    return Edge(
        id=edge_id,
        source_node_id=str(entry["source"]),
        target_node_id=str(entry["target"]),
        rate=_coerce_float(data.get("rate", DEFAULT_EDGE_RATE), DEFAULT_EDGE_RATE),
        rate_max=_coerce_optional_float(data.get("rateMax")),
        is_random=bool(data.get("isRandom", False)),
        variable_name=_coerce_optional_str(data.get("variableName")),
    )


def build_graph_from_dict(data: Dict[str, Any]) -> Tuple[List[Node], List[Edge]]:
    """Parse a snapshot record into ordered node and edge lists."""
    if not isinstance(data, dict):
        raise SnapshotLoadError("Snapshot payload must be an object")
    nodes_raw = data.get("nodes")
    edges_raw = data.get("edges")
    if not isinstance(nodes_raw, list) or not isinstance(edges_raw, list):
        raise SnapshotLoadError("Snapshot must contain 'nodes' and 'edges' lists")

    nodes = [_parse_node(n) for n in nodes_raw]
    edges = [_parse_edge(e) for e in edges_raw]
    return nodes, edges


def node_to_dict(node: Node) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": node.id,
        "label": node.label,
        "value": node.value,
        "rate": node.rate,
    }
    if node.rate_max is not None:
        data["rateMax"] = node.rate_max
    if node.is_random:
        data["isRandom"] = True
    if node.capacity is not None:
        data["capacity"] = node.capacity
    if node.formula is not None:
        data["formula"] = node.formula
    if node.font_size is not None:
        data["fontSize"] = node.font_size
    return {
        "id": node.id,
        "type": _PERSISTED_KIND_NAMES.get(node.kind, node.kind),
        "position": {"x": node.x, "y": node.y},
        "data": data,
    }


def _edge_to_dict(edge: Edge) -> Dict[str, Any]:
    data: Dict[str, Any] = {"rate": edge.rate}
    if edge.rate_max is not None:
        data["rateMax"] = edge.rate_max
    if edge.is_random:
        data["isRandom"] = True
    if edge.variable_name:
        data["variableName"] = edge.variable_name
    return {
        "id": edge.id,
        "source": edge.source_node_id,
        "target": edge.target_node_id,
        "data": data,
    }


def graph_to_dict(nodes: Sequence[Node], edges: Sequence[Edge]) -> Dict[str, Any]:
    return {
        "nodes": [node_to_dict(n) for n in nodes],
        "edges": [_edge_to_dict(e) for e in edges],
        "version": SNAPSHOT_FORMAT_VERSION,
    }


def load_graph(graph_path: Path) -> Tuple[List[Node], List[Edge]]:
    try:
        with open(graph_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise SnapshotLoadError(f"Cannot parse snapshot file {graph_path}: {e}") from e
    return build_graph_from_dict(data)


def save_graph(graph_path: Path, nodes: Sequence[Node], edges: Sequence[Edge]) -> None:
    with open(graph_path, "w", encoding="utf-8") as f:
        json.dump(graph_to_dict(nodes, edges), f, indent=2)


def snapshot_filename(on_date: Optional[date] = None) -> str:
    stamp = (on_date or date.today()).isoformat()
    return f"{SNAPSHOT_FILENAME_PREFIX}-{stamp}.json"
