"""Read-only lookup structure built once per tick over a node/edge snapshot."""
from typing import Dict, Iterable, List, Optional, Tuple

from .models import Edge, Node

_EMPTY: Tuple[Edge, ...] = ()


class GraphIndex:
    """O(1) node lookup and O(degree) incident-edge lookup.

    Incident edge sequences keep the relative order of the input edge list;
    phases rely on that order as their tie-break.
    """

    def __init__(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        self.nodes: Dict[str, Node] = {n.id: n for n in nodes}
        self._incoming: Dict[str, List[Edge]] = {}
        self._outgoing: Dict[str, List[Edge]] = {}
        for e in edges:
            self._outgoing.setdefault(e.source_node_id, []).append(e)
            self._incoming.setdefault(e.target_node_id, []).append(e)

    def node(self, node_id: str) -> Optional[Node]:
        return self.nodes.get(node_id)

    def incoming(self, node_id: str) -> Tuple[Edge, ...]:
        edges = self._incoming.get(node_id)
        return tuple(edges) if edges else _EMPTY

    def outgoing(self, node_id: str) -> Tuple[Edge, ...]:
        edges = self._outgoing.get(node_id)
        return tuple(edges) if edges else _EMPTY
