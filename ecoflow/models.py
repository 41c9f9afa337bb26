from dataclasses import dataclass
from typing import Optional

from .constants import (
    ANNOTATION,
    CAPACITY_KINDS,
    DEFAULT_EDGE_RATE,
    RATE_RESOLVING_KINDS,
    VALUE_HOLDING_KINDS,
)


@dataclass
class Node:
    id: str
    kind: str = ANNOTATION
    label: str = ""  # owned by the editor
    value: float = 0  # stock for pools, signal for gates
    rate: float = 0
    rate_max: Optional[float] = None
    is_random: bool = False
    capacity: Optional[float] = None  # None or 0 means unbounded
    formula: Optional[str] = None
    # Editor-owned layout, carried through snapshots untouched
    x: float = 0.0
    y: float = 0.0
    font_size: Optional[float] = None

    @property
    def holds_value(self) -> bool:
        return self.kind in VALUE_HOLDING_KINDS

    @property
    def has_capacity(self) -> bool:
        return self.kind in CAPACITY_KINDS and bool(self.capacity)

    @property
    def resolves_rate(self) -> bool:
        return self.kind in RATE_RESOLVING_KINDS

    def add(self, amount: float) -> None:
        """Add ``amount`` to the stock, clamping to capacity immediately."""
        self.value += amount
        if self.has_capacity and self.value > self.capacity:
            self.value = self.capacity


@dataclass
class Edge:
    id: str
    source_node_id: str
    target_node_id: str
    # Amount transferred per use of this edge
    rate: float = DEFAULT_EDGE_RATE
    rate_max: Optional[float] = None
    is_random: bool = False
    # Only meaningful when the target is a gate
    variable_name: Optional[str] = None
