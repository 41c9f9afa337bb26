import os
from typing import FrozenSet, Tuple

# Core timing
TICK_INTERVAL_SECONDS: float = 1.0
HISTORY_LIMIT: int = 100

# Snapshot format
SNAPSHOT_FORMAT_VERSION: str = "1.0"
SNAPSHOT_FILENAME_PREFIX: str = "ecoflow-layout"

# Server
WEBSOCKET_HOST: str = os.environ.get("ECOFLOW_HOST", "0.0.0.0")
WEBSOCKET_PORT: int = int(os.environ.get("PORT", 8765))

# Node kinds
SOURCE: str = "source"
POOL: str = "pool"
DRAIN: str = "drain"
CONVERTER: str = "converter"
SPLITTER: str = "splitter"
MERGER: str = "merger"
GATE: str = "gate"
ANNOTATION: str = "annotation"

NODE_KINDS: Tuple[str, ...] = (
    SOURCE,
    POOL,
    DRAIN,
    CONVERTER,
    SPLITTER,
    MERGER,
    GATE,
    ANNOTATION,
)

# Capabilities per kind
VALUE_HOLDING_KINDS: FrozenSet[str] = frozenset({POOL, GATE})
CAPACITY_KINDS: FrozenSet[str] = frozenset({POOL})
RATE_RESOLVING_KINDS: FrozenSet[str] = frozenset({SOURCE, DRAIN, CONVERTER, SPLITTER, MERGER})

# Quantity defaults
DEFAULT_EDGE_RATE: float = 1

THROUGHPUT_STAT_SUFFIX: str = ":rate"


def normalize_node_kind(value: str) -> str:
    """Return a supported node kind, treating legacy editor names as aliases."""
    if not isinstance(value, str):
        return ANNOTATION
    lowered = value.strip().lower()
    if lowered == "register":  # legacy alias
        lowered = GATE
    if lowered == "text":  # legacy alias
        lowered = ANNOTATION
    return lowered if lowered in NODE_KINDS else ANNOTATION


def throughput_stat_key(node_id: str) -> str:
    return f"{node_id}{THROUGHPUT_STAT_SUFFIX}"
