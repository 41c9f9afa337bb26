"""Bounded tick history and CSV export for charts and downloads."""

from __future__ import annotations

import csv
import io
from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Mapping, Sequence

from .constants import HISTORY_LIMIT, POOL
from .models import Node


class HistoryExportError(Exception):
    """Raised when there is no history to export."""


class HistoryRecorder:
    """Keep the most recent ``limit`` tick points.

    A point is ``{"tick": n, <pool id>: value, ..., <stat key>: value}``.
    """

    def __init__(self, limit: int = HISTORY_LIMIT) -> None:
        self.limit = int(limit)
        self._points: Deque[Dict[str, Any]] = deque(maxlen=self.limit)

    def __len__(self) -> int:
        return len(self._points)

    def record(self, tick: int, nodes: Iterable[Node], stats: Mapping[str, float]) -> Dict[str, Any]:
        point: Dict[str, Any] = {"tick": tick}
        point.update(stats)
        for node in nodes:
            if node.kind == POOL:
                point[node.id] = node.value
        self._points.append(point)
        return point

    def clear(self) -> None:
        self._points.clear()

    def points(self) -> List[Dict[str, Any]]:
        return list(self._points)


def export_history_csv(history: Sequence[Mapping[str, Any]]) -> str:
    """Render history points as CSV text with ``tick`` as the first column.

    Columns are the union of keys across all points; a point missing a
    column gets an empty cell.
    """
    if not history:
        raise HistoryExportError("No data to export")

    all_keys = set()
    for point in history:
        all_keys.update(point.keys())
    all_keys.discard("tick")
    columns = ["tick"] + sorted(all_keys)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(columns)
    for point in history:
        writer.writerow([point.get(key, "") for key in columns])
    return buffer.getvalue().rstrip("\n")
