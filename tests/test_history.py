import pytest

from ecoflow.history import HistoryExportError, HistoryRecorder, export_history_csv
from ecoflow.models import Node


def test_record_captures_pools_and_stats():
    recorder = HistoryRecorder()
    nodes = [Node("pool-1", "pool", value=4), Node("source-1", "source", rate=2)]

    point = recorder.record(1, nodes, {"conv:rate": 2})

    assert point == {"tick": 1, "conv:rate": 2, "pool-1": 4}
    assert recorder.points() == [point]


def test_history_is_bounded_to_the_latest_points():
    recorder = HistoryRecorder(limit=3)
    for tick in range(1, 6):
        recorder.record(tick, [Node("p", "pool", value=tick)], {})

    assert len(recorder) == 3
    assert [p["tick"] for p in recorder.points()] == [3, 4, 5]


def test_clear_discards_points():
    recorder = HistoryRecorder()
    recorder.record(1, [], {})

    recorder.clear()

    assert recorder.points() == []


def test_export_puts_tick_first_and_fills_gaps():
    history = [
        {"tick": 1, "pool-b": 5, "conv:rate": 1},
        {"tick": 2, "pool-b": 6, "pool-a": 2},
    ]

    csv_text = export_history_csv(history)

    assert csv_text.splitlines() == [
        "tick,conv:rate,pool-a,pool-b",
        "1,1,,5",
        "2,,2,6",
    ]


def test_export_of_empty_history_fails():
    with pytest.raises(HistoryExportError):
        export_history_csv([])
