import json
from datetime import date

import pytest

from ecoflow.models import Edge, Node
from ecoflow.state import (
    SnapshotLoadError,
    build_graph_from_dict,
    graph_to_dict,
    load_graph,
    save_graph,
    snapshot_filename,
)


def _editor_payload():
    return {
        "version": "1.0",
        "nodes": [
            {
                "id": "source-1",
                "type": "source",
                "position": {"x": 10, "y": 20},
                "data": {"label": "Spring", "value": 0, "rate": 5, "rateMax": 10, "isRandom": True, "id": "source-1"},
            },
            {
                "id": "pool-1",
                "type": "pool",
                "position": {"x": 100, "y": 0},
                "data": {"label": "Tank", "value": "7", "rate": 0, "capacity": 100, "id": "pool-1"},
            },
            {
                "id": "register-1",
                "type": "register",
                "position": {"x": 0, "y": 0},
                "data": {"label": "Check", "value": 0, "rate": 0, "formula": "a > 5"},
            },
            {
                "id": "text-1",
                "type": "text",
                "position": {"x": 0, "y": 0},
                "data": {"label": "Notes", "value": 0, "rate": 0, "fontSize": 14},
            },
        ],
        "edges": [
            {"id": "e1", "source": "source-1", "target": "pool-1", "data": {"rate": 1}},
            {"id": "e2", "source": "pool-1", "target": "register-1", "data": {"rate": 1, "variableName": "a"}},
            {"id": "e3", "source": "pool-1", "target": "text-1"},
        ],
    }


def test_build_graph_from_editor_payload():
    nodes, edges = build_graph_from_dict(_editor_payload())

    assert [n.kind for n in nodes] == ["source", "pool", "gate", "annotation"]
    source, pool, gate, note = nodes
    assert source.rate == 5
    assert source.rate_max == 10
    assert source.is_random is True
    assert (source.x, source.y) == (10.0, 20.0)
    assert pool.value == 7
    assert pool.capacity == 100
    assert gate.formula == "a > 5"
    assert note.font_size == 14

    assert [e.id for e in edges] == ["e1", "e2", "e3"]
    assert edges[1].variable_name == "a"
    # Edges without data default to one unit per use
    assert edges[2].rate == 1


def test_unknown_kind_becomes_annotation():
    payload = {"nodes": [{"id": "x", "type": "teleporter", "data": {}}], "edges": []}

    nodes, _ = build_graph_from_dict(payload)

    assert nodes[0].kind == "annotation"


def test_bad_numbers_fall_back_to_defaults():
    payload = {
        "nodes": [{"id": "p", "type": "pool", "data": {"value": "lots", "rate": None, "capacity": ""}}],
        "edges": [{"id": "e", "source": "p", "target": "p", "data": {"rate": "??"}}],
    }

    nodes, edges = build_graph_from_dict(payload)

    assert nodes[0].value == 0
    assert nodes[0].rate == 0
    assert nodes[0].capacity is None
    assert edges[0].rate == 1


@pytest.mark.parametrize(
    "payload",
    [
        None,
        [],
        {"nodes": []},
        {"edges": []},
        {"nodes": [{"type": "pool"}], "edges": []},
        {"nodes": [], "edges": [{"source": "a", "target": "b"}]},
        {"nodes": [], "edges": [{"id": "e", "source": "a"}]},
    ],
)
def test_malformed_payloads_are_rejected(payload):
    with pytest.raises(SnapshotLoadError):
        build_graph_from_dict(payload)


def test_graph_to_dict_uses_editor_vocabulary():
    nodes = [
        Node("g", "gate", formula="a * 2"),
        Node("t", "annotation", label="hello"),
        Node("p", "pool", value=3, capacity=9),
    ]
    edges = [Edge("e", "p", "g", variable_name="a")]

    payload = graph_to_dict(nodes, edges)

    assert payload["version"] == "1.0"
    assert [n["type"] for n in payload["nodes"]] == ["register", "text", "pool"]
    assert payload["nodes"][0]["data"]["formula"] == "a * 2"
    assert payload["nodes"][2]["data"]["capacity"] == 9
    assert payload["edges"][0] == {
        "id": "e",
        "source": "p",
        "target": "g",
        "data": {"rate": 1, "variableName": "a"},
    }


def test_serialized_graph_parses_back_to_the_same_graph():
    nodes, edges = build_graph_from_dict(_editor_payload())

    again_nodes, again_edges = build_graph_from_dict(graph_to_dict(nodes, edges))

    assert again_nodes == nodes
    assert again_edges == edges


def test_save_and_load_graph(tmp_path):
    nodes, edges = build_graph_from_dict(_editor_payload())
    path = tmp_path / "layout.json"

    save_graph(path, nodes, edges)
    loaded_nodes, loaded_edges = load_graph(path)

    assert json.loads(path.read_text(encoding="utf-8"))["version"] == "1.0"
    assert loaded_nodes == nodes
    assert loaded_edges == edges


def test_load_graph_rejects_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(SnapshotLoadError):
        load_graph(path)


def test_snapshot_filename():
    assert snapshot_filename(date(2024, 1, 2)) == "ecoflow-layout-2024-01-02.json"
