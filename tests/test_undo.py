import pytest

from models import EdgeData, GraphSnapshot, NodeData, Position
from undo import HistoryLog


def snap(*node_ids, offset=(0.0, 0.0)):
    return GraphSnapshot(nodes=[NodeData(id=i) for i in node_ids], offset_x=offset[0], offset_y=offset[1])


def ids(snapshot):
    return [n.id for n in snapshot.nodes]


def test_empty_log():
    log = HistoryLog()
    assert len(log) == 0
    assert log.cursor == -1
    assert log.current_entry is None
    assert log.undo() is None
    assert log.redo() is None


def test_undo_and_redo_walk_the_log():
    log = HistoryLog()
    log.add_entry("init", "Empty", snap())
    log.add_entry("create-node", "Created a", snap("a"))
    log.add_entry("create-node", "Created b", snap("a", "b"))

    assert ids(log.undo()) == ["a"]
    assert ids(log.undo()) == []
    assert log.undo() is None
    assert log.cursor == 0

    assert ids(log.redo()) == ["a"]
    assert ids(log.redo()) == ["a", "b"]
    assert log.redo() is None


def test_new_entry_truncates_redo_branch():
    log = HistoryLog()
    log.add_entry("init", "Empty", snap())
    log.add_entry("create-node", "Created a", snap("a"))
    log.add_entry("create-node", "Created b", snap("a", "b"))
    log.undo()
    log.add_entry("create-node", "Created c", snap("a", "c"))

    assert [e.description for e in log.entries] == ["Empty", "Created a", "Created c"]
    assert not log.can_redo()
    assert log.cursor == 2


def test_oldest_entries_are_evicted():
    log = HistoryLog(max_history=3)
    for i in range(5):
        log.add_entry("create-node", str(i), snap(str(i)))

    assert [e.description for e in log.entries] == ["2", "3", "4"]
    assert log.cursor == 2
    assert ids(log.undo()) == ["3"]
    assert ids(log.undo()) == ["2"]
    assert log.undo() is None


def test_default_capacity():
    log = HistoryLog()
    for i in range(60):
        log.add_entry("create-node", str(i), snap())
    assert len(log) == HistoryLog.MAX_HISTORY
    assert log.cursor == len(log) - 1


def test_jump_to_entry():
    log = HistoryLog()
    first = log.add_entry("init", "Empty", snap())
    log.add_entry("create-node", "Created a", snap("a"))
    log.add_entry("create-node", "Created b", snap("a", "b"))

    assert ids(log.jump_to_entry(first.id)) == []
    assert log.cursor == 0
    assert log.can_redo()
    assert log.jump_to_entry("history-missing") is None
    assert log.cursor == 0


def test_stored_snapshots_are_isolated():
    log = HistoryLog()
    live = snap("a", offset=(3, 4))
    log.add_entry("init", "Start", live)
    live.nodes[0].position = Position(50, 50)

    stored = log.current_entry.snapshot
    assert stored.nodes[0].position == Position(0, 0)
    assert (stored.offset_x, stored.offset_y) == (3, 4)

    log.add_entry("move-node", "Moved", snap("a"))
    restored = log.undo()
    restored.nodes[0].id = "changed"
    assert log.current_entry.snapshot.nodes[0].id == "a"


def test_clear_and_get_entry_at():
    log = HistoryLog()
    entry = log.add_entry("init", "Empty", snap())
    assert log.get_entry_at(0) is entry
    assert log.get_entry_at(1) is None
    log.clear()
    assert len(log) == 0
    assert log.cursor == -1


def test_entry_record_layout():
    log = HistoryLog()
    entry = log.add_entry("init", "Empty", snap("a", offset=(1, 2)))
    record = entry.to_dict()
    assert record["id"].startswith("history-")
    assert record["action"] == "init"
    assert record["state"]["diagram_offset"] == {"x": 1, "y": 2}
    assert record["state"]["nodes"][0]["id"] == "a"


@pytest.mark.parametrize("capacity", [0, -3])
def test_capacity_below_one_is_rejected(capacity):
    with pytest.raises(ValueError):
        HistoryLog(max_history=capacity)


def test_patch_node_updates_every_entry():
    log = HistoryLog()
    log.add_entry("init", "Empty", snap())
    pending = snap("a")
    pending.nodes[0].pending = True
    log.add_entry("create-node", "Created a", pending)
    log.add_entry("move-node", "Moved a", pending)

    assert log.patch_node("a", pending=False, backend_module_id=42) == 2
    restored = log.undo()
    assert not restored.nodes[0].pending
    assert restored.nodes[0].backend_module_id == 42


def test_patch_edge_updates_every_entry():
    log = HistoryLog()
    graph = snap("a", "b")
    graph.edges.append(EdgeData(id="e", source_node_id="a", source_port_id="out",
                                target_node_id="b", target_port_id="in"))
    log.add_entry("create-edge", "Connected", graph)
    assert log.patch_edge("e", backend_connection_id=7) == 1
    assert log.current_entry.snapshot.edges[0].backend_connection_id == 7
    assert log.patch_edge("missing", backend_connection_id=8) == 0


def test_purge_node_removes_it_and_its_edges():
    log = HistoryLog()
    log.add_entry("init", "Empty", snap("b"))
    graph = snap("a", "b")
    graph.edges.append(EdgeData(id="e", source_node_id="a", source_port_id="out",
                                target_node_id="b", target_port_id="in"))
    log.add_entry("create-edge", "Connected", graph)

    log.purge_node("a")
    assert ids(log.current_entry.snapshot) == ["b"]
    assert log.current_entry.snapshot.edges == []
    assert ids(log.undo()) == ["b"]
