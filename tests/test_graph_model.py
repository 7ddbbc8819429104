import math

from graph_model import GraphModel
from models import NodeData, EdgeData, Position, PortSpec


def make_pair(model):
    a = model.create_node("data-source", 0, 0, inputs=[], outputs=[PortSpec("out")])
    b = model.create_node("filter", 200, 0, inputs=[PortSpec("in")], outputs=[])
    return a, b


# ============================================================================
# Nodes
# ============================================================================
def test_create_node_uses_registered_ports():
    model = GraphModel()
    node = model.create_node("filter", 10, 20)
    assert node.label == "Filter"
    assert node.position == Position(10, 20)
    assert [p.id for p in node.inputs] == ["in-0"]
    assert [p.id for p in node.outputs] == ["out-0", "selection"]
    assert model.get_node(node.id) is node


def test_create_node_unknown_type_gets_generic_ports():
    node = GraphModel().create_node("basic::Integer", 0, 0)
    assert node.label == "basic::Integer"
    assert [p.id for p in node.inputs] == ["in-0"]
    assert [p.id for p in node.outputs] == ["out-0"]


def test_nodes_of_same_type_do_not_share_ports():
    model = GraphModel()
    first = model.create_node("filter", 0, 0)
    second = model.create_node("filter", 0, 0)
    first.inputs.append(PortSpec("extra"))
    assert [p.id for p in second.inputs] == ["in-0"]


def test_create_node_rejects_non_finite_position():
    model = GraphModel()
    assert model.create_node("filter", math.nan, 0) is None
    assert model.nodes == ()


def test_remove_node_cascades_to_edges():
    model = GraphModel()
    a, b = make_pair(model)
    c = model.create_node("filter", 400, 0, inputs=[PortSpec("in")], outputs=[])
    model.create_edge(a.id, "out", b.id, "in")
    kept = model.create_edge(a.id, "out", c.id, "in")

    assert model.remove_node(b.id)
    assert model.edges == (kept,)
    assert not model.remove_node(b.id)


def test_remove_node_drops_it_from_selection():
    model = GraphModel()
    a, b = make_pair(model)
    model.select_nodes([a.id, b.id])
    model.remove_node(a.id)
    assert model.selected_node_ids == (b.id,)


def test_update_node_merges_fields():
    model = GraphModel()
    node = model.create_node("filter", 0, 0)
    assert model.update_node(node.id, {
        "label": "Rows > 10",
        "position": {"x": 5, "y": 6},
        "inputs": [{"name": "left"}, {"name": "right"}],
        "id": "hijacked",
    })
    assert node.label == "Rows > 10"
    assert node.position == Position(5, 6)
    assert [p.id for p in node.inputs] == ["left", "right"]
    assert model.get_node(node.id) is node


def test_update_node_rejects_non_finite_position():
    model = GraphModel()
    node = model.create_node("filter", 1, 2)
    model.update_node(node.id, {"position": Position(math.inf, 0)})
    assert node.position == Position(1, 2)


def test_missing_ids_are_no_ops():
    model = GraphModel()
    a, _ = make_pair(model)
    assert not model.update_node("nope", {"label": "x"})
    assert not model.remove_edge("nope")
    assert not model.set_node_position("nope", 1, 1)
    model.select_node("nope")
    model.select_edge("nope")
    assert model.selected_node_ids == ()
    assert model.selected_edge_id is None
    assert len(model.nodes) == 2


def test_move_nodes():
    model = GraphModel()
    a, b = make_pair(model)
    model.move_nodes([a.id, b.id, "nope"], 10, -5)
    assert a.position == Position(10, -5)
    assert b.position == Position(210, -5)


# ============================================================================
# Edges
# ============================================================================
def test_connect_then_remove_source():
    model = GraphModel()
    a, b = make_pair(model)
    edge = model.create_edge(a.id, "out", b.id, "in")
    assert edge is not None
    assert edge.key == (a.id, "out", b.id, "in")
    assert model.get_edges_for_node(b.id) == [edge]

    model.remove_node(a.id)
    assert model.edges == ()
    assert [n.id for n in model.nodes] == [b.id]


def test_create_edge_is_idempotent():
    model = GraphModel()
    a, b = make_pair(model)
    first = model.create_edge(a.id, "out", b.id, "in")
    assert model.create_edge(a.id, "out", b.id, "in") is None
    assert model.edges == (first,)


def test_create_edge_requires_output_to_input():
    model = GraphModel()
    a, b = make_pair(model)
    assert model.create_edge(b.id, "in", a.id, "out") is None
    assert model.create_edge(a.id, "missing", b.id, "in") is None
    assert model.create_edge(a.id, "out", "ghost", "in") is None
    assert model.edges == ()


def test_removing_selected_edge_clears_selection():
    model = GraphModel()
    a, b = make_pair(model)
    edge = model.create_edge(a.id, "out", b.id, "in")
    model.select_edge(edge.id)
    assert model.remove_edge(edge.id)
    assert model.selected_edge_id is None


# ============================================================================
# Selection
# ============================================================================
def test_node_and_edge_selection_are_exclusive():
    model = GraphModel()
    a, b = make_pair(model)
    edge = model.create_edge(a.id, "out", b.id, "in")

    model.select_node(a.id)
    assert a.is_selected
    model.select_edge(edge.id)
    assert model.selected_node_ids == ()
    assert not a.is_selected
    assert model.is_edge_selected(edge.id)

    model.select_nodes([a.id, b.id])
    assert model.selected_edge_id is None
    assert a.is_selected and b.is_selected


def test_clear_selection():
    model = GraphModel()
    a, _ = make_pair(model)
    model.select_node(a.id)
    model.clear_selection()
    assert model.selected_node_ids == ()
    assert not a.is_selected


def test_selection_signal():
    model = GraphModel()
    a, _ = make_pair(model)
    fired = []
    model.signals.selection_changed.connect(lambda: fired.append(True))
    model.select_node(a.id)
    assert fired == [True]


# ============================================================================
# Backend linkage
# ============================================================================
def test_pending_node_refuses_edges_until_linked():
    model = GraphModel()
    a, _ = make_pair(model)
    pending = model.create_node("filter", 0, 200, pending=True)
    assert not model.is_connectable(pending.id)
    assert model.create_edge(a.id, "out", pending.id, "in-0") is None

    assert model.confirm_node_link(pending.id, 42)
    assert pending.backend_module_id == 42
    assert model.create_edge(a.id, "out", pending.id, "in-0") is not None


def test_rollback_only_removes_pending_nodes():
    model = GraphModel()
    a, _ = make_pair(model)
    pending = model.create_node("filter", 0, 200, pending=True)
    assert not model.rollback_node(a.id)
    assert model.rollback_node(pending.id)
    assert not model.has_node(pending.id)


def test_confirm_edge_link():
    model = GraphModel()
    a, b = make_pair(model)
    edge = model.create_edge(a.id, "out", b.id, "in")
    assert model.confirm_edge_link(edge.id, 7)
    assert edge.backend_connection_id == 7
    assert not model.confirm_edge_link("nope", 7)


def test_restore_keeps_current_links():
    model = GraphModel()
    a, b = make_pair(model)
    pending = model.create_node("filter", 0, 200, pending=True)
    edge = model.create_edge(a.id, "out", b.id, "in")
    before = model.snapshot()

    model.confirm_node_link(pending.id, 42)
    model.confirm_edge_link(edge.id, 7)
    model.restore(before)

    restored = model.get_node(pending.id)
    assert not restored.pending
    assert restored.backend_module_id == 42
    assert model.is_connectable(pending.id)
    assert model.get_edge(edge.id).backend_connection_id == 7


def test_restore_leaves_out_rolled_back_nodes():
    model = GraphModel()
    a, _ = make_pair(model)
    pending = model.create_node("filter", 0, 200, pending=True)
    with_pending = model.snapshot()
    fired = []
    model.signals.node_rolled_back.connect(lambda node_id: fired.append(node_id))

    assert model.rollback_node(pending.id)
    assert fired == [pending.id]
    assert model.is_rolled_back(pending.id)

    model.restore(with_pending)
    assert not model.has_node(pending.id)
    assert model.has_node(a.id)


def test_load_graph_forgets_links():
    model = GraphModel()
    node = model.create_node("filter", 0, 0, pending=True)
    model.confirm_node_link(node.id, 42)
    fresh = NodeData(id=node.id, pending=True)
    model.load_graph([fresh], [])
    assert model.get_node(node.id).pending


# ============================================================================
# Bulk state
# ============================================================================
def test_load_graph_drops_dangling_and_duplicate_edges():
    a = NodeData(id="a", outputs=[PortSpec("out")], is_selected=True)
    b = NodeData(id="b", inputs=[PortSpec("in")])
    edges = [
        EdgeData(id="e1", source_node_id="a", source_port_id="out", target_node_id="b", target_port_id="in"),
        EdgeData(id="e2", source_node_id="a", source_port_id="out", target_node_id="b", target_port_id="in"),
        EdgeData(id="e3", source_node_id="a", source_port_id="out", target_node_id="c", target_port_id="in"),
    ]
    model = GraphModel()
    model.load_graph([a, b], edges)

    assert [e.id for e in model.edges] == ["e1"]
    assert not model.get_node("a").is_selected
    assert model.get_node("a") is not a


def test_snapshot_is_independent():
    model = GraphModel()
    a, b = make_pair(model)
    model.create_edge(a.id, "out", b.id, "in")
    snapshot = model.snapshot(5, 6)

    model.set_node_position(a.id, 99, 99)
    model.remove_node(b.id)
    assert snapshot.nodes[0].position == Position(0, 0)
    assert len(snapshot.edges) == 1
    assert (snapshot.offset_x, snapshot.offset_y) == (5, 6)

    model.restore(snapshot)
    assert model.get_node(a.id).position == Position(0, 0)
    assert len(model.edges) == 1


def test_clear():
    model = GraphModel()
    make_pair(model)
    model.clear()
    assert model.nodes == ()
    assert model.edges == ()


def test_load_graph_drops_edges_between_undeclared_ports():
    a = NodeData(id="a", inputs=[PortSpec("in")], outputs=[PortSpec("out")])
    b = NodeData(id="b", inputs=[PortSpec("in")], outputs=[PortSpec("out")])
    edges = [
        EdgeData(id="ok", source_node_id="a", source_port_id="out", target_node_id="b", target_port_id="in"),
        EdgeData(id="reversed", source_node_id="b", source_port_id="in", target_node_id="a", target_port_id="out"),
        EdgeData(id="unknown", source_node_id="a", source_port_id="ghost", target_node_id="b", target_port_id="in"),
    ]
    model = GraphModel()
    model.load_graph([a, b], edges)
    assert [e.id for e in model.edges] == ["ok"]
