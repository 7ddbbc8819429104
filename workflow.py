"""
FlowCanvas - Workflow Import
Converts backend workflow records (modules + connections) into local nodes/edges.

Expected layout:
{
  "modules": [{"id": 3, "name": "Integer", "package": "basic", "x": 10, "y": 20,
               "inputs": [{"name": "value", "type": "Integer", "optional": true}],
               "outputs": [{"name": "value", "type": "Integer"}],
               "parameters": {...}, "annotations": {...}}],
  "connections": [{"id": 7, "source_id": 3, "source_port": "value",
                   "target_id": 4, "target_port": "value"}],
  "version_id": 12
}
"""

from typing import Optional, Iterable
import logging
import math

from models import NodeData, EdgeData, Position, PortSpec


logger = logging.getLogger(__name__)


def module_node_id(module_id) -> str:
    return f"module-{module_id}"


def connection_edge_id(connection_id) -> str:
    return f"connection-{connection_id}"


def node_from_record(record: dict) -> Optional[NodeData]:
    """Build a node from one module record; None if the record is unusable."""
    module_id = record.get("id")
    if module_id is None:
        logger.warning("Skipping module record without id: %r", record)
        return None
    try:
        x = float(record.get("x", 0.0))
        y = float(record.get("y", 0.0))
    except (TypeError, ValueError):
        logger.warning("Skipping module %s with non-numeric position", module_id)
        return None
    if not (math.isfinite(x) and math.isfinite(y)):
        logger.warning("Skipping module %s with non-finite position", module_id)
        return None

    try:
        inputs = [PortSpec.from_dict(p) for p in record.get("inputs") or []]
        outputs = [PortSpec.from_dict(p) for p in record.get("outputs") or []]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logger.warning("Skipping module %s with malformed ports: %r", module_id, e)
        return None

    name = record.get("name", "")
    package = record.get("package", "")
    return NodeData(
        id=module_node_id(module_id),
        type=name or "module",
        position=Position(x, y),
        label=name,
        inputs=inputs,
        outputs=outputs,
        parameters=dict(record.get("parameters") or {}),
        annotations=dict(record.get("annotations") or {}),
        package=package,
        backend_module_id=module_id,
        backend_module_type=f"{package}::{name}" if package else name
    )


def nodes_from_records(modules: Iterable[dict]) -> tuple[list[NodeData], dict]:
    """Nodes plus a map from backend module id to local node id."""
    nodes = []
    id_map = {}
    for record in modules:
        node = node_from_record(record)
        if node is None:
            continue
        nodes.append(node)
        id_map[record["id"]] = node.id
    return nodes, id_map


def edges_from_records(connections: Iterable[dict], id_map: dict) -> list[EdgeData]:
    edges = []
    for record in connections:
        source = id_map.get(record.get("source_id"))
        target = id_map.get(record.get("target_id"))
        if source is None or target is None:
            logger.warning("Skipping connection %s with unknown endpoint", record.get("id"))
            continue
        connection_id = record.get("id")
        edges.append(EdgeData(
            id=connection_edge_id(connection_id) if connection_id is not None else EdgeData().id,
            source_node_id=source,
            source_port_id=str(record.get("source_port", "")),
            target_node_id=target,
            target_port_id=str(record.get("target_port", "")),
            backend_connection_id=connection_id
        ))
    return edges


def graph_from_workflow(data: dict) -> tuple[list[NodeData], list[EdgeData]]:
    nodes, id_map = nodes_from_records(data.get("modules", []))
    edges = edges_from_records(data.get("connections", []), id_map)
    return nodes, edges
