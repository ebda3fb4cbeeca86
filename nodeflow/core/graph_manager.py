"""Workflow graph normalization and indexing."""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..models.core import DEFAULT_HANDLE, NodeConnection, NodeInstance, WorkflowData
from .exceptions import GraphValidationError
from .logging import get_logger
from .node_registry import NodeRegistry

logger = get_logger(__name__)

UNKNOWN_NODE_LABEL = "Unknown Node"


def normalize_workflow_data(
    flow_data: Dict[str, Any],
    registry: Optional[NodeRegistry] = None,
    default_handle: str = DEFAULT_HANDLE,
) -> WorkflowData:
    """
    Normalize raw editor graph data into a WorkflowData.

    Missing edge handles default to ``default_handle`` and missing node labels
    are resolved from the registry definition name.

    Raises:
        GraphValidationError: If the graph data is malformed
    """
    try:
        nodes = []
        for raw_node in flow_data.get("nodes", []):
            data = dict(raw_node.get("data") or {})
            node_type = raw_node.get("type") or data.get("nodeType")
            label = data.get("label")
            if not label:
                definition = registry.get_definition(data.get("nodeType") or node_type) if registry else None
                label = definition.name if definition else UNKNOWN_NODE_LABEL
            nodes.append({
                "id": raw_node.get("id"),
                "type": node_type,
                "position": raw_node.get("position") or {"x": 0, "y": 0},
                "data": {
                    "label": label,
                    "inputs": data.get("inputs") or {},
                    "nodeType": data.get("nodeType"),
                },
            })

        edges = []
        for raw_edge in flow_data.get("edges", []):
            edges.append({
                "id": raw_edge.get("id"),
                "source": raw_edge.get("source"),
                "sourceHandle": raw_edge.get("sourceHandle") or raw_edge.get("source_handle") or default_handle,
                "target": raw_edge.get("target"),
                "targetHandle": raw_edge.get("targetHandle") or raw_edge.get("target_handle") or default_handle,
            })

        return WorkflowData(nodes=nodes, edges=edges)
    except ValidationError as e:
        errors = [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise GraphValidationError(f"Invalid workflow data: {'; '.join(errors)}", validation_errors=errors)
    except (AttributeError, TypeError) as e:
        raise GraphValidationError(f"Invalid workflow data: {e}")


class WorkflowGraph:
    """Read-only index over a WorkflowData used during execution."""

    def __init__(self, flow_data: WorkflowData):
        self.flow_data = flow_data
        self.nodes: Dict[str, NodeInstance] = {node.id: node for node in flow_data.nodes}
        self._incoming: Dict[str, List[NodeConnection]] = {node_id: [] for node_id in self.nodes}
        self._outgoing: Dict[str, List[NodeConnection]] = {node_id: [] for node_id in self.nodes}

        for edge in flow_data.edges:
            self._outgoing[edge.source].append(edge)
            self._incoming[edge.target].append(edge)

    def get_node(self, node_id: str) -> NodeInstance:
        return self.nodes[node_id]

    def incoming_edges(self, node_id: str) -> List[NodeConnection]:
        """Edges targeting ``node_id`` in edge-list order."""
        return self._incoming[node_id]

    def outgoing_edges(self, node_id: str) -> List[NodeConnection]:
        """Edges leaving ``node_id`` in edge-list order."""
        return self._outgoing[node_id]

    def entry_nodes(self) -> List[NodeInstance]:
        """Nodes with no incoming edge, in graph order."""
        return [node for node in self.flow_data.nodes if not self._incoming[node.id]]

    def exit_nodes(self) -> List[NodeInstance]:
        """Nodes with no outgoing edge, in graph order."""
        return [node for node in self.flow_data.nodes if not self._outgoing[node.id]]

    def find_cycle(self) -> Optional[List[str]]:
        """Return the node ids of one cycle (first id repeated at the end), or None."""
        visited = set()
        stack: List[str] = []
        on_stack = set()

        def visit(node_id: str) -> Optional[List[str]]:
            visited.add(node_id)
            stack.append(node_id)
            on_stack.add(node_id)

            for edge in self._outgoing[node_id]:
                neighbor = edge.target
                if neighbor in on_stack:
                    return stack[stack.index(neighbor):] + [neighbor]
                if neighbor not in visited:
                    cycle = visit(neighbor)
                    if cycle:
                        return cycle

            stack.pop()
            on_stack.discard(node_id)
            return None

        for node_id in self.nodes:
            if node_id not in visited:
                cycle = visit(node_id)
                if cycle:
                    return cycle

        return None
