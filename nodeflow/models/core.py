"""Core Pydantic models for the workflow engine."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# JSON-like payload carried between nodes
JSONValue = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]

DEFAULT_HANDLE = "body"


class ExecutionStatusEnum(str, Enum):
    """Enumeration of workflow execution statuses."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionStatusEnum.COMPLETED, ExecutionStatusEnum.FAILED)

    def can_transition_to(self, target: "ExecutionStatusEnum") -> bool:
        """Status only moves forward: pending -> running -> completed | failed."""
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS = {
    ExecutionStatusEnum.PENDING: {ExecutionStatusEnum.RUNNING, ExecutionStatusEnum.FAILED},
    ExecutionStatusEnum.RUNNING: {ExecutionStatusEnum.COMPLETED, ExecutionStatusEnum.FAILED},
    ExecutionStatusEnum.COMPLETED: set(),
    ExecutionStatusEnum.FAILED: set(),
}


class LogSeverity(str, Enum):
    """Severity of a run log entry."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class NodeInputSlot(BaseModel):
    """Declared input slot of a node type."""
    id: str = Field(..., description="Slot identifier used as the edge target handle")
    label: str = Field(..., description="Display label")
    type: str = Field(..., description="Declared value type (string, number, json, array, any, ...)")
    required: bool = Field(default=False, description="Whether the slot must be provided")
    default: Any = Field(default=None, description="Default value for the slot")
    description: Optional[str] = Field(None, description="Human readable description")


class NodeOutputSlot(BaseModel):
    """Declared output slot of a node type."""
    id: str = Field(..., description="Slot identifier used as the edge source handle")
    label: str = Field(..., description="Display label")
    type: str = Field(..., description="Declared value type")
    description: Optional[str] = Field(None, description="Human readable description")


class NodeDefinition(BaseModel):
    """Immutable metadata describing a node type."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Node type identifier")
    name: str = Field(..., description="Display name")
    description: str = Field(default="", description="What the node does")
    category: str = Field(..., description="Catalog category, e.g. triggers, actions, logic")
    version: str = Field(default="1.0.0", description="Definition version")
    icon: Optional[str] = Field(None, description="Icon name for the editor")
    inputs: List[NodeInputSlot] = Field(default_factory=list, description="Declared input slots")
    outputs: List[NodeOutputSlot] = Field(default_factory=list, description="Declared output slots")
    defaults: Optional[Dict[str, Any]] = Field(None, description="Default configuration")

    @field_validator('id', 'category')
    @classmethod
    def validate_not_empty(cls, value):
        """Ensure identifiers are not blank."""
        if not value or not value.strip():
            raise ValueError("Node definition id and category cannot be empty")
        return value.strip()


class NodePosition(BaseModel):
    """Editor canvas position of a node instance."""
    x: float = 0
    y: float = 0


class NodeData(BaseModel):
    """Instance-level configuration of a node."""
    model_config = ConfigDict(populate_by_name=True)

    label: str = Field(default="", description="Display label")
    inputs: Dict[str, Any] = Field(default_factory=dict, description="Static input values")
    node_type: Optional[str] = Field(None, alias="nodeType", description="Node type as sent by the editor")


class NodeInstance(BaseModel):
    """A node placed in a workflow graph."""
    id: str = Field(..., description="Unique identifier for the node")
    type: str = Field(..., description="Registered node type identifier")
    position: NodePosition = Field(default_factory=NodePosition)
    data: NodeData = Field(default_factory=NodeData)

    @field_validator('id')
    @classmethod
    def validate_id(cls, id_value):
        """Ensure node ID is not empty."""
        if not id_value or not id_value.strip():
            raise ValueError("Node ID cannot be empty")
        return id_value.strip()


class NodeConnection(BaseModel):
    """Edge between an output handle of one node and an input handle of another."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, description="Edge identifier")
    source: str = Field(..., description="Source node ID")
    source_handle: str = Field(default=DEFAULT_HANDLE, alias="sourceHandle", description="Source output slot")
    target: str = Field(..., description="Target node ID")
    target_handle: str = Field(default=DEFAULT_HANDLE, alias="targetHandle", description="Target input slot")


class WorkflowData(BaseModel):
    """Normalized workflow graph: nodes and edges."""
    nodes: List[NodeInstance] = Field(default_factory=list, description="Nodes in the graph")
    edges: List[NodeConnection] = Field(default_factory=list, description="Edges connecting nodes")

    @field_validator('nodes')
    @classmethod
    def validate_unique_node_ids(cls, nodes):
        """Ensure all node IDs are unique."""
        node_ids = [node.id for node in nodes]
        if len(node_ids) != len(set(node_ids)):
            raise ValueError("All node IDs must be unique")
        return nodes

    @model_validator(mode='after')
    def validate_edge_references(self):
        """Every edge must reference nodes of this graph."""
        node_ids = {node.id for node in self.nodes}
        for edge in self.edges:
            if edge.source not in node_ids:
                raise ValueError(f"Edge references non-existent source node: {edge.source}")
            if edge.target not in node_ids:
                raise ValueError(f"Edge references non-existent target node: {edge.target}")
        return self


class LogEntry(BaseModel):
    """Run log entry."""
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="When the entry was written")
    level: LogSeverity = Field(..., description="Severity")
    message: str = Field(..., description="Log message")
    node_id: Optional[str] = Field(None, description="Node that produced the entry")


class ExecutionRecord(BaseModel):
    """Persisted record of one workflow execution."""
    id: str = Field(..., description="Execution identifier")
    workflow_id: str = Field(..., description="Owning workflow")
    status: ExecutionStatusEnum = Field(..., description="Current status")
    started_at: datetime = Field(..., description="When the execution record was created")
    completed_at: Optional[datetime] = Field(None, description="When the execution reached a terminal status")
    logs: List[LogEntry] = Field(default_factory=list, description="Run log flushed at status transitions")
    result: Optional[Any] = Field(None, description="Final result payload")
    error_message: Optional[str] = Field(None, description="Failure reason for failed runs")


class LeadRecord(BaseModel):
    """Correlation record tracking one lead through a workflow execution."""
    id: str
    workflow_id: str
    execution_id: str
    node_id: str
    lead_id: str
    status: str
    data: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
