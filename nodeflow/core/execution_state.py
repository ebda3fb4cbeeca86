"""In-memory state of a single workflow execution."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models.core import ExecutionStatusEnum, LogEntry, LogSeverity, NodeInstance
from .logging import get_logger

logger = get_logger(__name__)

_LEVELS = {
    LogSeverity.INFO: logging.INFO,
    LogSeverity.WARNING: logging.WARNING,
    LogSeverity.ERROR: logging.ERROR,
}


@dataclass
class ExecutionNodeState:
    """Per-node record for one run.

    ``executed`` flips to True exactly once, after which inputs, outputs and
    error are no longer written.
    """
    id: str
    type: str
    inputs: Dict[str, Any] = field(default_factory=dict)
    outputs: Dict[str, Any] = field(default_factory=dict)
    executed: bool = False
    error: Optional[str] = None
    correlation_record_id: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.executed and self.error is None

    def mark_succeeded(self, outputs: Dict[str, Any]) -> None:
        if self.executed:
            raise RuntimeError(f"Node {self.id} already executed")
        self.outputs = outputs
        self.executed = True

    def mark_failed(self, error: str) -> None:
        if self.executed:
            raise RuntimeError(f"Node {self.id} already executed")
        self.error = error
        self.executed = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "executed": self.executed,
            "inputs": self.inputs,
            "outputs": self.outputs,
            "error": self.error,
        }


class ExecutionState:
    """Mutable run record owned by exactly one engine run."""

    def __init__(
        self,
        execution_id: str,
        workflow_id: str,
        nodes: List[NodeInstance],
        initial_inputs: Optional[Dict[str, Any]] = None,
    ):
        self.execution_id = execution_id
        self.workflow_id = workflow_id
        self.initial_inputs: Dict[str, Any] = dict(initial_inputs or {})
        self.status = ExecutionStatusEnum.PENDING
        self.started_at = datetime.utcnow()
        self.completed_at: Optional[datetime] = None
        self.logs: List[LogEntry] = []
        self.result: Any = None

        # Static instance inputs seed the node state; copied so the definition stays untouched
        self.nodes: Dict[str, ExecutionNodeState] = {
            node.id: ExecutionNodeState(id=node.id, type=node.type, inputs=dict(node.data.inputs))
            for node in nodes
        }

    def node(self, node_id: str) -> ExecutionNodeState:
        return self.nodes[node_id]

    def seed_entry_inputs(self, entry_node_ids: List[str]) -> None:
        """Merge the full initial-input mapping into every entry node's inputs."""
        for node_id in entry_node_ids:
            self.nodes[node_id].inputs.update(self.initial_inputs)

    def successful_outputs(self) -> Dict[str, Dict[str, Any]]:
        """Outputs of every node that finished without error, keyed by node id."""
        return {
            node_id: node_state.outputs
            for node_id, node_state in self.nodes.items()
            if node_state.succeeded
        }

    def append_log(self, level: LogSeverity, message: str, node_id: Optional[str] = None) -> LogEntry:
        """Append an entry to the run log and mirror it to the process log."""
        entry = LogEntry(level=level, message=message, node_id=node_id)
        self.logs.append(entry)

        prefix = f"[{self.execution_id}]" + (f"[{node_id}]" if node_id else "")
        logger.log(_LEVELS[level], f"{prefix} {message}")
        return entry

    def serialized_logs(self) -> List[Dict[str, Any]]:
        """Run log in its JSON-ready persisted form."""
        return [entry.model_dump(mode="json") for entry in self.logs]

    def transition(self, status: ExecutionStatusEnum) -> None:
        if not self.status.can_transition_to(status):
            raise ValueError(f"Cannot move execution {self.execution_id} from {self.status.value} to {status.value}")
        self.status = status
        if status.is_terminal:
            self.completed_at = datetime.utcnow()
