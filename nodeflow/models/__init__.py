"""Data models for the workflow engine."""

from .core import (
    DEFAULT_HANDLE,
    JSONValue,
    ExecutionStatusEnum,
    LogSeverity,
    NodeInputSlot,
    NodeOutputSlot,
    NodeDefinition,
    NodePosition,
    NodeData,
    NodeInstance,
    NodeConnection,
    WorkflowData,
    LogEntry,
    ExecutionRecord,
    LeadRecord,
)

__all__ = [
    "DEFAULT_HANDLE",
    "JSONValue",
    "ExecutionStatusEnum",
    "LogSeverity",
    "NodeInputSlot",
    "NodeOutputSlot",
    "NodeDefinition",
    "NodePosition",
    "NodeData",
    "NodeInstance",
    "NodeConnection",
    "WorkflowData",
    "LogEntry",
    "ExecutionRecord",
    "LeadRecord",
]
