"""Core workflow engine components."""

from .exceptions import (
    WorkflowEngineError,
    GraphValidationError,
    CycleDetectedError,
    NodeConfigurationError,
    NodeExecutionError,
    NodeRegistryError,
    StateManagementError,
    ExecutionEngineError,
    StorageError,
    ConfigurationError,
)
from .logging import setup_logging, get_logger
from .node_registry import NodeContext, NodeProcessor, NodeRegistry, create_default_registry
from .graph_manager import WorkflowGraph, normalize_workflow_data
from .state_manager import StateManager
from .flow_engine import FlowEngine

__all__ = [
    "WorkflowEngineError",
    "GraphValidationError",
    "CycleDetectedError",
    "NodeConfigurationError",
    "NodeExecutionError",
    "NodeRegistryError",
    "StateManagementError",
    "ExecutionEngineError",
    "StorageError",
    "ConfigurationError",
    "setup_logging",
    "get_logger",
    "NodeContext",
    "NodeProcessor",
    "NodeRegistry",
    "create_default_registry",
    "WorkflowGraph",
    "normalize_workflow_data",
    "StateManager",
    "FlowEngine",
]
