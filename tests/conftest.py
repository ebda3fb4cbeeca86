"""Pytest configuration and fixtures."""

import os
import tempfile
from typing import Any, Callable, Dict, List, Optional

import pytest

from nodeflow.core.error_recovery import RetryConfig
from nodeflow.core.flow_engine import FlowEngine
from nodeflow.core.node_registry import NodeContext, NodeLogger, NodeProcessor, NodeRegistry
from nodeflow.core.state_manager import StateManager
from nodeflow.models.core import NodeDefinition, WorkflowData
from nodeflow.storage.database import configure_database, create_tables, reset_database_engine


class FunctionProcessor(NodeProcessor):
    """Test processor wrapping a plain function and recording every call."""

    def __init__(self, func: Callable[[Dict[str, Any], NodeContext], Any]):
        self.func = func
        self.calls: List[Dict[str, Any]] = []

    async def process(self, inputs: Dict[str, Any], context: NodeContext) -> Dict[str, Any]:
        self.calls.append(dict(inputs))
        return self.func(inputs, context)


def make_definition(node_type: str, category: str = "test") -> NodeDefinition:
    return NodeDefinition(id=node_type, name=node_type.title(), category=category)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    db_fd, db_path = tempfile.mkstemp(suffix='.db')
    os.close(db_fd)

    configure_database(f"sqlite:///{db_path}")
    create_tables()

    yield db_path

    reset_database_engine()
    try:
        os.unlink(db_path)
    except OSError:
        pass


@pytest.fixture
def state_manager(temp_db):
    """Create a StateManager instance for testing."""
    return StateManager(retry_config=RetryConfig(max_attempts=2, base_delay=0.01, jitter=False))


@pytest.fixture
def registry():
    """Fresh registry holding a small set of fake node types.

    * ``source`` (trigger): passes every input through
    * ``echo``: passes every input through
    * ``body_only``: outputs only its ``body`` input, when it has one
    * ``empty``: outputs nothing
    * ``fail``: raises ValueError("boom")
    """
    registry = NodeRegistry()
    registry.register(make_definition("source", "triggers"), FunctionProcessor(lambda inputs, ctx: dict(inputs)))
    registry.register(make_definition("echo"), FunctionProcessor(lambda inputs, ctx: dict(inputs)))
    registry.register(make_definition("body_only"), FunctionProcessor(
        lambda inputs, ctx: {"body": inputs["body"]} if "body" in inputs else {}
    ))
    registry.register(make_definition("empty"), FunctionProcessor(lambda inputs, ctx: {}))

    def fail(inputs, ctx):
        raise ValueError("boom")

    registry.register(make_definition("fail"), FunctionProcessor(fail))
    return registry


@pytest.fixture
def engine(registry, state_manager):
    """Create a FlowEngine instance for testing."""
    return FlowEngine(registry, state_manager)


@pytest.fixture
def build_flow():
    """Build a WorkflowData from compact node and edge descriptions.

    nodes: ``(id, type)`` or ``(id, type, static_inputs)``
    edges: ``(source, target)`` or ``(source, source_handle, target, target_handle)``
    """
    def _build(nodes, edges=()) -> WorkflowData:
        node_dicts = []
        for entry in nodes:
            node_id, node_type = entry[0], entry[1]
            inputs = entry[2] if len(entry) > 2 else {}
            node_dicts.append({
                "id": node_id,
                "type": node_type,
                "data": {"label": node_id, "inputs": inputs, "nodeType": node_type},
            })

        edge_dicts = []
        for index, entry in enumerate(edges):
            if len(entry) == 2:
                source, target = entry
                source_handle = target_handle = "body"
            else:
                source, source_handle, target, target_handle = entry
            edge_dicts.append({
                "id": f"e{index}",
                "source": source,
                "sourceHandle": source_handle,
                "target": target,
                "targetHandle": target_handle,
            })

        return WorkflowData(nodes=node_dicts, edges=edge_dicts)

    return _build


@pytest.fixture
def log_sink():
    """Collects NodeLogger entries as (level, message, node_id) tuples."""
    entries = []

    def sink(level, message, node_id=None):
        entries.append((level, message, node_id))

    sink.entries = entries
    return sink


@pytest.fixture
def make_context(log_sink):
    """Build a NodeContext for calling processors directly."""
    def _make(inputs: Optional[Dict[str, Any]] = None, node_id: str = "node-1") -> NodeContext:
        return NodeContext(
            node_id=node_id,
            workflow_id="wf-test",
            execution_id="exec-test",
            inputs=dict(inputs or {}),
            logger=NodeLogger(node_id, log_sink),
        )
    return _make
