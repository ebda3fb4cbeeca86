"""Node Registry: catalog of node types and the processors that execute them."""

import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import ModuleType
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from ..models.core import LogSeverity, NodeDefinition
from .exceptions import NodeRegistryError
from .logging import get_logger

logger = get_logger(__name__)


class NodeLogger:
    """Logger handed to processors; every entry is tagged with the node id."""

    def __init__(self, node_id: str, sink: Callable[[LogSeverity, str, Optional[str]], None]):
        self.node_id = node_id
        self._sink = sink

    def info(self, message: str) -> None:
        self._sink(LogSeverity.INFO, message, self.node_id)

    def warning(self, message: str) -> None:
        self._sink(LogSeverity.WARNING, message, self.node_id)

    def error(self, message: str, error: Optional[BaseException] = None) -> None:
        if error is not None:
            message = f"{message}: {error}"
        self._sink(LogSeverity.ERROR, message, self.node_id)


@dataclass
class NodeContext:
    """Per-invocation context passed to a node processor."""
    node_id: str
    workflow_id: str
    execution_id: str
    inputs: Dict[str, Any]
    logger: NodeLogger
    outputs: Dict[str, Any] = field(default_factory=dict)
    correlation_record_id: Optional[str] = None

    def attach_correlation_record(self, record_id: str) -> None:
        """Bind a lead record to this node so its status follows the node outcome."""
        self.correlation_record_id = record_id


class NodeProcessor(ABC):
    """Executable behavior bound to a node type.

    ``process`` is awaited at most once per node per execution and may raise;
    a raised error aborts the whole run.
    """

    @abstractmethod
    async def process(self, inputs: Dict[str, Any], context: NodeContext) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class RegisteredNode:
    definition: NodeDefinition
    processor: NodeProcessor


class NodeRegistry:
    """Catalog mapping node type identifiers to definitions and processors.

    Built once at startup and passed to the engine; read-only afterwards.
    """

    def __init__(self, modules: Optional[Iterable[Any]] = None):
        self._nodes: Dict[str, RegisteredNode] = {}
        for module in modules or ():
            self.register_module(module)

    def register(self, definition: NodeDefinition, processor: NodeProcessor) -> None:
        """Bind a processor to a node type; a later registration replaces an earlier one.

        Raises:
            NodeRegistryError: If the definition or processor is unusable
        """
        if not isinstance(definition, NodeDefinition):
            raise NodeRegistryError(f"Invalid node definition: {definition!r}")

        process = getattr(processor, "process", None)
        if process is None or not callable(process):
            raise NodeRegistryError(
                f"Processor for node type '{definition.id}' must provide a process() method",
                node_type=definition.id
            )
        if not inspect.iscoroutinefunction(process):
            raise NodeRegistryError(
                f"Processor for node type '{definition.id}' must be asynchronous",
                node_type=definition.id
            )

        if definition.id in self._nodes:
            logger.info(f"Replacing registration for node type '{definition.id}'")

        # definition and processor become visible together
        self._nodes[definition.id] = RegisteredNode(definition=definition, processor=processor)
        logger.debug(f"Registered node type '{definition.id}' ({definition.category})")

    def register_module(self, module: Union[ModuleType, Any]) -> None:
        """Register an object exposing ``definition`` and ``processor`` attributes."""
        try:
            definition = module.definition
            processor = module.processor
        except AttributeError as e:
            raise NodeRegistryError(f"Node module {module!r} must define 'definition' and 'processor': {e}")
        self.register(definition, processor)

    def get_definition(self, node_type: str) -> Optional[NodeDefinition]:
        """Return the definition for ``node_type`` or None if it is not registered."""
        registered = self._nodes.get(node_type)
        return registered.definition if registered else None

    def get_processor(self, node_type: str) -> Optional[NodeProcessor]:
        """Return the processor for ``node_type`` or None if it is not registered."""
        registered = self._nodes.get(node_type)
        return registered.processor if registered else None

    def node_exists(self, node_type: str) -> bool:
        return node_type in self._nodes

    def list_all(self) -> List[NodeDefinition]:
        return [registered.definition for registered in self._nodes.values()]

    def list_by_category(self, category: str) -> List[NodeDefinition]:
        return [
            registered.definition
            for registered in self._nodes.values()
            if registered.definition.category == category
        ]

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_type: str) -> bool:
        return self.node_exists(node_type)


def create_default_registry() -> NodeRegistry:
    """Build a registry holding the built-in node set."""
    from ..nodes.builtins import BUILTIN_NODE_MODULES

    registry = NodeRegistry(BUILTIN_NODE_MODULES)
    logger.info(f"Node registry initialized with {len(registry)} built-in node types")
    return registry
