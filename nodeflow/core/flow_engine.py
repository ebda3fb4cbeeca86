"""Flow Engine: drives a workflow graph from its entry nodes to completion."""

import asyncio
import logging
import time
import uuid
from functools import partial
from typing import Any, Dict, Iterable, List, Optional

from pydantic_core import to_jsonable_python

from ..models.core import ExecutionRecord, ExecutionStatusEnum, LogSeverity, NodeDefinition, NodeInstance, WorkflowData
from .exceptions import (
    CycleDetectedError,
    ExecutionEngineError,
    NodeConfigurationError,
    NodeExecutionError,
    StateManagementError,
    StorageError,
    WorkflowEngineError,
)
from .execution_state import ExecutionNodeState, ExecutionState
from .graph_manager import WorkflowGraph
from .logging import get_logger, log_with_context, set_logging_context
from .node_registry import NodeContext, NodeLogger, NodeRegistry
from .state_manager import StateManager
from .template import interpolate_value

logger = get_logger(__name__)

TRIGGER_CATEGORY = "triggers"
MESSAGE_KEY = "message"
CORRELATION_KEYS = ("leadId",)


class ExecutionContext:
    """Everything one run needs while walking its graph."""

    def __init__(self, execution_id: str, workflow_id: str, graph: WorkflowGraph, state: ExecutionState):
        self.execution_id = execution_id
        self.workflow_id = workflow_id
        self.graph = graph
        self.state = state


class FlowEngine:
    """Executes workflow graphs as detached asyncio tasks.

    Each run walks the graph depth-first: a node first runs every unexecuted
    source of its incoming edges, copies their outputs into its inputs, awaits
    its processor, then runs the targets of its outgoing edges. A node executes
    at most once per run; the first failure aborts the run.
    """

    def __init__(
        self,
        registry: NodeRegistry,
        state_manager: StateManager,
        trigger_category: str = TRIGGER_CATEGORY,
        message_key: str = MESSAGE_KEY,
        correlation_keys: Iterable[str] = CORRELATION_KEYS,
        interpolate_inputs: bool = True,
    ):
        """
        Args:
            registry: Catalog used to resolve node definitions and processors
            state_manager: Persistence collaborator for execution and lead records
            trigger_category: Definition category identifying trigger nodes
            message_key: Input/output key of the message payload carried across nodes
            correlation_keys: Further keys carried across nodes next to the message
            interpolate_inputs: Whether ``${{...}}`` placeholders in node inputs are resolved before processing
        """
        self.registry = registry
        self.state_manager = state_manager
        self.trigger_category = trigger_category
        self.message_key = message_key
        self.propagated_keys: List[str] = [message_key, *correlation_keys]
        self.interpolate_inputs = interpolate_inputs

        self._active_executions: Dict[str, asyncio.Task] = {}
        # Failures of finished runs, re-raised by wait_for_execution
        self._failures: Dict[str, BaseException] = {}

    async def execute_workflow(
        self,
        workflow_id: str,
        flow_data: WorkflowData,
        initial_inputs: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Start a workflow run and return its execution id without waiting for it.

        The pending execution record is written before this returns; the graph
        walk happens in a background task.

        Raises:
            ExecutionEngineError: If the execution record cannot be created
        """
        execution_id = str(uuid.uuid4())

        try:
            await asyncio.to_thread(
                self.state_manager.create_execution, execution_id, workflow_id, ExecutionStatusEnum.PENDING
            )
        except WorkflowEngineError as e:
            raise ExecutionEngineError(
                f"Failed to create execution for workflow {workflow_id}: {e.message}",
                execution_id=execution_id,
                workflow_id=workflow_id
            ) from e

        task = asyncio.create_task(
            self._run_execution(execution_id, workflow_id, flow_data, dict(initial_inputs or {})),
            name=f"execution-{execution_id}",
        )
        self._active_executions[execution_id] = task
        task.add_done_callback(partial(self._on_execution_done, execution_id))

        logger.info(f"Started workflow execution: execution_id={execution_id}, workflow_id={workflow_id}")
        return execution_id

    def get_active_executions(self) -> List[str]:
        """Ids of runs whose background task has not finished."""
        return [execution_id for execution_id, task in self._active_executions.items() if not task.done()]

    async def wait_for_execution(self, execution_id: str) -> ExecutionRecord:
        """
        Wait for a run to finish and return its persisted record.

        Re-raises the run's failure, whether it is still running or already
        finished when this is called.
        """
        task = self._active_executions.get(execution_id)
        if task is not None:
            await task
        failure = self._failures.get(execution_id)
        if failure is not None:
            raise failure
        return await asyncio.to_thread(self.state_manager.get_execution, execution_id)

    async def shutdown(self) -> None:
        """Wait for every in-flight run to finish."""
        tasks = list(self._active_executions.values())
        if tasks:
            logger.info(f"Waiting for {len(tasks)} active executions to finish")
            await asyncio.gather(*tasks, return_exceptions=True)

    def _on_execution_done(self, execution_id: str, task: asyncio.Task) -> None:
        self._active_executions.pop(execution_id, None)
        if task.cancelled():
            logger.warning(f"Workflow execution {execution_id} was cancelled")
            return
        error = task.exception()
        if error is not None:
            self._failures[execution_id] = error
            logger.error(f"Workflow execution error: {execution_id}: {error}")

    async def _run_execution(
        self,
        execution_id: str,
        workflow_id: str,
        flow_data: WorkflowData,
        initial_inputs: Dict[str, Any],
    ) -> ExecutionState:
        set_logging_context(execution_id=execution_id, workflow_id=workflow_id)

        graph = WorkflowGraph(flow_data)
        state = ExecutionState(execution_id, workflow_id, flow_data.nodes, initial_inputs)
        ctx = ExecutionContext(execution_id, workflow_id, graph, state)

        state.transition(ExecutionStatusEnum.RUNNING)
        await self._persist(state, ExecutionStatusEnum.RUNNING, logs=state.serialized_logs())

        entry_nodes = graph.entry_nodes()
        state.seed_entry_inputs([node.id for node in entry_nodes])

        try:
            cycle = graph.find_cycle()
            if cycle:
                raise CycleDetectedError(cycle, workflow_id=workflow_id)

            for node in entry_nodes:
                await self._run_node(node.id, ctx)

            result = self._compute_result(graph, state)
        except Exception as e:
            state.append_log(LogSeverity.ERROR, f"Workflow execution failed: {e}")
            state.transition(ExecutionStatusEnum.FAILED)
            await self._persist(
                state,
                ExecutionStatusEnum.FAILED,
                completed_at=state.completed_at,
                logs=state.serialized_logs(),
                error_message=str(e),
            )
            raise

        state.result = result
        state.transition(ExecutionStatusEnum.COMPLETED)
        await self._persist(
            state,
            ExecutionStatusEnum.COMPLETED,
            completed_at=state.completed_at,
            logs=state.serialized_logs(),
            result=to_jsonable_python(result, fallback=str),
        )
        log_with_context(
            logger,
            logging.INFO,
            f"Workflow execution completed successfully: {execution_id}",
            executed_nodes=len(state.successful_outputs()),
        )
        return state

    async def _run_node(self, node_id: str, ctx: ExecutionContext) -> None:
        node_state = ctx.state.node(node_id)
        if node_state.executed:
            return

        node = ctx.graph.get_node(node_id)
        definition = self.registry.get_definition(node.type)

        if self._is_trigger(definition) and node_state.inputs.get(self.message_key) is None:
            node_state.inputs[self.message_key] = {}

        for edge in ctx.graph.incoming_edges(node_id):
            source_state = ctx.state.node(edge.source)
            if not source_state.executed:
                await self._run_node(edge.source, ctx)
                # a dependency's successors may have run this node; its inputs are frozen
                if node_state.executed:
                    return

            if source_state.succeeded:
                if edge.source_handle in source_state.outputs:
                    node_state.inputs[edge.target_handle] = source_state.outputs[edge.source_handle]
                for key in self.propagated_keys:
                    carried = source_state.outputs.get(key)
                    if carried is not None:
                        node_state.inputs[key] = carried

        await self._execute_node(node, node_state, ctx)

        for edge in ctx.graph.outgoing_edges(node_id):
            await self._run_node(edge.target, ctx)

    async def _execute_node(self, node: NodeInstance, node_state: ExecutionNodeState, ctx: ExecutionContext) -> None:
        set_logging_context(node_id=node.id)
        node_logger = NodeLogger(node.id, ctx.state.append_log)
        context: Optional[NodeContext] = None
        started = time.monotonic()

        try:
            processor = self.registry.get_processor(node.type)
            if processor is None:
                raise NodeConfigurationError(
                    f"No processor found for node type: {node.type}",
                    node_id=node.id,
                    node_type=node.type
                )

            if self.interpolate_inputs:
                node_state.inputs = interpolate_value(node_state.inputs, self._template_context(node_state, ctx))

            context = NodeContext(
                node_id=node.id,
                workflow_id=ctx.workflow_id,
                execution_id=ctx.execution_id,
                inputs=dict(node_state.inputs),
                logger=node_logger,
            )

            node_logger.info(f"Executing node: {node.data.label or node.type}")
            outputs = await processor.process(context.inputs, context)

            if outputs is None:
                outputs = {}
            if not isinstance(outputs, dict):
                raise NodeExecutionError(
                    f"Processor for node type {node.type} returned {type(outputs).__name__}, expected a mapping",
                    node_id=node.id,
                    execution_id=ctx.execution_id
                )

            node_state.correlation_record_id = context.correlation_record_id
            node_state.mark_succeeded({**outputs, **self._carried_values(node_state)})
        except Exception as e:
            if context is not None:
                node_state.correlation_record_id = context.correlation_record_id
            node_state.mark_failed(str(e))
            node_logger.error("Node execution failed", e)
            await self._update_correlation_record(
                node_state, "failed", {"inputs": node_state.inputs, "error": str(e)}
            )
            raise

        logger.debug(f"Node {node.id} finished in {time.monotonic() - started:.3f}s")
        await self._update_correlation_record(
            node_state, "completed", {"inputs": node_state.inputs, "outputs": node_state.outputs}
        )

    def _is_trigger(self, definition: Optional[NodeDefinition]) -> bool:
        return definition is not None and definition.category == self.trigger_category

    def _carried_values(self, node_state: ExecutionNodeState) -> Dict[str, Any]:
        return {
            key: node_state.inputs[key]
            for key in self.propagated_keys
            if node_state.inputs.get(key) is not None
        }

    def _template_context(self, node_state: ExecutionNodeState, ctx: ExecutionContext) -> Dict[str, Any]:
        return {
            **ctx.state.initial_inputs,
            **node_state.inputs,
            "nodes": ctx.state.successful_outputs(),
        }

    @staticmethod
    def _compute_result(graph: WorkflowGraph, state: ExecutionState) -> Any:
        exit_nodes = graph.exit_nodes()

        if not exit_nodes:
            return None

        if len(exit_nodes) == 1:
            return state.node(exit_nodes[0].id).outputs

        return {
            node.id: state.node(node.id).outputs
            for node in exit_nodes
            if state.node(node.id).succeeded
        }

    async def _persist(self, state: ExecutionState, status: ExecutionStatusEnum, **fields) -> None:
        try:
            await asyncio.to_thread(self.state_manager.update_execution, state.execution_id, status, **fields)
        except (StorageError, StateManagementError) as e:
            logger.error(f"Failed to persist execution {state.execution_id} as {status.value}: {e}")

    async def _update_correlation_record(
        self, node_state: ExecutionNodeState, status: str, data: Dict[str, Any]
    ) -> None:
        if not node_state.correlation_record_id:
            return
        try:
            await asyncio.to_thread(
                self.state_manager.update_lead_record,
                node_state.correlation_record_id,
                status,
                to_jsonable_python(data, fallback=str),
            )
        except (StorageError, StateManagementError) as e:
            logger.error(f"Failed to update lead record {node_state.correlation_record_id}: {e}")
