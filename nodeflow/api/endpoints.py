"""FastAPI REST endpoints for the workflow engine."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from ..core.exceptions import ExecutionEngineError, GraphValidationError, StateManagementError
from ..core.flow_engine import FlowEngine
from ..core.graph_manager import normalize_workflow_data
from ..core.logging import get_logger
from ..core.node_registry import NodeRegistry
from ..core.state_manager import StateManager
from ..models.core import DEFAULT_HANDLE, ExecutionRecord, ExecutionStatusEnum, NodeDefinition

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["workflow"])

# Global instances (initialized by the application lifespan)
_flow_engine: Optional[FlowEngine] = None
_node_registry: Optional[NodeRegistry] = None
_state_manager: Optional[StateManager] = None
_default_handle: str = DEFAULT_HANDLE


def init_dependencies(
    flow_engine: FlowEngine,
    node_registry: NodeRegistry,
    state_manager: StateManager,
    default_handle: str = DEFAULT_HANDLE,
):
    """Initialize the global dependencies."""
    global _flow_engine, _node_registry, _state_manager, _default_handle
    _flow_engine = flow_engine
    _node_registry = node_registry
    _state_manager = state_manager
    _default_handle = default_handle


def get_flow_engine() -> FlowEngine:
    """Dependency to get the flow engine."""
    if _flow_engine is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Flow engine not initialized"
        )
    return _flow_engine


def get_node_registry() -> NodeRegistry:
    """Dependency to get the node registry."""
    if _node_registry is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Node registry not initialized"
        )
    return _node_registry


def get_state_manager() -> StateManager:
    """Dependency to get the state manager."""
    if _state_manager is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="State manager not initialized"
        )
    return _state_manager


class TriggerWorkflowRequest(BaseModel):
    """Request model for triggering a workflow."""
    flow_data: Dict[str, Any] = Field(..., description="Editor graph with nodes and edges")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Inbound event body")


class TriggerWorkflowResponse(BaseModel):
    """Response model for a triggered workflow."""
    execution_id: str = Field(..., description="Identifier of the started execution")
    message: str = Field(..., description="Success message")
    status: ExecutionStatusEnum = Field(..., description="Initial execution status")
    lead_id: Optional[str] = Field(None, description="Lead correlated with this execution")


@router.get(
    "/nodes",
    response_model=List[NodeDefinition],
    summary="List node types",
)
async def list_nodes(registry: NodeRegistry = Depends(get_node_registry)) -> List[NodeDefinition]:
    return registry.list_all()


@router.get(
    "/nodes/category/{category}",
    response_model=List[NodeDefinition],
    summary="List node types of one category",
)
async def list_nodes_by_category(
    category: str,
    registry: NodeRegistry = Depends(get_node_registry)
) -> List[NodeDefinition]:
    return registry.list_by_category(category)


@router.get(
    "/nodes/{node_type}",
    response_model=NodeDefinition,
    summary="Get a node type definition",
)
async def get_node(node_type: str, registry: NodeRegistry = Depends(get_node_registry)) -> NodeDefinition:
    definition = registry.get_definition(node_type)
    if definition is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "NodeTypeNotFound",
                "message": f"Node type '{node_type}' not found",
                "details": {"node_type": node_type}
            }
        )
    return definition


@router.post(
    "/workflows/{workflow_id}/trigger",
    response_model=TriggerWorkflowResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Trigger a workflow run",
    description="Start a run of the submitted graph; the run continues in the background"
)
async def trigger_workflow(
    workflow_id: str,
    body: TriggerWorkflowRequest,
    request: Request,
    engine: FlowEngine = Depends(get_flow_engine),
    registry: NodeRegistry = Depends(get_node_registry),
) -> TriggerWorkflowResponse:
    """
    Normalize the graph, build the initial inputs from the request and start a run.

    Raises:
        HTTPException: 400 for a malformed graph, 500 if the run cannot be created
    """
    try:
        flow_data = normalize_workflow_data(body.flow_data, registry, _default_handle)
    except GraphValidationError as e:
        logger.warning(f"Rejected workflow {workflow_id}: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "InvalidWorkflow",
                "message": e.message,
                "details": {"validation_errors": e.validation_errors}
            }
        )

    payload = body.payload
    lead = payload.get("lead")
    lead_id = lead.get("leadId") if isinstance(lead, dict) else None

    initial_inputs = {
        "body": payload,
        "query": dict(request.query_params),
        "headers": dict(request.headers),
        "method": request.method,
        "params": dict(request.path_params),
        "lead": lead,
        "leadId": lead_id,
        "message": payload.get("message") or {},
    }

    try:
        execution_id = await engine.execute_workflow(workflow_id, flow_data, initial_inputs)
    except ExecutionEngineError as e:
        logger.error(f"Failed to trigger workflow {workflow_id}: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "ExecutionError",
                "message": e.message,
                "details": {"workflow_id": workflow_id}
            }
        )

    return TriggerWorkflowResponse(
        execution_id=execution_id,
        message="Workflow triggered successfully",
        status=ExecutionStatusEnum.PENDING,
        lead_id=str(lead_id) if lead_id is not None else None,
    )


@router.get(
    "/executions/{execution_id}",
    response_model=ExecutionRecord,
    summary="Get a workflow execution",
    description="Persisted status, logs and result of an execution"
)
async def get_execution(
    execution_id: str,
    state_manager: StateManager = Depends(get_state_manager)
) -> ExecutionRecord:
    try:
        return state_manager.get_execution(execution_id)
    except StateManagementError as e:
        logger.warning(f"Execution not found: {execution_id}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "ExecutionNotFound",
                "message": e.message,
                "details": {"execution_id": execution_id}
            }
        )
