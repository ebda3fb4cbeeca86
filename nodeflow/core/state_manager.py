"""Persistence of execution records and lead correlation records."""

import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.core import ExecutionRecord, ExecutionStatusEnum, LeadRecord, LogEntry
from ..storage.database import get_db
from ..storage.models import LeadModel, WorkflowExecutionModel
from .error_recovery import RetryConfig, with_retry
from .exceptions import StateManagementError, StorageError
from .logging import get_logger

logger = get_logger(__name__)

_UNSET = object()


class StateManager:
    """Reads and writes the durable side of workflow executions."""

    def __init__(self, db_session: Optional[Session] = None, retry_config: Optional[RetryConfig] = None):
        """
        Args:
            db_session: Optional database session. If not provided, a new session is opened per operation.
            retry_config: Retry behavior for transient storage failures
        """
        self._db_session = db_session
        self._retry_config = retry_config or RetryConfig()
        # Engine runs persist from worker threads; one session at a time per manager
        self._lock = threading.RLock()

    @contextmanager
    def _session(self, operation: str):
        with self._lock:
            db = self._db_session if self._db_session is not None else next(get_db())
            try:
                yield db
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise StorageError(f"Failed to {operation.replace('_', ' ')}: {e}", operation=operation)
            except Exception:
                db.rollback()
                raise
            finally:
                if self._db_session is None:
                    db.close()

    def _retrying(self, func, *args, **kwargs):
        return with_retry(self._retry_config)(func)(*args, **kwargs)

    def create_execution(
        self,
        execution_id: str,
        workflow_id: str,
        status: ExecutionStatusEnum = ExecutionStatusEnum.PENDING,
    ) -> ExecutionRecord:
        """
        Create the persisted record of a new execution.

        Raises:
            StateManagementError: If the ids are empty or the execution already exists
            StorageError: If database operations fail
        """
        if not execution_id or not execution_id.strip():
            raise StateManagementError("Execution ID cannot be empty", operation="create_execution")
        if not workflow_id or not workflow_id.strip():
            raise StateManagementError(
                "Workflow ID cannot be empty",
                execution_id=execution_id,
                operation="create_execution"
            )
        return self._retrying(self._create_execution, execution_id, workflow_id, status)

    def _create_execution(self, execution_id: str, workflow_id: str, status: ExecutionStatusEnum) -> ExecutionRecord:
        with self._session("create_execution") as db:
            if db.get(WorkflowExecutionModel, execution_id) is not None:
                raise StateManagementError(
                    f"Execution {execution_id} already exists",
                    execution_id=execution_id,
                    operation="create_execution"
                )
            model = WorkflowExecutionModel(
                id=execution_id,
                workflow_id=workflow_id,
                status=status.value,
                started_at=datetime.utcnow(),
                logs=[],
            )
            db.add(model)
            db.flush()
            record = self._to_record(model)

        logger.info(f"Created execution {execution_id} for workflow {workflow_id} ({status.value})")
        return record

    def update_execution(
        self,
        execution_id: str,
        status: ExecutionStatusEnum,
        completed_at: Optional[datetime] = None,
        logs: Optional[List[Dict[str, Any]]] = None,
        result: Any = _UNSET,
        error_message: Optional[str] = None,
    ) -> ExecutionRecord:
        """
        Move an execution to ``status`` and store the given fields.

        Raises:
            StateManagementError: If the execution is unknown or the transition is not allowed
            StorageError: If database operations fail
        """
        return self._retrying(
            self._update_execution, execution_id, status, completed_at, logs, result, error_message
        )

    def _update_execution(self, execution_id, status, completed_at, logs, result, error_message) -> ExecutionRecord:
        with self._session("update_execution") as db:
            model = db.get(WorkflowExecutionModel, execution_id)
            if model is None:
                raise StateManagementError(
                    f"Execution {execution_id} not found",
                    execution_id=execution_id,
                    operation="update_execution"
                )

            current = ExecutionStatusEnum(model.status)
            if not current.can_transition_to(status):
                raise StateManagementError(
                    f"Illegal status transition {current.value} -> {status.value}",
                    execution_id=execution_id,
                    operation="update_execution"
                )

            model.status = status.value
            if completed_at is not None:
                model.completed_at = completed_at
            if logs is not None:
                model.logs = logs
            if result is not _UNSET:
                model.result = result
            if error_message is not None:
                model.error_message = error_message
            db.flush()
            record = self._to_record(model)

        logger.debug(f"Execution {execution_id}: {current.value} -> {status.value}")
        return record

    def get_execution(self, execution_id: str) -> ExecutionRecord:
        """
        Load an execution record.

        Raises:
            StateManagementError: If the execution does not exist
        """
        with self._session("get_execution") as db:
            model = db.get(WorkflowExecutionModel, execution_id)
            if model is None:
                raise StateManagementError(
                    f"Execution {execution_id} not found",
                    execution_id=execution_id,
                    operation="get_execution"
                )
            return self._to_record(model)

    def list_executions(self, workflow_id: str) -> List[ExecutionRecord]:
        """All executions of a workflow, newest first."""
        with self._session("list_executions") as db:
            models = (
                db.query(WorkflowExecutionModel)
                .filter(WorkflowExecutionModel.workflow_id == workflow_id)
                .order_by(WorkflowExecutionModel.started_at.desc())
                .all()
            )
            return [self._to_record(model) for model in models]

    def create_lead_record(
        self,
        workflow_id: str,
        execution_id: str,
        node_id: str,
        lead_id: str,
        status: str = "pending",
        data: Optional[Dict[str, Any]] = None,
    ) -> LeadRecord:
        """Create a lead correlation record for one node of an execution."""
        with self._session("create_lead_record") as db:
            model = LeadModel(
                id=str(uuid.uuid4()),
                workflow_id=workflow_id,
                execution_id=execution_id,
                node_id=node_id,
                lead_id=lead_id,
                status=status,
                data=data,
            )
            db.add(model)
            db.flush()
            return self._to_lead(model)

    def update_lead_record(self, record_id: str, status: str, data: Optional[Dict[str, Any]] = None) -> LeadRecord:
        """
        Update the status and data of a lead correlation record.

        Raises:
            StateManagementError: If the record does not exist
        """
        return self._retrying(self._update_lead_record, record_id, status, data)

    def _update_lead_record(self, record_id: str, status: str, data: Optional[Dict[str, Any]]) -> LeadRecord:
        with self._session("update_lead_record") as db:
            model = db.get(LeadModel, record_id)
            if model is None:
                raise StateManagementError(f"Lead record {record_id} not found", operation="update_lead_record")
            model.status = status
            model.data = data
            model.updated_at = datetime.utcnow()
            db.flush()
            return self._to_lead(model)

    def get_lead_record(self, record_id: str) -> LeadRecord:
        with self._session("get_lead_record") as db:
            model = db.get(LeadModel, record_id)
            if model is None:
                raise StateManagementError(f"Lead record {record_id} not found", operation="get_lead_record")
            return self._to_lead(model)

    @staticmethod
    def _to_record(model: WorkflowExecutionModel) -> ExecutionRecord:
        return ExecutionRecord(
            id=model.id,
            workflow_id=model.workflow_id,
            status=ExecutionStatusEnum(model.status),
            started_at=model.started_at,
            completed_at=model.completed_at,
            logs=[LogEntry(**entry) for entry in (model.logs or [])],
            result=model.result,
            error_message=model.error_message,
        )

    @staticmethod
    def _to_lead(model: LeadModel) -> LeadRecord:
        return LeadRecord(
            id=model.id,
            workflow_id=model.workflow_id,
            execution_id=model.execution_id,
            node_id=model.node_id,
            lead_id=model.lead_id,
            status=model.status,
            data=model.data,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
