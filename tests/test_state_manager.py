"""Tests for execution and lead record persistence."""

import asyncio
from datetime import datetime

import pytest

from nodeflow.core.exceptions import StateManagementError
from nodeflow.models.core import ExecutionStatusEnum, LogSeverity


class TestExecutionRecords:
    """Test cases for execution record persistence."""

    def test_create_execution(self, state_manager):
        record = state_manager.create_execution("exec-1", "wf-1")

        assert record.id == "exec-1"
        assert record.workflow_id == "wf-1"
        assert record.status == ExecutionStatusEnum.PENDING
        assert record.started_at is not None
        assert record.completed_at is None
        assert record.logs == []
        assert record.result is None

    def test_duplicate_execution_rejected(self, state_manager):
        state_manager.create_execution("exec-1", "wf-1")
        with pytest.raises(StateManagementError):
            state_manager.create_execution("exec-1", "wf-1")

    def test_empty_ids_rejected(self, state_manager):
        with pytest.raises(StateManagementError):
            state_manager.create_execution("", "wf-1")
        with pytest.raises(StateManagementError):
            state_manager.create_execution("exec-1", "  ")

    def test_full_lifecycle(self, state_manager):
        state_manager.create_execution("exec-1", "wf-1")
        state_manager.update_execution("exec-1", ExecutionStatusEnum.RUNNING)

        completed_at = datetime.utcnow()
        logs = [{"timestamp": completed_at.isoformat(), "level": "info", "message": "done", "node_id": "a"}]
        state_manager.update_execution(
            "exec-1",
            ExecutionStatusEnum.COMPLETED,
            completed_at=completed_at,
            logs=logs,
            result={"body": [1, 2]},
        )

        record = state_manager.get_execution("exec-1")
        assert record.status == ExecutionStatusEnum.COMPLETED
        assert record.completed_at == completed_at
        assert record.result == {"body": [1, 2]}
        assert len(record.logs) == 1
        assert record.logs[0].level == LogSeverity.INFO
        assert record.logs[0].node_id == "a"

    def test_failed_execution_keeps_error_message(self, state_manager):
        state_manager.create_execution("exec-1", "wf-1")
        state_manager.update_execution("exec-1", ExecutionStatusEnum.RUNNING)
        state_manager.update_execution("exec-1", ExecutionStatusEnum.FAILED, error_message="boom")

        record = state_manager.get_execution("exec-1")
        assert record.status == ExecutionStatusEnum.FAILED
        assert record.error_message == "boom"
        assert record.result is None

    def test_pending_may_fail_directly(self, state_manager):
        state_manager.create_execution("exec-1", "wf-1")
        record = state_manager.update_execution("exec-1", ExecutionStatusEnum.FAILED)
        assert record.status == ExecutionStatusEnum.FAILED

    @pytest.mark.parametrize("path", [
        [ExecutionStatusEnum.COMPLETED],
        [ExecutionStatusEnum.RUNNING, ExecutionStatusEnum.PENDING],
        [ExecutionStatusEnum.RUNNING, ExecutionStatusEnum.COMPLETED, ExecutionStatusEnum.FAILED],
        [ExecutionStatusEnum.FAILED, ExecutionStatusEnum.RUNNING],
    ])
    def test_illegal_transitions_rejected(self, state_manager, path):
        state_manager.create_execution("exec-1", "wf-1")
        *allowed, illegal = path
        for status in allowed:
            state_manager.update_execution("exec-1", status)

        with pytest.raises(StateManagementError):
            state_manager.update_execution("exec-1", illegal)

    def test_unknown_execution(self, state_manager):
        with pytest.raises(StateManagementError):
            state_manager.get_execution("missing")
        with pytest.raises(StateManagementError):
            state_manager.update_execution("missing", ExecutionStatusEnum.RUNNING)

    def test_list_executions(self, state_manager):
        state_manager.create_execution("exec-1", "wf-1")
        state_manager.create_execution("exec-2", "wf-1")
        state_manager.create_execution("exec-3", "wf-2")

        assert {r.id for r in state_manager.list_executions("wf-1")} == {"exec-1", "exec-2"}
        assert state_manager.list_executions("wf-none") == []


    @pytest.mark.asyncio
    async def test_concurrent_writes_from_worker_threads(self, state_manager):
        ids = [f"exec-{n}" for n in range(8)]

        async def lifecycle(execution_id):
            await asyncio.to_thread(state_manager.create_execution, execution_id, "wf-1")
            await asyncio.to_thread(state_manager.update_execution, execution_id, ExecutionStatusEnum.RUNNING)
            await asyncio.to_thread(
                state_manager.update_execution,
                execution_id,
                ExecutionStatusEnum.COMPLETED,
                completed_at=datetime.utcnow(),
                result={"id": execution_id},
            )

        await asyncio.gather(*(lifecycle(execution_id) for execution_id in ids))

        for execution_id in ids:
            record = state_manager.get_execution(execution_id)
            assert record.status == ExecutionStatusEnum.COMPLETED
            assert record.result == {"id": execution_id}


class TestLeadRecords:

    def test_create_and_update_lead_record(self, state_manager):
        state_manager.create_execution("exec-1", "wf-1")
        lead = state_manager.create_lead_record("wf-1", "exec-1", "node-a", "L-1", data={"name": "Ada"})

        assert lead.status == "pending"
        assert lead.data == {"name": "Ada"}

        state_manager.update_lead_record(lead.id, "completed", {"outputs": {"ok": True}})
        updated = state_manager.get_lead_record(lead.id)

        assert updated.status == "completed"
        assert updated.data == {"outputs": {"ok": True}}
        assert updated.lead_id == "L-1"
        assert updated.node_id == "node-a"

    def test_unknown_lead_record(self, state_manager):
        with pytest.raises(StateManagementError):
            state_manager.update_lead_record("missing", "completed")
        with pytest.raises(StateManagementError):
            state_manager.get_lead_record("missing")
