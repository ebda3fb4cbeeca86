"""Tests for retry handling and error rendering."""

import pytest

from nodeflow.core.error_recovery import RetryConfig, with_retry
from nodeflow.core.exceptions import (
    CycleDetectedError,
    StateManagementError,
    StorageError,
    create_error_response,
)

FAST = RetryConfig(max_attempts=3, base_delay=0.001, jitter=False)


class TestWithRetry:

    def test_recovers_from_transient_storage_error(self):
        calls = []

        @with_retry(FAST)
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise StorageError("locked")
            return "ok"

        assert flaky() == "ok"
        assert len(calls) == 3

    def test_gives_up_after_max_attempts(self):
        calls = []

        @with_retry(FAST)
        def broken():
            calls.append(1)
            raise StorageError("down")

        with pytest.raises(StorageError):
            broken()
        assert len(calls) == 3

    def test_does_not_retry_state_errors(self):
        calls = []

        @with_retry(FAST)
        def invalid():
            calls.append(1)
            raise StateManagementError("Execution x not found")

        with pytest.raises(StateManagementError):
            invalid()
        assert len(calls) == 1

    def test_delay_is_capped(self):
        config = RetryConfig(base_delay=1.0, max_delay=1.5, jitter=False)

        assert config.get_delay(1) == 1.0
        assert config.get_delay(5) == 1.5


class TestErrorResponse:

    def test_context_and_details(self):
        error = CycleDetectedError(["a", "b", "a"], workflow_id="wf-1", execution_id=None)
        body = create_error_response(error)

        assert body["error"] == "CycleDetectedError"
        assert body["message"] == "Cycle detected: a -> b -> a"
        assert body["details"]["cycle"] == ["a", "b", "a"]
        assert body["details"]["category"] == "validation"
        assert body["context"] == {"workflow_id": "wf-1"}

    def test_storage_errors_are_recoverable(self):
        error = StorageError("down", operation="update_execution")

        assert error.to_dict()["recoverable"] is True
        assert error.context == {"operation": "update_execution"}
