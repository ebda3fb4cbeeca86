"""Exception hierarchy for the NodeFlow engine.

Every engine error carries a severity and a category for logging, a free-form
``details`` mapping rendered into API responses, and a ``context`` mapping of
identifiers (execution id, node id, ...) passed as keyword arguments.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorSeverity(Enum):
    """Error severity levels for categorizing exceptions."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Categories of errors for better classification."""
    VALIDATION = "validation"
    EXECUTION = "execution"
    STORAGE = "storage"
    CONFIGURATION = "configuration"


class WorkflowEngineError(Exception):
    """Base exception for all engine errors.

    Subclasses set ``severity``, ``category`` and the retry hints as class
    attributes. Keyword arguments other than ``error_code`` and ``details``
    become context entries; ``None`` values are left out.
    """

    severity = ErrorSeverity.MEDIUM
    category = ErrorCategory.EXECUTION
    recoverable = False
    retry_after: Optional[int] = None

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        **context: Any
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or type(self).__name__
        self.details: Dict[str, Any] = dict(details or {})
        self.context: Dict[str, Any] = {key: value for key, value in context.items() if value is not None}
        self.timestamp = datetime.utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Flat representation used in structured log records."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category.value,
            "details": self.details,
            "recoverable": self.recoverable,
            "retry_after": self.retry_after,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }


class GraphValidationError(WorkflowEngineError):
    """Raised when workflow graph data cannot be normalized or indexed."""

    category = ErrorCategory.VALIDATION

    def __init__(self, message: str, validation_errors: Optional[List[str]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.validation_errors = list(validation_errors or [])
        if self.validation_errors:
            self.details["validation_errors"] = self.validation_errors


class CycleDetectedError(GraphValidationError):
    """Raised before a run starts when the graph contains a dependency cycle."""

    def __init__(self, cycle: List[str], **kwargs):
        super().__init__(f"Cycle detected: {' -> '.join(cycle)}", **kwargs)
        self.cycle = cycle
        self.details["cycle"] = cycle


class NodeConfigurationError(WorkflowEngineError):
    """A node names an unknown type, or a type without a processor."""

    severity = ErrorSeverity.HIGH
    category = ErrorCategory.CONFIGURATION


class NodeExecutionError(WorkflowEngineError):
    """A processor produced something other than an output mapping."""

    severity = ErrorSeverity.HIGH


class NodeRegistryError(WorkflowEngineError):
    """Raised when a node type cannot be registered."""

    category = ErrorCategory.CONFIGURATION


class StateManagementError(WorkflowEngineError):
    """Illegal status transition or unknown execution/lead record."""

    severity = ErrorSeverity.HIGH
    category = ErrorCategory.STORAGE


class ExecutionEngineError(WorkflowEngineError):
    """Raised when a workflow run cannot be started."""

    severity = ErrorSeverity.HIGH


class StorageError(WorkflowEngineError):
    """Database failure; retried by ``with_retry``."""

    severity = ErrorSeverity.HIGH
    category = ErrorCategory.STORAGE
    recoverable = True
    retry_after = 3


class ConfigurationError(WorkflowEngineError):
    """Raised when the application configuration cannot be applied."""

    severity = ErrorSeverity.CRITICAL
    category = ErrorCategory.CONFIGURATION


def create_error_response(error: WorkflowEngineError) -> Dict[str, Any]:
    """Render an engine error as the JSON body of an HTTP error response."""
    return {
        "error": error.error_code,
        "message": error.message,
        "details": {
            **error.details,
            "severity": error.severity.value,
            "category": error.category.value,
            "recoverable": error.recoverable,
            "retry_after": error.retry_after,
            "timestamp": error.timestamp.isoformat(),
        },
        "context": error.context,
    }
