"""Database models and storage layer."""

from .database import (
    Base,
    get_db,
    get_database_engine,
    configure_database,
    reset_database_engine,
    create_tables,
)
from .models import WorkflowExecutionModel, LeadModel

__all__ = [
    "Base",
    "get_db",
    "get_database_engine",
    "configure_database",
    "reset_database_engine",
    "create_tables",
    "WorkflowExecutionModel",
    "LeadModel",
]
