"""SQLAlchemy database models for the workflow engine."""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from .database import Base


class WorkflowExecutionModel(Base):
    """Database model for workflow executions."""
    __tablename__ = "workflow_executions"

    id = Column(String, primary_key=True)
    workflow_id = Column(String, nullable=False, index=True)
    status = Column(String(50), nullable=False)  # pending, running, completed, failed
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime)
    logs = Column(JSON, default=list)
    result = Column(JSON)
    error_message = Column(Text)

    leads = relationship("LeadModel", back_populates="execution")


class LeadModel(Base):
    """Correlation record following one lead through an execution."""
    __tablename__ = "leads"
    __table_args__ = (
        UniqueConstraint("lead_id", "node_id", "execution_id", name="lead_node_idx"),
    )

    id = Column(String, primary_key=True)
    workflow_id = Column(String, nullable=False)
    execution_id = Column(String, ForeignKey("workflow_executions.id"), nullable=False)
    node_id = Column(String(255), nullable=False)
    lead_id = Column(String(255), nullable=False)
    status = Column(String(50), nullable=False)  # pending, processing, completed, failed
    data = Column(JSON)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    execution = relationship("WorkflowExecutionModel", back_populates="leads")
