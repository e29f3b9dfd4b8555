from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import relationship
from hr_approvals.database import Base
import enum

class WorkflowType(str, enum.Enum):
    LEAVE = "leave"
    MEMO = "memo"
    EXPENSE = "expense"

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class ApprovalWorkflow(Base):
    __tablename__ = "approval_workflows"
    __table_args__ = (
        Index("ix_workflow_scope", "company_id", "department_id", "workflow_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False)
    workflow_type = Column(String, nullable=False)
    steps = Column(JSON, nullable=False)  # Ordered approver-level markers, e.g. [1, 2]
    is_active = Column(Boolean, default=True, nullable=False)
    # Python-side timestamps keep sub-second precision for the "most recently updated" tie-break
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    department = relationship("Department", back_populates="workflows")

    def __repr__(self):
        return f"<ApprovalWorkflow {self.workflow_type} dept={self.department_id} steps={self.steps}>"
