"""
Department Model (directory).
Owned by the organisation-structure service; read here to scope approval workflows.
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from hr_approvals.database import Base


class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)

    name = Column(String, nullable=False, index=True)
    code = Column(String, nullable=True, index=True)  # Short code like "ENG", "HR", "FIN"
    description = Column(Text, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    employees = relationship("Employee", back_populates="department")
    workflows = relationship("ApprovalWorkflow", back_populates="department")

    def __repr__(self):
        return f"<Department {self.code}: {self.name}>"
