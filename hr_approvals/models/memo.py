from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Text, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from hr_approvals.database import Base
import enum

class MemoStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class MemoType(str, enum.Enum):
    GENERAL = "general"
    ANNOUNCEMENT = "announcement"
    POLICY = "policy"
    REMINDER = "reminder"

class MemoPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class Memo(Base):
    __tablename__ = "memos"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    memo_type = Column(String, default=MemoType.GENERAL.value, nullable=False)
    priority = Column(String, default=MemoPriority.LOW.value, nullable=False)
    reference_number = Column(String, nullable=True, index=True)
    status = Column(String, default=MemoStatus.PENDING.value, nullable=False, index=True)

    approval_level = Column(Integer, default=0, nullable=False)
    required_levels = Column(Integer, nullable=True)
    approver_ids = Column(JSON, default=list, nullable=False)
    approval_comments = Column(Text, nullable=True)

    approved_by = Column(Integer, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(Integer, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    recipients = relationship("MemoRecipient", cascade="all, delete-orphan", lazy="selectin")
    reads = relationship("MemoRead", cascade="all, delete-orphan", lazy="selectin")

    @property
    def recipient_ids(self) -> list:
        return sorted(r.employee_id for r in self.recipients)

    @property
    def read_by(self) -> list:
        return sorted(r.employee_id for r in self.reads)

class MemoRecipient(Base):
    __tablename__ = "memo_recipients"
    __table_args__ = (
        UniqueConstraint("memo_id", "employee_id", name="uq_memo_recipient"),
    )

    id = Column(Integer, primary_key=True, index=True)
    memo_id = Column(Integer, ForeignKey("memos.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)

class MemoRead(Base):
    __tablename__ = "memo_reads"
    __table_args__ = (
        UniqueConstraint("memo_id", "employee_id", name="uq_memo_read"),
    )

    id = Column(Integer, primary_key=True, index=True)
    memo_id = Column(Integer, ForeignKey("memos.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    read_at = Column(DateTime(timezone=True), server_default=func.now())
