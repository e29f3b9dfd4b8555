from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import List, Optional

class MemoCreate(BaseModel):
    title: str
    content: str
    recipient_ids: List[int] = Field(default_factory=list)
    memo_type: Optional[str] = None
    priority: Optional[str] = None
    reference_number: Optional[str] = None

class MemoApproveRequest(BaseModel):
    comments: Optional[str] = None

class MemoRejectRequest(BaseModel):
    rejection_reason: Optional[str] = None

class MemoResponse(BaseModel):
    id: int
    company_id: int
    sender_id: int
    title: str
    content: str
    memo_type: str
    priority: str
    reference_number: Optional[str] = None
    status: str
    recipient_ids: List[int] = Field(default_factory=list)
    read_by: List[int] = Field(default_factory=list)
    approval_level: int = 0
    required_levels: Optional[int] = None
    approver_ids: List[int] = Field(default_factory=list)
    approval_comments: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejection_reason: Optional[str] = None
    rejected_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
