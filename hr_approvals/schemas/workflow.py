from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Any, List, Optional

class ApprovalWorkflowCreate(BaseModel):
    department_id: int
    workflow_type: str
    # Validated by the registry so bad steps surface as INVALID_STEPS, not a generic 422
    steps: List[Any]
    is_active: bool = True

class ApprovalWorkflowResponse(BaseModel):
    id: int
    company_id: int
    department_id: int
    workflow_type: str
    steps: List[int]
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
