"""
Workflow Registry

Approval workflows per (company, department, workflow type). The engine only
reads the step list; the step count is copied onto the request the first time
it is evaluated, so later edits here never change an in-flight request.
"""
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from hr_approvals.core.exceptions import InvalidSteps, NotFound, ValidationFailed
from hr_approvals.models.approval_workflow import ApprovalWorkflow, WorkflowType
from hr_approvals.services.base import BaseService
from hr_approvals.services.directory import DirectoryLookup, SqlDirectory


@dataclass(frozen=True)
class WorkflowSteps:
    workflow_id: int
    steps: Tuple[int, ...]

    @property
    def count(self) -> int:
        return len(self.steps)


def validate_steps(steps: Any) -> List[int]:
    if not isinstance(steps, (list, tuple)) or not steps:
        raise InvalidSteps("Add at least one approval step")
    for step in steps:
        # bool is an int subclass; True is not an approver level
        if isinstance(step, bool) or not isinstance(step, int) or step <= 0:
            raise InvalidSteps(f"Invalid approval step {step!r}: steps must be positive integers")
    return list(steps)


def parse_workflow_type(value: Any) -> WorkflowType:
    try:
        return WorkflowType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in WorkflowType)
        raise ValidationFailed(f"Unknown workflow type {value!r}. Expected one of: {allowed}", field="workflow_type")


class WorkflowRegistry(BaseService):
    def __init__(self, db: Session, directory: Optional[DirectoryLookup] = None):
        super().__init__(db)
        self._directory = directory or SqlDirectory(db)

    def resolve(self, company_id: int, department_id: Optional[int], workflow_type: WorkflowType) -> Optional[WorkflowSteps]:
        """
        Active workflow for the exact (company, department, type) scope, or None
        when nothing is configured (the caller then treats the item as single-step).
        """
        if department_id is None:
            return None

        matches = self.db.query(ApprovalWorkflow).filter(
            ApprovalWorkflow.company_id == company_id,
            ApprovalWorkflow.department_id == department_id,
            ApprovalWorkflow.workflow_type == WorkflowType(workflow_type).value,
            ApprovalWorkflow.is_active.is_(True)
        ).order_by(ApprovalWorkflow.updated_at.desc(), ApprovalWorkflow.id.desc()).all()

        if not matches:
            return None

        chosen = matches[0]
        if len(matches) > 1:
            self._logger.warning(
                "Configuration anomaly: several active approval workflows for one scope",
                extra={
                    "company_id": company_id,
                    "department_id": department_id,
                    "workflow_type": WorkflowType(workflow_type).value,
                    "workflow_ids": [w.id for w in matches],
                    "chosen_workflow_id": chosen.id,
                }
            )
        return WorkflowSteps(workflow_id=chosen.id, steps=tuple(chosen.steps))

    def create(
        self,
        company_id: int,
        department_id: int,
        workflow_type: Any,
        steps: Sequence[Any],
        is_active: bool = True
    ) -> ApprovalWorkflow:
        wf_type = parse_workflow_type(workflow_type)
        clean_steps = validate_steps(steps)
        if not self._directory.department_exists(company_id, department_id):
            raise NotFound("Department", department_id)

        workflow = ApprovalWorkflow(
            company_id=company_id,
            department_id=department_id,
            workflow_type=wf_type.value,
            steps=clean_steps,
            is_active=bool(is_active),
        )
        self.db.add(workflow)
        self.db.flush()
        self._logger.info(
            "Created approval workflow",
            extra={"workflow_id": workflow.id, "department_id": department_id, "workflow_type": wf_type.value}
        )
        return workflow

    def list(
        self,
        company_id: int,
        workflow_type: Optional[Any] = None,
        department_id: Optional[int] = None,
        only_active: bool = False
    ) -> List[ApprovalWorkflow]:
        query = self.db.query(ApprovalWorkflow).filter(ApprovalWorkflow.company_id == company_id)
        if workflow_type:
            query = query.filter(ApprovalWorkflow.workflow_type == parse_workflow_type(workflow_type).value)
        if department_id is not None:
            query = query.filter(ApprovalWorkflow.department_id == department_id)
        if only_active:
            query = query.filter(ApprovalWorkflow.is_active.is_(True))
        return query.order_by(ApprovalWorkflow.updated_at.desc(), ApprovalWorkflow.id.desc()).all()
