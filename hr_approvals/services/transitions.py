"""
Transition primitives shared by the leave and memo engines.

Decisions are applied as a compare-and-swap on the status column, so of two
concurrent decisions on the same item exactly one observes ``pending``.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import update
from sqlalchemy.orm import Session

from hr_approvals.core.exceptions import InvalidTransition

PENDING = "pending"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_pending(status: str):
    if status != PENDING:
        raise InvalidTransition(details={"status": status})


@dataclass(frozen=True)
class ApprovalStep:
    level: int
    required: int
    approver_ids: List[int]
    final: bool


def next_approval(
    current_level: int,
    required_levels: int,
    approver_ids: Optional[Sequence[int]],
    actor_id: int,
    enforce_multi_step: bool
) -> ApprovalStep:
    """
    Record one approval against a copied step count.

    With ``enforce_multi_step`` off the first approval finalizes whatever the
    step count; with it on, each distinct approver advances one level and the
    item finalizes at ``required_levels``.
    """
    approvers = list(approver_ids or [])
    if actor_id in approvers:
        raise InvalidTransition("You have already approved this request", details={"actor_id": actor_id})
    level = (current_level or 0) + 1
    required = max(int(required_levels or 1), 1)
    final = level >= required or not enforce_multi_step
    return ApprovalStep(level=level, required=required, approver_ids=approvers + [actor_id], final=final)


def compare_and_swap(
    db: Session,
    model: Any,
    entity_id: int,
    values: Dict[str, Any],
    expected_level: Optional[int] = None
):
    """
    Apply ``values`` only if the row is still pending (and still at
    ``expected_level`` when given). Raises InvalidTransition when another
    decision got there first.
    """
    stmt = update(model).where(model.id == entity_id, model.status == PENDING)
    if expected_level is not None:
        stmt = stmt.where(model.approval_level == expected_level)
    result = db.execute(stmt.values(**values).execution_options(synchronize_session=False))
    if result.rowcount != 1:
        raise InvalidTransition(details={"id": entity_id})
