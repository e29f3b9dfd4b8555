from typing import Any, Optional

from hr_approvals.services.base import BaseService
from hr_approvals.models.audit_log import AuditLog


def _sanitize(obj: Any) -> Any:
    """Make nested values JSON-friendly for the audit columns."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    if hasattr(obj, "value") and isinstance(getattr(obj, "value"), str):
        return obj.value
    if isinstance(obj, dict):
        return {k: _sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [_sanitize(i) for i in obj]
    return obj


class AuditService(BaseService):
    def log_action(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        actor_id: Optional[int],
        details: Optional[dict] = None,
        company_id: Optional[int] = None,
        before_state: Optional[dict] = None,
        after_state: Optional[dict] = None
    ) -> AuditLog:
        """
        Append an audit entry to the current transaction.
        Not committed here: the entry persists only if the audited action does.
        """
        db_log = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            company_id=company_id or self.org_id,
            details=_sanitize(details or {}),
            before_state=_sanitize(before_state),
            after_state=_sanitize(after_state)
        )
        self.db.add(db_log)
        return db_log
