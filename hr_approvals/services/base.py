import logging
from typing import Optional
from sqlalchemy.orm import Session

from hr_approvals.core.exceptions import ValidationFailed


class BaseService:
    """
    Common plumbing for services: the request-scoped session, the company scope and a module logger.
    Services flush as they go and commit once per operation.
    """

    def __init__(self, db: Session, org_id: Optional[int] = None):
        self.db = db
        self.org_id = org_id
        self._logger = logging.getLogger(self.__class__.__module__)

    def _commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def _check_paging(page: int, page_size: int):
        if page < 1:
            raise ValidationFailed("Page must be 1 or greater", field="page")
        if page_size < 1:
            raise ValidationFailed("Page size must be 1 or greater", field="page_size")
