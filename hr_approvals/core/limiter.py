from slowapi import Limiter
from slowapi.util import get_remote_address

from hr_approvals.core.config import settings

# Rate limiter keyed by client IP; switched off entirely with RATE_LIMIT_ENABLED=false
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

SUBMISSION_LIMIT = f"{settings.rate_limit_per_minute}/minute"
