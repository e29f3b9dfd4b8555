import os
import logging
from pydantic import BaseModel, Field
from typing import List
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class ApprovalPolicy(BaseModel):
    # When false, the first approval finalizes regardless of the workflow's step count.
    enforce_multi_step: bool = Field(default_factory=lambda: _env_flag("ENFORCE_MULTI_STEP_APPROVAL", "false"))
    # When false, memos are created already approved.
    memo_requires_approval: bool = Field(default_factory=lambda: _env_flag("MEMO_REQUIRES_APPROVAL", "true"))


class Config(BaseModel):
    app_name: str = "HR Approvals Service"
    environment: str = Field(default_factory=lambda: os.getenv("APP_ENV", "development"))
    api_prefix: str = "/api"

    # Database
    database_url: str = Field(default_factory=lambda: os.getenv("DATABASE_URL", "sqlite:///./approvals.db"))

    # Logging
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"

    # CORS: comma-separated origins loaded from env.
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://localhost:3001,"
                "http://127.0.0.1:3000,http://127.0.0.1:3001",
            ).split(",")
            if o.strip()
        ]
    )

    # Rate limiting (applied to submission endpoints)
    rate_limit_enabled: bool = Field(default_factory=lambda: _env_flag("RATE_LIMIT_ENABLED", "true"))
    rate_limit_per_minute: int = Field(default_factory=lambda: int(os.getenv("RATE_LIMIT_PER_MINUTE", "60")))

    approvals: ApprovalPolicy = Field(default_factory=ApprovalPolicy)


settings = Config()

_logger = logging.getLogger(__name__)
if settings.environment != "development" and settings.database_url.startswith("sqlite:///./"):
    _logger.warning("⚠ Using a local SQLite file outside development; set DATABASE_URL.")
