from fastapi import APIRouter
from hr_approvals.routers import (
    leave_requests, leave_balances, approval_workflows, memos, leave_types
)

# Centralized API router hub: main.py only imports this one
api_router = APIRouter()

api_router.include_router(leave_requests.router)
api_router.include_router(leave_balances.router)
api_router.include_router(approval_workflows.router)
api_router.include_router(memos.router)
api_router.include_router(leave_types.router)
