"""
Shared request dependencies.

The canonical auth dependencies live in app.routers.auth_deps and are
re-exported here next to the pagination helper used by list endpoints.
"""
from fastapi import Query, Request

from app.core.schemas import PageParams
from app.dashboard.modals import DashboardContext
from app.routers.auth_deps import (
    get_current_user,
    get_current_employee,
    require_role,
    require_admin,
    require_hr,
    require_manager,
    check_employee_access,
)


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> PageParams:
    return PageParams(page=page, limit=limit)


def get_dashboard(request: Request) -> DashboardContext:
    return request.app.state.dashboard


__all__ = [
    "get_current_user",
    "get_current_employee",
    "require_role",
    "require_admin",
    "require_hr",
    "require_manager",
    "check_employee_access",
    "page_params",
    "get_dashboard",
]
