# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from app.api.deps import AuthDep
from app.db import SessionDep
from app.models.enums import LeaveStatus
from app.schemas.request import (
    DecisionPayload,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    SubmitLeavePayload,
)
from app.services import workflow as workflow_service

requests_router = APIRouter(
    prefix="/leave-requests",
    tags=["leave-requests"],
)


@requests_router.post("", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
async def submit_leave_request(
    payload: SubmitLeavePayload,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Submit a new leave request for the authenticated employee."""
    return await workflow_service.submit_leave_request(session, auth, payload)


@requests_router.get("", response_model=LeaveRequestListResponse)
async def list_leave_requests(
    session: SessionDep,
    auth: AuthDep,
    employee_id: uuid.UUID | None = Query(default=None),
    status_filter: LeaveStatus | None = Query(default=None, alias="status"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """List leave requests of an employee (the caller by default)."""
    return await workflow_service.list_requests(session, auth, employee_id, status_filter, offset, limit)


@requests_router.get("/pending/manager", response_model=LeaveRequestListResponse)
async def list_manager_pending(
    session: SessionDep,
    auth: AuthDep,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """Requests waiting on the caller as manager."""
    return await workflow_service.list_manager_pending(session, auth, offset, limit)


@requests_router.get("/pending/hr", response_model=LeaveRequestListResponse)
async def list_hr_pending(
    session: SessionDep,
    auth: AuthDep,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """Requests waiting on HR (HR only)."""
    return await workflow_service.list_hr_pending(session, auth, offset, limit)


@requests_router.get("/{request_id}", response_model=LeaveRequestResponse)
async def get_leave_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Get a single leave request."""
    return await workflow_service.get_request(session, auth, request_id)


@requests_router.post("/{request_id}/manager-decision", response_model=LeaveRequestResponse)
async def manager_decide(
    request_id: uuid.UUID,
    payload: DecisionPayload,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Approve or reject a request as the employee's manager."""
    return await workflow_service.manager_decide(session, auth, request_id, payload)


@requests_router.post("/{request_id}/hr-decision", response_model=LeaveRequestResponse)
async def hr_decide(
    request_id: uuid.UUID,
    payload: DecisionPayload,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Approve or reject a request as HR."""
    return await workflow_service.hr_decide(session, auth, request_id, payload)


@requests_router.post("/{request_id}/cancel", response_model=LeaveRequestResponse)
async def cancel_leave_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Withdraw a still-pending request."""
    return await workflow_service.cancel_request(session, auth, request_id)
