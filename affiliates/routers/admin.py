"""
Admin endpoints: PIN check, affiliate add/edit/remove and the audit log.

Every route except ``/admin/login`` requires the ``X-Admin-Pin`` header.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from prometheus_client import Counter

from affiliates.auth import check_pin, require_admin
from affiliates.database import Database, get_db
from affiliates.errors import AccessDeniedError, RegistryError
from affiliates.models import (
    AffiliatePayload, AuditAction, AuditLogPage, LoginRequest,
    MutationResult, RemoveRequest
)
from affiliates.services import admin as admin_service
from affiliates.services import audit_log

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

# Prometheus metrics
mutations_total = Counter(
    'registry_mutations_total',
    'Admin mutations by action and outcome',
    ['action', 'outcome']
)


def _count(action: AuditAction, outcome: str) -> None:
    mutations_total.labels(action=action.value, outcome=outcome).inc()


# ============================================================================
# Session
# ============================================================================

@router.post("/login")
async def login(request: LoginRequest):
    """
    Check an admin PIN.

    Lets the admin panel validate the PIN once before sending it on
    every request. Nothing is stored server side.
    """
    if not check_pin(request.pin):
        logger.warning("Admin login failed")
        raise AccessDeniedError("Incorrect PIN")

    return {"success": True}


# ============================================================================
# Affiliate Mutations
# ============================================================================

@router.post(
    "/add",
    response_model=MutationResult,
    response_model_exclude_none=True,
    dependencies=[Depends(require_admin)]
)
async def add_affiliate(
    payload: AffiliatePayload,
    db: Database = Depends(get_db)
):
    """
    Add an affiliate.

    **Request Body:**
    - `nationalId`: digits only, must not exist yet
    - `fullName`: non-empty
    - `memberNumber`: digits only, must not be assigned yet
    - `category`, `employer`, `admissionDate`: optional

    **Errors:** 422 validation, 409 conflict (`field` tells which), 503 store
    """
    try:
        record = await admin_service.add_affiliate(db, payload)
    except RegistryError as e:
        _count(AuditAction.ADD, e.kind)
        raise

    _count(AuditAction.ADD, "success")
    return MutationResult(success=True, record=record)


@router.put(
    "/edit",
    response_model=MutationResult,
    response_model_exclude_none=True,
    dependencies=[Depends(require_admin)]
)
async def edit_affiliate(
    payload: AffiliatePayload,
    db: Database = Depends(get_db)
):
    """
    Edit the name and member number of an affiliate.

    The record is selected by `nationalId`, which itself never changes.

    **Errors:** 422 validation, 404 not found, 409 member number taken, 503 store
    """
    try:
        record = await admin_service.edit_affiliate(db, payload)
    except RegistryError as e:
        _count(AuditAction.EDIT, e.kind)
        raise

    _count(AuditAction.EDIT, "success")
    return MutationResult(success=True, record=record)


@router.post(
    "/remove",
    response_model=MutationResult,
    response_model_exclude_none=True,
    dependencies=[Depends(require_admin)]
)
async def remove_affiliate(
    request: RemoveRequest,
    db: Database = Depends(get_db)
):
    """
    Remove an affiliate. The response carries the deleted record.

    **Errors:** 422 validation, 404 not found, 503 store
    """
    try:
        record = await admin_service.remove_affiliate(db, request.national_id)
    except RegistryError as e:
        _count(AuditAction.DELETE, e.kind)
        raise

    _count(AuditAction.DELETE, "success")
    return MutationResult(success=True, record=record)


# ============================================================================
# Audit Log
# ============================================================================

@router.get(
    "/logs",
    response_model=AuditLogPage,
    dependencies=[Depends(require_admin)]
)
async def get_audit_log(
    limit: Optional[int] = Query(default=None, ge=1),
    action: Optional[AuditAction] = None,
    db: Database = Depends(get_db)
):
    """
    Retrieve audit log entries, most recent first.

    **Query Parameters:**
    - `limit`: page size (default 100, capped by configuration)
    - `action`: only `Add`, `Edit` or `Delete` entries
    """
    entries = await audit_log.recent(db, limit=limit, action=action)
    return AuditLogPage(entries=entries, count=len(entries))
