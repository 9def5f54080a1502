"""
Public endpoints: affiliate verification and credential download.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from prometheus_client import Counter

from affiliates.database import Database, get_db
from affiliates.errors import NotFoundError
from affiliates.models import CredentialRequest, LookupResult, VerifyRequest
from affiliates.services import lookup
from affiliates.services.credential import credential_filename, render_credential

logger = logging.getLogger(__name__)

router = APIRouter(tags=["verification"])

# Prometheus metrics
lookups_total = Counter(
    'registry_lookups_total',
    'Affiliate lookups by method and outcome',
    ['method', 'outcome']
)
credentials_issued = Counter(
    'registry_credentials_issued_total',
    'Credential PDFs rendered'
)


async def _verify(db: Database, national_id: Optional[str], full_name: Optional[str]) -> LookupResult:
    method = "national_id" if national_id and national_id.strip() else "name"
    result = await lookup.verify(db, national_id=national_id, full_name=full_name)
    lookups_total.labels(method=method, outcome="found" if result.found else "not_found").inc()
    return result


@router.post("/verify", response_model=LookupResult, response_model_exclude_none=True)
async def verify_affiliate(
    request: VerifyRequest,
    db: Database = Depends(get_db)
):
    """
    Check whether a person is an affiliate.

    **Request Body** (one of):
    - `nationalId`: exact national ID, digits only
    - `fullName`: name search; every word must appear in the stored name,
      ignoring case and word order

    **Returns:**
    - `found`: whether anyone matched
    - `record`: the match (first by name order for name searches)
    - `matches`: every match

    A miss is `found: false` with status 200, not an error.
    """
    return await _verify(db, request.national_id, request.full_name)


@router.get("/verify", response_model=LookupResult, response_model_exclude_none=True)
async def verify_affiliate_query(
    national_id: Optional[str] = Query(default=None, alias="nationalId"),
    full_name: Optional[str] = Query(default=None, alias="fullName"),
    db: Database = Depends(get_db)
):
    """
    Query-string form of `POST /verify`.

    Example: `GET /verify?nationalId=30111222`
    """
    return await _verify(db, national_id, full_name)


async def _credential_response(db: Database, national_id: Optional[str]) -> Response:
    result = await lookup.verify_by_national_id(db, national_id)
    if not result.found:
        raise NotFoundError.affiliate(str(national_id).strip())

    record = result.record
    pdf = render_credential(record)
    credentials_issued.inc()
    logger.info(f"Credential issued for national_id={record.national_id}")

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{credential_filename(record)}"'
        }
    )


@router.get("/credential")
async def get_credential(
    national_id: Optional[str] = Query(default=None, alias="nationalId"),
    db: Database = Depends(get_db)
):
    """
    Download the membership credential PDF.

    Returns 404 when no affiliate has the given national ID.
    """
    return await _credential_response(db, national_id)


@router.post("/credential")
async def post_credential(
    request: CredentialRequest,
    db: Database = Depends(get_db)
):
    """Same as `GET /credential`, with the national ID in a JSON body."""
    return await _credential_response(db, request.national_id)
