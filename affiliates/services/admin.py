"""
Admin mutation service.

Each operation validates its input, then performs the record change and
the matching audit log append inside one database transaction. Either
both are committed or neither is: a successful call leaves exactly one
new audit entry, a failed call leaves none.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date
from typing import AsyncGenerator, Optional

from asyncpg.exceptions import UniqueViolationError

from affiliates.database import Database, store_errors
from affiliates.errors import ConflictError, RegistryError
from affiliates.models import AffiliatePayload, AffiliateRecord, AuditAction
from affiliates.services import audit_log, records
from affiliates.validation import normalize_digits, normalize_name, normalize_optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AffiliateFields:
    """Validated and normalized mutation input."""

    national_id: str
    full_name: str
    member_number: str
    category: Optional[str] = None
    employer: Optional[str] = None
    admission_date: Optional[date] = None


def validate_payload(payload: AffiliatePayload) -> AffiliateFields:
    """
    Normalize an add/edit payload.

    Raises:
        ValidationError: on the first invalid field, checked in the order
            national ID, full name, member number
    """
    return AffiliateFields(
        national_id=normalize_digits(payload.national_id, "nationalId"),
        full_name=normalize_name(payload.full_name),
        member_number=normalize_digits(payload.member_number, "memberNumber"),
        category=normalize_optional(payload.category),
        employer=normalize_optional(payload.employer),
        admission_date=payload.admission_date,
    )


@asynccontextmanager
async def _mutation(db: Database, operation: str) -> AsyncGenerator:
    """
    Run a block in a transaction and translate store failures.

    Any exception leaving the block rolls back the record change and the
    audit entry together.
    """
    async with store_errors(operation, "Nothing was saved; retry later."):
        try:
            async with db.transaction() as conn:
                yield conn
        except UniqueViolationError as e:
            raise ConflictError.from_constraint(e.constraint_name) from e


async def add_affiliate(db: Database, payload: AffiliatePayload) -> AffiliateRecord:
    """
    Create an affiliate and log an Add entry.

    Raises:
        ValidationError, ConflictError, StoreUnavailableError
    """
    fields = validate_payload(payload)

    try:
        async with _mutation(db, "add") as conn:
            record = await records.insert(
                conn,
                national_id=fields.national_id,
                full_name=fields.full_name,
                member_number=fields.member_number,
                category=fields.category,
                employer=fields.employer,
                admission_date=fields.admission_date,
            )
            await audit_log.append(conn, AuditAction.ADD, record)
    except RegistryError as e:
        logger.warning(f"Add rejected for {fields.national_id}: {e.kind} {e.message}")
        raise

    logger.info(f"Affiliate added: national_id={record.national_id}, member={record.member_number}")
    return record


async def edit_affiliate(db: Database, payload: AffiliatePayload) -> AffiliateRecord:
    """
    Update name and member number of an affiliate and log an Edit entry.

    The national ID selects the record and is never changed.

    Raises:
        ValidationError, NotFoundError, ConflictError, StoreUnavailableError
    """
    fields = validate_payload(payload)

    try:
        async with _mutation(db, "edit") as conn:
            record = await records.update(
                conn,
                national_id=fields.national_id,
                full_name=fields.full_name,
                member_number=fields.member_number,
                category=fields.category,
                employer=fields.employer,
                admission_date=fields.admission_date,
            )
            await audit_log.append(conn, AuditAction.EDIT, record)
    except RegistryError as e:
        logger.warning(f"Edit rejected for {fields.national_id}: {e.kind} {e.message}")
        raise

    logger.info(f"Affiliate edited: national_id={record.national_id}, member={record.member_number}")
    return record


async def remove_affiliate(db: Database, national_id: Optional[str]) -> AffiliateRecord:
    """
    Delete an affiliate and log a Delete entry with its last values.

    Raises:
        ValidationError, NotFoundError, StoreUnavailableError
    """
    national_id = normalize_digits(national_id, "nationalId")

    try:
        async with _mutation(db, "remove") as conn:
            snapshot = await records.delete(conn, national_id)
            await audit_log.append(conn, AuditAction.DELETE, snapshot)
    except RegistryError as e:
        logger.warning(f"Remove rejected for {national_id}: {e.kind} {e.message}")
        raise

    logger.info(f"Affiliate removed: national_id={snapshot.national_id}")
    return snapshot
