"""
Affiliate record store.

Every function takes either the ``Database`` pool wrapper or a connection
obtained from ``Database.transaction()``; both expose the same
``fetchrow``/``fetch`` API. Inputs are normalized before any query runs,
so a malformed identifier never reaches the database.
"""

import logging
from datetime import date
from typing import List, Optional

from asyncpg.exceptions import UniqueViolationError

from affiliates.errors import ConflictError, NotFoundError
from affiliates.models import AffiliateRecord
from affiliates.validation import normalize_digits, normalize_name, normalize_optional

logger = logging.getLogger(__name__)

RECORD_COLUMNS = (
    "id, national_id, member_number, full_name, category, employer, "
    "admission_date, created_at, updated_at"
)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def find(conn, national_id: str, for_update: bool = False) -> Optional[AffiliateRecord]:
    """
    Fetch one affiliate by national ID.

    Args:
        conn: Database or transaction connection
        national_id: National ID (trimmed, digits only)
        for_update: Lock the row until the surrounding transaction ends

    Returns:
        The record, or None if absent
    """
    national_id = normalize_digits(national_id, "nationalId")

    query = f"SELECT {RECORD_COLUMNS} FROM affiliates WHERE national_id = $1"
    if for_update:
        query += " FOR UPDATE"

    row = await conn.fetchrow(query, national_id)
    return AffiliateRecord.from_row(row) if row else None


async def find_by_member_number(conn, member_number: str) -> Optional[AffiliateRecord]:
    """Fetch one affiliate by member number."""
    member_number = normalize_digits(member_number, "memberNumber")

    row = await conn.fetchrow(
        f"SELECT {RECORD_COLUMNS} FROM affiliates WHERE member_number = $1",
        member_number
    )
    return AffiliateRecord.from_row(row) if row else None


async def find_by_name(conn, name: str, limit: int = 20) -> List[AffiliateRecord]:
    """
    Search affiliates by name.

    The name is split on whitespace and a record matches when every term
    appears, ignoring case, somewhere in its full name. "perez juan"
    therefore finds "Juan A. Perez". Results are ordered by full name.
    """
    terms = normalize_name(name).split(" ")

    conditions = []
    params: list = []
    for term in terms:
        params.append(f"%{_escape_like(term)}%")
        conditions.append(f"full_name ILIKE ${len(params)}")

    params.append(limit)
    where_clause = " AND ".join(conditions)

    rows = await conn.fetch(
        f"""
        SELECT {RECORD_COLUMNS} FROM affiliates
        WHERE {where_clause}
        ORDER BY full_name ASC, id ASC
        LIMIT ${len(params)}
        """,
        *params
    )
    return [AffiliateRecord.from_row(r) for r in rows]


async def insert(
    conn,
    national_id: str,
    full_name: str,
    member_number: str,
    category: Optional[str] = None,
    employer: Optional[str] = None,
    admission_date: Optional[date] = None
) -> AffiliateRecord:
    """
    Insert a new affiliate.

    National ID is checked before member number so each conflict is
    reported on its own. The unique constraints still back the checks up
    against a concurrent insert.

    Raises:
        ValidationError: malformed input
        ConflictError: national ID or member number already taken
    """
    national_id = normalize_digits(national_id, "nationalId")
    member_number = normalize_digits(member_number, "memberNumber")
    full_name = normalize_name(full_name)

    if await find(conn, national_id) is not None:
        raise ConflictError.national_id(national_id)

    if await find_by_member_number(conn, member_number) is not None:
        raise ConflictError.member_number(member_number)

    try:
        row = await conn.fetchrow(
            f"""
            INSERT INTO affiliates (
                national_id, member_number, full_name,
                category, employer, admission_date
            ) VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING {RECORD_COLUMNS}
            """,
            national_id,
            member_number,
            full_name,
            normalize_optional(category),
            normalize_optional(employer),
            admission_date
        )
    except UniqueViolationError as e:
        logger.warning(f"Concurrent insert lost on constraint {e.constraint_name}")
        raise ConflictError.from_constraint(e.constraint_name) from e

    return AffiliateRecord.from_row(row)


async def update(
    conn,
    national_id: str,
    full_name: str,
    member_number: str,
    category: Optional[str] = None,
    employer: Optional[str] = None,
    admission_date: Optional[date] = None
) -> AffiliateRecord:
    """
    Replace name and member number of an existing affiliate.

    The national ID identifies the record and is never changed. Optional
    fields left as None keep their stored value.

    Raises:
        ValidationError: malformed input
        NotFoundError: no affiliate with that national ID
        ConflictError: member number held by a different affiliate
    """
    national_id = normalize_digits(national_id, "nationalId")
    member_number = normalize_digits(member_number, "memberNumber")
    full_name = normalize_name(full_name)

    existing = await find(conn, national_id, for_update=True)
    if existing is None:
        raise NotFoundError.affiliate(national_id)

    holder = await find_by_member_number(conn, member_number)
    if holder is not None and holder.national_id != national_id:
        raise ConflictError.member_number(member_number)

    try:
        row = await conn.fetchrow(
            f"""
            UPDATE affiliates
            SET full_name = $2,
                member_number = $3,
                category = COALESCE($4, category),
                employer = COALESCE($5, employer),
                admission_date = COALESCE($6, admission_date),
                updated_at = now()
            WHERE national_id = $1
            RETURNING {RECORD_COLUMNS}
            """,
            national_id,
            full_name,
            member_number,
            normalize_optional(category),
            normalize_optional(employer),
            admission_date
        )
    except UniqueViolationError as e:
        raise ConflictError.from_constraint(e.constraint_name) from e

    if row is None:
        raise NotFoundError.affiliate(national_id)

    return AffiliateRecord.from_row(row)


async def delete(conn, national_id: str) -> AffiliateRecord:
    """
    Delete an affiliate and return its last stored values.

    Raises:
        ValidationError: malformed national ID
        NotFoundError: no affiliate with that national ID
    """
    national_id = normalize_digits(national_id, "nationalId")

    row = await conn.fetchrow(
        f"DELETE FROM affiliates WHERE national_id = $1 RETURNING {RECORD_COLUMNS}",
        national_id
    )

    if row is None:
        raise NotFoundError.affiliate(national_id)

    return AffiliateRecord.from_row(row)
