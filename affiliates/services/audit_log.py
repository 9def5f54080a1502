"""
Append-only audit log of admin changes.

Entries are only ever inserted, from inside the transaction of the
mutation they describe. Nothing in the application updates or deletes
them.
"""

import logging
from typing import List, Optional

from affiliates.config import settings
from affiliates.database import store_errors
from affiliates.models import AffiliateRecord, AuditAction, AuditLogEntry

logger = logging.getLogger(__name__)

ENTRY_COLUMNS = "id, action, national_id, full_name, member_number, timestamp_utc"


async def append(conn, action: AuditAction, record: AffiliateRecord) -> AuditLogEntry:
    """
    Record one mutation.

    Args:
        conn: Connection of the transaction that performed the mutation
        action: What happened
        record: Snapshot of the affected affiliate (pre-delete for Delete)

    Returns:
        The stored entry, with its database-assigned timestamp
    """
    row = await conn.fetchrow(
        f"""
        INSERT INTO audit_log (action, national_id, full_name, member_number)
        VALUES ($1, $2, $3, $4)
        RETURNING {ENTRY_COLUMNS}
        """,
        action.value,
        record.national_id,
        record.full_name,
        record.member_number
    )
    return AuditLogEntry.from_row(row)


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.audit_log_default_limit
    return max(1, min(limit, settings.audit_log_max_limit))


async def recent(
    db,
    limit: Optional[int] = None,
    action: Optional[AuditAction] = None
) -> List[AuditLogEntry]:
    """
    Most recent entries first.

    Args:
        db: Database or connection
        limit: Page size, clamped to the configured maximum
        action: Only entries of this action
    """
    conditions = []
    params: list = []

    if action is not None:
        params.append(action.value)
        conditions.append(f"action = ${len(params)}")

    where_clause = " AND ".join(conditions) if conditions else "1=1"
    params.append(clamp_limit(limit))

    async with store_errors("audit log listing"):
        rows = await db.fetch(
            f"""
            SELECT {ENTRY_COLUMNS} FROM audit_log
            WHERE {where_clause}
            ORDER BY timestamp_utc DESC, id DESC
            LIMIT ${len(params)}
            """,
            *params
        )
    return [AuditLogEntry.from_row(r) for r in rows]


async def count(db) -> int:
    async with store_errors("audit log count"):
        return await db.fetchval("SELECT COUNT(*) FROM audit_log")
