"""
Read-only affiliate lookup.

A miss is a normal ``found=False`` result. Only malformed input (a
national ID with non-digits, an empty name) raises ``ValidationError``.
"""

import logging
from typing import Optional

from affiliates.config import settings
from affiliates.database import Database, store_errors
from affiliates.errors import ValidationError
from affiliates.models import LookupResult
from affiliates.services import records

logger = logging.getLogger(__name__)


async def verify_by_national_id(db: Database, national_id: str) -> LookupResult:
    async with store_errors("lookup by national ID"):
        record = await records.find(db, national_id)
    if record is None:
        return LookupResult(found=False)
    return LookupResult(found=True, record=record, matches=[record])


async def verify_by_name(db: Database, full_name: str) -> LookupResult:
    """
    Look up by name.

    Every whitespace-separated term must appear in the stored full name,
    ignoring case. ``record`` holds the first match in name order and
    ``matches`` all of them, up to ``settings.name_search_limit``.
    """
    async with store_errors("lookup by name"):
        matches = await records.find_by_name(db, full_name, limit=settings.name_search_limit)
    if not matches:
        return LookupResult(found=False)
    return LookupResult(found=True, record=matches[0], matches=matches)


async def verify(
    db: Database,
    national_id: Optional[str] = None,
    full_name: Optional[str] = None
) -> LookupResult:
    """Look up by national ID when given, otherwise by name."""
    if national_id is not None and str(national_id).strip():
        return await verify_by_national_id(db, national_id)

    if full_name is not None and full_name.strip():
        return await verify_by_name(db, full_name)

    raise ValidationError("Provide a national ID or a name to verify", field="nationalId")
