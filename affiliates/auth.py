"""
Admin access gate.

Every admin request must carry the shared PIN in a header. The check is
stateless: the header value is compared with ``settings.admin_pin`` and
the request is refused before any database work if they differ.
"""

import logging
import secrets
from typing import Optional

from fastapi import Depends
from fastapi.security import APIKeyHeader

from affiliates.config import settings
from affiliates.errors import AccessDeniedError

logger = logging.getLogger(__name__)

admin_pin_header = APIKeyHeader(name=settings.admin_header_name, auto_error=False)


def check_pin(candidate: Optional[str]) -> bool:
    """Exact, constant-time comparison against the configured PIN."""
    if not candidate or not settings.admin_pin:
        return False
    return secrets.compare_digest(
        candidate.encode('utf-8'),
        settings.admin_pin.encode('utf-8')
    )


async def require_admin(
    x_admin_pin: Optional[str] = Depends(admin_pin_header)
) -> None:
    """
    Dependency guarding admin routes.

    Raises:
        AccessDeniedError: header missing or wrong
    """
    if not check_pin(x_admin_pin):
        logger.warning("Admin request denied: missing or invalid PIN")
        raise AccessDeniedError("Missing or invalid admin PIN")
