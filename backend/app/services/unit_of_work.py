"""
Transaction helpers shared by the fleet services.

Every service operation stages all of its writes on one session and commits
once, so a cascade (trip + vehicle + driver, log + vehicle) lands as a
single unit or not at all.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from backend.app.core.exceptions import ConflictError, ValidationError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def conflict_guard(
    db: AsyncSession,
    operation: str,
    details: Optional[Dict[str, Any]] = None
):
    """
    Translate storage-level write failures raised inside the block.

    A version mismatch on any row (another request changed it after we read
    it) rolls the whole unit back and surfaces as ConflictError. A unique
    constraint hit that slipped past the pre-checks becomes ValidationError.
    """
    try:
        yield
    except StaleDataError:
        await db.rollback()
        logger.warning("Concurrent modification during %s, rolled back", operation)
        raise ConflictError(
            f"Records changed concurrently during {operation}. Reload and retry.",
            details=dict(details or {}, operation=operation)
        )
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("Integrity violation during %s: %s", operation, exc.orig)
        raise ValidationError(
            f"Could not complete {operation}: a unique or reference constraint was violated",
            details=dict(details or {}, operation=operation)
        )


async def commit_or_conflict(
    db: AsyncSession,
    operation: str,
    details: Optional[Dict[str, Any]] = None,
    refresh: tuple = ()
) -> None:
    """Commit the session under `conflict_guard`, then refresh the given instances."""
    async with conflict_guard(db, operation, details):
        await db.commit()

    for instance in refresh:
        await db.refresh(instance)
