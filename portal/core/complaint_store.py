"""
Async store for customer complaints.

Status can be set to any value directly by an admin; the only side effect
is ``resolved_at``, which is stamped on entering ``resolved`` and cleared on
leaving it.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import false, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.errors import NotFound
from portal.core.pagination import LIKE_ESCAPE, PageParams, PageResult, contains_pattern, paginate
from portal.core.profile_store import get_profile
from portal.core.targets import Target, target_clause
from portal.models.db_models import Complaint

logger = logging.getLogger(__name__)

STATUSES = ("pending", "in_progress", "resolved", "closed")


def apply_status(complaint: Complaint, status: str, now: datetime | None = None) -> None:
    """Set ``status`` and keep ``resolved_at`` consistent with it."""
    if status not in STATUSES:
        raise ValueError(f"Unknown complaint status: {status}")
    if status == "resolved":
        if complaint.status != "resolved" or complaint.resolved_at is None:
            complaint.resolved_at = now or datetime.now(timezone.utc)
    else:
        complaint.resolved_at = None
    complaint.status = status


# ---------------------------------------------------------------------------
# Write operations
# ---------------------------------------------------------------------------


async def create_complaint(data: dict[str, Any], target: Target | None, db: AsyncSession) -> Complaint:
    """Public intake. Always starts ``pending`` with no resolution timestamp."""
    if target is not None:
        await get_profile(target.kind, target.profile_id, db)
        columns = target.as_columns()
    else:
        columns = {"agent_id": None, "employee_id": None}

    complaint = Complaint(**data, **columns, status="pending", resolved_at=None)
    db.add(complaint)
    await db.commit()
    await db.refresh(complaint)
    logger.info(
        "Complaint %s filed (%s, target=%s)",
        complaint.id,
        complaint.complaint_type,
        target.as_dict() if target else "general",
    )
    return complaint


async def update_complaint(
    complaint_id: int,
    db: AsyncSession,
    status: str | None = None,
    priority: str | None = None,
    resolution: str | None = None,
    set_resolution: bool = False,
) -> Complaint:
    complaint = await get_complaint(complaint_id, db)
    previous = complaint.status
    if status is not None:
        apply_status(complaint, status)
    if priority is not None:
        complaint.priority = priority
    if set_resolution:
        complaint.resolution = resolution
    await db.commit()
    await db.refresh(complaint)
    if status is not None and status != previous:
        logger.info("Complaint %s moved %s -> %s", complaint.id, previous, status)
    return complaint


async def delete_complaint(complaint_id: int, db: AsyncSession) -> None:
    complaint = await get_complaint(complaint_id, db)
    await db.delete(complaint)
    await db.commit()
    logger.info("Deleted complaint %s", complaint_id)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_complaint(complaint_id: int, db: AsyncSession) -> Complaint:
    complaint = await db.get(Complaint, complaint_id)
    if complaint is None:
        raise NotFound("Complaint not found")
    return complaint


async def list_complaints(
    db: AsyncSession,
    params: PageParams,
    scope: Target | None = None,
    requested: list[Target] | None = None,
    status: str | None = None,
    priority: str | None = None,
    complaint_type: str | None = None,
    search: str | None = None,
) -> PageResult:
    """Complaints page, newest first. Scope and filters are both applied in SQL."""
    stmt = select(Complaint)
    if scope is not None:
        stmt = stmt.where(target_clause(Complaint, scope))
    for target in requested or []:
        if scope is not None and target != scope:
            stmt = stmt.where(false())
        stmt = stmt.where(target_clause(Complaint, target))
    if status:
        stmt = stmt.where(Complaint.status == status)
    if priority:
        stmt = stmt.where(Complaint.priority == priority)
    if complaint_type:
        stmt = stmt.where(Complaint.complaint_type == complaint_type)
    if search:
        pattern = contains_pattern(search)
        stmt = stmt.where(
            or_(
                Complaint.subject.ilike(pattern, escape=LIKE_ESCAPE),
                Complaint.complainant_name.ilike(pattern, escape=LIKE_ESCAPE),
                Complaint.complainant_email.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )
    stmt = stmt.order_by(Complaint.created_at.desc(), Complaint.id.desc())
    return await paginate(db, stmt, params)


async def recent_complaints(
    db: AsyncSession, scope: Target | None = None, limit: int = 10
) -> list[Complaint]:
    stmt = select(Complaint)
    if scope is not None:
        stmt = stmt.where(target_clause(Complaint, scope))
    stmt = stmt.order_by(Complaint.created_at.desc(), Complaint.id.desc()).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())
