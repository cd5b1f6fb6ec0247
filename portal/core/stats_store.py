"""
Derived rating and complaint statistics.

Averages and counts are never stored on a profile; every figure here is a
query-time aggregate over the ``ratings`` / ``complaints`` rows, so it can
never drift out of sync with the data it summarises.
"""

from dataclasses import dataclass

from sqlalchemy import case, func, outerjoin, select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.pagination import LIKE_ESCAPE, contains_pattern
from portal.core.targets import ProfileKind, Target, target_clause
from portal.models.db_models import PROFILE_MODELS, Agent, Complaint, Employee, Rating, User


@dataclass(frozen=True)
class RatingSummary:
    count: int
    average: float | None


# ---------------------------------------------------------------------------
# Per-target figures
# ---------------------------------------------------------------------------


async def rating_summary(target: Target, db: AsyncSession) -> RatingSummary:
    """Count and average rating of one target; the average is None without ratings."""
    result = await db.execute(
        select(func.count(Rating.id), func.avg(Rating.rating_value)).where(
            target_clause(Rating, target)
        )
    )
    count, average = result.one()
    return RatingSummary(count=count or 0, average=_avg(average, count))


async def rating_summaries(
    kind: ProfileKind, profile_ids: list[int], db: AsyncSession
) -> dict[int, RatingSummary]:
    """Summaries for many profiles of one kind in a single grouped query."""
    if not profile_ids:
        return {}
    column = getattr(Rating, ProfileKind(kind).column)
    result = await db.execute(
        select(column, func.count(Rating.id), func.avg(Rating.rating_value))
        .where(column.in_(profile_ids))
        .group_by(column)
    )
    summaries = {pid: RatingSummary(count=0, average=None) for pid in profile_ids}
    for profile_id, count, average in result.all():
        summaries[profile_id] = RatingSummary(count=count, average=_avg(average, count))
    return summaries


async def profiles_with_summaries(
    kind: ProfileKind,
    db: AsyncSession,
    name_like: str | None = None,
    limit: int | None = None,
    order_by_name: bool = False,
) -> list[tuple[Agent | Employee, RatingSummary]]:
    """Profiles left-joined to their rating aggregates, grouped by profile."""
    model = PROFILE_MODELS[ProfileKind(kind)]
    column = getattr(Rating, ProfileKind(kind).column)
    stmt = (
        select(model, func.count(Rating.id), func.avg(Rating.rating_value))
        .select_from(outerjoin(model, Rating, column == model.id))
        .group_by(model.id)
    )
    if name_like:
        stmt = stmt.where(model.name.ilike(contains_pattern(name_like), escape=LIKE_ESCAPE))
    stmt = stmt.order_by(model.name.asc() if order_by_name else model.id.asc())
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return [
        (profile, RatingSummary(count=count or 0, average=_avg(average, count)))
        for profile, count, average in result.all()
    ]


async def complaint_counts(target: Target, db: AsyncSession) -> tuple[int, int]:
    """(total, pending) complaints of one target."""
    result = await db.execute(
        select(
            func.count(Complaint.id),
            func.sum(case((Complaint.status == "pending", 1), else_=0)),
        ).where(target_clause(Complaint, target))
    )
    total, pending = result.one()
    return total or 0, int(pending or 0)


# ---------------------------------------------------------------------------
# Portal-wide figures
# ---------------------------------------------------------------------------


async def portal_totals(db: AsyncSession) -> dict[str, int | float | None]:
    """Counts shown on the admin dashboard."""
    total_agents = await _count(db, Agent)
    total_employees = await _count(db, Employee)
    total_complaints = await _count(db, Complaint)
    pending_approvals = (
        await db.execute(
            select(func.count()).select_from(User).where(User.is_approved.is_(False))
        )
    ).scalar_one() or 0
    ratings = await db.execute(select(func.count(Rating.id), func.avg(Rating.rating_value)))
    total_ratings, average = ratings.one()

    return {
        "total_agents": total_agents,
        "total_employees": total_employees,
        "total_ratings": total_ratings or 0,
        "total_complaints": total_complaints,
        "pending_approvals": pending_approvals,
        "average_rating": _avg(average, total_ratings),
    }


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


async def _count(db: AsyncSession, model) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar_one() or 0


def _avg(value, count: int | None) -> float | None:
    """Average rounded to two decimals, or None when there is nothing to average."""
    if not count or value is None:
        return None
    return round(float(value), 2)
