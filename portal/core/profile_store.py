"""
Async store for agent and employee profiles.

Agents and employees are two parallel tables with the same lifecycle, so
every function takes the ``ProfileKind`` and resolves the model from it.

Delete policy, enforced by the foreign keys declared in ``db_models``:
ratings of a deleted profile are removed with it, complaints stay and lose
their target, and a linked user account is left untouched.
"""

import logging
from typing import Any

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.errors import Conflict, NotFound, ValidationError
from portal.core.pagination import LIKE_ESCAPE, PageParams, PageResult, contains_pattern, paginate
from portal.core.qr import issue_qr_token
from portal.core.targets import ProfileKind
from portal.models.db_models import PROFILE_MODELS, Agent, Employee, User

logger = logging.getLogger(__name__)

_SEARCH_COLUMNS = {
    ProfileKind.AGENT: ("name", "email", "location", "branch"),
    ProfileKind.EMPLOYEE: ("name", "email", "department", "position", "branch"),
}

Profile = Agent | Employee


def model_for(kind: ProfileKind) -> type[Agent] | type[Employee]:
    return PROFILE_MODELS[ProfileKind(kind)]


# ---------------------------------------------------------------------------
# Write operations
# ---------------------------------------------------------------------------


async def create_profile(kind: ProfileKind, data: dict[str, Any], db: AsyncSession) -> Profile:
    """Insert a profile with a freshly issued ``qr_code``."""
    if data.get("user_id") is not None:
        await _check_linkable_user(kind, data["user_id"], db)

    model = model_for(kind)
    profile = model(**data, qr_code=issue_qr_token())
    if kind is ProfileKind.AGENT:
        profile.is_online = False
    db.add(profile)
    await _commit_unique(kind, db)
    await db.refresh(profile)
    logger.info("Created %s %s (%s)", kind.value, profile.id, profile.email)
    return profile


async def update_profile(
    kind: ProfileKind, profile_id: int, changes: dict[str, Any], db: AsyncSession
) -> Profile:
    profile = await get_profile(kind, profile_id, db)
    if changes.get("user_id") is not None and changes["user_id"] != profile.user_id:
        await _check_linkable_user(kind, changes["user_id"], db)

    for field, value in changes.items():
        setattr(profile, field, value)
    await _commit_unique(kind, db)
    await db.refresh(profile)
    logger.info("Updated %s %s: %s", kind.value, profile.id, sorted(changes))
    return profile


async def rotate_qr_code(kind: ProfileKind, profile_id: int, db: AsyncSession) -> Profile:
    """Replace the stored token. Printed images keep working: they carry the deep link."""
    profile = await get_profile(kind, profile_id, db)
    profile.qr_code = issue_qr_token()
    await _commit_unique(kind, db)
    await db.refresh(profile)
    logger.info("Rotated qr_code of %s %s", kind.value, profile.id)
    return profile


async def delete_profile(kind: ProfileKind, profile_id: int, db: AsyncSession) -> None:
    profile = await get_profile(kind, profile_id, db)
    await db.delete(profile)
    await db.commit()
    logger.info("Deleted %s %s", kind.value, profile_id)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_profile(kind: ProfileKind, profile_id: int, db: AsyncSession) -> Profile:
    profile = await db.get(model_for(kind), profile_id)
    if profile is None:
        raise NotFound(f"{ProfileKind(kind).label} not found")
    return profile


async def list_profiles(
    kind: ProfileKind,
    db: AsyncSession,
    params: PageParams,
    search: str | None = None,
    online: bool | None = None,
) -> PageResult:
    model = model_for(kind)
    stmt = select(model)
    if search:
        pattern = contains_pattern(search)
        stmt = stmt.where(
            or_(
                *(
                    getattr(model, column).ilike(pattern, escape=LIKE_ESCAPE)
                    for column in _SEARCH_COLUMNS[kind]
                )
            )
        )
    if online is not None and kind is ProfileKind.AGENT:
        stmt = stmt.where(Agent.is_online == online)
    stmt = stmt.order_by(model.created_at.desc(), model.id.desc())
    return await paginate(db, stmt, params)


async def agents_in_box(
    lat: float, lat_delta: float, lng_ranges: list[tuple[float, float]], db: AsyncSession
) -> list[Agent]:
    """Online agents with coordinates inside a bounding box.

    ``lng_ranges`` holds two ranges when the box crosses the antimeridian.
    """
    result = await db.execute(
        select(Agent).where(
            and_(
                Agent.is_online.is_(True),
                Agent.latitude.is_not(None),
                Agent.longitude.is_not(None),
                Agent.latitude.between(lat - lat_delta, lat + lat_delta),
                or_(*(Agent.longitude.between(low, high) for low, high in lng_ranges)),
            )
        )
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


async def _check_linkable_user(kind: ProfileKind, user_id: int, db: AsyncSession) -> None:
    user = await db.get(User, user_id)
    if user is None:
        raise ValidationError.single("user_id", "User not found")
    expected = ProfileKind(kind).staff_role
    if user.role != expected:
        raise ValidationError.single(
            "user_id", f"A {kind.value} profile can only be linked to a '{expected}' user"
        )


async def _commit_unique(kind: ProfileKind, db: AsyncSession) -> None:
    """Commit, turning a unique-constraint violation into a Conflict naming the field."""
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        message = str(exc.orig).lower()
        for field in ("email", "qr_code", "user_id"):
            if field in message:
                raise Conflict(f"{ProfileKind(kind).label} with this {field} already exists")
        raise Conflict(f"{ProfileKind(kind).label} conflicts with an existing record")
