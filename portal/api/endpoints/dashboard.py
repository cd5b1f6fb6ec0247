"""
Staff Dashboard Endpoints

GET /api/v1/dashboard/profile   → the caller and their linked profile
GET /api/v1/dashboard/stats     → rating / complaint figures for the caller's profile
GET /api/v1/dashboard/qr-code   → the caller's own QR image
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.endpoints.profiles import qr_png_response
from portal.api.presenters import profile_summary
from portal.core.access import (
    Action,
    AdminPrincipal,
    Principal,
    StaffPrincipal,
    get_current_user,
    own_target,
    require,
    require_staff,
)
from portal.core.complaint_store import recent_complaints
from portal.core.database import get_db
from portal.core.profile_store import get_profile
from portal.core.rating_store import recent_ratings
from portal.core.stats_store import complaint_counts, rating_summary
from portal.models.db_models import User
from portal.models.schemas import DashboardProfile, RatingOut, RecentComplaint, StaffDashboard, UserOut

router = APIRouter()


@router.get("/profile", response_model=DashboardProfile, summary="Own profile")
async def own_profile(
    principal: Principal = Depends(require(Action.READ_OWN_DASHBOARD)),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> DashboardProfile:
    if isinstance(principal, AdminPrincipal):
        return DashboardProfile(user=UserOut.model_validate(user), type="admin")

    target = own_target(principal)
    profile = await get_profile(target.kind, target.profile_id, db)
    summary = await rating_summary(target, db)
    return DashboardProfile(
        user=UserOut.model_validate(user),
        type=target.kind.value,
        profile=profile_summary(target.kind, profile, summary),
    )


@router.get("/stats", response_model=StaffDashboard, summary="Own rating and complaint figures")
async def own_stats(
    principal: StaffPrincipal = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> StaffDashboard:
    target = own_target(principal)
    summary = await rating_summary(target, db)
    total_complaints, pending_complaints = await complaint_counts(target, db)
    ratings = await recent_ratings(db, scope=target)
    complaints = await recent_complaints(db, scope=target)
    return StaffDashboard(
        total_ratings=summary.count,
        average_rating=summary.average,
        total_complaints=total_complaints,
        pending_complaints=pending_complaints,
        recent_ratings=[RatingOut.model_validate(r) for r in ratings],
        recent_complaints=[RecentComplaint.model_validate(c) for c in complaints],
    )


@router.get("/qr-code", response_class=Response, summary="Download own QR code")
async def own_qr_code(
    principal: StaffPrincipal = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> Response:
    target = own_target(principal)
    profile = await get_profile(target.kind, target.profile_id, db)
    return qr_png_response(target.kind, profile)
