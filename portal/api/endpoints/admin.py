"""
Admin Endpoints

GET    /api/v1/admin/dashboard                → portal-wide figures
GET    /api/v1/admin/users                    → user list (role / approval / search filters)
PUT    /api/v1/admin/users/{id}               → change role, approve or revoke
DELETE /api/v1/admin/users/{id}               → delete a user (never yourself)
GET    /api/v1/admin/questions                → paged question management list
GET    /api/v1/admin/export/{agents|employees} → CSV export with rating figures
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.params import IdPath
from portal.api.presenters import page_response
from portal.core.access import Action, AdminPrincipal, require
from portal.core.complaint_store import recent_complaints
from portal.core.database import get_db
from portal.core.export import export_filename, export_profiles_csv
from portal.core.pagination import PageParams, page_params
from portal.core.question_store import search_questions
from portal.core.rating_store import recent_ratings
from portal.core.stats_store import portal_totals
from portal.core.targets import ProfileKind
from portal.core.user_store import delete_user, list_users, update_user
from portal.models.schemas import (
    AdminDashboard,
    Kind,
    MessageResponse,
    Page,
    QuestionOut,
    RatingOut,
    RecentComplaint,
    Role,
    UserOut,
    UserUpdate,
)

router = APIRouter()


@router.get("/dashboard", response_model=AdminDashboard, summary="Portal-wide statistics")
async def dashboard(
    _: AdminPrincipal = Depends(require(Action.VIEW_REPORTS)),
    db: AsyncSession = Depends(get_db),
) -> AdminDashboard:
    totals = await portal_totals(db)
    ratings = await recent_ratings(db)
    complaints = await recent_complaints(db)
    return AdminDashboard(
        **totals,
        recent_ratings=[RatingOut.model_validate(r) for r in ratings],
        recent_complaints=[RecentComplaint.model_validate(c) for c in complaints],
    )


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@router.get("/users", response_model=Page[UserOut], summary="List users")
async def get_users(
    role: Optional[Role] = Query(None),
    approved: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    params: PageParams = Depends(page_params),
    _: AdminPrincipal = Depends(require(Action.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
):
    result = await list_users(db, params, role=role, approved=approved, search=search)
    return page_response(result, UserOut)


@router.put("/users/{user_id}", response_model=UserOut, summary="Change role or approval")
async def put_user(
    user_id: IdPath,
    payload: UserUpdate,
    _: AdminPrincipal = Depends(require(Action.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
) -> UserOut:
    user = await update_user(user_id, db, role=payload.role, is_approved=payload.is_approved)
    return UserOut.model_validate(user)


@router.delete("/users/{user_id}", response_model=MessageResponse, summary="Delete user")
async def remove_user(
    user_id: IdPath,
    principal: AdminPrincipal = Depends(require(Action.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await delete_user(user_id, acting_user_id=principal.user_id, db=db)
    return MessageResponse(message="User deleted successfully")


# ---------------------------------------------------------------------------
# Questions & exports
# ---------------------------------------------------------------------------

@router.get("/questions", response_model=Page[QuestionOut], summary="Manage questions")
async def get_all_questions(
    type: Optional[Kind] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    params: PageParams = Depends(page_params),
    _: AdminPrincipal = Depends(require(Action.MANAGE_QUESTIONS)),
    db: AsyncSession = Depends(get_db),
):
    kind = ProfileKind(type) if type else None
    result = await search_questions(db, params, kind=kind, search=search)
    return page_response(result, QuestionOut)


@router.get("/export/{kind}s", response_class=Response, summary="Export profiles as CSV")
async def export_profiles(
    kind: Kind,
    _: AdminPrincipal = Depends(require(Action.VIEW_REPORTS)),
    db: AsyncSession = Depends(get_db),
) -> Response:
    profile_kind = ProfileKind(kind)
    content = await export_profiles_csv(profile_kind, db)
    return Response(
        content=content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{export_filename(profile_kind)}"',
            "Cache-Control": "no-cache",
        },
    )
