"""
Profile Endpoints for agents and employees

Both kinds expose the same routes under their own prefix:

GET    /api/v1/{agents|employees}                 → admin list (search, paging)
POST   /api/v1/{agents|employees}                 → admin create (issues qr_code)
GET    /api/v1/{agents|employees}/{id}            → public profile with rating figures
PUT    /api/v1/{agents|employees}/{id}            → admin update
DELETE /api/v1/{agents|employees}/{id}            → admin delete
GET    /api/v1/{agents|employees}/{id}/qr         → PNG QR image (admin or owner)
POST   /api/v1/{agents|employees}/{id}/qr/rotate  → admin re-issue of qr_code

Agents additionally expose GET /api/v1/agents/nearby for the public map.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.params import IdPath
from portal.api.presenters import page_response, profile_summary
from portal.core.access import Action, Principal, authorize_target, require, require_authenticated
from portal.core.database import get_db
from portal.core.geo import bounding_box, haversine, longitude_ranges
from portal.core.pagination import PageParams, page_params
from portal.core.profile_store import (
    agents_in_box,
    create_profile,
    delete_profile,
    get_profile,
    list_profiles,
    rotate_qr_code,
    update_profile,
)
from portal.core.qr import build_rate_url, download_filename, render_qr_png
from portal.core.stats_store import rating_summaries, rating_summary
from portal.core.targets import ProfileKind, Target
from portal.models.schemas import (
    AgentCreate,
    AgentOut,
    AgentUpdate,
    EmployeeCreate,
    EmployeeOut,
    EmployeeUpdate,
    MessageResponse,
    Page,
    ProfileSummary,
)

# Columns that may be cleared with an explicit null on update
_NULLABLE_FIELDS = {"user_id", "latitude", "longitude"}


def _changes(payload) -> dict:
    return {
        field: value
        for field, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or field in _NULLABLE_FIELDS
    }


def qr_png_response(kind: ProfileKind, profile) -> Response:
    png = render_qr_png(build_rate_url(kind, profile.id))
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{download_filename(profile.name)}"'},
    )


def build_profile_router(kind: ProfileKind, create_schema, update_schema, out_schema) -> APIRouter:
    router = APIRouter()
    label = kind.label

    if kind is ProfileKind.AGENT:
        # Registered before /{profile_id} so "nearby" is not taken for an id.
        @router.get(
            "/nearby",
            response_model=list[ProfileSummary],
            summary="Online agents near a location",
            description="Online agents within `radius` km, nearest first, with their rating figures.",
        )
        async def nearby_agents(
            lat: float = Query(..., ge=-90, le=90),
            lng: float = Query(..., ge=-180, le=180),
            radius: float = Query(10.0, gt=0, le=500, description="Radius in km"),
            db: AsyncSession = Depends(get_db),
        ) -> list[ProfileSummary]:
            lat_delta, lng_delta = bounding_box(lat, lng, radius)
            candidates = await agents_in_box(lat, lat_delta, longitude_ranges(lng, lng_delta), db)
            in_range = []
            for agent in candidates:
                distance = haversine(lat, lng, agent.latitude, agent.longitude)
                if distance <= radius:
                    in_range.append((distance, agent))
            in_range.sort(key=lambda pair: pair[0])

            summaries = await rating_summaries(kind, [agent.id for _, agent in in_range], db)
            return [
                profile_summary(kind, agent, summaries[agent.id], distance_km=distance)
                for distance, agent in in_range
            ]

    @router.get("", response_model=Page[out_schema], summary=f"List {kind.value}s")
    async def list_endpoint(
        search: Optional[str] = Query(None, max_length=100),
        online: Optional[bool] = Query(None, description="Agents only: filter on online status"),
        params: PageParams = Depends(page_params),
        _: Principal = Depends(require(Action.MANAGE_PROFILES)),
        db: AsyncSession = Depends(get_db),
    ):
        result = await list_profiles(kind, db, params, search=search, online=online)
        return page_response(result, out_schema)

    @router.post(
        "",
        response_model=out_schema,
        status_code=status.HTTP_201_CREATED,
        summary=f"Create {kind.value}",
    )
    async def create_endpoint(
        payload: create_schema,
        _: Principal = Depends(require(Action.MANAGE_PROFILES)),
        db: AsyncSession = Depends(get_db),
    ):
        profile = await create_profile(kind, payload.model_dump(), db)
        return out_schema.model_validate(profile)

    @router.get(
        "/{profile_id}",
        response_model=ProfileSummary,
        summary=f"Public {kind.value} profile",
    )
    async def get_endpoint(profile_id: IdPath, db: AsyncSession = Depends(get_db)) -> ProfileSummary:
        profile = await get_profile(kind, profile_id, db)
        summary = await rating_summary(Target(kind, profile.id), db)
        return profile_summary(kind, profile, summary)

    @router.put("/{profile_id}", response_model=out_schema, summary=f"Update {kind.value}")
    async def update_endpoint(
        profile_id: IdPath,
        payload: update_schema,
        _: Principal = Depends(require(Action.MANAGE_PROFILES)),
        db: AsyncSession = Depends(get_db),
    ):
        profile = await update_profile(kind, profile_id, _changes(payload), db)
        return out_schema.model_validate(profile)

    @router.delete("/{profile_id}", response_model=MessageResponse, summary=f"Delete {kind.value}")
    async def delete_endpoint(
        profile_id: IdPath,
        _: Principal = Depends(require(Action.MANAGE_PROFILES)),
        db: AsyncSession = Depends(get_db),
    ) -> MessageResponse:
        await delete_profile(kind, profile_id, db)
        return MessageResponse(message=f"{label} deleted successfully")

    @router.get(
        "/{profile_id}/qr",
        response_class=Response,
        summary=f"Download a {kind.value}'s QR code",
        description="PNG image encoding the profile's rating deep link. Admins, or the profile's own user.",
    )
    async def qr_endpoint(
        profile_id: IdPath,
        principal: Principal = Depends(require_authenticated),
        db: AsyncSession = Depends(get_db),
    ) -> Response:
        # Ownership is decided on the id alone, before looking the profile up.
        authorize_target(principal, Target(kind, profile_id))
        profile = await get_profile(kind, profile_id, db)
        return qr_png_response(kind, profile)

    @router.post(
        "/{profile_id}/qr/rotate",
        response_model=out_schema,
        summary=f"Re-issue a {kind.value}'s qr_code",
    )
    async def rotate_endpoint(
        profile_id: IdPath,
        _: Principal = Depends(require(Action.MANAGE_PROFILES)),
        db: AsyncSession = Depends(get_db),
    ):
        profile = await rotate_qr_code(kind, profile_id, db)
        return out_schema.model_validate(profile)

    return router


agents_router = build_profile_router(ProfileKind.AGENT, AgentCreate, AgentUpdate, AgentOut)
employees_router = build_profile_router(ProfileKind.EMPLOYEE, EmployeeCreate, EmployeeUpdate, EmployeeOut)
