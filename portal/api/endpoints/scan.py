"""
Scan & Search Endpoints: the public entry points to a rating

POST /api/v1/qr/resolve          → turn a scanned QR payload into a target
GET  /api/v1/rate/{kind}/{id}    → rating form: profile + active rubric
GET  /api/v1/search?q=&type=     → find a profile by name
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.params import IdPath
from portal.api.presenters import profile_summary
from portal.core.database import get_db
from portal.core.errors import ValidationError
from portal.core.limiter import limiter
from portal.core.profile_store import get_profile
from portal.core.qr import parse_rate_url, rate_path
from portal.core.question_store import list_questions
from portal.core.stats_store import profiles_with_summaries, rating_summary
from portal.core.targets import ProfileKind, Target
from portal.models.schemas import Kind, ProfileSummary, QRResolveRequest, QRResolveResponse, QuestionOut, RatingForm

logger = logging.getLogger(__name__)

router = APIRouter()

SEARCH_LIMIT = 20


@router.post(
    "/qr/resolve",
    response_model=QRResolveResponse,
    summary="Resolve a scanned QR payload",
    description=(
        "Accepts the decoded text of a QR image. Anything that is not a "
        "`/rate/{agent|employee}/{id}` deep link is rejected as an invalid code."
    ),
)
@limiter.limit("60/minute")
async def resolve_qr(request: Request, payload: QRResolveRequest) -> QRResolveResponse:
    target = parse_rate_url(payload.payload)
    if target is None:
        logger.info("Rejected scanned payload of length %d", len(payload.payload))
        raise ValidationError.single("payload", "Invalid code", detail="Invalid code")
    return QRResolveResponse(
        kind=target.kind.value,
        id=target.profile_id,
        rate_path=rate_path(target.kind, target.profile_id),
    )


@router.get(
    "/rate/{kind}/{profile_id}",
    response_model=RatingForm,
    summary="Rating form for a profile",
)
async def rating_form(kind: Kind, profile_id: IdPath, db: AsyncSession = Depends(get_db)) -> RatingForm:
    target = Target(ProfileKind(kind), profile_id)
    profile = await get_profile(target.kind, profile_id, db)
    summary = await rating_summary(target, db)
    questions = await list_questions(db, kind=target.kind)
    return RatingForm(
        profile=profile_summary(target.kind, profile, summary),
        questions=[QuestionOut.model_validate(q) for q in questions],
    )


@router.get("/search", response_model=list[ProfileSummary], summary="Search profiles by name")
async def search_profiles(
    q: str = Query("", max_length=100),
    type: Kind = Query("agent"),
    db: AsyncSession = Depends(get_db),
) -> list[ProfileSummary]:
    term = q.strip()
    if not term:
        return []
    kind = ProfileKind(type)
    rows = await profiles_with_summaries(kind, db, name_like=term, limit=SEARCH_LIMIT, order_by_name=True)
    return [profile_summary(kind, profile, summary) for profile, summary in rows]
