"""
Rating Endpoints

POST   /api/v1/ratings        → public submission (one row per answered question)
GET    /api/v1/ratings        → admin: all ratings; staff: their own profile's ratings
DELETE /api/v1/ratings/{id}   → admin delete
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.params import IdPath, IdQuery
from portal.api.presenters import page_response
from portal.core.access import Action, Principal, require, scope_for
from portal.core.database import get_db
from portal.core.limiter import limiter
from portal.core.pagination import PageParams, page_params
from portal.core.rating_store import Answer, RaterInfo, delete_rating, list_ratings, submit_ratings
from portal.core.targets import for_agent, for_employee, require_target
from portal.models.schemas import MessageResponse, Page, RatingOut, RatingSubmission, RatingSubmissionResponse

router = APIRouter()


@router.post(
    "",
    response_model=RatingSubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit ratings",
    description=(
        "Answers for every rubric question of one agent or employee. "
        "Either all answers are stored or none are."
    ),
)
@limiter.limit("20/minute")
async def post_ratings(
    request: Request,
    payload: RatingSubmission,
    db: AsyncSession = Depends(get_db),
) -> RatingSubmissionResponse:
    target = require_target(payload.agent_id, payload.employee_id)
    rater = RaterInfo(
        name=payload.rater_name,
        email=payload.rater_email,
        phone=payload.rater_phone,
        policy_number=payload.policy_number,
    )
    answers = [Answer(a.question_id, a.rating_value, a.comments) for a in payload.ratings]
    rows = await submit_ratings(target, rater, answers, db)
    return RatingSubmissionResponse(
        message="Ratings submitted successfully",
        ratings=[RatingOut.model_validate(row) for row in rows],
    )


@router.get("", response_model=Page[RatingOut], summary="List ratings")
async def get_ratings(
    agent_id: IdQuery = None,
    employee_id: IdQuery = None,
    params: PageParams = Depends(page_params),
    principal: Principal = Depends(require(Action.READ_RATINGS)),
    db: AsyncSession = Depends(get_db),
):
    requested = []
    if agent_id is not None:
        requested.append(for_agent(agent_id))
    if employee_id is not None:
        requested.append(for_employee(employee_id))
    result = await list_ratings(db, params, scope=scope_for(principal), requested=requested)
    return page_response(result, RatingOut)


@router.delete("/{rating_id}", response_model=MessageResponse, summary="Delete rating")
async def remove_rating(
    rating_id: IdPath,
    _: Principal = Depends(require(Action.DELETE_RATINGS)),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await delete_rating(rating_id, db)
    return MessageResponse(message="Rating deleted successfully")
