"""
Question Endpoints: the rating rubric

GET    /api/v1/questions?type=agent   → active rubric (admins also see inactive questions)
POST   /api/v1/questions              → admin create
PUT    /api/v1/questions/{id}         → admin update
DELETE /api/v1/questions/{id}         → admin delete (only questions without ratings)
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.params import IdPath
from portal.core.access import Action, AdminPrincipal, Principal, get_principal, require
from portal.core.database import get_db
from portal.core.question_store import create_question, delete_question, list_questions, update_question
from portal.core.targets import ProfileKind
from portal.models.schemas import Kind, MessageResponse, QuestionCreate, QuestionOut, QuestionUpdate

router = APIRouter()


@router.get("", response_model=List[QuestionOut], summary="Rubric questions")
async def get_questions(
    type: Optional[Kind] = Query(None, description="agent or employee"),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> List[QuestionOut]:
    kind = ProfileKind(type) if type else None
    include_inactive = isinstance(principal, AdminPrincipal)
    questions = await list_questions(db, kind=kind, include_inactive=include_inactive)
    return [QuestionOut.model_validate(q) for q in questions]


@router.post("", response_model=QuestionOut, status_code=status.HTTP_201_CREATED, summary="Create question")
async def post_question(
    payload: QuestionCreate,
    _: Principal = Depends(require(Action.MANAGE_QUESTIONS)),
    db: AsyncSession = Depends(get_db),
) -> QuestionOut:
    question = await create_question(payload.model_dump(), db)
    return QuestionOut.model_validate(question)


@router.put("/{question_id}", response_model=QuestionOut, summary="Update question")
async def put_question(
    question_id: IdPath,
    payload: QuestionUpdate,
    _: Principal = Depends(require(Action.MANAGE_QUESTIONS)),
    db: AsyncSession = Depends(get_db),
) -> QuestionOut:
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    question = await update_question(question_id, changes, db)
    return QuestionOut.model_validate(question)


@router.delete("/{question_id}", response_model=MessageResponse, summary="Delete question")
async def remove_question(
    question_id: IdPath,
    _: Principal = Depends(require(Action.MANAGE_QUESTIONS)),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await delete_question(question_id, db)
    return MessageResponse(message="Question deleted successfully")
