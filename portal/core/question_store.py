"""
Async store for the rating rubric (questions per profile kind).
"""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.errors import Conflict, NotFound
from portal.core.pagination import LIKE_ESCAPE, PageParams, PageResult, contains_pattern, paginate
from portal.core.targets import ProfileKind
from portal.models.db_models import Question, Rating

logger = logging.getLogger(__name__)


def _rubric_order(stmt):
    return stmt.order_by(Question.order_index.asc(), Question.created_at.asc(), Question.id.asc())


async def list_questions(
    db: AsyncSession,
    kind: ProfileKind | None = None,
    include_inactive: bool = False,
) -> list[Question]:
    """The rubric for ``kind`` in display order. Inactive questions only on request."""
    stmt = select(Question)
    if kind is not None:
        stmt = stmt.where(Question.question_type == ProfileKind(kind).value)
    if not include_inactive:
        stmt = stmt.where(Question.is_active.is_(True))
    result = await db.execute(_rubric_order(stmt))
    return list(result.scalars().all())


async def search_questions(
    db: AsyncSession,
    params: PageParams,
    kind: ProfileKind | None = None,
    search: str | None = None,
) -> PageResult:
    stmt = select(Question)
    if kind is not None:
        stmt = stmt.where(Question.question_type == ProfileKind(kind).value)
    if search:
        stmt = stmt.where(Question.question_text.ilike(contains_pattern(search), escape=LIKE_ESCAPE))
    stmt = _rubric_order(stmt.order_by(Question.question_type.asc()))
    return await paginate(db, stmt, params)


async def get_question(question_id: int, db: AsyncSession) -> Question:
    question = await db.get(Question, question_id)
    if question is None:
        raise NotFound("Question not found")
    return question


async def create_question(data: dict[str, Any], db: AsyncSession) -> Question:
    question = Question(**data)
    db.add(question)
    await db.commit()
    await db.refresh(question)
    logger.info("Created %s question %s", question.question_type, question.id)
    return question


async def update_question(question_id: int, changes: dict[str, Any], db: AsyncSession) -> Question:
    question = await get_question(question_id, db)
    for field, value in changes.items():
        setattr(question, field, value)
    await db.commit()
    await db.refresh(question)
    logger.info("Updated question %s: %s", question.id, sorted(changes))
    return question


async def delete_question(question_id: int, db: AsyncSession) -> None:
    """Hard delete. Questions that already have answers must be deactivated instead."""
    question = await get_question(question_id, db)
    answered = await db.execute(
        select(func.count()).select_from(Rating).where(Rating.question_id == question_id)
    )
    if answered.scalar_one():
        raise Conflict("Question has ratings; deactivate it instead of deleting it")
    await db.delete(question)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Question has ratings; deactivate it instead of deleting it")
    logger.info("Deleted question %s", question_id)
