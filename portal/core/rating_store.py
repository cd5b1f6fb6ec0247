"""
Async store for ratings.

A customer submission answers several rubric questions at once and is
stored as one ``Rating`` row per answer, each carrying the same rater
contact details. The whole submission is validated before anything is
written and committed in a single transaction.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import false, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from portal.core.errors import FieldError, NotFound, ValidationError
from portal.core.pagination import PageParams, PageResult, paginate
from portal.core.profile_store import get_profile
from portal.core.targets import Target, target_clause
from portal.models.db_models import Question, Rating

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


@dataclass(frozen=True)
class RaterInfo:
    name: str
    email: str
    phone: str
    policy_number: str | None = None


@dataclass(frozen=True)
class Answer:
    question_id: int
    value: int
    comments: str | None = None


# ---------------------------------------------------------------------------
# Write operations
# ---------------------------------------------------------------------------


async def submit_ratings(
    target: Target,
    rater: RaterInfo,
    answers: list[Answer],
    db: AsyncSession,
) -> list[Rating]:
    """Validate a submission as a whole, then insert one row per answer.

    Raises:
        NotFound: the target profile does not exist.
        ValidationError: listing every bad answer (unknown, inactive or
            wrong-kind question, duplicate question, value out of range).
    """
    await get_profile(target.kind, target.profile_id, db)

    if not answers:
        raise ValidationError.single("ratings", "At least one rating is required")

    question_ids = {answer.question_id for answer in answers}
    result = await db.execute(select(Question).where(Question.id.in_(question_ids)))
    questions = {question.id: question for question in result.scalars().all()}

    errors: list[FieldError] = []
    seen: set[int] = set()
    for index, answer in enumerate(answers):
        prefix = f"ratings.{index}"
        question = questions.get(answer.question_id)
        if question is None:
            errors.append(FieldError(f"{prefix}.question_id", "Question not found"))
        elif question.question_type != target.kind.value:
            errors.append(
                FieldError(f"{prefix}.question_id", f"Question is not a {target.kind.value} question")
            )
        elif not question.is_active:
            errors.append(FieldError(f"{prefix}.question_id", "Question is no longer active"))
        if answer.question_id in seen:
            errors.append(FieldError(f"{prefix}.question_id", "Question answered more than once"))
        seen.add(answer.question_id)
        if not MIN_RATING <= answer.value <= MAX_RATING:
            errors.append(
                FieldError(
                    f"{prefix}.rating_value",
                    f"Rating must be between {MIN_RATING} and {MAX_RATING}",
                )
            )
    if errors:
        raise ValidationError(errors)

    rows = [
        Rating(
            rater_name=rater.name,
            rater_email=rater.email,
            rater_phone=rater.phone,
            policy_number=rater.policy_number,
            question_id=answer.question_id,
            rating_value=answer.value,
            comments=answer.comments or None,
            **target.as_columns(),
        )
        for answer in answers
    ]
    try:
        db.add_all(rows)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    ids = [row.id for row in rows]
    logger.info(
        "Stored %d ratings for %s %s", len(rows), target.kind.value, target.profile_id
    )
    result = await db.execute(
        select(Rating)
        .options(selectinload(Rating.question))
        .where(Rating.id.in_(ids))
        .order_by(Rating.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def delete_rating(rating_id: int, db: AsyncSession) -> None:
    rating = await db.get(Rating, rating_id)
    if rating is None:
        raise NotFound("Rating not found")
    await db.delete(rating)
    await db.commit()
    logger.info("Deleted rating %s", rating_id)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def list_ratings(
    db: AsyncSession,
    params: PageParams,
    scope: Target | None = None,
    requested: list[Target] | None = None,
) -> PageResult:
    """Ratings page, newest first.

    ``scope`` is the caller's access scope (None for admins); ``requested``
    are the caller's own filters. Both are applied in SQL, so a filter
    outside the scope simply matches no rows.
    """
    stmt = select(Rating).options(selectinload(Rating.question))
    if scope is not None:
        stmt = stmt.where(target_clause(Rating, scope))
    for target in requested or []:
        if scope is not None and target != scope:
            stmt = stmt.where(false())
        stmt = stmt.where(target_clause(Rating, target))
    stmt = stmt.order_by(Rating.created_at.desc(), Rating.id.desc())
    return await paginate(db, stmt, params)


async def recent_ratings(db: AsyncSession, scope: Target | None = None, limit: int = 10) -> list[Rating]:
    stmt = select(Rating).options(selectinload(Rating.question))
    if scope is not None:
        stmt = stmt.where(target_clause(Rating, scope))
    stmt = stmt.order_by(Rating.created_at.desc(), Rating.id.desc()).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())
