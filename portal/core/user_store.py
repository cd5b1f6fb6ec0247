"""
Async store for user accounts: registration, sign-in, and admin management.

Email uniqueness is left to the database constraint; an ``IntegrityError``
on insert becomes a ``Conflict`` so two concurrent registrations can never
both succeed.
"""

import logging

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.errors import Conflict, FieldError, Forbidden, NotFound, Unauthorized, ValidationError
from portal.core.pagination import LIKE_ESCAPE, PageParams, PageResult, contains_pattern, paginate
from portal.core.security import hash_password, verify_password
from portal.core.targets import ProfileKind
from portal.models.db_models import PROFILE_MODELS, User

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Write operations
# ---------------------------------------------------------------------------


async def register_user(
    name: str,
    email: str,
    password: str,
    role: str,
    db: AsyncSession,
    is_approved: bool = False,
) -> User:
    """Create an account. Self-service accounts start unapproved."""
    user = User(
        name=name,
        email=email.lower(),
        password_hash=hash_password(password),
        role=role,
        is_approved=is_approved,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("User with this email already exists")
    await db.refresh(user)
    logger.info("Registered user %s (role=%s, approved=%s)", user.id, role, is_approved)
    return user


async def authenticate(email: str, password: str, db: AsyncSession) -> User:
    """Check credentials, then approval. Pending accounts never get a session."""
    result = await db.execute(select(User).where(User.email == email.lower()))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password, user.password_hash):
        raise Unauthorized("Incorrect email or password")
    if not user.is_approved:
        logger.info("Sign-in refused for unapproved user %s", user.id)
        raise Forbidden("Account pending approval")
    return user


async def change_password(
    user: User,
    current_password: str,
    new_password: str,
    confirm_password: str,
    db: AsyncSession,
) -> None:
    errors = []
    if not verify_password(current_password, user.password_hash):
        errors.append(FieldError("current_password", "Current password is incorrect"))
    if new_password != confirm_password:
        errors.append(FieldError("confirm_password", "New passwords do not match"))
    if errors:
        raise ValidationError(errors)

    user.password_hash = hash_password(new_password)
    await db.commit()
    logger.info("Password changed for user %s", user.id)


async def update_user(
    user_id: int,
    db: AsyncSession,
    role: str | None = None,
    is_approved: bool | None = None,
) -> User:
    user = await get_user(user_id, db)
    if role is not None and role != user.role:
        await _check_role_fits_profile(user, role, db)
        user.role = role
    if is_approved is not None:
        user.is_approved = is_approved
    await db.commit()
    await db.refresh(user)
    logger.info("Updated user %s (role=%s, approved=%s)", user.id, user.role, user.is_approved)
    return user


async def delete_user(user_id: int, acting_user_id: int, db: AsyncSession) -> None:
    """Hard delete. An admin can never delete their own account."""
    if user_id == acting_user_id:
        raise ValidationError.single("id", "Cannot delete your own account")
    user = await get_user(user_id, db)
    await db.delete(user)
    await db.commit()
    logger.info("Deleted user %s", user_id)


async def ensure_admin(name: str, email: str, password: str, db: AsyncSession) -> User:
    """Create the bootstrap admin unless an account with that email exists.

    An existing admin account that is still pending is approved so it can sign in.
    """
    result = await db.execute(select(User).where(User.email == email.lower()))
    existing = result.scalar_one_or_none()
    if existing is not None:
        if existing.role == "admin" and not existing.is_approved:
            existing.is_approved = True
            await db.commit()
            await db.refresh(existing)
            logger.info("Approved existing admin %s", existing.id)
        return existing
    try:
        return await register_user(name, email, password, "admin", db, is_approved=True)
    except Conflict:
        # Another worker created it first
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_user(user_id: int, db: AsyncSession) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


async def list_users(
    db: AsyncSession,
    params: PageParams,
    role: str | None = None,
    approved: bool | None = None,
    search: str | None = None,
) -> PageResult:
    stmt = select(User)
    if role:
        stmt = stmt.where(User.role == role)
    if approved is not None:
        stmt = stmt.where(User.is_approved == approved)
    if search:
        pattern = contains_pattern(search)
        stmt = stmt.where(
            or_(
                User.name.ilike(pattern, escape=LIKE_ESCAPE),
                User.email.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )
    stmt = stmt.order_by(User.created_at.desc(), User.id.desc())
    return await paginate(db, stmt, params)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


async def _check_role_fits_profile(user: User, role: str, db: AsyncSession) -> None:
    """A user linked to a profile keeps the role that profile kind requires."""
    for kind, model in PROFILE_MODELS.items():
        result = await db.execute(select(model.id).where(model.user_id == user.id))
        profile_id = result.scalar_one_or_none()
        if profile_id is None:
            continue
        kind = ProfileKind(kind)
        if role != kind.staff_role:
            raise Conflict(
                f"User is linked to {kind.value} {profile_id}; unlink the profile "
                f"before changing the role to '{role}'"
            )
