"""
Access control gate.

Every request is resolved to exactly one principal:

- ``Anonymous``: no token, a bad or expired token, an unknown user, or a user
  still awaiting approval.
- ``AdminPrincipal``: an approved admin.
- ``StaffPrincipal``: an approved agent or frontline user, together with the
  profile linked to their account (``target`` is None when no profile has
  been linked yet).

Role and approval are re-read from the database on every request, so a
revoked approval or a role change takes effect immediately.

``authorize`` is the single decision point; handlers call it (through the
``require`` dependency) before touching any data, and use ``scope_for`` to
restrict list queries for staff callers inside the SQL itself.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Union

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.database import get_db
from portal.core.errors import Forbidden, NotFound, Unauthorized
from portal.core.security import decode_access_token
from portal.core.targets import ProfileKind, Target
from portal.models.db_models import Agent, Employee, User

logger = logging.getLogger(__name__)

# Staff role -> the profile kind their account links to
STAFF_PROFILE_KIND = {
    "agent": ProfileKind.AGENT,
    "frontline": ProfileKind.EMPLOYEE,
}


@dataclass(frozen=True)
class Anonymous:
    pass


@dataclass(frozen=True)
class AdminPrincipal:
    user_id: int


@dataclass(frozen=True)
class StaffPrincipal:
    user_id: int
    role: str
    target: Target | None

    @property
    def kind(self) -> ProfileKind:
        return STAFF_PROFILE_KIND[self.role]


Principal = Union[Anonymous, AdminPrincipal, StaffPrincipal]

ANONYMOUS = Anonymous()


class Action(str, Enum):
    # Staff and admin
    READ_RATINGS = "read_ratings"
    READ_COMPLAINTS = "read_complaints"
    READ_OWN_DASHBOARD = "read_own_dashboard"
    # Admin only
    MANAGE_USERS = "manage_users"
    MANAGE_PROFILES = "manage_profiles"
    MANAGE_QUESTIONS = "manage_questions"
    MANAGE_COMPLAINTS = "manage_complaints"
    DELETE_RATINGS = "delete_ratings"
    VIEW_REPORTS = "view_reports"


_STAFF_ACTIONS = frozenset({Action.READ_RATINGS, Action.READ_COMPLAINTS, Action.READ_OWN_DASHBOARD})


# ---------------------------------------------------------------------------
# Decision functions
# ---------------------------------------------------------------------------


def authorize(principal: Principal, action: Action) -> None:
    """Raise ``Unauthorized`` or ``Forbidden`` unless ``principal`` may perform ``action``."""
    if isinstance(principal, AdminPrincipal):
        return
    if isinstance(principal, StaffPrincipal):
        if action in _STAFF_ACTIONS:
            return
        logger.warning("Denied %s to user %s (role=%s)", action.value, principal.user_id, principal.role)
        raise Forbidden()
    raise Unauthorized()


def scope_for(principal: Principal) -> Target | None:
    """Row scope for list queries: None means unrestricted (admin only).

    Staff without a linked profile are told so instead of silently seeing
    nothing.
    """
    if isinstance(principal, AdminPrincipal):
        return None
    if isinstance(principal, StaffPrincipal):
        return own_target(principal)
    raise Unauthorized()


def own_target(principal: StaffPrincipal) -> Target:
    if principal.target is None:
        raise NotFound(
            f"{principal.kind.label} profile not found. Please contact an administrator."
        )
    return principal.target


def can_access_target(principal: Principal, target: Target) -> bool:
    """Whether ``principal`` may act on resources belonging to ``target``."""
    if isinstance(principal, AdminPrincipal):
        return True
    if isinstance(principal, StaffPrincipal):
        return principal.target == target
    return False


def authorize_target(principal: Principal, target: Target) -> None:
    if isinstance(principal, Anonymous):
        raise Unauthorized()
    if not can_access_target(principal, target):
        logger.warning("Denied access to %s %s for user %s", target.kind.value, target.profile_id, principal.user_id)
        raise Forbidden()


# ---------------------------------------------------------------------------
# Principal resolution
# ---------------------------------------------------------------------------

_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


async def load_principal(user: User | None, db: AsyncSession) -> Principal:
    if user is None or not user.is_approved:
        return ANONYMOUS
    if user.role == "admin":
        return AdminPrincipal(user_id=user.id)
    kind = STAFF_PROFILE_KIND.get(user.role)
    if kind is None:
        return ANONYMOUS

    model = Agent if kind is ProfileKind.AGENT else Employee
    result = await db.execute(select(model.id).where(model.user_id == user.id))
    profile_id = result.scalar_one_or_none()
    target = Target(kind, profile_id) if profile_id is not None else None
    return StaffPrincipal(user_id=user.id, role=user.role, target=target)


async def get_current_user(
    token: str | None = Depends(_oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """The approved user behind the bearer token, or None."""
    if not token:
        return None
    claims = decode_access_token(token)
    if claims is None:
        return None
    user = await db.get(User, int(claims["sub"]))
    if user is None or not user.is_approved:
        return None
    return user


async def get_principal(
    request: Request,
    user: User | None = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    """FastAPI dependency that resolves the caller; never fails on its own."""
    principal = await load_principal(user, db)
    request.state.principal = principal
    return principal


def require(action: Action):
    """Dependency factory: resolve the principal and authorize ``action`` up front."""

    async def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        authorize(principal, action)
        return principal

    return dependency


async def require_authenticated(principal: Principal = Depends(get_principal)) -> Principal:
    if isinstance(principal, Anonymous):
        raise Unauthorized()
    return principal


async def require_staff(principal: Principal = Depends(get_principal)) -> StaffPrincipal:
    if isinstance(principal, Anonymous):
        raise Unauthorized()
    if not isinstance(principal, StaffPrincipal):
        raise Forbidden("Only agent and frontline users have a personal dashboard")
    return principal
