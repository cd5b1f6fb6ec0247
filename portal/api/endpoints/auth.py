"""
Auth Endpoints

POST /api/v1/auth/register         →  self-service sign-up, pending admin approval
POST /api/v1/auth/login            →  returns a JWT access token
GET  /api/v1/auth/me               →  the signed-in user
POST /api/v1/auth/change-password  →  change own password
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.access import get_current_user
from portal.core.database import get_db
from portal.core.errors import Unauthorized
from portal.core.limiter import limiter
from portal.core.security import create_access_token
from portal.core.user_store import authenticate, change_password, register_user
from portal.models.db_models import User
from portal.models.schemas import (
    ChangePasswordRequest,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserOut,
)

router = APIRouter()


async def _signed_in_user(user: User | None = Depends(get_current_user)) -> User:
    if user is None:
        raise Unauthorized()
    return user


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a staff account",
    description="Creates an agent, frontline or admin account that cannot sign in until an admin approves it.",
)
@limiter.limit("10/minute")
async def register(
    request: Request,
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> RegisterResponse:
    user = await register_user(payload.name, payload.email, payload.password, payload.role, db)
    return RegisterResponse(
        message="User registered successfully. Awaiting admin approval.",
        user=UserOut.model_validate(user),
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Sign in",
    description=(
        "OAuth2 password form with the email as `username`. Returns a JWT "
        "access token; use it as `Authorization: Bearer <token>`."
    ),
)
@limiter.limit("5/minute")
async def login(
    request: Request,
    form: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    user = await authenticate(form.username, form.password, db)
    token = create_access_token(user_id=user.id, role=user.role)
    return TokenResponse(access_token=token, user=UserOut.model_validate(user))


@router.get("/me", response_model=UserOut, summary="Current user")
async def me(user: User = Depends(_signed_in_user)) -> UserOut:
    return UserOut.model_validate(user)


@router.post("/change-password", response_model=MessageResponse, summary="Change own password")
async def change_own_password(
    payload: ChangePasswordRequest,
    user: User = Depends(_signed_in_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await change_password(
        user, payload.current_password, payload.new_password, payload.confirm_password, db
    )
    return MessageResponse(message="Password changed successfully")
