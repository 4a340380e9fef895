"""
Authentication API Routes for Shelfmark.

Handles:
- Member registration
- Login (token issuance)
- Profile of the authenticated user
"""

from datetime import timedelta

from fastapi import APIRouter, Depends, status
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shelfmark.api.dependencies import (
    Principal,
    Settings,
    get_app_settings,
    get_current_principal,
    get_db,
)
from shelfmark.api.middleware.error_handler import service_errors
from shelfmark.api.schemas import (
    AuthResponse,
    ErrorResponse,
    LoginRequest,
    RegisterRequest,
    UserResponse,
)
from shelfmark.errors import AuthError, ConflictError, NotFoundError, ValidationError
from shelfmark.security import create_access_token, get_password_hash, verify_password
from shelfmark.storage.models import User, UserRole


router = APIRouter(prefix="/auth", tags=["auth"])


def issue_token(user: User, settings: Settings) -> str:
    """Signed access token for ``user``."""
    return create_access_token(
        data={"userId": user.id, "email": user.email, "role": user.role},
        secret_key=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_delta=timedelta(minutes=settings.jwt_expire_minutes),
    )


async def find_user_by_email(db: AsyncSession, email: str):
    stmt = select(User).where(User.email == email.strip().lower())
    return (await db.execute(stmt)).scalar_one_or_none()


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Missing field"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
    },
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Register a new member. New accounts always get the ``user`` role."""
    if not body.email or not body.password or not body.first_name or not body.last_name:
        raise ValidationError("Email, password, first name and last name are required")

    async with service_errors("Error registering user"):
        if await find_user_by_email(db, body.email) is not None:
            raise ConflictError("Email already registered")

        user = User(
            email=body.email.strip().lower(),
            password_hash=get_password_hash(body.password),
            first_name=body.first_name.strip(),
            last_name=body.last_name.strip(),
            role=UserRole.USER.value,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)

    logger.info(f"User registered: {user.id}")
    return {
        "message": "User registered successfully",
        "user": user,
        "token": issue_token(user, settings),
    }


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Exchange email and password for an access token."""
    if not body.email or not body.password:
        raise ValidationError("Email and password are required")

    async with service_errors("Error logging in"):
        user = await find_user_by_email(db, body.email)

    if user is None or not verify_password(body.password, user.password_hash):
        raise AuthError("Invalid credentials", status_code=401)

    logger.info(f"User logged in: {user.id}")
    return {
        "message": "Login successful",
        "user": user,
        "token": issue_token(user, settings),
    }


@router.get("/profile", response_model=UserResponse)
async def profile(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """The authenticated user's record."""
    async with service_errors("Error fetching profile"):
        user = await db.get(User, principal.user_id)
    if user is None:
        raise NotFoundError("User", principal.user_id)
    return user
