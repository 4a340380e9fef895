"""
Dependency injection for FastAPI routes.

Provides injectable dependencies for:
- Configuration
- Database sessions
- Repositories
- Authentication and role gating
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import AsyncGenerator, Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shelfmark.errors import AuthError, AuthorizationError
from shelfmark.security import InvalidTokenError, decode_access_token
from shelfmark.storage.book_repository import BookRepository
from shelfmark.storage.consultation_repository import ConsultationRepository
from shelfmark.storage.database import Database
from shelfmark.storage.models import SEARCH_LANGUAGE, User, UserRole


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class Settings:
    """Application settings loaded from environment."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./shelfmark.db"
    database_echo: bool = False
    database_pool_size: int = 20
    database_pool_timeout: float = 10.0

    # Authentication
    jwt_secret: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7

    # Catalog search
    search_language: str = SEARCH_LANGUAGE

    # HTTP
    port: int = 3001
    frontend_url: Optional[str] = None

    # Environment
    environment: str = "development"
    debug: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_echo=os.getenv("DATABASE_ECHO", "false").lower() == "true",
            database_pool_size=int(os.getenv("DB_POOL_SIZE", cls.database_pool_size)),
            database_pool_timeout=float(os.getenv("DB_POOL_TIMEOUT", cls.database_pool_timeout)),
            jwt_secret=os.getenv("JWT_SECRET", cls.jwt_secret),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", cls.jwt_algorithm),
            jwt_expire_minutes=int(os.getenv("JWT_EXPIRE_MINUTES", cls.jwt_expire_minutes)),
            search_language=os.getenv("SEARCH_LANGUAGE", cls.search_language),
            port=int(os.getenv("PORT", cls.port)),
            frontend_url=os.getenv("FRONTEND_URL"),
            environment=os.getenv("SHELFMARK_ENV", cls.environment),
            debug=os.getenv("DEBUG", "true").lower() == "true",
        )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings.from_env()


def get_app_settings(request: Request) -> Settings:
    """Settings the running application was built with."""
    return request.app.state.settings


# =============================================================================
# Database
# =============================================================================

def build_database(settings: Settings) -> Database:
    """Create the persistence gateway for these settings."""
    return Database(
        settings.database_url,
        echo=settings.database_echo,
        pool_size=settings.database_pool_size,
        pool_timeout=settings.database_pool_timeout,
    )


def get_database(request: Request) -> Database:
    """The gateway created during application startup."""
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database not initialized. Application lifespan has not run.")
    return database


async def get_db(
    database: Database = Depends(get_database),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a database session.

    Yields:
        AsyncSession for database operations.
    """
    async with database.session() as session:
        yield session


# =============================================================================
# Repository Dependencies
# =============================================================================

def get_book_repository(
    session: AsyncSession = Depends(get_db),
    database: Database = Depends(get_database),
    settings: Settings = Depends(get_app_settings),
) -> BookRepository:
    """Dependency for book repository."""
    return BookRepository(
        session,
        dialect_name=database.dialect_name,
        search_language=settings.search_language,
    )


def get_consultation_repository(
    session: AsyncSession = Depends(get_db),
) -> ConsultationRepository:
    """Dependency for consultation repository."""
    return ConsultationRepository(session)


# =============================================================================
# Authentication Dependencies
# =============================================================================

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Authenticated user attached to a request."""

    user_id: int
    email: str
    role: UserRole


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Principal:
    """
    Resolve the bearer credential into a Principal.

    Raises:
        AuthError: 401 when no token is sent or its user no longer
            exists, 403 when the token is invalid or expired.
    """
    if credentials is None or not credentials.credentials:
        raise AuthError("Access token required", status_code=401)

    try:
        payload = decode_access_token(
            credentials.credentials,
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
    except InvalidTokenError as e:
        logger.warning(f"Rejected access token: {e}")
        raise AuthError("Invalid token", status_code=403)

    try:
        user_id = int(payload["userId"])
    except (TypeError, ValueError):
        raise AuthError("Invalid token", status_code=403)

    user = (
        await session.execute(select(User).where(User.id == user_id))
    ).scalar_one_or_none()
    if user is None:
        raise AuthError("Invalid token", status_code=401)

    return Principal(user_id=user.id, email=user.email, role=UserRole(user.role))


def require_roles(*roles: UserRole) -> Callable:
    """
    Build a dependency that admits only principals holding one of ``roles``.

    Usage:
        @router.get("", dependencies=[Depends(require_roles(UserRole.ADMIN))])
    """
    allowed = frozenset(roles)

    async def role_gate(
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        if principal.role not in allowed:
            raise AuthorizationError("Insufficient permissions")
        return principal

    return role_gate
