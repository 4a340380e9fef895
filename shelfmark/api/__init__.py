"""
Shelfmark - FastAPI Backend.

Catalog browsing, catalog maintenance and consultation requests for the
society's library.
"""

from .main import app, create_app, main
from .dependencies import (
    Settings,
    get_settings,
    get_db,
    Principal,
    get_current_principal,
    require_roles,
)
from .schemas import (
    BookResponse,
    BookListResponse,
    ConsultationResponse,
    HealthResponse,
    ErrorResponse,
)

__all__ = [
    # Application
    "app",
    "create_app",
    "main",
    # Dependencies
    "Settings",
    "get_settings",
    "get_db",
    "Principal",
    "get_current_principal",
    "require_roles",
    # Schemas
    "BookResponse",
    "BookListResponse",
    "ConsultationResponse",
    "HealthResponse",
    "ErrorResponse",
]
