"""
API Routes for Shelfmark

Route modules:
- auth: Registration, login and profile
- books: Catalog browsing and maintenance
- consultations: On-site consultation requests
"""

from shelfmark.api.routes.auth import router as auth_router
from shelfmark.api.routes.books import router as books_router
from shelfmark.api.routes.consultations import router as consultations_router

__all__ = [
    "auth_router",
    "books_router",
    "consultations_router",
]
