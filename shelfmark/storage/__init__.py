"""
Storage Module for Shelfmark

Relational persistence for the catalog and consultation requests:
- Persistence gateway (engine, pool, query logging)
- ORM models and closed enumerations
- Catalog filter translation
- Book and consultation repositories
"""

from shelfmark.storage.database import (
    Database,
    normalize_database_url,
)
from shelfmark.storage.models import (
    Base,
    Book,
    User,
    ConsultationRequest,
    UserRole,
    ConsultationStatus,
    TimeSlot,
    STAFF_ROLES,
)
from shelfmark.storage.catalog_query import (
    CatalogFilters,
    PageRequest,
    Pagination,
    build_catalog_predicate,
)
from shelfmark.storage.book_repository import (
    BookRepository,
    column_changes,
    to_column_name,
)
from shelfmark.storage.consultation_repository import (
    ConsultationRepository,
)

__all__ = [
    # Gateway
    "Database",
    "normalize_database_url",
    # Models
    "Base",
    "Book",
    "User",
    "ConsultationRequest",
    "UserRole",
    "ConsultationStatus",
    "TimeSlot",
    "STAFF_ROLES",
    # Catalog query
    "CatalogFilters",
    "PageRequest",
    "Pagination",
    "build_catalog_predicate",
    # Repositories
    "BookRepository",
    "column_changes",
    "to_column_name",
    "ConsultationRepository",
]
