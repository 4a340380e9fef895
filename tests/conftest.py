"""
Pytest configuration and fixtures for Shelfmark tests.
"""

import sys
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shelfmark.api.main import create_app
from shelfmark.api.dependencies import Settings
from shelfmark.security import create_access_token, get_password_hash
from shelfmark.storage.database import Database
from shelfmark.storage.models import Book, User, UserRole


TEST_JWT_SECRET = "test-secret"
TEST_PASSWORD = "s3cret-pass"


# =============================================================================
# Test Settings
# =============================================================================

def get_test_settings() -> Settings:
    """Return settings configured for testing."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        database_echo=False,
        jwt_secret=TEST_JWT_SECRET,
        environment="test",
        debug=True,
    )


@pytest.fixture
def settings() -> Settings:
    return get_test_settings()


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def database() -> AsyncGenerator[Database, None]:
    """In-memory database with the schema created."""
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.create_all()

    yield db

    await db.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """Provide database session for tests."""
    async with database.session() as session:
        yield session


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def app(settings):
    """FastAPI application with its lifespan running."""
    application = create_app(settings)

    async with application.router.lifespan_context(application):
        yield application


@pytest_asyncio.fixture(scope="function")
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# =============================================================================
# Account Fixtures
# =============================================================================

async def create_user(
    session: AsyncSession,
    email: str,
    role: UserRole = UserRole.USER,
    first_name: str = "Test",
    last_name: str = "User",
) -> User:
    user = User(
        email=email,
        password_hash=get_password_hash(TEST_PASSWORD),
        first_name=first_name,
        last_name=last_name,
        role=role.value,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


def token_for(user: User, secret: str = TEST_JWT_SECRET) -> str:
    return create_access_token(
        {"userId": user.id, "email": user.email, "role": user.role},
        secret_key=secret,
    )


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def member(app) -> User:
    async with app.state.database.session() as session:
        return await create_user(session, "marie@example.org", first_name="Marie", last_name="Curie")


@pytest_asyncio.fixture
async def librarian(app) -> User:
    async with app.state.database.session() as session:
        return await create_user(session, "librarian@example.org", role=UserRole.LIBRARIAN)


@pytest_asyncio.fixture
async def admin(app) -> User:
    async with app.state.database.session() as session:
        return await create_user(session, "admin@example.org", role=UserRole.ADMIN)


@pytest.fixture
def member_headers(member) -> dict:
    return bearer(token_for(member))


@pytest.fixture
def librarian_headers(librarian) -> dict:
    return bearer(token_for(librarian))


@pytest.fixture
def admin_headers(admin) -> dict:
    return bearer(token_for(admin))


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def sample_book_data() -> dict:
    """Client payload for adding a book."""
    return {
        "title": "La Résistance en Savoie",
        "subtitle": "1940-1944",
        "section": "Histoire",
        "author1": "Jean Dupont",
        "author2": "",
        "publisher": "Éditions du Lac",
        "publicationDate": "1995-06-01",
        "isbn": "9782840000000",
        "pageCount": 312,
        "summary": "Chronique des maquis savoyards pendant l'Occupation.",
        "generalTheme": "Seconde Guerre mondiale",
        "geography": "Savoie",
    }


SAMPLE_BOOKS = [
    {
        "entry_id": 1,
        "title": "Annecy au Moyen Âge",
        "section": "Histoire",
        "author_1": "Paul Martin",
        "general_theme": "Moyen Âge",
        "geography": "Annecy",
        "summary": "Les comtes de Genevois et la ville.",
        "location": "A1",
    },
    {
        "entry_id": 2,
        "title": "Bâtir en montagne",
        "section": "Architecture",
        "author_1": "Claire Roux",
        "author_2": "Paul Martin",
        "general_theme": "Habitat",
        "geography": "Alpes",
        "location": "B2",
    },
    {
        "entry_id": 3,
        "title": "Chroniques savoyardes",
        "section": "histoire locale",
        "author_1": "Louis Favre",
        "general_theme": "Vie quotidienne",
        "geography": "Savoie",
        "summary": "Récits de la vie paysanne.",
        "location": "A2",
    },
    {
        "entry_id": 4,
        "title": "Des cols et des hommes",
        "section": "Géographie",
        "author_1": "Claire Roux",
        "general_theme": "Transports",
        "geography": "Alpes",
        "location": "C1",
    },
]


async def add_books(app, rows: list[dict]) -> list[Book]:
    """Insert catalog rows directly into the application's database."""
    async with app.state.database.session() as session:
        books = [Book(**values) for values in rows]
        session.add_all(books)
        await session.commit()
        for book in books:
            await session.refresh(book)
        return books


@pytest_asyncio.fixture
async def sample_books(app) -> list[Book]:
    """A small catalog in the application's database."""
    return await add_books(app, SAMPLE_BOOKS)


@pytest.fixture
def many_books_data() -> list[dict]:
    """Twenty-five 'Histoire' books plus five from other sections."""
    books = [
        {"entry_id": i, "title": f"Histoire tome {i:02d}", "section": "Histoire"}
        for i in range(1, 26)
    ]
    books += [
        {"entry_id": 100 + i, "title": f"Carte {i}", "section": "Cartographie"}
        for i in range(5)
    ]
    return books
