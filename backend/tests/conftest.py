"""
Fixtures partagées pour les tests.

Chaque test reçoit une base SQLite en mémoire neuve ; Redis est remplacé
par un AsyncMock adossé à un dict.
"""

from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from bibliotheque.core.deps import get_idempotency_store
from bibliotheque.core.idempotency import IdempotencyStore
from bibliotheque.db.session import Database
from bibliotheque.main import app
from bibliotheque.models.book import Book
from bibliotheque.models.user import User

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ==========================================
# Event loop configuration
# ==========================================

@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


# ==========================================
# Database fixtures
# ==========================================

@pytest.fixture
async def database() -> AsyncGenerator[Database, None]:
    """Base en mémoire avec les tables créées."""
    db = Database(TEST_DATABASE_URL)
    await db.open()
    await db.create_all()
    yield db
    await db.close()


@pytest.fixture
async def session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Session sur la base de test, utilisée par les tests de services."""
    async with database.session() as db:
        yield db


# ==========================================
# Redis / idempotency fixtures
# ==========================================

@pytest.fixture
def redis_client() -> AsyncMock:
    """Client Redis simulé : GET et SET (avec nx) sur un dict."""
    data: dict[str, str] = {}

    async def _get(key):
        return data.get(key)

    async def _set(key, value, nx=False, ex=None):
        if nx and key in data:
            return None
        data[key] = value
        return True

    client = AsyncMock()
    client.get.side_effect = _get
    client.set.side_effect = _set
    client.data = data
    return client


@pytest.fixture
def idempotency_store(redis_client: AsyncMock) -> IdempotencyStore:
    return IdempotencyStore(redis_client, ttl=60)


# ==========================================
# HTTP Client fixtures
# ==========================================

@pytest.fixture
async def client(
    database: Database,
    idempotency_store: IdempotencyStore,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Client HTTP asynchrone pour les tests.

    Le lifespan n'est pas exécuté : la base de test est posée sur
    app.state et le stockage d'idempotence est remplacé par override.
    """
    app.state.db = database
    app.dependency_overrides[get_idempotency_store] = lambda: idempotency_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    del app.state.db


# ==========================================
# Data fixtures
# ==========================================

@pytest.fixture
async def user(session: AsyncSession) -> User:
    """Utilisateur actif."""
    instance = User(nom="Dupont", prenom="Jean", email="jean.dupont@example.com", actif=True)
    session.add(instance)
    await session.commit()
    return instance


@pytest.fixture
async def other_user(session: AsyncSession) -> User:
    """Second utilisateur actif."""
    instance = User(nom="Martin", prenom="Claire", email="claire.martin@example.com", actif=True)
    session.add(instance)
    await session.commit()
    return instance


@pytest.fixture
async def inactive_user(session: AsyncSession) -> User:
    """Utilisateur désactivé."""
    instance = User(nom="Bernard", prenom="Luc", email="luc.bernard@example.com", actif=False)
    session.add(instance)
    await session.commit()
    return instance


def make_book(isbn: str = "978-2070409228", copies: int = 1, **overrides) -> Book:
    fields = {
        "titre": "Les Misérables",
        "auteur": "Victor Hugo",
        "isbn": isbn,
        "annee_publication": 1862,
        "genre": "Roman",
        "disponible": copies > 0,
        "nombre_exemplaires": copies,
        "exemplaires_total": max(copies, 1),
    }
    fields.update(overrides)
    return Book(**fields)


@pytest.fixture
async def book(session: AsyncSession) -> Book:
    """Livre à exemplaire unique."""
    instance = make_book()
    session.add(instance)
    await session.commit()
    return instance


@pytest.fixture
async def multi_copy_book(session: AsyncSession) -> Book:
    """Livre possédé en trois exemplaires."""
    instance = make_book(isbn="978-2070360024", copies=3, titre="L'Étranger", auteur="Albert Camus")
    session.add(instance)
    await session.commit()
    return instance
