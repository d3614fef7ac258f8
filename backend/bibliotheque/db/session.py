"""
Accès à la base de données avec SQLAlchemy async.

Ce module fournit le handle Database (engine + fabrique de sessions),
la dependency de session pour les endpoints et le gestionnaire de
transaction utilisé par les services.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Classe de base de tous les modèles SQLAlchemy."""
    pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Handle du stockage des utilisateurs, livres et emprunts.

    Construit explicitement au démarrage puis transmis aux composants :
        database = Database(settings.DATABASE_URL)
        await database.open()
        await database.create_all()
        ...
        await database.close()
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    async def open(self) -> None:
        """Crée l'engine et la fabrique de sessions."""
        if self.engine is not None:
            return

        if self.is_sqlite:
            options = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in self.url:
                # Une base en mémoire n'existe que sur sa connexion
                options["poolclass"] = StaticPool
        else:
            options = {
                "pool_pre_ping": True,
                "pool_size": 5,
                "max_overflow": 10,
            }

        self.engine = create_async_engine(self.url, echo=self.echo, **options)
        if self.is_sqlite:
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info(f"Base de données ouverte : {self.engine.url.render_as_string(hide_password=True)}")

    async def create_all(self) -> None:
        """Crée les tables users, books et loans si elles n'existent pas."""
        # Enregistre les modèles dans Base.metadata
        import bibliotheque.models  # noqa: F401

        async with self._require_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    def session(self) -> AsyncSession:
        """Retourne une nouvelle session."""
        if self.session_factory is None:
            raise RuntimeError("Base de données non ouverte. Appelez open() d'abord.")
        return self.session_factory()

    async def check_connection(self) -> tuple[bool, str | None]:
        """
        Vérifie que la base répond.

        Returns:
            Tuple (succès, message_erreur)
        """
        try:
            async with self._require_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True, None
        except Exception as e:
            return False, str(e)

    async def close(self) -> None:
        """Ferme le pool de connexions."""
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None
            logger.info("Base de données fermée")

    def _require_engine(self) -> AsyncEngine:
        if self.engine is None:
            raise RuntimeError("Base de données non ouverte. Appelez open() d'abord.")
        return self.engine


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency qui fournit une session de base de données.

    Usage dans les endpoints:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...

    La session est fermée automatiquement à la fin de la requête.
    """
    database: Database = request.app.state.db
    async with database.session() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Regroupe plusieurs écritures en une unité atomique.

    Valide (commit) à la sortie normale du bloc ; annule (rollback) et
    relance l'exception en cas d'erreur, laissant l'état inchangé.
    """
    try:
        yield session
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        logger.warning(f"Transaction annulée (contrainte d'intégrité) : {e.orig}")
        raise
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Erreur de base de données, transaction annulée")
        raise
    except Exception:
        await session.rollback()
        raise
