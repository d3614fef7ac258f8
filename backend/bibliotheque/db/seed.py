"""
Script de seed pour créer des données de démonstration.

Usage:
    python -m bibliotheque.db.seed

Crée deux utilisateurs et trois livres si les tables sont vides.
"""

import asyncio
import logging

from sqlalchemy import func, select

from bibliotheque.core.config import get_settings
from bibliotheque.core.logging import setup_logging
from bibliotheque.db.session import Database, transaction
from bibliotheque.models.book import Book
from bibliotheque.models.user import User

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {"nom": "Dupont", "prenom": "Jean", "email": "jean.dupont@example.com"},
    {"nom": "Martin", "prenom": "Claire", "email": "claire.martin@example.com"},
]

DEMO_BOOKS = [
    {
        "titre": "Les Misérables",
        "auteur": "Victor Hugo",
        "isbn": "978-2070409228",
        "annee_publication": 1862,
        "genre": "Roman",
        "nombre_exemplaires": 2,
    },
    {
        "titre": "L'Étranger",
        "auteur": "Albert Camus",
        "isbn": "978-2070360024",
        "annee_publication": 1942,
        "genre": "Roman",
        "nombre_exemplaires": 1,
    },
    {
        "titre": "Du côté de chez Swann",
        "auteur": "Marcel Proust",
        "isbn": "978-2070379248",
        "annee_publication": 1913,
        "genre": "Roman",
        "nombre_exemplaires": 1,
    },
]


async def seed_demo_data(database: Database) -> bool:
    """
    Insère les utilisateurs et livres de démonstration.

    Ne fait rien si la base contient déjà des utilisateurs ou des livres.

    Returns:
        True si les données ont été insérées, False sinon
    """
    async with database.session() as db:
        users = (await db.execute(select(func.count(User.id)))).scalar_one()
        books = (await db.execute(select(func.count(Book.id)))).scalar_one()
        if users or books:
            logger.info(f"Base déjà peuplée ({users} utilisateur(s), {books} livre(s))")
            return False

        async with transaction(db):
            for data in DEMO_USERS:
                db.add(User(actif=True, **data))
            for data in DEMO_BOOKS:
                db.add(
                    Book(
                        disponible=True,
                        exemplaires_total=data["nombre_exemplaires"],
                        **data,
                    )
                )

    logger.info(f"{len(DEMO_USERS)} utilisateur(s) et {len(DEMO_BOOKS)} livre(s) créés")
    return True


async def main() -> None:
    """Exécute le seed sur la base configurée."""
    settings = get_settings()
    setup_logging()
    logger.info("Exécution du seed...")

    database = Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    await database.open()
    try:
        await database.create_all()
        await seed_demo_data(database)
    finally:
        await database.close()

    logger.info("Seed terminé !")


if __name__ == "__main__":
    asyncio.run(main())
