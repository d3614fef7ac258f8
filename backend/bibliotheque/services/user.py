"""
Service de gestion des utilisateurs.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bibliotheque.core.exceptions import ConflictError, ValidationError
from bibliotheque.db.session import transaction
from bibliotheque.models.user import User
from bibliotheque.repositories.loan import LoanRepository
from bibliotheque.repositories.user import UserRepository
from bibliotheque.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)

EMAIL_TAKEN = "Un utilisateur avec cet email existe déjà"
REQUIRED_FIELDS = "Les champs nom, prenom et email sont obligatoires"
USER_HAS_OPEN_LOANS = "Impossible de supprimer un utilisateur ayant des emprunts en cours"


class UserService:
    """Service des opérations sur les utilisateurs."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = UserRepository(db)
        self.loan_repo = LoanRepository(db)

    async def get(self, user_id: str) -> User | None:
        """Cherche un utilisateur par ID."""
        return await self.repo.get_by_id(user_id)

    async def get_by_email(self, email: str) -> User | None:
        """Cherche un utilisateur par email."""
        return await self.repo.get_by_email(email)

    async def list_users(self) -> list[User]:
        """Liste les utilisateurs, inscrits les plus récents d'abord."""
        return await self.repo.list_all()

    async def create(self, data: UserCreate) -> User:
        """
        Crée un utilisateur actif.

        Raises:
            ValidationError: Champ obligatoire vide
            ConflictError: Email déjà utilisé
        """
        if not data.nom or not data.prenom or not data.email:
            raise ValidationError(REQUIRED_FIELDS)

        try:
            async with transaction(self.db):
                # Doublon = conflit avec une ressource existante (409), comme l'ISBN
                if await self.repo.email_exists(data.email):
                    raise ConflictError(EMAIL_TAKEN)
                user = await self.repo.add(
                    nom=data.nom,
                    prenom=data.prenom,
                    email=data.email,
                    actif=True,
                )
        except IntegrityError:
            raise ConflictError(EMAIL_TAKEN)

        logger.info(f"Utilisateur créé : {user.email} (ID: {user.id})")
        return user

    async def update(self, user_id: str, data: UserUpdate) -> User | None:
        """
        Modifie partiellement un utilisateur.

        Returns:
            L'utilisateur modifié, ou None s'il n'existe pas

        Raises:
            ConflictError: Nouvel email déjà pris par un autre utilisateur
        """
        try:
            async with transaction(self.db):
                user = await self.repo.get_by_id(user_id)
                if user is None:
                    return None

                if data.email and data.email != user.email:
                    if await self.repo.email_exists(data.email, exclude_id=user_id):
                        raise ConflictError(EMAIL_TAKEN)

                await self.repo.update(
                    user,
                    nom=data.nom,
                    prenom=data.prenom,
                    email=data.email,
                    actif=data.actif,
                )
        except IntegrityError:
            raise ConflictError(EMAIL_TAKEN)

        return user

    async def delete(self, user_id: str) -> bool:
        """
        Supprime un utilisateur.

        Returns:
            True si supprimé, False s'il n'existait pas

        Raises:
            ConflictError: L'utilisateur a un emprunt en cours
        """
        async with transaction(self.db):
            if await self.loan_repo.count_open_by_user(user_id) > 0:
                raise ConflictError(USER_HAS_OPEN_LOANS)

            user = await self.repo.get_by_id(user_id)
            if user is None:
                return False

            await self.repo.delete(user)

        logger.info(f"Utilisateur supprimé : {user_id}")
        return True
