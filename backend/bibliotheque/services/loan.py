"""
Service de logique métier des emprunts.

Règles métier:
    - Durée par défaut : 14 jours
    - Un utilisateur inactif ne peut pas emprunter
    - Un utilisateur a au plus un emprunt en cours (ACTIVE ou OVERDUE),
      quel que soit le livre
    - Un livre ne peut être emprunté que s'il reste un exemplaire en rayon
    - Un emprunt en retard (OVERDUE) peut toujours être rendu

Chaque opération d'écriture s'exécute dans une transaction : l'insertion
de l'emprunt et la mise à jour du compteur d'exemplaires sont validées
ensemble ou annulées ensemble.

Le passage au statut OVERDUE est constaté à la lecture : list_overdue()
appelle reconcile_overdue(), qui peut aussi être déclenché par une tâche
planifiée (POST /system/reconcile-overdue).
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bibliotheque.core.clock import as_naive_utc, utcnow
from bibliotheque.core.exceptions import NotFoundError, ValidationError
from bibliotheque.core.idempotency import IdempotencyStore
from bibliotheque.db.session import transaction
from bibliotheque.models.enums import LoanStatus
from bibliotheque.models.loan import Loan
from bibliotheque.repositories.loan import LoanRepository
from bibliotheque.schemas.loan import DEFAULT_LOAN_DURATION_DAYS, MAX_LOAN_DURATION_DAYS
from bibliotheque.services.book import BookService
from bibliotheque.services.user import UserService

logger = logging.getLogger(__name__)

USER_NOT_FOUND = "Utilisateur introuvable"
USER_INACTIVE = "Utilisateur inactif"
BOOK_NOT_FOUND = "Livre introuvable"
BOOK_UNAVAILABLE = "Livre non disponible"
ALREADY_BORROWED = (
    "Cet utilisateur a déjà un emprunt en cours. "
    "Il doit le rendre avant d'en faire un autre."
)
LOAN_NOT_OPEN = "Cet emprunt n'est pas en cours"


def _is_open_loan_conflict(error: IntegrityError) -> bool:
    # SQLite nomme la colonne, PostgreSQL nomme l'index
    message = str(error.orig)
    return "uq_loans_user_open" in message or "loans.user_id" in message


class LoanService:
    """Service des opérations d'emprunt."""

    def __init__(
        self,
        db: AsyncSession,
        loan_duration_days: int = DEFAULT_LOAN_DURATION_DAYS,
        max_loan_duration_days: int = MAX_LOAN_DURATION_DAYS,
    ):
        self.db = db
        self.loan_duration_days = loan_duration_days
        self.max_loan_duration_days = max_loan_duration_days
        self.loan_repo = LoanRepository(db)
        self.users = UserService(db)
        self.books = BookService(db)

    # ==========================================
    # Checkout
    # ==========================================

    async def checkout(
        self,
        user_id: str,
        book_id: str,
        duration_days: int | None = None,
    ) -> Loan:
        """
        Crée un emprunt.

        Vérifications, dans l'ordre (la première qui échoue l'emporte) :
            1. L'utilisateur existe
            2. L'utilisateur est actif
            3. Le livre existe
            4. Il reste un exemplaire en rayon
            5. L'utilisateur n'a pas déjà un emprunt en cours

        Effets, dans une seule transaction :
            - Insertion de l'emprunt (ACTIVE, échéance = maintenant + durée)
            - Retrait d'un exemplaire du rayon (indisponible à 0)

        Args:
            user_id: ID de l'utilisateur
            book_id: ID du livre
            duration_days: Durée en jours (défaut : durée configurée)

        Returns:
            L'emprunt créé, avec utilisateur et livre

        Raises:
            NotFoundError: Utilisateur ou livre introuvable
            ValidationError: Utilisateur inactif, livre indisponible,
                emprunt déjà en cours ou durée invalide
        """
        duration = self.loan_duration_days if duration_days is None else duration_days
        if duration < 1 or duration > self.max_loan_duration_days:
            raise ValidationError(
                f"La durée d'emprunt doit être comprise entre 1 et "
                f"{self.max_loan_duration_days} jours"
            )

        try:
            async with transaction(self.db):
                user = await self.users.get(user_id)
                if user is None:
                    raise NotFoundError(USER_NOT_FOUND)
                if not user.actif:
                    raise ValidationError(USER_INACTIVE)

                book = await self.books.get(book_id)
                if book is None:
                    raise NotFoundError(BOOK_NOT_FOUND)
                if not book.disponible or book.nombre_exemplaires < 1:
                    raise ValidationError(BOOK_UNAVAILABLE)

                if await self.loan_repo.get_open_by_user(user_id) is not None:
                    raise ValidationError(ALREADY_BORROWED)

                # Un autre emprunt a pu prendre le dernier exemplaire entre-temps
                if not await self.books.take_copy(book_id):
                    raise ValidationError(BOOK_UNAVAILABLE)

                now = utcnow()
                loan = await self.loan_repo.add(
                    user_id=user_id,
                    book_id=book_id,
                    date_emprunt=now,
                    date_retour_prevu=now + timedelta(days=duration),
                    statut=LoanStatus.ACTIVE,
                )
        except IntegrityError as e:
            if not _is_open_loan_conflict(e):
                raise
            # Index unique des emprunts en cours : checkout concurrent du même utilisateur
            logger.warning(f"Emprunt concurrent refusé pour l'utilisateur {user_id}")
            raise ValidationError(ALREADY_BORROWED)

        logger.info(
            f"Emprunt créé : {loan.id} (utilisateur {user_id}, livre {book_id}, "
            f"retour prévu {loan.date_retour_prevu:%Y-%m-%d})"
        )
        return await self.loan_repo.get_with_relations(loan.id)

    async def checkout_once(
        self,
        user_id: str,
        book_id: str,
        duration_days: int | None,
        idempotency_key: str | None,
        store: IdempotencyStore,
    ) -> tuple[Loan, bool]:
        """
        Checkout protégé par une clé d'idempotence fournie par le client.

        Si la clé est déjà associée à un emprunt existant, cet emprunt est
        retourné sans en créer un nouveau.

        Returns:
            Tuple (emprunt, created) ; created vaut False pour un rejeu
        """
        if idempotency_key:
            existing_id = await store.get(idempotency_key)
            if existing_id:
                existing = await self.loan_repo.get_with_relations(existing_id)
                if existing is not None:
                    logger.info(f"Rejeu idempotent de l'emprunt {existing_id}")
                    return existing, False

        loan = await self.checkout(user_id, book_id, duration_days)

        if idempotency_key:
            await store.bind(idempotency_key, loan.id)

        return loan, True

    # ==========================================
    # Return
    # ==========================================

    async def return_loan(self, loan_id: str) -> Loan | None:
        """
        Enregistre le retour d'un emprunt.

        Un emprunt ACTIVE ou OVERDUE peut être rendu ; un emprunt déjà
        RETURNED est refusé.

        Effets, dans une seule transaction :
            - date_retour_effectif = maintenant, statut = RETURNED
            - Remise en rayon d'un exemplaire (disponible à nouveau)

        Returns:
            L'emprunt mis à jour, ou None s'il n'existe pas

        Raises:
            ValidationError: L'emprunt a déjà été rendu
        """
        async with transaction(self.db):
            loan = await self.loan_repo.get_by_id(loan_id)
            if loan is None:
                return None
            if not loan.is_open:
                raise ValidationError(LOAN_NOT_OPEN)

            loan.date_retour_effectif = utcnow()
            loan.statut = LoanStatus.RETURNED
            await self.db.flush()

            if loan.book_id is not None and not await self.books.release_copy(loan.book_id):
                logger.warning(
                    f"Compteur du livre {loan.book_id} déjà au maximum lors du retour "
                    f"de l'emprunt {loan_id}"
                )

        logger.info(f"Emprunt rendu : {loan_id}")
        return await self.loan_repo.get_with_relations(loan_id)

    # ==========================================
    # Lecture
    # ==========================================

    async def get(self, loan_id: str) -> Loan | None:
        """Cherche un emprunt avec utilisateur et livre."""
        return await self.loan_repo.get_with_relations(loan_id)

    async def list_active(self) -> list[Loan]:
        """Emprunts ACTIVE, plus récents d'abord (sans réconciliation)."""
        return await self.loan_repo.list_by_status(LoanStatus.ACTIVE)

    async def list_overdue(self) -> list[Loan]:
        """
        Emprunts en retard, échéance la plus ancienne d'abord.

        Fait d'abord passer à OVERDUE les emprunts ACTIVE échus : la
        lecture provoque l'écriture.
        """
        await self.reconcile_overdue()
        return await self.loan_repo.list_by_status(LoanStatus.OVERDUE)

    async def list_history(self) -> list[Loan]:
        """Emprunts rendus, retours les plus récents d'abord."""
        return await self.loan_repo.list_by_status(LoanStatus.RETURNED)

    async def list_by_user(self, user_id: str) -> list[Loan]:
        """Tous les emprunts d'un utilisateur, plus récents d'abord."""
        return await self.loan_repo.list_by_user(user_id)

    # ==========================================
    # Réconciliation
    # ==========================================

    async def reconcile_overdue(self, now: datetime | None = None) -> list[Loan]:
        """
        Fait passer à OVERDUE les emprunts ACTIVE dont l'échéance est dépassée.

        Seule transition ACTIVE -> OVERDUE de l'application ; appelée par
        list_overdue() et par la tâche de balayage.

        Args:
            now: Instant de référence (défaut : maintenant)

        Returns:
            Les emprunts qui viennent de changer de statut
        """
        now = as_naive_utc(now) if now is not None else utcnow()

        async with transaction(self.db):
            loans = await self.loan_repo.list_past_due(now)
            for loan in loans:
                loan.statut = LoanStatus.OVERDUE
            await self.db.flush()

        if loans:
            logger.info(f"{len(loans)} emprunt(s) passé(s) en retard")
        return loans

    async def repair_copy_counts(self) -> list[str]:
        """
        Recalcule le compteur d'exemplaires en rayon de chaque livre.

        nombre_exemplaires = exemplaires_total - emprunts en cours (min 0),
        disponible en découle. Corrige les écarts laissés par une écriture
        interrompue.

        Returns:
            Les IDs des livres corrigés
        """
        corrected: list[str] = []

        async with transaction(self.db):
            open_counts = await self.loan_repo.count_open_grouped_by_book()
            for book in await self.books.list_books():
                expected = max(0, book.exemplaires_total - open_counts.get(book.id, 0))
                if book.nombre_exemplaires != expected or book.disponible != (expected > 0):
                    logger.warning(
                        f"Livre {book.id} : {book.nombre_exemplaires} exemplaire(s) en rayon, "
                        f"{expected} attendu(s)"
                    )
                    await self.books.set_copy_count(book, expected)
                    corrected.append(book.id)

        if corrected:
            logger.info(f"{len(corrected)} compteur(s) d'exemplaires corrigé(s)")
        return corrected
