"""
Tests du service d'emprunts sur une base SQLite en mémoire.

Couvre :
    - Checkout (règles, ordre des vérifications, compteur d'exemplaires)
    - Retour (aller-retour du compteur, double retour)
    - Passage en retard à la lecture et réconciliation
    - Correction des compteurs et idempotence
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from bibliotheque.core.clock import utcnow
from bibliotheque.core.exceptions import ConflictError, NotFoundError, ValidationError
from bibliotheque.core.idempotency import IdempotencyStore
from bibliotheque.models.enums import LoanStatus
from bibliotheque.models.loan import Loan
from bibliotheque.services.loan import (
    ALREADY_BORROWED,
    BOOK_NOT_FOUND,
    BOOK_UNAVAILABLE,
    LOAN_NOT_OPEN,
    USER_INACTIVE,
    USER_NOT_FOUND,
    LoanService,
)
from bibliotheque.services.user import UserService

from conftest import make_book


async def count_loans(session) -> int:
    result = await session.execute(select(func.count(Loan.id)))
    return result.scalar_one()


# ==========================================
# Checkout
# ==========================================

class TestCheckout:
    """Tests de LoanService.checkout."""

    @pytest.mark.anyio
    async def test_checkout_single_copy_book(self, session, user, book):
        """Un emprunt ACTIVE est créé et le livre devient indisponible."""
        service = LoanService(session)

        before = utcnow()
        loan = await service.checkout(user.id, book.id, duration_days=14)

        assert loan.statut == LoanStatus.ACTIVE
        assert loan.user_id == user.id
        assert loan.book_id == book.id
        assert loan.date_retour_effectif is None
        expected_due = before + timedelta(days=14)
        assert abs((loan.date_retour_prevu - expected_due).total_seconds()) < 5

        assert loan.book.nombre_exemplaires == 0
        await session.refresh(book)
        assert book.nombre_exemplaires == 0
        assert book.disponible is False

    @pytest.mark.anyio
    async def test_checkout_default_duration(self, session, user, book):
        """Sans durée, l'échéance est à 14 jours."""
        service = LoanService(session)

        loan = await service.checkout(user.id, book.id)

        delta = loan.date_retour_prevu - loan.date_emprunt
        assert delta == timedelta(days=14)

    @pytest.mark.anyio
    async def test_checkout_configured_duration(self, session, user, book):
        """La durée par défaut vient du constructeur."""
        service = LoanService(session, loan_duration_days=21)

        loan = await service.checkout(user.id, book.id)

        assert loan.date_retour_prevu - loan.date_emprunt == timedelta(days=21)

    @pytest.mark.anyio
    async def test_checkout_multi_copy_keeps_book_available(self, session, user, multi_copy_book):
        """Avec plusieurs exemplaires, le livre reste disponible."""
        service = LoanService(session)

        await service.checkout(user.id, multi_copy_book.id)

        await session.refresh(multi_copy_book)
        assert multi_copy_book.nombre_exemplaires == 2
        assert multi_copy_book.exemplaires_total == 3
        assert multi_copy_book.disponible is True

    @pytest.mark.anyio
    async def test_checkout_inactive_user(self, session, inactive_user, book):
        """Un utilisateur inactif ne peut pas emprunter ; rien n'est modifié."""
        user_id, book_id = inactive_user.id, book.id
        service = LoanService(session)

        with pytest.raises(ValidationError) as exc_info:
            await service.checkout(user_id, book_id)

        assert exc_info.value.message == USER_INACTIVE
        assert await count_loans(session) == 0
        await session.refresh(book)
        assert book.nombre_exemplaires == 1
        assert book.disponible is True

    @pytest.mark.anyio
    async def test_checkout_book_without_copies(self, session, user):
        """Un livre sans exemplaire en rayon est refusé ; rien n'est modifié."""
        empty = make_book(isbn="978-0000000001", copies=0)
        session.add(empty)
        await session.commit()
        user_id, book_id = user.id, empty.id
        service = LoanService(session)

        with pytest.raises(ValidationError) as exc_info:
            await service.checkout(user_id, book_id)

        assert exc_info.value.message == BOOK_UNAVAILABLE
        assert await count_loans(session) == 0
        await session.refresh(empty)
        assert empty.nombre_exemplaires == 0

    @pytest.mark.anyio
    async def test_checkout_unknown_user(self, session, book):
        """Utilisateur inexistant : NotFoundError."""
        service = LoanService(session)

        with pytest.raises(NotFoundError) as exc_info:
            await service.checkout("absent", book.id)

        assert exc_info.value.message == USER_NOT_FOUND

    @pytest.mark.anyio
    async def test_checkout_unknown_book(self, session, user):
        """Livre inexistant : NotFoundError."""
        service = LoanService(session)

        with pytest.raises(NotFoundError) as exc_info:
            await service.checkout(user.id, "absent")

        assert exc_info.value.message == BOOK_NOT_FOUND

    @pytest.mark.anyio
    async def test_user_checks_come_before_book_checks(self, session, inactive_user):
        """Utilisateur inactif et livre absent : l'erreur utilisateur l'emporte."""
        service = LoanService(session)

        with pytest.raises(ValidationError) as exc_info:
            await service.checkout(inactive_user.id, "absent")

        assert exc_info.value.message == USER_INACTIVE

    @pytest.mark.anyio
    async def test_second_checkout_same_book(self, session, user, multi_copy_book):
        """Un second emprunt du même livre est refusé."""
        user_id, book_id = user.id, multi_copy_book.id
        service = LoanService(session)
        await service.checkout(user_id, book_id)

        with pytest.raises(ValidationError) as exc_info:
            await service.checkout(user_id, book_id)

        assert exc_info.value.message == ALREADY_BORROWED
        assert await count_loans(session) == 1
        await session.refresh(multi_copy_book)
        assert multi_copy_book.nombre_exemplaires == 2

    @pytest.mark.anyio
    async def test_second_checkout_other_book(self, session, user, book, multi_copy_book):
        """Un emprunt en cours bloque aussi l'emprunt d'un autre livre."""
        user_id, other_book_id = user.id, multi_copy_book.id
        service = LoanService(session)
        await service.checkout(user_id, book.id)

        with pytest.raises(ValidationError) as exc_info:
            await service.checkout(user_id, other_book_id)

        assert exc_info.value.message == ALREADY_BORROWED

    @pytest.mark.anyio
    async def test_overdue_loan_still_blocks_checkout(self, session, user, book, multi_copy_book):
        """Un emprunt OVERDUE compte comme emprunt en cours."""
        user_id, other_book_id = user.id, multi_copy_book.id
        service = LoanService(session)
        loan = await service.checkout(user_id, book.id, duration_days=1)
        await service.reconcile_overdue(now=utcnow() + timedelta(days=2))
        await session.refresh(loan)
        assert loan.statut == LoanStatus.OVERDUE

        with pytest.raises(ValidationError) as exc_info:
            await service.checkout(user_id, other_book_id)

        assert exc_info.value.message == ALREADY_BORROWED

    @pytest.mark.anyio
    async def test_unique_open_loan_index(self, session, user, book, multi_copy_book):
        """Sans la vérification préalable, l'index unique refuse le second emprunt."""
        user_id, other_book_id = user.id, multi_copy_book.id
        service = LoanService(session)
        await service.checkout(user_id, book.id)

        with patch.object(service.loan_repo, "get_open_by_user", return_value=None):
            with pytest.raises(ValidationError) as exc_info:
                await service.checkout(user_id, other_book_id)

        assert exc_info.value.message == ALREADY_BORROWED
        assert await count_loans(session) == 1
        await session.refresh(multi_copy_book)
        assert multi_copy_book.nombre_exemplaires == 3

    @pytest.mark.anyio
    async def test_stale_book_read_refused_by_counter(self, session, user):
        """Un livre lu disponible mais vidé entre-temps est refusé par le compteur."""
        empty = make_book(isbn="978-0000000001", copies=0)
        session.add(empty)
        await session.commit()
        user_id, book_id = user.id, empty.id
        stale = make_book(isbn="978-0000000001", copies=1, id=book_id)
        service = LoanService(session)

        with patch.object(service.books, "get", return_value=stale):
            with pytest.raises(ValidationError) as exc_info:
                await service.checkout(user_id, book_id)

        assert exc_info.value.message == BOOK_UNAVAILABLE
        assert await count_loans(session) == 0
        await session.refresh(empty)
        assert empty.nombre_exemplaires == 0
        assert empty.disponible is False

    @pytest.mark.anyio
    async def test_other_integrity_errors_propagate(self, session, user, book):
        """Seule la violation de l'index des emprunts en cours devient ALREADY_BORROWED."""
        user_id, book_id = user.id, book.id
        service = LoanService(session)
        failure = IntegrityError(
            "INSERT INTO loans", {}, Exception("FOREIGN KEY constraint failed")
        )

        with patch.object(service.loan_repo, "add", side_effect=failure):
            with pytest.raises(IntegrityError):
                await service.checkout(user_id, book_id)

        assert await count_loans(session) == 0
        await session.refresh(book)
        assert book.nombre_exemplaires == 1
        assert book.disponible is True

    @pytest.mark.anyio
    @pytest.mark.parametrize("duration", [0, -3, 366])
    async def test_invalid_duration(self, session, user, book, duration):
        """Une durée hors de [1, 365] est refusée."""
        service = LoanService(session)

        with pytest.raises(ValidationError):
            await service.checkout(user.id, book.id, duration_days=duration)

        assert await count_loans(session) == 0


# ==========================================
# Return
# ==========================================

class TestReturnLoan:
    """Tests de LoanService.return_loan."""

    @pytest.mark.anyio
    async def test_return_restores_availability(self, session, user, book):
        """Checkout puis retour : le livre redevient disponible."""
        service = LoanService(session)
        loan = await service.checkout(user.id, book.id, duration_days=14)

        before = utcnow()
        returned = await service.return_loan(loan.id)

        assert returned.statut == LoanStatus.RETURNED
        assert returned.date_retour_effectif is not None
        assert abs((returned.date_retour_effectif - before).total_seconds()) < 5
        await session.refresh(book)
        assert book.disponible is True
        assert book.nombre_exemplaires == 1

    @pytest.mark.anyio
    async def test_round_trip_restores_copy_count(self, session, user, multi_copy_book):
        """Le compteur retrouve exactement sa valeur d'avant l'emprunt."""
        service = LoanService(session)
        before = multi_copy_book.nombre_exemplaires

        loan = await service.checkout(user.id, multi_copy_book.id)
        await service.return_loan(loan.id)

        await session.refresh(multi_copy_book)
        assert multi_copy_book.nombre_exemplaires == before

    @pytest.mark.anyio
    async def test_double_return(self, session, user, book):
        """Rendre deux fois le même emprunt est refusé."""
        service = LoanService(session)
        loan = await service.checkout(user.id, book.id)
        loan_id = loan.id
        await service.return_loan(loan_id)

        with pytest.raises(ValidationError) as exc_info:
            await service.return_loan(loan_id)

        assert exc_info.value.message == LOAN_NOT_OPEN
        await session.refresh(book)
        assert book.nombre_exemplaires == 1

    @pytest.mark.anyio
    async def test_return_unknown_loan(self, session):
        """Un emprunt inexistant donne None."""
        service = LoanService(session)

        assert await service.return_loan("absent") is None

    @pytest.mark.anyio
    async def test_return_overdue_loan(self, session, user, book):
        """Un emprunt en retard peut être rendu."""
        service = LoanService(session)
        loan = await service.checkout(user.id, book.id, duration_days=1)
        await service.reconcile_overdue(now=utcnow() + timedelta(days=5))

        returned = await service.return_loan(loan.id)

        assert returned.statut == LoanStatus.RETURNED
        await session.refresh(book)
        assert book.disponible is True

    @pytest.mark.anyio
    async def test_user_can_borrow_again_after_return(self, session, user, book, multi_copy_book):
        """Après le retour, l'utilisateur peut emprunter un autre livre."""
        service = LoanService(session)
        loan = await service.checkout(user.id, book.id)
        await service.return_loan(loan.id)

        second = await service.checkout(user.id, multi_copy_book.id)

        assert second.statut == LoanStatus.ACTIVE


# ==========================================
# Overdue
# ==========================================

class TestOverdue:
    """Tests du passage en retard."""

    @pytest.mark.anyio
    async def test_list_overdue_transitions_past_due_loans(self, session, user, book):
        """Un emprunt échu passe OVERDUE à la lecture et quitte la liste active."""
        service = LoanService(session)
        loan = await service.checkout(user.id, book.id)
        loan.date_retour_prevu = utcnow() - timedelta(days=1)
        await session.commit()

        overdue = await service.list_overdue()

        assert [item.id for item in overdue] == [loan.id]
        assert overdue[0].statut == LoanStatus.OVERDUE
        active = await service.list_active()
        assert loan.id not in [item.id for item in active]

    @pytest.mark.anyio
    async def test_loan_within_due_date_stays_active(self, session, user, book):
        """Un emprunt dans les temps reste ACTIVE."""
        service = LoanService(session)
        loan = await service.checkout(user.id, book.id)

        assert await service.list_overdue() == []
        active = await service.list_active()
        assert [item.id for item in active] == [loan.id]

    @pytest.mark.anyio
    async def test_list_active_does_not_reconcile(self, session, user, book):
        """list_active ne modifie pas les statuts."""
        service = LoanService(session)
        loan = await service.checkout(user.id, book.id)
        loan.date_retour_prevu = utcnow() - timedelta(days=1)
        await session.commit()

        active = await service.list_active()

        assert [item.id for item in active] == [loan.id]
        assert active[0].statut == LoanStatus.ACTIVE

    @pytest.mark.anyio
    async def test_reconcile_with_reference_time(self, session, user, other_user, book, multi_copy_book):
        """Seuls les emprunts échus à l'instant donné changent de statut."""
        service = LoanService(session)
        short = await service.checkout(user.id, book.id, duration_days=2)
        await service.checkout(other_user.id, multi_copy_book.id, duration_days=30)

        changed = await service.reconcile_overdue(now=utcnow() + timedelta(days=3))

        assert [loan.id for loan in changed] == [short.id]
        assert await service.reconcile_overdue(now=utcnow() + timedelta(days=3)) == []

    @pytest.mark.anyio
    async def test_returned_loans_are_never_overdue(self, session, user, book):
        """Un emprunt rendu reste RETURNED même après l'échéance."""
        service = LoanService(session)
        loan = await service.checkout(user.id, book.id, duration_days=1)
        await service.return_loan(loan.id)

        changed = await service.reconcile_overdue(now=utcnow() + timedelta(days=10))

        assert changed == []
        history = await service.list_history()
        assert [item.id for item in history] == [loan.id]


# ==========================================
# Scenarios
# ==========================================

class TestScenarios:
    """Parcours complets utilisateur / livre / emprunt."""

    @pytest.mark.anyio
    async def test_delete_user_blocked_while_loan_open(self, session, user, book):
        """Supprimer un emprunteur est refusé, puis accepté après le retour."""
        user_id = user.id
        loans = LoanService(session)
        users = UserService(session)
        loan = await loans.checkout(user_id, book.id)
        loan_id = loan.id

        with pytest.raises(ConflictError):
            await users.delete(user_id)

        await loans.return_loan(loan_id)
        assert await users.delete(user_id) is True

        history = await loans.get(loan_id)
        assert history.statut == LoanStatus.RETURNED
        assert history.user_id is None
        assert history.user is None
        assert history.book is not None

    @pytest.mark.anyio
    async def test_loans_by_user(self, session, user, book, multi_copy_book):
        """Les emprunts d'un utilisateur sont listés, plus récents d'abord."""
        service = LoanService(session)
        first = await service.checkout(user.id, book.id)
        await service.return_loan(first.id)
        second = await service.checkout(user.id, multi_copy_book.id)

        loans = await service.list_by_user(user.id)

        assert {loan.id for loan in loans} == {first.id, second.id}


# ==========================================
# Maintenance
# ==========================================

class TestRepairCopyCounts:
    """Tests de LoanService.repair_copy_counts."""

    @pytest.mark.anyio
    async def test_consistent_counts_are_untouched(self, session, user, multi_copy_book):
        """Aucun livre n'est corrigé si les compteurs sont justes."""
        service = LoanService(session)
        await service.checkout(user.id, multi_copy_book.id)

        assert await service.repair_copy_counts() == []

    @pytest.mark.anyio
    async def test_drifted_count_is_recomputed(self, session, user, book, multi_copy_book):
        """Le compteur est recalculé à partir des emprunts en cours."""
        service = LoanService(session)
        await service.checkout(user.id, multi_copy_book.id)
        multi_copy_book.nombre_exemplaires = 3
        book.nombre_exemplaires = 0
        book.disponible = False
        await session.commit()

        corrected = await service.repair_copy_counts()

        assert set(corrected) == {book.id, multi_copy_book.id}
        await session.refresh(multi_copy_book)
        await session.refresh(book)
        assert multi_copy_book.nombre_exemplaires == 2
        assert book.nombre_exemplaires == 1
        assert book.disponible is True


# ==========================================
# Idempotency
# ==========================================

class TestCheckoutOnce:
    """Tests de LoanService.checkout_once."""

    @pytest.mark.anyio
    async def test_replay_returns_same_loan(self, session, user, book, idempotency_store):
        """La même clé retourne l'emprunt déjà créé."""
        service = LoanService(session)

        first, created = await service.checkout_once(user.id, book.id, None, "cle-1", idempotency_store)
        again, created_again = await service.checkout_once(user.id, book.id, None, "cle-1", idempotency_store)

        assert created is True
        assert created_again is False
        assert again.id == first.id
        assert await count_loans(session) == 1

    @pytest.mark.anyio
    async def test_without_key_checkout_runs(self, session, user, book, idempotency_store):
        """Sans clé, le second appel passe par les règles habituelles."""
        user_id, book_id = user.id, book.id
        service = LoanService(session)
        await service.checkout_once(user_id, book_id, None, None, idempotency_store)

        with pytest.raises(ValidationError):
            await service.checkout_once(user_id, book_id, None, None, idempotency_store)

    @pytest.mark.anyio
    async def test_disabled_store_ignores_key(self, session, user, multi_copy_book):
        """Un stockage désactivé ignore la clé."""
        user_id, book_id = user.id, multi_copy_book.id
        store = IdempotencyStore(None, enabled=False)
        service = LoanService(session)
        await service.checkout_once(user_id, book_id, None, "cle-1", store)

        with pytest.raises(ValidationError) as exc_info:
            await service.checkout_once(user_id, book_id, None, "cle-1", store)

        assert exc_info.value.message == ALREADY_BORROWED
