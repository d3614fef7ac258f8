"""
Modèle des livres du catalogue.
"""

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bibliotheque.core.clock import utcnow
from bibliotheque.db.session import Base
from bibliotheque.models.base import UUIDMixin


class Book(Base, UUIDMixin):
    """
    Livre du catalogue, possédé en un ou plusieurs exemplaires.

    La disponibilité découle du nombre d'exemplaires en rayon :
    disponible = nombre_exemplaires > 0. Un livre à exemplaire unique
    passe donc à indisponible dès qu'il est emprunté.

    Attributes:
        id: Identifiant unique
        titre: Titre
        auteur: Auteur
        isbn: ISBN unique
        annee_publication: Année de publication
        genre: Genre
        description: Résumé (optionnel)
        disponible: Au moins un exemplaire en rayon
        nombre_exemplaires: Exemplaires en rayon (non empruntés)
        exemplaires_total: Exemplaires possédés
        date_ajout: Date d'ajout au catalogue
    """
    __tablename__ = "books"

    titre: Mapped[str] = mapped_column(String(500), nullable=False)
    auteur: Mapped[str] = mapped_column(String(255), nullable=False)
    isbn: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
        index=True,
    )
    annee_publication: Mapped[int] = mapped_column(Integer, nullable=False)
    genre: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    disponible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    nombre_exemplaires: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    exemplaires_total: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    date_ajout: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        CheckConstraint("nombre_exemplaires >= 0", name="ck_books_exemplaires_positifs"),
    )

    def __repr__(self) -> str:
        return f"<Book {self.isbn} - {self.titre}>"
