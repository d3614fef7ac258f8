"""
Modèle des utilisateurs de la bibliothèque.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from bibliotheque.core.clock import utcnow
from bibliotheque.db.session import Base
from bibliotheque.models.base import UUIDMixin


class User(Base, UUIDMixin):
    """
    Utilisateur (lecteur) de la bibliothèque.

    Attributes:
        id: Identifiant unique
        nom: Nom de famille
        prenom: Prénom
        email: Email unique
        date_inscription: Date de création
        actif: Un utilisateur inactif ne peut pas emprunter
    """
    __tablename__ = "users"

    nom: Mapped[str] = mapped_column(String(255), nullable=False)
    prenom: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    date_inscription: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
    )
    actif: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<User {self.email}>"
