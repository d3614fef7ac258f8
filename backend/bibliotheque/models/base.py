"""
Mixins pour les modèles SQLAlchemy.
"""

import uuid

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column


def new_id() -> str:
    """Identifiant opaque (UUID4 sous forme de texte)."""
    return str(uuid.uuid4())


class UUIDMixin:
    """Mixin qui ajoute un identifiant UUID texte comme clé primaire."""
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_id,
    )
