"""
Schemas Pydantic des utilisateurs.
"""

from datetime import datetime

from pydantic import EmailStr, Field

from bibliotheque.schemas.base import BaseSchema


class UserCreate(BaseSchema):
    """Schema de création d'un utilisateur."""
    nom: str = Field(..., min_length=1, max_length=255, examples=["Dupont"])
    prenom: str = Field(..., min_length=1, max_length=255, examples=["Jean"])
    email: EmailStr = Field(..., examples=["jean.dupont@example.com"])


class UserUpdate(BaseSchema):
    """Schema de modification partielle d'un utilisateur."""
    nom: str | None = Field(None, min_length=1, max_length=255)
    prenom: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    actif: bool | None = None


class UserRead(BaseSchema):
    """Schema de lecture d'un utilisateur."""
    id: str
    nom: str
    prenom: str
    email: EmailStr
    date_inscription: datetime
    actif: bool
