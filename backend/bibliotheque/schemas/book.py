"""
Schemas Pydantic des livres.
"""

from datetime import datetime

from pydantic import ConfigDict, Field

from bibliotheque.schemas.base import BaseSchema


class BookCreate(BaseSchema):
    """Schema de création d'un livre."""
    titre: str = Field(..., min_length=1, max_length=500, examples=["Les Misérables"])
    auteur: str = Field(..., min_length=1, max_length=255, examples=["Victor Hugo"])
    isbn: str = Field(..., min_length=1, max_length=32, examples=["978-2070409228"])
    annee_publication: int = Field(..., ge=0, le=2100, examples=[1862])
    genre: str = Field(..., min_length=1, max_length=100, examples=["Roman"])
    description: str = Field("", max_length=5000)
    nombre_exemplaires: int = Field(1, ge=1, le=10000, description="Exemplaires possédés")


class BookUpdate(BaseSchema):
    """
    Schema de modification partielle d'un livre.

    disponible et nombre_exemplaires ne sont pas modifiables ici : ils ne
    bougent qu'avec les emprunts et retours, ou sont recalculés quand
    exemplaires_total change.
    """
    model_config = ConfigDict(extra="forbid")

    titre: str | None = Field(None, min_length=1, max_length=500)
    auteur: str | None = Field(None, min_length=1, max_length=255)
    isbn: str | None = Field(None, min_length=1, max_length=32)
    annee_publication: int | None = Field(None, ge=0, le=2100)
    genre: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=5000)
    exemplaires_total: int | None = Field(None, ge=1, le=10000)


class BookRead(BaseSchema):
    """Schema de lecture d'un livre."""
    id: str
    titre: str
    auteur: str
    isbn: str
    annee_publication: int
    genre: str
    description: str
    disponible: bool
    nombre_exemplaires: int
    exemplaires_total: int
    date_ajout: datetime
