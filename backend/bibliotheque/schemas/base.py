"""
Schemas de base réutilisés dans toute l'application.
"""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Schema de base avec la configuration par défaut."""
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
    )


class ErrorResponse(BaseModel):
    """
    Réponse d'erreur standard.

    Produite par les handlers d'exceptions métier de main.py :
        {"error": "Livre non disponible"}
    """
    error: str
