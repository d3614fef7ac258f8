"""
Schemas Pydantic du endpoint de healthcheck.
"""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """
    Réponse du endpoint de healthcheck.

    Attributes:
        status: "healthy" ou "degraded" si la base ne répond pas
        app_name: Nom de l'application
        environment: Environnement courant
        database: "up" ou "down"
    """

    status: str
    app_name: str
    environment: str
    database: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "status": "healthy",
                    "app_name": "Bibliotheque API",
                    "environment": "development",
                    "database": "up",
                }
            ]
        }
    }
