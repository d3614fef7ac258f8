"""
Configuration centralisée de l'application via Pydantic Settings.

Charge les variables d'environnement depuis le fichier .env et valide
automatiquement les types. Les composants reçoivent les valeurs dont ils
ont besoin par leur constructeur.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Configuration de l'application chargée depuis l'environnement.

    Attributes:
        APP_NAME: Nom de l'application affiché dans la documentation
        DEBUG: Active le mode debug (à ne pas utiliser en production)
        ENVIRONMENT: Environnement courant (development, staging, production)
        HOST: Hôte d'écoute du serveur
        PORT: Port d'écoute du serveur
        DATABASE_URL: URL de connexion de la base (async)
        DATABASE_ECHO: Journalise les requêtes SQL
        REDIS_URL: URL de connexion Redis (clés d'idempotence)
        IDEMPOTENCY_ENABLED: Prend en compte l'en-tête Idempotency-Key
        IDEMPOTENCY_TTL_SECONDS: Durée de vie d'une clé d'idempotence
        LOAN_DURATION_DAYS: Durée d'emprunt par défaut en jours
        MAX_LOAN_DURATION_DAYS: Durée d'emprunt maximale acceptée
        LOG_LEVEL: Niveau de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOAN_LOG_LEVEL: Niveau propre au service d'emprunts (par défaut LOG_LEVEL)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Bibliotheque API"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./bibliotheque.db"
    DATABASE_ECHO: bool = False

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # Idempotency
    IDEMPOTENCY_ENABLED: bool = True
    IDEMPOTENCY_TTL_SECONDS: int = 86400

    # Loans
    LOAN_DURATION_DAYS: int = 14
    MAX_LOAN_DURATION_DAYS: int = 365

    # Logging
    LOG_LEVEL: str = "INFO"
    LOAN_LOG_LEVEL: Optional[str] = None


@lru_cache
def get_settings() -> Settings:
    """
    Retourne l'instance de configuration mise en cache.

    lru_cache évite de relire le .env à chaque appel.
    """
    return Settings()
