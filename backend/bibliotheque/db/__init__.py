"""
Module base de données - connexions et sessions.

Exports:
    - Base: Classe de base des modèles SQLAlchemy
    - Database: Handle du stockage (engine + sessions)
    - get_db: Dependency d'injection de session
    - transaction: Unité atomique d'écritures
    - create_redis: Client Redis des clés d'idempotence
"""

from bibliotheque.db.session import Base, Database, get_db, transaction
from bibliotheque.db.redis import create_redis, check_redis_connection

__all__ = [
    "Base",
    "Database",
    "get_db",
    "transaction",
    "create_redis",
    "check_redis_connection",
]
