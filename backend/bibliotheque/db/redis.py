"""
Connexion Redis utilisée pour les clés d'idempotence des emprunts.

Le client est créé au démarrage par le lifespan et confié au
IdempotencyStore ; aucun client global n'est conservé ici.
"""

import logging

import redis.asyncio as redis

logger = logging.getLogger(__name__)


def create_redis(url: str) -> redis.Redis:
    """
    Crée un client Redis asynchrone.

    La connexion réelle n'est établie qu'à la première commande.
    """
    return redis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
    )


async def check_redis_connection(client: redis.Redis | None) -> bool:
    """
    Vérifie que Redis répond.

    Returns:
        True si le ping réussit, False sinon.
    """
    try:
        if client is not None:
            await client.ping()
            return True
        return False
    except Exception as e:
        logger.warning(f"Erreur lors de la vérification de Redis : {e}")
        return False
