"""
Stockage des clés d'idempotence des emprunts dans Redis.

Un client qui rejoue POST /loans avec le même en-tête Idempotency-Key
reçoit l'emprunt déjà créé au lieu d'en réserver un second.

Configurable via variables d'environnement :
    - IDEMPOTENCY_ENABLED: bool (défaut : True)
    - IDEMPOTENCY_TTL_SECONDS: int (défaut : 86400)

Si Redis est indisponible, l'en-tête est ignoré (fail-open) et un
avertissement est journalisé.
"""

import logging
from typing import Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class IdempotencyStore:
    """
    Associe une clé fournie par le client à l'identifiant d'un emprunt.

    Usage:
        loan_id = await store.get(key)
        if loan_id is None:
            loan = await service.checkout(...)
            await store.bind(key, loan.id)
    """

    PREFIX = "idempotency:checkout"

    def __init__(
        self,
        client: Optional[redis.Redis],
        ttl: int = 86400,
        enabled: bool = True,
    ):
        self.client = client
        self.ttl = ttl
        self.enabled = enabled

    @property
    def available(self) -> bool:
        return self.enabled and self.client is not None

    def _key(self, key: str) -> str:
        return f"{self.PREFIX}:{key}"

    async def get(self, key: str) -> Optional[str]:
        """
        Retourne l'identifiant d'emprunt associé à la clé, ou None.
        """
        if not self.available:
            return None

        try:
            return await self.client.get(self._key(key))
        except Exception as e:
            logger.warning(f"Erreur lors de la lecture de la clé d'idempotence : {e}")
            return None

    async def bind(self, key: str, loan_id: str) -> bool:
        """
        Associe la clé à un emprunt si elle n'est pas déjà prise.

        Returns:
            True si la clé a été enregistrée, False sinon
        """
        if not self.available:
            return False

        try:
            stored = await self.client.set(
                self._key(key),
                loan_id,
                nx=True,
                ex=self.ttl,
            )
            return bool(stored)
        except Exception as e:
            logger.warning(f"Erreur lors de l'enregistrement de la clé d'idempotence : {e}")
            return False

    async def close(self) -> None:
        """Ferme la connexion Redis."""
        if self.client is not None:
            await self.client.aclose()
            self.client = None
