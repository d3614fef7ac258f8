"""
Repository de base avec les opérations CRUD génériques.

Les repositories n'effectuent jamais de commit : ils se contentent de
flush, et les services décident des frontières de transaction.
"""

from typing import Any, Generic, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bibliotheque.db.session import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Repository de base avec opérations CRUD.

    Fournit des méthodes génériques pour :
    - get_by_id: Chercher par ID
    - add: Insérer un enregistrement
    - update: Modifier un enregistrement
    - delete: Supprimer un enregistrement
    - count: Compter les enregistrements
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    async def get_by_id(self, id: str) -> ModelType | None:
        """Cherche un enregistrement par ID."""
        result = await self.db.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def add(self, **kwargs: Any) -> ModelType:
        """Insère un nouvel enregistrement."""
        instance = self.model(**kwargs)
        self.db.add(instance)
        await self.db.flush()
        return instance

    async def update(
        self,
        instance: ModelType,
        **kwargs: Any,
    ) -> ModelType:
        """Modifie un enregistrement ; les valeurs None sont ignorées."""
        for key, value in kwargs.items():
            if value is not None:
                setattr(instance, key, value)
        await self.db.flush()
        return instance

    async def delete(self, instance: ModelType) -> None:
        """Supprime un enregistrement."""
        await self.db.delete(instance)
        await self.db.flush()
