"""
Router principal de l'API v1.

Inclut tous les routers d'endpoints.
"""

from fastapi import APIRouter

from bibliotheque.api.v1.books import router as books_router
from bibliotheque.api.v1.loans import router as loans_router
from bibliotheque.api.v1.system import router as system_router
from bibliotheque.api.v1.users import router as users_router
from bibliotheque.schemas.base import ErrorResponse

# Corps des erreurs métier produites par les handlers de main.py
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Règle métier violée"},
    404: {"model": ErrorResponse, "description": "Entité introuvable"},
    409: {"model": ErrorResponse, "description": "Conflit"},
}

api_router = APIRouter(prefix="/api/v1", responses=ERROR_RESPONSES)

api_router.include_router(users_router)
api_router.include_router(books_router)
api_router.include_router(loans_router)
api_router.include_router(system_router)
