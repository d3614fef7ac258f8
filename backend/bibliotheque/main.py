"""
Point d'entrée de l'application FastAPI.

Ce module configure l'application, inclut les routes, traduit les
exceptions métier en réponses HTTP et gère le cycle de vie
(démarrage/arrêt) du stockage.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bibliotheque.api.v1.router import api_router
from bibliotheque.core.config import get_settings
from bibliotheque.core.exceptions import (
    BibliothequeError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from bibliotheque.core.idempotency import IdempotencyStore
from bibliotheque.core.logging import setup_logging, get_logger
from bibliotheque.db.redis import check_redis_connection, create_redis
from bibliotheque.db.session import Database
from bibliotheque.schemas.health import HealthResponse

settings = get_settings()
logger = get_logger(__name__)


async def _open_idempotency_store() -> IdempotencyStore:
    if not settings.IDEMPOTENCY_ENABLED:
        return IdempotencyStore(None, enabled=False)

    client = None
    try:
        client = create_redis(settings.REDIS_URL)
        if await check_redis_connection(client):
            logger.info("Connexion à Redis établie")
        else:
            logger.warning("Redis indisponible - Idempotency-Key ignoré")
            await client.aclose()
            client = None
    except Exception as e:
        logger.warning(f"Échec de connexion à Redis : {e}")
        client = None

    return IdempotencyStore(
        client,
        ttl=settings.IDEMPOTENCY_TTL_SECONDS,
        enabled=client is not None,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gère le cycle de vie de l'application.

    Démarrage:
        - Configure le logging
        - Ouvre la base et crée les tables
        - Connecte Redis (clés d'idempotence)

    Arrêt:
        - Ferme Redis
        - Ferme le pool de connexions
    """
    setup_logging()
    logger.info(f"Démarrage de {settings.APP_NAME} en environnement {settings.ENVIRONMENT}")

    database = Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    await database.open()
    await database.create_all()
    app.state.db = database

    app.state.idempotency = await _open_idempotency_store()

    yield

    logger.info(f"Arrêt de {settings.APP_NAME}")
    await app.state.idempotency.close()
    await database.close()


app = FastAPI(
    title=settings.APP_NAME,
    description="API REST de gestion d'une bibliothèque : utilisateurs, livres et emprunts",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.include_router(api_router)


# ==========================================
# Exceptions métier -> HTTP
# ==========================================

def _error_response(exc: BibliothequeError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _error_response(exc)


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(exc)


@app.exception_handler(ConflictError)
async def conflict_error_handler(request: Request, exc: ConflictError) -> JSONResponse:
    return _error_response(exc)


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Vérifie l'état de l'application",
)
async def health_check(request: Request) -> HealthResponse:
    """
    Endpoint de healthcheck pour la supervision.

    Retourne l'état de l'application, son nom, l'environnement et
    l'état de la base.
    """
    database = getattr(request.app.state, "db", None)
    database_up = False
    if database is not None and database.engine is not None:
        database_up, error = await database.check_connection()
        if not database_up:
            logger.warning(f"Base de données indisponible : {error}")

    return HealthResponse(
        status="healthy" if database_up else "degraded",
        app_name=settings.APP_NAME,
        environment=settings.ENVIRONMENT,
        database="up" if database_up else "down",
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bibliotheque.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
