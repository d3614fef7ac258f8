"""
Configuration du logging de la bibliothèque.

Deux niveaux sont réglables :
    - LOG_LEVEL pour l'ensemble de l'application
    - LOAN_LOG_LEVEL pour le service d'emprunts seul (bibliotheque.services.loan),
      afin de suivre emprunts et retours en DEBUG sans bruit ailleurs

Les handlers déjà posés par un autre outil (pytest, uvicorn) sont conservés :
seul le handler installé ici est remplacé à chaque appel.
"""

import logging
import sys
from typing import Optional

from bibliotheque.core.config import get_settings

LOAN_LOGGER = "bibliotheque.services.loan"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_HANDLER_NAME = "bibliotheque"


def setup_logging(level: Optional[str] = None, loan_level: Optional[str] = None) -> None:
    """
    Configure le logging de l'application.

    Args:
        level: Niveau global. Si absent, utilise LOG_LEVEL
        loan_level: Niveau du logger des emprunts. Si absent, utilise
            LOAN_LOG_LEVEL, puis le niveau global
    """
    settings = get_settings()
    app_level = (level or settings.LOG_LEVEL).upper()
    engine_level = (loan_level or settings.LOAN_LOG_LEVEL or app_level).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(app_level)
    for existing in list(root_logger.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    logging.getLogger(LOAN_LOGGER).setLevel(engine_level)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    # DATABASE_ECHO laisse SQLAlchemy tracer les requêtes
    if not settings.DATABASE_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configuré : application {app_level}, emprunts {engine_level}"
    )


def get_logger(name: str) -> logging.Logger:
    """Retourne le logger du module indiqué (généralement __name__)."""
    return logging.getLogger(name)
