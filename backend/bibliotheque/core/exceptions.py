"""
Exceptions métier de l'application.

Les services lèvent ces exceptions ; main.py les traduit en réponses HTTP :
    - ValidationError -> 400 (donnée invalide ou règle métier violée)
    - NotFoundError   -> 404 (entité référencée absente)
    - ConflictError   -> 409 (unicité violée, suppression bloquée)
"""


class BibliothequeError(Exception):
    """Erreur métier de base."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BibliothequeError):
    """Entrée invalide ou règle métier violée."""

    status_code = 400


class NotFoundError(BibliothequeError):
    """Entité référencée introuvable."""

    status_code = 404


class ConflictError(BibliothequeError):
    """Conflit d'unicité ou suppression bloquée."""

    status_code = 409
