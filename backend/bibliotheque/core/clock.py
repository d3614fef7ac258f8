"""
Horloge de l'application.

Les dates sont stockées en UTC sans fuseau (naïves) pour rester
comparables quel que soit le moteur de base.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Instant courant en UTC, sans tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    """Convertit une date avec fuseau en UTC naïf ; laisse les dates naïves intactes."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
