"""
Module des repositories - accès aux données.
"""

from bibliotheque.repositories.base import BaseRepository
from bibliotheque.repositories.user import UserRepository
from bibliotheque.repositories.book import BookRepository
from bibliotheque.repositories.loan import LoanRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "BookRepository",
    "LoanRepository",
]
