"""
Module des services - logique métier.
"""

from bibliotheque.services.user import UserService
from bibliotheque.services.book import BookService
from bibliotheque.services.loan import LoanService

__all__ = [
    "UserService",
    "BookService",
    "LoanService",
]
