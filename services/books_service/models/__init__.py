"""Books Service models package."""

from services.books_service.models.core import Book
from services.books_service.models.enums import BookCondition, BookStatus

__all__ = ["Book", "BookCondition", "BookStatus"]
