"""Library catalog: authors, genres, books and book copies."""
from book_catalog.catalog import Catalog, CatalogSummary
from book_catalog.config import Settings, configure_logging, settings
from book_catalog.database import Database
from book_catalog.models import Author, Book, BookInstance, Genre, STATUSES
from book_catalog.results import ConstraintViolation, FieldError, Result, ResultKind, StorageFailure

__all__ = [
    "Author",
    "Book",
    "BookInstance",
    "Catalog",
    "CatalogSummary",
    "ConstraintViolation",
    "Database",
    "FieldError",
    "Genre",
    "Result",
    "ResultKind",
    "STATUSES",
    "Settings",
    "StorageFailure",
    "configure_logging",
    "settings",
]
