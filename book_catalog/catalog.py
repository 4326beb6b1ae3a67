"""Catalog operations called by the web layer.

List reads return records. Single-record reads, writes and deletes return
a ``Result``. ``StorageFailure`` is the only thing raised.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any, List, Mapping, Optional

from book_catalog.forms import AuthorForm, BookForm, BookInstanceForm, GenreForm, validate_form
from book_catalog.integrity import ReferentialGuard
from book_catalog.models import STATUS_AVAILABLE, Author, Book, BookInstance, Genre
from book_catalog.repository import Repository
from book_catalog.results import ConstraintViolation, FieldError, Result

logger = logging.getLogger(__name__)

FormData = Optional[Mapping[str, Any]]

# what a detail page shows for each related book
BOOK_SUMMARY_FIELDS = ("title", "summary")


@dataclass
class CatalogSummary:
    book_count: int
    book_instance_count: int
    available_instance_count: int
    author_count: int
    genre_count: int

    def to_dict(self):
        return asdict(self)


class Catalog:
    """Entry point for every catalog read, write and delete."""

    def __init__(self, database):
        self.database = database
        self.authors = Repository(database, Author)
        self.genres = Repository(database, Genre)
        self.books = Repository(database, Book)
        self.book_instances = Repository(database, BookInstance)
        self.guard = ReferentialGuard(database)

    # --- Shared write paths ---
    async def _create(self, repository, form_class, formdata: FormData) -> Result:
        candidate, errors = validate_form(form_class, formdata)
        if errors:
            return Result.invalid(candidate, errors)
        return Result.ok(await repository.create(candidate))

    async def _update(self, repository, form_class, record_id: str, formdata: FormData) -> Result:
        candidate, errors = validate_form(form_class, formdata, record_id=record_id)
        if errors:
            return Result.invalid(candidate, errors)
        return await self._replace(repository, record_id, candidate)

    async def _replace(self, repository, record_id: str, candidate) -> Result:
        updated = await repository.update(record_id, candidate)
        if updated is None:
            return Result.not_found(record_id)
        return Result.ok(updated)

    async def _get(self, repository, record_id: str, expand=()) -> Result:
        record = await repository.find_by_id(record_id, expand=expand)
        if record is None:
            return Result.not_found(record_id)
        return Result.ok(record)

    async def _detail(self, repository, record_id, related_call, expand=()) -> Result:
        record, related = await asyncio.gather(
            repository.find_by_id(record_id, expand=expand),
            related_call,
        )
        if record is None:
            return Result.not_found(record_id)
        return Result.ok(record, related=related)

    # --- Summary ---
    async def catalog_summary_counts(self) -> CatalogSummary:
        counts = await asyncio.gather(
            self.books.count(),
            self.book_instances.count(),
            self.book_instances.count(status=STATUS_AVAILABLE),
            self.authors.count(),
            self.genres.count(),
        )
        return CatalogSummary(*counts)

    # --- Authors ---
    async def list_authors(self) -> List[Author]:
        return await self.authors.find(sort="family_name")

    async def get_author(self, author_id: str) -> Result:
        return await self._get(self.authors, author_id)

    async def get_author_with_books(self, author_id: str) -> Result:
        books = self.books.find(filters={"author": author_id}, fields=BOOK_SUMMARY_FIELDS, sort="title")
        return await self._detail(self.authors, author_id, books)

    async def create_author(self, formdata: FormData) -> Result:
        return await self._create(self.authors, AuthorForm, formdata)

    async def update_author(self, author_id: str, formdata: FormData) -> Result:
        return await self._update(self.authors, AuthorForm, author_id, formdata)

    async def delete_author(self, author_id: str) -> Result:
        return await self.guard.delete(Author, author_id)

    # --- Genres ---
    async def list_genres(self) -> List[Genre]:
        return await self.genres.find(sort="name")

    async def get_genre(self, genre_id: str) -> Result:
        return await self._get(self.genres, genre_id)

    async def get_genre_with_books(self, genre_id: str) -> Result:
        books = self.books.find(filters={"genre": genre_id}, fields=BOOK_SUMMARY_FIELDS, sort="title")
        return await self._detail(self.genres, genre_id, books)

    async def create_genre(self, formdata: FormData) -> Result:
        """Create a genre, or return the one that already has this exact name."""
        candidate, errors = validate_form(GenreForm, formdata)
        if errors:
            return Result.invalid(candidate, errors)
        existing = await self.genres.find_one(name=candidate.name)
        if existing is not None:
            logger.info(f"Genre {candidate.name!r} already exists as {existing.id}")
            return Result.ok(existing)
        try:
            return Result.ok(await self.genres.create(candidate))
        except ConstraintViolation:
            # another request created the same name after our lookup
            existing = await self.genres.find_one(name=candidate.name)
            if existing is None:
                raise
            return Result.ok(existing)

    async def update_genre(self, genre_id: str, formdata: FormData) -> Result:
        candidate, errors = validate_form(GenreForm, formdata, record_id=genre_id)
        if errors:
            return Result.invalid(candidate, errors)
        clash = await self.genres.find_one(name=candidate.name)
        if clash is not None and clash.id != genre_id:
            return Result.invalid(candidate, [FieldError("name", "Genre name already exists.")])
        return await self._replace(self.genres, genre_id, candidate)

    async def delete_genre(self, genre_id: str) -> Result:
        return await self.guard.delete(Genre, genre_id)

    # --- Books ---
    async def list_books(self) -> List[Book]:
        return await self.books.find(sort="title", expand=("author", "genre"))

    async def get_book(self, book_id: str) -> Result:
        return await self._get(self.books, book_id, expand=("author", "genre"))

    async def get_book_with_instances(self, book_id: str) -> Result:
        copies = self.book_instances.find(filters={"book": book_id}, sort="imprint")
        return await self._detail(self.books, book_id, copies, expand=("author", "genre"))

    async def book_form_choices(self):
        """Authors and genres for the book form's select boxes."""
        authors, genres = await asyncio.gather(
            self.authors.find(sort="family_name"),
            self.genres.find(sort="name"),
        )
        return authors, genres

    async def create_book(self, formdata: FormData) -> Result:
        return await self._create(self.books, BookForm, formdata)

    async def update_book(self, book_id: str, formdata: FormData) -> Result:
        return await self._update(self.books, BookForm, book_id, formdata)

    async def delete_book(self, book_id: str) -> Result:
        return await self.guard.delete(Book, book_id)

    # --- Book instances ---
    async def list_book_instances(self) -> List[BookInstance]:
        return await self.book_instances.find(expand=("book",))

    async def get_book_instance(self, instance_id: str) -> Result:
        return await self._get(self.book_instances, instance_id, expand=("book",))

    async def book_instance_form_choices(self) -> List[Book]:
        return await self.books.find(fields=("title",), sort="title")

    async def create_book_instance(self, formdata: FormData) -> Result:
        return await self._create(self.book_instances, BookInstanceForm, formdata)

    async def update_book_instance(self, instance_id: str, formdata: FormData) -> Result:
        return await self._update(self.book_instances, BookInstanceForm, instance_id, formdata)

    async def delete_book_instance(self, instance_id: str) -> Result:
        return await self.guard.delete(BookInstance, instance_id)
