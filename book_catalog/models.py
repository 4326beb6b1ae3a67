"""Catalog records: authors, genres, books and the physical copies of books.

References between records are stored as identifiers. The relationship
attributes that resolve them (``Book.author``, ``Book.genre``,
``BookInstance.book``) never load on their own; they are filled only when a
repository query asks to expand them. Nothing at the storage level stops a
referenced record from being deleted, that check lives in
``book_catalog.integrity``.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Column, Date, ForeignKey, String, Text, inspect
from sqlalchemy.orm import DeclarativeBase, relationship

STATUS_AVAILABLE = "Available"
STATUS_MAINTENANCE = "Maintenance"
STATUS_LOANED = "Loaned"
STATUS_RESERVED = "Reserved"
STATUSES = (STATUS_AVAILABLE, STATUS_MAINTENANCE, STATUS_LOANED, STATUS_RESERVED)
DEFAULT_STATUS = STATUS_MAINTENANCE


def new_id() -> str:
    return uuid.uuid4().hex


def format_date(value):
    return value.strftime("%Y-%m-%d") if value else None


class Base(DeclarativeBase):
    pass


class CatalogRecord:
    """Identifier and URL handling shared by every record kind.

    The identifier is assigned when the object is built, not when it is
    flushed, so a candidate record already has its final URL.
    """

    KIND = ""
    MUTABLE_FIELDS = ()

    id = Column(String(32), primary_key=True, default=new_id)

    def __init__(self, **kwargs):
        if kwargs.get("id") is None:
            kwargs["id"] = new_id()
        super().__init__(**kwargs)

    @property
    def url(self) -> str:
        return f"/catalog/{self.KIND}/{self.id}"

    def _is_loaded(self, name: str) -> bool:
        return name not in inspect(self).unloaded

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


class Author(CatalogRecord, Base):
    __tablename__ = "authors"
    KIND = "author"
    MUTABLE_FIELDS = ("first_name", "family_name", "date_of_birth", "date_of_death")

    first_name = Column(String(100), nullable=False)
    family_name = Column(String(100), nullable=False, index=True)
    date_of_birth = Column(Date)
    date_of_death = Column(Date)

    @property
    def display_name(self) -> str:
        return f"{self.family_name}, {self.first_name}"

    @property
    def lifespan(self) -> str:
        if not self.date_of_birth and not self.date_of_death:
            return "Unknown"
        birth = format_date(self.date_of_birth) or ""
        death = format_date(self.date_of_death) or ""
        return f"{birth} – {death}".strip()

    def to_dict(self):
        return {
            "id": self.id,
            "first_name": self.first_name,
            "family_name": self.family_name,
            "date_of_birth": format_date(self.date_of_birth),
            "date_of_death": format_date(self.date_of_death),
            "name": self.display_name,
            "lifespan": self.lifespan,
            "url": self.url,
        }


class Genre(CatalogRecord, Base):
    __tablename__ = "genres"
    KIND = "genre"
    MUTABLE_FIELDS = ("name",)

    name = Column(String(100), nullable=False, unique=True, index=True)

    def to_dict(self):
        return {"id": self.id, "name": self.name, "url": self.url}


class BookGenre(Base):
    __tablename__ = "book_genres"

    book_id = Column(String(32), ForeignKey("books.id"), primary_key=True)
    genre_id = Column(String(32), ForeignKey("genres.id"), primary_key=True)


class Book(CatalogRecord, Base):
    __tablename__ = "books"
    KIND = "book"
    MUTABLE_FIELDS = ("title", "author_id", "summary", "isbn", "genre_ids")

    title = Column(String(250), nullable=False, index=True)
    author_id = Column(String(32), ForeignKey("authors.id"), nullable=False, index=True)
    summary = Column(Text, nullable=False)
    isbn = Column(String(32), nullable=False)

    genre_links = relationship(BookGenre, cascade="all, delete-orphan", lazy="selectin")

    author = relationship(Author, viewonly=True, lazy="raise")
    genre = relationship(Genre, secondary="book_genres", viewonly=True, lazy="raise",
                         order_by=Genre.name)

    @property
    def genre_ids(self):
        return [link.genre_id for link in self.genre_links]

    @genre_ids.setter
    def genre_ids(self, ids):
        wanted = list(dict.fromkeys(ids or []))
        kept = [link for link in self.genre_links if link.genre_id in wanted]
        have = {link.genre_id for link in kept}
        self.genre_links = kept + [BookGenre(genre_id=gid) for gid in wanted if gid not in have]

    def to_dict(self):
        if self._is_loaded("author") and self.author is not None:
            author = self.author.to_dict()
        else:
            author = self.author_id
        if self._is_loaded("genre"):
            genre = [g.to_dict() for g in self.genre]
        else:
            genre = self.genre_ids
        return {
            "id": self.id,
            "title": self.title,
            "author": author,
            "summary": self.summary,
            "isbn": self.isbn,
            "genre": genre,
            "url": self.url,
        }


class BookInstance(CatalogRecord, Base):
    __tablename__ = "bookinstances"
    KIND = "bookinstance"
    MUTABLE_FIELDS = ("book_id", "imprint", "status", "due_back")

    book_id = Column(String(32), ForeignKey("books.id"), nullable=False, index=True)
    imprint = Column(String(250), nullable=False)
    status = Column(String(20), nullable=False, default=DEFAULT_STATUS, index=True)
    due_back = Column(Date)

    book = relationship(Book, viewonly=True, lazy="raise")

    def __init__(self, **kwargs):
        if not kwargs.get("status"):
            kwargs["status"] = DEFAULT_STATUS
        super().__init__(**kwargs)

    @property
    def due_back_formatted(self) -> str:
        if not self.due_back:
            return ""
        return f"{self.due_back:%b} {self.due_back.day}, {self.due_back.year}"

    def to_dict(self):
        if self._is_loaded("book") and self.book is not None:
            book = {"id": self.book.id, "title": self.book.title, "url": self.book.url}
        else:
            book = self.book_id
        return {
            "id": self.id,
            "book": book,
            "imprint": self.imprint,
            "status": self.status,
            "due_back": format_date(self.due_back),
            "url": self.url,
        }
