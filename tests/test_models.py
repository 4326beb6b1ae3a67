from datetime import date

from book_catalog.models import Author, Book, BookInstance, Genre, DEFAULT_STATUS


def test_author_display_name():
    author = Author(first_name="Ursula", family_name="LeGuin")
    assert author.display_name == "LeGuin, Ursula"


def test_display_name_recomputed_after_change():
    author = Author(first_name="Ursula", family_name="LeGuin")
    author.first_name = "U"
    assert author.display_name == "LeGuin, U"


def test_lifespan_unknown_without_dates():
    assert Author(first_name="A", family_name="B").lifespan == "Unknown"


def test_lifespan_with_both_dates():
    author = Author(first_name="Ursula", family_name="LeGuin",
                    date_of_birth=date(1929, 10, 21), date_of_death=date(2018, 1, 22))
    assert author.lifespan == "1929-10-21 – 2018-01-22"


def test_lifespan_with_birth_only():
    author = Author(first_name="A", family_name="B", date_of_birth=date(1970, 1, 2))
    assert author.lifespan == "1970-01-02 –"


def test_id_assigned_on_construction():
    genre = Genre(name="Fantasy")
    assert genre.id and len(genre.id) == 32
    assert Genre(name="Fantasy").id != genre.id


def test_explicit_id_kept():
    genre = Genre(id="abc", name="Fantasy")
    assert genre.id == "abc"


def test_urls():
    assert Author(id="a1", first_name="x", family_name="y").url == "/catalog/author/a1"
    assert Genre(id="g1", name="Poetry").url == "/catalog/genre/g1"
    assert Book(id="b1", title="t", author_id="a1", summary="s", isbn="i").url == "/catalog/book/b1"
    assert BookInstance(id="c1", book_id="b1", imprint="p").url == "/catalog/bookinstance/c1"


def test_book_instance_defaults_to_maintenance():
    copy = BookInstance(book_id="b1", imprint="Penguin")
    assert copy.status == DEFAULT_STATUS == "Maintenance"
    assert copy.due_back_formatted == ""


def test_due_back_formatted():
    copy = BookInstance(book_id="b1", imprint="Penguin", status="Loaned", due_back=date(2024, 3, 5))
    assert copy.due_back_formatted == "Mar 5, 2024"


def test_book_genre_ids_deduplicated():
    book = Book(title="t", author_id="a1", summary="s", isbn="i", genre_ids=["g1", "g2", "g1"])
    assert book.genre_ids == ["g1", "g2"]


def test_unexpanded_book_serializes_bare_ids():
    book = Book(id="b1", title="t", author_id="a1", summary="s", isbn="i", genre_ids=["g1"])
    data = book.to_dict()
    assert data["author"] == "a1"
    assert data["genre"] == ["g1"]
    assert data["url"] == "/catalog/book/b1"
