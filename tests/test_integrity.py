from book_catalog.integrity import ReferentialGuard
from book_catalog.models import Author, Book, BookInstance, Genre
from book_catalog.results import ResultKind


async def author_with_book(catalog):
    author = await catalog.authors.create(Author(first_name="Iain", family_name="Banks"))
    genre = await catalog.genres.create(Genre(name="Science Fiction"))
    book = await catalog.books.create(Book(title="Excession", author_id=author.id,
                                           summary="An Outside Context Problem", isbn="1",
                                           genre_ids=[genre.id]))
    return author, genre, book


def test_unreferenced_record_is_deleted(run):
    async def scenario(catalog):
        genre = await catalog.genres.create(Genre(name="Horror"))
        result = await catalog.guard.delete(Genre, genre.id)
        return genre, result, await catalog.genres.count()

    genre, result, remaining = run(scenario)
    assert result.kind is ResultKind.OK
    assert result.record.id == genre.id
    assert remaining == 0


def test_author_with_books_is_blocked(run):
    async def scenario(catalog):
        author, _, book = await author_with_book(catalog)
        result = await catalog.guard.delete(Author, author.id)
        return author, book, result, await catalog.authors.count()

    author, book, result, remaining = run(scenario)
    assert result.is_blocked
    assert result.record.id == author.id
    assert [b.id for b in result.dependents] == [book.id]
    assert remaining == 1


def test_genre_used_by_a_book_is_blocked(run):
    async def scenario(catalog):
        _, genre, book = await author_with_book(catalog)
        return book, await catalog.guard.delete(Genre, genre.id)

    book, result = run(scenario)
    assert result.is_blocked
    assert [b.title for b in result.dependents] == ["Excession"]


def test_book_with_copies_is_blocked(run):
    async def scenario(catalog):
        _, _, book = await author_with_book(catalog)
        second = await catalog.book_instances.create(BookInstance(book_id=book.id, imprint="Orbit 1997"))
        first = await catalog.book_instances.create(BookInstance(book_id=book.id, imprint="Orbit 1996"))
        return [first.id, second.id], await catalog.guard.delete(Book, book.id)

    copy_ids, result = run(scenario)
    assert result.is_blocked
    # dependents come back ordered by imprint
    assert [c.id for c in result.dependents] == copy_ids


def test_book_instance_has_no_dependents(run):
    async def scenario(catalog):
        copy = await catalog.book_instances.create(BookInstance(book_id="x", imprint="Orbit"))
        guard = ReferentialGuard(catalog.database)
        return await guard.find_dependents(BookInstance, copy.id), await guard.delete(BookInstance, copy.id)

    dependents, result = run(scenario)
    assert dependents == []
    assert result.is_ok


def test_missing_record_is_not_found(run):
    async def scenario(catalog):
        return await catalog.guard.delete(Author, "missing")

    result = run(scenario)
    assert result.is_not_found
    assert result.record_id == "missing"


def test_delete_goes_through_once_dependents_are_gone(run):
    async def scenario(catalog):
        author, _, book = await author_with_book(catalog)
        blocked = await catalog.guard.delete(Author, author.id)
        await catalog.guard.delete(Book, book.id)
        return blocked, await catalog.guard.delete(Author, author.id)

    blocked, result = run(scenario)
    assert blocked.is_blocked
    assert result.is_ok
