"""Form validation for catalog writes.

Every field is trimmed and HTML-escaped before its validators run. A form
always produces a candidate record, valid or not, so the caller can show the
sanitized input again next to the errors.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from dateutil.parser import isoparse
from markupsafe import escape
from wtforms import DateField, Form, SelectMultipleField, StringField
from wtforms.validators import AnyOf, Length, Optional as OptionalValidator, Regexp

from book_catalog.models import DEFAULT_STATUS, STATUSES, Author, Book, BookInstance, Genre
from book_catalog.results import FieldError

ALPHANUMERIC = r"^[0-9A-Za-z]+$"


class FormInput(dict):
    """Raw form input with the ``getlist`` lookup WTForms expects.

    Values may be a single value or a list/tuple/set of values.
    """

    def getlist(self, key) -> List[str]:
        value = self.get(key)
        if value is None:
            return []
        if isinstance(value, (list, tuple, set, frozenset)):
            return [str(v) for v in value if v is not None]
        return [str(value)]


def wrap_input(formdata: Optional[Mapping[str, Any]]):
    if formdata is None:
        return FormInput()
    if hasattr(formdata, "getlist"):
        return formdata
    return FormInput(formdata)


# --- Filters ---
def strip_value(value):
    return value.strip() if isinstance(value, str) else ""


# markupsafe handles & < > " '
EXTRA_ENTITIES = str.maketrans({"/": "&#x2F;", "\\": "&#x5C;", "`": "&#96;"})


def escape_value(value):
    """HTML-escape every special character, including ones already part of an entity."""
    return str(escape(value)).translate(EXTRA_ENTITIES) if value else ""


def escape_values(values):
    """Escape each submitted identifier and drop repeats, keeping order."""
    cleaned = (escape_value(strip_value(v)) for v in (values or []))
    return list(dict.fromkeys(v for v in cleaned if v))


def default_status(value):
    return value or DEFAULT_STATUS


TEXT_FILTERS = [strip_value, escape_value]


class IsoDateField(DateField):
    """Date input in ISO-8601 form; the parsed ``date`` becomes the field data."""

    def __init__(self, label=None, validators=None, invalid_message="Not a valid date value.", **kwargs):
        super().__init__(label, validators, **kwargs)
        self.invalid_message = invalid_message

    def process_formdata(self, valuelist):
        if not valuelist:
            return
        date_str = " ".join(valuelist).strip()
        try:
            self.data = isoparse(date_str).date()
        except (ValueError, OverflowError):
            self.data = None
            raise ValueError(self.invalid_message)


class CatalogForm(Form):
    """Base class: run every field's checks and build the candidate record."""

    def __init__(self, formdata=None, **kwargs):
        super().__init__(wrap_input(formdata), **kwargs)

    def field_errors(self) -> List[FieldError]:
        errors = []
        for name, field in self._fields.items():
            errors.extend(FieldError(name, message) for message in field.errors)
        return errors

    def check(self) -> List[FieldError]:
        """Validate all fields and return their errors in field order."""
        self.validate()
        return self.field_errors()

    def to_record(self, record_id: Optional[str] = None):
        """Build the candidate record from field data. Every form subclass overrides this."""
        raise NotImplementedError


class AuthorForm(CatalogForm):
    first_name = StringField("First name", filters=TEXT_FILTERS, validators=[
        Length(min=1, message="First name must be specified."),
        Length(max=100, message="First name must be at most 100 characters."),
        Regexp(ALPHANUMERIC, message="First name has non-alphanumeric characters."),
    ])
    family_name = StringField("Family name", filters=TEXT_FILTERS, validators=[
        Length(min=1, message="Family name must be specified."),
        Length(max=100, message="Family name must be at most 100 characters."),
        Regexp(ALPHANUMERIC, message="Family name has non-alphanumeric characters."),
    ])
    date_of_birth = IsoDateField("Date of birth", validators=[OptionalValidator()],
                                 invalid_message="Invalid date of birth")
    date_of_death = IsoDateField("Date of death", validators=[OptionalValidator()],
                                 invalid_message="Invalid date of death")

    def to_record(self, record_id=None):
        return Author(
            id=record_id,
            first_name=self.first_name.data,
            family_name=self.family_name.data,
            date_of_birth=self.date_of_birth.data,
            date_of_death=self.date_of_death.data,
        )


class GenreForm(CatalogForm):
    name = StringField("Name", filters=TEXT_FILTERS, validators=[
        Length(min=3, message="Genre name must contain at least 3 characters"),
        Length(max=100, message="Genre name must be at most 100 characters."),
    ])

    def to_record(self, record_id=None):
        return Genre(id=record_id, name=self.name.data)


class BookForm(CatalogForm):
    title = StringField("Title", filters=TEXT_FILTERS, validators=[
        Length(min=1, message="Title must not be empty."),
    ])
    author = StringField("Author", filters=TEXT_FILTERS, validators=[
        Length(min=1, message="Author must not be empty."),
    ])
    summary = StringField("Summary", filters=TEXT_FILTERS, validators=[
        Length(min=1, message="Summary must not be empty."),
    ])
    isbn = StringField("ISBN", filters=TEXT_FILTERS, validators=[
        Length(min=1, message="ISBN must not be empty"),
    ])
    # choices come from the database; membership is not checked here
    genre = SelectMultipleField("Genre", coerce=str, validate_choice=False, filters=[escape_values])

    def to_record(self, record_id=None):
        return Book(
            id=record_id,
            title=self.title.data,
            author_id=self.author.data,
            summary=self.summary.data,
            isbn=self.isbn.data,
            genre_ids=self.genre.data,
        )


class BookInstanceForm(CatalogForm):
    book = StringField("Book", filters=TEXT_FILTERS, validators=[
        Length(min=1, message="Book must be specified"),
    ])
    imprint = StringField("Imprint", filters=TEXT_FILTERS, validators=[
        Length(min=1, message="Imprint must be specified"),
    ])
    status = StringField("Status", filters=TEXT_FILTERS + [default_status], validators=[
        AnyOf(STATUSES, message="Status must be one of: " + ", ".join(STATUSES)),
    ])
    due_back = IsoDateField("Date when book available", validators=[OptionalValidator()],
                            invalid_message="Invalid date")

    def to_record(self, record_id=None):
        return BookInstance(
            id=record_id,
            book_id=self.book.data,
            imprint=self.imprint.data,
            status=self.status.data,
            due_back=self.due_back.data,
        )


def validate_form(form_class, formdata, record_id=None):
    """Run a form over raw input.

    Returns (candidate, errors); ``errors`` is empty when the input is valid.
    """
    form = form_class(formdata)
    errors = form.check()
    return form.to_record(record_id), errors

