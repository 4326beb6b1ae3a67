"""Outcome types returned by catalog operations.

Validation failures, missing records and blocked deletes are ordinary
outcomes and come back as a ``Result``. Only storage problems are raised,
as ``StorageFailure``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class StorageFailure(Exception):
    """The database was unreachable or rejected a statement."""


class ConstraintViolation(StorageFailure):
    """A unique or foreign key constraint rejected an insert or update."""


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


class ResultKind(Enum):
    OK = "ok"
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    BLOCKED = "blocked"


@dataclass
class Result:
    """Tagged outcome of a read, write or delete.

    Attributes:
        kind: which outcome this is.
        record: the saved/found/deleted record, the candidate record for
            INVALID, or the record whose delete was refused for BLOCKED.
        errors: field errors, only for INVALID.
        related: records shown next to ``record`` (an author's books, a
            book's copies) or, for BLOCKED, the dependents.
        record_id: the identifier that was looked up.
    """

    kind: ResultKind
    record: Any = None
    errors: List[FieldError] = field(default_factory=list)
    related: List[Any] = field(default_factory=list)
    record_id: Optional[str] = None

    @classmethod
    def ok(cls, record, related=None) -> "Result":
        return cls(ResultKind.OK, record=record, related=list(related or []),
                   record_id=getattr(record, "id", None))

    @classmethod
    def invalid(cls, candidate, errors) -> "Result":
        return cls(ResultKind.INVALID, record=candidate, errors=list(errors),
                   record_id=getattr(candidate, "id", None))

    @classmethod
    def not_found(cls, record_id) -> "Result":
        return cls(ResultKind.NOT_FOUND, record_id=record_id)

    @classmethod
    def blocked(cls, record, dependents) -> "Result":
        return cls(ResultKind.BLOCKED, record=record, related=list(dependents),
                   record_id=getattr(record, "id", None))

    @property
    def is_ok(self) -> bool:
        return self.kind is ResultKind.OK

    @property
    def is_invalid(self) -> bool:
        return self.kind is ResultKind.INVALID

    @property
    def is_not_found(self) -> bool:
        return self.kind is ResultKind.NOT_FOUND

    @property
    def is_blocked(self) -> bool:
        return self.kind is ResultKind.BLOCKED

    @property
    def dependents(self) -> List[Any]:
        return self.related if self.is_blocked else []

    def errors_by_field(self) -> dict:
        """Group messages per field, e.g. ``{"name": ["..."]}``."""
        grouped: dict = {}
        for error in self.errors:
            grouped.setdefault(error.field, []).append(error.message)
        return grouped
