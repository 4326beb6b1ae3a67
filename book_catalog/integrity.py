"""Delete guard: a record that other records still point at is not deleted."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional, Tuple

from book_catalog.models import Author, Book, BookInstance, Genre
from book_catalog.repository import Repository
from book_catalog.results import Result

logger = logging.getLogger(__name__)

# target model -> (dependent model, reference field on the dependent, sort field)
DEPENDENTS: Dict[type, Optional[Tuple[type, str, str]]] = {
    Author: (Book, "author", "title"),
    Genre: (Book, "genre", "title"),
    Book: (BookInstance, "book", "imprint"),
    BookInstance: None,
}


class ReferentialGuard:
    """Check for dependents, then delete.

    The check and the delete are two separate storage calls. A dependent
    created in between is not seen, and the delete still goes ahead.
    """

    def __init__(self, database):
        self.database = database

    async def find_dependents(self, model, record_id: str):
        entry = DEPENDENTS[model]
        if entry is None:
            return []
        dependent_model, reference, sort = entry
        return await Repository(self.database, dependent_model).find(
            filters={reference: record_id}, sort=sort
        )

    async def delete(self, model, record_id: str) -> Result:
        """Delete ``record_id`` unless something references it.

        Returns OK with the deleted record, BLOCKED with the record and its
        dependents, or NOT_FOUND when there is no such record.
        """
        repository = Repository(self.database, model)
        record, dependents = await asyncio.gather(
            repository.find_by_id(record_id),
            self.find_dependents(model, record_id),
        )
        if record is None:
            logger.info(f"Delete of missing {model.__name__} {record_id} ignored")
            return Result.not_found(record_id)
        if dependents:
            logger.warning(
                f"Delete of {model.__name__} {record_id} blocked by {len(dependents)} "
                f"{DEPENDENTS[model][0].__name__} record(s)"
            )
            return Result.blocked(record, dependents)
        if not await repository.delete(record_id):
            # removed by someone else between the check and the delete
            return Result.not_found(record_id)
        return Result.ok(record)
