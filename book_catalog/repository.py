"""Data access for catalog records.

One ``Repository`` per record kind. Every call opens its own session, so
independent calls can be awaited together with ``asyncio.gather``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import load_only, selectinload

logger = logging.getLogger(__name__)


class Repository:
    """Find, count, create, replace and delete records of one model."""

    def __init__(self, database, model):
        self.database = database
        self.model = model

    # --- Query building ---
    def _attribute(self, name: str):
        attribute = getattr(self.model, name, None)
        if attribute is None or not hasattr(attribute, "property"):
            raise ValueError(f"{self.model.__name__} has no field {name!r}")
        return attribute

    def _condition(self, name: str, value):
        attribute = self._attribute(name)
        prop = attribute.property
        if not hasattr(prop, "direction"):
            return attribute == value
        if prop.uselist:
            # set-valued reference: match records whose set contains the id
            return attribute.any(id=value)
        (column,) = prop.local_columns
        return column == value

    def _where(self, statement, filters: Optional[Dict[str, Any]]):
        for name, value in (filters or {}).items():
            statement = statement.where(self._condition(name, value))
        return statement

    def _expand_options(self, expand: Iterable[str]) -> List:
        return [selectinload(self._attribute(name)) for name in expand]

    # --- Reads ---
    async def find(
        self,
        filters: Optional[Dict[str, Any]] = None,
        fields: Optional[Sequence[str]] = None,
        sort: Optional[str] = None,
        expand: Iterable[str] = (),
    ) -> List:
        """
        Return all records matching ``filters``.

        Args:
            filters: field -> value equality matches; reference fields match
                on the referenced id
            fields: load only these attributes (plus the id)
            sort: attribute to order by, ascending
            expand: reference fields to resolve into full records
        """
        statement = self._where(select(self.model), filters)
        if fields:
            statement = statement.options(load_only(*[self._attribute(f) for f in fields]))
        options = self._expand_options(expand)
        if options:
            statement = statement.options(*options)
        if sort:
            statement = statement.order_by(self._attribute(sort), self.model.id)
        async with self.database.session() as session:
            result = await session.scalars(statement)
            return list(result.all())

    async def find_one(self, **filters):
        """First record matching ``filters``, or None."""
        statement = self._where(select(self.model), filters).limit(1)
        async with self.database.session() as session:
            return await session.scalar(statement)

    async def find_by_id(self, record_id: str, expand: Iterable[str] = ()):
        async with self.database.session() as session:
            return await session.get(self.model, record_id, options=self._expand_options(expand))

    async def count(self, **filters) -> int:
        statement = self._where(select(func.count()).select_from(self.model), filters)
        async with self.database.session() as session:
            return await session.scalar(statement)

    # --- Writes ---
    async def create(self, record):
        async with self.database.session() as session:
            session.add(record)
            await session.commit()
        logger.info(f"Created {self.model.__name__} {record.id}")
        return record

    async def update(self, record_id: str, candidate):
        """Replace every mutable field of a stored record with the candidate's.

        Returns the updated record, or None when nothing has that id.
        """
        async with self.database.session() as session:
            record = await session.get(self.model, record_id)
            if record is None:
                return None
            for name in self.model.MUTABLE_FIELDS:
                setattr(record, name, getattr(candidate, name))
            await session.commit()
        logger.info(f"Updated {self.model.__name__} {record_id}")
        return record

    async def delete(self, record_id: str) -> bool:
        async with self.database.session() as session:
            record = await session.get(self.model, record_id)
            if record is None:
                return False
            await session.delete(record)
            await session.commit()
        logger.info(f"Deleted {self.model.__name__} {record_id}")
        return True
