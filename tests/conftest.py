import asyncio

import pytest

from book_catalog.catalog import Catalog
from book_catalog.database import Database


@pytest.fixture
def db_url(tmp_path):
    # a file database per test so concurrent sessions see the same data
    return f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}"


@pytest.fixture
def run(db_url):
    """Run an async scenario against a fresh catalog: run(lambda catalog: ...)."""
    def runner(scenario):
        async def main():
            async with Database(db_url) as database:
                await database.init_schema()
                return await scenario(Catalog(database))
        return asyncio.run(main())
    return runner
