import asyncio
from collections.abc import AsyncIterator, Sequence
import contextlib
import logging
import sqlite3
from typing import Any

from databases import Database
from databases.core import Connection

from models import Record


logger = logging.getLogger(__name__)


CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS {table} (id INTEGER PRIMARY KEY AUTOINCREMENT, {columns})
"""


INSERT_ROW = "INSERT INTO {table}({names}) VALUES ({params})"


LIST_ROWS = "SELECT {names} FROM {table} ORDER BY id"


COUNT_ROWS = "SELECT COUNT(*) FROM {table}"


class StorageError(Exception):
    pass


class StorageInitError(StorageError):
    pass


class LocalStore:
    """Tables of records in an embedded SQLite database.

    The connection is opened on first use and shared by every caller. A
    record type's table is created the first time the type is touched.
    """

    def __init__(
        self,
        database_url: str | None = None,
        *,
        database: Database | None = None,
    ) -> None:
        if database is None:
            if database_url is None:
                raise ValueError("Provide a database url or a database.")
            database = Database(database_url)
        self.db = database
        self._connection: Connection | None = None
        self._tables: set[str] = set()
        self._init_lock = asyncio.Lock()
        self._table_lock = asyncio.Lock()
        self._exclusive_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._connection is not None

    async def initialize(self) -> None:
        if self._connection is not None:
            return
        async with self._init_lock:
            if self._connection is not None:
                return
            try:
                await self.db.connect()
                connection = self.db.connection()
                await connection.__aenter__()
            except Exception as e:
                if self.db.is_connected:
                    await self.db.disconnect()
                raise StorageInitError(f"Could not open {self.db.url!r}") from e
            self._connection = connection
            logger.info("Connected to %s", self.db.url)

    async def close(self) -> None:
        async with self._init_lock:
            if self._connection is None:
                return
            connection, self._connection = self._connection, None
            self._tables.clear()
            await connection.__aexit__(None, None, None)
            await self.db.disconnect()
            logger.info("Disconnected from %s", self.db.url)

    @contextlib.asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        """Hold the store for a read-then-write sequence.

        Every caller sharing this store waits its turn.
        """
        async with self._exclusive_lock:
            yield

    async def list_all[T: Record](
        self, record_type: type[T], *, timeout: float | None = None
    ) -> list[T]:
        async with asyncio.timeout(timeout):
            connection = await self._ready(record_type)
            names = ["id", *record_type.__columns__]
            query = LIST_ROWS.format(
                names=", ".join(names), table=record_type.__tablename__
            )
            logger.debug(query)
            rows = await connection.fetch_all(query)
        return [
            record_type.from_row({name: row[i] for i, name in enumerate(names)})
            for row in rows
        ]

    async def count(
        self, record_type: type[Record], *, timeout: float | None = None
    ) -> int:
        async with asyncio.timeout(timeout):
            connection = await self._ready(record_type)
            query = COUNT_ROWS.format(table=record_type.__tablename__)
            logger.debug(query)
            return int(await connection.fetch_val(query))

    async def insert_all(
        self, items: Sequence[Record], *, timeout: float | None = None
    ) -> bool:
        """Insert `items` one row at a time.

        Returns True only if every item was persisted. A row the engine
        rejects is skipped, so a False result can leave earlier rows in
        place.
        """
        if not items:
            return True

        inserted = 0
        async with asyncio.timeout(timeout):
            for item in items:
                connection = await self._ready(type(item))
                values = self._values(item)
                query = INSERT_ROW.format(
                    table=item.__tablename__,
                    names=", ".join(values),
                    params=", ".join(f":{name}" for name in values),
                )
                logger.debug("%s %s", query, values)
                try:
                    item.id = await connection.execute(query, values=values)
                except sqlite3.IntegrityError as e:
                    logger.warning("Rejected %r: %s", item, e)
                    continue
                inserted += 1

        if inserted != len(items):
            logger.warning("Inserted %d of %d rows", inserted, len(items))
        return inserted == len(items)

    async def _ready(self, record_type: type[Record]) -> Connection:
        await self.initialize()
        connection = self._connection
        if connection is None:
            raise StorageError("Store was closed.")
        table = record_type.__tablename__
        if table in self._tables:
            return connection
        async with self._table_lock:
            if table not in self._tables:
                columns = ", ".join(
                    f"{name} {ddl}" for name, ddl in record_type.__columns__.items()
                )
                query = CREATE_TABLE.format(table=table, columns=columns)
                logger.debug(query)
                try:
                    await connection.execute(query)
                except Exception as e:
                    raise StorageInitError(f"Could not create {table}") from e
                self._tables.add(table)
        return connection

    @staticmethod
    def _values(item: Record) -> dict[str, Any]:
        data = item.to_dict()
        return {name: data[name] for name in item.__columns__}
