"""Document store on SQLAlchemy async Core (PostgreSQL via asyncpg, SQLite via aiosqlite)."""

import asyncio
import uuid
from contextlib import asynccontextmanager, nullcontext
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import Table, delete, insert, select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from ..config import AppSettings
from ..errors import ConflictError, StoreError
from ..league_logging import get_logger
from ..utils.dates import ensure_utc, utcnow
from .base import Document, DocumentStore, Filter, WriteBatch
from .tables import COLLECTIONS, metadata

logger = get_logger(__name__)

_TIMESTAMP_FIELDS = ("id", "created_at", "updated_at")


def create_store_engine(settings: AppSettings) -> AsyncEngine:
    """Build the async engine described by ``settings.DB_URI``."""
    url = settings.DB_URI
    if url.startswith("sqlite"):
        # In-memory databases live on a single shared connection
        engine = create_async_engine(
            url,
            echo=settings.DB_ECHO,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_async_engine(
            url,
            echo=settings.DB_ECHO,
            pool_pre_ping=True,
            pool_recycle=3600,
            pool_size=10,
            max_overflow=20,
        )
    logger.info("Database engine created", url=url.split("@")[-1])
    return engine


def _to_db_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return ensure_utc(value)
    return value


@asynccontextmanager
async def _translate_errors(operation: str, collection: str):
    try:
        yield
    except IntegrityError as e:
        logger.warning("Store write conflict", operation=operation,
                       collection=collection, error=str(e))
        raise ConflictError(f"Store {operation} on '{collection}' conflicts with an existing document") from e
    except SQLAlchemyError as e:
        logger.error("Store operation failed", operation=operation,
                     collection=collection, error=str(e))
        raise StoreError(f"Store {operation} on '{collection}' failed") from e


class SqlWriteBatch(WriteBatch):
    """Write batch applied inside a single database transaction."""

    def __init__(self, store: "SqlDocumentStore", limit: int):
        super().__init__(limit)
        self._store = store

    async def _apply(self, ops: List[Tuple[str, str, str, Optional[Dict[str, Any]]]]) -> int:
        if not ops:
            return 0
        async with _translate_errors("batch commit", ops[0][1]):
            async with self._store.unit_of_work(write=True) as conn:
                for kind, collection, doc_id, data in ops:
                    table = self._store.table(collection)
                    if kind == "update":
                        values = self._store.prepare_values(table, data or {})
                        values["updated_at"] = self._store.next_timestamp()
                        await conn.execute(update(table).where(table.c.id == doc_id).values(**values))
                    else:
                        await conn.execute(delete(table).where(table.c.id == doc_id))
        logger.debug("Write batch committed", operations=len(ops))
        return len(ops)


class SqlDocumentStore(DocumentStore):
    """DocumentStore whose collections are relational tables."""

    def __init__(self, engine: AsyncEngine, *, tables: Optional[Mapping[str, Table]] = None,
                 in_query_limit: int = 10, write_batch_limit: int = 500):
        super().__init__(in_query_limit=in_query_limit, write_batch_limit=write_batch_limit)
        self.engine = engine
        self._tables = dict(tables or COLLECTIONS)
        # SQLite shares one connection, so a rollback there would hit every open transaction
        self._serial = asyncio.Lock() if engine.dialect.name == "sqlite" else nullcontext()
        self._last_timestamp: Optional[datetime] = None

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "SqlDocumentStore":
        return cls(
            create_store_engine(settings),
            in_query_limit=settings.STORE_IN_QUERY_LIMIT,
            write_batch_limit=settings.STORE_WRITE_BATCH_LIMIT,
        )

    @asynccontextmanager
    async def unit_of_work(self, write: bool = False) -> AsyncIterator[AsyncConnection]:
        """Connection for one read, or one transaction when ``write`` is set."""
        async with self._serial:
            async with (self.engine.begin() if write else self.engine.connect()) as conn:
                yield conn

    async def create_tables(self) -> None:
        """Create every collection table (idempotent)."""
        async with self.unit_of_work(write=True) as conn:
            await conn.run_sync(metadata.create_all, tables=list(self._tables.values()))
        logger.info("Collection tables ensured", collections=sorted(self._tables))

    def table(self, collection: str) -> Table:
        try:
            return self._tables[collection]
        except KeyError:
            raise StoreError(f"Unknown collection: {collection!r}") from None

    def next_timestamp(self) -> datetime:
        """Server timestamp, strictly increasing so creation order is total."""
        now = utcnow()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def prepare_values(self, table: Table, data: Mapping[str, Any]) -> Dict[str, Any]:
        unknown = [k for k in data if k not in table.c or k in _TIMESTAMP_FIELDS]
        if unknown:
            raise StoreError(f"Fields not writable on '{table.name}': {sorted(unknown)}")
        return {k: _to_db_value(v) for k, v in data.items()}

    def _to_document(self, row: Mapping[str, Any]) -> Document:
        data = {}
        for key, value in row.items():
            data[key] = ensure_utc(value) if isinstance(value, datetime) else value
        doc_id = data.pop("id")
        return Document(id=doc_id, data=data)

    def _clause(self, table: Table, flt: Filter):
        if flt.field not in table.c:
            raise StoreError(f"Unknown field {flt.field!r} on '{table.name}'")
        column = table.c[flt.field]
        if flt.op == "in":
            values = [_to_db_value(v) for v in flt.value]
            self.check_in_filter(values)
            return column.in_(values)
        value = _to_db_value(flt.value)
        if flt.op == "==":
            return column.is_(None) if value is None else column == value
        if flt.op == ">=":
            return column >= value
        return column <= value

    async def _fetch(self, conn: AsyncConnection, statement) -> List[Document]:
        result = await conn.execute(statement)
        return [self._to_document(row) for row in result.mappings().all()]

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        table = self.table(collection)
        async with _translate_errors("get", collection):
            async with self.unit_of_work() as conn:
                docs = await self._fetch(conn, select(table).where(table.c.id == doc_id))
        return docs[0] if docs else None

    async def query(self, collection: str, *filters: Filter,
                    limit: Optional[int] = None) -> List[Document]:
        table = self.table(collection)
        if any(f.op == "in" and not f.value for f in filters):
            return []
        statement = select(table).where(*[self._clause(table, f) for f in filters])
        statement = statement.order_by(table.c.created_at, table.c.id)
        if limit is not None:
            statement = statement.limit(limit)
        async with _translate_errors("query", collection):
            async with self.unit_of_work() as conn:
                return await self._fetch(conn, statement)

    async def add(self, collection: str, data: Mapping[str, Any]) -> Document:
        table = self.table(collection)
        values = self.prepare_values(table, data)
        now = self.next_timestamp()
        values.update(id=uuid.uuid4().hex, created_at=now, updated_at=now)
        async with _translate_errors("add", collection):
            async with self.unit_of_work(write=True) as conn:
                await conn.execute(insert(table).values(**values))
        return self._to_document(values)

    async def update(self, collection: str, doc_id: str,
                     data: Mapping[str, Any]) -> Optional[Document]:
        table = self.table(collection)
        values = self.prepare_values(table, data)
        values["updated_at"] = self.next_timestamp()
        async with _translate_errors("update", collection):
            async with self.unit_of_work(write=True) as conn:
                result = await conn.execute(update(table).where(table.c.id == doc_id).values(**values))
                if result.rowcount == 0:
                    return None
                docs = await self._fetch(conn, select(table).where(table.c.id == doc_id))
        return docs[0] if docs else None

    async def delete(self, collection: str, doc_id: str) -> bool:
        table = self.table(collection)
        async with _translate_errors("delete", collection):
            async with self.unit_of_work(write=True) as conn:
                result = await conn.execute(delete(table).where(table.c.id == doc_id))
        return result.rowcount > 0

    def batch(self) -> SqlWriteBatch:
        return SqlWriteBatch(self, self.write_batch_limit)

    async def ping(self) -> bool:
        try:
            async with self.unit_of_work() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error("Database connection failed", error=str(e))
            return False

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine closed")
