"""Record store over the async SQLAlchemy session factory.

The store is the only shared mutable resource in the pipeline. Every call
runs in its own session that commits on success and rolls back on error,
and updates are issued as single-row UPDATE statements so that counters
such as ``attempts`` can be incremented atomically with SQL expressions.

Usage:
    >>> store = await RecordStore.from_database_manager()
    >>> inquiry = await store.create(Inquiry, full_name="Ada", ...)
    >>> pending = await store.count(NotificationMessage, {"status": "pending"})
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, AsyncGenerator, Iterable, Optional, Sequence, TypeVar

from sqlalchemy import func, select, update as sa_update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from .errors import ValidationError
from .models import Base
from .models.database import DatabaseManager, make_session_factory

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

MAX_PAGE_LIMIT = 100


def check_paging(page: int, limit: int) -> None:
    """Reject page numbers below 1 and page sizes outside 1..MAX_PAGE_LIMIT.

    Raises:
        ValidationError: Naming the offending field.
    """
    errors = []
    if not isinstance(page, int) or page < 1:
        errors.append({"field": "page", "message": "page must be a positive integer"})
    if not isinstance(limit, int) or not 1 <= limit <= MAX_PAGE_LIMIT:
        errors.append(
            {"field": "limit", "message": f"limit must be between 1 and {MAX_PAGE_LIMIT}"}
        )
    if errors:
        raise ValidationError("Invalid pagination parameters", errors=errors)


@dataclass
class Page:
    """One page of records plus pagination metadata.

    Attributes:
        data: Records on this page.
        total: Total records matching the filter.
        page: 1-based page number.
        limit: Page size.
    """

    data: list[Any] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20

    @property
    def total_pages(self) -> int:
        """Number of pages needed for ``total`` records."""
        if self.limit <= 0:
            return 0
        return -(-self.total // self.limit)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "data": [item.to_dict() for item in self.data],
            "meta": {
                "total": self.total,
                "page": self.page,
                "limit": self.limit,
                "total_pages": self.total_pages,
            },
        }


class RecordStore:
    """Create/read/update/count access to the model tables.

    Attributes:
        _session_factory: Factory producing AsyncSession instances.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @classmethod
    def from_engine(cls, engine: AsyncEngine) -> "RecordStore":
        """Build a store bound to an explicit engine (tests, scripts)."""
        return cls(make_session_factory(engine))

    @classmethod
    async def from_database_manager(cls) -> "RecordStore":
        """Build a store on the process-wide engine from DATABASE_URL."""
        return cls(await DatabaseManager.get_session_factory())

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session that commits on success and rolls back on error."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    @staticmethod
    def _where(model: type[ModelT], filters: Optional[dict[str, Any]], conditions: Iterable[Any]) -> list[Any]:
        clauses = [getattr(model, name) == value for name, value in (filters or {}).items()]
        clauses.extend(conditions)
        return clauses

    async def create(self, model: type[ModelT], **values: Any) -> ModelT:
        """Insert a new record and return it with defaults populated."""
        async with self.session() as session:
            record = model(**values)
            session.add(record)
            await session.flush()
            return record

    async def find_unique(self, model: type[ModelT], record_id: str) -> Optional[ModelT]:
        """Fetch a record by primary key, or None."""
        async with self.session() as session:
            return await session.get(model, record_id)

    async def find_many(
        self,
        model: type[ModelT],
        filters: Optional[dict[str, Any]] = None,
        *,
        conditions: Sequence[Any] = (),
        order_by: Sequence[Any] = (),
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[ModelT]:
        """Fetch records matching equality ``filters`` and extra ``conditions``.

        Args:
            model: Mapped class to query.
            filters: Column name to value equality filters.
            conditions: Additional SQLAlchemy boolean expressions.
            order_by: Ordering expressions, applied in sequence.
            limit: Maximum rows to return.
            offset: Rows to skip.
        """
        stmt = select(model).where(*self._where(model, filters, conditions))
        if order_by:
            stmt = stmt.order_by(*order_by)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self.session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def update(
        self,
        model: type[ModelT],
        record_id: str,
        *,
        conditions: Sequence[Any] = (),
        **values: Any,
    ) -> Optional[ModelT]:
        """Apply a single-row UPDATE and return the refreshed record.

        Values may be SQL expressions such as ``Model.attempts + 1``; they
        are evaluated by the database, not read-modified-written here.
        ``conditions`` guard the write, e.g. ``Model.status == expected``,
        so a row changed by another writer is left untouched.

        Returns:
            The updated record, or None if no row has ``record_id`` or the
            row no longer matches ``conditions``.
        """
        stmt = (
            sa_update(model)
            .where(model.id == record_id, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        async with self.session() as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                return None
            return await session.get(model, record_id, populate_existing=True)

    async def count(
        self,
        model: type[ModelT],
        filters: Optional[dict[str, Any]] = None,
        *,
        conditions: Sequence[Any] = (),
    ) -> int:
        """Count records matching the filters."""
        stmt = (
            select(func.count())
            .select_from(model)
            .where(*self._where(model, filters, conditions))
        )
        async with self.session() as session:
            result = await session.execute(stmt)
            return int(result.scalar_one())

    async def sum(
        self,
        model: type[ModelT],
        column: Any,
        filters: Optional[dict[str, Any]] = None,
        *,
        conditions: Sequence[Any] = (),
    ) -> Decimal:
        """Sum ``column`` over matching records (0 when none match)."""
        stmt = select(func.coalesce(func.sum(column), 0)).where(
            *self._where(model, filters, conditions)
        )
        async with self.session() as session:
            result = await session.execute(stmt)
            return Decimal(str(result.scalar_one()))
