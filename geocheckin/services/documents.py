from __future__ import annotations
import logging
from typing import Any, Mapping, Protocol
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..exceptions import DocumentConflict, StoreError
from ..models import COLLECTIONS

logger = logging.getLogger(__name__)

Predicate = Mapping[str, Any]

class DocumentStore(Protocol):
    """Minimal document-store surface used by the check-in store.

    Predicates are equality matches on document fields.
    """

    async def insert(self, collection: str, record: Mapping[str, Any]) -> str: ...

    async def query(
        self, collection: str, predicate: Predicate, *, limit: int | None = None, order_by: str | None = None
    ) -> list[dict[str, Any]]: ...

    async def update(
        self, collection: str, doc_id: str, fields: Mapping[str, Any], *, where: Predicate | None = None
    ) -> int: ...

    async def count(self, collection: str, predicate: Predicate) -> int: ...


class SqlDocumentStore:
    """DocumentStore over SQLAlchemy tables, one table per collection."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession], collections: Mapping[str, type] | None = None):
        self._session_maker = session_maker
        self._collections = dict(collections or COLLECTIONS)

    def _model(self, collection: str):
        try:
            return self._collections[collection]
        except KeyError:
            raise ValueError(f"unknown collection: {collection}") from None

    @staticmethod
    def _where(model, predicate: Predicate) -> list:
        return [getattr(model, k) == v for k, v in predicate.items()]

    @staticmethod
    def _to_doc(row) -> dict[str, Any]:
        return {c.key: getattr(row, c.key) for c in row.__table__.columns}

    async def insert(self, collection: str, record: Mapping[str, Any]) -> str:
        model = self._model(collection)
        async with self._session_maker() as db:
            obj = model(**record)
            db.add(obj)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                raise DocumentConflict(collection, dict(record), cause=e) from e
            except (SQLAlchemyError, OSError) as e:
                logger.exception("insert into %s failed", collection)
                raise StoreError(cause=e) from e
            return str(obj.id)

    async def query(
        self, collection: str, predicate: Predicate, *, limit: int | None = None, order_by: str | None = None
    ) -> list[dict[str, Any]]:
        model = self._model(collection)
        q = select(model).where(*self._where(model, predicate))
        if order_by:
            # "-field" sorts descending
            desc = order_by.startswith("-")
            col = getattr(model, order_by.lstrip("-"))
            q = q.order_by(col.desc() if desc else col.asc())
        if limit is not None:
            q = q.limit(limit)
        try:
            async with self._session_maker() as db:
                rows = (await db.execute(q)).scalars().all()
        except (SQLAlchemyError, OSError) as e:
            logger.exception("query on %s failed", collection)
            raise StoreError(cause=e) from e
        return [self._to_doc(r) for r in rows]

    async def update(
        self, collection: str, doc_id: str, fields: Mapping[str, Any], *, where: Predicate | None = None
    ) -> int:
        model = self._model(collection)
        stmt = update(model).where(model.id == doc_id)
        if where:
            stmt = stmt.where(*self._where(model, where))
        stmt = stmt.values(**fields)
        try:
            async with self._session_maker() as db:
                res = await db.execute(stmt)
                await db.commit()
        except (SQLAlchemyError, OSError) as e:
            logger.exception("update on %s/%s failed", collection, doc_id)
            raise StoreError(cause=e) from e
        return int(res.rowcount or 0)

    async def count(self, collection: str, predicate: Predicate) -> int:
        model = self._model(collection)
        q = select(func.count()).select_from(model).where(*self._where(model, predicate))
        try:
            async with self._session_maker() as db:
                n = (await db.execute(q)).scalar_one()
        except (SQLAlchemyError, OSError) as e:
            logger.exception("count on %s failed", collection)
            raise StoreError(cause=e) from e
        return max(0, int(n))
