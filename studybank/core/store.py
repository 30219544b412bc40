"""
Record store adapter.

A thin CRUD + count facade over a SQLAlchemy session. Every call is its own unit
of work: it commits on success and rolls back on failure, so no transaction ever
spans two calls. Store failures surface as PersistenceError.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studybank.core.errors import PersistenceError
from studybank.models.orm import Base

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=Base)


def _criteria(entity: Type[Base], filters: Optional[Dict[str, Any]], clauses: Sequence[Any]) -> List[Any]:
    out = []
    for column, value in (filters or {}).items():
        attr = getattr(entity, column)
        out.append(attr.is_(None) if value is None else attr == value)
    out.extend(clauses)
    return out


class RecordStore:
    """CRUD facade used by every service."""

    def __init__(self, db: Session):
        self.db = db

    def _fail(self, op: str, entity: Type[Base], exc: SQLAlchemyError) -> PersistenceError:
        self.db.rollback()
        logger.error(f"Store {op} on {entity.__tablename__} failed: {exc}")
        return PersistenceError(f"{op} on {entity.__tablename__} failed")

    def insert(self, entity: Type[M], fields: Dict[str, Any]) -> str:
        try:
            row = entity(**fields)
            self.db.add(row)
            self.db.commit()
            return row.id
        except SQLAlchemyError as e:
            raise self._fail("insert", entity, e) from e

    def insert_many(self, entity: Type[M], rows: Iterable[Dict[str, Any]]) -> List[str]:
        """Insert several rows of one entity in a single call (all or none)."""
        try:
            objs = [entity(**fields) for fields in rows]
            self.db.add_all(objs)
            self.db.commit()
            return [o.id for o in objs]
        except SQLAlchemyError as e:
            raise self._fail("insert", entity, e) from e

    def select_one(self, entity: Type[M], filters: Optional[Dict[str, Any]] = None, *clauses: Any) -> Optional[M]:
        try:
            stmt = select(entity).where(*_criteria(entity, filters, clauses)).limit(1)
            return self.db.scalars(stmt).first()
        except SQLAlchemyError as e:
            raise self._fail("select", entity, e) from e

    def select_many(
        self,
        entity: Type[M],
        filters: Optional[Dict[str, Any]] = None,
        *clauses: Any,
        order_by: Sequence[Any] = (),
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        options: Sequence[Any] = (),
    ) -> List[M]:
        try:
            stmt = select(entity).where(*_criteria(entity, filters, clauses)).order_by(*order_by)
            if options:
                stmt = stmt.options(*options)
            if offset:
                stmt = stmt.offset(offset)
            if limit is not None:
                stmt = stmt.limit(limit)
            return list(self.db.scalars(stmt).unique().all())
        except SQLAlchemyError as e:
            raise self._fail("select", entity, e) from e

    def update(self, entity: Type[M], id: str, fields: Dict[str, Any], filters: Optional[Dict[str, Any]] = None) -> int:
        """Update one row by id, optionally narrowed by ``filters``; returns the number of rows touched (0 or 1)."""
        try:
            stmt = update(entity).where(entity.id == id, *_criteria(entity, filters, ()))
            res = self.db.execute(stmt.values(**fields))
            self.db.commit()
            return res.rowcount
        except SQLAlchemyError as e:
            raise self._fail("update", entity, e) from e

    def delete(self, entity: Type[M], filters: Optional[Dict[str, Any]] = None, *clauses: Any) -> int:
        try:
            res = self.db.execute(delete(entity).where(*_criteria(entity, filters, clauses)))
            self.db.commit()
            return res.rowcount
        except SQLAlchemyError as e:
            raise self._fail("delete", entity, e) from e

    def count(self, entity: Type[M], filters: Optional[Dict[str, Any]] = None, *clauses: Any) -> int:
        try:
            stmt = select(func.count()).select_from(entity).where(*_criteria(entity, filters, clauses))
            return int(self.db.scalar(stmt) or 0)
        except SQLAlchemyError as e:
            raise self._fail("count", entity, e) from e

    def distinct(self, entity: Type[M], column: str, filters: Optional[Dict[str, Any]] = None, *clauses: Any) -> List[Any]:
        try:
            attr = getattr(entity, column)
            stmt = select(attr).distinct().where(*_criteria(entity, filters, clauses))
            return list(self.db.scalars(stmt).all())
        except SQLAlchemyError as e:
            raise self._fail("select", entity, e) from e
