# Overview: Generic entity CRUD contract used by the invoice engine, plus its SQLAlchemy adapter.

"""
Entity Store

The engine never touches the ORM session directly. It reads and writes
records through an EntityStore, the same small surface a hosted
backend-as-a-service exposes: create, update, get, filter, list, count,
delete.

Each call is atomic on its own. Grouping calls into an all-or-nothing unit is
the job of services.unit_of_work, which uses commit/rollback.

Sorting follows the "-field" convention: "-created_date" means newest first.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import NotFoundError, StoreError
from ..extensions import db
from ..models import AuditLogEntry, Category, Customer, Invoice, Item, ShopSettings
from .concurrency import RETRYABLE_ERRORS, lock_for_update


ENTITY_MODELS = {
    "Category": Category,
    "Item": Item,
    "Customer": Customer,
    "Invoice": Invoice,
    "AuditLog": AuditLogEntry,
    "ShopSettings": ShopSettings,
}


class EntityStore(ABC):
    """Contract consumed by the invoice engine."""

    @abstractmethod
    def create(self, entity_type: str, fields: dict) -> Any:
        """Insert a record and return it (its id is assigned)."""

    @abstractmethod
    def update(self, entity_type: str, entity_id: int, fields: dict) -> Any:
        """Apply a partial update and return the record."""

    @abstractmethod
    def get(self, entity_type: str, entity_id: int, *, for_update: bool = False) -> Any:
        """Return one record or raise NotFoundError. for_update takes a row lock until commit."""

    @abstractmethod
    def filter(self, entity_type: str, *, sort: str | None = None, limit: int | None = None, **criteria) -> list:
        """Records whose fields equal the criteria (a list/tuple value means IN)."""

    @abstractmethod
    def count(self, entity_type: str, **criteria) -> int:
        ...

    @abstractmethod
    def delete(self, entity_type: str, entity_id: int) -> None:
        """Remove a record or raise NotFoundError."""

    def list(self, entity_type: str, sort: str | None = "-created_date", limit: int | None = None) -> list:
        return self.filter(entity_type, sort=sort, limit=limit)

    def commit(self) -> None:
        """Make every write since the last commit durable."""

    def rollback(self) -> None:
        """Discard every write since the last commit."""


class SqlAlchemyEntityStore(EntityStore):
    """EntityStore backed by the Flask-SQLAlchemy session."""

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _model(entity_type: str):
        try:
            return ENTITY_MODELS[entity_type]
        except KeyError:
            raise StoreError(f"Unknown entity type: {entity_type}")

    @staticmethod
    def _columns(model) -> set[str]:
        return {c.key for c in model.__mapper__.columns}

    def _check_fields(self, model, fields: dict) -> None:
        unknown = set(fields) - self._columns(model)
        if unknown:
            raise StoreError(
                f"Unknown field(s) for {model.__name__}: {', '.join(sorted(unknown))}"
            )

    def _run(self, description: str, func):
        try:
            return func()
        except RETRYABLE_ERRORS:
            raise
        except IntegrityError as exc:
            raise StoreError(f"{description} violates a store constraint", details={"cause": "IntegrityError"}) from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"{description} failed", details={"cause": type(exc).__name__}) from exc

    @staticmethod
    def _apply_sort(query, model, sort: str | None):
        if not sort:
            return query.order_by(model.id)
        descending = sort.startswith("-")
        column = getattr(model, sort.lstrip("-"), None)
        if column is None:
            raise StoreError(f"Cannot sort {model.__name__} by {sort}")
        order = column.desc() if descending else column.asc()
        tiebreak = model.id.desc() if descending else model.id.asc()
        return query.order_by(order, tiebreak)

    def _query(self, model, criteria: dict):
        self._check_fields(model, criteria)
        query = self.session.query(model)
        for key, value in criteria.items():
            column = getattr(model, key)
            if isinstance(value, (list, tuple, set, frozenset)):
                query = query.filter(column.in_(list(value)))
            else:
                query = query.filter(column == value)
        return query

    # ------------------------------------------------------------------
    # contract
    # ------------------------------------------------------------------

    def create(self, entity_type: str, fields: dict):
        model = self._model(entity_type)
        self._check_fields(model, fields)

        def _op():
            record = model(**fields)
            self.session.add(record)
            self.session.flush()
            return record

        return self._run(f"Creating {entity_type}", _op)

    def update(self, entity_type: str, entity_id: int, fields: dict):
        model = self._model(entity_type)
        self._check_fields(model, fields)
        record = self.get(entity_type, entity_id)

        def _op():
            for key, value in fields.items():
                setattr(record, key, value)
            self.session.flush()
            return record

        return self._run(f"Updating {entity_type} {entity_id}", _op)

    def get(self, entity_type: str, entity_id: int, *, for_update: bool = False):
        model = self._model(entity_type)

        def _op():
            query = self.session.query(model).filter(model.id == entity_id)
            if for_update:
                query = lock_for_update(query)
            return query.first()

        record = self._run(f"Loading {entity_type} {entity_id}", _op)
        if record is None:
            raise NotFoundError(
                f"{entity_type} {entity_id} not found",
                details={"entity_type": entity_type, "id": entity_id},
            )
        return record

    def filter(self, entity_type: str, *, sort: str | None = None, limit: int | None = None, **criteria) -> list:
        model = self._model(entity_type)

        def _op():
            query = self._apply_sort(self._query(model, criteria), model, sort)
            if limit:
                query = query.limit(limit)
            return query.all()

        return self._run(f"Querying {entity_type}", _op)

    def count(self, entity_type: str, **criteria) -> int:
        model = self._model(entity_type)
        return self._run(f"Counting {entity_type}", lambda: self._query(model, criteria).count())

    def delete(self, entity_type: str, entity_id: int) -> None:
        record = self.get(entity_type, entity_id)

        def _op():
            self.session.delete(record)
            self.session.flush()

        self._run(f"Deleting {entity_type} {entity_id}", _op)

    def commit(self) -> None:
        self._run("Commit", self.session.commit)

    def rollback(self) -> None:
        self.session.rollback()


def get_store() -> SqlAlchemyEntityStore:
    """Store bound to the current Flask-SQLAlchemy session."""
    return SqlAlchemyEntityStore()
