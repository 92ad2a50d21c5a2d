"""Record store adapter over the SQLAlchemy models."""
from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterable, Optional

from flask import current_app
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from models import Admin, Book, BorrowRecord, OneTimeCode, User, db

Record = dict[str, Any]


class StoreError(RuntimeError):
    """Raised when the record store cannot complete an operation."""


class RecordStore(ABC):
    """Table-oriented persistence consumed by the services."""

    @abstractmethod
    def insert(self, table: str, record: Record) -> Record:
        ...

    @abstractmethod
    def select_where(
        self,
        table: str,
        criteria: Optional[Record] = None,
        *,
        embed: Optional[dict[str, Iterable[str]]] = None,
    ) -> list[Record]:
        ...

    @abstractmethod
    def update(self, table: str, record_id: int, patch: Record, *, where: Optional[Record] = None) -> bool:
        """Apply ``patch``; False when no row has this id and matches ``where``."""

    @abstractmethod
    def delete(self, table: str, record_id: int) -> None:
        ...


class SQLAlchemyRecordStore(RecordStore):
    """Maps table names onto Flask-SQLAlchemy models.

    ``embed`` nests columns of a referenced table into each selected record,
    e.g. ``{'books': ('title', 'imgsrc')}`` on ``borrowedbooks`` adds a
    ``books`` entry holding the referenced book's title and image.
    """

    models = {
        'users': User,
        'admins': Admin,
        'books': Book,
        'borrowedbooks': BorrowRecord,
        'otp_codes': OneTimeCode,
    }

    # table -> {referenced table: relationship attribute}
    relations = {
        'borrowedbooks': {'books': 'book', 'users': 'user'},
    }

    def _model(self, table: str):
        try:
            return self.models[table]
        except KeyError:
            raise StoreError(f'Unknown table: {table}') from None

    @staticmethod
    def _as_record(obj) -> Record:
        return {column.key: getattr(obj, column.key) for column in inspect(obj).mapper.column_attrs}

    @contextmanager
    def _transaction(self, action: str):
        try:
            yield
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception('Store %s failed: %s', action, exc)
            raise StoreError(f'{action} failed') from exc

    def insert(self, table: str, record: Record) -> Record:
        model = self._model(table)
        with self._transaction(f'insert into {table}'):
            obj = model(**record)
            db.session.add(obj)
            db.session.flush()
            created = self._as_record(obj)
        return created

    def select_where(self, table, criteria=None, *, embed=None):
        model = self._model(table)
        relations = self.relations.get(table, {})
        for name in embed or {}:
            if name not in relations:
                raise StoreError(f'{table} does not reference {name}')
        try:
            rows = model.query.filter_by(**(criteria or {})).order_by(model.id).all()
            records = []
            for row in rows:
                record = self._as_record(row)
                for name, columns in (embed or {}).items():
                    related = getattr(row, relations[name])
                    record[name] = (
                        {column: getattr(related, column) for column in columns} if related else None
                    )
                records.append(record)
            return records
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception('Store select from %s failed: %s', table, exc)
            raise StoreError(f'select from {table} failed') from exc

    def update(self, table, record_id, patch, *, where=None):
        model = self._model(table)
        unknown = [key for key in {**patch, **(where or {})} if not hasattr(model, key)]
        if unknown:
            raise StoreError(f'{table} has no column {unknown[0]}')
        with self._transaction(f'update {table}'):
            # single conditional UPDATE; rowcount is the number of matched rows
            matched = model.query.filter_by(id=record_id, **(where or {})).update(
                patch, synchronize_session='fetch'
            )
        return matched > 0

    def delete(self, table: str, record_id: int) -> None:
        model = self._model(table)
        with self._transaction(f'delete from {table}'):
            obj = db.session.get(model, record_id)
            if obj is not None:
                db.session.delete(obj)
