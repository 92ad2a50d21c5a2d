"""Book catalog CRUD."""
from __future__ import annotations

from typing import Any, Mapping

from flask import current_app

from .outcomes import NotFoundError, Outcome, PersistenceError, ValidationError
from .store import RecordStore, StoreError

TEXT_FIELDS = ('title', 'description', 'imgsrc')
BOOK_FIELDS = TEXT_FIELDS + ('is_available',)


def _validate(fields: Mapping[str, Any], *, partial: bool) -> tuple[dict, str | None]:
    values = {}
    for name in BOOK_FIELDS:
        if name not in fields:
            if partial:
                continue
            return {}, f'Missing field: {name}'
        value = fields[name]
        if name == 'is_available':
            if not isinstance(value, bool):
                return {}, 'is_available must be true or false'
        elif not isinstance(value, str) or not value.strip():
            return {}, f'{name} must be a non-empty string'
        else:
            value = value.strip()
        values[name] = value
    if partial and not values:
        return {}, 'Nothing to update'
    return values, None


class CatalogService:
    def __init__(self, store: RecordStore):
        self.store = store

    def list_books(self) -> Outcome:
        try:
            return Outcome.success(self.store.select_where('books'))
        except StoreError:
            current_app.logger.exception('Error fetching books')
            return Outcome.failure(PersistenceError('Error fetching books'))

    def get_book(self, book_id: int) -> Outcome:
        try:
            rows = self.store.select_where('books', {'id': book_id})
        except StoreError:
            current_app.logger.exception('Error fetching book %s', book_id)
            return Outcome.failure(PersistenceError('Error fetching book'))
        if not rows:
            return Outcome.failure(NotFoundError('Book not found'))
        return Outcome.success(rows[0])

    def create_book(self, fields: Mapping[str, Any]) -> Outcome:
        values, problem = _validate(fields, partial=False)
        if problem:
            return Outcome.failure(ValidationError(problem))
        try:
            book = self.store.insert('books', values)
        except StoreError:
            current_app.logger.exception('Error adding book')
            return Outcome.failure(PersistenceError('Error adding book'))
        current_app.logger.info('Added book %s', book['id'])
        return Outcome.success(book)

    def update_book(self, book_id: int, patch: Mapping[str, Any]) -> Outcome:
        values, problem = _validate(patch, partial=True)
        if problem:
            return Outcome.failure(ValidationError(problem))
        try:
            found = self.store.update('books', book_id, values)
        except StoreError:
            current_app.logger.exception('Error updating book %s', book_id)
            return Outcome.failure(PersistenceError('Error updating book'))
        if not found:
            return Outcome.failure(NotFoundError('Book not found'))
        return self.get_book(book_id)

    def delete_book(self, book_id: int) -> Outcome:
        """Delete a book; an id that is already gone counts as deleted."""
        try:
            self.store.delete('books', book_id)
        except StoreError:
            current_app.logger.exception('Error deleting book %s', book_id)
            return Outcome.failure(PersistenceError('Error deleting book'))
        return Outcome.success()
