"""Borrowed-book records and their status lifecycle."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from flask import current_app

from .outcomes import NotFoundError, Outcome, PersistenceError, ValidationError
from .store import RecordStore, StoreError

DEFAULT_STATUSES = ('borrowed', 'returned', 'overdue')


@dataclass(frozen=True)
class BorrowedEntry:
    record: dict
    title: Optional[str]
    imgsrc: Optional[str]

    def to_dict(self):
        borrowed_at = self.record.get('borrowed_at')
        return {
            'id': self.record['id'],
            'book_id': self.record['book_id'],
            'user_id': self.record.get('user_id'),
            'status': self.record['status'],
            'borrowed_at': borrowed_at.isoformat() if borrowed_at else None,
            'books': {'title': self.title, 'imgsrc': self.imgsrc},
        }


class BorrowLedger:
    """Tracks borrow records; status values come from deployment config."""

    def __init__(self, store: RecordStore, statuses: Iterable[str] = DEFAULT_STATUSES):
        self.store = store
        self.statuses = frozenset(statuses)

    def _check_status(self, status: Any) -> Optional[ValidationError]:
        if not isinstance(status, str) or status not in self.statuses:
            allowed = ', '.join(sorted(self.statuses))
            return ValidationError(f'Status must be one of: {allowed}')
        return None

    def open_loan(self, *, book_id: Any, user_id: Any = None, status: str = 'borrowed') -> Outcome:
        if not isinstance(book_id, int) or isinstance(book_id, bool):
            return Outcome.failure(ValidationError('book_id must be an integer'))
        if user_id is not None and (not isinstance(user_id, int) or isinstance(user_id, bool)):
            return Outcome.failure(ValidationError('user_id must be an integer'))
        problem = self._check_status(status)
        if problem:
            return Outcome.failure(problem)
        try:
            if not self.store.select_where('books', {'id': book_id}):
                return Outcome.failure(NotFoundError('Book not found'))
            record = self.store.insert('borrowedbooks', {'book_id': book_id, 'user_id': user_id, 'status': status})
        except StoreError:
            current_app.logger.exception('Error recording loan of book %s', book_id)
            return Outcome.failure(PersistenceError('Error recording borrowed book'))
        current_app.logger.info('Book %s borrowed (record %s)', book_id, record['id'])
        return Outcome.success(record)

    def update_status(self, record_id: int, new_status: Any) -> Outcome:
        problem = self._check_status(new_status)
        if problem:
            return Outcome.failure(problem)
        try:
            rows = self.store.select_where('borrowedbooks', {'id': record_id})
            if not rows:
                return Outcome.failure(NotFoundError('Borrowed book not found'))
            if rows[0]['status'] == new_status:
                return Outcome.success()
            if not self.store.update('borrowedbooks', record_id, {'status': new_status}):
                # removed between the read and the write
                return Outcome.failure(NotFoundError('Borrowed book not found'))
        except StoreError:
            current_app.logger.exception('Error updating borrowed book status %s', record_id)
            return Outcome.failure(PersistenceError('Error updating borrowed book status'))
        current_app.logger.info('Borrow record %s moved from %s to %s', record_id, rows[0]['status'], new_status)
        return Outcome.success()

    def list_borrowed(self) -> Outcome:
        try:
            rows = self.store.select_where('borrowedbooks', embed={'books': ('title', 'imgsrc')})
        except StoreError:
            current_app.logger.exception('Error fetching borrowed books')
            return Outcome.failure(PersistenceError('Error fetching borrowed books'))
        entries = []
        for row in rows:
            book = row.pop('books', None) or {}
            entries.append(BorrowedEntry(record=row, title=book.get('title'), imgsrc=book.get('imgsrc')))
        return Outcome.success(entries)
