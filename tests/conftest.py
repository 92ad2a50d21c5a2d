import pytest

from app import create_app
from models import db
from services import NotifierError, OutboxNotifier, RecordStore, SQLAlchemyRecordStore, StoreError


class CountingStore(RecordStore):
    """Wraps a real store and records every call made through it."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = []

    def insert(self, table, record):
        self.calls.append(('insert', table))
        return self.inner.insert(table, record)

    def select_where(self, table, criteria=None, *, embed=None):
        self.calls.append(('select_where', table))
        return self.inner.select_where(table, criteria, embed=embed)

    def update(self, table, record_id, patch, *, where=None):
        self.calls.append(('update', table))
        return self.inner.update(table, record_id, patch, where=where)

    def delete(self, table, record_id):
        self.calls.append(('delete', table))
        return self.inner.delete(table, record_id)

    def count(self, operation=None):
        return len([call for call in self.calls if operation is None or call[0] == operation])


class BrokenStore(RecordStore):
    def insert(self, table, record):
        raise StoreError('connection refused')

    def select_where(self, table, criteria=None, *, embed=None):
        raise StoreError('connection refused')

    def update(self, table, record_id, patch, *, where=None):
        raise StoreError('connection refused')

    def delete(self, table, record_id):
        raise StoreError('connection refused')


class FailingNotifier(OutboxNotifier):
    def send(self, to_address, subject, body):
        raise NotifierError('mail relay unavailable')


@pytest.fixture
def outbox():
    return OutboxNotifier()


@pytest.fixture
def store():
    return CountingStore(SQLAlchemyRecordStore())


@pytest.fixture
def app(store, outbox):
    app = create_app('testing', store=store, notifier=outbox)
    with app.app_context():
        db.create_all()
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def register_payload():
    return {
        'firstName': 'Ada',
        'lastName': 'Lovelace',
        'username': 'ada',
        'email': 'ada@example.com',
        'password': 'analytical-engine',
        'city': 'London',
    }


@pytest.fixture
def book(app, store):
    return store.inner.insert(
        'books',
        {'title': 'Dune', 'description': 'Desert planet', 'is_available': True, 'imgsrc': 'd.png'},
    )
