import pytest

from app import create_app
from models import db, Admin, Book, BorrowRecord, OneTimeCode, User
from services import PasswordHasher

from conftest import BrokenStore, FailingNotifier


def test_register_then_login(client, app, register_payload):
    resp = client.post('/api/auth/register', json=register_payload)
    assert resp.status_code == 201
    assert resp.get_json() == {'message': 'User registered successfully!'}

    user = User.query.filter_by(email='ada@example.com').first()
    assert user is not None
    assert user.city == 'London'
    assert user.password_hash != register_payload['password']
    assert 'password' not in resp.get_data(as_text=True)

    resp = client.post(
        '/api/auth/login',
        json={'email': 'ada@example.com', 'password': 'analytical-engine', 'userType': 'user'},
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['displayName'] == 'Ada'
    assert body['role'] == 'user'


def test_register_missing_field_is_rejected(client, store, register_payload):
    register_payload['username'] = ''
    resp = client.post('/api/auth/register', json=register_payload)
    assert resp.status_code == 400
    assert resp.get_json()['message'] == 'Please fill all required fields.'
    assert store.count() == 0


def test_register_keeps_numeric_zip(client, register_payload):
    register_payload['zip'] = 90210
    assert client.post('/api/auth/register', json=register_payload).status_code == 201
    assert User.query.filter_by(email='ada@example.com').first().zip == '90210'


def test_register_rejects_structured_address(client, store, register_payload):
    register_payload['city'] = ['London']
    resp = client.post('/api/auth/register', json=register_payload)
    assert resp.status_code == 400
    assert resp.get_json()['message'] == 'city must be text.'
    assert store.count() == 0


def test_register_duplicate_email_is_a_store_failure(client, register_payload):
    assert client.post('/api/auth/register', json=register_payload).status_code == 201
    register_payload['username'] = 'ada2'
    resp = client.post('/api/auth/register', json=register_payload)
    assert resp.status_code == 500
    assert resp.get_json() == {'message': 'Failed to register user'}
    assert User.query.count() == 1


def test_login_failures_do_not_reveal_which_part_was_wrong(client, register_payload):
    client.post('/api/auth/register', json=register_payload)
    unknown = client.post(
        '/api/auth/login', json={'email': 'nobody@example.com', 'password': 'x', 'userType': 'user'}
    )
    wrong = client.post(
        '/api/auth/login', json={'email': 'ada@example.com', 'password': 'wrong', 'userType': 'user'}
    )
    assert unknown.status_code == wrong.status_code == 401
    assert unknown.get_data() == wrong.get_data()


@pytest.mark.parametrize('role', ['librarian', '', None, 'USER'])
def test_login_rejects_unknown_role(client, store, role):
    resp = client.post('/api/auth/login', json={'email': 'a@b.c', 'password': 'pw', 'userType': role})
    assert resp.status_code == 400
    assert store.count() == 0


def test_admin_login_uses_admin_table(client, app, register_payload):
    client.post('/api/auth/register', json=register_payload)
    # a registered user is not an admin
    resp = client.post(
        '/api/auth/login',
        json={'email': 'ada@example.com', 'password': 'analytical-engine', 'userType': 'admin'},
    )
    assert resp.status_code == 401

    hasher = PasswordHasher(method=app.config['PASSWORD_HASH_METHOD'])
    db.session.add(Admin(first_name='Grace', email='grace@example.com', password_hash=hasher.hash('cobol')))
    db.session.commit()
    resp = client.post(
        '/api/auth/login', json={'email': 'grace@example.com', 'password': 'cobol', 'role': 'admin'}
    )
    assert resp.status_code == 200
    assert resp.get_json()['displayName'] == 'Grace'
    assert resp.get_json()['role'] == 'admin'


def test_login_store_failure_is_500():
    app = create_app('testing', store=BrokenStore())
    resp = app.test_client().post(
        '/api/auth/login', json={'email': 'a@b.c', 'password': 'pw', 'userType': 'user'}
    )
    assert resp.status_code == 500
    assert 'connection refused' not in resp.get_data(as_text=True)


def test_send_otp_delivers_and_does_not_echo_code(client, outbox):
    resp = client.post('/api/auth/send-otp', json={'email': 'ada@example.com'})
    assert resp.status_code == 200
    assert resp.get_json() == {'message': 'OTP sent successfully'}
    assert len(outbox.messages) == 1
    message = outbox.messages[0]
    assert message.to_address == 'ada@example.com'
    assert message.subject == 'Your OTP Code'
    code = message.body.rsplit(' ', 1)[-1]
    assert len(code) == 6 and code.isdigit()
    assert OneTimeCode.query.filter_by(email='ada@example.com').count() == 1

    resp = client.post('/api/auth/verify-otp', json={'email': 'ada@example.com', 'otp': code})
    assert resp.status_code == 200
    # codes are single use
    resp = client.post('/api/auth/verify-otp', json={'email': 'ada@example.com', 'otp': code})
    assert resp.status_code == 401


def test_send_otp_echoes_code_when_enabled(outbox):
    app = create_app('testing', {'OTP_ECHO_CODE': True}, notifier=outbox)
    with app.app_context():
        db.create_all()
        resp = app.test_client().post('/api/auth/send-otp', json={'email': 'dev@example.com'})
    assert resp.status_code == 200
    assert resp.get_json()['otp'] == outbox.messages[0].body.rsplit(' ', 1)[-1]


def test_send_otp_delivery_failure():
    app = create_app('testing', notifier=FailingNotifier())
    with app.app_context():
        db.create_all()
        resp = app.test_client().post('/api/auth/send-otp', json={'email': 'ada@example.com'})
        assert resp.status_code == 500
        assert resp.get_json() == {'message': 'Failed to send OTP'}
        assert OneTimeCode.query.count() == 0


def test_book_crud(client):
    resp = client.post(
        '/api/books',
        json={'title': 'Dune', 'description': 'Desert planet', 'is_available': True, 'imgsrc': 'd.png'},
    )
    assert resp.status_code == 201
    created = resp.get_json()
    assert created['title'] == 'Dune'
    book_id = created['id']

    resp = client.get('/api/books')
    assert resp.status_code == 200
    assert [b['title'] for b in resp.get_json()] == ['Dune']

    resp = client.put(f'/api/books/{book_id}', json={'is_available': False})
    assert resp.status_code == 200
    assert resp.get_json()['is_available'] is False

    resp = client.delete(f'/api/books/{book_id}')
    assert resp.status_code == 200
    assert client.get(f'/api/books/{book_id}').status_code == 404
    # deleting again is still a success
    assert client.delete(f'/api/books/{book_id}').status_code == 200


def test_create_book_requires_all_fields(client):
    resp = client.post('/api/books', json={'title': 'Dune'})
    assert resp.status_code == 400
    assert Book.query.count() == 0


def test_update_missing_book_is_404(client):
    resp = client.put('/api/books/999', json={'title': 'Nothing'})
    assert resp.status_code == 404


def test_book_with_borrow_records_cannot_be_deleted(client, book):
    client.post('/api/borrowedbooks', json={'book_id': book['id']})
    resp = client.delete(f"/api/books/{book['id']}")
    assert resp.status_code == 500
    assert db.session.get(Book, book['id']) is not None


def test_borrowed_books_flow(client, book):
    resp = client.post('/api/borrowedbooks', json={'book_id': book['id']})
    assert resp.status_code == 201
    record_id = resp.get_json()['id']
    assert resp.get_json()['status'] == 'borrowed'

    resp = client.get('/api/borrowedbooks')
    assert resp.status_code == 200
    entries = resp.get_json()
    assert len(entries) == 1
    assert entries[0]['books'] == {'title': 'Dune', 'imgsrc': 'd.png'}

    resp = client.put(f'/api/borrowedbooks/{record_id}', json={'status': 'returned'})
    assert resp.status_code == 200
    assert db.session.get(BorrowRecord, record_id).status == 'returned'

    # same status again is a no-op success
    resp = client.put(f'/api/borrowedbooks/{record_id}', json={'status': 'returned'})
    assert resp.status_code == 200


def test_borrowed_status_errors(client, book):
    record_id = client.post('/api/borrowedbooks', json={'book_id': book['id']}).get_json()['id']
    assert client.put('/api/borrowedbooks/999', json={'status': 'returned'}).status_code == 404
    resp = client.put(f'/api/borrowedbooks/{record_id}', json={'status': 'lost'})
    assert resp.status_code == 400
    assert db.session.get(BorrowRecord, record_id).status == 'borrowed'


def test_open_loan_for_missing_book(client):
    resp = client.post('/api/borrowedbooks', json={'book_id': 42})
    assert resp.status_code == 404


def test_custom_status_set_from_config(outbox):
    app = create_app('testing', {'BORROW_STATUSES': ('borrowed', 'lost')}, notifier=outbox)
    with app.app_context():
        db.create_all()
        client = app.test_client()
        book_id = client.post(
            '/api/books',
            json={'title': 'Emma', 'description': 'Austen', 'is_available': True, 'imgsrc': 'e.png'},
        ).get_json()['id']
        record_id = client.post('/api/borrowedbooks', json={'book_id': book_id}).get_json()['id']
        assert client.put(f'/api/borrowedbooks/{record_id}', json={'status': 'lost'}).status_code == 200
        assert client.put(f'/api/borrowedbooks/{record_id}', json={'status': 'returned'}).status_code == 400


def test_unknown_route_and_headers(client):
    resp = client.get('/api/nothing-here')
    assert resp.status_code == 404
    assert 'message' in resp.get_json()
    resp = client.get('/api/books')
    assert resp.headers['X-Content-Type-Options'] == 'nosniff'
    assert resp.headers['Access-Control-Allow-Origin'] == '*'


def test_malformed_json_is_treated_as_empty(client, store):
    resp = client.post('/api/auth/register', data='not json', content_type='application/json')
    assert resp.status_code == 400
    assert store.count() == 0
