from __future__ import annotations

import os

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from config import BaseConfig, config_by_name
from models import db
from services import (
    AuthService,
    BorrowLedger,
    CatalogService,
    Notifier,
    OtpService,
    Outcome,
    PasswordHasher,
    RecordStore,
    SQLAlchemyRecordStore,
    notifier_from_config,
)

# request keys sent by the web client -> field names used by the services
REGISTER_KEYS = {
    'firstName': 'first_name',
    'lastName': 'last_name',
    'username': 'username',
    'email': 'email',
    'password': 'password',
    'address': 'address',
    'address2': 'address2',
    'city': 'city',
    'state': 'state',
    'zip': 'zip',
}


def _load_config(app: Flask, config_name: str | None, test_config: dict | None) -> None:
    resolved_name = config_name or os.environ.get('FLASK_CONFIG', 'development')
    config_cls = config_by_name.get(resolved_name, BaseConfig)
    app.config.from_object(config_cls)
    if test_config:
        app.config.update(test_config)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _failure(outcome: Outcome):
    error = outcome.error
    return jsonify({'message': error.message}), error.status_code


def create_app(
    config_name: str | None = None,
    test_config: dict | None = None,
    *,
    store: RecordStore | None = None,
    notifier: Notifier | None = None,
):
    if isinstance(config_name, dict) and test_config is None:
        test_config = config_name
        config_name = None
    app = Flask(__name__)
    _load_config(app, config_name, test_config)
    app.json.sort_keys = False
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))
    db.init_app(app)

    store = store or SQLAlchemyRecordStore()
    notifier = notifier or notifier_from_config(app.config)
    hasher = PasswordHasher(method=app.config['PASSWORD_HASH_METHOD'])
    auth_service = AuthService(store, hasher)
    otp_service = OtpService(store, notifier, ttl_seconds=app.config['OTP_TTL_SECONDS'])
    catalog_service = CatalogService(store)
    ledger = BorrowLedger(store, app.config['BORROW_STATUSES'])

    prefix = app.config['API_PREFIX'].rstrip('/')

    @app.after_request
    def set_response_headers(response):
        response.headers.setdefault('X-Frame-Options', 'DENY')
        response.headers.setdefault('X-Content-Type-Options', 'nosniff')
        response.headers.setdefault('Referrer-Policy', 'no-referrer')
        response.headers.setdefault('Cache-Control', 'no-store')
        response.headers.setdefault('Access-Control-Allow-Origin', app.config['CORS_ORIGIN'])
        response.headers.setdefault('Access-Control-Allow-Methods', 'GET, POST, PUT, DELETE, OPTIONS')
        response.headers.setdefault('Access-Control-Allow-Headers', 'Content-Type')
        return response

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({'message': exc.description or exc.name}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        app.logger.exception('Unhandled error on %s %s', request.method, request.path)
        return jsonify({'message': 'An unexpected error occurred.'}), 500

    @app.route(f'{prefix}/auth/register', methods=['POST'])
    def register():
        data = _json_body()
        fields = {target: data.get(key, data.get(target)) for key, target in REGISTER_KEYS.items()}
        outcome = auth_service.register(fields)
        if not outcome.ok:
            return _failure(outcome)
        return jsonify({'message': outcome.value}), 201

    @app.route(f'{prefix}/auth/login', methods=['POST'])
    def login():
        data = _json_body()
        outcome = auth_service.login(
            data.get('email'),
            data.get('password'),
            data.get('userType', data.get('role')),
        )
        if not outcome.ok:
            return _failure(outcome)
        return jsonify({'message': 'Login successful!', **outcome.value.to_dict()})

    @app.route(f'{prefix}/auth/send-otp', methods=['POST'])
    def send_otp():
        outcome = otp_service.issue_code(_json_body().get('email'))
        if not outcome.ok:
            return _failure(outcome)
        payload = {'message': 'OTP sent successfully'}
        if app.config.get('OTP_ECHO_CODE'):
            payload['otp'] = outcome.value
        return jsonify(payload)

    @app.route(f'{prefix}/auth/verify-otp', methods=['POST'])
    def verify_otp():
        data = _json_body()
        outcome = otp_service.verify_code(data.get('email'), data.get('otp', data.get('code')))
        if not outcome.ok:
            return _failure(outcome)
        return jsonify({'message': outcome.value})

    @app.route(f'{prefix}/books', methods=['GET'])
    def list_books():
        outcome = catalog_service.list_books()
        if not outcome.ok:
            return _failure(outcome)
        return jsonify(outcome.value)

    @app.route(f'{prefix}/books', methods=['POST'])
    def create_book():
        outcome = catalog_service.create_book(_json_body())
        if not outcome.ok:
            return _failure(outcome)
        return jsonify(outcome.value), 201

    @app.route(f'{prefix}/books/<int:book_id>', methods=['GET'])
    def get_book(book_id: int):
        outcome = catalog_service.get_book(book_id)
        if not outcome.ok:
            return _failure(outcome)
        return jsonify(outcome.value)

    @app.route(f'{prefix}/books/<int:book_id>', methods=['PUT'])
    def update_book(book_id: int):
        outcome = catalog_service.update_book(book_id, _json_body())
        if not outcome.ok:
            return _failure(outcome)
        return jsonify(outcome.value)

    @app.route(f'{prefix}/books/<int:book_id>', methods=['DELETE'])
    def delete_book(book_id: int):
        outcome = catalog_service.delete_book(book_id)
        if not outcome.ok:
            return _failure(outcome)
        return jsonify({'message': 'Book deleted'})

    @app.route(f'{prefix}/borrowedbooks', methods=['GET'])
    def list_borrowed():
        outcome = ledger.list_borrowed()
        if not outcome.ok:
            return _failure(outcome)
        return jsonify([entry.to_dict() for entry in outcome.value])

    @app.route(f'{prefix}/borrowedbooks', methods=['POST'])
    def open_loan():
        data = _json_body()
        outcome = ledger.open_loan(
            book_id=data.get('book_id'),
            user_id=data.get('user_id'),
            status=data.get('status', 'borrowed'),
        )
        if not outcome.ok:
            return _failure(outcome)
        record = dict(outcome.value)
        if record.get('borrowed_at'):
            record['borrowed_at'] = record['borrowed_at'].isoformat()
        return jsonify(record), 201

    @app.route(f'{prefix}/borrowedbooks/<int:record_id>', methods=['PUT'])
    def update_borrow_status(record_id: int):
        outcome = ledger.update_status(record_id, _json_body().get('status'))
        if not outcome.ok:
            return _failure(outcome)
        return jsonify({'message': 'Borrowed book status updated'})

    return app


if __name__ == '__main__':
    application = create_app()
    with application.app_context():
        db.create_all()
    application.run(port=application.config['PORT'], debug=application.config.get('DEBUG', False))
