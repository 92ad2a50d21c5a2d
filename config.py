"""Application configuration profiles."""
from __future__ import annotations

import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_DB_URI = os.environ.get('DATABASE_URL', f"sqlite:///{os.path.join(BASE_DIR, 'library.db')}")


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.environ.get(name)
    if not value:
        return default
    return tuple(item.strip() for item in value.split(',') if item.strip())


class BaseConfig:
    SQLALCHEMY_DATABASE_URI = DEFAULT_DB_URI
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    PORT = int(os.environ.get('PORT', '5000'))
    API_PREFIX = os.environ.get('API_PREFIX', '/api')
    CORS_ORIGIN = os.environ.get('CORS_ORIGIN', '*')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # outbound mail; an empty MAIL_SERVER keeps messages in the in-memory outbox
    MAIL_SERVER = os.environ.get('MAIL_SERVER', '')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', '587'))
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_USE_TLS = _env_flag('MAIL_USE_TLS', True)
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'noreply@library.local')
    MAIL_TIMEOUT = float(os.environ.get('MAIL_TIMEOUT', '10'))

    OTP_TTL_SECONDS = int(os.environ.get('OTP_TTL_SECONDS', '300'))
    OTP_ECHO_CODE = _env_flag('OTP_ECHO_CODE', False)

    BORROW_STATUSES = _env_list('BORROW_STATUSES', ('borrowed', 'returned', 'overdue'))
    PASSWORD_HASH_METHOD = os.environ.get('PASSWORD_HASH_METHOD', 'scrypt')


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    OTP_ECHO_CODE = _env_flag('OTP_ECHO_CODE', True)


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    MAIL_SERVER = ''
    OTP_ECHO_CODE = False
    # fast hashing keeps the suite quick; production stays on scrypt
    PASSWORD_HASH_METHOD = 'pbkdf2:sha256:1000'


class ProductionConfig(BaseConfig):
    DEBUG = False
    OTP_ECHO_CODE = False


config_by_name = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}
