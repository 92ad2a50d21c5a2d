"""Registration and login against the identity tables."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from flask import current_app

from .outcomes import AuthenticationError, Outcome, PersistenceError, ValidationError
from .passwords import PasswordHasher
from .store import RecordStore, StoreError

REQUIRED_FIELDS = ('first_name', 'last_name', 'username', 'email', 'password')
ADDRESS_FIELDS = ('address', 'address2', 'city', 'state', 'zip')

LOGIN_FAILED = 'Invalid email or password.'


class Role(str, enum.Enum):
    USER = 'user'
    ADMIN = 'admin'

    @property
    def table(self) -> str:
        return 'users' if self is Role.USER else 'admins'

    @classmethod
    def parse(cls, value: Any) -> Optional['Role']:
        try:
            return cls(value)
        except (TypeError, ValueError):
            return None


@dataclass(frozen=True)
class Identity:
    display_name: str
    role: Role

    def to_dict(self):
        return {'displayName': self.display_name, 'role': self.role.value}


class AuthService:
    """Orchestrates registration and login over the record store."""

    def __init__(self, store: RecordStore, hasher: PasswordHasher):
        self.store = store
        self.hasher = hasher
        # verified against when the email is unknown so both failure paths hash once
        self._dummy_digest = hasher.hash('library-desk-placeholder')

    def register(self, fields: Mapping[str, Any]) -> Outcome:
        values = {}
        for name in REQUIRED_FIELDS:
            value = fields.get(name)
            if isinstance(value, str) and name != 'password':
                value = value.strip()
            if not value or not isinstance(value, str):
                return Outcome.failure(ValidationError('Please fill all required fields.'))
            values[name] = value
        password = values.pop('password')
        record = dict(values)
        for name in ADDRESS_FIELDS:
            value = fields.get(name)
            if value is None:
                record[name] = None
            elif isinstance(value, (str, int, float)) and not isinstance(value, bool):
                # clients send zip codes as numbers
                record[name] = str(value).strip() or None
            else:
                return Outcome.failure(ValidationError(f'{name} must be text.'))
        record['password_hash'] = self.hasher.hash(password)

        try:
            self.store.insert('users', record)
        except StoreError:
            current_app.logger.exception('Error inserting user %s', values['username'])
            return Outcome.failure(PersistenceError('Failed to register user'))
        current_app.logger.info('Registered user %s', values['username'])
        return Outcome.success('User registered successfully!')

    def login(self, email: Any, password: Any, role: Any) -> Outcome:
        parsed_role = role if isinstance(role, Role) else Role.parse(role)
        if parsed_role is None:
            return Outcome.failure(ValidationError('User type must be one of: user, admin.'))
        if not email or not password or not isinstance(email, str) or not isinstance(password, str):
            return Outcome.failure(ValidationError('Please provide email, password, and user type.'))
        email = email.strip()

        try:
            rows = self.store.select_where(parsed_role.table, {'email': email})
        except StoreError:
            current_app.logger.exception('Error fetching %s credentials', parsed_role.value)
            return Outcome.failure(PersistenceError('Failed to fetch user data.'))

        if not rows:
            self.hasher.verify(self._dummy_digest, password)
            current_app.logger.warning('Failed %s login attempt', parsed_role.value)
            return Outcome.failure(AuthenticationError(LOGIN_FAILED))

        row = rows[0]
        if not self.hasher.verify(row['password_hash'], password):
            current_app.logger.warning('Failed %s login attempt', parsed_role.value)
            return Outcome.failure(AuthenticationError(LOGIN_FAILED))

        if self.hasher.needs_rehash(row['password_hash']):
            self._upgrade_hash(parsed_role, row['id'], password)
        return Outcome.success(Identity(display_name=row['first_name'], role=parsed_role))

    def _upgrade_hash(self, role: Role, record_id: int, password: str) -> None:
        try:
            self.store.update(role.table, record_id, {'password_hash': self.hasher.hash(password)})
        except StoreError:
            current_app.logger.exception('Could not upgrade legacy password hash for %s %s', role.value, record_id)
        else:
            current_app.logger.info('Upgraded legacy password hash for %s %s', role.value, record_id)
