"""One-time verification codes delivered by e-mail."""
from __future__ import annotations

import datetime
import hmac
import secrets
from typing import Any, Callable, Optional

from flask import current_app

from .notifier import Notifier, NotifierError
from .outcomes import AuthenticationError, DeliveryError, Outcome, PersistenceError, ValidationError
from .store import RecordStore, StoreError

CODE_MIN = 100000
CODE_MAX = 999999
OTP_SUBJECT = 'Your OTP Code'
OTP_BODY = 'Your OTP code is: {code}'


def generate_code() -> str:
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _aware(value: datetime.datetime) -> datetime.datetime:
    # sqlite hands datetimes back without tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


class OtpService:
    def __init__(
        self,
        store: RecordStore,
        notifier: Notifier,
        *,
        ttl_seconds: int = 300,
        clock: Optional[Callable[[], datetime.datetime]] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.ttl = datetime.timedelta(seconds=ttl_seconds)
        self.clock = clock or _utcnow

    def issue_code(self, email: Any) -> Outcome:
        """Send a fresh code to ``email`` and remember it until it expires.

        The outcome carries the code itself; whether it ever leaves the
        process is up to the caller.
        """
        if not isinstance(email, str) or not email.strip():
            return Outcome.failure(ValidationError('Please provide an email address.'))
        email = email.strip()
        code = generate_code()
        try:
            self.notifier.send(email, OTP_SUBJECT, OTP_BODY.format(code=code))
        except NotifierError:
            current_app.logger.exception('Error sending OTP to %s', email)
            return Outcome.failure(DeliveryError('Failed to send OTP'))

        issued_at = self.clock()
        try:
            # a new code supersedes every earlier one for this address
            for previous in self.store.select_where('otp_codes', {'email': email}):
                self.store.delete('otp_codes', previous['id'])
            self.store.insert(
                'otp_codes',
                {'email': email, 'code': code, 'issued_at': issued_at, 'expires_at': issued_at + self.ttl},
            )
        except StoreError:
            current_app.logger.exception('Error saving OTP for %s', email)
            return Outcome.failure(PersistenceError('Failed to send OTP'))
        current_app.logger.info('Issued OTP to %s', email)
        return Outcome.success(code)

    def verify_code(self, email: Any, code: Any) -> Outcome:
        if not isinstance(email, str) or not email.strip():
            return Outcome.failure(ValidationError('Please provide email and code.'))
        if not isinstance(code, (str, int)) or not str(code).strip():
            return Outcome.failure(ValidationError('Please provide email and code.'))
        email = email.strip()
        submitted = str(code).strip()

        try:
            candidates = self.store.select_where('otp_codes', {'email': email, 'consumed_at': None})
        except StoreError:
            current_app.logger.exception('Error fetching OTPs for %s', email)
            return Outcome.failure(PersistenceError('Failed to verify OTP'))

        now = self.clock()
        match = None
        for candidate in candidates:
            if _aware(candidate['expires_at']) <= now:
                continue
            # compare every live code so timing does not reveal which one matched
            if hmac.compare_digest(candidate['code'].encode('ascii'), submitted.encode('utf-8')) and match is None:
                match = candidate
        if match is None:
            return Outcome.failure(AuthenticationError('Invalid or expired code.'))

        try:
            consumed = self.store.update(
                'otp_codes', match['id'], {'consumed_at': now}, where={'consumed_at': None}
            )
        except StoreError:
            current_app.logger.exception('Error consuming OTP for %s', email)
            return Outcome.failure(PersistenceError('Failed to verify OTP'))
        if not consumed:
            current_app.logger.warning('OTP for %s was already used', email)
            return Outcome.failure(AuthenticationError('Invalid or expired code.'))
        current_app.logger.info('Verified OTP for %s', email)
        return Outcome.success('OTP verified successfully')

    def purge_expired(self) -> int:
        """Delete codes that have expired or been used; returns how many went."""
        now = self.clock()
        removed = 0
        for row in self.store.select_where('otp_codes'):
            if row['consumed_at'] is not None or _aware(row['expires_at']) <= now:
                self.store.delete('otp_codes', row['id'])
                removed += 1
        current_app.logger.info('Purged %d stale OTP codes', removed)
        return removed
