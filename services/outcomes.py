"""Typed service outcomes and the error taxonomy shared by every service."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar('T')


class ServiceError(RuntimeError):
    """Base class for failures reported through an ``Outcome``."""

    status_code = 500
    default_message = 'An unexpected error occurred.'

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(ServiceError):
    status_code = 400
    default_message = 'Invalid request.'


class AuthenticationError(ServiceError):
    status_code = 401
    default_message = 'Invalid email or password.'


class NotFoundError(ServiceError):
    status_code = 404
    default_message = 'Record not found.'


class PersistenceError(ServiceError):
    status_code = 500
    default_message = 'Failed to access the record store.'


class DeliveryError(ServiceError):
    status_code = 500
    default_message = 'Failed to deliver message.'


@dataclass(frozen=True)
class Outcome(Generic[T]):
    value: Optional[T] = None
    error: Optional[ServiceError] = None

    @classmethod
    def success(cls, value: Any = None) -> 'Outcome':
        return cls(value=value)

    @classmethod
    def failure(cls, error: ServiceError) -> 'Outcome':
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None
