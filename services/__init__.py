"""Service layer package for encapsulating business logic."""

from .auth import AuthService, Identity, Role  # noqa: F401
from .borrowing import BorrowedEntry, BorrowLedger  # noqa: F401
from .catalog import CatalogService  # noqa: F401
from .notifier import Notifier, NotifierError, OutboxNotifier, SmtpNotifier, notifier_from_config  # noqa: F401
from .otp import OtpService  # noqa: F401
from .outcomes import (  # noqa: F401
    AuthenticationError,
    DeliveryError,
    NotFoundError,
    Outcome,
    PersistenceError,
    ServiceError,
    ValidationError,
)
from .passwords import PasswordHasher  # noqa: F401
from .store import RecordStore, SQLAlchemyRecordStore, StoreError  # noqa: F401
