# errors.py

import functools
import logging
from enum import Enum

from pymongo.errors import ConnectionFailure, ExecutionTimeout, OperationFailure, PyMongoError

logger = logging.getLogger(__name__)

# MongoDB server error codes
UNAUTHORIZED_CODE = 13
AUTHENTICATION_FAILED_CODE = 18


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    NETWORK = "network"
    UNKNOWN = "unknown"


class VetConnectError(Exception):
    """Base class for errors raised by the service layer."""


class StoreError(VetConnectError):
    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @classmethod
    def not_found(cls, entity: str, entity_id: str) -> "StoreError":
        return cls(ErrorKind.NOT_FOUND, f"{entity} {entity_id} not found.")

    @classmethod
    def from_pymongo(cls, error: PyMongoError) -> "StoreError":
        if isinstance(error, (ConnectionFailure, ExecutionTimeout)):
            kind = ErrorKind.NETWORK
        elif isinstance(error, OperationFailure) and error.code in (UNAUTHORIZED_CODE, AUTHENTICATION_FAILED_CODE):
            kind = ErrorKind.PERMISSION_DENIED
        else:
            kind = ErrorKind.UNKNOWN
        return cls(kind, str(error))


class InvalidTransitionError(VetConnectError):
    def __init__(self, appointment_id: str, current: str, target: str):
        super().__init__(f"Appointment {appointment_id} cannot move from '{current}' to '{target}'.")
        self.appointment_id = appointment_id
        self.current = current
        self.target = target


class ProfileRequired(VetConnectError):
    """The account is signed in but has not completed profile setup."""


def store_operation(action: str):
    """Logs and re-raises store failures of an accessor as StoreError."""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except PyMongoError as e:
                logger.error(f"Error {action}: {e}")
                raise StoreError.from_pymongo(e) from e
        return wrapper
    return decorator
