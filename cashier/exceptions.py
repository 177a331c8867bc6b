"""
Cashier domain exceptions.

Every error carries a stable machine-readable `kind` and the HTTP status the
views answer with. Messages are safe to return to clients.
"""
from contextlib import contextmanager

from botocore.exceptions import BotoCoreError, ClientError

from aws_lib.dynamodb_client import DynamoDBError


class CashierError(Exception):
    """Base exception for cashier errors"""
    kind = "internal_error"
    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        # extra context for logs only, never sent to clients
        self.details = details

    def to_response(self):
        return {"error": self.kind, "details": self.message}


class ValidationError(CashierError):
    """Raised when a request body is missing fields or is malformed"""
    kind = "validation_error"
    status_code = 400


class AuthenticationError(CashierError):
    """Raised when a staff-only endpoint is called without a valid token"""
    kind = "unauthorized"
    status_code = 401


class NotFoundError(CashierError):
    """Raised when a customer or order referenced by a request does not exist"""
    kind = "not_found"
    status_code = 404


class UpstreamError(CashierError):
    """Raised when the payment gateway fails or answers without a token"""
    kind = "upstream_error"
    status_code = 500


class PersistenceError(CashierError):
    """Raised when a store write fails"""
    kind = "persistence_error"
    status_code = 500


@contextmanager
def store_errors(action):
    """Re-raise store failures as PersistenceError with a client-safe message."""
    try:
        yield
    except (ClientError, BotoCoreError, DynamoDBError) as e:
        raise PersistenceError(f"Failed to {action}", details=str(e)) from e
