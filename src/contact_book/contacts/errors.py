"""
Error taxonomy for the contact book.

Two families:
- Result errors (ValidationError, NotFoundError, FormatError) are returned,
  never raised. Callers check with isinstance() and re-prompt or skip.
- Raised errors (AuthError, TransportError) abort the current sync session
  or operation.

Both expose to_dict() for tool responses.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class ContactBookError:
    """Base for errors returned as values."""

    message: str

    kind = "error"

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


@dataclass(frozen=True)
class ValidationError(ContactBookError):
    """Field value does not match its required pattern."""

    field: Optional[str] = None
    value: Optional[str] = None

    kind = "validation"

    def to_dict(self) -> dict:
        return {
            "error": self.kind,
            "message": self.message,
            "field": self.field,
            "value": self.value,
        }


@dataclass(frozen=True)
class NotFoundError(ContactBookError):
    """Contact id (or remote object) is absent."""

    contact_id: Optional[int] = None

    kind = "not_found"

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message, "id": self.contact_id}


@dataclass(frozen=True)
class FormatError(ContactBookError):
    """A line does not match the record pattern."""

    line: str = ""

    kind = "format"

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message, "line": self.line}


class AuthErrorKind(str, Enum):
    INVALID_CODE = "invalid_code"
    TOKEN_REQUEST_FAILED = "token_request_failed"
    TOKEN_MISSING_IN_RESPONSE = "token_missing_in_response"
    NOT_CONFIGURED = "not_configured"
    NOT_AUTHENTICATED = "not_authenticated"


class AuthError(Exception):
    """
    Credential exchange failed.

    Aborts the sync session; the registry stays local-only.
    Callers branch on `kind`.
    """

    def __init__(self, kind: AuthErrorKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": "auth",
            "kind": self.kind.value,
            "message": self.message,
        }


class TransportError(Exception):
    """
    Network or file I/O failure during sync.

    Registry and remote state remain as before the attempt.
    """

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} failed: {message}")

    def to_dict(self) -> dict:
        return {
            "error": "transport",
            "operation": self.operation,
            "message": self.message,
        }
