"""
Contact registry core: model, codec, id allocation, registry, file storage.

Pure and interaction-free; shells and servers supply validated strings
and render the results.
"""

from contact_book.contacts.models import Contact, ContactField, UNKNOWN_BIRTHDAY
from contact_book.contacts.errors import (
    AuthError,
    AuthErrorKind,
    ContactBookError,
    FormatError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from contact_book.contacts.registry import (
    BirthdayWeek,
    ContactRegistry,
    QueryResult,
    QueryStatus,
)
from contact_book.contacts.storage import load_registry, save_registry

__all__ = [
    "Contact",
    "ContactField",
    "UNKNOWN_BIRTHDAY",
    "AuthError",
    "AuthErrorKind",
    "ContactBookError",
    "FormatError",
    "NotFoundError",
    "TransportError",
    "ValidationError",
    "BirthdayWeek",
    "ContactRegistry",
    "QueryResult",
    "QueryStatus",
    "load_registry",
    "save_registry",
]
