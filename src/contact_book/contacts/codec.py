"""
Record codec for the bracketed line format.

Handles:
- Field validation patterns (names, phone, email, birth date)
- Decoding a single line or a whole blob into contacts
- Encoding contacts back to lines
- Setting the birth date with validation

Line format (one contact per line, brackets literal):
    [<id>] [<FirstName>] [<SecondName>] [<+7##########>] [<local@domain.tld>]
"""

import logging
import re
from typing import Iterable, Optional, Union

from contact_book.contacts.errors import FormatError, ValidationError
from contact_book.contacts.models import Contact, ContactField, UNKNOWN_BIRTHDAY


logger = logging.getLogger(__name__)


_EMAIL = r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"
_NAME = r"[A-ZА-ЯЁ][a-zа-яё]+"

NAME_PATTERN = re.compile(rf"^{_NAME}$")
PHONE_PATTERN = re.compile(r"^\+7\d{10}$")
EMAIL_PATTERN = re.compile(rf"^{_EMAIL}$")
DATE_OF_BIRTH_PATTERN = re.compile(r"^(0[1-9]|[12][0-9]|3[01])\.(0[1-9]|1[0-2])$")
ID_PATTERN = re.compile(r"^\d+$")

# Groups are separated by spaces only, so a record never spans lines
LINE_PATTERN = re.compile(
    r"\[(\d+)\] +"
    rf"\[({_NAME})] +"
    rf"\[({_NAME})] +"
    r"\[(\+7\d{10})] +"
    rf"\[({_EMAIL})]",
    re.MULTILINE,
)

FIELD_PATTERNS = {
    ContactField.FIRST_NAME: NAME_PATTERN,
    ContactField.SECOND_NAME: NAME_PATTERN,
    ContactField.PHONE: PHONE_PATTERN,
    ContactField.EMAIL: EMAIL_PATTERN,
    ContactField.DATE_OF_BIRTH: DATE_OF_BIRTH_PATTERN,
}

FIELD_HINTS = {
    ContactField.FIRST_NAME: "capital letter followed by lowercase letters",
    ContactField.SECOND_NAME: "capital letter followed by lowercase letters",
    ContactField.PHONE: "+7 followed by 10 digits",
    ContactField.EMAIL: "user@example.ru",
    ContactField.DATE_OF_BIRTH: "dd.mm, e.g. 15.06",
}


def _from_match(match: re.Match) -> Contact:
    return Contact(
        id=int(match.group(1)),
        first_name=match.group(2),
        second_name=match.group(3),
        phone=match.group(4),
        email=match.group(5),
    )


def decode_line(line: str) -> Union[Contact, FormatError]:
    """Decode one line. Returns FormatError if the line does not match."""
    match = LINE_PATTERN.search(line)
    if match is None:
        return FormatError(message=f"Invalid contact line: {line!r}", line=line)
    return _from_match(match)


def decode_blob(text: str) -> list[Contact]:
    """
    Decode every non-overlapping record match in text.

    Matches need not start at line boundaries; text between them is ignored.
    Duplicate ids are kept here; the registry drops them.
    """
    return [_from_match(m) for m in LINE_PATTERN.finditer(text)]


def decode_lines(lines: Iterable[str]) -> list[Contact]:
    """Decode line by line, logging and skipping lines that fail to match."""
    contacts = []
    for number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        result = decode_line(line)
        if isinstance(result, FormatError):
            logger.warning(f"Skipping line {number}: {result.message}")
            continue
        contacts.append(result)
    return contacts


def encode(contact: Contact) -> str:
    """Encode a contact. Birth date is not part of the stored line."""
    return (
        f"[{contact.id}] [{contact.first_name}] [{contact.second_name}] "
        f"[{contact.phone}] [{contact.email}]"
    )


def encode_all(contacts: Iterable[Contact]) -> str:
    return "\n".join(encode(c) for c in contacts)


def validate_field(field: ContactField, value: Optional[str]) -> Optional[ValidationError]:
    """Check a value against the field's pattern. Returns None when valid."""
    text = (value or "").strip()
    if FIELD_PATTERNS[field].match(text):
        return None
    return ValidationError(
        message=f"Invalid value for '{field.value}' (expected {FIELD_HINTS[field]})",
        field=field.value,
        value=value,
    )


def validate_id(value: Optional[str]) -> Optional[ValidationError]:
    if ID_PATTERN.match((value or "").strip()):
        return None
    return ValidationError(message="ID must be a non-negative integer", field="ID", value=value)


def set_date_of_birth(contact: Contact, value: Optional[str]) -> Optional[ValidationError]:
    """
    Set contact birth date.

    Blank input sets the unknown sentinel. An invalid value is rejected
    and the current value is kept.
    """
    if value is None or not value.strip():
        contact.date_of_birth = UNKNOWN_BIRTHDAY
        return None

    text = value.strip()
    error = validate_field(ContactField.DATE_OF_BIRTH, text)
    if error is not None:
        logger.warning(f"Rejected birth date {text!r} for contact {contact.id}")
        return error

    contact.date_of_birth = text
    return None


def parse_day_month(value: str) -> tuple[int, int]:
    """Split a 'dd.mm' string into (day, month)."""
    day, month = value.split(".")
    return int(day), int(month)
