"""
In-memory contact registry.

Owns the ordered contact list plus the used/free id sets.
Invariants:
- no two contacts share an id
- every contact id is in used_ids
- used_ids and free_ids are disjoint

Validation and lookup failures are returned as error values
(ValidationError, NotFoundError), never raised.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Iterator, Optional, Union

from contact_book.contacts import codec
from contact_book.contacts.errors import NotFoundError, ValidationError
from contact_book.contacts.ids import next_id
from contact_book.contacts.models import Contact, ContactField


logger = logging.getLogger(__name__)


SEARCH_FIELDS = (
    ContactField.FIRST_NAME,
    ContactField.SECOND_NAME,
    ContactField.PHONE,
)
FILTER_FIELDS = SEARCH_FIELDS + (
    ContactField.EMAIL,
    ContactField.DATE_OF_BIRTH,
)
EDIT_FIELDS = FILTER_FIELDS

BREAKDOWN_LIMIT = 10


class QueryStatus(str, Enum):
    OK = "ok"
    NO_MATCHES = "no_matches"
    EMPTY_REGISTRY = "empty_registry"
    INVALID_DATES = "invalid_dates"


@dataclass
class QueryResult:
    """Result of search/filter. Status separates 'no matches' from 'registry empty'."""

    status: QueryStatus
    contacts: list[Contact] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "contacts": [c.to_dict() for c in self.contacts],
            "total": len(self.contacts),
        }


@dataclass(frozen=True)
class InvalidBirthday:
    """Birth date that is not a real calendar date in the computed year."""

    contact: Contact
    year: int
    message: str


@dataclass
class BirthdayWeek:
    """Birthdays falling in the Monday-Sunday week containing `today`."""

    week_start: date
    week_end: date
    entries: list[tuple[Contact, date]] = field(default_factory=list)
    invalid: list[InvalidBirthday] = field(default_factory=list)
    empty_registry: bool = False

    @property
    def contacts(self) -> list[Contact]:
        return [contact for contact, _ in self.entries]

    @property
    def status(self) -> QueryStatus:
        if self.empty_registry:
            return QueryStatus.EMPTY_REGISTRY
        if self.invalid:
            return QueryStatus.INVALID_DATES
        if not self.entries:
            return QueryStatus.NO_MATCHES
        return QueryStatus.OK

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "week_start": self.week_start.isoformat(),
            "week_end": self.week_end.isoformat(),
            "birthdays": [
                {**c.to_dict(), "next_birthday": d.isoformat()} for c, d in self.entries
            ],
            "invalid": [
                {"id": i.contact.id, "date_of_birth": i.contact.date_of_birth, "message": i.message}
                for i in self.invalid
            ],
        }


def _birthday_sort_key(contact: Contact) -> tuple:
    # Unknown birth dates go last
    if not contact.has_birthday:
        return (1, 0, 0)
    day, month = codec.parse_day_month(contact.date_of_birth)
    return (0, month, day)


class ContactRegistry:
    """Ordered set of contacts with id allocation and reuse."""

    def __init__(self, contacts: Optional[Iterable[Contact]] = None):
        self.contacts: list[Contact] = []
        self.used_ids: set[int] = set()
        self.free_ids: set[int] = set()
        if contacts is not None:
            self._insert_unique(contacts)

    @classmethod
    def from_text(cls, text: str) -> "ContactRegistry":
        registry = cls()
        registry.load_text(text)
        return registry

    def __len__(self) -> int:
        return len(self.contacts)

    def __iter__(self) -> Iterator[Contact]:
        return iter(self.contacts)

    @property
    def is_empty(self) -> bool:
        return not self.contacts

    def _insert_unique(self, contacts: Iterable[Contact]) -> int:
        loaded = 0
        for contact in contacts:
            if contact.id in self.used_ids:
                logger.debug(f"Dropping duplicate contact id {contact.id}")
                continue
            self.contacts.append(contact)
            self.used_ids.add(contact.id)
            self.free_ids.discard(contact.id)
            loaded += 1
        return loaded

    # =========================================================================
    # Loading / serialization
    # =========================================================================

    def load_text(self, text: str) -> int:
        """
        Decode a blob and insert every contact whose id is not yet used.

        First occurrence of an id wins. Returns the number loaded.
        """
        decoded = codec.decode_blob(text)
        loaded = self._insert_unique(decoded)
        if loaded < len(decoded):
            logger.info(f"Dropped {len(decoded) - loaded} contact(s) with duplicate ids")
        return loaded

    def replace_all(self, contacts: Iterable[Contact]) -> int:
        """Replace every contact (sync download). Clears the free id set."""
        self.contacts = []
        self.used_ids = set()
        self.free_ids = set()
        return self._insert_unique(contacts)

    def to_text(self) -> str:
        return codec.encode_all(self.contacts)

    # =========================================================================
    # CRUD
    # =========================================================================

    def get(self, contact_id: int) -> Optional[Contact]:
        for contact in self.contacts:
            if contact.id == contact_id:
                return contact
        return None

    def _require(self, contact_id: int) -> Union[Contact, NotFoundError]:
        contact = self.get(contact_id)
        if contact is None:
            return NotFoundError(
                message=f"Contact with ID {contact_id} not found",
                contact_id=contact_id,
            )
        return contact

    def add(
        self,
        first_name: str,
        second_name: str,
        phone: str,
        email: str,
    ) -> Union[Contact, ValidationError]:
        """
        Validate all fields, then create the contact with the next id.

        The first invalid field aborts the add; no id is consumed.
        """
        values = {
            ContactField.FIRST_NAME: first_name,
            ContactField.SECOND_NAME: second_name,
            ContactField.PHONE: phone,
            ContactField.EMAIL: email,
        }
        for contact_field, value in values.items():
            error = codec.validate_field(contact_field, value)
            if error is not None:
                return error

        contact = Contact(
            id=next_id(self.used_ids, self.free_ids),
            first_name=first_name.strip(),
            second_name=second_name.strip(),
            phone=phone.strip(),
            email=email.strip(),
        )
        self.used_ids.add(contact.id)
        self.contacts.append(contact)
        logger.debug(f"Added contact {contact.id}")
        return contact

    def remove(self, contact_id: int) -> Union[Contact, NotFoundError]:
        """Delete a contact and free its id for reuse."""
        contact = self._require(contact_id)
        if isinstance(contact, NotFoundError):
            return contact

        self.contacts.remove(contact)
        self.used_ids.discard(contact_id)
        self.free_ids.add(contact_id)
        logger.debug(f"Removed contact {contact_id}")
        return contact

    def edit(
        self,
        contact_id: int,
        contact_field: Union[ContactField, str],
        value: Optional[str],
    ) -> Union[Contact, ValidationError, NotFoundError]:
        """Change one field. An invalid value leaves the field unchanged."""
        contact_field = ContactField.parse(contact_field)
        contact = self._require(contact_id)
        if isinstance(contact, NotFoundError):
            return contact

        if contact_field is ContactField.DATE_OF_BIRTH:
            error = codec.set_date_of_birth(contact, value)
            return error if error is not None else contact

        error = codec.validate_field(contact_field, value)
        if error is not None:
            return error

        setattr(contact, contact_field.attribute, value.strip())
        return contact

    def set_date_of_birth(
        self,
        contact_id: int,
        value: Optional[str],
    ) -> Union[Contact, ValidationError, NotFoundError]:
        return self.edit(contact_id, ContactField.DATE_OF_BIRTH, value)

    # =========================================================================
    # Queries
    # =========================================================================

    def _match(
        self,
        contact_field: Union[ContactField, str],
        query: str,
        allowed: tuple[ContactField, ...],
    ) -> Union[QueryResult, ValidationError]:
        contact_field = ContactField.parse(contact_field)
        if contact_field not in allowed:
            raise ValueError(
                f"Field '{contact_field.value}' is not supported here. "
                f"Must be one of: {[f.value for f in allowed]}"
            )

        if self.is_empty:
            return QueryResult(status=QueryStatus.EMPTY_REGISTRY)

        needle = (query or "").strip().casefold()
        if not needle:
            return ValidationError(message="Empty query", field=contact_field.value, value=query)

        found = [c for c in self.contacts if needle in c.get(contact_field).casefold()]
        status = QueryStatus.OK if found else QueryStatus.NO_MATCHES
        return QueryResult(status=status, contacts=found)

    def search(
        self,
        contact_field: Union[ContactField, str],
        query: str,
    ) -> Union[QueryResult, ValidationError]:
        """Case-insensitive substring search over first name, second name, phone."""
        return self._match(contact_field, query, SEARCH_FIELDS)

    def filter(
        self,
        contact_field: Union[ContactField, str],
        query: str,
    ) -> Union[QueryResult, ValidationError]:
        """Like search, also over email and birth date."""
        return self._match(contact_field, query, FILTER_FIELDS)

    def sort(self, contact_field: Union[ContactField, str]) -> list[Contact]:
        """
        Stable sort by one field.

        Text fields use string order. Birth dates use calendar (month, day)
        order with unknown dates last.
        """
        contact_field = ContactField.parse(contact_field)
        if contact_field is ContactField.DATE_OF_BIRTH:
            return sorted(self.contacts, key=_birthday_sort_key)
        return sorted(self.contacts, key=lambda c: c.get(contact_field))

    def upcoming_birthdays(self, today: Optional[date] = None) -> BirthdayWeek:
        """
        Contacts whose next birthday falls in the current Monday-Sunday week.

        Next birthday is this year's date, or next year's if it already
        passed. Dates that do not exist in that year are reported in
        `invalid` rather than skipped.
        """
        today = today or date.today()
        week_start = today - timedelta(days=today.weekday())
        week_end = week_start + timedelta(days=6)
        result = BirthdayWeek(week_start=week_start, week_end=week_end)

        if self.is_empty:
            result.empty_registry = True
            return result

        for contact in self.contacts:
            if not contact.has_birthday:
                continue

            day, month = codec.parse_day_month(contact.date_of_birth)
            year = today.year
            try:
                upcoming = date(year, month, day)
                if upcoming < today:
                    year += 1
                    upcoming = date(year, month, day)
            except ValueError as e:
                result.invalid.append(InvalidBirthday(contact=contact, year=year, message=str(e)))
                continue

            if week_start <= upcoming <= week_end:
                result.entries.append((contact, upcoming))

        result.entries.sort(key=lambda entry: entry[1])
        return result

    def name_breakdown(self, limit: int = BREAKDOWN_LIMIT) -> list[tuple[str, float]]:
        """Top first names with their share of all contacts, in percent."""
        if self.is_empty:
            return []

        total = len(self.contacts)
        counts = Counter(c.first_name for c in self.contacts)
        return [
            (name, round(count / total * 100, 1))
            for name, count in counts.most_common(limit)
        ]
