"""
Contact entity and field names.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union


# Placeholder for an unset birth date
UNKNOWN_BIRTHDAY = "Неизвестно"


class ContactField(str, Enum):
    """User-facing contact fields. Values are the menu labels."""

    FIRST_NAME = "Имя"
    SECOND_NAME = "Фамилия"
    PHONE = "Телефон"
    EMAIL = "Email"
    DATE_OF_BIRTH = "Дата рождения"

    @property
    def attribute(self) -> str:
        """Name of the Contact attribute holding this field."""
        return self.name.lower()

    @classmethod
    def parse(cls, value: Union["ContactField", str]) -> "ContactField":
        """
        Resolve a field from a member, label, member name or attribute name.

        Raises ValueError for anything else.
        """
        if isinstance(value, cls):
            return value

        text = str(value).strip()
        lowered = text.lower()
        for member in cls:
            if text == member.value or lowered in (member.value.lower(), member.attribute):
                return member

        raise ValueError(
            f"Unknown contact field '{value}'. "
            f"Must be one of: {[m.value for m in cls]}"
        )


@dataclass
class Contact:
    """A single contact record. Identity is `id`; other fields are mutable."""

    id: int
    first_name: str
    second_name: str
    phone: str
    email: str
    date_of_birth: str = UNKNOWN_BIRTHDAY

    @property
    def has_birthday(self) -> bool:
        return self.date_of_birth != UNKNOWN_BIRTHDAY

    def get(self, field: ContactField) -> str:
        return getattr(self, field.attribute)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "second_name": self.second_name,
            "phone": self.phone,
            "email": self.email,
            "date_of_birth": self.date_of_birth,
        }

    def summary(self) -> str:
        """One-line label used in selection lists."""
        return f"{self.id}: {self.first_name} {self.second_name} {self.phone} {self.email}"
