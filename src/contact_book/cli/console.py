"""
Console helpers shared by CLI commands: messages, prompts, tables.
"""

import sys
from typing import Callable, Optional, Sequence

from rich import box
from rich.bar import Bar
from rich.console import Console
from rich.table import Table

from contact_book.contacts.errors import ValidationError
from contact_book.contacts.models import Contact


TABLE_COLUMNS = ("ID", "Имя", "Фамилия", "Телефон", "Email", "Дата рождения")
BAR_WIDTH = 40
PAGE_SIZE = 10

NEXT_PAGE = ("n", "т")
PREVIOUS_PAGE = ("p", "з")

console = Console()


def print_header(text: str) -> None:
    """Print formatted header."""
    print(f"\n{'=' * 50}")
    print(f"  {text}")
    print(f"{'=' * 50}\n")


def print_success(text: str) -> None:
    """Print success message."""
    print(f"✓ {text}")


def print_error(text: str) -> None:
    """Print error message."""
    print(f"✗ {text}", file=sys.stderr)


def print_warning(text: str) -> None:
    """Print warning message."""
    print(f"⚠ {text}")


def print_info(text: str) -> None:
    """Print info message."""
    print(f"ℹ {text}")


def prompt(text: str, default: Optional[str] = None) -> str:
    """Prompt user for input."""
    if default:
        result = input(f"{text} [{default}]: ").strip()
        return result if result else default
    return input(f"{text}: ").strip()


def confirm(text: str, default: bool = False) -> bool:
    """Prompt for yes/no confirmation."""
    suffix = "[Y/n]" if default else "[y/N]"
    result = input(f"{text} {suffix}: ").strip().lower()

    if not result:
        return default
    return result in ("y", "yes", "д", "да")


def prompt_valid(
    text: str,
    validate: Callable[[str], Optional[ValidationError]],
) -> Optional[str]:
    """
    Prompt until validate() accepts the value.

    Empty input cancels and returns None.
    """
    while True:
        value = prompt(f"{text} (Enter: отмена)")
        if not value:
            return None
        error = validate(value)
        if error is None:
            return value
        print_error(f"{error.message}. Попробуйте снова.")


def choose(title: str, options: Sequence[str]) -> Optional[str]:
    """
    Numbered selection menu. Returns the chosen option, None on empty input.
    """
    print(f"\n{title}")
    for number, option in enumerate(options, start=1):
        print(f"  {number}. {option}")

    while True:
        raw = input("> ").strip()
        if not raw:
            return None
        if raw.isdigit() and 1 <= int(raw) <= len(options):
            return options[int(raw) - 1]
        print_error(f"Введите число от 1 до {len(options)}")


def contacts_table(contacts: Sequence[Contact], caption: Optional[str] = None) -> Table:
    table = Table(box=box.ROUNDED, header_style="bold cyan", caption=caption)
    for column in TABLE_COLUMNS:
        table.add_column(column, overflow="fold")
    for c in contacts:
        table.add_row(str(c.id), c.first_name, c.second_name, c.phone, c.email, c.date_of_birth)
    return table


def show_table(contacts: Sequence[Contact], page_size: int = PAGE_SIZE) -> None:
    """
    Print contacts as a table, page_size rows at a time.

    With more than one page, 'n' and 'p' flip pages and empty input leaves.
    """
    contacts = list(contacts)
    pages = max(1, (len(contacts) + page_size - 1) // page_size)
    page = 0

    while True:
        start = page * page_size
        caption = f"Страница {page + 1} из {pages}" if pages > 1 else None
        console.print(contacts_table(contacts[start:start + page_size], caption))
        if pages == 1:
            return

        raw = input("n: следующая, p: предыдущая, Enter: выход > ").strip().lower()
        if not raw:
            return
        if raw in NEXT_PAGE:
            page = min(page + 1, pages - 1)
        elif raw in PREVIOUS_PAGE:
            page = max(page - 1, 0)


def show_breakdown(items: Sequence[tuple[str, float]], title: Optional[str] = None) -> None:
    """Print (name, percent) pairs as horizontal bars."""
    table = Table(title=title, box=None, show_header=False)
    table.add_column("name", style="bold")
    table.add_column("bar", width=BAR_WIDTH)
    table.add_column("percent", justify="right")
    for name, percent in items:
        table.add_row(name, Bar(size=100, begin=0, end=percent, width=BAR_WIDTH, color="cyan"), f"{percent}%")
    console.print(table)
