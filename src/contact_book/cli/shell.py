"""
Interactive contact book shell.

Main menu loop over one ContactRegistry. Every action reports its own
errors and returns to the main menu. "Выход" saves the registry back to
the file it was loaded from.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Callable, Optional

from contact_book.cli.auth import ask_for_code
from contact_book.cli.console import (
    choose,
    confirm,
    print_error,
    print_header,
    print_info,
    print_success,
    print_warning,
    prompt,
    prompt_valid,
    show_breakdown,
    show_table,
)
from contact_book.contacts import codec
from contact_book.contacts.errors import (
    AuthError,
    AuthErrorKind,
    NotFoundError,
    TransportError,
    ValidationError,
)
from contact_book.contacts.models import ContactField
from contact_book.contacts.registry import (
    EDIT_FIELDS,
    FILTER_FIELDS,
    SEARCH_FIELDS,
    ContactRegistry,
    QueryStatus,
)
from contact_book.contacts.storage import load_registry, save_registry
from contact_book.sync.gateway import SyncGateway


logger = logging.getLogger(__name__)


SHOW = "Показать контакты"
ADD = "Добавить контакт"
EDIT = "Редактировать контакт"
REMOVE = "Удалить контакт"
SEARCH = "Поиск контактов"
TABLE = "Фильтрация и сортировка"
BIRTHDAY = "Добавить/Изменить дату рождения контакта"
UPCOMING = "Показать ближайшие дни рождения"
BREAKDOWN = "Показать диаграмму по именам"
SYNC = "Синхронизация с Google Drive"
EXIT = "Выход"

MAIN_MENU = [SHOW, ADD, EDIT, REMOVE, SEARCH, TABLE, BIRTHDAY, UPCOMING, BREAKDOWN, SYNC, EXIT]

UPLOAD = "Загрузить контакты в облако"
DOWNLOAD = "Скачать контакты из облака"
BACK = "Назад"

FILTER = "Фильтрация"
SORT = "Сортировка"

EMPTY_MESSAGE = "Список контактов пуст."


def ask_existing_path() -> Path:
    """Prompt until the user names an existing file."""
    path = Path(prompt("Введите путь к файлу с контактами"))
    while not path.is_file():
        path = Path(prompt("Файл не существует. Попробуйте снова"))
    return path


def _field_validator(contact_field: ContactField) -> Callable[[str], Optional[ValidationError]]:
    return lambda value: codec.validate_field(contact_field, value)


def _ask_id(text: str) -> Optional[int]:
    raw = prompt_valid(text, codec.validate_id)
    return int(raw) if raw is not None else None


def _choose_field(title: str, fields) -> Optional[ContactField]:
    label = choose(title, [f.value for f in fields])
    return ContactField.parse(label) if label else None


class ContactShell:
    """Menu-driven session over one registry and its backing file."""

    def __init__(
        self,
        registry: ContactRegistry,
        path: Path,
        gateway_factory: Callable[[], SyncGateway] = SyncGateway,
        today: Callable[[], date] = date.today,
    ):
        self.registry = registry
        self.path = Path(path)
        self._gateway_factory = gateway_factory
        self._today = today
        self.gateway: Optional[SyncGateway] = None

    def run(self) -> int:
        """Main loop. Returns exit code after saving on exit."""
        actions = {
            SHOW: self.show_contacts,
            ADD: self.add_contact,
            EDIT: self.edit_contact,
            REMOVE: self.remove_contact,
            SEARCH: self.search_contacts,
            TABLE: self.filter_and_sort,
            BIRTHDAY: self.update_birthday,
            UPCOMING: self.show_upcoming_birthdays,
            BREAKDOWN: self.show_name_breakdown,
            SYNC: self.run_sync_menu,
        }

        while True:
            try:
                choice = choose("Главное меню:", MAIN_MENU)
            except EOFError:
                choice = EXIT

            if choice is None:
                continue
            if choice == EXIT:
                return self.save_and_exit()

            try:
                actions[choice]()
            except EOFError:
                print()
                print_warning("Операция отменена.")
            except (AuthError, TransportError) as e:
                logger.warning(f"Action '{choice}' failed: {e}")
                print_error(e.message)

    def save_and_exit(self) -> int:
        try:
            save_registry(self.registry, self.path)
        except OSError as e:
            print_error(f"Не удалось сохранить файл: {e}")
            return 1
        print_success("Контакты сохранены в файл.")
        return 0

    # =========================================================================
    # Contacts
    # =========================================================================

    def show_contacts(self) -> None:
        if self.registry.is_empty:
            print_error(EMPTY_MESSAGE)
            return
        for contact in self.registry:
            print(f"ID: {contact.id}")
            print(f"Имя: {contact.first_name}")
            print(f"Фамилия: {contact.second_name}")
            print(f"Телефон: {contact.phone}")
            print(f"Email: {contact.email}")
            print()

    def add_contact(self) -> None:
        values = []
        for contact_field, text in (
            (ContactField.FIRST_NAME, "Введите имя контакта"),
            (ContactField.SECOND_NAME, "Введите фамилию контакта"),
            (ContactField.PHONE, "Введите телефон контакта (формат: +7 и 10 цифр)"),
            (ContactField.EMAIL, "Введите email контакта (например: user@example.ru)"),
        ):
            value = prompt_valid(text, _field_validator(contact_field))
            if value is None:
                print_warning("Операция отменена.")
                return
            values.append(value)

        result = self.registry.add(*values)
        if isinstance(result, ValidationError):
            print_error(result.message)
            return
        print_success(f"Контакт успешно добавлен (ID {result.id}).")

    def edit_contact(self) -> None:
        if self.registry.is_empty:
            print_error(f"{EMPTY_MESSAGE} Нечего редактировать.")
            return

        contact_id = _ask_id("Введите ID контакта для редактирования")
        if contact_id is None:
            print_warning("Операция отменена.")
            return
        if self.registry.get(contact_id) is None:
            print_error(f"Контакт с ID {contact_id} не найден.")
            return

        while True:
            contact_field = _choose_field(
                "Выберите поле для редактирования (Enter: завершить):",
                EDIT_FIELDS[:4],
            )
            if contact_field is None:
                print_success("Редактирование завершено.")
                return

            value = prompt_valid(
                f"Введите новое значение для поля '{contact_field.value}'",
                _field_validator(contact_field),
            )
            if value is None:
                print_warning("Операция отменена.")
                return

            result = self.registry.edit(contact_id, contact_field, value)
            if isinstance(result, (ValidationError, NotFoundError)):
                print_error(result.message)
                return
            print_success(f"Поле '{contact_field.value}' успешно обновлено.")

    def remove_contact(self) -> None:
        if self.registry.is_empty:
            print_error(f"{EMPTY_MESSAGE} Нечего удалять.")
            return

        contact_id = _ask_id("Введите ID контакта для удаления")
        if contact_id is None:
            print_warning("Операция отменена.")
            return

        result = self.registry.remove(contact_id)
        if isinstance(result, NotFoundError):
            print_error(f"Контакт с ID {contact_id} не найден.")
            return
        print_success(f"Контакт с ID {contact_id} удален.")

    def update_birthday(self) -> None:
        if self.registry.is_empty:
            print_error(EMPTY_MESSAGE)
            return

        summaries = [c.summary() for c in self.registry]
        selected = choose("Выберите контакт:", summaries)
        if selected is None:
            return
        contact = self.registry.contacts[summaries.index(selected)]

        print_info("Формат: dd.mm, например, 15.06. Пустой ввод: 'Неизвестно'.")
        while True:
            value = prompt("Дата рождения")
            result = self.registry.set_date_of_birth(contact.id, value)
            if isinstance(result, ValidationError):
                print_error("Некорректный формат даты. Используйте dd.mm (например, 15.06).")
                continue
            if isinstance(result, NotFoundError):
                print_error(result.message)
                return
            break

        print_success(
            f"Дата рождения для {contact.first_name} {contact.second_name}: "
            f"{contact.date_of_birth}"
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def _show_query(self, result) -> None:
        if isinstance(result, ValidationError):
            print_error("Пустой запрос. Поиск отменен.")
        elif result.status is QueryStatus.EMPTY_REGISTRY:
            print_error(EMPTY_MESSAGE)
        elif result.status is QueryStatus.NO_MATCHES:
            print_error("Контакты не найдены.")
        else:
            print_success("Результаты:")
            show_table(result.contacts)

    def search_contacts(self) -> None:
        if self.registry.is_empty:
            print_error(f"{EMPTY_MESSAGE} Нечего искать.")
            return

        contact_field = _choose_field("Выберите поле для поиска (Enter: отмена):", SEARCH_FIELDS)
        if contact_field is None:
            return

        query = prompt(f"Введите текст для поиска по полю '{contact_field.value}'")
        self._show_query(self.registry.search(contact_field, query))

    def filter_and_sort(self) -> None:
        while True:
            choice = choose("Фильтрация и сортировка:", [FILTER, SORT, BACK])
            if choice in (None, BACK):
                return

            if self.registry.is_empty:
                print_error(EMPTY_MESSAGE)
                return

            contact_field = _choose_field("Выберите поле (Enter: отмена):", FILTER_FIELDS)
            if contact_field is None:
                continue

            if choice == FILTER:
                query = prompt(f"Введите текст для фильтрации по полю '{contact_field.value}'")
                self._show_query(self.registry.filter(contact_field, query))
            else:
                print_info(f"Контакты отсортированы по полю '{contact_field.value}':")
                show_table(self.registry.sort(contact_field))

    def show_upcoming_birthdays(self) -> None:
        week = self.registry.upcoming_birthdays(self._today())

        if week.status is QueryStatus.EMPTY_REGISTRY:
            print_error(f"{EMPTY_MESSAGE} Нечего показывать.")
            return

        for invalid in week.invalid:
            print_error(
                f"Некорректная дата рождения у контакта {invalid.contact.id} "
                f"({invalid.contact.date_of_birth}) в {invalid.year} году."
            )

        if not week.entries:
            print_warning("На текущей неделе дней рождения нет.")
            return

        print_info(
            f"Ближайшие дни рождения (с {week.week_start:%d.%m} по {week.week_end:%d.%m}):"
        )
        show_table(week.contacts)

    def show_name_breakdown(self) -> None:
        breakdown = self.registry.name_breakdown()
        if not breakdown:
            print_error(EMPTY_MESSAGE)
            return
        show_breakdown(breakdown, title="Контакты по именам")

    # =========================================================================
    # Sync
    # =========================================================================

    def _connect(self) -> Optional[SyncGateway]:
        gateway = self.gateway or self._gateway_factory()
        if gateway.is_authenticated:
            self.gateway = gateway
            return gateway

        try:
            gateway.authenticate(ask_for_code)
        except AuthError as e:
            if e.kind is AuthErrorKind.INVALID_CODE:
                print_error(f"Ошибка ввода кода: {e.message}")
            elif e.kind is AuthErrorKind.TOKEN_REQUEST_FAILED:
                print_error(f"Ошибка запроса токена: {e.message}")
            elif e.kind is AuthErrorKind.TOKEN_MISSING_IN_RESPONSE:
                print_error(f"Ошибка обработки ответа: {e.message}")
            else:
                print_error(e.message)
            return None
        except TransportError as e:
            print_error(f"Ошибка соединения: {e.message}")
            return None

        print_success("Токен успешно получен!")
        self.gateway = gateway
        return gateway

    def run_sync_menu(self) -> None:
        print_header("Синхронизация контактов с Google Drive")

        gateway = self._connect()
        if gateway is None:
            return

        while True:
            choice = choose("Выберите действие:", [UPLOAD, DOWNLOAD, BACK])
            if choice in (None, BACK):
                return

            try:
                if choice == UPLOAD:
                    count = gateway.push(self.registry)
                    print_success(f"Контакты успешно загружены в облако ({count}).")
                else:
                    if not self.registry.is_empty and not confirm(
                        "Текущие контакты будут заменены контактами из облака. Продолжить?",
                        default=True,
                    ):
                        continue
                    count = gateway.pull(self.registry)
                    if count is None:
                        print_error("Файл не найден в облаке.")
                    else:
                        print_success(f"Контакты успешно скачаны из облака ({count}).")
            except TransportError as e:
                print_error(f"Ошибка синхронизации: {e.message}")
            except AuthError as e:
                print_error(f"Требуется повторная авторизация: {e.message}")
                self.gateway = None
                return


def run_shell(path: Optional[str] = None) -> int:
    """
    Shell command entry point.

    Returns exit code (0 = success, 1 = error).
    """
    file_path = Path(path) if path else ask_existing_path()
    if not file_path.is_file():
        print_error(f"Файл не существует: {file_path}")
        return 1

    try:
        registry = load_registry(file_path)
    except (OSError, UnicodeDecodeError) as e:
        print_error(f"Не удалось прочитать файл: {e}")
        return 1

    print_info(f"Загружено контактов: {len(registry)}")
    return ContactShell(registry, file_path).run()
