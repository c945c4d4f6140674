"""
Tests for the interactive shell, driven through patched input().
"""

from datetime import date
from unittest.mock import MagicMock, patch

import httplib2
import pytest

from contact_book.cli.shell import ContactShell, run_shell
from contact_book.contacts.errors import AuthError, AuthErrorKind, TransportError
from contact_book.contacts.models import Contact
from contact_book.contacts.registry import ContactRegistry
from contact_book.contacts.storage import load_registry
from contact_book.sync.drive import DriveObjectStore
from contact_book.sync.gateway import SyncGateway


EXIT = "11"


def run(shell, *answers):
    with patch("builtins.input", side_effect=list(answers)):
        return shell.run()


@pytest.fixture
def shell(registry, contacts_file):
    return ContactShell(registry, contacts_file, today=lambda: date(2025, 6, 10))


class TestMainMenu:
    """Test menu dispatch and exit."""

    def test_exit_saves(self, shell, contacts_file):
        shell.registry.remove(2)

        assert run(shell, EXIT) == 0
        assert len(load_registry(contacts_file)) == 2

    def test_eof_exits(self, shell):
        assert run(shell, EOFError()) == 0

    def test_invalid_choice_reprompts(self, shell, capsys):
        assert run(shell, "42", "abc", EXIT) == 0
        assert "Введите число от 1 до 11" in capsys.readouterr().err

    def test_show_contacts(self, shell, capsys):
        run(shell, "1", EXIT)

        out = capsys.readouterr().out
        assert "Имя: Мария" in out
        assert "Email: kozlov@mail.ru" in out


class TestEditing:
    """Test add, edit, remove and birth date actions."""

    def test_add_contact(self, shell, contacts_file):
        run(shell, "2", "Анна", "Иванова", "+79001112233", "anna@mail.ru", EXIT)

        saved = load_registry(contacts_file)
        assert saved.get(3).first_name == "Анна"

    def test_add_reprompts_invalid_value(self, shell, capsys):
        run(shell, "2", "анна", "Анна", "Иванова", "123", "+79001112233", "anna@mail.ru", EXIT)

        assert shell.registry.get(3).phone == "+79001112233"
        assert "Попробуйте снова" in capsys.readouterr().err

    def test_add_cancelled(self, shell):
        run(shell, "2", "Анна", "", EXIT)
        assert len(shell.registry) == 3

    def test_edit_contact(self, shell):
        run(shell, "3", "0", "3", "+70000000001", "", EXIT)
        assert shell.registry.get(0).phone == "+70000000001"

    def test_edit_missing_contact(self, shell, capsys):
        run(shell, "3", "9", EXIT)
        assert "Контакт с ID 9 не найден" in capsys.readouterr().err

    def test_remove_and_reuse_id(self, shell):
        run(shell, "4", "1", "2", "Анна", "Иванова", "+79001112233", "anna@mail.ru", EXIT)

        assert shell.registry.get(1).first_name == "Анна"
        assert [c.id for c in shell.registry] == [0, 2, 1]

    def test_update_birthday(self, shell, capsys):
        run(shell, "7", "1", "31/12", "15.06", EXIT)

        assert shell.registry.get(0).date_of_birth == "15.06"
        assert "Некорректный формат даты" in capsys.readouterr().err

    def test_empty_registry(self, contacts_file, capsys):
        contacts_file.write_text("", encoding="utf-8")
        shell = ContactShell(load_registry(contacts_file), contacts_file)

        run(shell, "1", "4", EXIT)

        assert "Список контактов пуст" in capsys.readouterr().err


class TestQueries:
    """Test search, table and report actions."""

    def test_search(self, shell, capsys):
        run(shell, "5", "1", "иван", EXIT)

        out = capsys.readouterr().out
        assert "Козлов" in out
        assert "Сидорова" not in out

    def test_search_no_matches(self, shell, capsys):
        run(shell, "5", "2", "Нет", EXIT)
        assert "Контакты не найдены" in capsys.readouterr().err

    def test_sort_by_date_of_birth(self, shell, capsys):
        shell.registry.set_date_of_birth(0, "05.11")
        shell.registry.set_date_of_birth(2, "20.01")

        run(shell, "6", "2", "5", "3", EXIT)

        out = capsys.readouterr().out
        assert out.index("Козлов") < out.index("Петров") < out.index("Сидорова")

    def test_upcoming_birthdays(self, shell, capsys):
        shell.registry.set_date_of_birth(1, "15.06")
        shell.registry.set_date_of_birth(2, "20.06")

        run(shell, "8", EXIT)

        out = capsys.readouterr().out
        assert "Сидорова" in out
        assert "Козлов" not in out

    def test_name_breakdown(self, shell, capsys):
        run(shell, "9", EXIT)
        assert "66.7%" in capsys.readouterr().out

    def test_sync_error_outside_sync_menu(self, shell, contacts_file, capsys):
        shell.registry.remove(0)

        with patch.object(shell, "show_contacts", side_effect=TransportError("upload", "timed out")):
            assert run(shell, "1", EXIT) == 0

        assert "timed out" in capsys.readouterr().err
        assert len(load_registry(contacts_file)) == 2

    def test_paged_table(self, contacts_file, capsys):
        registry = ContactRegistry([
            Contact(n, "Иван", "Петров", f"+7999000000{n % 10}", f"user{n}@example.ru")
            for n in range(12)
        ])
        shell = ContactShell(registry, contacts_file)

        run(shell, "6", "2", "1", "n", "p", "", "3", EXIT)

        out = capsys.readouterr().out
        assert out.count("Страница 1 из 2") == 2
        assert out.count("Страница 2 из 2") == 1
        assert "user11@example.ru" in out


class TestSyncMenu:
    """Test upload and download from the shell."""

    def make_shell(self, registry, contacts_file, store, temp_dir):
        gateway = SyncGateway(store=store, staging_path=temp_dir / "staging.txt")
        return ContactShell(registry, contacts_file, gateway_factory=lambda: gateway)

    def test_upload(self, registry, contacts_file, store, temp_dir, sample_text):
        shell = self.make_shell(registry, contacts_file, store, temp_dir)

        run(shell, "10", "1", "3", EXIT)

        assert store.objects["contacts.txt"].decode("utf-8") == sample_text

    def test_download_replaces_registry(self, registry, contacts_file, store, temp_dir):
        store.objects["contacts.txt"] = "[7] [Анна] [Иванова] [+79001112233] [anna@mail.ru]\n".encode("utf-8")
        shell = self.make_shell(registry, contacts_file, store, temp_dir)

        run(shell, "10", "2", "y", "3", EXIT)

        assert [c.id for c in load_registry(contacts_file)] == [7]

    def test_download_declined(self, registry, contacts_file, store, temp_dir):
        store.objects["contacts.txt"] = b""
        shell = self.make_shell(registry, contacts_file, store, temp_dir)

        run(shell, "10", "2", "n", "3", EXIT)

        assert len(shell.registry) == 3
        assert store.downloads == 0

    def test_download_missing_remote(self, registry, contacts_file, store, temp_dir, capsys):
        shell = self.make_shell(registry, contacts_file, store, temp_dir)

        run(shell, "10", "2", "y", "3", EXIT)

        assert "Файл не найден в облаке" in capsys.readouterr().err
        assert len(shell.registry) == 3

    def test_invalid_code(self, registry, contacts_file, temp_dir, capsys):
        authenticator = MagicMock(side_effect=AuthError(AuthErrorKind.INVALID_CODE, "too short"))
        shell = ContactShell(
            registry,
            contacts_file,
            gateway_factory=lambda: SyncGateway(
                staging_path=temp_dir / "staging.txt", authenticator=authenticator
            ),
        )

        run(shell, "10", EXIT)

        assert "Ошибка ввода кода: too short" in capsys.readouterr().err
        assert shell.gateway is None

    @patch("contact_book.sync.drive.time.sleep")
    def test_unreachable_drive_keeps_session(self, sleep, registry, contacts_file, temp_dir, capsys):
        service = MagicMock()
        service.files.return_value.list.return_value.execute.side_effect = \
            httplib2.ServerNotFoundError("Unable to find the server at www.googleapis.com")
        gateway = SyncGateway(store=DriveObjectStore(service), staging_path=temp_dir / "staging.txt")
        shell = ContactShell(registry, contacts_file, gateway_factory=lambda: gateway)
        shell.registry.remove(2)

        assert run(shell, "10", "1", "3", EXIT) == 0

        assert "Ошибка синхронизации" in capsys.readouterr().err
        assert len(load_registry(contacts_file)) == 2

    def test_unreachable_token_endpoint(self, registry, contacts_file, temp_dir, capsys):
        authenticator = MagicMock(side_effect=TransportError("auth", "connection refused"))
        shell = ContactShell(
            registry,
            contacts_file,
            gateway_factory=lambda: SyncGateway(
                staging_path=temp_dir / "staging.txt", authenticator=authenticator
            ),
        )

        assert run(shell, "10", EXIT) == 0

        assert "Ошибка соединения: connection refused" in capsys.readouterr().err
        assert shell.gateway is None


class TestRunShell:
    """Test the shell entry point."""

    def test_missing_file(self, temp_dir):
        assert run_shell(str(temp_dir / "missing.txt")) == 1

    def test_asks_for_path(self, contacts_file, temp_dir):
        with patch("builtins.input", side_effect=[str(temp_dir / "missing.txt"), str(contacts_file), EXIT]):
            assert run_shell() == 0
