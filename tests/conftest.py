"""
Shared fixtures for contact book tests.
"""

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from contact_book.contacts.registry import ContactRegistry
from contact_book.sync.drive import RemoteObjectNotFound


SAMPLE_TEXT = (
    "[0] [Иван] [Петров] [+79991234567] [ivan@example.ru]\n"
    "[1] [Мария] [Сидорова] [+79997654321] [maria@example.ru]\n"
    "[2] [Иван] [Козлов] [+79990000000] [kozlov@mail.ru]\n"
)


class FakeObjectStore:
    """In-memory ObjectStore."""

    def __init__(self, objects=None):
        self.objects = dict(objects or {})
        self.uploads = 0
        self.downloads = 0

    def upload(self, local_path: Path, remote_name: str) -> None:
        self.uploads += 1
        self.objects[remote_name] = Path(local_path).read_bytes()

    def download(self, remote_name: str, local_path: Path) -> None:
        self.downloads += 1
        if remote_name not in self.objects:
            raise RemoteObjectNotFound(remote_name)
        Path(local_path).parent.mkdir(parents=True, exist_ok=True)
        Path(local_path).write_bytes(self.objects[remote_name])


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def app_dir(temp_dir):
    """Point config, token and OAuth client storage at a temp directory."""
    with patch("contact_book.utils.config.get_app_dir", return_value=temp_dir):
        yield temp_dir


@pytest.fixture
def contacts_file(temp_dir):
    path = temp_dir / "contacts.txt"
    path.write_text(SAMPLE_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def store():
    return FakeObjectStore()


@pytest.fixture
def registry():
    return ContactRegistry.from_text(SAMPLE_TEXT)


@pytest.fixture
def sample_text():
    return SAMPLE_TEXT
