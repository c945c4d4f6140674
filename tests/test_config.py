"""
Tests for account and OAuth client configuration.
"""

import json
import stat

from contact_book.settings import Settings
from contact_book.utils import config


class TestAccounts:
    """Test account bookkeeping in config.json."""

    def test_empty_config(self, app_dir):
        assert config.load_config() == {"default_account": None, "accounts": {}}
        assert config.list_accounts() == {}
        assert not config.has_account("personal")

    def test_first_account_becomes_default(self, app_dir):
        config.add_account("personal")
        config.add_account("work")

        assert config.get_default_account() == "personal"
        assert config.is_default("personal")
        assert set(config.list_accounts()) == {"personal", "work"}
        assert config.has_account("work")

    def test_set_default(self, app_dir):
        config.add_account("personal")
        config.add_account("work")

        assert config.set_default_account("work")
        assert not config.set_default_account("missing")
        assert config.get_default_account() == "work"

    def test_remove_account_deletes_token(self, app_dir):
        config.add_account("personal")
        config.add_account("work")
        token_path = config.get_token_path("personal")
        token_path.write_text("{}", encoding="utf-8")

        assert config.remove_account("personal")

        assert not token_path.exists()
        assert config.get_default_account() == "work"
        assert not config.remove_account("personal")

    def test_config_file_private(self, app_dir):
        config.add_account("personal")

        path = app_dir / "config.json"
        assert json.loads(path.read_text(encoding="utf-8"))["default_account"] == "personal"
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_corrupt_config(self, app_dir):
        (app_dir / "config.json").write_text("{broken", encoding="utf-8")
        assert config.load_config()["accounts"] == {}


class TestOAuthClient:
    """Test OAuth client storage."""

    def test_round_trip(self, app_dir):
        assert not config.has_oauth_client()
        assert config.load_oauth_client() is None

        config.save_oauth_client({"installed": {"client_id": "x"}})

        assert config.has_oauth_client()
        assert config.load_oauth_client() == {"installed": {"client_id": "x"}}


class TestSettings:
    """Test environment overrides."""

    def test_env_override(self, monkeypatch, temp_dir):
        monkeypatch.setenv("CONTACT_BOOK_DATA_DIR", str(temp_dir))
        monkeypatch.setenv("CONTACT_BOOK_REMOTE_NAME", "book.txt")

        settings = Settings()

        assert settings.data_dir == temp_dir
        assert settings.remote_name == "book.txt"
        assert settings.get_staging_path() == temp_dir / "contacts.txt"

    def test_absolute_staging_file(self, monkeypatch, temp_dir):
        monkeypatch.setenv("CONTACT_BOOK_STAGING_FILE", str(temp_dir / "stage.txt"))

        assert Settings().get_staging_path() == temp_dir / "stage.txt"
