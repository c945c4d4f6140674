"""
Configuration management for the contact book.

Handles:
- Config directory paths (~/.mcp/contact-book/ by default)
- Config file read/write
- Drive account management
- OAuth client credentials storage
"""

import json
import os
from pathlib import Path
from datetime import datetime
from typing import Optional

from contact_book.settings import settings


def get_app_dir() -> Path:
    """Get app directory (settings.data_dir)."""
    app_dir = settings.data_dir
    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


def get_tokens_dir() -> Path:
    """Get tokens directory: <app_dir>/tokens"""
    tokens_dir = get_app_dir() / "tokens"
    tokens_dir.mkdir(exist_ok=True)
    return tokens_dir


def get_config_path() -> Path:
    """Get config file path: <app_dir>/config.json"""
    return get_app_dir() / "config.json"


def get_oauth_client_path() -> Path:
    """Get OAuth client credentials path: <app_dir>/oauth_client.json"""
    return get_app_dir() / "oauth_client.json"


def get_token_path(account: str) -> Path:
    """Get token file path for account: <app_dir>/tokens/{account}.json"""
    return get_tokens_dir() / f"{account}.json"


def _write_private(path: Path, text: str) -> None:
    path.write_text(text, encoding="utf-8")
    os.chmod(path, 0o600)


def load_config() -> dict:
    """Load config from file. Returns default config if not exists."""
    config_path = get_config_path()

    default_config = {
        "default_account": None,
        "accounts": {},
    }

    if not config_path.exists():
        return default_config

    try:
        config = json.loads(config_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, IOError):
        return default_config

    config.setdefault("default_account", None)
    config.setdefault("accounts", {})
    return config


def save_config(config: dict) -> None:
    """Save config to file with secure permissions."""
    _write_private(get_config_path(), json.dumps(config, indent=2, ensure_ascii=False))


def add_account(name: str) -> None:
    """Add account to config. The first account becomes the default."""
    config = load_config()
    config["accounts"][name] = {"added": datetime.now().isoformat()}

    if config["default_account"] is None:
        config["default_account"] = name

    save_config(config)


def remove_account(name: str) -> bool:
    """Remove account and its token file. Returns True if removed."""
    config = load_config()

    if name not in config["accounts"]:
        return False

    del config["accounts"][name]

    token_path = get_token_path(name)
    if token_path.exists():
        token_path.unlink()

    if config["default_account"] == name:
        config["default_account"] = next(iter(config["accounts"]), None)

    save_config(config)
    return True


def has_account(name: str) -> bool:
    return name in load_config()["accounts"]


def get_default_account() -> Optional[str]:
    """Get default account name."""
    return load_config()["default_account"]


def set_default_account(name: str) -> bool:
    """Set default account. Returns True if successful."""
    config = load_config()

    if name not in config["accounts"]:
        return False

    config["default_account"] = name
    save_config(config)
    return True


def list_accounts() -> dict[str, dict]:
    """List all accounts."""
    return load_config()["accounts"]


def is_default(name: str) -> bool:
    """Check if account is default."""
    return load_config()["default_account"] == name


def has_oauth_client() -> bool:
    """Check if OAuth client credentials exist."""
    return get_oauth_client_path().exists()


def save_oauth_client(credentials: dict) -> None:
    """Save OAuth client credentials with secure permissions."""
    _write_private(get_oauth_client_path(), json.dumps(credentials, indent=2))


def load_oauth_client() -> Optional[dict]:
    """Load OAuth client credentials."""
    oauth_path = get_oauth_client_path()

    if not oauth_path.exists():
        return None

    try:
        return json.loads(oauth_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, IOError):
        return None
