"""
Non-interactive sync commands.

    contact-book sync upload contacts.txt     # file -> Drive
    contact-book sync download contacts.txt   # Drive -> file (overwrites)
"""

from pathlib import Path
from typing import Optional

from contact_book.cli.auth import ask_for_code
from contact_book.cli.console import print_error, print_success
from contact_book.contacts.errors import AuthError, TransportError
from contact_book.contacts.storage import load_registry, save_registry
from contact_book.sync.gateway import SyncGateway


def run_sync(direction: str, path: str, account: Optional[str] = None) -> int:
    """
    Sync command entry point.

    Returns exit code (0 = success, 1 = error).
    """
    file_path = Path(path)

    try:
        registry = load_registry(file_path)
    except (OSError, UnicodeDecodeError) as e:
        print_error(f"Cannot read {file_path}: {e}")
        return 1

    gateway = SyncGateway(account=account)

    try:
        gateway.authenticate(ask_for_code)

        if direction == "upload":
            count = gateway.push(registry)
            print_success(f"Uploaded {count} contact(s) to '{gateway.remote_name}'")
            return 0

        count = gateway.pull(registry)
        if count is None:
            print_error(f"Remote object '{gateway.remote_name}' not found")
            return 1

        save_registry(registry, file_path)
        print_success(f"Downloaded {count} contact(s) into {file_path}")
        return 0

    except AuthError as e:
        print_error(f"Authorization failed ({e.kind.value}): {e.message}")
    except TransportError as e:
        print_error(str(e))
    except OSError as e:
        print_error(f"Cannot write {file_path}: {e}")

    return 1
