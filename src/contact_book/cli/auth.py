"""
Authentication CLI commands.

Handles:
- Interactive Drive account setup (auth)
- Account removal (auth --remove)
- Set default account (auth --default)
- Account listing with token status (auth --list)
- OAuth client credentials input
"""

import json
from typing import Optional

from contact_book.cli.console import (
    confirm,
    print_error,
    print_header,
    print_info,
    print_success,
    print_warning,
    prompt,
)
from contact_book.contacts.errors import AuthError
from contact_book.sync.auth import (
    authenticate,
    get_credentials,
    run_browser_flow,
)
from contact_book.utils.config import (
    add_account,
    has_account,
    get_token_path,
    has_oauth_client,
    is_default,
    list_accounts,
    remove_account,
    save_oauth_client,
    set_default_account,
)


def check_token_exists(account: str) -> bool:
    """Check if token file exists for account."""
    return get_token_path(account).exists()


def check_token_valid(account: str) -> bool:
    """Check if token is valid (not expired, can refresh)."""
    return get_credentials(account) is not None


def collect_oauth_client() -> dict:
    """
    Collect OAuth client JSON from user input.

    User pastes JSON from Google Cloud Console.
    """
    print("Paste OAuth client JSON from Google Cloud Console.")
    print("(Get it from: APIs & Services → Credentials → OAuth 2.0 Client IDs)")
    print("Press Enter on an empty line when done:\n")

    lines = []

    while True:
        try:
            line = input()
        except EOFError:
            break

        if line == "":
            break
        lines.append(line)

    json_text = "".join(lines)

    if not json_text.strip():
        raise ValueError("No JSON provided")

    try:
        credentials = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}")

    if "installed" not in credentials and "web" not in credentials:
        raise ValueError(
            "Invalid OAuth client JSON. "
            "Expected 'installed' or 'web' application credentials."
        )

    return credentials


def ask_for_code(auth_url: str) -> str:
    """Show the authorization URL and read the code pasted by the user."""
    print("1. Open this link and sign in with your Google account:")
    print(f"   {auth_url}")
    print("2. After approving, the browser is redirected to localhost.")
    print("3. Copy the 'code' value (or the whole address) from the address bar.\n")
    return prompt("Authorization code")


def ensure_oauth_client() -> bool:
    """Make sure an OAuth client is stored, asking the user for one if needed."""
    if has_oauth_client() and not confirm("Replace the stored OAuth client?"):
        print_info("Using stored OAuth client")
        return True

    try:
        credentials = collect_oauth_client()
    except ValueError as e:
        print_error(str(e))
        return False

    save_oauth_client(credentials)
    print_success("OAuth client saved")
    return True


def auth_add_account(browser: bool = False) -> Optional[str]:
    """
    Interactive flow to add a new account.

    Returns account name on success, None on failure.
    """
    while True:
        name = prompt("Account name (e.g., personal)", default="default")

        if not all(c.isalnum() or c in "-_" for c in name):
            print_error("Account name can only contain letters, numbers, dash, underscore")
            continue

        if has_account(name):
            print_warning(f"Account '{name}' already exists")
            if check_token_valid(name):
                print_info("Token is valid. No re-authorization needed.")
                if not confirm("Re-authorize this account anyway?"):
                    return name
            elif not confirm("Re-authorize this account?"):
                continue

            # Force a new token
            token_path = get_token_path(name)
            if token_path.exists():
                token_path.unlink()

        break

    if not ensure_oauth_client():
        return None

    try:
        if browser:
            print("\nOpening browser...")
            run_browser_flow(name)
        else:
            authenticate(ask_for_code, account=name)
    except AuthError as e:
        print_error(f"Authorization failed ({e.kind.value}): {e.message}")
        return None

    add_account(name)

    default_marker = " (default)" if is_default(name) else ""
    print_success(f"Account '{name}' authorized{default_marker}")
    return name


def auth_remove(name: str) -> bool:
    """
    Remove an account.

    Returns True on success.
    """
    if not has_account(name):
        print_error(f"Account '{name}' not found")
        return False

    if not confirm(f"Remove account '{name}'?"):
        print("Aborted.")
        return False

    if remove_account(name):
        print_success(f"Account '{name}' removed")
        return True

    print_error(f"Failed to remove account '{name}'")
    return False


def auth_set_default(name: str) -> bool:
    """
    Set default account.

    Returns True on success.
    """
    if set_default_account(name):
        print_success(f"Default account set to '{name}'")
        return True

    print_error(f"Account '{name}' not found")
    return False


def auth_list() -> None:
    """List all configured accounts with status."""
    accounts = list_accounts()

    if not accounts:
        print("No accounts configured.")
        print("Run 'contact-book auth' to add an account.")
        return

    print("\nConfigured accounts:\n")

    for name, info in accounts.items():
        added = info.get("added", "")[:10]
        default_marker = " [default]" if is_default(name) else ""

        if check_token_valid(name):
            status = "✓"
        elif check_token_exists(name):
            status = "⚠ token expired"
        else:
            status = "✗ no token"

        print(f"  {status} {name} (added {added}){default_marker}")

    print()


def run_auth(
    remove: Optional[str] = None,
    list_accounts_flag: bool = False,
    set_default: Optional[str] = None,
    browser: bool = False,
) -> int:
    """
    Main auth command entry point.

    Returns exit code (0 = success, 1 = error).
    """
    if list_accounts_flag:
        auth_list()
        return 0

    if set_default:
        return 0 if auth_set_default(set_default) else 1

    if remove:
        return 0 if auth_remove(remove) else 1

    print_header("Contact Book: Google Drive Account Setup")

    if auth_add_account(browser=browser) is None:
        return 1

    auth_list()
    return 0
