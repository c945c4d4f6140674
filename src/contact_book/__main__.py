"""
Contact book CLI entry point.

Usage:
    python -m contact_book                              # Interactive shell (asks for file)
    python -m contact_book shell contacts.txt           # Interactive shell
    python -m contact_book auth                         # Add Drive account
    python -m contact_book auth --remove X              # Remove account
    python -m contact_book auth --list                  # List accounts
    python -m contact_book auth --default X             # Set default account
    python -m contact_book sync upload contacts.txt     # Push file to Drive
    python -m contact_book sync download contacts.txt   # Replace file from Drive
    python -m contact_book serve contacts.txt           # Run MCP server
"""

import argparse
import logging
import sys

from contact_book.settings import settings


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main():
    parser = argparse.ArgumentParser(
        prog="contact-book",
        description="Contact book with Google Drive sync"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging to stderr"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # shell command
    shell_parser = subparsers.add_parser("shell", help="Interactive contact book")
    shell_parser.add_argument(
        "path",
        nargs="?",
        help="Contacts file (asked interactively if omitted)"
    )

    # auth command
    auth_parser = subparsers.add_parser("auth", help="Manage Drive accounts")
    auth_parser.add_argument(
        "--remove", "-r",
        metavar="NAME",
        help="Remove account by name"
    )
    auth_parser.add_argument(
        "--list", "-l",
        action="store_true",
        dest="list_accounts",
        help="List all accounts"
    )
    auth_parser.add_argument(
        "--default", "-d",
        metavar="NAME",
        help="Set default account"
    )
    auth_parser.add_argument(
        "--browser",
        action="store_true",
        help="Authorize through a local callback server instead of pasting the code"
    )

    # sync command
    sync_parser = subparsers.add_parser("sync", help="Upload or download contacts")
    sync_parser.add_argument("direction", choices=["upload", "download"])
    sync_parser.add_argument("path", help="Contacts file")
    sync_parser.add_argument(
        "--account", "-a",
        metavar="NAME",
        help="Drive account (default account if omitted)"
    )

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run MCP server")
    serve_parser.add_argument("path", help="Contacts file")

    args = parser.parse_args()
    configure_logging(args.verbose)

    if args.command == "auth":
        from contact_book.cli.auth import run_auth
        sys.exit(run_auth(
            remove=args.remove,
            list_accounts_flag=args.list_accounts,
            set_default=args.default,
            browser=args.browser
        ))

    elif args.command == "sync":
        from contact_book.cli.sync import run_sync
        sys.exit(run_sync(args.direction, args.path, account=args.account))

    elif args.command == "serve":
        from contact_book.server import serve
        serve(args.path)

    elif args.command in ("shell", None):
        from contact_book.cli.shell import run_shell
        sys.exit(run_shell(getattr(args, "path", None)))

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
