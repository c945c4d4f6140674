"""CLI commands: interactive shell, account setup, sync."""
