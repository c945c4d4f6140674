"""Shared helpers: account and OAuth client configuration."""
