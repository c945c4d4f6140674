"""
Local flat-file persistence.

The contacts file is read whole at startup and overwritten whole on exit.
"""

import logging
from pathlib import Path
from typing import Union

from contact_book.contacts.registry import ContactRegistry


logger = logging.getLogger(__name__)


def load_registry(path: Union[str, Path]) -> ContactRegistry:
    """Read a contacts file and build a registry from it."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    registry = ContactRegistry.from_text(text)
    logger.info(f"Loaded {len(registry)} contact(s) from {path}")
    return registry


def save_registry(registry: ContactRegistry, path: Union[str, Path]) -> Path:
    """Overwrite the contacts file with the registry contents."""
    path = Path(path)
    text = registry.to_text()
    path.write_text(text + "\n" if text else "", encoding="utf-8")
    logger.info(f"Saved {len(registry)} contact(s) to {path}")
    return path
