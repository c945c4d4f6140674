"""Contact book with flat-file storage and Google Drive sync."""

__version__ = "0.3.0"
