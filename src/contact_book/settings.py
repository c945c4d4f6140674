"""
Application settings with environment variable support.

All settings can be overridden via CONTACT_BOOK_* environment variables
or a local .env file.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Contact book configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CONTACT_BOOK_",
        env_file=".env",
        extra="ignore",
    )

    # Directory paths
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".mcp" / "contact-book"
    )

    # Local staging file for sync, relative to data_dir unless absolute
    staging_file: Path = Path("contacts.txt")

    # Remote object name in the Drive app data folder
    remote_name: str = "contacts.txt"

    # OAuth redirect for the manual code flow; the code is read from the
    # browser address bar after the redirect
    oauth_redirect_uri: str = "http://localhost"

    log_level: str = "WARNING"

    def ensure_dirs(self) -> None:
        """Create directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        (self.data_dir / "tokens").mkdir(parents=True, exist_ok=True)

    def get_staging_path(self) -> Path:
        """Get local staging file used by upload/download."""
        if self.staging_file.is_absolute():
            return self.staging_file
        return self.data_dir / self.staging_file


# Global settings instance
settings = Settings()
