"""
MirrorHistory Configuration.

Centralized configuration management using Pydantic Settings.
Loads configuration from environment variables.
"""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_xdg_data_dir() -> str:
    """
    Get XDG-compliant data directory for MirrorHistory.

    Follows XDG Base Directory Specification:
    - Uses $XDG_DATA_HOME/mirrorhistory if XDG_DATA_HOME is set
    - Falls back to $HOME/.local/share/mirrorhistory if not set
    - Returns relative path .mirrorhistory if HOME not available (dev/testing)

    Returns:
        str: Path to data directory
    """
    xdg_data_home = os.getenv("XDG_DATA_HOME")
    if xdg_data_home:
        return str(Path(xdg_data_home) / "mirrorhistory")

    home = os.getenv("HOME")
    if home:
        return str(Path(home) / ".local" / "share" / "mirrorhistory")

    return ".mirrorhistory"


def get_xdg_state_dir() -> str:
    """
    Get XDG-compliant state directory for MirrorHistory logs.

    Follows XDG Base Directory Specification:
    - Uses $XDG_STATE_HOME/mirrorhistory if XDG_STATE_HOME is set
    - Falls back to $HOME/.local/state/mirrorhistory if not set
    - Returns relative path ./logs if HOME not available (dev/testing)

    Returns:
        str: Path to state/logs directory
    """
    xdg_state_home = os.getenv("XDG_STATE_HOME")
    if xdg_state_home:
        return str(Path(xdg_state_home) / "mirrorhistory" / "logs")

    home = os.getenv("HOME")
    if home:
        return str(Path(home) / ".local" / "state" / "mirrorhistory" / "logs")

    return "./logs"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url_override: str = Field(default="", validation_alias="DATABASE_URL")
    sqlite_path: str = f"{get_xdg_data_dir()}/journal.db"

    @property
    def database_url(self) -> str:
        """Explicit DATABASE_URL wins, otherwise a local SQLite file."""
        if self.database_url_override:
            return self.database_url_override
        return f"sqlite:///{self.sqlite_path}"

    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    api_reload: bool = False

    # Engine defaults
    snapshot_window_minutes: int = 30
    forensic_window_minutes: int = 30
    similar_moment_limit: int = 5
    confrontation_list_limit: int = 20
    inconsistency_list_limit: int = 50

    # Application
    environment: str = "development"

    # Logging
    log_level: str = "INFO"
    log_dir: str = ""  # XDG-compliant log directory (defaults to XDG state dir if empty)
    log_format: str = "standard"  # standard or json
    log_console_enabled: bool = True
    log_file_enabled: bool = True
    log_max_bytes: int = 10_485_760  # 10MB per log file
    log_backup_count: int = 5
    log_to_stdout: bool = True  # Log INFO/DEBUG to stdout
    log_to_stderr: bool = True  # Log WARNING/ERROR/CRITICAL to stderr

    @property
    def log_directory(self) -> Path:
        """Get the log directory path, using XDG default if not specified."""
        if self.log_dir:
            return Path(self.log_dir).expanduser()
        return Path(get_xdg_state_dir())


# Global settings instance
settings = Settings()
