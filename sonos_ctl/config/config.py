"""
Centralised config for the entire application.

This module consolidates all configuration settings, loading values from
environment variables (and an optional ``.env`` file) and providing typed,
validated access to them through a singleton `settings` object.
"""

import os
from pathlib import Path
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_FILE = Path(__file__).resolve()
APP_NAME = "sonos_ctl"


def _discover_env_file(config_file: Path) -> Path:
    """Return the nearest ``.env`` above the package, or the working directory one.

    The file is optional: pydantic-settings silently skips a missing env file,
    so the fallback only needs to be a plausible location.
    """

    for parent in config_file.parents:
        env_file = parent / ".env"
        if env_file.exists():
            return env_file
    return Path.cwd() / ".env"


ENV_FILE_PATH = _discover_env_file(CONFIG_FILE)


def default_config_dir() -> Path:
    """Resolve ``$XDG_CONFIG_HOME/sonos_ctl`` falling back to ``~/.config/sonos_ctl``."""

    xdg_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg_home) if xdg_home else Path.home() / ".config"
    return base / APP_NAME


class Settings(BaseSettings):
    """
    Centralised and validated application settings.
    """
    model_config = SettingsConfigDict(
        env_file=ENV_FILE_PATH, env_file_encoding="utf-8", extra="ignore", case_sensitive=False
    )

    # --- LOCAL STATE ---
    SONOS_CONFIG_DIR: Path = Field(default_factory=default_config_dir)

    # --- SONOS ENDPOINTS ---
    SONOS_AUTH_URL: str = "https://api.sonos.com/login/v3/oauth"
    SONOS_TOKEN_URL: str = "https://api.sonos.com/login/v3/oauth/access"
    SONOS_CONTROL_API_URL: str = "https://api.ws.sonos.com/control/api/v1/"
    SONOS_OAUTH_SCOPE: str = "playback-control-all"
    SONOS_REQUEST_TIMEOUT: float = 30.0

    # --- LOGGING ---
    SONOS_LOG_LEVEL: str = "INFO"
    SONOS_LOG_TO_CONSOLE: bool = False
    SONOS_LOG_FILE: Optional[Path] = None

    @field_validator("SONOS_CONTROL_API_URL")
    @classmethod
    def _ensure_trailing_slash(cls, value: str) -> str:
        # urljoin drops the last path segment unless the base ends with "/".
        return value if value.endswith("/") else f"{value}/"

    # --- DYNAMIC FILE PATHS ---
    @property
    def integration_path(self) -> Path:
        """Where the registered OAuth application identity is stored."""
        return self.SONOS_CONFIG_DIR / "sonos_integration.json"

    @property
    def tokens_path(self) -> Path:
        """Where the user's access/refresh token pair is stored."""
        return self.SONOS_CONFIG_DIR / "sonos_tokens.json"

    @property
    def log_path(self) -> Path:
        """
        Path for the rotating application log.

        Defaults to a file next to the credentials so a single directory holds
        all local state.
        """
        if self.SONOS_LOG_FILE is not None:
            return self.SONOS_LOG_FILE
        return self.SONOS_CONFIG_DIR / "sonos_ctl.log"


# Create a single, importable instance of the settings for the entire application.
settings = Settings()
