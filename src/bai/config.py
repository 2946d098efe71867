"""Configuration settings for the application."""

import os
import tempfile
from pathlib import Path

from pydantic import ValidationError
from pydantic_settings import (
    BaseSettings,
    SettingsConfigDict,
)

CONFIG_FILE = Path.home() / ".config" / "bai.cfg"
"""Default location of the dotenv-style configuration file."""

# Written on first run so the user has something to fill in
_DEFAULT_CONFIG = """\
BAI_KEY=

BAI_HI_CONTRAST=false
BAI_EXPOSE_CURRENT_DIR=true
BAI_MAX_HISTORY=10
BAI_API=https://api.openai.com/v1/chat/completions
BAI_MODEL=gpt-4o-mini
BAI_JSON_MODE=false
BAI_TEMP=0.1
BAI_TOKENS=500
BAI_EXEC_QUERY=
BAI_QUESTION_QUERY=
BAI_ERROR_QUERY=
"""


class ConfigurationError(RuntimeError):
    """Raised when the configuration is incomplete or holds invalid values."""


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    model_config = SettingsConfigDict(
        # Load environment variables from the config file, real environment wins
        env_prefix="BAI_",
        env_file=CONFIG_FILE,
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Model Configuration
    KEY: str | None = None
    API: str = "https://api.openai.com/v1/chat/completions"
    MODEL: str = "gpt-4o-mini"
    JSON_MODE: bool = False
    TEMP: float = 0.1
    TOKENS: int = 500
    TIMEOUT: float | None = None  # None waits for the transport forever

    # Mode instructions, empty means the built-in text
    EXEC_QUERY: str = ""
    QUESTION_QUERY: str = ""
    ERROR_QUERY: str = ""

    # Session Configuration
    HI_CONTRAST: bool = False
    EXPOSE_CURRENT_DIR: bool = True
    MAX_HISTORY: int = 10
    HISTORY_FILE: Path | None = None
    TOOLS_PATH: Path = Path.home() / ".bai_tools"
    LOG_LEVEL: str = "warning"  # Options: debug, info, warning, error, critical

    @property
    def history_path(self) -> Path:
        """History file for this session class, one per host environment."""
        if self.HISTORY_FILE is not None:
            return self.HISTORY_FILE.expanduser()
        name = "baihistory_vim.txt" if in_vim() else "baihistory_com.txt"
        return Path(tempfile.gettempdir()) / name

    @property
    def tools_path(self) -> Path:
        """Directory scanned for tool plugins."""
        return self.TOOLS_PATH.expanduser()


def in_vim() -> bool:
    """Return True when running inside the Vim terminal."""
    return bool(os.environ.get("VIMRUNTIME"))


def ensure_config_file(path: Path = CONFIG_FILE) -> bool:
    """
    Create the configuration file with default values if it does not exist yet.

    Returns True if a new file was written.
    """
    if path.exists():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_DEFAULT_CONFIG, encoding="utf-8")
    return True


def load_settings(path: Path = CONFIG_FILE) -> Settings:
    """
    Read settings from *path* and the environment, and check the API key is present.

    Raises
    ------
    ConfigurationError
        If a value fails validation or no API key is configured.
    """
    try:
        loaded = Settings(_env_file=path)  # type: ignore[call-arg]
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration in {path}: {exc}") from exc

    if not loaded.KEY:
        raise ConfigurationError(
            f"To use Bash AI, please input your OpenAI key into the config file located at {path}"
        )
    return loaded
