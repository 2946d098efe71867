"""Settings loading from the dotenv-style config file."""

import re
from pathlib import Path

import pytest

from bai.config import (
    ConfigurationError,
    Settings,
    ensure_config_file,
    load_settings,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for name in ("BAI_KEY", "BAI_TEMP", "BAI_MODEL", "BAI_MAX_HISTORY", "BAI_HISTORY_FILE", "VIMRUNTIME"):
        monkeypatch.delenv(name, raising=False)


def test_first_run_writes_defaults_and_requires_key(tmp_path: Path) -> None:
    """A fresh config file has an empty key, which is fatal."""

    path = tmp_path / "config" / "bai.cfg"

    assert ensure_config_file(path) is True
    assert ensure_config_file(path) is False
    assert "BAI_KEY=\n" in path.read_text(encoding="utf-8")
    with pytest.raises(ConfigurationError, match=re.escape(str(path))):
        load_settings(path)


def test_values_come_from_the_file(tmp_path: Path) -> None:
    """Configured values replace defaults; empty values keep them."""

    path = tmp_path / "bai.cfg"
    path.write_text(
        "BAI_KEY=sk-test\nBAI_MODEL=gpt-4o\nBAI_MAX_HISTORY=4\nBAI_JSON_MODE=true\nBAI_EXEC_QUERY=\n",
        encoding="utf-8",
    )

    settings = load_settings(path)

    assert settings.KEY == "sk-test"
    assert settings.MODEL == "gpt-4o"
    assert settings.MAX_HISTORY == 4
    assert settings.JSON_MODE is True
    assert settings.EXEC_QUERY == ""
    assert settings.TOKENS == 500


def test_environment_overrides_file(tmp_path: Path, monkeypatch) -> None:
    """BAI_* environment variables win over the file."""

    path = tmp_path / "bai.cfg"
    path.write_text("BAI_KEY=from-file\n", encoding="utf-8")
    monkeypatch.setenv("BAI_KEY", "from-env")

    assert load_settings(path).KEY == "from-env"


def test_invalid_value_is_configuration_error(tmp_path: Path) -> None:
    """A value that fails validation is fatal."""

    path = tmp_path / "bai.cfg"
    path.write_text("BAI_KEY=k\nBAI_TEMP=warm\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Invalid configuration"):
        load_settings(path)


def test_history_file_depends_on_host(tmp_path: Path, monkeypatch) -> None:
    """Vim sessions keep their own history file."""

    settings = Settings(_env_file=None, KEY="k")  # type: ignore[call-arg]
    assert settings.history_path.name == "baihistory_com.txt"

    monkeypatch.setenv("VIMRUNTIME", "/usr/share/vim/vim90")
    assert settings.history_path.name == "baihistory_vim.txt"

    pinned = Settings(_env_file=None, KEY="k", HISTORY_FILE=tmp_path / "h.txt")  # type: ignore[call-arg]
    assert pinned.history_path == tmp_path / "h.txt"
